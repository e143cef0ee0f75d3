"""
Pytest fixtures and configuration for Lambda unit tests
"""

import os
import sys
import json
import pytest

# Add lambda directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Set environment variables before importing modules
# AWS_DEFAULT_REGION must be set before boto3 initializes
os.environ['AWS_DEFAULT_REGION'] = 'us-east-1'
os.environ['TABLE_NAME'] = 'TestFeedingTable'
os.environ['SNAPSHOT_BUCKET'] = 'test-snapshot-bucket'
os.environ['SNAPSHOT_PUBLIC_URL'] = 'https://test.cloudfront.net'
os.environ['FEEDING_PASSWORD'] = 'test-password'

from fakes import FakeFeedingTable, FakeSnapshotBucket


@pytest.fixture
def fake_table(monkeypatch):
    """Patch the storage module's feeding table with an in-memory table"""
    import storage

    table = FakeFeedingTable()
    monkeypatch.setattr(storage, 'feeding_table', table)
    return table


@pytest.fixture
def fake_s3(monkeypatch):
    """Patch the storage module's S3 client with an in-memory bucket"""
    import storage

    bucket = FakeSnapshotBucket()
    monkeypatch.setattr(storage, 's3', bucket)
    return bucket


@pytest.fixture
def make_event():
    """Build API Gateway REST (v1) events"""

    def _make_event(method, path, body=None, password=None, headers=None, **extra):
        event = {
            'httpMethod': method,
            'path': path,
            'headers': dict(headers or {}),
            'queryStringParameters': None,
            'body': json.dumps(body) if isinstance(body, (dict, list)) else body,
            'requestContext': {'stage': 'prod'}
        }
        if password is not None:
            event['headers']['Authorization'] = f'Bearer {password}'
        event.update(extra)
        return event

    return _make_event


@pytest.fixture
def http_api_event():
    """API Gateway HTTP API (v2) event with a route key"""

    def _http_api_event(route_key, raw_path, body=None, password=None, path_parameters=None):
        method = route_key.split(' ', 1)[0]
        return {
            'version': '2.0',
            'routeKey': route_key,
            'rawPath': raw_path,
            'headers': {'authorization': password} if password is not None else {},
            'pathParameters': path_parameters,
            'body': json.dumps(body) if body is not None else None,
            'isBase64Encoded': False,
            'requestContext': {
                'stage': '$default',
                'http': {'method': method, 'path': raw_path}
            }
        }

    return _http_api_event


@pytest.fixture
def sample_feeding():
    """Sample stored feeding record"""
    return {
        'pk': 'FEEDING_LOG',
        'sk': '1700000000000',
        'timestamp': '2023-11-14T22:13:20.000Z',
        'createdAt': '2023-11-14T22:13:21.000Z'
    }
