"""
Pytest fixtures and configuration for the command-line client tests
"""

import os
import sys
import pytest
from unittest.mock import MagicMock

# Add scripts directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Set environment variables before importing modules
os.environ['TRACKER_API_URL'] = 'https://api.test/prod'
os.environ['TRACKER_PASSWORD'] = 'test-password'

from fake_responses import make_response


@pytest.fixture
def mock_session():
    """Mock requests.Session"""
    session = MagicMock()
    session.request.return_value = make_response(200, {})
    session.put.return_value = make_response(200)
    return session

@pytest.fixture
def mock_api():
    """Mock TrackerApi"""
    api = MagicMock()
    api.list_feedings.return_value = []
    api.get_snapshot_meta.return_value = {'exists': False, 'timestamp': None, 'url': None}
    api.get_upload_url.return_value = {
        'uploadUrl': 'https://test-snapshot-bucket.s3.amazonaws.com/snapshots/latest.jpg?sig',
        'key': 'snapshots/latest.jpg'
    }
    return api

@pytest.fixture
def frame_file(tmp_path):
    """A PNG frame with an alpha channel, as a camera tool might write"""
    from PIL import Image

    path = tmp_path / 'frame.png'
    Image.new('RGBA', (1920, 1080), color=(255, 0, 0, 255)).save(path, format='PNG')
    return path
