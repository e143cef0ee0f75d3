"""
Storage Adapter Module

Wraps the feeding history DynamoDB table and the snapshot S3 bucket.
All feeding records live under a single partition key; the sort key is the
feeding id rendered as a decimal string so that newest-first ordering falls
out of a descending query.
"""

import os
import json
import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone

import boto3
from boto3.dynamodb.conditions import Key
from botocore.exceptions import ClientError

logger = logging.getLogger()

# Initialize DynamoDB and S3
dynamodb = boto3.resource('dynamodb')
s3 = boto3.client('s3')
feeding_table = dynamodb.Table(os.environ.get('TABLE_NAME', 'bp-feeding-history'))

SNAPSHOT_BUCKET = os.environ.get('SNAPSHOT_BUCKET', 'bp-snapshots')

PARTITION_KEY = 'FEEDING_LOG'
MAX_FEEDINGS = 50

SNAPSHOT_KEY = 'snapshots/latest.jpg'
SNAPSHOT_META_KEY = 'snapshots/latest-meta.json'
SNAPSHOT_CONTENT_TYPE = 'image/jpeg'
UPLOAD_URL_EXPIRES = 300  # 5 minutes

# Error codes S3 uses for an absent object. HEAD requests carry no body, so
# the code is often just the status; buckets without ListBucket permission
# answer 403 for missing keys.
MISSING_OBJECT_CODES = {'404', 'NoSuchKey', 'NotFound', '403', 'AccessDenied', 'Forbidden'}

# Absent-object codes for requests other than HEAD, where a 403 is a real
# permission failure.
NO_SUCH_KEY_CODES = {'404', 'NoSuchKey', 'NotFound'}

DELETE_WORKERS = 10


def to_iso(moment):
    """Format a datetime as UTC ISO-8601 with millisecond precision and a Z suffix."""
    moment = moment.astimezone(timezone.utc)
    return moment.strftime('%Y-%m-%dT%H:%M:%S.') + f"{moment.microsecond // 1000:03d}Z"


def utc_now_iso():
    """Current UTC time as ISO-8601 with millisecond precision and a Z suffix."""
    return to_iso(datetime.now(timezone.utc))


def is_missing_object_error(error):
    """Return True if a ClientError means the object does not exist."""
    code = str(error.response.get('Error', {}).get('Code', ''))
    status = error.response.get('ResponseMetadata', {}).get('HTTPStatusCode')
    return code in MISSING_OBJECT_CODES or status in (403, 404)


def is_no_such_key_error(error):
    """Return True only if a ClientError names the object as absent (never for 403)."""
    code = str(error.response.get('Error', {}).get('Code', ''))
    status = error.response.get('ResponseMetadata', {}).get('HTTPStatusCode')
    return code in NO_SUCH_KEY_CODES or status == 404


# ============================================
# FEEDING RECORDS
# ============================================

def query_feedings(limit=MAX_FEEDINGS):
    """Get feeding records, most recent first."""
    response = feeding_table.query(
        KeyConditionExpression=Key('pk').eq(PARTITION_KEY),
        ScanIndexForward=False,  # Descending order (newest first)
        Limit=limit
    )
    return response.get('Items', [])


def put_feeding(sort_key, timestamp):
    """Write a feeding record. An existing record with the same sort key is overwritten."""
    item = {
        'pk': PARTITION_KEY,
        'sk': str(sort_key),
        'timestamp': timestamp,
        'createdAt': utc_now_iso()
    }
    feeding_table.put_item(Item=item)
    return item


def delete_feeding(sort_key):
    """Delete a single feeding record. Deleting a missing key is not an error."""
    feeding_table.delete_item(
        Key={
            'pk': PARTITION_KEY,
            'sk': str(sort_key)
        }
    )


def list_feeding_keys():
    """Get the keys of every feeding record in the partition."""
    response = feeding_table.query(
        KeyConditionExpression=Key('pk').eq(PARTITION_KEY),
        ProjectionExpression='pk, sk'
    )
    items = response.get('Items', [])

    # Handle pagination
    while 'LastEvaluatedKey' in response:
        response = feeding_table.query(
            KeyConditionExpression=Key('pk').eq(PARTITION_KEY),
            ProjectionExpression='pk, sk',
            ExclusiveStartKey=response['LastEvaluatedKey']
        )
        items.extend(response.get('Items', []))

    return [{'pk': item['pk'], 'sk': item['sk']} for item in items]


def delete_all_feedings():
    """Delete every feeding record in the partition.

    Deletes are issued concurrently and all of them are awaited before
    returning. This is not atomic: if any delete fails, the others still run
    and the first failure is raised once they have all settled.

    Returns:
        int: Number of records deleted
    """
    keys = list_feeding_keys()
    if not keys:
        return 0

    # Low-level clients are thread safe, resources are not
    client = feeding_table.meta.client
    table_name = feeding_table.name

    def delete_key(key):
        client.delete_item(TableName=table_name, Key=key)

    errors = []
    with ThreadPoolExecutor(max_workers=min(DELETE_WORKERS, len(keys))) as executor:
        futures = [executor.submit(delete_key, key) for key in keys]
        for future in futures:
            error = future.exception()
            if error is not None:
                errors.append(error)

    if errors:
        logger.error(f"Bulk delete failed for {len(errors)} of {len(keys)} feeding records")
        raise errors[0]

    return len(keys)


# ============================================
# SNAPSHOT OBJECT
# ============================================

def generate_snapshot_upload_url():
    """Generate a presigned PUT URL for the snapshot image."""
    return s3.generate_presigned_url(
        'put_object',
        Params={
            'Bucket': SNAPSHOT_BUCKET,
            'Key': SNAPSHOT_KEY,
            'ContentType': SNAPSHOT_CONTENT_TYPE
        },
        ExpiresIn=UPLOAD_URL_EXPIRES
    )


def head_snapshot():
    """Probe the snapshot image.

    Returns:
        dict: The head_object response, or None if the snapshot does not exist.
        Any other S3 failure is raised.
    """
    try:
        return s3.head_object(Bucket=SNAPSHOT_BUCKET, Key=SNAPSHOT_KEY)
    except ClientError as e:
        if is_missing_object_error(e):
            return None
        raise


def write_snapshot_timestamp(timestamp):
    """Persist a logical timestamp for the current snapshot.

    The timestamp is stored as custom metadata on the image itself (copy onto
    itself with replaced metadata) and mirrored to the JSON sidecar key.
    S3 metadata values are strings, so the timestamp is stored as one.

    Returns:
        bool: False if there is no snapshot to update. Permission failures
        are raised.
    """
    timestamp = str(timestamp)
    try:
        s3.copy_object(
            Bucket=SNAPSHOT_BUCKET,
            Key=SNAPSHOT_KEY,
            CopySource={'Bucket': SNAPSHOT_BUCKET, 'Key': SNAPSHOT_KEY},
            ContentType=SNAPSHOT_CONTENT_TYPE,
            Metadata={'timestamp': timestamp},
            MetadataDirective='REPLACE'
        )
    except ClientError as e:
        if is_no_such_key_error(e):
            return False
        raise

    s3.put_object(
        Bucket=SNAPSHOT_BUCKET,
        Key=SNAPSHOT_META_KEY,
        Body=json.dumps({'timestamp': timestamp, 'updatedAt': utc_now_iso()}),
        ContentType='application/json'
    )
    return True


def delete_snapshot():
    """Delete the snapshot image and its metadata sidecar. Idempotent."""
    s3.delete_object(Bucket=SNAPSHOT_BUCKET, Key=SNAPSHOT_KEY)
    s3.delete_object(Bucket=SNAPSHOT_BUCKET, Key=SNAPSHOT_META_KEY)
