"""
Snapshot Handlers Module

There is only ever one snapshot: every capture overwrites the same S3 key.
Clients upload straight to S3 through a short-lived presigned URL, and the
public page polls the metadata endpoint to find out whether an image exists.
"""

import os

import storage

SNAPSHOT_PUBLIC_URL = os.environ.get(
    'SNAPSHOT_PUBLIC_URL',
    f"https://{storage.SNAPSHOT_BUCKET}.s3.amazonaws.com"
).rstrip('/')


def get_snapshot_url():
    """Public URL of the snapshot image."""
    return f"{SNAPSHOT_PUBLIC_URL}/{storage.SNAPSHOT_KEY}"


def get_upload_url():
    """Issue a presigned PUT URL for the next snapshot.

    Nothing checks that an upload actually follows.
    """
    return {
        'uploadUrl': storage.generate_snapshot_upload_url(),
        'key': storage.SNAPSHOT_KEY
    }


def get_snapshot_metadata():
    """Describe the current snapshot, or report that none exists."""
    head = storage.head_snapshot()
    if head is None:
        return {'exists': False, 'timestamp': None, 'url': None}

    last_modified = head.get('LastModified')
    last_modified_iso = storage.to_iso(last_modified) if last_modified else None
    custom_timestamp = (head.get('Metadata') or {}).get('timestamp')

    return {
        'exists': True,
        'timestamp': custom_timestamp or last_modified_iso,
        'lastModified': last_modified_iso,
        'size': head.get('ContentLength'),
        'url': get_snapshot_url()
    }


def update_snapshot_metadata(timestamp):
    """Store a logical capture timestamp on the current snapshot.

    Non-string timestamps (e.g. epoch milliseconds) are stored and echoed as
    their string form.

    Raises:
        ValueError: If there is no snapshot to update
    """
    timestamp = str(timestamp)
    if not storage.write_snapshot_timestamp(timestamp):
        raise ValueError('No snapshot to update')
    return {'updated': True, 'timestamp': timestamp}


def delete_snapshot():
    """Delete the current snapshot. Idempotent."""
    storage.delete_snapshot()
    return {'deleted': True}
