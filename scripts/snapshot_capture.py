#!/usr/bin/env python3
"""
Snapshot Capture - command-line client

Uploads the latest camera frame as the public bp snapshot. Frames are read
from an image file that a camera tool keeps overwriting (e.g. fswebcam or
ffmpeg writing to /tmp/bp-cam.jpg), re-encoded as JPEG and uploaded to S3
through a presigned URL.

Usage:
    python snapshot_capture.py capture /tmp/bp-cam.jpg
    python snapshot_capture.py auto /tmp/bp-cam.jpg --interval 60
    python snapshot_capture.py status
    python snapshot_capture.py delete [--yes]

Requirements:
    pip install requests pillow python-dotenv
"""

import io
import sys
import time
import argparse
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import requests
from PIL import Image, ImageOps

from tracker_api import TrackerApi, TrackerApiError

# Capture settings
MAX_FRAME_SIZE = (1280, 720)
JPEG_QUALITY = 85
DEFAULT_INTERVAL_SECONDS = 60


def encode_frame(image_path: Path) -> bytes:
    """Read a frame from disk and re-encode it as an RGB JPEG."""
    with Image.open(image_path) as img:
        # Preserve EXIF orientation
        img = ImageOps.exif_transpose(img)

        if img.mode != 'RGB':
            img = img.convert('RGB')

        img.thumbnail(MAX_FRAME_SIZE, Image.Resampling.LANCZOS)

        buffer = io.BytesIO()
        img.save(buffer, 'JPEG', quality=JPEG_QUALITY, optimize=True)
        return buffer.getvalue()


class SnapshotCapture:
    """View-model for the capture client.

    Holds the frame source, the last capture time, the upload status and the
    latest snapshot metadata. ``start()`` runs captures back to back on one
    loop, so a slow upload delays the next tick instead of overlapping it.
    """

    def __init__(self, api: TrackerApi, source: Optional[Path] = None,
                 clock=time.time, sleep=time.sleep):
        self.api = api
        self.source = source
        self.clock = clock
        self.sleep = sleep
        self.last_capture_time = None
        self.upload_status = 'Idle'
        self.current_meta = None
        self.running = False

    def refresh(self) -> dict:
        self.current_meta = self.api.get_snapshot_meta()
        return self.current_meta

    def capture(self) -> bool:
        """Capture one frame and upload it. Returns False if any step failed."""
        if self.source is None or not self.source.exists():
            self.upload_status = 'No camera frame available'
            print(f"Error: frame source not found: {self.source}")
            return False

        try:
            self.upload_status = 'Capturing...'
            jpeg_bytes = encode_frame(self.source)
            captured_at = datetime.fromtimestamp(self.clock(), timezone.utc)

            self.upload_status = 'Getting upload URL...'
            upload_url = self.api.get_upload_url()['uploadUrl']

            self.upload_status = 'Uploading...'
            self.api.upload_snapshot(upload_url, jpeg_bytes)

            timestamp = captured_at.strftime('%Y-%m-%dT%H:%M:%S.') + f"{captured_at.microsecond // 1000:03d}Z"
            self.api.update_snapshot_meta(timestamp)

        except (OSError, TrackerApiError, requests.RequestException) as e:
            self.upload_status = 'Upload failed'
            print(f"Capture error: {e}")
            return False

        self.last_capture_time = captured_at
        self.upload_status = 'Uploaded successfully'
        print(f"Captured {len(jpeg_bytes)} bytes at {captured_at.astimezone():%I:%M:%S %p}")

        # The upload already succeeded; a stale preview is not a capture failure
        try:
            self.refresh()
        except (TrackerApiError, requests.RequestException) as e:
            print(f"Warning: could not refresh snapshot metadata: {e}")
        return True

    def start(self, interval_seconds: int = DEFAULT_INTERVAL_SECONDS, max_captures: Optional[int] = None) -> int:
        """Capture immediately, then every ``interval_seconds`` until stopped.

        Returns:
            int: Number of capture attempts made
        """
        self.running = True
        attempts = 0
        print(f"Auto-capturing every {interval_seconds}s (Ctrl+C to stop)")

        while self.running:
            started = self.clock()
            self.capture()
            attempts += 1

            if max_captures is not None and attempts >= max_captures:
                break

            remaining = interval_seconds - (self.clock() - started)
            if remaining > 0:
                print(f"Next capture in {int(remaining)}s")
                self.sleep(remaining)

        self.running = False
        return attempts

    def stop(self):
        self.running = False

    def delete(self) -> dict:
        result = self.api.delete_snapshot()
        self.current_meta = {'exists': False, 'timestamp': None, 'url': None}
        return result

    def close(self):
        self.stop()
        self.current_meta = None
        self.last_capture_time = None
        self.upload_status = 'Idle'


def describe_meta(meta: dict) -> str:
    if not meta or not meta.get('exists'):
        return 'No snapshot uploaded yet'
    return (
        f"Snapshot: {meta['url']}\n"
        f"  Taken: {meta.get('timestamp')}\n"
        f"  Size: {meta.get('size')} bytes"
    )


def main(argv=None):
    parser = argparse.ArgumentParser(description='Upload camera snapshots of bp')
    parser.add_argument(
        'command',
        choices=['capture', 'auto', 'status', 'delete'],
        help='What to do'
    )
    parser.add_argument(
        'source',
        nargs='?',
        type=str,
        help='Image file the camera tool writes frames to (capture/auto)'
    )
    parser.add_argument(
        '--interval', '-i',
        type=int,
        default=DEFAULT_INTERVAL_SECONDS,
        help=f'Seconds between automatic captures (default: {DEFAULT_INTERVAL_SECONDS})'
    )
    parser.add_argument(
        '--yes', '-y',
        action='store_true',
        help='Skip the confirmation prompt for delete'
    )
    args = parser.parse_args(argv)

    if args.command in ('capture', 'auto') and not args.source:
        parser.error(f'{args.command} requires a source image path')
    if args.interval < 1:
        parser.error('--interval must be at least 1 second')

    source = Path(args.source).expanduser().resolve() if args.source else None

    try:
        capturer = SnapshotCapture(TrackerApi(), source)
    except ValueError as e:
        print(f"Error: {e}")
        return 1

    try:
        if args.command == 'capture':
            return 0 if capturer.capture() else 1

        if args.command == 'auto':
            try:
                capturer.start(args.interval)
            except KeyboardInterrupt:
                capturer.stop()
                print('\nAuto-capture stopped')
            return 0

        if args.command == 'delete':
            if not args.yes:
                answer = input('Delete the current snapshot? This removes it from the public site. [y/N] ')
                if answer.strip().lower() not in ('y', 'yes'):
                    print('Cancelled')
                    return 1
            capturer.delete()
            print('Snapshot deleted')
            return 0

        print(describe_meta(capturer.refresh()))
        return 0

    except (TrackerApiError, ValueError) as e:
        print(f"Error: {e}")
        return 1
    except requests.RequestException as e:
        print(f"Error: could not reach the API: {e}")
        return 1
    finally:
        capturer.close()


if __name__ == '__main__':
    sys.exit(main())
