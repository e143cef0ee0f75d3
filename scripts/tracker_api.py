"""
Feeding Tracker API client

Thin wrapper over the feeding/snapshot HTTP API used by the command-line
tools in this directory.

Requirements:
    pip install requests python-dotenv
"""

import os
from pathlib import Path
from typing import Optional

import requests
from dotenv import load_dotenv

# Load environment variables from .env file
env_path = Path(__file__).parent.parent / '.env'
if env_path.exists():
    load_dotenv(env_path)

API_URL = os.getenv('TRACKER_API_URL', '')
PASSWORD = os.getenv('TRACKER_PASSWORD', '')
REQUEST_TIMEOUT = 30


class TrackerApiError(Exception):
    """Raised when the API answers with a non-success status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class TrackerApi:
    def __init__(self, base_url: Optional[str] = None, password: Optional[str] = None,
                 session: Optional[requests.Session] = None):
        self.base_url = (base_url if base_url is not None else API_URL).rstrip('/')
        self.password = password if password is not None else PASSWORD
        self.session = session or requests.Session()

        if not self.base_url:
            raise ValueError('TRACKER_API_URL is not set')

    def _request(self, method: str, path: str, protected: bool = False, json_body: Optional[dict] = None):
        headers = {'Content-Type': 'application/json'}
        if protected:
            if not self.password:
                raise ValueError('TRACKER_PASSWORD is not set')
            headers['Authorization'] = f'Bearer {self.password}'

        response = self.session.request(
            method,
            f'{self.base_url}{path}',
            headers=headers,
            json=json_body,
            timeout=REQUEST_TIMEOUT
        )

        if not response.ok:
            try:
                message = response.json().get('error', response.reason)
            except ValueError:
                message = response.reason
            raise TrackerApiError(f'{method} {path} failed: {message}', response.status_code)

        if not response.content:
            return None
        return response.json()

    # Feeding history

    def list_feedings(self) -> list:
        return self._request('GET', '/feeding')

    def add_feeding(self, feeding_id: int, timestamp: str) -> dict:
        return self._request('POST', '/feeding', protected=True,
                             json_body={'id': feeding_id, 'timestamp': timestamp})

    def delete_feeding(self, feeding_id) -> dict:
        return self._request('DELETE', f'/feeding/{feeding_id}', protected=True)

    def clear_feedings(self) -> dict:
        return self._request('DELETE', '/feeding', protected=True)

    # Snapshot

    def get_upload_url(self) -> dict:
        return self._request('GET', '/snapshot/upload-url', protected=True)

    def get_snapshot_meta(self) -> dict:
        return self._request('GET', '/snapshot/meta')

    def update_snapshot_meta(self, timestamp: str) -> dict:
        return self._request('POST', '/snapshot/meta', protected=True, json_body={'timestamp': timestamp})

    def delete_snapshot(self) -> dict:
        return self._request('DELETE', '/snapshot', protected=True)

    def upload_snapshot(self, upload_url: str, jpeg_bytes: bytes) -> None:
        """PUT image bytes straight to S3 through a presigned URL."""
        response = self.session.put(
            upload_url,
            data=jpeg_bytes,
            headers={'Content-Type': 'image/jpeg'},
            timeout=REQUEST_TIMEOUT
        )
        if not response.ok:
            raise TrackerApiError('Upload failed', response.status_code)
