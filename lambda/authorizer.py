"""
Authorization Module

Protected routes are guarded by a single shared password. The caller sends it
either in the Authorization header (bare or "Bearer <password>") or as a
"password" field in the JSON request body.

The router only depends on ``is_authorized(event)``, so the shared password
check can be replaced by a real credential mechanism without touching routes.
"""

import os
import json
import base64

FEEDING_PASSWORD = os.environ.get('FEEDING_PASSWORD', 'business school')


def get_header(event, name):
    """Get a request header value, ignoring header name case."""
    headers = event.get('headers') or {}
    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() == wanted:
            return value
    return None


def parse_json_body(event):
    """Decode the JSON request body.

    Returns an empty dict when the body is missing, is not valid JSON, or is
    not a JSON object.
    """
    raw = event.get('body')
    if not raw:
        return {}
    if event.get('isBase64Encoded'):
        try:
            raw = base64.b64decode(raw).decode('utf-8')
        except (ValueError, UnicodeDecodeError):
            return {}
    try:
        body = json.loads(raw)
    except (TypeError, ValueError):
        return {}
    return body if isinstance(body, dict) else {}


def get_credentials_from_event(event):
    """Collect every credential the request supplies.

    Header credential first, then the body "password" field. Either channel
    may be absent.
    """
    credentials = []

    auth_header = get_header(event, 'Authorization')
    if auth_header:
        if auth_header.startswith('Bearer '):
            auth_header = auth_header[len('Bearer '):]
        credentials.append(auth_header)

    password = parse_json_body(event).get('password')
    if isinstance(password, str):
        credentials.append(password)

    return credentials


class SharedPasswordAuthorizer:
    """Checks requests against one configured shared password."""

    def __init__(self, password=None):
        self.password = password if password is not None else FEEDING_PASSWORD

    def is_authorized(self, event):
        return any(credential == self.password for credential in get_credentials_from_event(event))
