import json
import os
import logging
from decimal import Decimal

import authorizer
import feeding
import snapshot

logger = logging.getLogger()
logger.setLevel(os.environ.get('LOG_LEVEL', 'INFO'))

# Swap this for a different authorizer to change how protected routes are checked
request_authorizer = authorizer.SharedPasswordAuthorizer()

CORS_HEADERS = {
    'Content-Type': 'application/json',
    'Access-Control-Allow-Origin': '*',
    'Access-Control-Allow-Headers': 'Content-Type, Authorization',
    'Access-Control-Allow-Methods': 'GET, POST, DELETE, OPTIONS'
}


class DecimalEncoder(json.JSONEncoder):
    """DynamoDB returns every number as Decimal."""

    def default(self, obj):
        if isinstance(obj, Decimal):
            return int(obj) if obj % 1 == 0 else float(obj)
        return super(DecimalEncoder, self).default(obj)


def cors_response(status_code, body=None):
    """Return response with CORS headers"""
    return {
        'statusCode': status_code,
        'headers': dict(CORS_HEADERS),
        'body': '' if body is None else json.dumps(body, cls=DecimalEncoder)
    }


def unauthorized_response():
    return cors_response(401, {'error': 'Unauthorized - invalid password'})


def get_method(event):
    """Get the HTTP method for both API Gateway v1 and v2 events."""
    request_context = event.get('requestContext') or {}
    method = event.get('httpMethod') or (request_context.get('http') or {}).get('method') or ''
    return method.upper()


def get_path(event):
    """Get the request path with the deployment stage prefix (e.g. /prod) removed."""
    path = event.get('path') or event.get('rawPath') or ''
    stage = (event.get('requestContext') or {}).get('stage')
    if stage and stage != '$default':
        prefix = f'/{stage}'
        if path == prefix or path.startswith(prefix + '/'):
            path = path[len(prefix):] or '/'
    return path


def route_matches(event, route_key, method, path):
    """Match a route by its HTTP API route key, or by method and path."""
    if event.get('routeKey') == route_key:
        return True
    expected_method, expected_path = route_key.split(' ', 1)
    return method == expected_method and path == expected_path


def is_delete_one_feeding(event, method, path):
    if event.get('routeKey') == 'DELETE /feeding/{id}':
        return True
    return method == 'DELETE' and path.startswith('/feeding/') and path != '/feeding'


def get_feeding_id(event, path):
    """Feeding id from the last path segment, else the {id} path parameter."""
    feeding_id = path.rstrip('/').split('/')[-1] if path.startswith('/feeding/') else ''
    if feeding_id and feeding_id != 'feeding':
        return feeding_id
    return (event.get('pathParameters') or {}).get('id')


def route_request(event, method, path):
    """Dispatch to a handler. Routes are tried in order; the first match wins."""

    # Handle OPTIONS for CORS preflight
    if method == 'OPTIONS':
        return cors_response(200)

    # Route: GET /feeding - Feeding history (public)
    if route_matches(event, 'GET /feeding', method, path):
        return cors_response(200, feeding.get_feedings())

    # Route: POST /feeding - Record a feeding
    if route_matches(event, 'POST /feeding', method, path):
        if not request_authorizer.is_authorized(event):
            return unauthorized_response()
        body = authorizer.parse_json_body(event)
        return cors_response(201, feeding.add_feeding(body))

    # Route: DELETE /feeding/{id} - Undo a single feeding
    if is_delete_one_feeding(event, method, path):
        if not request_authorizer.is_authorized(event):
            return unauthorized_response()
        feeding_id = get_feeding_id(event, path)
        if not feeding_id:
            return cors_response(400, {'error': 'Missing feeding id'})
        return cors_response(200, feeding.delete_feeding(feeding_id))

    # Route: DELETE /feeding - Clear all history
    if route_matches(event, 'DELETE /feeding', method, path):
        if not request_authorizer.is_authorized(event):
            return unauthorized_response()
        return cors_response(200, feeding.clear_feedings())

    # Route: GET /snapshot/upload-url - Presigned URL for the capture client
    if route_matches(event, 'GET /snapshot/upload-url', method, path):
        if not request_authorizer.is_authorized(event):
            return unauthorized_response()
        return cors_response(200, snapshot.get_upload_url())

    # Route: GET /snapshot/meta - Current snapshot info (public)
    if route_matches(event, 'GET /snapshot/meta', method, path):
        return cors_response(200, snapshot.get_snapshot_metadata())

    # Route: DELETE /snapshot - Remove the current snapshot
    if route_matches(event, 'DELETE /snapshot', method, path):
        if not request_authorizer.is_authorized(event):
            return unauthorized_response()
        return cors_response(200, snapshot.delete_snapshot())

    # Route: POST /snapshot/meta - Store the capture timestamp
    if route_matches(event, 'POST /snapshot/meta', method, path):
        if not request_authorizer.is_authorized(event):
            return unauthorized_response()
        timestamp = authorizer.parse_json_body(event).get('timestamp')
        if not timestamp:
            return cors_response(400, {'error': 'Missing timestamp'})
        try:
            return cors_response(200, snapshot.update_snapshot_metadata(timestamp))
        except ValueError as e:
            return cors_response(404, {'error': str(e)})

    # Default: return 404
    return cors_response(404, {'error': 'Not found'})


def lambda_handler(event, context):
    """Main Lambda handler"""
    method = get_method(event)
    path = get_path(event)
    logger.info(f"{method} {path} (routeKey={event.get('routeKey')})")

    try:
        response = route_request(event, method, path)
    except Exception:
        logger.exception(f"Unhandled error for {method} {path}")
        return cors_response(500, {'error': 'Internal server error'})

    if response['statusCode'] == 401:
        logger.warning(f"Rejected unauthorized request: {method} {path}")
    return response
