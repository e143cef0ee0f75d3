"""
Unit tests for tracker_api.py - HTTP client
"""

import pytest

from fake_responses import make_response


class TestTrackerApi:
    """Tests for TrackerApi"""

    def test_reads_url_and_password_from_environment(self, mock_session):
        from tracker_api import TrackerApi

        api = TrackerApi(session=mock_session)

        assert api.base_url == 'https://api.test/prod'
        assert api.password == 'test-password'

    def test_requires_base_url(self, mock_session):
        from tracker_api import TrackerApi

        with pytest.raises(ValueError, match='TRACKER_API_URL'):
            TrackerApi(base_url='', session=mock_session)

    def test_public_request_has_no_authorization(self, mock_session):
        from tracker_api import TrackerApi

        mock_session.request.return_value = make_response(200, [{'timestamp': 't', 'id': 1}])
        api = TrackerApi(session=mock_session)

        assert api.list_feedings() == [{'timestamp': 't', 'id': 1}]

        args, kwargs = mock_session.request.call_args
        assert args == ('GET', 'https://api.test/prod/feeding')
        assert 'Authorization' not in kwargs['headers']

    def test_protected_request_sends_bearer_password(self, mock_session):
        from tracker_api import TrackerApi

        mock_session.request.return_value = make_response(201, {'timestamp': 't', 'id': 1})
        api = TrackerApi(session=mock_session)

        api.add_feeding(1, 't')

        args, kwargs = mock_session.request.call_args
        assert args == ('POST', 'https://api.test/prod/feeding')
        assert kwargs['headers']['Authorization'] == 'Bearer test-password'
        assert kwargs['json'] == {'id': 1, 'timestamp': 't'}

    def test_protected_request_requires_password(self, mock_session):
        from tracker_api import TrackerApi

        api = TrackerApi(password='', session=mock_session)

        with pytest.raises(ValueError, match='TRACKER_PASSWORD'):
            api.clear_feedings()
        mock_session.request.assert_not_called()

    def test_error_status_raises_with_api_message(self, mock_session):
        from tracker_api import TrackerApi, TrackerApiError

        mock_session.request.return_value = make_response(
            401, {'error': 'Unauthorized - invalid password'}, reason='Unauthorized'
        )
        api = TrackerApi(session=mock_session)

        with pytest.raises(TrackerApiError, match='Unauthorized - invalid password') as exc_info:
            api.delete_feeding(1700000000000)
        assert exc_info.value.status_code == 401

    def test_error_without_json_body_uses_reason(self, mock_session):
        from tracker_api import TrackerApi, TrackerApiError

        mock_session.request.return_value = make_response(502, ValueError('no json'), reason='Bad Gateway')
        api = TrackerApi(session=mock_session)

        with pytest.raises(TrackerApiError, match='Bad Gateway'):
            api.get_snapshot_meta()

    def test_upload_snapshot_puts_jpeg(self, mock_session):
        from tracker_api import TrackerApi

        api = TrackerApi(session=mock_session)
        api.upload_snapshot('https://s3/presigned', b'jpeg')

        args, kwargs = mock_session.put.call_args
        assert args == ('https://s3/presigned',)
        assert kwargs['data'] == b'jpeg'
        assert kwargs['headers'] == {'Content-Type': 'image/jpeg'}

    def test_upload_failure_raises(self, mock_session):
        from tracker_api import TrackerApi, TrackerApiError

        mock_session.put.return_value = make_response(403, reason='Forbidden')
        api = TrackerApi(session=mock_session)

        with pytest.raises(TrackerApiError):
            api.upload_snapshot('https://s3/presigned', b'jpeg')
