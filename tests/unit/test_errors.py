"""Tests for docbox error sanitization."""

from __future__ import annotations

import httpx
import pytest

from docbox_gateway.errors import (
    DocboxGatewayError,
    DocboxTimeoutError,
    DocboxUnavailableError,
    GatewayConfigError,
    create_handle_client_error,
    sanitize_error,
)

DOCBOX_URL = 'http://internal-docbox:9000'


def _status_error(status: int, body) -> httpx.HTTPStatusError:
    request = httpx.Request('GET', f'{DOCBOX_URL}/box/1/file')
    response = httpx.Response(status, json=body, request=request)
    return httpx.HTTPStatusError(
        f"Client error '{status}' for url '{DOCBOX_URL}/box/1/file'",
        request=request,
        response=response,
    )


# =====================================================================
# URL scrubbing
# =====================================================================


class TestUrlRemoval:

    def test_url_removed_from_exception_message(self):
        error = httpx.ConnectError(f'connect to {DOCBOX_URL}/box/1/x failed')
        sanitized = sanitize_error(error, DOCBOX_URL)
        assert sanitized is error
        assert str(sanitized) == 'connect to /box/1/x failed'

    def test_every_occurrence_removed(self):
        error = RuntimeError(f'{DOCBOX_URL}/a then {DOCBOX_URL}/b')
        assert str(sanitize_error(error, DOCBOX_URL)) == '/a then /b'

    def test_plain_string_error(self):
        assert sanitize_error(f'failed at {DOCBOX_URL}/x', DOCBOX_URL) == 'failed at /x'

    def test_match_is_case_sensitive(self):
        message = 'connect to HTTP://INTERNAL-DOCBOX:9000/box failed'
        error = httpx.ConnectError(message)
        assert str(sanitize_error(error, DOCBOX_URL)) == message

    def test_message_without_url_untouched(self):
        error = httpx.ConnectError('connection refused')
        assert str(sanitize_error(error, DOCBOX_URL)) == 'connection refused'

    def test_regex_characters_in_url_are_literal(self):
        url = 'http://docbox.internal:9000'
        error = RuntimeError('GET http://docboxXinternal:9000/x and http://docbox.internal:9000/y')
        assert str(sanitize_error(error, url)) == 'GET http://docboxXinternal:9000/x and /y'


# =====================================================================
# docbox error bodies
# =====================================================================


class TestResponseMessages:

    def test_message_from_body(self):
        error = _status_error(404, {'message': 'not found'})
        assert str(sanitize_error(error, DOCBOX_URL)) == 'not found'

    def test_reason_takes_precedence(self):
        error = _status_error(404, {'message': 'not found', 'reason': 'missing file'})
        assert str(sanitize_error(error, DOCBOX_URL)) == 'missing file'

    def test_reason_only(self):
        error = _status_error(400, {'reason': 'bad scope'})
        assert str(sanitize_error(error, DOCBOX_URL)) == 'bad scope'

    def test_body_without_fields_keeps_message_but_scrubs_url(self):
        error = _status_error(500, {'error': 'boom'})
        assert str(sanitize_error(error, DOCBOX_URL)) == "Client error '500' for url '/box/1/file'"

    def test_non_object_body_ignored(self):
        error = _status_error(500, ['not', 'an', 'object'])
        assert DOCBOX_URL not in str(sanitize_error(error, DOCBOX_URL))

    def test_upstream_message_is_also_scrubbed(self):
        error = _status_error(502, {'message': f'upstream {DOCBOX_URL}/storage down'})
        assert str(sanitize_error(error, DOCBOX_URL)) == 'upstream /storage down'


# =====================================================================
# Handler always raises a gateway error
# =====================================================================


class TestHandleClientError:

    def test_connect_error_becomes_unavailable(self):
        handle = create_handle_client_error(DOCBOX_URL)
        with pytest.raises(DocboxUnavailableError) as exc_info:
            handle(httpx.ConnectError(f'connect to {DOCBOX_URL}/box/1/x failed'))

        error = exc_info.value
        assert error.status_code == 502
        assert error.detail == {
            'code': 'DOCBOX_UNAVAILABLE',
            'message': 'connect to /box/1/x failed',
        }
        assert DOCBOX_URL not in str(error.__cause__)

    def test_timeout_becomes_504(self):
        handle = create_handle_client_error(DOCBOX_URL)
        with pytest.raises(DocboxTimeoutError) as exc_info:
            handle(httpx.ReadTimeout(f'read from {DOCBOX_URL} timed out'))
        assert exc_info.value.status_code == 504
        assert exc_info.value.detail['code'] == 'DOCBOX_TIMEOUT'
        assert exc_info.value.detail['message'] == 'read from  timed out'

    def test_status_error_becomes_generic_gateway_error(self):
        handle = create_handle_client_error(DOCBOX_URL)
        with pytest.raises(DocboxGatewayError) as exc_info:
            handle(_status_error(404, {'message': 'not found'}))
        assert type(exc_info.value) is DocboxGatewayError
        assert exc_info.value.status_code == 502
        assert exc_info.value.detail == {'code': 'DOCBOX_ERROR', 'message': 'not found'}

    def test_empty_message_gets_fallback(self):
        handle = create_handle_client_error(DOCBOX_URL)
        with pytest.raises(DocboxUnavailableError) as exc_info:
            handle(httpx.ConnectError(''))
        assert exc_info.value.message == 'docbox request failed'


class TestGatewayConfigError:

    def test_lists_every_error(self):
        error = GatewayConfigError(['a is required', 'b must be callable'])
        assert error.errors == ['a is required', 'b must be callable']
        assert 'a is required' in str(error)
        assert 'b must be callable' in str(error)
        assert isinstance(error, ValueError)
