"""Tests for the forwarding engine and the shared docbox client."""

from __future__ import annotations

from typing import Any

import httpx
import pytest
from starlette.datastructures import Headers

from docbox_gateway.client import DocboxClient
from docbox_gateway.errors import DocboxTimeoutError, DocboxUnavailableError
from docbox_gateway.forwarding import (
    FORWARD_REQUEST_HEADERS,
    build_forward_headers,
    relay_response,
)

DOCBOX_URL = 'http://internal-docbox:9000'


def _client(handler) -> DocboxClient:
    return DocboxClient(DOCBOX_URL, transport=httpx.MockTransport(handler))


def _streamed(status: int, body: bytes = b'', headers=None) -> httpx.Response:
    """A docbox response whose body has not been read yet, like a real one."""
    return httpx.Response(status, headers=headers, stream=httpx.ByteStream(body))


# =====================================================================
# Outbound header allow-list
# =====================================================================


class TestBuildForwardHeaders:

    def test_only_allowed_caller_headers_forwarded(self, tenant):
        incoming = Headers({
            'Accept': 'application/json',
            'Content-Type': 'multipart/form-data; boundary=x',
            'Content-Length': '42',
            'Authorization': 'Bearer caller-token',
            'Cookie': 'session=abc',
            'User-Agent': 'test/1.0',
            'Host': 'gateway.example.com',
        })
        headers = build_forward_headers(incoming, tenant, None)
        assert headers == {
            'accept': 'application/json',
            'content-type': 'multipart/form-data; boundary=x',
            'content-length': '42',
            'x-tenant-env': 'Development',
            'x-tenant-id': 'tenant-1',
        }

    def test_missing_caller_headers_omitted(self, tenant):
        headers = build_forward_headers(Headers({}), tenant, None)
        assert set(headers) == {'x-tenant-env', 'x-tenant-id'}

    @pytest.mark.parametrize('header', [
        'X-Tenant-Id',
        'X-Tenant-Env',
        'X-User-Id',
        'X-User-Name',
        'X-User-Image-Id',
    ])
    def test_caller_cannot_spoof_identity(self, tenant, header):
        incoming = Headers({header: 'spoofed'})
        headers = build_forward_headers(incoming, tenant, None)
        assert 'spoofed' not in headers.values()

    def test_user_headers_added(self, tenant, user):
        headers = build_forward_headers(Headers({}), tenant, user)
        assert headers['x-user-id'] == 'user-1'
        assert headers['x-user-name'] == 'Jane%20Doe'
        assert headers['x-user-image-id'] == 'img-1'

    def test_repeated_calls_identical(self, tenant, user):
        incoming = Headers({'Accept': '*/*'})
        first = build_forward_headers(incoming, tenant, user)
        second = build_forward_headers(incoming, tenant, user)
        assert first == second
        assert first is not second

    def test_allow_list_contents(self):
        assert FORWARD_REQUEST_HEADERS == ('accept', 'content-type', 'content-length')


# =====================================================================
# DocboxClient
# =====================================================================


class TestDocboxClient:

    @pytest.mark.asyncio
    async def test_send_uses_base_url_and_default_headers(self):
        seen: dict[str, Any] = {}

        async def handler(request: httpx.Request) -> httpx.Response:
            seen['url'] = str(request.url)
            seen['headers'] = dict(request.headers)
            return httpx.Response(200, content=b'ok')

        client = _client(handler)
        response = await client.send(
            'GET',
            '/box/abc/file',
            headers={'x-tenant-id': 't1'},
            params=[('q', '1'), ('q', '2')],
        )
        await response.aclose()
        await client.aclose()

        assert seen['url'] == f'{DOCBOX_URL}/box/abc/file?q=1&q=2'
        assert seen['headers']['x-tenant-id'] == 't1'
        assert seen['headers']['accept'] == 'application/json'
        assert seen['headers']['content-type'] == 'application/json'

    @pytest.mark.asyncio
    async def test_error_statuses_do_not_raise(self):
        async def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, json={'message': 'boom'})

        client = _client(handler)
        response = await client.send('GET', '/box/abc', headers={})
        assert response.status_code == 500
        await response.aclose()
        await client.aclose()

    @pytest.mark.asyncio
    async def test_streamed_body_and_close(self):
        async def handler(request: httpx.Request) -> httpx.Response:
            return _streamed(200, b'chunked-body')

        client = _client(handler)
        response = await client.send('GET', '/box/abc/file/1/raw', headers={})
        body = b''.join([chunk async for chunk in client.iter_raw(response)])

        assert body == b'chunked-body'
        assert response.is_closed
        await client.aclose()

    @pytest.mark.asyncio
    async def test_async_iterable_request_content(self):
        seen: dict[str, Any] = {}

        async def handler(request: httpx.Request) -> httpx.Response:
            seen['body'] = request.content
            return httpx.Response(201)

        async def body():
            yield b'part-1,'
            yield b'part-2'

        client = _client(handler)
        response = await client.send('PUT', '/box/abc/file/1', headers={}, content=body())
        await response.aclose()
        await client.aclose()

        assert seen['body'] == b'part-1,part-2'

    @pytest.mark.asyncio
    async def test_connect_error_sanitized(self):
        async def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError(f'connect to {DOCBOX_URL}/box/1/x failed', request=request)

        client = _client(handler)
        with pytest.raises(DocboxUnavailableError) as exc_info:
            await client.send('GET', '/box/1/x', headers={})
        await client.aclose()

        assert exc_info.value.detail['message'] == 'connect to /box/1/x failed'

    @pytest.mark.asyncio
    async def test_timeout_sanitized(self):
        async def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout('timed out', request=request)

        client = _client(handler)
        with pytest.raises(DocboxTimeoutError):
            await client.send('GET', '/box/1/x', headers={})
        await client.aclose()

    @pytest.mark.asyncio
    async def test_aclose_only_closes_owned_client(self):
        http = httpx.AsyncClient(base_url=DOCBOX_URL)
        client = DocboxClient(DOCBOX_URL, http_client=http)
        await client.aclose()
        assert not http.is_closed
        await http.aclose()

        owned = DocboxClient(DOCBOX_URL)
        await owned.aclose()
        assert owned.is_closed

    def test_requires_base_url(self):
        with pytest.raises(ValueError):
            DocboxClient('')


# =====================================================================
# Response relay
# =====================================================================


class TestRelayResponse:

    @pytest.mark.asyncio
    async def test_status_and_raw_headers_copied(self):
        async def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                404,
                headers=[
                    ('X-Custom', 'v'),
                    ('Set-Cookie', 'a=1'),
                    ('Set-Cookie', 'b=2'),
                ],
                content=b'missing',
            )

        client = _client(handler)
        upstream = await client.send('GET', '/box/abc/file/1', headers={})
        response = relay_response(client, upstream)

        assert response.status_code == 404
        assert (b'x-custom', b'v') in response.raw_headers
        cookies = [v for k, v in response.raw_headers if k == b'set-cookie']
        assert cookies == [b'a=1', b'b=2']
        assert all(k == k.lower() for k, _ in response.raw_headers)

        await upstream.aclose()
        await client.aclose()
