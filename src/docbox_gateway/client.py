"""Shared async client for docbox calls.

One DocboxClient is built per gateway at setup time and shared by every
request. It never raises on upstream status codes (4xx/5xx responses are
relayed to the caller as data); transport failures go through the
sanitizing error handler from ``errors``.
"""

from __future__ import annotations

from typing import Any, AsyncIterable, AsyncIterator, Sequence

import httpx

from .errors import create_handle_client_error
from .options import DEFAULT_CLIENT_HEADERS, GatewayOptions

RequestContent = bytes | AsyncIterable[bytes] | None


class DocboxClient:
    """Streaming httpx wrapper bound to a single docbox base URL.

    Usage:
        client = DocboxClient.from_options(options)
        response = await client.send("GET", "/box/abc/file/1", headers=headers)
        async for chunk in client.iter_raw(response):
            ...
        await client.aclose()
    """

    def __init__(
        self,
        docbox_base_url: str,
        *,
        http_client: httpx.AsyncClient | None = None,
        **client_kwargs: Any,
    ) -> None:
        if not docbox_base_url:
            raise ValueError("docbox_base_url is required")

        self._docbox_base_url = docbox_base_url
        self._handle_error = create_handle_client_error(docbox_base_url)
        self._owns_client = http_client is None
        if http_client is None:
            client_kwargs.setdefault("base_url", docbox_base_url)
            client_kwargs.setdefault("headers", dict(DEFAULT_CLIENT_HEADERS))
            http_client = httpx.AsyncClient(**client_kwargs)
        self._client = http_client

    @classmethod
    def from_options(cls, options: GatewayOptions) -> DocboxClient:
        return cls(options.docbox_base_url, **options.client_kwargs())

    @property
    def docbox_base_url(self) -> str:
        return self._docbox_base_url

    @property
    def is_closed(self) -> bool:
        return self._client.is_closed

    async def send(
        self,
        method: str,
        url: str,
        *,
        headers: dict[str, str],
        content: RequestContent = None,
        params: Sequence[tuple[str, str]] | None = None,
    ) -> httpx.Response:
        """Send a request to docbox and return the unread, streaming response.

        The caller owns the response and must close it (``iter_raw`` does so
        once the body is exhausted).

        Raises:
            DocboxGatewayError: On any transport failure, with the docbox
                URL removed from the message.
        """
        request = self._client.build_request(
            method,
            url,
            headers=headers,
            content=content,
            params=params,
        )
        try:
            response = await self._client.send(request, stream=True)
        except httpx.HTTPError as exc:
            self._handle_error(exc)

        return response

    async def iter_raw(self, response: httpx.Response) -> AsyncIterator[bytes]:
        """Yield the raw (still encoded) body of a streamed docbox response.

        Chunks are passed on as they arrive. The response is closed when the
        body is exhausted, on failure, or when the consumer stops early.
        """
        try:
            async for chunk in response.aiter_raw():
                yield chunk
        except httpx.HTTPError as exc:
            self._handle_error(exc)
        finally:
            await response.aclose()

    async def aclose(self) -> None:
        """Close the underlying httpx client if this wrapper created it."""
        if self._owns_client and not self._client.is_closed:
            await self._client.aclose()
