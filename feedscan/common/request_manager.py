"""Request managers for fetching feed pages as text streams.

This module provides SyncRequestManager and AsyncRequestManager classes that
encapsulate the httpx client and turn a GET into a DocumentStream: the final
URL, the status and a lazy iterator over decoded text chunks.

The request manager is responsible for:
- Maintaining the HTTP client (httpx.Client or httpx.AsyncClient)
- Rejecting non-2xx responses before any body is read (FetchFailed)
- Translating transport failures, at connect time or mid-body, into
  TransportError / FetchTimeout
"""

from __future__ import annotations

import logging
import ssl
from collections.abc import AsyncIterator, Iterator
from contextlib import asynccontextmanager, contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Generic, TypeVar

import httpx

from feedscan.common.exceptions import (
    FetchFailed,
    FetchTimeout,
    TransportError,
)

logger = logging.getLogger(__name__)

ChunksT = TypeVar("ChunksT")


@dataclass(frozen=True)
class DocumentStream(Generic[ChunksT]):
    """An open response body.

    Attributes:
        url: Final URL after redirects.
        status_code: HTTP status (always 2xx).
        fetched_at: When the response headers arrived (UTC).
        chunks: Lazy iterator over decoded text chunks.
    """

    url: str
    status_code: int
    fetched_at: datetime
    chunks: ChunksT


def _translate(url: str, timeout: float | None, e: httpx.TransportError) -> TransportError:
    if isinstance(e, httpx.TimeoutException):
        return FetchTimeout(url, timeout, e)
    return TransportError(url, e)


def _check_status(response: httpx.Response, url: str) -> None:
    if not response.is_success:
        logger.error(
            f"HTTP {response.status_code} from {url}",
            extra={"url": url, "status_code": response.status_code},
        )
        raise FetchFailed(response.status_code, url)


class SyncRequestManager:
    """Manages HTTP requests for the synchronous driver.

    Example::

        with SyncRequestManager(timeout=30.0) as manager:
            with manager.stream_document(url) as document:
                for chunk in document.chunks:
                    ...
    """

    def __init__(
        self,
        ssl_context: ssl.SSLContext | None = None,
        timeout: float | None = None,
    ) -> None:
        """Initialize the request manager.

        Args:
            ssl_context: Optional SSL context for HTTPS connections.
            timeout: Request timeout in seconds. None means no timeout (default).
        """
        self.timeout = timeout
        if ssl_context:
            self._client = httpx.Client(
                verify=ssl_context, timeout=timeout, follow_redirects=True
            )
        else:
            self._client = httpx.Client(timeout=timeout, follow_redirects=True)

    def close(self) -> None:
        """Close the HTTP client and release resources."""
        self._client.close()

    def __enter__(self) -> SyncRequestManager:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    @contextmanager
    def stream_document(self, url: str) -> Iterator[DocumentStream[Iterator[str]]]:
        """Open a GET request and yield its body as a text stream.

        Raises:
            FetchFailed: If the status is not 2xx. Nothing is read.
            FetchTimeout: If connecting or reading times out.
            TransportError: If the connection fails or breaks mid-body.
        """
        logger.info(f"Fetching {url}")
        request = self._client.build_request("GET", url)
        try:
            response = self._client.send(request, stream=True)
        except httpx.TransportError as e:
            raise _translate(url, self.timeout, e) from e

        try:
            _check_status(response, url)
            yield DocumentStream(
                url=str(response.url),
                status_code=response.status_code,
                fetched_at=datetime.now(timezone.utc),
                chunks=self._iter_text(response, url),
            )
        finally:
            response.close()

    def _iter_text(self, response: httpx.Response, url: str) -> Iterator[str]:
        try:
            yield from response.iter_text()
        except httpx.TransportError as e:
            logger.error(f"Stream from {url} interrupted: {e}")
            raise _translate(url, self.timeout, e) from e


class AsyncRequestManager:
    """Manages HTTP requests for the async driver.

    Example::

        async with AsyncRequestManager(timeout=30.0) as manager:
            async with manager.stream_document(url) as document:
                async for chunk in document.chunks:
                    ...
    """

    def __init__(
        self,
        ssl_context: ssl.SSLContext | None = None,
        timeout: float | None = None,
    ) -> None:
        """Initialize the request manager.

        Args:
            ssl_context: Optional SSL context for HTTPS connections.
            timeout: Request timeout in seconds. None means no timeout (default).
        """
        self.timeout = timeout
        if ssl_context:
            self._client = httpx.AsyncClient(
                verify=ssl_context, timeout=timeout, follow_redirects=True
            )
        else:
            self._client = httpx.AsyncClient(
                timeout=timeout, follow_redirects=True
            )

    async def close(self) -> None:
        """Close the HTTP client and release resources."""
        await self._client.aclose()

    async def __aenter__(self) -> AsyncRequestManager:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    @asynccontextmanager
    async def stream_document(
        self, url: str
    ) -> AsyncIterator[DocumentStream[AsyncIterator[str]]]:
        """Open a GET request and yield its body as an async text stream.

        Raises:
            FetchFailed: If the status is not 2xx. Nothing is read.
            FetchTimeout: If connecting or reading times out.
            TransportError: If the connection fails or breaks mid-body.
        """
        logger.info(f"Fetching {url}")
        request = self._client.build_request("GET", url)
        try:
            response = await self._client.send(request, stream=True)
        except httpx.TransportError as e:
            raise _translate(url, self.timeout, e) from e

        try:
            _check_status(response, url)
            yield DocumentStream(
                url=str(response.url),
                status_code=response.status_code,
                fetched_at=datetime.now(timezone.utc),
                chunks=self._aiter_text(response, url),
            )
        finally:
            await response.aclose()

    async def _aiter_text(
        self, response: httpx.Response, url: str
    ) -> AsyncIterator[str]:
        try:
            async for chunk in response.aiter_text():
                yield chunk
        except httpx.TransportError as e:
            logger.error(f"Stream from {url} interrupted: {e}")
            raise _translate(url, self.timeout, e) from e
