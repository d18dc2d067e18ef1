"""Asynchronous driver.

AsyncDriver mirrors SyncDriver. The only await points are fetching and
reading the next body chunk; each chunk's events are scanned synchronously
before the next one is requested. Concurrent run() calls are safe because
each one builds its own scanner.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterable, Callable
from datetime import datetime

from feedscan.common.exceptions import StreamError
from feedscan.common.param_models import ScanConfig
from feedscan.common.profiles import DEFAULT_SOURCE_URL, get_profile
from feedscan.common.request_manager import AsyncRequestManager
from feedscan.common.tokenizer import (
    Chunk,
    aiter_stream_events,
    iter_document_events,
)
from feedscan.data_types import ScanResult, ScrapedRecord
from feedscan.driver.scanner import StreamScanner, build_result
from feedscan.driver.sync_driver import join_chunks

logger = logging.getLogger(__name__)


async def _collect(chunks: AsyncIterable[Chunk], source: str) -> list[Chunk]:
    try:
        return [chunk async for chunk in chunks]
    except OSError as e:
        raise StreamError(f"Event source failed: {e}", source) from e


class AsyncDriver:
    """Asynchronous driver for scanning feed pages.

    Example usage::

        driver = AsyncDriver(ScanConfig(variant="headlines"))
        result = await driver.run("https://boyneramblers.com")
    """

    def __init__(
        self,
        config: ScanConfig | None = None,
        request_manager: AsyncRequestManager | None = None,
        on_record: Callable[[ScrapedRecord], None] | None = None,
    ) -> None:
        """Initialize the driver.

        Args:
            config: Scan options. Defaults to ScanConfig().
            request_manager: Optional AsyncRequestManager to fetch with. If
                None, one is created (and closed) per run().
            on_record: Optional callback invoked for each emitted record.
        """
        self.config = config or ScanConfig()
        self.profile = get_profile(self.config.variant)
        self.request_manager = request_manager
        self.on_record = on_record

    async def run(self, url: str = DEFAULT_SOURCE_URL) -> ScanResult:
        """Fetch url and scan it.

        Raises:
            FetchFailed: On a non-2xx response. No records are produced.
            TransportError: If the body stream breaks; no result is returned.
        """
        if self.request_manager is not None:
            return await self._run(self.request_manager, url)
        async with AsyncRequestManager(timeout=self.config.timeout) as manager:
            return await self._run(manager, url)

    async def _run(self, manager: AsyncRequestManager, url: str) -> ScanResult:
        async with manager.stream_document(url) as document:
            result = await self.scan_chunks(
                document.chunks,
                source=url,
                base_url=self.config.base_url or document.url,
                fetched_at=document.fetched_at,
            )
        logger.info(
            f"Scanned {url}: {len(result.headlines)} headlines, "
            f"{len(result.recap_headlines)} recaps, "
            f"{len(result.page_links)} page links",
            extra={"url": url, "variant": self.profile.name},
        )
        return result

    async def scan_chunks(
        self,
        chunks: AsyncIterable[Chunk],
        source: str = "",
        base_url: str | None = None,
        encoding: str | None = None,
        fetched_at: datetime | None = None,
    ) -> ScanResult:
        """Scan an async chunk sequence as it arrives."""
        scanner = StreamScanner(
            self.profile,
            base_url=base_url or self.config.base_url,
            strict_class_tokens=self.config.strict_class_tokens,
            request_url=source,
            on_record=self.on_record,
        )
        if self.config.use_dom_fallback:
            document = join_chunks(await _collect(chunks, source), source)
            records = scanner.scan_events(
                iter_document_events(document, encoding)
            )
        else:
            records = await scanner.ascan_events(
                aiter_stream_events(chunks, encoding)
            )
        return build_result(self.profile, records, source, fetched_at)


async def scrape_articles(
    url: str = DEFAULT_SOURCE_URL, timeout: float | None = None
) -> ScanResult:
    """Fetch and scan a feed page with the articles variant."""
    return await AsyncDriver(ScanConfig(timeout=timeout)).run(url)


async def scrape_headlines(
    base_url: str, timeout: float | None = None
) -> ScanResult:
    """Fetch and scan a feed page with the headlines variant."""
    config = ScanConfig(variant="headlines", timeout=timeout)
    return await AsyncDriver(config).run(base_url)
