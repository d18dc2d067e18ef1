"""Synchronous driver.

SyncDriver ties the pieces together for one document at a time: fetch (or
take caller-supplied chunks), tokenize, scan, aggregate. Every call builds a
fresh StreamScanner, so a driver can be reused across documents.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from datetime import datetime

from feedscan.common.exceptions import StreamError
from feedscan.common.param_models import ScanConfig
from feedscan.common.profiles import DEFAULT_SOURCE_URL, get_profile
from feedscan.common.request_manager import SyncRequestManager
from feedscan.common.tokenizer import (
    Chunk,
    iter_document_events,
    iter_stream_events,
)
from feedscan.data_types import ScanResult, ScrapedRecord
from feedscan.driver.scanner import StreamScanner, build_result

logger = logging.getLogger(__name__)


def join_chunks(chunks: Iterable[Chunk], source: str = "") -> Chunk:
    """Buffer a chunk sequence into one document for the DOM fallback.

    Raises:
        StreamError: If reading the chunks fails with an OSError.
    """
    try:
        parts = list(chunks)
    except OSError as e:
        raise StreamError(f"Event source failed: {e}", source) from e
    if parts and all(isinstance(part, bytes) for part in parts):
        return b"".join(parts)  # type: ignore[arg-type]
    return "".join(
        part.decode() if isinstance(part, bytes) else part for part in parts
    )


class SyncDriver:
    """Synchronous driver for scanning feed pages.

    Example usage::

        driver = SyncDriver(ScanConfig(variant="articles"))
        result = driver.run("https://boyneramblers.com")
        for article in result.recap_headlines:
            print(article.headline)
    """

    def __init__(
        self,
        config: ScanConfig | None = None,
        request_manager: SyncRequestManager | None = None,
        on_record: Callable[[ScrapedRecord], None] | None = None,
    ) -> None:
        """Initialize the driver.

        Args:
            config: Scan options. Defaults to ScanConfig().
            request_manager: Optional SyncRequestManager to fetch with. If
                None, one is created (and closed) per run().
            on_record: Optional callback invoked for each emitted record, in
                emission order, while the document is still streaming.
        """
        self.config = config or ScanConfig()
        self.profile = get_profile(self.config.variant)
        self.request_manager = request_manager
        self.on_record = on_record

    def run(self, url: str = DEFAULT_SOURCE_URL) -> ScanResult:
        """Fetch url and scan it.

        Raises:
            FetchFailed: On a non-2xx response. No records are produced.
            TransportError: If the body stream breaks; no result is returned.
        """
        if self.request_manager is not None:
            return self._run(self.request_manager, url)
        with SyncRequestManager(timeout=self.config.timeout) as manager:
            return self._run(manager, url)

    def _run(self, manager: SyncRequestManager, url: str) -> ScanResult:
        with manager.stream_document(url) as document:
            result = self.scan_chunks(
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

    def scan_chunks(
        self,
        chunks: Iterable[Chunk],
        source: str = "",
        base_url: str | None = None,
        encoding: str | None = None,
        fetched_at: datetime | None = None,
    ) -> ScanResult:
        """Scan an already-available chunk sequence.

        Args:
            chunks: Text or byte chunks of one HTML document.
            source: Where the document came from, recorded in the result.
            base_url: Overrides config.base_url for relative hrefs.
            encoding: Encoding of byte chunks, if known.
            fetched_at: Fetch time to record; defaults to now.
        """
        scanner = StreamScanner(
            self.profile,
            base_url=base_url or self.config.base_url,
            strict_class_tokens=self.config.strict_class_tokens,
            request_url=source,
            on_record=self.on_record,
        )
        if self.config.use_dom_fallback:
            document = join_chunks(chunks, source)
            events = iter_document_events(document, encoding)
        else:
            events = iter_stream_events(chunks, encoding)
        records = scanner.scan_events(events)
        return build_result(self.profile, records, source, fetched_at)

    def scan_document(self, document: Chunk, source: str = "") -> ScanResult:
        """Scan a complete document held in memory."""
        return self.scan_chunks([document], source=source)


def scrape(
    url: str = DEFAULT_SOURCE_URL, config: ScanConfig | None = None
) -> ScanResult:
    """Fetch and scan one feed page with a throwaway SyncDriver."""
    return SyncDriver(config).run(url)
