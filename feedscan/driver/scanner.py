"""Stream scanner: dispatches parse events to the matcher and assemblers.

A StreamScanner handles exactly one document. It keeps the open-element
stack, tags each open event with at most one role and forwards every event,
in document order, to the assemblers interested in it. It holds no state
shared with other scanners, so concurrent scans just use separate instances.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterable, Callable, Iterable
from dataclasses import dataclass
from datetime import datetime, timezone

from feedscan.common.aggregation import number_of_pages, recap_headlines
from feedscan.common.exceptions import StreamError
from feedscan.common.profiles import ScanProfile
from feedscan.common.selectors import ElementStack, SelectorMatcher
from feedscan.data_types import EventKind, ParseEvent, ScanResult, ScrapedRecord
from feedscan.driver.assembler import RecordAssembler

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScanRecords:
    """Records emitted by one completed scan, in document order."""

    headlines: tuple[ScrapedRecord, ...]
    page_links: tuple[ScrapedRecord, ...]


class StreamScanner:
    """Single-use, single-pass scanner over a ParseEvent sequence.

    Example::

        scanner = StreamScanner(ARTICLES_PROFILE)
        records = scanner.scan_events(iter_stream_events(chunks))
        records.headlines  # tuple of ArticleRecord
    """

    def __init__(
        self,
        profile: ScanProfile,
        base_url: str | None = None,
        strict_class_tokens: bool = False,
        request_url: str = "",
        on_record: Callable[[ScrapedRecord], None] | None = None,
    ) -> None:
        """Initialize the scanner.

        Args:
            profile: Selector table and assembler specs to scan with.
            base_url: Base URL for resolving relative hrefs.
            strict_class_tokens: Require exact class tokens when matching.
            request_url: URL of the document, for logs and error context.
            on_record: Optional callback invoked for each emitted record.
        """
        self.profile = profile
        self.request_url = request_url
        self.matcher = SelectorMatcher(profile.selectors, strict_class_tokens)
        self.stack = ElementStack()
        self.headline_assembler = RecordAssembler(
            profile.headline_assembler, base_url, request_url, on_record
        )
        self.page_link_assembler = RecordAssembler(
            profile.page_link_assembler, base_url, request_url, on_record
        )
        self._assemblers = (self.headline_assembler, self.page_link_assembler)
        self._started = False
        self._finished = False
        self.event_count = 0

    def process(self, event: ParseEvent) -> None:
        """Dispatch a single event."""
        if self._finished:
            raise RuntimeError("StreamScanner has already finished its document")
        self.event_count += 1

        if event.kind is EventKind.OPEN:
            role = self.matcher.match(event, self.stack)
            frame = self.stack.push(event, role)
            if role is not None:
                for assembler in self._assemblers:
                    if assembler.handles(role):
                        assembler.on_open(role, frame, event)
        elif event.kind is EventKind.TEXT:
            for assembler in self._assemblers:
                assembler.on_text(event.text)
        else:
            for frame in self.stack.pop(event.tag):
                if frame.role is None:
                    continue
                for assembler in self._assemblers:
                    assembler.on_close(frame)

    def finish(self) -> ScanRecords:
        """Mark end of stream and return the emitted records."""
        if not self._finished:
            self._finished = True
            for assembler in self._assemblers:
                assembler.finish()
            logger.debug(
                f"Scanned {self.event_count} events: "
                f"{len(self.headline_assembler.records)} headlines, "
                f"{len(self.page_link_assembler.records)} page links",
                extra={
                    "request_url": self.request_url,
                    "profile": self.profile.name,
                    "discarded": sum(a.discarded for a in self._assemblers),
                },
            )
        return ScanRecords(
            headlines=tuple(self.headline_assembler.records),
            page_links=tuple(self.page_link_assembler.records),
        )

    def _claim(self) -> None:
        if self._started:
            raise RuntimeError("StreamScanner instances are single-use")
        self._started = True

    def scan_events(self, events: Iterable[ParseEvent]) -> ScanRecords:
        """Consume an event sequence to its end.

        Raises:
            StreamError: If reading from the event source fails with an
                OSError. Errors already raised as StreamError (e.g.
                TransportError from the fetcher) propagate unchanged.
        """
        self._claim()
        iterator = iter(events)
        while True:
            try:
                event = next(iterator)
            except StopIteration:
                break
            except OSError as e:
                raise StreamError(
                    f"Event source failed: {e}", self.request_url
                ) from e
            self.process(event)
        return self.finish()

    async def ascan_events(
        self, events: AsyncIterable[ParseEvent]
    ) -> ScanRecords:
        """Async version of scan_events."""
        self._claim()
        iterator = events.__aiter__()
        while True:
            try:
                event = await iterator.__anext__()
            except StopAsyncIteration:
                break
            except OSError as e:
                raise StreamError(
                    f"Event source failed: {e}", self.request_url
                ) from e
            self.process(event)
        return self.finish()


def build_result(
    profile: ScanProfile,
    records: ScanRecords,
    source: str,
    fetched_at: datetime | None = None,
) -> ScanResult:
    """Run the aggregation pass and package one invocation's result."""
    return ScanResult(
        headlines=records.headlines,
        recap_headlines=recap_headlines(records.headlines, profile.is_recap),
        page_links=records.page_links,
        number_of_pages=number_of_pages(records.page_links),
        source=source,
        fetched_at=fetched_at or datetime.now(timezone.utc),
    )
