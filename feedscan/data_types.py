"""Core data types for the feed scanner.

This module contains the parse event shape shared by both tokenizer paths,
the semantic roles assigned by the selector matcher, the record models
emitted by the assemblers and the per-invocation ScanResult.

Record models double as the validity invariant: a scratch record is only
emitted if it validates against its model.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Annotated, Any, TypeVar

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
)

from feedscan.common.exceptions import DataFormatAssumptionException

# Placeholder for a field that could not be derived.
NOT_AVAILABLE = "N/A"

# numberOfPages when no page link label parses as a number.
NO_PAGES_FOUND = float("-inf")


class EventKind(str, Enum):
    """Kinds of parse events produced by the tokenizer."""

    OPEN = "open"
    TEXT = "text"
    CLOSE = "close"


@dataclass(frozen=True)
class ParseEvent:
    """A single tokenizer event.

    Attributes:
        kind: open, text or close.
        tag: Lowercase tag name (open/close events).
        attributes: Attribute mapping (open events only).
        text: Raw text content (text events only).
    """

    kind: EventKind
    tag: str = ""
    attributes: Mapping[str, str] = field(default_factory=dict)
    text: str = ""

    @property
    def class_value(self) -> str:
        """The raw class attribute, or an empty string."""
        return self.attributes.get("class", "") or ""

    @property
    def class_tokens(self) -> tuple[str, ...]:
        """The whitespace-separated class tokens."""
        return tuple(self.class_value.split())

    @classmethod
    def open(
        cls, tag: str, attributes: Mapping[str, str] | None = None
    ) -> ParseEvent:
        return cls(EventKind.OPEN, tag=tag, attributes=dict(attributes or {}))

    @classmethod
    def close(cls, tag: str) -> ParseEvent:
        return cls(EventKind.CLOSE, tag=tag)

    @classmethod
    def data(cls, text: str) -> ParseEvent:
        return cls(EventKind.TEXT, text=text)


class Role(str, Enum):
    """Semantic category assigned to a matched open event."""

    ALBUM_ROOT = "album_root"
    HEADLINE_LINK = "headline_link"
    TIMESTAMP = "timestamp"
    TEAM_LABEL = "team_label"
    PAGE_LINK = "page_link"


def _reject_sentinel(value: str) -> str:
    if value == NOT_AVAILABLE:
        raise ValueError("field could not be derived")
    return value


RequiredText = Annotated[
    str, Field(min_length=1), AfterValidator(_reject_sentinel)
]

T = TypeVar("T", bound="ScrapedRecord")


class ScrapedRecord(BaseModel):
    """Base class for records emitted by an assembler.

    Example:
        ArticleRecord.from_scratch({"team": "", "headline": "Win"})
        # raises DataFormatAssumptionException
    """

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_scratch(
        cls: type[T],
        scratch: Mapping[str, Any],
        request_url: str = "",
        assembler: str = "",
    ) -> T:
        """Validate a finished scratch record.

        Args:
            scratch: Field values collected by the assembler.
            request_url: URL of the document, for error reporting.
            assembler: Name of the assembler that built the scratch record.

        Raises:
            DataFormatAssumptionException: If a field is missing, empty or
                holds the NOT_AVAILABLE sentinel.
        """
        try:
            return cls.model_validate(dict(scratch))
        except ValidationError as e:
            raise DataFormatAssumptionException(
                errors=[dict(err) for err in e.errors()],
                failed_doc=dict(scratch),
                model_name=cls.__name__,
                request_url=request_url,
                assembler=assembler,
            ) from e


class ArticleRecord(ScrapedRecord):
    """A news feed article (container variant)."""

    team: RequiredText
    headline: RequiredText
    last_updated: RequiredText
    url_path: RequiredText
    contains_recap: bool = False


class HeadlineRecord(ScrapedRecord):
    """A headline link (pairing variant)."""

    title: RequiredText
    url: RequiredText


class PageLinkRecord(ScrapedRecord):
    """A pagination link."""

    url: RequiredText
    text: RequiredText


class ScanResult(BaseModel):
    """Structured result of one fetch + scan invocation.

    Attributes:
        headlines: Emitted headline records, in document order.
        recap_headlines: The recap-only subset of headlines.
        page_links: Emitted pagination links, in document order.
        number_of_pages: Largest numeric page link label, or NO_PAGES_FOUND.
        source: URL (or file name) the document came from.
        fetched_at: When the document was fetched (UTC).
    """

    model_config = ConfigDict(frozen=True)

    headlines: tuple[ArticleRecord, ...] | tuple[HeadlineRecord, ...] = ()
    recap_headlines: tuple[ArticleRecord, ...] | tuple[HeadlineRecord, ...] = ()
    page_links: tuple[PageLinkRecord, ...] = ()
    number_of_pages: float = NO_PAGES_FOUND
    source: str = ""
    fetched_at: datetime

    @property
    def has_pages(self) -> bool:
        """True if at least one page link label parsed as a number."""
        return self.number_of_pages != NO_PAGES_FOUND
