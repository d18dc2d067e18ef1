"""Field extractors.

Each FieldExtractor says what to pull out of an element with a given role:
attribute-derived fields (computed once, when the element opens) and an
optional text field (the element's trimmed text content). Extractors only
return field values; the assembler owns the scratch record they go into.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from urllib.parse import urljoin, urlsplit, urlunsplit

from feedscan.common.exceptions import MalformedField
from feedscan.data_types import NOT_AVAILABLE, ParseEvent, Role

logger = logging.getLogger(__name__)

OpenExtractor = Callable[[ParseEvent, str | None], Mapping[str, object]]

# Hrefs resolved against a base URL. Anything else must already be absolute.
RELATIVE_PREFIXES = ("/", "./", "../", "?", "#")


def derive_url_path(href: str, base_url: str | None = None) -> str:
    """Strip scheme and host from an href, keeping path, query and fragment.

    Args:
        href: The raw href attribute.
        base_url: Optional document URL used to resolve relative hrefs.

    Returns:
        The path-only URL. An empty path becomes "/".

    Raises:
        MalformedField: If the href is missing, contains whitespace, or is
            not an absolute URL. Only hrefs starting with "/", "./", "../",
            "?" or "#" are resolved against base_url first.

    Examples:
        >>> derive_url_path("https://boyneramblers.com/news/recap/123")
        '/news/recap/123'
        >>> derive_url_path("https://example.com?page=2#top")
        '/?page=2#top'
    """
    href = href.strip()
    if not href:
        raise MalformedField("url_path", href, "href is missing or empty")

    if any(char.isspace() for char in href):
        raise MalformedField("url_path", href, "href contains whitespace")

    if base_url and href.startswith(RELATIVE_PREFIXES):
        href = urljoin(base_url, href)

    try:
        parts = urlsplit(href)
    except ValueError as e:
        raise MalformedField("url_path", href, str(e)) from e

    if not parts.scheme or not parts.netloc:
        raise MalformedField(
            "url_path",
            href,
            "not an absolute URL",
            {"scheme": parts.scheme, "netloc": parts.netloc},
        )

    return urlunsplit(("", "", parts.path or "/", parts.query, parts.fragment))


def headline_link_fields(
    event: ParseEvent, base_url: str | None
) -> dict[str, object]:
    """Fields for an article headline anchor: url_path and contains_recap."""
    href = event.attributes.get("href") or ""
    try:
        url_path = derive_url_path(href, base_url)
    except MalformedField as e:
        logger.debug(
            f"Degrading url_path to {NOT_AVAILABLE!r}: {e.reason}",
            extra={"href": href, "field": e.field},
        )
        return {"url_path": NOT_AVAILABLE, "contains_recap": False}
    return {"url_path": url_path, "contains_recap": "recap" in url_path.lower()}


def timestamp_fields(
    event: ParseEvent, base_url: str | None
) -> dict[str, object]:
    """The datetime attribute, verbatim."""
    return {"last_updated": event.attributes.get("datetime") or ""}


def href_field(name: str) -> OpenExtractor:
    """Build an extractor copying the raw href attribute into field name."""

    def extract(event: ParseEvent, base_url: str | None) -> dict[str, object]:
        return {name: (event.attributes.get("href") or "").strip()}

    return extract


@dataclass(frozen=True)
class FieldExtractor:
    """What an assembler extracts for one role.

    Attributes:
        role: The role this extractor handles.
        on_open: Computes attribute-derived fields from the open event.
        text_field: Scratch field receiving the element's trimmed text.
    """

    role: Role
    on_open: OpenExtractor | None = None
    text_field: str | None = None

    def open_fields(
        self, event: ParseEvent, base_url: str | None
    ) -> Mapping[str, object]:
        if self.on_open is None:
            return {}
        return self.on_open(event, base_url)


ARTICLE_EXTRACTORS: tuple[FieldExtractor, ...] = (
    FieldExtractor(
        Role.HEADLINE_LINK, on_open=headline_link_fields, text_field="headline"
    ),
    FieldExtractor(Role.TIMESTAMP, on_open=timestamp_fields),
    FieldExtractor(Role.TEAM_LABEL, text_field="team"),
)

HEADLINE_EXTRACTORS: tuple[FieldExtractor, ...] = (
    FieldExtractor(
        Role.HEADLINE_LINK, on_open=href_field("url"), text_field="title"
    ),
)

PAGE_LINK_EXTRACTORS: tuple[FieldExtractor, ...] = (
    FieldExtractor(Role.PAGE_LINK, on_open=href_field("url"), text_field="text"),
)
