"""Scan profiles: the declarative tables for each extraction variant.

A profile bundles a selector table with the two assemblers run over every
document (headlines and page links) and the recap test used by the
aggregation pass.

``articles``
    Container-scoped ArticleRecord assembly over
    ``article[data-vnn-news-feed-item]`` blocks. Recap test is
    case-insensitive, against the derived path.

``headlines``
    Headline links paired into HeadlineRecord. Recap test is a
    case-sensitive ``"/recap/"`` substring check on the raw href. The two
    recap tests deliberately differ.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from feedscan.common.extractors import (
    ARTICLE_EXTRACTORS,
    HEADLINE_EXTRACTORS,
    PAGE_LINK_EXTRACTORS,
)
from feedscan.common.selectors import SelectorSpec
from feedscan.data_types import (
    ArticleRecord,
    HeadlineRecord,
    PageLinkRecord,
    Role,
)
from feedscan.driver.assembler import AssemblerMode, AssemblerSpec

DEFAULT_SOURCE_URL = "https://boyneramblers.com"

FEED_SELECTORS: tuple[SelectorSpec, ...] = (
    SelectorSpec(Role.ALBUM_ROOT, "article", attribute="data-vnn-news-feed-item"),
    SelectorSpec(Role.HEADLINE_LINK, "a", class_token="article-title"),
    SelectorSpec(Role.TIMESTAMP, "time", class_token="updated"),
    SelectorSpec(
        Role.TEAM_LABEL, "span", ancestor_class="article-meta", first_child=True
    ),
    SelectorSpec(Role.PAGE_LINK, "a", class_token="page-link"),
)

ARTICLE_ASSEMBLER = AssemblerSpec(
    name="articles",
    mode=AssemblerMode.CONTAINER,
    record_model=ArticleRecord,
    start_role=Role.ALBUM_ROOT,
    extractors=ARTICLE_EXTRACTORS,
)

HEADLINE_ASSEMBLER = AssemblerSpec(
    name="headlines",
    mode=AssemblerMode.PAIRING,
    record_model=HeadlineRecord,
    start_role=Role.HEADLINE_LINK,
    extractors=HEADLINE_EXTRACTORS,
    required_fields=("url", "title"),
)

PAGE_LINK_ASSEMBLER = AssemblerSpec(
    name="page_links",
    mode=AssemblerMode.PAIRING,
    record_model=PageLinkRecord,
    start_role=Role.PAGE_LINK,
    extractors=PAGE_LINK_EXTRACTORS,
    required_fields=("url", "text"),
)


def article_is_recap(record: ArticleRecord) -> bool:
    return record.contains_recap


def headline_is_recap(record: HeadlineRecord) -> bool:
    # Case-sensitive, unlike article_is_recap.
    return "/recap/" in record.url


@dataclass(frozen=True)
class ScanProfile:
    """Everything one scan variant needs.

    Attributes:
        name: Variant name ("articles" or "headlines").
        selectors: Selector table for the matcher.
        headline_assembler: Assembler producing the headline records.
        page_link_assembler: Assembler producing page link records.
        is_recap: Predicate selecting recap headlines.
    """

    name: str
    selectors: tuple[SelectorSpec, ...]
    headline_assembler: AssemblerSpec
    page_link_assembler: AssemblerSpec
    is_recap: Callable[[Any], bool]


ARTICLES_PROFILE = ScanProfile(
    name="articles",
    selectors=FEED_SELECTORS,
    headline_assembler=ARTICLE_ASSEMBLER,
    page_link_assembler=PAGE_LINK_ASSEMBLER,
    is_recap=article_is_recap,
)

HEADLINES_PROFILE = ScanProfile(
    name="headlines",
    selectors=FEED_SELECTORS,
    headline_assembler=HEADLINE_ASSEMBLER,
    page_link_assembler=PAGE_LINK_ASSEMBLER,
    is_recap=headline_is_recap,
)

PROFILES: dict[str, ScanProfile] = {
    ARTICLES_PROFILE.name: ARTICLES_PROFILE,
    HEADLINES_PROFILE.name: HEADLINES_PROFILE,
}


def get_profile(name: str) -> ScanProfile:
    """Look up a profile by variant name.

    Raises:
        KeyError: If no profile has that name.
    """
    try:
        return PROFILES[name]
    except KeyError:
        raise KeyError(
            f"Unknown scan variant '{name}'. "
            f"Expected one of: {', '.join(sorted(PROFILES))}"
        ) from None
