"""Aggregation pass over completed record sequences."""

from __future__ import annotations

import math
from collections.abc import Callable, Iterable, Sequence
from typing import Any, TypeVar

from feedscan.data_types import NO_PAGES_FOUND, PageLinkRecord

R = TypeVar("R")


def recap_headlines(
    headlines: Iterable[R], is_recap: Callable[[Any], bool]
) -> tuple[R, ...]:
    """Filter headlines down to recaps, preserving order."""
    return tuple(record for record in headlines if is_recap(record))


def parse_page_number(text: str) -> float | None:
    """Parse a page link label as a number.

    Returns:
        The parsed value, or None for labels like "Next" or "»".

    Examples:
        >>> parse_page_number(" 10 ")
        10.0
        >>> parse_page_number("Next") is None
        True
    """
    try:
        value = float(text.strip())
    except ValueError:
        return None
    if not math.isfinite(value):
        return None
    return value


def number_of_pages(page_links: Sequence[PageLinkRecord]) -> float:
    """Largest numeric page link label.

    Args:
        page_links: Emitted page links.

    Returns:
        The maximum parsed label, or NO_PAGES_FOUND when none parse.
    """
    best = NO_PAGES_FOUND
    for link in page_links:
        value = parse_page_number(link.text)
        if value is not None and value > best:
            best = value
    return best
