"""Declarative selectors for matching open events to roles.

A SelectorSpec is a tiny, fixed-shape pattern: tag name, an optional class
token, an optional marker attribute, an optional ancestor class and an
optional first-child constraint. It covers exactly the selectors the feed
pages need, e.g.::

    article[data-vnn-news-feed-item]    -> ALBUM_ROOT
    a.article-title                     -> HEADLINE_LINK
    time.updated                        -> TIMESTAMP
    .article-meta span:first-child      -> TEAM_LABEL
    a.page-link                         -> PAGE_LINK

Class matching is permissive by default: the token only has to appear
somewhere in the raw class attribute, so ``class="article-title-large"``
matches ``article-title``. Pass ``strict_class_tokens=True`` to require an
exact whitespace-separated token instead.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from feedscan.data_types import ParseEvent, Role

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SelectorSpec:
    """A single target pattern.

    Attributes:
        role: Role assigned when the pattern matches.
        tag_name: Required tag name (lowercase).
        class_token: Token that must appear in the class attribute.
        attribute: Attribute that must be present (value ignored).
        ancestor_class: Token that must appear in some ancestor's class.
        first_child: Require the element to be its parent's first element child.
    """

    role: Role
    tag_name: str
    class_token: str | None = None
    attribute: str | None = None
    ancestor_class: str | None = None
    first_child: bool = False

    def describe(self) -> str:
        """Render the spec as an equivalent CSS selector."""
        css = self.tag_name
        if self.class_token:
            css += f".{self.class_token}"
        if self.attribute:
            css += f"[{self.attribute}]"
        if self.first_child:
            css += ":first-child"
        if self.ancestor_class:
            css = f".{self.ancestor_class} {css}"
        return css


@dataclass
class ElementFrame:
    """One open element on the ancestry stack."""

    tag: str
    class_value: str
    role: Role | None = None
    child_count: int = 0


@dataclass
class ElementStack:
    """Open-element stack maintained in document order.

    Only tag names, class values and sibling counts are kept, never text or
    subtrees.
    """

    frames: list[ElementFrame] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.frames)

    def next_child_index(self) -> int:
        """Index the next opened element will have among its siblings."""
        if not self.frames:
            return 0
        return self.frames[-1].child_count

    def push(self, event: ParseEvent, role: Role | None) -> ElementFrame:
        if self.frames:
            self.frames[-1].child_count += 1
        frame = ElementFrame(event.tag, event.class_value, role)
        self.frames.append(frame)
        return frame

    def pop(self, tag: str) -> list[ElementFrame]:
        """Pop frames down to and including the nearest frame named tag.

        Stray close tags with no matching open frame are ignored and
        return an empty list.
        """
        for index in range(len(self.frames) - 1, -1, -1):
            if self.frames[index].tag == tag:
                popped = self.frames[index:]
                del self.frames[index:]
                popped.reverse()
                return popped
        logger.debug(f"Ignoring stray close tag </{tag}>")
        return []

    def ancestor_class_values(self) -> Iterable[str]:
        return (frame.class_value for frame in self.frames)


def class_matches(class_value: str, token: str, strict: bool = False) -> bool:
    """Test a class attribute against a token.

    Args:
        class_value: The raw class attribute.
        token: The token to look for.
        strict: Require an exact whitespace-separated token.

    Examples:
        >>> class_matches("article-title large", "article-title")
        True
        >>> class_matches("article-title-large", "article-title")
        True
        >>> class_matches("article-title-large", "article-title", strict=True)
        False
    """
    if strict:
        return token in class_value.split()
    return token in class_value


class SelectorMatcher:
    """Assigns at most one role to each open event.

    Specs are evaluated in table order and the first match wins.
    """

    def __init__(
        self,
        specs: Iterable[SelectorSpec],
        strict_class_tokens: bool = False,
    ) -> None:
        self.specs = tuple(specs)
        self.strict_class_tokens = strict_class_tokens

    def match(self, event: ParseEvent, stack: ElementStack) -> Role | None:
        """Return the role for an open event, given the stack of its ancestors.

        Args:
            event: The open event. The element must not be pushed yet.
            stack: Currently open ancestors.

        Returns:
            The matched Role, or None.
        """
        for spec in self.specs:
            if self._matches(spec, event, stack):
                return spec.role
        return None

    def _matches(
        self, spec: SelectorSpec, event: ParseEvent, stack: ElementStack
    ) -> bool:
        if event.tag != spec.tag_name:
            return False
        if spec.attribute is not None and spec.attribute not in event.attributes:
            return False
        if spec.class_token is not None and not class_matches(
            event.class_value, spec.class_token, self.strict_class_tokens
        ):
            return False
        if spec.first_child and stack.next_child_index() != 0:
            return False
        if spec.ancestor_class is not None:
            return any(
                class_matches(value, spec.ancestor_class, self.strict_class_tokens)
                for value in stack.ancestor_class_values()
            )
        return True
