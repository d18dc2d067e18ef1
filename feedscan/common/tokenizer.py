"""Tokenizers turning HTML into ParseEvent sequences.

Two paths produce the same ordered event shape:

- iter_stream_events / aiter_stream_events: lxml's HTMLPullParser, fed one
  chunk at a time. Every element is cleared once its close event has been
  produced, and earlier siblings are dropped as soon as their tail text has
  been emitted, so the tree never grows beyond the current ancestry.
- iter_document_events: the full-DOM fallback. Parses the whole document with
  lxml.html, then walks it with etree.iterwalk.

Text events are raw (untrimmed); consumers decide what to strip. Comments and
processing instructions are removed by the parser. Markup problems never
raise: a document lxml cannot parse yields whatever events were produced
before the failure.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterable, AsyncIterator, Iterable, Iterator

from lxml import etree
from lxml import html as lxml_html

from feedscan.data_types import ParseEvent

logger = logging.getLogger(__name__)

Chunk = str | bytes

# Byte input is decoded as UTF-8 unless the caller knows better.
DEFAULT_ENCODING = "utf-8"


class StreamTokenizer:
    """Incremental tokenizer over lxml.etree.HTMLPullParser.

    Usage::

        tokenizer = StreamTokenizer()
        for chunk in chunks:
            for event in tokenizer.feed(chunk):
                ...
        for event in tokenizer.close():
            ...
    """

    def __init__(self, encoding: str | None = None) -> None:
        """Initialize the tokenizer.

        Args:
            encoding: Encoding of byte chunks (default UTF-8). Text chunks
                are encoded with it before feeding, so text and byte input
                of the same document tokenize the same way.
        """
        self._encoding = encoding or DEFAULT_ENCODING
        self._parser = etree.HTMLPullParser(
            events=("start", "end"),
            encoding=self._encoding,
            remove_comments=True,
            remove_pis=True,
        )
        self._broken = False
        self._closed = False

    def feed(self, chunk: Chunk) -> list[ParseEvent]:
        """Feed one chunk and return the events it completed."""
        if self._broken or self._closed or not chunk:
            return []
        if isinstance(chunk, str):
            chunk = chunk.encode(self._encoding, "xmlcharrefreplace")
        try:
            self._parser.feed(chunk)
        except etree.LxmlError as e:
            logger.warning(f"HTML tokenizer gave up mid-document: {e}")
            self._broken = True
        return list(self._drain())

    def close(self) -> list[ParseEvent]:
        """Signal end of input and return the remaining events."""
        if self._closed:
            return []
        self._closed = True
        if not self._broken:
            try:
                self._parser.close()
            except etree.LxmlError as e:
                # Raised for empty documents.
                logger.debug(f"HTML tokenizer closed without a document: {e}")
        return list(self._drain())

    def _drain(self) -> Iterator[ParseEvent]:
        for action, elem in self._parser.read_events():
            if not isinstance(elem.tag, str):
                continue
            if action == "start":
                parent = elem.getparent()
                if parent is not None:
                    if parent.text:
                        yield ParseEvent.data(parent.text)
                        parent.text = None
                    previous = elem.getprevious()
                    if previous is not None:
                        if previous.tail:
                            yield ParseEvent.data(previous.tail)
                        parent.remove(previous)
                yield ParseEvent.open(elem.tag.lower(), elem.attrib)
            else:
                if elem.text:
                    yield ParseEvent.data(elem.text)
                if len(elem) and elem[-1].tail:
                    yield ParseEvent.data(elem[-1].tail)
                yield ParseEvent.close(elem.tag.lower())
                elem.clear(keep_tail=True)


def iter_stream_events(
    chunks: Iterable[Chunk], encoding: str | None = None
) -> Iterator[ParseEvent]:
    """Lazily tokenize a chunked document.

    Args:
        chunks: Text or byte chunks of one HTML document, in order.
        encoding: Encoding of byte chunks (default UTF-8).

    Yields:
        ParseEvent instances in document order.
    """
    tokenizer = StreamTokenizer(encoding)
    for chunk in chunks:
        yield from tokenizer.feed(chunk)
    yield from tokenizer.close()


async def aiter_stream_events(
    chunks: AsyncIterable[Chunk], encoding: str | None = None
) -> AsyncIterator[ParseEvent]:
    """Async version of iter_stream_events.

    Awaiting the next chunk is the only suspension point; each chunk's events
    are yielded before more input is requested.
    """
    tokenizer = StreamTokenizer(encoding)
    async for chunk in chunks:
        for event in tokenizer.feed(chunk):
            yield event
    for event in tokenizer.close():
        yield event


def iter_document_events(
    document: Chunk, encoding: str | None = None
) -> Iterator[ParseEvent]:
    """Tokenize a complete document through a full lxml.html tree.

    Args:
        document: The whole HTML document.
        encoding: Encoding of a byte document (default UTF-8).

    Yields:
        ParseEvent instances in document order, the same shape as
        iter_stream_events produces for the same input.
    """
    if not document.strip():
        return

    parser = lxml_html.HTMLParser(
        remove_comments=True,
        remove_pis=True,
        encoding=(encoding or DEFAULT_ENCODING)
        if isinstance(document, bytes)
        else None,
    )
    try:
        root = lxml_html.document_fromstring(document, parser=parser)
    except (etree.ParserError, etree.XMLSyntaxError, ValueError) as e:
        logger.warning(f"Could not parse document: {e}")
        return

    for action, elem in etree.iterwalk(root, events=("start", "end")):
        if not isinstance(elem.tag, str):
            continue
        if action == "start":
            yield ParseEvent.open(elem.tag.lower(), elem.attrib)
            if elem.text:
                yield ParseEvent.data(elem.text)
        else:
            yield ParseEvent.close(elem.tag.lower())
            if elem.tail:
                yield ParseEvent.data(elem.tail)
