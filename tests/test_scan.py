"""End-to-end scans of in-memory documents with SyncDriver.

These tests run the whole pipeline (tokenizer, matcher, assemblers and the
aggregation pass) without any network access.
"""

from datetime import datetime

import pytest

from feedscan.common.param_models import ScanConfig
from feedscan.data_types import (
    NO_PAGES_FOUND,
    ArticleRecord,
    HeadlineRecord,
    PageLinkRecord,
)
from feedscan.driver.sync_driver import SyncDriver
from tests.mock_server import (
    VALID_ARTICLES,
    MockArticle,
    generate_feed_html,
)


def chunked(text: str, size: int) -> list[str]:
    return [text[start : start + size] for start in range(0, len(text), size)]


class TestArticlesVariant:
    def test_emits_only_valid_articles(self, feed_html, expected_article_count):
        result = SyncDriver().scan_document(feed_html, source="feed.html")

        assert len(result.headlines) == expected_article_count
        assert [r.headline for r in result.headlines] == [
            a.headline for a in VALID_ARTICLES
        ]
        assert [r.team for r in result.headlines] == [
            a.team for a in VALID_ARTICLES
        ]

    def test_article_fields(self, feed_html):
        result = SyncDriver().scan_document(feed_html)
        volleyball = result.headlines[1]

        assert volleyball == ArticleRecord(
            team="Girls Varsity Volleyball",
            headline="Volleyball preview: conference opener",
            last_updated="2024-09-16T12:00:00Z",
            url_path="/news/2024/09/volleyball-preview?ref=home",
            contains_recap=False,
        )

    def test_every_emitted_record_is_complete(self, feed_html):
        result = SyncDriver().scan_document(feed_html)

        for record in result.headlines:
            for value in (
                record.team,
                record.headline,
                record.last_updated,
                record.url_path,
            ):
                assert value
                assert value != "N/A"

    def test_recaps_are_case_insensitive(self, feed_html):
        result = SyncDriver().scan_document(feed_html)

        assert [r.url_path for r in result.recap_headlines] == [
            "/news/recap/123",
            "/news/RECAP/130",
        ]

    def test_page_links_and_number_of_pages(self, feed_html):
        result = SyncDriver().scan_document(feed_html)

        assert [link.text for link in result.page_links] == [
            "1",
            "2",
            "10",
            "Next",
        ]
        assert result.page_links[0] == PageLinkRecord(
            url="/news?page=1", text="1"
        )
        assert result.number_of_pages == 10
        assert result.has_pages

    def test_result_metadata(self, feed_html):
        result = SyncDriver().scan_document(feed_html, source="feed.html")

        assert result.source == "feed.html"
        assert isinstance(result.fetched_at, datetime)
        assert result.fetched_at.tzinfo is not None

    def test_team_label_outside_article_is_ignored(self, feed_html):
        """The site header reuses .article-meta; it must not leak in."""
        result = SyncDriver().scan_document(feed_html)
        assert "Boyne City Ramblers" not in [r.team for r in result.headlines]

    def test_malformed_href_drops_the_record(self):
        html = generate_feed_html(
            [
                MockArticle(
                    team="Varsity Golf",
                    headline="Golf",
                    href="not a url",
                    updated="2024-10-01",
                ),
                MockArticle(
                    team="Varsity Golf",
                    headline="Golf again",
                    href="https://boyneramblers.com/news/golf",
                    updated="2024-10-02",
                ),
            ]
        )
        result = SyncDriver().scan_document(html)

        assert [r.headline for r in result.headlines] == ["Golf again"]

    def test_relative_href_resolves_against_base_url(self):
        html = generate_feed_html(
            [
                MockArticle(
                    team="Varsity Hockey",
                    headline="Hockey recap",
                    href="/news/recap/77",
                    updated="2024-12-01",
                )
            ]
        )
        config = ScanConfig(base_url="https://boyneramblers.com/")
        result = SyncDriver(config).scan_document(html)

        assert result.headlines[0].url_path == "/news/recap/77"
        assert len(result.recap_headlines) == 1

    def test_base_url_does_not_rescue_malformed_href(self):
        html = generate_feed_html(
            [
                MockArticle(
                    team="Varsity Golf",
                    headline="Golf",
                    href="not a url",
                    updated="2024-10-01",
                )
            ]
        )
        result = SyncDriver().scan_chunks(
            chunked(html, 40), base_url="https://boyneramblers.com/news"
        )

        assert result.headlines == ()

    def test_relative_href_without_base_url_is_dropped(self):
        html = generate_feed_html(
            [
                MockArticle(
                    team="Varsity Hockey",
                    headline="Hockey recap",
                    href="/news/recap/77",
                    updated="2024-12-01",
                )
            ]
        )
        assert SyncDriver().scan_document(html).headlines == ()

    def test_document_without_feed(self):
        html = "<html><body><h1>No news yet</h1></body></html>"
        result = SyncDriver().scan_document(html)

        assert result.headlines == ()
        assert result.recap_headlines == ()
        assert result.page_links == ()
        assert result.number_of_pages == NO_PAGES_FOUND
        assert not result.has_pages

    def test_empty_document(self):
        result = SyncDriver().scan_document("")

        assert result.headlines == ()
        assert result.number_of_pages == NO_PAGES_FOUND

    def test_bytes_document(self, feed_html):
        from_text = SyncDriver().scan_document(feed_html)
        from_bytes = SyncDriver().scan_document(feed_html.encode("utf-8"))

        assert from_bytes.headlines == from_text.headlines
        assert from_bytes.page_links == from_text.page_links


class TestEncoding:
    """Text and byte input of the same document must scan the same."""

    HTML = (
        "<html><body>"
        "<article data-vnn-news-feed-item>"
        '<div class="article-meta"><span>\u00c9quipe Caf\u00e9</span></div>'
        '<a class="article-title" href="https://x.com/news/se\u00f1or">'
        "Se\u00f1or \u2014 Jalape\u00f1o</a>"
        '<time class="updated" datetime="2024-09-01"></time>'
        "</article>"
        "</body></html>"
    )

    @pytest.mark.parametrize("use_dom_fallback", [False, True])
    def test_bytes_without_meta_charset_default_to_utf8(self, use_dom_fallback):
        driver = SyncDriver(ScanConfig(use_dom_fallback=use_dom_fallback))

        from_text = driver.scan_document(self.HTML)
        from_bytes = driver.scan_document(self.HTML.encode("utf-8"))

        assert from_text.headlines[0].team == "\u00c9quipe Caf\u00e9"
        assert from_bytes.headlines == from_text.headlines

    def test_multibyte_characters_split_across_chunks(self):
        data = self.HTML.encode("utf-8")
        chunks = [data[start : start + 3] for start in range(0, len(data), 3)]

        result = SyncDriver().scan_chunks(chunks)

        assert result.headlines[0].headline == "Se\u00f1or \u2014 Jalape\u00f1o"

    def test_explicit_encoding(self):
        data = self.HTML.replace(" \u2014", "").encode("latin-1")
        result = SyncDriver().scan_chunks([data], encoding="latin-1")

        assert result.headlines[0].team == "\u00c9quipe Caf\u00e9"


class TestHeadlinesVariant:
    def test_headline_pairs(self, feed_html):
        config = ScanConfig(variant="headlines")
        result = SyncDriver(config).scan_document(feed_html)

        assert [r.title for r in result.headlines] == [
            "Ramblers edge Petoskey 2-1",
            "Volleyball preview: conference opener",
            "Football RECAP: Ramblers roll past Charlevoix",
            "Cross country hosts invitational",
        ]
        assert result.headlines[0] == HeadlineRecord(
            title="Ramblers edge Petoskey 2-1",
            url="https://boyneramblers.com/news/recap/123",
        )

    def test_headline_recaps_are_case_sensitive(self, feed_html):
        config = ScanConfig(variant="headlines")
        result = SyncDriver(config).scan_document(feed_html)

        assert [r.title for r in result.recap_headlines] == [
            "Ramblers edge Petoskey 2-1"
        ]

    def test_page_links_shared_with_articles(self, feed_html):
        headlines = SyncDriver(ScanConfig(variant="headlines"))
        articles = SyncDriver()

        assert (
            headlines.scan_document(feed_html).page_links
            == articles.scan_document(feed_html).page_links
        )


class TestEquivalence:
    """The same document must scan the same however it is delivered."""

    @pytest.mark.parametrize("size", [1, 7, 64, 1000])
    @pytest.mark.parametrize("variant", ["articles", "headlines"])
    def test_chunking_does_not_change_records(self, feed_html, size, variant):
        driver = SyncDriver(ScanConfig(variant=variant))
        whole = driver.scan_document(feed_html)
        pieces = driver.scan_chunks(chunked(feed_html, size))

        assert pieces.headlines == whole.headlines
        assert pieces.page_links == whole.page_links
        assert pieces.number_of_pages == whole.number_of_pages

    @pytest.mark.parametrize("variant", ["articles", "headlines"])
    def test_dom_fallback_matches_stream(self, feed_html, variant):
        stream = SyncDriver(ScanConfig(variant=variant))
        dom = SyncDriver(ScanConfig(variant=variant, use_dom_fallback=True))

        streamed = stream.scan_document(feed_html)
        built = dom.scan_chunks(chunked(feed_html, 50))

        assert built.headlines == streamed.headlines
        assert built.recap_headlines == streamed.recap_headlines
        assert built.page_links == streamed.page_links


class TestClassMatching:
    HTML = """
    <html><body>
      <article data-vnn-news-feed-item>
        <div class="article-meta"><span>Varsity Tennis</span></div>
        <a class="article-title-link" href="https://x.com/news/tennis">Tennis</a>
        <time class="updated" datetime="2024-09-01"></time>
      </article>
      <a class="page-link active" href="/news?page=1">1</a>
    </body></html>
    """

    def test_substring_class_match_by_default(self):
        result = SyncDriver().scan_document(self.HTML)

        assert [r.headline for r in result.headlines] == ["Tennis"]
        assert result.number_of_pages == 1

    def test_strict_class_tokens(self):
        result = SyncDriver(
            ScanConfig(strict_class_tokens=True)
        ).scan_document(self.HTML)

        assert result.headlines == ()
        # "page-link" is still an exact token of "page-link active".
        assert result.number_of_pages == 1


def test_on_record_callback_sees_every_record(feed_html):
    seen = []
    result = SyncDriver(on_record=seen.append).scan_document(feed_html)

    # The pagination bar follows the feed, so headlines are emitted first.
    assert seen == [*result.headlines, *result.page_links]
