"""Tests for SyncDriver and AsyncDriver against the mock feed server.

The server runs in a background thread (see conftest.py), so both drivers
fetch over a real socket through httpx.
"""

import asyncio
import socket

import pytest

from feedscan.common.exceptions import (
    FetchFailed,
    StreamError,
    TransportError,
)
from feedscan.common.param_models import ScanConfig
from feedscan.common.request_manager import (
    AsyncRequestManager,
    SyncRequestManager,
)
from feedscan.data_types import NO_PAGES_FOUND, ArticleRecord, PageLinkRecord
from feedscan.driver.async_driver import (
    AsyncDriver,
    scrape_articles,
    scrape_headlines,
)
from feedscan.driver.callbacks import collect_records
from feedscan.driver.sync_driver import SyncDriver, scrape
from tests.mock_server import VALID_ARTICLES


class TestSyncDriver:
    def test_run_scans_feed(self, server_url, expected_article_count):
        result = SyncDriver().run(server_url)

        assert len(result.headlines) == expected_article_count
        assert [r.headline for r in result.headlines] == [
            a.headline for a in VALID_ARTICLES
        ]
        assert len(result.recap_headlines) == 2
        assert result.number_of_pages == 10
        assert result.source == server_url

    def test_chunked_transfer_matches_single_body(self, server_url):
        driver = SyncDriver()
        whole = driver.run(server_url)
        chunked = driver.run(f"{server_url}/chunked?size=3")

        assert chunked.headlines == whole.headlines
        assert chunked.page_links == whole.page_links

    def test_follows_redirects(self, server_url):
        result = SyncDriver().run(f"{server_url}/old-news")
        assert len(result.headlines) == len(VALID_ARTICLES)

    def test_fetched_scan_drops_malformed_href(self, server_url):
        """The fetched URL resolves relative hrefs but not malformed ones."""
        result = SyncDriver().run(f"{server_url}/malformed")

        assert [(r.headline, r.url_path) for r in result.headlines] == [
            ("Golf again", "/news/golf-again")
        ]

    def test_empty_feed(self, server_url):
        result = SyncDriver().run(f"{server_url}/empty")

        assert result.headlines == ()
        assert result.page_links == ()
        assert result.number_of_pages == NO_PAGES_FOUND

    def test_server_error_raises_fetch_failed(self, server_url):
        callback, seen = collect_records()

        with pytest.raises(FetchFailed) as exc_info:
            SyncDriver(on_record=callback).run(f"{server_url}/error")

        assert exc_info.value.status_code == 500
        assert seen == []

    def test_not_found_raises_fetch_failed(self, server_url):
        with pytest.raises(FetchFailed) as exc_info:
            SyncDriver().run(f"{server_url}/missing")
        assert exc_info.value.status_code == 404

    def test_broken_stream_raises_transport_error(self, server_url):
        with pytest.raises(TransportError):
            SyncDriver().run(f"{server_url}/abort")

    def test_connection_refused_raises_transport_error(self):
        with socket.socket() as sock:
            sock.bind(("127.0.0.1", 0))
            port = sock.getsockname()[1]

        with pytest.raises(TransportError):
            SyncDriver().run(f"http://127.0.0.1:{port}/")

    def test_shared_request_manager(self, server_url):
        with SyncRequestManager(timeout=5.0) as manager:
            driver = SyncDriver(
                ScanConfig(variant="headlines"), request_manager=manager
            )
            first = driver.run(server_url)
            second = driver.run(f"{server_url}/news")

        assert first.headlines == second.headlines
        assert len(first.headlines) == 4

    def test_dom_fallback_over_http(self, server_url):
        stream = SyncDriver().run(server_url)
        dom = SyncDriver(ScanConfig(use_dom_fallback=True)).run(server_url)

        assert dom.headlines == stream.headlines
        assert dom.page_links == stream.page_links

    def test_callback_sees_records_in_emission_order(self, server_url):
        callback, seen = collect_records()
        result = SyncDriver(on_record=callback).run(server_url)

        assert seen == [*result.headlines, *result.page_links]
        assert isinstance(seen[0], ArticleRecord)
        assert isinstance(seen[-1], PageLinkRecord)

    def test_scrape_helper(self, server_url):
        result = scrape(server_url, ScanConfig(variant="headlines"))
        assert len(result.headlines) == 4

    def test_oserror_from_chunk_source_becomes_stream_error(self, feed_html):
        def chunks():
            yield feed_html[:200]
            raise OSError("disk went away")

        with pytest.raises(StreamError):
            SyncDriver().scan_chunks(chunks(), source="broken.html")

    def test_oserror_with_dom_fallback(self, feed_html):
        def chunks():
            yield feed_html[:200]
            raise OSError("disk went away")

        driver = SyncDriver(ScanConfig(use_dom_fallback=True))
        with pytest.raises(StreamError):
            driver.scan_chunks(chunks(), source="broken.html")


class TestAsyncDriver:
    @pytest.mark.asyncio
    async def test_run_scans_feed(self, server_url):
        result = await AsyncDriver().run(server_url)

        assert [r.headline for r in result.headlines] == [
            a.headline for a in VALID_ARTICLES
        ]
        assert result.number_of_pages == 10

    @pytest.mark.asyncio
    async def test_matches_sync_driver(self, server_url):
        sync_result = SyncDriver(ScanConfig(variant="headlines")).run(server_url)
        async_result = await AsyncDriver(ScanConfig(variant="headlines")).run(
            f"{server_url}/chunked?size=5"
        )

        assert async_result.headlines == sync_result.headlines
        assert async_result.recap_headlines == sync_result.recap_headlines
        assert async_result.page_links == sync_result.page_links

    @pytest.mark.asyncio
    async def test_concurrent_scans_are_independent(self, server_url):
        driver = AsyncDriver()
        urls = [
            server_url,
            f"{server_url}/chunked?size=1",
            f"{server_url}/empty",
            f"{server_url}/chunked?size=11",
        ]
        results = await asyncio.gather(*(driver.run(url) for url in urls))

        assert results[0].headlines == results[1].headlines
        assert results[0].headlines == results[3].headlines
        assert results[2].headlines == ()
        assert [r.source for r in results] == urls

    @pytest.mark.asyncio
    async def test_server_error_raises_fetch_failed(self, server_url):
        with pytest.raises(FetchFailed) as exc_info:
            await AsyncDriver().run(f"{server_url}/error")
        assert exc_info.value.status_code == 500

    @pytest.mark.asyncio
    async def test_broken_stream_raises_transport_error(self, server_url):
        with pytest.raises(TransportError):
            await AsyncDriver().run(f"{server_url}/abort")

    @pytest.mark.asyncio
    async def test_fetched_scan_drops_malformed_href(self, server_url):
        result = await AsyncDriver().run(f"{server_url}/malformed")
        assert [r.headline for r in result.headlines] == ["Golf again"]

    @pytest.mark.asyncio
    async def test_dom_fallback(self, server_url):
        stream = await AsyncDriver().run(server_url)
        dom = await AsyncDriver(ScanConfig(use_dom_fallback=True)).run(
            f"{server_url}/chunked?size=13"
        )
        assert dom.headlines == stream.headlines

    @pytest.mark.asyncio
    async def test_shared_request_manager(self, server_url):
        async with AsyncRequestManager(timeout=5.0) as manager:
            driver = AsyncDriver(request_manager=manager)
            first, second = await asyncio.gather(
                driver.run(server_url), driver.run(f"{server_url}/news")
            )
        assert first.headlines == second.headlines

    @pytest.mark.asyncio
    async def test_scrape_articles(self, server_url):
        result = await scrape_articles(server_url, timeout=5.0)

        assert len(result.headlines) == len(VALID_ARTICLES)
        assert [r.url_path for r in result.recap_headlines] == [
            "/news/recap/123",
            "/news/RECAP/130",
        ]

    @pytest.mark.asyncio
    async def test_scrape_headlines(self, server_url):
        result = await scrape_headlines(server_url, timeout=5.0)

        assert len(result.headlines) == 4
        assert [r.url for r in result.recap_headlines] == [
            "https://boyneramblers.com/news/recap/123"
        ]
