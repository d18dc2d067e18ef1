"""Shared fixtures for the feedscan tests."""

import asyncio
import threading
from collections.abc import Iterator

import pytest
from aiohttp import web

from tests.mock_server import (
    VALID_ARTICLES,
    create_app,
    generate_feed_html,
)


@pytest.fixture
def feed_html() -> str:
    """Generate the feed page HTML.

    Returns:
        HTML string containing all mock articles and page links.
    """
    return generate_feed_html()


@pytest.fixture
def expected_article_count() -> int:
    """The number of articles the articles variant should emit."""
    return len(VALID_ARTICLES)


@pytest.fixture
def server_url() -> Iterator[str]:
    """Serve the mock feed app from a background thread.

    The site binds port 0; the URL uses whatever port the OS assigned.

    Yields:
        Base URL of the running server, e.g. ``http://127.0.0.1:54321``.
    """
    loop = asyncio.new_event_loop()
    runner = web.AppRunner(create_app())
    ready = threading.Event()

    async def serve() -> None:
        await runner.setup()
        await web.TCPSite(runner, "127.0.0.1", 0).start()

    def run() -> None:
        asyncio.set_event_loop(loop)
        loop.run_until_complete(serve())
        ready.set()
        loop.run_forever()

    thread = threading.Thread(target=run, daemon=True)
    thread.start()
    if not ready.wait(timeout=5.0):
        pytest.fail("mock feed server did not start")

    host, port = runner.addresses[0][:2]
    yield f"http://{host}:{port}"

    asyncio.run_coroutine_threadsafe(runner.cleanup(), loop).result(timeout=5.0)
    loop.call_soon_threadsafe(loop.stop)
    thread.join(timeout=5.0)
    if not thread.is_alive():
        loop.close()
