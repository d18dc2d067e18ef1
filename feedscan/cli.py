"""feedscan CLI: scan sports-news feed pages.

Usage:
    feedscan scrape                              # Scan the default feed
    feedscan scrape https://example.com/news     # Scan another feed page
    feedscan scrape URL --variant headlines      # Headline-only pairing variant
    feedscan parse page.html --chunk-size 64     # Scan a saved page
    feedscan parse page.html --dom               # Use the full-DOM tokenizer
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path
from typing import IO

import click

from feedscan.common.exceptions import FetchFailed, StreamError
from feedscan.common.param_models import ScanConfig
from feedscan.common.profiles import DEFAULT_SOURCE_URL, PROFILES
from feedscan.data_types import ScanResult
from feedscan.driver.callbacks import collect_records, save_to_jsonl_file


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _echo_result(result: ScanResult) -> None:
    click.echo(result.model_dump_json(indent=2))
    pages = (
        str(int(result.number_of_pages))
        if result.has_pages
        else "none found"
    )
    click.echo(
        f"{len(result.headlines)} headlines, "
        f"{len(result.recap_headlines)} recaps, pages: {pages}",
        err=True,
    )


def _read_chunks(handle: IO[bytes], chunk_size: int) -> Iterator[bytes]:
    while True:
        chunk = handle.read(chunk_size)
        if not chunk:
            return
        yield chunk


@click.group()
@click.version_option(package_name="feedscan")
def cli() -> None:
    """feedscan: streaming sports-news feed extractor."""


variant_option = click.option(
    "--variant",
    type=click.Choice(sorted(PROFILES)),
    default="articles",
    show_default=True,
    help="Extraction variant.",
)
strict_option = click.option(
    "--strict-classes",
    is_flag=True,
    help="Match class tokens exactly instead of by substring.",
)
verbose_option = click.option(
    "-v", "--verbose", is_flag=True, help="Verbose logging."
)


@cli.command()
@click.argument("url", default=DEFAULT_SOURCE_URL)
@variant_option
@strict_option
@click.option(
    "--timeout",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Fetch timeout in seconds.",
)
@click.option(
    "--output",
    "output_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Append the emitted records to this JSONL file once the scan succeeds.",
)
@verbose_option
def scrape(
    url: str,
    variant: str,
    strict_classes: bool,
    timeout: float | None,
    output_path: Path | None,
    verbose: bool,
) -> None:
    """Fetch URL and print the extracted feed as JSON.

    \b
    Examples:
        feedscan scrape
        feedscan scrape https://boyneramblers.com --variant headlines
        feedscan scrape URL --output records.jsonl
    """
    from feedscan.driver.sync_driver import SyncDriver

    _configure_logging(verbose)
    config = ScanConfig(
        variant=variant, strict_class_tokens=strict_classes, timeout=timeout
    )

    collect, records = collect_records()
    try:
        result = SyncDriver(config, on_record=collect).run(url)
    except FetchFailed as e:
        raise click.ClickException(e.message) from e
    except StreamError as e:
        raise click.ClickException(e.message) from e

    # Only a finished scan reaches the file.
    if output_path is not None:
        with output_path.open("a") as handle:
            write = save_to_jsonl_file(handle)
            for record in records:
                write(record)

    _echo_result(result)


@cli.command()
@click.argument(
    "path", type=click.Path(exists=True, dir_okay=False, path_type=Path)
)
@variant_option
@strict_option
@click.option("--base-url", default=None, help="Base URL for relative links.")
@click.option(
    "--dom", is_flag=True, help="Tokenize through a full lxml tree."
)
@click.option(
    "--chunk-size",
    type=click.IntRange(min=1),
    default=65536,
    show_default=True,
    help="Bytes fed to the streaming tokenizer at a time.",
)
@click.option(
    "--encoding",
    default="utf-8",
    show_default=True,
    help="Encoding of the file.",
)
@verbose_option
def parse(
    path: Path,
    variant: str,
    strict_classes: bool,
    base_url: str | None,
    dom: bool,
    chunk_size: int,
    encoding: str,
    verbose: bool,
) -> None:
    """Scan a saved HTML page and print the extracted feed as JSON."""
    from feedscan.driver.sync_driver import SyncDriver

    _configure_logging(verbose)
    config = ScanConfig(
        variant=variant,
        base_url=base_url,
        strict_class_tokens=strict_classes,
        use_dom_fallback=dom,
    )
    driver = SyncDriver(config)
    try:
        with path.open("rb") as handle:
            result = driver.scan_chunks(
                _read_chunks(handle, chunk_size),
                source=str(path),
                encoding=encoding,
            )
    except StreamError as e:
        raise click.ClickException(e.message) from e

    _echo_result(result)


def main() -> None:
    """Entry point for the ``feedscan`` console script."""
    cli()
