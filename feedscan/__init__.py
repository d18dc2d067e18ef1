"""
Streaming sports-news feed extractor.

This module provides a single-pass scanner that turns a news feed page into
typed article records, with a clean separation between tokenizing (lxml),
record assembly (driver) and I/O (fetcher).
"""
