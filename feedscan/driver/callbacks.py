"""Callback functions for the driver's on_record parameter.

Callbacks run for every emitted record, in emission order, while the
document is still being scanned. They see records before the scan has
finished, so a scan that later fails with TransportError may already have
passed some records to them; the ScanResult itself is all-or-nothing.

Example::

    from feedscan.driver.callbacks import save_to_jsonl_file
    from feedscan.driver.sync_driver import SyncDriver

    with open("records.jsonl", "w") as f:
        driver = SyncDriver(on_record=save_to_jsonl_file(f))
        result = driver.run()
"""

import json
from collections.abc import Callable
from typing import TextIO

from pydantic import BaseModel

RecordCallback = Callable[[BaseModel], None]


def _record_dict(record: BaseModel) -> dict:
    return {"type": type(record).__name__, **record.model_dump(mode="json")}


def save_to_jsonl_file(file_handle: TextIO) -> RecordCallback:
    """Create a callback that writes each record to a JSONL file.

    Args:
        file_handle: An open file handle to write JSON lines to.
            The caller is responsible for opening and closing the file.

    Returns:
        A callback function that can be passed to a driver's on_record
        parameter. Each line carries the record's model name under "type".
    """

    def callback(record: BaseModel) -> None:
        json.dump(_record_dict(record), file_handle)
        file_handle.write("\n")
        file_handle.flush()

    return callback


def collect_records() -> tuple[RecordCallback, list[BaseModel]]:
    """Create a callback that collects records in a list.

    Returns:
        A tuple of (callback_function, records_list).
    """
    records: list[BaseModel] = []

    def callback(record: BaseModel) -> None:
        records.append(record)

    return callback, records


def combine_callbacks(*callbacks: RecordCallback) -> RecordCallback:
    """Combine multiple callbacks into a single callback."""

    def callback(record: BaseModel) -> None:
        for cb in callbacks:
            cb(record)

    return callback
