"""Record assembler state machine.

One RecordAssembler owns exactly one scratch record at a time and moves
between two states::

    IDLE --start--> COLLECTING --complete--> (emit or discard) --> IDLE

How a record starts and completes depends on the AssemblerSpec mode:

CONTAINER
    A record starts when the start role (e.g. ALBUM_ROOT) opens and completes
    when that same element closes. Text fields accumulate while their element
    is open and are committed, trimmed, on its close.

PAIRING
    There is no container. A record starts on its first field assignment and
    is emitted as soon as every required field is non-empty. Text fields take
    the first non-blank text event inside their element.

Either way, the finished scratch record is validated against the record
model; records that fail validation are logged and dropped, never emitted.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from feedscan.common.exceptions import DataFormatAssumptionException
from feedscan.common.extractors import FieldExtractor
from feedscan.common.selectors import ElementFrame
from feedscan.data_types import ParseEvent, Role, ScrapedRecord

logger = logging.getLogger(__name__)


class AssemblerMode(str, Enum):
    CONTAINER = "container"
    PAIRING = "pairing"


class AssemblerState(str, Enum):
    IDLE = "idle"
    COLLECTING = "collecting"


@dataclass(frozen=True)
class AssemblerSpec:
    """Declarative configuration for one RecordAssembler.

    Attributes:
        name: Name used in logs.
        mode: CONTAINER or PAIRING.
        record_model: Model every emitted record must validate against.
        start_role: Role that starts a record. In CONTAINER mode its close
            completes the record; in PAIRING mode a new opening discards an
            unfinished pair.
        extractors: Field extractors, at most one per role.
        required_fields: Fields that must all be non-empty for a PAIRING
            record to complete.
    """

    name: str
    mode: AssemblerMode
    record_model: type[ScrapedRecord]
    start_role: Role
    extractors: tuple[FieldExtractor, ...]
    required_fields: tuple[str, ...] = ()

    def extractor_for(self, role: Role) -> FieldExtractor | None:
        for extractor in self.extractors:
            if extractor.role == role:
                return extractor
        return None

    @property
    def roles(self) -> frozenset[Role]:
        return frozenset(
            [self.start_role, *(extractor.role for extractor in self.extractors)]
        )


@dataclass
class _TextCapture:
    frame: ElementFrame
    field: str
    pieces: list[str] = field(default_factory=list)


class RecordAssembler:
    """Builds records from role-tagged events.

    Example::

        assembler = RecordAssembler(ARTICLE_ASSEMBLER)
        assembler.on_open(Role.ALBUM_ROOT, frame, event)
        ...
        assembler.on_close(frame)
        assembler.records  # validated ArticleRecord instances
    """

    def __init__(
        self,
        spec: AssemblerSpec,
        base_url: str | None = None,
        request_url: str = "",
        on_record: Callable[[ScrapedRecord], None] | None = None,
    ) -> None:
        """Initialize the assembler.

        Args:
            spec: Mode, model and extractors for this assembler.
            base_url: Base URL handed to extractors for relative hrefs.
            request_url: URL of the document, for error context.
            on_record: Optional callback invoked for each emitted record.
        """
        self.spec = spec
        self.base_url = base_url
        self.request_url = request_url
        self.on_record = on_record
        self.state = AssemblerState.IDLE
        self.records: list[ScrapedRecord] = []
        self.discarded = 0
        self._scratch: dict[str, Any] = {}
        self._root: ElementFrame | None = None
        self._captures: list[_TextCapture] = []

    @property
    def scratch(self) -> dict[str, Any]:
        """A copy of the in-progress record."""
        return dict(self._scratch)

    def handles(self, role: Role) -> bool:
        return role in self.spec.roles

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------

    def on_open(self, role: Role, frame: ElementFrame, event: ParseEvent) -> None:
        """Handle an open event already tagged with role."""
        if self.spec.mode is AssemblerMode.CONTAINER:
            if role == self.spec.start_role:
                if self.state is AssemblerState.COLLECTING:
                    self._discard("nested container opened")
                self._start()
                self._root = frame
                return
            if self.state is AssemblerState.IDLE:
                return
        elif role == self.spec.start_role and self._scratch:
            self._discard("new pair started before completion")

        extractor = self.spec.extractor_for(role)
        if extractor is None:
            return

        values = extractor.open_fields(event, self.base_url)
        if values:
            self._assign(values)
        if extractor.text_field is not None:
            self._captures.append(_TextCapture(frame, extractor.text_field))
        self._check_pair()

    def on_text(self, text: str) -> None:
        """Handle a text event."""
        if not self._captures:
            return
        if self.spec.mode is AssemblerMode.CONTAINER:
            for capture in self._captures:
                capture.pieces.append(text)
            return

        stripped = text.strip()
        if not stripped:
            return
        for capture in self._captures:
            if not self._scratch.get(capture.field):
                self._assign({capture.field: stripped})
        self._check_pair()

    def on_close(self, frame: ElementFrame) -> None:
        """Handle the close of an element previously pushed as frame."""
        remaining = []
        for capture in self._captures:
            if capture.frame is not frame:
                remaining.append(capture)
            elif self.spec.mode is AssemblerMode.CONTAINER:
                self._scratch[capture.field] = "".join(capture.pieces).strip()
        self._captures = remaining

        if (
            self.spec.mode is AssemblerMode.CONTAINER
            and self._root is frame
            and self.state is AssemblerState.COLLECTING
        ):
            self._emit()

    def finish(self) -> list[ScrapedRecord]:
        """End of stream: drop any unfinished scratch record."""
        if self.state is AssemblerState.COLLECTING:
            self._discard("end of stream")
        return self.records

    # ------------------------------------------------------------------
    # State transitions
    # ------------------------------------------------------------------

    def _start(self) -> None:
        self.state = AssemblerState.COLLECTING
        self._scratch = {}
        self._captures = []

    def _reset(self) -> None:
        self.state = AssemblerState.IDLE
        self._scratch = {}
        self._root = None
        self._captures = []

    def _assign(self, values: dict[str, Any]) -> None:
        if self.state is AssemblerState.IDLE:
            self.state = AssemblerState.COLLECTING
        self._scratch.update(values)

    def _check_pair(self) -> None:
        if self.spec.mode is not AssemblerMode.PAIRING:
            return
        if self.spec.required_fields and all(
            self._scratch.get(name) for name in self.spec.required_fields
        ):
            self._emit()

    def _emit(self) -> None:
        try:
            record = self.spec.record_model.from_scratch(
                self._scratch, self.request_url, self.spec.name
            )
        except DataFormatAssumptionException as e:
            self.discarded += 1
            logger.debug(
                f"Discarding invalid {e.model_name} scratch record",
                extra={
                    "assembler": e.assembler,
                    "request_url": e.request_url,
                    "errors": e.errors,
                    "failed_doc": e.failed_doc,
                },
            )
        else:
            self.records.append(record)
            if self.on_record is not None:
                self.on_record(record)
        self._reset()

    def _discard(self, reason: str) -> None:
        self.discarded += 1
        logger.debug(
            f"Discarding unfinished {self.spec.record_model.__name__}: {reason}",
            extra={"assembler": self.spec.name, "scratch": dict(self._scratch)},
        )
        self._reset()
