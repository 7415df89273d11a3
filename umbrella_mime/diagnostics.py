"""Advisory diagnostics emitted while a message is parsed.

Each decode step may report what it had to work around (a missing boundary,
a charset fallback, a truncated base64 group).  Records go to a
caller-supplied sink and are collected on the final result; they never
change program flow.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

import structlog

logger = structlog.get_logger()


class Stage(str, Enum):
    """Pipeline stage that produced a diagnostic."""

    PARSER = "parser"
    TREE = "tree"
    TRANSFER = "transfer"
    CHARSET = "charset"
    SELECTOR = "selector"
    PEC = "pec"


class DiagnosticCode(str, Enum):
    """What was worked around."""

    EMPTY_MESSAGE = "empty_message"
    BOUNDARY_MISSING = "boundary_missing"
    BOUNDARY_NOT_FOUND = "boundary_not_found"
    DEPTH_EXCEEDED = "depth_exceeded"
    BASE64_TRUNCATED = "base64_truncated"
    BASE64_PADDED = "base64_padded"
    QP_NOT_NEEDED = "qp_not_needed"
    UNKNOWN_ENCODING = "unknown_encoding"
    DECODE_FAILURE = "decode_failure"
    AUTO_BASE64 = "auto_base64"
    AUTO_BASE64_REJECTED = "auto_base64_rejected"
    CHARSET_UNSUPPORTED = "charset_unsupported"
    CHARSET_FALLBACK = "charset_fallback"
    RAW_BODY_FALLBACK = "raw_body_fallback"
    DATICERT_INVALID = "daticert_invalid"


@dataclass(frozen=True)
class Diagnostic:
    """One advisory record: ``{stage, part_index, code, note}``."""

    stage: Stage
    part_index: int
    code: DiagnosticCode
    note: str


DiagnosticSink = Callable[[Diagnostic], None] | list[Diagnostic]


class DiagnosticCollector:
    """Append-only buffer for a single parse call.

    Every record is also forwarded to the optional caller *sink*, which may
    be a plain ``list`` (records are appended) or any callable.
    """

    def __init__(self, sink: DiagnosticSink | None = None) -> None:
        self._sink = sink
        self._records: list[Diagnostic] = []

    def emit(
        self,
        stage: Stage,
        code: DiagnosticCode,
        note: str,
        *,
        part_index: int = 0,
    ) -> Diagnostic:
        record = Diagnostic(stage=stage, part_index=part_index, code=code, note=note)
        self._records.append(record)
        if isinstance(self._sink, list):
            self._sink.append(record)
        elif self._sink is not None:
            self._sink(record)
        logger.debug(
            "mime_diagnostic",
            stage=stage.value,
            code=code.value,
            part_index=part_index,
            note=note,
        )
        return record

    @property
    def records(self) -> tuple[Diagnostic, ...]:
        return tuple(self._records)

    def codes(self) -> list[DiagnosticCode]:
        return [r.code for r in self._records]

    def __len__(self) -> int:
        return len(self._records)
