"""MimeParser: raw RFC 822 bytes → :class:`DecodedMessage`.

Pipeline: header split → tree builder (boundary extraction, recursive
splitting) → per-leaf transfer + charset decoding → body selection → HTML
cleanup.  Parsing is a pure, synchronous computation with no shared mutable
state, so independent messages may be parsed concurrently.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from dataclasses import replace

import structlog

from .charset import CharsetResolver
from .cleaner import clean_html
from .config import ParserConfig
from .diagnostics import DiagnosticCode, DiagnosticCollector, DiagnosticSink, Stage
from .envelope import extract_envelope
from .errors import ParseError
from .models import DecodedMessage, MimePart
from .pec import extract_pec
from .selector import BodySelector
from .transfer import TransferDecoder
from .tree import MimeTreeBuilder

logger = structlog.get_logger()

RawInput = bytes | bytearray | memoryview


class MimeParser:
    """Stateless parser; one instance can serve any number of messages and threads."""

    def __init__(self, config: ParserConfig | None = None) -> None:
        self._config = config or ParserConfig()
        self._resolver = CharsetResolver()
        self._decoder = TransferDecoder(
            self._resolver,
            auto_base64_min_length=self._config.auto_base64_min_length,
        )
        self._builder = MimeTreeBuilder(max_depth=self._config.max_depth)
        self._selector = BodySelector(self._decoder, self._resolver)

    @property
    def config(self) -> ParserConfig:
        return self._config

    def build_tree(
        self,
        raw: RawInput,
        diagnostics: DiagnosticCollector | None = None,
    ) -> MimePart:
        """Build the part tree only, e.g. for callers that inspect structure."""
        return self._builder.build(bytes(raw), diagnostics)

    def parse(
        self,
        raw: RawInput | MimePart,
        *,
        sink: DiagnosticSink | None = None,
    ) -> DecodedMessage:
        """Decode one message.

        *raw* is the full message, or a root :class:`MimePart` already built
        by the caller.  Diagnostics go to *sink* (a list or a callable) and
        are also returned on the result.  Raises :class:`ParseError` only
        when *raw* is not a message at all.
        """
        diagnostics = DiagnosticCollector(sink)

        if isinstance(raw, MimePart):
            root = raw
        elif isinstance(raw, (bytes, bytearray, memoryview)):
            data = bytes(raw)
            if not data:
                diagnostics.emit(Stage.PARSER, DiagnosticCode.EMPTY_MESSAGE, "zero-length input")
                return DecodedMessage(diagnostics=diagnostics.records)
            root = self._builder.build(data, diagnostics)
        else:
            raise ParseError(f"expected bytes or MimePart, got {type(raw).__name__}")

        selected = self._selector.select(root, diagnostics)
        html = clean_html(selected.html) if self._config.clean_html else selected.html
        pec = (
            extract_pec(root.headers, selected.attachments, diagnostics)
            if self._config.detect_pec
            else None
        )

        result = replace(
            selected,
            html=html,
            envelope=extract_envelope(root.headers),
            pec=pec,
            diagnostics=diagnostics.records,
        )
        logger.debug(
            "mime_parsed",
            parts=sum(1 for _ in root.walk()),
            has_plain=result.plain_text is not None,
            has_html=result.html is not None,
            attachments=len(result.attachments),
            diagnostics=len(diagnostics),
        )
        return result

    async def parse_many(self, raws: Iterable[RawInput]) -> list[DecodedMessage]:
        """Parse independent messages off the event loop; results keep input order."""
        return list(
            await asyncio.gather(*(asyncio.to_thread(self.parse, raw) for raw in raws))
        )


def parse_message(
    raw: RawInput | MimePart,
    *,
    config: ParserConfig | None = None,
    sink: DiagnosticSink | None = None,
) -> DecodedMessage:
    """Functional shortcut for ``MimeParser(config).parse(raw, sink=sink)``."""
    return MimeParser(config).parse(raw, sink=sink)
