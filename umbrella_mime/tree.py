"""Multipart splitting and recursive tree construction (RFC 2046 §5.1).

A delimiter line is ``--<boundary>``, the closing delimiter
``--<boundary>--``; either may be followed by transport whitespace.  The
line break *before* a delimiter belongs to the delimiter, not to the part.
Preamble and epilogue are discarded.

Nesting is bounded by an explicit depth counter passed through the
recursion.  A multipart that is too deep, has no boundary, or whose
boundary never occurs degrades to a single ``text/plain`` leaf.
"""

from __future__ import annotations

import itertools
import re
from collections.abc import Iterator

from .diagnostics import DiagnosticCode, DiagnosticCollector, Stage
from .headers import (
    decode_words,
    extract_boundary,
    extract_content_id,
    looks_like_header_block,
    parse_content_type,
    parse_disposition,
    parse_header_block,
)
from .models import ContentType, HeaderMap, MimePart, TransferEncoding

DEFAULT_MAX_DEPTH = 10

_BLANK_LINE_RE = re.compile(rb"\r?\n\r?\n")


def split_message(raw: bytes) -> tuple[HeaderMap, bytes]:
    """Split an entity into its header map and undecoded body.

    The first blank line separates the two.  An entity that starts with a
    blank line has no headers; one without any blank line is all headers
    when its first line looks like a header, otherwise all body.
    """
    if raw.startswith(b"\r\n"):
        return HeaderMap(), raw[2:]
    if raw.startswith(b"\n"):
        return HeaderMap(), raw[1:]

    match = _BLANK_LINE_RE.search(raw)
    if match is None:
        if looks_like_header_block(raw):
            return parse_header_block(raw), b""
        return HeaderMap(), raw
    return parse_header_block(raw[: match.start()]), raw[match.end():]


def _boundary_bytes(boundary: str) -> bytes:
    try:
        return boundary.encode("ascii")
    except UnicodeEncodeError:
        return boundary.encode("utf-8")


def _strip_delimiter_newline(segment: bytes) -> bytes:
    if segment.endswith(b"\r\n"):
        return segment[:-2]
    if segment.endswith((b"\n", b"\r")):
        return segment[:-1]
    return segment


def split_multipart(body: bytes, boundary: str) -> list[bytes] | None:
    """Return the raw byte segments between delimiter lines.

    ``None`` means no delimiter line was found at all.  A missing closing
    delimiter lets the last part run to the end of the body.
    """
    delimiter = b"--" + _boundary_bytes(boundary)
    closing = delimiter + b"--"

    segments: list[bytes] = []
    found = False
    start: int | None = None
    offset = 0

    for line in body.splitlines(keepends=True):
        line_start = offset
        offset += len(line)
        marker = line.rstrip(b"\r\n").rstrip(b" \t")
        if marker != delimiter and marker != closing:
            continue
        found = True
        if start is not None:
            segments.append(_strip_delimiter_newline(body[start:line_start]))
        if marker == closing:
            start = None
            break
        start = offset

    if not found:
        return None
    if start is not None:
        segments.append(body[start:])
    return segments


class MimeTreeBuilder:
    """Build a :class:`MimePart` tree from raw message bytes."""

    def __init__(self, *, max_depth: int = DEFAULT_MAX_DEPTH) -> None:
        self._max_depth = max_depth

    @property
    def max_depth(self) -> int:
        return self._max_depth

    def build(
        self,
        raw: bytes,
        diagnostics: DiagnosticCollector | None = None,
    ) -> MimePart:
        headers, body = split_message(raw)
        return self.build_part(headers, body, diagnostics=diagnostics)

    def build_part(
        self,
        headers: HeaderMap,
        body: bytes,
        *,
        diagnostics: DiagnosticCollector | None = None,
    ) -> MimePart:
        """Build the subtree rooted at an already split header map and body."""
        return self._build(headers, body, 0, itertools.count(), diagnostics)

    def _build(
        self,
        headers: HeaderMap,
        body: bytes,
        depth: int,
        counter: Iterator[int],
        diagnostics: DiagnosticCollector | None,
    ) -> MimePart:
        index = next(counter)
        raw_content_type = headers.get("content-type")
        content_type = parse_content_type(raw_content_type)

        if not content_type.is_multipart:
            return self._leaf(headers, body, content_type, depth, index)

        if depth >= self._max_depth:
            self._note(
                diagnostics,
                DiagnosticCode.DEPTH_EXCEEDED,
                f"multipart nesting deeper than {self._max_depth}, kept as opaque body",
                index,
            )
            return self._leaf(headers, body, content_type.as_text_plain(), depth, index)

        boundary = extract_boundary(raw_content_type)
        if boundary is None:
            self._note(
                diagnostics,
                DiagnosticCode.BOUNDARY_MISSING,
                f"{content_type.mime_type} without boundary, treated as opaque",
                index,
            )
            return self._leaf(headers, body, content_type.as_text_plain(), depth, index)

        segments = split_multipart(body, boundary)
        if not segments:
            self._note(
                diagnostics,
                DiagnosticCode.BOUNDARY_NOT_FOUND,
                "boundary not found, treated as opaque"
                if segments is None
                else "multipart holds no parts, treated as opaque",
                index,
            )
            return self._leaf(headers, body, content_type.as_text_plain(), depth, index)

        children = []
        for segment in segments:
            child_headers, child_body = split_message(segment)
            children.append(self._build(child_headers, child_body, depth + 1, counter, diagnostics))

        return MimePart(
            headers=headers,
            raw_body=body,
            content_type=content_type,
            transfer_encoding=TransferEncoding.from_header(headers.get("content-transfer-encoding")),
            children=tuple(children),
            depth=depth,
            index=index,
        )

    @staticmethod
    def _leaf(
        headers: HeaderMap,
        body: bytes,
        content_type: ContentType,
        depth: int,
        index: int,
    ) -> MimePart:
        disposition, disposition_params = parse_disposition(headers.get("content-disposition"))
        filename = decode_words(
            disposition_params.get("filename") or content_type.params.get("name")
        ).strip()
        return MimePart(
            headers=headers,
            raw_body=body,
            content_type=content_type,
            transfer_encoding=TransferEncoding.from_header(headers.get("content-transfer-encoding")),
            disposition=disposition,
            content_id=extract_content_id(headers.get("content-id")),
            filename=filename or None,
            depth=depth,
            index=index,
        )

    @staticmethod
    def _note(
        diagnostics: DiagnosticCollector | None,
        code: DiagnosticCode,
        note: str,
        part_index: int,
    ) -> None:
        if diagnostics is not None:
            diagnostics.emit(Stage.TREE, code, note, part_index=part_index)
