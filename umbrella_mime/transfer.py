"""Transfer-encoding decoding (RFC 2045 §6).

Decoding never raises: on failure the original bytes come back and a
``DECODE_FAILURE`` diagnostic is recorded, so the caller always has
*something* to charset-decode and show.
"""

from __future__ import annotations

import binascii
import re
import unicodedata

from .charset import CharsetResolver, try_decode
from .diagnostics import DiagnosticCode, DiagnosticCollector, Stage
from .models import DecodedContent, MimePart, TransferEncoding

_BASE64_TEXT_RE = re.compile(r"[A-Za-z0-9+/=\s]+")
_BASE64_NOISE_RE = re.compile(rb"[^A-Za-z0-9+/=]")
_QP_ESCAPE_RE = re.compile(rb"=(?:[0-9A-Fa-f]{2}|\r\n|\n|\r)")
_QP_DECODE_RE = re.compile(rb"=(?:([0-9A-Fa-f]{2})|\r\n|\n|\r)")

AUTO_BASE64_MIN_LENGTH = 100


def looks_like_base64(text: str, min_length: int = AUTO_BASE64_MIN_LENGTH) -> bool:
    """Conservative test for undeclared base64 content.

    All three must hold: no ``<`` or ``>`` anywhere, longer than
    *min_length* characters, and nothing outside ``[A-Za-z0-9+/=\\s]``.
    HTML and ordinary prose fail at least one of them.

    Passing only nominates the body.  :meth:`TransferDecoder.decode_text`
    keeps the decoded bytes only when they read as text in the declared
    charset or UTF-8; a binary result leaves the body as it arrived and
    records ``AUTO_BASE64_REJECTED``.
    """
    if "<" in text or ">" in text:
        return False
    if len(text) <= min_length:
        return False
    return _BASE64_TEXT_RE.fullmatch(text) is not None


def needs_qp_decoding(payload: bytes) -> bool:
    """True when *payload* holds ``=XX`` escapes or soft line breaks."""
    return _QP_ESCAPE_RE.search(payload) is not None


def _is_text(text: str | None) -> bool:
    if text is None:
        return False
    return not any(
        unicodedata.category(ch) == "Cc" and ch not in "\t\n\r\f\v" for ch in text
    )


def _qp_replace(match: re.Match[bytes]) -> bytes:
    hex_digits = match.group(1)
    if hex_digits is None:
        return b""
    return bytes((int(hex_digits, 16),))


class TransferDecoder:
    """Decode part bodies according to their declared or inferred encoding."""

    def __init__(
        self,
        resolver: CharsetResolver | None = None,
        *,
        auto_base64_min_length: int = AUTO_BASE64_MIN_LENGTH,
    ) -> None:
        self._resolver = resolver or CharsetResolver()
        self._auto_base64_min_length = auto_base64_min_length

    # ------------------------------------------------------------------
    # Bytes → bytes
    # ------------------------------------------------------------------

    def decode(
        self,
        encoding: TransferEncoding,
        payload: bytes,
        *,
        diagnostics: DiagnosticCollector | None = None,
        part_index: int = 0,
    ) -> bytes:
        if encoding is TransferEncoding.BASE64:
            return self.decode_base64(payload, diagnostics=diagnostics, part_index=part_index)
        if encoding is TransferEncoding.QUOTED_PRINTABLE:
            return self.decode_quoted_printable(
                payload, diagnostics=diagnostics, part_index=part_index
            )
        if encoding is TransferEncoding.UNKNOWN and diagnostics is not None:
            diagnostics.emit(
                Stage.TRANSFER,
                DiagnosticCode.UNKNOWN_ENCODING,
                "unknown transfer encoding, passed through",
                part_index=part_index,
            )
        return payload

    def decode_base64(
        self,
        payload: bytes,
        *,
        diagnostics: DiagnosticCollector | None = None,
        part_index: int = 0,
    ) -> bytes:
        """Lenient base64: whitespace and stray symbols dropped, odd tails repaired.

        A dangling single symbol carries no data and is truncated; a
        2- or 3-symbol tail is padded so its bytes are not lost.
        """
        cleaned = _BASE64_NOISE_RE.sub(b"", payload)
        remainder = len(cleaned) % 4
        if remainder == 1:
            cleaned = cleaned[:-1]
            self._note(
                diagnostics,
                DiagnosticCode.BASE64_TRUNCATED,
                "truncated incomplete trailing base64 group",
                part_index,
            )
        elif remainder:
            cleaned = cleaned.rstrip(b"=")
            if len(cleaned) % 4 == 1:
                cleaned = cleaned[:-1]
            cleaned += b"=" * (-len(cleaned) % 4)
            self._note(
                diagnostics,
                DiagnosticCode.BASE64_PADDED,
                "padded incomplete trailing base64 group",
                part_index,
            )

        try:
            return binascii.a2b_base64(cleaned)
        except binascii.Error as exc:
            self._note(
                diagnostics,
                DiagnosticCode.DECODE_FAILURE,
                f"base64 decode failed: {exc}",
                part_index,
            )
            return payload

    def decode_quoted_printable(
        self,
        payload: bytes,
        *,
        diagnostics: DiagnosticCollector | None = None,
        part_index: int = 0,
    ) -> bytes:
        """Decode ``=XX`` escapes and soft line breaks in one pass.

        Content without any escape is returned untouched, which protects
        plain bodies mislabelled as quoted-printable.  Malformed escapes
        (``=ZZ``) are kept verbatim.
        """
        if not needs_qp_decoding(payload):
            self._note(
                diagnostics,
                DiagnosticCode.QP_NOT_NEEDED,
                "no quoted-printable escapes, passed through",
                part_index,
            )
            return payload
        return _QP_DECODE_RE.sub(_qp_replace, payload)

    # ------------------------------------------------------------------
    # Leaf part → text
    # ------------------------------------------------------------------

    def decode_text(
        self,
        part: MimePart,
        *,
        diagnostics: DiagnosticCollector | None = None,
    ) -> DecodedContent:
        """Transfer-decode and charset-decode a leaf into :class:`DecodedContent`."""
        index = part.index
        encoding_used = part.transfer_encoding
        declared = part.content_type.charset
        data = self.decode(encoding_used, part.raw_body, diagnostics=diagnostics, part_index=index)

        if encoding_used is not TransferEncoding.BASE64 and not part.content_type.is_html:
            auto = self._auto_base64(data, declared, diagnostics=diagnostics, part_index=index)
            if auto is not None:
                data = auto
                encoding_used = TransferEncoding.BASE64

        text, charset_used = self._resolver.decode(
            data, declared, diagnostics=diagnostics, part_index=index
        )
        return DecodedContent(
            text=text,
            encoding_used=encoding_used,
            charset_used=charset_used,
            bytes_consumed=len(part.raw_body),
            mime_type=part.mime_type,
        )

    def _auto_base64(
        self,
        data: bytes,
        declared: str | None,
        *,
        diagnostics: DiagnosticCollector | None,
        part_index: int,
    ) -> bytes | None:
        # The predicate's alphabet is pure ASCII, so latin-1 is a lossless view.
        if not looks_like_base64(data.decode("latin-1"), self._auto_base64_min_length):
            return None
        decoded = self.decode_base64(data, part_index=part_index)
        if decoded is data or not decoded:
            return None
        if not any(_is_text(try_decode(decoded, charset)) for charset in (declared, "utf-8")):
            self._note(
                diagnostics,
                DiagnosticCode.AUTO_BASE64_REJECTED,
                "base64-looking content did not decode to text, left as is",
                part_index,
            )
            return None
        self._note(
            diagnostics,
            DiagnosticCode.AUTO_BASE64,
            "auto-detected base64",
            part_index,
        )
        return decoded

    @staticmethod
    def _note(
        diagnostics: DiagnosticCollector | None,
        code: DiagnosticCode,
        note: str,
        part_index: int,
    ) -> None:
        if diagnostics is not None:
            diagnostics.emit(Stage.TRANSFER, code, note, part_index=part_index)
