"""Charset resolution with a deterministic fallback chain.

Servers frequently mislabel or omit the charset.  Rendering garbled text is
better than rendering nothing, so decoding always ends in Latin-1, which maps
every byte to a code point and cannot fail.

UTF-8 is always tried first, so a UTF-8 body labelled ``iso-8859-1`` still
reads correctly.  Chain for a declared charset ``X``: ``utf-8``, then ``X``,
then ``latin-1`` (duplicates removed).  Without a declaration the middle step
is skipped.
"""

from __future__ import annotations

import codecs
from collections.abc import Callable

from .diagnostics import DiagnosticCode, DiagnosticCollector, Stage

UTF_8 = codecs.lookup("utf-8").name
LATIN_1 = codecs.lookup("latin-1").name

# Labels seen in the wild that Python's codec registry does not know, or
# knows under a narrower table than mail clients actually use.
_MAIL_ALIASES: dict[str, str] = {
    "x-unknown": "latin-1",
    "unknown-8bit": "latin-1",
    "x-user-defined": "latin-1",
    "unicode-1-1-utf-7": "utf-7",
    "ks_c_5601-1987": "cp949",
    "gb2312": "gb18030",
    "gbk": "gb18030",
    "iso-8859-8-i": "iso-8859-8",
    "windows-874": "cp874",
    "x-mac-roman": "mac-roman",
}


def normalize_charset(name: str | None) -> str | None:
    """Return Python's canonical codec name for *name*, or ``None``.

    >>> normalize_charset("UTF8")
    'utf-8'
    >>> normalize_charset("windows-1252")
    'cp1252'
    """
    if not name:
        return None
    token = name.strip().strip("\"'").lower()
    if not token:
        return None
    token = _MAIL_ALIASES.get(token, token)
    try:
        info = codecs.lookup(token)
    except LookupError:
        return None
    # Bytes-to-bytes codecs (base64_codec, zlib_codec, ...) are not charsets.
    if not getattr(info, "_is_text_encoding", True):
        return None
    return info.name


def try_decode(payload: bytes, charset: str | None) -> str | None:
    """Strictly decode *payload*; ``None`` when the bytes do not fit."""
    codec = normalize_charset(charset)
    if codec is None:
        return None
    try:
        return payload.decode(codec)
    except (UnicodeDecodeError, LookupError):
        return None


class CharsetResolver:
    """Maps declared charset names to decoders and runs the fallback chain."""

    def resolve(self, name: str | None) -> Callable[[bytes], str] | None:
        """Return a strict ``bytes -> str`` decoder for *name*, if Python has one."""
        codec = normalize_charset(name)
        if codec is None:
            return None

        def _decode(payload: bytes) -> str:
            return payload.decode(codec)

        return _decode

    def candidates(self, declared: str | None) -> list[str]:
        chain: list[str] = []
        codec = normalize_charset(declared)
        for candidate in (UTF_8, codec, LATIN_1):
            if candidate is not None and candidate not in chain:
                chain.append(candidate)
        return chain

    def decode(
        self,
        payload: bytes,
        declared: str | None,
        *,
        diagnostics: DiagnosticCollector | None = None,
        part_index: int = 0,
    ) -> tuple[str, str]:
        """Decode *payload*, returning ``(text, charset_used)``."""
        if declared and normalize_charset(declared) is None and diagnostics is not None:
            diagnostics.emit(
                Stage.CHARSET,
                DiagnosticCode.CHARSET_UNSUPPORTED,
                f"unknown charset {declared!r}",
                part_index=part_index,
            )

        chain = self.candidates(declared)
        for position, codec in enumerate(chain):
            if codec == LATIN_1:
                text = payload.decode(LATIN_1)
            else:
                try:
                    text = payload.decode(codec)
                except (UnicodeDecodeError, LookupError):
                    continue
            if position > 0 and diagnostics is not None:
                diagnostics.emit(
                    Stage.CHARSET,
                    DiagnosticCode.CHARSET_FALLBACK,
                    f"charset fallback to {codec}",
                    part_index=part_index,
                )
            return text, codec
        return payload.decode(LATIN_1), LATIN_1
