"""Header parsing: header blocks, structured parameters, and boundary extraction.

Only as much of RFC 5322/2045/2231 as reading ``Content-Type``,
``Content-Transfer-Encoding``, ``Content-Disposition`` and the envelope
headers requires.  Nothing here raises on malformed input.
"""

from __future__ import annotations

import re
from email.errors import HeaderParseError
from email.header import decode_header, make_header
from urllib.parse import unquote_to_bytes

from .charset import normalize_charset
from .models import ContentType, HeaderMap

_LINE_SPLIT_RE = re.compile(r"\r\n|\n|\r")
_HEADER_NAME_RE = re.compile(r"^[!-9;-~]+$")
_BOUNDARY_PARAM_RE = re.compile(r"(?:^|;)\s*boundary\s*=\s*", re.IGNORECASE)
_RFC2231_KEY_RE = re.compile(r"^(?P<name>[^*]+)\*(?:(?P<section>\d+)(?P<encoded>\*)?)?$")


def _decode_header_bytes(block: bytes) -> str:
    try:
        return block.decode("utf-8")
    except UnicodeDecodeError:
        return block.decode("latin-1")


def parse_header_block(block: bytes | str) -> HeaderMap:
    """Parse a raw header block into a :class:`HeaderMap`.

    Folded continuation lines are joined with a single space.  Lines without
    a usable ``Name:`` prefix are skipped.
    """
    text = block if isinstance(block, str) else _decode_header_bytes(block)
    items: list[tuple[str, str]] = []
    name: str | None = None
    chunks: list[str] = []

    for line in _LINE_SPLIT_RE.split(text):
        if not line.strip():
            continue
        if line[0] in " \t":
            if name is not None:
                chunks.append(line.strip())
            continue
        if name is not None:
            items.append((name, " ".join(chunks)))
            name, chunks = None, []
        candidate, sep, value = line.partition(":")
        candidate = candidate.strip()
        if not sep or not _HEADER_NAME_RE.match(candidate):
            continue
        name = candidate
        chunks = [value.strip()]

    if name is not None:
        items.append((name, " ".join(chunks)))
    return HeaderMap(items)


def looks_like_header_block(data: bytes) -> bool:
    """True when the first line of *data* is a ``Name: value`` header."""
    first_line = _LINE_SPLIT_RE.split(_decode_header_bytes(data[:1024]), maxsplit=1)[0]
    candidate, sep, _ = first_line.partition(":")
    return bool(sep) and bool(_HEADER_NAME_RE.match(candidate.strip()))


# ------------------------------------------------------------------
# Encoded words (RFC 2047)
# ------------------------------------------------------------------


def decode_words(value: str | None) -> str:
    """Decode RFC 2047 encoded-words (``=?utf-8?B?...?=``); plain values pass through."""
    if not value:
        return ""
    if "=?" not in value:
        return value
    try:
        return str(make_header(decode_header(value)))
    except (HeaderParseError, LookupError, UnicodeDecodeError, ValueError):
        pass

    # One bad word should not cost the whole header: decode chunk by chunk.
    try:
        chunks = decode_header(value)
    except HeaderParseError:
        return value
    out: list[str] = []
    for chunk, charset in chunks:
        if isinstance(chunk, str):
            out.append(chunk)
            continue
        if charset is None:
            # decode_header hands back unencoded runs as raw-unicode-escape
            out.append(chunk.decode("raw-unicode-escape", errors="replace"))
            continue
        codec = normalize_charset(charset) or "utf-8"
        try:
            out.append(chunk.decode(codec, errors="replace"))
        except LookupError:
            out.append(chunk.decode("latin-1"))
    return "".join(out)


# ------------------------------------------------------------------
# Structured parameters
# ------------------------------------------------------------------


def _split_segments(value: str) -> list[str]:
    """Split on ``;`` outside double quotes."""
    segments: list[str] = []
    buf: list[str] = []
    in_quotes = False
    escaped = False
    for ch in value:
        if escaped:
            buf.append(ch)
            escaped = False
        elif ch == "\\" and in_quotes:
            buf.append(ch)
            escaped = True
        elif ch == '"':
            buf.append(ch)
            in_quotes = not in_quotes
        elif ch == ";" and not in_quotes:
            segments.append("".join(buf))
            buf = []
        else:
            buf.append(ch)
    segments.append("".join(buf))
    return segments


def _unquote(value: str) -> str:
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] == '"':
        return re.sub(r"\\(.)", r"\1", value[1:-1])
    return value


def _collapse_rfc2231(
    sections: list[tuple[int, bool, str]],
) -> str:
    sections.sort(key=lambda s: s[0])
    charset: str | None = None
    raw = bytearray()
    for position, (_, encoded, value) in enumerate(sections):
        if encoded and position == 0 and value.count("'") >= 2:
            charset, _lang, value = value.split("'", 2)
        raw += unquote_to_bytes(value) if encoded else value.encode("utf-8")
    codec = normalize_charset(charset) or "utf-8"
    try:
        return bytes(raw).decode(codec)
    except (UnicodeDecodeError, LookupError):
        return bytes(raw).decode("latin-1")


def parse_params(value: str | None) -> tuple[str, dict[str, str]]:
    """Split a structured header into its leading token and parameters.

    Parameter names are lower-cased.  RFC 2231 extended values
    (``filename*=utf-8''na%C3%AFve.txt`` and ``name*0*=`` continuations)
    are collapsed and take precedence over plain ones.
    """
    if not value:
        return "", {}
    head, *rest = _split_segments(value)
    plain: dict[str, str] = {}
    extended: dict[str, list[tuple[int, bool, str]]] = {}

    for segment in rest:
        key, sep, raw_value = segment.partition("=")
        key = key.strip().lower()
        if not sep or not key:
            continue
        match = _RFC2231_KEY_RE.match(key)
        if match is None:
            plain.setdefault(key, _unquote(raw_value))
            continue
        section = match.group("section")
        encoded = section is None or match.group("encoded") is not None
        extended.setdefault(match.group("name"), []).append(
            (int(section or 0), encoded, _unquote(raw_value))
        )

    params = dict(plain)
    for name, sections in extended.items():
        params[name] = _collapse_rfc2231(sections)
    return head.strip(), params


def parse_content_type(value: str | None) -> ContentType:
    """Parse ``Content-Type``; absent or unusable values become ``text/plain``."""
    if not value or not value.strip():
        return ContentType()
    head, params = parse_params(value)
    maintype, sep, subtype = head.partition("/")
    maintype = maintype.strip().lower()
    subtype = subtype.strip().lower()
    if not sep or not maintype or not subtype:
        params.setdefault("charset", "us-ascii")
        return ContentType("text", "plain", params)
    return ContentType(maintype, subtype, params)


def parse_disposition(value: str | None) -> tuple[str | None, dict[str, str]]:
    """Parse ``Content-Disposition`` into ``("inline" | "attachment" | None, params)``.

    Unrecognized disposition types are treated as ``attachment`` (RFC 2183).
    """
    if not value or not value.strip():
        return None, {}
    head, params = parse_params(value)
    token = head.strip().lower()
    if not token:
        return None, params
    if token != "inline":
        token = "attachment"
    return token, params


def extract_content_id(value: str | None) -> str | None:
    if not value:
        return None
    cid = value.strip().strip("<>").strip()
    return cid or None


# ------------------------------------------------------------------
# Boundary
# ------------------------------------------------------------------


def extract_boundary(content_type: str | None) -> str | None:
    """Extract the ``boundary`` parameter from a raw ``Content-Type`` value.

    Quoted values (``"`` or ``'``) return the interior up to the matching
    quote, so boundaries may contain ``;`` or whitespace.  Unquoted values
    run to the next ``;``.  Absent, empty and whitespace-only boundaries
    return ``None``: the caller treats the part as an opaque body.

    >>> extract_boundary('multipart/mixed; boundary="----=_Part_123"')
    '----=_Part_123'
    >>> extract_boundary("multipart/mixed; boundary=----=_Part_123;charset=utf-8")
    '----=_Part_123'
    """
    if not content_type:
        return None
    match = _BOUNDARY_PARAM_RE.search(content_type)
    if match is None:
        return None
    rest = content_type[match.end():]

    if rest[:1] in ('"', "'"):
        quote = rest[0]
        end = rest.find(quote, 1)
        value = rest[1:end] if end != -1 else rest[1:]
    else:
        value = rest.split(";", 1)[0].rstrip()

    if not value.strip():
        return None
    return value
