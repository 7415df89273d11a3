"""Value types for the MIME pipeline.

Everything here is created fresh per parse call and never mutated after
construction.
"""

from __future__ import annotations

import hashlib
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field

from .diagnostics import Diagnostic

if TYPE_CHECKING:
    from .pec import PecInfo


class TransferEncoding(str, Enum):
    """Declared ``Content-Transfer-Encoding`` of a part."""

    SEVEN_BIT = "7bit"
    EIGHT_BIT = "8bit"
    BINARY = "binary"
    BASE64 = "base64"
    QUOTED_PRINTABLE = "quoted-printable"
    UNKNOWN = "unknown"

    @classmethod
    def from_header(cls, value: str | None) -> TransferEncoding:
        """Map a raw header value to a member; absent means 7bit."""
        if value is None:
            return cls.SEVEN_BIT
        token = value.strip().strip("\"'").lower()
        if not token:
            return cls.SEVEN_BIT
        try:
            return cls(token)
        except ValueError:
            return cls.UNKNOWN


class HeaderMap:
    """Ordered, case-insensitive, multi-valued header mapping.

    Names are stored lower-cased; values keep their original casing.
    """

    __slots__ = ("_items",)

    def __init__(self, items: Iterable[tuple[str, str]] = ()) -> None:
        self._items: tuple[tuple[str, str], ...] = tuple(
            (name.strip().lower(), value) for name, value in items
        )

    def get(self, name: str, default: str | None = None) -> str | None:
        key = name.lower()
        for item_name, value in self._items:
            if item_name == key:
                return value
        return default

    def get_all(self, name: str) -> list[str]:
        key = name.lower()
        return [value for item_name, value in self._items if item_name == key]

    def items(self) -> list[tuple[str, str]]:
        return list(self._items)

    def to_dict(self) -> dict[str, list[str]]:
        out: dict[str, list[str]] = {}
        for name, value in self._items:
            out.setdefault(name, []).append(value)
        return out

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.get(name) is not None

    def __iter__(self) -> Iterator[str]:
        return iter(name for name, _ in self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, HeaderMap):
            return NotImplemented
        return self._items == other._items

    def __hash__(self) -> int:
        return hash(self._items)

    def __repr__(self) -> str:
        return f"HeaderMap({list(self._items)!r})"


@dataclass(frozen=True)
class ContentType:
    """Parsed ``Content-Type``: main type, subtype and lower-cased parameters."""

    maintype: str = "text"
    subtype: str = "plain"
    # Left out of the hash so parts stay hashable; equality still compares it.
    params: dict[str, str] = field(
        default_factory=lambda: {"charset": "us-ascii"}, hash=False
    )

    @property
    def mime_type(self) -> str:
        return f"{self.maintype}/{self.subtype}"

    @property
    def charset(self) -> str | None:
        value = (self.params.get("charset") or "").strip()
        return value or None

    @property
    def is_multipart(self) -> bool:
        return self.maintype == "multipart"

    @property
    def is_text(self) -> bool:
        return self.maintype == "text"

    @property
    def is_html(self) -> bool:
        return self.maintype == "text" and self.subtype == "html"

    def as_text_plain(self) -> ContentType:
        """Degraded form used when a multipart body cannot be split."""
        params = {k: v for k, v in self.params.items() if k != "boundary"}
        params.setdefault("charset", "us-ascii")
        return ContentType("text", "plain", params)


@dataclass(frozen=True)
class MimePart:
    """A node of the message tree.

    Containers (``multipart/*``) carry ``children``; leaves carry the
    undecoded ``raw_body``.  Containers keep their undecoded multipart body
    too, which is what the raw-body fallback reads for the root.
    """

    headers: HeaderMap
    raw_body: bytes
    content_type: ContentType = field(default_factory=ContentType)
    transfer_encoding: TransferEncoding = TransferEncoding.SEVEN_BIT
    children: tuple[MimePart, ...] = ()
    disposition: str | None = None
    content_id: str | None = None
    filename: str | None = None
    depth: int = 0
    index: int = 0

    @property
    def mime_type(self) -> str:
        return self.content_type.mime_type

    @property
    def is_container(self) -> bool:
        return self.content_type.is_multipart and bool(self.children)

    @property
    def is_leaf(self) -> bool:
        return not self.children

    @property
    def is_inline(self) -> bool:
        return self.disposition == "inline"

    @property
    def is_attachment(self) -> bool:
        return self.disposition == "attachment"

    def walk(self) -> Iterator[MimePart]:
        """Depth-first, sibling order preserved, self first."""
        yield self
        for child in self.children:
            yield from child.walk()

    def leaves(self) -> Iterator[MimePart]:
        return (part for part in self.walk() if part.is_leaf)


@dataclass(frozen=True)
class DecodedContent:
    """Result of decoding one leaf part to text."""

    text: str | None
    encoding_used: TransferEncoding
    charset_used: str
    bytes_consumed: int
    mime_type: str = "text/plain"


class AttachmentRecord(BaseModel):
    """Attachment metadata kept by the persistence layer once bytes are stored."""

    filename: str = Field(description="Original or synthesized filename")
    mime_type: str = Field(description="MIME type (e.g. application/pdf)")
    size: int = Field(description="Decoded payload size in bytes")
    sha256: str = Field(description="Hex SHA-256 of the decoded payload")
    content_id: str | None = Field(
        default=None,
        description="Content-ID without angle brackets, for cid: references",
    )
    is_inline: bool = Field(default=False, description="Rendered inside the HTML body")


@dataclass(frozen=True)
class Attachment:
    """A decoded attachment.  The caller owns ``payload`` once returned."""

    filename: str
    mime_type: str
    payload: bytes
    content_id: str | None = None
    is_inline: bool = False

    @property
    def size(self) -> int:
        return len(self.payload)

    @property
    def sha256(self) -> str:
        return hashlib.sha256(self.payload).hexdigest()

    def to_record(self) -> AttachmentRecord:
        return AttachmentRecord(
            filename=self.filename,
            mime_type=self.mime_type,
            size=self.size,
            sha256=self.sha256,
            content_id=self.content_id,
            is_inline=self.is_inline,
        )


@dataclass(frozen=True)
class Envelope:
    """Decoded top-level addressing headers."""

    message_id: str = ""
    subject: str = ""
    from_address: str = ""
    to_addresses: tuple[str, ...] = ()
    cc_addresses: tuple[str, ...] = ()
    bcc_addresses: tuple[str, ...] = ()
    date: str = ""
    sent_at: datetime | None = None
    in_reply_to: str | None = None
    references: tuple[str, ...] = ()


@dataclass(frozen=True)
class DecodedMessage:
    """Final parser output."""

    plain_text: str | None = None
    html: str | None = None
    attachments: tuple[Attachment, ...] = ()
    envelope: Envelope = field(default_factory=Envelope)
    diagnostics: tuple[Diagnostic, ...] = ()
    pec: PecInfo | None = None

    @property
    def preferred_body(self) -> str | None:
        """HTML when present, plain text otherwise."""
        return self.html if self.html is not None else self.plain_text

    @property
    def inline_attachments(self) -> tuple[Attachment, ...]:
        return tuple(a for a in self.attachments if a.is_inline)

    @property
    def is_empty(self) -> bool:
        return self.plain_text is None and self.html is None and not self.attachments

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready summary; attachment bytes are reduced to metadata."""
        envelope = self.envelope
        return {
            "envelope": {
                "message_id": envelope.message_id,
                "subject": envelope.subject,
                "from": envelope.from_address,
                "to": list(envelope.to_addresses),
                "cc": list(envelope.cc_addresses),
                "bcc": list(envelope.bcc_addresses),
                "date": envelope.date,
                "sent_at": envelope.sent_at.isoformat() if envelope.sent_at else None,
            },
            "plain_text": self.plain_text,
            "html": self.html,
            "attachments": [a.to_record().model_dump(mode="json") for a in self.attachments],
            "diagnostics": [
                {
                    "stage": d.stage.value,
                    "part_index": d.part_index,
                    "code": d.code.value,
                    "note": d.note,
                }
                for d in self.diagnostics
            ],
            "pec": self.pec.type.value if self.pec is not None else None,
        }
