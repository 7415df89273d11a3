"""Envelope extraction from a message's top-level headers.

Accepts raw bytes or an already parsed :class:`HeaderMap`.  From raw bytes
only the header block is read (up to the first blank line), so this stays
O(header-size) even for multi-megabyte messages.
"""

from __future__ import annotations

import email.utils
from datetime import UTC, datetime

from .headers import decode_words
from .models import Envelope, HeaderMap
from .tree import split_message


def extract_envelope(source: bytes | HeaderMap) -> Envelope:
    """Build an :class:`Envelope`; RFC 2047 encoded words are decoded."""
    headers = source if isinstance(source, HeaderMap) else split_message(bytes(source))[0]
    date = headers.get("date", "") or ""

    return Envelope(
        message_id=(headers.get("message-id", "") or "").strip(),
        subject=decode_words(headers.get("subject")),
        from_address=decode_words(headers.get("from")),
        to_addresses=_parse_address_list(headers.get_all("to")),
        cc_addresses=_parse_address_list(headers.get_all("cc")),
        bcc_addresses=_parse_address_list(headers.get_all("bcc")),
        date=date,
        sent_at=_parse_date(date),
        in_reply_to=(headers.get("in-reply-to") or "").strip() or None,
        references=tuple(
            ref for value in headers.get_all("references") for ref in value.split() if ref
        ),
    )


def _parse_address_list(values: list[str]) -> tuple[str, ...]:
    """Parse RFC 2822 address lists into bare addresses."""
    if not values:
        return ()
    return tuple(addr for _, addr in email.utils.getaddresses(values) if addr)


def _parse_date(value: str) -> datetime | None:
    if not value:
        return None
    try:
        dt = email.utils.parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)
