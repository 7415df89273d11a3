"""PEC (Posta Elettronica Certificata) detection.

Italian certified-mail providers wrap every message in a signed envelope
carrying ``X-Ricevuta`` / ``X-Trasporto`` style headers, a ``daticert.xml``
attachment describing the transmission and, for transported messages, the
original message as ``postacert.eml``.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

import structlog

from .diagnostics import DiagnosticCode, DiagnosticCollector, Stage
from .headers import decode_words
from .models import Attachment, HeaderMap

logger = structlog.get_logger()

PEC_HEADERS = (
    "x-ricevuta",
    "x-tipo-ricevuta",
    "x-tiporicevuta",
    "x-verificasicurezza",
    "x-trasporto",
)
DATICERT_FILENAME = "daticert.xml"
POSTACERT_FILENAME = "postacert.eml"


class PecType(str, Enum):
    STANDARD = "standard"
    RECEIPT = "receipt"
    DELIVERY = "delivery"
    ERROR = "error"
    ANOMALY = "anomaly"


@dataclass(frozen=True)
class DaticertData:
    """Fields of ``daticert.xml``."""

    kind: str | None = None
    sender: str | None = None
    recipients: tuple[str, ...] = ()
    subject: str | None = None
    provider: str | None = None
    sent_on: str | None = None
    identifier: str | None = None
    msgid: str | None = None


@dataclass(frozen=True)
class PecInfo:
    type: PecType
    receipt_type: str | None = None
    receipt_date: datetime | None = None
    daticert: DaticertData | None = None
    has_postacert: bool = False
    transport: str | None = None
    verification: str | None = None


def _find_attachment(attachments: Sequence[Attachment], name: str) -> Attachment | None:
    for attachment in attachments:
        if attachment.filename.lower() == name:
            return attachment
    return None


def is_pec_message(headers: HeaderMap, attachments: Sequence[Attachment]) -> bool:
    if any(name in headers for name in PEC_HEADERS):
        return True
    return _find_attachment(attachments, DATICERT_FILENAME) is not None


def detect_pec_type(headers: HeaderMap) -> PecType:
    ricevuta = (headers.get("x-ricevuta") or "").lower()
    if "accettazione" in ricevuta:
        return PecType.RECEIPT
    if "errore" in ricevuta or "mancata-consegna" in ricevuta:
        return PecType.ERROR
    if "consegna" in ricevuta:
        return PecType.DELIVERY

    tipo = (headers.get("x-tipo-ricevuta") or headers.get("x-tiporicevuta") or "").lower()
    if "accettazione" in tipo or "presa-in-carico" in tipo:
        return PecType.RECEIPT
    if "errore-consegna" in tipo:
        return PecType.ERROR
    if "consegna" in tipo:
        return PecType.DELIVERY
    if "virus" in tipo:
        return PecType.ANOMALY

    subject = decode_words(headers.get("subject")).lower()
    if "accettazione" in subject:
        return PecType.RECEIPT
    if "errore" in subject or "mancata consegna" in subject:
        return PecType.ERROR
    if "consegna" in subject:
        return PecType.DELIVERY
    return PecType.STANDARD


def _text(root: ET.Element, path: str) -> str | None:
    node = root.find(path)
    if node is None or node.text is None:
        return None
    return node.text.strip() or None


def parse_daticert(payload: bytes) -> DaticertData | None:
    """Parse ``daticert.xml``; ``None`` when it is not well-formed XML."""
    try:
        root = ET.fromstring(payload)
    except ET.ParseError as exc:
        logger.warning("pec_daticert_invalid", error=str(exc))
        return None

    day = _text(root, ".//data/giorno")
    hour = _text(root, ".//data/ora")
    sent_on = " ".join(p for p in (day, hour) if p) or None
    recipients = tuple(
        node.text.strip() for node in root.iter("destinatari") if node.text and node.text.strip()
    )
    return DaticertData(
        kind=root.get("tipo"),
        sender=_text(root, ".//mittente"),
        recipients=recipients,
        subject=_text(root, ".//oggetto"),
        provider=_text(root, ".//gestore-emittente"),
        sent_on=sent_on,
        identifier=_text(root, ".//identificativo"),
        msgid=_text(root, ".//msgid"),
    )


def _parse_receipt_date(value: str | None) -> datetime | None:
    # "gg/mm/aaaa hh:mm:ss"
    if not value:
        return None
    try:
        return datetime.strptime(value.strip(), "%d/%m/%Y %H:%M:%S")
    except ValueError:
        return None


def extract_pec(
    headers: HeaderMap,
    attachments: Sequence[Attachment],
    diagnostics: DiagnosticCollector | None = None,
) -> PecInfo | None:
    """Return :class:`PecInfo` for certified mail, ``None`` for ordinary messages."""
    if not is_pec_message(headers, attachments):
        return None

    daticert = None
    daticert_attachment = _find_attachment(attachments, DATICERT_FILENAME)
    if daticert_attachment is not None:
        daticert = parse_daticert(daticert_attachment.payload)
        if daticert is None and diagnostics is not None:
            diagnostics.emit(
                Stage.PEC,
                DiagnosticCode.DATICERT_INVALID,
                "daticert.xml is not well-formed",
            )

    return PecInfo(
        type=detect_pec_type(headers),
        receipt_type=headers.get("x-tipo-ricevuta") or headers.get("x-tiporicevuta"),
        receipt_date=_parse_receipt_date(headers.get("x-data-ricevuta")),
        daticert=daticert,
        has_postacert=_find_attachment(attachments, POSTACERT_FILENAME) is not None,
        transport=headers.get("x-trasporto"),
        verification=headers.get("x-verificasicurezza"),
    )
