"""Umbrella MIME: raw RFC 822 bytes to plain text, cleaned HTML and attachments."""

from .charset import CharsetResolver
from .cleaner import clean_html
from .config import LoggingConfig, ParserConfig
from .diagnostics import Diagnostic, DiagnosticCode, DiagnosticCollector, Stage
from .envelope import extract_envelope
from .errors import ParseError
from .models import (
    Attachment,
    AttachmentRecord,
    ContentType,
    DecodedContent,
    DecodedMessage,
    Envelope,
    HeaderMap,
    MimePart,
    TransferEncoding,
)
from .parser import MimeParser, parse_message
from .pec import PecInfo, PecType
from .selector import BodySelector
from .transfer import TransferDecoder
from .tree import MimeTreeBuilder

__all__ = [
    "Attachment",
    "AttachmentRecord",
    "BodySelector",
    "CharsetResolver",
    "ContentType",
    "DecodedContent",
    "DecodedMessage",
    "Diagnostic",
    "DiagnosticCode",
    "DiagnosticCollector",
    "Envelope",
    "HeaderMap",
    "LoggingConfig",
    "MimeParser",
    "MimePart",
    "MimeTreeBuilder",
    "ParseError",
    "ParserConfig",
    "PecInfo",
    "PecType",
    "Stage",
    "TransferDecoder",
    "TransferEncoding",
    "clean_html",
    "extract_envelope",
    "parse_message",
]
