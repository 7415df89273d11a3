"""Shared test fixtures for the MIME decoder test suite."""

from __future__ import annotations

from email import encoders
from email.mime.base import MIMEBase
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

import pytest

from umbrella_mime.config import ParserConfig
from umbrella_mime.diagnostics import DiagnosticCollector
from umbrella_mime.parser import MimeParser


@pytest.fixture
def parser_config() -> ParserConfig:
    return ParserConfig(
        max_depth=10,
        auto_base64_min_length=100,
        clean_html=True,
        detect_pec=True,
    )


@pytest.fixture
def parser(parser_config: ParserConfig) -> MimeParser:
    return MimeParser(parser_config)


@pytest.fixture
def diagnostics() -> DiagnosticCollector:
    return DiagnosticCollector()


# ------------------------------------------------------------------
# Sample EML builders
# ------------------------------------------------------------------


def _build_plain_email(
    *,
    subject: str = "Test Subject",
    from_addr: str = "sender@example.com",
    to_addr: str = "recipient@example.com",
    body: str = "Hello, World!",
    message_id: str = "<test-001@example.com>",
    cc: str | None = None,
    bcc: str | None = None,
) -> bytes:
    """Build a simple plain-text email as raw bytes."""
    msg = MIMEText(body, "plain")
    msg["Subject"] = subject
    msg["From"] = from_addr
    msg["To"] = to_addr
    msg["Message-ID"] = message_id
    msg["Date"] = "Mon, 01 Jun 2025 12:00:00 +0000"
    if cc:
        msg["Cc"] = cc
    if bcc:
        msg["Bcc"] = bcc
    return msg.as_bytes()


def _build_html_email(*, body_html: str = "<p>Hello</p>") -> bytes:
    msg = MIMEText(body_html, "html")
    msg["Subject"] = "HTML Email"
    msg["From"] = "sender@example.com"
    msg["To"] = "recipient@example.com"
    msg["Message-ID"] = "<html-001@example.com>"
    msg["Date"] = "Mon, 01 Jun 2025 12:00:00 +0000"
    return msg.as_bytes()


def _build_multipart_email(
    *,
    body_text: str = "Plain body",
    body_html: str = "<p>HTML body</p>",
    attachments: list[tuple[str, str, bytes]] | None = None,
    inline_images: list[tuple[str, bytes]] | None = None,
) -> bytes:
    """Build a multipart email with text, HTML, and optional attachments.

    *inline_images* are ``(content_id, payload)`` pairs attached as
    ``image/png`` with a ``Content-ID`` and ``inline`` disposition.
    """
    msg = MIMEMultipart("mixed")
    msg["Subject"] = "Multipart Email"
    msg["From"] = "sender@example.com"
    msg["To"] = "recipient@example.com"
    msg["Message-ID"] = "<multi-001@example.com>"
    msg["Date"] = "Mon, 01 Jun 2025 12:00:00 +0000"

    # Text + HTML alternative
    alt = MIMEMultipart("alternative")
    alt.attach(MIMEText(body_text, "plain"))
    alt.attach(MIMEText(body_html, "html"))
    msg.attach(alt)

    for filename, content_type, payload in attachments or []:
        maintype, subtype = content_type.split("/", 1)
        part = MIMEBase(maintype, subtype)
        part.set_payload(payload)
        encoders.encode_base64(part)
        part.add_header("Content-Disposition", "attachment", filename=filename)
        msg.attach(part)

    for content_id, payload in inline_images or []:
        part = MIMEBase("image", "png")
        part.set_payload(payload)
        encoders.encode_base64(part)
        part.add_header("Content-ID", f"<{content_id}>")
        part.add_header("Content-Disposition", "inline")
        msg.attach(part)

    return msg.as_bytes()


def _build_raw_email(headers: dict[str, str], body: str, *, newline: str = "\r\n") -> bytes:
    """Assemble a message by hand, for shapes ``email.mime`` refuses to produce."""
    head = newline.join(f"{name}: {value}" for name, value in headers.items())
    return (head + newline + newline + body).encode("utf-8")


def _build_nested_multipart(depth: int, *, boundary_prefix: str = "level") -> bytes:
    """*depth* nested ``multipart/mixed`` containers around one text leaf."""
    body = "Content-Type: text/plain\r\n\r\ninnermost"
    for level in reversed(range(depth)):
        boundary = f"{boundary_prefix}{level}"
        body = (
            f'Content-Type: multipart/mixed; boundary="{boundary}"\r\n\r\n'
            f"--{boundary}\r\n{body}\r\n--{boundary}--\r\n"
        )
    return body.encode("ascii")


@pytest.fixture
def plain_eml_bytes() -> bytes:
    return _build_plain_email()


@pytest.fixture
def html_eml_bytes() -> bytes:
    return _build_html_email()


@pytest.fixture
def multipart_eml_bytes() -> bytes:
    return _build_multipart_email(
        attachments=[
            ("report.pdf", "application/pdf", b"%PDF-1.4 fake pdf content"),
            ("data.csv", "text/csv", b"col1,col2\na,b\n"),
        ],
    )


@pytest.fixture
def alternative_eml_bytes() -> bytes:
    return _build_raw_email(
        {
            "Subject": "Alternative",
            "MIME-Version": "1.0",
            "Content-Type": 'multipart/alternative; boundary="abc123"',
        },
        "--abc123\r\n"
        "Content-Type: text/plain\r\n"
        "\r\n"
        "Hi\r\n"
        "--abc123\r\n"
        "Content-Type: text/html\r\n"
        "\r\n"
        "<p>Hi</p>\r\n"
        "--abc123--\r\n",
    )
