"""Tests for umbrella_mime.envelope."""

from __future__ import annotations

from datetime import UTC, datetime

from tests.conftest import _build_plain_email, _build_raw_email

from umbrella_mime.envelope import extract_envelope
from umbrella_mime.headers import parse_header_block


class TestExtractEnvelope:
    def test_basic_headers(self, plain_eml_bytes: bytes):
        env = extract_envelope(plain_eml_bytes)
        assert env.message_id == "<test-001@example.com>"
        assert env.subject == "Test Subject"
        assert env.from_address == "sender@example.com"
        assert env.to_addresses == ("recipient@example.com",)
        assert env.date == "Mon, 01 Jun 2025 12:00:00 +0000"

    def test_cc_and_bcc(self):
        raw = _build_plain_email(
            cc="cc1@example.com, cc2@example.com",
            bcc="bcc@example.com",
        )
        env = extract_envelope(raw)
        assert env.cc_addresses == ("cc1@example.com", "cc2@example.com")
        assert env.bcc_addresses == ("bcc@example.com",)

    def test_no_cc_bcc(self, plain_eml_bytes: bytes):
        env = extract_envelope(plain_eml_bytes)
        assert env.cc_addresses == ()
        assert env.bcc_addresses == ()

    def test_missing_message_id(self):
        from email.mime.text import MIMEText

        msg = MIMEText("body")
        msg["Subject"] = "No ID"
        msg["From"] = "a@b.com"
        msg["To"] = "c@d.com"
        env = extract_envelope(msg.as_bytes())
        assert env.message_id == ""
        assert env.sent_at is None

    def test_display_name_addresses(self):
        raw = _build_plain_email(
            from_addr="Alice <alice@example.com>",
            to_addr="Bob <bob@example.com>, Charlie <charlie@example.com>",
        )
        env = extract_envelope(raw)
        assert env.from_address == "Alice <alice@example.com>"
        assert env.to_addresses == ("bob@example.com", "charlie@example.com")

    def test_encoded_subject(self):
        raw = _build_raw_email(
            {"Subject": "=?utf-8?B?Q2Fmw6k=?=", "From": "=?utf-8?Q?Jos=C3=A9?= <jose@example.com>"},
            "body",
        )
        env = extract_envelope(raw)
        assert env.subject == "Café"
        assert env.from_address == "José <jose@example.com>"

    def test_sent_at_normalized_to_utc(self):
        raw = _build_raw_email({"Date": "Mon, 02 Jun 2025 14:30:00 +0200"}, "body")
        assert extract_envelope(raw).sent_at == datetime(2025, 6, 2, 12, 30, tzinfo=UTC)

    def test_unparseable_date(self):
        raw = _build_raw_email({"Date": "yesterday-ish"}, "body")
        env = extract_envelope(raw)
        assert env.date == "yesterday-ish"
        assert env.sent_at is None

    def test_threading_headers(self):
        raw = _build_raw_email(
            {
                "In-Reply-To": "<a@example.com>",
                "References": "<root@example.com> <a@example.com>",
            },
            "body",
        )
        env = extract_envelope(raw)
        assert env.in_reply_to == "<a@example.com>"
        assert env.references == ("<root@example.com>", "<a@example.com>")

    def test_from_header_map(self):
        headers = parse_header_block(b"Subject: mapped\r\nTo: x@y.com")
        env = extract_envelope(headers)
        assert env.subject == "mapped"
        assert env.to_addresses == ("x@y.com",)
