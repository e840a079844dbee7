"""Tests for umbrella_smtp.parser."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from tests.conftest import HEBREW_SUBJECT_RAW, _build_multipart_email, _build_plain_email

from umbrella_smtp.errors import ParseFailure
from umbrella_smtp.parser import MailAddress, MimeParser


@pytest.fixture
def parser() -> MimeParser:
    return MimeParser()


class TestMimeParserPlainText:
    def test_parse_plain_email(self, parser: MimeParser, plain_eml_bytes: bytes):
        result = parser.parse(plain_eml_bytes)
        assert result.message_id == "test-001@example.org"
        assert result.subject == "Test Subject"
        assert result.from_ == [MailAddress(name="", address="sender@example.org")]
        assert result.to == [MailAddress(name="", address="user@example.com")]
        assert result.text_body.data == b"Hello, World!"
        assert result.text_body.charset == "utf-8"
        assert result.html_body.data == b""
        assert result.attachments == []
        assert result.embedded_files == []

    def test_date_parsed(self, parser: MimeParser, plain_eml_bytes: bytes):
        result = parser.parse(plain_eml_bytes)
        assert result.date == datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)
        assert result.resent_date is None

    def test_encoded_subject_kept_raw(self, parser: MimeParser):
        result = parser.parse(_build_plain_email(subject=HEBREW_SUBJECT_RAW))
        assert result.subject == HEBREW_SUBJECT_RAW

    def test_body_bytes_kept_in_declared_charset(self, parser: MimeParser):
        raw = _build_plain_email(body="café", charset="iso-8859-1")
        result = parser.parse(raw)
        assert result.text_body.data == b"caf\xe9"
        assert result.text_body.charset == "iso-8859-1"


class TestMimeParserMultipart:
    def test_bodies(self, parser: MimeParser):
        raw = _build_multipart_email(body_text="Plain text", body_html="<p>HTML</p>")
        result = parser.parse(raw)
        assert result.text_body.data == b"Plain text"
        assert result.html_body.data == b"<p>HTML</p>"

    def test_attachments_in_order(self, parser: MimeParser, multipart_eml_bytes: bytes):
        result = parser.parse(multipart_eml_bytes)
        assert [a.filename for a in result.attachments] == ["report.pdf", "blob.bin"]
        assert [a.content_type for a in result.attachments] == [
            "application/pdf",
            "application/octet-stream",
        ]

    def test_attachment_streams_reopen(self, parser: MimeParser, multipart_eml_bytes: bytes):
        blob = parser.parse(multipart_eml_bytes).attachments[1]
        with blob.open() as first:
            assert first.read() == b"\x01\x02\x03"
        with blob.open() as second:
            assert second.read() == b"\x01\x02\x03"

    def test_embedded_files(self, parser: MimeParser, multipart_eml_bytes: bytes):
        result = parser.parse(multipart_eml_bytes)
        assert len(result.embedded_files) == 1
        embedded = result.embedded_files[0]
        assert embedded.cid == "logo@example.org"
        assert embedded.content_type == "image/png"
        with embedded.open() as stream:
            assert stream.read() == b"\x89PNG fake"

    def test_html_body_found_inside_related(self, parser: MimeParser, multipart_eml_bytes: bytes):
        result = parser.parse(multipart_eml_bytes)
        assert result.html_body.data == b"<p>HTML body</p>"

    def test_display_name_parsed(self, parser: MimeParser, multipart_eml_bytes: bytes):
        result = parser.parse(multipart_eml_bytes)
        assert result.from_ == [MailAddress(name="Alice", address="sender@example.org")]


class TestMimeParserHeaders:
    def test_address_lists(self, parser: MimeParser):
        raw = (
            b"From: a@example.org\r\n"
            b"To: b@example.com\r\n"
            b"Cc: Carol <carol@example.org>, dave@example.org\r\n"
            b"Bcc: eve@example.org\r\n"
            b"Reply-To: Replies <replies@example.org>\r\n"
            b"Resent-From: Fwd <fwd@example.org>\r\n"
            b"Resent-To: r1@example.org, r2@example.org\r\n"
            b"Resent-Cc: rc@example.org\r\n"
            b"Resent-Bcc: rb@example.org\r\n"
            b"\r\n"
            b"body\r\n"
        )
        result = parser.parse(raw)
        assert result.cc == [
            MailAddress(name="Carol", address="carol@example.org"),
            MailAddress(name="", address="dave@example.org"),
        ]
        assert [a.address for a in result.bcc] == ["eve@example.org"]
        assert result.reply_to == [MailAddress(name="Replies", address="replies@example.org")]
        assert result.resent_from == [MailAddress(name="Fwd", address="fwd@example.org")]
        assert [a.address for a in result.resent_to] == ["r1@example.org", "r2@example.org"]
        assert [a.address for a in result.resent_cc] == ["rc@example.org"]
        assert [a.address for a in result.resent_bcc] == ["rb@example.org"]

    def test_message_id_lists(self, parser: MimeParser):
        raw = (
            b"From: a@example.org\r\n"
            b"Message-ID: <self@example.org>\r\n"
            b"In-Reply-To: <parent@example.org>\r\n"
            b"References: <root@example.org>\r\n"
            b" <parent@example.org>\r\n"
            b"Resent-Message-ID: <resent@example.org>\r\n"
            b"Resent-Date: Mon, 02 Jun 2025 08:30:00 +0200\r\n"
            b"\r\n"
            b"body\r\n"
        )
        result = parser.parse(raw)
        assert result.message_id == "self@example.org"
        assert result.in_reply_to == "parent@example.org"
        assert result.references == ["root@example.org", "parent@example.org"]
        assert result.resent_message_id == "resent@example.org"
        assert result.resent_date is not None
        assert result.resent_date.isoformat() == "2025-06-02T08:30:00+02:00"

    def test_encoded_display_name_decoded(self, parser: MimeParser):
        raw = b"From: =?utf-8?B?SsO8cmdlbg==?= <j@example.org>\r\n\r\nbody\r\n"
        result = parser.parse(raw)
        assert result.from_ == [MailAddress(name="Jürgen", address="j@example.org")]

    def test_eight_bit_subject_read_as_utf8(self, parser: MimeParser):
        raw = "From: a@example.org\r\nSubject: Grüße\r\n\r\nbody\r\n".encode("utf-8")
        assert parser.parse(raw).subject == "Grüße"

    def test_folded_subject_unfolded(self, parser: MimeParser):
        raw = b"From: a@example.org\r\nSubject: first part\r\n second part\r\n\r\nbody\r\n"
        assert parser.parse(raw).subject == "first part second part"

    def test_missing_headers_are_empty(self, parser: MimeParser):
        result = parser.parse(b"From: a@example.org\r\n\r\nbody\r\n")
        assert result.message_id == ""
        assert result.subject == ""
        assert result.date is None
        assert result.references == []
        assert result.in_reply_to == ""
        assert result.cc == []

    def test_unparseable_date_is_none(self, parser: MimeParser):
        result = parser.parse(b"From: a@example.org\r\nDate: not a date\r\n\r\nbody\r\n")
        assert result.date is None


class TestMimeParserFailures:
    @pytest.mark.parametrize("raw", [b"", b"   \r\n"])
    def test_empty_input(self, parser: MimeParser, raw: bytes):
        with pytest.raises(ParseFailure, match="empty message"):
            parser.parse(raw)

    def test_no_headers(self, parser: MimeParser):
        with pytest.raises(ParseFailure, match="no headers"):
            parser.parse(b"just some text without any header line\r\n")
