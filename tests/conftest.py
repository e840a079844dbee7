"""Shared test fixtures for the SMTP relay test suite."""

from __future__ import annotations

from email import encoders
from email.mime.base import MIMEBase
from email.mime.image import MIMEImage
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

import pytest

from umbrella_smtp.charset import CharsetRegistry
from umbrella_smtp.config import RelayConfig, SmtpConfig, WebhookConfig
from umbrella_smtp.normalizer import MessageNormalizer
from umbrella_smtp.parser import (
    MailAddress,
    ParsedAttachment,
    ParsedBody,
    ParsedMail,
    bytes_opener,
)

WEBHOOK_URL = "http://hooks.test/inbound"

# Hebrew text in windows-1255, base64 encoded
HEBREW_SUBJECT_RAW = "=?windows-1255?B?+eHp8OjuIPXl4fM=?="
HEBREW_SUBJECT = "\u05e9\u05d1\u05d9\u05e0\u05d8\u05de \u05e5\u05d5\u05d1\u05e3"


@pytest.fixture
def charsets() -> CharsetRegistry:
    return CharsetRegistry.with_defaults()


@pytest.fixture
def normalizer(charsets: CharsetRegistry) -> MessageNormalizer:
    return MessageNormalizer(charsets=charsets)


@pytest.fixture
def webhook_config() -> WebhookConfig:
    return WebhookConfig(
        url=WEBHOOK_URL,
        connect_timeout_seconds=1.0,
        read_timeout_seconds=1.0,
        write_timeout_seconds=1.0,
    )


@pytest.fixture
def relay_config(webhook_config: WebhookConfig) -> RelayConfig:
    return RelayConfig(
        name="smtp-relay-test",
        health_port=18080,
        smtp=SmtpConfig(listen_addr="127.0.0.1:10025", allowed_domain="example.com"),
        webhook=webhook_config,
    )


@pytest.fixture
def sender() -> MailAddress:
    return MailAddress(name="", address="sender@example.org")


@pytest.fixture
def recipient() -> MailAddress:
    return MailAddress(name="", address="user@example.com")


# ------------------------------------------------------------------
# ParsedMail builders
# ------------------------------------------------------------------


def make_parsed_mail(**overrides) -> ParsedMail:
    """A ParsedMail with a plain-text body and one attachment."""
    defaults = dict(
        message_id="msg-001@example.org",
        subject="Quarterly report",
        references=["ref-1@example.org", "ref-2@example.org"],
        cc=[
            MailAddress(name="Carol", address="carol@example.org"),
            MailAddress(name="", address="dave@example.org"),
        ],
        attachments=[
            ParsedAttachment(
                filename="blob.bin",
                content_type="application/octet-stream",
                open=bytes_opener(bytes([0x01, 0x02, 0x03])),
            )
        ],
    )
    defaults.update(overrides)
    defaults.setdefault("text_body", ParsedBody(data=b"Hello, World!", charset="utf-8"))
    return ParsedMail(**defaults)


# ------------------------------------------------------------------
# Sample EML builders
# ------------------------------------------------------------------


def _build_plain_email(
    *,
    subject: str = "Test Subject",
    from_addr: str = "sender@example.org",
    to_addr: str = "user@example.com",
    body: str = "Hello, World!",
    message_id: str = "<test-001@example.org>",
    cc: str | None = None,
    charset: str = "utf-8",
) -> bytes:
    """Build a simple plain-text email as raw bytes."""
    msg = MIMEText(body, "plain", charset)
    msg["Subject"] = subject
    msg["From"] = from_addr
    msg["To"] = to_addr
    msg["Message-ID"] = message_id
    msg["Date"] = "Sun, 01 Jun 2025 12:00:00 +0000"
    if cc:
        msg["Cc"] = cc
    return msg.as_bytes()


def _build_multipart_email(
    *,
    body_text: str = "Plain body",
    body_html: str = "<p>HTML body</p>",
    attachments: list[tuple[str, str, bytes]] | None = None,
    inline_images: list[tuple[str, bytes]] | None = None,
) -> bytes:
    """Build a multipart email with text, HTML, optional attachments and cid images."""
    msg = MIMEMultipart("mixed")
    msg["Subject"] = "Multipart Email"
    msg["From"] = "Alice <sender@example.org>"
    msg["To"] = "user@example.com"
    msg["Message-ID"] = "<multi-001@example.org>"
    msg["Date"] = "Sun, 01 Jun 2025 12:00:00 +0000"

    alt = MIMEMultipart("alternative")
    alt.attach(MIMEText(body_text, "plain"))
    if inline_images:
        related = MIMEMultipart("related")
        related.attach(MIMEText(body_html, "html"))
        for cid, payload in inline_images:
            image = MIMEImage(payload, "png")
            image["Content-ID"] = f"<{cid}>"
            image.add_header("Content-Disposition", "inline")
            related.attach(image)
        alt.attach(related)
    else:
        alt.attach(MIMEText(body_html, "html"))
    msg.attach(alt)

    for filename, content_type, payload in attachments or []:
        maintype, subtype = content_type.split("/", 1)
        part = MIMEBase(maintype, subtype)
        part.set_payload(payload)
        encoders.encode_base64(part)
        part.add_header("Content-Disposition", "attachment", filename=filename)
        msg.attach(part)

    return msg.as_bytes()


@pytest.fixture
def plain_eml_bytes() -> bytes:
    return _build_plain_email()


@pytest.fixture
def multipart_eml_bytes() -> bytes:
    return _build_multipart_email(
        attachments=[
            ("report.pdf", "application/pdf", b"%PDF-1.4 fake pdf content"),
            ("blob.bin", "application/octet-stream", bytes([0x01, 0x02, 0x03])),
        ],
        inline_images=[("logo@example.org", b"\x89PNG fake")],
    )
