"""MIME parser — raw DATA bytes → :class:`ParsedMail`.

Uses the ``compat32`` policy so header values reach the normalizer exactly
as they appeared on the wire (encoded words included).  Bodies are kept as
transfer-decoded bytes together with their declared charset; charset
decoding is the normalizer's job.
"""

from __future__ import annotations

import email
import email.errors
import email.header
import email.policy
import email.utils
import io
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from email.message import Message
from typing import BinaryIO

from .errors import ParseFailure

_FOLDING = re.compile(r"\r?\n(?=[ \t])")


@dataclass(frozen=True)
class MailAddress:
    """An address as parsed from a header or the SMTP envelope."""

    name: str
    address: str


@dataclass
class ParsedBody:
    data: bytes = b""
    charset: str = ""


@dataclass
class ParsedAttachment:
    """A ``Content-Disposition: attachment`` (or named non-body) part."""

    filename: str
    content_type: str
    open: Callable[[], BinaryIO]


@dataclass
class ParsedEmbeddedFile:
    """An inline part referenced by ``Content-ID`` (e.g. ``cid:`` images)."""

    cid: str
    content_type: str
    open: Callable[[], BinaryIO]


@dataclass
class ParsedMail:
    """Structured view of one message, prior to normalization."""

    message_id: str = ""
    date: datetime | None = None
    resent_date: datetime | None = None
    references: list[str] = field(default_factory=list)
    resent_message_id: str = ""
    subject: str = ""
    html_body: ParsedBody = field(default_factory=ParsedBody)
    text_body: ParsedBody = field(default_factory=ParsedBody)
    from_: list[MailAddress] = field(default_factory=list)
    to: list[MailAddress] = field(default_factory=list)
    cc: list[MailAddress] = field(default_factory=list)
    bcc: list[MailAddress] = field(default_factory=list)
    reply_to: list[MailAddress] = field(default_factory=list)
    in_reply_to: str = ""
    resent_from: list[MailAddress] = field(default_factory=list)
    resent_to: list[MailAddress] = field(default_factory=list)
    resent_cc: list[MailAddress] = field(default_factory=list)
    resent_bcc: list[MailAddress] = field(default_factory=list)
    attachments: list[ParsedAttachment] = field(default_factory=list)
    embedded_files: list[ParsedEmbeddedFile] = field(default_factory=list)


def bytes_opener(payload: bytes) -> Callable[[], BinaryIO]:
    """Return a callable that opens a fresh stream over *payload* on every call."""
    return lambda: io.BytesIO(payload)


class MimeParser:
    """Stateless parser: raw RFC 822 bytes → ParsedMail."""

    def parse(self, raw_bytes: bytes) -> ParsedMail:
        if not raw_bytes or not raw_bytes.strip():
            raise ParseFailure("empty message")

        msg = email.message_from_bytes(raw_bytes, policy=email.policy.compat32)
        if not msg.keys():
            raise ParseFailure("no headers found")

        parsed = ParsedMail(
            message_id=_trim_message_id(self._header(msg, "Message-ID")),
            date=_parse_date(self._header(msg, "Date")),
            resent_date=_parse_date(self._header(msg, "Resent-Date")),
            references=_parse_message_id_list(self._header(msg, "References")),
            resent_message_id=_trim_message_id(self._header(msg, "Resent-Message-ID")),
            subject=self._header(msg, "Subject"),
            from_=self._addresses(msg, "From"),
            to=self._addresses(msg, "To"),
            cc=self._addresses(msg, "Cc"),
            bcc=self._addresses(msg, "Bcc"),
            reply_to=self._addresses(msg, "Reply-To"),
            in_reply_to=" ".join(_parse_message_id_list(self._header(msg, "In-Reply-To"))),
            resent_from=self._addresses(msg, "Resent-From"),
            resent_to=self._addresses(msg, "Resent-To"),
            resent_cc=self._addresses(msg, "Resent-Cc"),
            resent_bcc=self._addresses(msg, "Resent-Bcc"),
        )

        try:
            self._walk_parts(msg, parsed)
        except (LookupError, ValueError) as exc:
            raise ParseFailure(str(exc)) from exc

        return parsed

    # ------------------------------------------------------------------
    # Parts
    # ------------------------------------------------------------------

    def _walk_parts(self, msg: Message, parsed: ParsedMail) -> None:
        for part in msg.walk():
            # Multipart containers have no content of their own
            if part.is_multipart():
                continue

            content_type = part.get_content_type()
            disposition = (part.get_content_disposition() or "").lower()
            filename = self._filename(part)
            payload = part.get_payload(decode=True) or b""

            if disposition == "attachment":
                parsed.attachments.append(
                    ParsedAttachment(
                        filename=filename,
                        content_type=content_type,
                        open=bytes_opener(payload),
                    )
                )
                continue

            if not filename and content_type in ("text/plain", "text/html"):
                body = parsed.text_body if content_type == "text/plain" else parsed.html_body
                if not body.data:
                    body.data = payload
                    body.charset = part.get_content_charset() or ""
                    continue

            content_id = self._header(part, "Content-ID")
            if content_id:
                parsed.embedded_files.append(
                    ParsedEmbeddedFile(
                        cid=_trim_message_id(content_id),
                        content_type=content_type,
                        open=bytes_opener(payload),
                    )
                )
            elif filename:
                parsed.attachments.append(
                    ParsedAttachment(
                        filename=filename,
                        content_type=content_type,
                        open=bytes_opener(payload),
                    )
                )

    def _filename(self, part: Message) -> str:
        filename = part.get_filename()
        if not filename:
            return ""
        return _decode_words(filename)

    # ------------------------------------------------------------------
    # Headers
    # ------------------------------------------------------------------

    @staticmethod
    def _raw_values(msg: Message, name: str) -> list[str]:
        """All unfolded values of header *name*, 8-bit bytes read as UTF-8."""
        wanted = name.lower()
        return [
            _FOLDING.sub("", value)
            .encode("utf-8", "surrogateescape")
            .decode("utf-8", "replace")
            for key, value in msg.raw_items()
            if key.lower() == wanted
        ]

    def _header(self, msg: Message, name: str) -> str:
        values = self._raw_values(msg, name)
        return values[0].strip() if values else ""

    def _addresses(self, msg: Message, name: str) -> list[MailAddress]:
        values = self._raw_values(msg, name)
        if not values:
            return []
        return [
            MailAddress(name=_decode_words(display), address=addr)
            for display, addr in email.utils.getaddresses(values)
            if addr
        ]


def _decode_words(value: str) -> str:
    """Decode any RFC 2047 words in a display name or filename."""
    try:
        return str(email.header.make_header(email.header.decode_header(value)))
    except (email.errors.HeaderParseError, LookupError, UnicodeDecodeError):
        return value


def _trim_message_id(value: str) -> str:
    return value.strip(" <>")


def _parse_message_id_list(value: str) -> list[str]:
    return [_trim_message_id(token) for token in value.split() if token.strip(" <>")]


def _parse_date(value: str) -> datetime | None:
    if not value:
        return None
    try:
        return email.utils.parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
