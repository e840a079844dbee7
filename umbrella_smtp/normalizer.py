"""Message normalizer — builds a :class:`CanonicalMessage` from a :class:`ParsedMail`."""

from __future__ import annotations

import base64
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import BinaryIO

from .addresses import to_canonical, to_canonical_one
from .charset import CharsetRegistry, Decoded
from .errors import AttachmentReadFailed, Degradation, DegradationKind, DomainRejected
from .mime_header import decode_mime_header
from .models import (
    Addresses,
    Attachment,
    Body,
    CanonicalMessage,
    EmbeddedFile,
    SpfResult,
)
from .parser import MailAddress, ParsedBody, ParsedMail


class AttachmentFailurePolicy(str, Enum):
    """What to do when an attachment or embedded file cannot be read."""

    EMPTY = "empty"
    DROP = "drop"
    ABORT = "abort"


@dataclass
class NormalizationResult:
    message: CanonicalMessage
    degradations: list[Degradation] = field(default_factory=list)


class MessageNormalizer:
    """Normalize parsed mail into the canonical schema.

    Decode failures never abort normalization: the raw value is kept and a
    :class:`Degradation` is recorded.  Only a recipient outside
    *allowed_domain* (or an unreadable attachment under the ``abort``
    policy) raises.
    """

    def __init__(
        self,
        *,
        allowed_domain: str = "",
        charsets: CharsetRegistry | None = None,
        attachment_policy: AttachmentFailurePolicy = AttachmentFailurePolicy.EMPTY,
    ) -> None:
        self._allowed_domain = allowed_domain
        self._charsets = charsets or CharsetRegistry.with_defaults()
        self._attachment_policy = attachment_policy

    @property
    def allowed_domain(self) -> str:
        return self._allowed_domain

    def normalize(
        self,
        parsed: ParsedMail,
        *,
        envelope_from: MailAddress,
        envelope_to: MailAddress,
        spf_result: SpfResult = SpfResult.NONE,
    ) -> NormalizationResult:
        degradations: list[Degradation] = []

        subject = self._keep(
            decode_mime_header(parsed.subject, self._charsets), "subject", degradations
        )
        body = Body(
            html=self._decode_body(parsed.html_body, "body.html", degradations),
            text=self._decode_body(parsed.text_body, "body.text", degradations),
        )

        sender = to_canonical_one(envelope_from)
        recipient = to_canonical_one(envelope_to)
        self._check_domain(recipient.address)

        resent_from = to_canonical(parsed.resent_from)
        addresses = Addresses(
            from_=sender,
            to=recipient,
            cc=to_canonical(parsed.cc),
            bcc=to_canonical(parsed.bcc),
            reply_to=to_canonical(parsed.reply_to),
            in_reply_to=parsed.in_reply_to,
            resent_from=resent_from[0] if resent_from else None,
            resent_to=to_canonical(parsed.resent_to),
            resent_cc=to_canonical(parsed.resent_cc),
            resent_bcc=to_canonical(parsed.resent_bcc),
        )

        attachments: list[Attachment] = []
        for index, item in enumerate(parsed.attachments):
            data = self._materialize(item.open, f"attachments[{index}]", degradations)
            if data is not None:
                attachments.append(
                    Attachment(filename=item.filename, content_type=item.content_type, data=data)
                )

        embedded_files: list[EmbeddedFile] = []
        for index, item in enumerate(parsed.embedded_files):
            data = self._materialize(item.open, f"embeddedFiles[{index}]", degradations)
            if data is not None:
                embedded_files.append(
                    EmbeddedFile(cid=item.cid, content_type=item.content_type, data=data)
                )

        message = CanonicalMessage(
            id=parsed.message_id,
            date=_format_date(parsed.date),
            references=list(parsed.references),
            spf_result=spf_result,
            resent_date=_format_date(parsed.resent_date),
            resent_id=parsed.resent_message_id,
            subject=subject,
            body=body,
            addresses=addresses,
            attachments=attachments,
            embedded_files=embedded_files,
        )
        return NormalizationResult(message=message, degradations=degradations)

    # ------------------------------------------------------------------
    # Domain allow-list
    # ------------------------------------------------------------------

    def _check_domain(self, address: str) -> None:
        if not self._allowed_domain:
            return
        parts = address.split("@")
        if len(parts) != 2 or not all(parts) or parts[1] != self._allowed_domain:
            raise DomainRejected(address, self._allowed_domain)

    # ------------------------------------------------------------------
    # Decoding
    # ------------------------------------------------------------------

    def _decode_body(self, body: ParsedBody, name: str, degradations: list[Degradation]) -> str:
        return self._keep(self._charsets.decode(body.data, body.charset), name, degradations)

    @staticmethod
    def _keep(decoded: Decoded, name: str, degradations: list[Degradation]) -> str:
        if decoded.degraded:
            degradations.append(
                Degradation(kind=DegradationKind.DECODE, field=name, detail=decoded.error or "")
            )
        return decoded.value

    # ------------------------------------------------------------------
    # Attachments
    # ------------------------------------------------------------------

    def _materialize(
        self,
        open_stream: Callable[[], BinaryIO],
        name: str,
        degradations: list[Degradation],
    ) -> str | None:
        """Read a whole stream and base64 it.  ``None`` means drop the item."""
        try:
            with open_stream() as stream:
                data = stream.read()
        except OSError as exc:
            if self._attachment_policy is AttachmentFailurePolicy.ABORT:
                raise AttachmentReadFailed(name, str(exc)) from exc
            degradations.append(
                Degradation(kind=DegradationKind.ATTACHMENT_READ, field=name, detail=str(exc))
            )
            if self._attachment_policy is AttachmentFailurePolicy.DROP:
                return None
            data = b""
        return base64.b64encode(data).decode("ascii")


def _format_date(value: datetime | None) -> str:
    return value.isoformat() if value is not None else ""
