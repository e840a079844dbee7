"""aiosmtpd DATA handler — parse, normalize and relay one SMTP transaction."""

from __future__ import annotations

from typing import Any

import structlog

from .errors import INTERNAL_ERROR_TEXT, DeliveryError, RelayError
from .normalizer import MessageNormalizer
from .parser import MailAddress, MimeParser
from .spf import SpfChecker, check_spf
from .webhook import WebhookClient

logger = structlog.get_logger()

ACCEPTED_REPLY = "250 OK: message accepted"
INTERNAL_ERROR_REPLY = f"451 4.3.0 {INTERNAL_ERROR_TEXT}"


class InboundHandler:
    """Handler object passed to :class:`aiosmtpd.smtp.SMTP`.

    aiosmtpd calls :meth:`handle_DATA` once per transaction, concurrently
    across connections.  Each call builds its own parsed and canonical
    message; the only shared state is the pair of counters reported by
    the health endpoint.
    """

    def __init__(
        self,
        *,
        parser: MimeParser,
        normalizer: MessageNormalizer,
        webhook: WebhookClient,
        spf_checker: SpfChecker = check_spf,
    ) -> None:
        self._parser = parser
        self._normalizer = normalizer
        self._webhook = webhook
        self._spf_checker = spf_checker
        self.messages_accepted: int = 0
        self.messages_rejected: int = 0

    async def handle_DATA(self, server: Any, session: Any, envelope: Any) -> str:
        try:
            message_id = await self._relay(session, envelope)
        except RelayError as exc:
            self.messages_rejected += 1
            self._log_rejection(exc, envelope)
            return exc.smtp_reply
        except Exception:
            self.messages_rejected += 1
            logger.exception("message_handling_failed", mail_from=envelope.mail_from)
            return INTERNAL_ERROR_REPLY

        self.messages_accepted += 1
        logger.info("message_accepted", message_id=message_id, mail_from=envelope.mail_from)
        return ACCEPTED_REPLY

    async def _relay(self, session: Any, envelope: Any) -> str:
        raw_bytes = envelope.original_content or envelope.content or b""
        if isinstance(raw_bytes, str):
            raw_bytes = raw_bytes.encode("utf-8", "surrogateescape")

        parsed = self._parser.parse(raw_bytes)

        mail_from = envelope.mail_from or ""
        rcpt_to = envelope.rcpt_tos[0] if envelope.rcpt_tos else ""
        spf_result = await self._spf_checker(_peer_ip(session), mail_from, session.host_name or "")

        result = self._normalizer.normalize(
            parsed,
            envelope_from=MailAddress(name="", address=mail_from),
            envelope_to=MailAddress(name="", address=rcpt_to),
            spf_result=spf_result,
        )
        for degradation in result.degradations:
            logger.warning(
                degradation.kind.value,
                field=degradation.field,
                detail=degradation.detail,
                message_id=result.message.id,
            )

        await self._webhook.deliver(result.message)
        return result.message.id

    def _log_rejection(self, exc: RelayError, envelope: Any) -> None:
        if isinstance(exc, DeliveryError):
            logger.error(
                "webhook_delivery_failed",
                code=exc.code,
                error=str(exc),
                cause=repr(exc.__cause__) if exc.__cause__ else None,
                mail_from=envelope.mail_from,
            )
            return
        logger.warning(
            "message_rejected",
            error_type=type(exc).__name__,
            error=str(exc),
            mail_from=envelope.mail_from,
            rcpt_tos=list(envelope.rcpt_tos),
            allowed_domain=self._normalizer.allowed_domain,
        )


def _peer_ip(session: Any) -> str:
    peer = getattr(session, "peer", None)
    if isinstance(peer, (tuple, list)) and peer:
        return str(peer[0])
    return ""
