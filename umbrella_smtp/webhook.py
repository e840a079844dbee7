"""Async webhook client — one JSON POST per message, no retry."""

from __future__ import annotations

import httpx
import structlog

from .config import WebhookConfig
from .errors import DeliveryRejected, DeliveryTransportError
from .models import CanonicalMessage

logger = structlog.get_logger()


class WebhookClient:
    """Delivers :class:`CanonicalMessage` payloads to the configured webhook.

    Every delivery opens its own HTTP client, so concurrent SMTP
    transactions share no connection state.
    """

    def __init__(
        self,
        config: WebhookConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config
        self._transport = transport
        self._timeout = httpx.Timeout(
            config.connect_timeout_seconds,
            read=config.read_timeout_seconds,
            write=config.write_timeout_seconds,
        )

    @property
    def url(self) -> str:
        return self._config.url

    async def deliver(self, message: CanonicalMessage) -> None:
        """POST *message* as JSON.

        Raises :class:`DeliveryTransportError` when the exchange fails at any
        point below the status code (including an undecodable response body)
        and :class:`DeliveryRejected` for any status other than 200.
        """
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout,
                verify=self._config.verify_tls,
                transport=self._transport,
            ) as client:
                response = await client.post(
                    self._config.url,
                    content=message.to_json(),
                    headers={"Content-Type": "application/json"},
                )
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            # InvalidURL is not an HTTPError subclass
            raise DeliveryTransportError(f"{type(exc).__name__}: {exc}") from exc

        if response.status_code != 200:
            status_line = f"{response.status_code} {response.reason_phrase}".strip()
            raise DeliveryRejected(response.status_code, status_line)

        logger.debug(
            "webhook_delivered",
            message_id=message.id,
            status_code=response.status_code,
        )
