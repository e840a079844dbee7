"""SmtpRelayServer — wires up the pipeline and runs the SMTP listener."""

from __future__ import annotations

import asyncio
import signal
import time

import structlog
import uvicorn
from aiosmtpd.smtp import SMTP

from .charset import CharsetRegistry
from .config import RelayConfig
from .handler import InboundHandler
from .health import create_health_app
from .logging import setup_logging
from .models import ServerStatus
from .normalizer import MessageNormalizer
from .parser import MimeParser
from .spf import check_spf, skip_spf
from .webhook import WebhookClient

logger = structlog.get_logger()


class SmtpRelayServer:
    """SMTP → webhook relay process.

    ``run()`` starts the following concurrently via
    :class:`asyncio.TaskGroup`:

    * the aiosmtpd listener, one task per client connection
    * FastAPI health server (for K8s probes)
    """

    def __init__(self, config: RelayConfig) -> None:
        self.config = config
        self.status: ServerStatus = ServerStatus.STARTING
        self.start_time: float = time.monotonic()

        normalizer = MessageNormalizer(
            allowed_domain=config.smtp.allowed_domain,
            charsets=CharsetRegistry.with_defaults(config.extra_charsets),
            attachment_policy=config.attachment_failure_policy,
        )
        self.handler = InboundHandler(
            parser=MimeParser(),
            normalizer=normalizer,
            webhook=WebhookClient(config.webhook),
            spf_checker=check_spf if config.smtp.spf_enabled else skip_spf,
        )
        self._shutdown_event = asyncio.Event()

    def _smtp_factory(self) -> SMTP:
        smtp = self.config.smtp
        return SMTP(
            self.handler,
            hostname=smtp.server_name,
            data_size_limit=smtp.max_message_size,
            timeout=smtp.idle_timeout_seconds,
            enable_SMTPUTF8=True,
        )

    # ------------------------------------------------------------------
    # SMTP listener
    # ------------------------------------------------------------------

    async def _run_smtp_server(self) -> None:
        loop = asyncio.get_running_loop()
        smtp = self.config.smtp
        server = await loop.create_server(
            self._smtp_factory,
            host=smtp.listen_host,
            port=smtp.listen_port,
        )
        self.status = ServerStatus.RUNNING
        logger.info(
            "smtp_listening",
            host=smtp.listen_host,
            port=smtp.listen_port,
            banner=smtp.server_name,
            webhook=self.config.webhook.url,
        )

        try:
            await self._shutdown_event.wait()
        finally:
            server.close()
            await server.wait_closed()
            logger.info("smtp_stopped")

    # ------------------------------------------------------------------
    # Health server
    # ------------------------------------------------------------------

    async def _run_health_server(self) -> None:
        """Start the FastAPI health server and shut it down on signal."""
        app = create_health_app(self)
        config = uvicorn.Config(
            app,
            host="0.0.0.0",
            port=self.config.health_port,
            log_level="warning",
        )
        server = uvicorn.Server(config)

        serve_task = asyncio.create_task(server.serve())
        await self._shutdown_event.wait()
        server.should_exit = True
        await serve_task

    # ------------------------------------------------------------------
    # Signals
    # ------------------------------------------------------------------

    def _install_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()

        def _handle(sig: signal.Signals) -> None:
            logger.info("shutdown_signal_received", signal=sig.name)
            self._shutdown_event.set()

        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, _handle, sig)

    def stop(self) -> None:
        self._shutdown_event.set()

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    async def run(self) -> None:
        """Run the relay until SIGTERM / SIGINT."""
        setup_logging(json=self.config.log_json, level=self.config.log_level)
        self._install_signal_handlers()
        self.start_time = time.monotonic()

        if not self.config.webhook.url:
            logger.warning("webhook_url_not_configured")
        logger.info(
            "relay_starting",
            service=self.config.name,
            allowed_domain=self.config.smtp.allowed_domain or None,
            attachment_failure_policy=self.config.attachment_failure_policy.value,
        )

        try:
            async with asyncio.TaskGroup() as tg:
                tg.create_task(self._run_smtp_server())
                tg.create_task(self._run_health_server())
        except* Exception:
            self.status = ServerStatus.DEGRADED
            logger.exception("relay_task_group_error", service=self.config.name)
        finally:
            self.status = ServerStatus.STOPPED
            logger.info("relay_stopped", service=self.config.name)
