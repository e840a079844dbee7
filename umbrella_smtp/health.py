"""Probe endpoints for the relay: liveness on ``/health``, readiness on ``/ready``.

Liveness stays green while the listener is starting or accepting mail, so a
slow bind does not get the pod restarted.  Readiness is only green once the
SMTP socket is open.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any

import httpx
from fastapi import FastAPI
from fastapi.responses import JSONResponse

from .models import HealthStatus, ServerStatus

if TYPE_CHECKING:
    from .server import SmtpRelayServer

_LIVE = (ServerStatus.STARTING, ServerStatus.RUNNING)


def _webhook_host(url: str) -> str | None:
    # Only the host is reported; paths and query strings may carry tokens
    if not url:
        return None
    try:
        return httpx.URL(url).host or None
    except httpx.InvalidURL:
        return None


def relay_details(server: SmtpRelayServer) -> dict[str, Any]:
    """Counters and routing facts reported alongside the status."""
    smtp = server.config.smtp
    return {
        "messages_accepted": server.handler.messages_accepted,
        "messages_rejected": server.handler.messages_rejected,
        "allowed_domain": smtp.allowed_domain or None,
        "listen_addr": smtp.listen_addr,
        "spf_enabled": smtp.spf_enabled,
        "webhook_host": _webhook_host(server.config.webhook.url),
    }


def create_health_app(server: SmtpRelayServer) -> FastAPI:
    app = FastAPI(title=f"{server.config.name} probes", docs_url=None, redoc_url=None)

    @app.get("/health")
    async def health() -> JSONResponse:
        body = HealthStatus(
            service=server.config.name,
            status=server.status,
            uptime_seconds=round(time.monotonic() - server.start_time, 3),
            details=relay_details(server),
        )
        return JSONResponse(
            content=body.model_dump(mode="json"),
            status_code=200 if server.status in _LIVE else 503,
        )

    @app.get("/ready")
    async def ready() -> JSONResponse:
        listening = server.status is ServerStatus.RUNNING
        return JSONResponse(content={"ready": listening}, status_code=200 if listening else 503)

    return app
