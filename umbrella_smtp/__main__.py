"""Entry point for the SMTP relay.

Usage::

    WEBHOOK_URL=https://example.com/hook SMTP_ALLOWED_DOMAIN=example.com \\
        python -m umbrella_smtp
"""

from __future__ import annotations

import asyncio

from .config import RelayConfig
from .server import SmtpRelayServer


def main() -> None:
    config = RelayConfig()
    server = SmtpRelayServer(config)
    asyncio.run(server.run())


if __name__ == "__main__":
    main()
