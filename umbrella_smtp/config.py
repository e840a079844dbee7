"""Settings for the SMTP listener, the webhook target and the relay process.

Each group reads its own env prefix (``SMTP_``, ``WEBHOOK_``, ``RELAY_``);
:class:`RelayConfig` builds the other two, so ``RelayConfig()`` is the whole
configuration.
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings

from .normalizer import AttachmentFailurePolicy


class SmtpConfig(BaseSettings):
    """SMTP listener settings."""

    model_config = {"env_prefix": "SMTP_"}

    listen_addr: str = Field(
        default=":1025",
        description="host:port to listen on; an empty host binds all interfaces",
    )
    idle_timeout_seconds: float = Field(
        default=300.0,
        description="Drop a client connection after this many idle seconds",
    )
    max_message_size: int = Field(
        default=1024 * 1024,
        description="Maximum DATA size in bytes",
    )
    server_name: str = Field(default="localhost", description="Hostname shown in the SMTP banner")
    allowed_domain: str = Field(
        default="",
        description="Only accept mail whose envelope recipient is in this domain (empty = any)",
    )
    spf_enabled: bool = Field(default=True, description="Evaluate SPF for the sending host")

    @property
    def listen_host(self) -> str:
        host, _, _ = self.listen_addr.rpartition(":")
        return host.strip("[]") or "0.0.0.0"

    @property
    def listen_port(self) -> int:
        _, _, port = self.listen_addr.rpartition(":")
        return int(port)


class WebhookConfig(BaseSettings):
    """Webhook endpoint the canonical JSON is POSTed to."""

    model_config = {"env_prefix": "WEBHOOK_"}

    url: str = Field(default="", description="Webhook URL to post messages to")
    connect_timeout_seconds: float = Field(default=10.0, description="TCP/TLS connect timeout")
    read_timeout_seconds: float = Field(default=10.0, description="Response read timeout")
    write_timeout_seconds: float = Field(default=10.0, description="Request write timeout")
    verify_tls: bool = Field(default=True, description="Verify the webhook TLS certificate")


class RelayConfig(BaseSettings):
    """Root configuration for the relay process.

    Nested configs are populated from their own env-var prefixes.
    """

    model_config = {"env_prefix": "RELAY_"}

    name: str = Field(default="smtp-relay", description="Service name reported by /health")
    health_port: int = Field(default=8080, description="Port for K8s health probe endpoints")
    log_level: str = Field(default="INFO", description="Root log level")
    log_json: bool = Field(default=True, description="JSON log lines (False for console output)")
    attachment_failure_policy: AttachmentFailurePolicy = Field(
        default=AttachmentFailurePolicy.EMPTY,
        description="empty: keep unreadable items with no data; drop: omit them; abort: reject",
    )
    extra_charsets: dict[str, str] = Field(
        default_factory=dict,
        description="Additional charset name → Python codec mappings (JSON object)",
    )

    smtp: SmtpConfig = Field(default_factory=SmtpConfig)
    webhook: WebhookConfig = Field(default_factory=WebhookConfig)
