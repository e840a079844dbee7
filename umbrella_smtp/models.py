"""Canonical message schema posted to the webhook, plus runtime status models."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

_CAMEL = {"alias_generator": to_camel, "populate_by_name": True}


class SpfResult(str, Enum):
    """SPF verdict for the sending host, passed through as-is."""

    PASS = "pass"
    FAIL = "fail"
    NEUTRAL = "neutral"
    SOFTFAIL = "softfail"
    NONE = "none"
    TEMPERROR = "temperror"
    PERMERROR = "permerror"


class Address(BaseModel):
    """A mailbox with its display name.  ``address`` is always the bare ``local@domain``."""

    name: str = Field(default="", description="Display name, empty when absent")
    address: str = Field(description="Bare mailbox")


class Body(BaseModel):
    html: str = Field(default="", description="HTML body, decoded to text")
    text: str = Field(default="", description="Plain-text body, decoded to text")


class Addresses(BaseModel):
    model_config = _CAMEL

    from_: Address = Field(alias="from", description="SMTP envelope sender")
    to: Address = Field(description="SMTP envelope recipient")
    cc: list[Address] = Field(default_factory=list)
    bcc: list[Address] = Field(default_factory=list)
    reply_to: list[Address] = Field(default_factory=list)
    in_reply_to: str = Field(default="")
    resent_from: Address | None = Field(default=None)
    resent_to: list[Address] = Field(default_factory=list)
    resent_cc: list[Address] = Field(default_factory=list)
    resent_bcc: list[Address] = Field(default_factory=list)


class Attachment(BaseModel):
    model_config = _CAMEL

    filename: str
    content_type: str
    data: str = Field(description="Standard base64 of the attachment bytes")


class EmbeddedFile(BaseModel):
    model_config = _CAMEL

    cid: str = Field(description="Content-ID without angle brackets")
    content_type: str
    data: str = Field(description="Standard base64 of the file bytes")


class CanonicalMessage(BaseModel):
    """Normalized representation of one inbound email.

    Built fresh for every SMTP transaction and serialized with camelCase
    keys; ``attachments`` and ``embeddedFiles`` are always present so the
    JSON shape stays stable for webhook consumers.
    """

    model_config = _CAMEL

    id: str = Field(default="", description="Message-ID without angle brackets")
    date: str = Field(default="", description="ISO-8601 Date header, empty when absent")
    references: list[str] = Field(default_factory=list)
    spf_result: SpfResult = Field(default=SpfResult.NONE)
    resent_date: str = Field(default="")
    resent_id: str = Field(default="")
    subject: str = Field(default="")
    body: Body = Field(default_factory=Body)
    addresses: Addresses
    attachments: list[Attachment] = Field(default_factory=list)
    embedded_files: list[EmbeddedFile] = Field(default_factory=list)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)


class ServerStatus(str, Enum):
    """Runtime status of the relay process."""

    STARTING = "starting"
    RUNNING = "running"
    DEGRADED = "degraded"
    STOPPING = "stopping"
    STOPPED = "stopped"


class HealthStatus(BaseModel):
    """Response model for the /health probe endpoint."""

    service: str = Field(description="Service name")
    status: ServerStatus = Field(description="Current server status")
    uptime_seconds: float = Field(description="Seconds since the server started")
    details: dict[str, Any] = Field(default_factory=dict)
