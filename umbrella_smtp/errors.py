"""Error taxonomy for the relay pipeline.

Structural failures (parse, domain, delivery) are exceptions that abort the
SMTP transaction.  Decode-level failures are never raised; they are recorded
as :class:`Degradation` entries next to a best-effort value.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

INTERNAL_ERROR_TEXT = (
    "Cannot accept your message due to internal error, please report that to our engineers"
)


class RelayError(Exception):
    """Base class for failures that reject an SMTP transaction.

    ``smtp_status`` is the reply code plus enhanced status code, ``reason``
    is the human-readable text sent back to the client.
    """

    smtp_status: str = "554 5.0.0"

    @property
    def reason(self) -> str:
        return str(self)

    @property
    def smtp_reply(self) -> str:
        return f"{self.smtp_status} {self.reason}"


class ParseFailure(RelayError):
    """The inbound DATA could not be parsed into a mail object."""

    smtp_status = "554 5.6.0"

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail

    @property
    def reason(self) -> str:
        return f"Cannot read your message: {self.detail}"


class AttachmentReadFailed(ParseFailure):
    """An attachment stream could not be read under the ``abort`` policy."""

    def __init__(self, field: str, detail: str) -> None:
        super().__init__(f"{field}: {detail}")
        self.field = field


class DomainRejected(RelayError):
    """The envelope recipient is outside the allow-listed domain."""

    smtp_status = "554 5.7.1"

    def __init__(self, address: str, allowed_domain: str) -> None:
        super().__init__(f"{address!r} is not in domain {allowed_domain!r}")
        self.address = address
        self.allowed_domain = allowed_domain

    @property
    def reason(self) -> str:
        return "Unauthorized TO domain"


class DeliveryError(RelayError):
    """Base for webhook failures.  The detail is logged, never sent to the client."""

    smtp_status = "451 4.3.0"
    code: str = "E0"

    @property
    def reason(self) -> str:
        return f"{self.code}: {INTERNAL_ERROR_TEXT}"


class DeliveryTransportError(DeliveryError):
    """The webhook POST failed below HTTP (connect, DNS, TLS, timeout)."""

    code = "E1"


class DeliveryRejected(DeliveryError):
    """The webhook answered with a status other than 200."""

    code = "E2"

    def __init__(self, status_code: int, status_line: str) -> None:
        super().__init__(f"webhook responded {status_line}")
        self.status_code = status_code
        self.status_line = status_line


class DegradationKind(str, Enum):
    """Non-fatal failure categories."""

    DECODE = "decode_degraded"
    ATTACHMENT_READ = "attachment_read_degraded"


@dataclass(frozen=True)
class Degradation:
    """A non-fatal failure and the field it affected."""

    kind: DegradationKind
    field: str
    detail: str
