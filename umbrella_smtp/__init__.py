"""Umbrella SMTP relay — normalize inbound mail into canonical JSON and POST it to a webhook.

Public API re-exported here for convenience::

    from umbrella_smtp import MessageNormalizer, MimeParser, WebhookClient
"""

from .addresses import to_canonical, to_canonical_one
from .charset import CharsetRegistry, Decoded
from .config import RelayConfig, SmtpConfig, WebhookConfig
from .errors import (
    AttachmentReadFailed,
    Degradation,
    DegradationKind,
    DeliveryError,
    DeliveryRejected,
    DeliveryTransportError,
    DomainRejected,
    ParseFailure,
    RelayError,
)
from .handler import InboundHandler
from .logging import setup_logging
from .mime_header import decode_mime_header
from .models import Address, CanonicalMessage, SpfResult
from .normalizer import AttachmentFailurePolicy, MessageNormalizer, NormalizationResult
from .parser import MailAddress, MimeParser, ParsedMail
from .server import SmtpRelayServer
from .webhook import WebhookClient

__all__ = [
    "Address",
    "AttachmentFailurePolicy",
    "AttachmentReadFailed",
    "CanonicalMessage",
    "CharsetRegistry",
    "Decoded",
    "Degradation",
    "DegradationKind",
    "DeliveryError",
    "DeliveryRejected",
    "DeliveryTransportError",
    "DomainRejected",
    "InboundHandler",
    "MailAddress",
    "MessageNormalizer",
    "MimeParser",
    "NormalizationResult",
    "ParseFailure",
    "ParsedMail",
    "RelayConfig",
    "RelayError",
    "SmtpConfig",
    "SmtpRelayServer",
    "SpfResult",
    "WebhookClient",
    "WebhookConfig",
    "decode_mime_header",
    "setup_logging",
    "to_canonical",
    "to_canonical_one",
]
