"""Charset decoding backed by an explicit name → codec registry.

Names that are not registered decode as UTF-8 passthrough, so an unknown
``charset=`` parameter never aborts the pipeline.
"""

from __future__ import annotations

import codecs
from collections.abc import Mapping
from dataclasses import dataclass

import structlog

logger = structlog.get_logger()

UTF8 = "utf-8"

DEFAULT_CHARSETS: dict[str, str] = {
    "windows-1255": "cp1255",
    "windows-1250": "cp1250",
    "windows-1251": "cp1251",
    "windows-1252": "cp1252",
    "windows-1256": "cp1256",
    "iso-8859-1": "latin-1",
    "iso-8859-2": "iso8859-2",
    "iso-8859-5": "iso8859-5",
    "iso-8859-8": "iso8859-8",
    "iso-8859-8-i": "iso8859-8",
    "iso-8859-15": "iso8859-15",
    "koi8-r": "koi8-r",
}


@dataclass(frozen=True)
class Decoded:
    """Best-effort decoded text plus the error that forced a fallback, if any."""

    value: str
    error: str | None = None

    @property
    def degraded(self) -> bool:
        return self.error is not None


def normalize_charset_name(name: str | None) -> str:
    return (name or "").strip().strip('"').lower()


def passthrough(data: bytes) -> str:
    """Read *data* as UTF-8, replacing invalid sequences."""
    return data.decode(UTF8, errors="replace")


class CharsetRegistry:
    """Maps normalized charset names to Python codec names."""

    def __init__(self, charsets: Mapping[str, str] | None = None) -> None:
        self._codecs: dict[str, str] = {}
        for name, codec in (charsets or {}).items():
            self.register(name, codec)

    @classmethod
    def with_defaults(cls, extra: Mapping[str, str] | None = None) -> CharsetRegistry:
        """Registry pre-loaded with :data:`DEFAULT_CHARSETS` plus *extra*."""
        registry = cls(DEFAULT_CHARSETS)
        for name, codec in (extra or {}).items():
            registry.register(name, codec)
        return registry

    def register(self, name: str, codec: str | None = None) -> None:
        """Register *name* to decode with *codec* (defaults to *name* itself).

        Raises :class:`LookupError` if Python has no such codec.
        """
        key = normalize_charset_name(name)
        if not key:
            raise ValueError("charset name must not be empty")
        self._codecs[key] = codecs.lookup(codec or key).name

    def resolve(self, name: str | None) -> str:
        """Return the codec for *name*, or ``"utf-8"`` when it is unregistered."""
        return self._codecs.get(normalize_charset_name(name), UTF8)

    @property
    def supported(self) -> list[str]:
        return sorted(self._codecs)

    def decode(self, data: bytes, charset: str | None) -> Decoded:
        codec = self.resolve(charset)
        if codecs.lookup(codec).name == UTF8:
            return Decoded(passthrough(data))

        try:
            return Decoded(data.decode(codec))
        except UnicodeDecodeError as exc:
            logger.debug("charset_decode_failed", charset=charset, codec=codec, error=str(exc))
            return Decoded(passthrough(data), error=str(exc))
