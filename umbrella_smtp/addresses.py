"""Parsed address records → canonical :class:`Address` models."""

from __future__ import annotations

from collections.abc import Iterable

from .models import Address
from .parser import MailAddress


def to_canonical_one(record: MailAddress) -> Address:
    return Address(name=record.name, address=record.address)


def to_canonical(records: Iterable[MailAddress]) -> list[Address]:
    """Convert *records* one-to-one, preserving order and duplicates."""
    return [to_canonical_one(record) for record in records]
