"""SPF evaluation for the sending host via pyspf.

``spf.check2`` does blocking DNS lookups, so it runs in a worker thread.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

import spf
import structlog

from .models import SpfResult

logger = structlog.get_logger()

SpfChecker = Callable[[str, str, str], Awaitable[SpfResult]]


async def check_spf(ip: str, mail_from: str, helo: str) -> SpfResult:
    """Return the SPF verdict for *mail_from* sent from *ip* after ``HELO helo``."""
    if not ip or not (mail_from or helo):
        return SpfResult.NONE

    result, explanation = await asyncio.to_thread(spf.check2, i=ip, s=mail_from, h=helo)
    try:
        verdict = SpfResult(result)
    except ValueError:
        logger.warning("spf_unknown_result", result=result, explanation=explanation)
        return SpfResult.NONE

    logger.debug("spf_checked", ip=ip, mail_from=mail_from, result=verdict.value)
    return verdict


async def skip_spf(ip: str, mail_from: str, helo: str) -> SpfResult:
    """Checker used when SPF evaluation is disabled."""
    return SpfResult.NONE
