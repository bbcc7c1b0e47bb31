from __future__ import annotations

import asyncio
from typing import Optional


def remaining_budget(deadline: Optional[float]) -> Optional[float]:
    """Seconds left until ``deadline`` (event loop time), ``None`` if unbounded."""
    if deadline is None:
        return None
    return deadline - asyncio.get_running_loop().time()


async def sleep_before_retry(delay: float, deadline: Optional[float] = None) -> bool:
    """Sleep the fixed retry ``delay`` without overrunning ``deadline``.

    Returns ``False`` without sleeping when the deadline would elapse before
    the next attempt could start; the caller should stop retrying.
    """
    remaining = remaining_budget(deadline)
    if remaining is not None and remaining <= delay:
        return False
    if delay > 0:
        await asyncio.sleep(delay)
    return True
