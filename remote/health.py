"""
Remote store reachability check.

Used by the connectivity monitor to decide whether the process is online.
"Online" means the hosted database answers, not merely that a network
interface is up: a captive portal or a dead upstream both count as offline.
"""

import asyncio
import time
from typing import Tuple, TYPE_CHECKING

from shared.log import create_logger

if TYPE_CHECKING:
    from remote.client import RemoteStore

log_trace, log_debug, log_info, log_warn, log_error = create_logger("Health")

__all__ = ["check_remote_health"]


async def check_remote_health(remote: "RemoteStore", timeout: float = 5.0) -> Tuple[bool, float]:
    """
    Check remote store health via its ping() endpoint.

    Args:
        remote: RemoteStore instance to check
        timeout: Deadline in seconds for the probe

    Returns:
        Tuple of (is_healthy, latency_ms):
        - (True, latency_ms) if the store responded in time
        - (False, 0.0) if it is unreachable, too slow, or returned an error

    Examples:
        >>> healthy, latency = await check_remote_health(store)  # doctest: +SKIP
    """
    try:
        start = time.perf_counter()
        await asyncio.wait_for(remote.ping(), timeout=timeout)
        latency_ms = (time.perf_counter() - start) * 1000.0
        log_trace(f"Health check passed (latency: {latency_ms:.1f}ms)")
        return (True, latency_ms)

    except Exception as exc:
        # Any failure means "not healthy". Logged at debug level since
        # failures while offline are expected and would be noisy.
        log_debug(f"Health check failed: {type(exc).__name__}: {exc}")
        return (False, 0.0)
