# src/scalesim/core/convergence.py
"""
Waits for the placement engine to stop reporting placement failures.

Failure events are never retracted by the scheduler, so a workload unit only
counts as failing when its event is recent enough AND it is still unplaced.
"""

import asyncio
import logging
from datetime import datetime
from typing import Dict, Optional

from ..storage.base_store import ClusterStateStore, matches_labels
from .config import config
from .exceptions import ConvergenceTimeoutError

logger = logging.getLogger(__name__)


async def count_unscheduled(
    store: ClusterStateStore, since: datetime, selector: Optional[Dict[str, str]] = None
) -> int:
    """
    Returns the number of distinct workload units that failed placement at or
    after `since` and still have no assigned unit.
    """
    events = await store.list_placement_failure_events(since)
    failed = {(e.namespace, e.workload_name) for e in events if e.timestamp >= since}
    if not failed:
        return 0

    workload = await store.list_workload(selector)
    return sum(
        1
        for w in workload
        if (w.namespace, w.name) in failed and not w.placed and matches_labels(w.labels, selector)
    )


async def wait_for_convergence(
    store: ClusterStateStore,
    timeout: float,
    since: datetime,
    selector: Optional[Dict[str, str]] = None,
    poll_interval: Optional[float] = None,
) -> int:
    """
    Polls the event feed until no qualifying placement failure remains.

    Args:
        store: The cluster state store to read events and workload from.
        timeout: Deadline in seconds.
        since: Only failure events at or after this instant count.
        selector: Optional labels restricting which workload is counted.
        poll_interval: Seconds between polls, defaults to POLL_INTERVAL_SECONDS.

    Returns:
        int: Always 0 on success.

    Raises:
        ConvergenceTimeoutError: If failures remain when the deadline passes.
            Its `unscheduled` attribute holds the last observed count.
    """
    interval = config.POLL_INTERVAL_SECONDS if poll_interval is None else poll_interval
    last_count = 0

    async def _poll() -> int:
        nonlocal last_count
        while True:
            last_count = await count_unscheduled(store, since, selector)
            if last_count == 0:
                return 0
            logger.debug("%d workload units still unscheduled, polling again in %ss", last_count, interval)
            await asyncio.sleep(interval)

    try:
        return await asyncio.wait_for(_poll(), timeout=timeout)
    except asyncio.TimeoutError as e:
        logger.info("Convergence timed out after %ss with %d unscheduled workload units", timeout, last_count)
        raise ConvergenceTimeoutError(
            f"Timed out after {timeout}s waiting for convergence; {last_count} workload units unscheduled",
            unscheduled=last_count,
            timeout=timeout,
        ) from e
