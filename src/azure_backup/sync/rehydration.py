"""Archive-tier rehydration state machine.

An archived object cannot be overwritten until it has been moved back to an
online tier. The waiter drives an object through::

    COLD --request--> THAWING --poll until marker cleared--> READY

The wait runs inside the worker that wants to upload, so it keeps that
worker's concurrency permit for its whole duration. A job with many archived
targets and a small concurrency limit therefore serializes on rehydration
latency (hours on Azure standard priority). There is no upper bound on the
wait; cancelling the run is the only way to abort it.
"""

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable, Optional

from ..config.settings import StorageTier
from ..destinations.base import StoredObjectInfo

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 10.0  # seconds


class RehydrationState(str, Enum):
    COLD = "cold"
    THAWING = "thawing"
    READY = "ready"


def classify(info: Optional[StoredObjectInfo]) -> RehydrationState:
    """Map remote object info to a rehydration state."""
    if info is None:
        return RehydrationState.READY
    if info.archive_status:
        return RehydrationState.THAWING
    if info.tier and info.tier.lower() == StorageTier.ARCHIVE.value.lower():
        return RehydrationState.COLD
    return RehydrationState.READY


class RehydrationWaiter:
    """Bring an archived object back online before it is overwritten."""

    def __init__(self, poll_interval: float = DEFAULT_POLL_INTERVAL,
                 sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        self.poll_interval = poll_interval
        self._sleep = sleep

    async def wait_until_ready(
        self,
        info: Optional[StoredObjectInfo],
        fetch_info: Callable[[], Awaitable[Optional[StoredObjectInfo]]],
        request_rehydration: Callable[[], Awaitable[None]],
    ) -> int:
        """Block until the object is READY.

        Args:
            info: Current object info (None if the object does not exist)
            fetch_info: Re-reads the object's info
            request_rehydration: Starts the COLD -> THAWING transition

        Returns:
            Number of status polls performed
        """
        state = classify(info)
        polls = 0

        if state is RehydrationState.READY:
            return polls

        key = info.key if info else "?"
        if state is RehydrationState.COLD:
            logger.info(f"Object is archived, requesting rehydration: {key}")
            await request_rehydration()
            state = RehydrationState.THAWING

        logger.info(f"Waiting for rehydration of {key} (polling every {self.poll_interval:g}s)")
        while state is RehydrationState.THAWING:
            await self._sleep(self.poll_interval)
            polls += 1
            info = await fetch_info()
            if info is None or not info.archive_status:
                state = RehydrationState.READY
            else:
                logger.debug(f"Still rehydrating {key}: {info.archive_status}")

        logger.info(f"Rehydration complete after {polls} polls: {key}")
        return polls
