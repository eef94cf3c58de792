from __future__ import annotations

import asyncio
from datetime import timedelta
from typing import Optional

import structlog

from .core import CycleReport, FeedReconciler

logger = structlog.get_logger(__name__)


class Poller:
    """
    Drives a FeedReconciler on a fixed interval.

    The interval is measured from the end of one cycle to the start of the
    next, so cycles never overlap. Tests call ``run_once`` directly instead.
    """

    def __init__(
        self,
        reconciler: FeedReconciler,
        interval: Optional[timedelta] = None,
        *,
        auto_commit: bool = False,
    ) -> None:
        self.reconciler = reconciler
        self.interval = interval if interval is not None else reconciler.settings.poll_interval
        self.auto_commit = auto_commit
        self.cycles = 0

    async def run_once(self) -> CycleReport:
        report = await self.reconciler.refresh_now()
        self.cycles += 1
        if self.auto_commit and self.reconciler.pending_count:
            self.reconciler.commit()
        return report

    async def run_forever(self, stop_event: Optional[asyncio.Event] = None) -> None:
        stop = stop_event or asyncio.Event()
        delay = self.interval.total_seconds()
        logger.info("poller started", interval=delay, sources=len(self.reconciler.settings.sources))
        while not stop.is_set():
            await self.run_once()
            try:
                await asyncio.wait_for(stop.wait(), timeout=delay)
            except asyncio.TimeoutError:
                continue
        logger.info("poller stopped", cycles=self.cycles)
