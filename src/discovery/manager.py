"""
Discovery session: owns the last completed scan and the auto-detected device
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Dict, List, Optional

from .models import DiscoverySnapshot
from .selector import resolve
from .sweep import SweepScheduler

logger = logging.getLogger(__name__)

SnapshotListener = Callable[[DiscoverySnapshot], Awaitable[None]]

class DeviceDiscovery:
    """
    Main discovery service for motor controllers.

    Readers call ``get_snapshot()`` at any time and get the last completed
    scan. ``scan()`` is single-flight: callers arriving while a scan is in
    progress await that same scan instead of launching another sweep.
    """

    def __init__(self, config: Dict, scheduler: Optional[SweepScheduler] = None):
        self.config = config
        self.scheduler = scheduler or SweepScheduler(config)
        self._snapshot = DiscoverySnapshot()
        self._inflight: Optional[asyncio.Task] = None
        self._listeners: List[SnapshotListener] = []

    def get_snapshot(self) -> DiscoverySnapshot:
        """Last completed snapshot; never waits on an in-flight scan"""
        return self._snapshot

    @property
    def scan_in_progress(self) -> bool:
        return self._inflight is not None and not self._inflight.done()

    def add_listener(self, listener: SnapshotListener):
        """Register a coroutine called with every newly completed snapshot"""
        self._listeners.append(listener)

    async def scan(self) -> DiscoverySnapshot:
        """Run a full sweep (or join the one in progress) and return its snapshot"""
        if self._inflight is None or self._inflight.done():
            self._inflight = asyncio.get_running_loop().create_task(self._run_scan())
        else:
            logger.info("Scan already in progress - waiting for its result")

        # shield: a cancelled caller must not cancel the scan other callers share
        return await asyncio.shield(self._inflight)

    async def _run_scan(self) -> DiscoverySnapshot:
        sweep = await self.scheduler.run_sweep()
        devices, selected = resolve(sweep.hits)

        snapshot = DiscoverySnapshot(
            devices=devices,
            selected=selected,
            version=self._snapshot.version + 1,
            network=sweep.network,
            completed_at=time.time(),
            duration_seconds=sweep.duration_seconds,
            probes_attempted=sweep.probes_attempted,
        )
        self._snapshot = snapshot

        if devices:
            logger.info(f"[OK] Found {len(devices)} potential motor controller(s):")
            for device in devices:
                logger.info(f"   - {device.ip} ({device.endpoint})")
            logger.info(f"[TARGET] Auto-selected controller: {selected.ip}")
        else:
            logger.info("No motor controllers found on network")

        await self._notify_listeners(snapshot)
        return snapshot

    async def _notify_listeners(self, snapshot: DiscoverySnapshot):
        for listener in list(self._listeners):
            try:
                await listener(snapshot)
            except Exception as e:
                logger.error(f"Discovery listener failed: {e}")
