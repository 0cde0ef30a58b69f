"""Background scan of the apps installed on the device.

The scanner runs as its own asyncio task, independent of any agent run.
Each refresh publishes a new immutable ``frozenset`` by replacing a single
reference; readers take that reference without locking and may briefly
see the previous snapshot.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Iterable

from autopilot.utils.logging import get_logger

logger = get_logger(__name__)

PackageSource = Callable[[], Awaitable[Iterable[str]]]


class AppScanner:
    """Holds the latest snapshot of installed package names.

    Parameters
    ----------
    source:
        Coroutine function returning the installed package names.
    interval:
        Seconds between background refreshes; ``None`` scans once.
    initial:
        Snapshot served until the first scan completes.
    """

    def __init__(
        self,
        source: PackageSource | None = None,
        interval: float | None = None,
        initial: Iterable[str] = (),
    ) -> None:
        self._source = source
        self._interval = interval
        self._snapshot: frozenset[str] = frozenset(initial)
        self._task: asyncio.Task | None = None

    @property
    def snapshot(self) -> frozenset[str]:
        return self._snapshot

    def is_installed(self, package_name: str) -> bool:
        return package_name in self._snapshot

    def publish(self, packages: Iterable[str]) -> frozenset[str]:
        snapshot = frozenset(p for p in packages if p)
        self._snapshot = snapshot
        return snapshot

    async def refresh(self) -> frozenset[str]:
        """Scan once.  On failure the previous snapshot stays in place."""
        if self._source is None:
            return self._snapshot
        try:
            packages = await self._source()
        except Exception:
            logger.exception("app_scan_failed", kept=len(self._snapshot))
            return self._snapshot
        snapshot = self.publish(packages)
        logger.info("app_scan_complete", count=len(snapshot))
        return snapshot

    def start(self) -> asyncio.Task:
        """Launch the background worker (idempotent)."""
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._run(), name="app-scanner")
        return self._task

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def _run(self) -> None:
        while True:
            await self.refresh()
            if self._interval is None:
                return
            await asyncio.sleep(self._interval)
