"""
Automation scheduler - recurring timer around GameAutomation.run().

One cycle at a time: cycles are serialized by a lock, and a timer fire that
lands while a cycle is still running is skipped with a warning. Stopping
disarms the timer but never interrupts a cycle in flight.
"""

import asyncio
import logging
from typing import Any, Callable, Dict, Optional, Set

log = logging.getLogger("scheduler")


class AutomationScheduler:
    """Start/stop/run-once control around one GameAutomation."""

    def __init__(self, automation, config,
                 on_cycle: Optional[Callable[[Dict[str, Any]], None]] = None):
        self.automation = automation
        self.config = config
        self.on_cycle = on_cycle
        self._lock = asyncio.Lock()
        self._timer: Optional[asyncio.Task] = None
        self._cycles: Set[asyncio.Task] = set()
        self.interval_ms: Optional[int] = None

    @property
    def running(self) -> bool:
        return self.automation.state.running

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    def start(self, interval_ms: Optional[int] = None) -> bool:
        """Arm the timer and kick off one cycle right away.

        Must be called from inside the event loop. Returns False if the
        scheduler was already armed.
        """
        if self.running:
            log.info("Automation already running")
            return False

        interval = interval_ms or self.config.get_config().automation.interval_ms
        self.interval_ms = interval
        self.automation.state.running = True
        log.info("Automation started, interval %dms", interval)

        self._spawn_cycle()
        self._timer = asyncio.get_running_loop().create_task(self._timer_loop(interval / 1000.0))
        return True

    def stop(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self.automation.state.running = False
        log.info("Automation stopped")

    async def run_once(self) -> Dict[str, Any]:
        """Run exactly one cycle, waiting for any cycle already in flight."""
        async with self._lock:
            result = await self.automation.run()
        self._notify(result)
        return result

    def reset_stats(self) -> None:
        self.automation.reset_stats()

    def get_state(self) -> Dict[str, Any]:
        return self.automation.get_state()

    def get_stats(self) -> Dict[str, Any]:
        return self.automation.get_stats()

    async def shutdown(self) -> None:
        """Stop and let in-flight cycles finish."""
        self.stop()
        if self._cycles:
            await asyncio.gather(*self._cycles, return_exceptions=True)

    # ------------------------------------------------------------------
    async def _timer_loop(self, interval_s: float) -> None:
        while True:
            await asyncio.sleep(interval_s)
            if self.busy:
                log.warning("Previous cycle still running, skipping this tick")
                continue
            self._spawn_cycle()

    def _spawn_cycle(self) -> None:
        task = asyncio.get_running_loop().create_task(self._guarded_cycle())
        self._cycles.add(task)
        task.add_done_callback(self._cycles.discard)

    async def _guarded_cycle(self) -> None:
        try:
            await self.run_once()
        except Exception as e:
            # run() isolates its phases, so this only sees faults outside them
            log.exception("Automation cycle crashed")
            self.automation.state.last_error = f"{type(e).__name__}: {e}"

    def _notify(self, result: Dict[str, Any]) -> None:
        if self.on_cycle is None:
            return
        try:
            self.on_cycle(result)
        except Exception:
            log.exception("Cycle hook failed")
