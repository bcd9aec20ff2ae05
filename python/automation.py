"""
Automation cycle - runs the allocation policies in a fixed order.

Stages per cycle:
1. Tech management
2. Ship building (main planet, then colonies)
3. Building upgrades (colonies)
4. Colonization check

Each stage is isolated: an unexpected exception in one is logged, recorded
as the cycle's error, and the next stage still runs.
"""

import dataclasses
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

from building_upgrader import BuildingUpgrader
from colonization import ColonizationChecker
from ship_builder import ShipBuilder
from tech_manager import TechManager

log = logging.getLogger("automation")

BANNER = "=" * 40


@dataclass
class EngineState:
    running: bool = False
    last_run_at: Optional[float] = None
    last_error: Optional[str] = None


@dataclass
class EngineStats:
    ships_built: int = 0
    buildings_upgraded: int = 0
    tech_researched: int = 0


class GameAutomation:
    """Owns the engine state and stats and runs one decision cycle at a time."""

    def __init__(self, client, config, tech_settle_seconds: float = TechManager.CANCEL_SETTLE_SECONDS):
        self.client = client
        self.config = config
        self.state = EngineState()
        self.stats = EngineStats()
        self.tech_manager = TechManager(client, config, self.stats,
                                        settle_seconds=tech_settle_seconds)
        self.ship_builder = ShipBuilder(client, config, self.stats)
        self.building_upgrader = BuildingUpgrader(client, config, self.stats)
        self.colonization = ColonizationChecker(client, config)

    async def run(self) -> Dict[str, Any]:
        """Execute one full cycle and return a summary of it."""
        started = time.time()
        log.info(BANNER)
        log.info("Automation cycle starting")
        log.info(BANNER)

        phases = [
            ("tech", self.tech_manager.manage),
            ("ships", self.ship_builder.build_all),
            ("buildings", self.building_upgrader.upgrade_all),
            ("colonization", self.colonization.check),
        ]
        first_error: Optional[str] = None
        for name, phase in phases:
            try:
                await phase()
            except Exception as e:
                log.exception("Phase %s failed", name)
                if first_error is None:
                    first_error = f"{name}: {type(e).__name__}: {e}"

        finished = time.time()
        self.state.last_run_at = finished
        self.state.last_error = first_error

        log.info(BANNER)
        log.info("Cycle finished in %.1fs | ships: %d | buildings: %d | tech: %d",
                 finished - started, self.stats.ships_built,
                 self.stats.buildings_upgraded, self.stats.tech_researched)
        log.info(BANNER)

        return {
            "ok": first_error is None,
            "started_at": started,
            "finished_at": finished,
            "duration": round(finished - started, 3),
            "error": first_error,
            "stats": self.get_stats(),
        }

    def get_state(self) -> Dict[str, Any]:
        return dataclasses.asdict(self.state)

    def get_stats(self) -> Dict[str, Any]:
        return dataclasses.asdict(self.stats)

    def reset_stats(self) -> None:
        # In place: the policies hold a reference to this object
        self.stats.ships_built = 0
        self.stats.buildings_upgraded = 0
        self.stats.tech_researched = 0
