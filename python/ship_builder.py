"""Shipyard policy - one batch per planet per cycle, colony ships first."""

import logging
from typing import List

from game_client import GameClientError
from game_data import COLONY_BATCH, Ships, ship_name
from schemas import Planet

log = logging.getLogger("ship_builder")


class ShipBuilder:
    """Keeps every shipyard busy, walking the configured ship priority list."""

    def __init__(self, client, config, stats):
        self.client = client
        self.config = config
        self.stats = stats

    async def build_on_planet(self, planet: Planet) -> bool:
        """Queue at most one ship batch on a planet. Returns True if something was queued.

        Decision logic:
        - Busy shipyard: do nothing
        - Colony ships below the minimum: replenish them and nothing else,
          even when that build is rejected
        - Otherwise: first ship type in priority order whose build succeeds
        """
        cfg = self.config.get_config()
        priority = cfg.automation.ship_priority
        batch = cfg.game.ship_build_batch
        min_colony = cfg.game.min_colony_ships

        try:
            queue = await self.client.get_ship_queue(planet.id)
            if queue:
                log.info("Planet %s shipyard busy (%d)", planet.id, len(queue))
                return False

            colony_ships = planet.ships.get(Ships.COLONY_SHIP, 0)
            if colony_ships < min_colony:
                if await self.client.build_ship(planet.id, Ships.COLONY_SHIP, COLONY_BATCH):
                    log.info("%s: %s +%d (%d/%d)", planet.label, ship_name(Ships.COLONY_SHIP),
                             COLONY_BATCH, colony_ships, min_colony)
                    self.stats.ships_built += COLONY_BATCH
                    return True
                log.info("%s: insufficient resources for %s (%d/%d)", planet.label,
                         ship_name(Ships.COLONY_SHIP), colony_ships, min_colony)
                return False

            for ship_type in priority:
                if await self.client.build_ship(planet.id, ship_type, batch):
                    log.info("%s: %s +%d", planet.label, ship_name(ship_type), batch)
                    self.stats.ships_built += batch
                    return True

            log.info("%s: insufficient resources, nothing to build", planet.label)
            return False
        except GameClientError as e:
            log.error("Ship build on planet %s failed: %s", planet.id, e)
            return False

    async def build_all(self) -> int:
        """Main planet first, then every other colony. Returns planets served."""
        log.info("=== Ship building ===")
        main_id = self.config.get_config().game.main_planet_id
        try:
            planets = await self.client.get_planets()
        except GameClientError as e:
            log.error("Ship building failed: %s", e)
            return 0

        built = 0
        for planet in self._build_order(planets, main_id):
            if await self.build_on_planet(planet):
                built += 1
        return built

    @staticmethod
    def _build_order(planets: List[Planet], main_id: int) -> List[Planet]:
        main = [p for p in planets if p.id == main_id]
        others = [p for p in planets if p.id != main_id and p.is_colony]
        return main[:1] + others
