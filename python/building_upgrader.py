"""Construction policy - one building upgrade per colony per cycle."""

import logging

from game_client import GameClientError
from game_data import building_name
from schemas import Planet

log = logging.getLogger("building_upgrader")


class BuildingUpgrader:
    """Upgrades the first affordable building from the configured priority list."""

    def __init__(self, client, config, stats):
        self.client = client
        self.config = config
        self.stats = stats

    async def upgrade_on_planet(self, planet: Planet) -> bool:
        priority = self.config.get_config().automation.building_priority
        try:
            queue = await self.client.get_building_queue(planet.id)
            if queue:
                log.info("Planet %s construction busy (%d)", planet.id, len(queue))
                return False

            for building_type in priority:
                if await self.client.build_building(planet.id, building_type, 1):
                    log.info("%s: %s +1", planet.label, building_name(building_type))
                    self.stats.buildings_upgraded += 1
                    return True

            log.info("%s: insufficient resources, nothing to upgrade", planet.label)
            return False
        except GameClientError as e:
            log.error("Building upgrade on planet %s failed: %s", planet.id, e)
            return False

    async def upgrade_all(self) -> int:
        log.info("=== Building upgrades ===")
        try:
            planets = await self.client.get_planets()
        except GameClientError as e:
            log.error("Building upgrades failed: %s", e)
            return 0

        upgraded = 0
        for planet in planets:
            # Moons produce no resources
            if planet.is_colony and await self.upgrade_on_planet(planet):
                upgraded += 1
        return upgraded
