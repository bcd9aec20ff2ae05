"""Colonization eligibility - expedition level bounds how many colonies we may hold."""

import logging
from dataclasses import dataclass
from typing import Optional

from game_client import GameClientError
from game_data import Ships, Techs

log = logging.getLogger("colonization")


@dataclass
class ColonizationStatus:
    expedition_level: int
    colony_limit: int
    planet_count: int
    colony_ships: Optional[int] = None
    eligible: bool = False


def colony_limit(expedition_level: int) -> int:
    return expedition_level + 1


class ColonizationChecker:
    """Reports whether a new colony could be founded.

    Only the signal is produced; sending the colony ship is left to the
    operator.
    """

    def __init__(self, client, config):
        self.client = client
        self.config = config

    async def check(self) -> Optional[ColonizationStatus]:
        log.info("=== Colonization check ===")
        game = self.config.get_config().game
        try:
            levels = await self.client.get_tech_list()
            planets = await self.client.get_planets()

            level = levels.get(Techs.EXPEDITION_TECH, 0)
            status = ColonizationStatus(
                expedition_level=level,
                colony_limit=colony_limit(level),
                planet_count=sum(1 for p in planets if p.is_colony),
            )
            log.info("Colonies: %d | limit: %d", status.planet_count, status.colony_limit)

            if status.planet_count < status.colony_limit:
                ships = await self.client.get_ships(game.main_planet_id)
                status.colony_ships = ships.get(Ships.COLONY_SHIP, 0)
                if status.colony_ships >= game.min_colony_ships:
                    status.eligible = True
                    log.info("Colony ships ready: %d, colonization possible",
                             status.colony_ships)
                else:
                    log.info("Not enough colony ships: %d/%d",
                             status.colony_ships, game.min_colony_ships)
            return status
        except GameClientError as e:
            log.error("Colonization check failed: %s", e)
            return None
