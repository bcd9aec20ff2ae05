"""Research policy - keeps the expedition tech moving toward its target level."""

import asyncio
import logging

from game_client import GameClientError
from game_data import MAX_QUEUED_PER_TECH, TECH_QUEUE_CAPACITY, Techs, tech_name

log = logging.getLogger("tech_manager")


class TechManager:
    """Queues research for one prioritized tech, displacing a lower-priority one if needed."""

    CANCEL_SETTLE_SECONDS = 0.5

    def __init__(self, client, config, stats,
                 tech: int = Techs.EXPEDITION_TECH,
                 displaceable: int = Techs.HYPERSPACE_ENGINE,
                 queue_capacity: int = TECH_QUEUE_CAPACITY,
                 settle_seconds: float = CANCEL_SETTLE_SECONDS):
        self.client = client
        self.config = config
        self.stats = stats
        self.tech = tech
        self.displaceable = displaceable
        self.queue_capacity = queue_capacity
        self.settle_seconds = settle_seconds

    async def manage(self) -> str:
        """Run the research policy once.

        Returns the decision taken: "none", "research" or "displace".
        Client faults are logged and reported as "none".
        """
        log.info("=== Tech management ===")
        game = self.config.get_config().game
        try:
            levels = await self.client.get_tech_list()
            queue = await self.client.get_tech_queue()
            current = levels.get(self.tech, 0)
            in_queue = sum(1 for entry in queue if entry.target == self.tech)

            log.info("%s: Lv.%d | queue: %d/%d | queued for this tech: %d",
                     tech_name(self.tech), current, len(queue), self.queue_capacity, in_queue)

            if current >= game.tech_target_expedition:
                log.info("%s reached target level %d",
                         tech_name(self.tech), game.tech_target_expedition)
                return "none"
            if in_queue >= MAX_QUEUED_PER_TECH:
                return "none"

            if len(queue) < self.queue_capacity:
                if await self.client.research_tech(self.tech, 1, game.main_planet_id):
                    log.info("Queued research: %s", tech_name(self.tech))
                    self.stats.tech_researched += 1
                else:
                    log.info("Research of %s rejected", tech_name(self.tech))
                return "research"

            return await self._displace(game.main_planet_id)
        except GameClientError as e:
            log.error("Tech management failed: %s", e)
            return "none"

    async def _displace(self, planet_id: int) -> str:
        log.info("Research queue full, cancelling %s...", tech_name(self.displaceable))
        if not await self.client.cancel_tech(self.displaceable, planet_id):
            log.error("Cancel of %s failed, research not queued", tech_name(self.displaceable))
            return "displace"
        await asyncio.sleep(self.settle_seconds)

        if await self.client.research_tech(self.tech, 1, planet_id):
            log.info("Freed a slot and queued %s", tech_name(self.tech))
            self.stats.tech_researched += 1
        else:
            log.error("Research of %s failed after cancelling %s",
                      tech_name(self.tech), tech_name(self.displaceable))
        return "displace"
