"""
Combat - galaxy scanning, target scoring, attacks and fleet missions.

Targets are ranked by a strength score (weighted ship + defense counts);
the weakest come first so callers can pick from the front of the list.
"""

import logging
import math
from typing import Dict, List, Mapping, Optional, Set

from game_client import GameClientError
from game_data import DEFENSE_STRENGTH, SHIP_STRENGTH, Ships
from schemas import Resources, TargetInfo

log = logging.getLogger("combat")

SYSTEM_STRIDE = 10
SYSTEMS_PER_GALAXY = 100
PLUNDER_FRACTION = 0.5


def calculate_strength(ships: Mapping[int, int], defenses: Mapping[int, int]) -> int:
    """Combat strength of a planet. Unknown unit ids count for nothing."""
    strength = 0
    for ship_id, count in ships.items():
        strength += SHIP_STRENGTH.get(int(ship_id), 0) * int(count)
    for def_id, count in defenses.items():
        strength += DEFENSE_STRENGTH.get(int(def_id), 0) * int(count)
    return strength


def sampled_systems() -> List[int]:
    """Every 10th system (1, 11, ..., 91) - coverage traded for call volume."""
    return list(range(1, SYSTEMS_PER_GALAXY + 1, SYSTEM_STRIDE))


class CombatSystem:
    """Scans for weak neighbours and sends fleets at them."""

    def __init__(self, client, config):
        self.client = client
        self.config = config

    async def _own_ids(self) -> Optional[Set[int]]:
        game = self.config.get_config().game
        if game.player_id is not None:
            return {game.player_id}
        try:
            player = await self.client.get_player_data()
        except GameClientError as e:
            log.error("Cannot identify operator, skipping scan: %s", e)
            return None
        return {player.id}

    async def scan_system(self, galaxy: int, system: int,
                          own_ids: Optional[Set[int]] = None) -> List[TargetInfo]:
        """Foreign owned planets in one system. Scan errors yield an empty list."""
        if own_ids is None:
            own_ids = await self._own_ids()
            if own_ids is None:
                return []
        try:
            slots = await self.client.scan_system(galaxy, system)
        except GameClientError as e:
            log.debug("Scan failed [%d:%d]: %s", galaxy, system, e)
            return []

        targets = []
        for slot in slots:
            if not slot.owner_id or slot.owner_id in own_ids:
                continue
            targets.append(TargetInfo(
                planet_id=slot.id,
                coordinate=f"{galaxy}:{system}:{slot.position}",
                owner=slot.owner_name,
                strength=calculate_strength(slot.ships, slot.defenses),
                resources=slot.resources,
            ))
        return targets

    async def scan_galaxy(self, start_galaxy: int = 1, end_galaxy: int = 5) -> List[TargetInfo]:
        """Scan galaxies start..end (inclusive), weakest targets first."""
        own_ids = await self._own_ids()
        if own_ids is None:
            return []

        targets: List[TargetInfo] = []
        for galaxy in range(start_galaxy, end_galaxy + 1):
            for system in sampled_systems():
                targets.extend(await self.scan_system(galaxy, system, own_ids))

        log.info("Scanned galaxies %d-%d: %d targets", start_galaxy, end_galaxy, len(targets))
        # sorted() is stable, equal strengths keep scan order
        return sorted(targets, key=lambda t: t.strength)

    async def attack(self, target: TargetInfo, fleet: Dict[int, int]) -> bool:
        """Send an attack fleet. Cargo capacity is not modelled; we ask for half
        of what the target last had."""
        main_id = self.config.get_config().game.main_planet_id
        res = target.resources
        plunder = {
            "metal": max(0, math.floor(res.metal * PLUNDER_FRACTION)),
            "crystal": max(0, math.floor(res.crystal * PLUNDER_FRACTION)),
            "deuterium": max(0, math.floor(res.deuterium * PLUNDER_FRACTION)),
        }
        try:
            ok = await self.client.send_fleet(main_id, target.coordinate, "attack",
                                              ships=fleet, resources=plunder)
        except GameClientError as e:
            log.error("Attack on %s failed: %s", target.coordinate, e)
            return False
        if ok:
            log.info("Attack launched at %s (strength %d)", target.coordinate, target.strength)
        else:
            log.warning("Attack on %s rejected", target.coordinate)
        return ok

    async def auto_attack(self) -> Optional[TargetInfo]:
        """Attack the weakest scanned target if it is below the threshold.

        Returns the attacked target, or None when nothing was attacked.
        """
        combat = self.config.get_config().combat
        start, end = combat.scan_galaxies
        log.info("Auto-attack scan of galaxies %d-%d...", start, end)

        targets = await self.scan_galaxy(start, end)
        if not targets:
            log.info("No targets found")
            return None

        weakest = targets[0]
        if weakest.strength >= combat.attack_threshold:
            log.info("Weakest target %s too strong (%d >= %d)",
                     weakest.coordinate, weakest.strength, combat.attack_threshold)
            return None

        log.info("Weak target found: %s, strength %d", weakest.coordinate, weakest.strength)
        if await self.attack(weakest, dict(combat.attack_fleet)):
            return weakest
        return None

    async def espionage(self, coordinate: str) -> bool:
        return await self._mission(coordinate, "espionage", ships={Ships.SPY_PROBE: 1})

    async def transport(self, planet_id: int, resources: Resources) -> bool:
        return await self._mission(planet_id, "transport", resources=resources.model_dump())

    async def debris(self, coordinate: str) -> bool:
        return await self._mission(coordinate, "debris", ships={Ships.RECYCLER: 10})

    async def _mission(self, to, mission: str, ships=None, resources=None) -> bool:
        main_id = self.config.get_config().game.main_planet_id
        try:
            ok = await self.client.send_fleet(main_id, to, mission,
                                              ships=ships, resources=resources)
        except GameClientError as e:
            log.error("%s mission to %s failed: %s", mission, to, e)
            return False
        if not ok:
            log.warning("%s mission to %s rejected", mission, to)
        return ok
