"""
Pytest fixtures for Ringway agent tests.
"""

from typing import Any, Dict, List, Optional, Set, Tuple

import pytest

from automation import EngineStats
from config import ConfigStore
from game_client import ClientTimeout
from schemas import Planet, PlayerData, QueueEntry, SystemPlanet

MAIN_PLANET_ID = 68168801


def make_planet(planet_id: int, name: str = "", kind: int = 1,
                ships: Optional[Dict[int, int]] = None) -> Planet:
    """Build a planet from the wire shape the CLI prints."""
    return Planet.model_validate({
        "id": planet_id,
        "name": name,
        "type": kind,
        "coordinate": {"universe": 1, "galaxy": 1, "system": 42, "planet": 7},
        "resources_1": {"1": 5000, "2": 3000, "3": 1000},
        "ships": {str(k): v for k, v in (ships or {}).items()},
        "buildings": {"100": 12},
        "defenses": {},
    })


def make_queue_entry(target: int, entry_id: str = "q1") -> QueueEntry:
    return QueueEntry.model_validate({
        "id": entry_id, "sourceId": MAIN_PLANET_ID, "target": target,
        "added": 1, "startTime": 2, "endTime": 3, "duration": 1,
    })


def make_slot(planet_id: int, position: int, owner_id: Optional[int],
              ships=None, defenses=None, resources=None) -> SystemPlanet:
    return SystemPlanet.model_validate({
        "id": planet_id,
        "position": position,
        "ownerId": owner_id,
        "ownerName": f"player{owner_id}" if owner_id else None,
        "ships": ships or {},
        "defenses": defenses or {},
        "resources": resources or {"metal": 0, "crystal": 0, "deuterium": 0},
    })


class FakeGameClient:
    """In-memory stand-in for GameClient that records every call."""

    def __init__(self):
        self.calls: List[Tuple[str, tuple]] = []
        self.player = PlayerData(id=1, username="operator", mainPlanetId=MAIN_PLANET_ID)
        self.planets: List[Planet] = [make_planet(MAIN_PLANET_ID, "Homeworld", ships={300: 10})]
        self.ship_queues: Dict[int, List[QueueEntry]] = {}
        self.building_queues: Dict[int, List[QueueEntry]] = {}
        self.ships: Dict[int, Dict[int, int]] = {}
        self.tech_levels: Dict[int, int] = {}
        self.tech_queue: List[QueueEntry] = []
        self.buildable_ships: Set[int] = set()
        self.buildable_buildings: Set[int] = set()
        self.research_ok = True
        self.cancel_ok = True
        self.fleet_ok = True
        self.systems: Dict[Tuple[int, int], List[SystemPlanet]] = {}
        self.failing_systems: Set[Tuple[int, int]] = set()
        # method name -> exception raised when that method is called
        self.errors: Dict[str, Exception] = {}

    def _record(self, name: str, *args: Any) -> None:
        self.calls.append((name, args))
        if name in self.errors:
            raise self.errors[name]

    def calls_to(self, name: str) -> List[tuple]:
        return [args for call, args in self.calls if call == name]

    async def ping(self, timeout: float = 5.0) -> bool:
        return True

    async def get_player_data(self):
        self._record("get_player_data")
        return self.player

    async def get_planets(self):
        self._record("get_planets")
        return list(self.planets)

    async def get_planet_detail(self, planet_id):
        self._record("get_planet_detail", planet_id)
        return next(p for p in self.planets if p.id == planet_id)

    async def build_ship(self, planet_id, ship_type, amount=1):
        self._record("build_ship", planet_id, ship_type, amount)
        return ship_type in self.buildable_ships

    async def get_ship_queue(self, planet_id):
        self._record("get_ship_queue", planet_id)
        return self.ship_queues.get(planet_id, [])

    async def get_ships(self, planet_id):
        self._record("get_ships", planet_id)
        return self.ships.get(planet_id, {})

    async def build_building(self, planet_id, building_type, amount=1):
        self._record("build_building", planet_id, building_type, amount)
        return building_type in self.buildable_buildings

    async def get_building_queue(self, planet_id):
        self._record("get_building_queue", planet_id)
        return self.building_queues.get(planet_id, [])

    async def research_tech(self, tech_type, amount=1, planet_id=None):
        self._record("research_tech", tech_type, amount, planet_id)
        return self.research_ok

    async def cancel_tech(self, tech_type, planet_id=None):
        self._record("cancel_tech", tech_type, planet_id)
        return self.cancel_ok

    async def get_tech_queue(self):
        self._record("get_tech_queue")
        return list(self.tech_queue)

    async def get_tech_list(self):
        self._record("get_tech_list")
        return dict(self.tech_levels)

    async def scan_system(self, galaxy, system):
        self._record("scan_system", galaxy, system)
        if (galaxy, system) in self.failing_systems:
            raise ClientTimeout(f"galaxy info {galaxy}:{system} timed out")
        return list(self.systems.get((galaxy, system), []))

    async def send_fleet(self, from_planet, to, mission, ships=None, resources=None):
        self._record("send_fleet", from_planet, to, mission, ships, resources)
        return self.fleet_ok


@pytest.fixture
def client() -> FakeGameClient:
    return FakeGameClient()


@pytest.fixture
def config(tmp_path) -> ConfigStore:
    """Default configuration backed by a throwaway directory."""
    return ConfigStore(tmp_path)


@pytest.fixture
def stats() -> EngineStats:
    return EngineStats()
