"""
Pydantic schemas for data coming back from the ogame CLI.

Every payload is validated here before the decision engine sees it, so the
policies never operate on half-shaped planets or queues. The CLI keys some
maps by numeric strings ("300": 12) and uses camelCase fields; the models
normalize both.
"""

from enum import IntEnum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class PlanetKind(IntEnum):
    """Planet types as reported by the game."""
    COLONY = 1
    MOON = 3


class _Model(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class Resources(_Model):
    metal: int = 0
    crystal: int = 0
    deuterium: int = 0

    @model_validator(mode="before")
    @classmethod
    def _from_numeric_keys(cls, data: Any) -> Any:
        # Planet payloads use {"1": metal, "2": crystal, "3": deuterium}
        if isinstance(data, dict) and any(str(k) in ("1", "2", "3") for k in data):
            return {
                "metal": data.get("1", data.get(1, 0)),
                "crystal": data.get("2", data.get(2, 0)),
                "deuterium": data.get("3", data.get(3, 0)),
            }
        return data

    @field_validator("metal", "crystal", "deuterium", mode="before")
    @classmethod
    def _whole_units(cls, value: Any) -> int:
        return int(float(value or 0))


class Coordinate(_Model):
    universe: int = 0
    galaxy: int = 0
    system: int = 0
    planet: int = 0

    def __str__(self) -> str:
        return f"{self.galaxy}:{self.system}:{self.planet}"


class QueueEntry(_Model):
    """One in-progress build or research slot."""
    id: str
    target: int
    added_at: int = Field(default=0, alias="added")
    start_at: int = Field(default=0, alias="startTime")
    end_at: int = Field(default=0, alias="endTime")

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, value: Any) -> str:
        return str(value)


class Planet(_Model):
    """Read-only snapshot of one of the operator's planets."""
    id: int
    name: str = ""
    kind: PlanetKind = Field(default=PlanetKind.COLONY, alias="type")
    coordinate: Coordinate = Field(default_factory=Coordinate)
    resources: Resources = Field(default_factory=Resources, alias="resources_1")
    ships: Dict[int, int] = Field(default_factory=dict)
    buildings: Dict[int, int] = Field(default_factory=dict)
    defenses: Dict[int, int] = Field(default_factory=dict)

    @field_validator("ships", "buildings", "defenses", "resources", mode="before")
    @classmethod
    def _null_as_empty(cls, value: Any) -> Any:
        return value or {}

    @field_validator("kind", mode="before")
    @classmethod
    def _kind_code(cls, value: Any) -> int:
        return int(value)

    @property
    def label(self) -> str:
        return self.name or str(self.id)

    @property
    def is_colony(self) -> bool:
        return self.kind == PlanetKind.COLONY


class Points(_Model):
    total: float = 0
    building: float = 0
    technology: float = 0
    ship: float = 0
    defense: float = 0


class PlayerData(_Model):
    id: int
    username: str = ""
    universe: int = 0
    main_planet_id: Optional[int] = Field(default=None, alias="mainPlanetId")
    planets: List[int] = Field(default_factory=list)
    points: Points = Field(default_factory=Points)
    technologies: Dict[int, int] = Field(default_factory=dict)


class SystemPlanet(_Model):
    """A planet slot returned by a galaxy scan."""
    id: int
    position: int = 0
    owner_id: Optional[int] = Field(default=None, alias="ownerId")
    owner_name: str = Field(default="Unknown", alias="ownerName")
    ships: Dict[int, int] = Field(default_factory=dict)
    defenses: Dict[int, int] = Field(default_factory=dict)
    resources: Resources = Field(default_factory=Resources)

    # Unspied foreign planets report null resources
    @field_validator("ships", "defenses", "resources", mode="before")
    @classmethod
    def _null_as_empty(cls, value: Any) -> Any:
        return value or {}

    @field_validator("owner_name", mode="before")
    @classmethod
    def _unknown_owner(cls, value: Any) -> str:
        return value or "Unknown"


class TargetInfo(_Model):
    """A ranked attack candidate. Produced by scanning, never persisted."""
    planet_id: int
    coordinate: str
    owner: str
    strength: int
    resources: Resources = Field(default_factory=Resources)


class Envelope(_Model):
    """The {code, msg, data} wrapper around every CLI response."""
    code: int
    msg: Optional[str] = None
    data: Any = None

    @property
    def ok(self) -> bool:
        return self.code == 0
