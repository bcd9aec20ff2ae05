"""
Configuration store - defaults, config.json overrides, validated updates.

The store is read fresh by every policy at decision time, so an update made
through the HTTP surface takes effect on the next cycle without a restart.
"""

import copy
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field, ValidationError, field_validator

log = logging.getLogger("config")

CONFIG_FILE = "config.json"


class ConfigError(Exception):
    """Raised when an update would produce an invalid configuration."""


class ServerConfig(BaseModel):
    host: str = "0.0.0.0"
    port: int = Field(default=3000, ge=1, le=65535)


class GameConfig(BaseModel):
    main_planet_id: int
    player_id: Optional[int] = None
    ship_build_batch: int = Field(default=10, ge=1)
    min_colony_ships: int = Field(default=10, ge=0)
    tech_target_expedition: int = Field(default=5, ge=0)
    client_path: str = "ogame"
    client_timeout: float = Field(default=30.0, gt=0)


class AutomationConfig(BaseModel):
    enabled: bool = True
    interval_ms: int = Field(default=600_000, ge=1000)
    ship_priority: List[int] = Field(default_factory=list)
    building_priority: List[int] = Field(default_factory=list)


class CombatConfig(BaseModel):
    scan_galaxies: Tuple[int, int] = (1, 3)
    attack_threshold: int = Field(default=10_000, ge=0)
    attack_fleet: Dict[int, int] = Field(default_factory=dict)

    @field_validator("scan_galaxies")
    @classmethod
    def _ordered_range(cls, value: Tuple[int, int]) -> Tuple[int, int]:
        start, end = value
        if start < 1 or end < start:
            raise ValueError(f"invalid galaxy range {start}..{end}")
        return value


class LoggingConfig(BaseModel):
    level: str = "info"
    dir: str = "logs"
    retention_days: int = Field(default=7, ge=1)

    @field_validator("level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        if value.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"unknown log level {value!r}")
        return value.lower()


class BotConfig(BaseModel):
    server: ServerConfig
    game: GameConfig
    automation: AutomationConfig
    combat: CombatConfig
    logging: LoggingConfig


DEFAULT_CONFIG: Dict[str, Any] = {
    "server": {
        "host": "0.0.0.0",
        "port": 3000,
    },
    "game": {
        "main_planet_id": 68168801,
        "player_id": None,
        "ship_build_batch": 10,
        "min_colony_ships": 10,
        "tech_target_expedition": 5,
        "client_path": "ogame",
        "client_timeout": 30.0,
    },
    "automation": {
        "enabled": True,
        "interval_ms": 600_000,  # 10 minutes
        "ship_priority": [313, 312, 311, 307, 304, 303, 302, 301],
        "building_priority": [100, 101, 103, 106, 108, 112, 102, 105, 109, 110, 111],
    },
    "combat": {
        "scan_galaxies": [1, 3],
        "attack_threshold": 10_000,
        "attack_fleet": {"303": 10, "304": 5},
    },
    "logging": {
        "level": "info",
        "dir": "logs",
        "retention_days": 7,
    },
}


def merge_deep(target: Dict[str, Any], source: Dict[str, Any]) -> Dict[str, Any]:
    """Return target overlaid with source; nested dicts merge, everything else replaces."""
    output = copy.deepcopy(target)
    for key, value in source.items():
        if isinstance(value, dict) and isinstance(output.get(key), dict):
            output[key] = merge_deep(output[key], value)
        else:
            output[key] = copy.deepcopy(value)
    return output


class ConfigStore:
    """Holds the live BotConfig and persists it to <config_dir>/config.json."""

    def __init__(self, config_dir: Any = "."):
        self.path = Path(config_dir) / CONFIG_FILE
        self._raw = self._load()
        self._config = BotConfig.model_validate(self._raw)

    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            log.info("No %s found, using default configuration", self.path)
            return copy.deepcopy(DEFAULT_CONFIG)
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                loaded = json.load(f)
            if not isinstance(loaded, dict):
                raise ValueError("top level must be an object")
            merged = merge_deep(DEFAULT_CONFIG, loaded)
            BotConfig.model_validate(merged)
            return merged
        except (OSError, ValueError, ValidationError) as e:
            log.error("Failed to load %s (%s), using default configuration", self.path, e)
            return copy.deepcopy(DEFAULT_CONFIG)

    def get_config(self) -> BotConfig:
        return self._config

    def as_dict(self) -> Dict[str, Any]:
        return self._config.model_dump(mode="json")

    def update(self, updates: Dict[str, Any]) -> BotConfig:
        """Merge updates into the live config. Invalid updates leave it untouched."""
        if not isinstance(updates, dict):
            raise ConfigError("configuration update must be a JSON object")
        merged = merge_deep(self._raw, updates)
        try:
            validated = BotConfig.model_validate(merged)
        except ValidationError as e:
            raise ConfigError(str(e)) from e
        # Persist before swapping so a failed write leaves the live config as it was
        self._save(validated)
        self._raw = merged
        self._config = validated
        return validated

    def _save(self, config: BotConfig) -> None:
        """Write the config atomically (tmp + rename prevents partial reads)."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(".json.tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(config.model_dump(mode="json"), f, indent=2)
            f.write("\n")
        os.replace(str(tmp_path), str(self.path))
        log.info("Configuration saved to %s", self.path)

    def get(self, key: str, default: Any = None) -> Any:
        """Dotted lookup, e.g. get('game.main_planet_id')."""
        value: Any = self.as_dict()
        for part in key.split("."):
            if not isinstance(value, dict) or part not in value:
                return default
            value = value[part]
        return value
