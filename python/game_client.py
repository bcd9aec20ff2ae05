"""
Ringway Game Client - Sends commands to the game through the `ogame` CLI.

Every call spawns the CLI as a subprocess, waits at most `timeout` seconds,
then parses the {code, msg, data} JSON envelope it prints. Payloads are
validated with the models in schemas.py before they are handed back.

Usage:
    client = GameClient("ogame", timeout=30)
    planets = await client.get_planets()
    ok = await client.build_ship(planets[0].id, 304, 10)
"""

import asyncio
import json
import logging
from typing import Any, Dict, List, Optional, Sequence

from pydantic import ValidationError

from schemas import Envelope, Planet, PlayerData, QueueEntry, SystemPlanet


DEFAULT_CLIENT_PATH = "ogame"
DEFAULT_TIMEOUT = 30.0

log = logging.getLogger("game_client")


class GameClientError(Exception):
    """Base class for everything that can go wrong talking to the game."""


class ClientTimeout(GameClientError):
    """The CLI did not answer within the timeout."""


class ClientUnavailable(GameClientError):
    """The CLI could not be started or died without output."""


class MalformedResponse(GameClientError):
    """The CLI answered with something that is not a valid envelope/payload."""


class CommandFailed(GameClientError):
    """The game rejected a query (non-zero code)."""


class GameClient:
    """Async wrapper around the ogame command-line client."""

    def __init__(self, client_path: str = DEFAULT_CLIENT_PATH,
                 timeout: float = DEFAULT_TIMEOUT):
        self.client_path = client_path
        self.timeout = timeout

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------
    async def _exec(self, args: Sequence[str], timeout: float) -> str:
        """Run the CLI once and return its stdout."""
        try:
            proc = await asyncio.create_subprocess_exec(
                self.client_path, *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except (FileNotFoundError, PermissionError) as e:
            raise ClientUnavailable(f"cannot start {self.client_path}: {e}") from e

        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
        except asyncio.TimeoutError:
            log.warning("%s %s timed out after %.1fs, killing",
                        self.client_path, " ".join(args), timeout)
            proc.kill()
            await proc.wait()
            raise ClientTimeout(f"{' '.join(args)} timed out after {timeout}s")

        out = stdout.decode(errors="replace")
        if proc.returncode != 0 and "{" not in out:
            err_text = stderr.decode(errors="replace").strip()
            raise ClientUnavailable(
                f"{' '.join(args)} exited with code {proc.returncode}: {err_text[:200]}"
            )
        return out

    async def execute(self, *args: Any, timeout: Optional[float] = None) -> Envelope:
        """Run one CLI command and return its parsed envelope."""
        str_args = [str(a) for a in args]
        raw = await self._exec(str_args, timeout if timeout is not None else self.timeout)
        return self._parse(raw)

    @staticmethod
    def _parse(output: str) -> Envelope:
        # The CLI may print banner text before the JSON body
        start = output.find("{")
        body = output[start:] if start >= 0 else output
        try:
            return Envelope.model_validate(json.loads(body))
        except (json.JSONDecodeError, ValidationError) as e:
            log.error("Unparseable client output: %s", output[:200])
            raise MalformedResponse(f"bad client output: {e}") from e

    @staticmethod
    def _validate(model, data: Any, what: str):
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise MalformedResponse(f"malformed {what}: {e}") from e

    def _validate_list(self, model, data: Any, what: str) -> list:
        if not isinstance(data, list):
            raise MalformedResponse(f"malformed {what}: expected a list")
        return [self._validate(model, item, what) for item in data]

    @staticmethod
    def _int_map(data: Any, key: str) -> Dict[int, int]:
        if not isinstance(data, dict):
            return {}
        raw = data.get(key) or {}
        try:
            return {int(k): int(v) for k, v in raw.items()}
        except (AttributeError, TypeError, ValueError) as e:
            raise MalformedResponse(f"malformed {key}: {e}") from e

    async def ping(self, timeout: float = 5.0) -> bool:
        """Check if the game is responding."""
        try:
            env = await self.execute("game", "data", timeout=timeout)
        except GameClientError:
            return False
        return env.ok

    # ------------------------------------------------------------------
    # Player / planets
    # ------------------------------------------------------------------
    async def get_player_data(self) -> PlayerData:
        env = await self.execute("game", "data")
        if not env.ok:
            raise CommandFailed(env.msg or "failed to fetch player data")
        return self._validate(PlayerData, env.data, "player data")

    async def get_planets(self) -> List[Planet]:
        env = await self.execute("planet", "list")
        if not env.ok:
            raise CommandFailed(env.msg or "failed to list planets")
        return self._validate_list(Planet, env.data, "planet list")

    async def get_planet_detail(self, planet_id: int) -> Planet:
        env = await self.execute("planet", "get", "--id", planet_id)
        if not env.ok:
            raise CommandFailed(env.msg or f"failed to fetch planet {planet_id}")
        return self._validate(Planet, env.data, f"planet {planet_id}")

    # ------------------------------------------------------------------
    # Ships
    # ------------------------------------------------------------------
    async def build_ship(self, planet_id: int, ship_type: int, amount: int = 1) -> bool:
        env = await self.execute("ship", "build", "--planet", planet_id,
                                 "--type", ship_type, "--amount", amount)
        return env.ok

    async def get_ship_queue(self, planet_id: int) -> List[QueueEntry]:
        env = await self.execute("ship", "queue", "--planet", planet_id)
        if env.ok and env.data:
            return self._validate_list(QueueEntry, env.data, "ship queue")
        return []

    async def get_ships(self, planet_id: int) -> Dict[int, int]:
        env = await self.execute("ship", "list", "--planet", planet_id)
        if env.ok and env.data:
            return self._int_map(env.data, "ships")
        return {}

    # ------------------------------------------------------------------
    # Buildings
    # ------------------------------------------------------------------
    async def build_building(self, planet_id: int, building_type: int, amount: int = 1) -> bool:
        env = await self.execute("building", "build", "--planet", planet_id,
                                 "--type", building_type, "--amount", amount)
        return env.ok

    async def get_building_queue(self, planet_id: int) -> List[QueueEntry]:
        env = await self.execute("building", "queue", "--planet", planet_id)
        if env.ok and env.data:
            return self._validate_list(QueueEntry, env.data, "building queue")
        return []

    # ------------------------------------------------------------------
    # Technology
    # ------------------------------------------------------------------
    async def research_tech(self, tech_type: int, amount: int = 1,
                            planet_id: Optional[int] = None) -> bool:
        args: List[Any] = ["tech", "research", "--type", tech_type, "--amount", amount]
        if planet_id:
            args += ["--planet-id", planet_id]
        env = await self.execute(*args)
        return env.ok

    async def cancel_tech(self, tech_type: int, planet_id: Optional[int] = None) -> bool:
        args: List[Any] = ["tech", "cancel", "--type", tech_type]
        if planet_id:
            args += ["--planet-id", planet_id]
        env = await self.execute(*args)
        return env.ok

    async def get_tech_queue(self) -> List[QueueEntry]:
        env = await self.execute("tech", "queue")
        if env.ok and env.data:
            return self._validate_list(QueueEntry, env.data, "tech queue")
        return []

    async def get_tech_list(self) -> Dict[int, int]:
        env = await self.execute("tech", "list")
        if env.ok and env.data:
            return self._int_map(env.data, "technologies")
        return {}

    # ------------------------------------------------------------------
    # Galaxy / fleets
    # ------------------------------------------------------------------
    async def scan_system(self, galaxy: int, system: int) -> List[SystemPlanet]:
        env = await self.execute("galaxy", "info", "--galaxy", galaxy, "--system", system)
        if env.ok and env.data:
            return self._validate_list(SystemPlanet, env.data, f"system {galaxy}:{system}")
        return []

    async def send_fleet(self, from_planet: int, to: Any, mission: str,
                         ships: Optional[Dict[int, int]] = None,
                         resources: Optional[Dict[str, int]] = None) -> bool:
        args: List[Any] = ["fleet", "send", "--from", from_planet, "--to", to, "--type", mission]
        if ships:
            args += ["--ships", json.dumps({str(k): v for k, v in ships.items()})]
        if resources:
            args += ["--resources", json.dumps(resources)]
        env = await self.execute(*args)
        return env.ok
