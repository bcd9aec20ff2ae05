#!/usr/bin/env python3
"""
Agent Helper - one-shot CLI for the Ringway agent.

Each command executes a query or action against the game, prints JSON to
stdout, and exits. Useful from cron jobs and shell scripts when the service
is not running.

Usage:
  python agent_helper.py state                    # Player + automation-relevant summary
  python agent_helper.py planets                  # All planets
  python agent_helper.py planet ID                # One planet in full
  python agent_helper.py tech                     # Tech levels and research queue
  python agent_helper.py run-cycle                # Run one automation cycle
  python agent_helper.py colonization             # Colonization eligibility
  python agent_helper.py scan [START END]         # Rank targets in galaxies START..END
  python agent_helper.py auto-attack              # Attack the weakest target below threshold
  python agent_helper.py espionage G:S:P          # Send a spy probe
  python agent_helper.py debris G:S:P             # Send recyclers
  python agent_helper.py transport ID M C D       # Ship resources to planet ID
  python agent_helper.py config                   # Show effective configuration
  python agent_helper.py log [N]                  # Last N cycle results
"""

import asyncio
import json
import os
import sys
from pathlib import Path

from automation import GameAutomation
from combat import CombatSystem
from config import ConfigStore
from game_client import GameClient
from schemas import Resources

CONFIG_DIR = os.environ.get("RINGWAY_CONFIG_DIR", ".")
CYCLES_LOG_NAME = "cycles.jsonl"


def _context():
    config = ConfigStore(CONFIG_DIR)
    game = config.get_config().game
    client = GameClient(game.client_path, game.client_timeout)
    return config, client


async def cmd_state():
    """Player overview."""
    _, client = _context()
    player = await client.get_player_data()
    planets = await client.get_planets()
    return {
        "player": player.model_dump(mode="json"),
        "planet_count": len(planets),
        "colonies": sum(1 for p in planets if p.is_colony),
    }


async def cmd_planets():
    _, client = _context()
    planets = await client.get_planets()
    return {"planets": [p.model_dump(mode="json") for p in planets], "count": len(planets)}


async def cmd_planet(planet_id):
    _, client = _context()
    planet = await client.get_planet_detail(int(planet_id))
    return planet.model_dump(mode="json")


async def cmd_tech():
    _, client = _context()
    levels = await client.get_tech_list()
    queue = await client.get_tech_queue()
    return {
        "technologies": levels,
        "queue": [q.model_dump() for q in queue],
        "queue_count": len(queue),
    }


async def cmd_run_cycle():
    """Run one automation cycle."""
    config, client = _context()
    automation = GameAutomation(client, config)
    return await automation.run()


async def cmd_colonization():
    config, client = _context()
    automation = GameAutomation(client, config)
    status = await automation.colonization.check()
    if status is None:
        return {"error": "colonization check failed, see log"}
    return vars(status)


async def cmd_scan(start=None, end=None):
    config, client = _context()
    default_start, default_end = config.get_config().combat.scan_galaxies
    combat = CombatSystem(client, config)
    targets = await combat.scan_galaxy(int(start or default_start), int(end or default_end))
    return {"targets": [t.model_dump() for t in targets], "count": len(targets)}


async def cmd_auto_attack():
    config, client = _context()
    target = await CombatSystem(client, config).auto_attack()
    return {"attacked": target.model_dump() if target else None}


async def cmd_espionage(coordinate):
    config, client = _context()
    return {"success": await CombatSystem(client, config).espionage(coordinate)}


async def cmd_debris(coordinate):
    config, client = _context()
    return {"success": await CombatSystem(client, config).debris(coordinate)}


async def cmd_transport(planet_id, metal, crystal, deuterium):
    config, client = _context()
    resources = Resources(metal=metal, crystal=crystal, deuterium=deuterium)
    return {"success": await CombatSystem(client, config).transport(int(planet_id), resources)}


def cmd_config():
    config, _ = _context()
    return config.as_dict()


def cmd_log(n=20):
    """Get last N cycle results."""
    config, _ = _context()
    path = Path(config.get_config().logging.dir) / CYCLES_LOG_NAME
    if not path.exists():
        return {"entries": [], "count": 0}
    entries = []
    with open(path, "r") as f:
        for line in f:
            line = line.strip()
            if line:
                try:
                    entries.append(json.loads(line))
                except json.JSONDecodeError:
                    pass
    recent = entries[-n:] if n > 0 else []
    return {"entries": recent, "count": len(recent)}


def dispatch(argv):
    """Map argv to a command result. Coroutines are run to completion."""
    if not argv:
        return {"error": "No command given. Use: state, planets, planet, tech, run-cycle, "
                         "colonization, scan, auto-attack, espionage, debris, transport, config, log"}

    cmd, args = argv[0], argv[1:]
    if cmd == "state":
        result = cmd_state()
    elif cmd == "planets":
        result = cmd_planets()
    elif cmd == "planet":
        if not args:
            return {"error": "Usage: planet ID"}
        result = cmd_planet(args[0])
    elif cmd == "tech":
        result = cmd_tech()
    elif cmd == "run-cycle":
        result = cmd_run_cycle()
    elif cmd == "colonization":
        result = cmd_colonization()
    elif cmd == "scan":
        result = cmd_scan(*args[:2])
    elif cmd == "auto-attack":
        result = cmd_auto_attack()
    elif cmd == "espionage":
        if not args:
            return {"error": "Usage: espionage G:S:P"}
        result = cmd_espionage(args[0])
    elif cmd == "debris":
        if not args:
            return {"error": "Usage: debris G:S:P"}
        result = cmd_debris(args[0])
    elif cmd == "transport":
        if len(args) < 4:
            return {"error": "Usage: transport ID METAL CRYSTAL DEUTERIUM"}
        result = cmd_transport(*args[:4])
    elif cmd == "config":
        result = cmd_config()
    elif cmd == "log":
        result = cmd_log(int(args[0]) if args else 20)
    else:
        return {"error": f"Unknown command: {cmd}"}

    if asyncio.iscoroutine(result):
        result = asyncio.run(result)
    return result


def main():
    try:
        result = dispatch(sys.argv[1:])
        print(json.dumps(result, indent=2, default=str))
        if isinstance(result, dict) and result.get("error"):
            sys.exit(1)
    except Exception as e:
        print(json.dumps({"error": f"{type(e).__name__}: {e}"}, default=str))
        sys.exit(1)


if __name__ == "__main__":
    main()
