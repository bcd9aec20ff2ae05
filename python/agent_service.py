#!/usr/bin/env python3
"""
Ringway Agent Service - Persistent autonomous empire manager with HTTP control.

Runs in one process:
  1. Scheduler  - Runs an automation cycle every `automation.interval_ms`
  2. API Server - HTTP on port 3000 to inspect the empire and steer the agent
  3. State Mgmt - Day log files, cycle history, heartbeat

Usage:
  python agent_service.py [--config-dir .] [--port 3000] [--no-autostart]

Endpoints:
  GET  /health                    Health check
  GET  /api/status                Player, planets, tech and automation state
  GET  /api/planets               Planet list
  GET  /api/planets/{id}          Planet detail
  GET  /api/tech                  Tech levels and research queue
  GET  /api/config                Current configuration
  POST /api/config                Update configuration
  POST /api/action/run            Run one cycle now
  POST /api/action/start          Start automation {interval_ms?}
  POST /api/action/stop           Stop automation
  POST /api/action/reset-stats    Zero the counters
  POST /api/action/build-ship     {planet_id, ship_type, amount?}
  POST /api/action/build-building {planet_id, building_type}
  POST /api/action/research       {tech_type, planet_id?}
  POST /api/combat/scan           {start?, end?}
  POST /api/combat/auto-attack    Attack the weakest target below threshold
  GET  /api/logs?limit=100        Tail of today's automation log
  GET  /api/cycles?limit=20       Recent cycle results

Requires:
  - `ogame` CLI on PATH (or game.client_path)
  - `aiohttp`, `pydantic`
"""

import asyncio
import json
import logging
import signal
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from aiohttp import web

from automation import GameAutomation
from combat import CombatSystem
from config import ConfigError, ConfigStore
from game_client import GameClient, GameClientError
from scheduler import AutomationScheduler

# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------
CYCLES_LOG_NAME = "cycles.jsonl"
HEARTBEAT_NAME = "heartbeat"
LOG_PREFIX = "automation_"
MAX_LOG_LINES = 500

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

log = logging.getLogger("agent_service")

CONFIG_KEY = web.AppKey("config", ConfigStore)
CLIENT_KEY = web.AppKey("client", GameClient)
SCHEDULER_KEY = web.AppKey("scheduler", AutomationScheduler)
COMBAT_KEY = web.AppKey("combat", CombatSystem)
LOG_DIR_KEY = web.AppKey("log_dir", Path)


def day_log_path(log_dir: Path, day: Optional[datetime] = None) -> Path:
    day = day or datetime.now()
    return log_dir / f"{LOG_PREFIX}{day.strftime('%Y-%m-%d')}.log"


def setup_logging(log_dir: Path, level: str = "info", retention_days: int = 7) -> Path:
    """Console + day-stamped file logging. Returns today's log file."""
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = day_log_path(log_dir)
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt=LOG_DATEFMT,
        handlers=[logging.StreamHandler(), logging.FileHandler(log_file, encoding="utf-8")],
        force=True,
    )
    prune_old_logs(log_dir, retention_days)
    return log_file


def prune_old_logs(log_dir: Path, retention_days: int) -> int:
    """Delete day logs older than retention_days. Returns how many were removed."""
    cutoff = time.time() - retention_days * 86400
    removed = 0
    for path in log_dir.glob(f"{LOG_PREFIX}*.log"):
        try:
            if path.stat().st_mtime < cutoff:
                path.unlink()
                removed += 1
        except OSError as e:
            log.warning("Failed to prune %s: %s", path, e)
    return removed


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def write_heartbeat(log_dir: Path):
    try:
        (log_dir / HEARTBEAT_NAME).write_text(str(int(time.time())))
    except OSError as e:
        log.warning("Failed to write heartbeat: %s", e)


def read_heartbeat(log_dir: Path) -> Optional[int]:
    path = log_dir / HEARTBEAT_NAME
    if not path.exists():
        return None
    try:
        return int(path.read_text().strip())
    except (ValueError, OSError):
        return None


def log_cycle_result(log_dir: Path, result: dict):
    log_dir.mkdir(parents=True, exist_ok=True)
    path = log_dir / CYCLES_LOG_NAME
    entry = {
        "timestamp": time.time(),
        "time": time.strftime("%Y-%m-%d %H:%M:%S"),
        **result,
    }
    try:
        with open(path, "a") as f:
            f.write(json.dumps(entry, default=str) + "\n")
        _trim_log(path, MAX_LOG_LINES)
    except OSError as e:
        log.warning("Failed to write cycle log: %s", e)


def _trim_log(path: Path, max_lines: int):
    """Keep only the last max_lines in a file."""
    try:
        lines = path.read_text().splitlines()
        if len(lines) > max_lines:
            path.write_text("\n".join(lines[-max_lines:]) + "\n")
    except OSError:
        pass


def _tail_lines(path: Path, limit: int) -> list:
    if not path.exists():
        return []
    lines = [line for line in path.read_text(encoding="utf-8").splitlines() if line.strip()]
    return lines[-limit:] if limit > 0 else []


def _ok(data: Any = None, message: Optional[str] = None, status: int = 200) -> web.Response:
    body: Dict[str, Any] = {"success": True, "timestamp": int(time.time() * 1000)}
    if data is not None:
        body["data"] = data
    if message is not None:
        body["message"] = message
    return web.json_response(body, status=status)


def _fail(error: str, status: int) -> web.Response:
    return web.json_response(
        {"success": False, "error": error, "timestamp": int(time.time() * 1000)},
        status=status,
    )


async def _json_body(request: web.Request) -> Dict[str, Any]:
    if not request.can_read_body:
        return {}
    try:
        body = await request.json()
    except json.JSONDecodeError:
        raise web.HTTPBadRequest(reason="request body is not valid JSON")
    if not isinstance(body, dict):
        raise web.HTTPBadRequest(reason="request body must be a JSON object")
    return body


def _int_param(body: Dict[str, Any], key: str, required: bool = True) -> Optional[int]:
    value = body.get(key)
    if value is None or value == "":
        if required:
            raise web.HTTPBadRequest(reason=f"missing required parameter: {key}")
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise web.HTTPBadRequest(reason=f"parameter {key} must be an integer")


def _queue_view(queue) -> list:
    now_ms = int(time.time() * 1000)
    return [{
        "id": q.id,
        "target": q.target,
        "added": q.added_at,
        "start_time": q.start_at,
        "end_time": q.end_at,
        "remaining": max(0, q.end_at - now_ms),
    } for q in queue]


def _planet_summary(planet) -> dict:
    return {
        "id": planet.id,
        "name": planet.name,
        "coordinate": str(planet.coordinate),
        "kind": planet.kind.name.lower(),
        "resources": planet.resources.model_dump(),
        "ships_count": sum(planet.ships.values()),
        "buildings_count": len(planet.buildings),
    }


# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------
@web.middleware
async def json_errors(request: web.Request, handler) -> web.StreamResponse:
    """JSON error bodies for every failure, plus one access log line per request."""
    start = time.monotonic()
    try:
        resp = await handler(request)
    except web.HTTPNotFound:
        resp = _fail("endpoint not found", 404)
    except web.HTTPException as e:
        resp = _fail(e.reason, e.status)
    except GameClientError as e:
        log.error("[api] %s %s: game client error: %s", request.method, request.path, e)
        resp = _fail(str(e), 500)
    except Exception as e:
        log.exception("[api] %s %s failed", request.method, request.path)
        resp = _fail(str(e) or "internal server error", 500)
    log.info("[api] %s %s %d %.0fms", request.method, request.path,
             resp.status, (time.monotonic() - start) * 1000)
    return resp


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------
async def handle_health(request: web.Request) -> web.Response:
    """Health check endpoint."""
    scheduler = request.app[SCHEDULER_KEY]
    return web.json_response({
        "status": "ok",
        "timestamp": int(time.time() * 1000),
        "running": scheduler.running,
        "heartbeat": read_heartbeat(request.app[LOG_DIR_KEY]),
    })


async def handle_status(request: web.Request) -> web.Response:
    client = request.app[CLIENT_KEY]
    scheduler = request.app[SCHEDULER_KEY]

    player = await client.get_player_data()
    planets = await client.get_planets()
    technologies = await client.get_tech_list()
    tech_queue = await client.get_tech_queue()

    return _ok({
        "player": {
            "id": player.id,
            "username": player.username,
            "points": player.points.model_dump(),
        },
        "planets": [_planet_summary(p) for p in planets],
        "technologies": technologies,
        "tech_queue": _queue_view(tech_queue),
        "automation": {**scheduler.get_state(), "stats": scheduler.get_stats()},
    })


async def handle_planets(request: web.Request) -> web.Response:
    planets = await request.app[CLIENT_KEY].get_planets()
    return _ok([_planet_summary(p) for p in planets])


async def handle_planet_detail(request: web.Request) -> web.Response:
    planet_id = _int_param(dict(request.match_info), "id")
    planet = await request.app[CLIENT_KEY].get_planet_detail(planet_id)
    return _ok(planet.model_dump(mode="json"))


async def handle_tech(request: web.Request) -> web.Response:
    client = request.app[CLIENT_KEY]
    technologies = await client.get_tech_list()
    queue = await client.get_tech_queue()
    return _ok({
        "technologies": technologies,
        "queue": _queue_view(queue),
        "queue_count": len(queue),
    })


async def handle_get_config(request: web.Request) -> web.Response:
    return _ok(request.app[CONFIG_KEY].as_dict())


async def handle_update_config(request: web.Request) -> web.Response:
    updates = await _json_body(request)
    try:
        request.app[CONFIG_KEY].update(updates)
    except ConfigError as e:
        return _fail(str(e), 400)
    return _ok(message="configuration updated")


async def handle_run(request: web.Request) -> web.Response:
    result = await request.app[SCHEDULER_KEY].run_once()
    return _ok(result, message="automation cycle executed")


async def handle_start(request: web.Request) -> web.Response:
    body = await _json_body(request)
    interval_ms = _int_param(body, "interval_ms", required=False)
    if interval_ms is not None and interval_ms <= 0:
        return _fail("interval_ms must be positive", 400)
    started = request.app[SCHEDULER_KEY].start(interval_ms)
    return _ok(message="automation started" if started else "automation already running")


async def handle_stop(request: web.Request) -> web.Response:
    request.app[SCHEDULER_KEY].stop()
    return _ok(message="automation stopped")


async def handle_reset_stats(request: web.Request) -> web.Response:
    request.app[SCHEDULER_KEY].reset_stats()
    return _ok(message="stats reset")


async def handle_build_ship(request: web.Request) -> web.Response:
    body = await _json_body(request)
    planet_id = _int_param(body, "planet_id")
    ship_type = _int_param(body, "ship_type")
    amount = _int_param(body, "amount", required=False) or 1
    ok = await request.app[CLIENT_KEY].build_ship(planet_id, ship_type, amount)
    return web.json_response({
        "success": ok,
        "message": "build queued" if ok else "build rejected",
        "timestamp": int(time.time() * 1000),
    })


async def handle_build_building(request: web.Request) -> web.Response:
    body = await _json_body(request)
    planet_id = _int_param(body, "planet_id")
    building_type = _int_param(body, "building_type")
    ok = await request.app[CLIENT_KEY].build_building(planet_id, building_type)
    return web.json_response({
        "success": ok,
        "message": "upgrade queued" if ok else "upgrade rejected",
        "timestamp": int(time.time() * 1000),
    })


async def handle_research(request: web.Request) -> web.Response:
    body = await _json_body(request)
    tech_type = _int_param(body, "tech_type")
    planet_id = _int_param(body, "planet_id", required=False)
    ok = await request.app[CLIENT_KEY].research_tech(tech_type, 1, planet_id)
    return web.json_response({
        "success": ok,
        "message": "research started" if ok else "research rejected",
        "timestamp": int(time.time() * 1000),
    })


async def handle_scan(request: web.Request) -> web.Response:
    body = await _json_body(request)
    default_start, default_end = request.app[CONFIG_KEY].get_config().combat.scan_galaxies
    start = _int_param(body, "start", required=False) or default_start
    end = _int_param(body, "end", required=False) or default_end
    if start < 1 or end < start:
        return _fail(f"invalid galaxy range {start}..{end}", 400)
    targets = await request.app[COMBAT_KEY].scan_galaxy(start, end)
    return _ok([t.model_dump() for t in targets])


async def handle_auto_attack(request: web.Request) -> web.Response:
    target = await request.app[COMBAT_KEY].auto_attack()
    if target is None:
        return _ok(None, message="no target attacked")
    return _ok(target.model_dump(), message=f"attack launched at {target.coordinate}")


async def handle_logs(request: web.Request) -> web.Response:
    limit = _int_param(dict(request.query), "limit", required=False) or 100
    log_dir = request.app[LOG_DIR_KEY]
    files = sorted(log_dir.glob(f"{LOG_PREFIX}*.log")) if log_dir.exists() else []
    lines = _tail_lines(files[-1], limit) if files else []
    return _ok(lines)


async def handle_cycles(request: web.Request) -> web.Response:
    limit = _int_param(dict(request.query), "limit", required=False) or 20
    entries = []
    for line in _tail_lines(request.app[LOG_DIR_KEY] / CYCLES_LOG_NAME, limit):
        try:
            entries.append(json.loads(line))
        except json.JSONDecodeError:
            pass
    return _ok(entries)


def create_app(config: ConfigStore, client: GameClient,
               scheduler: AutomationScheduler, log_dir: Path) -> web.Application:
    """Create the aiohttp web application."""
    app = web.Application(middlewares=[json_errors])
    app[CONFIG_KEY] = config
    app[CLIENT_KEY] = client
    app[SCHEDULER_KEY] = scheduler
    app[COMBAT_KEY] = CombatSystem(client, config)
    app[LOG_DIR_KEY] = log_dir

    app.router.add_get("/health", handle_health)
    app.router.add_get("/api/status", handle_status)
    app.router.add_get("/api/planets", handle_planets)
    app.router.add_get("/api/planets/{id}", handle_planet_detail)
    app.router.add_get("/api/tech", handle_tech)
    app.router.add_get("/api/config", handle_get_config)
    app.router.add_post("/api/config", handle_update_config)
    app.router.add_post("/api/action/run", handle_run)
    app.router.add_post("/api/action/start", handle_start)
    app.router.add_post("/api/action/stop", handle_stop)
    app.router.add_post("/api/action/reset-stats", handle_reset_stats)
    app.router.add_post("/api/action/build-ship", handle_build_ship)
    app.router.add_post("/api/action/build-building", handle_build_building)
    app.router.add_post("/api/action/research", handle_research)
    app.router.add_post("/api/combat/scan", handle_scan)
    app.router.add_post("/api/combat/auto-attack", handle_auto_attack)
    app.router.add_get("/api/logs", handle_logs)
    app.router.add_get("/api/cycles", handle_cycles)
    return app


def build_service(config: ConfigStore, log_dir: Path):
    """Wire client, automation and scheduler. Returns (client, scheduler)."""
    game = config.get_config().game
    client = GameClient(game.client_path, game.client_timeout)
    automation = GameAutomation(client, config)

    def on_cycle(result: dict):
        log_cycle_result(log_dir, result)
        write_heartbeat(log_dir)

    scheduler = AutomationScheduler(automation, config, on_cycle=on_cycle)
    return client, scheduler


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------
async def run_service(config: ConfigStore, host: str, port: int, autostart: bool):
    """Run the API server and, if enabled, the automation scheduler."""
    log_dir = Path(config.get_config().logging.dir)
    client, scheduler = build_service(config, log_dir)

    app = create_app(config, client, scheduler, log_dir)
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, host, port)
    await site.start()
    log.info("API server listening on http://%s:%d", host, port)

    write_heartbeat(log_dir)

    if not await client.ping():
        log.warning("Game client not responding yet; cycles will log client errors until it is")

    if autostart and config.get_config().automation.enabled:
        log.info("Starting automation...")
        scheduler.start()
    else:
        log.info("Automation disabled, start it via POST /api/action/start")

    try:
        await asyncio.Event().wait()
    except asyncio.CancelledError:
        log.info("Service shutting down...")
    finally:
        await scheduler.shutdown()
        await runner.cleanup()


def main():
    import argparse
    parser = argparse.ArgumentParser(description="Ringway autonomous agent service")
    parser.add_argument("--config-dir", default=".",
                        help="Directory holding config.json (default: current directory)")
    parser.add_argument("--host", default=None, help="Override server.host")
    parser.add_argument("--port", type=int, default=None, help="Override server.port")
    parser.add_argument("--no-autostart", action="store_true",
                        help="Do not start automation on launch")
    args = parser.parse_args()

    config = ConfigStore(args.config_dir)
    cfg = config.get_config()
    setup_logging(Path(cfg.logging.dir), cfg.logging.level, cfg.logging.retention_days)

    host = args.host or cfg.server.host
    port = args.port or cfg.server.port

    loop = asyncio.new_event_loop()

    def shutdown_handler(sig, frame):
        log.info("Received signal %s, shutting down...", sig)
        for task in asyncio.all_tasks(loop):
            task.cancel()

    signal.signal(signal.SIGTERM, shutdown_handler)
    signal.signal(signal.SIGINT, shutdown_handler)

    try:
        loop.run_until_complete(run_service(config, host, port, not args.no_autostart))
    except (KeyboardInterrupt, asyncio.CancelledError):
        log.info("Interrupted, shutting down...")
    finally:
        loop.close()


if __name__ == "__main__":
    main()
