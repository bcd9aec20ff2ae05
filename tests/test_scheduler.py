"""
Tests for the scheduler lifecycle and its one-cycle-at-a-time guarantee.
"""

import asyncio
import logging

import pytest

from automation import GameAutomation
from scheduler import AutomationScheduler


class CycleProbe:
    """Replaces GameAutomation.run, counting calls and overlap."""

    def __init__(self, automation, duration: float = 0.0, fail: bool = False):
        self.automation = automation
        self.duration = duration
        self.fail = fail
        self.calls = 0
        self.active = 0
        self.max_active = 0
        self._real_run = automation.run
        automation.run = self

    async def __call__(self):
        self.calls += 1
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.sleep(self.duration)
            if self.fail:
                raise RuntimeError("cycle exploded")
            return await self._real_run()
        finally:
            self.active -= 1


@pytest.fixture
def automation(client, config):
    return GameAutomation(client, config, tech_settle_seconds=0)


@pytest.fixture
def hook_results():
    return []


@pytest.fixture
def scheduler(automation, config, hook_results):
    return AutomationScheduler(automation, config, on_cycle=hook_results.append)


@pytest.mark.asyncio
async def test_start_runs_immediately_and_arms(scheduler, automation, hook_results):
    probe = CycleProbe(automation)

    assert scheduler.start(60_000) is True
    assert scheduler.get_state()["running"] is True

    await asyncio.sleep(0.05)
    assert probe.calls == 1
    assert len(hook_results) == 1
    await scheduler.shutdown()


@pytest.mark.asyncio
async def test_start_does_not_block_on_the_first_cycle(scheduler, automation):
    probe = CycleProbe(automation, duration=0.3)

    scheduler.start(60_000)

    assert probe.calls == 0
    assert scheduler.running is True
    await scheduler.shutdown()
    assert probe.calls == 1


@pytest.mark.asyncio
async def test_second_start_is_a_no_op(scheduler, automation, caplog):
    probe = CycleProbe(automation)
    scheduler.start(60_000)

    with caplog.at_level(logging.INFO, logger="scheduler"):
        assert scheduler.start(10) is False

    await asyncio.sleep(0.05)
    assert probe.calls == 1
    assert scheduler.interval_ms == 60_000
    assert "already running" in caplog.text
    await scheduler.shutdown()


@pytest.mark.asyncio
async def test_default_interval_comes_from_config(scheduler, config):
    config.update({"automation": {"interval_ms": 120_000}})

    scheduler.start()

    assert scheduler.interval_ms == 120_000
    await scheduler.shutdown()


@pytest.mark.asyncio
async def test_timer_fires_repeatedly(scheduler, automation):
    probe = CycleProbe(automation)

    scheduler.start(50)
    await asyncio.sleep(0.32)
    await scheduler.shutdown()

    assert probe.calls >= 4


@pytest.mark.asyncio
async def test_stop_disarms_without_interrupting(scheduler, automation, hook_results):
    probe = CycleProbe(automation, duration=0.15)
    scheduler.start(50)
    await asyncio.sleep(0.02)

    scheduler.stop()
    assert scheduler.running is False

    await asyncio.sleep(0.3)
    assert probe.calls == 1
    assert len(hook_results) == 1


@pytest.mark.asyncio
async def test_overlapping_tick_is_skipped(scheduler, automation, caplog):
    probe = CycleProbe(automation, duration=0.2)

    with caplog.at_level(logging.WARNING, logger="scheduler"):
        scheduler.start(40)
        await asyncio.sleep(0.3)
        await scheduler.shutdown()

    assert probe.max_active == 1
    assert "skipping this tick" in caplog.text


@pytest.mark.asyncio
async def test_run_once_leaves_running_untouched(scheduler, automation, hook_results):
    result = await scheduler.run_once()

    assert result["ok"] is True
    assert scheduler.running is False
    assert hook_results == [result]


@pytest.mark.asyncio
async def test_run_once_waits_for_cycle_in_flight(scheduler, automation):
    probe = CycleProbe(automation, duration=0.1)
    scheduler.start(60_000)
    await asyncio.sleep(0.01)

    await scheduler.run_once()

    assert probe.calls == 2
    assert probe.max_active == 1
    await scheduler.shutdown()


@pytest.mark.asyncio
async def test_crashing_cycle_keeps_timer_alive(scheduler, automation):
    probe = CycleProbe(automation, fail=True)

    scheduler.start(40)
    await asyncio.sleep(0.2)

    assert scheduler.running is True
    assert probe.calls >= 2
    assert "cycle exploded" in scheduler.get_state()["last_error"]
    await scheduler.shutdown()


@pytest.mark.asyncio
async def test_hook_failure_is_logged(automation, config, caplog):
    def bad_hook(result):
        raise OSError("disk full")

    scheduler = AutomationScheduler(automation, config, on_cycle=bad_hook)

    result = await scheduler.run_once()

    assert result["ok"] is True
    assert "Cycle hook failed" in caplog.text


@pytest.mark.asyncio
async def test_reset_stats_leaves_state_alone(scheduler, automation, client):
    client.buildable_ships = {313}
    scheduler.start(60_000)
    await asyncio.sleep(0.05)
    automation.state.last_error = "earlier failure"

    scheduler.reset_stats()

    assert scheduler.get_stats() == {"ships_built": 0, "buildings_upgraded": 0, "tech_researched": 0}
    assert scheduler.get_state()["running"] is True
    assert scheduler.get_state()["last_error"] == "earlier failure"
    await scheduler.shutdown()
