"""
Tests for the automation cycle.

Validates that:
- Phases run in a fixed order
- A phase blowing up does not stop the others and lands in last_error
- Stats accumulate across cycles and reset on demand
"""

import logging

import pytest

from automation import GameAutomation
from conftest import MAIN_PLANET_ID, make_planet
from game_client import ClientTimeout


@pytest.fixture
def automation(client, config):
    return GameAutomation(client, config, tech_settle_seconds=0)


@pytest.mark.asyncio
async def test_phases_run_in_order(automation, client):
    order = []

    async def tech():
        order.append("tech")

    async def ships():
        order.append("ships")

    async def buildings():
        order.append("buildings")

    async def colonization():
        order.append("colonization")

    automation.tech_manager.manage = tech
    automation.ship_builder.build_all = ships
    automation.building_upgrader.upgrade_all = buildings
    automation.colonization.check = colonization

    await automation.run()

    assert order == ["tech", "ships", "buildings", "colonization"]


@pytest.mark.asyncio
async def test_full_cycle_against_fake_game(automation, client):
    client.planets = [make_planet(MAIN_PLANET_ID, ships={300: 10}), make_planet(2, ships={300: 10})]
    client.buildable_ships = {304}
    client.buildable_buildings = {101}

    result = await automation.run()

    assert result["ok"] is True
    assert result["stats"] == {"ships_built": 20, "buildings_upgraded": 2, "tech_researched": 1}
    state = automation.get_state()
    assert state["last_run_at"] is not None
    assert state["last_error"] is None
    assert state["running"] is False


@pytest.mark.asyncio
async def test_unexpected_phase_error_is_isolated_and_recorded(automation, client, caplog):
    async def broken():
        raise RuntimeError("planet data inconsistent")

    automation.ship_builder.build_all = broken
    client.buildable_buildings = {100}

    with caplog.at_level(logging.ERROR, logger="automation"):
        result = await automation.run()

    assert result["ok"] is False
    assert automation.stats.buildings_upgraded == 1
    assert "planet data inconsistent" in automation.state.last_error
    assert "Phase ships failed" in caplog.text


@pytest.mark.asyncio
async def test_first_error_wins(automation):
    async def first():
        raise RuntimeError("first")

    async def second():
        raise ValueError("second")

    automation.tech_manager.manage = first
    automation.colonization.check = second

    await automation.run()

    assert automation.state.last_error == "tech: RuntimeError: first"


@pytest.mark.asyncio
async def test_client_faults_stay_inside_their_phase(automation, client):
    client.errors["get_planets"] = ClientTimeout("planet list timed out")

    result = await automation.run()

    assert result["ok"] is True
    assert automation.state.last_error is None


@pytest.mark.asyncio
async def test_clean_cycle_clears_previous_error(automation):
    automation.state.last_error = "old failure"

    await automation.run()

    assert automation.state.last_error is None


@pytest.mark.asyncio
async def test_stats_accumulate_and_reset(automation, client):
    client.buildable_ships = {313}

    await automation.run()
    await automation.run()
    assert automation.get_stats()["ships_built"] == 20

    automation.state.last_error = "kept"
    automation.reset_stats()

    assert automation.get_stats() == {"ships_built": 0, "buildings_upgraded": 0, "tech_researched": 0}
    assert automation.state.last_error == "kept"

    await automation.run()
    assert automation.get_stats()["ships_built"] == 10


def test_snapshots_are_copies(automation):
    snapshot = automation.get_stats()
    snapshot["ships_built"] = 99

    assert automation.stats.ships_built == 0
    state = automation.get_state()
    state["running"] = True
    assert automation.state.running is False
