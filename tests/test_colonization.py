"""
Tests for colonization eligibility.
"""

import logging

import pytest

from colonization import ColonizationChecker, colony_limit
from conftest import MAIN_PLANET_ID, make_planet
from game_client import ClientTimeout
from game_data import Techs


@pytest.fixture
def checker(client, config):
    return ColonizationChecker(client, config)


def test_colony_limit_is_expedition_level_plus_one():
    assert colony_limit(0) == 1
    assert colony_limit(4) == 5


@pytest.mark.asyncio
async def test_eligible_with_room_and_enough_colony_ships(checker, client, caplog):
    client.tech_levels = {Techs.EXPEDITION_TECH: 2}
    client.planets = [make_planet(MAIN_PLANET_ID), make_planet(2)]
    client.ships[MAIN_PLANET_ID] = {300: 10}

    with caplog.at_level(logging.INFO, logger="colonization"):
        status = await checker.check()

    assert status.colony_limit == 3
    assert status.planet_count == 2
    assert status.colony_ships == 10
    assert status.eligible is True
    assert "colonization possible" in caplog.text


@pytest.mark.asyncio
async def test_shortfall_of_colony_ships(checker, client, caplog):
    client.tech_levels = {Techs.EXPEDITION_TECH: 2}
    client.ships[MAIN_PLANET_ID] = {300: 4}

    with caplog.at_level(logging.INFO, logger="colonization"):
        status = await checker.check()

    assert status.eligible is False
    assert status.colony_ships == 4
    assert "Not enough colony ships: 4/10" in caplog.text


@pytest.mark.asyncio
async def test_at_limit_does_not_look_at_ships(checker, client):
    client.tech_levels = {Techs.EXPEDITION_TECH: 1}
    client.planets = [make_planet(MAIN_PLANET_ID), make_planet(2), make_planet(3, kind=3)]

    status = await checker.check()

    assert status.planet_count == 2
    assert status.eligible is False
    assert client.calls_to("get_ships") == []


@pytest.mark.asyncio
async def test_never_sends_a_colony_fleet(checker, client):
    client.tech_levels = {Techs.EXPEDITION_TECH: 9}
    client.ships[MAIN_PLANET_ID] = {300: 50}

    status = await checker.check()

    assert status.eligible is True
    assert client.calls_to("send_fleet") == []


@pytest.mark.asyncio
async def test_query_failure_returns_none(checker, client, caplog):
    client.errors["get_tech_list"] = ClientTimeout("tech list timed out")

    assert await checker.check() is None
    assert "Colonization check failed" in caplog.text
