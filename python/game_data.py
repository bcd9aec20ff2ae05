"""Static game ids, display names and combat unit values for the Ringway universe."""

from typing import Dict


class Ships:
    COLONY_SHIP = 300
    LIGHT_FIGHTER = 301
    HEAVY_FIGHTER = 302
    CRUISER = 303
    BATTLESHIP = 304
    BATTLE_CRUISER = 305
    TRANSPORTER = 306
    SPY_PROBE = 308
    RECYCLER = 309
    DESTROYER = 311
    PLANET_CRACKER = 312
    STAR_SHIP = 313


class Buildings:
    METAL_MINE = 100
    CRYSTAL_MINE = 101
    DEUTERIUM_SYNTHESIZER = 102
    SOLAR_PLANT = 103
    FUSION_PLANT = 105
    ROBOT_FACTORY = 106
    NANO_FACTORY = 107
    SHIPYARD = 108
    METAL_STORAGE = 109
    CRYSTAL_STORAGE = 110
    DEUTERIUM_STORAGE = 111
    LABORATORY = 112


class Techs:
    SPY_TECH = 200
    COMPUTER_TECH = 201
    MILITARY_TECH = 202
    SHIELD_TECH = 203
    DEFENSE_TECH = 204
    ENERGY_TECH = 205
    HYPERSPACE_TECH = 206
    COMBUSTION_ENGINE = 207
    IMPULSE_ENGINE = 208
    HYPERSPACE_ENGINE = 209
    LASER_TECH = 210
    ION_TECH = 211
    PLASMA_TECH = 212
    EXPEDITION_TECH = 214
    METAL_PROC = 215
    CRYSTAL_PROC = 216
    DEUTERIUM_PROC = 217


SHIP_NAMES: Dict[int, str] = {
    300: "Colony Ship",
    301: "Light Fighter",
    302: "Heavy Fighter",
    303: "Cruiser",
    304: "Battleship",
    305: "Battlecruiser",
    306: "Transporter",
    308: "Spy Probe",
    309: "Recycler",
    311: "Destroyer",
    312: "Planet Cracker",
    313: "Star Ship",
}

BUILDING_NAMES: Dict[int, str] = {
    100: "Metal Mine",
    101: "Crystal Mine",
    102: "Deuterium Synthesizer",
    103: "Solar Plant",
    105: "Fusion Plant",
    106: "Robot Factory",
    107: "Nano Factory",
    108: "Shipyard",
    109: "Metal Storage",
    110: "Crystal Storage",
    111: "Deuterium Storage",
    112: "Laboratory",
}

TECH_NAMES: Dict[int, str] = {
    200: "Espionage Technology",
    201: "Computer Technology",
    202: "Weapons Technology",
    203: "Shielding Technology",
    204: "Armour Technology",
    205: "Energy Technology",
    206: "Hyperspace Technology",
    207: "Combustion Drive",
    208: "Impulse Drive",
    209: "Hyperspace Drive",
    210: "Laser Technology",
    211: "Ion Technology",
    212: "Plasma Technology",
    214: "Expedition Technology",
    215: "Metal Processing",
    216: "Crystal Processing",
    217: "Deuterium Processing",
}

# Combat value per unit, used to rank attack targets.
SHIP_STRENGTH: Dict[int, int] = {
    300: 3300,
    301: 470,
    302: 1250,
    303: 3300,
    304: 6450,
    305: 11550,
    311: 530000,
    312: 11450,
    313: 11550,
}

DEFENSE_STRENGTH: Dict[int, int] = {
    400: 200,     # missile launcher
    401: 350,     # laser cannon
    402: 1000,    # ion cannon
    403: 2000,    # gauss cannon
    404: 5000,    # plasma turret
}

COLONY_BATCH = 5
TECH_QUEUE_CAPACITY = 5
MAX_QUEUED_PER_TECH = 2


def ship_name(ship_type: int) -> str:
    return SHIP_NAMES.get(ship_type, f"Ship {ship_type}")


def building_name(building_type: int) -> str:
    return BUILDING_NAMES.get(building_type, f"Building {building_type}")


def tech_name(tech_type: int) -> str:
    return TECH_NAMES.get(tech_type, f"Tech {tech_type}")
