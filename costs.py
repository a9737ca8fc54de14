#!/usr/bin/env python3
"""
Static cost/production tables and the pure formulas over them.

Nothing here holds state. Every function takes the kind identifiers from the
fixed sets below; anything else is a caller bug and raises UnknownKindError.
"""
from __future__ import annotations

import math
from typing import Dict, Mapping, Tuple

from config import SIM_CONFIG, config_section
from errors import UnknownKindError
from resources import Resources

_COST_CFG = config_section("costs")

BUILDING_COST_MULTIPLIER: float = float(_COST_CFG.get("building_cost_multiplier", 1.5))
RESEARCH_COST_MULTIPLIER: float = float(_COST_CFG.get("research_cost_multiplier", 1.5))
BASE_FIELDS: int = int(_COST_CFG.get("base_fields", 163))
FIELDS_PER_TERRAFORMER: int = int(_COST_CFG.get("fields_per_terraformer", 5))
UNIVERSE_SPEED: float = float(SIM_CONFIG.get("universe_speed", 1))

MINE_GROWTH_FACTOR = 1.1

# (metal, crystal, deuterium, energy) at level 0
BUILDING_COSTS: Dict[str, Tuple[int, int, int, int]] = {
    "metal_mine": (60, 15, 0, 0),
    "crystal_mine": (48, 24, 0, 0),
    "deuterium_synthesizer": (225, 75, 0, 0),
    "solar_plant": (75, 30, 0, 0),
    "fusion_reactor": (900, 360, 180, 0),
    "robot_factory": (400, 120, 200, 0),
    "shipyard": (400, 200, 100, 0),
    "research_lab": (200, 400, 200, 0),
    "alliance_hub": (10000, 10000, 10000, 0),
    "missile_silo": (2000, 2000, 1000, 0),
    "nanite_factory": (100000, 50000, 10000, 0),
    "terraformer": (50000, 100000, 50000, 0),
    "space_dock": (500000, 250000, 100000, 0),
}

SHIP_COSTS: Dict[str, Tuple[int, int, int]] = {
    "light_fighter": (3000, 1000, 0),
    "heavy_fighter": (6000, 4000, 0),
    "cruiser": (20000, 7000, 2000),
    "battleship": (45000, 15000, 5000),
    "interceptor": (60000, 50000, 15000),
    "bomber": (50000, 25000, 15000),
    "destroyer": (100000, 60000, 40000),
    "deathstar": (5000000, 4000000, 1000000),
    "cargo_ship": (2000, 2000, 0),
    "colony_ship": (10000, 20000, 10000),
    "recycler": (10000, 6000, 2000),
    "espionage_probe": (0, 1000, 0),
    "solar_satellite": (2000, 500, 0),
}

DEFENSE_COSTS: Dict[str, Tuple[int, int, int]] = {
    "rocket_launcher": (2000, 0, 0),
    "light_laser": (1500, 500, 0),
    "heavy_laser": (6000, 2000, 0),
    "ion_turret": (2000, 6000, 0),
    "gauss_cannon": (35000, 15000, 5000),
    "plasma_turret": (100000, 50000, 10000),
    "shield_dome": (10000, 10000, 0),
    "missile_defense": (8000, 0, 2000),
}

RESEARCH_COSTS: Dict[str, Tuple[int, int, int]] = {
    "energy_tech": (0, 800, 400),
    "laser_tech": (200, 600, 0),
    "ion_tech": (2000, 4000, 600),
    "hyperspace_tech": (10000, 20000, 6000),
    "plasma_tech": (40000, 80000, 40000),
    "combustion_drive": (400, 0, 600),
    "impulse_drive": (2000, 4000, 600),
    "hyperspace_drive": (10000, 20000, 6000),
    "espionage_tech": (1000, 500, 500),
    "computer_tech": (0, 400, 600),
    "astrophysics": (8000, 4000, 4000),
    "network_tech": (100000, 100000, 10000),
    "graviton_tech": (0, 0, 0),
}

SHIP_ATTACK: Dict[str, int] = {
    "light_fighter": 100,
    "heavy_fighter": 250,
    "cruiser": 400,
    "battleship": 1000,
    "interceptor": 700,
    "bomber": 700,
    "destroyer": 2000,
    "deathstar": 200000,
    "cargo_ship": 5,
    "colony_ship": 50,
    "recycler": 1,
    "espionage_probe": 0,
    "solar_satellite": 0,
}

# Hourly output at level 1 for the mines, before growth and speed
MINE_BASE_RATES: Dict[str, Tuple[str, int]] = {
    "metal_mine": ("metal", 30),
    "crystal_mine": ("crystal", 20),
    "deuterium_synthesizer": ("deuterium", 10),
}

SOLAR_ENERGY_PER_LEVEL = 20
FUSION_ENERGY_PER_LEVEL = 50
FUSION_DEUTERIUM_PER_LEVEL = 5

BUILDING_KINDS: Tuple[str, ...] = tuple(BUILDING_COSTS)
SHIP_KINDS: Tuple[str, ...] = tuple(SHIP_COSTS)
DEFENSE_KINDS: Tuple[str, ...] = tuple(DEFENSE_COSTS)
RESEARCH_KINDS: Tuple[str, ...] = tuple(RESEARCH_COSTS)


# ---------- Validation ----------


def require_building(kind: str) -> str:
    if kind not in BUILDING_COSTS:
        raise UnknownKindError("building", kind)
    return kind


def require_ship(kind: str) -> str:
    if kind not in SHIP_COSTS:
        raise UnknownKindError("ship", kind)
    return kind


def require_defense(kind: str) -> str:
    if kind not in DEFENSE_COSTS:
        raise UnknownKindError("defense", kind)
    return kind


def require_research(kind: str) -> str:
    if kind not in RESEARCH_COSTS:
        raise UnknownKindError("research", kind)
    return kind


def empty_buildings() -> Dict[str, int]:
    return {kind: 0 for kind in BUILDING_KINDS}


# ---------- Costs ----------


def _scaled(base: Tuple[int, ...], factor: float) -> Tuple[int, int, int]:
    return (
        math.floor(base[0] * factor),
        math.floor(base[1] * factor),
        math.floor(base[2] * factor),
    )


def building_cost(kind: str, level: int) -> Resources:
    """Cost of the upgrade *from* ``level``: floor(base * 1.5^level) per channel."""
    base = BUILDING_COSTS[require_building(kind)]
    metal, crystal, deuterium = _scaled(base, BUILDING_COST_MULTIPLIER ** level)
    # energy cost only applies to the very first level
    energy = base[3] if level == 0 else 0
    return Resources(metal=metal, crystal=crystal, deuterium=deuterium, energy=energy)


def research_cost(kind: str, level: int) -> Resources:
    base = RESEARCH_COSTS[require_research(kind)]
    metal, crystal, deuterium = _scaled(base, RESEARCH_COST_MULTIPLIER ** level)
    return Resources(metal=metal, crystal=crystal, deuterium=deuterium)


def ship_cost(kind: str, count: int = 1) -> Resources:
    metal, crystal, deuterium = SHIP_COSTS[require_ship(kind)]
    return Resources(metal=metal * count, crystal=crystal * count, deuterium=deuterium * count)


def defense_cost(kind: str, count: int = 1) -> Resources:
    metal, crystal, deuterium = DEFENSE_COSTS[require_defense(kind)]
    return Resources(metal=metal * count, crystal=crystal * count, deuterium=deuterium * count)


def cost(kind: str, amount: int) -> Resources:
    """
    Look ``kind`` up in whichever table holds it.
    ``amount`` is a level for buildings/research and a count for ships/defense.
    """
    if kind in BUILDING_COSTS:
        return building_cost(kind, amount)
    if kind in RESEARCH_COSTS:
        return research_cost(kind, amount)
    if kind in SHIP_COSTS:
        return ship_cost(kind, amount)
    if kind in DEFENSE_COSTS:
        return defense_cost(kind, amount)
    raise UnknownKindError("buildable", kind)


# ---------- Production & fields ----------


def production(buildings: Mapping[str, int], speed: float = UNIVERSE_SPEED) -> Resources:
    """
    Hourly rates for a set of building levels.
    Deuterium can come out negative when the fusion reactor outdraws the
    synthesizer. Energy comes only from the solar plant and fusion reactor.
    """
    for kind in buildings:
        require_building(kind)

    rates = Resources()
    for kind, (channel, base_rate) in MINE_BASE_RATES.items():
        level = buildings.get(kind, 0)
        if level <= 0:
            continue
        output = math.floor(base_rate * MINE_GROWTH_FACTOR ** (level - 1) * speed)
        setattr(rates, channel, getattr(rates, channel) + output)

    solar = buildings.get("solar_plant", 0)
    if solar > 0:
        rates.energy += math.floor(SOLAR_ENERGY_PER_LEVEL * solar * speed)

    fusion = buildings.get("fusion_reactor", 0)
    if fusion > 0:
        rates.energy += math.floor(FUSION_ENERGY_PER_LEVEL * fusion * speed)
        rates.deuterium -= math.floor(FUSION_DEUTERIUM_PER_LEVEL * fusion * speed)

    return rates


def max_fields(buildings: Mapping[str, int]) -> int:
    return BASE_FIELDS + buildings.get("terraformer", 0) * FIELDS_PER_TERRAFORMER


def ship_attack(kind: str) -> int:
    return SHIP_ATTACK[require_ship(kind)]


def fleet_power(ships: Mapping[str, int]) -> int:
    return sum(ship_attack(kind) * count for kind, count in ships.items())
