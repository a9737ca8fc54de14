#!/usr/bin/env python3
from __future__ import annotations

import logging
import random
import time
import uuid
from dataclasses import asdict, dataclass, field
from typing import TYPE_CHECKING, Dict, List, Optional

import costs
import economy
from achievements import AchievementDefinition, PlayerStats, build_catalog, evaluate, summarize, total_reward
from config import SIM_CONFIG
from errors import FieldCapacityError
from resources import Resources

if TYPE_CHECKING:
    from bots import Action, AgentRegistry

logger = logging.getLogger(__name__)

# World-level config from JSON
PLAYER_NAME: str = str(SIM_CONFIG.get("player_name", "Commander"))
AGENT_COUNT: int = int(SIM_CONFIG.get("agent_count", 10))
MAX_EVENTS = 200

# Starting layout of a freshly registered player's home world
HOME_BUILDINGS: Dict[str, int] = {
    "metal_mine": 1,
    "crystal_mine": 1,
    "deuterium_synthesizer": 1,
    "solar_plant": 1,
    "robot_factory": 1,
    "shipyard": 1,
    "research_lab": 1,
}
HOME_RESOURCES = Resources(metal=500, crystal=300, deuterium=100, energy=10)


@dataclass(frozen=True)
class Coordinates:
    galaxy: int
    system: int
    slot: int

    def __str__(self) -> str:
        return f"{self.galaxy}:{self.system}:{self.slot}"

    @classmethod
    def parse(cls, text: str) -> "Coordinates":
        galaxy, system, slot = (int(part) for part in text.split(":"))
        return cls(galaxy, system, slot)


@dataclass
class FieldUsage:
    used: int
    max: int

    @property
    def free(self) -> int:
        return self.max - self.used


@dataclass
class Planet:
    id: str
    name: str
    owner_id: str
    coordinates: Coordinates
    fields: FieldUsage
    resources: Resources = field(default_factory=Resources)
    rates: Resources = field(default_factory=Resources)  # per hour, signed
    buildings: Dict[str, int] = field(default_factory=costs.empty_buildings)
    defense: Dict[str, int] = field(default_factory=dict)
    last_update: float = 0.0  # epoch seconds
    production_epoch: float = 0.0  # seconds settled since the last building change


@dataclass
class Player:
    id: str
    name: str
    planet_ids: List[str] = field(default_factory=list)
    research: Dict[str, int] = field(default_factory=dict)
    ships: Dict[str, int] = field(default_factory=dict)
    stats: PlayerStats = field(default_factory=PlayerStats)
    achievements: List[AchievementDefinition] = field(default_factory=build_catalog)

    @property
    def home_planet_id(self) -> Optional[str]:
        return self.planet_ids[0] if self.planet_ids else None


@dataclass
class TickSummary:
    """Outcome of one advance_world call."""

    tick: int
    elapsed: float
    produced: Dict[str, Resources]


@dataclass
class World:
    tick: int
    players: Dict[str, Player]
    planets: Dict[str, Planet]
    registry: "AgentRegistry"
    speed: float = costs.UNIVERSE_SPEED
    clock: Optional[float] = None  # epoch seconds of the last advance
    events: List[str] = field(default_factory=list)
    pending_actions: Dict[str, List["Action"]] = field(default_factory=dict)

    def log_event(self, text: str) -> None:
        self.events.append(text)
        if len(self.events) > MAX_EVENTS:
            del self.events[: len(self.events) - MAX_EVENTS]

    def planets_of(self, player: Player) -> List[Planet]:
        return [self.planets[pid] for pid in player.planet_ids if pid in self.planets]


# ---------- Construction ----------


def create_home_planet(
    owner_id: str,
    coordinates: Coordinates,
    name: str = "Home World",
    now: Optional[float] = None,
    planet_id: Optional[str] = None,
) -> Planet:
    buildings = costs.empty_buildings()
    buildings.update(HOME_BUILDINGS)
    now = time.time() if now is None else now
    planet = Planet(
        id=planet_id or str(uuid.uuid4()),
        name=name,
        owner_id=owner_id,
        coordinates=coordinates,
        fields=FieldUsage(used=sum(buildings.values()), max=costs.max_fields(buildings)),
        resources=HOME_RESOURCES.copy(),
        buildings=buildings,
        last_update=now,
    )
    planet.rates = costs.production(planet.buildings)
    return planet


def create_world(
    player_name: str = PLAYER_NAME,
    agent_count: int = AGENT_COUNT,
    seed: Optional[int] = None,
    speed: float = costs.UNIVERSE_SPEED,
    now: Optional[float] = None,
) -> World:
    """One human player on 1:1:1 plus ``agent_count`` agents in a fresh registry."""
    from bots import AgentRegistry  # late import: bots depends on Coordinates

    speed = economy.validate_speed(speed)
    now = time.time() if now is None else now
    rng = random.Random(seed)
    player_id = str(uuid.UUID(int=rng.getrandbits(128), version=4))
    planet = create_home_planet(
        player_id,
        Coordinates(1, 1, 1),
        now=now,
        planet_id=str(uuid.UUID(int=rng.getrandbits(128), version=4)),
    )
    player = Player(id=player_id, name=player_name, planet_ids=[planet.id])

    # agents start their patience timers at the world's creation time
    registry = AgentRegistry(rng=rng, clock=lambda: int(now * 1000))
    registry.generate_universe(agent_count)
    registry.clock = lambda: int(time.time() * 1000)

    world = World(
        tick=0,
        players={player.id: player},
        planets={planet.id: planet},
        registry=registry,
        speed=speed,
        clock=now,
    )
    world.log_event(f"t=0: universe created with {agent_count} agent(s) at speed x{speed:g}")
    return world


# ---------- Upgrades & purchases ----------


def upgrade_building(planet: Planet, kind: str) -> Planet:
    """
    Raise ``kind`` by one level. Resources are not touched here.
    Raises FieldCapacityError before any mutation when no field is free.
    """
    costs.require_building(kind)
    if planet.fields.used + 1 > planet.fields.max:
        raise FieldCapacityError(planet.id, planet.fields.used, planet.fields.max)
    planet.buildings[kind] = planet.buildings.get(kind, 0) + 1
    planet.fields.used += 1
    planet.fields.max = costs.max_fields(planet.buildings)
    planet.rates = costs.production(planet.buildings)
    planet.production_epoch = 0.0
    return planet


def purchase_building(player: Player, planet: Planet, kind: str) -> bool:
    """
    Pay for and apply one building upgrade. Returns False, with nothing
    changed, when the planet cannot afford it.
    """
    price = costs.building_cost(kind, planet.buildings.get(kind, 0))
    if not planet.resources.covers(price):
        return False
    was_full = planet.fields.free == 0
    upgrade_building(planet, kind)
    planet.resources = planet.resources.minus(price)
    player.stats.bump("buildings_built")
    if planet.fields.free == 0 and not was_full:
        player.stats.bump("full_planets")
    return True


def purchase_ships(player: Player, planet: Planet, kind: str, count: int = 1) -> bool:
    price = costs.ship_cost(kind, count)
    if count <= 0 or not planet.resources.covers(price):
        return False
    planet.resources = planet.resources.minus(price)
    player.ships[kind] = player.ships.get(kind, 0) + count
    player.stats.bump("ships_built", count)
    return True


def purchase_defense(planet: Planet, kind: str, count: int = 1) -> bool:
    price = costs.defense_cost(kind, count)
    if count <= 0 or not planet.resources.covers(price):
        return False
    planet.resources = planet.resources.minus(price)
    planet.defense[kind] = planet.defense.get(kind, 0) + count
    return True


def purchase_research(player: Player, planet: Planet, kind: str) -> bool:
    price = costs.research_cost(kind, player.research.get(kind, 0))
    if not planet.resources.covers(price):
        return False
    planet.resources = planet.resources.minus(price)
    player.research[kind] = player.research.get(kind, 0) + 1
    player.stats.bump("research_completed")
    return True


# ---------- Periodic driver helpers ----------


def advance_world(world: World, now: Optional[float] = None) -> TickSummary:
    """
    Settle every planet up to ``now`` and fold the result into player stats.
    """
    now = time.time() if now is None else now
    elapsed = max(0.0, now - world.clock) if world.clock is not None else 0.0
    world.clock = now
    world.tick += 1

    produced: Dict[str, Resources] = {}
    for planet in world.planets.values():
        before = planet.resources.copy()
        economy.settle(planet, now, world.speed)
        produced[planet.id] = Resources(
            metal=planet.resources.metal - before.metal,
            crystal=planet.resources.crystal - before.crystal,
            deuterium=planet.resources.deuterium - before.deuterium,
            energy=planet.resources.energy,
        )

    for player in world.players.values():
        stock = Resources()
        for planet in world.planets_of(player):
            stock = stock.plus(planet.resources)
        player.stats.record_stock(stock)
        player.stats.bump("play_time", elapsed)

    return TickSummary(tick=world.tick, elapsed=elapsed, produced=produced)


def evaluate_achievements(world: World, now: Optional[float] = None) -> Dict[str, List[AchievementDefinition]]:
    """Unlock achievements for every player and credit rewards to their home planet."""
    now = time.time() if now is None else now
    unlocked_by_player: Dict[str, List[AchievementDefinition]] = {}
    for player in world.players.values():
        unlocked = evaluate(player.stats, player.achievements, now)
        if not unlocked:
            continue
        unlocked_by_player[player.id] = unlocked
        home = world.planets.get(player.home_planet_id) if player.home_planet_id else None
        if home is not None:
            home.resources = home.resources.plus(total_reward(unlocked))
        for ach in unlocked:
            world.log_event(f"t={world.tick}: {player.name} unlocked '{ach.name}'")
    return unlocked_by_player


def step_agents(world: World, now_ms: Optional[int] = None) -> Dict[str, List["Action"]]:
    """Run the agent policy and queue non-empty proposals for the action consumer."""
    proposals = world.registry.step_all(now_ms)
    for agent_id, actions in proposals.items():
        if not actions:
            continue
        world.pending_actions[agent_id] = actions
        agent = world.registry.get(agent_id)
        kinds = ", ".join(sorted({a.kind for a in actions}))
        logger.debug("agent %s proposed %d action(s)", agent_id, len(actions))
        world.log_event(f"t={world.tick}: {agent.name if agent else agent_id} proposes {kinds}")
    return proposals


# ---------- Serialization ----------


def planet_state(planet: Planet) -> dict:
    return {
        "id": planet.id,
        "name": planet.name,
        "owner_id": planet.owner_id,
        "coordinates": str(planet.coordinates),
        "fields": {"used": planet.fields.used, "max": planet.fields.max, "free": planet.fields.free},
        "resources": planet.resources.as_dict(),
        "rates": planet.rates.as_dict(),
        "buildings": dict(planet.buildings),
        "defense": dict(planet.defense),
        "last_update": planet.last_update,
    }


def player_state(player: Player) -> dict:
    return {
        "id": player.id,
        "name": player.name,
        "planet_ids": list(player.planet_ids),
        "research": dict(player.research),
        "ships": dict(player.ships),
        "stats": asdict(player.stats),
        "achievements": summarize(player.achievements, player.stats),
    }


def world_state(world: World, events_tail: int = 30) -> dict:
    """JSON-serializable dump used by the websocket feed and run snapshots."""
    return {
        "tick": world.tick,
        "speed": world.speed,
        "clock": world.clock,
        "players": [player_state(p) for p in world.players.values()],
        "planets": [planet_state(p) for p in world.planets.values()],
        "agents": world.registry.debug_state(),
        "pending_actions": {
            agent_id: [a.as_dict() for a in actions] for agent_id, actions in world.pending_actions.items()
        },
        "events": world.events[-events_tail:],
    }
