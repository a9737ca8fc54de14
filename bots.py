#!/usr/bin/env python3
"""
Autonomous agents: construction, power scoring and the timed decision policy.

The engine only *proposes* actions. Checking affordability and applying them
to live stocks belongs to whoever consumes the proposals.
"""
from __future__ import annotations

import logging
import math
import random
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Callable, Dict, Iterable, List, Optional

import costs
from config import config_section
from errors import NamePoolExhaustedError
from resources import Resources
from world import Coordinates

logger = logging.getLogger(__name__)

_AGENT_CFG = config_section("agents")

# Interval between actions: BASE + (1 - patience) * SPAN, i.e. 5s..20s by default
BASE_ACTION_INTERVAL_MS: int = int(_AGENT_CFG.get("base_action_interval_ms", 5000))
PATIENCE_INTERVAL_SPAN_MS: int = int(_AGENT_CFG.get("patience_interval_span_ms", 15000))
# Stock per planet at which resource pressure reaches 0
RESOURCE_CEILING_PER_PLANET: int = int(_AGENT_CFG.get("resource_ceiling_per_planet", 100000))
# Uniform jitter applied to every preset axis (+/-)
PERSONALITY_JITTER: float = float(_AGENT_CFG.get("personality_jitter", 0.1))
# First planet must hold more ships than this before an attack is proposed
ATTACK_MIN_SHIPS: int = int(_AGENT_CFG.get("attack_min_ships", 10))

PRESSURE_THRESHOLD = 0.7
GREED_THRESHOLD = 0.5
AGGRESSION_THRESHOLD = 0.6
ATTACK_CHANCE = 0.3
EXPANSION_THRESHOLD = 0.5
COLONIZE_CHANCE = 0.2

ACTION_BUILD = "build"
ACTION_BUILD_SHIP = "build_ship"
ACTION_ATTACK = "attack"
ACTION_COLONIZE = "colonize"


class Difficulty(IntEnum):
    EASY = 1
    NORMAL = 2
    HARD = 3
    INSANE = 4


class Strategy(str, Enum):
    ECONOMIC = "economic"
    MILITARY = "military"
    BALANCED = "balanced"


PERSONALITY_AXES = ("aggression", "expansion", "defense", "patience", "greed")

STRATEGY_PRESETS: Dict[Strategy, Dict[str, float]] = {
    Strategy.ECONOMIC: {"aggression": 0.2, "expansion": 0.7, "defense": 0.4, "patience": 0.6, "greed": 0.8},
    Strategy.MILITARY: {"aggression": 0.9, "expansion": 0.6, "defense": 0.3, "patience": 0.3, "greed": 0.3},
    Strategy.BALANCED: {"aggression": 0.5, "expansion": 0.5, "defense": 0.5, "patience": 0.5, "greed": 0.5},
}

DIFFICULTY_MODIFIERS: Dict[Difficulty, float] = {
    Difficulty.EASY: 0.5,
    Difficulty.NORMAL: 1.0,
    Difficulty.HARD: 1.5,
    Difficulty.INSANE: 2.5,
}

# Economy power weight per mine level
ECONOMY_WEIGHTS: Dict[str, int] = {
    "metal_mine": 10,
    "crystal_mine": 15,
    "deuterium_synthesizer": 20,
}

AGENT_NAMES = (
    "CyberX", "NovaPrime", "StarLord", "VoidWalker", "CosmosKing",
    "GalaxyEmperor", "NebulaLord", "PulsarMaster", "QuantumAce", "StellarKing",
    "DarkMatter", "SolarFlare", "LunarCommand", "OrbitalAce", "AstroKing",
    "IonStorm", "EventHorizon", "RedGiant", "QuasarQueen", "CometTail",
    "ZeroPoint", "IronNebula", "WarpDrive", "SiriusBlack", "OortWarden",
)

AGENT_COLORS = (
    "#ff6b6b", "#4ecdc4", "#ffe66d", "#95e1d3", "#f38181",
    "#aa96da", "#fcbad3", "#a8d8ea", "#ff9a3c", "#00d2d3",
)


def _clamp01(value: float) -> float:
    return max(0.0, min(1.0, float(value)))


@dataclass
class AgentPersonality:
    """Five axes in [0, 1]. Out-of-range values are clamped on every assignment."""

    aggression: float = 0.5  # likelihood to attack
    expansion: float = 0.5  # drive to colonize
    defense: float = 0.5  # investment in defense
    patience: float = 0.5  # higher = acts less often
    greed: float = 0.5  # hoarding / ship building appetite

    def __setattr__(self, name: str, value) -> None:
        if name in PERSONALITY_AXES:
            value = _clamp01(value)
        super().__setattr__(name, value)

    def as_dict(self) -> Dict[str, float]:
        return {axis: getattr(self, axis) for axis in PERSONALITY_AXES}


@dataclass
class AgentPlanet:
    id: str
    name: str
    coordinates: Coordinates
    buildings: Dict[str, int] = field(default_factory=dict)
    ships: Dict[str, int] = field(default_factory=dict)
    defense: Dict[str, int] = field(default_factory=dict)
    resources: Resources = field(default_factory=Resources)
    threat_level: int = 0

    def total_ships(self) -> int:
        return sum(self.ships.values())


@dataclass(frozen=True)
class AgentPower:
    fleet: int
    economy: int


@dataclass
class AgentPlayer:
    id: str
    name: str
    difficulty: Difficulty
    strategy: Strategy
    personality: AgentPersonality
    planets: List[AgentPlanet] = field(default_factory=list)
    last_action: int = 0  # ms timestamp of the last fired decision
    color: str = "#ffffff"

    # Derived on every read so they cannot drift from the planets
    @property
    def fleet_power(self) -> int:
        return derive_power(self).fleet

    @property
    def economy_power(self) -> int:
        return derive_power(self).economy


@dataclass
class Action:
    """A proposed action. Lower priority = more urgent."""

    kind: str  # "build" | "build_ship" | "attack" | "colonize"
    planet_id: str
    priority: int
    building: Optional[str] = None
    ship: Optional[str] = None
    count: Optional[int] = None
    target: Optional[Coordinates] = None

    def as_dict(self) -> dict:
        return {
            "kind": self.kind,
            "planet_id": self.planet_id,
            "priority": self.priority,
            "building": self.building,
            "ship": self.ship,
            "count": self.count,
            "target": str(self.target) if self.target else None,
        }


# ---------- Pure helpers ----------


def derive_power(agent: AgentPlayer) -> AgentPower:
    fleet = 0
    economy = 0
    for planet in agent.planets:
        fleet += costs.fleet_power(planet.ships)
        for kind, weight in ECONOMY_WEIGHTS.items():
            economy += planet.buildings.get(kind, 0) * weight
    return AgentPower(fleet=fleet, economy=economy)


def action_interval_ms(personality: AgentPersonality) -> float:
    return BASE_ACTION_INTERVAL_MS + (1.0 - personality.patience) * PATIENCE_INTERVAL_SPAN_MS


def resource_pressure(agent: AgentPlayer) -> float:
    """0 when stock is at/above the per-planet ceiling, 1 when empty."""
    if not agent.planets:
        return 1.0
    total = sum(planet.resources.stock_total() for planet in agent.planets)
    ceiling = len(agent.planets) * RESOURCE_CEILING_PER_PLANET
    return 1.0 - min(1.0, total / ceiling)


def blend_personality(strategy: Strategy, rng: random.Random, jitter: float = PERSONALITY_JITTER) -> AgentPersonality:
    preset = STRATEGY_PRESETS[strategy]
    values = {axis: preset[axis] + (rng.random() - 0.5) * 2 * jitter for axis in PERSONALITY_AXES}
    return AgentPersonality(**values)


def pick_name(rng: random.Random, taken: Iterable[str], pool: Iterable[str] = AGENT_NAMES) -> str:
    taken = set(taken)
    available = [name for name in pool if name not in taken]
    if not available:
        raise NamePoolExhaustedError("Agent name pool exhausted; add names or lower the agent count.")
    return rng.choice(available)


def _new_id(rng: random.Random, prefix: str) -> str:
    return f"{prefix}_{uuid.UUID(int=rng.getrandbits(128), version=4)}"


def _now_ms() -> int:
    return int(time.time() * 1000)


# ---------- Starting assets ----------


def starting_buildings(difficulty: Difficulty, rng: random.Random) -> Dict[str, int]:
    level = int(difficulty) + 1
    return {
        "metal_mine": level + rng.randrange(3),
        "crystal_mine": max(1, level - 1 + rng.randrange(3)),
        "deuterium_synthesizer": max(1, level - 2 + rng.randrange(3)),
        "solar_plant": level + rng.randrange(2),
        "fusion_reactor": int(difficulty) // 2,
        "robot_factory": level // 2,
        "shipyard": level // 2,
        "research_lab": level // 3,
    }


def starting_ships(difficulty: Difficulty) -> Dict[str, int]:
    multiplier = DIFFICULTY_MODIFIERS[difficulty]
    return {
        "cargo_ship": math.floor(10 * multiplier),
        "light_fighter": math.floor(20 * multiplier),
        "heavy_fighter": math.floor(10 * multiplier),
        "cruiser": math.floor(5 * multiplier),
        "battleship": math.floor(2 * multiplier),
        "espionage_probe": math.floor(10 * multiplier),
    }


def starting_resources(difficulty: Difficulty, rng: random.Random) -> Resources:
    base = 10000 * DIFFICULTY_MODIFIERS[difficulty]
    return Resources(
        metal=math.floor(base * (0.5 + rng.random())),
        crystal=math.floor(base * (0.3 + rng.random() * 0.5)),
        deuterium=math.floor(base * (0.2 + rng.random() * 0.3)),
        energy=100,
    )


def starting_planets(difficulty: Difficulty, rng: random.Random) -> List[AgentPlanet]:
    count = 1 + rng.randrange(min(int(difficulty), 3))
    planets: List[AgentPlanet] = []
    for i in range(count):
        planets.append(
            AgentPlanet(
                id=_new_id(rng, "ai_planet"),
                name=f"AI Colony {i + 1}",
                coordinates=Coordinates(1, 100 + i * 50, rng.randint(1, 15)),
                buildings=starting_buildings(difficulty, rng),
                ships=starting_ships(difficulty),
                resources=starting_resources(difficulty, rng),
                threat_level=int(difficulty) * 10,
            )
        )
    return planets


# ---------- Policy ----------


def _economy_actions(agent: AgentPlayer, rng: random.Random) -> List[Action]:
    actions: List[Action] = []
    difficulty = int(agent.difficulty)
    for planet in agent.planets:
        if planet.buildings.get("metal_mine", 0) < difficulty * 5:
            actions.append(Action(kind=ACTION_BUILD, planet_id=planet.id, building="metal_mine", priority=1))
        if planet.buildings.get("crystal_mine", 0) < difficulty * 4:
            actions.append(Action(kind=ACTION_BUILD, planet_id=planet.id, building="crystal_mine", priority=2))
        if rng.random() < agent.personality.greed:
            actions.append(
                Action(
                    kind=ACTION_BUILD_SHIP,
                    planet_id=planet.id,
                    ship="cargo_ship",
                    count=rng.randint(1, 5),
                    priority=3,
                )
            )
    return actions


def _attack_actions(agent: AgentPlayer, rng: random.Random) -> List[Action]:
    if not agent.planets:
        return []
    source = agent.planets[0]
    if source.total_ships() <= ATTACK_MIN_SHIPS:
        return []
    # target scanning is not modelled; pick a slot in the home galaxy
    target = Coordinates(1, rng.randrange(500), 5)
    return [Action(kind=ACTION_ATTACK, planet_id=source.id, target=target, priority=1)]


def _colonize_actions(agent: AgentPlayer, rng: random.Random) -> List[Action]:
    has_colony_ship = any(planet.ships.get("colony_ship", 0) > 0 for planet in agent.planets)
    if not has_colony_ship or len(agent.planets) >= int(agent.difficulty) * 2:
        return []
    target = Coordinates(1, 100 + len(agent.planets) * 50, rng.randint(1, 15))
    return [Action(kind=ACTION_COLONIZE, planet_id=agent.planets[0].id, target=target, priority=1)]


def decide(agent: AgentPlayer, now: int, rng: random.Random) -> List[Action]:
    """
    Run one decision for ``agent`` at time ``now`` (ms).

    Returns [] without touching the agent while the patience interval has not
    elapsed. Otherwise the first matching branch wins, and last_action is
    reset even when the branch proposes nothing.
    """
    if now - agent.last_action < action_interval_ms(agent.personality):
        return []

    p = agent.personality
    pressure = resource_pressure(agent)
    if pressure > PRESSURE_THRESHOLD and p.greed > GREED_THRESHOLD:
        branch = "economy"
        actions = _economy_actions(agent, rng)
    elif p.aggression > AGGRESSION_THRESHOLD and rng.random() < ATTACK_CHANCE:
        branch = "attack"
        actions = _attack_actions(agent, rng)
    elif p.expansion > EXPANSION_THRESHOLD and rng.random() < COLONIZE_CHANCE:
        branch = "colonize"
        actions = _colonize_actions(agent, rng)
    else:
        branch = "economy"
        actions = _economy_actions(agent, rng)

    agent.last_action = now
    logger.debug(
        "agent %s: pressure=%.2f branch=%s actions=%d", agent.name, pressure, branch, len(actions)
    )
    return actions


# ---------- Registry ----------


class AgentRegistry:
    """
    Owns the active agents together with the random source and clock they are
    driven by. Pass a seeded ``random.Random`` for reproducible runs.
    """

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        clock: Optional[Callable[[], int]] = None,
    ):
        self.rng = rng if rng is not None else random.Random()
        self.clock = clock if clock is not None else _now_ms
        self._agents: Dict[str, AgentPlayer] = {}
        self._created = 0

    def __len__(self) -> int:
        return len(self._agents)

    def __contains__(self, agent_id: str) -> bool:
        return agent_id in self._agents

    def agents(self) -> List[AgentPlayer]:
        return list(self._agents.values())

    def get(self, agent_id: str) -> Optional[AgentPlayer]:
        return self._agents.get(agent_id)

    def names(self) -> set[str]:
        return {agent.name for agent in self._agents.values()}

    def remove(self, agent_id: str) -> Optional[AgentPlayer]:
        return self._agents.pop(agent_id, None)

    def clear(self) -> None:
        self._agents.clear()
        self._created = 0

    def create_agent(
        self,
        difficulty: Difficulty,
        strategy: Strategy,
        existing_names: Iterable[str] = (),
    ) -> AgentPlayer:
        difficulty = Difficulty(difficulty)
        strategy = Strategy(strategy)
        name = pick_name(self.rng, set(existing_names) | self.names())
        agent = AgentPlayer(
            id=_new_id(self.rng, "ai"),
            name=name,
            difficulty=difficulty,
            strategy=strategy,
            personality=blend_personality(strategy, self.rng),
            planets=starting_planets(difficulty, self.rng),
            last_action=self.clock(),
            color=AGENT_COLORS[self._created % len(AGENT_COLORS)],
        )
        self._created += 1
        self._agents[agent.id] = agent
        logger.info(
            "created agent %s (%s, %s) with %d planet(s)",
            agent.name, difficulty.name.lower(), strategy.value, len(agent.planets),
        )
        return agent

    def _check_pool(self, count: int) -> None:
        free = len(set(AGENT_NAMES) - self.names())
        if count > free:
            raise NamePoolExhaustedError(
                f"Requested {count} agents but only {free} unused names remain in the pool."
            )

    def generate_universe(self, count: int = 10) -> List[AgentPlayer]:
        """Create ``count`` agents with random easy..hard difficulty and random strategy."""
        self._check_pool(count)
        difficulties = [Difficulty.EASY, Difficulty.NORMAL, Difficulty.HARD]
        strategies = list(Strategy)
        created: List[AgentPlayer] = []
        for _ in range(count):
            difficulty = self.rng.choice(difficulties)
            strategy = self.rng.choice(strategies)
            created.append(self.create_agent(difficulty, strategy, [a.name for a in created]))
        return created

    def generate_universe_with_difficulty(self, count: int, base_difficulty: Difficulty) -> List[AgentPlayer]:
        """Like generate_universe, but each agent is base tier or (half the time) one above it."""
        self._check_pool(count)
        base_difficulty = Difficulty(base_difficulty)
        strategies = list(Strategy)
        created: List[AgentPlayer] = []
        for _ in range(count):
            difficulty = base_difficulty
            if self.rng.random() > 0.5 and base_difficulty < Difficulty.INSANE:
                difficulty = Difficulty(base_difficulty + 1)
            strategy = self.rng.choice(strategies)
            created.append(self.create_agent(difficulty, strategy, [a.name for a in created]))
        return created

    def step(self, agent: AgentPlayer, now: Optional[int] = None, rng: Optional[random.Random] = None) -> List[Action]:
        return decide(agent, self.clock() if now is None else now, rng if rng is not None else self.rng)

    def step_all(self, now: Optional[int] = None) -> Dict[str, List[Action]]:
        now = self.clock() if now is None else now
        return {agent.id: self.step(agent, now) for agent in self._agents.values()}

    def debug_state(self) -> List[dict]:
        """JSON-serializable snapshot of every agent."""
        out = []
        for agent in self._agents.values():
            power = derive_power(agent)
            out.append(
                {
                    "id": agent.id,
                    "name": agent.name,
                    "color": agent.color,
                    "difficulty": int(agent.difficulty),
                    "strategy": agent.strategy.value,
                    "personality": agent.personality.as_dict(),
                    "fleet_power": power.fleet,
                    "economy_power": power.economy,
                    "planets": len(agent.planets),
                    "resource_pressure": round(resource_pressure(agent), 3),
                    "last_action": agent.last_action,
                }
            )
        return out
