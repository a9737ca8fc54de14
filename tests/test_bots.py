import random

import pytest

from bots import (
    ACTION_ATTACK,
    ACTION_BUILD,
    ACTION_BUILD_SHIP,
    ACTION_COLONIZE,
    PERSONALITY_AXES,
    STRATEGY_PRESETS,
    Action,
    AgentPersonality,
    AgentRegistry,
    Difficulty,
    Strategy,
    action_interval_ms,
    blend_personality,
    decide,
    derive_power,
    pick_name,
    resource_pressure,
    starting_buildings,
    starting_planets,
    starting_ships,
)
from errors import NamePoolExhaustedError
from helpers import FixedRandom
from resources import Resources
from world import Coordinates


def _registry(seed=42, now=0):
    return AgentRegistry(rng=random.Random(seed), clock=lambda: now)


# ---------- Personality & derived values ----------


def test_personality_is_clamped():
    p = AgentPersonality(aggression=1.5, greed=-0.2)
    assert p.aggression == 1.0
    assert p.greed == 0.0
    p.patience = 3
    assert p.patience == 1.0


@pytest.mark.parametrize("patience,expected", [(1.0, 5000), (0.0, 20000), (0.5, 12500)])
def test_action_interval(patience, expected):
    assert action_interval_ms(AgentPersonality(patience=patience)) == expected


def test_resource_pressure(make_agent):
    assert resource_pressure(make_agent(planets=0)) == 1.0
    assert resource_pressure(make_agent()) == 1.0
    assert resource_pressure(make_agent(planets=2, resources=Resources(metal=50000))) == 0.5
    assert resource_pressure(make_agent(resources=Resources(metal=10**6))) == 0.0


def test_power_is_derived_on_read(make_agent):
    agent = make_agent(
        ships={"light_fighter": 2, "cruiser": 1},
        buildings={"metal_mine": 2, "crystal_mine": 1, "deuterium_synthesizer": 1},
    )
    assert derive_power(agent).fleet == 600
    assert agent.economy_power == 20 + 15 + 20

    agent.planets[0].ships["battleship"] = 1
    agent.planets[0].buildings["metal_mine"] = 3
    assert agent.fleet_power == 1600
    assert agent.economy_power == 30 + 15 + 20


def test_blend_personality_stays_near_preset():
    rng = random.Random(3)
    for strategy in Strategy:
        p = blend_personality(strategy, rng)
        for axis in PERSONALITY_AXES:
            value = getattr(p, axis)
            assert 0.0 <= value <= 1.0
            assert abs(value - STRATEGY_PRESETS[strategy][axis]) <= 0.1 + 1e-9


def test_pick_name_skips_taken_and_fails_when_empty():
    rng = random.Random(0)
    assert pick_name(rng, ["A", "B"], pool=("A", "B", "C")) == "C"
    with pytest.raises(NamePoolExhaustedError):
        pick_name(rng, ["A", "B", "C"], pool=("A", "B", "C"))


# ---------- Starting assets ----------


def test_starting_ships_scale_with_difficulty():
    assert starting_ships(Difficulty.EASY) == {
        "cargo_ship": 5,
        "light_fighter": 10,
        "heavy_fighter": 5,
        "cruiser": 2,
        "battleship": 1,
        "espionage_probe": 5,
    }
    assert starting_ships(Difficulty.INSANE)["light_fighter"] == 50


def test_starting_buildings_ranges():
    rng = random.Random(11)
    for _ in range(50):
        b = starting_buildings(Difficulty.NORMAL, rng)
        assert 3 <= b["metal_mine"] <= 5
        assert 2 <= b["crystal_mine"] <= 4
        assert 1 <= b["deuterium_synthesizer"] <= 3
        assert 3 <= b["solar_plant"] <= 4
        assert (b["fusion_reactor"], b["robot_factory"], b["shipyard"], b["research_lab"]) == (1, 1, 1, 1)


def test_starting_planet_count_follows_difficulty():
    rng = random.Random(5)
    assert all(len(starting_planets(Difficulty.EASY, rng)) == 1 for _ in range(20))
    counts = {len(starting_planets(Difficulty.INSANE, rng)) for _ in range(100)}
    assert counts <= {1, 2, 3}


# ---------- Decision policy ----------


def test_step_before_interval_is_a_noop(make_agent):
    registry = _registry()
    agent = make_agent(last_action=10_000, patience=0.5)
    assert registry.step(agent, now=15_000) == []
    assert agent.last_action == 10_000


def test_economy_branch_under_pressure(make_agent):
    agent = make_agent(buildings={"metal_mine": 1}, greed=1.0)
    actions = decide(agent, 20_000, random.Random(1))

    assert [a.kind for a in actions] == [ACTION_BUILD, ACTION_BUILD, ACTION_BUILD_SHIP]
    assert [a.priority for a in actions] == [1, 2, 3]
    assert actions[0].building == "metal_mine"
    assert actions[1].building == "crystal_mine"
    assert actions[2].ship == "cargo_ship"
    assert 1 <= actions[2].count <= 5
    assert agent.last_action == 20_000


def test_mines_at_target_level_are_not_proposed(make_agent):
    agent = make_agent(buildings={"metal_mine": 10, "crystal_mine": 8}, greed=1.0, difficulty=Difficulty.NORMAL)
    actions = decide(agent, 20_000, random.Random(1))
    assert [a.kind for a in actions] == [ACTION_BUILD_SHIP]


def test_attack_branch(make_agent):
    agent = make_agent(ships={"light_fighter": 11}, greed=0.0, aggression=1.0)
    actions = decide(agent, 20_000, FixedRandom(0.0))
    assert len(actions) == 1
    attack = actions[0]
    assert attack.kind == ACTION_ATTACK
    assert attack.planet_id == "p0"
    assert attack.target.galaxy == 1 and attack.target.slot == 5
    assert 0 <= attack.target.system < 500


def test_attack_needs_more_than_ten_ships(make_agent):
    agent = make_agent(ships={"light_fighter": 10}, greed=0.0, aggression=1.0)
    assert decide(agent, 20_000, FixedRandom(0.0)) == []
    # the cycle is still spent
    assert agent.last_action == 20_000


def test_colonize_branch(make_agent):
    agent = make_agent(ships={"colony_ship": 1}, greed=0.0, aggression=0.0, expansion=1.0)
    actions = decide(agent, 20_000, FixedRandom(0.0))
    assert [a.kind for a in actions] == [ACTION_COLONIZE]
    assert actions[0].target.system == 150
    assert 1 <= actions[0].target.slot <= 15


def test_colonize_respects_planet_cap(make_agent):
    agent = make_agent(
        difficulty=Difficulty.EASY,
        planets=2,
        ships={"colony_ship": 1},
        greed=0.0,
        aggression=0.0,
        expansion=1.0,
    )
    assert decide(agent, 20_000, FixedRandom(0.0)) == []


def test_economy_fallback_includes_level_zero_mines(make_agent):
    agent = make_agent(greed=0.4, aggression=0.5, expansion=0.5)
    actions = decide(agent, 20_000, FixedRandom(0.99))
    assert [(a.kind, a.building) for a in actions] == [
        (ACTION_BUILD, "metal_mine"),
        (ACTION_BUILD, "crystal_mine"),
    ]


def test_action_as_dict():
    action = Action(kind=ACTION_ATTACK, planet_id="p0", priority=1, target=Coordinates(1, 42, 5))
    assert action.as_dict()["target"] == "1:42:5"
    assert Action(kind=ACTION_BUILD, planet_id="p0", priority=1).as_dict()["target"] is None


# ---------- Registry ----------


def test_generate_universe_is_reproducible():
    first = _registry(seed=42).generate_universe(10)
    second = _registry(seed=42).generate_universe(10)
    assert [(a.id, a.name, a.personality.as_dict()) for a in first] == [
        (a.id, a.name, a.personality.as_dict()) for a in second
    ]


def test_generate_universe_agents_are_distinct_and_bounded():
    registry = _registry(seed=7)
    agents = registry.generate_universe(10)
    assert len(registry) == 10
    assert len({a.name for a in agents}) == 10
    assert len({a.id for a in agents}) == 10
    for agent in agents:
        assert agent.difficulty in (Difficulty.EASY, Difficulty.NORMAL, Difficulty.HARD)
        assert agent.id in registry
        assert 1 <= len(agent.planets) <= 3
        for axis in PERSONALITY_AXES:
            assert 0.0 <= getattr(agent.personality, axis) <= 1.0


def test_name_pool_exhaustion():
    registry = _registry()
    with pytest.raises(NamePoolExhaustedError):
        registry.generate_universe(26)
    assert len(registry) == 0

    registry.generate_universe(20)
    with pytest.raises(NamePoolExhaustedError):
        registry.generate_universe(6)
    assert len(registry) == 20


@pytest.mark.parametrize(
    "base,allowed",
    [
        (Difficulty.HARD, {Difficulty.HARD, Difficulty.INSANE}),
        (Difficulty.INSANE, {Difficulty.INSANE}),
    ],
)
def test_generate_with_difficulty(base, allowed):
    agents = _registry(seed=9).generate_universe_with_difficulty(8, base)
    assert {a.difficulty for a in agents} <= allowed


def test_step_all_fires_every_agent_after_the_longest_interval():
    registry = _registry(seed=1, now=0)
    registry.generate_universe(5)
    proposals = registry.step_all(now=60_000)
    assert set(proposals) == {a.id for a in registry.agents()}
    assert all(a.last_action == 60_000 for a in registry.agents())


def test_registry_lifecycle():
    registry = _registry()
    agent = registry.create_agent(Difficulty.NORMAL, Strategy.MILITARY)
    assert registry.get(agent.id) is agent
    assert agent.name in registry.names()
    assert registry.remove(agent.id) is agent
    assert registry.get(agent.id) is None
    registry.generate_universe(3)
    registry.clear()
    assert len(registry) == 0


def test_debug_state_is_flat():
    registry = _registry()
    registry.generate_universe(2)
    rows = registry.debug_state()
    assert len(rows) == 2
    for row in rows:
        assert set(row) >= {"id", "name", "personality", "fleet_power", "economy_power", "resource_pressure"}
        assert isinstance(row["personality"], dict)
