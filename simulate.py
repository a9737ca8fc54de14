#!/usr/bin/env python3
"""
Headless driver: runs the same tick / achievement / agent cadence as the
service against a simulated clock and journals the run to disk.
"""
from __future__ import annotations

import argparse
import logging
import time
from pathlib import Path
from typing import Optional

import costs
from config import SIM_CONFIG
from storage import RunJournal
from world import (
    Player,
    World,
    advance_world,
    create_world,
    evaluate_achievements,
    purchase_building,
    step_agents,
)

ACHIEVEMENT_INTERVAL: float = float(SIM_CONFIG.get("achievement_interval", 5.0))
AGENT_INTERVAL: float = float(SIM_CONFIG.get("agent_interval", 5.0))

AUTOBUILD_MINES = ("metal_mine", "crystal_mine", "deuterium_synthesizer")


def autobuild(player: Player, world: World) -> Optional[str]:
    """
    Greedy build order for the human seat: the mine whose next level is
    cheapest in total stock. Returns the kind bought, if any.
    """
    planet = world.planets[player.home_planet_id]
    if planet.fields.free <= 0:
        return None
    kind = min(
        AUTOBUILD_MINES,
        key=lambda k: costs.building_cost(k, planet.buildings.get(k, 0)).stock_total(),
    )
    if purchase_building(player, planet, kind):
        return kind
    return None


def run_simulation(
    ticks: int,
    agents: int,
    seed: Optional[int],
    speed: float,
    step_seconds: float,
    journal: Optional[RunJournal] = None,
    build: bool = False,
    start: Optional[float] = None,
) -> World:
    now = time.time() if start is None else start
    world = create_world(agent_count=agents, seed=seed, speed=speed, now=now)
    player = next(iter(world.players.values()))
    since_achievements = 0.0
    since_agents = 0.0

    for _ in range(ticks):
        now += step_seconds
        summary = advance_world(world, now)
        since_achievements += step_seconds
        since_agents += step_seconds

        bought = autobuild(player, world) if build else None
        unlocked = []
        if since_achievements >= ACHIEVEMENT_INTERVAL:
            since_achievements = 0.0
            unlocked = [a for found in evaluate_achievements(world, now).values() for a in found]
        proposals = {}
        if since_agents >= AGENT_INTERVAL:
            since_agents = 0.0
            proposals = step_agents(world, int(now * 1000))

        if unlocked:
            print(f"SIM: tick {world.tick} unlocked {', '.join(a.name for a in unlocked)}")
        if journal is not None:
            journal.record_tick(
                world,
                summary,
                built=bought,
                unlocked=unlocked,
                proposals=sum(len(actions) for actions in proposals.values()),
            )

    if journal is not None:
        journal.snapshot(world)
    return world


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the economy simulation without the web service.")
    parser.add_argument("--ticks", type=int, default=3600, help="Number of ticks to simulate.")
    parser.add_argument("--agents", type=int, default=int(SIM_CONFIG.get("agent_count", 10)), help="Number of AI agents.")
    parser.add_argument("--seed", type=int, default=None, help="Seed for agent generation and decisions.")
    parser.add_argument("--speed", type=float, default=costs.UNIVERSE_SPEED, help="Universe speed multiplier.")
    parser.add_argument("--step-seconds", type=float, default=1.0, help="Simulated seconds per tick.")
    parser.add_argument("--autobuild", action="store_true", help="Let the human seat follow a greedy build order.")
    parser.add_argument("--run-dir", type=Path, default=None, help="Directory to store run artifacts (defaults to runs/...).")
    parser.add_argument("--run-name", type=str, default=None, help="Optional run name. Defaults to sim_<timestamp>.")
    parser.add_argument("--verbose", action="store_true", help="Show debug logging from the engine modules.")
    return parser.parse_args(argv)


def main(argv=None) -> None:
    args = parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    params = {k: (str(v) if isinstance(v, Path) else v) for k, v in vars(args).items()}
    with RunJournal(run_type="sim", root=args.run_dir, name=args.run_name, params=params) as journal:
        world = run_simulation(
            ticks=args.ticks,
            agents=args.agents,
            seed=args.seed,
            speed=args.speed,
            step_seconds=args.step_seconds,
            journal=journal,
            build=args.autobuild,
        )
        print(f"SIM: finished {world.tick} ticks, journal in {journal.dir}")


if __name__ == "__main__":
    main()
