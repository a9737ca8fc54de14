#!/usr/bin/env python3
"""
Achievement tracker.

Definitions come from a static catalog and are copied per player. The only
mutation is the one-way unlock transition; ``evaluate`` is safe to run on
every tick.
"""
from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional

from errors import StatDecreaseError
from resources import Resources

logger = logging.getLogger(__name__)


@dataclass
class PlayerStats:
    """Cumulative counters. Only the max_* trackers are not plain sums: they hold running maxima."""

    total_attacks: int = 0
    total_defenses: int = 0
    attacks_won: int = 0
    attacks_lost: int = 0
    defenses_won: int = 0
    ships_destroyed: int = 0
    ships_built: int = 0
    resources_looted: int = 0
    resources_lost: int = 0
    buildings_built: int = 0
    planets_colonized: int = 0
    research_completed: int = 0
    full_planets: int = 0
    play_time: float = 0.0  # seconds
    max_metal: int = 0
    max_crystal: int = 0
    max_deuterium: int = 0

    def bump(self, counter: str, amount: float = 1) -> None:
        if counter.startswith("max_") or not hasattr(self, counter):
            raise AttributeError(f"Not a cumulative counter: {counter}")
        if amount < 0:
            raise StatDecreaseError(f"{counter} can only grow (got {amount})")
        setattr(self, counter, getattr(self, counter) + amount)

    def record_stock(self, stock: Resources) -> None:
        self.max_metal = max(self.max_metal, stock.metal)
        self.max_crystal = max(self.max_crystal, stock.crystal)
        self.max_deuterium = max(self.max_deuterium, stock.deuterium)


@dataclass
class Requirement:
    kind: str  # "battles_won", "max_resources", ...
    threshold: int


@dataclass
class AchievementDefinition:
    id: str
    name: str
    description: str
    category: str  # combat | economy | exploration | research | special
    requirement: Requirement
    reward: Optional[Resources] = None
    unlocked: bool = False
    unlocked_at: Optional[float] = None

    def unlock(self, now: float) -> bool:
        """Flip to unlocked. Returns False (and changes nothing) if already unlocked."""
        if self.unlocked:
            return False
        self.unlocked = True
        self.unlocked_at = now
        return True


# Requirement kind -> projection of the stats bag
STAT_PROJECTIONS: Dict[str, Callable[[PlayerStats], float]] = {
    "battles_won": lambda s: s.attacks_won,
    "ships_destroyed": lambda s: s.ships_destroyed,
    "defenses_won": lambda s: s.defenses_won,
    "max_resources": lambda s: s.max_metal + s.max_crystal + s.max_deuterium,
    "buildings_built": lambda s: s.buildings_built,
    "planets_colonized": lambda s: s.planets_colonized,
    "research_completed": lambda s: s.research_completed,
    "play_time": lambda s: s.play_time,
    "max_fields": lambda s: s.full_planets,
}


def _reward(metal: int, crystal: int, deuterium: int) -> Resources:
    return Resources(metal=metal, crystal=crystal, deuterium=deuterium)


# id, name, description, category, requirement kind, threshold, reward
CATALOG = (
    ("first_blood", "First Blood", "Win your first battle", "combat", "battles_won", 1, _reward(1000, 500, 100)),
    ("warrior", "Warrior", "Win 10 battles", "combat", "battles_won", 10, _reward(5000, 2500, 500)),
    ("conqueror", "Conqueror", "Win 50 battles", "combat", "battles_won", 50, _reward(25000, 12500, 2500)),
    ("destroyer", "Destroyer", "Destroy 100 enemy ships", "combat", "ships_destroyed", 100, _reward(10000, 5000, 1000)),
    ("defender", "Defender", "Win 10 defensive battles", "combat", "defenses_won", 10, _reward(5000, 2500, 500)),
    ("rich", "Getting Rich", "Accumulate 100,000 resources", "economy", "max_resources", 100000, None),
    ("tycoon", "Tycoon", "Accumulate 1,000,000 resources", "economy", "max_resources", 1000000, _reward(50000, 25000, 5000)),
    ("industrialist", "Industrialist", "Build 100 buildings", "economy", "buildings_built", 100, _reward(10000, 5000, 1000)),
    ("explorer", "Explorer", "Colonize your first planet", "exploration", "planets_colonized", 1, _reward(2000, 1000, 200)),
    ("colonizer", "Colonizer", "Colonize 5 planets", "exploration", "planets_colonized", 5, _reward(10000, 5000, 1000)),
    ("empire", "Empire Builder", "Colonize 10 planets", "exploration", "planets_colonized", 10, _reward(50000, 25000, 5000)),
    ("researcher", "Researcher", "Complete 10 research projects", "research", "research_completed", 10, _reward(5000, 2500, 500)),
    ("scientist", "Scientist", "Complete 25 research projects", "research", "research_completed", 25, _reward(15000, 7500, 1500)),
    ("genius", "Genius", "Complete 50 research projects", "research", "research_completed", 50, _reward(50000, 25000, 5000)),
    ("speed_demon", "Speed Demon", "Complete 10 builds in a single day", "special", "daily_builds", 10, _reward(10000, 5000, 1000)),
    ("legend", "Legend", "Play for 100 hours", "special", "play_time", 100 * 3600, _reward(100000, 50000, 10000)),
    ("perfectionist", "Perfectionist", "Fill all building slots on a planet", "special", "max_fields", 1, _reward(25000, 12500, 2500)),
)


def build_catalog() -> List[AchievementDefinition]:
    """Fresh, all-locked definitions for one player."""
    return [
        AchievementDefinition(
            id=ach_id,
            name=name,
            description=description,
            category=category,
            requirement=Requirement(kind=kind, threshold=threshold),
            reward=reward.copy() if reward is not None else None,
        )
        for ach_id, name, description, category, kind, threshold, reward in CATALOG
    ]


def observed(definition: AchievementDefinition, stats: PlayerStats) -> float:
    """Raw value the requirement is measured against; unknown kinds count as 0."""
    projection = STAT_PROJECTIONS.get(definition.requirement.kind)
    if projection is None:
        return 0
    return projection(stats)


def progress(definition: AchievementDefinition, stats: PlayerStats) -> int:
    projection = STAT_PROJECTIONS.get(definition.requirement.kind)
    if projection is None:
        return 0
    threshold = definition.requirement.threshold
    if threshold <= 0:
        return 100
    value = projection(stats)
    return max(0, min(100, math.floor(100 * value / threshold)))


def evaluate(
    stats: PlayerStats,
    definitions: Iterable[AchievementDefinition],
    now: Optional[float] = None,
) -> List[AchievementDefinition]:
    """Unlock every definition whose threshold is met and return only those flipped by this call."""
    if now is None:
        now = time.time()
    newly_unlocked: List[AchievementDefinition] = []
    for definition in definitions:
        if definition.unlocked or definition.requirement.kind not in STAT_PROJECTIONS:
            continue
        if observed(definition, stats) >= definition.requirement.threshold:
            definition.unlock(now)
            newly_unlocked.append(definition)
            logger.info("achievement unlocked: %s", definition.id)
    return newly_unlocked


def total_reward(unlocked: Iterable[AchievementDefinition]) -> Resources:
    total = Resources()
    for definition in unlocked:
        if definition.reward is not None:
            total = total.plus(definition.reward)
    return total


def summarize(definitions: Iterable[AchievementDefinition], stats: PlayerStats) -> List[dict]:
    return [
        {
            "id": d.id,
            "name": d.name,
            "description": d.description,
            "category": d.category,
            "progress": progress(d, stats),
            "unlocked": d.unlocked,
            "unlocked_at": d.unlocked_at,
        }
        for d in definitions
    ]
