#!/usr/bin/env python3
"""Exceptions raised by the simulation core.

Expected game conditions (a player who cannot afford an upgrade, an agent that
has nothing to do this cycle) are not errors and never show up here.
"""
from __future__ import annotations


class SimulationError(Exception):
    """Base class for all core errors."""


class UnknownKindError(SimulationError, ValueError):
    """A building/ship/defense/research identifier outside the fixed sets."""

    def __init__(self, category: str, kind: str):
        super().__init__(f"Unknown {category} kind: {kind!r}")
        self.category = category
        self.kind = kind


class FieldCapacityError(SimulationError):
    """Raised before an upgrade that would push used fields past the maximum."""

    def __init__(self, planet_id: str, used: int, maximum: int):
        super().__init__(f"Planet {planet_id} has no free fields ({used}/{maximum})")
        self.planet_id = planet_id
        self.used = used
        self.maximum = maximum


class NegativeElapsedError(SimulationError, ValueError):
    pass


class InvalidSpeedError(SimulationError, ValueError):
    pass


class StatDecreaseError(SimulationError, ValueError):
    pass


class NamePoolExhaustedError(SimulationError):
    """More agents requested than there are distinct names in the pool."""
