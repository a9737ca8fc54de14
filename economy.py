#!/usr/bin/env python3
"""
Resource engine: advances a planet's stock over elapsed time.

``tick`` is the plain contract: the stock delta is a pure function of
(buildings, elapsed seconds, speed) and every channel is floored per call.
``settle`` is what the periodic driver uses. It converts wall time against
the cumulative output of the current production epoch, so a one-second
cadence does not floor a 30/h mine down to nothing.
"""
from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING, Iterable, Mapping

import costs
from config import SIM_CONFIG
from errors import InvalidSpeedError, NegativeElapsedError
from resources import STOCK_CHANNELS, Resources

if TYPE_CHECKING:
    from world import Planet

logger = logging.getLogger(__name__)

SECONDS_PER_HOUR = 3600
ALLOWED_SPEEDS: tuple[float, ...] = tuple(float(s) for s in SIM_CONFIG.get("allowed_speeds", [1, 2, 5, 10]))


def validate_speed(speed: float, allowed: Iterable[float] = ALLOWED_SPEEDS) -> float:
    if float(speed) not in set(allowed):
        raise InvalidSpeedError(f"Unsupported universe speed {speed}; expected one of {sorted(set(allowed))}")
    return float(speed)


def _check_elapsed(elapsed_seconds: float) -> None:
    if elapsed_seconds < 0:
        raise NegativeElapsedError(f"Elapsed time must be >= 0, got {elapsed_seconds}")


def production_delta(
    buildings: Mapping[str, int],
    elapsed_seconds: float,
    speed: float = costs.UNIVERSE_SPEED,
) -> Resources:
    """Stock change for ``elapsed_seconds``; energy carries the net balance, not a delta."""
    _check_elapsed(elapsed_seconds)
    rates = costs.production(buildings, speed)
    return Resources(
        metal=math.floor(rates.metal * elapsed_seconds / SECONDS_PER_HOUR),
        crystal=math.floor(rates.crystal * elapsed_seconds / SECONDS_PER_HOUR),
        deuterium=math.floor(rates.deuterium * elapsed_seconds / SECONDS_PER_HOUR),
        energy=rates.energy,
    )


def _apply(planet: "Planet", delta: Resources, rates: Resources) -> None:
    for channel in STOCK_CHANNELS:
        stock = getattr(planet.resources, channel) + getattr(delta, channel)
        setattr(planet.resources, channel, max(0, stock))
    planet.resources.energy = max(0, rates.energy)
    planet.rates = rates


def tick(planet: "Planet", elapsed_seconds: float, speed: float = costs.UNIVERSE_SPEED) -> "Planet":
    """
    Advance ``planet`` in place by ``elapsed_seconds`` and return it.

    Metal and crystal never drop. Deuterium may have a negative rate (fusion
    reactor) but the stock floors at 0. Energy is reset to max(0, net).
    """
    _check_elapsed(elapsed_seconds)
    if elapsed_seconds == 0:
        return planet

    delta = production_delta(planet.buildings, elapsed_seconds, speed)
    _apply(planet, delta, costs.production(planet.buildings, speed))
    planet.last_update += elapsed_seconds
    return planet


def settle(planet: "Planet", now: float, speed: float = costs.UNIVERSE_SPEED) -> "Planet":
    """
    Bring ``planet`` up to wall time ``now`` (epoch seconds).

    The delta is floor(rate * (E + e)) - floor(rate * E) where E is the time
    already settled in the current production epoch, so fractional output
    carries across calls instead of being lost.
    """
    elapsed = now - planet.last_update
    if elapsed <= 0:
        return planet

    settled = planet.production_epoch
    before = production_delta(planet.buildings, settled, speed)
    after = production_delta(planet.buildings, settled + elapsed, speed)
    delta = Resources(
        metal=after.metal - before.metal,
        crystal=after.crystal - before.crystal,
        deuterium=after.deuterium - before.deuterium,
    )
    _apply(planet, delta, costs.production(planet.buildings, speed))
    planet.production_epoch = settled + elapsed
    planet.last_update = now
    logger.debug("settled planet %s by %.1fs: %s", planet.id, elapsed, delta.as_dict())
    return planet
