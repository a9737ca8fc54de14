#!/usr/bin/env python3
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict

STOCK_CHANNELS = ("metal", "crystal", "deuterium")


@dataclass
class Resources:
    """
    Resource amounts on the four channels.

    As a planet stock every field is >= 0. The same shape is used for hourly
    production rates, where deuterium and energy may be negative. Energy is
    never accumulated: it is the live net balance of the last recomputation.
    """

    metal: int = 0
    crystal: int = 0
    deuterium: int = 0
    energy: int = 0

    def as_dict(self) -> Dict[str, int]:
        return {
            "metal": self.metal,
            "crystal": self.crystal,
            "deuterium": self.deuterium,
            "energy": self.energy,
        }

    def copy(self) -> "Resources":
        return Resources(self.metal, self.crystal, self.deuterium, self.energy)

    def stock_total(self) -> int:
        """Sum of the storable channels (energy excluded)."""
        return self.metal + self.crystal + self.deuterium

    def covers(self, cost: "Resources") -> bool:
        # energy is a balance, not a currency
        return (
            self.metal >= cost.metal
            and self.crystal >= cost.crystal
            and self.deuterium >= cost.deuterium
        )

    def minus(self, cost: "Resources") -> "Resources":
        return Resources(
            metal=self.metal - cost.metal,
            crystal=self.crystal - cost.crystal,
            deuterium=self.deuterium - cost.deuterium,
            energy=self.energy,
        )

    def plus(self, other: "Resources") -> "Resources":
        return Resources(
            metal=self.metal + other.metal,
            crystal=self.crystal + other.crystal,
            deuterium=self.deuterium + other.deuterium,
            energy=self.energy,
        )
