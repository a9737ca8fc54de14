#!/usr/bin/env python3
"""
On-disk journal of one simulation run.

    <root>/<name>/meta.json       run parameters, creation time, cadence
    <root>/<name>/ticks.jsonl     one TickRecord per journaled tick
    <root>/<name>/snapshots/      full world dumps, tick_<n>.json
"""
from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import IO, Any, Dict, Iterable, List, Optional

from achievements import AchievementDefinition, total_reward
from config import config_section
from world import TickSummary, World, world_state

_JOURNAL_CFG = config_section("journal")
JOURNAL_ROOT = Path(_JOURNAL_CFG.get("root", "runs"))
JOURNAL_EVERY_N_TICKS: int = int(_JOURNAL_CFG.get("every_n_ticks", 10))


@dataclass
class TickRecord:
    tick: int
    elapsed: float
    produced: Dict[str, Dict[str, int]]  # planet id -> stock delta this tick
    stocks: Dict[str, Dict[str, int]]  # planet id -> stock after the tick
    built: Optional[str] = None
    unlocked: List[str] = field(default_factory=list)
    reward: Dict[str, int] = field(default_factory=dict)
    proposals: int = 0

    @classmethod
    def from_summary(
        cls,
        world: World,
        summary: TickSummary,
        built: Optional[str] = None,
        unlocked: Iterable[AchievementDefinition] = (),
        proposals: int = 0,
    ) -> "TickRecord":
        unlocked = list(unlocked)
        return cls(
            tick=summary.tick,
            elapsed=summary.elapsed,
            produced={pid: delta.as_dict() for pid, delta in summary.produced.items()},
            stocks={pid: planet.resources.as_dict() for pid, planet in world.planets.items()},
            built=built,
            unlocked=[a.id for a in unlocked],
            reward=total_reward(unlocked).as_dict(),
            proposals=proposals,
        )


class RunJournal:
    """
    Append-only journal for a headless run. Tick records are written only on
    every ``every_n_ticks``-th tick; snapshots are written on request.
    The tick file is opened lazily and closed by ``close`` or the ``with`` block.
    """

    def __init__(
        self,
        run_type: str = "sim",
        root: Optional[Path] = None,
        name: Optional[str] = None,
        params: Optional[Dict[str, Any]] = None,
        every_n_ticks: Optional[int] = None,
    ):
        created = datetime.now(timezone.utc)
        self.every_n_ticks = max(1, every_n_ticks or JOURNAL_EVERY_N_TICKS)
        self.name = name or f"{run_type}_{created:%Y%m%d_%H%M%S}"
        self.dir = (Path(root or JOURNAL_ROOT) / self.name).resolve()
        self.snapshot_dir = self.dir / "snapshots"
        self.snapshot_dir.mkdir(parents=True, exist_ok=True)
        self.ticks_path = self.dir / "ticks.jsonl"
        self._fh: Optional[IO[str]] = None
        self._closed = False

        meta = {
            "run_type": run_type,
            "created_utc": created.isoformat(),
            "every_n_ticks": self.every_n_ticks,
            "params": params or {},
        }
        (self.dir / "meta.json").write_text(json.dumps(meta, indent=2), encoding="utf-8")

    def due(self, tick: int) -> bool:
        return tick % self.every_n_ticks == 0

    def record(self, record: TickRecord) -> None:
        if self._closed:
            raise ValueError(f"Journal {self.name} is closed")
        if self._fh is None:
            self._fh = self.ticks_path.open("a", encoding="utf-8")
        self._fh.write(json.dumps(asdict(record)) + "\n")
        self._fh.flush()

    def record_tick(
        self,
        world: World,
        summary: TickSummary,
        built: Optional[str] = None,
        unlocked: Iterable[AchievementDefinition] = (),
        proposals: int = 0,
    ) -> Optional[TickRecord]:
        """Journal this tick if it falls on the cadence; returns the record written, if any."""
        if not self.due(summary.tick):
            return None
        record = TickRecord.from_summary(world, summary, built, unlocked, proposals)
        self.record(record)
        return record

    def snapshot(self, world: World) -> Path:
        path = self.snapshot_dir / f"tick_{world.tick:06d}.json"
        state = world_state(world, events_tail=len(world.events))
        path.write_text(json.dumps(state, ensure_ascii=False, indent=2), encoding="utf-8")
        return path

    def read_ticks(self) -> List[TickRecord]:
        if not self.ticks_path.exists():
            return []
        with self.ticks_path.open("r", encoding="utf-8") as f:
            return [TickRecord(**json.loads(line)) for line in f if line.strip()]

    def close(self) -> None:
        if self._fh is not None:
            self._fh.close()
            self._fh = None
        self._closed = True

    def __enter__(self) -> "RunJournal":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
