#!/usr/bin/env python3
from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict

_BASE_DIR = Path(__file__).resolve().parent
CONFIG_PATH = Path(os.environ.get("SIM_CONFIG_PATH", _BASE_DIR / "config" / "sim_config.json"))

# Nested tables; each module reads its own
SECTIONS = ("costs", "agents", "journal")


def load_config(path: Path = CONFIG_PATH) -> Dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    with path.open("r", encoding="utf-8") as f:
        data = json.load(f)
    for name in SECTIONS:
        if not isinstance(data.get(name, {}), dict):
            raise ValueError(f"Config section '{name}' in {path} must be an object")
    return data


def config_section(name: str) -> Dict[str, Any]:
    """One nested table of SIM_CONFIG, empty when absent so callers fall back to defaults."""
    return SIM_CONFIG.get(name) or {}


SIM_CONFIG: Dict[str, Any] = load_config()
