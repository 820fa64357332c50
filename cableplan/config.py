"""Configuration helpers for planner components."""

from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import Optional

EARTH_RADIUS_KM = 6371.0


@dataclass
class PlannerConfig:
    """Numeric knobs of the connection optimizer."""

    earth_radius_km: float = EARTH_RADIUS_KM
    # one km of new cable weighs as much as this many km of existing grid
    cable_penalty: float = 2.0
    optimum_steps: int = 20
    target_minimum_steps: int = 15
    target_search_steps: int = 20
    target_tolerance_km: float = 0.5
    target_bracket_slack_km: float = 0.1
    split_margin: float = 0.01
    equalize_threshold_km: float = 0.1
    change_tolerance_deg: float = 1e-5
    root_method: str = "bisect"  # "bisect" or "brentq"
    max_passes: int = 10

    def __post_init__(self) -> None:
        if self.root_method not in ("bisect", "brentq"):
            raise ValueError(f"unsupported root method '{self.root_method}'")
        if self.cable_penalty <= 0.0:
            raise ValueError("cable_penalty must be positive")


_PLANNER_CONFIG = PlannerConfig()


def get_planner_config() -> PlannerConfig:
    return copy.deepcopy(_PLANNER_CONFIG)


def set_planner_config(config: PlannerConfig) -> None:
    global _PLANNER_CONFIG
    _PLANNER_CONFIG = copy.deepcopy(config)


def resolve_config(config: Optional[PlannerConfig]) -> PlannerConfig:
    return config if config is not None else _PLANNER_CONFIG


__all__ = [
    "EARTH_RADIUS_KM",
    "PlannerConfig",
    "get_planner_config",
    "set_planner_config",
    "resolve_config",
]
