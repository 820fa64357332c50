"""One-dimensional searches for attachment points along a grid link.

A link is parametrised by ``t`` in ``[0, 1]`` (``lerp(p1, p2, t)``). The grid
part of a route is the lower envelope of the two ways back to the hub,

    grid(t) = min(|point - p1| + d1, |point - p2| + d2)

which has a kink where both branches meet. Each search below therefore splits
the link at the estimated kink and treats the two sides independently.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from scipy.optimize import brentq

from .config import EARTH_RADIUS_KM, PlannerConfig, resolve_config
from .geometry import distance, interpolate
from .model import LatLng

logger = logging.getLogger(__name__)

_INV_PHI = (math.sqrt(5.0) - 1.0) / 2.0

Range = Tuple[float, float]


@dataclass
class SegmentCost:
    """Route cost along one link for a fixed station."""

    station: LatLng
    p1: LatLng
    p2: LatLng
    d1: float
    d2: float
    penalty: float = 2.0
    radius: float = EARTH_RADIUS_KM

    @property
    def length(self) -> float:
        return distance(self.p1, self.p2, self.radius)

    def point(self, t: float) -> LatLng:
        return interpolate(self.p1, self.p2, t)

    def cable(self, t: float) -> float:
        return distance(self.station, self.point(t), self.radius)

    def grid(self, t: float) -> float:
        p = self.point(t)
        return min(
            distance(p, self.p1, self.radius) + self.d1,
            distance(p, self.p2, self.radius) + self.d2,
        )

    def total(self, t: float) -> float:
        return self.cable(t) + self.grid(t)

    def cost(self, t: float) -> float:
        return self.penalty * self.cable(t) + self.grid(t)

    def ranges(self, margin: float = 0.01) -> List[Range]:
        return split_ranges(self.length, self.d1, self.d2, margin)


@dataclass
class SegmentOptimum:
    point: LatLng
    t: float
    total_distance: float
    cable_distance: float
    cost: float

    @property
    def grid_distance(self) -> float:
        return self.total_distance - self.cable_distance


@dataclass
class TargetPoint:
    point: LatLng
    t: float
    total_distance: float
    cable_distance: float
    deviation: float


def split_ranges(length: float, d1: float, d2: float, margin: float = 0.01) -> List[Range]:
    """Split ``[0, 1]`` where the two grid branches are estimated to cross.

    The crossing assumes the along-link distance grows linearly in ``t``.
    Crossings within ``margin`` of an end (or undefined ones) keep one range.
    """

    if length <= 0.0:
        return [(0.0, 1.0)]
    split = (length + d2 - d1) / (2.0 * length)
    if not math.isfinite(split) or split <= margin or split >= 1.0 - margin:
        return [(0.0, 1.0)]
    return [(0.0, split), (split, 1.0)]


def golden_section(func: Callable[[float], float], lo: float, hi: float, steps: int) -> float:
    """Golden-section search for a minimum of a unimodal ``func`` on ``[lo, hi]``."""

    left, right = lo, hi
    c = right - (right - left) * _INV_PHI
    d = left + (right - left) * _INV_PHI
    fc = func(c)
    fd = func(d)
    for _ in range(steps):
        if fc < fd:
            right = d
            d, fd = c, fc
            c = right - (right - left) * _INV_PHI
            fc = func(c)
        else:
            left = c
            c, fc = d, fd
            d = left + (right - left) * _INV_PHI
            fd = func(d)
    return (left + right) / 2.0


def _bisect(func: Callable[[float], float], lo: float, hi: float, steps: int) -> float:
    # func > 0 means the crossing lies further towards hi
    for _ in range(steps):
        mid = (lo + hi) / 2.0
        if func(mid) > 0.0:
            lo = mid
        else:
            hi = mid
    return (lo + hi) / 2.0


def _find_crossing(
    func: Callable[[float], float], lo: float, hi: float, config: PlannerConfig
) -> float:
    if config.root_method == "brentq":
        f_lo = func(lo)
        f_hi = func(hi)
        if f_lo == 0.0:
            return lo
        if f_hi == 0.0:
            return hi
        if f_lo * f_hi < 0.0:
            return float(brentq(func, lo, hi, xtol=1e-12))
    return _bisect(func, lo, hi, config.target_search_steps)


def find_optimal_point_on_segment(
    station: LatLng,
    p1: LatLng,
    p2: LatLng,
    d1: float,
    d2: float,
    penalty: Optional[float] = None,
    *,
    config: Optional[PlannerConfig] = None,
) -> SegmentOptimum:
    """Point on ``p1``-``p2`` minimizing ``penalty * cable + grid``.

    The reported ``total_distance`` is the unweighted ``cable + grid``; when
    ``d1`` and ``d2`` are both infinite every candidate costs ``inf``.
    """

    cfg = resolve_config(config)
    weight = cfg.cable_penalty if penalty is None else penalty
    seg = SegmentCost(station, p1, p2, d1, d2, weight, cfg.earth_radius_km)

    best_t = 0.0
    best_cost = math.inf
    for start, end in seg.ranges(cfg.split_margin):
        for t in (start, end, golden_section(seg.cost, start, end, cfg.optimum_steps)):
            value = seg.cost(t)
            if value < best_cost:
                best_cost = value
                best_t = t

    cable = seg.cable(best_t)
    return SegmentOptimum(
        point=seg.point(best_t),
        t=best_t,
        total_distance=cable + seg.grid(best_t),
        cable_distance=cable,
        cost=best_cost,
    )


def find_target_point_on_segment(
    station: LatLng,
    p1: LatLng,
    p2: LatLng,
    d1: float,
    d2: float,
    target: float,
    *,
    config: Optional[PlannerConfig] = None,
) -> Optional[TargetPoint]:
    """Point on ``p1``-``p2`` whose total distance matches ``target``.

    Among all matching points the one needing the least new cable wins.
    Returns ``None`` when no crossing lands within the target tolerance.
    """

    cfg = resolve_config(config)
    seg = SegmentCost(station, p1, p2, d1, d2, 1.0, cfg.earth_radius_km)
    slack = cfg.target_bracket_slack_km

    candidates: List[TargetPoint] = []

    def _accept(t: float) -> None:
        total = seg.total(t)
        deviation = abs(total - target)
        if deviation < cfg.target_tolerance_km:
            candidates.append(TargetPoint(seg.point(t), t, total, seg.cable(t), deviation))

    for start, end in seg.ranges(cfg.split_margin):
        t_min = golden_section(seg.total, start, end, cfg.target_minimum_steps)
        min_val = seg.total(t_min)
        if min_val > target + slack:
            continue
        if seg.total(start) >= target - slack:
            # decreasing side
            _accept(_find_crossing(lambda t: seg.total(t) - target, start, t_min, cfg))
        if seg.total(end) >= target - slack:
            # increasing side
            _accept(_find_crossing(lambda t: target - seg.total(t), t_min, end, cfg))

    if not candidates:
        return None
    return min(candidates, key=lambda item: item.cable_distance)


__all__ = [
    "SegmentCost",
    "SegmentOptimum",
    "TargetPoint",
    "split_ranges",
    "golden_section",
    "find_optimal_point_on_segment",
    "find_target_point_on_segment",
]
