"""Snapshot-level entry points: one recompute pass and the fixed-point driver."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional

from .config import PlannerConfig, resolve_config
from .model import ConnectionResult, Snapshot, StationId
from .orchestrator import recompute_distances, run_connection_pass

logger = logging.getLogger(__name__)


@dataclass
class PlanResult:
    snapshot: Snapshot
    results: Dict[StationId, ConnectionResult]
    changed: List[StationId] = field(default_factory=list)
    passes: int = 1
    converged: bool = True

    @property
    def unconnected(self) -> List[StationId]:
        hub = self.snapshot.hub()
        return [
            station.id
            for station in self.snapshot.stations
            if station.id not in self.results and (hub is None or station.id != hub.id)
        ]


def recompute(snapshot: Snapshot, config: Optional[PlannerConfig] = None) -> PlanResult:
    """Run both passes once and return the updated snapshot with its results."""

    cfg = resolve_config(config)
    connection_pass = run_connection_pass(snapshot.nodes, snapshot.links, snapshot.stations, cfg)
    updated = replace(snapshot, stations=connection_pass.stations)
    results = recompute_distances(updated.nodes, updated.links, updated.stations, cfg)
    return PlanResult(
        snapshot=updated,
        results=results,
        changed=list(connection_pass.changed),
        converged=not connection_pass.changed,
    )


def settle(
    snapshot: Snapshot,
    config: Optional[PlannerConfig] = None,
    max_passes: Optional[int] = None,
) -> PlanResult:
    """Re-run ``recompute`` until no attachment changes.

    ``changed`` accumulates every station touched across passes. When the
    pass limit is hit first the result is returned with ``converged=False``.
    """

    cfg = resolve_config(config)
    limit = max_passes if max_passes is not None else cfg.max_passes
    if limit < 1:
        raise ValueError("max_passes must be at least 1")

    touched: List[StationId] = []
    current = snapshot
    result: Optional[PlanResult] = None
    for index in range(1, limit + 1):
        result = recompute(current, cfg)
        for station_id in result.changed:
            if station_id not in touched:
                touched.append(station_id)
        current = result.snapshot
        if not result.changed:
            logger.info("Snapshot settled after %d pass(es)", index)
            return replace(result, changed=touched, passes=index, converged=True)
        logger.debug("Pass %d changed %s", index, result.changed)

    assert result is not None
    logger.warning(
        "Snapshot did not settle within %d pass(es); last pass changed %s",
        limit,
        result.changed,
    )
    return replace(result, changed=touched, passes=limit, converged=False)


__all__ = ["PlanResult", "recompute", "settle"]
