"""Shortest paths over the backbone grid."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

import numpy as np
from scipy.sparse.csgraph import csgraph_from_dense, dijkstra

from .config import EARTH_RADIUS_KM
from .geometry import distances
from .model import GridLink, GridNode, LinkId, NodeId

logger = logging.getLogger(__name__)

_NO_PREDECESSOR = -9999


@dataclass
class PathResult:
    distance: float
    node_ids: List[NodeId]


class GridGraph:
    """Undirected, geodesically weighted view of the grid for one pass.

    Links whose endpoints are missing or identical are left out. Single-source
    Dijkstra runs are cached per start node, so many ``(start, end)`` queries
    within one recomputation pass share the work.
    """

    def __init__(
        self,
        nodes: Iterable[GridNode],
        links: Iterable[GridLink],
        *,
        radius: float = EARTH_RADIUS_KM,
    ) -> None:
        self.radius = radius
        self.nodes: Dict[NodeId, GridNode] = {}
        for node in nodes:
            self.nodes[node.id] = node
        self.links: Dict[LinkId, GridLink] = {}
        self.skipped_links: List[LinkId] = []
        for link in links:
            if link.source_id not in self.nodes or link.target_id not in self.nodes:
                logger.debug("Ignoring link %s with a missing endpoint", link.id)
                self.skipped_links.append(link.id)
                continue
            if link.source_id == link.target_id:
                logger.debug("Ignoring self link %s", link.id)
                self.skipped_links.append(link.id)
                continue
            self.links[link.id] = link

        self._order: List[NodeId] = list(self.nodes)
        self._index: Dict[NodeId, int] = {node_id: idx for idx, node_id in enumerate(self._order)}
        self._lengths: Dict[LinkId, float] = {}
        self._runs: Dict[int, Tuple[np.ndarray, np.ndarray]] = {}
        self._csgraph = self._build(radius)

    def _build(self, radius: float):
        size = len(self._order)
        if size == 0:
            return None
        dense = np.full((size, size), np.inf, dtype=float)
        ordered = list(self.links.values())
        weights = distances(
            [self.nodes[link.source_id].position for link in ordered],
            [self.nodes[link.target_id].position for link in ordered],
            radius=radius,
        )
        for link, weight in zip(ordered, weights):
            i = self._index[link.source_id]
            j = self._index[link.target_id]
            self._lengths[link.id] = float(weight)
            # parallel links share endpoints, so they share a weight as well
            dense[i, j] = min(dense[i, j], weight)
            dense[j, i] = dense[i, j]
        logger.debug(
            "Built grid graph with %d node(s), %d link(s), %d skipped",
            size,
            len(self.links),
            len(self.skipped_links),
        )
        return csgraph_from_dense(dense, null_value=np.inf)

    def link(self, link_id: Optional[LinkId]) -> Optional[GridLink]:
        if link_id is None:
            return None
        return self.links.get(link_id)

    def endpoints(self, link_id: Optional[LinkId]) -> Optional[Tuple[GridNode, GridNode]]:
        link = self.link(link_id)
        if link is None:
            return None
        return self.nodes[link.source_id], self.nodes[link.target_id]

    def link_length(self, link_id: LinkId) -> float:
        return self._lengths[link_id]

    def _run(self, source: int) -> Tuple[np.ndarray, np.ndarray]:
        cached = self._runs.get(source)
        if cached is None:
            dist, predecessors = dijkstra(
                self._csgraph, directed=False, indices=source, return_predecessors=True
            )
            cached = (np.asarray(dist, dtype=float), np.asarray(predecessors))
            self._runs[source] = cached
        return cached

    def distance(self, start: NodeId, end: NodeId) -> float:
        """Shortest grid distance in km, ``math.inf`` when unreachable."""

        result = self.shortest_path(start, end)
        return math.inf if result is None else result.distance

    def shortest_path(self, start: NodeId, end: NodeId) -> Optional[PathResult]:
        if start not in self._index or end not in self._index:
            return None
        source = self._index[start]
        target = self._index[end]
        if source == target:
            return PathResult(0.0, [start])
        dist, predecessors = self._run(source)
        total = float(dist[target])
        if not math.isfinite(total):
            return None
        path: List[NodeId] = []
        cursor = target
        while cursor != _NO_PREDECESSOR and cursor != source:
            path.append(self._order[cursor])
            cursor = int(predecessors[cursor])
        if cursor != source:  # pragma: no cover - guarded by the finite distance
            return None
        path.append(start)
        path.reverse()
        return PathResult(total, path)


def find_shortest_path(
    nodes: Iterable[GridNode],
    links: Iterable[GridLink],
    start: NodeId,
    end: NodeId,
    *,
    radius: float = EARTH_RADIUS_KM,
) -> Optional[PathResult]:
    """One-shot Dijkstra between two node ids; ``None`` when unreachable."""

    return GridGraph(nodes, links, radius=radius).shortest_path(start, end)


__all__ = ["PathResult", "GridGraph", "find_shortest_path"]
