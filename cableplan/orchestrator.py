"""Per-station connection policy and the hub-relative distance pass.

A pass runs in two strictly ordered phases. The hub is attached first since
its attachment point is the reference every other grid distance is measured
against; all other stations are then attached, the balanced pair is
equalized and the change gate decides which stored attachments move.
``recompute_distances`` is a separate pass over the settled attachments.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

from .config import PlannerConfig, resolve_config
from .geometry import distance, project_onto_segment
from .graph import GridGraph
from .logging_utils import debug_log_call
from .model import (
    Connection,
    ConnectionResult,
    GridLink,
    GridNode,
    LatLng,
    LinkId,
    NodeId,
    Station,
    StationId,
    StationType,
    find_first,
)
from .optimize import find_optimal_point_on_segment, find_target_point_on_segment

logger = logging.getLogger(__name__)

# (start, end, grid distance from start, grid distance from end)
SegmentSpec = Tuple[LatLng, LatLng, float, float]


@dataclass
class HubAnchor:
    """Hub attachment resolved against the current grid."""

    station: Station
    point: LatLng
    link_id: LinkId
    node_a: GridNode
    node_b: GridNode
    offset_a: float
    offset_b: float
    _grid_cache: Dict[NodeId, float] = field(default_factory=dict, repr=False)

    def grid_distance(self, graph: GridGraph, node_id: NodeId) -> float:
        """Grid distance from ``node_id`` to the hub attachment point."""

        cached = self._grid_cache.get(node_id)
        if cached is None:
            cached = min(
                graph.distance(node_id, self.node_a.id) + self.offset_a,
                graph.distance(node_id, self.node_b.id) + self.offset_b,
            )
            self._grid_cache[node_id] = cached
        return cached


@dataclass
class ConnectionPass:
    stations: List[Station]
    connections: Dict[StationId, Connection]
    changed: List[StationId]


def resolve_hub_anchor(
    graph: GridGraph, hub: Station, point: Optional[LatLng], link_id: Optional[LinkId]
) -> Optional[HubAnchor]:
    if point is None:
        return None
    ends = graph.endpoints(link_id)
    if ends is None:
        return None
    node_a, node_b = ends
    radius = graph.radius
    return HubAnchor(
        station=hub,
        point=point,
        link_id=link_id,  # type: ignore[arg-type]
        node_a=node_a,
        node_b=node_b,
        offset_a=distance(point, node_a.position, radius),
        offset_b=distance(point, node_b.position, radius),
    )


def _segments(graph: GridGraph, anchor: HubAnchor, link: GridLink) -> Iterator[SegmentSpec]:
    source = graph.nodes[link.source_id]
    target = graph.nodes[link.target_id]
    d_source = anchor.grid_distance(graph, source.id)
    d_target = anchor.grid_distance(graph, target.id)
    if link.id == anchor.link_id:
        # the hub attachment splits its own link; its side of each half is at grid distance 0
        yield source.position, anchor.point, d_source, 0.0
        yield anchor.point, target.position, 0.0, d_target
    else:
        yield source.position, target.position, d_source, d_target


def nearest_connection(graph: GridGraph, position: LatLng) -> Optional[Connection]:
    """Closest point on any valid link, by plain geodesic distance."""

    radius = graph.radius
    best: Optional[Connection] = None
    for link in graph.links.values():
        node_a, node_b = graph.nodes[link.source_id], graph.nodes[link.target_id]
        projected = project_onto_segment(position, node_a.position, node_b.position)
        dist = distance(position, projected, radius)
        if best is None or dist < best.distance:
            best = Connection(projected, link.id, dist)
    return best


def optimal_connection(
    graph: GridGraph,
    position: LatLng,
    anchor: HubAnchor,
    config: Optional[PlannerConfig] = None,
) -> Optional[Connection]:
    """Attachment minimizing ``penalty * cable + grid`` over all links."""

    cfg = resolve_config(config)
    best: Optional[Connection] = None
    best_cost = math.inf
    for link in graph.links.values():
        for p1, p2, d1, d2 in _segments(graph, anchor, link):
            if math.isinf(d1) and math.isinf(d2):
                logger.debug("Link %s cannot reach the hub; skipped", link.id)
                continue
            opt = find_optimal_point_on_segment(position, p1, p2, d1, d2, config=cfg)
            logger.debug(
                "Link %s candidate t=%.4f cost=%.3f total=%.3f", link.id, opt.t, opt.cost, opt.total_distance
            )
            if opt.cost < best_cost:
                best_cost = opt.cost
                best = Connection(opt.point, link.id, opt.total_distance)
    if best is None:
        return nearest_connection(graph, position)
    return best


def target_connection(
    graph: GridGraph,
    position: LatLng,
    target: float,
    anchor: HubAnchor,
    current: Connection,
    config: Optional[PlannerConfig] = None,
) -> Connection:
    """Attachment whose total distance matches ``target`` with the least new cable.

    ``current`` stands when it is already within the equalization threshold
    of the target or when no link offers a qualifying point.
    """

    cfg = resolve_config(config)
    if target - current.distance <= cfg.equalize_threshold_km:
        return current

    best: Optional[Connection] = None
    best_cable = math.inf
    for link in graph.links.values():
        for p1, p2, d1, d2 in _segments(graph, anchor, link):
            if math.isinf(d1) and math.isinf(d2):
                continue
            hit = find_target_point_on_segment(position, p1, p2, d1, d2, target, config=cfg)
            if hit is None:
                continue
            if hit.cable_distance < best_cable:
                best_cable = hit.cable_distance
                best = Connection(hit.point, link.id, hit.total_distance)
    if best is None:
        logger.info("No link reaches target distance %.3f km; keeping optimum", target)
        return current
    return best


def _pick_hub(stations: Sequence[Station]) -> Optional[Station]:
    hubs = [station for station in stations if station.type.is_hub]
    if len(hubs) > 1:
        logger.warning("Found %d hub stations; using %s", len(hubs), hubs[0].id)
    return hubs[0] if hubs else None


def plan_connections(
    graph: GridGraph,
    stations: Sequence[Station],
    config: Optional[PlannerConfig] = None,
) -> Dict[StationId, Connection]:
    """Hub attachment, per-station attachment and equalization."""

    cfg = resolve_config(config)
    hub = _pick_hub(stations)
    hub_connection = nearest_connection(graph, hub.position) if hub is not None else None
    anchor = (
        resolve_hub_anchor(graph, hub, hub_connection.point, hub_connection.link_id)
        if hub is not None and hub_connection is not None
        else None
    )

    connections: Dict[StationId, Connection] = {}
    for station in stations:
        if station.type.is_hub:
            if station is hub and hub_connection is not None:
                connections[station.id] = Connection(hub_connection.point, hub_connection.link_id, 0.0)
            continue
        if station.type.is_direct_link:
            if hub is not None:
                straight = distance(station.position, hub.position, cfg.earth_radius_km)
                connections[station.id] = Connection(hub.position, None, straight)
            continue
        if anchor is not None:
            found = optimal_connection(graph, station.position, anchor, cfg)
        else:
            found = nearest_connection(graph, station.position)
        if found is not None:
            connections[station.id] = found

    if anchor is not None:
        _equalize(graph, stations, connections, anchor, cfg)
    return connections


def _equalize(
    graph: GridGraph,
    stations: Sequence[Station],
    connections: Dict[StationId, Connection],
    anchor: HubAnchor,
    cfg: PlannerConfig,
) -> None:
    wind = find_first(list(stations), StationType.WIND)
    wave = find_first(list(stations), StationType.WAVE)
    if wind is None or wave is None:
        return
    if wind.id not in connections or wave.id not in connections:
        return
    wind_conn = connections[wind.id]
    wave_conn = connections[wave.id]
    if abs(wind_conn.distance - wave_conn.distance) <= cfg.equalize_threshold_km:
        return

    if wind_conn.distance < wave_conn.distance:
        closer, current, target = wind, wind_conn, wave_conn.distance
    else:
        closer, current, target = wave, wave_conn, wind_conn.distance
    adjusted = target_connection(graph, closer.position, target, anchor, current, cfg)
    logger.info(
        "Equalized %s from %.3f km to %.3f km (target %.3f km)",
        closer.id,
        current.distance,
        adjusted.distance,
        target,
    )
    connections[closer.id] = adjusted


def _moved(previous: Optional[LatLng], new: LatLng, tolerance: float) -> bool:
    if previous is None:
        return True
    return abs(previous.lat - new.lat) > tolerance or abs(previous.lng - new.lng) > tolerance


def apply_connections(
    graph: GridGraph,
    stations: Iterable[Station],
    connections: Dict[StationId, Connection],
    config: Optional[PlannerConfig] = None,
) -> Tuple[List[Station], List[StationId]]:
    """Write new attachments through the change gate."""

    cfg = resolve_config(config)
    updated: List[Station] = []
    changed: List[StationId] = []
    for station in stations:
        new = connections.get(station.id)
        if new is None:
            if station.connection_point is not None or station.connected_link_id is not None:
                updated.append(station.detached())
                changed.append(station.id)
            else:
                updated.append(station)
            continue
        stale_link = station.connected_link_id is not None and (
            new.link_id is None or graph.link(station.connected_link_id) is None
        )
        if stale_link or _moved(station.connection_point, new.point, cfg.change_tolerance_deg):
            updated.append(replace(station, connection_point=new.point, connected_link_id=new.link_id))
            changed.append(station.id)
        else:
            updated.append(station)
    return updated, changed


def run_connection_pass(
    nodes: Iterable[GridNode],
    links: Iterable[GridLink],
    stations: Sequence[Station],
    config: Optional[PlannerConfig] = None,
) -> ConnectionPass:
    cfg = resolve_config(config)
    graph = GridGraph(nodes, links, radius=cfg.earth_radius_km)
    connections = plan_connections(graph, stations, cfg)
    updated, changed = apply_connections(graph, stations, connections, cfg)
    logger.info(
        "Recomputed connections for %d station(s): %d attached, %d changed",
        len(updated),
        len(connections),
        len(changed),
    )
    return ConnectionPass(stations=updated, connections=connections, changed=changed)


@debug_log_call(logger)
def recompute_connections(
    nodes: Iterable[GridNode],
    links: Iterable[GridLink],
    stations: Sequence[Station],
    config: Optional[PlannerConfig] = None,
) -> List[Station]:
    """Return ``stations`` with attachment fields brought up to date."""

    return run_connection_pass(nodes, links, stations, config).stations


def _route(
    graph: GridGraph,
    station: Station,
    anchor: HubAnchor,
    radius: float,
) -> Optional[ConnectionResult]:
    ends = graph.endpoints(station.connected_link_id)
    if station.connection_point is None or ends is None:
        return None
    attach = station.connection_point
    node_a, node_b = ends
    hub = anchor.station

    best = math.inf
    best_path: List[LatLng] = []
    if station.connected_link_id == anchor.link_id:
        best = distance(attach, anchor.point, radius)
        best_path = [station.position, attach, anchor.point, hub.position]

    for start, start_offset in ((node_a, distance(attach, node_a.position, radius)),
                                (node_b, distance(attach, node_b.position, radius))):
        for end, end_offset in ((anchor.node_a, anchor.offset_a), (anchor.node_b, anchor.offset_b)):
            result = graph.shortest_path(start.id, end.id)
            if result is None:
                continue
            total = result.distance + start_offset + end_offset
            if total < best:
                best = total
                best_path = [station.position, attach]
                best_path.extend(graph.nodes[node_id].position for node_id in result.node_ids)
                best_path.extend([anchor.point, hub.position])

    if math.isinf(best):
        return None
    cable = best + distance(station.position, attach, radius) + distance(anchor.point, hub.position, radius)
    return ConnectionResult(
        geo_distance=distance(station.position, hub.position, radius),
        cable_distance=cable,
        path=best_path,
    )


@debug_log_call(logger)
def recompute_distances(
    nodes: Iterable[GridNode],
    links: Iterable[GridLink],
    stations: Sequence[Station],
    config: Optional[PlannerConfig] = None,
) -> Dict[StationId, ConnectionResult]:
    """Hub-relative distances and routes for every connected station."""

    cfg = resolve_config(config)
    radius = cfg.earth_radius_km
    hub = _pick_hub(stations)
    if hub is None:
        return {}
    graph = GridGraph(nodes, links, radius=radius)
    anchor = resolve_hub_anchor(graph, hub, hub.connection_point, hub.connected_link_id)

    results: Dict[StationId, ConnectionResult] = {}
    for station in stations:
        if station.id == hub.id:
            continue
        if station.type.is_direct_link:
            straight = distance(station.position, hub.position, radius)
            results[station.id] = ConnectionResult(straight, straight, [station.position, hub.position])
            continue
        if anchor is None:
            continue
        route = _route(graph, station, anchor, radius)
        if route is None:
            logger.debug("Station %s has no route to the hub", station.id)
            continue
        results[station.id] = route
    logger.info("Computed hub distances for %d station(s)", len(results))
    return results


def measure_distance(a: LatLng, b: LatLng, config: Optional[PlannerConfig] = None) -> float:
    """Distance in km for the measuring tool."""

    return distance(a, b, resolve_config(config).earth_radius_km)


__all__ = [
    "HubAnchor",
    "ConnectionPass",
    "resolve_hub_anchor",
    "nearest_connection",
    "optimal_connection",
    "target_connection",
    "plan_connections",
    "apply_connections",
    "run_connection_pass",
    "recompute_connections",
    "recompute_distances",
    "measure_distance",
]
