"""Pure snapshot edits mirroring the planning tool's editing actions.

Every function returns a new :class:`Snapshot`. Edits that invalidate a
station's attachment clear it, so the next recompute pass searches afresh.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from typing import List, Optional, Set, Tuple

from .logging_utils import apply_debug_logging
from .model import GridLink, GridNode, LatLng, LinkId, NodeId, Snapshot, Station, StationId, StationType

logger = logging.getLogger(__name__)


class EditError(ValueError):
    """Raised for edits that reference unknown entities or break the grid rules."""


def _new_id() -> str:
    return str(uuid.uuid4())


def _detach_from(stations: List[Station], link_ids: Set[LinkId]) -> List[Station]:
    return [
        station.detached() if station.connected_link_id in link_ids else station
        for station in stations
    ]


def _require_node(snapshot: Snapshot, node_id: NodeId) -> GridNode:
    for node in snapshot.nodes:
        if node.id == node_id:
            return node
    raise EditError(f"unknown node '{node_id}'")


def _require_station(snapshot: Snapshot, station_id: StationId) -> Station:
    station = snapshot.station(station_id)
    if station is None:
        raise EditError(f"unknown station '{station_id}'")
    return station


def add_node(
    snapshot: Snapshot,
    position: LatLng,
    *,
    name: Optional[str] = None,
    is_fixed: bool = False,
    node_id: Optional[NodeId] = None,
) -> Tuple[Snapshot, GridNode]:
    node = GridNode(node_id or _new_id(), position, is_fixed, name)
    if any(existing.id == node.id for existing in snapshot.nodes):
        raise EditError(f"node '{node.id}' already exists")
    return replace(snapshot, nodes=[*snapshot.nodes, node]), node


def update_node(snapshot: Snapshot, node: GridNode) -> Snapshot:
    """Replace the node with the same id (position, name or backbone flag)."""

    _require_node(snapshot, node.id)
    nodes = [node if existing.id == node.id else existing for existing in snapshot.nodes]
    return replace(snapshot, nodes=nodes)


def delete_node(snapshot: Snapshot, node_id: NodeId) -> Snapshot:
    """Remove a node together with its links; stations on those links are detached."""

    _require_node(snapshot, node_id)
    removed = {link.id for link in snapshot.links if node_id in (link.source_id, link.target_id)}
    if removed:
        logger.info("Deleting node %s removes %d link(s)", node_id, len(removed))
    return Snapshot(
        nodes=[node for node in snapshot.nodes if node.id != node_id],
        links=[link for link in snapshot.links if link.id not in removed],
        stations=_detach_from(snapshot.stations, removed),
    )


def add_link(
    snapshot: Snapshot, source_id: NodeId, target_id: NodeId, *, link_id: Optional[LinkId] = None
) -> Tuple[Snapshot, Optional[GridLink]]:
    """Connect two nodes; returns ``None`` as the link when they are already joined."""

    if source_id == target_id:
        raise EditError("a link needs two distinct nodes")
    _require_node(snapshot, source_id)
    _require_node(snapshot, target_id)
    if any(link.joins(source_id, target_id) for link in snapshot.links):
        return snapshot, None
    link = GridLink(link_id or _new_id(), source_id, target_id)
    return replace(snapshot, links=[*snapshot.links, link]), link


def delete_link(snapshot: Snapshot, link_id: LinkId) -> Snapshot:
    if not any(link.id == link_id for link in snapshot.links):
        raise EditError(f"unknown link '{link_id}'")
    return Snapshot(
        nodes=list(snapshot.nodes),
        links=[link for link in snapshot.links if link.id != link_id],
        stations=_detach_from(snapshot.stations, {link_id}),
    )


def place_station(
    snapshot: Snapshot,
    kind: StationType,
    position: LatLng,
    *,
    station_id: Optional[StationId] = None,
) -> Tuple[Snapshot, Station]:
    """Add a station. Placing a hub replaces the current one."""

    station = Station(station_id or _new_id(), kind, position)
    stations = list(snapshot.stations)
    if kind.is_hub:
        stations = [existing for existing in stations if not existing.type.is_hub]
    if any(existing.id == station.id for existing in stations):
        raise EditError(f"station '{station.id}' already exists")
    return replace(snapshot, stations=[*stations, station]), station


def move_station(snapshot: Snapshot, station_id: StationId, position: LatLng) -> Snapshot:
    _require_station(snapshot, station_id)
    stations = [
        Station(station.id, station.type, position) if station.id == station_id else station
        for station in snapshot.stations
    ]
    return replace(snapshot, stations=stations)


def delete_station(snapshot: Snapshot, station_id: StationId) -> Snapshot:
    _require_station(snapshot, station_id)
    return replace(snapshot, stations=[s for s in snapshot.stations if s.id != station_id])


def clear_grid(snapshot: Snapshot) -> Snapshot:
    """Drop every node, link and station."""

    return Snapshot()


apply_debug_logging(globals(), logger=logger, skip=["EditError"])


__all__ = [
    "EditError",
    "add_node",
    "update_node",
    "delete_node",
    "add_link",
    "delete_link",
    "place_station",
    "move_station",
    "delete_station",
    "clear_grid",
]
