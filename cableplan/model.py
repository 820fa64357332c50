"""Core data structures shared by the planner components."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

NodeId = str
LinkId = str
StationId = str


@dataclass(frozen=True)
class LatLng:
    """Geographic position in degrees."""

    lat: float
    lng: float

    def __post_init__(self) -> None:
        object.__setattr__(self, "lat", float(self.lat))
        object.__setattr__(self, "lng", float(self.lng))

    def __repr__(self) -> str:
        return f"LatLng({self.lat:.6f}, {self.lng:.6f})"


class StationType(str, Enum):
    """Station kinds; values are the names stored in snapshot files."""

    WIND = "Windpark"
    PV = "Photovoltaik"
    WAVE = "Wellenkraftwerk"
    PUMPED_STORAGE = "Pumpspeicherkraftwerk"
    THERMAL_STORAGE = "Wärmeenergiespeicher"
    CHILLER = "Kältemaschine"
    HUB = "Hauptstandort"

    @property
    def is_hub(self) -> bool:
        return self is StationType.HUB

    @property
    def is_direct_link(self) -> bool:
        return self is StationType.CHILLER

    @property
    def is_balanced(self) -> bool:
        return self in (StationType.WIND, StationType.WAVE)


@dataclass(frozen=True)
class GridNode:
    id: NodeId
    position: LatLng
    is_fixed: bool = False
    name: Optional[str] = None


@dataclass(frozen=True)
class GridLink:
    """Undirected backbone edge between two grid nodes."""

    id: LinkId
    source_id: NodeId
    target_id: NodeId

    def other_end(self, node_id: NodeId) -> NodeId:
        return self.target_id if node_id == self.source_id else self.source_id

    def joins(self, a: NodeId, b: NodeId) -> bool:
        return {self.source_id, self.target_id} == {a, b}


@dataclass(frozen=True)
class Station:
    """Power station marker.

    ``connection_point`` and ``connected_link_id`` are derived by the
    orchestrator. Editors may clear them to force a fresh search but never
    set them.
    """

    id: StationId
    type: StationType
    position: LatLng
    connection_point: Optional[LatLng] = None
    connected_link_id: Optional[LinkId] = None

    def detached(self) -> "Station":
        return Station(self.id, self.type, self.position)


@dataclass(frozen=True)
class Connection:
    """Attachment chosen for one station during a recomputation pass.

    ``distance`` is the unweighted cable + grid length up to the hub
    attachment point (for DirectLink stations, the straight distance).
    """

    point: LatLng
    link_id: Optional[LinkId]
    distance: float


@dataclass
class ConnectionResult:
    geo_distance: float
    cable_distance: float
    path: List[LatLng] = field(default_factory=list)


@dataclass(frozen=True)
class Snapshot:
    """Consistent view of the three editable collections."""

    nodes: List[GridNode] = field(default_factory=list)
    links: List[GridLink] = field(default_factory=list)
    stations: List[Station] = field(default_factory=list)

    def node_index(self) -> Dict[NodeId, GridNode]:
        return {node.id: node for node in self.nodes}

    def link_index(self) -> Dict[LinkId, GridLink]:
        return {link.id: link for link in self.links}

    def station(self, station_id: StationId) -> Optional[Station]:
        for station in self.stations:
            if station.id == station_id:
                return station
        return None

    def hub(self) -> Optional[Station]:
        return find_hub(self.stations)


def find_hub(stations: List[Station]) -> Optional[Station]:
    for station in stations:
        if station.type.is_hub:
            return station
    return None


def find_first(stations: List[Station], kind: StationType) -> Optional[Station]:
    for station in stations:
        if station.type is kind:
            return station
    return None


__all__ = [
    "NodeId",
    "LinkId",
    "StationId",
    "LatLng",
    "StationType",
    "GridNode",
    "GridLink",
    "Station",
    "Connection",
    "ConnectionResult",
    "Snapshot",
    "find_hub",
    "find_first",
]
