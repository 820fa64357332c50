"""Reading and writing planner snapshots as JSON.

The layout matches the planning tool's export files::

    {"gridNodes": [...], "gridLinks": [...], "stations": [...]}

with camelCase field names. A ``basic`` export carries the grid only.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from .model import GridLink, GridNode, LatLng, Snapshot, Station, StationType

logger = logging.getLogger(__name__)

EXPORT_MODES = ("basic", "full")

PathLike = Union[str, Path]


class SnapshotFormatError(ValueError):
    """Raised when snapshot data does not follow the export layout."""


def _latlng_from(data: Any, where: str) -> LatLng:
    if not isinstance(data, Mapping):
        raise SnapshotFormatError(f"{where}: expected an object with lat/lng")
    try:
        return LatLng(float(data["lat"]), float(data["lng"]))
    except KeyError as exc:
        raise SnapshotFormatError(f"{where}: missing {exc.args[0]!r}") from exc
    except (TypeError, ValueError) as exc:
        raise SnapshotFormatError(f"{where}: coordinates must be numbers") from exc


def _latlng_to(point: LatLng) -> Dict[str, float]:
    return {"lat": point.lat, "lng": point.lng}


def _require(entry: Any, key: str, where: str) -> Any:
    if not isinstance(entry, Mapping):
        raise SnapshotFormatError(f"{where}: expected an object")
    if key not in entry:
        raise SnapshotFormatError(f"{where}: missing {key!r}")
    return entry[key]


def _node_from(entry: Any, idx: int) -> GridNode:
    where = f"gridNodes[{idx}]"
    name = entry.get("name") if isinstance(entry, Mapping) else None
    is_fixed = entry.get("isFixed", False) if isinstance(entry, Mapping) else False
    if not isinstance(is_fixed, bool):
        raise SnapshotFormatError(f"{where}.isFixed: expected true or false")
    return GridNode(
        id=str(_require(entry, "id", where)),
        position=_latlng_from(_require(entry, "position", where), f"{where}.position"),
        is_fixed=is_fixed,
        name=None if name is None else str(name),
    )


def _link_from(entry: Any, idx: int) -> GridLink:
    where = f"gridLinks[{idx}]"
    return GridLink(
        id=str(_require(entry, "id", where)),
        source_id=str(_require(entry, "sourceId", where)),
        target_id=str(_require(entry, "targetId", where)),
    )


def _station_from(entry: Any, idx: int) -> Station:
    where = f"stations[{idx}]"
    raw_type = _require(entry, "type", where)
    try:
        kind = StationType(raw_type)
    except ValueError as exc:
        raise SnapshotFormatError(f"{where}: unknown station type {raw_type!r}") from exc
    point = entry.get("connectionPoint")
    link_id = entry.get("connectedLinkId")
    return Station(
        id=str(_require(entry, "id", where)),
        type=kind,
        position=_latlng_from(_require(entry, "position", where), f"{where}.position"),
        connection_point=None if point is None else _latlng_from(point, f"{where}.connectionPoint"),
        connected_link_id=None if link_id is None else str(link_id),
    )


def _collection(data: Mapping[str, Any], key: str) -> List[Any]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise SnapshotFormatError(f"{key!r} must be a list")
    return value


def snapshot_from_dict(data: Any) -> Snapshot:
    if not isinstance(data, Mapping):
        raise SnapshotFormatError("snapshot must be a JSON object")
    return Snapshot(
        nodes=[_node_from(entry, idx) for idx, entry in enumerate(_collection(data, "gridNodes"))],
        links=[_link_from(entry, idx) for idx, entry in enumerate(_collection(data, "gridLinks"))],
        stations=[_station_from(entry, idx) for idx, entry in enumerate(_collection(data, "stations"))],
    )


def snapshot_to_dict(snapshot: Snapshot, mode: str = "full") -> Dict[str, Any]:
    if mode not in EXPORT_MODES:
        raise ValueError(f"unsupported export mode '{mode}'")

    nodes: List[Dict[str, Any]] = []
    for node in snapshot.nodes:
        entry: Dict[str, Any] = {"id": node.id, "position": _latlng_to(node.position), "isFixed": node.is_fixed}
        if node.name is not None:
            entry["name"] = node.name
        nodes.append(entry)

    links = [
        {"id": link.id, "sourceId": link.source_id, "targetId": link.target_id} for link in snapshot.links
    ]

    stations: List[Dict[str, Any]] = []
    if mode == "full":
        for station in snapshot.stations:
            entry = {"id": station.id, "type": station.type.value, "position": _latlng_to(station.position)}
            if station.connection_point is not None:
                entry["connectionPoint"] = _latlng_to(station.connection_point)
            if station.connected_link_id is not None:
                entry["connectedLinkId"] = station.connected_link_id
            stations.append(entry)

    return {"gridNodes": nodes, "gridLinks": links, "stations": stations}


def loads_snapshot(text: str) -> Snapshot:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise SnapshotFormatError(f"invalid JSON: {exc.msg} (line {exc.lineno}, col {exc.colno})") from exc
    return snapshot_from_dict(data)


def dumps_snapshot(snapshot: Snapshot, mode: str = "full", indent: Optional[int] = 2) -> str:
    return json.dumps(snapshot_to_dict(snapshot, mode), indent=indent, ensure_ascii=False)


def load_snapshot(path: PathLike) -> Snapshot:
    source = Path(path)
    logger.info("Loading snapshot from %s", source)
    snapshot = loads_snapshot(source.read_text(encoding="utf-8"))
    logger.info(
        "Loaded %d node(s), %d link(s), %d station(s)",
        len(snapshot.nodes),
        len(snapshot.links),
        len(snapshot.stations),
    )
    return snapshot


def dump_snapshot(snapshot: Snapshot, path: PathLike, mode: str = "full") -> Path:
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(dumps_snapshot(snapshot, mode) + "\n", encoding="utf-8")
    logger.info("Wrote %s snapshot to %s", mode, target)
    return target


__all__ = [
    "EXPORT_MODES",
    "SnapshotFormatError",
    "snapshot_from_dict",
    "snapshot_to_dict",
    "loads_snapshot",
    "dumps_snapshot",
    "load_snapshot",
    "dump_snapshot",
]
