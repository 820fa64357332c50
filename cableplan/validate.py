import math
from typing import Iterable, Set

from .model import LatLng, Snapshot


class ValidationError(Exception):
    pass


def _ensure_unique(kind: str, ids: Iterable[str]) -> Set[str]:
    seen: Set[str] = set()
    for item in ids:
        if not item:
            raise ValidationError(f'{kind} with empty id')
        if item in seen:
            raise ValidationError(f'duplicate {kind} id "{item}"')
        seen.add(item)
    return seen


def _ensure_position(kind: str, ident: str, pos: LatLng, field: str = 'position'):
    if not (math.isfinite(pos.lat) and math.isfinite(pos.lng)):
        raise ValidationError(f'{kind} "{ident}" has a non-finite {field}')
    if not -90.0 <= pos.lat <= 90.0:
        raise ValidationError(f'{kind} "{ident}" {field} latitude {pos.lat} out of range')
    if not -180.0 <= pos.lng <= 180.0:
        raise ValidationError(f'{kind} "{ident}" {field} longitude {pos.lng} out of range')


def validate_snapshot(snap: Snapshot) -> None:
    """Strict structural check of a snapshot.

    The planner itself tolerates every problem reported here; this is for
    callers that want to reject bad input up front.
    """
    node_ids = _ensure_unique('node', (n.id for n in snap.nodes))
    link_ids = _ensure_unique('link', (l.id for l in snap.links))
    _ensure_unique('station', (s.id for s in snap.stations))

    for n in snap.nodes:
        _ensure_position('node', n.id, n.position)

    for l in snap.links:
        if l.source_id == l.target_id:
            raise ValidationError(f'link "{l.id}" connects node "{l.source_id}" to itself')
        for end in (l.source_id, l.target_id):
            if end not in node_ids:
                raise ValidationError(f'link "{l.id}" references missing node "{end}"')

    hubs = [s.id for s in snap.stations if s.type.is_hub]
    if len(hubs) > 1:
        raise ValidationError(f'expected at most one hub station, got {len(hubs)} ({", ".join(hubs)})')

    for s in snap.stations:
        _ensure_position('station', s.id, s.position)
        if s.connection_point is not None:
            _ensure_position('station', s.id, s.connection_point, 'connection point')
        if s.type.is_direct_link and s.connected_link_id is not None:
            raise ValidationError(f'direct-link station "{s.id}" must not reference a grid link')
        if s.connected_link_id is not None and s.connected_link_id not in link_ids:
            raise ValidationError(f'station "{s.id}" references missing link "{s.connected_link_id}"')
