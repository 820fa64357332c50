"""Geodesic distance and segment projection helpers."""

from __future__ import annotations

import math
from typing import Sequence

import numpy as np

from .config import EARTH_RADIUS_KM
from .model import LatLng

_DENOM_EPS = 1e-12
# floor for cos(latitude) so the flattened frame stays invertible near the poles
_MIN_LNG_SCALE = 1e-9


def distance(p1: LatLng, p2: LatLng, radius: float = EARTH_RADIUS_KM) -> float:
    """Great-circle (haversine) distance between ``p1`` and ``p2`` in km."""

    lat1 = math.radians(p1.lat)
    lat2 = math.radians(p2.lat)
    dlat = lat2 - lat1
    dlng = math.radians(p2.lng - p1.lng)
    a = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlng / 2) ** 2
    a = min(max(a, 0.0), 1.0)
    return radius * 2.0 * math.atan2(math.sqrt(a), math.sqrt(1.0 - a))


def distances(
    origins: Sequence[LatLng], targets: Sequence[LatLng], radius: float = EARTH_RADIUS_KM
) -> np.ndarray:
    """Element-wise haversine distances between two equally long point lists."""

    if len(origins) != len(targets):
        raise ValueError("origins and targets must have the same length")
    if not origins:
        return np.zeros(0, dtype=float)
    src = np.radians(np.array([(p.lat, p.lng) for p in origins], dtype=float))
    dst = np.radians(np.array([(p.lat, p.lng) for p in targets], dtype=float))
    dlat = dst[:, 0] - src[:, 0]
    dlng = dst[:, 1] - src[:, 1]
    a = np.sin(dlat / 2) ** 2 + np.cos(src[:, 0]) * np.cos(dst[:, 0]) * np.sin(dlng / 2) ** 2
    a = np.clip(a, 0.0, 1.0)
    return radius * 2.0 * np.arctan2(np.sqrt(a), np.sqrt(1.0 - a))


def interpolate(p1: LatLng, p2: LatLng, t: float) -> LatLng:
    return LatLng(p1.lat + t * (p2.lat - p1.lat), p1.lng + t * (p2.lng - p1.lng))


def _flatten(p: LatLng, scale: float) -> np.ndarray:
    return np.array([p.lng * scale, p.lat], dtype=float)


def _lng_scale(a: LatLng, b: LatLng) -> float:
    mean_lat = math.radians((a.lat + b.lat) / 2.0)
    return max(math.cos(mean_lat), _MIN_LNG_SCALE)


def segment_parameter(p: LatLng, a: LatLng, b: LatLng) -> float:
    """Unclamped position of ``p`` along ``a``-``b`` in the flattened frame.

    Returns 0.0 for a zero-length segment.
    """

    scale = _lng_scale(a, b)
    anchor = _flatten(a, scale)
    direction = _flatten(b, scale) - anchor
    denom = float(np.dot(direction, direction))
    if denom <= _DENOM_EPS * _DENOM_EPS:
        return 0.0
    return float(np.dot(_flatten(p, scale) - anchor, direction) / denom)


def project_onto_segment(p: LatLng, a: LatLng, b: LatLng) -> LatLng:
    """Project ``p`` onto the finite segment ``a``-``b``.

    Longitude is scaled by cos(mean latitude of the segment) before the planar
    projection so that "perpendicular" means perpendicular on the ground, and
    unscaled afterwards. The result always lies between ``a`` and ``b``.
    """

    t = min(max(segment_parameter(p, a, b), 0.0), 1.0)
    if t == 0.0:
        return a
    if t == 1.0:
        return b
    scale = _lng_scale(a, b)
    anchor = _flatten(a, scale)
    foot = anchor + (_flatten(b, scale) - anchor) * t
    return LatLng(float(foot[1]), float(foot[0]) / scale)


__all__ = [
    "distance",
    "distances",
    "interpolate",
    "segment_parameter",
    "project_onto_segment",
]
