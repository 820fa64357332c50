from .model import (
    LatLng,
    StationType,
    GridNode,
    GridLink,
    Station,
    Connection,
    ConnectionResult,
    Snapshot,
)
from .config import PlannerConfig, get_planner_config, set_planner_config
from .geometry import distance, distances, interpolate, project_onto_segment, segment_parameter
from .graph import GridGraph, PathResult, find_shortest_path
from .optimize import (
    SegmentCost,
    SegmentOptimum,
    TargetPoint,
    find_optimal_point_on_segment,
    find_target_point_on_segment,
)
from .orchestrator import measure_distance, recompute_connections, recompute_distances
from .planner import PlanResult, recompute, settle
from .snapshot import SnapshotFormatError, dump_snapshot, dumps_snapshot, load_snapshot, loads_snapshot
from .validate import ValidationError, validate_snapshot
from .edits import EditError

__all__ = [
    'LatLng',
    'StationType',
    'GridNode',
    'GridLink',
    'Station',
    'Connection',
    'ConnectionResult',
    'Snapshot',
    'PlannerConfig',
    'get_planner_config',
    'set_planner_config',
    'distance',
    'distances',
    'interpolate',
    'project_onto_segment',
    'segment_parameter',
    'GridGraph',
    'PathResult',
    'find_shortest_path',
    'SegmentCost',
    'SegmentOptimum',
    'TargetPoint',
    'find_optimal_point_on_segment',
    'find_target_point_on_segment',
    'measure_distance',
    'recompute_connections',
    'recompute_distances',
    'PlanResult',
    'recompute',
    'settle',
    'SnapshotFormatError',
    'dump_snapshot',
    'dumps_snapshot',
    'load_snapshot',
    'loads_snapshot',
    'ValidationError',
    'validate_snapshot',
    'EditError',
]
