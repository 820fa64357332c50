import argparse
import logging
import sys
from typing import Optional, Sequence

from cableplan import (
    PlannerConfig,
    SnapshotFormatError,
    ValidationError,
    dump_snapshot,
    load_snapshot,
    settle,
    validate_snapshot,
)
from cableplan.snapshot import EXPORT_MODES

logger = logging.getLogger(__name__)


def _configure_logging(level: str) -> None:
    log_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format="%(levelname)s:%(name)s:%(message)s",
    )


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Plan grid connections for a station snapshot")
    parser.add_argument("path", help="Path to a snapshot JSON export")
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (default: INFO)",
    )
    parser.add_argument(
        "--max-passes",
        type=int,
        default=None,
        help="Recompute passes before giving up on a fixed point (default: config value)",
    )
    parser.add_argument(
        "--penalty",
        type=float,
        default=2.0,
        help="Weight of new cable relative to existing grid (default: 2.0)",
    )
    parser.add_argument(
        "--root-method",
        choices=["bisect", "brentq"],
        default="bisect",
        help="Root finder used when equalizing balanced stations",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Reject snapshots that fail structural validation",
    )
    parser.add_argument(
        "--output",
        help="Write the updated snapshot to the given path",
    )
    parser.add_argument(
        "--export",
        choices=list(EXPORT_MODES),
        default="full",
        help="Export mode for --output (default: full)",
    )
    args = parser.parse_args(argv)

    _configure_logging(args.log_level)

    try:
        config = PlannerConfig(cable_penalty=args.penalty, root_method=args.root_method)
    except ValueError as exc:
        parser.error(str(exc))

    try:
        snapshot = load_snapshot(args.path)
        if args.strict:
            validate_snapshot(snapshot)
            logger.info("Validation succeeded")
    except (OSError, SnapshotFormatError, ValidationError) as exc:
        logger.error("Cannot use snapshot %s: %s", args.path, exc)
        raise SystemExit(1)

    plan = settle(snapshot, config, max_passes=args.max_passes)

    print(f"Passes: {plan.passes} (converged: {plan.converged})")
    print(f"Changed stations: {len(plan.changed)}")
    hub = plan.snapshot.hub()
    if hub is None:
        print("Hub: (none)")
    else:
        print(f"Hub: {hub.id} on link {hub.connected_link_id}")
    print("Stations:")
    for station in plan.snapshot.stations:
        if hub is not None and station.id == hub.id:
            continue
        result = plan.results.get(station.id)
        if result is None:
            print(f"  {station.id} [{station.type.value}]: not connected")
            continue
        print(
            f"  {station.id} [{station.type.value}]: "
            f"geo={result.geo_distance:.3f} km cable={result.cable_distance:.3f} km "
            f"waypoints={len(result.path)}"
        )

    if args.output:
        written = dump_snapshot(plan.snapshot, args.output, mode=args.export)
        print(f"Snapshot written to {written}")


if __name__ == "__main__":
    main(sys.argv[1:])
