import logging
from dataclasses import replace

import pytest

from cableplan import (
    GridLink,
    GridNode,
    LatLng,
    PlannerConfig,
    Snapshot,
    Station,
    StationType,
    distance,
    measure_distance,
    recompute_connections,
    recompute_distances,
)
from cableplan.edits import delete_link
from cableplan.orchestrator import run_connection_pass

EQUATOR_DEGREE_KM = distance(LatLng(0, 0), LatLng(0, 1))


def node(node_id, lat, lng):
    return GridNode(node_id, LatLng(lat, lng))


def station(station_id, kind, lat, lng, **kwargs):
    return Station(station_id, kind, LatLng(lat, lng), **kwargs)


def by_id(stations):
    return {s.id: s for s in stations}


def _single_link_grid():
    nodes = [node("A", 0, 0), node("B", 0, 1)]
    links = [GridLink("ab", "A", "B")]
    return nodes, links


def _balanced_grid():
    nodes = [node("A", 0, 0), node("B", 0, 2)]
    links = [GridLink("ab", "A", "B")]
    stations = [
        station("hub", StationType.HUB, 0, 1),
        station("wind", StationType.WIND, 0.1, 1.0),
        station("wave", StationType.WAVE, 0.5, 0.2),
    ]
    return nodes, links, stations


def test_hub_and_station_on_single_link():
    nodes, links = _single_link_grid()
    stations = [
        station("hub", StationType.HUB, 0, 0.5),
        station("pv", StationType.PV, 1, 0.5),
    ]

    updated = by_id(recompute_connections(nodes, links, stations))

    hub = updated["hub"]
    assert hub.connected_link_id == "ab"
    assert hub.connection_point.lat == pytest.approx(0.0, abs=1e-9)
    assert hub.connection_point.lng == pytest.approx(0.5, abs=1e-9)

    pv = updated["pv"]
    assert pv.connected_link_id == "ab"
    assert pv.connection_point.lat == pytest.approx(0.0, abs=1e-6)
    assert pv.connection_point.lng == pytest.approx(0.5, abs=1e-6)

    results = recompute_distances(nodes, links, list(updated.values()))

    assert set(results) == {"pv"}
    result = results["pv"]
    assert result.cable_distance == pytest.approx(EQUATOR_DEGREE_KM, abs=0.5)
    assert result.geo_distance == pytest.approx(EQUATOR_DEGREE_KM, abs=1e-6)
    assert result.path[0] == pv.position
    assert result.path[1] == pv.connection_point
    assert result.path[-1] == hub.position


def test_direct_link_station_connects_straight_to_hub():
    nodes, links = _single_link_grid()
    stations = [
        station("hub", StationType.HUB, 0.2, 0.5),
        station("chiller", StationType.CHILLER, 0.5, 0.5),
    ]

    updated = by_id(recompute_connections(nodes, links, stations))

    chiller = updated["chiller"]
    assert chiller.connection_point == LatLng(0.2, 0.5)
    assert chiller.connected_link_id is None

    result = recompute_distances(nodes, links, list(updated.values()))["chiller"]
    assert result.cable_distance == pytest.approx(result.geo_distance)
    assert result.path == [chiller.position, LatLng(0.2, 0.5)]


def test_direct_link_without_hub_stays_unattached():
    nodes, links = _single_link_grid()
    stations = [station("chiller", StationType.CHILLER, 0.5, 0.5)]

    [chiller] = recompute_connections(nodes, links, stations)

    assert chiller.connection_point is None
    assert chiller.connected_link_id is None


def test_without_hub_stations_attach_to_nearest_link():
    nodes = [node("A", 0, 0), node("B", 0, 1), node("C", 3, 0), node("D", 3, 1)]
    links = [GridLink("ab", "A", "B"), GridLink("cd", "C", "D")]
    stations = [station("pv", StationType.PV, 1, 0.25)]

    [pv] = recompute_connections(nodes, links, stations)

    assert pv.connected_link_id == "ab"
    assert pv.connection_point.lng == pytest.approx(0.25, abs=1e-9)
    assert recompute_distances(nodes, links, [pv]) == {}


def test_no_valid_links_leaves_stations_detached():
    nodes = [node("A", 0, 0)]
    links = [GridLink("dangling", "A", "ghost")]
    stations = [
        station("hub", StationType.HUB, 0, 0.5),
        station("pv", StationType.PV, 1, 0.5, connection_point=LatLng(0, 0.5), connected_link_id="dangling"),
    ]

    updated = by_id(recompute_connections(nodes, links, stations))

    for item in updated.values():
        assert item.connection_point is None
        assert item.connected_link_id is None


def test_wind_is_equalized_to_wave_distance():
    nodes, links, stations = _balanced_grid()
    baseline_config = PlannerConfig(equalize_threshold_km=1e9)

    baseline = by_id(recompute_connections(nodes, links, stations, baseline_config))
    baseline_results = recompute_distances(nodes, links, list(baseline.values()), baseline_config)
    assert baseline_results["wind"].cable_distance < baseline_results["wave"].cable_distance - 1.0

    updated = by_id(recompute_connections(nodes, links, stations))
    results = recompute_distances(nodes, links, list(updated.values()))

    wave_km = results["wave"].cable_distance
    assert wave_km == pytest.approx(baseline_results["wave"].cable_distance)
    assert results["wind"].cable_distance == pytest.approx(wave_km, abs=0.1)
    assert updated["wind"].connection_point != baseline["wind"].connection_point
    assert updated["wave"].connection_point == baseline["wave"].connection_point


def test_equalization_needs_both_balanced_stations():
    nodes, links, stations = _balanced_grid()
    without_wave = [s for s in stations if s.id != "wave"]

    updated = by_id(recompute_connections(nodes, links, without_wave))

    assert updated["wind"].connection_point.lng == pytest.approx(1.0, abs=1e-6)


def test_second_pass_changes_nothing():
    nodes, links, stations = _balanced_grid()
    stations = stations + [station("pv", StationType.PV, -0.4, 1.7)]

    first = run_connection_pass(nodes, links, stations)
    second = run_connection_pass(nodes, links, first.stations)

    assert set(first.changed) == {"hub", "wind", "wave", "pv"}
    assert second.changed == []
    assert second.stations == first.stations


def test_small_moves_are_gated():
    nodes, links = _single_link_grid()
    stations = [
        station("hub", StationType.HUB, 0, 0.5),
        station("pv", StationType.PV, 1, 0.5),
    ]
    settled = by_id(recompute_connections(nodes, links, stations))
    point = settled["pv"].connection_point

    nudged = replace(settled["pv"], connection_point=LatLng(point.lat + 1e-7, point.lng))
    kept = by_id(recompute_connections(nodes, links, [settled["hub"], nudged]))
    assert kept["pv"].connection_point == nudged.connection_point

    shifted = replace(settled["pv"], connection_point=LatLng(point.lat + 1e-3, point.lng))
    reset = by_id(recompute_connections(nodes, links, [settled["hub"], shifted]))
    assert reset["pv"].connection_point == point


def test_stale_link_reference_is_replaced_even_without_movement():
    nodes, links = _single_link_grid()
    stations = [
        station("hub", StationType.HUB, 0, 0.5),
        station("pv", StationType.PV, 1, 0.5),
    ]
    settled = by_id(recompute_connections(nodes, links, stations))
    stale = replace(settled["pv"], connected_link_id="removed")

    updated = by_id(recompute_connections(nodes, links, [settled["hub"], stale]))

    assert updated["pv"].connected_link_id == "ab"


def test_deleting_a_link_never_leaves_dangling_references():
    nodes = [node("A", 0, 0), node("B", 0, 1), node("C", 0, 2)]
    links = [GridLink("ab", "A", "B"), GridLink("bc", "B", "C")]
    stations = [
        station("hub", StationType.HUB, 0.1, 0.5),
        station("pv", StationType.PV, 0.5, 1.8),
    ]
    snapshot = Snapshot(nodes, links, recompute_connections(nodes, links, stations))
    doomed = snapshot.station("pv").connected_link_id
    assert doomed is not None

    edited = delete_link(snapshot, doomed)
    updated = recompute_connections(edited.nodes, edited.links, edited.stations)

    remaining = {link.id for link in edited.links}
    for item in updated:
        assert item.connected_link_id is None or item.connected_link_id in remaining


def test_raw_link_removal_is_repaired_by_recompute():
    nodes = [node("A", 0, 0), node("B", 0, 1), node("C", 0, 2)]
    links = [GridLink("ab", "A", "B"), GridLink("bc", "B", "C")]
    stations = [
        station("hub", StationType.HUB, 0.1, 0.5),
        station("pv", StationType.PV, 0.5, 1.8),
    ]
    settled = recompute_connections(nodes, links, stations)
    assert by_id(settled)["pv"].connected_link_id == "bc"

    updated = by_id(recompute_connections(nodes, links[:1], settled))

    assert updated["pv"].connected_link_id == "ab"


def test_station_on_disconnected_link_has_no_result():
    nodes = [node("A", 0, 0), node("B", 0, 1), node("C", 5, 0), node("D", 5, 1)]
    links = [GridLink("ab", "A", "B"), GridLink("cd", "C", "D")]
    stations = [
        station("hub", StationType.HUB, 0, 0.5, connection_point=LatLng(0, 0.5), connected_link_id="ab"),
        station("pv", StationType.PV, 5.5, 0.5, connection_point=LatLng(5, 0.5), connected_link_id="cd"),
    ]

    assert recompute_distances(nodes, links, stations) == {}


def test_stations_prefer_links_that_reach_the_hub():
    nodes = [node("A", 0, 0), node("B", 0, 1), node("C", 5, 0), node("D", 5, 1)]
    links = [GridLink("ab", "A", "B"), GridLink("cd", "C", "D")]
    stations = [
        station("hub", StationType.HUB, 0, 0.5),
        station("pv", StationType.PV, 4.5, 0.5),
    ]

    updated = by_id(recompute_connections(nodes, links, stations))

    assert updated["pv"].connected_link_id == "ab"


def test_multiple_hubs_use_the_first(caplog):
    nodes, links = _single_link_grid()
    stations = [
        station("hub1", StationType.HUB, 0, 0.25),
        station("hub2", StationType.HUB, 0, 0.75),
        station("pv", StationType.PV, 1, 0.5),
    ]

    with caplog.at_level(logging.WARNING, logger="cableplan.orchestrator"):
        updated = by_id(recompute_connections(nodes, links, stations))

    assert "Found 2 hub stations" in caplog.text
    assert updated["hub1"].connected_link_id == "ab"
    assert updated["hub2"].connection_point is None


def test_measure_distance_uses_configured_radius():
    a, b = LatLng(0, 0), LatLng(0, 1)
    assert measure_distance(a, b) == pytest.approx(EQUATOR_DEGREE_KM)
    assert measure_distance(a, b, PlannerConfig(earth_radius_km=3440.065)) < EQUATOR_DEGREE_KM


@pytest.mark.parametrize('wave_lat', [-0.101, -0.102, -0.103, -0.104])
def test_small_gaps_above_threshold_are_closed(wave_lat):
    nodes, links, stations = _balanced_grid()
    stations = [s if s.id != "wave" else station("wave", StationType.WAVE, wave_lat, 1.0) for s in stations]

    updated = by_id(recompute_connections(nodes, links, stations))
    results = recompute_distances(nodes, links, list(updated.values()))

    assert results["wind"].cable_distance == pytest.approx(results["wave"].cable_distance, abs=0.1)
    assert updated["wind"].connection_point != LatLng(0, 1)


def test_wave_is_moved_when_it_is_the_closer_station():
    nodes = [node("A", 0, 0), node("B", 0, 2)]
    links = [GridLink("ab", "A", "B")]
    stations = [
        station("hub", StationType.HUB, 0, 1),
        station("wind", StationType.WIND, 0.5, 0.2),
        station("wave", StationType.WAVE, 0.1, 1.0),
    ]
    baseline_config = PlannerConfig(equalize_threshold_km=1e9)

    baseline = by_id(recompute_connections(nodes, links, stations, baseline_config))
    updated = by_id(recompute_connections(nodes, links, stations))
    results = recompute_distances(nodes, links, list(updated.values()))

    assert updated["wind"].connection_point == baseline["wind"].connection_point
    assert updated["wave"].connection_point != baseline["wave"].connection_point
    assert results["wave"].cable_distance == pytest.approx(results["wind"].cable_distance, abs=0.1)


def test_unreachable_target_keeps_the_optimum(caplog):
    nodes, links, stations = _balanced_grid()
    # no point on the grid puts the wind station 333 km from the hub
    stations = [s if s.id != "wave" else station("wave", StationType.WAVE, 3.0, 1.0) for s in stations]
    baseline_config = PlannerConfig(equalize_threshold_km=1e9)

    baseline = by_id(recompute_connections(nodes, links, stations, baseline_config))
    with caplog.at_level(logging.INFO, logger="cableplan.orchestrator"):
        updated = by_id(recompute_connections(nodes, links, stations))

    assert updated["wind"].connection_point == baseline["wind"].connection_point
    assert updated["wind"].connection_point.lng == pytest.approx(1.0, abs=1e-6)
    assert "No link reaches target distance" in caplog.text
