import math

import numpy as np
import pytest

from cableplan import GridGraph, GridLink, GridNode, LatLng, distance, find_shortest_path


def node(node_id, lat, lng):
    return GridNode(node_id, LatLng(lat, lng))


def link(a, b, link_id=None):
    return GridLink(link_id or f"{a}-{b}", a, b)


def test_chain_distance_is_sum_of_edges():
    nodes = [node("A", 55, 3), node("B", 56, 5), node("C", 57, 8)]
    links = [link("A", "B"), link("B", "C")]

    result = find_shortest_path(nodes, links, "A", "C")

    expected = distance(nodes[0].position, nodes[1].position) + distance(nodes[1].position, nodes[2].position)
    assert result is not None
    assert result.distance == pytest.approx(expected, abs=1e-6)
    assert result.node_ids == ["A", "B", "C"]


def test_graph_is_undirected():
    nodes = [node("A", 55, 3), node("B", 56, 5)]
    links = [link("B", "A")]

    forward = find_shortest_path(nodes, links, "A", "B")
    backward = find_shortest_path(nodes, links, "B", "A")

    assert forward is not None and backward is not None
    assert forward.distance == pytest.approx(backward.distance)
    assert backward.node_ids == ["B", "A"]


def test_shortcut_is_preferred_over_detour():
    nodes = [node("A", 0, 0), node("B", 2, 1), node("C", 0, 2)]
    links = [link("A", "B"), link("B", "C"), link("A", "C")]

    result = find_shortest_path(nodes, links, "A", "C")

    assert result is not None
    assert result.node_ids == ["A", "C"]
    assert result.distance == pytest.approx(distance(nodes[0].position, nodes[2].position))


def test_same_start_and_end():
    graph = GridGraph([node("A", 0, 0)], [])

    result = graph.shortest_path("A", "A")

    assert result is not None
    assert result.distance == 0.0
    assert result.node_ids == ["A"]


def test_disconnected_and_unknown_nodes_are_unreachable():
    nodes = [node("A", 0, 0), node("B", 0, 1), node("C", 5, 5), node("D", 5, 6)]
    graph = GridGraph(nodes, [link("A", "B"), link("C", "D")])

    assert graph.shortest_path("A", "D") is None
    assert graph.shortest_path("A", "missing") is None
    assert math.isinf(graph.distance("A", "C"))


def test_invalid_links_are_skipped():
    nodes = [node("A", 0, 0), node("B", 0, 1)]
    links = [link("A", "B"), link("A", "ghost", "dangling"), link("B", "B", "loop")]

    graph = GridGraph(nodes, links)

    assert set(graph.links) == {"A-B"}
    assert graph.skipped_links == ["dangling", "loop"]
    assert graph.endpoints("dangling") is None
    assert graph.endpoints(None) is None


def test_zero_length_link_is_traversable():
    nodes = [node("A", 0, 0), node("A2", 0, 0), node("B", 0, 1)]
    links = [link("A", "A2"), link("A2", "B")]

    result = find_shortest_path(nodes, links, "A", "B")

    assert result is not None
    assert result.node_ids == ["A", "A2", "B"]
    assert result.distance == pytest.approx(distance(LatLng(0, 0), LatLng(0, 1)))


def test_parallel_links_share_weight():
    nodes = [node("A", 0, 0), node("B", 0, 1)]
    graph = GridGraph(nodes, [link("A", "B", "one"), link("B", "A", "two")])

    assert graph.link_length("one") == pytest.approx(graph.link_length("two"))
    assert graph.distance("A", "B") == pytest.approx(graph.link_length("one"))


def test_random_grids_return_consistent_paths():
    rng = np.random.default_rng(5)
    for _ in range(10):
        count = 8
        nodes = [node(f"n{i}", rng.uniform(50, 60), rng.uniform(0, 15)) for i in range(count)]
        links = []
        for i in range(count):
            for j in range(i + 1, count):
                if rng.random() < 0.35:
                    links.append(link(f"n{i}", f"n{j}"))
        graph = GridGraph(nodes, links)
        positions = {n.id: n.position for n in nodes}
        direct = {frozenset((l.source_id, l.target_id)) for l in links}

        for a in range(count):
            for b in range(count):
                result = graph.shortest_path(f"n{a}", f"n{b}")
                if result is None:
                    continue
                hops = list(zip(result.node_ids, result.node_ids[1:]))
                assert all(frozenset(hop) in direct for hop in hops)
                along = sum(distance(positions[u], positions[v]) for u, v in hops)
                assert result.distance == pytest.approx(along, abs=1e-6)
                if frozenset((f"n{a}", f"n{b}")) in direct:
                    assert result.distance <= distance(positions[f"n{a}"], positions[f"n{b}"]) + 1e-6
