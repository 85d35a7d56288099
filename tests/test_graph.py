"""Graph helpers over the connections map."""

from __future__ import annotations

from conftest import link

from workflow_validator.workflow import graph


def _loop_connections() -> dict:
    # Loop: output 0 -> Done, output 1 -> Process -> Loop
    return {
        "Trigger": {"main": [[{"node": "Loop", "type": "main", "index": 0}]]},
        "Loop": {"main": [
            [{"node": "Done", "type": "main", "index": 0}],
            [{"node": "Process", "type": "main", "index": 0}],
        ]},
        "Process": {"main": [[{"node": "Transform", "type": "main", "index": 0}]]},
        "Transform": {"main": [[{"node": "Loop", "type": "main", "index": 0}]]},
    }


# ---------------------------------------------------------------------------
# Edge traversal
# ---------------------------------------------------------------------------


class TestEdges:
    """Edge iteration and successor lookups."""

    def test_iter_edges_skips_malformed_entries(self):
        connections = {
            "A": {"main": [[{"node": "B", "type": "main", "index": 0}, "junk"], None]},
            "B": "not a dict",
            "C": {"ai_tool": [[{"node": "A", "type": "ai_tool", "index": 0}]]},
        }
        edges = [(s, p, i, t["node"]) for s, p, i, t in graph.iter_edges(connections)]
        assert edges == [("A", "main", 0, "B"), ("C", "ai_tool", 0, "A")]

    def test_successors_filtered_by_port(self):
        connections = {"A": {
            "main": [[{"node": "B"}]],
            "error": [[{"node": "Handler"}]],
        }}
        assert graph.successors(connections, "A") == ["B", "Handler"]
        assert graph.successors(connections, "A", ("error",)) == ["Handler"]
        assert graph.successors(connections, "missing") == []

    def test_output_targets_by_index(self):
        connections = _loop_connections()
        assert graph.output_targets(connections, "Loop", "main", 0) == ["Done"]
        assert graph.output_targets(connections, "Loop", "main", 1) == ["Process"]
        assert graph.output_targets(connections, "Loop", "main", 2) == []

    def test_has_main_input_and_connected_names(self):
        connections = link("A", "B")
        assert graph.has_main_input(connections, "B")
        assert not graph.has_main_input(connections, "A")
        assert graph.connected_names(connections) == {"A", "B"}


# ---------------------------------------------------------------------------
# Cycles
# ---------------------------------------------------------------------------


class TestFindIllegalCycle:
    """Cycle detection with loop constructs excluded."""

    def test_find_illegal_cycle(self):
        connections = link("Trigger", "A", "B", "A")
        cycle = graph.find_illegal_cycle(["Trigger", "A", "B"], connections, lambda _name: False)
        assert cycle == ["A", "B", "A"]

    def test_cycle_through_loop_construct_is_allowed(self):
        connections = _loop_connections()
        names = ["Trigger", "Loop", "Done", "Process", "Transform"]
        assert graph.find_illegal_cycle(names, connections, lambda name: name == "Loop") is None

    def test_cycle_beside_loop_construct_is_still_found(self):
        # A reaches B both directly and through Loop; B -> A closes a loop-free cycle.
        connections = {
            "Trigger": {"main": [[{"node": "A", "type": "main", "index": 0}]]},
            "A": {"main": [[
                {"node": "Loop", "type": "main", "index": 0},
                {"node": "B", "type": "main", "index": 0},
            ]]},
            "Loop": {"main": [[{"node": "B", "type": "main", "index": 0}]]},
            "B": {"main": [[{"node": "A", "type": "main", "index": 0}]]},
        }
        names = ["Trigger", "A", "Loop", "B"]
        cycle = graph.find_illegal_cycle(names, connections, lambda name: name == "Loop")
        assert cycle == ["A", "B", "A"]

    def test_only_loop_constructs_on_cycle(self):
        connections = link("Loop", "Loop")
        assert graph.find_illegal_cycle(["Loop"], connections, lambda name: name == "Loop") is None

    def test_self_loop_is_a_cycle(self):
        connections = link("A", "A")
        assert graph.find_illegal_cycle(["A"], connections, lambda _name: False) == ["A", "A"]

    def test_acyclic_graph(self):
        connections = link("A", "B", "C")
        assert graph.find_illegal_cycle(["A", "B", "C"], connections, lambda _name: False) is None


# ---------------------------------------------------------------------------
# Chains and reachability
# ---------------------------------------------------------------------------


class TestChainsAndReachability:
    """Longest chain, reachability and loop bodies."""

    def test_longest_linear_chain(self):
        names = [f"N{i}" for i in range(12)]
        assert graph.longest_linear_chain(names, link(*names)) == 12

    def test_longest_chain_takes_longest_branch(self):
        connections = link("A", "B", "C", "D")
        connections["A"]["main"][0].append({"node": "E", "type": "main", "index": 0})
        assert graph.longest_linear_chain(["A", "B", "C", "D", "E"], connections) == 4

    def test_can_reach(self):
        connections = _loop_connections()
        assert graph.can_reach(connections, "Process", "Loop")
        assert not graph.can_reach(connections, "Done", "Loop")
        assert not graph.can_reach(connections, "Process", "Loop", max_depth=1)

    def test_loop_body(self):
        assert graph.loop_body(_loop_connections(), "Loop") == {"Process", "Transform"}
