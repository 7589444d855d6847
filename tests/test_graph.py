"""
Resolver tests (graph.py)

Tests priority-aware topological sorting, soft dependencies, cycle
reporting and graph exports.
"""

import itertools

import pytest

from sequent.declaration import ComponentDeclaration
from sequent.errors import DependencyCycleError
from sequent.graph import DependencyGraph, resolve_order
from sequent.registry import ComponentRegistry


def decl(identity, priority=50, after=(), before=()):
    return ComponentDeclaration.create(identity, priority, list(after), list(before))


def decls(*items):
    return {d.identity: d for d in items}


# ============================================================================
# Ordering
# ============================================================================

class TestTopologicalSort:

    def test_empty(self):
        assert resolve_order({}) == []

    def test_single(self):
        assert resolve_order(decls(decl("A"))) == ["A"]

    def test_registration_order_breaks_ties(self):
        assert resolve_order(decls(decl("B"), decl("A"), decl("C"))) == ["B", "A", "C"]

    def test_lower_priority_first(self):
        order = resolve_order(decls(decl("A", 30), decl("B", 10), decl("C", 20)))
        assert order == ["B", "C", "A"]

    def test_after_constraint(self):
        order = resolve_order(decls(decl("B", after=["A"]), decl("A")))
        assert order == ["A", "B"]

    def test_before_constraint(self):
        order = resolve_order(decls(decl("B"), decl("A", before=["B"])))
        assert order == ["A", "B"]

    def test_after_beats_priority(self):
        order = resolve_order(decls(
            decl("A", 10),
            decl("B", 50, after=["A"]),
            decl("C", 5),
        ))
        assert order == ["C", "A", "B"]

    def test_priority_within_later_wave(self):
        order = resolve_order(decls(
            decl("Root", 50),
            decl("Late", 90, after=["Root"]),
            decl("Early", 1, after=["Root"]),
        ))
        assert order == ["Root", "Early", "Late"]

    def test_ready_low_priority_overtakes_blocked_chain(self):
        order = resolve_order(decls(
            decl("A", 20),
            decl("B", 30, after=["A"]),
            decl("C", 25),
        ))
        assert order == ["A", "C", "B"]

    def test_duplicate_edges_are_single(self):
        graph = DependencyGraph(decls(
            decl("A", before=["B"]),
            decl("B", after=["A"]),
        ))
        assert graph.get_dependencies("B") == ["A"]
        assert graph.topological_sort() == ["A", "B"]

    def test_every_edge_respected(self):
        items = decls(
            decl("Feature", 10),
            decl("Package", 20, after=["Feature"]),
            decl("Tenant", 30, after=["Package"]),
            decl("User", 5, after=["Tenant"]),
            decl("Audit", 1, before=["Feature"]),
            decl("Demo", 99),
        )
        order = resolve_order(items)
        position = {name: i for i, name in enumerate(order)}

        assert sorted(order) == sorted(items)
        for d in items.values():
            for dep in d.after:
                assert position[dep] < position[d.identity]
            for dependent in d.before:
                assert position[d.identity] < position[dependent]

    def test_idempotent(self):
        items = decls(decl("A", 20), decl("B", 10, after=["A"]), decl("C", 20))
        assert resolve_order(items) == resolve_order(items)

    def test_order_independent_of_registration_when_fully_constrained(self):
        items = [
            decl("A", 10),
            decl("B", 20, after=["A"]),
            decl("C", 30, after=["B"]),
        ]
        expected = ["A", "B", "C"]
        for perm in itertools.permutations(items):
            assert resolve_order(list(perm)) == expected

    def test_distinct_priorities_independent_of_registration(self):
        items = [decl("A", 3), decl("B", 1), decl("C", 2)]
        for perm in itertools.permutations(items):
            assert resolve_order(list(perm)) == ["B", "C", "A"]


# ============================================================================
# Soft dependencies
# ============================================================================

class TestSoftDependencies:

    def test_unknown_after_ignored(self):
        assert resolve_order(decls(decl("A", after=["Missing"]))) == ["A"]

    def test_unknown_before_ignored(self):
        assert resolve_order(decls(decl("A", before=["Missing"]))) == ["A"]

    def test_unknown_reference_does_not_shift_priority(self):
        order = resolve_order(decls(decl("A", 20, after=["Missing"]), decl("B", 10)))
        assert order == ["B", "A"]

    def test_unknown_nodes_not_added(self):
        graph = DependencyGraph(decls(decl("A", after=["Missing"])))
        assert len(graph) == 1
        assert "Missing" not in graph
        assert graph.get_dependencies("A") == []


# ============================================================================
# Cycles
# ============================================================================

class TestCycles:

    def test_self_reference_after(self):
        with pytest.raises(DependencyCycleError) as exc_info:
            resolve_order(decls(decl("A", after=["A"])))
        assert exc_info.value.cycle == ["A", "A"]

    def test_self_reference_before(self):
        with pytest.raises(DependencyCycleError) as exc_info:
            resolve_order(decls(decl("A", before=["A"])))
        assert exc_info.value.cycle == ["A", "A"]

    def test_two_node_cycle(self):
        with pytest.raises(DependencyCycleError) as exc_info:
            resolve_order(decls(decl("A", after=["B"]), decl("B", after=["A"])))
        assert exc_info.value.cycle == ["A", "B", "A"]

    def test_three_node_cycle(self):
        with pytest.raises(DependencyCycleError) as exc_info:
            resolve_order(decls(
                decl("A", after=["C"]),
                decl("B", after=["A"]),
                decl("C", after=["B"]),
            ))
        assert exc_info.value.cycle == ["A", "C", "B", "A"]

    def test_cycle_via_before(self):
        with pytest.raises(DependencyCycleError) as exc_info:
            resolve_order(decls(decl("A", before=["B"]), decl("B", before=["A"])))
        cycle = exc_info.value.cycle
        assert cycle[0] == cycle[-1]
        assert set(cycle) == {"A", "B"}

    def test_cycle_excludes_downstream_nodes(self):
        with pytest.raises(DependencyCycleError) as exc_info:
            resolve_order(decls(
                decl("Free"),
                decl("A", after=["B"]),
                decl("B", after=["A"]),
                decl("Blocked", after=["B"]),
            ))
        assert exc_info.value.cycle == ["A", "B", "A"]

    def test_cycle_error_message(self):
        with pytest.raises(DependencyCycleError) as exc_info:
            resolve_order(decls(decl("A", after=["B"]), decl("B", after=["A"])))
        error = exc_info.value
        assert "Circular dependency detected: A -> B -> A" in error.message
        assert error.details["cycle_length"] == 2

    def test_find_cycle_none_for_dag(self):
        graph = DependencyGraph(decls(decl("A"), decl("B", after=["A"])))
        assert graph.find_cycle() is None

    def test_find_cycle_skips_unknown_start_nodes(self):
        graph = DependencyGraph(decls(decl("A", after=["A"])))
        assert graph.find_cycle(["Missing", "A"]) == ["A", "A"]


# ============================================================================
# Inputs and exports
# ============================================================================

class TestGraphInputs:

    def test_accepts_registry(self):
        registry = ComponentRegistry().register("A", priority=2).register("B", priority=1)
        assert resolve_order(registry) == ["B", "A"]

    def test_accepts_iterable(self):
        assert resolve_order([decl("A", 2), decl("B", 1)]) == ["B", "A"]


class TestGraphExport:

    @pytest.fixture
    def graph(self):
        return DependencyGraph(decls(
            decl("app.A", 10),
            decl("app.B", after=["app.A"]),
            decl("app.C", before=["app.B"]),
        ))

    def test_dependencies_and_dependents(self, graph):
        assert graph.get_dependencies("app.B") == ["app.A", "app.C"]
        assert graph.get_dependents("app.A") == ["app.B"]
        assert graph.get_dependents("app.B") == []
        assert graph.get_dependencies("app.Missing") == []

    def test_to_dict(self, graph):
        assert graph.to_dict() == {
            "app.A": [],
            "app.B": ["app.A", "app.C"],
            "app.C": [],
        }

    def test_to_dot(self, graph):
        dot = graph.to_dot()
        assert dot.startswith("digraph components {")
        assert dot.endswith("}")
        assert '"app.A" [label="A\\n(10)"];' in dot
        assert '"app.A" -> "app.B";' in dot
        assert '"app.C" -> "app.B";' in dot

    def test_len_and_contains(self, graph):
        assert len(graph) == 3
        assert "app.A" in graph
        assert "app.Z" not in graph
