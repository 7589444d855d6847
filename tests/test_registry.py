"""
Registry tests (registry.py)

Tests ComponentRegistry CRUD, merge semantics and delegation to the resolver.
"""

import pytest

from sequent.declaration import DEFAULT_PRIORITY, ComponentDeclaration
from sequent.errors import DeclarationError, DependencyCycleError
from sequent.registry import ComponentRegistry


class FeatureSeeder:
    def run(self):
        pass


class PackageSeeder:
    def run(self):
        pass


# ============================================================================
# Registration
# ============================================================================

class TestRegister:

    def test_register_defaults(self):
        registry = ComponentRegistry().register("app.A")
        decl = registry.get("app.A")
        assert decl.priority == DEFAULT_PRIORITY
        assert decl.after == ()
        assert decl.before == ()

    def test_register_is_fluent(self):
        registry = ComponentRegistry()
        assert registry.register("app.A") is registry
        assert registry.remove("app.A") is registry
        assert registry.clear() is registry
        assert registry.merge(ComponentRegistry()) is registry

    def test_register_with_relations(self):
        registry = ComponentRegistry().register(
            "app.B", priority=10, after=["app.A"], before=["app.C"]
        )
        decl = registry.get("app.B")
        assert decl.priority == 10
        assert decl.after == ("app.A",)
        assert decl.before == ("app.C",)

    def test_register_accepts_classes(self):
        registry = ComponentRegistry()
        registry.register(PackageSeeder, after=[FeatureSeeder])

        identity = f"{__name__}.PackageSeeder"
        assert registry.has(identity)
        assert registry.has(PackageSeeder)
        assert registry.get(identity).after == (f"{__name__}.FeatureSeeder",)

    def test_register_overwrites_in_place(self):
        registry = (
            ComponentRegistry()
            .register("app.A", priority=10)
            .register("app.B", priority=20)
            .register("app.A", priority=30)
        )
        assert list(registry.all()) == ["app.A", "app.B"]
        assert registry.get("app.A").priority == 30
        assert len(registry) == 2

    def test_relations_are_deduplicated(self):
        registry = ComponentRegistry().register("app.B", after=["app.A", "app.A"])
        assert registry.get("app.B").after == ("app.A",)

    def test_non_int_priority_raises(self):
        with pytest.raises(DeclarationError) as exc_info:
            ComponentRegistry().register("app.A", priority="high")
        assert exc_info.value.identity == "app.A"
        assert "priority" in exc_info.value.problems[0]

    def test_bool_priority_raises(self):
        with pytest.raises(DeclarationError):
            ComponentRegistry().register("app.A", priority=True)

    def test_string_relation_raises(self):
        with pytest.raises(DeclarationError, match="must be a list"):
            ComponentRegistry().register("app.A", after="app.B")

    def test_bad_relation_item_raises(self):
        with pytest.raises(DeclarationError) as exc_info:
            ComponentRegistry().register("app.A", before=["app.B", 42])
        assert "before[1]" in exc_info.value.problems[0]

    def test_empty_identity_raises(self):
        with pytest.raises(DeclarationError):
            ComponentRegistry().register("")

    def test_failed_register_leaves_registry_untouched(self):
        registry = ComponentRegistry().register("app.A", priority=1)
        with pytest.raises(DeclarationError):
            registry.register("app.A", priority="x")
        assert registry.get("app.A").priority == 1


class TestRegisterMany:

    def test_bare_priorities(self):
        registry = ComponentRegistry().register_many({"app.A": 10, "app.B": 20})
        assert registry.get("app.A").priority == 10
        assert registry.get("app.B").priority == 20

    def test_full_declarations(self):
        registry = ComponentRegistry().register_many({
            "app.A": {"priority": 5},
            "app.B": {"after": ["app.A"], "before": ["app.C"]},
            "app.C": None,
        })
        assert registry.get("app.A").priority == 5
        assert registry.get("app.B").after == ("app.A",)
        assert registry.get("app.C").priority == DEFAULT_PRIORITY

    def test_declaration_values(self):
        decl = ComponentDeclaration(identity="ignored", priority=7, after=("app.X",))
        registry = ComponentRegistry().register_many({"app.A": decl})
        stored = registry.get("app.A")
        assert stored.identity == "app.A"
        assert stored.priority == 7
        assert stored.after == ("app.X",)

    def test_unknown_keys_raise(self):
        with pytest.raises(DeclarationError, match="Unknown declaration keys"):
            ComponentRegistry().register_many({"app.A": {"priorty": 5}})

    def test_bad_value_type_raises(self):
        with pytest.raises(DeclarationError):
            ComponentRegistry().register_many({"app.A": "high"})


# ============================================================================
# Query / removal
# ============================================================================

class TestQuery:

    def test_has_and_contains(self):
        registry = ComponentRegistry().register("app.A")
        assert registry.has("app.A")
        assert "app.A" in registry
        assert "app.B" not in registry
        assert 42 not in registry

    def test_all_is_a_snapshot(self):
        registry = ComponentRegistry().register("app.A")
        snapshot = registry.all()
        snapshot["app.B"] = ComponentDeclaration(identity="app.B")
        del snapshot["app.A"]
        assert list(registry.all()) == ["app.A"]

    def test_remove(self):
        registry = ComponentRegistry().register("app.A").register("app.B")
        registry.remove("app.A")
        assert not registry.has("app.A")
        assert registry.has("app.B")

    def test_remove_absent_is_noop(self):
        registry = ComponentRegistry().register("app.A")
        registry.remove("app.missing")
        assert len(registry) == 1

    def test_remove_then_register_moves_to_end(self):
        registry = ComponentRegistry().register("app.A").register("app.B")
        registry.remove("app.A").register("app.A")
        assert list(registry.all()) == ["app.B", "app.A"]

    def test_clear(self):
        registry = ComponentRegistry().register("app.A").register("app.B")
        registry.clear()
        assert len(registry) == 0
        assert registry.get_ordered() == []

    def test_iter_yields_declarations(self):
        registry = ComponentRegistry().register("app.A").register("app.B")
        assert [d.identity for d in registry] == ["app.A", "app.B"]

    def test_to_dict(self):
        registry = ComponentRegistry().register("app.B", priority=3, after=["app.A"])
        assert registry.to_dict() == {
            "app.B": {"priority": 3, "after": ["app.A"], "before": []},
        }


# ============================================================================
# Merge
# ============================================================================

class TestMerge:

    def test_merge_adds_missing(self):
        first = ComponentRegistry().register("app.A")
        second = ComponentRegistry().register("app.B").register("app.C")
        first.merge(second)
        assert list(first.all()) == ["app.A", "app.B", "app.C"]

    def test_merge_never_overwrites(self):
        first = ComponentRegistry().register("app.A", priority=10)
        second = ComponentRegistry().register("app.A", priority=99, after=["app.Z"])
        first.merge(second)
        assert first.get("app.A").priority == 10
        assert first.get("app.A").after == ()

    def test_merge_leaves_other_untouched(self):
        first = ComponentRegistry().register("app.A")
        second = ComponentRegistry().register("app.B")
        first.merge(second)
        assert list(second.all()) == ["app.B"]


# ============================================================================
# Resolution
# ============================================================================

class TestGetOrdered:

    def test_priority_then_registration(self):
        registry = ComponentRegistry().register_many({
            "app.A": 10,
            "app.B": 50,
            "app.C": 5,
        })
        assert registry.get_ordered() == ["app.C", "app.A", "app.B"]

    def test_after_beats_priority(self):
        registry = (
            ComponentRegistry()
            .register("app.A", priority=10)
            .register("app.B", priority=50, after=["app.A"])
            .register("app.C", priority=5)
        )
        assert registry.get_ordered() == ["app.C", "app.A", "app.B"]

    def test_overwrite_keeps_tie_break_position(self):
        registry = (
            ComponentRegistry()
            .register("app.A")
            .register("app.B")
            .register("app.A")
        )
        assert registry.get_ordered() == ["app.A", "app.B"]

    def test_cycle_raises(self):
        registry = (
            ComponentRegistry()
            .register("app.A", after=["app.B"])
            .register("app.B", after=["app.A"])
        )
        with pytest.raises(DependencyCycleError) as exc_info:
            registry.get_ordered()
        assert exc_info.value.cycle == ["app.A", "app.B", "app.A"]

    def test_repeated_calls_are_identical(self):
        registry = ComponentRegistry().register_many({
            "app.A": {"priority": 20},
            "app.B": {"priority": 10, "before": ["app.A"]},
            "app.C": {"after": ["app.B"]},
        })
        assert registry.get_ordered() == registry.get_ordered()
