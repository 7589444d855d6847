"""
In-memory component registry.

Holds the authoritative declaration set for one resolution scope. There is
no process-wide instance: construct one where it is needed and pass it on.
The registry does not lock; a host sharing one instance across threads must
guard it.
"""

from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional

from .declaration import ComponentDeclaration, IdentityRef, identity_of
from .graph import resolve_order


class ComponentRegistry:
    """
    Ordered store of component declarations keyed by identity.

    Registration order is preserved and is the final tie-break during
    resolution.

    Example:
        registry = (
            ComponentRegistry()
            .register("app.seeders.FeatureSeeder", priority=10)
            .register("app.seeders.PackageSeeder", after=["app.seeders.FeatureSeeder"])
        )
        order = registry.get_ordered()
    """

    __slots__ = ("_declarations",)

    def __init__(self, declarations: Optional[Iterable[ComponentDeclaration]] = None):
        self._declarations: Dict[str, ComponentDeclaration] = {}
        for decl in declarations or ():
            self._declarations[decl.identity] = decl

    def register(
        self,
        identity: IdentityRef,
        priority: Optional[int] = None,
        after: Optional[Iterable[IdentityRef]] = None,
        before: Optional[Iterable[IdentityRef]] = None,
    ) -> "ComponentRegistry":
        """
        Store or overwrite the declaration for ``identity``.

        Overwriting keeps the identity's original registration position.

        Raises:
            DeclarationError: If the declaration is malformed
        """
        decl = ComponentDeclaration.create(identity, priority, after, before)
        self._declarations[decl.identity] = decl
        return self

    def register_many(self, declarations: Mapping[IdentityRef, Any]) -> "ComponentRegistry":
        """
        Bulk form of :meth:`register`.

        Each value is either a bare priority or a full declaration::

            registry.register_many({
                "app.FeatureSeeder": 10,
                "app.PackageSeeder": {"priority": 20, "after": ["app.FeatureSeeder"]},
            })
        """
        for identity, value in declarations.items():
            decl = ComponentDeclaration.from_value(identity, value)
            self._declarations[decl.identity] = decl
        return self

    def add(self, declaration: ComponentDeclaration) -> "ComponentRegistry":
        """Store an already-built declaration (upsert)."""
        self._declarations[declaration.identity] = declaration
        return self

    def remove(self, identity: IdentityRef) -> "ComponentRegistry":
        """Delete a declaration; absent identities are ignored."""
        self._declarations.pop(identity_of(identity), None)
        return self

    def has(self, identity: IdentityRef) -> bool:
        return identity_of(identity) in self._declarations

    def get(self, identity: IdentityRef) -> Optional[ComponentDeclaration]:
        return self._declarations.get(identity_of(identity))

    def all(self) -> Dict[str, ComponentDeclaration]:
        """Snapshot of identity -> declaration, in registration order."""
        return dict(self._declarations)

    def merge(self, other: "ComponentRegistry") -> "ComponentRegistry":
        """
        Add declarations from ``other`` that are not already present.

        Existing entries are never overwritten by a merge.
        """
        for identity, decl in other.all().items():
            if identity not in self._declarations:
                self._declarations[identity] = decl
        return self

    def clear(self) -> "ComponentRegistry":
        self._declarations.clear()
        return self

    def get_ordered(self) -> List[str]:
        """
        Resolve the registry into its execution order.

        Raises:
            DependencyCycleError: If the declarations form a cycle
        """
        return resolve_order(self._declarations)

    def to_dict(self) -> Dict[str, Dict[str, Any]]:
        """Serialize for JSON export."""
        return {identity: decl.to_dict() for identity, decl in self._declarations.items()}

    def __contains__(self, identity: object) -> bool:
        if not isinstance(identity, (str, type)):
            return False
        return self.has(identity)

    def __iter__(self) -> Iterator[ComponentDeclaration]:
        return iter(list(self._declarations.values()))

    def __len__(self) -> int:
        return len(self._declarations)

    def __repr__(self) -> str:
        return f"ComponentRegistry({len(self._declarations)} components)"
