"""
Component declarations and ordering metadata.

A declaration is the tuple ``{identity, priority, after, before}``.

Priority convention: **lower numbers run earlier**. A component with
priority 10 runs before one with priority 50 unless an ``after``/``before``
edge says otherwise. ``DEFAULT_PRIORITY`` sits in the middle so components
can be placed on either side of the undeclared majority.

Ordering metadata can be attached to a component class in two ways:

1. The structured form, via the ``@ordered`` decorator::

       @ordered(priority=10, after=["app.seeders.FeatureSeeder"])
       class PackageSeeder:
           ...

2. The plain-field form, via class attributes::

       class PackageSeeder:
           priority = 10
           after = ["app.seeders.FeatureSeeder"]

The structured form takes precedence field by field, so a class can move
from plain attributes to ``@ordered`` one field at a time.
"""

from __future__ import annotations

import inspect
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple, Type, TypeVar, Union

from .errors import DeclarationError

DEFAULT_PRIORITY = 50

# Class attribute holding the structured metadata set by @ordered
ORDERING_ATTR = "__sequent_ordering__"

IdentityRef = Union[str, type]

T = TypeVar("T")

_MISSING = object()


def identity_of(ref: IdentityRef) -> str:
    """
    Normalize an identity reference to its string form.

    Classes map to their fully-qualified dotted name.

    Raises:
        TypeError: If ref is neither a non-empty string nor a class
    """
    if isinstance(ref, type):
        return f"{ref.__module__}.{ref.__qualname__}"
    if isinstance(ref, str) and ref:
        return ref
    raise TypeError(f"Component identity must be a non-empty string or a class, got {ref!r}")


def short_name(identity: str) -> str:
    """Last dotted segment of an identity (the class name)."""
    return identity.rsplit(".", 1)[-1]


def _is_priority(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _normalize_relations(
    name: str,
    refs: Any,
    problems: List[str],
) -> Tuple[str, ...]:
    """Turn an after/before value into a de-duplicated identity tuple."""
    if refs is None:
        return ()
    if not isinstance(refs, (list, tuple, set, frozenset)):
        problems.append(f"'{name}' must be a list of identities, got {type(refs).__name__}")
        return ()

    normalized: List[str] = []
    for i, ref in enumerate(refs):
        try:
            identity = identity_of(ref)
        except TypeError:
            problems.append(f"{name}[{i}] must be an identity string or class, got {ref!r}")
            continue
        if identity not in normalized:
            normalized.append(identity)
    return tuple(normalized)


@dataclass(frozen=True)
class ComponentDeclaration:
    """
    Ordering constraints of one component.

    Attributes:
        identity: Globally unique component identity
        priority: Lower runs earlier among otherwise unordered components
        after: Identities that must run strictly before this component
        before: Identities that must run strictly after this component

    References to identities that are not part of the resolution scope are
    ignored at resolution time (soft dependencies).
    """

    identity: str
    priority: int = DEFAULT_PRIORITY
    after: Tuple[str, ...] = ()
    before: Tuple[str, ...] = ()

    @classmethod
    def create(
        cls,
        identity: IdentityRef,
        priority: Optional[int] = None,
        after: Optional[Iterable[IdentityRef]] = None,
        before: Optional[Iterable[IdentityRef]] = None,
    ) -> "ComponentDeclaration":
        """
        Build a validated declaration from loosely typed input.

        Raises:
            DeclarationError: If any field is malformed
        """
        problems: List[str] = []

        try:
            ident = identity_of(identity)
        except TypeError as e:
            raise DeclarationError(repr(identity), [str(e)]) from e

        if priority is None:
            priority = DEFAULT_PRIORITY
        elif not _is_priority(priority):
            problems.append(f"'priority' must be an int, got {priority!r}")

        after_ids = _normalize_relations("after", after, problems)
        before_ids = _normalize_relations("before", before, problems)

        if problems:
            raise DeclarationError(ident, problems)

        return cls(identity=ident, priority=priority, after=after_ids, before=before_ids)

    @classmethod
    def from_value(cls, identity: IdentityRef, value: Any) -> "ComponentDeclaration":
        """
        Build a declaration from a ``register_many`` style value.

        The value may be a bare priority, a mapping with ``priority``,
        ``after`` and ``before`` keys, or a declaration.
        """
        if isinstance(value, ComponentDeclaration):
            return cls.create(identity, value.priority, value.after, value.before)
        if value is None or _is_priority(value):
            return cls.create(identity, priority=value)
        if isinstance(value, dict):
            unknown = set(value) - {"priority", "after", "before"}
            if unknown:
                raise DeclarationError(
                    identity_of(identity),
                    [f"Unknown declaration keys: {', '.join(sorted(unknown))}"],
                )
            return cls.create(
                identity,
                priority=value.get("priority"),
                after=value.get("after"),
                before=value.get("before"),
            )
        raise DeclarationError(
            str(identity),
            [f"Expected a priority int or a declaration mapping, got {type(value).__name__}"],
        )

    @property
    def short_name(self) -> str:
        return short_name(self.identity)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for JSON export."""
        return {
            "priority": self.priority,
            "after": list(self.after),
            "before": list(self.before),
        }


@dataclass(frozen=True)
class OrderingMetadata:
    """Structured ordering metadata attached by ``@ordered``."""

    priority: Optional[int] = None
    after: Tuple[str, ...] = ()
    before: Tuple[str, ...] = ()

    def stacked_on(self, lower: "OrderingMetadata") -> "OrderingMetadata":
        """Merge with a decorator applied below this one."""
        return OrderingMetadata(
            priority=self.priority if self.priority is not None else lower.priority,
            after=self.after + tuple(a for a in lower.after if a not in self.after),
            before=self.before + tuple(b for b in lower.before if b not in self.before),
        )


def ordered(
    priority: Optional[int] = None,
    *,
    after: Iterable[IdentityRef] = (),
    before: Iterable[IdentityRef] = (),
):
    """
    Decorator attaching structured ordering metadata to a component class.

    Args:
        priority: Lower runs earlier (default: plain field or DEFAULT_PRIORITY)
        after: Components that must run before this one
        before: Components that must run after this one

    Decorators may be stacked; relations accumulate and the topmost
    explicit priority wins.

    Example:
        @ordered(priority=20)
        @ordered(after=[FeatureSeeder])
        class PackageSeeder:
            def run(self): ...
    """
    problems: List[str] = []
    if priority is not None and not _is_priority(priority):
        problems.append(f"'priority' must be an int, got {priority!r}")
    after_ids = _normalize_relations("after", after, problems)
    before_ids = _normalize_relations("before", before, problems)

    def decorator(cls: Type[T]) -> Type[T]:
        if problems:
            raise DeclarationError(identity_of(cls), problems)

        meta = OrderingMetadata(priority=priority, after=after_ids, before=before_ids)

        # Only metadata declared on this very class counts, not a base's
        existing = cls.__dict__.get(ORDERING_ATTR)
        if existing is not None:
            meta = meta.stacked_on(existing)

        setattr(cls, ORDERING_ATTR, meta)
        return cls

    return decorator


def _plain_field(component: Any, name: str) -> Any:
    """Read a public, non-callable class attribute without triggering descriptors."""
    value = inspect.getattr_static(component, name, _MISSING)
    if value is _MISSING:
        return _MISSING
    if isinstance(value, (staticmethod, classmethod, property)) or callable(value):
        return _MISSING
    return value


def extract_declaration(
    component: Any,
    identity: Optional[str] = None,
    *,
    default_priority: int = DEFAULT_PRIORITY,
) -> ComponentDeclaration:
    """
    Read ordering metadata from a component class.

    Each field is looked up in the structured ``@ordered`` metadata first,
    then in the plain class attribute of the same name. A plain ``priority``
    that is not an int is ignored, as are plain ``after``/``before`` values
    that are not lists or tuples.

    Args:
        component: Component class
        identity: Identity to use (default: derived from the class)
        default_priority: Priority when none is declared

    Raises:
        DeclarationError: If a relation list holds something that is not
            an identity
    """
    ident = identity or identity_of(component)
    meta = component.__dict__.get(ORDERING_ATTR) if isinstance(component, type) else None
    problems: List[str] = []

    priority = meta.priority if meta is not None else None
    if priority is None:
        value = _plain_field(component, "priority")
        priority = value if _is_priority(value) else default_priority

    relations: Dict[str, Tuple[str, ...]] = {}
    for name in ("after", "before"):
        declared = getattr(meta, name) if meta is not None else ()
        if not declared:
            value = _plain_field(component, name)
            if isinstance(value, (list, tuple)):
                declared = _normalize_relations(name, value, problems)
        relations[name] = tuple(declared)

    if problems:
        raise DeclarationError(ident, problems)

    return ComponentDeclaration(
        identity=ident,
        priority=priority,
        after=relations["after"],
        before=relations["before"],
    )
