"""
Dependency validation for component sets.

An optional, informational pass run beside resolution. It reports
references to components that are not registered and requirements whose
version constraints are not met. Resolution itself never consults it.
"""

import re
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from .declaration import IdentityRef, identity_of
from .errors import UnsatisfiedRequirementError, ValidationReport
from .graph import DeclarationSource, _as_mapping

Version = Tuple[int, int, int]

# Longest first so ">=" is not read as ">"
_OPERATORS = (">=", "<=", "!=", "==", ">", "<", "=")

_WILDCARDS = ("x", "X", "*")


def _version_parts(text: str) -> Optional[List[int]]:
    """Numeric parts as written, ignoring a leading 'v' and pre-release or build tags."""
    text = text.strip()
    if text[:1] in ("v", "V"):
        text = text[1:]
    text = re.split(r"[-+]", text, maxsplit=1)[0]

    parts = text.split(".")
    if not 1 <= len(parts) <= 3:
        return None
    try:
        return [int(p) for p in parts]
    except ValueError:
        return None


def parse_version(value: Any) -> Optional[Version]:
    """
    Parse a version string into a comparable ``(major, minor, patch)``.

    Missing parts count as zero: ``"1.2"`` is ``(1, 2, 0)``.

    Returns:
        Version tuple, or None if the string is not a version
    """
    parts = _version_parts(str(value))
    if parts is None:
        return None
    return tuple(parts + [0] * (3 - len(parts)))  # type: ignore[return-value]


def _pad(parts: List[int]) -> Version:
    return tuple(parts + [0] * (3 - len(parts)))  # type: ignore[return-value]


def _caret_upper(parts: List[int]) -> Version:
    major, minor, patch = _pad(parts)
    if major > 0 or len(parts) == 1:
        return (major + 1, 0, 0)
    if minor > 0 or len(parts) == 2:
        return (0, minor + 1, 0)
    return (0, 0, patch + 1)


def _tilde_upper(parts: List[int]) -> Version:
    major, minor, _ = _pad(parts)
    if len(parts) == 1:
        return (major + 1, 0, 0)
    return (major, minor + 1, 0)


def _compile_clause(clause: str) -> Callable[[Version], bool]:
    """
    Turn one constraint clause into a predicate.

    Raises:
        ValueError: If the clause is not a recognised constraint
    """
    clause = clause.strip()
    if clause in _WILDCARDS:
        return lambda v: True

    if clause[:1] in ("^", "~"):
        parts = _version_parts(clause[1:])
        if parts is None:
            raise ValueError(f"Invalid version constraint: {clause!r}")
        lower = _pad(parts)
        upper = _caret_upper(parts) if clause[0] == "^" else _tilde_upper(parts)
        return lambda v: lower <= v < upper

    segments = clause.split(".")
    if segments[-1] in _WILDCARDS:
        prefix = _version_parts(".".join(segments[:-1])) if len(segments) > 1 else []
        if prefix is None or len(segments) > 3:
            raise ValueError(f"Invalid version constraint: {clause!r}")
        size = len(prefix)
        return lambda v: list(v[:size]) == prefix

    for op in _OPERATORS:
        if clause.startswith(op):
            target = parse_version(clause[len(op):])
            if target is None:
                raise ValueError(f"Invalid version constraint: {clause!r}")
            return {
                ">=": lambda v: v >= target,
                "<=": lambda v: v <= target,
                "!=": lambda v: v != target,
                "==": lambda v: v == target,
                "=": lambda v: v == target,
                ">": lambda v: v > target,
                "<": lambda v: v < target,
            }[op]

    target = parse_version(clause)
    if target is None:
        raise ValueError(f"Invalid version constraint: {clause!r}")
    return lambda v: v == target


def _compile_constraint(constraint: Optional[str]) -> List[Callable[[Version], bool]]:
    if constraint is None or not constraint.strip():
        return []
    return [_compile_clause(clause) for clause in constraint.split(",")]


class Requirement:
    """
    A component's dependency on another component, with an optional
    version constraint.

    Supported constraints: exact (``1.2.3``), comparisons (``>=1.2``,
    ``<2``, ``!=1.4.0``, ...), caret (``^1.2``), tilde (``~1.2``), wildcard
    (``1.x``, ``1.*``) and comma-separated conjunctions
    (``>=1.2, <2.0``).

    Example:
        class PackageSeeder:
            version = "1.0.0"
            requires = [
                Requirement.required("app.FeatureSeeder", "^2.0"),
                Requirement.optional("app.AuditSeeder"),
            ]

    Raises:
        ValueError: If the constraint cannot be parsed
    """

    def __init__(
        self,
        identity: IdentityRef,
        constraint: Optional[str] = None,
        required: bool = True,
    ):
        self.identity = identity_of(identity)
        self.constraint = constraint
        self.required = required
        self._predicates = _compile_constraint(constraint)

    @classmethod
    def required(cls, identity: IdentityRef, constraint: Optional[str] = None) -> "Requirement":
        return cls(identity, constraint, required=True)

    @classmethod
    def optional(cls, identity: IdentityRef, constraint: Optional[str] = None) -> "Requirement":
        return cls(identity, constraint, required=False)

    def satisfied_by(self, version: Optional[str]) -> bool:
        """Check a version against the constraint. No constraint accepts anything."""
        if not self._predicates:
            return True
        if version is None:
            return False
        parsed = parse_version(version)
        if parsed is None:
            return False
        return all(predicate(parsed) for predicate in self._predicates)

    def describe_constraint(self) -> str:
        return self.constraint.strip() if self.constraint else "any version"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Requirement):
            return NotImplemented
        return (self.identity, self.constraint, self.required) == (
            other.identity,
            other.constraint,
            other.required,
        )

    def __hash__(self) -> int:
        return hash((self.identity, self.constraint, self.required))

    def __repr__(self) -> str:
        kind = "required" if self.required else "optional"
        constraint = f" {self.constraint}" if self.constraint else ""
        return f"Requirement({self.identity}{constraint}, {kind})"


class DependencyValidator:
    """
    Reports unknown references and unmet requirements.

    Checks:
    - ``after``/``before`` targets that are not registered (soft, warnings)
    - Required components that are not registered
    - Version constraints not satisfied by the registered component
    """

    def __init__(
        self,
        declarations: DeclarationSource,
        versions: Optional[Mapping[str, str]] = None,
        requirements: Optional[Mapping[str, Iterable[Requirement]]] = None,
    ):
        self._declarations = _as_mapping(declarations)
        self._versions: Dict[str, str] = dict(versions or {})
        self._requirements: Dict[str, List[Requirement]] = {
            identity: list(reqs) for identity, reqs in (requirements or {}).items()
        }

    @classmethod
    def from_components(
        cls,
        declarations: DeclarationSource,
        components: Mapping[str, type],
    ) -> "DependencyValidator":
        """
        Build a validator from loaded component classes.

        Reads the class attributes ``version`` (str) and ``requires``
        (list of Requirement or identity references; bare references are
        required with no constraint).
        """
        versions: Dict[str, str] = {}
        requirements: Dict[str, List[Requirement]] = {}

        for identity, component in components.items():
            version = getattr(component, "version", None)
            if isinstance(version, str):
                versions[identity] = version

            requires = getattr(component, "requires", None)
            if isinstance(requires, (list, tuple)):
                requirements[identity] = [
                    req if isinstance(req, Requirement) else Requirement.required(req)
                    for req in requires
                ]

        return cls(declarations, versions=versions, requirements=requirements)

    def missing_references(self) -> Dict[str, List[str]]:
        """
        Declared ``after``/``before`` targets absent from the set.

        Returns:
            Dict of identity -> unknown identities it references
        """
        missing: Dict[str, List[str]] = {}
        for identity, decl in self._declarations.items():
            unknown = [
                ref
                for ref in decl.after + decl.before
                if ref not in self._declarations
            ]
            if unknown:
                missing[identity] = list(dict.fromkeys(unknown))
        return missing

    def validate(self) -> Dict[str, List[str]]:
        """
        Check requirements against the registered set.

        Returns:
            Dict of identity -> problems; components without problems are
            left out
        """
        problems: Dict[str, List[str]] = {}

        for identity, reqs in self._requirements.items():
            for req in reqs:
                problem = self._check_requirement(req)
                if problem:
                    problems.setdefault(identity, []).append(problem)

        return problems

    def _check_requirement(self, req: Requirement) -> Optional[str]:
        if req.identity not in self._declarations:
            if req.required:
                return f"'{req.identity}' is not registered"
            return None

        if not req.constraint:
            return None

        version = self._versions.get(req.identity)
        if version is None:
            return (
                f"'{req.identity}' ({req.describe_constraint()} required, "
                "no version declared)"
            )
        if not req.satisfied_by(version):
            return (
                f"'{req.identity}' ({req.describe_constraint()} required, "
                f"{version} available)"
            )
        return None

    def report(self) -> ValidationReport:
        """
        Full validation report.

        Unmet requirements are errors; unknown references and malformed
        versions are warnings.
        """
        report = ValidationReport()

        for identity, problems in self.validate().items():
            report.add_error(UnsatisfiedRequirementError(identity, problems))

        for identity, unknown in self.missing_references().items():
            for ref in unknown:
                report.add_warning(
                    f"'{identity}' references unknown component '{ref}' (ignored)"
                )

        for identity, version in self._versions.items():
            if parse_version(version) is None:
                report.add_warning(
                    f"'{identity}': version '{version}' is not valid semver "
                    "(expected X.Y.Z)"
                )

        return report
