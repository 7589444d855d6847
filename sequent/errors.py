"""
Sequent error types with rich diagnostics.
"""

from typing import List, Dict, Any, Optional
from dataclasses import dataclass, field


@dataclass
class ErrorSpan:
    """File location for error context."""

    file: str
    line: Optional[int] = None
    column: Optional[int] = None

    def __str__(self) -> str:
        parts = [self.file]
        if self.line is not None:
            parts.append(f":{self.line}")
            if self.column is not None:
                parts.append(f":{self.column}")
        return "".join(parts)


class RegistryError(Exception):
    """Base error for all Sequent registry errors."""

    def __init__(
        self,
        message: str,
        *,
        span: Optional[ErrorSpan] = None,
        suggestion: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.span = span
        self.suggestion = suggestion
        self.details = details or {}

    def format_error(self) -> str:
        """Format error with rich diagnostics."""
        lines = []

        lines.append(f"❌ {self.__class__.__name__}: {self.message}")

        if self.span:
            lines.append(f"   at {self.span}")

        if self.details:
            lines.append("\n   Details:")
            for key, value in self.details.items():
                lines.append(f"   - {key}: {value}")

        if self.suggestion:
            lines.append(f"\n   💡 Suggestion: {self.suggestion}")

        return "\n".join(lines)

    def __str__(self) -> str:
        return self.format_error()


class DependencyCycleError(RegistryError):
    """
    Circular dependency detected among component declarations.

    The cycle path starts and ends on the same identity:

        ["app.AlphaSeeder", "app.BetaSeeder", "app.AlphaSeeder"]

    A component that lists itself in ``after`` or ``before`` produces a
    one-node cycle, ``[A, A]``.
    """

    def __init__(
        self,
        cycle: List[str],
        *,
        span: Optional[ErrorSpan] = None,
    ):
        self.cycle = list(cycle)
        cycle_repr = " -> ".join(self.cycle) if self.cycle else "<unknown>"

        message = f"Circular dependency detected: {cycle_repr}"
        suggestion = (
            "Break the cycle by removing one of the 'after'/'before' "
            "declarations along the path, or split the component that "
            "needs to run on both sides."
        )

        super().__init__(
            message,
            span=span,
            suggestion=suggestion,
            details={"cycle": self.cycle, "cycle_length": max(len(self.cycle) - 1, 0)},
        )


class DeclarationError(RegistryError):
    """
    Component declaration is malformed.

    Raised for manual registrations. Discovery raises it internally for a
    broken candidate, logs it, and moves on.
    """

    def __init__(
        self,
        identity: str,
        problems: List[str],
        *,
        span: Optional[ErrorSpan] = None,
    ):
        self.identity = identity
        self.problems = list(problems)

        problem_list = "\n".join(f"   - {p}" for p in self.problems)
        message = f"Invalid declaration for '{identity}':\n{problem_list}"

        super().__init__(
            message,
            span=span,
            suggestion=(
                "priority must be an int, after/before must be lists of "
                "identity strings or classes."
            ),
            details={"identity": identity, "problem_count": len(self.problems)},
        )


class UnsatisfiedRequirementError(RegistryError):
    """
    Component requirements not met by the registered set.

    Reported by the dependency validator; never raised during resolution.
    """

    def __init__(
        self,
        identity: str,
        problems: List[str],
        *,
        span: Optional[ErrorSpan] = None,
    ):
        self.identity = identity
        self.problems = list(problems)

        problem_list = "\n".join(f"   - {p}" for p in self.problems)
        message = f"Unsatisfied requirements for '{identity}':\n{problem_list}"

        super().__init__(
            message,
            span=span,
            suggestion=(
                "Register the missing components, bump their versions, or "
                "mark the requirement optional."
            ),
            details={"identity": identity, "problem_count": len(self.problems)},
        )


class CacheConfigError(RegistryError):
    """Cache configuration cannot be turned into a working backend."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(
            f"Invalid cache configuration: {reason}",
            suggestion="Use one of the backends: memory, null, redis.",
            details={"reason": reason},
        )


@dataclass
class ValidationReport:
    """
    Aggregated validation report.

    Collects every problem before anything is shown to the caller.
    """

    errors: List[RegistryError] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def add_error(self, error: RegistryError) -> None:
        """Add error to report."""
        self.errors.append(error)

    def add_warning(self, warning: str) -> None:
        """Add warning to report."""
        self.warnings.append(warning)

    def has_errors(self) -> bool:
        """Check if report has errors."""
        return len(self.errors) > 0

    def to_dict(self) -> Dict[str, Any]:
        """Serialize report."""
        return {
            "error_count": len(self.errors),
            "warning_count": len(self.warnings),
            "errors": [
                {
                    "type": e.__class__.__name__,
                    "message": e.message,
                    "details": e.details,
                }
                for e in self.errors
            ],
            "warnings": self.warnings,
        }

    def format_report(self) -> str:
        """Format report for display."""
        lines = []

        if self.errors:
            lines.append(f"❌ {len(self.errors)} error(s):")
            for i, error in enumerate(self.errors, 1):
                lines.append(f"\n{i}. {error.format_error()}")

        if self.warnings:
            lines.append(f"\n⚠️  {len(self.warnings)} warning(s):")
            for i, warning in enumerate(self.warnings, 1):
                lines.append(f"   {i}. {warning}")

        if not self.errors and not self.warnings:
            lines.append("✅ No errors or warnings")

        return "\n".join(lines)
