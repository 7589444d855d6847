"""
Sequent - dependency-ordered component registry.

Discovers components (database seeders, platform services, any unit of
bootstrap work), reads each one's priority and "run after / run before"
relations, and produces one deterministic execution order.

Priority: **lower numbers run earlier.** Among components with no ordering
edge between them, priority 10 runs before priority 50 (the default), and
registration order breaks remaining ties. Explicit ``after``/``before``
relations always win over priority.

Usage::

    from sequent import ComponentRegistry, ordered

    registry = ComponentRegistry()
    registry.register("app.FeatureSeeder", priority=10)
    registry.register("app.PackageSeeder", after=["app.FeatureSeeder"])
    registry.get_ordered()
    # ['app.FeatureSeeder', 'app.PackageSeeder']

    @ordered(priority=20, after=["app.FeatureSeeder"])
    class PackageSeeder:
        def run(self): ...
"""

__version__ = "0.1.0"

from .declaration import (
    DEFAULT_PRIORITY,
    ComponentDeclaration,
    OrderingMetadata,
    extract_declaration,
    identity_of,
    ordered,
    short_name,
)
from .errors import (
    CacheConfigError,
    DeclarationError,
    DependencyCycleError,
    ErrorSpan,
    RegistryError,
    UnsatisfiedRequirementError,
    ValidationReport,
)
from .registry import ComponentRegistry
from .graph import DependencyGraph, resolve_order
from .discovery import ComponentDiscovery
from .validation import DependencyValidator, Requirement, parse_version
from .runner import ComponentRunner, apply_filters, import_and_run
from .config import ConfigError, ConfigLoader, SequentConfig
from .cache import CacheConfig, ResolutionCache, create_cache

__all__ = [
    "__version__",
    "DEFAULT_PRIORITY",
    "ComponentDeclaration",
    "OrderingMetadata",
    "extract_declaration",
    "identity_of",
    "ordered",
    "short_name",
    "CacheConfigError",
    "DeclarationError",
    "DependencyCycleError",
    "ErrorSpan",
    "RegistryError",
    "UnsatisfiedRequirementError",
    "ValidationReport",
    "ComponentRegistry",
    "DependencyGraph",
    "resolve_order",
    "ComponentDiscovery",
    "DependencyValidator",
    "Requirement",
    "parse_version",
    "ComponentRunner",
    "apply_filters",
    "import_and_run",
    "ConfigError",
    "ConfigLoader",
    "SequentConfig",
    "CacheConfig",
    "ResolutionCache",
    "create_cache",
]
