"""
Component runner - executes components in resolved order.
"""

import importlib
import logging
from typing import TYPE_CHECKING, Any, Callable, Dict, Iterable, List, Optional, Union

from .declaration import ComponentDeclaration, short_name
from .discovery import ComponentDiscovery
from .registry import ComponentRegistry

if TYPE_CHECKING:
    from .config import SequentConfig

logger = logging.getLogger("sequent.runner")

Executor = Callable[[str], Any]
Patterns = Optional[Union[str, Iterable[str]]]


def import_component(identity: str) -> type:
    """
    Import a component class from its dotted identity.

    Raises:
        ImportError: If the module or class cannot be found
    """
    module_name, _, class_name = identity.rpartition(".")
    if not module_name:
        raise ImportError(f"Identity '{identity}' has no module part")

    module = importlib.import_module(module_name)
    component = getattr(module, class_name, None)
    if not isinstance(component, type):
        raise ImportError(f"Class {class_name} not found in module {module_name}")
    return component


def import_and_run(identity: str) -> Any:
    """Default executor: instantiate the component and call its ``run()``."""
    component = import_component(identity)
    return component().run()


def matches_pattern(identity: str, pattern: str) -> bool:
    """
    Check an identity against a filter pattern.

    Matches on exact identity, exact short name, or substring of either.
    """
    if identity == pattern:
        return True

    name = short_name(identity)
    if name == pattern:
        return True

    return pattern in name or pattern in identity


def _as_patterns(patterns: Patterns) -> List[str]:
    if patterns is None:
        return []
    if isinstance(patterns, str):
        return [patterns]
    return [p for p in patterns if p]


def apply_filters(order: List[str], only: Patterns = None, exclude: Patterns = None) -> List[str]:
    """
    Filter a resolved order; survivors keep their relative order.

    The exclude filter runs first, then the only filter.
    """
    excludes = _as_patterns(exclude)
    if excludes:
        order = [i for i in order if not any(matches_pattern(i, p) for p in excludes)]

    onlys = _as_patterns(only)
    if onlys:
        order = [i for i in order if any(matches_pattern(i, p) for p in onlys)]

    return order


class ComponentRunner:
    """
    Resolves components and runs them one by one.

    Components come from discovery when ``auto_discover`` is set, otherwise
    from the registry.

    Example:
        runner = ComponentRunner(ComponentDiscovery(["modules"]))
        runner.run(exclude=["Demo"])
    """

    def __init__(
        self,
        discovery: Optional[ComponentDiscovery] = None,
        registry: Optional[ComponentRegistry] = None,
        executor: Optional[Executor] = None,
        auto_discover: bool = True,
    ):
        self.discovery = discovery if discovery is not None else ComponentDiscovery()
        self.registry = registry if registry is not None else ComponentRegistry()
        self.executor = executor or import_and_run
        self.auto_discover = auto_discover

    @classmethod
    def from_config(
        cls,
        config: "SequentConfig",
        executor: Optional[Executor] = None,
    ) -> "ComponentRunner":
        """Build a runner from the typed configuration."""
        from .cache.service import create_cache

        cache = create_cache(config.cache) if config.cache.enabled else None
        discovery = ComponentDiscovery(
            config.paths,
            config.exclude,
            directory=config.directory,
            suffix=config.suffix,
            cache=cache,
            cache_key=config.cache.key,
        )

        registry = ComponentRegistry().register_many(config.components)
        for identity in config.exclude:
            registry.remove(identity)

        return cls(
            discovery=discovery,
            registry=registry,
            executor=executor,
            auto_discover=config.auto_discover,
        )

    def resolve(self) -> List[str]:
        """
        Full order before filtering.

        Raises:
            DependencyCycleError: If the components form a cycle
        """
        if self.auto_discover:
            return self.discovery.discover()
        return self.registry.get_ordered()

    def declarations(self) -> Dict[str, ComponentDeclaration]:
        """Declaration set the runner resolves, without resolving it."""
        if self.auto_discover:
            return self.discovery.get_declarations()
        return self.registry.all()

    def components(self) -> Dict[str, type]:
        """
        Identity -> class for every importable component.

        Manually registered identities that cannot be imported are logged
        and left out.
        """
        if self.auto_discover:
            return self.discovery.get_components()

        components: Dict[str, type] = {}
        for identity in self.registry.all():
            try:
                components[identity] = import_component(identity)
            except ImportError as e:
                logger.warning("Cannot import component %s: %s", identity, e)
        return components

    def components_to_run(self, only: Patterns = None, exclude: Patterns = None) -> List[str]:
        return apply_filters(self.resolve(), only=only, exclude=exclude)

    def run(self, only: Patterns = None, exclude: Patterns = None) -> List[str]:
        """
        Execute components in order.

        Returns:
            Identities executed, in execution order
        """
        return self.execute(self.components_to_run(only=only, exclude=exclude))

    def execute(self, components: List[str]) -> List[str]:
        """
        Execute an already filtered order, stopping at the first failure.

        Returns:
            Identities executed, in execution order
        """
        if not components:
            logger.info("No components found to run.")
            return []

        logger.info("Running %d components...", len(components))

        executed: List[str] = []
        for identity in components:
            logger.info("Running: %s", short_name(identity))
            self.executor(identity)
            executed.append(identity)

        logger.info("All components completed successfully.")
        return executed
