"""
Filesystem discovery of component classes.

Scans root directories for component modules following a path convention,
loads each candidate and reads its ordering metadata. A candidate that
cannot be loaded is logged and skipped, never fatal.
"""

import importlib.util
import logging
import re
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional, Union

from .declaration import (
    DEFAULT_PRIORITY,
    ComponentDeclaration,
    IdentityRef,
    extract_declaration,
    identity_of,
)
from .errors import DeclarationError, ErrorSpan
from .graph import resolve_order
from .registry import ComponentRegistry

if TYPE_CHECKING:
    from .cache.service import ResolutionCache

logger = logging.getLogger("sequent.discovery")

DEFAULT_DIRECTORY = "database/seeders"
DEFAULT_SUFFIX = "_seeder.py"
DEFAULT_CACHE_KEY = "sequent.order"

_CLASS_RE = re.compile(r"^class\s+(\w+)", re.MULTILINE)

PathLike = Union[str, Path]


@dataclass(frozen=True)
class ComponentSource:
    """
    Candidate component file.

    Identity is derived from text alone, before anything is imported.
    """

    path: Path
    module_name: str
    class_name: str

    @property
    def identity(self) -> str:
        return f"{self.module_name}.{self.class_name}"

    def __repr__(self) -> str:
        return f"ComponentSource({self.identity}, {self.path})"


class ComponentDiscovery:
    """
    Discovers component classes under a set of root directories.

    Under each root two patterns are scanned::

        <root>/*/<directory>/*<suffix>
        <root>/<directory>/*<suffix>

    The first matching file for an identity wins. Roots that do not exist
    are skipped.

    Example:
        discovery = ComponentDiscovery(["modules"])
        for identity in discovery.discover():
            ...
    """

    def __init__(
        self,
        paths: Optional[Iterable[PathLike]] = None,
        exclude: Optional[Iterable[IdentityRef]] = None,
        *,
        directory: str = DEFAULT_DIRECTORY,
        suffix: str = DEFAULT_SUFFIX,
        default_priority: int = DEFAULT_PRIORITY,
        cache: Optional["ResolutionCache"] = None,
        cache_key: str = DEFAULT_CACHE_KEY,
    ):
        self._paths: List[Path] = [Path(p) for p in paths or ()]
        self._excluded: List[str] = [identity_of(e) for e in exclude or ()]
        self.directory = directory.strip("/")
        self.suffix = suffix
        self.default_priority = default_priority
        self.cache = cache
        self.cache_key = cache_key

        self._declarations: Dict[str, ComponentDeclaration] = {}
        self._components: Dict[str, type] = {}
        self._discovered = False

    @property
    def paths(self) -> List[Path]:
        return list(self._paths)

    @property
    def excluded(self) -> List[str]:
        return list(self._excluded)

    def add_paths(self, paths: Iterable[PathLike]) -> "ComponentDiscovery":
        """Append root directories to scan."""
        self._paths.extend(Path(p) for p in paths)
        self._invalidate()
        return self

    def set_paths(self, paths: Iterable[PathLike]) -> "ComponentDiscovery":
        """Replace the root directories to scan."""
        self._paths = [Path(p) for p in paths]
        self._invalidate()
        return self

    def exclude(self, identities: Iterable[IdentityRef]) -> "ComponentDiscovery":
        """Drop the given identities from every later result."""
        for ref in identities:
            identity = identity_of(ref)
            if identity not in self._excluded:
                self._excluded.append(identity)
        self._invalidate()
        return self

    def discover(self, paths: Optional[Iterable[PathLike]] = None) -> List[str]:
        """
        Scan, extract metadata and resolve the execution order.

        Args:
            paths: Root directories replacing the configured ones

        Returns:
            Ordered list of identities

        Raises:
            DependencyCycleError: If the discovered components form a cycle
        """
        if paths is not None:
            self.set_paths(paths)

        if self.cache is not None:
            cached = self.cache.get(self.cache_key)
            if cached is not None:
                return cached

        order = resolve_order(self.get_declarations())

        if self.cache is not None:
            self.cache.put(self.cache_key, order)

        return order

    def get_declarations(self) -> Dict[str, ComponentDeclaration]:
        """Discovered identity -> declaration map, without resolving."""
        self._ensure_scanned()
        return dict(self._declarations)

    def get_components(self) -> Dict[str, type]:
        """Discovered identity -> loaded class map."""
        self._ensure_scanned()
        return dict(self._components)

    def to_registry(self) -> ComponentRegistry:
        """Fresh registry holding the discovered declarations."""
        return ComponentRegistry(self.get_declarations().values())

    def reset(self) -> "ComponentDiscovery":
        """Forget the last scan so the next call scans again."""
        self._declarations = {}
        self._components = {}
        self._discovered = False
        return self

    def clear_cache(self) -> "ComponentDiscovery":
        """Invalidate the cached order and the last scan."""
        if self.cache is not None:
            self.cache.invalidate(self.cache_key)
        return self.reset()

    def _invalidate(self) -> None:
        # The scanned set changed, so a cached order no longer applies
        self._discovered = False
        if self.cache is not None:
            self.cache.invalidate(self.cache_key)

    def _ensure_scanned(self) -> None:
        if not self._discovered:
            self._scan_paths()
            self._discovered = True

    def _scan_paths(self) -> None:
        self._declarations = {}
        self._components = {}

        for root in self._paths:
            for path in self._candidate_files(root):
                self._scan_file(path)

        logger.debug(
            "Discovered %d component(s) under %d root(s)",
            len(self._declarations),
            len(self._paths),
        )

    def _candidate_files(self, root: Path) -> List[Path]:
        if not root.is_dir():
            return []

        # Module subdirectories first, then the root's own directory
        nested = sorted(root.glob(f"*/{self.directory}/*{self.suffix}"))
        direct = sorted(root.glob(f"{self.directory}/*{self.suffix}"))
        return [p for p in nested + direct if p.is_file()]

    def _scan_file(self, path: Path) -> None:
        try:
            source = self._source_for_file(path)
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Skipping component candidate %s: %s", path, e)
            return

        if source is None:
            logger.debug("No class statement in %s", path)
            return

        identity = source.identity
        if identity in self._excluded or identity in self._declarations:
            return

        try:
            component = self._load_component(source)
            declaration = extract_declaration(
                component, identity, default_priority=self.default_priority
            )
        except DeclarationError as e:
            e.span = ErrorSpan(str(path))
            logger.warning("Skipping component candidate:\n%s", e.format_error())
            return
        except Exception as e:
            logger.warning("Skipping component candidate %s: %s", path, e)
            return

        self._declarations[identity] = declaration
        self._components[identity] = component

    def _source_for_file(self, path: Path) -> Optional[ComponentSource]:
        """
        Derive the identity of a candidate from its text.

        The module name follows the chain of parent directories holding an
        ``__init__.py``; the class name is the first top-level class.
        """
        match = _CLASS_RE.search(path.read_text(encoding="utf-8"))
        if match is None:
            return None

        return ComponentSource(
            path=path,
            module_name=_module_name_for(path),
            class_name=match.group(1),
        )

    def _load_component(self, source: ComponentSource) -> type:
        module = _load_module(source.module_name, source.path)

        component = getattr(module, source.class_name, None)
        if not isinstance(component, type):
            raise ImportError(f"Class {source.class_name} not found in {source.path}")
        return component

    def __repr__(self) -> str:
        return f"ComponentDiscovery(paths={[str(p) for p in self._paths]})"


def _module_name_for(path: Path) -> str:
    parts = [path.stem]
    parent = path.parent
    while (parent / "__init__.py").is_file():
        parts.append(parent.name)
        if parent.parent == parent:
            break
        parent = parent.parent
    return ".".join(reversed(parts))


def _load_module(module_name: str, path: Path):
    existing = sys.modules.get(module_name)
    if existing is not None:
        existing_file = getattr(existing, "__file__", None)
        if existing_file and Path(existing_file).resolve() == path.resolve():
            return existing

    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        raise ImportError(f"Cannot load component module from {path}")

    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except Exception:
        sys.modules.pop(module_name, None)
        raise
    return module
