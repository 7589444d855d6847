"""
Config system - layered configuration for discovery, caching and runs.
"""

from typing import Any, Dict, List, Optional
from dataclasses import dataclass, field
from pathlib import Path
import os
import json

from .cache.core import CacheConfig
from .discovery import DEFAULT_DIRECTORY, DEFAULT_SUFFIX

DEFAULT_CONFIG_FILE = "sequent.yaml"


class ConfigError(Exception):
    """Raised when configuration validation fails."""
    pass


@dataclass
class SequentConfig:
    """
    Typed view over the merged configuration.

    Attributes:
        paths: Root directories to scan
        exclude: Identities dropped from discovery
        directory: Directory below each module holding components
        suffix: File suffix of component modules
        auto_discover: Scan the filesystem; when False, ``components`` is
            the declaration set
        components: Manual declarations, same shape as
            ``ComponentRegistry.register_many``
        cache: Resolution cache settings
    """

    paths: List[str] = field(default_factory=list)
    exclude: List[str] = field(default_factory=list)
    directory: str = DEFAULT_DIRECTORY
    suffix: str = DEFAULT_SUFFIX
    auto_discover: bool = True
    components: Dict[str, Any] = field(default_factory=dict)
    cache: CacheConfig = field(default_factory=CacheConfig)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "paths": list(self.paths),
            "exclude": list(self.exclude),
            "directory": self.directory,
            "suffix": self.suffix,
            "auto_discover": self.auto_discover,
            "components": dict(self.components),
            "cache": self.cache.to_dict(),
        }


class ConfigLoader:
    """
    Loads and merges configuration from multiple sources with precedence:
    overrides > environment variables > .env file > config files > defaults
    """

    def __init__(self, env_prefix: str = "SEQUENT_"):
        self.env_prefix = env_prefix
        self.config_data: Dict[str, Any] = {}

    @classmethod
    def load(
        cls,
        paths: Optional[List[str]] = None,
        env_prefix: str = "SEQUENT_",
        env_file: Optional[str] = None,
        overrides: Optional[Dict[str, Any]] = None,
    ) -> "ConfigLoader":
        """
        Load configuration from multiple sources.

        Merge order (later overrides earlier):
        1. Config files (YAML or JSON); ``sequent.yaml`` when none given
        2. ``.env`` file, prefixed keys only
        3. Environment variables (``SEQUENT_*`` prefix, ``__`` nests)
        4. Manual overrides

        Args:
            paths: List of config file paths (glob patterns supported)
            env_prefix: Prefix for environment variables
            env_file: Path to .env file
            overrides: Manual overrides (highest precedence)

        Returns:
            Configured ConfigLoader instance

        Raises:
            ConfigError: If a config file cannot be parsed
        """
        loader = cls(env_prefix=env_prefix)

        if not paths and Path(DEFAULT_CONFIG_FILE).exists():
            paths = [DEFAULT_CONFIG_FILE]

        for pattern in paths or []:
            loader._load_from_files(pattern)

        if env_file:
            loader._load_env_file(env_file)

        loader._load_from_env()

        if overrides:
            loader._merge_dict(loader.config_data, overrides)

        return loader

    def _load_from_files(self, pattern: str):
        """Load config from JSON or YAML files."""
        from glob import glob

        for path_str in sorted(glob(pattern)):
            path = Path(path_str)

            if path.suffix == ".json":
                self._load_json_file(path)
            elif path.suffix in (".yaml", ".yml"):
                self._load_yaml_file(path)
            else:
                raise ConfigError(f"Unsupported config file format: {path}")

    def _load_json_file(self, path: Path):
        """Load config from JSON file."""
        with open(path) as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                raise ConfigError(f"Invalid JSON in {path}: {e}") from e
        self._merge_file_data(path, data)

    def _load_yaml_file(self, path: Path):
        """Load config from YAML file."""
        import yaml

        with open(path) as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigError(f"Invalid YAML in {path}: {e}") from e
        self._merge_file_data(path, data)

    def _merge_file_data(self, path: Path, data: Any):
        if not data:
            return
        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a mapping at the top level")
        self._merge_dict(self.config_data, data)

    def _load_env_file(self, path: str):
        """Load prefixed keys from a .env file."""
        from dotenv import dotenv_values

        env_path = Path(path)
        if not env_path.exists():
            return

        for key, value in dotenv_values(env_path).items():
            if value is not None and key.startswith(self.env_prefix):
                self._set_nested(key, value)

    def _load_from_env(self):
        """Load config from environment variables."""
        for key, value in os.environ.items():
            if key.startswith(self.env_prefix):
                self._set_nested(key, value)

    def _set_nested(self, key: str, value: str):
        """Convert SEQUENT_CACHE__MAX_SIZE to nested dict."""
        key = key[len(self.env_prefix):]

        # Double underscore separates nesting levels
        parts = key.lower().split("__")

        current = self.config_data
        for part in parts[:-1]:
            if not isinstance(current.get(part), dict):
                current[part] = {}
            current = current[part]

        current[parts[-1]] = self._parse_value(value)

    def _parse_value(self, value: str) -> Any:
        """Parse string value to appropriate type."""
        if value.lower() in ("true", "yes", "on"):
            return True
        if value.lower() in ("false", "no", "off"):
            return False

        try:
            if "." in value:
                return float(value)
            return int(value)
        except ValueError:
            pass

        if value.startswith(("{", "[")):
            try:
                return json.loads(value)
            except json.JSONDecodeError:
                pass

        return value

    def _merge_dict(self, target: dict, source: dict):
        """Deep merge source into target."""
        for key, value in source.items():
            if key in target and isinstance(target[key], dict) and isinstance(value, dict):
                self._merge_dict(target[key], value)
            else:
                target[key] = value

    def get(self, path: str, default: Any = None) -> Any:
        """Get config value by dot-separated path."""
        parts = path.split(".")
        current = self.config_data

        for part in parts:
            if isinstance(current, dict) and part in current:
                current = current[part]
            else:
                return default

        return current

    def to_dict(self) -> dict:
        return dict(self.config_data)

    def to_config(self) -> SequentConfig:
        """
        Build the typed configuration.

        Raises:
            ConfigError: If a value has the wrong type
        """
        defaults = SequentConfig()
        cache_defaults = defaults.cache

        cache_data = self.get("cache", {})
        if not isinstance(cache_data, dict):
            raise ConfigError("Config field 'cache' must be a mapping")

        cache = CacheConfig(
            enabled=self._typed("cache.enabled", bool, cache_defaults.enabled),
            backend=self._typed("cache.backend", str, cache_defaults.backend),
            default_ttl=self._typed(
                "cache.default_ttl", int, cache_defaults.default_ttl, optional=True
            ),
            max_size=self._typed("cache.max_size", int, cache_defaults.max_size),
            key=self._typed("cache.key", str, cache_defaults.key),
            key_prefix=self._typed("cache.key_prefix", str, cache_defaults.key_prefix),
            redis_url=self._typed("cache.redis_url", str, cache_defaults.redis_url),
        )

        return SequentConfig(
            paths=self._string_list("paths"),
            exclude=self._string_list("exclude"),
            directory=self._typed("directory", str, defaults.directory),
            suffix=self._typed("suffix", str, defaults.suffix),
            auto_discover=self._typed("auto_discover", bool, defaults.auto_discover),
            components=self._typed("components", dict, defaults.components),
            cache=cache,
        )

    def _typed(self, path: str, expected: type, default: Any, optional: bool = False) -> Any:
        value = self.get(path, default)
        if value is None and optional:
            return None
        # bool is an int subclass; keep the two apart
        if expected is int and isinstance(value, bool):
            raise ConfigError(f"Config field '{path}' expected int, got bool")
        if not isinstance(value, expected):
            raise ConfigError(
                f"Config field '{path}' expected {expected.__name__}, "
                f"got {type(value).__name__}"
            )
        return value

    def _string_list(self, path: str) -> List[str]:
        value = self.get(path, [])
        # A single string is accepted, e.g. SEQUENT_PATHS=modules
        if isinstance(value, str):
            return [value]
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            raise ConfigError(f"Config field '{path}' must be a list of strings")
        return list(value)
