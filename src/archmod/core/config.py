"""Configuration resolver with 4-level priority.

Priority (highest to lowest):
1. Explicit overrides (passed by the caller)
2. Environment variables (ARCHMOD_*)
3. Config files (user > system)
4. Defaults
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from archmod.core.errors import ConfigError

ALLOWED_LOGGING_LEVELS = frozenset({"quiet", "normal", "verbose", "debug"})
DEFAULT_LOGGING_LEVEL = "normal"

ENV_PREFIX = "ARCHMOD_"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass
class ConfigSource:
    """Represents where a config value came from."""

    value: Any
    source: str  # 'cli' | 'env' | 'user_config' | 'system_config' | 'default'


@dataclass(frozen=True)
class LoggingPolicy:
    """Resolved, immutable logging policy."""

    level_name: str  # quiet | normal | verbose | debug
    emit_info: bool
    emit_verbose: bool
    emit_debug: bool
    source: ConfigSource


class ConfigResolver:
    """Resolve configuration with strict 4-level priority.

    Example:
        resolver = ConfigResolver(
            cli_args={'archive': {'chunk_size': 1 << 20}},
            user_config_path=Path('~/.config/archmod/config.yaml'),
        )

        chunk, source = resolver.resolve('archive.chunk_size')
        # chunk = 1048576, source = 'cli'
    """

    def __init__(
        self,
        cli_args: dict[str, Any] | None = None,
        user_config_path: Path | None = None,
        system_config_path: Path | None = None,
        defaults: dict[str, Any] | None = None,
    ) -> None:
        """Initialize config resolver.

        Args:
            cli_args: Explicit overrides (highest priority), nested or dotted keys
            user_config_path: Path to user config file
            system_config_path: Path to system config file
            defaults: Default values (lowest priority)
        """
        self.cli_args = cli_args or {}
        self.user_config_path = user_config_path or Path.home() / ".config/archmod/config.yaml"
        self.system_config_path = system_config_path or Path("/etc/archmod/config.yaml")
        self.defaults = defaults if defaults is not None else self._default_config()

        # Cache loaded configs
        self._user_config: dict[str, Any] | None = None
        self._system_config: dict[str, Any] | None = None

    def resolve(self, key: str) -> tuple[Any, str]:
        """Resolve config value with priority.

        Args:
            key: Config key (supports dot notation: 'archive.chunk_size')

        Returns:
            (value, source) tuple

        Raises:
            ConfigError: If key not found in any source
        """
        value = self._from_cli(key)
        if value is not None:
            return value, "cli"

        value = self._from_env(key)
        if value is not None:
            return value, "env"

        value = self._get_nested(self._get_user_config(), key)
        if value is not None:
            return value, "user_config"

        value = self._get_nested(self._get_system_config(), key)
        if value is not None:
            return value, "system_config"

        value = self._get_nested(self.defaults, key)
        if value is not None:
            return value, "default"

        raise ConfigError(f"Config key '{key}' not found in any source")

    def resolve_str(self, key: str) -> str:
        value, _src = self.resolve(key)
        if not isinstance(value, str):
            raise ConfigError(f"Config key '{key}' must be a string, got {type(value).__name__}")
        if value.strip() == "":
            raise ConfigError(f"Config key '{key}' must not be empty")
        return value

    def resolve_int(self, key: str, *, minimum: int | None = None) -> int:
        """Resolve an int; numeric strings (as env vars deliver them) are accepted."""
        value, _src = self.resolve(key)
        if isinstance(value, bool):
            raise ConfigError(f"Config key '{key}' must be an int")
        if isinstance(value, str) and value.strip().lstrip("-").isdigit():
            value = int(value.strip())
        if not isinstance(value, int):
            raise ConfigError(f"Config key '{key}' must be an int")
        if minimum is not None and value < minimum:
            raise ConfigError(f"Config key '{key}' must be >= {minimum}, got {value}")
        return value

    def resolve_bool(self, key: str) -> bool:
        """Resolve a bool; 'true'/'false'/'1'/'0'/'yes'/'no' strings are accepted."""
        value, _src = self.resolve(key)
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            s = value.strip().lower()
            if s in _TRUE_VALUES:
                return True
            if s in _FALSE_VALUES:
                return False
        raise ConfigError(f"Config key '{key}' must be a bool, got {value!r}")

    def resolve_logging_policy(self) -> LoggingPolicy:
        """Resolve and validate logging.level into a policy.

        Side-effect free; apply it with archmod.core.logging.apply_logging_policy.
        """
        key = "logging.level"
        try:
            value, source = self.resolve(key)
        except ConfigError:
            value, source = DEFAULT_LOGGING_LEVEL, "default"

        if not isinstance(value, str):
            raise ConfigError(f"Config key '{key}' must be a string, got {type(value).__name__}")
        level = value.strip().lower()
        if level not in ALLOWED_LOGGING_LEVELS:
            allowed = ", ".join(sorted(ALLOWED_LOGGING_LEVELS))
            raise ConfigError(f"Invalid '{key}': {value!r}. Allowed values: {allowed}")

        return LoggingPolicy(
            level_name=level,
            emit_info=level != "quiet",
            emit_verbose=level in ("verbose", "debug"),
            emit_debug=level == "debug",
            source=ConfigSource(value=level, source=source),
        )

    def _from_cli(self, key: str) -> Any | None:
        # Overrides may be given flat ('archive.fsync') or nested.
        if key in self.cli_args:
            return self.cli_args[key]
        return self._get_nested(self.cli_args, key)

    def _from_env(self, key: str) -> Any | None:
        """Read ARCHMOD_<KEY> where dots become underscores.

        'archive.chunk_size' -> ARCHMOD_ARCHIVE_CHUNK_SIZE
        """
        return os.environ.get(ENV_PREFIX + key.upper().replace(".", "_"))

    def _get_user_config(self) -> dict[str, Any]:
        if self._user_config is None:
            self._user_config = self._load_yaml(self.user_config_path)
        return self._user_config

    def _get_system_config(self) -> dict[str, Any]:
        if self._system_config is None:
            self._system_config = self._load_yaml(self.system_config_path)
        return self._system_config

    @staticmethod
    def _load_yaml(path: Path) -> dict[str, Any]:
        """Parse a YAML config file; a missing file is an empty config."""
        if not path.is_file():
            return {}
        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(
                f"Failed to load config from {path}: {e}",
                "Fix the YAML syntax or remove the file",
            ) from e
        return data if isinstance(data, dict) else {}

    @staticmethod
    def _get_nested(data: dict[str, Any], key: str) -> Any | None:
        """Walk a dotted key through nested mappings; None when any part is missing."""
        current: Any = data
        for part in key.split("."):
            if not isinstance(current, dict) or part not in current:
                return None
            current = current[part]
        return current

    @staticmethod
    def _default_config() -> dict[str, Any]:
        """Default configuration."""
        return {
            "archive": {
                "chunk_size": 64 * 1024,
                "default_compression": "deflated",
                "temp_suffix": ".tmp",
                "fsync": True,
                "verify_after_write": False,
                "debug": {
                    "include_trace": False,
                    "include_stack": False,
                },
            },
            "logging": {
                "level": DEFAULT_LOGGING_LEVEL,
                "color": True,
            },
            "diagnostics": {
                "enabled": False,
            },
        }
