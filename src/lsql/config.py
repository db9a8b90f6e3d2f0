"""Configuration management for lsql."""

import json
import os
from collections.abc import Callable
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

from .errors import ConfigError

DEFAULT_HOME = Path.home() / ".lsql"

REMOTE_ERROR_POLICIES = ("exit", "report")


def _to_bool(value: str) -> bool:
    return value.lower() in ("true", "1", "yes")


@dataclass
class ConnectionConfig:
    """Where the remote service lives and how to authenticate against it."""

    host: str = "http://localhost:9991"
    token: str = ""
    debug: bool = False
    insecure: bool = False  # skip TLS certificate verification
    timeout: float = 30.0  # seconds, validation calls only

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ConnectionConfig":
        """Create ConnectionConfig from dictionary."""
        return cls(**{k: v for k, v in data.items() if k in cls.__annotations__})

    @property
    def base_url(self) -> str:
        """Host with any trailing slash removed."""
        return self.host.rstrip("/")


@dataclass
class ShellConfig:
    """Settings of the interactive shell and live queries."""

    history_path: str | None = None  # None means ~/.lsql/history
    stats_interval: int = 2
    on_remote_error: str = "report"
    prompt: str = "lenses-sql> "
    continuation_prompt: str = "......... > "

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ShellConfig":
        """Create ShellConfig from dictionary."""
        return cls(**{k: v for k, v in data.items() if k in cls.__annotations__})

    def resolved_history_path(self) -> Path:
        """Path of the history file, with the default applied."""
        if self.history_path:
            return Path(self.history_path).expanduser()
        return DEFAULT_HOME / "history"


@dataclass
class LsqlConfig:
    """Main configuration for lsql."""

    connection: ConnectionConfig = field(default_factory=ConnectionConfig)
    shell: ShellConfig = field(default_factory=ShellConfig)

    @classmethod
    def config_paths(cls) -> list[Path]:
        """Config files searched in order; the first one found wins."""
        return [DEFAULT_HOME / "config.json", Path.cwd() / ".lsql.json", Path.cwd() / "lsql.config.json"]

    @classmethod
    def load(cls) -> "LsqlConfig":
        """Load configuration from various sources."""
        config = cls()

        # 1. Load from config file if exists
        for config_path in cls.config_paths():
            if config_path.exists():
                try:
                    with open(config_path) as f:
                        data = json.load(f)
                except (OSError, json.JSONDecodeError) as e:
                    raise ConfigError(f"cannot read config file {config_path}: {e}") from e
                config = cls._merge_config(config, data)
                break

        # 2. Override with environment variables
        env_mappings: dict[str, str | tuple[str, Callable[[str], Any]]] = {
            "LSQL_HOST": "connection.host",
            "LSQL_TOKEN": "connection.token",
            "LSQL_DEBUG": ("connection.debug", _to_bool),
            "LSQL_INSECURE": ("connection.insecure", _to_bool),
            "LSQL_TIMEOUT": ("connection.timeout", float),
            "LSQL_HISTORY_PATH": "shell.history_path",
            "LSQL_STATS_INTERVAL": ("shell.stats_interval", int),
            "LSQL_ON_REMOTE_ERROR": "shell.on_remote_error",
        }

        for env_var, config_mapping in env_mappings.items():
            value = os.environ.get(env_var)
            if value is not None:
                if isinstance(config_mapping, tuple):
                    path, converter = config_mapping
                    try:
                        converted_value = converter(value)
                    except ValueError as e:
                        raise ConfigError(f"invalid value for {env_var}: {value!r}") from e
                    config = cls._set_nested(config, path, converted_value)
                else:
                    config = cls._set_nested(config, config_mapping, value)

        config.validate()
        return config

    @classmethod
    def _merge_config(cls, config: "LsqlConfig", data: dict[str, Any]) -> "LsqlConfig":
        """Merge configuration data into config object."""
        if isinstance(data.get("connection"), dict):
            config.connection = ConnectionConfig.from_dict(data["connection"])
        if isinstance(data.get("shell"), dict):
            config.shell = ShellConfig.from_dict(data["shell"])
        return config

    @classmethod
    def _set_nested(cls, config: "LsqlConfig", path: str, value: Any) -> "LsqlConfig":
        """Set a nested attribute using dot notation."""
        parts = path.split(".")
        obj = config
        for part in parts[:-1]:
            obj = getattr(obj, part)
        setattr(obj, parts[-1], value)
        return config

    def validate(self) -> None:
        """Reject settings no command can work with."""
        if not self.connection.host:
            raise ConfigError("host is not configured")
        if self.shell.on_remote_error not in REMOTE_ERROR_POLICIES:
            raise ConfigError(f"on_remote_error must be one of {', '.join(REMOTE_ERROR_POLICIES)}, got {self.shell.on_remote_error!r}")

    def save(self, path: Path | None = None) -> None:
        """Save configuration to file."""
        if path is None:
            DEFAULT_HOME.mkdir(exist_ok=True)
            path = DEFAULT_HOME / "config.json"

        with open(path, "w") as f:
            json.dump(self.to_dict(), f, indent=2)

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to dictionary."""
        return asdict(self)


# Global config instance
_config: LsqlConfig | None = None


def get_config() -> LsqlConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = LsqlConfig.load()
    return _config


def reload_config() -> LsqlConfig:
    """Reload configuration from sources."""
    global _config
    _config = LsqlConfig.load()
    return _config
