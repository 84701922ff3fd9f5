"""Configuration Management Package

Looks for config in multiple places (in order):

1. .fairc in current directory (project-specific)
2. .fairc in home directory (global default)
3. Built-in defaults

Config format (JSON):
{
    "provider": "ollama",
    "model": "llama3.2:3b",
    "tools": ["git_status"]
}
"""

import json
import os
import sys
from dataclasses import dataclass, asdict, field
from pathlib import Path
from typing import Optional

VALID_PROVIDERS = {"auto", "claude", "ollama"}

# Environment variable -> config key
ENV_OVERRIDES = {
    "FAI_PROVIDER": "provider",
    "FAI_MODEL": "model",
    "OLLAMA_HOST": "host",
    "FAI_TIMEOUT": "timeout",
}


@dataclass
class Config:
    """User configuration with sensible defaults."""
    provider: str = "auto"
    model: Optional[str] = None
    tagging_model: Optional[str] = None
    host: Optional[str] = None
    timeout: int = 300  # CPU inference can be slow
    instructions: Optional[str] = None
    tools: list[str] = field(default_factory=list)
    stream: bool = False
    strict_tools: bool = False

    def to_dict(self) -> dict:
        return {k: v for k, v in asdict(self).items() if v is not None}

    def validate(self) -> list[str]:
        """Validate config values and return list of warnings.

        Invalid values are replaced with defaults after warning.
        """
        warnings = []
        defaults = Config()

        if self.provider not in VALID_PROVIDERS:
            warnings.append(f"Invalid provider '{self.provider}', using '{defaults.provider}'")
            self.provider = defaults.provider

        if isinstance(self.timeout, bool) or not isinstance(self.timeout, int) or self.timeout <= 0:
            warnings.append(f"Invalid timeout '{self.timeout}', using {defaults.timeout}")
            self.timeout = defaults.timeout

        if not isinstance(self.tools, list) or not all(isinstance(t, str) for t in self.tools):
            warnings.append(f"Invalid tools '{self.tools}', using none")
            self.tools = []

        if not isinstance(self.stream, bool):
            warnings.append(f"Invalid stream '{self.stream}', using {str(defaults.stream).lower()}")
            self.stream = defaults.stream

        if not isinstance(self.strict_tools, bool):
            warnings.append(f"Invalid strict_tools '{self.strict_tools}', using {str(defaults.strict_tools).lower()}")
            self.strict_tools = defaults.strict_tools

        return warnings

    def apply_env(self, environ=None) -> None:
        """Overlay FAI_* environment variables onto this config."""
        environ = os.environ if environ is None else environ
        for var, key in ENV_OVERRIDES.items():
            value = environ.get(var)
            if not value:
                continue
            if key == "timeout":
                if not value.isdigit():
                    print(f"Config warning: Invalid {var} '{value}', ignoring", file=sys.stderr)
                    continue
                value = int(value)
            setattr(self, key, value)
        for warning in self.validate():
            print(f"Config warning: {warning}", file=sys.stderr)

    @classmethod
    def from_dict(cls, data: dict) -> 'Config':
        valid_keys = {f.name for f in cls.__dataclass_fields__.values()}
        filtered = {k: v for k, v in data.items() if k in valid_keys}
        config = cls(**filtered)
        for warning in config.validate():
            print(f"Config warning: {warning}", file=sys.stderr)
        return config


class ConfigManager:
    """Manages loading and saving configuration."""

    CONFIG_FILENAME = ".fairc"

    def __init__(self):
        self._config: Optional[Config] = None
        self._config_path: Optional[Path] = None

    def load(self) -> Config:
        if self._config is not None:
            return self._config

        for path in (Path.cwd() / self.CONFIG_FILENAME, Path.home() / self.CONFIG_FILENAME):
            if path.exists():
                self._config = self._load_from_file(path)
                self._config_path = path
                return self._config

        self._config = Config()
        return self._config

    def _load_from_file(self, path: Path) -> Config:
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise ValueError("expected a JSON object")
            return Config.from_dict(data)
        except (json.JSONDecodeError, ValueError, OSError) as e:
            print(f"Warning: Could not load {path}: {e}", file=sys.stderr)
            return Config()

    def save(self, config: Config, global_config: bool = True) -> Path:
        path = Path.home() / self.CONFIG_FILENAME if global_config else Path.cwd() / self.CONFIG_FILENAME
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(config.to_dict(), f, indent=2)
        return path

    def get_config_path(self) -> Optional[Path]:
        return self._config_path


def load_config() -> tuple[Config, Optional[Path]]:
    """Load config for one CLI invocation. Returns (config, source path)."""
    manager = ConfigManager()
    config = manager.load()
    config.apply_env()
    return config, manager.get_config_path()


__all__ = [
    "Config",
    "ConfigManager",
    "load_config",
    "VALID_PROVIDERS",
    "ENV_OVERRIDES",
]
