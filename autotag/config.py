"""
Configuration management for autotag.

Two layers live here:

- ``ExtractionMethod`` and ``ExtractionConfig``: the immutable value passed
  into every extraction call. The extraction core never looks anywhere else
  for settings.
- ``AutotagConfig``: host-side settings with sensible defaults, loaded from
  global (~/.config/autotag/config.toml) and local (autotag.toml) files and
  ``AUTOTAG_*`` environment variables. The CLI and HTTP server resolve it
  once and hand an ``ExtractionConfig`` down.
"""
import os
import logging
import tomli
import tomli_w
from enum import Enum
from pathlib import Path
from typing import Dict, Any, Mapping, Optional
from dataclasses import dataclass, field, asdict

from .constants import (
    DEFAULT_COMPLETION_ENDPOINT,
    DEFAULT_COMPLETION_MAX_TOKENS,
    DEFAULT_COMPLETION_MODEL,
    DEFAULT_COMPLETION_TEMPERATURE,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_SERVER_HOST,
    DEFAULT_SERVER_PORT,
)

logger = logging.getLogger(__name__)


class ConfigError(ValueError):
    """Raised when a configuration value cannot be accepted."""
    pass


class ExtractionMethod(Enum):
    """Tag extraction strategies."""
    BUILTIN = "builtin"
    REMOTE = "remote"
    UNSUPPORTED = "unsupported"

    @classmethod
    def parse(cls, value, strict: bool = False) -> "ExtractionMethod":
        """
        Turn a stored method name into an ExtractionMethod.

        Accepts the legacy names ``chatgpt`` and ``openai`` for the remote
        method. Unknown names map to UNSUPPORTED, or raise ConfigError when
        ``strict`` is set.
        """
        if isinstance(value, cls):
            return value
        if value is None:
            return cls.BUILTIN

        name = str(value).strip().lower()
        if not name:
            return cls.BUILTIN
        if name in _METHOD_ALIASES:
            return _METHOD_ALIASES[name]
        for member in cls:
            if member.value == name and member is not cls.UNSUPPORTED:
                return member

        if strict:
            raise ConfigError(f"Unsupported extraction method: {value!r}")
        logger.warning(f"Unsupported extraction method {value!r}, no tags will be extracted")
        return cls.UNSUPPORTED

    @property
    def requires_credential(self) -> bool:
        return self is ExtractionMethod.REMOTE


_METHOD_ALIASES = {
    "chatgpt": ExtractionMethod.REMOTE,
    "openai": ExtractionMethod.REMOTE,
}


def _as_bool(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes", "on")
    return bool(value)


@dataclass(frozen=True)
class ExtractionConfig:
    """
    Per-call extraction settings.

    Attributes:
        method: Which extraction strategy to use
        api_key: Credential for the remote strategy ("" when absent)
        auto_apply: Whether suggestions are applied to documents on save
    """
    method: ExtractionMethod = ExtractionMethod.BUILTIN
    api_key: str = ""
    auto_apply: bool = False

    def __post_init__(self):
        if not isinstance(self.method, ExtractionMethod):
            raise TypeError(
                f"method must be an ExtractionMethod, got {type(self.method).__name__}"
            )
        if self.api_key is None:
            object.__setattr__(self, "api_key", "")
        elif not isinstance(self.api_key, str):
            raise TypeError(f"api_key must be a string, got {type(self.api_key).__name__}")
        else:
            object.__setattr__(self, "api_key", self.api_key.strip())
        object.__setattr__(self, "auto_apply", bool(self.auto_apply))

    @classmethod
    def from_settings(cls, settings: Mapping[str, Any], strict: bool = False) -> "ExtractionConfig":
        """
        Build a config from loosely typed stored settings.

        Understands ``method``, ``api_key`` and ``auto_apply`` (or the legacy
        ``auto_add_tags`` flag stored as 1/0).

        Args:
            settings: Mapping of stored settings
            strict: Raise ConfigError on an unknown method instead of
                    mapping it to UNSUPPORTED
        """
        auto_apply = settings.get("auto_apply", settings.get("auto_add_tags", False))
        api_key = settings.get("api_key") or ""
        return cls(
            method=ExtractionMethod.parse(settings.get("method"), strict=strict),
            api_key=str(api_key),
            auto_apply=_as_bool(auto_apply),
        )

    @property
    def has_credential(self) -> bool:
        return bool(self.api_key)

    def with_method(self, method) -> "ExtractionConfig":
        """Return a copy using a different method."""
        return ExtractionConfig(
            method=ExtractionMethod.parse(method, strict=True),
            api_key=self.api_key,
            auto_apply=self.auto_apply,
        )


@dataclass
class AutotagConfig:
    """
    autotag host configuration with sensible defaults.

    Configuration hierarchy (highest to lowest priority):
    1. Command-line arguments
    2. Environment variables (AUTOTAG_*)
    3. Explicit config file
    4. Local config file (./autotag.toml or ./.autotagrc)
    5. User config file (~/.config/autotag/config.toml)
    6. System defaults
    """

    # Extraction settings
    method: str = field(default="builtin")
    api_key: str = field(default="")
    auto_apply: bool = field(default=False)

    # Remote completion service
    remote_endpoint: str = field(default=DEFAULT_COMPLETION_ENDPOINT)
    remote_model: str = field(default=DEFAULT_COMPLETION_MODEL)
    remote_max_tokens: int = field(default=DEFAULT_COMPLETION_MAX_TOKENS)
    remote_temperature: float = field(default=DEFAULT_COMPLETION_TEMPERATURE)
    remote_timeout: int = field(default=DEFAULT_REQUEST_TIMEOUT)

    # Display settings
    output_format: str = field(default="table")  # table, json, plain
    log_level: str = field(default="INFO")

    # HTTP endpoint
    server_host: str = field(default=DEFAULT_SERVER_HOST)
    server_port: int = field(default=DEFAULT_SERVER_PORT)

    @classmethod
    def user_config_path(cls) -> Path:
        return Path.home() / ".config" / "autotag" / "config.toml"

    @classmethod
    def from_file(cls, path: Path) -> "AutotagConfig":
        """
        Load defaults plus a single config file, without environment overrides.

        Used when editing a file, so overrides are not written back into it.
        """
        config = cls()
        if path.exists():
            config._merge(cls._load_toml(path))
        return config

    @classmethod
    def load(cls, config_file: Optional[Path] = None) -> "AutotagConfig":
        """
        Load configuration from files and environment.

        Args:
            config_file: Specific config file to load (applied after the search)

        Returns:
            Merged configuration object
        """
        config = cls()

        user_config_path = cls.user_config_path()
        if user_config_path.exists():
            config._merge(cls._load_toml(user_config_path))

        local_paths = [
            Path.cwd() / "autotag.toml",
            Path.cwd() / ".autotagrc",
            Path.cwd() / ".autotag" / "config.toml"
        ]

        for path in local_paths:
            if path.exists():
                config._merge(cls._load_toml(path))
                break

        if config_file and config_file.exists():
            config._merge(cls._load_toml(config_file))

        config._apply_env_vars()

        return config

    @staticmethod
    def _load_toml(path: Path) -> Dict[str, Any]:
        """Load TOML configuration file."""
        try:
            with open(path, "rb") as f:
                return tomli.load(f)
        except tomli.TOMLDecodeError as e:
            raise ConfigError(f"Invalid config file {path}: {e}") from e

    def _merge(self, data: Dict[str, Any]):
        """Merge configuration data into this instance."""
        for key, value in data.items():
            if hasattr(self, key):
                setattr(self, key, value)
            else:
                logger.debug(f"Ignoring unknown config key: {key}")

    def _apply_env_vars(self):
        """Apply environment variables with AUTOTAG_ prefix."""
        prefix = "AUTOTAG_"
        for key, value in os.environ.items():
            if key.startswith(prefix):
                config_key = key[len(prefix):].lower()
                if hasattr(self, config_key):
                    self.set_value(config_key, value)

    def set_value(self, key: str, value: str):
        """
        Set a field from its string form, converting to the field's type.

        Raises:
            ConfigError: If the key is unknown or the value does not convert
        """
        if not hasattr(self, key):
            raise ConfigError(f"Unknown config key: {key}")

        current_value = getattr(self, key)
        try:
            # bool before int: bool is an int subclass
            if isinstance(current_value, bool):
                setattr(self, key, _as_bool(value))
            elif isinstance(current_value, int):
                setattr(self, key, int(value))
            elif isinstance(current_value, float):
                setattr(self, key, float(value))
            else:
                setattr(self, key, value)
        except ValueError as e:
            raise ConfigError(f"Invalid value for {key}: {value!r}") from e

    def save(self, path: Optional[Path] = None):
        """
        Save current configuration to TOML file.

        Args:
            path: Path to save to (defaults to user config)
        """
        if path is None:
            path = self.user_config_path()

        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "wb") as f:
            tomli_w.dump(asdict(self), f)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def extraction_config(self) -> ExtractionConfig:
        """Build the immutable per-call extraction config."""
        return ExtractionConfig.from_settings({
            "method": self.method,
            "api_key": self.api_key,
            "auto_apply": self.auto_apply,
        })

    def completion_config(self):
        """Build the remote completion service settings."""
        from .remote import CompletionConfig

        return CompletionConfig(
            endpoint=self.remote_endpoint,
            model=self.remote_model,
            max_tokens=self.remote_max_tokens,
            temperature=self.remote_temperature,
            timeout=float(self.remote_timeout),
        )


# Global host configuration instance
_config: Optional[AutotagConfig] = None


def get_config(reload: bool = False, config_file: Optional[Path] = None) -> AutotagConfig:
    """
    Get the global host configuration instance.

    Args:
        reload: Force reload configuration from files
        config_file: Specific config file to load

    Returns:
        Global configuration instance
    """
    global _config
    if _config is None or reload:
        _config = AutotagConfig.load(config_file)
    return _config


def init_config(config_file: Optional[Path] = None, **kwargs) -> AutotagConfig:
    """
    Initialize configuration with command-line overrides.

    Args:
        config_file: Config file to load before applying overrides
        **kwargs: Other configuration overrides (None values are ignored)

    Returns:
        Configured instance
    """
    config = get_config(reload=config_file is not None, config_file=config_file)

    for key, value in kwargs.items():
        if hasattr(config, key) and value is not None:
            setattr(config, key, value)

    return config
