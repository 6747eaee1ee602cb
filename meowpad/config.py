"""
Configuration management for meowpad.

Provides a small hierarchical configuration with sensible defaults, read
from ``$XDG_CONFIG_HOME/meowpad/config.toml`` (``~/.config/meowpad`` when
the variable is unset). The resolved values are handed to ``Database`` and
``Archive`` explicitly; nothing below the CLI reads configuration itself.
"""
import os
import tomli
import tomli_w
from pathlib import Path
from typing import Any, Dict, Optional
from dataclasses import dataclass, field, asdict

from meowpad import __version__
from meowpad.errors import MeowpadError

APP_NAME = "meowpad"
ENV_PREFIX = "MEOWPAD_"


def _xdg_dir(variable: str, fallback: str) -> Path:
    value = os.environ.get(variable)
    if value:
        return Path(value).expanduser()
    return Path.home() / fallback


def user_config_path() -> Path:
    """Location of the user configuration file."""
    return _xdg_dir("XDG_CONFIG_HOME", ".config") / APP_NAME / "config.toml"


def default_database_path() -> Path:
    """Platform data directory location of the archive."""
    return _xdg_dir("XDG_DATA_HOME", ".local/share") / APP_NAME / f"{APP_NAME}.db"


@dataclass
class MeowpadConfig:
    """
    meowpad configuration with sensible defaults.

    Configuration hierarchy (highest to lowest priority):
    1. Command-line arguments (--db)
    2. Environment variables (MEOWPAD_*)
    3. Explicit config file (--config)
    4. User config file
    5. Defaults
    """

    # Database settings
    database: str = field(default_factory=lambda: str(default_database_path()))
    database_echo: bool = field(default=False)

    # Network settings
    fetch_content: bool = field(default=True)
    fetch_timeout: int = field(default=5)  # seconds
    user_agent: str = field(default=f"{APP_NAME}/{__version__}")

    # Advanced
    log_level: str = field(default="WARNING")

    @classmethod
    def load(cls, config_file: Optional[Path] = None) -> "MeowpadConfig":
        """
        Load configuration from files and environment.

        Args:
            config_file: Specific config file to load; unlike the user file it
                must exist

        Returns:
            Merged configuration object
        """
        config = cls()

        user_path = user_config_path()
        if user_path.exists():
            config._merge(cls._load_toml(user_path))

        if config_file is not None:
            config_file = Path(config_file).expanduser()
            if not config_file.exists():
                raise MeowpadError(f"Unable to open config file at {config_file}",
                                   operation="config", subject=str(config_file))
            config._merge(cls._load_toml(config_file))

        config._apply_env_vars()
        config._expand_paths()
        return config

    @staticmethod
    def _load_toml(path: Path) -> Dict[str, Any]:
        """Load TOML configuration file."""
        try:
            with open(path, "rb") as f:
                return tomli.load(f)
        except tomli.TOMLDecodeError as e:
            raise MeowpadError(f"Unable to parse config file at {path}: {e}",
                               operation="config", subject=str(path)) from e

    def _merge(self, data: Dict[str, Any]):
        """Merge configuration data into this instance."""
        for key, value in data.items():
            if hasattr(self, key):
                setattr(self, key, value)

    def _apply_env_vars(self):
        """Apply environment variables with MEOWPAD_ prefix."""
        for key, value in os.environ.items():
            if key.startswith(ENV_PREFIX):
                config_key = key[len(ENV_PREFIX):].lower()
                if hasattr(self, config_key):
                    current_value = getattr(self, config_key)
                    if isinstance(current_value, bool):
                        setattr(self, config_key, value.lower() in ("true", "1", "yes"))
                    elif isinstance(current_value, int):
                        try:
                            setattr(self, config_key, int(value))
                        except ValueError as e:
                            raise MeowpadError(f"{key} must be a whole number, got {value!r}",
                                               operation="config", subject=key) from e
                    else:
                        setattr(self, config_key, value)

    def _expand_paths(self):
        """Expand ~ and environment variables in the database path."""
        self.database = os.path.expanduser(os.path.expandvars(str(self.database)))

    def save(self, path: Optional[Path] = None) -> Path:
        """
        Save current configuration to TOML file.

        Args:
            path: Path to save to (defaults to the user config file)
        """
        if path is None:
            path = user_config_path()

        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "wb") as f:
            tomli_w.dump(asdict(self), f)
        return path

    def get_database_path(self) -> Path:
        """Get the resolved database path."""
        return Path(self.database)


# Global configuration instance
_config: Optional[MeowpadConfig] = None


def get_config(reload: bool = False, config_file: Optional[Path] = None) -> MeowpadConfig:
    """
    Get the global configuration instance.

    Args:
        reload: Force reload configuration from files
        config_file: Specific config file to load

    Returns:
        Global configuration instance
    """
    global _config
    if _config is None or reload or config_file is not None:
        _config = MeowpadConfig.load(config_file)
    return _config


def init_config(database: Optional[str] = None, config_file: Optional[Path] = None,
                **kwargs) -> MeowpadConfig:
    """
    Initialize configuration with command-line overrides.

    Args:
        database: Database path override
        config_file: Explicit config file
        **kwargs: Other configuration overrides

    Returns:
        Configured instance
    """
    config = get_config(config_file=config_file)

    if database:
        config.database = os.path.expanduser(database)

    for key, value in kwargs.items():
        if hasattr(config, key) and value is not None:
            setattr(config, key, value)

    return config
