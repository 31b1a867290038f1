"""Configuration management for WakaLogger."""

import json
import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Mapping, Optional

from platformdirs import user_config_dir, user_log_dir

__all__ = [
    "Config",
    "Credentials",
    "ConfigMissingError",
    "GistSettings",
    "SyncSettings",
    "WakaTimeSettings",
    "setup_logging",
    "DEFAULT_WAKATIME_URL",
    "DEFAULT_GIST_URL",
    "DEFAULT_GIST_FILENAME",
    "DEFAULT_LOOKBACK_DAYS",
]

logger = logging.getLogger(__name__)

APP_NAME = "WakaLogger"
APP_AUTHOR = "WakaLogger"

# API endpoints
DEFAULT_WAKATIME_URL = "https://wakatime.com/api/v1"
DEFAULT_GIST_URL = "https://api.github.com/gists"
DEFAULT_GIST_FILENAME = "wakalogger.json"

# Sync settings
DEFAULT_LOOKBACK_DAYS = 15  # first run starts this many days back
DEFAULT_TIMEOUT = 30  # seconds
DEFAULT_INTERVAL_HOURS = 24

# Environment variables
ENV_WAKATIME_USERNAME = "WAKATIME_USERNAME"
ENV_WAKATIME_API_KEY = "WAKATIME_API_KEY"
ENV_GITHUB_USERNAME = "GITHUB_USERNAME"
ENV_GITHUB_PASSWORD = "GITHUB_PASSWORD"
ENV_GIST_ID = "WAKALOGGER_GIST_ID"


class ConfigMissingError(Exception):
    """A required setting or credential is not available."""

    def __init__(self, missing: list[str]):
        self.missing = missing
        super().__init__(f"Missing required configuration: {', '.join(missing)}")


@dataclass
class WakaTimeSettings:
    """WakaTime API settings."""

    base_url: str = DEFAULT_WAKATIME_URL


@dataclass
class GistSettings:
    """Where the aggregate log lives."""

    base_url: str = DEFAULT_GIST_URL
    gist_id: Optional[str] = None
    filename: str = DEFAULT_GIST_FILENAME
    description: str = "WakaLogger logs"


@dataclass
class SyncSettings:
    """Sync configuration."""

    lookback_days: int = DEFAULT_LOOKBACK_DAYS
    timeout: int = DEFAULT_TIMEOUT
    interval_hours: int = DEFAULT_INTERVAL_HOURS


@dataclass
class Config:
    """Main configuration object."""

    wakatime: WakaTimeSettings = field(default_factory=WakaTimeSettings)
    gist: GistSettings = field(default_factory=GistSettings)
    sync: SyncSettings = field(default_factory=SyncSettings)
    debug_mode: bool = False
    path: Optional[Path] = field(default=None, repr=False, compare=False)
    writable: bool = field(default=True, repr=False, compare=False)

    @classmethod
    def get_config_dir(cls) -> Path:
        """Get the configuration directory path."""
        return Path(user_config_dir(APP_NAME, APP_AUTHOR))

    @classmethod
    def get_log_dir(cls) -> Path:
        """Get the log directory path."""
        return Path(user_log_dir(APP_NAME, APP_AUTHOR))

    @classmethod
    def get_config_file(cls) -> Path:
        """Get the config file path."""
        return cls.get_config_dir() / "config.json"

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "Config":
        """Load config from file, or return defaults.

        When an existing file cannot be read the defaults are returned with
        ``writable`` cleared, so :meth:`save` will not replace the file.
        """
        config_file = path or cls.get_config_file()
        if config_file.exists():
            try:
                with open(config_file, "r") as f:
                    data = json.load(f)
                if not isinstance(data, dict):
                    raise ValueError("config file must contain a JSON object")
                config = cls._from_dict(data)
                config.path = config_file
                return config
            except (OSError, ValueError, TypeError) as e:
                logger.warning(f"Failed to load config: {e}, using defaults")
                return cls(path=config_file, writable=False)
        return cls(path=config_file)

    @classmethod
    def _from_dict(cls, data: dict) -> "Config":
        """Create Config from dictionary."""
        wakatime_data = data.pop("wakatime", {})
        gist_data = data.pop("gist", {})
        sync_data = data.pop("sync", {})

        return cls(
            wakatime=WakaTimeSettings(**wakatime_data) if wakatime_data else WakaTimeSettings(),
            gist=GistSettings(**gist_data) if gist_data else GistSettings(),
            sync=SyncSettings(**sync_data) if sync_data else SyncSettings(),
            debug_mode=bool(data.get("debug_mode", False)),
        )

    def to_dict(self) -> dict:
        data = asdict(self)
        data.pop("path", None)
        data.pop("writable", None)
        return data

    def save(self) -> None:
        """Save config to file."""
        config_file = self.path or self.get_config_file()
        config_file.parent.mkdir(parents=True, exist_ok=True)

        with open(config_file, "w") as f:
            json.dump(self.to_dict(), f, indent=2)
        logger.info(f"Config saved to {config_file}")

    def resolve_gist_id(self, environ: Mapping[str, str] = os.environ) -> Optional[str]:
        """The gist to use: environment first, then the config file."""
        return environ.get(ENV_GIST_ID) or self.gist.gist_id or None


@dataclass
class Credentials:
    """The four secrets a run needs."""

    wakatime_username: str
    wakatime_api_key: str
    github_username: str
    github_password: str

    FIELDS = {
        "wakatime_username": ENV_WAKATIME_USERNAME,
        "wakatime_api_key": ENV_WAKATIME_API_KEY,
        "github_username": ENV_GITHUB_USERNAME,
        "github_password": ENV_GITHUB_PASSWORD,
    }

    def to_dict(self) -> dict:
        return {name: getattr(self, name) for name in self.FIELDS}

    @classmethod
    def from_dict(cls, data: Mapping[str, str]) -> "Credentials":
        return cls(**{name: data[name] for name in cls.FIELDS})

    @classmethod
    def resolve(
        cls,
        environ: Mapping[str, str] = os.environ,
        stored: Optional["Credentials"] = None,
    ) -> "Credentials":
        """Combine environment variables with stored credentials.

        Each value comes from its environment variable when set, otherwise
        from ``stored`` (usually the system keychain).

        Raises:
            ConfigMissingError: If any value is still missing
        """
        values = {}
        missing = []
        for name, env_var in cls.FIELDS.items():
            value = environ.get(env_var) or (getattr(stored, name) if stored else "")
            if not value:
                missing.append(env_var)
            values[name] = value
        if missing:
            raise ConfigMissingError(missing)
        return cls(**values)


def setup_logging(debug: bool = False) -> None:
    """Configure logging."""
    log_dir = Config.get_log_dir()
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "wakalogger.log"

    level = logging.DEBUG if debug else logging.INFO
    format_str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=level,
        format=format_str,
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler(),
        ],
    )

    # Reduce noise from libraries
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("requests").setLevel(logging.WARNING)
    logging.getLogger("apscheduler").setLevel(logging.WARNING)
