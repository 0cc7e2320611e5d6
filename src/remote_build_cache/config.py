"""Configuration for the remote build cache.

Settings are read from a TOML file stored in:
- macOS / Linux: ~/.config/remote-build-cache/config.toml (XDG_CONFIG_HOME)
- Windows: %APPDATA%\\remote-build-cache\\config.toml

Environment variables (``RBC_*``) take precedence over the file so that CI
runners can point the cache at a bucket without writing config.
"""

import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import tomllib
import tomli_w

ENV_PREFIX = "RBC_"
APP_DIR_NAME = "remote-build-cache"


@dataclass
class CacheConfig:
    """Configuration for RemoteArtifactCache.

    Attributes:
        bucket: Bucket that holds the cache entries
        credentials: Path to a credential file, empty for the default chain
        refresh_after_seconds: Minimum age of the retention timestamp before
            a load bumps it; 0 disables refreshing
        endpoint_url: S3 endpoint URL, empty for AWS
        region: S3 region, empty for the SDK default
        profile: Credential profile, empty for the default profile
        connect_timeout: Transport connect timeout in seconds
        read_timeout: Transport read timeout in seconds
    """

    # Cache
    bucket: str = ""
    credentials: str = ""
    refresh_after_seconds: int = 0

    # S3 transport
    endpoint_url: str = ""
    region: str = ""
    profile: str = ""
    connect_timeout: int = 10
    read_timeout: int = 60

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """Check value ranges.

        Raises:
            ValueError: If a numeric setting is out of range
        """
        if isinstance(self.refresh_after_seconds, bool) or not isinstance(self.refresh_after_seconds, int):
            raise ValueError(
                f"refresh_after_seconds must be an integer, got {self.refresh_after_seconds!r}"
            )
        if self.refresh_after_seconds < 0:
            raise ValueError(
                f"refresh_after_seconds must be >= 0, got {self.refresh_after_seconds}"
            )
        if self.connect_timeout <= 0 or self.read_timeout <= 0:
            raise ValueError("Timeouts must be positive")

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "CacheConfig":
        """Load configuration from a TOML file, then apply env overrides.

        Args:
            path: Path to config file (defaults to standard location)

        Returns:
            CacheConfig instance with loaded values

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If a value is invalid
        """
        if path is None:
            path = get_config_path()

        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path, "rb") as f:
            data = tomllib.load(f)

        values = {}

        cache = data.get("cache", {})
        for key in ("bucket", "credentials", "refresh_after_seconds"):
            if key in cache:
                values[key] = cache[key]

        s3 = data.get("s3", {})
        for key in ("endpoint_url", "region", "profile", "connect_timeout", "read_timeout"):
            if key in s3:
                values[key] = s3[key]

        values.update(_env_overrides())
        return cls(**values)

    @classmethod
    def from_env(cls) -> "CacheConfig":
        """Build a configuration from defaults and ``RBC_*`` variables only."""
        return cls(**_env_overrides())

    def save(self, path: Optional[Path] = None) -> None:
        """Save configuration to a TOML file.

        Args:
            path: Path to save config (defaults to standard location)
        """
        if path is None:
            path = get_config_path()

        path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            "cache": {
                "bucket": self.bucket,
                "credentials": self.credentials,
                "refresh_after_seconds": self.refresh_after_seconds,
            },
            "s3": {
                "endpoint_url": self.endpoint_url,
                "region": self.region,
                "profile": self.profile,
                "connect_timeout": self.connect_timeout,
                "read_timeout": self.read_timeout,
            },
        }

        with open(path, "wb") as f:
            tomli_w.dump(data, f)

    def get(self, key: str, default: Optional[str] = None):
        """Get a configuration value by attribute name."""
        return getattr(self, key, default)

    def set(self, key: str, value: str) -> None:
        """Set a configuration value from its string form.

        The attribute's current type is preserved.

        Args:
            key: Attribute name
            value: New value as a string

        Raises:
            ValueError: If the key is unknown or the value is invalid
        """
        if key.startswith("_") or not hasattr(self, key):
            raise ValueError(f"Invalid config key: {key}")

        current = getattr(self, key)
        new_value = int(value) if isinstance(current, int) else value
        setattr(self, key, new_value)
        try:
            self.validate()
        except ValueError:
            setattr(self, key, current)
            raise


# Environment variable name -> (attribute, converter)
_ENV_FIELDS = {
    "BUCKET": ("bucket", str),
    "CREDENTIALS": ("credentials", str),
    "REFRESH_AFTER_SECONDS": ("refresh_after_seconds", int),
    "ENDPOINT_URL": ("endpoint_url", str),
    "REGION": ("region", str),
    "PROFILE": ("profile", str),
}


def _env_overrides() -> dict:
    overrides = {}
    for suffix, (attr, convert) in _ENV_FIELDS.items():
        raw = os.environ.get(get_env_var_name(suffix))
        if raw:
            try:
                overrides[attr] = convert(raw)
            except ValueError as e:
                raise ValueError(f"Invalid value for {get_env_var_name(suffix)}: {raw!r}") from e
    return overrides


def get_env_var_name(key: str) -> str:
    """Get the environment variable name for a config key.

    Args:
        key: Configuration key (e.g. "bucket" or "refresh_after_seconds")

    Returns:
        Environment variable name
    """
    return f"{ENV_PREFIX}{key.upper().replace('.', '_')}"


def get_config_dir() -> Path:
    """Get the platform-specific config directory.

    Returns:
        Path to the config directory for remote-build-cache.
    """
    if sys.platform == "win32":
        appdata = os.environ.get("APPDATA")
        if appdata:
            return Path(appdata) / APP_DIR_NAME
        return Path.home() / "AppData" / "Roaming" / APP_DIR_NAME

    xdg_config = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config:
        return Path(xdg_config) / APP_DIR_NAME
    return Path.home() / ".config" / APP_DIR_NAME


def get_config_path() -> Path:
    """Get the path to the config.toml file."""
    return get_config_dir() / "config.toml"
