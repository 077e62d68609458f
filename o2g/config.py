"""Publishing configuration.

Settings are read from a TOML or YAML file, then overridden by environment
variables::

    # o2g.toml
    ghost_url = "https://myblog.com"
    api_key = "6489...:a1b2..."
    default_status = "draft"
    archive_folder = "Published"
    scheduled_past_policy = "keep"
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union

import toml
import yaml

from .exceptions import ConfigError
from .models import PostStatus, ScheduledPastPolicy


CONFIG_FILENAMES = ["o2g.toml", "o2g.yml", "o2g.yaml"]

ENV_OVERRIDES = {
    "GHOST_URL": "ghost_url",
    "GHOST_ADMIN_API_KEY": "api_key",
}


def _text_setting(name: str, value: Any) -> str:
    """Return a string setting stripped, treating None as empty."""
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ConfigError(f"{name} must be a string, got {value!r}")
    return value.strip()


@dataclass
class PublishConfig:
    """Configuration for publishing notes to Ghost."""

    ghost_url: str = ""
    api_key: str = ""
    default_status: PostStatus = PostStatus.DRAFT
    archive_folder: Optional[str] = None
    scheduled_past_policy: ScheduledPastPolicy = ScheduledPastPolicy.KEEP
    request_timeout: float = 30.0

    def __post_init__(self) -> None:
        """Normalize and validate configuration after initialization."""
        self.ghost_url = _text_setting("ghost_url", self.ghost_url).rstrip("/")
        self.api_key = _text_setting("api_key", self.api_key)
        self.archive_folder = _text_setting("archive_folder", self.archive_folder) or None

        status = PostStatus.parse(self.default_status)
        # Scheduling needs a date, so it cannot be a default
        if status is None or status == PostStatus.SCHEDULED:
            raise ConfigError(
                f"default_status must be 'draft' or 'published', got {self.default_status!r}"
            )
        self.default_status = status

        if not isinstance(self.scheduled_past_policy, ScheduledPastPolicy):
            try:
                self.scheduled_past_policy = ScheduledPastPolicy(
                    str(self.scheduled_past_policy).strip().lower()
                )
            except ValueError:
                choices = ", ".join(policy.value for policy in ScheduledPastPolicy)
                raise ConfigError(
                    f"scheduled_past_policy must be one of {choices}, "
                    f"got {self.scheduled_past_policy!r}"
                )

        if isinstance(self.request_timeout, bool):
            raise ConfigError(f"request_timeout must be a number, got {self.request_timeout!r}")
        try:
            self.request_timeout = float(self.request_timeout)
        except (TypeError, ValueError):
            raise ConfigError(f"request_timeout must be a number, got {self.request_timeout!r}")
        if self.request_timeout <= 0:
            raise ConfigError("request_timeout must be positive")

    def require_credentials(self) -> None:
        """Raise ConfigError unless the Ghost URL and Admin API key are set."""
        if not self.ghost_url or not self.api_key:
            raise ConfigError(
                "Ghost URL and Admin API key are required "
                "(set ghost_url/api_key or GHOST_URL/GHOST_ADMIN_API_KEY)"
            )
        if not self.ghost_url.startswith(("http://", "https://")):
            raise ConfigError(f"Ghost URL must start with http:// or https://: {self.ghost_url}")


def read_config_file(config_path: Path) -> Dict[str, Any]:
    """Read a TOML or YAML settings file.

    Args:
        config_path: Path to the settings file

    Returns:
        Settings dictionary

    Raises:
        ConfigError: If the file cannot be read or parsed
    """
    try:
        text = config_path.read_text(encoding="utf-8")
        if config_path.suffix.lower() == ".toml":
            data = toml.loads(text)
        else:
            data = yaml.safe_load(text)
    except (OSError, yaml.YAMLError, toml.TomlDecodeError) as e:
        raise ConfigError(f"Could not read config file {config_path}: {e}")

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file must contain a mapping: {config_path}")
    return data


def find_config_file(search_dir: Optional[Path] = None) -> Optional[Path]:
    """Find a settings file in ``search_dir`` or ``~/.config/o2g``."""
    search_dirs = [search_dir or Path.cwd(), Path.home() / ".config" / "o2g"]
    for folder in search_dirs:
        for config_filename in CONFIG_FILENAMES:
            config_path = folder / config_filename
            if config_path.is_file():
                return config_path
    return None


def load_config(
    config_path: Optional[Union[str, Path]] = None,
    environ: Optional[Dict[str, str]] = None,
) -> PublishConfig:
    """Build a PublishConfig from a settings file and the environment.

    Args:
        config_path: Settings file; searched for when omitted
        environ: Environment mapping, defaults to ``os.environ``

    Returns:
        Validated configuration

    Raises:
        ConfigError: If an explicit file is missing or any value is invalid
    """
    if config_path is not None:
        config_path = Path(config_path).expanduser()
        if not config_path.is_file():
            raise ConfigError(f"Config file not found: {config_path}")
    else:
        config_path = find_config_file()

    data = read_config_file(config_path) if config_path else {}

    environ = os.environ if environ is None else environ
    for env_name, key in ENV_OVERRIDES.items():
        if environ.get(env_name):
            data[key] = environ[env_name]

    known_fields = PublishConfig.__dataclass_fields__
    unknown = sorted(set(data) - set(known_fields))
    if unknown:
        raise ConfigError(f"Unknown config keys: {', '.join(unknown)}")

    return PublishConfig(**data)
