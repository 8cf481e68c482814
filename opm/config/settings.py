"""Global settings for opm.

Settings live in ``~/.opm/config.yaml`` (or ``$OPM_HOME/config.yaml``) and can
be overridden per invocation with ``--config`` or environment variables.
"""

import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional

import yaml

from opm.core.directory import DEFAULT_PACKAGES_DIR, get_settings_file
from opm.core.exceptions import ConfigError

logger = logging.getLogger(__name__)

ENV_OVERRIDES = {
    "OPM_PACKAGES_DIR": "packages_dir",
    "OPM_GIT": "git_executable",
}


@dataclass
class Settings:
    """Global opm settings."""

    packages_dir: str = DEFAULT_PACKAGES_DIR
    git_executable: str = "git"
    github_url: str = "https://github.com"
    github_api_url: str = "https://api.github.com"
    search_language: str = "odin"

    def __post_init__(self):
        for f in fields(self):
            value = getattr(self, f.name)
            if not isinstance(value, str) or not value:
                raise ConfigError(
                    f"Setting '{f.name}' must be a non-empty string, got {value!r}"
                )
        if Path(self.packages_dir).is_absolute():
            raise ConfigError(
                f"Setting 'packages_dir' must be relative to the project root, "
                f"got {self.packages_dir}"
            )
        self.github_url = self.github_url.rstrip("/")
        self.github_api_url = self.github_api_url.rstrip("/")


def load_settings(settings_file: Optional[Path] = None) -> Settings:
    """
    Load global settings.

    Missing files yield defaults. Environment overrides are applied last.

    Args:
        settings_file: Explicit settings file (default: ~/.opm/config.yaml)

    Returns:
        Parsed settings

    Raises:
        ConfigError: If the file is not valid YAML or has invalid values
    """
    explicit = settings_file is not None
    if settings_file is None:
        settings_file = get_settings_file()

    data = {}
    if settings_file.exists():
        logger.debug(f"Loading settings from {settings_file}")
        try:
            with open(settings_file, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {settings_file}: {e}")
        if not isinstance(data, dict):
            raise ConfigError(f"Settings file must contain a mapping: {settings_file}")
    elif explicit:
        raise ConfigError(f"Settings file not found: {settings_file}")
    else:
        logger.debug(f"Settings file not found (optional): {settings_file}")

    known = {f.name for f in fields(Settings)}
    values = {}
    for key, value in data.items():
        if key in known:
            values[key] = value
        else:
            logger.debug(f"Ignoring unknown setting: {key}")

    for env_var, key in ENV_OVERRIDES.items():
        override = os.environ.get(env_var)
        if override:
            logger.debug(f"Setting {key} overridden by {env_var}")
            values[key] = override

    return Settings(**values)
