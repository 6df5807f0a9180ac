"""Configuration models for bootpipe."""

from __future__ import annotations

import json
import tomllib
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from bootpipe.errors import ConfigError
from bootpipe.paths import COMPOSER_FILE, CONFIG_FILE, get_composer_path

# composer.json extra key -> option key
COMPOSER_EXTRA_KEYS: dict[str, str] = {
    "symfony-app-dir": "app-dir",
    "symfony-web-dir": "web-dir",
    "symfony-bin-dir": "bin-dir",
    "symfony-var-dir": "var-dir",
    "symfony-assets-install": "assets-install-mode",
    "symfony-cache-warmup": "cache-warmup",
}


class BootpipeSettings(BaseSettings):
    """Tool-level settings (not per-project options)."""

    model_config = SettingsConfigDict(
        env_prefix="BOOTPIPE_",
        extra="ignore",
    )

    php_binary: str | None = Field(
        default=None,
        description="PHP interpreter to use (default: located on PATH)",
    )
    vendor_dir: str = Field(
        default="vendor",
        description="Composer vendor directory, relative to the project root",
    )
    composer_file: str = Field(
        default=COMPOSER_FILE,
        description="Project composer.json file name",
    )
    environment: str = Field(
        default="dev",
        description="Application environment used by the dev server",
    )
    server_address: str = Field(
        default="127.0.0.1:8000",
        description="Default dev server address",
    )
    router: str | None = Field(
        default=None,
        description="Dev server router script (default: <app-dir>/config/router.php)",
    )

    @classmethod
    def load(cls, config_path: Path | None = None, root: Path | None = None) -> BootpipeSettings:
        """Load settings from file and environment.

        Resolution order (highest to lowest priority):
        1. Environment variables (BOOTPIPE_*)
        2. Provided config file path
        3. .bootpipe.toml in the project root (default: current directory)
        4. .bootpipe.toml in home directory
        5. Built-in defaults
        """
        config_data: dict[str, Any] = {}

        locations = []
        if config_path:
            locations.append(config_path)
        locations.extend(
            [
                (root or Path.cwd()) / CONFIG_FILE,
                Path.home() / CONFIG_FILE,
            ]
        )

        for loc in locations:
            if loc.exists():
                try:
                    with open(loc, "rb") as f:
                        config_data = tomllib.load(f)
                except tomllib.TOMLDecodeError as e:
                    raise ConfigError(f"Invalid TOML in {loc}: {e}", path=str(loc)) from e
                break

        # Environment variables must win over file values
        file_values = config_data.get("bootpipe", config_data)
        env_values = cls().model_dump(exclude_unset=True)
        return cls(**{**file_values, **env_values})


class ProjectConfig(BaseModel):
    """The parts of composer.json bootpipe reads."""

    extra: dict[str, Any] = Field(default_factory=dict)
    config: dict[str, Any] = Field(default_factory=dict)
    autoload: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def load(cls, root: Path | str = ".", name: str = COMPOSER_FILE) -> ProjectConfig:
        """Read composer.json from a project root.

        A missing file yields an empty configuration (all defaults).

        Raises:
            ConfigError: If the file exists but is not a JSON object
        """
        path = get_composer_path(root, name)
        if not path.exists():
            return cls()

        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise ConfigError(f"Could not read {path}: {e}", path=str(path)) from e

        if not isinstance(data, dict):
            raise ConfigError(f"{path} does not contain a JSON object", path=str(path))

        return cls(
            extra=data.get("extra") or {},
            config=data.get("config") or {},
            autoload=data.get("autoload") or {},
        )

    def option_overrides(self) -> dict[str, Any]:
        return project_overrides_from_composer(self.extra, self.config)


def project_overrides_from_composer(
    extra: dict[str, Any],
    composer_config: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Translate composer.json ``extra``/``config`` into option overrides.

    Prefixed keys (``symfony-web-dir``) and plain option names (``web-dir``)
    are both accepted; a plain name wins over its prefixed form. The
    ``process-timeout`` comes from composer ``config`` where ``0`` means
    unlimited.
    """
    overrides: dict[str, Any] = {}

    for key, option in COMPOSER_EXTRA_KEYS.items():
        if key in extra:
            overrides[option] = extra[key]
    for option in COMPOSER_EXTRA_KEYS.values():
        if option in extra:
            overrides[option] = extra[option]

    if composer_config and "process-timeout" in composer_config:
        timeout = composer_config["process-timeout"]
        overrides["process-timeout"] = timeout or None

    return overrides


def get_default_config_toml() -> str:
    """Generate default .bootpipe.toml content."""
    return """# bootpipe configuration
# Per-project directory options live in composer.json "extra".

[bootpipe]
# php_binary = "/usr/bin/php"  # Default: located on PATH
vendor_dir = "vendor"
composer_file = "composer.json"

# Dev server (bootpipe server-run)
environment = "dev"
server_address = "127.0.0.1:8000"
# router = "app/config/router.php"
"""


__all__ = [
    "COMPOSER_EXTRA_KEYS",
    "BootpipeSettings",
    "ProjectConfig",
    "project_overrides_from_composer",
    "get_default_config_toml",
]
