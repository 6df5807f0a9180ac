"""Effective option resolution for lifecycle steps.

Options are resolved fresh for every pipeline invocation from three layers,
later layers winning key by key::

    defaults < project overrides (composer.json) < environment

Merging is shallow: an override replaces the default value outright.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

ASSETS_INSTALL_ENV = "SYMFONY_ASSETS_INSTALL"

DEFAULT_OPTIONS: Mapping[str, Any] = MappingProxyType(
    {
        "app-dir": "app",
        "web-dir": "web",
        "bin-dir": "bin",
        "var-dir": "var",
        "assets-install-mode": "hard",
        "cache-warmup": False,
        "process-timeout": 300,
    }
)

# Option key -> environment variable that overrides it
ENVIRONMENT_OVERRIDES: Mapping[str, str] = MappingProxyType(
    {"assets-install-mode": ASSETS_INSTALL_ENV}
)


class OptionSet(BaseModel):
    """Effective options for one pipeline invocation.

    Fields are addressed by their dashed option names (``app-dir``), which
    is also what ``get`` and ``to_dict`` use.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    app_dir: str = Field(alias="app-dir")
    web_dir: str = Field(alias="web-dir")
    bin_dir: str = Field(alias="bin-dir")
    var_dir: str = Field(alias="var-dir")
    # Unknown modes behave like "hard"
    assets_install_mode: str = Field(alias="assets-install-mode")
    cache_warmup: bool = Field(alias="cache-warmup")
    process_timeout: float | None = Field(alias="process-timeout")

    @field_validator("assets_install_mode", mode="before")
    @classmethod
    def _install_mode_or_hard(cls, value: Any) -> Any:
        """Non-string modes (null in composer.json) mean hard copies."""
        return value if isinstance(value, str) else "hard"

    def get(self, key: str) -> Any:
        """Return an option by its dashed name."""
        for name, field in type(self).model_fields.items():
            if field.alias == key:
                return getattr(self, name)
        raise KeyError(key)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)

    def symlink_flags(self) -> list[str]:
        """Flags passed to assets:install for the configured install mode."""
        if self.assets_install_mode == "symlink":
            return ["--symlink"]
        if self.assets_install_mode == "relative":
            return ["--symlink", "--relative"]
        return []


def resolve_options(
    defaults: Mapping[str, Any] = DEFAULT_OPTIONS,
    project_overrides: Mapping[str, Any] | None = None,
    environ: Mapping[str, str] | None = None,
) -> OptionSet:
    """Merge defaults, project overrides and environment into an OptionSet.

    Args:
        defaults: Default value for every option key
        project_overrides: Values from the project configuration
        environ: Environment mapping (default: ``os.environ``)

    Returns:
        The effective, immutable option set
    """
    merged: dict[str, Any] = dict(defaults)
    merged.update(project_overrides or {})

    env = os.environ if environ is None else environ
    for key, variable in ENVIRONMENT_OVERRIDES.items():
        value = env.get(variable)
        # An empty variable does not override
        if value:
            merged[key] = value

    return OptionSet.model_validate(merged)


__all__ = [
    "ASSETS_INSTALL_ENV",
    "DEFAULT_OPTIONS",
    "ENVIRONMENT_OVERRIDES",
    "OptionSet",
    "resolve_options",
]
