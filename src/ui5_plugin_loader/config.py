"""Centralized settings: Pydantic BaseSettings with TOML + dotenv sources.

These are process-level settings for the loader itself (where fallback
manifests live, which project files list dependencies, log level). The
per-run ``configuration`` block a host passes in is modelled separately in
:mod:`ui5_plugin_loader.config_models`.

Environment variables use the ``UI5_PLUGIN_LOADER_`` prefix and ``__`` as the
nested delimiter (e.g. ``UI5_PLUGIN_LOADER_LOGGING__LEVEL=DEBUG``).

Priority (highest wins): init args > env vars > .env > ui5-plugin-loader.toml
"""

from __future__ import annotations

from functools import cached_property
from pathlib import Path

from pydantic import BaseModel, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    TomlConfigSettingsSource,
)

BUNDLED_MANIFESTS_DIR = Path(__file__).parent / "manifests"


class _StrictModel(BaseModel):
    """Base for config sub-models; reject unknown keys so typos fail loudly."""

    model_config = {"extra": "forbid"}


class LoggingConfig(_StrictModel):
    level: str = "INFO"

    @field_validator("level")
    @classmethod
    def normalize_level(cls, v: str) -> str:
        return v.upper()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        toml_file="ui5-plugin-loader.toml",
        env_file=".env",
        env_prefix="UI5_PLUGIN_LOADER_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    manifests_dir: Path = BUNDLED_MANIFESTS_DIR
    packages_dir: Path | None = None  # node_modules-style directory, checked before imports
    manifest_filename: str = "ui5-plugin-loader.json"
    project_descriptors: list[str] = ["pyproject.toml", "package.json"]
    logging: LoggingConfig = LoggingConfig()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Priority: init > env vars > .env > ui5-plugin-loader.toml > file secrets."""
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            TomlConfigSettingsSource(settings_cls),
            file_secret_settings,
        )

    @cached_property
    def project_root(self) -> Path:
        return Path.cwd()


_settings: Settings | None = None


def get_settings() -> Settings:
    """Lazy cached singleton."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Clear the cached singleton (for tests)."""
    global _settings
    _settings = None
