from __future__ import annotations

import os
from pathlib import Path
from typing import ClassVar, Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic_settings.sources import PydanticBaseSettingsSource, YamlConfigSettingsSource

DEFAULT_CONFIG_PATH = Path("config/bom_browser.yaml")


class ApiSettings(BaseModel):
    base_url: str = "http://localhost:3000"
    timeout_seconds: float = Field(default=10.0, gt=0)

    @field_validator("base_url", mode="before")
    @classmethod
    def normalize_base_url(cls, value: object) -> str:
        raw = str(value or "").strip()
        if not raw:
            return "http://localhost:3000"
        return raw.rstrip("/")


class BrowserSettings(BaseModel):
    initial_depth: int | Literal["all"] = 1
    expand_depth: int | Literal["all"] = 1
    node_limit: int | None = Field(default=None, gt=0)
    search_debounce_seconds: float = Field(default=0.28, ge=0)
    catalog_refresh_interval_seconds: float = Field(default=0.0, ge=0)

    @field_validator("initial_depth", "expand_depth", mode="before")
    @classmethod
    def normalize_depth(cls, value: object) -> int | str:
        if isinstance(value, str):
            raw = value.strip().lower()
            if raw == "all":
                return "all"
            value = raw
        try:
            depth = int(value)  # type: ignore[call-overload]
        except (TypeError, ValueError) as exc:
            msg = "browser depth must be a positive integer or 'all'"
            raise ValueError(msg) from exc
        if depth < 1:
            msg = "browser depth must be a positive integer or 'all'"
            raise ValueError(msg)
        return depth


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="BOM_", env_nested_delimiter="__")

    api: ApiSettings = ApiSettings()
    browser: BrowserSettings = BrowserSettings()

    _yaml_path: ClassVar[Path | None] = None

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        sources: list[PydanticBaseSettingsSource] = [
            init_settings,
            env_settings,
            dotenv_settings,
            file_secret_settings,
        ]
        if cls._yaml_path:
            sources.append(YamlConfigSettingsSource(settings_cls, yaml_file=cls._yaml_path))
        return tuple(sources)


def load_settings(config_path: Path | None = None) -> AppSettings:
    env_path = os.getenv("BOM_CONFIG_PATH")
    resolved_path: Path | None = None

    if config_path is not None:
        resolved_path = config_path
    elif env_path:
        resolved_path = Path(env_path)
    elif DEFAULT_CONFIG_PATH.exists():
        resolved_path = DEFAULT_CONFIG_PATH

    previous = AppSettings._yaml_path
    try:
        if resolved_path is not None:
            if not resolved_path.exists():
                msg = f"Config file not found: {resolved_path}"
                raise FileNotFoundError(msg)
            AppSettings._yaml_path = resolved_path
        return AppSettings()
    finally:
        AppSettings._yaml_path = previous
