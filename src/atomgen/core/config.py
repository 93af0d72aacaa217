import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

CONFIG_FILENAME = ".atomgen.toml"


def _deep_merge(destination: dict[str, Any], source: dict[str, Any]) -> dict[str, Any]:
    """Merge source into destination, with source values overwriting."""
    for key, value in source.items():
        if isinstance(value, Mapping) and key in destination and isinstance(destination[key], Mapping):
            destination[key] = _deep_merge(destination.get(key, {}), value)
        else:
            destination[key] = value
    return destination


class AtomSettings(BaseSettings):
    """Settings that shape validation and rendering of Atom documents.

    Supports environment variable overrides with the pattern:
    ATOMGEN_<KEY> (e.g., ATOMGEN_STRICT_URLS=false)
    """

    strict_urls: bool = Field(default=True, description="Require absolute URLs in href/uri/scheme/src fields")
    fallback_ids: bool = Field(
        default=False,
        description="Derive or synthesize an id for entries that do not carry one",
    )
    pretty_print: bool = Field(default=True, description="Indent the rendered XML")
    log_level: str = Field(default="INFO", description="Logging level used by the CLI")

    model_config = SettingsConfigDict(
        extra="ignore",
        env_prefix="ATOMGEN_",
    )

    @classmethod
    def load(cls, site_root: Path | None = None) -> "AtomSettings":
        """Loads settings from .atomgen.toml and environment variables.

        Priority (highest to lowest):
        1. Environment variables (ATOMGEN_KEY)
        2. Config file (.atomgen.toml)
        3. Defaults
        """
        root_path = site_root if site_root is not None else Path.cwd()
        config_file = root_path / CONFIG_FILENAME

        file_settings: dict[str, Any] = {}
        if config_file.is_file():
            with config_file.open("rb") as f:
                file_settings = tomllib.load(f)

        env_settings = cls().model_dump(exclude_unset=True)

        merged = _deep_merge(file_settings, env_settings)
        return cls.model_validate(merged)
