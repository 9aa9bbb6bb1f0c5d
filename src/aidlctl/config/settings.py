"""Unified settings — CLI flags, env vars, and TOML config in one object.

Priority chain (highest to lowest):
  1. Init kwargs  — CLI flags passed by Click
  2. Env vars     — ``AIDLCTL_*`` prefix
  3. TOML file    — ``aidlctl.toml`` discovered via walk-up
  4. Code defaults — baked into the section models

Uses Pydantic Settings v2 with a custom :class:`TomlSettingsSource` that
reuses the ``find_config`` walk-up discovery from
:mod:`aidlctl.config.discovery`.
"""

from __future__ import annotations

import os
import threading
import tomllib
from pathlib import Path
from typing import Any, ClassVar

from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from aidlctl.config.discovery import find_config, find_store_root
from aidlctl.config.models import ListingConfig, McpConfig, SearchConfig, StoreConfig


class TomlSettingsSource(PydanticBaseSettingsSource):
    """Read settings from an ``aidlctl.toml`` file discovered via walk-up."""

    def __init__(self, settings_cls: type[BaseSettings], toml_path: Path | None) -> None:
        super().__init__(settings_cls)
        self._data: dict[str, Any] = {}
        if toml_path and toml_path.is_file():
            raw = toml_path.read_text(encoding="utf-8")
            try:
                self._data = tomllib.loads(raw)
            except tomllib.TOMLDecodeError as exc:
                import click

                msg = f"Invalid TOML in {toml_path}: {exc}"
                raise click.ClickException(msg) from exc

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        """Return ``(value, field_name, value_is_complex)``."""
        val = self._data.get(field_name)
        return val, field_name, field_name in self._data

    def __call__(self) -> dict[str, Any]:
        """Return the full TOML data dict for Pydantic to merge."""
        return self._data


# Thread-local storage for TOML path during construction.
_tls = threading.local()


class AidlSettings(BaseSettings):
    """Unified settings for the aidlctl CLI and MCP server.

    Merges CLI flags, environment variables, TOML config sections,
    and code-baked defaults into a single frozen object.

    Attributes:
        project_root: Directory holding ``aidlctl.toml`` (or CWD if no
            config found). The store lives under it.
        config_path: The config file in effect, if any.
        base_dir: Explicit store directory, overriding ``store.dir``.
    """

    model_config = {
        "frozen": True,
        "env_prefix": "AIDLCTL_",
        "env_nested_delimiter": "__",
    }

    # --- Resolved paths (not in TOML, derived from config location) ---
    project_root: Path = Field(default_factory=Path.cwd)
    config_path: Path | None = None
    base_dir: Path | None = None

    # --- CLI flags ---
    json_output: bool = False
    quiet: bool = False
    verbose: bool = False
    log_json: bool = False

    # --- TOML sections ---
    store: StoreConfig = Field(default_factory=StoreConfig)
    search: SearchConfig = Field(default_factory=SearchConfig)
    listing: ListingConfig = Field(default_factory=ListingConfig)
    mcp: McpConfig = Field(default_factory=McpConfig)

    # Retained for type-checker visibility; not used at runtime.
    _toml_path: ClassVar[Path | None] = None

    @property
    def store_dir(self) -> Path:
        """Resolved directory holding the index and the record documents."""
        if self.base_dir is not None:
            return self.project_root / self.base_dir
        return self.project_root / self.store.dir

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Insert TOML source between env vars and defaults."""
        toml_path = getattr(_tls, "toml_path", None)
        return (
            init_settings,
            env_settings,
            TomlSettingsSource(settings_cls, toml_path),
        )

    @classmethod
    def from_cli(
        cls,
        *,
        config_path: str | None = None,
        project_root: Path | None = None,
        base_dir: Path | None = None,
        **cli_flags: Any,
    ) -> AidlSettings:
        """Construct settings from CLI invocation.

        Discovers ``aidlctl.toml`` via walk-up (or explicit *config_path*) and
        roots the project at its directory. Without a config file the root is
        the nearest ancestor already holding a store, else the CWD. CLI flags
        are merged as highest-priority overrides.
        """
        toml_path: Path | None = None
        if config_path:
            p = Path(config_path)
            if p.is_file():
                toml_path = p
        else:
            toml_path = find_config(project_root)

        resolved_root = project_root
        if resolved_root is None and toml_path is not None:
            resolved_root = toml_path.parent
        if resolved_root is None:
            defaults = StoreConfig()
            store_dir = os.environ.get("AIDLCTL_STORE__DIR", defaults.dir)
            if base_dir is not None:
                store_dir = str(base_dir)
            resolved_root = find_store_root(store_dir, defaults.index_name) or Path.cwd()

        overrides: dict[str, Any] = dict(cli_flags)
        if base_dir is not None:
            overrides["base_dir"] = base_dir

        _tls.toml_path = toml_path
        try:
            return cls(
                project_root=resolved_root,
                config_path=toml_path,
                **overrides,
            )
        finally:
            _tls.toml_path = None
