"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, aidlctl.toml only contains overrides.
A fresh project needs no config file at all.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

# --- aidlctl.toml sections ---


class StoreConfig(BaseModel):
    """[store] section."""

    model_config = {"frozen": True}

    dir: str = ".vce/aidl"
    index_name: str = "index.json"
    document_suffix: str = ".md"
    lock_retries: int = Field(default=5, ge=0)
    lock_factor: float = Field(default=2.0, ge=1.0)
    lock_min_timeout: float = Field(default=0.1, ge=0.0)
    lock_max_timeout: float = Field(default=1.0, ge=0.0)
    lock_jitter: bool = True


class SearchConfig(BaseModel):
    """[search] section."""

    model_config = {"frozen": True}

    excerpt_radius: int = Field(default=300, ge=0)


class ListingConfig(BaseModel):
    """[listing] section."""

    model_config = {"frozen": True}

    default_page_size: int = Field(default=20, ge=1)
    max_page_size: int = Field(default=100, ge=1)


class McpConfig(BaseModel):
    """[mcp] section."""

    model_config = {"frozen": True}

    name: str = "aidlctl"
    transport: str = "stdio"
