"""Tests for config models — defaults and validation."""

import pytest
from pydantic import ValidationError

from aidlctl.config.models import ListingConfig, McpConfig, SearchConfig, StoreConfig


class TestDefaults:
    def test_store(self) -> None:
        store = StoreConfig()
        assert store.dir == ".vce/aidl"
        assert store.index_name == "index.json"
        assert (store.lock_retries, store.lock_factor) == (5, 2.0)
        assert (store.lock_min_timeout, store.lock_max_timeout) == (0.1, 1.0)
        assert store.lock_jitter is True

    def test_search_and_listing(self) -> None:
        assert SearchConfig().excerpt_radius == 300
        assert ListingConfig().default_page_size == 20
        assert ListingConfig().max_page_size == 100

    def test_mcp(self) -> None:
        assert McpConfig().transport == "stdio"


class TestValidation:
    def test_negative_retries(self) -> None:
        with pytest.raises(ValidationError):
            StoreConfig(lock_retries=-1)

    def test_zero_page_size(self) -> None:
        with pytest.raises(ValidationError):
            ListingConfig(default_page_size=0)

    def test_frozen(self) -> None:
        with pytest.raises(ValidationError):
            SearchConfig().excerpt_radius = 10  # type: ignore[misc]
