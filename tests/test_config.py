"""Tests for StoreConfig."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from itemstore.config import StoreConfig


class TestStoreConfig:

    def test_defaults(self):
        config = StoreConfig()
        assert config.data_path.name == "items.json"
        assert config.watch is True
        assert config.aggregate_field == "price"
        assert config.write_retries == 3
        assert config.create_missing is False

    def test_from_env(self, monkeypatch, tmp_path):
        monkeypatch.setenv("ITEMSTORE_DATA_PATH", str(tmp_path / "x.json"))
        monkeypatch.setenv("ITEMSTORE_WATCH", "false")
        monkeypatch.setenv("ITEMSTORE_WRITE_RETRIES", "5")
        monkeypatch.setenv("ITEMSTORE_AGGREGATE_FIELD", "cost")

        config = StoreConfig.from_env()

        assert config.data_path == tmp_path / "x.json"
        assert config.watch is False
        assert config.write_retries == 5
        assert config.aggregate_field == "cost"

    def test_overrides_win_and_none_is_ignored(self, monkeypatch):
        monkeypatch.setenv("ITEMSTORE_DATA_PATH", "/from/env.json")

        config = StoreConfig.from_env(data_path="/override.json", watch=None)

        assert config.data_path == Path("/override.json")
        assert config.watch is True

    def test_invalid_value(self, monkeypatch):
        monkeypatch.setenv("ITEMSTORE_WRITE_RETRIES", "-1")
        with pytest.raises(ValidationError):
            StoreConfig.from_env()

    def test_frozen(self):
        config = StoreConfig()
        with pytest.raises(ValidationError):
            config.watch = False
