"""Unit tests for config loading, env interpolation, and validation."""
from __future__ import annotations

from pathlib import Path

import pytest

from indigo_mcp.config import (
    DEFAULT_ASSETS,
    AppConfig,
    ChainConfig,
    HealthConfig,
    _interpolate_env,
    build_config,
    load_config,
)


class TestInterpolateEnv:
    def test_simple_substitution(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MY_VAR", "hello")
        assert _interpolate_env("${MY_VAR}") == "hello"

    def test_missing_var_becomes_empty(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("NONEXISTENT_VAR_XYZ", raising=False)
        assert _interpolate_env("${NONEXISTENT_VAR_XYZ}") == ""

    def test_nested_dict(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TOK", "secret")
        result = _interpolate_env({"key": "${TOK}", "plain": "text"})
        assert result == {"key": "secret", "plain": "text"}

    def test_nested_list(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("A", "x")
        assert _interpolate_env(["${A}", "y"]) == ["x", "y"]

    def test_non_string_passthrough(self) -> None:
        assert _interpolate_env(42) == 42
        assert _interpolate_env(True) is True


class TestBuildConfig:
    def test_defaults(self) -> None:
        cfg = build_config({})
        assert cfg.network == "mainnet"
        assert cfg.protocol.assets == DEFAULT_ASSETS
        assert cfg.chain.blockfrost_project_id == ""
        assert cfg.assembler.url == ""
        assert cfg.server.transport == "stdio"
        assert cfg.health.safety_multiplier == 1.5

    def test_blockfrost_url_follows_network(self) -> None:
        cfg = build_config({"network": "Preprod"})
        assert cfg.network == "preprod"
        assert cfg.blockfrost_url == "https://cardano-preprod.blockfrost.io/api/v0"

    def test_explicit_blockfrost_url_wins(self) -> None:
        cfg = build_config({"chain": {"blockfrost_url": "https://bf.local/api/"}})
        assert cfg.blockfrost_url == "https://bf.local/api"

    def test_trailing_slashes_stripped(self) -> None:
        cfg = build_config({
            "indexer": {"base_url": "https://indexer.test/api/v1/"},
            "assembler": {"url": "https://asm.test/"},
        })
        assert cfg.indexer.base_url == "https://indexer.test/api/v1"
        assert cfg.assembler.url == "https://asm.test"

    def test_empty_env_values_fall_back_to_defaults(self) -> None:
        cfg = build_config({"network": "", "indexer": {"base_url": ""}})
        assert cfg.network == "mainnet"
        assert cfg.indexer.base_url == "https://analytics.indigoprotocol.io/api/v1"


class TestLoadConfig:
    def test_loads_valid_yaml(
        self, sample_yaml_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("TEST_BLOCKFROST_KEY", "preprodKEY")
        cfg = load_config(sample_yaml_path)
        assert isinstance(cfg, AppConfig)
        assert cfg.network == "preprod"
        assert cfg.indexer.base_url == "https://indexer.example.com/api/v1"
        assert cfg.indexer.timeout == 10
        assert cfg.chain.blockfrost_project_id == "preprodKEY"
        assert cfg.protocol.assets == ("iUSD", "iBTC")
        assert cfg.protocol.params_ttl_seconds == 60
        assert cfg.health.safety_multiplier == 2.0
        assert cfg.server.transport == "streamable-http"
        assert cfg.server.port == 9000

    def test_unset_secret_is_empty(
        self, sample_yaml_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.delenv("TEST_BLOCKFROST_KEY", raising=False)
        cfg = load_config(sample_yaml_path)
        assert cfg.chain.blockfrost_project_id == ""

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nonexistent.yaml")

    def test_empty_file_uses_defaults(self, tmp_path: Path) -> None:
        cfg_file = tmp_path / "config.yaml"
        cfg_file.write_text("")
        cfg = load_config(cfg_file)
        assert cfg.network == "mainnet"


class TestValidation:
    def test_unknown_network_raises(self) -> None:
        with pytest.raises(ValueError, match="Unknown network"):
            build_config({"network": "testnet"})

    def test_no_assets_raises(self) -> None:
        with pytest.raises(ValueError, match="At least one iAsset"):
            build_config({"protocol": {"assets": []}})

    def test_non_positive_ttl_raises(self) -> None:
        with pytest.raises(ValueError, match="params_ttl_seconds"):
            build_config({"protocol": {"params_ttl_seconds": 0}})

    def test_safety_multiplier_below_one_raises(self) -> None:
        with pytest.raises(ValueError, match="safety_multiplier"):
            build_config({"health": {"safety_multiplier": 0.5}})

    def test_unknown_transport_raises(self) -> None:
        with pytest.raises(ValueError, match="transport"):
            build_config({"server": {"transport": "sse"}})


class TestFrozenConfigs:
    def test_chain_config_immutable(self) -> None:
        c = ChainConfig(blockfrost_project_id="key")
        with pytest.raises(AttributeError):
            c.timeout = 999  # type: ignore[misc]

    def test_health_config_immutable(self) -> None:
        h = HealthConfig()
        with pytest.raises(AttributeError):
            h.safety_multiplier = 3.0  # type: ignore[misc]
