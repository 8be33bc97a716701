"""Configuration loader: reads config.yaml, interpolates env vars and validates."""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

NETWORKS = ("mainnet", "preprod", "preview")

BLOCKFROST_URLS = {
    "mainnet": "https://cardano-mainnet.blockfrost.io/api/v0",
    "preprod": "https://cardano-preprod.blockfrost.io/api/v0",
    "preview": "https://cardano-preview.blockfrost.io/api/v0",
}

DEFAULT_ASSETS = ("iUSD", "iBTC", "iETH", "iSOL")

# ---------------------------------------------------------------------------
# Frozen config dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class IndexerConfig:
    base_url: str = "https://analytics.indigoprotocol.io/api/v1"
    timeout: int = 15


@dataclass(frozen=True)
class ChainConfig:
    blockfrost_project_id: str = ""
    blockfrost_url: str = ""
    timeout: int = 15


@dataclass(frozen=True)
class ProtocolConfig:
    system_params_url: str = (
        "https://config.indigoprotocol.io/mainnet/mainnet-system-params-v21-lrp.json"
    )
    params_ttl_seconds: int = 300
    assets: tuple[str, ...] = DEFAULT_ASSETS


@dataclass(frozen=True)
class AssemblerConfig:
    url: str = ""
    timeout: int = 30


@dataclass(frozen=True)
class HealthConfig:
    safety_multiplier: float = 1.5


@dataclass(frozen=True)
class ServerConfig:
    name: str = "indigo-mcp"
    transport: str = "stdio"
    host: str = "127.0.0.1"
    port: int = 8000


@dataclass(frozen=True)
class AppConfig:
    network: str = "mainnet"
    indexer: IndexerConfig = field(default_factory=IndexerConfig)
    chain: ChainConfig = field(default_factory=ChainConfig)
    protocol: ProtocolConfig = field(default_factory=ProtocolConfig)
    assembler: AssemblerConfig = field(default_factory=AssemblerConfig)
    health: HealthConfig = field(default_factory=HealthConfig)
    server: ServerConfig = field(default_factory=ServerConfig)

    @property
    def blockfrost_url(self) -> str:
        return self.chain.blockfrost_url or BLOCKFROST_URLS[self.network]


# ---------------------------------------------------------------------------
# Env interpolation
# ---------------------------------------------------------------------------

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)}")

# Used when no config.yaml exists; every secret still comes from the environment.
_DEFAULT_RAW: dict[str, Any] = {
    "network": "${CARDANO_NETWORK}",
    "indexer": {"base_url": "${INDEXER_URL}"},
    "chain": {"blockfrost_project_id": "${BLOCKFROST_API_KEY}"},
    "assembler": {"url": "${INDIGO_ASSEMBLER_URL}"},
}


def _interpolate_env(value: Any) -> Any:
    """Recursively replace ${VAR} references with environment variable values."""
    if isinstance(value, str):
        return _ENV_VAR_RE.sub(lambda m: os.environ.get(m.group(1), ""), value)
    if isinstance(value, dict):
        return {k: _interpolate_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_interpolate_env(item) for item in value]
    return value


# ---------------------------------------------------------------------------
# YAML → dataclass builders
# ---------------------------------------------------------------------------


def _build_indexer(raw: dict[str, Any]) -> IndexerConfig:
    return IndexerConfig(
        base_url=(raw.get("base_url") or IndexerConfig.base_url).rstrip("/"),
        timeout=int(raw.get("timeout") or 15),
    )


def _build_chain(raw: dict[str, Any]) -> ChainConfig:
    return ChainConfig(
        blockfrost_project_id=raw.get("blockfrost_project_id") or "",
        blockfrost_url=(raw.get("blockfrost_url") or "").rstrip("/"),
        timeout=int(raw.get("timeout") or 15),
    )


def _build_protocol(raw: dict[str, Any]) -> ProtocolConfig:
    return ProtocolConfig(
        system_params_url=raw.get("system_params_url") or ProtocolConfig.system_params_url,
        params_ttl_seconds=int(raw.get("params_ttl_seconds", 300)),
        assets=tuple(raw.get("assets", DEFAULT_ASSETS)),
    )


def _build_assembler(raw: dict[str, Any]) -> AssemblerConfig:
    return AssemblerConfig(
        url=(raw.get("url") or "").rstrip("/"),
        timeout=int(raw.get("timeout") or 30),
    )


def _build_health(raw: dict[str, Any]) -> HealthConfig:
    return HealthConfig(
        safety_multiplier=float(raw.get("safety_multiplier", 1.5)),
    )


def _build_server(raw: dict[str, Any]) -> ServerConfig:
    return ServerConfig(
        name=raw.get("name") or "indigo-mcp",
        transport=raw.get("transport") or "stdio",
        host=raw.get("host") or "127.0.0.1",
        port=int(raw.get("port") or 8000),
    )


def build_config(raw: dict[str, Any]) -> AppConfig:
    """Build and validate an AppConfig from an already-interpolated mapping."""
    cfg = AppConfig(
        network=(raw.get("network") or "mainnet").lower(),
        indexer=_build_indexer(raw.get("indexer") or {}),
        chain=_build_chain(raw.get("chain") or {}),
        protocol=_build_protocol(raw.get("protocol") or {}),
        assembler=_build_assembler(raw.get("assembler") or {}),
        health=_build_health(raw.get("health") or {}),
        server=_build_server(raw.get("server") or {}),
    )
    _validate(cfg)
    return cfg


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load and validate application configuration from YAML + .env.

    Args:
        config_path: Path to config.yaml. Defaults to ``config.yaml`` in the
            project root; when that file is absent the built-in defaults are
            used, still interpolated from the environment.
    """
    load_dotenv()

    if config_path is None:
        default_path = Path(__file__).resolve().parent.parent / "config.yaml"
        if not default_path.exists():
            logger.info("No config.yaml found, using defaults from environment")
            return build_config(_interpolate_env(_DEFAULT_RAW))
        config_path = default_path
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    cfg = build_config(_interpolate_env(raw))
    logger.info("Configuration loaded from %s", config_path)
    return cfg


def _validate(cfg: AppConfig) -> None:
    """Raise on invalid configuration."""
    if cfg.network not in NETWORKS:
        raise ValueError(
            f"Unknown network '{cfg.network}', expected one of {', '.join(NETWORKS)}"
        )
    if not cfg.protocol.assets:
        raise ValueError("At least one iAsset must be configured")
    if cfg.protocol.params_ttl_seconds <= 0:
        raise ValueError("params_ttl_seconds must be positive")
    for name, timeout in (
        ("indexer", cfg.indexer.timeout),
        ("chain", cfg.chain.timeout),
        ("assembler", cfg.assembler.timeout),
    ):
        if timeout <= 0:
            raise ValueError(f"{name} timeout must be positive")
    if cfg.health.safety_multiplier < 1.0:
        raise ValueError("safety_multiplier must be at least 1.0")
    if cfg.server.transport not in ("stdio", "streamable-http"):
        raise ValueError(f"Unknown server transport '{cfg.server.transport}'")
