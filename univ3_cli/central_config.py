"""
Project Configuration — Endpoints, Retry Policy, Runtime Settings
==================================================================

Holds the constants of the Uniswap V3 subgraph client and the on-chain
reader, plus the TOML-backed runtime configuration consumed by run.py.

Subgraph reference: https://docs.uniswap.org/api/subgraph/overview
Contract deployments: https://docs.uniswap.org/contracts/v3/reference/deployments/
"""

import os
import re
import tomllib
from dataclasses import dataclass, field
from importlib.metadata import version, PackageNotFoundError
from pathlib import Path
from typing import Any, Dict, Tuple, Union

from loguru import logger

# Version — single source of truth is pyproject.toml
try:
    PROJECT_VERSION = version("univ3-cli")
except PackageNotFoundError:
    # Dev / CI: package not installed — read pyproject.toml directly
    _toml = Path(__file__).resolve().parent.parent / "pyproject.toml"
    _m = (
        re.search(r'version\s*=\s*"([^"]+)"', _toml.read_text())
        if _toml.exists()
        else None
    )
    PROJECT_VERSION = _m.group(1) if _m else "0.0.0-dev"
PROJECT_NAME = "Univ3 CLI"

API_KEY_ENV = "UNIV3_GRAPH_API_KEY"


@dataclass(frozen=True)
class SubgraphAPI:
    """Uniswap V3 subgraph endpoint and request policy."""

    BASE_URL: str = "https://api.thegraph.com/subgraphs/name/uniswap/uniswap-v3"

    # Per-attempt timeout; total worst case = attempts × timeout + backoff
    TIMEOUT_SECONDS: float = 15.0

    # Retry: 3 attempts, sleeps of 0.3s, 0.9s, 2.7s ...
    MAX_ATTEMPTS: int = 3
    BACKOFF_BASE_SECONDS: float = 0.3
    BACKOFF_FACTOR: float = 3.0

    # A malformed request will not self-correct
    NON_RETRYABLE_STATUS: int = 400

    USER_AGENT: str = "univ3-cli/" + PROJECT_VERSION

    # The hosted service caps `first` at 1000 per page
    MAX_PAGE_SIZE: int = 1000
    DEFAULT_PAGE_SIZE: int = 100


@dataclass(frozen=True)
class OnchainDefaults:
    """Defaults for live contract reads."""

    RPC_URL: str = "https://arb1.arbitrum.io/rpc"

    # Same address on Ethereum, Arbitrum, Optimism, Polygon via CREATE2
    POSITION_MANAGER: str = "0xC36442b4a4522E871399CD717aBDD847Ab11FE88"

    # ERC-20 convention when decimals() cannot be read
    DEFAULT_DECIMALS: int = 18

    TIMEOUT_SECONDS: float = 15.0


subgraph_api = SubgraphAPI()
onchain = OnchainDefaults()


# ── Runtime Configuration ────────────────────────────────────────────────


@dataclass(frozen=True)
class AppConfig:
    """Runtime settings loaded once at startup and shared read-only."""

    rpc_url: str = onchain.RPC_URL
    graph_url: str = subgraph_api.BASE_URL
    graph_api_key: Union[str, None] = None
    pool_ids: Tuple[str, ...] = field(default_factory=tuple)
    position_ids: Tuple[str, ...] = field(default_factory=tuple)
    quote_interval_secs: int = 300
    log_level: str = "INFO"

    @property
    def has_watch_targets(self) -> bool:
        return bool(self.pool_ids or self.position_ids)


def _section(raw: Dict[str, Any], name: str) -> Dict[str, Any]:
    value = raw.get(name) or {}
    if not isinstance(value, dict):
        raise ValueError(f"[{name}] must be a table")
    return value


def _id_list(section: Dict[str, Any], key: str) -> Tuple[str, ...]:
    value = section.get(key, [])
    if not isinstance(value, list):
        raise ValueError(f"uniswap.{key} must be a list")
    return tuple(str(v).strip() for v in value if str(v).strip())


def config_from_dict(raw: Dict[str, Any]) -> AppConfig:
    """Build and validate an AppConfig from a parsed TOML document."""
    api = _section(raw, "api")
    uniswap = _section(raw, "uniswap")
    logging_cfg = _section(raw, "logging")

    api_key = os.environ.get(API_KEY_ENV) or api.get("thegraph_api_key") or None

    cfg = AppConfig(
        rpc_url=str(raw.get("rpc_url", onchain.RPC_URL)).strip(),
        graph_url=str(api.get("thegraph_api_url") or subgraph_api.BASE_URL).strip(),
        graph_api_key=api_key,
        pool_ids=_id_list(uniswap, "pool_ids"),
        position_ids=_id_list(uniswap, "position_ids"),
        quote_interval_secs=int(uniswap.get("quote_interval_secs", 300)),
        log_level=str(logging_cfg.get("log_level", "INFO")).upper(),
    )

    if not cfg.rpc_url:
        raise ValueError("RPC URL cannot be empty")
    if not cfg.graph_url:
        raise ValueError("Subgraph URL cannot be empty")
    if cfg.quote_interval_secs <= 0:
        raise ValueError("uniswap.quote_interval_secs must be greater than 0")
    return cfg


def load_config(path: Union[str, Path]) -> AppConfig:
    """
    Load configuration from a TOML file.

    A missing file is not an error: defaults (plus the API-key environment
    override) are used instead.
    """
    path = Path(path)
    if not path.exists():
        logger.info("Configuration file {} not found, using defaults", path)
        return config_from_dict({})

    with path.open("rb") as fh:
        try:
            raw = tomllib.load(fh)
        except tomllib.TOMLDecodeError as exc:
            raise ValueError(f"Invalid TOML in {path}: {exc}") from exc
    logger.debug("Configuration loaded from {}", path)
    return config_from_dict(raw)
