"""Univ3 CLI — Uniswap V3 subgraph client and on-chain position reader."""

from univ3_cli.central_config import PROJECT_VERSION

__version__ = PROJECT_VERSION
