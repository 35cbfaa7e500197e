"""
Records — Immutable Pool and Position Snapshots
================================================

Value records handed from the fetch layer to presentation and scoring.
Each record is built fresh per call and never mutated or cached.

Subgraph field reference (Uniswap V3 schema):
  https://github.com/Uniswap/v3-subgraph/blob/main/schema.graphql
"""

from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict

from univ3_cli.errors import DecodeError, MissingDataError


def _field(raw: Dict[str, Any], key: str, where: str) -> Any:
    if not isinstance(raw, dict):
        raise DecodeError(f"{where} is not an object")
    value = raw.get(key)
    if value is None:
        raise MissingDataError(f"{where}.{key} missing from subgraph response")
    return value


def _number(raw: Dict[str, Any], key: str, where: str, cast: Callable[[Any], Any]) -> Any:
    value = _field(raw, key, where)
    try:
        return cast(value)
    except (TypeError, ValueError) as exc:
        raise DecodeError(f"{where}.{key} is not numeric: {value!r}") from exc


@dataclass(frozen=True)
class Token:
    id: str
    symbol: str
    name: str
    decimals: int

    @classmethod
    def from_subgraph(cls, raw: Dict[str, Any], where: str = "token") -> "Token":
        return cls(
            id=str(_field(raw, "id", where)),
            symbol=str(_field(raw, "symbol", where)),
            name=str(_field(raw, "name", where)),
            decimals=_number(raw, "decimals", where, int),
        )


@dataclass(frozen=True)
class Pool:
    """
    Snapshot of a Uniswap V3 pool from the subgraph.

    fee_tier is in hundredths of a basis point (500 = 0.05%, 3000 = 0.30%).
    The subgraph serialises BigInt/BigDecimal as strings.
    """

    id: str
    token0: Token
    token1: Token
    fee_tier: int
    liquidity: int
    volume_usd: float
    total_value_locked_usd: float

    @classmethod
    def from_subgraph(cls, raw: Dict[str, Any]) -> "Pool":
        where = f"pool[{raw.get('id', '?')}]" if isinstance(raw, dict) else "pool"
        return cls(
            id=str(_field(raw, "id", where)),
            token0=Token.from_subgraph(_field(raw, "token0", where), f"{where}.token0"),
            token1=Token.from_subgraph(_field(raw, "token1", where), f"{where}.token1"),
            fee_tier=_number(raw, "feeTier", where, int),
            liquidity=_number(raw, "liquidity", where, int),
            volume_usd=_number(raw, "volumeUSD", where, float),
            total_value_locked_usd=_number(raw, "totalValueLockedUSD", where, float),
        )

    @property
    def pair(self) -> str:
        return f"{self.token0.symbol}/{self.token1.symbol}"

    @property
    def fee_pct(self) -> float:
        """Fee tier as a percentage, e.g. 3000 → 0.3."""
        return self.fee_tier / 10_000


@dataclass(frozen=True)
class OnchainPosition:
    """
    A single NonfungiblePositionManager position read live from chain.

    Prices are token1 per token0, already scaled by 10^(decimals0 − decimals1).
    tick_lower <= tick_upper is expected but not enforced; see
    ``has_inverted_range``.
    """

    token_id: int
    operator: str
    token0: str
    token1: str
    token0_symbol: str
    token1_symbol: str
    fee: int
    tick_lower: int
    tick_upper: int
    liquidity: int
    tokens_owed0: int
    tokens_owed1: int
    decimals0: int
    decimals1: int
    price_lower: float
    price_upper: float
    mid_price: float

    @property
    def has_inverted_range(self) -> bool:
        return self.tick_lower > self.tick_upper

    @property
    def price_lower_display(self) -> str:
        return f"{self.price_lower:.2f}"

    @property
    def price_upper_display(self) -> str:
        return f"{self.price_upper:.2f}"

    @property
    def mid_price_display(self) -> str:
        return f"{self.mid_price:.2f}"

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        # uint128/uint256 quantities exceed JSON's safe integer range
        for key in ("token_id", "liquidity", "tokens_owed0", "tokens_owed1"):
            data[key] = str(data[key])
        return data
