"""Request-scoped data models for holdings, collections, pools and quotes."""

import math
from decimal import Decimal
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class HoldingType(StrEnum):
    """Kind of token holding."""

    NATIVE = "native"
    ERC20 = "erc20"
    CAT = "cat"
    LP = "lp"


class PriceSource(StrEnum):
    """Provider that produced a price quote."""

    SPACESCAN = "spacescan"
    DEXIE = "dexie"
    DEXSCREENER = "dexscreener"
    BLOCKSCOUT = "blockscout"
    COINGECKO = "coingecko"
    DEFAULT = "default"
    NONE = "none"


def parse_float(value: Any, default: float = 0.0) -> float:
    """Lenient float parsing of upstream numbers, which may arrive as strings, null or garbage."""
    try:
        number = float(value or 0)
    except (TypeError, ValueError):
        return default
    return number if math.isfinite(number) else default


def _as_non_negative_float(value: Any) -> float:
    number = parse_float(value)
    return number if number > 0 else 0.0


class WireModel(BaseModel):
    """Base model serialised with camelCase aliases for the front-end client."""

    model_config = ConfigDict(populate_by_name=True)

    def to_json(self) -> dict[str, Any]:
        """
        Serialise for a JSON response body.

        Returns
        -------
        dict[str, Any]
            Aliased field names, None fields omitted

        """
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class TokenHolding(WireModel):
    """
    Token balance held by a wallet.

    Attributes
    ----------
    symbol : str
        Ticker symbol (pair name for LP holdings)
    name : str
        Display name
    asset_id : str | None
        Chia asset identifier (``XCH`` for the native coin)
    contract : str | None
        Lowercase EVM contract address
    balance : float
        Balance in token units
    price : float
        USD price per unit
    value : float
        USD value, ``balance * price`` unless an upstream total overrides it
    type : HoldingType
        Holding kind
    price_xch : float | None
        CAT price quoted in XCH
    image : str | None
        Preview image URL
    pair_name, token0, token1, price0, price1, total_liq_usd, user_share_pct
        Pool description, set for LP holdings only

    """

    symbol: str
    name: str
    asset_id: str | None = Field(default=None, alias="assetId")
    contract: str | None = None
    balance: float = 0.0
    price: float = 0.0
    value: float = 0.0
    type: HoldingType
    price_xch: float | None = Field(default=None, alias="priceXch")
    image: str | None = None
    pair_name: str | None = Field(default=None, alias="pairName")
    token0: str | None = None
    token1: str | None = None
    price0: float | None = None
    price1: float | None = None
    total_liq_usd: float | None = Field(default=None, alias="totalLiqUsd")
    user_share_pct: str | None = Field(default=None, alias="userSharePct")

    @field_validator("balance", "price", "value", mode="before")
    @classmethod
    def _non_negative(cls, value: Any) -> float:
        return _as_non_negative_float(value)

    @classmethod
    def priced(
        cls,
        *,
        balance: float,
        price: float,
        value_override: float | None = None,
        **fields: Any,
    ) -> "TokenHolding":
        """
        Build a holding whose value derives from balance and price.

        Parameters
        ----------
        balance : float
            Balance in token units
        price : float
            USD price per unit
        value_override : float | None
            Authoritative upstream total; used instead of ``balance * price`` when positive
        **fields : Any
            Remaining model fields

        Returns
        -------
        TokenHolding
            New holding

        """
        balance = _as_non_negative_float(balance)
        price = _as_non_negative_float(price)
        override = _as_non_negative_float(value_override)
        value = override if override > 0 else balance * price
        return cls(balance=balance, price=price, value=value, **fields)

    @property
    def merge_key(self) -> str:
        return self.asset_id or self.symbol


class NftSample(WireModel):
    id: str = ""
    name: str = ""
    image: str = ""


class NftCollection(WireModel):
    """
    NFTs grouped by collection.

    ``enriched_name`` and ``enriched_image`` hold metadata from the enrichment
    provider and are folded into ``name``/``image`` on finalisation; they are
    never serialised.
    """

    id: str
    name: str
    count: int = 0
    image: str = ""
    nfts: list[NftSample] = Field(default_factory=list)
    enriched_name: str = Field(default="", exclude=True)
    enriched_image: str = Field(default="", exclude=True)


class LpPoolMeta(BaseModel):
    """
    On-chain description of one LP contract held by a wallet.

    Attributes
    ----------
    contract_address : str
        LP token contract (lowercase)
    user_balance : float
        Holder balance in LP token units
    token0_address, token1_address : str | None
        Underlying tokens, None when the call could not be decoded
    reserve0, reserve1 : int
        Raw reserves from ``getReserves()``
    total_supply : int
        Raw ``totalSupply()``
    lp_decimals : int
        LP token decimals

    """

    contract_address: str
    user_balance: float
    token0_address: str | None = None
    token1_address: str | None = None
    reserve0: int = 0
    reserve1: int = 0
    total_supply: int = 0
    lp_decimals: int = 18

    @property
    def total_supply_units(self) -> Decimal:
        return Decimal(self.total_supply) / (Decimal(10) ** self.lp_decimals)


class TokenInfo(BaseModel):
    """ERC-20 metadata of an LP's underlying token."""

    address: str | None = None
    decimals: int = 18
    symbol: str = "?"


class PriceQuote(WireModel):
    """USD quote produced by one provider."""

    price: float = 0.0
    change: float = 0.0
    market_cap: float = Field(default=0.0, alias="marketCap")
    source: PriceSource = PriceSource.NONE


class DexPrice(BaseModel):
    price: float
    liquidity: float = 0.0
    symbol: str = ""


class CollectionMeta(WireModel):
    """Collection display metadata from the NFT metadata provider."""

    id: str
    name: str
    thumbnail: str = ""
    floor_xch: float = 0.0
    nft_count: int = 0


class ChainPortfolio(WireModel):
    tokens: list[TokenHolding] = Field(default_factory=list)
    total: float = 0.0


class NftPortfolio(WireModel):
    nfts: list[NftCollection] = Field(default_factory=list)
    nft_count: int = Field(default=0, alias="nftCount")


class FullPortfolio(WireModel):
    """Combined tokens and NFTs of one or two Chia wallets."""

    tokens: list[TokenHolding] = Field(default_factory=list)
    total: float = 0.0
    nfts: list[NftCollection] = Field(default_factory=list)
    nft_count: int = Field(default=0, alias="nftCount")


class TreasuryNft(BaseModel):
    nft_id: str = ""
    name: str = ""
    collection_id: str = ""
    preview_url: str = ""


class TreasuryToken(BaseModel):
    asset_id: str = ""
    name: str = ""
    symbol: str = ""
    balance: float = 0.0
    price: float = 0.0
    total_value: float = 0.0


class TreasuryWallet(WireModel):
    """Raw per-wallet snapshot returned by the treasury mode of the market endpoint."""

    wallet: str
    xch_bal: float = Field(default=0.0, alias="xchBal")
    nfts: list[TreasuryNft] = Field(default_factory=list)
    tokens: list[TreasuryToken] = Field(default_factory=list)


class MerklPool(WireModel):
    name: str
    symbol: str
    apr: float
    tvl: float
    url: str
    pair: str | None = None
    chain_name: str | None = Field(default=None, alias="chainName")


class TreasurySnapshot(WireModel):
    ok: bool = True
    wallets: list[TreasuryWallet] = Field(default_factory=list)
    elapsed_ms: int = 0


class MarketPrices(WireModel):
    """
    Quotes for the market asset list, keyed by asset identifier.

    Attributes
    ----------
    prices, changes, mcaps : dict[str, float]
        USD price, 24h change and market cap per asset
    xch_usd : float
        XCH/USD rate used for conversions
    sources : dict[str, PriceSource]
        Provider that produced each price
    success : bool
        False only when the whole resolution failed

    """

    prices: dict[str, float] = Field(default_factory=dict)
    changes: dict[str, float] = Field(default_factory=dict)
    mcaps: dict[str, float] = Field(default_factory=dict)
    xch_usd: float = 0.0
    sources: dict[str, PriceSource] = Field(default_factory=dict)
    success: bool = True

    @classmethod
    def from_quotes(cls, quotes: dict[str, PriceQuote], xch_usd: float) -> "MarketPrices":
        return cls(
            prices={k: q.price for k, q in quotes.items()},
            changes={k: q.change for k, q in quotes.items()},
            mcaps={k: q.market_cap for k, q in quotes.items()},
            xch_usd=xch_usd,
            sources={k: q.source for k, q in quotes.items()},
        )
