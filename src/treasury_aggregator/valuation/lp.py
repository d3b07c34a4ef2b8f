"""Valuation of constant-product LP tokens from on-chain reserves."""

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from decimal import Decimal

from treasury_aggregator.core.models import HoldingType, LpPoolMeta, TokenHolding, TokenInfo
from treasury_aggregator.pricing.dex import DexPriceResolver
from treasury_aggregator.rpc import abi
from treasury_aggregator.rpc.batch import BatchCallResolver
from treasury_aggregator.rpc.provider import JsonRpcClient

logger = logging.getLogger(__name__)

LP_SYMBOLS = ("9mm-LP",)
LP_SYMBOL_MARKERS = ("-LP", "UNI-V2")

UNKNOWN_TOKEN = TokenInfo()


def is_lp_token(symbol: str, name: str) -> bool:
    """
    Whether an ERC-20 looks like a DEX liquidity-provider token.

    Parameters
    ----------
    symbol : str
        Token symbol
    name : str
        Token name

    Returns
    -------
    bool
        True for pool share tokens (staked wrappers excluded)

    """
    if symbol in LP_SYMBOLS or any(marker in symbol for marker in LP_SYMBOL_MARKERS):
        return True
    return " LPs" in name and "Staked" not in name


def scale(raw: int, decimals: int) -> float:
    return float(Decimal(raw) / (Decimal(10) ** decimals))


@dataclass(frozen=True)
class LpPosition:
    """An LP token balance held by a wallet."""

    contract: str
    balance: float


@dataclass(frozen=True)
class LpValuation:
    """
    USD valuation of one pool and the holder's share of it.

    Attributes
    ----------
    pool_usd : float
        Value of both reserves
    share : float
        Holder's fraction of the LP supply
    user_value : float
        ``share * pool_usd``
    approximated : bool
        True when only one side had a price and the pool was valued as twice that side

    """

    pool_usd: float
    share: float
    user_value: float
    approximated: bool = False


def value_pool(meta: LpPoolMeta, info0: TokenInfo, info1: TokenInfo, price0: float, price1: float) -> LpValuation:
    """
    Value a pool and the holder's share of it.

    With both prices known the pool is worth the sum of its scaled reserves.
    With exactly one known it is approximated as twice the known side, which
    holds for a constant-product pool at equilibrium.

    Parameters
    ----------
    meta : LpPoolMeta
        Reserves, supply and holder balance
    info0, info1 : TokenInfo
        Decimals of the underlying tokens
    price0, price1 : float
        USD prices, 0 when unknown

    Returns
    -------
    LpValuation
        Pool and position value

    """
    side0 = scale(meta.reserve0, info0.decimals) * price0 if price0 > 0 else 0.0
    side1 = scale(meta.reserve1, info1.decimals) * price1 if price1 > 0 else 0.0

    approximated = False
    if price0 > 0 and price1 > 0:
        pool_usd = side0 + side1
    elif price0 > 0:
        pool_usd, approximated = 2 * side0, True
    elif price1 > 0:
        pool_usd, approximated = 2 * side1, True
    else:
        pool_usd = 0.0

    supply = meta.total_supply_units
    share = float(Decimal(str(meta.user_balance)) / supply) if supply > 0 else 0.0
    return LpValuation(pool_usd=pool_usd, share=share, user_value=share * pool_usd, approximated=approximated)


def to_holding(
    meta: LpPoolMeta,
    info0: TokenInfo,
    info1: TokenInfo,
    price0: float,
    price1: float,
    valuation: LpValuation,
) -> TokenHolding:
    """Build the ``lp`` holding row for a valued position."""
    pair = f"{info0.symbol}/{info1.symbol}"
    balance = meta.user_balance
    return TokenHolding(
        symbol=pair,
        name=f"{pair} LP",
        contract=meta.contract_address,
        balance=balance,
        price=valuation.user_value / balance if balance > 0 else 0.0,
        value=valuation.user_value,
        type=HoldingType.LP,
        pair_name=pair,
        token0=meta.token0_address,
        token1=meta.token1_address,
        price0=price0,
        price1=price1,
        total_liq_usd=valuation.pool_usd,
        user_share_pct=f"{valuation.share * 100:.4f}",
    )


@dataclass(frozen=True)
class ValuedPosition:
    holding: TokenHolding
    valuation: LpValuation


class LpValuator:
    """
    Resolves pool state over batched JSON-RPC and values LP positions.

    Parameters
    ----------
    client : JsonRpcClient
        JSON-RPC client for the pools' chain
    dex : DexPriceResolver
        Prices for the underlying tokens
    pools_per_batch : int
        LP contracts described per JSON-RPC batch

    """

    def __init__(self, client: JsonRpcClient, dex: DexPriceResolver, pools_per_batch: int = 5) -> None:
        self.client = client
        self.dex = dex
        self.pools_per_batch = max(1, pools_per_batch)

    def load_pool_meta(self, positions: Sequence[LpPosition]) -> list[LpPoolMeta]:
        """
        Read token addresses, reserves, supply and decimals of each pool.

        Calls for pool ``i`` of a batch carry ids ``i * 5 + k`` in the order
        of ``abi.POOL_CALLS``. A failed batch leaves its pools with empty state.

        Parameters
        ----------
        positions : Sequence[LpPosition]
            LP contracts and holder balances

        Returns
        -------
        list[LpPoolMeta]
            One record per position, in input order

        """
        calls_per_pool = len(abi.POOL_CALLS)
        metas: list[LpPoolMeta] = []

        for start in range(0, len(positions), self.pools_per_batch):
            chunk = positions[start : start + self.pools_per_batch]
            resolver = BatchCallResolver(self.client)
            for index, position in enumerate(chunk):
                for k, selector in enumerate(abi.POOL_CALLS):
                    resolver.add_call(index * calls_per_pool + k, position.contract, selector)
            results = resolver.execute()

            for index, position in enumerate(chunk):
                base = index * calls_per_pool
                reserve0, reserve1 = abi.decode_reserves(results.get(base + 2))
                metas.append(
                    LpPoolMeta(
                        contract_address=position.contract,
                        user_balance=position.balance,
                        token0_address=abi.decode_address(results.get(base)),
                        token1_address=abi.decode_address(results.get(base + 1)),
                        reserve0=reserve0,
                        reserve1=reserve1,
                        total_supply=abi.decode_uint(results.get(base + 3)),
                        lp_decimals=abi.decode_uint(results.get(base + 4)) or 18,
                    )
                )

        logger.info("Resolved %d LP pools", len(metas))
        return metas

    def resolve_token_info(self, addresses: Iterable[str | None]) -> dict[str, TokenInfo]:
        """
        Read decimals and symbol once per distinct underlying token.

        Parameters
        ----------
        addresses : Iterable[str | None]
            Token addresses, possibly repeated across pools

        Returns
        -------
        dict[str, TokenInfo]
            Lowercase address to metadata (decimals default to 18, symbol to
            the last six characters of the address)

        """
        unique = list(dict.fromkeys(a.lower() for a in addresses if a))
        if not unique:
            return {}

        resolver = BatchCallResolver(self.client)
        for i, address in enumerate(unique):
            resolver.add_call(i * 2, address, abi.DECIMALS)
            resolver.add_call(i * 2 + 1, address, abi.SYMBOL)
        results = resolver.execute()

        return {
            address: TokenInfo(
                address=address,
                decimals=abi.decode_uint(results.get(i * 2)) or 18,
                symbol=abi.decode_string(results.get(i * 2 + 1)) or address[-6:],
            )
            for i, address in enumerate(unique)
        }

    def value_positions(self, positions: Sequence[LpPosition], known_prices: Mapping[str, float]) -> list[ValuedPosition]:
        """
        Value LP positions end to end.

        Parameters
        ----------
        positions : Sequence[LpPosition]
            LP balances of the wallet
        known_prices : Mapping[str, float]
            Lowercase address to USD price already known to the caller; used
            where the DEX lookup has no price

        Returns
        -------
        list[ValuedPosition]
            Holding rows with their valuation, in input order

        """
        if not positions:
            return []

        metas = self.load_pool_meta(positions)
        token_addresses = [a for meta in metas for a in (meta.token0_address, meta.token1_address) if a]
        infos = self.resolve_token_info(token_addresses)

        prices = {address: quote.price for address, quote in self.dex.prices(infos).items()}
        for address, price in known_prices.items():
            if price > 0 and address.lower() not in prices:
                prices[address.lower()] = price

        valued = []
        for meta in metas:
            info0 = infos.get(meta.token0_address or "", UNKNOWN_TOKEN)
            info1 = infos.get(meta.token1_address or "", UNKNOWN_TOKEN)
            price0 = prices.get(meta.token0_address or "", 0.0)
            price1 = prices.get(meta.token1_address or "", 0.0)
            valuation = value_pool(meta, info0, info1, price0, price1)
            if valuation.approximated:
                logger.info("LP %s valued from one side of the pool", meta.contract_address)
            valued.append(ValuedPosition(to_holding(meta, info0, info1, price0, price1, valuation), valuation))
        return valued
