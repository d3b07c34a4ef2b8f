"""Base (EVM) wallet holdings: native ETH, ERC-20 tokens and LP positions."""

import logging
from collections.abc import Mapping
from typing import Any

from treasury_aggregator.core.aggregator import total_value
from treasury_aggregator.core.models import ChainPortfolio, HoldingType, PriceSource, TokenHolding, parse_float
from treasury_aggregator.core.outcome import Outcome
from treasury_aggregator.integrations.blockscout import BlockscoutClient
from treasury_aggregator.integrations.coingecko import CoinGeckoClient
from treasury_aggregator.pricing.defaults import usd_rate
from treasury_aggregator.pricing.dex import DexPriceResolver
from treasury_aggregator.valuation.lp import LpPosition, LpValuator, is_lp_token

logger = logging.getLogger(__name__)

WETH = "0x4200000000000000000000000000000000000006"
MIN_NATIVE_BALANCE = 0.0001
MIN_TOKEN_BALANCE = 0.000001


def _decimals(value: Any) -> int:
    try:
        return int(value or 18) or 18
    except (TypeError, ValueError):
        return 18


class BasePortfolioService:
    """
    Builds the holdings of a Base wallet.

    ERC-20 tokens are priced from the explorer's exchange rate, then from DEX
    pairs; WETH is priced at the ETH rate. LP tokens are valued from their
    pool reserves.

    Parameters
    ----------
    blockscout : BlockscoutClient
        Balances
    coingecko : CoinGeckoClient
        ETH/USD rate
    dex : DexPriceResolver
        DEX prices for unpriced tokens
    lp : LpValuator
        LP position valuation
    default_prices : Mapping[str, float]
        Fallback native rates

    """

    def __init__(
        self,
        blockscout: BlockscoutClient,
        coingecko: CoinGeckoClient,
        dex: DexPriceResolver,
        lp: LpValuator,
        default_prices: Mapping[str, float],
    ) -> None:
        self.blockscout = blockscout
        self.coingecko = coingecko
        self.dex = dex
        self.lp = lp
        self.default_prices = default_prices

    def fetch(self, address: str) -> Outcome[ChainPortfolio]:
        """
        Fetch and value every holding of an address.

        Parameters
        ----------
        address : str
            EVM address

        Returns
        -------
        Outcome[ChainPortfolio]
            Holdings in discovery order with their USD total; partial when a
            source was unavailable or a pool was valued from one side

        """
        logger.info("[BASE] %s", address)
        warnings: list[str] = []

        eth_price, eth_source = usd_rate(self.coingecko, self.default_prices, "ethereum")
        if eth_source is PriceSource.DEFAULT:
            warnings.append("ethereum: default price used")
        known_prices: dict[str, float] = {WETH: eth_price}
        tokens: list[TokenHolding] = []

        native = self.blockscout.coin_balance(address)
        if native is None:
            warnings.append("ETH balance unavailable")
        elif native > MIN_NATIVE_BALANCE:
            tokens.append(
                TokenHolding.priced(symbol="ETH", name="Ethereum", balance=native, price=eth_price, type=HoldingType.NATIVE)
            )

        items = self.blockscout.token_balances(address)
        if items is None:
            warnings.append("token balances unavailable")
            items = []

        lp_positions: list[LpPosition] = []
        unpriced: list[TokenHolding] = []
        for item in items:
            token = item.get("token") if isinstance(item.get("token"), dict) else {}
            balance = parse_float(item.get("value")) / 10 ** _decimals(token.get("decimals"))
            if balance < MIN_TOKEN_BALANCE:
                continue

            symbol = str(token.get("symbol") or "")
            name = str(token.get("name") or "")
            contract = str(token.get("address_hash") or token.get("address") or "").lower()
            if is_lp_token(symbol, name):
                lp_positions.append(LpPosition(contract=contract, balance=balance))
                continue
            if not contract:
                continue

            price = parse_float(token.get("exchange_rate")) or known_prices.get(contract, 0.0)
            holding = TokenHolding.priced(
                symbol=symbol or "?",
                name=name or symbol or "?",
                contract=contract,
                balance=balance,
                price=price,
                type=HoldingType.ERC20,
            )
            if price > 0:
                known_prices[contract] = price
                tokens.append(holding)
            else:
                unpriced.append(holding)

        logger.info("[BASE] %d erc20, %d LP", len(tokens) + len(unpriced), len(lp_positions))

        if unpriced:
            dex_prices = self.dex.prices(t.contract for t in unpriced)
            for holding in unpriced:
                quote = dex_prices.get(holding.contract or "")
                if quote is not None:
                    known_prices[holding.contract] = quote.price
                    holding = TokenHolding.priced(
                        **holding.model_dump(exclude={"balance", "price", "value"}),
                        balance=holding.balance,
                        price=quote.price,
                    )
                tokens.append(holding)

        for position in self.lp.value_positions(lp_positions, known_prices):
            tokens.append(position.holding)
            if position.valuation.approximated:
                warnings.append(f"{position.holding.pair_name}: LP valued from one side of the pool")

        portfolio = ChainPortfolio(tokens=tokens, total=total_value(tokens))
        logger.info("[BASE] $%.2f, %d tokens", portfolio.total, len(tokens))
        return Outcome.from_warnings(portfolio, warnings)
