"""Native coin USD rates with centralised fallback constants."""

import logging
from collections.abc import Mapping

from treasury_aggregator.core.errors import ConfigurationError
from treasury_aggregator.core.models import PriceSource
from treasury_aggregator.integrations.coingecko import CoinGeckoClient

logger = logging.getLogger(__name__)


def default_price(default_prices: Mapping[str, float], coin: str) -> float:
    """
    Fallback USD price of a native coin.

    Parameters
    ----------
    default_prices : Mapping[str, float]
        The ``default_prices`` table of the settings
    coin : str
        Coin id (e.g., 'chia', 'ethereum')

    Returns
    -------
    float
        Configured fallback price

    Raises
    ------
    ConfigurationError
        If the table has no entry for the coin

    """
    try:
        return float(default_prices[coin])
    except KeyError:
        msg = f"No default price configured for '{coin}'"
        raise ConfigurationError(msg) from None


def usd_rate(coingecko: CoinGeckoClient, default_prices: Mapping[str, float], coin: str) -> tuple[float, PriceSource]:
    """
    Live USD rate of a native coin, or its fallback constant.

    Returns
    -------
    tuple[float, PriceSource]
        Rate and the source it came from

    """
    price = coingecko.get_usd_price(coin)
    if price:
        return price, PriceSource.COINGECKO

    fallback = default_price(default_prices, coin)
    logger.warning("Using default %s price %.2f", coin, fallback)
    return fallback, PriceSource.DEFAULT
