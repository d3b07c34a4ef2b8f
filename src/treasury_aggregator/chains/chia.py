"""Chia wallet holdings: XCH, CAT tokens, NFT collections and treasury snapshots."""

import logging
import time
from collections.abc import Callable, Mapping, Sequence
from typing import Any

from treasury_aggregator.core.aggregator import (
    apply_enrichment,
    enrichable_ids,
    finalize_collections,
    merge_token_holdings,
    tally_collections,
    total_value,
)
from treasury_aggregator.core.models import (
    ChainPortfolio,
    CollectionMeta,
    FullPortfolio,
    HoldingType,
    NftCollection,
    NftPortfolio,
    PriceSource,
    TokenHolding,
    TreasuryNft,
    TreasurySnapshot,
    TreasuryToken,
    TreasuryWallet,
    parse_float,
)
from treasury_aggregator.core.outcome import Outcome
from treasury_aggregator.integrations.coingecko import CoinGeckoClient
from treasury_aggregator.integrations.mintgarden import MintGardenClient
from treasury_aggregator.integrations.spacescan import SpacescanClient
from treasury_aggregator.integrations.xchscan import XchscanClient
from treasury_aggregator.pricing.defaults import usd_rate
from treasury_aggregator.transport.parallel import run_parallel
from treasury_aggregator.transport.ratelimit import RateLimiter
from treasury_aggregator.transport.retry import RetryManager

logger = logging.getLogger(__name__)

XCH_ASSET_ID = "XCH"

WALLET_LANE = "spacescan-wallet"
TREASURY_LANE = "treasury-wallet"
TREASURY_NFT_TIMEOUT = 12.0


def _tail(address: str) -> str:
    return address[-12:]


class CollectionEnricher:
    """
    Overlays collection names and thumbnails from MintGarden.

    Collections are looked up in parallel batches; the rate-limit lane is
    acquired once per batch.

    Parameters
    ----------
    mintgarden : MintGardenClient
        Metadata provider
    limiter : RateLimiter
        Lane registry
    batch_size : int
        Collections per parallel batch
    timeout : float | None
        Per-collection timeout, provider default if None
    lane : str
        Lane acquired before each batch

    """

    def __init__(
        self,
        mintgarden: MintGardenClient,
        limiter: RateLimiter,
        batch_size: int = 8,
        timeout: float | None = None,
        lane: str = "mintgarden",
    ) -> None:
        self.mintgarden = mintgarden
        self.limiter = limiter
        self.batch_size = batch_size
        self.timeout = timeout
        self.lane = lane

    def fetch(self, collection_ids: Sequence[str]) -> dict[str, CollectionMeta | None]:
        """
        Fetch metadata for collections.

        Returns
        -------
        dict[str, CollectionMeta | None]
            Metadata per identifier, None where the provider failed

        """
        metadata: dict[str, CollectionMeta | None] = {}
        for start in range(0, len(collection_ids), self.batch_size):
            batch = collection_ids[start : start + self.batch_size]
            self.limiter.acquire(self.lane)
            results = run_parallel(
                [lambda cid=cid: self.mintgarden.collection(cid, timeout=self.timeout) for cid in batch],
                default=None,
                max_workers=self.batch_size,
            )
            metadata.update(zip(batch, results, strict=True))
        return metadata

    def enrich(self, collections: Mapping[str, NftCollection]) -> None:
        """Enrich tallied collections in place, skipping the uncategorized bucket."""
        ids = enrichable_ids(collections)
        if not ids:
            return
        logger.info("Enriching %d collections", len(ids))
        apply_enrichment(collections, self.fetch(ids))


class ChiaPortfolioService:
    """
    Builds holdings of Chia wallets.

    Parameters
    ----------
    spacescan : SpacescanClient
        Balances, CATs and NFTs
    xchscan : XchscanClient
        XCH balances for treasury snapshots
    coingecko : CoinGeckoClient
        XCH/USD rate
    enricher : CollectionEnricher
        Collection metadata overlay
    retries : Mapping[str, RetryManager]
        Retry managers by schedule name (``chia-tokens``, ``chia-full-tokens``, ``chia-nfts``)
    default_prices : Mapping[str, float]
        Fallback native rates
    clock : Callable[[], float]
        Monotonic clock for elapsed-time reporting

    """

    def __init__(
        self,
        spacescan: SpacescanClient,
        xchscan: XchscanClient,
        coingecko: CoinGeckoClient,
        enricher: CollectionEnricher,
        retries: Mapping[str, RetryManager],
        default_prices: Mapping[str, float],
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.spacescan = spacescan
        self.xchscan = xchscan
        self.coingecko = coingecko
        self.enricher = enricher
        self.retries = retries
        self.default_prices = default_prices
        self._clock = clock

    def _xch_rate(self, warnings: list[str]) -> float:
        price, source = usd_rate(self.coingecko, self.default_prices, "chia")
        if source is PriceSource.DEFAULT:
            warnings.append("chia: default price used")
        return price

    def _wallet_tokens(
        self,
        address: str,
        xch_usd: float,
        retry: RetryManager | None,
        warnings: list[str],
        lane: str | None = None,
    ) -> list[TokenHolding]:
        tokens: list[TokenHolding] = []

        xch = self.spacescan.xch_balance(address)
        if xch is None:
            warnings.append(f"{_tail(address)}: XCH balance unavailable")
        elif xch > 0:
            tokens.append(
                TokenHolding.priced(
                    symbol="XCH",
                    name="Chia",
                    asset_id=XCH_ASSET_ID,
                    balance=xch,
                    price=xch_usd,
                    type=HoldingType.NATIVE,
                )
            )

        cats = self.spacescan.token_balance(address, retry=retry, lane=lane)
        if cats is None:
            warnings.append(f"{_tail(address)}: CAT balances unavailable")
            return tokens

        for cat in cats:
            holding = cat_holding(cat, xch_usd)
            if holding is not None:
                tokens.append(holding)
        logger.info("[CHIA] %s: %d CATs", _tail(address), len(cats))
        return tokens

    def fetch_tokens(self, address: str) -> Outcome[ChainPortfolio]:
        """
        Fetch XCH and CAT holdings of one wallet.

        The CAT list is retried on the ``chia-tokens`` schedule; when it stays
        unavailable the XCH balance alone is returned.

        Parameters
        ----------
        address : str
            Chia address

        Returns
        -------
        Outcome[ChainPortfolio]
            Holdings in discovery order with their total

        """
        warnings: list[str] = []
        xch_usd = self._xch_rate(warnings)
        tokens = self._wallet_tokens(address, xch_usd, self.retries.get("chia-tokens"), warnings)
        portfolio = ChainPortfolio(tokens=tokens, total=total_value(tokens))
        logger.info("[CHIA] %s: %d tokens, $%.2f", _tail(address), len(tokens), portfolio.total)
        return Outcome.from_warnings(portfolio, warnings)

    def fetch_nfts(self, address: str) -> Outcome[NftPortfolio]:
        """
        Fetch the NFTs of one wallet grouped into enriched collections.

        Returns
        -------
        Outcome[NftPortfolio]
            Collections by size and the raw NFT count

        """
        warnings: list[str] = []
        raw = self.spacescan.nft_balance(address, retry=self.retries.get("chia-nfts"))
        if raw is None:
            warnings.append(f"{_tail(address)}: NFT list unavailable")
            raw = []

        collections = tally_collections(raw)
        self.enricher.enrich(collections)
        portfolio = NftPortfolio(nfts=finalize_collections(collections), nft_count=len(raw))
        logger.info("[CHIA] %s: %d NFTs in %d collections", _tail(address), len(raw), len(portfolio.nfts))
        return Outcome.from_warnings(portfolio, warnings)

    def fetch_full(self, address1: str, address2: str | None = None) -> Outcome[FullPortfolio]:
        """
        Fetch and merge tokens and NFTs of one or two wallets.

        Token lists are fetched one wallet after the other through the shared
        wallet lane; NFT lists are fetched in parallel and pooled before the
        collection tally.

        Parameters
        ----------
        address1 : str
            First wallet
        address2 : str | None
            Second wallet; ignored when empty or equal to the first

        Returns
        -------
        Outcome[FullPortfolio]
            Merged holdings sorted by value and pooled collections

        """
        wallets = [address1]
        if address2 and address2 != address1:
            wallets.append(address2)

        warnings: list[str] = []
        xch_usd = self._xch_rate(warnings)
        retry = self.retries.get("chia-full-tokens")
        per_wallet = [self._wallet_tokens(w, xch_usd, retry, warnings, lane=WALLET_LANE) for w in wallets]
        tokens = merge_token_holdings(*per_wallet)

        nft_lists = run_parallel([lambda w=w: self.spacescan.nft_balance(w) for w in wallets], default=None)
        raw: list[dict[str, Any]] = []
        for wallet, nfts in zip(wallets, nft_lists, strict=True):
            if nfts is None:
                warnings.append(f"{_tail(wallet)}: NFT list unavailable")
                continue
            raw.extend(nfts)

        collections = tally_collections(raw)
        self.enricher.enrich(collections)
        portfolio = FullPortfolio(
            tokens=tokens,
            total=total_value(tokens),
            nfts=finalize_collections(collections),
            nft_count=len(raw),
        )
        logger.info(
            "[CHIA-FULL] %d tokens, $%.2f, %d NFTs in %d collections",
            len(tokens),
            portfolio.total,
            len(raw),
            len(portfolio.nfts),
        )
        return Outcome.from_warnings(portfolio, warnings)

    def fetch_treasury_wallets(self, wallets: Sequence[str]) -> Outcome[TreasurySnapshot]:
        """
        Raw balance, NFT and CAT snapshot of each wallet.

        Every call is paced through the treasury lane.

        Parameters
        ----------
        wallets : Sequence[str]
            Chia addresses

        Returns
        -------
        Outcome[TreasurySnapshot]
            One record per wallet in input order and the elapsed milliseconds

        """
        started = self._clock()
        warnings: list[str] = []
        records = []

        for wallet in wallets:
            record = TreasuryWallet(wallet=wallet)

            xch = self.xchscan.balance(wallet, lane=TREASURY_LANE)
            if xch is None:
                warnings.append(f"{_tail(wallet)}: XCH balance unavailable")
            else:
                record.xch_bal = xch

            nfts = self.spacescan.nft_balance(wallet, timeout=TREASURY_NFT_TIMEOUT, lane=TREASURY_LANE)
            if nfts is None:
                warnings.append(f"{_tail(wallet)}: NFT list unavailable")
            else:
                record.nfts = [treasury_nft(n) for n in nfts]

            cats = self.spacescan.token_balance(wallet, lane=TREASURY_LANE)
            if cats is None:
                warnings.append(f"{_tail(wallet)}: CAT balances unavailable")
            else:
                record.tokens = [t for t in (treasury_token(c) for c in cats) if t is not None]

            logger.info(
                "[TREASURY] %s: %.4f XCH, %d NFTs, %d tokens",
                wallet[-8:],
                record.xch_bal,
                len(record.nfts),
                len(record.tokens),
            )
            records.append(record)

        elapsed_ms = int((self._clock() - started) * 1000)
        return Outcome.from_warnings(TreasurySnapshot(wallets=records, elapsed_ms=elapsed_ms), warnings)


def cat_holding(cat: Mapping[str, Any], xch_usd: float) -> TokenHolding | None:
    """
    Convert a Spacescan CAT record into a holding.

    The USD price falls back to the XCH price times the XCH rate, and an
    upstream ``total_value`` overrides ``balance * price``.

    Returns
    -------
    TokenHolding | None
        Holding, None for an empty balance

    """
    balance = parse_float(cat.get("balance"))
    if balance <= 0:
        return None
    price_usd = parse_float(cat.get("price"))
    price_xch = parse_float(cat.get("price_xch"))
    price = price_usd if price_usd > 0 else price_xch * xch_usd
    symbol = cat.get("symbol") or cat.get("name") or "?"
    return TokenHolding.priced(
        balance=balance,
        price=price,
        value_override=cat.get("total_value"),
        symbol=str(symbol),
        name=str(cat.get("name") or cat.get("symbol") or "Unknown CAT"),
        asset_id=str(cat["asset_id"]) if cat.get("asset_id") else None,
        price_xch=price_xch,
        type=HoldingType.CAT,
        image=str(cat.get("preview_url") or ""),
    )


def treasury_nft(nft: Mapping[str, Any]) -> TreasuryNft:
    return TreasuryNft(
        nft_id=str(nft.get("nft_id") or ""),
        name=str(nft.get("name") or ""),
        collection_id=str(nft.get("collection_id") or ""),
        preview_url=str(nft.get("preview_url") or ""),
    )


def treasury_token(cat: Mapping[str, Any]) -> TreasuryToken | None:
    balance = parse_float(cat.get("balance"))
    if balance <= 0:
        return None
    return TreasuryToken(
        asset_id=str(cat.get("asset_id") or ""),
        name=str(cat.get("name") or cat.get("symbol") or ""),
        symbol=str(cat.get("symbol") or cat.get("name") or ""),
        balance=balance,
        price=parse_float(cat.get("price")),
        total_value=parse_float(cat.get("total_value")),
    )
