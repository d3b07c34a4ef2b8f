"""Wiring of settings, transport and provider clients for one invocation."""

import time
from collections.abc import Callable
from dataclasses import dataclass

import httpx

from treasury_aggregator.chains.base import BasePortfolioService
from treasury_aggregator.chains.chia import ChiaPortfolioService, CollectionEnricher
from treasury_aggregator.config import Settings, load_settings
from treasury_aggregator.integrations.blockscout import BlockscoutClient
from treasury_aggregator.integrations.coingecko import CoinGeckoClient
from treasury_aggregator.integrations.dexie import DexieClient
from treasury_aggregator.integrations.dexscreener import DexScreenerClient
from treasury_aggregator.integrations.kv import KVClient
from treasury_aggregator.integrations.merkl import MerklClient
from treasury_aggregator.integrations.mintgarden import MintGardenClient
from treasury_aggregator.integrations.spacescan import SpacescanClient
from treasury_aggregator.integrations.xchscan import XchscanClient
from treasury_aggregator.pricing.dex import DexPriceResolver
from treasury_aggregator.pricing.fallback import FallbackPriceResolver
from treasury_aggregator.rpc.provider import JsonRpcClient, RotationPolicy
from treasury_aggregator.transport.fetch import BoundedFetcher
from treasury_aggregator.transport.ratelimit import RateLimiter
from treasury_aggregator.transport.retry import RetryConfig, RetryManager
from treasury_aggregator.valuation.lp import LpValuator


@dataclass
class Services:
    """
    Everything a handler needs, built fresh for each invocation.

    Rate-limit buckets and the RPC rotation live here, so no state is shared
    between invocations unless a caller reuses the container on purpose.
    """

    settings: Settings
    fetcher: BoundedFetcher
    limiter: RateLimiter
    coingecko: CoinGeckoClient
    spacescan: SpacescanClient
    dexie: DexieClient
    mintgarden: MintGardenClient
    merkl: MerklClient
    kv: KVClient
    rpc: JsonRpcClient
    prices: FallbackPriceResolver
    base: BasePortfolioService
    chia: ChiaPortfolioService
    clock: Callable[[], float] = time.monotonic
    deadline: float | None = None

    @classmethod
    def create(
        cls,
        settings: Settings | None = None,
        client: httpx.Client | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
        deadline: float | None = None,
    ) -> "Services":
        """
        Build the service graph.

        Parameters
        ----------
        settings : Settings | None
            Settings; loaded from the catalogue and environment if None
        client : httpx.Client | None
            Shared HTTP client (tests pass one with a mock transport)
        sleep : Callable[[float], None]
            Sleep used by rate limiting, retries and RPC rotation
        clock : Callable[[], float]
            Monotonic clock
        deadline : float | None
            Clock value by which the invocation must finish; defaults to now
            plus the usable platform budget

        Returns
        -------
        Services
            Ready-to-use container

        """
        settings = settings or load_settings()
        limiter = RateLimiter(settings.rate_limits, clock=clock, sleep=sleep)
        fetcher = BoundedFetcher(client, limiter=limiter, clock=clock)

        coingecko = CoinGeckoClient(fetcher, settings.provider("coingecko"))
        spacescan = SpacescanClient(fetcher, settings.provider("spacescan"))
        dexie = DexieClient(fetcher, settings.provider("dexie"))
        mintgarden = MintGardenClient(fetcher, settings.provider("mintgarden"))
        blockscout = BlockscoutClient(fetcher, settings.provider("blockscout"))
        dexscreener = DexScreenerClient(fetcher, settings.provider("dexscreener"))
        xchscan = XchscanClient(fetcher, settings.provider("xchscan"))
        merkl = MerklClient(fetcher, settings.provider("merkl"), settings.merkl)
        kv = KVClient(fetcher, settings.kv)

        rpc = JsonRpcClient(
            fetcher,
            RotationPolicy.from_config(settings.rpc),
            call_timeout=settings.rpc.call_timeout,
            batch_timeout=settings.rpc.batch_timeout,
            sleep=sleep,
        )
        dex = DexPriceResolver(dexscreener)
        lp = LpValuator(rpc, dex, pools_per_batch=settings.rpc.pools_per_batch)

        ceiling = settings.platform.usable_budget
        if deadline is None:
            deadline = clock() + ceiling
        retries = {
            name: RetryManager(
                fetcher,
                RetryConfig.from_schedule(schedule, ceiling),
                sleep=sleep,
                clock=clock,
                deadline=deadline,
            )
            for name, schedule in settings.retries.items()
        }

        return cls(
            settings=settings,
            fetcher=fetcher,
            limiter=limiter,
            coingecko=coingecko,
            spacescan=spacescan,
            dexie=dexie,
            mintgarden=mintgarden,
            merkl=merkl,
            kv=kv,
            rpc=rpc,
            prices=FallbackPriceResolver(spacescan, dexie, coingecko, settings.default_prices),
            base=BasePortfolioService(blockscout, coingecko, dex, lp, settings.default_prices),
            chia=ChiaPortfolioService(
                spacescan,
                xchscan,
                coingecko,
                CollectionEnricher(mintgarden, limiter),
                retries,
                settings.default_prices,
                clock=clock,
            ),
            clock=clock,
            deadline=deadline,
        )

    def close(self) -> None:
        """Close the underlying HTTP client."""
        self.fetcher.close()

    def __enter__(self) -> "Services":
        """Context manager entry."""
        return self

    def __exit__(self, exc_type: type, exc_val: Exception, exc_tb: object) -> None:
        """Context manager exit."""
        self.close()
