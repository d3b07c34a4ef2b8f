"""xchscan client, used for XCH balances where Spacescan blocks the caller."""

from treasury_aggregator.config import ProviderConfig
from treasury_aggregator.core.models import parse_float
from treasury_aggregator.transport.fetch import BoundedFetcher


class XchscanClient:
    def __init__(self, fetcher: BoundedFetcher, provider: ProviderConfig) -> None:
        self.fetcher = fetcher
        self.base_url = provider.base_url.rstrip("/")
        self.timeout = provider.timeout

    def balance(self, address: str, lane: str | None = None) -> float | None:
        """
        Fetch the XCH balance of an address.

        Returns
        -------
        float | None
            Balance in XCH, None when the request failed

        """
        data = self.fetcher.get_json(
            f"{self.base_url}/account/balance",
            params={"address": address},
            timeout=self.timeout,
            lane=lane,
        )
        if not isinstance(data, dict):
            return None
        return parse_float(data.get("xch"))
