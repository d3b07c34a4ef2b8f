"""MintGarden client for NFT collection metadata."""

from treasury_aggregator.config import ProviderConfig
from treasury_aggregator.core.models import CollectionMeta, parse_float
from treasury_aggregator.transport.fetch import BoundedFetcher


class MintGardenClient:
    """
    Fetches collection display metadata from MintGarden.

    Parameters
    ----------
    fetcher : BoundedFetcher
        Bounded HTTP fetcher
    provider : ProviderConfig
        Base URL and default timeout

    """

    def __init__(self, fetcher: BoundedFetcher, provider: ProviderConfig) -> None:
        self.fetcher = fetcher
        self.base_url = provider.base_url.rstrip("/")
        self.timeout = provider.timeout

    def collection(self, collection_id: str, timeout: float | None = None, lane: str | None = None) -> CollectionMeta | None:
        """
        Fetch one collection.

        Parameters
        ----------
        collection_id : str
            Collection identifier
        timeout : float | None
            Request timeout, provider default if None
        lane : str | None
            Rate-limit lane

        Returns
        -------
        CollectionMeta | None
            Metadata as reported (``id`` and ``name`` may be empty), None on failure

        """
        data = self.fetcher.get_json(
            f"{self.base_url}/collections/{collection_id}",
            timeout=timeout or self.timeout,
            lane=lane,
        )
        if not isinstance(data, dict):
            return None

        try:
            nft_count = int(data.get("nft_count") or 0)
        except (TypeError, ValueError):
            nft_count = 0
        return CollectionMeta(
            id=str(data.get("id") or ""),
            name=str(data.get("name") or ""),
            thumbnail=str(data.get("thumbnail_uri") or ""),
            floor_xch=parse_float(data.get("floor_price")),
            nft_count=nft_count,
        )
