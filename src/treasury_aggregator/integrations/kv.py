"""Key-value REST store used for save-game persistence."""

import json
import logging
from typing import Any
from urllib.parse import quote

from treasury_aggregator.config import KVConfig
from treasury_aggregator.core.errors import ConfigurationError, StorageError
from treasury_aggregator.transport.fetch import BoundedFetcher, FetchResult

logger = logging.getLogger(__name__)


class KVClient:
    """
    Client for a Redis-style REST store (``/get/<key>``, ``/set/<key>``).

    Values are stored as JSON strings. Credentials are checked lazily so the
    rest of the application runs without them.

    Parameters
    ----------
    fetcher : BoundedFetcher
        Bounded HTTP fetcher
    config : KVConfig
        Store URL, token and key prefix

    """

    def __init__(self, fetcher: BoundedFetcher, config: KVConfig) -> None:
        self.fetcher = fetcher
        self.config = config

    def device_key(self, device_id: str) -> str:
        return f"{self.config.key_prefix}{device_id}"

    def _send(self, method: str, path: str, body: Any = None) -> Any:
        if not self.config.url or not self.config.token:
            msg = "KV not configured"
            raise ConfigurationError(msg)

        url = self.config.url.rstrip("/") + path
        result = self.fetcher.request(
            method,
            url,
            timeout=self.config.timeout,
            json_body=body,
            headers={"Authorization": f"Bearer {self.config.token}", "Content-Type": "application/json"},
        )
        if result is None:
            msg = "KV request failed"
            raise StorageError(msg)
        if not result.ok:
            msg = f"KV error {result.status_code}: {_detail(result)}"
            raise StorageError(msg)
        return result.data

    def get(self, key: str) -> Any | None:
        """
        Read a JSON value.

        Parameters
        ----------
        key : str
            Full store key

        Returns
        -------
        Any | None
            Decoded value, None when the key is absent

        Raises
        ------
        ConfigurationError
            If the store URL or token is missing
        StorageError
            If the store failed the request or holds undecodable data

        """
        data = self._send("GET", f"/get/{quote(key, safe='')}")
        stored = data.get("result") if isinstance(data, dict) else None
        if not stored:
            return None
        if not isinstance(stored, str):
            return stored
        try:
            return json.loads(stored)
        except ValueError as e:
            msg = f"Stored value for {key} is not JSON"
            raise StorageError(msg) from e

    def set(self, key: str, value: Any) -> None:
        """
        Write a JSON value.

        Raises
        ------
        ConfigurationError
            If the store URL or token is missing
        StorageError
            If the store failed the request

        """
        self._send("POST", f"/set/{quote(key, safe='')}", {"value": json.dumps(value)})
        logger.debug("Stored %s", key)


def _detail(result: FetchResult) -> str:
    if isinstance(result.data, dict):
        return str(result.data.get("error") or json.dumps(result.data))
    return "" if result.data is None else json.dumps(result.data)
