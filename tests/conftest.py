"""Pytest configuration for treasury-aggregator tests."""

import json
import logging
from collections.abc import Callable
from typing import Any

import httpx
import pytest

from treasury_aggregator.config import KVConfig, Settings, load_settings
from treasury_aggregator.rpc import abi
from treasury_aggregator.services import Services

SPACESCAN = "api.spacescan.io"
COINGECKO = "api.coingecko.com"
DEXIE = "dexie.space"
MINTGARDEN = "api.mintgarden.io"
BLOCKSCOUT = "base.blockscout.com"
DEXSCREENER = "api.dexscreener.com"
XCHSCAN = "xchscan.com"
MERKL = "api.merkl.xyz"
KV = "kv.test"
RPC = "base-rpc.publicnode.com"

ENV_VARS = (
    "KV_REST_API_URL",
    "KV_REST_API_TOKEN",
    "TREASURY_BASE_RPCS",
    "TREASURY_LOG_LEVEL",
    "TREASURY_PROVIDERS_FILE",
)


class FakeClock:
    """Monotonic clock that only moves when something sleeps."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class Upstream:
    """
    Routes mocked upstream requests by host and path.

    A route answers with its responses in order and repeats the last one.
    A response is a JSON body (dict or list, answered with 200), an int
    status, an ``httpx.Response``, an exception to raise, or a callable
    taking the request. A path ending in ``*`` matches as a prefix.
    """

    def __init__(self) -> None:
        self.routes: list[tuple[str, str, list[Any]]] = []
        self.requests: list[httpx.Request] = []

    def add(self, host: str, path: str, *responses: Any) -> None:
        self.routes.append((host, path, list(responses)))

    def calls(self, host: str, path: str = "*") -> list[httpx.Request]:
        return [r for r in self.requests if r.url.host == host and _matches(path, r.url.path)]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        for host, path, responses in self.routes:
            if request.url.host != host or not _matches(path, request.url.path):
                continue
            response = responses.pop(0) if len(responses) > 1 else responses[0]
            return _respond(response, request)
        return httpx.Response(404, json={"error": f"no route for {request.url}"})


def _matches(pattern: str, path: str) -> bool:
    if pattern.endswith("*"):
        return path.startswith(pattern[:-1])
    return path == pattern


def _respond(response: Any, request: httpx.Request) -> httpx.Response:
    if isinstance(response, Exception):
        raise response
    if isinstance(response, httpx.Response):
        return response
    if isinstance(response, int):
        return httpx.Response(response)
    if callable(response):
        return _respond(response(request), request)
    return httpx.Response(200, json=response)


def _word(value: int) -> str:
    return f"{value:064x}"


class FakeChain:
    """
    JSON-RPC endpoint answering ``eth_call`` from a table of contract state.

    Unknown calls answer with an execution-reverted error.
    """

    def __init__(self) -> None:
        self.state: dict[tuple[str, str], str] = {}
        self.payloads: list[Any] = []

    def pool(self, address: str, token0: str, token1: str, reserve0: int, reserve1: int, supply: int) -> None:
        address = address.lower()
        self.state[(address, abi.TOKEN0)] = "0x" + "0" * 24 + token0[2:].lower()
        self.state[(address, abi.TOKEN1)] = "0x" + "0" * 24 + token1[2:].lower()
        self.state[(address, abi.GET_RESERVES)] = "0x" + _word(reserve0) + _word(reserve1) + _word(0)
        self.state[(address, abi.TOTAL_SUPPLY)] = "0x" + _word(supply)
        self.state[(address, abi.DECIMALS)] = "0x" + _word(18)

    def token(self, address: str, symbol: str, decimals: int = 18) -> None:
        raw = symbol.encode().hex()
        encoded = "0x" + _word(32) + _word(len(symbol)) + raw + "0" * (-len(raw) % 64)
        self.state[(address.lower(), abi.DECIMALS)] = "0x" + _word(decimals)
        self.state[(address.lower(), abi.SYMBOL)] = encoded

    def _answer(self, call: dict[str, Any]) -> dict[str, Any]:
        tx = call["params"][0]
        result = self.state.get((tx["to"].lower(), tx["data"]))
        if result is None:
            return {"jsonrpc": "2.0", "id": call["id"], "error": {"code": -32000, "message": "execution reverted"}}
        return {"jsonrpc": "2.0", "id": call["id"], "result": result}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content)
        self.payloads.append(payload)
        if isinstance(payload, list):
            return httpx.Response(200, json=[self._answer(call) for call in payload])
        return httpx.Response(200, json=self._answer(payload))


@pytest.fixture
def chain(upstream: "Upstream") -> FakeChain:
    fake = FakeChain()
    upstream.add(RPC, "/", fake)
    return fake


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def restore_logging():
    """Put the root logger back the way the test found it."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def upstream() -> Upstream:
    return Upstream()


@pytest.fixture
def settings(monkeypatch: pytest.MonkeyPatch) -> Settings:
    """Bundled catalogue with a test key-value store and no environment overrides."""
    for var in ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    settings = load_settings()
    settings.kv = KVConfig(url=f"https://{KV}", token="secret")
    return settings


@pytest.fixture
def http_client(upstream: Upstream):
    client = httpx.Client(transport=httpx.MockTransport(upstream.handler))
    yield client
    client.close()


@pytest.fixture
def make_services(settings: Settings, http_client: httpx.Client, clock: FakeClock) -> Callable[..., Services]:
    def factory(**overrides: Any) -> Services:
        return Services.create(settings=overrides.get("settings", settings), client=http_client, sleep=clock.sleep, clock=clock)

    return factory


@pytest.fixture
def services(make_services: Callable[..., Services]) -> Services:
    return make_services()
