"""Tests for the HTTP endpoint handlers."""

import json

import httpx
import pytest

from conftest import COINGECKO, KV, MINTGARDEN, SPACESCAN, XCHSCAN
from treasury_aggregator.config import KVConfig
from treasury_aggregator.handlers.base import AGGREGATE_CACHE, CORS_HEADERS, PROXY_CACHE, Request
from treasury_aggregator.handlers.router import ROUTES, dispatch

WALLET = "xch1" + "c" * 58


class FakeKV:
    """Redis-style REST store keeping values in memory."""

    def __init__(self) -> None:
        self.data: dict[str, str] = {}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.headers.get("Authorization") != "Bearer secret":
            return httpx.Response(401, json={"error": "Unauthorized"})
        _, op, key = request.url.path.split("/", 2)
        if op == "set":
            self.data[key] = json.loads(request.content)["value"]
            return httpx.Response(200, json={"result": "OK"})
        return httpx.Response(200, json={"result": self.data.get(key)})


@pytest.fixture
def kv(upstream):
    store = FakeKV()
    upstream.add(KV, "*", store)
    return store


def call(services, path: str, method: str = "GET", query: dict | None = None, body=None):
    return dispatch(Request(method=method, path=path, query=query or {}, body=body), services)


# save


def test_save_round_trip(services, kv):
    """A stored save reads back with a savedAt stamp."""
    payload = json.dumps({"deviceId": "dev1", "save": {"level": 3, "coins": [1, 2]}})

    stored = call(services, "/api/save", "POST", body=payload)
    loaded = call(services, "/api/save", query={"deviceId": "dev1"})

    assert stored.status_code == 200
    assert stored.body == {"ok": True}
    assert loaded.status_code == 200
    assert loaded.body["ok"] is True
    assert loaded.body["save"]["level"] == 3
    assert loaded.body["save"]["coins"] == [1, 2]
    assert loaded.body["save"]["savedAt"] > 0
    assert list(kv.data) == ["cv:save:dev1"]


def test_save_keeps_client_timestamp(services, kv):
    call(services, "/api/save", "POST", body={"deviceId": "dev1", "save": {"savedAt": 123}})

    assert json.loads(kv.data["cv:save:dev1"]) == {"savedAt": 123}


def test_save_unknown_device(services, kv):
    response = call(services, "/api/save", query={"deviceId": "nobody"})

    assert response.body == {"ok": True, "save": None}


@pytest.mark.parametrize(
    ("method", "query", "body", "error"),
    [
        ("GET", {}, None, "Missing deviceId"),
        ("POST", {}, json.dumps({"save": {"level": 1}}), "Missing deviceId"),
        ("POST", {}, json.dumps({"deviceId": "dev1"}), "Missing save payload"),
        ("POST", {}, json.dumps({"deviceId": "dev1", "save": "level-1"}), "Missing save payload"),
    ],
)
def test_save_rejects_bad_input_without_calling_store(services, upstream, method, query, body, error):
    response = call(services, "/api/save", method, query=query, body=body)

    assert response.status_code == 400
    assert response.body == {"ok": False, "error": error}
    assert upstream.requests == []


def test_save_invalid_json(services, upstream):
    response = call(services, "/api/save", "POST", body="{not json")

    assert response.status_code == 400
    assert response.body["ok"] is False
    assert upstream.requests == []


def test_save_method_not_allowed(services, kv):
    response = call(services, "/api/save", "DELETE", query={"deviceId": "dev1"})

    assert response.status_code == 405
    assert response.body == {"ok": False, "error": "Method not allowed"}


def test_save_without_store_credentials(settings, make_services):
    settings.kv = KVConfig()
    services = make_services()

    response = call(services, "/api/save", query={"deviceId": "dev1"})

    assert response.status_code == 500
    assert response.body == {"ok": False, "error": "KV not configured"}


def test_save_store_failure(services, upstream):
    upstream.add(KV, "*", httpx.Response(500, json={"error": "ERR max requests"}))

    response = call(services, "/api/save", "POST", body={"deviceId": "dev1", "save": {}})

    assert response.status_code == 500
    assert response.body == {"ok": False, "error": "KV error 500: ERR max requests"}


# address proxy


def test_address_proxy_get(services, upstream):
    upstream.add(SPACESCAN, f"/address/balance/{WALLET}", {"status": "success", "xch": 1.5})

    response = call(services, "/api/chia-address-proxy", query={"endpoint": "balance", "address": WALLET})

    assert response.status_code == 200
    assert response.body == {"status": "success", "xch": 1.5}
    assert upstream.requests[0].extensions["timeout"]["read"] == 12.0


def test_address_proxy_post_token_balance_gets_longer_timeout(services, upstream):
    upstream.add(SPACESCAN, f"/address/token-balance/{WALLET}", {"data": []})

    response = call(
        services, "/api/chia-address-proxy", "POST", body=json.dumps({"endpoint": "token-balance", "address": WALLET})
    )

    assert response.status_code == 200
    assert upstream.requests[0].extensions["timeout"]["read"] == 30.0


@pytest.mark.parametrize(
    ("query", "error"),
    [
        ({"endpoint": "balance"}, "Missing endpoint or address"),
        ({"address": WALLET}, "Missing endpoint or address"),
        ({"endpoint": "xch-balance", "address": WALLET}, "Invalid endpoint"),
    ],
)
def test_address_proxy_validation(services, upstream, query, error):
    response = call(services, "/api/chia-address-proxy", query=query)

    assert response.status_code == 400
    assert response.body == {"error": error}
    assert upstream.requests == []


def test_address_proxy_upstream_status(services, upstream):
    upstream.add(SPACESCAN, f"/address/nft-balance/{WALLET}", 503)

    response = call(services, "/api/chia-address-proxy", query={"endpoint": "nft-balance", "address": WALLET})

    assert response.status_code == 500
    assert response.body == {"error": "Spacescan returned 503"}


def test_address_proxy_no_response(services, upstream):
    upstream.add(SPACESCAN, "*", httpx.ConnectError("refused"))

    response = call(services, "/api/chia-address-proxy", query={"endpoint": "balance", "address": WALLET})

    assert response.status_code == 500
    assert "error" in response.body


# path proxy


def test_path_proxy_success_is_cached(services, upstream):
    upstream.add(SPACESCAN, "/cat/info/abc", {"data": {"symbol": "ABC"}})

    response = call(services, "/api/spacescan-proxy", query={"path": "/cat/info/abc"})

    assert response.status_code == 200
    assert response.body == {"data": {"symbol": "ABC"}}
    assert response.headers["Cache-Control"] == PROXY_CACHE


def test_path_proxy_passes_upstream_status(services, upstream):
    upstream.add(SPACESCAN, "/cat/info/missing", 404)

    response = call(services, "/api/spacescan-proxy", query={"path": "cat/info/missing"})

    assert response.status_code == 404
    assert response.body == {"error": "Spacescan returned 404"}
    assert "Cache-Control" not in response.headers


def test_path_proxy_timeout(services, upstream):
    upstream.add(SPACESCAN, "*", httpx.ReadTimeout("slow"))

    response = call(services, "/api/spacescan-proxy", query={"path": "cat/info/abc"})

    assert response.status_code == 500


def test_path_proxy_requires_path(services, upstream):
    response = call(services, "/api/spacescan-proxy")

    assert response.status_code == 400
    assert response.body == {"error": "Missing path parameter"}
    assert upstream.requests == []


# collections


def _collection(request: httpx.Request) -> dict:
    cid = request.url.path.rsplit("/", 1)[-1]
    if cid == "nameless":
        return {"id": cid, "name": None}
    return {"id": cid, "name": f"{cid} club", "thumbnail_uri": "t", "floor_price": "1.5", "nft_count": 100}


def test_collections_lookup(services, upstream):
    upstream.add(MINTGARDEN, "/collections/gone", 404)
    upstream.add(MINTGARDEN, "/collections/*", _collection)

    response = call(services, "/api/chia-collections", "POST", body={"colIds": ["col1", "nameless", "gone", ""]})

    assert response.status_code == 200
    assert response.body == {
        "ok": True,
        "collections": {
            "col1": {"id": "col1", "name": "col1 club", "thumbnail": "t", "floor_xch": 1.5, "nft_count": 100},
        },
    }


def test_collections_capped(services, upstream):
    upstream.add(MINTGARDEN, "/collections/*", _collection)

    response = call(services, "/api/chia-collections", "POST", body={"colIds": [f"c{i}" for i in range(75)]})

    assert len(response.body["collections"]) == 60
    assert len(upstream.calls(MINTGARDEN)) == 60


def test_collections_uses_short_timeout(services, upstream):
    upstream.add(MINTGARDEN, "/collections/*", _collection)

    call(services, "/api/chia-collections", "POST", body={"colIds": ["col1"]})

    assert upstream.requests[0].extensions["timeout"]["read"] == 3.0


@pytest.mark.parametrize("body", ["not json", '"a string"', json.dumps({"colIds": "col1"})])
def test_collections_bad_body(services, upstream, body):
    response = call(services, "/api/chia-collections", "POST", body=body)

    assert response.status_code == 400
    assert response.body == {"ok": False, "error": "bad body"}
    assert upstream.requests == []


def test_collections_empty(services, upstream):
    response = call(services, "/api/chia-collections", "POST", body={"colIds": []})

    assert response.body == {"ok": True, "collections": {}}
    assert upstream.requests == []


# treasury


@pytest.mark.parametrize(
    ("query", "error"),
    [
        ({}, "Missing chain"),
        ({"chain": "chia", "type": "full"}, "Missing address1"),
        ({"chain": "base"}, "Missing address"),
        ({"chain": "chia", "type": "nfts"}, "Missing address"),
        ({"chain": "solana", "address": "abc"}, "Invalid chain/type"),
        ({"chain": "chia", "type": "offers", "address": WALLET}, "Invalid chain/type"),
    ],
)
def test_treasury_validation(services, upstream, query, error):
    response = call(services, "/api/treasury-comprehensive", query=query)

    assert response.status_code == 400
    assert response.body == {"error": error}
    assert upstream.requests == []


def test_treasury_chia_tokens_default_type(services, upstream):
    upstream.add(COINGECKO, "/api/v3/simple/price", {"chia": {"usd": 10.0}})
    upstream.add(SPACESCAN, f"/address/xch-balance/{WALLET}", {"xch": 3})
    upstream.add(SPACESCAN, f"/address/token-balance/{WALLET}", {"data": []})

    response = call(services, "/api/treasury-comprehensive", query={"chain": "chia", "address": WALLET})

    assert response.status_code == 200
    assert response.headers["Cache-Control"] == AGGREGATE_CACHE
    assert response.body["total"] == 30.0
    assert response.body["tokens"][0]["assetId"] == "XCH"
    assert "warnings" not in response.body


def test_treasury_full_accepts_address(services, upstream):
    upstream.add(COINGECKO, "/api/v3/simple/price", {"chia": {"usd": 10.0}})
    upstream.add(SPACESCAN, f"/address/xch-balance/{WALLET}", {"xch": 1})
    upstream.add(SPACESCAN, f"/address/token-balance/{WALLET}", {"data": []})
    upstream.add(SPACESCAN, f"/address/nft-balance/{WALLET}", {"balance": []})

    response = call(services, "/api/treasury-comprehensive", query={"chain": "chia", "type": "full", "address": WALLET})

    assert response.status_code == 200
    assert set(response.body) == {"tokens", "total", "nfts", "nftCount"}


def test_treasury_degraded_source_is_reported(services, upstream):
    upstream.add(COINGECKO, "/api/v3/simple/price", {"chia": {"usd": 10.0}})
    upstream.add(SPACESCAN, f"/address/nft-balance/{WALLET}", 404)

    response = call(services, "/api/treasury-comprehensive", query={"chain": "chia", "type": "nfts", "address": WALLET})

    assert response.status_code == 200
    assert response.body["nfts"] == []
    assert response.body["warnings"] == [f"{WALLET[-12:]}: NFT list unavailable"]


def test_treasury_failure_answers_200(services, monkeypatch):
    def boom(address):
        raise RuntimeError("spacescan exploded")

    monkeypatch.setattr(services.chia, "fetch_tokens", boom)

    response = call(services, "/api/treasury-comprehensive", query={"chain": "chia", "address": WALLET})

    assert response.status_code == 200
    assert response.body == {"tokens": [], "total": 0.0, "nfts": [], "nftCount": 0, "error": "spacescan exploded"}


# market prices


def test_market_prices_default_mode(services, settings, upstream):
    settings.market_asset_ids = ["aaa"]
    upstream.add(COINGECKO, "/api/v3/simple/price", {"chia": {"usd": 20.0}})
    upstream.add(SPACESCAN, "/cat/info/aaa", {"data": {"amount_price": "0.5"}})

    response = call(services, "/api/chia-cat-prices")

    assert response.status_code == 200
    assert response.headers["Cache-Control"] == AGGREGATE_CACHE
    assert set(response.body) == {"prices", "changes", "mcaps", "xch_usd", "sources", "success"}
    assert response.body["prices"] == {"aaa": 0.5}
    assert response.body["sources"] == {"aaa": "spacescan"}


def test_market_prices_failure(services, monkeypatch):
    def boom(asset_ids):
        raise RuntimeError("no prices")

    monkeypatch.setattr(services.prices, "resolve", boom)

    response = call(services, "/api/chia-cat-prices")

    assert response.status_code == 200
    assert response.body["success"] is False
    assert response.body["xch_usd"] == 4.0
    assert response.body["error"] == "no prices"


def test_market_prices_treasury_mode(services, upstream):
    other = "xch1" + "d" * 58
    upstream.add(XCHSCAN, "/api/account/balance", {"xch": 2})
    upstream.add(SPACESCAN, "/address/nft-balance/*", {"balance": []})
    upstream.add(SPACESCAN, "/address/token-balance/*", {"data": []})

    response = call(
        services, "/api/chia-cat-prices", query={"mode": "treasury", "wallets": f"{WALLET}, {other},"}
    )

    assert response.status_code == 200
    assert response.body["ok"] is True
    assert [w["wallet"] for w in response.body["wallets"]] == [WALLET, other]
    assert "elapsed_ms" in response.body


def test_treasury_mode_needs_wallets(services, settings, upstream):
    """Without wallets the market endpoint answers in its default mode."""
    settings.market_asset_ids = []

    response = call(services, "/api/chia-cat-prices", query={"mode": "treasury"})

    assert "prices" in response.body


# routing


@pytest.mark.parametrize("path", sorted(ROUTES))
def test_preflight(services, upstream, path):
    response = call(services, path, "OPTIONS")

    assert response.status_code == 200
    assert response.body is None
    assert response.text() == ""
    for header, value in CORS_HEADERS.items():
        assert response.headers[header] == value
    assert upstream.requests == []


def test_unknown_route(services):
    response = call(services, "/api/nope")

    assert response.status_code == 404
    assert response.body == {"error": "Not found"}


def test_trailing_slash(services):
    response = call(services, "/api/spacescan-proxy/")

    assert response.status_code == 400


def test_json_responses_carry_cors(services):
    response = call(services, "/api/spacescan-proxy")

    assert response.headers["Access-Control-Allow-Origin"] == "*"
    assert response.headers["Content-Type"] == "application/json"
