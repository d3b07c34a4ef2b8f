"""Tests for the bounded fetcher."""

import json
import threading
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import httpx
import pytest

from conftest import COINGECKO, FakeClock
from treasury_aggregator.config import RateLimitConfig
from treasury_aggregator.transport.fetch import BoundedFetcher, FetchResult
from treasury_aggregator.transport.ratelimit import RateLimiter

URL = f"https://{COINGECKO}/api/v3/ping"


@pytest.fixture
def fetcher(http_client):
    return BoundedFetcher(http_client)


def test_get_json_success(fetcher, upstream):
    upstream.add(COINGECKO, "/api/v3/ping", {"gecko_says": "ok"})

    assert fetcher.get_json(URL, timeout=5) == {"gecko_says": "ok"}


def test_get_json_non_success_is_none(fetcher, upstream):
    upstream.add(COINGECKO, "/api/v3/ping", 500)

    assert fetcher.get_json(URL, timeout=5) is None


def test_request_keeps_status_of_failed_response(fetcher, upstream):
    upstream.add(COINGECKO, "/api/v3/ping", httpx.Response(429, json={"error": "slow down"}))

    result = fetcher.request("GET", URL, timeout=5)

    assert result == FetchResult(status_code=429, data={"error": "slow down"})
    assert result.rate_limited
    assert not result.ok


def test_non_json_body(fetcher, upstream):
    upstream.add(COINGECKO, "/api/v3/ping", httpx.Response(200, text="<html>"))

    result = fetcher.request("GET", URL, timeout=5)

    assert result.ok
    assert result.data is None


@pytest.mark.parametrize("error", [httpx.ConnectError("refused"), httpx.ReadTimeout("slow")])
def test_transport_failure_resolves_to_none(fetcher, upstream, error):
    upstream.add(COINGECKO, "/api/v3/ping", error)

    assert fetcher.request("GET", URL, timeout=5) is None


def test_deadline_bounds_the_body(http_client, upstream):
    """A body still arriving after the deadline resolves to None."""
    ticks = iter([0.0, 100.0])
    fetcher = BoundedFetcher(http_client, clock=lambda: next(ticks, 100.0))
    upstream.add(COINGECKO, "/api/v3/ping", {"late": True})

    assert fetcher.request("GET", URL, timeout=5) is None


def test_default_headers_and_params(fetcher, upstream):
    upstream.add(COINGECKO, "/api/v3/simple/price", {})

    fetcher.get_json(f"https://{COINGECKO}/api/v3/simple/price", timeout=5, params={"ids": "chia"})

    request = upstream.requests[0]
    assert request.headers["Accept"] == "application/json"
    assert request.url.params["ids"] == "chia"


def test_post_json(fetcher, upstream):
    upstream.add(COINGECKO, "/api/v3/ping", lambda request: {"echo": json.loads(request.content)})

    assert fetcher.post_json(URL, {"a": 1}, timeout=5) == {"echo": {"a": 1}}


def test_lane_is_acquired_before_sending(http_client, upstream):
    clock = FakeClock()
    limiter = RateLimiter({"gecko": RateLimitConfig(rate=2.0)}, clock=clock, sleep=clock.sleep)
    fetcher = BoundedFetcher(http_client, limiter=limiter, clock=clock)
    upstream.add(COINGECKO, "/api/v3/ping", {})

    fetcher.get_json(URL, timeout=5, lane="gecko")
    fetcher.get_json(URL, timeout=5, lane="gecko")

    assert clock.sleeps == [0.5]


def test_close_leaves_shared_client_open(http_client):
    BoundedFetcher(http_client).close()

    assert not http_client.is_closed


def test_close_owned_client():
    fetcher = BoundedFetcher()
    fetcher.close()

    assert fetcher.client.is_closed


class SlowUpstream(BaseHTTPRequestHandler):
    """Local server that answers quickly, trickles its body, or stalls before answering."""

    protocol_version = "HTTP/1.1"

    def do_GET(self) -> None:
        try:
            if self.path == "/stall":
                time.sleep(2.5)
            self.send_response(200)
            self.send_header("Content-Type", "application/json")
            self.send_header("Transfer-Encoding", "chunked")
            self.end_headers()
            pieces = [b" "] * 8 if self.path == "/trickle" else []
            for piece in [*pieces, b'{"ok": true}']:
                self.wfile.write(b"%x\r\n%s\r\n" % (len(piece), piece))
                self.wfile.flush()
                if pieces:
                    time.sleep(0.4)
            self.wfile.write(b"0\r\n\r\n")
        except (BrokenPipeError, ConnectionResetError):
            pass

    def log_message(self, format, *args) -> None:
        pass


@pytest.fixture
def slow_server():
    server = ThreadingHTTPServer(("127.0.0.1", 0), SlowUpstream)
    server.daemon_threads = True
    threading.Thread(target=server.serve_forever, daemon=True).start()
    yield f"http://127.0.0.1:{server.server_port}"
    server.shutdown()
    server.server_close()


def test_real_upstream_within_deadline(slow_server):
    with httpx.Client() as client:
        fetcher = BoundedFetcher(client)
        result = fetcher.request("GET", f"{slow_server}/fast", timeout=2.0)
        fetcher.close()

    assert result == FetchResult(status_code=200, data={"ok": True})


@pytest.mark.parametrize("path", ["/trickle", "/stall"])
def test_wall_clock_deadline_holds_for_slow_upstream(slow_server, path):
    """A slow body or a late response releases the caller at the deadline."""
    with httpx.Client() as client:
        fetcher = BoundedFetcher(client)
        started = time.monotonic()
        result = fetcher.request("GET", f"{slow_server}{path}", timeout=1.0)
        elapsed = time.monotonic() - started
        fetcher.close()

    assert result is None
    assert elapsed < 1.3
