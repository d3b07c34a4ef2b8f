"""Tests for Pydantic data models."""

import math

from treasury_aggregator.core.models import (
    CollectionMeta,
    FullPortfolio,
    HoldingType,
    MarketPrices,
    MerklPool,
    NftCollection,
    PriceQuote,
    PriceSource,
    TokenHolding,
    TreasuryWallet,
    parse_float,
)
from treasury_aggregator.core.outcome import Outcome, OutcomeStatus


def test_priced_holding_value():
    """Value is balance times price."""
    holding = TokenHolding.priced(symbol="XCH", name="Chia", balance=2.5, price=4.0, type=HoldingType.NATIVE)

    assert holding.value == 10.0


def test_priced_holding_upstream_total_wins():
    """A positive upstream total overrides balance times price."""
    holding = TokenHolding.priced(
        symbol="SBX", name="Spacebucks", balance=100, price=0.01, value_override="3.5", type=HoldingType.CAT
    )

    assert holding.value == 3.5


def test_priced_holding_ignores_zero_override():
    holding = TokenHolding.priced(symbol="SBX", name="Spacebucks", balance=100, price=0.01, value_override=0, type=HoldingType.CAT)

    assert math.isclose(holding.value, 1.0)


def test_holding_numbers_never_negative():
    """Garbage, negative and non-finite inputs collapse to zero."""
    holding = TokenHolding(symbol="X", name="X", balance=-5, price="abc", value=float("nan"), type=HoldingType.ERC20)

    assert holding.balance == 0.0
    assert holding.price == 0.0
    assert holding.value == 0.0


def test_holding_serialises_camel_case_without_nulls():
    holding = TokenHolding.priced(
        symbol="XCH", name="Chia", asset_id="XCH", balance=1, price=4, price_xch=1.0, type=HoldingType.NATIVE
    )

    body = holding.to_json()

    assert body["assetId"] == "XCH"
    assert body["priceXch"] == 1.0
    assert body["type"] == "native"
    assert "contract" not in body
    assert "pairName" not in body


def test_merge_key_prefers_asset_id():
    with_id = TokenHolding(symbol="SBX", name="Spacebucks", asset_id="abc", type=HoldingType.CAT)
    without_id = TokenHolding(symbol="SBX", name="Spacebucks", type=HoldingType.CAT)

    assert with_id.merge_key == "abc"
    assert without_id.merge_key == "SBX"


def test_collection_hides_enrichment_fields():
    collection = NftCollection(id="col1", name="Foo", enriched_name="Foo Club", enriched_image="https://img")

    body = collection.to_json()

    assert "enriched_name" not in body
    assert "enriched_image" not in body
    assert body["count"] == 0


def test_full_portfolio_aliases():
    body = FullPortfolio().to_json()

    assert body == {"tokens": [], "total": 0.0, "nfts": [], "nftCount": 0}


def test_treasury_wallet_alias():
    assert TreasuryWallet(wallet="xch1abc", xch_bal=1.5).to_json()["xchBal"] == 1.5


def test_merkl_pool_chain_fields_optional():
    plain = MerklPool(name="A / B", symbol="A / B", apr=10, tvl=100, url="https://app")
    proxied = MerklPool(name="A / B", symbol="A / B", apr=10, tvl=100, url="https://app", pair="A / B", chain_name="Base")

    assert "chainName" not in plain.to_json()
    assert proxied.to_json()["chainName"] == "Base"


def test_market_prices_from_quotes():
    quotes = {
        "a": PriceQuote(price=1.5, change=-2.0, market_cap=1000, source=PriceSource.SPACESCAN),
        "b": PriceQuote(),
    }

    market = MarketPrices.from_quotes(quotes, xch_usd=20.0).to_json()

    assert market["prices"] == {"a": 1.5, "b": 0.0}
    assert market["changes"]["a"] == -2.0
    assert market["mcaps"]["a"] == 1000
    assert market["sources"] == {"a": "spacescan", "b": "none"}
    assert market["xch_usd"] == 20.0
    assert market["success"] is True


def test_parse_float():
    assert parse_float("1.25") == 1.25
    assert parse_float(None) == 0.0
    assert parse_float("n/a") == 0.0
    assert parse_float(float("inf"), default=-1.0) == -1.0


def test_collection_meta_serialisation():
    meta = CollectionMeta(id="col1", name="Foo", thumbnail="https://t", floor_xch=1.2, nft_count=10)

    assert meta.to_json() == {"id": "col1", "name": "Foo", "thumbnail": "https://t", "floor_xch": 1.2, "nft_count": 10}


def test_outcome_collapses_to_body():
    """Failed outcomes carry an error, partial ones their warnings."""
    ok = Outcome.from_warnings(FullPortfolio(), [])
    partial = Outcome.from_warnings(FullPortfolio(), ["xch1: NFT list unavailable"])
    failed = Outcome.failed(FullPortfolio(), "boom")

    assert ok.status is OutcomeStatus.OK
    assert "warnings" not in ok.to_body()
    assert partial.to_body()["warnings"] == ["xch1: NFT list unavailable"]
    assert failed.to_body()["error"] == "boom"
    assert failed.to_body()["tokens"] == []
