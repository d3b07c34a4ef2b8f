"""Merging of holdings across wallets and grouping of NFTs into collections."""

import re
from collections.abc import Iterable, Mapping
from typing import Any

from treasury_aggregator.core.models import CollectionMeta, NftCollection, NftSample, TokenHolding

UNCATEGORIZED = "uncategorized"
UNKNOWN_COLLECTION = "Unknown Collection"

_EDITION_SUFFIX = re.compile(r"\s*#\d+\s*$")


def total_value(tokens: Iterable[TokenHolding]) -> float:
    """
    Sum USD values of holdings.

    Parameters
    ----------
    tokens : Iterable[TokenHolding]
        Holdings to sum

    Returns
    -------
    float
        Total USD value

    """
    return sum((token.value for token in tokens), 0.0)


def merge_token_holdings(*wallets: Iterable[TokenHolding]) -> list[TokenHolding]:
    """
    Merge holdings of several wallets into one list.

    Holdings are grouped by asset identifier, falling back to symbol; balances
    and values of duplicates are summed and the remaining fields come from the
    first occurrence. The result is sorted by value, highest first.

    Parameters
    ----------
    *wallets : Iterable[TokenHolding]
        Holdings of each wallet

    Returns
    -------
    list[TokenHolding]
        Merged holdings

    """
    merged: dict[str, TokenHolding] = {}
    for tokens in wallets:
        for token in tokens:
            key = token.merge_key
            existing = merged.get(key)
            if existing is None:
                merged[key] = token.model_copy()
                continue
            existing.balance += token.balance
            existing.value += token.value

    return sorted(merged.values(), key=lambda t: t.value, reverse=True)


def collection_name_from_item(item_name: str) -> str:
    """
    Derive a collection name from an item name by stripping a trailing ``#NNN``.

    Parameters
    ----------
    item_name : str
        NFT display name, e.g. ``"Foo #12"``

    Returns
    -------
    str
        Collection name, or ``"Unknown Collection"`` when nothing is left

    """
    return _EDITION_SUFFIX.sub("", str(item_name or "")).strip() or UNKNOWN_COLLECTION


def tally_collections(raw_nfts: Iterable[Mapping[str, Any]]) -> dict[str, NftCollection]:
    """
    Group raw NFT records by collection identifier and count them.

    The first item of each collection provides the fallback name, the preview
    image and the single sample item. NFTs without a collection land in the
    ``uncategorized`` bucket.

    Parameters
    ----------
    raw_nfts : Iterable[Mapping[str, Any]]
        Provider records with ``collection_id``, ``name``, ``nft_id`` and ``preview_url``

    Returns
    -------
    dict[str, NftCollection]
        Collections keyed by identifier, in first-seen order

    """
    collections: dict[str, NftCollection] = {}
    for nft in raw_nfts:
        cid = str(nft.get("collection_id") or UNCATEGORIZED)
        name = str(nft.get("name") or "")
        preview = str(nft.get("preview_url") or "")

        collection = collections.get(cid)
        if collection is None:
            collection = NftCollection(id=cid, name=collection_name_from_item(name), image=preview)
            collections[cid] = collection

        collection.count += 1
        if not collection.nfts:
            collection.nfts.append(NftSample(id=str(nft.get("nft_id") or ""), name=name, image=preview))
    return collections


def enrichable_ids(collections: Mapping[str, NftCollection]) -> list[str]:
    """Collection identifiers eligible for metadata enrichment."""
    return [cid for cid in collections if cid != UNCATEGORIZED]


def apply_enrichment(
    collections: Mapping[str, NftCollection],
    metadata: Mapping[str, CollectionMeta | None],
) -> None:
    """
    Overlay provider metadata onto tallied collections in place.

    Enriched values win over tally-derived ones, but a missing or empty
    provider value never clears what the tally pass produced.

    Parameters
    ----------
    collections : Mapping[str, NftCollection]
        Tallied collections
    metadata : Mapping[str, CollectionMeta | None]
        Provider metadata per collection identifier

    """
    for cid, meta in metadata.items():
        collection = collections.get(cid)
        if collection is None or meta is None or cid == UNCATEGORIZED:
            continue
        if meta.name:
            collection.enriched_name = meta.name
            collection.name = meta.name
        if meta.thumbnail:
            collection.enriched_image = meta.thumbnail


def finalize_collections(collections: Mapping[str, NftCollection]) -> list[NftCollection]:
    """
    Order collections by size and settle their display image.

    Parameters
    ----------
    collections : Mapping[str, NftCollection]
        Tallied (and possibly enriched) collections

    Returns
    -------
    list[NftCollection]
        Collections sorted by count, largest first, preferring the enriched image

    """
    result = []
    for collection in collections.values():
        final = collection.model_copy()
        final.image = collection.enriched_image or collection.image or ""
        result.append(final)
    return sorted(result, key=lambda c: c.count, reverse=True)
