"""Batch lookup of NFT collection metadata."""

import logging
from typing import TYPE_CHECKING

from treasury_aggregator.core.errors import BadRequestError
from treasury_aggregator.handlers.base import Request, Response, endpoint, json_response
from treasury_aggregator.transport.parallel import run_parallel

if TYPE_CHECKING:
    from treasury_aggregator.services import Services

logger = logging.getLogger(__name__)

MAX_COLLECTIONS = 60
COLLECTION_TIMEOUT = 3.0
MAX_WORKERS = 16


@endpoint()
def handle(request: Request, services: "Services") -> Response:
    """``POST {colIds: [...]}`` → ``{ok, collections: {id: record}}``; unknown collections are omitted."""
    try:
        ids = request.json_body().get("colIds") or []
    except BadRequestError:
        return json_response(400, {"ok": False, "error": "bad body"})
    if not isinstance(ids, list):
        return json_response(400, {"ok": False, "error": "bad body"})

    ids = [str(cid) for cid in ids[:MAX_COLLECTIONS] if cid]
    if not ids:
        return json_response(200, {"ok": True, "collections": {}})

    results = run_parallel(
        [lambda cid=cid: services.mintgarden.collection(cid, timeout=COLLECTION_TIMEOUT) for cid in ids],
        default=None,
        max_workers=MAX_WORKERS,
    )
    collections = {meta.id: meta.to_json() for meta in results if meta is not None and meta.id and meta.name}
    logger.info("Collections: %d/%d resolved", len(collections), len(ids))
    return json_response(200, {"ok": True, "collections": collections})
