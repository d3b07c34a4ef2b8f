"""Save-game storage keyed by device id."""

import logging
import time
from typing import TYPE_CHECKING

from treasury_aggregator.core.errors import TreasuryError
from treasury_aggregator.handlers.base import Request, Response, endpoint, json_response

if TYPE_CHECKING:
    from treasury_aggregator.services import Services

logger = logging.getLogger(__name__)


def _failure(status_code: int, message: str) -> Response:
    return json_response(status_code, {"ok": False, "error": message})


@endpoint()
def handle(request: Request, services: "Services") -> Response:
    """
    ``GET`` returns ``{ok, save}``; ``POST {save}`` stores the payload.

    ``savedAt`` (epoch milliseconds) is stamped on payloads that lack it.
    Missing credentials or a store failure answer 500.
    """
    try:
        body = request.json_body() if request.method.upper() == "POST" else {}
        device_id = request.param("deviceId") or body.get("deviceId")
        if not device_id:
            return _failure(400, "Missing deviceId")
        key = services.kv.device_key(str(device_id))

        if request.method.upper() == "GET":
            return json_response(200, {"ok": True, "save": services.kv.get(key)})

        if request.method.upper() == "POST":
            save = body.get("save")
            if not isinstance(save, dict):
                return _failure(400, "Missing save payload")
            if not save.get("savedAt"):
                save["savedAt"] = int(time.time() * 1000)
            services.kv.set(key, save)
            logger.info("Saved %s", key)
            return json_response(200, {"ok": True})

        return _failure(405, "Method not allowed")
    except TreasuryError as e:
        logger.warning("Save storage failed: %s", e)
        return _failure(e.status_code, str(e))
