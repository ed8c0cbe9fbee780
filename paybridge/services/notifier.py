"""
Completion notifier.

Forwards completed-order events to the internal consumer (the manager
service). One attempt per call; failures are logged and swallowed.
"""
from typing import Any, Dict, Optional

import httpx

from ..logging_config import get_logger

logger = get_logger(__name__)


class CompletionNotifier:
    def __init__(self, url: Optional[str], http_client: Optional[httpx.Client] = None):
        self.url = url
        self._client = http_client

    def _post(self, payload: Dict[str, Any]) -> httpx.Response:
        if self._client is not None:
            return self._client.post(self.url, json=payload)
        with httpx.Client() as client:
            return client.post(self.url, json=payload)

    def notify_completion(self, payload: Dict[str, Any]) -> bool:
        """POST the completion payload. Returns True if the consumer accepted it; never raises."""
        if not self.url:
            logger.info("notify_skipped", reason="missing_url", order_id=payload.get("order_id"))
            return False
        try:
            r = self._post(payload)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.warning("notify_failed", order_id=payload.get("order_id"), error=str(e))
            return False
        if r.status_code >= 400:
            logger.warning(
                "notify_rejected",
                order_id=payload.get("order_id"),
                http_status=r.status_code,
            )
            return False
        logger.info("notify_sent", order_id=payload.get("order_id"), trade_id=payload.get("trade_id"))
        return True
