"""BEpusdt gateway adapter."""
from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, Optional

import httpx

from ..errors import UpstreamError
from ..logging_config import get_logger
from ..security import format_value, sign, SIGNATURE_FIELD
from .adapter import GatewayTrade, PSPAdapter, PSPProvider

logger = get_logger(__name__)

CREATE_TRANSACTION_PATH = "/api/v1/order/create-transaction"

# Channels the gateway is known to route. Informational only.
PAYMENT_CHANNELS = {
    "usdt.trc20": {"name": "USDT-TRC20", "icon": "💎"},
    "usdt.polygon": {"name": "USDT-Polygon", "icon": "🔷"},
    "usdt.arbitrum": {"name": "USDT-Arbitrum", "icon": "🔶"},
    "tron.trx": {"name": "TRX", "icon": "⚡"},
}


def _as_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    return format_value(value)


def _as_int(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class BEpusdtAdapter(PSPAdapter):
    """Talks to a BEpusdt instance over its signed JSON API."""

    provider = PSPProvider.BEPUSDT

    def __init__(self, api_url: str, api_secret: str, http_client: Optional[httpx.Client] = None, **kwargs):
        super().__init__(api_url, api_secret, **kwargs)
        self._client = http_client

    def _post(self, path: str, json: Dict[str, Any]) -> httpx.Response:
        url = f"{self.api_url}{path}"
        if self._client is not None:
            return self._client.post(url, json=json)
        with httpx.Client() as client:
            return client.post(url, json=json)

    def build_create_params(
        self,
        order_id: str,
        amount: Decimal,
        notify_url: str,
        redirect_url: str,
        trade_type: str,
    ) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "order_id": order_id,
            "amount": float(amount),
            "notify_url": notify_url,
            "redirect_url": redirect_url,
            "trade_type": trade_type,
        }
        params[SIGNATURE_FIELD] = sign(params, self.api_secret)
        return params

    def create_transaction(
        self,
        order_id: str,
        amount: Decimal,
        notify_url: str,
        redirect_url: str,
        trade_type: str,
    ) -> GatewayTrade:
        params = self.build_create_params(order_id, amount, notify_url, redirect_url, trade_type)

        try:
            r = self._post(CREATE_TRANSACTION_PATH, params)
        except httpx.HTTPError as e:
            logger.error("gateway_request_failed", order_id=order_id, error=str(e))
            raise UpstreamError(f"支付网关请求失败: {e}") from e

        try:
            result = r.json()
        except ValueError:
            logger.error("gateway_response_malformed", order_id=order_id, http_status=r.status_code)
            raise UpstreamError()

        if not isinstance(result, dict):
            logger.error("gateway_response_malformed", order_id=order_id, http_status=r.status_code)
            raise UpstreamError()

        if result.get("status_code") != 200:
            logger.warning(
                "gateway_rejected_order",
                order_id=order_id,
                status_code=result.get("status_code"),
                message=result.get("message"),
            )
            raise UpstreamError(result.get("message") or None)

        data = result.get("data")
        if not isinstance(data, dict) or not data.get("trade_id"):
            logger.error("gateway_response_missing_trade", order_id=order_id)
            raise UpstreamError()

        return GatewayTrade(
            trade_id=str(data["trade_id"]),
            order_id=str(data.get("order_id") or order_id),
            amount=data.get("amount"),
            actual_amount=_as_text(data.get("actual_amount")),
            token=_as_text(data.get("token")),
            payment_url=_as_text(data.get("payment_url")),
            expiration_time=_as_int(data.get("expiration_time")),
            raw=data,
        )
