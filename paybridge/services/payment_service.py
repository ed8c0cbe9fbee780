"""
Order creation and status lookup.

Creation validates the caller's input, calls the gateway and stores the new
order. Nothing is stored unless the gateway accepted the trade.
"""
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional
from urllib.parse import urlencode

from sqlalchemy.exc import SQLAlchemyError

from ..config import Settings
from ..errors import (
    ConfigurationError, DuplicateOrderError, OrderNotFoundError,
    PersistenceError, ValidationError,
)
from ..logging_config import get_logger
from ..models import AMOUNT_PRECISION, AMOUNT_SCALE, PaymentOrder
from ..psp.adapter import PSPAdapter
from ..storage import OrderRepository

logger = get_logger(__name__)

NOTIFY_PATH = "/api/pay/notify"


def parse_order_id(raw: Any) -> str:
    if raw is None or isinstance(raw, bool):
        raise ValidationError()
    order_id = str(raw).strip()
    if not order_id:
        raise ValidationError()
    return order_id


def parse_amount(raw: Any) -> Decimal:
    if raw is None or raw == "" or isinstance(raw, bool):
        raise ValidationError()
    try:
        amount = Decimal(str(raw).strip())
    except InvalidOperation:
        raise ValidationError("金额格式错误")
    if not amount.is_finite() or amount <= 0:
        raise ValidationError("金额必须大于0")
    # the stored value must round-trip so a replayed create compares equal
    if amount.normalize().as_tuple().exponent < -AMOUNT_SCALE:
        raise ValidationError("金额精度超出范围")
    if amount.adjusted() >= AMOUNT_PRECISION - AMOUNT_SCALE:
        raise ValidationError("金额超出范围")
    return amount


class PaymentService:
    def __init__(self, repo: OrderRepository, gateway: Optional[PSPAdapter], settings: Settings):
        self.repo = repo
        self.gateway = gateway
        self.settings = settings

    def _find_existing(self, order_id: str) -> Optional[PaymentOrder]:
        try:
            return self.repo.find_by_order_id(order_id)
        except SQLAlchemyError as e:
            logger.error("order_lookup_failed", order_id=order_id, error=str(e))
            raise PersistenceError("查询支付记录失败") from e

    def create_order(
        self,
        order_id: Any,
        amount: Any,
        trade_type: Optional[str] = None,
        user_id: Any = None,
        base_url: str = "",
    ) -> Dict[str, Any]:
        """
        Create a gateway trade for ``order_id`` and record it.

        ``base_url`` is the public origin of this service; the gateway's
        callbacks are sent to ``<base_url>/api/pay/notify``.
        """
        order_id = parse_order_id(order_id)
        amount = parse_amount(amount)
        trade_type = (trade_type or "").strip() or self.settings.DEFAULT_TRADE_TYPE
        user_id = str(user_id) if user_id not in (None, "") else None

        if self.gateway is None or not self.settings.gateway_configured:
            logger.error("gateway_not_configured", order_id=order_id)
            raise ConfigurationError()

        existing = self._find_existing(order_id)
        if existing is not None:
            if Decimal(existing.amount) != amount:
                logger.warning(
                    "order_duplicate_conflict",
                    order_id=order_id,
                    stored_amount=str(existing.amount),
                    requested_amount=str(amount),
                )
                raise DuplicateOrderError("订单号已存在且金额不一致")
            logger.info("order_replayed", order_id=order_id, trade_id=existing.trade_id)
            return self._created_view(existing)

        base_url = (self.settings.PUBLIC_BASE_URL or base_url).rstrip("/")
        redirect_base = self.settings.REDIRECT_BASE_URL or base_url
        notify_url = f"{base_url}{NOTIFY_PATH}"
        redirect_url = f"{redirect_base}?{urlencode({'order_id': order_id})}"

        trade = self.gateway.create_transaction(
            order_id=order_id,
            amount=amount,
            notify_url=notify_url,
            redirect_url=redirect_url,
            trade_type=trade_type,
        )

        order = self.repo.create_order(
            order_id=order_id,
            trade_id=trade.trade_id,
            amount=amount,
            actual_amount=trade.actual_amount,
            trade_type=trade_type,
            user_id=user_id,
            payment_url=trade.payment_url,
            token=trade.token,
            expiration_time=trade.expiration_time,
        )
        logger.info(
            "order_created",
            order_id=order.order_id,
            trade_id=order.trade_id,
            trade_type=trade_type,
            actual_amount=order.actual_amount,
        )

        return {
            "trade_id": trade.trade_id,
            "order_id": trade.order_id,
            "amount": trade.amount if trade.amount is not None else float(amount),
            "actual_amount": trade.actual_amount,
            "token": trade.token,
            "payment_url": trade.payment_url,
            "expiration_time": trade.expiration_time,
        }

    @staticmethod
    def _created_view(order: PaymentOrder) -> Dict[str, Any]:
        return {
            "trade_id": order.trade_id,
            "order_id": order.order_id,
            "amount": float(order.amount),
            "actual_amount": order.actual_amount,
            "token": order.token,
            "payment_url": order.payment_url,
            "expiration_time": order.expiration_time,
        }

    def get_by_trade_id(self, trade_id: str) -> Dict[str, Any]:
        """Read-only lookup. Raises OrderNotFoundError for unknown trades."""
        try:
            order = self.repo.find_by_trade_id(trade_id)
        except SQLAlchemyError as e:
            logger.error("order_lookup_failed", trade_id=trade_id, error=str(e))
            raise PersistenceError("查询支付记录失败") from e
        if order is None:
            raise OrderNotFoundError()
        return order.to_snapshot()
