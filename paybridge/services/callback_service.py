"""
Gateway callback processing.

A callback is verified first; an unverified callback never reaches the
order table. Verified callbacks are applied as a compare-and-set on the
status we read, so each transition is written by exactly one request and
only that request notifies the internal consumer.
"""
import enum
from dataclasses import dataclass
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError

from ..errors import PersistenceError
from ..logging_config import get_logger
from ..models import OrderStatus, is_terminal
from ..security import SIGNATURE_FIELD, format_value, verify
from ..storage import OrderRepository
from .notifier import CompletionNotifier

logger = get_logger(__name__)


class CallbackResult(str, enum.Enum):
    PROCESSED = "processed"          # order updated
    DUPLICATE = "duplicate"          # replay of what is already stored
    IGNORED = "ignored"              # verified but not applicable to the stored order
    UNKNOWN_ORDER = "unknown_order"
    REJECTED = "rejected"            # malformed or bad signature
    FAILED = "failed"                # could not read or write the order


@dataclass
class CallbackOutcome:
    result: CallbackResult
    order_id: Optional[str] = None
    reason: Optional[str] = None
    notified: bool = False

    @property
    def acknowledged(self) -> bool:
        return self.result not in (CallbackResult.REJECTED, CallbackResult.FAILED)


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    return value if isinstance(value, str) else format_value(value)


def _status(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, float) and not value.is_integer():
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class CallbackProcessor:
    def __init__(self, repo: OrderRepository, notifier: CompletionNotifier, secret: Optional[str]):
        self.repo = repo
        self.notifier = notifier
        self.secret = secret

    def handle(self, payload: Any) -> CallbackOutcome:
        if not isinstance(payload, dict):
            return CallbackOutcome(CallbackResult.REJECTED, reason="malformed_body")

        if not self.secret:
            logger.error("callback_secret_missing")
            return CallbackOutcome(CallbackResult.FAILED, reason="gateway_not_configured")

        if not verify(payload, self.secret, payload.get(SIGNATURE_FIELD)):
            logger.warning(
                "callback_signature_invalid",
                order_id=payload.get("order_id"),
                trade_id=payload.get("trade_id"),
            )
            return CallbackOutcome(CallbackResult.REJECTED, reason="bad_signature")

        order_id = _text(payload.get("order_id"))
        status = _status(payload.get("status"))
        if not order_id or status is None:
            logger.warning("callback_malformed", order_id=order_id, status=payload.get("status"))
            return CallbackOutcome(CallbackResult.REJECTED, order_id=order_id, reason="malformed_body")

        trade_id = _text(payload.get("trade_id"))
        block_transaction_id = _text(payload.get("block_transaction_id")) or ""
        actual_amount = _text(payload.get("actual_amount"))

        try:
            order = self.repo.find_by_order_id(order_id)
        except SQLAlchemyError as e:
            logger.error("callback_order_lookup_failed", order_id=order_id, error=str(e))
            return CallbackOutcome(CallbackResult.FAILED, order_id=order_id, reason="persistence_error")

        if order is None:
            logger.warning("callback_unknown_order", order_id=order_id, trade_id=trade_id)
            return CallbackOutcome(CallbackResult.UNKNOWN_ORDER, order_id=order_id)

        previous_status = order.status
        if actual_amount is None:
            actual_amount = order.actual_amount

        if trade_id and order.trade_id and trade_id != order.trade_id:
            logger.warning(
                "callback_trade_mismatch",
                order_id=order_id,
                stored_trade_id=order.trade_id,
                trade_id=trade_id,
            )
            return CallbackOutcome(CallbackResult.IGNORED, order_id=order_id, reason="trade_mismatch")

        if is_terminal(previous_status) and status != previous_status:
            logger.warning(
                "callback_terminal_conflict",
                order_id=order_id,
                stored_status=previous_status,
                status=status,
            )
            return CallbackOutcome(CallbackResult.IGNORED, order_id=order_id, reason="terminal_conflict")

        if (
            previous_status == status
            and (order.block_transaction_id or "") == block_transaction_id
            and order.actual_amount == actual_amount
        ):
            logger.info("callback_duplicate", order_id=order_id, status=status)
            return CallbackOutcome(CallbackResult.DUPLICATE, order_id=order_id)

        try:
            written = self.repo.update_order(
                order_id,
                status=status,
                block_transaction_id=block_transaction_id,
                actual_amount=actual_amount,
                expected_status=previous_status,
            )
        except PersistenceError:
            return CallbackOutcome(CallbackResult.FAILED, order_id=order_id, reason="persistence_error")

        if not written:
            # another request moved the row since we read it
            logger.info("callback_lost_race", order_id=order_id, status=status)
            return CallbackOutcome(CallbackResult.DUPLICATE, order_id=order_id, reason="concurrent_update")

        logger.info(
            "callback_applied",
            order_id=order_id,
            trade_id=trade_id,
            previous_status=previous_status,
            status=status,
            block_transaction_id=block_transaction_id,
        )

        outcome = CallbackOutcome(CallbackResult.PROCESSED, order_id=order_id)
        if status == OrderStatus.COMPLETED and previous_status != OrderStatus.COMPLETED:
            outcome.notified = True
            self._notify(self._completion_payload(payload, order_id, trade_id, status,
                                                  block_transaction_id, actual_amount))
        return outcome

    @staticmethod
    def _completion_payload(payload: Dict[str, Any], order_id: str, trade_id: Optional[str],
                            status: int, block_transaction_id: str,
                            actual_amount: Optional[str]) -> Dict[str, Any]:
        return {
            "order_id": order_id,
            "trade_id": trade_id,
            "amount": payload.get("amount"),
            "actual_amount": actual_amount,
            "status": status,
            "block_transaction_id": block_transaction_id,
        }

    def _notify(self, body: Dict[str, Any]) -> None:
        try:
            self.notifier.notify_completion(body)
        except Exception:
            logger.exception("notify_crashed", order_id=body.get("order_id"))
