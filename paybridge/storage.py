"""
Order repository.

The repository is the only writer of ``payment_orders``. Every mutation is a
single-row statement: an INSERT for creation and a compare-and-set UPDATE for
callbacks, so concurrent or retried callbacks serialize in the database.
"""
import time
from decimal import Decimal
from typing import Optional, Protocol

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from .errors import DuplicateOrderError, PersistenceError
from .logging_config import get_logger
from .models import OrderStatus, PaymentOrder

logger = get_logger(__name__)


def now_ms() -> int:
    return int(time.time() * 1000)


class OrderRepository(Protocol):
    def create_order(
        self,
        *,
        order_id: str,
        trade_id: str,
        amount: Decimal,
        actual_amount: Optional[str],
        trade_type: str,
        user_id: Optional[str],
        payment_url: Optional[str],
        token: Optional[str],
        expiration_time: Optional[int],
    ) -> PaymentOrder:
        """Insert a new order in the Created state. Raises DuplicateOrderError."""
        ...

    def update_order(
        self,
        order_id: str,
        *,
        status: int,
        block_transaction_id: str,
        actual_amount: Optional[str],
        expected_status: Optional[int] = None,
    ) -> bool:
        """Overwrite callback-owned fields. Returns False when no row matched."""
        ...

    def find_by_trade_id(self, trade_id: str) -> Optional[PaymentOrder]:
        ...

    def find_by_order_id(self, order_id: str) -> Optional[PaymentOrder]:
        ...


class SqlOrderRepository:
    """SQLAlchemy-backed OrderRepository bound to one request's session."""

    def __init__(self, db: Session):
        self.db = db

    def create_order(
        self,
        *,
        order_id: str,
        trade_id: str,
        amount: Decimal,
        actual_amount: Optional[str],
        trade_type: str,
        user_id: Optional[str],
        payment_url: Optional[str],
        token: Optional[str],
        expiration_time: Optional[int],
    ) -> PaymentOrder:
        ts = now_ms()
        order = PaymentOrder(
            order_id=order_id,
            trade_id=trade_id,
            amount=amount,
            actual_amount=actual_amount,
            trade_type=trade_type,
            user_id=user_id or "",
            status=int(OrderStatus.CREATED),
            payment_url=payment_url,
            token=token,
            expiration_time=expiration_time,
            block_transaction_id="",
            created_at=ts,
            updated_at=ts,
        )
        try:
            self.db.add(order)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.warning("order_insert_conflict", order_id=order_id, error=str(e.orig))
            raise DuplicateOrderError() from e
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("order_insert_failed", order_id=order_id, error=str(e))
            raise PersistenceError() from e
        self.db.refresh(order)
        return order

    def update_order(
        self,
        order_id: str,
        *,
        status: int,
        block_transaction_id: str,
        actual_amount: Optional[str],
        expected_status: Optional[int] = None,
    ) -> bool:
        stmt = update(PaymentOrder).where(PaymentOrder.order_id == order_id)
        if expected_status is not None:
            stmt = stmt.where(PaymentOrder.status == expected_status)
        stmt = stmt.values(
            status=status,
            block_transaction_id=block_transaction_id or "",
            actual_amount=actual_amount,
            updated_at=now_ms(),
        ).execution_options(synchronize_session=False)

        try:
            result = self.db.execute(stmt)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("order_update_failed", order_id=order_id, error=str(e))
            raise PersistenceError("更新支付记录失败") from e
        return result.rowcount == 1

    def find_by_trade_id(self, trade_id: str) -> Optional[PaymentOrder]:
        if not trade_id:
            return None
        return self.db.query(PaymentOrder).filter(PaymentOrder.trade_id == trade_id).first()

    def find_by_order_id(self, order_id: str) -> Optional[PaymentOrder]:
        if not order_id:
            return None
        return self.db.query(PaymentOrder).filter(PaymentOrder.order_id == order_id).first()
