"""
Payment bridge SQLAlchemy models.

- PaymentOrder: one row per caller order, one-to-one with a gateway trade
- CallbackEvent: raw audit log of inbound gateway callbacks
"""
import enum

from sqlalchemy import (
    Column, Integer, BigInteger, String, Numeric, JSON, Text, Index
)
from .db import Base


class OrderStatus(enum.IntEnum):
    """Status codes as reported by the gateway."""
    CREATED = 1      # waiting for payment
    COMPLETED = 2
    EXPIRED = 3


# Numeric(20, 8): the amount column holds 12 integer and 8 fractional digits
AMOUNT_PRECISION = 20
AMOUNT_SCALE = 8


def is_terminal(status: int) -> bool:
    return status != OrderStatus.CREATED


# =====================================================
# PAYMENT ORDER
# =====================================================

class PaymentOrder(Base):
    __tablename__ = "payment_orders"

    id = Column(Integer, primary_key=True)
    order_id = Column(String(128), unique=True, nullable=False, index=True)
    trade_id = Column(String(128), nullable=True, index=True)

    amount = Column(Numeric(AMOUNT_PRECISION, AMOUNT_SCALE), nullable=False)
    actual_amount = Column(String(64), nullable=True)   # kept exactly as the gateway quoted it
    trade_type = Column(String(64), nullable=False, default="usdt.trc20")
    user_id = Column(String(128), nullable=True)

    status = Column(Integer, nullable=False, default=OrderStatus.CREATED, index=True)
    payment_url = Column(String(512), nullable=True)
    token = Column(String(256), nullable=True)
    expiration_time = Column(BigInteger, nullable=True)
    block_transaction_id = Column(String(256), nullable=False, default="")

    # epoch milliseconds
    created_at = Column(BigInteger, nullable=False)
    updated_at = Column(BigInteger, nullable=True)

    def to_snapshot(self) -> dict:
        return {
            "order_id": self.order_id,
            "trade_id": self.trade_id,
            "status": self.status,
            "amount": float(self.amount) if self.amount is not None else None,
            "actual_amount": self.actual_amount,
            "payment_url": self.payment_url,
        }

    def __repr__(self):
        return f"<PaymentOrder(order_id={self.order_id!r}, trade_id={self.trade_id!r}, status={self.status})>"


# =====================================================
# CALLBACK AUDIT LOG
# =====================================================

class CallbackEvent(Base):
    __tablename__ = "callback_events"

    id = Column(Integer, primary_key=True)
    provider = Column(String(32), nullable=False, default="bepusdt")
    order_id = Column(String(128), nullable=True)
    trade_id = Column(String(128), nullable=True)
    payload = Column(JSON, nullable=True)
    status = Column(String(32), nullable=False, default="received")  # received/processed/rejected/failed
    error = Column(Text, nullable=True)

    received_at = Column(BigInteger, nullable=False)
    processed_at = Column(BigInteger, nullable=True)

    __table_args__ = (
        Index("ix_callback_events_order_id", "order_id"),
    )
