from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..db import SessionLocal
from ..logging_config import get_logger
from ..models import CallbackEvent
from ..storage import now_ms

logger = get_logger(__name__)


def log_callback(payload: Any, db: Session = None, provider: str = "bepusdt") -> Optional[CallbackEvent]:
    """
    Record a raw gateway callback before it is processed.
    Returns the CallbackEvent, or None if the audit row could not be written.
    """
    close_db = False
    if not db:
        db = SessionLocal()
        close_db = True

    body = payload if isinstance(payload, dict) else {"raw": str(payload)}
    try:
        event = CallbackEvent(
            provider=provider,
            order_id=str(body["order_id"]) if body.get("order_id") is not None else None,
            trade_id=str(body["trade_id"]) if body.get("trade_id") is not None else None,
            payload=body,
            status="received",
            received_at=now_ms(),
        )
        db.add(event)
        db.commit()
        db.refresh(event)
        return event
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("callback_log_failed", error=str(e))
        return None
    finally:
        if close_db:
            db.close()


def update_callback_status(event_id: int, status: str, error: str = None, db: Session = None):
    """
    Update the status of a logged callback.
    """
    close_db = False
    if not db:
        db = SessionLocal()
        close_db = True

    try:
        event = db.query(CallbackEvent).filter(CallbackEvent.id == event_id).first()
        if event:
            event.status = status
            event.processed_at = now_ms()
            if error:
                event.error = error
            db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("callback_log_update_failed", event_id=event_id, error=str(e))
    finally:
        if close_db:
            db.close()
