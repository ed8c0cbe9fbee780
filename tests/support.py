"""Shared helpers for the test suite."""
import json
from typing import Any, Callable, Dict, List

import httpx

from paybridge.config import Settings
from paybridge.db import Base, SessionLocal, engine
from paybridge import models  # noqa: F401  (registers tables)
from paybridge.models import PaymentOrder
from paybridge.security import sign

SECRET = "test-token"
GATEWAY_URL = "https://gateway.test"
NOTIFY_URL = "https://manager.test/api/payment/notify"
REDIRECT_URL = "https://app.test/done"


def reset_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)


def make_settings(**overrides) -> Settings:
    values = dict(
        DATABASE_URL="sqlite://",
        BEPUSDT_API_URL=GATEWAY_URL,
        BEPUSDT_API_TOKEN=SECRET,
        MANAGER_NOTIFY_URL=NOTIFY_URL,
        REDIRECT_BASE_URL=REDIRECT_URL,
        PUBLIC_BASE_URL="https://pay.test",
        ACK_ON_PERSISTENCE_FAILURE=False,
    )
    values.update(overrides)
    return Settings(**values)


def signed(payload: Dict[str, Any], secret: str = SECRET) -> Dict[str, Any]:
    body = dict(payload)
    body["signature"] = sign(body, secret)
    return body


def order_row(order_id: str) -> tuple:
    """Every stored column of one order, for before/after comparisons."""
    db = SessionLocal()
    try:
        order = db.query(PaymentOrder).filter(PaymentOrder.order_id == order_id).first()
        if order is None:
            return None
        return tuple(getattr(order, c.name) for c in PaymentOrder.__table__.columns)
    finally:
        db.close()


class RecordingTransport:
    """httpx transport that records requests and answers with ``responder``."""

    def __init__(self, responder: Callable[[httpx.Request], httpx.Response]):
        self.responder = responder
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responder(request)

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self))

    def json_bodies(self) -> List[Dict[str, Any]]:
        return [json.loads(r.content) for r in self.requests]


def gateway_success(trade_id: str = "T1", **data) -> Callable[[httpx.Request], httpx.Response]:
    body = {
        "status_code": 200,
        "message": "success",
        "data": {
            "trade_id": trade_id,
            "actual_amount": "10.50",
            "payment_url": f"https://pay/{trade_id}",
            "token": "tok1",
            **data,
        },
    }
    return lambda request: httpx.Response(200, json=body)


class FakeNotifier:
    def __init__(self, result: bool = True, exc: Exception = None):
        self.calls: List[Dict[str, Any]] = []
        self.result = result
        self.exc = exc

    def notify_completion(self, payload: Dict[str, Any]) -> bool:
        self.calls.append(payload)
        if self.exc is not None:
            raise self.exc
        return self.result
