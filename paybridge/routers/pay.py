"""
Payment endpoints: /api/pay/*

- POST /create   create a gateway trade for a caller's order
- POST /notify   signed gateway callback, answered with plain "ok"
- GET  /status/{trade_id}
- GET  /return   post-payment redirect back to the frontend
- GET  /channels known payment channels
"""
import json
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse, RedirectResponse
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from ..config import Settings, get_settings
from ..db import get_db
from ..deps import get_callback_processor, get_payment_service
from ..logging_config import get_logger
from ..psp.bepusdt_adapter import PAYMENT_CHANNELS
from ..schemas_pkg import payments as schemas
from ..services.callback_service import CallbackProcessor, CallbackResult
from ..services.payment_service import PaymentService
from ..services.webhook_service import log_callback, update_callback_status

logger = get_logger(__name__)

router = APIRouter()


@router.post("/create", response_model=schemas.PaymentCreateResponse)
def create_payment(
    payload: schemas.PaymentCreateRequest,
    request: Request,
    service: PaymentService = Depends(get_payment_service),
):
    """
    Create a payment order on the gateway and record it locally.
    """
    data = service.create_order(
        order_id=payload.order_id,
        amount=payload.amount,
        trade_type=payload.trade_type,
        user_id=payload.user_id,
        base_url=str(request.base_url),
    )
    return {"success": True, "data": data}


@router.post("/notify", response_class=PlainTextResponse)
async def payment_notify(
    request: Request,
    db: Session = Depends(get_db),
    processor: CallbackProcessor = Depends(get_callback_processor),
    settings: Settings = Depends(get_settings),
):
    body = await request.body()
    try:
        payload = json.loads(body)
    except ValueError:
        logger.warning("callback_body_invalid", size=len(body))
        return PlainTextResponse("invalid body", status_code=400)

    logger.info("callback_received", order_id=payload.get("order_id") if isinstance(payload, dict) else None)
    wh_event = await run_in_threadpool(log_callback, payload, db)

    outcome = await run_in_threadpool(processor.handle, payload)

    if outcome.result == CallbackResult.REJECTED:
        if wh_event: await run_in_threadpool(update_callback_status, wh_event.id, "rejected", outcome.reason, db)
        message = "签名错误" if outcome.reason == "bad_signature" else "invalid body"
        return PlainTextResponse(message, status_code=400)

    if outcome.result == CallbackResult.FAILED:
        if wh_event: await run_in_threadpool(update_callback_status, wh_event.id, "failed", outcome.reason, db)
        if settings.ACK_ON_PERSISTENCE_FAILURE and outcome.reason == "persistence_error":
            logger.error("callback_acked_without_write", order_id=outcome.order_id)
            return PlainTextResponse("ok", status_code=200)
        return PlainTextResponse("error", status_code=500)

    if wh_event: await run_in_threadpool(update_callback_status, wh_event.id, "processed", outcome.reason, db)
    return PlainTextResponse("ok", status_code=200)


@router.get("/status/{trade_id}", response_model=schemas.OrderStatusResponse)
def payment_status(trade_id: str, service: PaymentService = Depends(get_payment_service)):
    return {"success": True, "data": service.get_by_trade_id(trade_id)}


@router.get("/return")
def payment_return(order_id: str = "", settings: Settings = Depends(get_settings)):
    redirect_base = settings.REDIRECT_BASE_URL or "/"
    query = urlencode({"payment_success": 1, "order_id": order_id})
    return RedirectResponse(f"{redirect_base}?{query}", status_code=302)


@router.get("/channels", response_model=schemas.PaymentChannelsResponse)
def payment_channels():
    return {
        "success": True,
        "data": [{"code": code, **info} for code, info in PAYMENT_CHANNELS.items()],
    }
