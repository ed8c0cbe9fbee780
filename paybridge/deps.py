from typing import Optional
from fastapi import Depends
from sqlalchemy.orm import Session

from .config import Settings, get_settings
from .db import get_db
from .psp.bepusdt_adapter import BEpusdtAdapter
from .services.callback_service import CallbackProcessor
from .services.notifier import CompletionNotifier
from .services.payment_service import PaymentService
from .storage import SqlOrderRepository


def get_order_repository(db: Session = Depends(get_db)) -> SqlOrderRepository:
    return SqlOrderRepository(db)


def get_gateway(settings: Settings = Depends(get_settings)) -> Optional[BEpusdtAdapter]:
    """None when the gateway URL or token is missing; creation then fails fast."""
    if not settings.gateway_configured:
        return None
    return BEpusdtAdapter(settings.BEPUSDT_API_URL, settings.BEPUSDT_API_TOKEN)


def get_notifier(settings: Settings = Depends(get_settings)) -> CompletionNotifier:
    return CompletionNotifier(settings.MANAGER_NOTIFY_URL)


def get_payment_service(
    repo: SqlOrderRepository = Depends(get_order_repository),
    gateway: Optional[BEpusdtAdapter] = Depends(get_gateway),
    settings: Settings = Depends(get_settings),
) -> PaymentService:
    return PaymentService(repo, gateway, settings)


def get_callback_processor(
    repo: SqlOrderRepository = Depends(get_order_repository),
    notifier: CompletionNotifier = Depends(get_notifier),
    settings: Settings = Depends(get_settings),
) -> CallbackProcessor:
    return CallbackProcessor(repo, notifier, settings.BEPUSDT_API_TOKEN)
