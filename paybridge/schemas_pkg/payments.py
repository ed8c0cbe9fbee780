from pydantic import BaseModel
from typing import Any, List, Optional, Union


class PaymentCreateRequest(BaseModel):
    # Loosely typed on purpose: presence and format are checked by the service
    # so the caller gets the {"success": false} envelope instead of a 422.
    order_id: Optional[Union[str, int]] = None
    amount: Optional[Union[str, int, float]] = None
    trade_type: Optional[str] = None
    user_id: Optional[Union[str, int]] = None


class PaymentCreateData(BaseModel):
    trade_id: str
    order_id: str
    amount: Optional[Any] = None
    actual_amount: Optional[str] = None
    token: Optional[str] = None
    payment_url: Optional[str] = None
    expiration_time: Optional[int] = None


class PaymentCreateResponse(BaseModel):
    success: bool = True
    data: PaymentCreateData


class OrderStatusData(BaseModel):
    order_id: str
    trade_id: Optional[str] = None
    status: int
    amount: Optional[float] = None
    actual_amount: Optional[str] = None
    payment_url: Optional[str] = None


class OrderStatusResponse(BaseModel):
    success: bool = True
    data: OrderStatusData


class PaymentChannelOut(BaseModel):
    code: str
    name: str
    icon: str


class PaymentChannelsResponse(BaseModel):
    success: bool = True
    data: List[PaymentChannelOut]


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
