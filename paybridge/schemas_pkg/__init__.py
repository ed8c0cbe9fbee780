# paybridge/schemas_pkg/__init__.py

from .payments import (
    PaymentCreateRequest,
    PaymentCreateData,
    PaymentCreateResponse,
    OrderStatusData,
    OrderStatusResponse,
    PaymentChannelOut,
    PaymentChannelsResponse,
    ErrorResponse,
)

__all__ = [
    "PaymentCreateRequest",
    "PaymentCreateData",
    "PaymentCreateResponse",
    "OrderStatusData",
    "OrderStatusResponse",
    "PaymentChannelOut",
    "PaymentChannelsResponse",
    "ErrorResponse",
]
