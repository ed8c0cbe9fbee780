"""
PSP Adapter Base Class and Interface.
Provides a uniform interface for crypto settlement gateways.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Any, Optional
from enum import Enum


class PSPProvider(str, Enum):
    """Supported PSP providers."""
    BEPUSDT = "bepusdt"


@dataclass
class GatewayTrade:
    """What the gateway hands back for a freshly created trade."""
    trade_id: str
    order_id: str
    amount: Optional[Any]
    actual_amount: Optional[str]
    token: Optional[str]
    payment_url: Optional[str]
    expiration_time: Optional[int] = None
    raw: Dict[str, Any] = field(default_factory=dict)


class PSPAdapter(ABC):
    """
    Base adapter for settlement gateways.
    All gateway implementations must inherit from this class.
    """

    def __init__(self, api_url: str, api_secret: str, **kwargs):
        """
        Initialize adapter with credentials.

        Args:
            api_url: Gateway base URL
            api_secret: Shared secret used for request and callback signatures
            **kwargs: Provider-specific configuration
        """
        self.api_url = api_url.rstrip("/")
        self.api_secret = api_secret
        self.config = kwargs

    @abstractmethod
    def create_transaction(
        self,
        order_id: str,
        amount: Decimal,
        notify_url: str,
        redirect_url: str,
        trade_type: str,
    ) -> GatewayTrade:
        """
        Create a payment trade on the gateway.

        Args:
            order_id: Caller-assigned order identifier
            amount: Requested amount
            notify_url: Where the gateway posts status callbacks
            redirect_url: Where the payer lands after paying
            trade_type: Payment channel, e.g. "usdt.trc20"

        Returns:
            GatewayTrade for the new trade

        Raises:
            UpstreamError: If the gateway is unreachable or refuses the request
        """
        pass

    def __repr__(self):
        return f"<{self.__class__.__name__}(provider={getattr(self, 'provider', 'unknown')})>"
