from .adapter import PSPAdapter, PSPProvider, GatewayTrade
from .bepusdt_adapter import BEpusdtAdapter, PAYMENT_CHANNELS

__all__ = ["PSPAdapter", "PSPProvider", "GatewayTrade", "BEpusdtAdapter", "PAYMENT_CHANNELS"]
