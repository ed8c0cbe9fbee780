"""
Domain errors for the payment bridge.

Each error carries the HTTP status it maps to; the exception handlers in
main.py turn them into the ``{"success": false, "error": ...}`` envelope.
"""


class PaymentError(Exception):
    status_code = 500
    default_message = "服务器内部错误"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(PaymentError):
    status_code = 400
    default_message = "缺少必要参数"


class ConfigurationError(PaymentError):
    status_code = 500
    default_message = "支付通道未配置"


class UpstreamError(PaymentError):
    status_code = 400
    default_message = "创建支付订单失败"


class SignatureError(PaymentError):
    status_code = 400
    default_message = "签名错误"


class PersistenceError(PaymentError):
    status_code = 500
    default_message = "支付记录保存失败"


class DuplicateOrderError(PaymentError):
    status_code = 409
    default_message = "订单号已存在"


class OrderNotFoundError(PaymentError):
    status_code = 404
    default_message = "订单不存在"
