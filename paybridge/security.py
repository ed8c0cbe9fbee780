"""
Request canonicalization and signing for the BEpusdt protocol.

The gateway signs a request by sorting its non-empty fields by name,
joining them as ``name=value`` with ``&``, appending the shared token and
taking the MD5 hex digest. MD5 is what the gateway speaks; the digest only
proves the sender holds the token and is not a tamper-proof seal.
"""
import hashlib
import hmac
import math
from decimal import Decimal
from typing import Any, Mapping, Optional

SIGNATURE_FIELD = "signature"


def is_present(value: Any) -> bool:
    """A field takes part in the signature unless it is missing or an empty string.

    Zero and False are present values.
    """
    if value is None:
        return False
    if isinstance(value, str) and value == "":
        return False
    return True


def _js_number(value: float) -> str:
    """ECMAScript ``Number::toString`` for a float."""
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value == 0:
        return "0"

    # repr is the shortest round-trip form, the same digits JavaScript picks
    sign_bit, digit_tuple, exponent = Decimal(repr(value)).normalize().as_tuple()
    digits = "".join(map(str, digit_tuple))
    k = len(digits)
    n = exponent + k
    prefix = "-" if sign_bit else ""

    if k <= n <= 21:
        return prefix + digits + "0" * (n - k)
    if 0 < n <= 21:
        return prefix + digits[:n] + "." + digits[n:]
    if -6 < n <= 0:
        return prefix + "0." + "0" * (-n) + digits

    e = n - 1
    mantissa = digits if k == 1 else digits[0] + "." + digits[1:]
    return f"{prefix}{mantissa}e{'+' if e > 0 else '-'}{abs(e)}"


def format_value(value: Any) -> str:
    """Render a value the way the gateway's JavaScript/JSON peers do."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return _js_number(value)
    if isinstance(value, Decimal):
        return format(value.normalize(), "f")
    return str(value)


def canonicalize(params: Mapping[str, Any]) -> str:
    """Build the ``a=1&b=2`` string that gets signed."""
    keys = sorted(
        (k for k, v in params.items() if k != SIGNATURE_FIELD and is_present(v)),
        key=lambda k: k.encode("utf-8"),
    )
    return "&".join(f"{k}={format_value(params[k])}" for k in keys)


def sign(params: Mapping[str, Any], secret: str) -> str:
    """Return the lowercase hex signature of ``params`` under ``secret``."""
    to_sign = canonicalize(params) + secret
    return hashlib.md5(to_sign.encode("utf-8", "surrogatepass")).hexdigest().lower()


def verify(params: Mapping[str, Any], secret: str, digest: Optional[str]) -> bool:
    """Check a received signature; comparison is case-insensitive."""
    if not digest or not isinstance(digest, str) or not digest.isascii():
        return False
    expected = sign(params, secret)
    return hmac.compare_digest(expected, digest.strip().lower())
