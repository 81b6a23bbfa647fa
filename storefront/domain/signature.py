"""Razorpay checkout signature.

The gateway signs ``"{order_id}|{payment_id}"`` with the merchant key secret
using HMAC-SHA256 and hands the hex digest to the client widget, which posts it
back to us together with both ids.
"""
import hashlib
import hmac


def compute_signature(secret: str, gateway_order_id: str, gateway_payment_id: str) -> str:
    payload = f"{gateway_order_id}|{gateway_payment_id}"
    return hmac.new(secret.encode(), payload.encode(), hashlib.sha256).hexdigest()


def signature_matches(
    secret: str,
    gateway_order_id: str,
    gateway_payment_id: str,
    provided_signature: str | None,
) -> bool:
    if not provided_signature:
        return False
    expected = compute_signature(secret, gateway_order_id, gateway_payment_id)
    return hmac.compare_digest(expected.encode(), provided_signature.encode())
