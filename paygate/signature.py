"""Razorpay webhook signature verification.

Razorpay signs the exact bytes it sends, so the digest must be computed over
the raw request body, never over re-serialized JSON.
"""
import hashlib
import hmac


def compute_signature(body: bytes, secret: str) -> str:
    return hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


def verify_signature(body: bytes, secret: str | None, signature: str | None) -> bool:
    if not secret or not signature:
        return False
    expected = compute_signature(body, secret)
    return hmac.compare_digest(expected.encode(), signature.encode())
