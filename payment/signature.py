# src/payment/signature.py
import hashlib
import hmac


def compute_signature(order_id: str, status_code: str, gross_amount: str, server_key: str) -> str:
    """Midtrans notification signature: hex SHA-512 of the four fields concatenated."""
    payload = f"{order_id}{status_code}{gross_amount}{server_key}"
    return hashlib.sha512(payload.encode("utf-8")).hexdigest()


def is_valid_signature(order_id: str, status_code: str, gross_amount: str, server_key: str, signature: str) -> bool:
    expected = compute_signature(order_id, status_code, gross_amount, server_key)
    return hmac.compare_digest(expected.encode("utf-8"), (signature or "").encode("utf-8"))
