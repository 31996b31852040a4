"""HMAC-SHA256 webhook signatures."""

import base64
import binascii
import hashlib
import hmac


def compute_hmac_signature(secret: str | bytes, payload: bytes) -> str:
    key = secret.encode("utf-8") if isinstance(secret, str) else secret
    return hmac.new(key, payload, hashlib.sha256).hexdigest()


def verify_hmac_signature(secret: str | bytes, payload: bytes, signature: str | None) -> bool:
    """Constant-time check of a hex signature, with or without a ``sha256=`` prefix."""
    if not signature:
        return False
    candidate = signature.strip()
    if candidate.lower().startswith("sha256="):
        candidate = candidate[len("sha256=") :]
    expected = compute_hmac_signature(secret, payload)
    return hmac.compare_digest(expected, candidate.lower())


def compute_adyen_signature(hex_key: str, signing_string: str) -> str:
    """Base64 HMAC-SHA256 with a hex-encoded key, as Adyen signs notifications."""
    key = binascii.unhexlify(hex_key)
    digest = hmac.new(key, signing_string.encode("utf-8"), hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def verify_adyen_signature(hex_key: str, signing_string: str, signature: str | None) -> bool:
    if not isinstance(signature, str) or not signature:
        return False
    return hmac.compare_digest(compute_adyen_signature(hex_key, signing_string), signature.strip())
