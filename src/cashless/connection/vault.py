"""Credential vault: symmetric encryption of provider secrets at rest.

Envelope: ``base64url(iv) "." base64url(tag) "." base64url(ciphertext)``, unpadded,
sealed with AES-256-GCM under a key derived by SHA-256 from the configured key
material.
"""

import base64
import binascii
import hashlib
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from protean.exceptions import ValidationError

from cashless.exceptions import InvalidEnvelopeError
from cashless.utils.logging import get_logger

logger = get_logger(__name__)

IV_LENGTH = 12
TAG_LENGTH = 16


def _b64encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def _b64decode(value: str) -> bytes:
    padded = value + "=" * (-len(value) % 4)
    return base64.urlsafe_b64decode(padded.encode("ascii"))


class CredentialVault:
    def __init__(self, key_material: str | None) -> None:
        if not key_material:
            raise ValidationError({"credential_vault_key": ["CREDENTIAL_VAULT_KEY is not configured"]})
        self._aead = AESGCM(hashlib.sha256(key_material.encode("utf-8")).digest())

    @classmethod
    def from_settings(cls, settings) -> "CredentialVault":
        return cls(settings.credential_vault_key)

    def encrypt(self, plaintext: str) -> str:
        iv = os.urandom(IV_LENGTH)
        sealed = self._aead.encrypt(iv, plaintext.encode("utf-8"), None)
        ciphertext, tag = sealed[:-TAG_LENGTH], sealed[-TAG_LENGTH:]
        return ".".join([_b64encode(iv), _b64encode(tag), _b64encode(ciphertext)])

    def decrypt(self, envelope: str) -> str:
        parts = envelope.split(".") if isinstance(envelope, str) else []
        if len(parts) != 3 or not parts[0] or not parts[1]:
            raise InvalidEnvelopeError({"secret": ["Encrypted secret envelope is malformed"]})

        try:
            iv, tag, ciphertext = (_b64decode(part) for part in parts)
        except (binascii.Error, ValueError):
            raise InvalidEnvelopeError({"secret": ["Encrypted secret envelope is not valid base64url"]}) from None

        if len(iv) != IV_LENGTH or len(tag) != TAG_LENGTH:
            raise InvalidEnvelopeError({"secret": ["Encrypted secret envelope has the wrong shape"]})

        try:
            plaintext = self._aead.decrypt(iv, ciphertext + tag, None)
        except InvalidTag:
            logger.error("Credential envelope failed authentication")
            raise InvalidEnvelopeError({"secret": ["Encrypted secret could not be authenticated"]}) from None
        return plaintext.decode("utf-8")
