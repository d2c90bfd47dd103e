"""
VoucherCipher -- authenticated symmetric encryption for voucher codes.

Responsibility:
    Encrypts voucher codes and PINs at rest and decrypts them for display.
    Also derives the deterministic blind index (fingerprint) used to find an
    existing voucher by its plaintext code without decrypting every row.

Architecture position:
    Kernel > Services.  Stateless apart from the key; safe to share across
    threads.  Has no session and does not extend BaseService.

Wire format:
    base64( iv[16] || ciphertext[16*n] || tag[32] )
    ciphertext = AES-256-CBC(key, iv, PKCS7(plaintext utf-8))
    tag        = HMAC-SHA256(key, iv || ciphertext)

Invariants enforced:
    - decrypt(encrypt(p)) == p for every string p.
    - Two encryptions of the same plaintext differ (fresh random IV).
    - Any modification of the encoded value is detected before decryption
      (tag compared with hmac.compare_digest).
    - The key is exactly 32 bytes; anything else is fatal at construction.

Failure modes:
    - InvalidKeyError at construction for a key of the wrong length.
    - DecryptionFailedError for malformed base64, short or misaligned
      payloads, tag mismatch, bad padding, or non UTF-8 plaintext.
"""

import base64
import binascii
import hashlib
import hmac
import os

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from procurement_kernel.exceptions import DecryptionFailedError, InvalidKeyError
from procurement_kernel.logging_config import get_logger

logger = get_logger("services.voucher_cipher")

KEY_LENGTH = 32
IV_LENGTH = 16
BLOCK_LENGTH = 16
TAG_LENGTH = 32
MIN_PAYLOAD_LENGTH = IV_LENGTH + BLOCK_LENGTH + TAG_LENGTH

_FINGERPRINT_CONTEXT = b"voucher-code-fingerprint"


class VoucherCipher:
    """
    AES-256-CBC + HMAC-SHA256 encrypt-then-MAC for voucher secrets.

    Contract:
        Constructed with 32 raw key bytes.  Use ``from_base64_key`` to build
        one from configuration.

    Guarantees:
        - encrypt() output is ASCII base64, safe for TEXT columns.
        - fingerprint() is deterministic for a given key and plaintext.
    """

    def __init__(self, key: bytes):
        if not isinstance(key, (bytes, bytearray)) or len(key) != KEY_LENGTH:
            raise InvalidKeyError(len(key) if key is not None else 0)
        self._key = bytes(key)
        self._fingerprint_key = hmac.new(
            self._key, _FINGERPRINT_CONTEXT, hashlib.sha256,
        ).digest()

    @classmethod
    def from_base64_key(cls, encoded_key: str) -> "VoucherCipher":
        """Build a cipher from a base64 configuration value."""
        try:
            key = base64.b64decode(encoded_key, validate=True)
        except (binascii.Error, ValueError, TypeError):
            raise InvalidKeyError(0)
        return cls(key)

    @staticmethod
    def generate_key() -> str:
        """Return a new random key, base64 encoded, for configuration."""
        return base64.b64encode(os.urandom(KEY_LENGTH)).decode("ascii")

    # -----------------------------------------------------------------
    # Encryption
    # -----------------------------------------------------------------

    def encrypt(self, plaintext: str) -> str:
        iv = os.urandom(IV_LENGTH)
        padder = padding.PKCS7(BLOCK_LENGTH * 8).padder()
        padded = padder.update(plaintext.encode("utf-8")) + padder.finalize()

        encryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).encryptor()
        ciphertext = encryptor.update(padded) + encryptor.finalize()

        tag = self._tag(iv + ciphertext)
        return base64.b64encode(iv + ciphertext + tag).decode("ascii")

    def decrypt(self, encoded: str) -> str:
        if not isinstance(encoded, str):
            raise DecryptionFailedError("ciphertext must be a string")
        try:
            raw = base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError):
            raise DecryptionFailedError("invalid base64 encoding")

        if len(raw) < MIN_PAYLOAD_LENGTH:
            raise DecryptionFailedError("payload too short")

        iv = raw[:IV_LENGTH]
        ciphertext = raw[IV_LENGTH:-TAG_LENGTH]
        tag = raw[-TAG_LENGTH:]

        if len(ciphertext) % BLOCK_LENGTH != 0:
            raise DecryptionFailedError("ciphertext is not block aligned")

        # Compare before touching the ciphertext
        if not hmac.compare_digest(tag, self._tag(iv + ciphertext)):
            raise DecryptionFailedError("authentication tag mismatch")

        decryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).decryptor()
        padded = decryptor.update(ciphertext) + decryptor.finalize()
        try:
            unpadder = padding.PKCS7(BLOCK_LENGTH * 8).unpadder()
            data = unpadder.update(padded) + unpadder.finalize()
            return data.decode("utf-8")
        except ValueError:
            raise DecryptionFailedError("invalid padding or encoding")

    def safe_decrypt(self, encoded: str | None) -> str | None:
        """Decrypt for display paths; returns None instead of raising."""
        if encoded is None:
            return None
        try:
            return self.decrypt(encoded)
        except DecryptionFailedError as exc:
            logger.warning(
                "voucher_decrypt_failed",
                extra={"reason": exc.reason},
            )
            return None

    def is_encrypted(self, value: str | None) -> bool:
        """Heuristic probe used by data migrations only."""
        if not value:
            return False
        try:
            self.decrypt(value)
        except DecryptionFailedError:
            return False
        return True

    # -----------------------------------------------------------------
    # Batch and nullable helpers
    # -----------------------------------------------------------------

    def encrypt_batch(self, plaintexts: list[str]) -> list[str]:
        return [self.encrypt(p) for p in plaintexts]

    def decrypt_batch(self, encoded_values: list[str]) -> list[str]:
        """Decrypt every value; the first failure aborts the whole batch."""
        return [self.decrypt(v) for v in encoded_values]

    def encrypt_optional(self, plaintext: str | None) -> str | None:
        if plaintext is None or plaintext == "":
            return None
        return self.encrypt(plaintext)

    def decrypt_optional(self, encoded: str | None) -> str | None:
        if encoded is None or encoded == "":
            return None
        return self.decrypt(encoded)

    # -----------------------------------------------------------------
    # Blind index
    # -----------------------------------------------------------------

    def fingerprint(self, plaintext: str) -> str:
        """Deterministic HMAC-SHA256 hex of a plaintext code."""
        return hmac.new(
            self._fingerprint_key, plaintext.encode("utf-8"), hashlib.sha256,
        ).hexdigest()

    def _tag(self, data: bytes) -> bytes:
        return hmac.new(self._key, data, hashlib.sha256).digest()
