"""
AES-GCM codec whose IV is the SHA-256 of a caller supplied function of the plaintext.

With a deterministic IV source, encrypting the same plaintext twice yields the same
ciphertext, so content addressed deduplication keeps working on encrypted values.
Wire format: iv (32 bytes) || ciphertext || tag.
"""
from typing import Callable
import logging
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from kvstore.errors import AuthenticationFailure
from .primitives import derive_key, hash_bytes

logger = logging.getLogger(__name__)

IV_LENGTH = 32

IVSource = Callable[[bytes], bytes]

def random_iv_source(data: bytes) -> bytes:
    return os.urandom(IV_LENGTH)

def salted_iv_source(password: str, salt: bytes) -> IVSource:
    """
    IV source used by the store: password || salt || plaintext.
    Outsiders without the password cannot reproduce a ciphertext from a guessed plaintext.
    """
    secret = password.encode("utf-8") + salt
    def source(data: bytes) -> bytes:
        return secret + data
    return source

class Codec:
    key: bytes
    iv_source: IVSource

    def __init__(self, key: bytes, iv_source: IVSource | None = None):
        self.key = key
        self.iv_source = iv_source or random_iv_source
        self._aead = AESGCM(key)

    @classmethod
    def from_password(cls, password: str, salt: bytes, iv_source: IVSource | None = None) -> "Codec":
        return cls(derive_key(password, salt), iv_source)

    def encrypt(self, data: bytes) -> bytes:
        iv = hash_bytes(self.iv_source(data), "SHA-256")
        return iv + self._aead.encrypt(iv, data, None)

    def decrypt(self, data: bytes) -> bytes:
        iv, cipher = data[:IV_LENGTH], data[IV_LENGTH:]
        if len(iv) != IV_LENGTH:
            raise AuthenticationFailure(f"Ciphertext too short: {len(data)} bytes")
        try:
            return self._aead.decrypt(iv, cipher, None)
        except InvalidTag as e:
            logger.debug(f"Rejected ciphertext of {len(data)} bytes")
            raise AuthenticationFailure("Decryption failed integrity check") from e
