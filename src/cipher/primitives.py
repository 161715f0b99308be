"""
Thin wrappers over hash, HMAC and password based key derivation.
"""
import hashlib
import hmac

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

PBKDF2_ITERATIONS = 100_000
KEY_LENGTH = 32

def _algorithm_name(algorithm: str) -> str:
    # Accept WebCrypto style names ("SHA-256") as well as hashlib ones ("sha256")
    return algorithm.replace("-", "").lower()

def hash_bytes(data: bytes, algorithm: str = "SHA-256") -> bytes:
    return hashlib.new(_algorithm_name(algorithm), data).digest()

def hmac_bytes(data: bytes, key: bytes) -> bytes:
    return hmac.new(key, data, hashlib.sha256).digest()

def derive_key(password: str, salt: bytes) -> bytes:
    """
    Derive a 256-bit AES key from a password.

    Args:
        password: The secret passphrase
        salt: Context salt, e.g. the "owner/repo" string of the store

    Returns:
        32 key bytes
    """
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH,
        salt=salt,
        iterations=PBKDF2_ITERATIONS,
    )
    return kdf.derive(password.encode("utf-8"))
