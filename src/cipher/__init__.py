"""
Cryptographic helpers acting on bytes, and the symmetric codec used to encrypt stored values.
"""

from .primitives import hash_bytes, hmac_bytes, derive_key, PBKDF2_ITERATIONS
from .codec import Codec, IV_LENGTH, salted_iv_source

__all__ = ['hash_bytes', 'hmac_bytes', 'derive_key', 'PBKDF2_ITERATIONS', 'Codec', 'IV_LENGTH', 'salted_iv_source']
