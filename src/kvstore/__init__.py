"""
Typed key-value store kept in a GitHub repository.
The Database class lives in kvstore.database; this package root only exposes the
dependency-free pieces so the networking layer can import them.
"""

from .errors import (
    GitKVError, NetworkError, InitializationFailure, KeyExists, KeyNotFound,
    Conflict, QueryRejected, TypeMismatch, UnsupportedType, AuthenticationFailure,
)
from .bimap import BidirectionalMap
from .types import Blob, Serialized, TypeTag, TYPE_HASHES, serialize, deserialize, type_of

__all__ = [
    'GitKVError', 'NetworkError', 'InitializationFailure', 'KeyExists', 'KeyNotFound',
    'Conflict', 'QueryRejected', 'TypeMismatch', 'UnsupportedType', 'AuthenticationFailure',
    'BidirectionalMap', 'Blob', 'Serialized', 'TypeTag', 'TYPE_HASHES',
    'serialize', 'deserialize', 'type_of',
]
