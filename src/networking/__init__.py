"""
GitHub access for the key-value store.
The HTTP front end lives in networking.api_server and is imported separately.
"""

from .repository import Repository, RefUpdate, ZERO_OID, DEFAULT_MIRRORS

__all__ = ['Repository', 'RefUpdate', 'ZERO_OID', 'DEFAULT_MIRRORS']
