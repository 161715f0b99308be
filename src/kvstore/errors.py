"""
Exceptions raised by the store.
Absence of a key, ref or object is reported as None, never as an exception.
"""

class GitKVError(Exception):
    pass

class NetworkError(GitKVError):
    """Transport failure or unexpected HTTP status from GitHub or a CDN mirror."""
    def __init__(self, message: str, status: int | None = None):
        super().__init__(message if status is None else f"{message} (status {status})")
        self.status = status

class InitializationFailure(GitKVError):
    """The repository was never provisioned with the type marker refs."""

class KeyExists(GitKVError):
    def __init__(self, uuid: str):
        super().__init__(f"Key exists: {uuid}")
        self.uuid = uuid

class KeyNotFound(GitKVError):
    def __init__(self, uuid: str):
        super().__init__(f"Key not found: {uuid}")
        self.uuid = uuid

class Conflict(GitKVError):
    """A ref batch was rejected, usually because a before-oid precondition no longer holds."""
    def __init__(self, message: str, refs: list[str] | None = None):
        super().__init__(message)
        self.refs = refs or []

class TypeMismatch(GitKVError):
    def __init__(self, message: str, uuid: str | None = None):
        super().__init__(message)
        self.uuid = uuid

class UnsupportedType(GitKVError):
    pass

class AuthenticationFailure(GitKVError):
    """Ciphertext failed the AES-GCM integrity check."""

class QueryRejected(GitKVError):
    """GitHub answered a GraphQL request with an errors array."""
    def __init__(self, errors: list[dict]):
        messages = "; ".join(str(error.get("message", error)) for error in errors)
        super().__init__(f"GraphQL request rejected: {messages}")
        self.errors = errors
