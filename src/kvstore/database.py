"""
Key-value database hosted in a GitHub repository.

A key's identifier is its type tag plus the commit hash of its serialized bytes, so it can
be computed offline. Each key owns three refs:
    refs/tags/kv/{uuid}               existence marker, points at the key's own commit
    refs/heads/kv/{uuid}/value/bytes  commit holding the value's bytes
    refs/heads/kv/{uuid}/value/type   one of the well-known type tag commits
All mutations go through Repository.update_refs, the only concurrency primitive.
"""
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Iterable
import asyncio
import copy
import inspect
import logging

from networking.repository import RefUpdate, Repository, ZERO_OID, VALUE_NAME
from .conversions import base64url_to_hex, hex_to_base64url
from .errors import Conflict, KeyExists, KeyNotFound, TypeMismatch, UnsupportedType
from .types import TYPE_HASHES, Serialized, TypeTag, deserialize, serialize, type_of

logger = logging.getLogger(__name__)

# Both value refs, the commit message and the value blob id in one rate-limit point
READ_QUERY = """
query($id: ID!, $bytesBranch: String!, $typeBranch: String!, $path: String!) {
  node(id: $id) {
    ... on Repository {
      bytes: ref(qualifiedName: $bytesBranch) {
        target {
          oid
          ... on Commit {
            message
            file(path: $path) {
              oid
            }
          }
        }
      }
      type: ref(qualifiedName: $typeBranch) {
        target {
          oid
        }
      }
    }
  }
}
"""

Modifier = Callable[[Any], Any | Awaitable[Any]]

def existence_ref(uuid: str) -> str:
    return f"refs/tags/kv/{uuid}"

def bytes_ref(uuid: str) -> str:
    return f"refs/heads/kv/{uuid}/value/bytes"

def type_ref(uuid: str) -> str:
    return f"refs/heads/kv/{uuid}/value/type"

def _mime_type(message: str | None) -> str:
    # git terminates non-empty messages with a newline
    return (message or "").rstrip("\n")

@dataclass
class Identity:
    uuid: str
    type: TypeTag
    commit_hash: str

@dataclass
class Slot:
    """What the value refs of a key currently point at."""
    commit_hash: str
    type_hash: str | None
    message: str | None = None
    blob_hash: str | None = None

@dataclass
class UpdateResult:
    old_value: Any
    current_value: Any
    links: dict[str, str] = field(default_factory=dict)

class Database:
    repository: Repository

    def __init__(self, repository: Repository):
        self.repository = repository

    @classmethod
    async def instantiate(cls, **kwargs) -> "Database":
        """Takes the same arguments as Repository."""
        return cls(await Repository.instantiate(**kwargs))

    async def identify(self, key: Any, push: bool = False) -> Identity:
        """
        Derive the identifier of a key.
        Key bytes are never encrypted, so identifiers can be computed without the password.

        Args:
            key: Any supported typed value
            push: Also store the key's bytes, so uuid_to_key() can recover it later

        Returns:
            Identity with uuid, type tag and the commit hash of the key
        """
        serialized = serialize(key)
        if push:
            commit = await self.repository.write(serialized.data, message=serialized.mime_type, encrypt=False)
        else:
            commit = self.repository.content_hash_of(serialized.data, message=serialized.mime_type, encrypt=False)
        return Identity(f"{serialized.type.value}/{hex_to_base64url(commit)}", serialized.type, commit)

    async def uuid_to_key(self, uuid: str) -> Any:
        type_name, _, encoded = uuid.partition("/")
        tag = TypeTag.parse(type_name)
        try:
            commit = base64url_to_hex(encoded)
        except ValueError:
            commit = ""
        if len(commit) != 40:
            # Not a commit hash, so no key can have this identifier
            raise KeyNotFound(uuid)
        data, message = await asyncio.gather(
            self.repository.fetch_content(commit, decrypt=False),
            self._fetch_mime_message(tag, commit),
        )
        if data is None:
            raise KeyNotFound(uuid)
        return deserialize(Serialized(tag, data, _mime_type(message)))

    async def _fetch_mime_message(self, tag: TypeTag, commit: str) -> str | None:
        if tag is not TypeTag.BLOB:
            return None
        return await self.repository.fetch_message(commit)

    async def create(self, key: Any, value: Any, overwrite: bool = False) -> dict[str, str]:
        """
        Create a key, or replace its value when overwrite is set.

        Returns:
            {"uuid": ...} plus CDN links for the value when the repository is public

        Raises:
            KeyExists: The key already exists and overwrite is False
        """
        serialized = serialize(value)
        identity, value_commit = await asyncio.gather(
            self.identify(key, push=True),
            self.repository.write(serialized.data, message=serialized.mime_type),
        )
        uuid = identity.uuid
        try:
            await self.repository.update_refs([
                RefUpdate(existence_ref(uuid), identity.commit_hash, None if overwrite else ZERO_OID),
                RefUpdate(bytes_ref(uuid), value_commit),
                RefUpdate(type_ref(uuid), TYPE_HASHES.get(serialized.type)),
            ])
        except Conflict as e:
            if not overwrite and await self.has(key):
                raise KeyExists(uuid) from e
            raise
        logger.info(f"Created {uuid} -> {value_commit}")
        return {"uuid": uuid, **self.repository.public_links(value_commit)}

    async def has(self, key: Any) -> bool:
        identity = await self.identify(key)
        return await self.repository.resolve_ref(bytes_ref(identity.uuid)) is not None

    async def _resolve_slot(self, uuid: str) -> Slot | None:
        if self.repository.authenticated:
            data = await self.repository.graphql(READ_QUERY, {
                "id": self.repository.id,
                "bytesBranch": bytes_ref(uuid),
                "typeBranch": type_ref(uuid),
                "path": VALUE_NAME,
            })
            node = data.get("node") or {}
            value_target = (node.get("bytes") or {}).get("target") or {}
            type_target = (node.get("type") or {}).get("target") or {}
            if "oid" not in value_target:
                return None
            return Slot(
                value_target["oid"],
                type_target.get("oid"),
                value_target.get("message"),
                (value_target.get("file") or {}).get("oid"),
            )

        commit, type_hash = await asyncio.gather(
            self.repository.resolve_ref(bytes_ref(uuid)),
            self.repository.resolve_ref(type_ref(uuid)),
        )
        if commit is None:
            return None
        return Slot(commit, type_hash)

    async def _read(self, uuid: str) -> tuple[Slot | None, Any]:
        slot = await self._resolve_slot(uuid)
        if slot is None:
            return None, None
        tag = TYPE_HASHES.inverse_get(slot.type_hash)
        if tag is None:
            raise UnsupportedType(f"Unknown type commit {slot.type_hash} for {uuid}")

        message = slot.message
        if tag is TypeTag.BLOB and message is None:
            message = await self.repository.fetch_message(slot.commit_hash)

        if self.repository.is_public or slot.blob_hash is None:
            data = await self.repository.fetch_content(slot.commit_hash)
        else:
            data = await self.repository.fetch_blob(slot.blob_hash)
        if data is None:
            # Ref exists but the content isn't reachable yet, e.g. CDN lag
            logger.warning(f"Value commit {slot.commit_hash} of {uuid} not found")
            return None, None
        return slot, deserialize(Serialized(tag, data, _mime_type(message)))

    async def read(self, key: Any) -> Any:
        """Current value of the key, or None if it does not exist."""
        identity = await self.identify(key)
        _, value = await self._read(identity.uuid)
        return value

    def _value_hash(self, value: Any) -> str:
        serialized = serialize(value)
        return self.repository.content_hash_of(serialized.data, message=serialized.mime_type)

    async def update(self, key: Any, modifier: Modifier) -> UpdateResult:
        """
        Replace the value with modifier(old_value), failing if someone else changed it meanwhile.
        The modifier may be a plain function or a coroutine function.

        Raises:
            KeyNotFound: The key does not exist
            Conflict: The value changed between the read and the ref update
        """
        identity = await self.identify(key)
        uuid = identity.uuid
        slot, old_value = await self._read(uuid)
        if slot is None:
            raise KeyNotFound(uuid)
        # The modifier is allowed to mutate its argument in place
        old_clone = copy.deepcopy(old_value)
        before, value = await asyncio.gather(
            asyncio.to_thread(self._value_hash, old_clone),
            _apply(modifier, old_value),
        )
        serialized = serialize(value)
        value_commit = await self.repository.write(serialized.data, message=serialized.mime_type)
        await self.repository.update_refs([
            RefUpdate(bytes_ref(uuid), value_commit, before),
            RefUpdate(type_ref(uuid), TYPE_HASHES.get(serialized.type)),
        ])
        logger.info(f"Updated {uuid}: {before} -> {value_commit}")
        return UpdateResult(old_clone, value, self.repository.public_links(value_commit))

    async def increment(self, key: Any, delta: int | float = 1) -> UpdateResult:
        uuid = (await self.identify(key)).uuid
        def modifier(number):
            if type_of(number) is not TypeTag.NUMBER:
                raise TypeMismatch(f"Old value of {uuid} must be a Number", uuid)
            return number + delta
        return await self.update(key, modifier)

    async def toggle(self, key: Any) -> UpdateResult:
        uuid = (await self.identify(key)).uuid
        def modifier(flag):
            if type_of(flag) is not TypeTag.BOOLEAN:
                raise TypeMismatch(f"Old value of {uuid} must be a Boolean", uuid)
            return not flag
        return await self.update(key, modifier)

    async def delete(self, keys: Iterable[Any]):
        """Delete all given keys in one atomic ref batch."""
        identities = await asyncio.gather(*(self.identify(key) for key in keys))
        # A ref may appear only once per batch
        identities = list({identity.uuid: identity for identity in identities}.values())
        if not identities:
            return
        updates = []
        for identity in identities:
            updates.append(RefUpdate(existence_ref(identity.uuid)))
            updates.append(RefUpdate(bytes_ref(identity.uuid)))
            updates.append(RefUpdate(type_ref(identity.uuid)))
        await self.repository.update_refs(updates)
        logger.info(f"Deleted {[identity.uuid for identity in identities]}")

async def _apply(modifier: Modifier, value: Any) -> Any:
    result = modifier(value)
    if inspect.isawaitable(result):
        result = await result
    return result
