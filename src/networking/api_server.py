"""
HTTP front end for a Database.
Keys and values travel as JSON; binary values come back base64 encoded.
"""
from typing import Any, Awaitable
import base64
import logging

from fastapi import APIRouter, HTTPException

from kvstore.database import Database, UpdateResult
from kvstore.errors import (
    AuthenticationFailure, Conflict, GitKVError, InitializationFailure, KeyExists,
    KeyNotFound, NetworkError, QueryRejected, TypeMismatch, UnsupportedType,
)
from kvstore.types import Blob

logger = logging.getLogger(__name__)

STATUS_CODES = {
    KeyExists: 409,
    Conflict: 409,
    KeyNotFound: 404,
    TypeMismatch: 422,
    UnsupportedType: 415,
    AuthenticationFailure: 403,
    NetworkError: 502,
    QueryRejected: 502,
    InitializationFailure: 503,
}

def to_json(value: Any) -> Any:
    if isinstance(value, Blob):
        return {"base64": base64.b64encode(value.data).decode("ascii"), "mime_type": value.mime_type}
    if isinstance(value, (bytes, bytearray, memoryview)):
        return {"base64": base64.b64encode(bytes(value)).decode("ascii")}
    return value

def _key(body: dict[str, Any]) -> Any:
    if "key" not in body:
        raise HTTPException(status_code=400, detail="key required")
    return body["key"]

class APIHandler:
    database: Database

    def __init__(self, database: Database):
        self.router = APIRouter()
        self.database = database
        self.router.add_api_route("/healthcheck", self.healthcheck, methods=["GET"])
        self.router.add_api_route("/kv/create", self.create, methods=["POST"])
        self.router.add_api_route("/kv/read", self.read, methods=["POST"])
        self.router.add_api_route("/kv/has", self.has, methods=["POST"])
        self.router.add_api_route("/kv/increment", self.increment, methods=["POST"])
        self.router.add_api_route("/kv/toggle", self.toggle, methods=["POST"])
        self.router.add_api_route("/kv/delete", self.delete, methods=["POST"])
        self.router.add_api_route("/kv/key/{uuid:path}", self.key, methods=["GET"])

    async def _guard(self, pending: Awaitable[Any]) -> Any:
        try:
            return await pending
        except GitKVError as e:
            status = next((code for cls, code in STATUS_CODES.items() if isinstance(e, cls)), 500)
            logger.info(f"Request failed with {status}: {e}")
            raise HTTPException(status_code=status, detail=str(e)) from e

    def _update_response(self, result: UpdateResult) -> dict[str, Any]:
        return {
            "old_value": to_json(result.old_value),
            "current_value": to_json(result.current_value),
            "links": result.links,
        }

    async def healthcheck(self) -> dict[str, Any]:
        repository = self.database.repository
        return {"repository": f"{repository.owner}/{repository.name}", "public": repository.is_public}

    async def create(self, body: dict[str, Any]) -> dict[str, str]:
        if "value" not in body:
            raise HTTPException(status_code=400, detail="value required")
        return await self._guard(
            self.database.create(_key(body), body["value"], overwrite=bool(body.get("overwrite", False)))
        )

    async def read(self, body: dict[str, Any]) -> dict[str, Any]:
        key = _key(body)
        identity = await self._guard(self.database.identify(key))
        value = await self._guard(self.database.read(key))
        return {"uuid": identity.uuid, "value": to_json(value)}

    async def has(self, body: dict[str, Any]) -> dict[str, bool]:
        return {"exists": await self._guard(self.database.has(_key(body)))}

    async def increment(self, body: dict[str, Any]) -> dict[str, Any]:
        delta = body.get("delta", 1)
        if isinstance(delta, bool) or not isinstance(delta, (int, float)):
            raise HTTPException(status_code=400, detail="delta must be a number")
        result = await self._guard(self.database.increment(_key(body), delta))
        return self._update_response(result)

    async def toggle(self, body: dict[str, Any]) -> dict[str, Any]:
        result = await self._guard(self.database.toggle(_key(body)))
        return self._update_response(result)

    async def delete(self, body: dict[str, Any]) -> dict[str, int]:
        keys = body.get("keys")
        if not isinstance(keys, list):
            raise HTTPException(status_code=400, detail="keys must be a list")
        await self._guard(self.database.delete(keys))
        return {"deleted": len(keys)}

    async def key(self, uuid: str) -> dict[str, Any]:
        return {"key": to_json(await self._guard(self.database.uuid_to_key(uuid)))}
