"""
Mapping between typed Python values and the bytes stored in the repository.

Each stored value carries one of a fixed set of type tags. Every tag is bound to a
well-known commit, created once when the repository is provisioned, and the value's
type ref points at that commit.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any
import json

from .bimap import BidirectionalMap
from .conversions import bytes_to_number, number_to_bytes, number_to_text, text_to_number
from .errors import UnsupportedType

# Numbers whose decimal text is longer than this are stored as 8-byte doubles
MAX_NUMBER_TEXT = 7

class TypeTag(str, Enum):
    NUMBER = "Number"
    BOOLEAN = "Boolean"
    STRING = "String"
    JSON = "JSON"
    BLOB = "Blob"
    ARRAY_BUFFER = "ArrayBuffer"

    @classmethod
    def parse(cls, name: str) -> "TypeTag":
        try:
            return cls(name)
        except ValueError:
            raise UnsupportedType(f"Unsupported type: {name}") from None

TYPE_HASHES: BidirectionalMap[TypeTag, str] = BidirectionalMap([
    (TypeTag.NUMBER, "14f91166da82bb4c61d208ac02c492355e8d2cc2"),
    (TypeTag.BOOLEAN, "6e3272db79ec82e0caee4729c2b7f7e90e1900d8"),
    (TypeTag.STRING, "297f8811f388d4789333d7f2377519c145c4f874"),
    (TypeTag.JSON, "f8f3eae1d21b150f5d020b65afd1cb6c07f11ab1"),
    (TypeTag.BLOB, "844f74f26e3a8afe7ff86d5870f40d2a3b926d3a"),
    (TypeTag.ARRAY_BUFFER, "dcb0f2b8e11c35744b4cde31041517805fae7fed"),
])

@dataclass(frozen=True)
class Blob:
    """Opaque bytes with a MIME type."""
    data: bytes
    mime_type: str = ""

@dataclass
class Serialized:
    type: TypeTag
    data: bytes
    mime_type: str = ""

def type_of(value: Any) -> TypeTag:
    # bool first: it is a subclass of int
    if isinstance(value, bool):
        return TypeTag.BOOLEAN
    if isinstance(value, (int, float)):
        return TypeTag.NUMBER
    if isinstance(value, str):
        return TypeTag.STRING
    if value is None or isinstance(value, (list, dict)):
        return TypeTag.JSON
    if isinstance(value, Blob):
        return TypeTag.BLOB
    if isinstance(value, (bytes, bytearray, memoryview)):
        return TypeTag.ARRAY_BUFFER
    raise UnsupportedType(f"Unsupported value type: {type(value).__name__}")

def serialize(value: Any) -> Serialized:
    """
    Convert a typed value to bytes. Also serves as the type check for values entering the store.

    Args:
        value: int, float, bool, str, None, list, dict, Blob or a bytes-like object

    Returns:
        The type tag, the bytes, and for a Blob its MIME type
    """
    tag = type_of(value)
    if tag is TypeTag.NUMBER:
        text = number_to_text(value)
        if len(text) <= MAX_NUMBER_TEXT:
            return Serialized(tag, text.encode())
        try:
            return Serialized(tag, number_to_bytes(value))
        except OverflowError:
            raise UnsupportedType(f"Number out of double range: {value}") from None
    if tag is TypeTag.BOOLEAN:
        return Serialized(tag, b"true" if value else b"false")
    if tag is TypeTag.STRING:
        return Serialized(tag, value.encode("utf-8"))
    if tag is TypeTag.JSON:
        try:
            text = json.dumps(value, separators=(",", ":"), ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise UnsupportedType(f"Value is not JSON serializable: {e}") from e
        return Serialized(tag, text.encode("utf-8"))
    if tag is TypeTag.BLOB:
        return Serialized(tag, bytes(value.data), value.mime_type)
    return Serialized(tag, bytes(value))

def deserialize(serialized: Serialized) -> Any:
    """Inverse of serialize()."""
    tag, data = serialized.type, serialized.data
    if tag is TypeTag.NUMBER:
        if len(data) == 8:
            return bytes_to_number(data)
        return text_to_number(data.decode())
    if tag is TypeTag.BOOLEAN:
        return data.decode() == "true"
    if tag is TypeTag.STRING:
        return data.decode("utf-8")
    if tag is TypeTag.JSON:
        return json.loads(data.decode("utf-8"))
    if tag is TypeTag.BLOB:
        return Blob(bytes(data), serialized.mime_type)
    if tag is TypeTag.ARRAY_BUFFER:
        return bytes(data)
    raise UnsupportedType(f"Unsupported type: {tag}")
