import math

import pytest

from kvstore.bimap import BidirectionalMap
from kvstore.conversions import base64url_to_hex, hex_to_base64url, number_to_bytes, number_to_text
from kvstore.errors import UnsupportedType
from kvstore.types import TYPE_HASHES, Blob, Serialized, TypeTag, deserialize, serialize, type_of

@pytest.mark.parametrize("value", [
    8,
    -2345.2387,
    -89.2378798e-2,
    12345678,
    2 ** 40,
    True,
    False,
    "Hello World!",
    "",
    [{"hi": "there!"}, {"how": "are you?"}],
    {"key": "value", "nested": [1, 2.5, None]},
    None,
    "null",
    b"\x7b\x2a",
    Blob(b"Hello World! How are you?", "text/plain"),
])
def test_round_trip(value):
    assert deserialize(serialize(value)) == value

def test_bytes_like_values_read_back_as_bytes():
    assert deserialize(serialize(bytearray(b"abc"))) == b"abc"
    assert deserialize(serialize(memoryview(b"abc"))) == b"abc"

def test_short_numbers_stored_as_text():
    assert serialize(8).data == b"8"
    assert serialize(-1.5).data == b"-1.5"
    assert serialize(1234567).data == b"1234567"
    assert serialize(3.0).data == b"3"

def test_long_numbers_stored_as_doubles():
    serialized = serialize(12345678)
    assert len(serialized.data) == 8
    assert deserialize(serialized) == 12345678
    assert deserialize(serialize(math.pi)) == math.pi

def test_number_text_follows_javascript():
    assert number_to_text(0.1) == "0.1"
    assert number_to_text(1e-7) == "1e-7"
    assert number_to_text(0.000001) == "0.000001"
    assert number_to_text(1.5e21) == "1.5e+21"
    assert number_to_text(-0.0) == "0"
    assert number_to_text(float("nan")) == "NaN"
    assert number_to_text(float("-inf")) == "-Infinity"

def test_non_finite_numbers_round_trip():
    assert math.isnan(deserialize(serialize(float("nan"))))
    assert deserialize(serialize(float("inf"))) == float("inf")

def test_booleans_are_lowercase_text():
    assert serialize(True).data == b"true"
    assert serialize(False).data == b"false"
    assert serialize(True).type is TypeTag.BOOLEAN

def test_json_is_compact():
    serialized = serialize({"a": [1, 2]})
    assert serialized.type is TypeTag.JSON
    assert serialized.data == b'{"a":[1,2]}'

def test_blob_carries_mime_type():
    serialized = serialize(Blob(b"\x00\x01", "custom/mime"))
    assert serialized.type is TypeTag.BLOB
    assert serialized.mime_type == "custom/mime"

def test_unsupported_values():
    with pytest.raises(UnsupportedType):
        serialize(object())
    with pytest.raises(UnsupportedType):
        serialize({"set": {1, 2}})
    with pytest.raises(UnsupportedType):
        serialize(10 ** 400)
    with pytest.raises(UnsupportedType):
        serialize(-(10 ** 400))
    with pytest.raises(UnsupportedType):
        TypeTag.parse("Uint16Array")

def test_type_of_distinguishes_bool_from_number():
    assert type_of(True) is TypeTag.BOOLEAN
    assert type_of(1) is TypeTag.NUMBER

def test_deserialize_rejects_unknown_tag():
    with pytest.raises(UnsupportedType):
        deserialize(Serialized("Float64Array", b"\x00" * 8))

def test_type_hashes_are_bijective():
    assert len(TYPE_HASHES) == len(TypeTag)
    for tag in TypeTag:
        assert TYPE_HASHES.inverse_get(TYPE_HASHES.get(tag)) is tag
    assert TYPE_HASHES.inverse_get("3ac5ed658d05ac06b6584af5a4fa8fd7784c2119") is None

def test_base64url_identifiers():
    commit = "e9ace96e2ca6a2186a0c8a65b1b925f79a6d2ad2"
    encoded = hex_to_base64url(commit)
    assert "=" not in encoded and "+" not in encoded and "/" not in encoded
    assert base64url_to_hex(encoded) == commit

class TestBidirectionalMap:
    def make(self):
        return BidirectionalMap([("key", "string"), (23, "number"), ("obj", "object")])

    def test_inverse_of_inverse(self):
        bimap = self.make()
        assert bimap.inv.inv == bimap
        for key, value in bimap.items():
            assert bimap.inverse_get(value) == key

    def test_rejects_non_bijective_input(self):
        with pytest.raises(ValueError, match="Breaking bijection"):
            BidirectionalMap([("a", "v"), ("b", "v")])

    def test_set_existing_key_new_value(self):
        bimap = self.make()
        bimap.set("key", "new value")
        assert bimap.get("key") == "new value"
        assert bimap.inverse_get("new value") == "key"
        assert bimap.inverse_get("string") is None

    def test_set_rejects_taken_value(self):
        bimap = self.make()
        with pytest.raises(ValueError):
            bimap.set("new key", "string")
        with pytest.raises(ValueError):
            bimap.set("key", "number")

    def test_inverse_is_live(self):
        bimap = self.make()
        inverse = bimap.inv
        assert bimap.inv is inverse
        bimap.set("late", "arrival")
        assert inverse.get("arrival") == "late"
        inverse.delete("string")
        assert "key" not in bimap
        assert len(bimap) == len(inverse) == 3

    def test_push_rebinds(self):
        bimap = self.make()
        bimap.push("new key", "string")
        assert bimap.get("new key") == "string"
        assert "key" not in bimap
        assert len(bimap) == len(bimap.inv) == 3

    def test_delete_and_clear(self):
        bimap = self.make()
        assert bimap.delete(23)
        assert not bimap.delete(23)
        assert bimap.inverse_get("number") is None
        bimap.clear()
        assert len(bimap) == len(bimap.inv) == 0

def test_large_ints_pack_as_doubles():
    assert number_to_bytes(2 ** 70) == number_to_bytes(float(2 ** 70))
    with pytest.raises(OverflowError):
        number_to_bytes(10 ** 400)
