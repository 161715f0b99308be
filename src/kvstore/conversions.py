"""
Byte, text, hex, base64 and number conversions shared by the type codec and the database.
"""
from decimal import Decimal
import base64
import math
import struct

def hex_to_base64url(hex_string: str) -> str:
    # Unpadded, like the identifiers the JavaScript client produces
    return base64.urlsafe_b64encode(bytes.fromhex(hex_string)).rstrip(b"=").decode("ascii")

def base64url_to_hex(encoded: str) -> str:
    padded = encoded + "=" * (-len(encoded) % 4)
    return base64.urlsafe_b64decode(padded.replace("+", "-").replace("/", "_")).hex()

def number_to_bytes(number: float) -> bytes:
    # float() raises OverflowError for ints beyond the double range
    return struct.pack("<d", float(number))

def bytes_to_number(data: bytes) -> float:
    return struct.unpack("<d", data)[0]

def number_to_text(number: int | float) -> str:
    """
    Shortest round-trip decimal text, formatted the way JavaScript's Number#toString does,
    so identifiers derived from numeric keys match those computed by other clients.
    """
    if isinstance(number, int):
        return str(number)
    if math.isnan(number):
        return "NaN"
    if math.isinf(number):
        return "Infinity" if number > 0 else "-Infinity"
    if number.is_integer() and abs(number) < 1e21:
        return str(int(number))
    sign = "-" if number < 0 else ""
    _, digit_tuple, exponent = Decimal(repr(abs(number))).normalize().as_tuple()
    digits = "".join(map(str, digit_tuple))
    k = len(digits)
    n = exponent + k
    if k <= n <= 21:
        body = digits + "0" * (n - k)
    elif 0 < n <= 21:
        body = digits[:n] + "." + digits[n:]
    elif -6 < n <= 0:
        body = "0." + "0" * -n + digits
    else:
        e = n - 1
        mantissa = digits if k == 1 else digits[0] + "." + digits[1:]
        body = f"{mantissa}e{'+' if e > 0 else '-'}{abs(e)}"
    return sign + body

def text_to_number(text: str) -> int | float:
    try:
        return int(text)
    except ValueError:
        return float(text)
