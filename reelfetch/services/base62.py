# reelfetch/services/base62.py
from __future__ import annotations

from reelfetch.app.domain.errors import Base62DecodeError

ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ"
_BASE = len(ALPHABET)
_INDEX = {char: value for value, char in enumerate(ALPHABET)}


def base62_to_decimal(value: str) -> str:
    """Decode a base-62 string (most significant digit first) into a decimal string."""
    if not value:
        raise Base62DecodeError("")

    decimal = 0
    for char in value:
        digit = _INDEX.get(char)
        if digit is None:
            raise Base62DecodeError(char)
        decimal = decimal * _BASE + digit
    return str(decimal)


def decimal_to_base62(value: str | int) -> str:
    number = int(value)
    if number < 0:
        raise ValueError("negative values cannot be encoded")
    if number == 0:
        return ALPHABET[0]

    digits: list[str] = []
    while number:
        number, rem = divmod(number, _BASE)
        digits.append(ALPHABET[rem])
    return "".join(reversed(digits))
