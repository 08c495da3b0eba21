"""
Password obfuscation for stored user records.

WARNING: this is NOT a secure password hash. It is a 32-bit rolling hash
(the classic ``h = h * 31 + c`` string hash) over the password plus a fixed
salt, rendered in base 36. Collisions are easy to find and the digest can be
brute-forced instantly. It is kept because existing stored digests were
produced with exactly this scheme; moving to bcrypt/argon2 would invalidate
every stored credential and needs a migration plan first.
"""

from . import config

_BASE36_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"


def _to_int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value >= 0x80000000 else value


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    sign = "-" if value < 0 else ""
    value = abs(value)
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36_DIGITS[rem])
    return sign + "".join(reversed(digits))


def _code_units(text: str):
    # Iterate UTF-16 code units so astral characters hash as surrogate pairs
    encoded = text.encode("utf-16-le")
    for i in range(0, len(encoded), 2):
        yield int.from_bytes(encoded[i:i + 2], "little")


def hash_password(password: str) -> str:
    h = 0
    for unit in _code_units(password + config.PASSWORD_SALT):
        h = _to_int32((h << 5) - h + unit)
    return _to_base36(h)


def compare_passwords(password: str, hashed_password: str) -> bool:
    return hash_password(password) == hashed_password
