"""Password hashing for user repositories — argon2id with scrypt fallback.

Hashes passwords using the best available algorithm:

1. **argon2id** via ``argon2-cffi`` (preferred, ``pip install roost[auth]``)
2. **scrypt** via stdlib ``hashlib`` (fallback, always available)

Both produce PHC-format strings, and ``verify_password`` picks the
algorithm from the hash prefix, so stored hashes keep verifying when the
default changes.

Usage::

    from roost.security.passwords import hash_password, verify_password

    hashed = hash_password("my-password")
    ok = verify_password("my-password", hashed)
"""

import base64
import hashlib
import hmac
import os

_ARGON2_PREFIX = "$argon2"
_SCRYPT_PREFIX = "$scrypt$"

_SCRYPT_N = 2**14  # CPU/memory cost
_SCRYPT_R = 8  # Block size
_SCRYPT_P = 1  # Parallelism
_SCRYPT_DKLEN = 64
_SALT_LENGTH = 16


def _has_argon2() -> bool:
    """Check if argon2-cffi is available."""
    try:
        import argon2  # noqa: F401

        return True
    except ImportError:
        return False


# -- Scrypt --


def _derive(password: str, salt: bytes, n: int, r: int, p: int, dklen: int) -> bytes:
    return hashlib.scrypt(password.encode("utf-8"), salt=salt, n=n, r=r, p=p, dklen=dklen)


def _hash_scrypt(password: str) -> str:
    salt = os.urandom(_SALT_LENGTH)
    key = _derive(password, salt, _SCRYPT_N, _SCRYPT_R, _SCRYPT_P, _SCRYPT_DKLEN)
    salt_b64 = base64.b64encode(salt).decode("ascii")
    key_b64 = base64.b64encode(key).decode("ascii")
    return f"{_SCRYPT_PREFIX}n={_SCRYPT_N},r={_SCRYPT_R},p={_SCRYPT_P}${salt_b64}${key_b64}"


def _verify_scrypt(password: str, phc_hash: str) -> bool:
    # ['', 'scrypt', 'n=..,r=..,p=..', salt, key]
    parts = phc_hash.split("$")
    if len(parts) != 5:
        return False
    try:
        params = {k: int(v) for k, _, v in (p.partition("=") for p in parts[2].split(","))}
        salt = base64.b64decode(parts[3], validate=True)
        expected = base64.b64decode(parts[4], validate=True)
    except ValueError:
        return False

    key = _derive(
        password,
        salt,
        params.get("n", _SCRYPT_N),
        params.get("r", _SCRYPT_R),
        params.get("p", _SCRYPT_P),
        len(expected),
    )
    return hmac.compare_digest(key, expected)


# -- Argon2 --


def _hash_argon2(password: str) -> str:
    from argon2 import PasswordHasher

    return PasswordHasher().hash(password)


def _verify_argon2(password: str, phc_hash: str) -> bool:
    from argon2 import PasswordHasher
    from argon2.exceptions import InvalidHashError, VerificationError

    try:
        return PasswordHasher().verify(phc_hash, password)
    except (VerificationError, InvalidHashError):
        return False


# -- Public API --


def hash_password(password: str) -> str:
    """Hash *password* with argon2id, or scrypt when argon2-cffi is missing.

    Returns a PHC-format string (``$argon2id$...`` or ``$scrypt$...``).
    Raises ``ValueError`` for an empty password.
    """
    if not password:
        msg = "Password must not be empty."
        raise ValueError(msg)

    if _has_argon2():
        return _hash_argon2(password)
    return _hash_scrypt(password)


def verify_password(password: str, phc_hash: str) -> bool:
    """Check *password* against a hash from ``hash_password``.

    The algorithm is taken from the hash prefix. Malformed or unknown
    hashes verify as ``False``. An argon2 hash without ``argon2-cffi``
    installed raises ``RuntimeError``.
    """
    if not password or not phc_hash:
        return False

    if phc_hash.startswith(_ARGON2_PREFIX):
        if not _has_argon2():
            msg = (
                "Hash was created with argon2 but argon2-cffi is not installed. "
                "Install it with: pip install roost[auth]"
            )
            raise RuntimeError(msg)
        return _verify_argon2(password, phc_hash)

    if phc_hash.startswith(_SCRYPT_PREFIX):
        return _verify_scrypt(password, phc_hash)

    return False
