"""Security helpers: CSRF tokens and password hashing."""

from roost.security.csrf import check_csrf_token, csrf_field, generate_csrf_token
from roost.security.passwords import hash_password, verify_password

__all__ = [
    "check_csrf_token",
    "csrf_field",
    "generate_csrf_token",
    "hash_password",
    "verify_password",
]
