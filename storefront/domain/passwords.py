"""
Password hashing helpers.

bcrypt with a cost factor of at least 10. check_password() always runs a
full bcrypt comparison, falling back to a dummy hash when no stored hash
is available, so unknown accounts cost the same as wrong passwords.
"""

import bcrypt

MIN_BCRYPT_COST = 10

# bcrypt only reads the first 72 bytes; newer releases raise instead of truncating.
_BCRYPT_MAX_BYTES = 72

# Hash of "dummy_password_for_timing_safety" with cost factor 10.
_DUMMY_BCRYPT_HASH = bcrypt.hashpw(b"dummy_password_for_timing_safety", bcrypt.gensalt(10)).decode()


def _encode(password: str) -> bytes:
    return password.encode()[:_BCRYPT_MAX_BYTES]


def hash_password(password: str, cost: int = MIN_BCRYPT_COST) -> str:
    """Hash password using bcrypt with cost factor >= 10."""
    rounds = max(cost, MIN_BCRYPT_COST)
    return bcrypt.hashpw(_encode(password), bcrypt.gensalt(rounds=rounds)).decode()


def check_password(password: str, password_hash: str | None) -> bool:
    """Constant-time password verification; False when password_hash is None."""
    stored_hash = password_hash if password_hash is not None else _DUMMY_BCRYPT_HASH
    valid = bcrypt.checkpw(_encode(password), stored_hash.encode())
    return valid and password_hash is not None
