# password hashing helpers built on pbkdf2

from __future__ import annotations

import re
import secrets
from typing import Dict, Optional

from cryptography.exceptions import InvalidKey
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from services.errors import AuthenticationError, ValidationError

PBKDF2_ITERATIONS = 100000
HASH_LENGTH = 32  # bytes, 64 hex characters
SALT_BYTES = 16  # 32 hex characters
HASH_PATTERN = re.compile(r"[0-9a-f]{64}")


class Credential:
    # the salt and hash pair stored on a user row

    def __init__(self, password_hash: str, password_salt: str) -> None:
        self.password_hash = password_hash
        self.password_salt = password_salt

    def as_dict(self) -> Dict[str, str]:
        return {"hash": self.password_hash, "salt": self.password_salt}

    def __repr__(self) -> str:  # pragma: no cover - never print the secret values
        return "Credential(<redacted>)"


def _kdf(salt: str) -> PBKDF2HMAC:
    # the salt text itself is the kdf salt, it is never hex decoded
    return PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=HASH_LENGTH,
        salt=salt.encode("utf-8"),
        iterations=PBKDF2_ITERATIONS,
    )


def derive_hash(password: str, salt: str) -> str:
    # deterministic lowercase hex digest for a password and salt pair
    return _kdf(salt).derive(password.encode("utf-8")).hex()


def generate_salt() -> str:
    # fresh random salt for every new or rotated credential
    return secrets.token_hex(SALT_BYTES)


def verify_password(password: str, password_hash: str, salt: Optional[str]) -> bool:
    # recompute and compare in constant time, legacy rows may have no salt
    # stored hashes are exactly 64 lowercase hex characters
    if not isinstance(password_hash, str) or not HASH_PATTERN.fullmatch(password_hash):
        return False
    expected = bytes.fromhex(password_hash)
    try:
        _kdf(salt or "").verify(password.encode("utf-8"), expected)
    except InvalidKey:
        return False
    return True


def register_credential(password: str) -> Credential:
    # salt and hash for a brand new account
    if not password:
        raise ValidationError("Password is required.")
    salt = generate_salt()
    return Credential(derive_hash(password, salt), salt)


def rotate_credential(
    old_password: str,
    new_password: str,
    password_hash: str,
    password_salt: Optional[str],
) -> Credential:
    # replace both salt and hash once the current password checks out
    if not verify_password(old_password, password_hash, password_salt):
        raise AuthenticationError("Current password is incorrect")
    if not new_password:
        raise ValidationError("New password is required.")
    return register_credential(new_password)
