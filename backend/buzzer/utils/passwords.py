from typing import Optional

from flask_bcrypt import Bcrypt

# bcrypt only reads the first 72 bytes of a secret.
BCRYPT_MAX_BYTES = 72


def _encode(secret: str) -> bytes:
    return secret.encode('utf-8')[:BCRYPT_MAX_BYTES]


class PasswordHasher:
    """Salted one-way hashing for GM and player secrets, backed by Flask-Bcrypt.

    The work factor comes from ``BCRYPT_LOG_ROUNDS`` once the Bcrypt extension
    is bound to an app; ``rounds`` overrides it. Secrets are length-checked in
    characters, so multi-byte ones are cut to bcrypt's byte limit on both the
    hash and the verify side.
    """

    def __init__(self, bcrypt: Bcrypt, rounds: Optional[int] = None):
        self._bcrypt = bcrypt
        self._rounds = rounds

    def hash(self, secret: str) -> str:
        return self._bcrypt.generate_password_hash(_encode(secret), self._rounds).decode('utf-8')

    def verify(self, secret: str, hashed: str) -> bool:
        if not secret or not hashed:
            return False
        try:
            return self._bcrypt.check_password_hash(hashed, _encode(secret))
        except ValueError:
            # Not a bcrypt hash.
            return False
