"""
Password hashing for the login plugin.

Digests are PBKDF2-HMAC-SHA512 with 1000 iterations and a 64 byte output.
The salt enters the derivation as its hexadecimal text, so digests stay
compatible with records created by earlier SimpleQL servers.
"""

import asyncio
import hashlib
import secrets
from typing import Optional, Union

ALGORITHM = "sha512"
ITERATIONS = 1000
DIGEST_LENGTH = 64
SALT_LENGTH = 16

BytesLike = Union[bytes, bytearray, memoryview]


class HashEngine:
    """Salted password digests. Stateless; one instance can serve every request."""

    @staticmethod
    def generate_salt() -> bytes:
        """Random salt from a cryptographically secure source."""
        return secrets.token_bytes(SALT_LENGTH)

    @staticmethod
    def _derive(password: str, salt: Optional[BytesLike]) -> bytes:
        salt_text = bytes(salt).hex() if salt else ""
        return hashlib.pbkdf2_hmac(
            ALGORITHM,
            password.encode("utf-8"),
            salt_text.encode("ascii"),
            ITERATIONS,
            DIGEST_LENGTH,
        )

    async def derive_digest(self, password: str, salt: Optional[BytesLike] = None) -> bytes:
        """
        Compute the digest of a password.

        Args:
            password: Plaintext password
            salt: Salt bytes, or None when salting is disabled

        Returns:
            64 byte digest, identical for identical inputs
        """
        return await asyncio.to_thread(self._derive, password, salt)

    @staticmethod
    def digests_equal(a: Optional[BytesLike], b: Optional[BytesLike]) -> bool:
        """Compare two digests in constant time."""
        if a is None or b is None:
            return False
        return secrets.compare_digest(bytes(a), bytes(b))
