"""
Bearer tokens signed with the server key pair.

The key pair is generated once when the service is built and lives as long
as the process. Tokens carry the record id as the ``sub`` claim and expire
two hours after issuance; there is no other way to invalidate them.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any, Optional

import jwt
from cryptography.hazmat.primitives.asymmetric import rsa

from ...errors import TokenExpired, TokenInvalid, TokenNotYetValid

logger = logging.getLogger(__name__)

ALGORITHM = "RS256"
EXPIRES_IN = timedelta(hours=2)
DEFAULT_KEY_SIZE = 4096


@dataclass(frozen=True)
class TokenClaims:
    """Decoded content of a verified token."""
    subject_id: str
    issued_at: datetime
    expires_at: datetime
    algorithm: str = ALGORITHM


class TokenService:
    """
    Signs and verifies bearer tokens.

    Build one instance at startup and hand it to whoever needs it. Tokens
    signed by another instance never verify here.
    """

    def __init__(self, private_key: rsa.RSAPrivateKey):
        """
        Initialize with an existing key pair.

        Args:
            private_key: RSA private key; the public half is derived from it
        """
        self._private_key = private_key
        self._public_key = private_key.public_key()

    @classmethod
    def generate(cls, key_size: int = DEFAULT_KEY_SIZE) -> "TokenService":
        """Create a service with a freshly generated RSA key pair."""
        logger.info(f"Generating {key_size} bits RSA key pair for bearer tokens")
        private_key = rsa.generate_private_key(public_exponent=65537, key_size=key_size)
        return cls(private_key)

    def _sign(self, subject_id: Any, issued_at: Optional[datetime]) -> str:
        now = issued_at or datetime.now(UTC)
        claims = {
            "sub": str(subject_id),
            "iat": now,
            "nbf": now,
            "exp": now + EXPIRES_IN,
        }
        return jwt.encode(claims, self._private_key, algorithm=ALGORITHM)

    async def sign(self, subject_id: Any, issued_at: Optional[datetime] = None) -> str:
        """
        Mint a token for a record.

        Args:
            subject_id: Record id, embedded as a string
            issued_at: Issuance date, defaults to now

        Returns:
            Encoded token
        """
        return await asyncio.to_thread(self._sign, subject_id, issued_at)

    def _decode(self, token: str) -> TokenClaims:
        try:
            payload = jwt.decode(
                token,
                self._public_key,
                algorithms=[ALGORITHM],
                options={"require": ["sub", "iat", "exp"]}
            )
        except jwt.ExpiredSignatureError as e:
            raise TokenExpired(f"jwt expired: {e}") from e
        except jwt.ImmatureSignatureError as e:
            raise TokenNotYetValid(f"jwt not active: {e}") from e
        except jwt.InvalidTokenError as e:
            raise TokenInvalid(f"invalid jwt: {e}") from e

        return TokenClaims(
            subject_id=payload["sub"],
            issued_at=datetime.fromtimestamp(payload["iat"], UTC),
            expires_at=datetime.fromtimestamp(payload["exp"], UTC),
        )

    async def verify_claims(self, token: str) -> TokenClaims:
        """
        Verify a token and return its claims.

        Raises:
            TokenExpired: The token is past its expiry date
            TokenNotYetValid: The token is not active yet
            TokenInvalid: Bad signature, other key pair, or malformed token
        """
        return await asyncio.to_thread(self._decode, token)

    async def verify(self, token: str) -> str:
        """Verify a token and return the record id it was issued for."""
        claims = await self.verify_claims(token)
        return claims.subject_id
