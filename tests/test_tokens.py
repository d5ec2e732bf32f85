"""
Unit tests for the bearer token service.
"""

from datetime import UTC, datetime, timedelta

import jwt
import pytest

from simpleql.errors import TokenExpired, TokenInvalid, TokenNotYetValid
from simpleql.modules.auth.tokens import ALGORITHM, EXPIRES_IN, TokenService


@pytest.mark.asyncio
async def test_sign_then_verify(token_service):
    token = await token_service.sign("42")

    assert await token_service.verify(token) == "42"


@pytest.mark.asyncio
async def test_subject_is_embedded_as_string(token_service):
    token = await token_service.sign(42)

    assert await token_service.verify(token) == "42"
    assert jwt.get_unverified_header(token)["alg"] == ALGORITHM


@pytest.mark.asyncio
async def test_claims_expire_after_two_hours(token_service):
    issued_at = datetime.now(UTC).replace(microsecond=0)
    token = await token_service.sign("7", issued_at=issued_at)

    claims = await token_service.verify_claims(token)

    assert claims.subject_id == "7"
    assert claims.issued_at == issued_at
    assert claims.expires_at - claims.issued_at == EXPIRES_IN
    assert claims.algorithm == "RS256"


@pytest.mark.asyncio
async def test_expired_token(token_service):
    token = await token_service.sign("7", issued_at=datetime.now(UTC) - EXPIRES_IN - timedelta(minutes=1))

    with pytest.raises(TokenExpired) as exc_info:
        await token_service.verify(token)
    assert exc_info.value.status == 401


@pytest.mark.asyncio
async def test_token_not_yet_valid(token_service):
    token = await token_service.sign("7", issued_at=datetime.now(UTC) + timedelta(hours=1))

    with pytest.raises(TokenNotYetValid):
        await token_service.verify(token)


@pytest.mark.asyncio
async def test_token_from_other_key_pair(token_service, other_token_service):
    token = await other_token_service.sign("7")

    with pytest.raises(TokenInvalid):
        await token_service.verify(token)


@pytest.mark.asyncio
async def test_malformed_token(token_service):
    with pytest.raises(TokenInvalid):
        await token_service.verify("not-a-jwt")


@pytest.mark.asyncio
async def test_symmetric_token_rejected(token_service):
    """Only RS256 is accepted, whatever the token header claims."""
    now = datetime.now(UTC)
    token = jwt.encode({"sub": "7", "iat": now, "exp": now + EXPIRES_IN}, "shared-secret", algorithm="HS256")

    with pytest.raises(TokenInvalid):
        await token_service.verify(token)


@pytest.mark.asyncio
async def test_token_without_subject(token_service):
    now = datetime.now(UTC)
    token = jwt.encode({"iat": now, "exp": now + EXPIRES_IN}, token_service._private_key, algorithm=ALGORITHM)

    with pytest.raises(TokenInvalid):
        await token_service.verify(token)


def test_generated_key_size(token_service):
    assert isinstance(token_service, TokenService)
    assert token_service._public_key.key_size == 2048
