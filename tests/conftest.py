"""
Shared pytest fixtures for SimpleQL tests.

This module provides common fixtures including:
- InMemoryQuery: A query collaborator backed by Python lists
- A token service shared by the whole session (key generation is slow)
- Redis mocks for the audit trail
- A login plugin wired to all of the above
"""

import os
import sys
from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock

import pytest

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from simpleql.modules.auth import AuditLog, HashEngine, TokenService, configure
from simpleql.modules.pipeline import RESERVED_ID, RequestContext


# =============================================================================
# Query Collaborator Fake
# =============================================================================

class InMemoryQuery:
    """
    Minimal query collaborator storing records per table.

    Lookups are of the form ``{table: {column: value, "get": [columns]}}``;
    every non-"get" key is an equality filter.

    Usage:
        async def test_lookup(memory_query):
            memory_query.insert("User", {"email": "a@b.com"})
            results = await memory_query({"User": {"email": "a@b.com", "get": ["reservedId"]}})
    """

    def __init__(self):
        self.tables: Dict[str, List[Dict[str, Any]]] = {}
        self.calls: List[Dict[str, Any]] = []
        self._next_id = 1

    def insert(self, table: str, record: Dict[str, Any]) -> Dict[str, Any]:
        """Store a record and assign its reservedId."""
        stored = dict(record)
        stored[RESERVED_ID] = str(self._next_id)
        self._next_id += 1
        self.tables.setdefault(table, []).append(stored)
        return stored

    async def __call__(
        self,
        request: Dict[str, Any],
        *,
        read_only: bool = False,
        admin: bool = False
    ) -> Dict[str, List[Dict[str, Any]]]:
        self.calls.append({"request": request, "read_only": read_only, "admin": admin})
        results = {}
        for table, table_request in request.items():
            filters = {key: value for key, value in table_request.items() if key != "get"}
            get = table_request.get("get")
            matching = [
                record for record in self.tables.get(table, [])
                if all(record.get(key) == value for key, value in filters.items())
            ]
            if get:
                matching = [{key: record.get(key) for key in get} for record in matching]
            results[table] = matching
        return results


# =============================================================================
# Auth Fixtures
# =============================================================================

@pytest.fixture(scope="session")
def token_service() -> TokenService:
    """One key pair for the whole test session."""
    return TokenService.generate(key_size=2048)


@pytest.fixture(scope="session")
def other_token_service() -> TokenService:
    """A second, unrelated key pair."""
    return TokenService.generate(key_size=2048)


@pytest.fixture
def hash_engine() -> HashEngine:
    return HashEngine()


@pytest.fixture
def redis_mock():
    """Create a mock Redis client."""
    redis = AsyncMock()
    redis.lpush = AsyncMock()
    redis.ltrim = AsyncMock()
    return redis


@pytest.fixture
def memory_query() -> InMemoryQuery:
    return InMemoryQuery()


@pytest.fixture
def login_options() -> Dict[str, Any]:
    return {"login": "email", "password": "password", "salt": "salt", "userTable": "User"}


@pytest.fixture
def login_plugin(login_options, token_service, redis_mock):
    """Login plugin with the session key pair and a mocked audit trail."""
    return configure(login_options, token_service=token_service, audit=AuditLog(redis_mock))


@pytest.fixture
def user_tables() -> Dict[str, Any]:
    """Table declarations accepted by the login plugin."""
    return {
        "User": {
            "email": "string/40",
            "password": "binary/64",
            "salt": "binary/16",
            "index": ["email/unique"],
        }
    }


@pytest.fixture
def make_context(memory_query):
    """Factory for request contexts bound to the in-memory query collaborator."""
    def _make(body: Optional[Dict[str, Any]] = None, headers: Optional[Dict[str, str]] = None, **kwargs):
        return RequestContext(body=body or {}, headers=headers or {}, query=memory_query, **kwargs)
    return _make


async def store_user(memory_query: InMemoryQuery, hash_engine: HashEngine, email: str, password: str,
                     salted: bool = True) -> Dict[str, Any]:
    """Insert a user the way a registration would have stored it."""
    salt = hash_engine.generate_salt() if salted else None
    record = {"email": email, "password": await hash_engine.derive_digest(password, salt)}
    if salted:
        record["salt"] = salt
    return memory_query.insert("User", record)
