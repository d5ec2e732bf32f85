"""
Login plugin for SimpleQL.

Classifies every incoming request and authenticates it:

1. Body carries the login and password values: credential check, a token is
   minted and cached until the result is emitted.
2. Body creates records in the user table: each password is replaced by its
   salted digest before the records reach the database.
3. Authorization: Bearer header: the token is verified and its subject
   becomes the authenticated id of the request.
4. Anything else is rejected with 401.

The plugin never stores credentials. Lookups and writes go through the query
collaborator carried by the request context.
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence

from ...config.provider import LoginConfig
from ...errors import (
    BadRequest,
    ConfigValidationError,
    InternalError,
    NotFound,
    PrerequisiteError,
    SimpleQLError,
    TokenError,
    WrongPassword,
)
from ..pipeline import AUTH_ID, RESERVED_ID, Continue, Fail, RequestContext, Respond, StageResult
from ..tables import TableSchema, prepare_tables
from ..validation import LOGIN_OPTIONS, check
from .audit import AuditLog
from .hashing import DIGEST_LENGTH, SALT_LENGTH, HashEngine
from .tokens import TokenService

logger = logging.getLogger(__name__)

JWT_FIELD = "jwt"
REGISTRATION_KEY = "registration"
REJECTED_MESSAGE = "The request could not be authenticated"
BINARY_TYPES = (bytes, bytearray, memoryview)


class RequestIntent(str, Enum):
    """What an incoming request is trying to do."""

    LOGIN = "login"
    REGISTRATION = "registration"
    BEARER = "bearer"
    REJECTED = "rejected"


def load_login_config(options: Optional[Mapping[str, Any]] = None) -> LoginConfig:
    """
    Apply defaults to the plugin options and validate them.

    Args:
        options: Raw options (login, password, salt, userTable). A falsy salt
            disables salting.

    Returns:
        Validated LoginConfig

    Raises:
        ConfigValidationError: If the options do not match the login model
    """
    data: Dict[str, Any] = {"login": "email", "password": "password", "salt": "salt", "userTable": "User"}
    data.update(options or {})
    if not data["salt"]:
        del data["salt"]

    name = "LoginConfig for Login Plugin"
    check(LOGIN_OPTIONS, data, name)
    for key in ("login", "password", "userTable"):
        if not data[key].strip():
            raise ConfigValidationError(f"{key} must be a non-empty string in {name}")

    columns = [data["login"], data["password"]] + ([data["salt"]] if "salt" in data else [])
    if len(set(columns)) != len(columns):
        raise ConfigValidationError(f"login, password and salt must be distinct columns in {name}")

    return LoginConfig(
        login=data["login"],
        password=data["password"],
        salt=data.get("salt"),
        user_table=data["userTable"],
    )


def configure(
    options: Optional[Mapping[str, Any]] = None,
    *,
    token_service: Optional[TokenService] = None,
    hash_engine: Optional[HashEngine] = None,
    audit: Optional[AuditLog] = None
) -> "LoginPlugin":
    """
    Create the login plugin.

    Args:
        options: Raw plugin options
        token_service: Process-wide token service. A new key pair is generated if omitted.
        hash_engine: Password hashing engine
        audit: Audit trail

    Returns:
        LoginPlugin ready to be added to a Pipeline

    Raises:
        ConfigValidationError: If the options are invalid
    """
    config = load_login_config(options)
    return LoginPlugin(
        config,
        token_service=token_service or TokenService.generate(),
        hash_engine=hash_engine,
        audit=audit,
    )


def _is_text(value: Any) -> bool:
    """A str that can be encoded as UTF-8 (JSON lets lone surrogates through)."""
    if not isinstance(value, str):
        return False
    try:
        value.encode("utf-8")
    except UnicodeEncodeError:
        return False
    return True


def _internal(error: Exception, action: str) -> InternalError:
    wrapped = InternalError(f"Error during {action}: {error}")
    wrapped.__cause__ = error
    return wrapped


class LoginPlugin:
    """
    Authentication plugin.

    Exposes the middleware stage, the boot-time prerequisite check and the
    user table hooks consumed by the Pipeline.
    """

    def __init__(
        self,
        config: LoginConfig,
        token_service: TokenService,
        hash_engine: Optional[HashEngine] = None,
        audit: Optional[AuditLog] = None
    ):
        """
        Initialize with injected dependencies.

        Args:
            config: Validated plugin configuration
            token_service: Signs and verifies bearer tokens
            hash_engine: Computes password digests
            audit: Audit trail for authentication events
        """
        self.config = config
        self.tokens = token_service
        self.hashes = hash_engine or HashEngine()
        self.audit = audit or AuditLog()

        table = config.user_table
        self.on_request = {table: self.on_user_request}
        self.on_creation = {table: self.on_user_creation}
        self.on_result = {table: self.on_user_result}

    # Classification

    def classify(self, context: RequestContext) -> RequestIntent:
        """Decide how a request authenticates. The first matching rule wins."""
        body = context.body or {}
        if body.get(self.config.login) and body.get(self.config.password) and not body.get("create"):
            return RequestIntent.LOGIN

        table_request = body.get(self.config.user_table)
        if isinstance(table_request, dict) and table_request.get("create"):
            return RequestIntent.REGISTRATION

        if self.bearer_token(context):
            return RequestIntent.BEARER

        return RequestIntent.REJECTED

    @staticmethod
    def bearer_token(context: RequestContext) -> Optional[str]:
        """Extract the token of an ``Authorization: Bearer <token>`` header."""
        authorization = context.header("Authorization")
        if not authorization:
            return None
        scheme, _, token = authorization.strip().partition(" ")
        if scheme.lower() != "bearer" or not token.strip():
            return None
        return token.strip()

    async def middleware(self, context: RequestContext) -> StageResult:
        """
        Authenticate a request.

        Returns:
            Continue when the request may proceed, Respond for rejected
            credentials or payloads, Fail for token and internal errors
        """
        intent = self.classify(context)
        try:
            if intent is RequestIntent.LOGIN:
                await self.log_in(context.body, context)
                return Continue(context)
            if intent is RequestIntent.REGISTRATION:
                return await self._register_request(context)
            if intent is RequestIntent.BEARER:
                return await self._authenticate_bearer(context)
        except (BadRequest, NotFound, WrongPassword) as e:
            logger.warning(f"{intent.value} rejected: {e.message}")
            return Respond(e.status, e.message)
        except InternalError as e:
            logger.error(f"{intent.value} failed: {e.message}")
            return Fail(e)
        except Exception as e:
            logger.error(f"Unexpected error during {intent.value}: {e}")
            return Fail(_internal(e, intent.value))

        logger.warning("Request rejected: no credentials, registration or bearer token")
        return Respond(401, REJECTED_MESSAGE)

    # Login

    async def authenticate(self, login_value: str, password_value: str, query: Any) -> Any:
        """
        Check a login and password against the stored digest.

        Args:
            login_value: Value of the login column
            password_value: Plaintext password
            query: Query collaborator used for the lookup

        Returns:
            The record id of the user

        Raises:
            NotFound: No user has this login
            WrongPassword: The password does not match
            InternalError: The lookup is impossible or returned several users
        """
        login, password, salt = self.config.login, self.config.password, self.config.salt
        table = self.config.user_table
        if query is None:
            raise InternalError("No query collaborator is available to look up credentials")

        get = [password, RESERVED_ID]
        if salt:
            get.append(salt)
        results = await query({table: {login: login_value, "get": get}}, read_only=True, admin=True)
        records = results.get(table) or []

        if not records:
            await self.audit.record("login_failed", {"login": login_value, "reason": "not_found"})
            raise NotFound(f"{table} {login_value} not found")
        if len(records) > 1:
            raise InternalError(
                f"{len(records)} records in {table} share the {login} {login_value}. "
                f"The unique index on {login} should make this impossible."
            )

        stored = records[0]
        digest = await self.hashes.derive_digest(password_value, stored.get(salt) if salt else None)
        if not self.hashes.digests_equal(digest, stored.get(password)):
            await self.audit.record("login_failed", {"login": login_value, "reason": "wrong_password"})
            raise WrongPassword(f"Wrong password provided for user {login_value}")

        return stored[RESERVED_ID]

    async def log_in(self, record: Dict[str, Any], context: RequestContext) -> Any:
        """
        Run the login protocol on a record carrying login and password.

        On success the raw password is removed from the record, the record id
        is added, and a token is cached for the result emission stage.
        """
        login_value = record.get(self.config.login)
        password_value = record.get(self.config.password)
        self._require_strings(login_value, password_value)

        record_id = await self.authenticate(login_value, password_value, context.query)

        del record[self.config.password]
        record[RESERVED_ID] = record_id
        if not context.is_admin:
            context.update(AUTH_ID, record_id)

        token = await self.tokens.sign(record_id)
        context.local.setdefault(JWT_FIELD, {})[record_id] = token

        await self.audit.record("user_logged_in", {"login": login_value, "id": record_id})
        logger.info(f"{login_value} just logged in")
        return record_id

    # Registration

    def _require_strings(self, login_value: Any, password_value: Any) -> None:
        login, password, table = self.config.login, self.config.password, self.config.user_table
        if not isinstance(login_value, str) or not isinstance(password_value, str):
            raise BadRequest(
                f"{login} and {password} are required to be of type String in {table}, "
                f"but we received {type(login_value).__name__} and {type(password_value).__name__}"
            )
        if not _is_text(login_value) or not _is_text(password_value):
            raise BadRequest(f"{login} and {password} must be valid UTF-8 text in {table}")

    async def _hash_password(self, target: Dict[str, Any], password_value: str) -> None:
        salt = self.hashes.generate_salt() if self.config.salt else None
        target[self.config.password] = await self.hashes.derive_digest(password_value, salt)
        if self.config.salt:
            target[self.config.salt] = salt

    async def register(self, entry: Dict[str, Any]) -> None:
        """
        Replace the plaintext password of a new user by its salted digest.

        Raises:
            BadRequest: Missing or non-string login or password
        """
        login, password, table = self.config.login, self.config.password, self.config.user_table
        if not isinstance(entry, dict):
            raise BadRequest(f"Each element created inside {table} must be an object")

        login_value = entry.get(login)
        password_value = entry.get(password)
        if not login_value or not password_value:
            raise BadRequest(f"You need a {login} and a {password} to create an element inside {table}")
        self._require_strings(login_value, password_value)

        await self._hash_password(entry, password_value)
        logger.info(f"{login_value} is being created")

    async def register_batch(self, entries: Sequence[Any]) -> List[Optional[SimpleQLError]]:
        """
        Register several users concurrently.

        Every entry runs to completion whatever happens to its siblings, and
        entries that succeeded keep their digest even if others failed.

        Returns:
            One outcome per entry: None on success, the error otherwise
        """
        outcomes = await asyncio.gather(
            *(self.register(entry) for entry in entries),
            return_exceptions=True
        )

        results: List[Optional[SimpleQLError]] = []
        for outcome in outcomes:
            if outcome is None:
                results.append(None)
            elif isinstance(outcome, SimpleQLError):
                results.append(outcome)
            elif isinstance(outcome, Exception):
                results.append(_internal(outcome, "registration"))
            else:
                raise outcome
        return results

    async def _register_request(self, context: RequestContext) -> StageResult:
        """
        Register the users created by a request.

        ``create`` holds one object, a list of objects, or ``True`` when the
        new fields sit next to it. Failed entries are removed from the list
        so that only valid users reach the query collaborator; the outcome of
        every entry is kept in ``context.local["registration"]``.
        """
        table_request = context.body[self.config.user_table]
        create = table_request["create"]
        if create is True:
            entries = [table_request]
        elif isinstance(create, list):
            entries = create
        else:
            entries = [create]

        outcomes = await self.register_batch(entries)
        context.update(REGISTRATION_KEY, outcomes)

        failures = [(index, error) for index, error in enumerate(outcomes) if error is not None]
        await self.audit.record(
            "users_registered",
            {"table": self.config.user_table, "created": len(entries) - len(failures), "failed": len(failures)}
        )
        if not failures:
            return Continue(context)

        for index, error in failures:
            logger.warning(f"Registration of entry {index} in {self.config.user_table} failed: {error.message}")

        internal = [error for _, error in failures if error.status >= 500]
        if internal:
            return Fail(internal[0])
        if len(failures) == len(entries):
            return Respond(failures[0][1].status, "\n".join(error.message for _, error in failures))

        table_request["create"] = [entry for entry, error in zip(entries, outcomes) if error is None]
        return Continue(context)

    # Bearer tokens

    async def _authenticate_bearer(self, context: RequestContext) -> StageResult:
        token = self.bearer_token(context)
        try:
            subject_id = await self.tokens.verify(token)
        except TokenError as e:
            logger.warning(f"Bearer token rejected: {e.message}")
            await self.audit.record("bearer_rejected", {"reason": e.__class__.__name__})
            return Fail(e)

        context.update(AUTH_ID, subject_id)
        logger.debug(f"{self.config.user_table} {subject_id} is making a request.")
        return Continue(context)

    # Boot-time check

    def _check_column(self, table: TableSchema, field: str, expected_type: str, min_length: int) -> None:
        column = table.columns.get(field)
        if column is None or column.type != expected_type:
            received = column.type if column else None
            raise PrerequisiteError(
                f"{table.name} should contain a field {field} of type {expected_type}, but we received: {received}"
            )
        if not column.length or column.length < min_length:
            raise PrerequisiteError(
                f"{field} in {table.name} should have a length of at least {min_length}, "
                f"but we received: {column.length}"
            )

    async def pre_requisite(self, tables: Mapping[str, Any]) -> None:
        """
        Refuse to activate unless the user table can hold credentials.

        Args:
            tables: Table declarations or TableSchema objects, keyed by name

        Raises:
            PrerequisiteError: The user table is missing or badly declared
            ConfigValidationError: The user table declaration is invalid
        """
        login, password, salt = self.config.login, self.config.password, self.config.salt
        name = self.config.user_table
        if name not in tables:
            raise PrerequisiteError(f"The table {name} is not defined and is needed for login")
        table = prepare_tables({name: tables[name]})[name]

        self._check_column(table, login, "string", 1)
        self._check_column(table, password, "binary", DIGEST_LENGTH)
        if salt:
            self._check_column(table, salt, "binary", SALT_LENGTH)

        if JWT_FIELD in table.columns:
            raise PrerequisiteError(
                f"{JWT_FIELD} is a reserved column name when the login plugin is used. Remove it from {name}."
            )
        if not table.has_unique_index(login):
            raise PrerequisiteError(
                f"{login} should be made a unique index in table {name}. "
                f"Add a field index: ['{login}/unique'] inside {name}."
            )
        logger.info(f"Login plugin activated on table {name}")

    # Lifecycle hooks

    async def on_user_request(self, fragment: Dict[str, Any], context: RequestContext) -> None:
        """
        Check a request fragment targeting the user table.

        Creation fragments (``create`` set, fields at the top) get their
        password hashed unless the middleware already did it. Fragments with
        ``set[password]`` change the password. Fragments carrying login and
        password are logged in.
        """
        password = self.config.password

        if fragment.get("create"):
            if not isinstance(fragment.get(password), BINARY_TYPES):
                await self.register(fragment)
            return

        changes = fragment.get("set")
        if isinstance(changes, dict) and password in changes:
            await self._change_password(fragment, changes, context)
            return

        if fragment.get(self.config.login) and fragment.get(password):
            await self.log_in(fragment, context)

    async def _change_password(
        self,
        fragment: Dict[str, Any],
        changes: Dict[str, Any],
        context: RequestContext
    ) -> None:
        login, password, table = self.config.login, self.config.password, self.config.user_table
        if not fragment.get(login):
            raise BadRequest(f"You need to provide the {login} to edit the {password}")
        if not context.is_admin:
            if not fragment.get(password):
                raise BadRequest(
                    f"You need to provide the previous {password} to be allowed to edit the {password} inside {table}."
                )
            await self.log_in(fragment, context)

        new_password = changes[password]
        if not _is_text(new_password) or not new_password:
            raise BadRequest(f"{password} is expected to be a non-empty UTF-8 String in {table}")
        await self._hash_password(changes, new_password)

        await self.audit.record("password_changed", {"login": fragment[login]})
        logger.info(f"{fragment[login]} changed their {password}")

    async def on_user_creation(self, created: Dict[str, Any], context: RequestContext) -> None:
        """Attach a token to a freshly created user."""
        record_id = created.get(RESERVED_ID)
        if record_id is None:
            raise InternalError(f"The created {self.config.user_table} record has no {RESERVED_ID}")
        if not context.is_admin:
            context.update(AUTH_ID, record_id)
        created[JWT_FIELD] = await self.tokens.sign(record_id)

    async def on_user_result(self, records: List[Dict[str, Any]], context: RequestContext) -> None:
        """
        Attach cached tokens to the records leaving the pipeline.

        A cached token is removed as soon as it is read, so a token minted by
        a login is handed out exactly once.
        """
        tokens = context.local.get(JWT_FIELD) or {}
        for record in records:
            record_id = record.get(RESERVED_ID)
            if record_id is not None and record_id in tokens:
                record[JWT_FIELD] = tokens.pop(record_id)
