"""
Pipeline Module - Black Box Interface

Purpose: Sequence plugin stages for one request and dispatch lifecycle hooks
Interface: RequestContext, Continue/Respond/Fail, Pipeline
Hidden: Stage ordering, error conversion, hook lookup

Each stage returns an explicit result; the pipeline stops at the first
result that is not Continue.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Sequence, Union

from ...errors import InternalError, SimpleQLError
from .interfaces import Hook, Plugin, QueryCollaborator

logger = logging.getLogger(__name__)

RESERVED_ID = "reservedId"
AUTH_ID = "authId"
HOOK_EVENTS = ("on_request", "on_creation", "on_result")


@dataclass
class RequestContext:
    """State shared by every stage and hook of a single request."""

    body: Dict[str, Any]
    headers: Mapping[str, str] = field(default_factory=dict)
    query: Optional[QueryCollaborator] = None
    local: Dict[str, Any] = field(default_factory=dict)
    is_admin: bool = False

    @property
    def auth_id(self) -> Optional[str]:
        return self.local.get(AUTH_ID)

    def update(self, key: str, value: Any) -> None:
        """Stash a value in the per-request state."""
        self.local[key] = value

    def header(self, name: str) -> Optional[str]:
        """Case-insensitive header lookup."""
        wanted = name.lower()
        for key, value in self.headers.items():
            if key.lower() == wanted:
                return value
        return None


@dataclass(frozen=True)
class Continue:
    """Proceed to the next stage."""

    context: RequestContext


@dataclass(frozen=True)
class Respond:
    """Answer the request now."""

    status: int
    body: str


@dataclass(frozen=True)
class Fail:
    """Abort the request through the error channel."""

    error: Exception

    @property
    def status(self) -> int:
        return getattr(self.error, "status", 500)

    @property
    def message(self) -> str:
        return getattr(self.error, "message", str(self.error))


StageResult = Union[Continue, Respond, Fail]
Stage = Callable[[RequestContext], Awaitable[StageResult]]


class Pipeline:
    """
    Ordered plugins and stages for request processing.

    The host builds one Pipeline at startup, checks prerequisites once, then
    runs it for every request.
    """

    def __init__(self, plugins: Sequence[Plugin] = (), middlewares: Sequence[Stage] = ()):
        """
        Initialize pipeline.

        Args:
            plugins: Plugins whose middleware run first, in order
            middlewares: Extra stages run after the plugin middlewares
        """
        self.plugins = list(plugins)
        self.stages: List[Stage] = [
            plugin.middleware for plugin in self.plugins if getattr(plugin, "middleware", None)
        ]
        self.stages.extend(middlewares)

    async def check_prerequisites(self, tables: Mapping[str, Any]) -> None:
        """
        Let every plugin check the tables before any traffic is accepted.

        Raises:
            ConfigValidationError: From the first plugin that refuses to activate
        """
        for plugin in self.plugins:
            pre_requisite = getattr(plugin, "pre_requisite", None)
            if pre_requisite:
                await pre_requisite(tables)
        logger.info(f"{len(self.plugins)} plugin(s) activated")

    async def run(self, context: RequestContext) -> StageResult:
        """
        Run every stage until one does not continue.

        Returns:
            The first non-Continue result, or Continue with the final context
        """
        result: StageResult = Continue(context)
        for stage in self.stages:
            try:
                result = await stage(context)
            except SimpleQLError as e:
                logger.warning(f"Stage {_stage_name(stage)} failed: {e.message}")
                return Fail(e)
            except Exception as e:
                logger.error(f"Unexpected error in stage {_stage_name(stage)}: {e}")
                error = InternalError(f"Unexpected error while processing the request: {e}")
                error.__cause__ = e
                return Fail(error)
            if not isinstance(result, Continue):
                return result
            context = result.context
        return result

    def hooks(self, event: str, table: str) -> List[Hook]:
        """Hooks registered by the plugins for an event on a table."""
        if event not in HOOK_EVENTS:
            raise ValueError(f"Unknown hook event {event}. Valid events are: {', '.join(HOOK_EVENTS)}")
        found = []
        for plugin in self.plugins:
            hook = (getattr(plugin, event, None) or {}).get(table)
            if hook:
                found.append(hook)
        return found

    async def dispatch(
        self,
        event: str,
        table: str,
        data: Any,
        context: RequestContext,
        **kwargs: Any
    ) -> None:
        """
        Call the hooks of every plugin for an event, one after the other.

        Args:
            event: "on_request", "on_creation" or "on_result"
            table: Table the data belongs to
            data: Request fragment, created record or result records
            context: Current request context
            **kwargs: Extra arguments forwarded to the hooks
        """
        for hook in self.hooks(event, table):
            await hook(data, context, **kwargs)


def _stage_name(stage: Stage) -> str:
    return getattr(stage, "__qualname__", repr(stage))


__all__ = [
    "AUTH_ID",
    "Continue",
    "Fail",
    "Pipeline",
    "Plugin",
    "QueryCollaborator",
    "RESERVED_ID",
    "RequestContext",
    "Respond",
    "Stage",
    "StageResult",
]
