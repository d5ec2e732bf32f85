"""Pipeline interfaces following Black Box Design principles."""
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Protocol


class QueryCollaborator(Protocol):
    """Protocol for the data-query engine that owns persistence."""

    async def __call__(
        self,
        request: Dict[str, Any],
        *,
        read_only: bool = False,
        admin: bool = False
    ) -> Dict[str, List[Dict[str, Any]]]:
        """
        Resolve a query.

        Args:
            request: Query in the SimpleQL request format, keyed by table
            read_only: Reject any write contained in the request
            admin: Bypass authorization rules

        Returns:
            Mapping of table name to the matching records
        """
        ...


Hook = Callable[..., Awaitable[Any]]


class Plugin(Protocol):
    """Protocol for pipeline plugins."""

    on_request: Mapping[str, Hook]
    on_creation: Mapping[str, Hook]
    on_result: Mapping[str, Hook]

    async def middleware(self, context: Any) -> Any:
        """Classify and authenticate a request. Returns a stage result."""
        ...

    async def pre_requisite(self, tables: Mapping[str, Any]) -> None:
        """Check the declared tables before activation. Raises on failure."""
        ...
