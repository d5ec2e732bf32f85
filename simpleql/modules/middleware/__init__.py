"""
Pipeline Middleware Module - Black Box Interface

Purpose: Run the SimpleQL pipeline in front of a FastAPI application
Interface: PipelineMiddleware, create_pipeline_middleware()
Hidden: Body parsing, context construction, status mapping

Responses produced by the pipeline are plain text, as expected by SimpleQL
clients. Completely independent and replaceable.
"""

import json
import logging
from typing import Dict, Optional

from fastapi import Request
from fastapi.responses import PlainTextResponse

from ..pipeline import Continue, Fail, Pipeline, QueryCollaborator, RequestContext, Respond

logger = logging.getLogger(__name__)


class PipelineMiddleware:
    """
    HTTP middleware executing a Pipeline for every request.

    On Continue the request proceeds with its RequestContext stored in
    ``request.state.simpleql``.
    """

    def __init__(
        self,
        pipeline: Pipeline,
        query: Optional[QueryCollaborator] = None,
        skip_paths: Optional[Dict[str, list]] = None,
        log_attempts: bool = True
    ):
        """
        Initialize pipeline middleware.

        Args:
            pipeline: Pipeline with its plugins already activated
            query: Query collaborator handed to the plugins
            skip_paths: Dict of {path: [methods]} that bypass the pipeline
            log_attempts: Whether to log rejected requests
        """
        self.pipeline = pipeline
        self.query = query
        self.skip_paths = skip_paths or {}
        self.log_attempts = log_attempts

    def should_skip(self, request: Request) -> bool:
        """Check if the pipeline should be skipped for this request."""
        path = str(request.url.path)
        method = request.method.upper()

        if path in self.skip_paths:
            allowed_methods = self.skip_paths[path]
            if "*" in allowed_methods or method in allowed_methods:
                return True

        return False

    async def build_context(self, request: Request) -> RequestContext:
        """Create the request context from the JSON body and headers."""
        raw = await request.body()
        body = json.loads(raw) if raw else {}
        if not isinstance(body, dict):
            raise ValueError("The request body must be a JSON object")
        return RequestContext(body=body, headers=dict(request.headers), query=self.query)

    async def __call__(self, request: Request, call_next):
        """Process the request through the pipeline."""
        if self.should_skip(request):
            if self.log_attempts:
                logger.debug(f"Skipping pipeline for {request.method} {request.url.path}")
            return await call_next(request)

        try:
            context = await self.build_context(request)
        except ValueError as e:
            return PlainTextResponse(f"Invalid request body: {e}", status_code=400)

        result = await self.pipeline.run(context)

        if isinstance(result, Respond):
            if self.log_attempts:
                logger.warning(f"Request to {request.url.path} answered with {result.status}")
            return PlainTextResponse(result.body, status_code=result.status)

        if isinstance(result, Fail):
            if result.status >= 500:
                logger.error(f"Error during request processing: {result.message}")
            elif self.log_attempts:
                logger.warning(f"Request to {request.url.path} failed with {result.status}")
            return PlainTextResponse(result.message, status_code=result.status)

        # Store the context for downstream use
        request.state.simpleql = result.context
        return await call_next(request)


def create_pipeline_middleware(
    pipeline: Pipeline,
    query: Optional[QueryCollaborator] = None,
    skip_paths: Optional[Dict[str, list]] = None
) -> PipelineMiddleware:
    """
    Factory function to create the pipeline middleware.

    Args:
        pipeline: Activated Pipeline
        query: Query collaborator for the plugins
        skip_paths: Paths to skip {"/path": ["GET", "POST"]}

    Returns:
        Configured PipelineMiddleware instance
    """
    default_skip_paths = {
        "/health": ["GET"],
    }

    if skip_paths:
        default_skip_paths.update(skip_paths)

    return PipelineMiddleware(
        pipeline=pipeline,
        query=query,
        skip_paths=default_skip_paths
    )


# Module interface - what this module provides
__all__ = [
    "PipelineMiddleware",
    "create_pipeline_middleware"
]
