"""
Main GraphQL schema definition using Strawberry
"""

from collections.abc import AsyncGenerator
from typing import Any

import strawberry
from fastapi import Request
from graphql import validate_schema as gql_validate_schema
from strawberry.extensions import QueryDepthLimiter
from strawberry.fastapi import GraphQLRouter
from strawberry.types import ExecutionResult

from ..config import settings
from ..logging import get_logger
from .loaders import Loaders
from .mutations.root import Mutation
from .queries.root import Query

logger = get_logger(__name__)


class OperationDepthLimiter(QueryDepthLimiter):
    """Depth limit taken from settings; strawberry builds one per operation."""

    def __init__(self, **kwargs: Any):
        _ = kwargs  # older strawberry passes execution_context
        super().__init__(max_depth=settings.graphql_max_depth)


# Create the GraphQL schema
schema = strawberry.Schema(
    query=Query,
    mutation=Mutation,
    extensions=[OperationDepthLimiter],
)


def validate_schema() -> None:
    """Validate the GraphQL schema at startup.

    Catches unresolved type references early so the server fails fast
    instead of erroring at request time.

    Raises:
        Exception: If the schema is invalid or has unresolved types
    """
    try:
        graphql_schema = schema._schema

        errors = gql_validate_schema(graphql_schema)
        if errors:
            error_messages = [str(e) for e in errors]
            raise Exception(f"GraphQL schema validation failed: {'; '.join(error_messages)}")

        # Check that introspection query works (catches most resolution issues)
        from graphql import get_introspection_query, graphql_sync

        result = graphql_sync(graphql_schema, get_introspection_query())
        if result.errors:
            error_messages = [str(e) for e in result.errors]
            raise Exception(f"GraphQL introspection failed: {'; '.join(error_messages)}")

        logger.info("GraphQL schema validation successful")

    except Exception as e:
        logger.error("GraphQL schema validation failed", error=str(e))
        raise


def build_context(request: Request | None = None, loaders: Loaders | None = None) -> dict[str, Any]:
    """Build the resolver context for one operation, with its own loader registry."""
    return {
        "request": request,
        "loaders": loaders if loaders is not None else Loaders(),
    }


async def execute_operation(
    query: str,
    variables: dict[str, Any] | None = None,
    operation_name: str | None = None,
    *,
    loaders: Loaders | None = None,
) -> ExecutionResult:
    """Execute a GraphQL document in-process with a fresh loader registry.

    A registry passed in by the caller is left intact afterwards; one created
    here is discarded when execution finishes.
    """
    context = build_context(loaders=loaders)
    try:
        return await schema.execute(
            query,
            variable_values=variables,
            operation_name=operation_name,
            context_value=context,
        )
    finally:
        if loaders is None:
            context["loaders"].discard()


# Create the GraphQL router for FastAPI integration
def create_graphql_router() -> GraphQLRouter[dict[str, Any], None]:
    """Create a GraphQL router for FastAPI."""

    async def get_context(request: Request) -> AsyncGenerator[dict[str, Any], None]:
        """Get the context for GraphQL resolvers, scoped to this request."""
        context = build_context(request)
        try:
            yield context
        finally:
            context["loaders"].discard()

    return GraphQLRouter(
        schema,
        path="/graphql",
        graphql_ide="graphiql" if settings.graphiql else None,
        context_getter=get_context,
    )
