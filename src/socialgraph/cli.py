#!/usr/bin/env python3
"""
Main CLI entry point for the socialgraph server.
"""

import asyncio
import json
import os
import sys

import click
import uvicorn

from socialgraph import __version__
from socialgraph.logging import configure_logging, get_logger

logger = get_logger(__name__)


@click.group()
@click.version_option(version=__version__, prog_name="socialgraph")
def cli() -> None:
    """socialgraph CLI - run the API server and execute GraphQL operations."""
    pass


@cli.command()
@click.option(
    "--host",
    default="0.0.0.0",
    help="Host to bind to (default: 0.0.0.0)",
)
@click.option(
    "--port",
    default=8000,
    type=int,
    help="Port to bind to (default: 8000)",
)
@click.option(
    "--reload",
    is_flag=True,
    default=False,
    help="Enable auto-reload for development",
)
@click.option(
    "--workers",
    default=1,
    type=int,
    help="Number of worker processes (default: 1)",
)
@click.option(
    "--log-level",
    default="info",
    type=click.Choice(["debug", "info", "warning", "error"]),
    help="Log level (default: info)",
)
def serve(
    host: str,
    port: int,
    reload: bool,
    workers: int,
    log_level: str,
) -> None:
    """Start the socialgraph API server."""
    configure_logging(debug=(log_level == "debug"))

    logger.info(
        "Starting socialgraph API server",
        host=host,
        port=port,
        reload=reload,
        workers=workers,
        log_level=log_level,
    )

    # The app reads its settings at import time, including in reload/worker processes
    if log_level == "debug":
        os.environ["SOCIALGRAPH_DEBUG"] = "true"
        os.environ["SOCIALGRAPH_LOG_LEVEL"] = "debug"
    else:
        os.environ.setdefault("SOCIALGRAPH_DEBUG", "false")
        os.environ.setdefault("SOCIALGRAPH_LOG_LEVEL", log_level)

    try:
        if reload or workers > 1:
            uvicorn.run(
                "socialgraph.api.app:app",
                host=host,
                port=port,
                reload=reload,
                workers=(workers if not reload else 1),  # reload doesn't work with multiple workers
                log_level=log_level,
                access_log=True,
            )
        else:
            from socialgraph.api.app import app

            uvicorn.run(
                app,
                host=host,
                port=port,
                log_level=log_level,
                access_log=True,
            )
    except KeyboardInterrupt:
        logger.info("Server shutdown requested by user")
    except Exception as e:
        logger.error("Server startup failed", error=str(e))
        sys.exit(1)


@cli.command()
@click.argument("document", type=click.File("r"))
@click.option(
    "--variables",
    default=None,
    help="JSON object with operation variables",
)
@click.option(
    "--operation-name",
    default=None,
    help="Operation to run when the document holds several",
)
def query(document, variables: str | None, operation_name: str | None) -> None:
    """Execute a GraphQL DOCUMENT (file path or '-' for stdin) against the database."""
    from socialgraph.database.connection import dispose_database
    from socialgraph.graphql.schema import execute_operation

    configure_logging()

    try:
        variable_values = json.loads(variables) if variables else None
    except json.JSONDecodeError as e:
        raise click.BadParameter(f"not valid JSON: {e}", param_hint="--variables") from e

    async def do_query():
        try:
            return await execute_operation(
                document.read(), variable_values, operation_name
            )
        finally:
            await dispose_database()

    result = asyncio.run(do_query())

    payload: dict = {"data": result.data}
    if result.errors:
        payload["errors"] = [error.formatted for error in result.errors]

    click.echo(json.dumps(payload, indent=2, default=str))
    if result.errors:
        sys.exit(1)


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
