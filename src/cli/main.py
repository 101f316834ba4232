"""CLI entry point for the Gmail MCP server."""

import logging
import os

import click
from dotenv import load_dotenv

from src.server.config import ServerConfig

logger = logging.getLogger(__name__)


@click.group()
@click.pass_context
def cli(ctx: click.Context) -> None:
    """Gmail MCP server — serve tools over stdio, authorise Gmail, preview APOD."""
    load_dotenv()
    # basicConfig logs to stderr, leaving stdout free for the MCP stdio stream
    logging.basicConfig(
        level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    ctx.ensure_object(dict)
    ctx.obj = ServerConfig.from_env()


# Import and register commands after cli is defined to avoid circular imports.
from src.cli.commands import auth, serve, space_picture  # noqa: E402

cli.add_command(serve)
cli.add_command(auth)
cli.add_command(space_picture)
