"""Wires configuration, OAuth and services into a runnable MCP server."""

import logging

from mcp.server.fastmcp import FastMCP

from src.apod.service import ApodService
from src.gmail.client import GmailApiClient
from src.gmail.oauth import OAuthCredentials
from src.gmail.service import GmailService
from src.server.config import ServerConfig
from src.server.tools import ToolHandlers, create_server

logger = logging.getLogger(__name__)


def build_server(config: ServerConfig) -> FastMCP:
    """Validate ``config`` and return a server bound to live Gmail/APOD services."""
    config.validate()

    credentials = OAuthCredentials(
        client_id=config.client_id,
        client_secret=config.client_secret,
        refresh_token=config.refresh_token,
    )
    gmail = GmailService(GmailApiClient(credentials))
    apod = ApodService(api_key=config.nasa_api_key) if config.enable_space_picture else None

    return create_server(
        ToolHandlers(gmail, apod),
        enable_space_picture=config.enable_space_picture,
    )


def serve(config: ServerConfig) -> None:
    """Run the MCP server on stdio until the client disconnects."""
    server = build_server(config)
    logger.info("Gmail MCP Server running on stdio")
    server.run(transport="stdio")
