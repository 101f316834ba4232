"""CLI command implementations."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import click
from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from src.apod.service import ApodError, ApodService
from src.cli.env_file import upsert_env_value
from src.gmail.oauth import OAuthError, run_authorization_flow
from src.server.app import serve as serve_stdio
from src.server.config import ConfigError, ServerConfig

logger = logging.getLogger(__name__)
console = Console(width=120)


@click.command()
@click.pass_obj
def serve(config: ServerConfig) -> None:
    """Run the MCP server on stdio."""
    try:
        serve_stdio(config)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc


@click.command()
@click.option(
    "--env-file",
    default=".env",
    show_default=True,
    type=click.Path(dir_okay=False, path_type=Path),
    help="Settings file that receives GMAIL_REFRESH_TOKEN.",
)
@click.option("--no-browser", is_flag=True, help="Print the consent URL instead of opening it.")
@click.pass_obj
def auth(config: ServerConfig, env_file: Path, no_browser: bool) -> None:
    """Authorise Gmail access and store the refresh token."""
    try:
        config.validate_client()
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    console.print("Opening browser for authorization...")
    try:
        refresh_token = run_authorization_flow(
            config.client_id,
            config.client_secret,
            redirect_uri=config.redirect_uri,
            open_browser=not no_browser,
        )
    except OAuthError as exc:
        raise click.ClickException(str(exc)) from exc

    upsert_env_value(env_file, "GMAIL_REFRESH_TOKEN", refresh_token)
    console.print(
        f"\n[green]Success![/green] Refresh token saved to [bold]{env_file}[/bold]. "
        "You can now use the MCP server with your Gmail account."
    )


@click.command("space-picture")
@click.option("--date", "date_", default=None, help="APOD date (YYYY-MM-DD). Defaults to today (UTC).")
@click.option("--max-days-back", default=10, show_default=True, help="Days to walk back on failure.")
@click.option("--html", "as_html", is_flag=True, help="Print the HTML block instead of plain text.")
@click.pass_obj
def space_picture(config: ServerConfig, date_: str | None, max_days_back: int, as_html: bool) -> None:
    """Preview the "Space Edition" block for a date."""
    service = ApodService(api_key=config.nasa_api_key)
    try:
        picture = asyncio.run(
            service.get_picture_of_day(date=date_, max_days_back=max_days_back)
        )
    except ApodError as exc:
        raise click.ClickException(str(exc)) from exc

    if picture.date_used != picture.requested_date:
        console.print(
            f"[yellow]No APOD for {picture.requested_date}; "
            f"showing {picture.date_used}.[/yellow]"
        )
    block = picture.space_edition_block_html if as_html else picture.space_edition_block
    console.print(Panel(Text(block), title=Text(picture.title), expand=False))
