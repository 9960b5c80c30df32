#!/usr/bin/env python3
"""EchoReads CLI - Browse magazines, articles and digests from the terminal."""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from .api import CONTENT_TYPES, extract_items
from .app import EchoReadsApp
from .auth.gate import GateState, NavigationDecision
from .config.manager import DEFAULT_CONFIG_PATH, ConfigManager
from .exceptions import (
    EchoReadsAuthenticationError,
    EchoReadsClientError,
    EchoReadsConnectionError,
    EchoReadsHTTPError,
    EchoReadsTimeoutError,
)
from .notifications import ConsoleNotifier

console = Console()


def setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
    )


def navigate(decision: NavigationDecision) -> None:
    """Terminal stand-in for the screen router."""
    if decision is NavigationDecision.REDIRECT_TO_LOGIN:
        console.print(
            "[yellow]You are not logged in. Run '[bold cyan]echoreads login[/bold cyan]' to continue.[/yellow]"
        )


def build_app(settings: Dict[str, Any]) -> EchoReadsApp:
    return EchoReadsApp(
        settings,
        notifier=ConsoleNotifier(console),
        on_decision=navigate,
    )


def run_async(coro) -> Any:
    """Run a coroutine, turning client errors into console messages."""
    try:
        return asyncio.run(coro)
    except EchoReadsAuthenticationError as e:
        console.print(f"[red]Authentication failed: {str(e)}[/red]")
        raise click.Abort()
    except EchoReadsHTTPError as e:
        message = e.body.get("message") if isinstance(e.body, dict) else None
        console.print(f"[red]API Error (HTTP {e.status}): {message or str(e)}[/red]")
        raise click.Abort()
    except (EchoReadsConnectionError, EchoReadsTimeoutError, EchoReadsClientError) as e:
        console.print(f"[red]Error: {str(e)}[/red]")
        raise click.Abort()
    except ValueError as e:
        console.print(f"[red]Invalid input: {str(e)}[/red]")
        raise click.Abort()


async def enter_protected_area(app: EchoReadsApp) -> bool:
    """Run the startup gate behind a loading indicator."""
    with console.status("[cyan]Loading...[/cyan]"):
        state = await app.start()
    return state is GateState.AUTHENTICATED


@click.group()
@click.option(
    "--config",
    "-c",
    default=DEFAULT_CONFIG_PATH,
    help="Path to configuration JSON file",
)
@click.option("--api-url", help="Base URL of the echoreads API")
@click.option("--session-file", help="Where the session token is stored")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx, config: str, api_url: Optional[str], session_file: Optional[str], verbose: bool):
    """EchoReads CLI - Browse magazines, articles and digests from the terminal."""
    setup_logging(verbose)
    file_config = ConfigManager.load_config(config)
    env_config = ConfigManager.load_environment()
    ctx.obj = {
        "config_path": config,
        "settings": ConfigManager.merge_config_with_args(
            file_config, env=env_config, api_url=api_url, session_file=session_file
        ),
    }


@cli.command()
@click.option("--force", is_flag=True, help="Overwrite an existing config file")
@click.pass_obj
def init(obj, force: bool):
    """Create a starter configuration file."""
    config_path = Path(obj["config_path"])
    if config_path.exists() and not force:
        console.print(f"[yellow]Config file {config_path} already exists (use --force to overwrite)[/yellow]")
        return
    written = ConfigManager.write_default_config(str(config_path), obj["settings"]["api_url"])
    console.print(f"[green]✓ Wrote configuration to {written}[/green]")


@cli.command()
@click.option("--email", "-e", prompt=True, help="Account email")
@click.option("--password", "-p", prompt=True, hide_input=True, help="Account password")
@click.pass_obj
def login(obj, email: str, password: str):
    """Log in and remember the session."""

    async def _login():
        async with build_app(obj["settings"]) as app:
            await app.auth.login(email, password)

    run_async(_login())
    console.print("[green]✓ Logged in[/green]")


@cli.command()
@click.pass_obj
def logout(obj):
    """Forget the stored session."""

    async def _logout():
        async with build_app(obj["settings"]) as app:
            await app.rehydrate()
            await app.auth.logout()

    run_async(_logout())
    console.print("[green]Authentication session cleared[/green]")


@cli.command()
@click.option("--name", "-n", prompt=True, help="Display name")
@click.option("--email", "-e", prompt=True, help="Account email")
@click.option(
    "--password", "-p", prompt=True, hide_input=True, confirmation_prompt=True, help="Account password"
)
@click.pass_obj
def signup(obj, name: str, email: str, password: str):
    """Create an account. A verification code is emailed afterwards."""

    async def _signup():
        async with build_app(obj["settings"]) as app:
            return await app.auth.signup(name, email, password)

    result = run_async(_signup())
    console.print(Panel(
        result.get("message", "Account created. Check your email for a verification code."),
        title="[bold green]Signup[/bold green]",
        border_style="green",
    ))
    console.print("[yellow]Next: '[bold cyan]echoreads verify-email[/bold cyan]'[/yellow]")


@cli.command("verify-email")
@click.option("--email", "-e", prompt=True, help="Account email")
@click.option("--otp", "-o", prompt="Verification code", help="6-digit verification code")
@click.pass_obj
def verify_email(obj, email: str, otp: str):
    """Confirm an email address with the emailed code."""

    async def _verify():
        async with build_app(obj["settings"]) as app:
            await app.auth.verify_email(email, otp)
            return app.session_cache.is_authenticated

    logged_in = run_async(_verify())
    console.print("[green]✓ Email verified[/green]")
    if not logged_in:
        console.print("[yellow]Now run '[bold cyan]echoreads login[/bold cyan]'[/yellow]")


@cli.command()
@click.pass_obj
def status(obj):
    """Show whether a valid session is available."""

    async def _status():
        async with build_app(obj["settings"]) as app:
            authenticated = await enter_protected_area(app)
            health = await app.client.health_check() if authenticated else None
            return authenticated, health

    authenticated, health = run_async(_status())
    settings = obj["settings"]
    lines = [
        f"API endpoint: {settings['api_url']}",
        f"Session file: {settings['session_file']}",
        f"Session: {'[green]authenticated[/green]' if authenticated else '[red]not logged in[/red]'}",
    ]
    if health is not None:
        lines.append(f"Server: {health.get('status', 'unknown')}")
    console.print(Panel("\n".join(lines), title="[bold blue]EchoReads[/bold blue]", border_style="blue"))


@cli.command()
@click.option(
    "--type",
    "content_type",
    "-t",
    default="magazines",
    type=click.Choice(list(CONTENT_TYPES)),
    help="Kind of content to list",
)
@click.option("--page", default=1, type=int, help="Page number")
@click.option("--limit", default=20, type=int, help="Items per page")
@click.option("--json", "as_json", is_flag=True, help="Print raw JSON")
@click.pass_obj
def magazines(obj, content_type: str, page: int, limit: int, as_json: bool):
    """List magazines, articles or digests."""

    async def _fetch():
        async with build_app(obj["settings"]) as app:
            if not await enter_protected_area(app):
                return False, None
            return True, await app.api.fetch_magazines(content_type, page=page, limit=limit)

    allowed, body = run_async(_fetch())
    if not allowed:
        raise click.Abort()

    if as_json:
        print(json.dumps(body, indent=2))
        return

    items = extract_items(body, content_type)
    if not items:
        console.print(f"[yellow]No {content_type} found[/yellow]")
        return

    table = Table(title=f"📚 {content_type.title()}", show_header=True, header_style="bold magenta")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Title", style="white")
    table.add_column("Category", style="green")
    for item in items:
        if not isinstance(item, dict):
            continue
        table.add_row(
            str(item.get("_id") or item.get("id", "")),
            str(item.get("name") or item.get("title", "Untitled")),
            str(item.get("category", "")),
        )
    console.print(table)


@cli.command()
@click.argument("magazine_id")
@click.option("--json", "as_json", is_flag=True, help="Print raw JSON")
@click.pass_obj
def magazine(obj, magazine_id: str, as_json: bool):
    """Show one magazine."""

    async def _fetch():
        async with build_app(obj["settings"]) as app:
            if not await enter_protected_area(app):
                return False, None
            return True, await app.api.fetch_magazine_detail(magazine_id)

    allowed, body = run_async(_fetch())
    if not allowed:
        raise click.Abort()

    if as_json:
        print(json.dumps(body, indent=2))
        return

    detail = body.get("data", body) if isinstance(body, dict) else {}
    if not isinstance(detail, dict):
        detail = {}
    console.print(Panel(
        f"{detail.get('description', '')}\n\n"
        f"[dim]Category:[/dim] {detail.get('category', '-')}\n"
        f"[dim]File:[/dim] {detail.get('file', '-')}",
        title=f"[bold green]{detail.get('name') or detail.get('title', magazine_id)}[/bold green]",
        border_style="green",
        padding=(1, 2),
    ))


if __name__ == "__main__":
    cli()
