"""CLI commands for tripdesk."""

import asyncio
import logging
from typing import Any

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from tripdesk import __logo__, __version__

app = typer.Typer(
    name="tripdesk",
    help=f"{__logo__} tripdesk - tourism booking admin API client",
    no_args_is_help=True,
)

console = Console()


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _mask(token: str | None) -> str:
    if not token:
        return "[dim]none[/dim]"
    if len(token) <= 12:
        return "*" * len(token)
    return f"{token[:6]}…{token[-4:]}"


def _parse_data(items: list[str] | None) -> dict[str, Any]:
    """Turn repeated ``key=value`` options into a payload mapping."""
    payload: dict[str, Any] = {}
    for item in items or []:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"Expected key=value, got '{item}'", param_hint="--data")
        payload[key] = value
    return payload


def _resolve_url(base_url: str, url: str) -> str:
    if url.startswith(("http://", "https://")):
        return url
    return f"{base_url.rstrip('/')}/{url.lstrip('/')}"


def _store(config):
    from tripdesk.auth.storage import JsonFileStore

    return JsonFileStore(config.auth.resolved_store_path())


def _auth_service(config):
    from tripdesk.auth.session import AuthService

    return AuthService(_store(config), config.api.admin_base_url, timeout=config.http.timeout)


def version_callback(value: bool):
    if value:
        console.print(f"{__logo__} tripdesk v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-v", callback=version_callback, is_eager=True
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Verbose (debug) logging"),
):
    """tripdesk - tourism booking admin API client."""
    _configure_logging(verbose)


# ============================================================================
# Onboard / Setup
# ============================================================================


@app.command()
def onboard():
    """Initialize tripdesk configuration."""
    from tripdesk.config.loader import get_config_path, save_config
    from tripdesk.config.schema import Config

    config_path = get_config_path()

    if config_path.exists():
        console.print(f"[yellow]Config already exists at {config_path}[/yellow]")
        if not typer.confirm("Overwrite?"):
            raise typer.Exit()

    save_config(Config())
    console.print(f"[green]✓[/green] Created config at {config_path}")
    console.print(f"\n{__logo__} tripdesk is ready!")
    console.print("\nNext steps:")
    console.print("  1. Check the API URLs in [cyan]~/.tripdesk/config.json[/cyan]")
    console.print("  2. Sign in: [cyan]tripdesk login[/cyan]")


# ============================================================================
# Session
# ============================================================================


@app.command()
def login(
    email: str = typer.Option(..., "--email", "-e", prompt=True, help="Admin email"),
    password: str = typer.Option(..., "--password", prompt=True, hide_input=True, help="Admin password"),
):
    """Sign in to the admin API and store the session."""
    from tripdesk.config.loader import load_config

    service = _auth_service(load_config())
    result = asyncio.run(service.login(email, password))
    if not result.success:
        console.print(f"[red]Login failed: {result.error}[/red]")
        raise typer.Exit(1)

    name = (result.user or {}).get("name") or email
    console.print(f"[green]✓[/green] Logged in as {name}")


@app.command()
def logout():
    """Forget the stored session and tokens."""
    from tripdesk.config.loader import load_config

    _auth_service(load_config()).logout()
    console.print("[green]✓[/green] Logged out")


@app.command()
def whoami():
    """Show the profile of the logged-in admin."""
    from tripdesk.config.loader import load_config

    service = _auth_service(load_config())
    result = asyncio.run(service.get_me())
    if not result.success:
        console.print(f"[red]{result.error}[/red]")
        raise typer.Exit(1)

    table = Table(title="Current admin")
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    for key, value in (result.user or {}).items():
        table.add_row(str(key), str(value))
    console.print(table)


@app.command()
def token(
    refresh: bool = typer.Option(False, "--refresh", "-r", help="Force a token renewal"),
):
    """Show the cached access token, requesting one if needed."""
    from tripdesk.auth.token_cache import TokenCache
    from tripdesk.config.loader import load_config

    config = load_config()
    cache = TokenCache(_store(config), config.api.token_url, timeout=config.http.timeout)
    value = asyncio.run(cache.get_token(refresh))
    if not value:
        console.print("[red]No token available[/red]")
        raise typer.Exit(1)
    console.print(f"Token: {_mask(value)}")


# ============================================================================
# Requests
# ============================================================================


@app.command()
def request(
    url: str = typer.Argument(..., help="Absolute URL or path relative to the API base URL"),
    method: str = typer.Option("GET", "--method", "-X", help="HTTP method"),
    data: list[str] = typer.Option(None, "--data", "-d", help="Payload entry as key=value (repeatable)"),
):
    """Send an authenticated request and print the JSON response."""
    from tripdesk.api.request import RequestPipeline
    from tripdesk.config.loader import load_config

    config = load_config()
    payload = _parse_data(data)
    target = _resolve_url(config.api.base_url, url)

    async def run():
        async with RequestPipeline.from_config(config, _store(config)) as pipeline:
            return await pipeline.request(target, payload, method)

    result = asyncio.run(run())
    if result.body:
        console.print_json(data=result.body)
    if not result.ok:
        console.print(f"[red]{result.method} {result.url} failed: {result.outcome.value}[/red]")
        if result.error:
            console.print(f"[dim]{result.error}[/dim]")
        raise typer.Exit(1)


# ============================================================================
# Status Commands
# ============================================================================


@app.command()
def status():
    """Show tripdesk status."""
    from tripdesk.config.loader import get_config_path, load_config

    config_path = get_config_path()
    config = load_config()
    store_path = config.auth.resolved_store_path()
    service = _auth_service(config)

    console.print(f"{__logo__} tripdesk Status\n")

    console.print(f"Config: {config_path} {'[green]✓[/green]' if config_path.exists() else '[red]✗[/red]'}")
    console.print(f"Credentials: {store_path} {'[green]✓[/green]' if store_path.exists() else '[dim]not created[/dim]'}")
    console.print(f"API: {config.api.base_url}")
    console.print(f"Token endpoint: {config.api.token_url}")
    console.print(f"Session: {'[green]✓ signed in[/green]' if service.is_authenticated() else '[dim]not signed in[/dim]'}")
    console.print(f"Token: {_mask(service.get_token())}")
    console.print(
        f"Retries: {config.auth.max_retries}"
        f" ({'any 401' if config.auth.retry_unauthorized else 'expired sessions only'})"
    )


if __name__ == "__main__":
    app()
