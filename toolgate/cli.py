"""
Toolgate CLI - run the gateway and try tools from the command line.
"""

import asyncio
import json
import logging
import secrets
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from .config import Config, get_config, set_config

console = Console()


def setup_logging(verbose: bool = False):
    """Set up logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        handlers=[logging.StreamHandler()]
    )


def run_async(coro):
    """Run an async function."""
    return asyncio.run(coro)


def _mask(secret: Optional[str]) -> str:
    if not secret:
        return "[dim]not set[/dim]"
    return secret[:4] + "…" if len(secret) > 8 else "****"


@click.group()
@click.option('-v', '--verbose', is_flag=True, help='Enable verbose output')
@click.option('--data-dir', type=click.Path(), help='Data directory')
@click.pass_context
def main(ctx, verbose, data_dir):
    """Toolgate - one tool endpoint for many content stores"""
    ctx.ensure_object(dict)
    ctx.obj['verbose'] = verbose
    setup_logging(verbose)

    if data_dir:
        set_config(Config.load(Path(data_dir)))


@main.command()
@click.option('--host', '-h', default=None, help='Host to bind to')
@click.option('--port', '-p', default=None, type=int, help='Port to bind to')
@click.option('--reload', is_flag=True, help='Enable auto-reload')
@click.pass_context
def serve(ctx, host: Optional[str], port: Optional[int], reload: bool):
    """Start the Toolgate API server."""
    config = get_config()
    host = host or config.server.host
    port = port or config.server.port

    if not config.guard.api_keys:
        console.print("[yellow]⚠️  No API keys configured; every call will be rejected.[/yellow]")
        console.print("   Run 'toolgate config add-key' or set TOOLGATE_API_KEYS.\n")

    console.print("\n[bold blue]Starting Toolgate[/bold blue]")
    console.print(f"   Listening on: http://{host}:{port}")
    console.print("   Press Ctrl+C to stop\n")

    from .api.server import run_server

    run_server(
        host=host,
        port=port,
        reload=reload,
        log_level="debug" if ctx.obj['verbose'] else "info",
    )


# ============ Tools ============

@main.group()
def tools():
    """Tool catalog commands."""
    pass


def _build_catalog(config: Config):
    from .adapters import Backends
    from .tools.catalog import build_registry

    backends = Backends.from_config(config.backends)
    return backends, build_registry(backends)


@tools.command('list')
@click.option('--category', '-c', help='Filter by category')
def tools_list(category: Optional[str]):
    """List available tools."""
    from .tools.registry import get_registry

    registry = get_registry()

    specs = registry.find_by_category(category) if category else registry.list_specs()
    if not specs:
        console.print("[dim]No tools found[/dim]")
        return

    table = Table()
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Category")
    table.add_column("Description")

    for spec in specs:
        desc = spec.description[:60] + "..." if len(spec.description) > 60 else spec.description
        table.add_row(spec.name, spec.category, desc)

    console.print(table)


@tools.command('info')
@click.argument('tool_name')
def tools_info(tool_name: str):
    """Show detailed information about a tool."""
    from .tools.registry import get_registry

    registry = get_registry()

    spec = registry.get(tool_name)
    if not spec:
        console.print(f"[red]Tool not found: {tool_name}[/red]")
        sys.exit(1)

    console.print(f"\n[bold]{spec.name}[/bold] ({spec.category})")
    console.print(f"{spec.description}\n")

    if spec.parameters:
        console.print("[bold]Parameters:[/bold]")
        for p in spec.parameters:
            req = "[required]" if p.required else "[optional]"
            console.print(f"  [cyan]{p.name}[/cyan] ({p.type}) {req}")
            if p.description:
                console.print(f"    {p.description}")
            if p.enum:
                console.print(f"    one of: {', '.join(map(str, p.enum))}")
    console.print()


@tools.command('call')
@click.argument('tool_name')
@click.option('--params', '-p', help='JSON parameters')
@click.option('--param', '-P', multiple=True, help='Key=value parameter (repeatable)')
def tools_call(tool_name: str, params: Optional[str], param: tuple):
    """Invoke a tool directly, bypassing the request guard."""
    from .tools.dispatcher import Dispatcher, ToolInvocation

    tool_params = {}

    if params:
        tool_params = json.loads(params)

    # Add key=value params
    for p in param:
        if '=' in p:
            key, value = p.split('=', 1)
            # Try to parse as JSON, fall back to string
            try:
                tool_params[key] = json.loads(value)
            except json.JSONDecodeError:
                tool_params[key] = value

    backends, registry = _build_catalog(get_config())
    dispatcher = Dispatcher(registry)

    async def do_call():
        try:
            return await dispatcher.dispatch(ToolInvocation(tool_name, tool_params))
        finally:
            await backends.close()

    result = run_async(do_call())

    for block in result.content:
        console.print(block.text, markup=False, highlight=False)
    if result.next_cursor:
        console.print(f"\n[dim]nextCursor: {result.next_cursor}[/dim]")

    if result.is_error:
        sys.exit(1)


# ============ Config ============

@main.group('config')
def config_group():
    """Configuration commands."""
    pass


@config_group.command('show')
def config_show():
    """Show the effective configuration (secrets masked)."""
    config = get_config()

    table = Table(show_header=False, box=None)
    table.add_column("Key", style="dim")
    table.add_column("Value")

    table.add_row("Config file", str(config.config_path))
    table.add_row("Listen", f"{config.server.host}:{config.server.port}")
    table.add_row("API keys", str(len(config.guard.api_keys)))
    table.add_row("Allowed origins", ", ".join(config.guard.allowed_origins) or "[dim]none[/dim]")
    table.add_row("Require HTTPS", str(config.guard.require_secure_transport))
    table.add_row("Rate limit", f"{config.rate_limit.limit} / {config.rate_limit.window_seconds:g}s")
    table.add_row("Notion token", _mask(config.backends.notion_token))
    table.add_row("GitHub token", _mask(config.backends.github_token))
    table.add_row("SerpAPI key", _mask(config.backends.serpapi_key))
    table.add_row("Google refresh token", _mask(config.backends.google_refresh_token))

    console.print(table)


@config_group.command('add-key')
@click.option('--key', help='Use this key instead of generating one')
def config_add_key(key: Optional[str]):
    """Add an API key to the allow-list and save it."""
    config = Config.load(get_config().data_dir, env={})
    key = key or secrets.token_urlsafe(32)

    if key in config.guard.api_keys:
        console.print("[yellow]Key already present.[/yellow]")
        return

    config.guard.api_keys.append(key)
    config.save()

    console.print(f"[green]✓ Added API key[/green] (saved to {config.config_path})")
    console.print(f"  {key}")


if __name__ == '__main__':
    main()
