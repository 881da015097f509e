"""
ToolWeave CLI - Manage external tool adapters.

Run `toolweave list` inside a project to see registered tools.
All state is kept in .toolweave/ files.
"""

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import click
import httpx
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from toolweave import __version__
from toolweave.tools.bridge import ExternalToolBridge
from toolweave.tools.loader import load_all_manifests
from toolweave.tools.schema import namespaced
from toolweave.tools.store import ToolStore
from toolweave.tools.validator import ManifestError, parse_manifest
from toolweave.validation.config import Config, ConfigError

console = Console()


def find_workspace() -> Path:
    """Find workspace root (has .toolweave/) or use current directory."""
    current = Path.cwd()
    while current != current.parent:
        if (current / ".toolweave").exists():
            return current
        current = current.parent
    return Path.cwd()


def _setup_logging(level: int) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _emit_json(payload: Any) -> None:
    click.echo(json.dumps(payload, indent=2, default=str))


def _fail(message: str, output_json: bool = False, details: Optional[Dict[str, Any]] = None) -> None:
    if output_json:
        _emit_json({"success": False, "error": message, **(details or {})})
    else:
        console.print(f"[red]✗ {message}[/red]")
    sys.exit(1)


def _print_validation_errors(errors: List[str], output_json: bool) -> None:
    if output_json:
        _fail("Invalid manifest", output_json, {"errors": errors})
    console.print("[red]✗ Invalid manifest:[/red]")
    for error in errors:
        console.print(f"  • {error}")
    sys.exit(1)


class CliContext:
    """Project root, configuration and store shared by every command."""

    def __init__(self, root: Path, config: Config):
        self.root = root
        self.config = config
        self.store = ToolStore(config.store_path())

    def bridge(self) -> ExternalToolBridge:
        return ExternalToolBridge(self.root, store=self.store, config=self.config)


pass_ctx = click.make_pass_decorator(CliContext)


@click.group()
@click.version_option(__version__, prog_name="ToolWeave")
@click.option(
    "--root",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Project root (defaults to the nearest directory containing .toolweave/)",
)
@click.option("--verbose", "-V", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, root: Optional[Path], verbose: bool) -> None:
    """
    ToolWeave - register external tools and call them through one interface.

    \b
    Examples:
        toolweave list
        toolweave add ./weather.tool.json
        toolweave test weather forecast --args '{"city": "Oslo"}'
    """
    workspace = (root or find_workspace()).resolve()
    try:
        config = Config.load(workspace)
        level = logging.DEBUG if verbose else config.log_level()
    except ConfigError as e:
        console.print(f"[red]Configuration error: {e}[/red]")
        sys.exit(1)

    _setup_logging(level)
    ctx.obj = CliContext(workspace, config)


# ── list ──────────────────────────────────────────────────────────────────


@cli.command("list")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
@pass_ctx
def list_tools(ctx: CliContext, output_json: bool) -> None:
    """List all registered tools."""
    tools = ctx.store.list()

    if output_json:
        _emit_json({"tools": [m.to_json_dict() for m in tools]})
        return

    if not tools:
        console.print("[dim]No external tools registered.[/dim]")
        console.print("[dim]Run: toolweave add <url|./path>[/dim]")
        return

    table = Table(title=f"External Tools ({len(tools)} registered)")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Adapter")
    table.add_column("Version")
    table.add_column("Actions", justify="right")
    for manifest in tools:
        table.add_row(
            manifest.id,
            manifest.name,
            manifest.adapter,
            f"v{manifest.version}",
            str(len(manifest.tools)),
        )
    console.print(table)
    console.print("[dim]Run `toolweave info <id>` for details.[/dim]")


# ── add ───────────────────────────────────────────────────────────────────


def _fetch_manifest(url: str, timeout_ms: int, output_json: bool) -> Any:
    try:
        response = httpx.get(url, timeout=timeout_ms / 1000, follow_redirects=True)
    except httpx.HTTPError as e:
        _fail(f"Failed to fetch manifest: {e}", output_json)
    if not response.is_success:
        _fail(f"HTTP {response.status_code} fetching manifest from {url}", output_json)
    try:
        return response.json()
    except ValueError:
        _fail("Invalid JSON in remote manifest", output_json)


def _read_manifest_file(path: Path, output_json: bool) -> Any:
    if not path.exists():
        _fail(f"File not found: {path}", output_json)
    try:
        raw = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        _fail(f"Cannot read file: {e}", output_json)
    try:
        return json.loads(raw)
    except ValueError:
        _fail("Invalid JSON in manifest file", output_json)


@cli.command("add")
@click.argument("source")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
@pass_ctx
def add_tool(ctx: CliContext, source: str, output_json: bool) -> None:
    """Register a tool from a URL or a local manifest file."""
    remote = source.startswith(("http://", "https://"))
    if remote:
        raw = _fetch_manifest(source, ctx.config.bridge.fetch_timeout_ms, output_json)
    else:
        path = Path(source).expanduser()
        if not path.is_absolute():
            path = Path.cwd() / path
        raw = _read_manifest_file(path, output_json)

    try:
        manifest = parse_manifest(raw)
    except ManifestError as e:
        _print_validation_errors(e.errors, output_json)

    if remote:
        tools_dir = ctx.config.tools_dir()
        tools_dir.mkdir(parents=True, exist_ok=True)
        local_copy = tools_dir / f"{manifest.id}.tool.json"
        local_copy.write_text(json.dumps(manifest.to_json_dict(), indent=2), encoding="utf-8")

    ctx.store.add(manifest)

    if output_json:
        _emit_json({"added": manifest.to_json_dict()})
        return

    console.print(f"[green]✓ Tool registered:[/green] {manifest.name} ({manifest.id})")
    console.print(f"  Adapter: {manifest.adapter}  |  Actions: {', '.join(manifest.action_names())}")


# ── remove ────────────────────────────────────────────────────────────────


@cli.command("remove")
@click.argument("tool_id")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
@pass_ctx
def remove_tool(ctx: CliContext, tool_id: str, output_json: bool) -> None:
    """Remove a registered tool."""
    if not ctx.store.remove(tool_id):
        _fail(f'Tool not found: "{tool_id}"', output_json)

    if output_json:
        _emit_json({"removed": tool_id})
    else:
        console.print(f"[green]✓ Tool removed:[/green] {tool_id}")


# ── info ──────────────────────────────────────────────────────────────────


@cli.command("info")
@click.argument("tool_id")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
@pass_ctx
def info_tool(ctx: CliContext, tool_id: str, output_json: bool) -> None:
    """Show a tool's manifest."""
    manifest = ctx.store.get(tool_id)
    if manifest is None:
        _fail(f'Tool not found: "{tool_id}"', output_json)

    if output_json:
        _emit_json(manifest.to_json_dict())
        return

    timeout = manifest.timeout_ms or ctx.config.bridge.default_timeout_ms
    console.print(f"[bold]{manifest.name}[/bold] ({manifest.id})")
    console.print(f"  Description : {manifest.description}")
    console.print(f"  Version     : {manifest.version}")
    console.print(f"  Adapter     : {manifest.adapter}")
    if manifest.endpoint:
        console.print(f"  Endpoint    : {manifest.endpoint}")
    if manifest.script_path:
        console.print(f"  Script      : {manifest.script_path}")
    if manifest.auth and manifest.auth.type != "none":
        console.print(f"  Auth        : {manifest.auth.type} (${manifest.auth.env_var or '?'})")
    console.print(f"  Timeout     : {timeout}ms")
    console.print()
    console.print(f"  Actions ({len(manifest.tools)}):")
    for action in manifest.tools:
        console.print(f"    • [cyan]{namespaced(manifest.id, action.name)}[/cyan]  {action.description}")


# ── test ──────────────────────────────────────────────────────────────────


@cli.command("test")
@click.argument("tool_id")
@click.argument("action")
@click.option("--args", "-a", "raw_args", default="{}", help="JSON arguments for the action")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
@pass_ctx
def test_tool(ctx: CliContext, tool_id: str, action: str, raw_args: str, output_json: bool) -> None:
    """Invoke one action of a registered tool."""
    manifest = ctx.store.get(tool_id)
    if manifest is None:
        _fail(f'Tool not found: "{tool_id}"', output_json)

    try:
        args = json.loads(raw_args)
    except ValueError:
        _fail(f"Invalid JSON in --args: {raw_args}", output_json)
    if not isinstance(args, dict):
        _fail("--args must be a JSON object", output_json)

    declared = {a.name for a in manifest.tools}
    if action in declared or not action.startswith(namespaced(tool_id, "")):
        prefixed_action = namespaced(tool_id, action)
    else:
        prefixed_action = action

    bridge = ctx.bridge()
    bridge.register_manifest(manifest, persist=False)
    result = asyncio.run(bridge.execute(prefixed_action, args))

    if output_json:
        _emit_json(result.to_json_dict())
        if not result.success:
            sys.exit(1)
        return

    if not result.success:
        console.print(f"[red]✗ Tool call failed ({result.duration_ms}ms): {result.error}[/red]")
        sys.exit(1)

    console.print(f"[green]✓ {prefixed_action}[/green] [dim]({result.duration_ms}ms)[/dim]")
    if isinstance(result.data, str):
        console.print(result.data, markup=False)
    else:
        console.print_json(json.dumps(result.data, default=str))


# ── scan ──────────────────────────────────────────────────────────────────


@cli.command("scan")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
@click.option("--register", is_flag=True, help="Save every valid manifest to the store")
@pass_ctx
def scan_tools(ctx: CliContext, output_json: bool, register: bool) -> None:
    """Discover manifests in the project and installed tool packages."""
    if register:
        bridge = ctx.bridge()
        report = bridge.load_all()
        manifests = [tool.manifest for tool in bridge.list()]
        errors = report.errors
    else:
        result = load_all_manifests(
            ctx.root,
            tools_dir=ctx.config.tools_dir(),
            package_paths=ctx.config.package_paths(),
        )
        manifests, errors = result.manifests, result.errors

    if output_json:
        _emit_json({
            "manifests": [m.to_json_dict() for m in manifests],
            "errors": [{"source": e.source, "error": e.error} for e in errors],
        })
        return

    console.print(f"[bold]Discovered {len(manifests)} manifest(s)[/bold]")
    for manifest in manifests:
        console.print(f"  [cyan]{manifest.id}[/cyan] {manifest.name} ({manifest.adapter})")
    if errors:
        console.print(f"\n[yellow]{len(errors)} manifest(s) rejected:[/yellow]")
        for error in errors:
            console.print(f"  • {error.source}: {error.error}", markup=False)


def main() -> None:
    """Entry point."""
    cli()


if __name__ == "__main__":
    main()
