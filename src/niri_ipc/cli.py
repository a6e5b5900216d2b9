"""niri-ipc CLI.

Talks to the compositor over $NIRI_SOCKET (or --socket).

Usage:
    niri-ipc version                          # Compositor version
    niri-ipc workspaces                       # List workspaces
    niri-ipc windows --format json            # List windows as JSON
    niri-ipc outputs                          # List outputs
    niri-ipc focused-window                   # Show the focused window
    niri-ipc keyboard-layouts                 # Show keyboard layouts
    niri-ipc overview                         # Is the overview open?

    niri-ipc action FocusWorkspace '{"reference": {"Index": 2}}'
    niri-ipc events                           # Print events as JSON lines
    niri-ipc state --settle 0.5               # Print the mirrored state
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from collections.abc import Coroutine
from typing import Any

import click

from .errors import NiriError
from .models import KeyboardLayouts, Output, Window, Workspace
from .protocol.replies import Response
from .protocol.requests import Action, Request
from .state import EventStreamState
from .transport import NiriSocket, SocketConfig

logger = logging.getLogger(__name__)

# Output format options
FORMAT_TABLE = "table"
FORMAT_JSON = "json"

format_option = click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice([FORMAT_TABLE, FORMAT_JSON]),
    default=FORMAT_TABLE,
    help="Output format",
)


def truncate(text: str | None, max_len: int = 50) -> str:
    """Truncate text for display."""
    if not text:
        return ""
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."


def flags(**values: bool) -> str:
    """Render the names of the set flags, comma separated."""
    return ",".join(name for name, value in values.items() if value)


def _run(coro: Coroutine[Any, Any, Any]) -> Any:
    """Run a coroutine, turning library errors into a clean exit."""
    try:
        return asyncio.run(coro)
    except NiriError as e:
        click.echo(f"Error: {e.message}", err=True)
        if e.help:
            click.echo(e.help, err=True)
        sys.exit(1)
    except TimeoutError:
        click.echo("Error: timed out waiting for the compositor", err=True)
        sys.exit(1)


async def _query(config: SocketConfig, request: Request) -> Response:
    async with await NiriSocket.connect(config) as sock:
        return await sock.request(request)


def _echo_json(data: Any) -> None:
    click.echo(json.dumps(data, indent=2, ensure_ascii=False))


@click.group()
@click.option(
    "--socket",
    "socket_path",
    type=click.Path(dir_okay=False),
    help="Path to the niri socket (default: $NIRI_SOCKET)",
)
@click.option("--timeout", type=float, help="Seconds to wait for a reply")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def main(ctx: click.Context, socket_path: str | None, timeout: float | None, verbose: bool) -> None:
    """niri-ipc - talk to the niri compositor over its IPC socket."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )

    config = SocketConfig.from_env()
    if socket_path:
        config.path = socket_path
    if timeout is not None:
        config.timeout = timeout
    ctx.obj = config


# =============================================================================
# Queries
# =============================================================================


@main.command()
@click.pass_obj
def version(config: SocketConfig) -> None:
    """Print the compositor version."""
    response = _run(_query(config, Request.version()))
    click.echo(response.data)


@main.command()
@format_option
@click.pass_obj
def workspaces(config: SocketConfig, output_format: str) -> None:
    """List workspaces.

    Examples:

        niri-ipc workspaces
        niri-ipc workspaces --format json
    """
    response = _run(_query(config, Request.workspaces()))

    if output_format == FORMAT_JSON:
        _echo_json(response.payload_json())
        return

    items: list[Workspace] = sorted(response.data, key=lambda ws: (ws.output or "", ws.idx))
    if not items:
        click.echo("No workspaces.")
        return

    click.echo(f"{'ID':>4} {'Idx':>4} {'Name':<15} {'Output':<12} {'Window':>7} {'Flags':<22}")
    click.echo("-" * 68)
    for ws in items:
        window = "" if ws.active_window_id is None else str(ws.active_window_id)
        state = flags(active=ws.is_active, focused=ws.is_focused, urgent=ws.is_urgent)
        click.echo(
            f"{ws.id:>4} {ws.idx:>4} {truncate(ws.name, 15):<15} "
            f"{truncate(ws.output, 12):<12} {window:>7} {state:<22}"
        )


@main.command()
@format_option
@click.pass_obj
def windows(config: SocketConfig, output_format: str) -> None:
    """List windows."""
    response = _run(_query(config, Request.windows()))

    if output_format == FORMAT_JSON:
        _echo_json(response.payload_json())
        return

    items: list[Window] = sorted(response.data, key=lambda win: win.id)
    if not items:
        click.echo("No windows.")
        return

    click.echo(f"{'ID':>5} {'WS':>4} {'App ID':<20} {'Title':<35} {'Flags':<16}")
    click.echo("-" * 84)
    for win in items:
        workspace = "" if win.workspace_id is None else str(win.workspace_id)
        state = flags(focused=win.is_focused, floating=win.is_floating, urgent=win.is_urgent)
        click.echo(
            f"{win.id:>5} {workspace:>4} {truncate(win.app_id, 20):<20} "
            f"{truncate(win.title, 35):<35} {state:<16}"
        )

    click.echo(f"\nTotal: {len(items)} window(s)")


@main.command()
@format_option
@click.pass_obj
def outputs(config: SocketConfig, output_format: str) -> None:
    """List outputs."""
    response = _run(_query(config, Request.outputs()))

    if output_format == FORMAT_JSON:
        _echo_json(response.payload_json())
        return

    items: dict[str, Output] = response.data
    if not items:
        click.echo("No outputs.")
        return

    click.echo(f"{'Name':<12} {'Model':<30} {'Mode':<22} {'Scale':>6}")
    click.echo("-" * 73)
    for name in sorted(items):
        output = items[name]
        mode = "disabled"
        if output.current_mode is not None and output.current_mode < len(output.modes):
            m = output.modes[output.current_mode]
            mode = f"{m.width}x{m.height}@{m.refresh_rate / 1000:.3f}"
        scale = f"{output.logical.scale:g}" if output.logical else ""
        model = truncate(f"{output.make} {output.model}", 30)
        click.echo(f"{name:<12} {model:<30} {mode:<22} {scale:>6}")


@main.command("focused-window")
@format_option
@click.pass_obj
def focused_window(config: SocketConfig, output_format: str) -> None:
    """Show the focused window."""
    response = _run(_query(config, Request.focused_window()))

    if output_format == FORMAT_JSON:
        _echo_json(response.payload_json())
        return

    win: Window | None = response.data
    if win is None:
        click.echo("No focused window.")
        return

    click.echo(f"Window:    {win.id}")
    click.echo(f"Title:     {win.title or ''}")
    click.echo(f"App ID:    {win.app_id or ''}")
    click.echo(f"PID:       {win.pid if win.pid is not None else ''}")
    click.echo(f"Workspace: {win.workspace_id if win.workspace_id is not None else ''}")
    click.echo(f"Floating:  {'yes' if win.is_floating else 'no'}")


@main.command("keyboard-layouts")
@format_option
@click.pass_obj
def keyboard_layouts(config: SocketConfig, output_format: str) -> None:
    """Show the configured keyboard layouts."""
    response = _run(_query(config, Request.keyboard_layouts()))

    if output_format == FORMAT_JSON:
        _echo_json(response.payload_json())
        return

    layouts: KeyboardLayouts = response.data
    for idx, name in enumerate(layouts.names):
        marker = "*" if idx == layouts.current_idx else " "
        click.echo(f"{marker} {idx}: {name}")


@main.command()
@format_option
@click.pass_obj
def overview(config: SocketConfig, output_format: str) -> None:
    """Show whether the overview is open."""
    response = _run(_query(config, Request.overview_state()))

    if output_format == FORMAT_JSON:
        _echo_json(response.payload_json())
        return

    click.echo(f"Overview: {'open' if response.data.is_open else 'closed'}")


# =============================================================================
# Actions & events
# =============================================================================


@main.command()
@click.argument("name")
@click.argument("params_json", required=False)
@click.pass_obj
def action(config: SocketConfig, name: str, params_json: str | None) -> None:
    """Send an action.

    NAME is the action name as niri spells it; PARAMS_JSON is an optional
    JSON object with its fields.

    Examples:

        niri-ipc action ToggleOverview
        niri-ipc action FocusWindow '{"id": 12}'
    """
    params: dict[str, Any] = {}
    if params_json:
        try:
            params = json.loads(params_json)
        except json.JSONDecodeError as e:
            raise click.BadParameter(f"Invalid JSON: {e}", param_hint="PARAMS_JSON") from e
        if not isinstance(params, dict):
            raise click.BadParameter("Must be a JSON object", param_hint="PARAMS_JSON")

    request = Request.from_action(Action(name=name, params=params))
    _run(_query(config, request))
    logger.debug(f"Action {name} handled")


@main.command()
@click.pass_obj
def events(config: SocketConfig) -> None:
    """Print events as JSON lines until the compositor closes the stream."""

    async def run() -> None:
        async with await NiriSocket.connect(config) as sock:
            async for event in sock.event_stream():
                click.echo(json.dumps(event.to_json()))

    try:
        _run(run())
    except KeyboardInterrupt:
        pass


@main.command()
@click.option(
    "--settle",
    type=float,
    default=0.2,
    show_default=True,
    help="Seconds without events after which the state counts as settled",
)
@click.pass_obj
def state(config: SocketConfig, settle: float) -> None:
    """Mirror the compositor state from the event stream and print it.

    The output is the list of events that rebuilds the state, as JSON.
    """

    async def run() -> EventStreamState:
        mirror = EventStreamState()
        async with await NiriSocket.connect(config) as sock:
            stream = sock.follow(mirror)
            try:
                while await asyncio.wait_for(anext(stream, None), timeout=settle) is not None:
                    pass
            except TimeoutError:
                logger.debug(f"No events for {settle}s, state settled")
            finally:
                await stream.aclose()
        return mirror

    mirror = _run(run())
    _echo_json([event.to_json() for event in mirror.replicate()])


if __name__ == "__main__":
    main()
