"""Command-line interface for toilet-tracker.

Provides CLI commands for signing in, logging toilets, viewing progress,
entries and the leaderboard, generating the map, and running the local
web UI.
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any, NoReturn

import click

from toilet_tracker import __version__
from toilet_tracker.config import DEFAULT_CONFIG_PATH, ensure_data_dir, load_config
from toilet_tracker.lib.logging import setup_logging

if TYPE_CHECKING:
    from toilet_tracker.config import Config
    from toilet_tracker.services.tracker import Tracker


class JSONOutput:
    """Helper for JSON output formatting."""

    def __init__(self, enabled: bool = False) -> None:
        self.enabled = enabled
        self._data: dict[str, Any] = {}

    def set(self, key: str, value: Any) -> None:
        """Set a value in the output."""
        self._data[key] = value

    def update(self, data: dict[str, Any]) -> None:
        """Update with multiple values."""
        self._data.update(data)

    def output(self) -> None:
        """Print JSON output if enabled."""
        if self.enabled:
            click.echo(json.dumps(self._data, indent=2, default=str))


# Custom context class to hold shared state
class Context:
    """CLI context holding shared configuration and state."""

    def __init__(self) -> None:
        self.config: Config | None = None
        self.verbose: int = 0
        self.quiet: bool = False
        self.json_output: bool = False
        self.output: JSONOutput = JSONOutput()

    def log(self, message: str, level: int = 0) -> None:
        """Log a message if verbosity allows.

        Args:
            message: Message to log.
            level: Required verbosity level (0=normal, 1=-v, 2=-vv).
        """
        if self.json_output:
            return
        if self.quiet and level == 0:
            return
        if level <= self.verbose or level == 0:
            click.echo(message)

    def error(self, message: str) -> None:
        """Log an error message."""
        if self.json_output:
            self.output.set("error", message)
            self.output.set("status", "error")
        else:
            click.echo(f"Error: {message}", err=True)

    def fail(self, message: str, exit_code: int = 1) -> NoReturn:
        """Report an error and exit."""
        self.error(message)
        if self.json_output:
            self.output.output()
        sys.exit(exit_code)


pass_context = click.make_pass_decorator(Context, ensure=True)


def _make_tracker(ctx: Context) -> Tracker:
    """Build the controller from the loaded configuration."""
    from toilet_tracker.lib.geolocation import get_location_provider
    from toilet_tracker.models.session import SessionStore
    from toilet_tracker.services.api import TrackerClient
    from toilet_tracker.services.tracker import Tracker

    config = ctx.config
    if config is None:
        ctx.fail("Configuration not loaded")

    return Tracker(
        client=TrackerClient(config.api.url, timeout=config.api.timeout),
        store=SessionStore(ensure_data_dir(config)),
        locator=get_location_provider(config.geolocation),
        location_timeout=config.geolocation.timeout,
    )


def _require_session(ctx: Context) -> Tracker:
    """Build the controller and load data for the stored session.

    Exits with status 2 when there is no usable session and 1 when the data
    could not be fetched.
    """
    tracker = _make_tracker(ctx)
    if not tracker.store.load():
        ctx.fail("Not logged in. Run 'toilet-tracker login EMAIL' first.", 2)

    if not tracker.start():
        if tracker.state.token is None:
            ctx.fail("Session expired. Run 'toilet-tracker login EMAIL' again.", 2)
        ctx.fail(tracker.state.message or "Could not load data")
    return tracker


def _report_outcome(ctx: Context, tracker: Tracker, ok: bool) -> None:
    """Print the tracker's message/alert and exit non-zero on failure."""
    state = tracker.state
    if ok:
        if ctx.json_output:
            ctx.output.update({"status": "success", "message": state.message, **state.to_dict()})
            ctx.output.output()
        elif state.message:
            ctx.log(state.message)
        return

    ctx.fail(state.alert or state.message or "Operation failed")


@click.group()
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False, path_type=Path),
    default=None,
    help=f"Configuration file path (default: {DEFAULT_CONFIG_PATH})",
)
@click.option(
    "--data-dir",
    "-d",
    type=click.Path(exists=False, path_type=Path),
    default=None,
    help="Data directory for the session token and logs",
)
@click.option(
    "--api-url",
    default=None,
    help="Toilet Tracker API base URL",
)
@click.option(
    "--verbose",
    "-v",
    count=True,
    help="Increase verbosity (can be repeated: -v, -vv)",
)
@click.option(
    "--quiet",
    "-q",
    is_flag=True,
    help="Suppress non-error output",
)
@click.option(
    "--json",
    "json_output",
    is_flag=True,
    help="Output in JSON format",
)
@click.version_option(version=__version__, prog_name="toilet-tracker")
@pass_context
def main(
    ctx: Context,
    config_path: Path | None,
    data_dir: Path | None,
    api_url: str | None,
    verbose: int,
    quiet: bool,
    json_output: bool,
) -> None:
    """Toilet Tracker CLI.

    Log the toilets you visit, follow your progress toward 400 unique
    toilets, and see how you rank against everyone else.
    """
    ctx.verbose = verbose
    ctx.quiet = quiet
    ctx.json_output = json_output
    ctx.output = JSONOutput(json_output)

    try:
        ctx.config = load_config(config_path)
    except ValueError as e:
        ctx.fail(f"Invalid configuration: {e}", 2)

    if data_dir is not None:
        ctx.config.data.directory = data_dir
    if api_url is not None:
        ctx.config.api.url = api_url

    console_level = logging.WARNING
    if verbose == 1:
        console_level = logging.INFO
    elif verbose >= 2:
        console_level = logging.DEBUG
    setup_logging(ctx.config, console_level=console_level, quiet=quiet or json_output)


@main.command()
@click.argument("email")
@click.option(
    "--password",
    prompt=True,
    hide_input=True,
    help="Account password (prompted if omitted)",
)
@pass_context
def login(ctx: Context, email: str, password: str) -> None:
    """Sign in, creating the account if it does not exist yet."""
    tracker = _make_tracker(ctx)

    if not tracker.login(email, password):
        ctx.fail(tracker.state.alert or "Login failed")

    ctx.log(f"Logged in as {email.strip()}")
    if ctx.json_output:
        ctx.output.update({"status": "success", "email": email.strip()})
        ctx.output.output()


@main.command()
@pass_context
def logout(ctx: Context) -> None:
    """Forget the stored session."""
    tracker = _make_tracker(ctx)
    tracker.logout()

    ctx.log("Logged out")
    if ctx.json_output:
        ctx.output.set("status", "success")
        ctx.output.output()


@main.command()
@pass_context
def status(ctx: Context) -> None:
    """Show progress toward the goal and the current streak."""
    from toilet_tracker.models.entry import visit_streak
    from toilet_tracker.views.text import format_progress

    tracker = _require_session(ctx)
    state = tracker.state

    if ctx.json_output:
        ctx.output.update({
            "status": "success",
            "progress": state.progress.to_dict() if state.progress else None,
            "streak": visit_streak(state.entries),
        })
        ctx.output.output()
    else:
        ctx.log(format_progress(state.progress, state.entries))


@main.command(name="list")
@pass_context
def list_entries(ctx: Context) -> None:
    """List logged toilets, newest first."""
    from toilet_tracker.models.entry import sort_by_visit
    from toilet_tracker.views.text import format_entries

    tracker = _require_session(ctx)
    entries = tracker.state.entries

    if ctx.json_output:
        ctx.output.update({
            "status": "success",
            "entries": [e.to_dict() for e in sort_by_visit(entries)],
        })
        ctx.output.output()
    else:
        ctx.log(format_entries(entries))


@main.command()
@pass_context
def leaderboard(ctx: Context) -> None:
    """Show the leaderboard."""
    from toilet_tracker.views.text import format_leaderboard

    tracker = _require_session(ctx)
    rows = tracker.state.leaderboard

    if ctx.json_output:
        ctx.output.update({
            "status": "success",
            "leaderboard": [row.to_dict() for row in rows],
        })
        ctx.output.output()
    else:
        ctx.log(format_leaderboard(rows))


@main.command(name="log")
@click.option(
    "--here",
    is_flag=True,
    help="Log a toilet at the device's current location",
)
@click.option(
    "--name",
    help="Toilet name (manual entry)",
)
@click.option(
    "--lat",
    "latitude",
    help="Latitude (manual entry)",
)
@click.option(
    "--lon",
    "longitude",
    help="Longitude (manual entry)",
)
@click.option(
    "--address",
    default="",
    help="Address (manual entry, optional)",
)
@pass_context
def log_entry(
    ctx: Context,
    here: bool,
    name: str | None,
    latitude: str | None,
    longitude: str | None,
    address: str,
) -> None:
    """Log a toilet, by current location (--here) or coordinates."""
    from toilet_tracker.services.tracker import VALIDATION_MESSAGES

    manual = any(v for v in (name, latitude, longitude))
    if here and manual:
        ctx.fail("Use either --here or --name/--lat/--lon, not both", 2)
    if not here and not manual:
        ctx.fail("Nothing to log: pass --here or --name/--lat/--lon", 2)

    tracker = _require_session(ctx)

    if here:
        ctx.log(tracker.state.message or "Getting your location...", level=1)
        ok = tracker.log_current_location()
    else:
        ok = tracker.log_manual_entry(name or "", latitude, longitude, address)
        if not ok and tracker.state.message in VALIDATION_MESSAGES:
            ctx.fail(tracker.state.message, 2)

    _report_outcome(ctx, tracker, ok)


@main.command(name="toggle-golden")
@click.argument("entry_id")
@pass_context
def toggle_golden(ctx: Context, entry_id: str) -> None:
    """Mark or unmark a logged toilet as a golden bowl."""
    tracker = _require_session(ctx)
    ok = tracker.toggle_golden(entry_id)
    _report_outcome(ctx, tracker, ok)


@main.command(name="map")
@click.option(
    "--output",
    "-o",
    type=click.Path(path_type=Path),
    help="Output HTML file (default: stdout or ./map.html)",
)
@click.option(
    "--serve",
    is_flag=True,
    help="Start local HTTP server to view map",
)
@click.option(
    "--port",
    default=8080,
    help="Server port (default: 8080)",
)
@pass_context
def map_cmd(
    ctx: Context,
    output: Path | None,
    serve: bool,
    port: int,
) -> None:
    """Generate an interactive map of logged toilets."""
    from toilet_tracker.views.map import generate_map, serve_map

    tracker = _require_session(ctx)
    state = tracker.state

    try:
        html = generate_map(state.entries, center=state.map_center)

        if serve:
            output_path = output or Path("./map.html")
            output_path.write_text(html, encoding="utf-8")
            ctx.log(f"Map saved to {output_path}")
            ctx.log(f"Starting server at http://127.0.0.1:{port}")
            serve_map(output_path, port=port)
        elif output:
            output.write_text(html, encoding="utf-8")
            ctx.log(f"Map saved to {output}")
            if ctx.json_output:
                ctx.output.update({"status": "success", "output": str(output)})
                ctx.output.output()
        else:
            click.echo(html)

    except OSError as e:
        ctx.fail(f"Map generation failed: {e}")


@main.command()
@click.option(
    "--port",
    default=8080,
    help="Server port (default: 8080)",
)
@click.option(
    "--host",
    default="127.0.0.1",
    help="Server host (default: 127.0.0.1)",
)
@click.option(
    "--no-open",
    is_flag=True,
    help="Don't automatically open browser",
)
@pass_context
def browse(ctx: Context, port: int, host: str, no_open: bool) -> None:
    """Start the local web UI."""
    from toilet_tracker.views.browser import start_browser

    tracker = _make_tracker(ctx)
    tracker.start()

    try:
        ctx.log(f"Starting browser at http://{host}:{port}")
        start_browser(
            tracker,
            host=host,
            port=port,
            open_browser=not no_open,
        )
    except OSError as e:
        ctx.fail(f"Browser failed: {e}")


if __name__ == "__main__":
    main()
