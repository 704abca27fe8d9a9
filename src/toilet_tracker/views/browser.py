"""Local web UI for toilet-tracker.

Serves the login form or the dashboard from the shared Tracker state, and
handles the form posts that log toilets, toggle golden status and manage
the session.
"""

from __future__ import annotations

import html
import http.server
import json
import logging
import socketserver
import webbrowser
from typing import TYPE_CHECKING, Any
from urllib.parse import parse_qs, unquote, urlparse

from toilet_tracker.models.entry import GOAL, sort_by_visit, visit_streak
from toilet_tracker.views.map import LEAFLET_CSS, render_map_script
from toilet_tracker.views.text import NO_ENTRIES, NO_LEADERS

if TYPE_CHECKING:
    from toilet_tracker.services.tracker import Tracker, ViewState

logger = logging.getLogger("toilet_tracker.browser")


def _common_css() -> str:
    return """
        * { box-sizing: border-box; }
        body { font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
               margin: 0; padding: 20px; background: #fff; }
        .container { max-width: 1000px; margin: 0 auto; text-align: center; }
        h1 { color: #4CAF50; }
        input { display: block; margin: 10px auto; padding: 10px; width: 300px; }
        button { padding: 10px 20px; cursor: pointer; }
        .alert { background: #ffebee; border: 1px solid #e57373; padding: 12px;
                 border-radius: 6px; margin: 10px auto; max-width: 600px; }
        """


def _alert_html(alert: str | None) -> str:
    if not alert:
        return ""
    return f'<div class="alert" role="alert">{html.escape(alert)}</div>'


def render_login_page(alert: str | None = None) -> str:
    """Render the login/sign-up form.

    Args:
        alert: Pending alert to show above the form.

    Returns:
        HTML page.
    """
    return f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Toilet Tracker</title>
    <style>{_common_css()}</style>
</head>
<body>
    <div class="container" style="padding: 40px;">
        <h1>Toilet Tracker</h1>
        <h2>Join the race to {GOAL} unique toilets</h2>
        {_alert_html(alert)}
        <form method="post" action="/login">
            <input type="email" name="email" placeholder="Email" required>
            <input type="password" name="password" placeholder="Password" required>
            <button type="submit" style="font-size: 1.3em; background: #4CAF50; color: white;
                border: none; border-radius: 10px; margin-top: 30px; padding: 15px 40px;">
                Login or Sign Up
            </button>
        </form>
        <p style="margin-top: 30px;">
            New here? Just enter any email &amp; password - it will create your account automatically!
        </p>
    </div>
</body>
</html>"""


def _progress_html(state: ViewState) -> str:
    progress = state.progress
    if progress is None:
        return ""
    streak = visit_streak(state.entries)
    return f"""
        <div class="progress">
            <h2>Your Progress</h2>
            <h1>{progress.total} / {progress.goal} Unique Toilets</h1>
            <progress value="{progress.total}" max="{progress.goal}" style="width: 80%; height: 40px;"></progress>
            <h3>{html.escape(progress.message)}</h3>
            <p>Current streak: {streak} day{'s' if streak != 1 else ''}</p>
        </div>"""


def _entries_html(state: ViewState) -> str:
    if not state.entries:
        return f"<p>{html.escape(NO_ENTRIES)}</p>"

    items = []
    for entry in sort_by_visit(state.entries):
        golden = " golden" if entry.is_golden_bowl else ""
        label = "Remove golden" if entry.is_golden_bowl else "Mark golden"
        items.append(f"""
            <li class="entry{golden}">
                <strong>{html.escape(entry.name)}</strong><br>
                {html.escape(entry.address or 'GPS Location')}<br>
                {entry.visited_at.astimezone().strftime('%Y-%m-%d %H:%M')}
                <form method="post" action="/entries/{html.escape(entry.id)}/toggle-golden">
                    <button type="submit">{label}</button>
                </form>
            </li>""")

    return f"""
        <div class="entries">
            <h2>Your Logged Toilets ({len(state.entries)})</h2>
            <ul>{''.join(items)}</ul>
        </div>"""


def _leaderboard_html(state: ViewState) -> str:
    if not state.leaderboard:
        return f"<p>{html.escape(NO_LEADERS)}</p>"

    rows = "".join(
        f"""
                <tr>
                    <td>{rank}</td>
                    <td>{html.escape(row.display_name)}</td>
                    <td>{row.total}/{GOAL}</td>
                </tr>"""
        for rank, row in enumerate(state.leaderboard, 1)
    )
    return f"""
        <table class="leaderboard">
            <thead>
                <tr><th>Rank</th><th>User</th><th>Toilets</th></tr>
            </thead>
            <tbody>{rows}
            </tbody>
        </table>"""


def render_dashboard(state: ViewState) -> str:
    """Render the logged-in dashboard.

    Args:
        state: Current tracker view state.

    Returns:
        HTML page.
    """
    disabled = " disabled" if state.loading else ""
    gps_label = "Locating..." if state.loading else "Log Toilet at My Current Location"

    return f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Toilet Tracker</title>
    <link rel="stylesheet" href="{LEAFLET_CSS}">
    <style>
        {_common_css()}
        #map {{ height: 400px; width: 100%; margin: 20px 0; border-radius: 8px; }}
        .entries {{ text-align: left; max-width: 600px; margin: 40px auto; }}
        .entries ul {{ list-style: none; padding: 0; }}
        .entry {{ padding: 15px; border-bottom: 1px solid #ddd; }}
        .entry.golden {{ background: #fff8e1; }}
        .leaderboard {{ width: 80%; margin: 0 auto; border-collapse: collapse; }}
        .leaderboard th {{ border-bottom: 2px solid #ddd; padding: 12px; }}
        .leaderboard td {{ padding: 12px; }}
        .status {{ font-size: 1.2em; min-height: 30px; margin-top: 20px; }}
    </style>
</head>
<body>
    <div class="container">
        <h1>Toilet Tracker</h1>
        <form method="post" action="/logout">
            Welcome back! <button type="submit">Logout</button>
        </form>
        {_alert_html(state.alert)}
        {_progress_html(state)}

        <div style="margin: 40px 0;">
            <form method="post" action="/entries/current">
                <button type="submit" style="font-size: 1.5em; padding: 20px 40px;"{disabled}>{gps_label}</button>
            </form>

            <h3>Manual Entry (No GPS)</h3>
            <form method="post" action="/entries/manual">
                <input type="text" name="name" placeholder="Toilet Name (e.g., Cafe Restroom)" required>
                <input type="number" step="any" name="latitude" placeholder="Latitude (e.g., 40.7128)" required>
                <input type="number" step="any" name="longitude" placeholder="Longitude (e.g., -74.0060)" required>
                <input type="text" name="address" placeholder="Address (optional)">
                <button type="submit"{disabled}>Log Manual Toilet</button>
            </form>

            <p class="status">{html.escape(state.message)}</p>
        </div>

        <h2>Map of Your Conquests</h2>
        <div id="map"></div>
        {render_map_script(state.entries, state.map_center)}

        {_entries_html(state)}

        <div style="margin-top: 60px;">
            <h2>Leaderboard</h2>
            {_leaderboard_html(state)}
        </div>
    </div>
</body>
</html>"""


def render_page(state: ViewState) -> str:
    """Render whichever page the session calls for.

    Without a token only the login form is shown.
    """
    if not state.token:
        return render_login_page(state.alert)
    return render_dashboard(state)


class TrackerBrowserHandler(http.server.BaseHTTPRequestHandler):
    """HTTP request handler for the local web UI."""

    tracker: Tracker  # Set by start_browser()

    def do_GET(self) -> None:
        """Handle GET requests."""
        path = unquote(urlparse(self.path).path)

        if path == "/" or path == "/index.html":
            state = self.tracker.state
            content = render_page(state)
            # Alerts are shown once
            state.alert = None
            self._send_html(content)
        elif path == "/api/state":
            self._send_json(self.tracker.state.to_dict())
        else:
            self.send_error(404, "Not Found")

    def do_POST(self) -> None:
        """Handle form submissions."""
        path = unquote(urlparse(self.path).path).rstrip("/")
        form = self._read_form()
        tracker = self.tracker

        if path == "/login":
            tracker.login(form.get("email", ""), form.get("password", ""))
        elif path == "/logout":
            tracker.logout()
        elif not tracker.state.token:
            pass  # Session gone; the redirect lands on the login form
        elif path == "/entries/current":
            tracker.log_current_location()
        elif path == "/entries/manual":
            tracker.log_manual_entry(
                form.get("name", ""),
                form.get("latitude", ""),
                form.get("longitude", ""),
                form.get("address", ""),
            )
        elif path.startswith("/entries/") and path.endswith("/toggle-golden"):
            entry_id = path[len("/entries/"):-len("/toggle-golden")]
            tracker.toggle_golden(entry_id)
        else:
            self.send_error(404, "Not Found")
            return

        self._redirect("/")

    def _read_form(self) -> dict[str, str]:
        length = int(self.headers.get("Content-Length") or 0)
        body = self.rfile.read(length).decode("utf-8", errors="replace") if length else ""
        return {key: values[0] for key, values in parse_qs(body).items()}

    def _redirect(self, location: str) -> None:
        self.send_response(303)
        self.send_header("Location", location)
        self.send_header("Content-Length", "0")
        self.end_headers()

    def _send_html(self, content: str) -> None:
        """Send HTML response."""
        encoded = content.encode("utf-8")
        self.send_response(200)
        self.send_header("Content-Type", "text/html; charset=utf-8")
        self.send_header("Content-Length", str(len(encoded)))
        self.end_headers()
        self.wfile.write(encoded)

    def _send_json(self, data: Any) -> None:
        """Send JSON response."""
        encoded = json.dumps(data, default=str).encode("utf-8")
        self.send_response(200)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(encoded)))
        self.end_headers()
        self.wfile.write(encoded)

    def log_message(self, format: str, *args: object) -> None:
        """Route request logs to the debug log."""
        logger.debug("%s - %s", self.address_string(), format % args)


def start_browser(
    tracker: Tracker,
    host: str = "127.0.0.1",
    port: int = 8080,
    open_browser: bool = True,
) -> None:
    """Start the local web UI server.

    Args:
        tracker: Controller holding the session and view state.
        host: Server host.
        port: Server port.
        open_browser: Open browser automatically.
    """
    TrackerBrowserHandler.tracker = tracker
    socketserver.TCPServer.allow_reuse_address = True

    with socketserver.TCPServer((host, port), TrackerBrowserHandler) as httpd:
        url = f"http://{host}:{port}/"
        print(f"Toilet Tracker available at {url}")
        print("Press Ctrl+C to stop")

        if open_browser:
            webbrowser.open(url)

        try:
            httpd.serve_forever()
        except KeyboardInterrupt:
            print("\nBrowser stopped")
