"""Map visualization for toilet-tracker.

Generates interactive HTML maps of logged toilets using Leaflet.js with
OpenStreetMap tiles.
"""

from __future__ import annotations

import http.server
import json
import socketserver
from pathlib import Path
from typing import TYPE_CHECKING, Any

from toilet_tracker.services.tracker import DEFAULT_MAP_CENTER

if TYPE_CHECKING:
    from toilet_tracker.models.entry import Entry

LEAFLET_CSS = "https://unpkg.com/leaflet@1.9.4/dist/leaflet.css"
LEAFLET_JS = "https://unpkg.com/leaflet@1.9.4/dist/leaflet.js"
DEFAULT_ZOOM = 13

MARKER_COLOR = "#2196F3"
GOLDEN_COLOR = "#FFC107"


def _markers_json(entries: list[Entry]) -> str:
    markers: list[dict[str, Any]] = [
        {
            "lat": entry.latitude,
            "lng": entry.longitude,
            "name": entry.name,
            "date": entry.visited_at.astimezone().strftime("%Y-%m-%d"),
            "golden": entry.is_golden_bowl,
        }
        for entry in entries
    ]
    # Keep "</script>" in names from closing the inline script
    return json.dumps(markers).replace("</", "<\\/")


def render_map_script(
    entries: list[Entry],
    center: tuple[float, float] = DEFAULT_MAP_CENTER,
    zoom: int = DEFAULT_ZOOM,
    element_id: str = "map",
) -> str:
    """Render the Leaflet script that fills an existing map element.

    Args:
        entries: Entries to place as markers.
        center: Initial (latitude, longitude) of the view.
        zoom: Initial zoom level.
        element_id: DOM id of the map container.

    Returns:
        ``<script>`` tags (Leaflet include plus map setup).
    """
    return f"""<script src="{LEAFLET_JS}"></script>
<script>
    var map = L.map('{element_id}').setView([{center[0]}, {center[1]}], {zoom});
    L.tileLayer('https://{{s}}.tile.openstreetmap.org/{{z}}/{{x}}/{{y}}.png', {{
        maxZoom: 19,
        attribution: '&copy; OpenStreetMap contributors'
    }}).addTo(map);

    var markers = {_markers_json(entries)};
    markers.forEach(function(m) {{
        var popup = document.createElement('div');
        var title = document.createElement('strong');
        title.textContent = m.name;
        popup.appendChild(title);
        popup.appendChild(document.createElement('br'));
        popup.appendChild(document.createTextNode('Visited: ' + m.date));
        L.circleMarker([m.lat, m.lng], {{
            radius: m.golden ? 10 : 7,
            color: 'white',
            weight: 2,
            fillColor: m.golden ? '{GOLDEN_COLOR}' : '{MARKER_COLOR}',
            fillOpacity: 0.9
        }}).bindPopup(popup).addTo(map);
    }});
</script>"""


def generate_map(
    entries: list[Entry],
    center: tuple[float, float] = DEFAULT_MAP_CENTER,
    zoom: int = DEFAULT_ZOOM,
) -> str:
    """Generate a standalone HTML map of logged toilets.

    Args:
        entries: Entries to place as markers.
        center: Initial (latitude, longitude) of the view.
        zoom: Initial zoom level.

    Returns:
        HTML content as string.
    """
    golden_count = sum(1 for e in entries if e.is_golden_bowl)

    return f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Map of Your Conquests</title>
    <link rel="stylesheet" href="{LEAFLET_CSS}">
    <style>
        body {{ margin: 0; padding: 0; }}
        #map {{ position: absolute; top: 0; bottom: 0; width: 100%; }}
        .info {{
            position: absolute; top: 10px; right: 10px; z-index: 1000;
            padding: 6px 8px;
            font: 14px/16px Arial, Helvetica, sans-serif;
            background: rgba(255,255,255,0.9);
            box-shadow: 0 0 15px rgba(0,0,0,0.2);
            border-radius: 5px;
        }}
    </style>
</head>
<body>
    <div id="map"></div>
    <div class="info">{len(entries)} toilets, {golden_count} golden</div>
    {render_map_script(entries, center, zoom)}
</body>
</html>"""


def serve_map(
    html_path: Path,
    port: int = 8080,
    host: str = "127.0.0.1",
) -> None:
    """Start a local HTTP server to serve the map.

    Args:
        html_path: Path to the HTML file.
        port: Server port.
        host: Server host.
    """
    directory = html_path.parent

    class Handler(http.server.SimpleHTTPRequestHandler):
        def __init__(self, *args: Any, **kwargs: Any) -> None:
            super().__init__(*args, directory=str(directory), **kwargs)

        def log_message(self, format: str, *args: object) -> None:
            pass  # Suppress logging

    # Allow port reuse to avoid "Address already in use" errors
    socketserver.TCPServer.allow_reuse_address = True

    with socketserver.TCPServer((host, port), Handler) as httpd:
        url = f"http://{host}:{port}/{html_path.name}"
        print(f"Serving at {url}")
        print("Press Ctrl+C to stop")

        try:
            httpd.serve_forever()
        except KeyboardInterrupt:
            print("\nServer stopped")
