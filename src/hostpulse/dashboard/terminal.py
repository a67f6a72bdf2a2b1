"""Terminal views using Rich: a one-shot snapshot and a live `watch` client."""

from __future__ import annotations

import json
import logging
import sys
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

import httpx
from rich.console import Console, Group
from rich.live import Live
from rich.panel import Panel
from rich.text import Text

from hostpulse import __version__
from hostpulse.aggregator import SnapshotAggregator
from hostpulse.metrics import FRAGMENT_KEYS, iter_panels

log = logging.getLogger(__name__)

REFRESH_HEADERS = {"X-Requested-With": "XMLHttpRequest"}

# Placeholder text starts with one of these; used only for panel colouring
_DEGRADED_PREFIXES = ("Not available", "Error executing", "Timed out", "No output from")


class RefreshError(Exception):
    """A refresh request failed; the previous snapshot stays on screen."""


def _border_for(text: str) -> str:
    if text.startswith(_DEGRADED_PREFIXES) or " timed out after " in text:
        return "yellow"
    return "cyan"


def build_display(
    data: Optional[dict],
    source_name: str,
    last_updated: Optional[datetime] = None,
    error: Optional[str] = None,
) -> Group:

    header = Text(f"  hostpulse v{__version__}  |  {source_name}", style="bold white on blue")
    if last_updated:
        header.append(f"\n  Last updated: {last_updated.strftime('%Y-%m-%d %H:%M:%S')}", style="dim")
    if error:
        header.append(f"\n  Refresh failed: {error} (showing previous data)", style="bold red")

    parts = [Panel(header, border_style="red" if error else "blue")]
    if data is None:
        parts.append(Panel(Text("  Waiting for first snapshot...", style="dim"), border_style="dim"))
    else:
        for _, title, text in iter_panels(data):
            # Text() keeps log lines like "[error]" from being read as markup
            parts.append(Panel(Text(text), title=title, title_align="left",
                               border_style=_border_for(text)))
    return Group(*parts)


def run_snapshot(aggregator: SnapshotAggregator, output: str = "tui"):
    """Collect once and print, either as Rich panels or one JSON line."""
    snapshot = aggregator.collect_all()

    if output == "json":
        record = snapshot.to_dict()
        record["timestamp"] = snapshot.timestamp.isoformat()
        sys.stdout.write(json.dumps(record) + "\n")
        sys.stdout.flush()
        return

    Console().print(build_display(snapshot.to_dict(), aggregator.name(), snapshot.timestamp))


def fetch_snapshot(client: httpx.Client, url: str) -> dict:
    """GET the dashboard as a refresh request and return the payload."""
    try:
        response = client.get(url, headers=REFRESH_HEADERS)
        response.raise_for_status()
        data = response.json()
    except httpx.HTTPError as e:
        raise RefreshError(str(e) or type(e).__name__) from e
    except ValueError as e:
        raise RefreshError(f"invalid JSON: {e}") from e

    if not isinstance(data, dict):
        raise RefreshError("unexpected payload")
    missing = [key for key in FRAGMENT_KEYS if key not in data]
    if missing:
        raise RefreshError(f"payload missing {', '.join(missing)}")
    return data


@dataclass
class WatchState:
    data: Optional[dict] = None
    last_updated: Optional[datetime] = None
    error: Optional[str] = None

    def refresh(self, client: httpx.Client, url: str) -> bool:
        """Try one refresh. On failure keep the old data and record the error."""
        try:
            self.data = fetch_snapshot(client, url)
        except RefreshError as e:
            log.warning("Refresh of %s failed: %s", url, e)
            self.error = str(e)
            return False
        self.last_updated = datetime.now()
        self.error = None
        return True


def run_watch(url: str, refresh_interval: float = 60.0, timeout_seconds: float = 90.0):
    """Poll a running dashboard like the browser does, and redraw in place."""
    console = Console()
    state = WatchState()

    log.info("Watching %s every %.1fs", url, refresh_interval)
    console.print(f"\n[bold]Watching {url}[/bold] (every {refresh_interval:g}s, Ctrl+C to stop)\n")

    # server side may take the whole request deadline, so give it room
    with httpx.Client(timeout=timeout_seconds) as client:
        with Live(console=console, refresh_per_second=1, screen=True) as live:
            try:
                while True:
                    state.refresh(client, url)
                    live.update(build_display(state.data, url, state.last_updated, state.error))
                    time.sleep(refresh_interval)
            except KeyboardInterrupt:
                pass

    console.print("\n[dim]Watch stopped.[/dim]")
