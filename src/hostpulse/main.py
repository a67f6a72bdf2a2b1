"""
hostpulse entry point.

Usage:
    hostpulse serve --port 8080               Web dashboard
    hostpulse snapshot                        One-shot terminal view
    hostpulse snapshot --output json          One JSON line
    hostpulse watch --url http://host:8080/   Live terminal view of a dashboard
    hostpulse --mock serve                    Canned data, no server tools needed

Every option can also come from the environment, e.g. HOSTPULSE_REFRESH=30.
"""

from __future__ import annotations

import logging

import click

from hostpulse import __version__
from hostpulse.aggregator import SnapshotAggregator
from hostpulse.config import (
    DEFAULT_PROBE_TIMEOUT,
    DEFAULT_REFRESH_INTERVAL,
    DEFAULT_REQUEST_DEADLINE,
    ConfigError,
    MonitorConfig,
)
from hostpulse.mock.fake_probe import demo_probe


log = logging.getLogger("hostpulse")


@click.group(context_settings={"auto_envvar_prefix": "HOSTPULSE"})
@click.version_option(version=__version__, prog_name="hostpulse")
@click.option("--refresh", default=DEFAULT_REFRESH_INTERVAL, show_default=True,
              help="Auto-refresh interval in seconds")
@click.option("--deadline", default=DEFAULT_REQUEST_DEADLINE, show_default=True,
              help="Overall time budget for one snapshot, in seconds")
@click.option("--probe-timeout", default=DEFAULT_PROBE_TIMEOUT, show_default=True,
              help="Timeout for each external command, in seconds")
@click.option("--privileged-capture", is_flag=True, default=False,
              help="Try `sudo -n iftop` for live traffic (needs a NOPASSWD sudoers rule)")
@click.option("--php-log", "php_logs", multiple=True, help="PHP error log candidate (repeatable)")
@click.option("--sql-log", "sql_logs", multiple=True, help="SQL error log candidate (repeatable)")
@click.option("--proxy-log", "proxy_logs", multiple=True,
              help="OpenResty/Nginx error log candidate (repeatable)")
@click.option("--mock", is_flag=True, default=False, help="Use canned demo data instead of this host")
@click.option("--verbose", is_flag=True, default=False, help="Enable debug logging")
@click.pass_context
def cli(ctx, refresh: int, deadline: float, probe_timeout: float, privileged_capture: bool,
        php_logs, sql_logs, proxy_logs, mock: bool, verbose: bool):
    """hostpulse - lightweight host health dashboard."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    overrides = {}
    if php_logs:
        overrides["php_logs"] = tuple(php_logs)
    if sql_logs:
        overrides["sql_logs"] = tuple(sql_logs)
    if proxy_logs:
        overrides["proxy_logs"] = tuple(proxy_logs)

    try:
        config = MonitorConfig(
            refresh_interval=refresh,
            request_deadline=deadline,
            probe_timeout=probe_timeout,
            privileged_capture=privileged_capture,
            **overrides,
        ).validate()
    except ConfigError as e:
        raise click.UsageError(str(e)) from e

    ctx.ensure_object(dict)
    ctx.obj["config"] = config
    ctx.obj["mock"] = mock


def _aggregator(ctx) -> SnapshotAggregator:
    probe = demo_probe() if ctx.obj["mock"] else None
    return SnapshotAggregator(ctx.obj["config"], probe=probe)


@cli.command()
@click.option("--host", default="127.0.0.1", show_default=True, help="Address to bind")
@click.option("--port", default=8080, show_default=True, help="Port to listen on")
@click.pass_context
def serve(ctx, host: str, port: int):
    """Serve the web dashboard."""
    from hostpulse.web.app import create_app

    app = create_app(aggregator=_aggregator(ctx))
    log.info("Serving dashboard on http://%s:%d/", host, port)
    click.echo(f"hostpulse v{__version__} on http://{host}:{port}/ (Ctrl+C to stop)")
    # threaded so a slow snapshot doesn't block the next page load
    app.run(host=host, port=port, threaded=True)


@cli.command()
@click.option("--output", type=click.Choice(["tui", "json"]), default="tui",
              help="Output mode: tui (Rich panels) or json (one JSON line)")
@click.pass_context
def snapshot(ctx, output: str):
    """Collect once and print the result."""
    from hostpulse.dashboard.terminal import run_snapshot

    run_snapshot(_aggregator(ctx), output=output)


@cli.command()
@click.option("--url", required=True, help="Dashboard URL, e.g. http://web01:8080/")
@click.pass_context
def watch(ctx, url: str):
    """Follow a running dashboard from the terminal."""
    from hostpulse.dashboard.terminal import run_watch

    config = ctx.obj["config"]
    run_watch(url, refresh_interval=config.refresh_interval,
              timeout_seconds=config.request_deadline + 30)


if __name__ == "__main__":
    cli()
