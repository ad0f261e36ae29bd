"""Main CLI application for the monitoring system.

Usage:
    python -m salesmon.apps.main run [--interval-ms MS] [--metrics-dir DIR]
    python -m salesmon.apps.main status
    python -m salesmon.apps.main history [--limit N] [--since-minutes M]
    python -m salesmon.apps.main config-show
    python -m salesmon.apps.main dashboard [--host HOST] [--port PORT]
"""

import asyncio
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional
import typer
from rich.console import Console
from rich.table import Table
from rich.panel import Panel

from salesmon.core.config import MonitoringSettings
from salesmon.core.models import Alert, MetricsSnapshot
from salesmon.monitoring.events import MonitorEvent
from salesmon.monitoring.system import MonitoringSystem
from salesmon.utils.logging import setup_logging

logger = logging.getLogger(__name__)

app = typer.Typer(help="Sales assistant monitoring CLI - collect metrics, watch alerts, browse history")
console = Console()


def _load_settings(
    interval_ms: Optional[int] = None,
    metrics_dir: Optional[Path] = None,
    log_level: Optional[str] = None,
) -> MonitoringSettings:
    settings = MonitoringSettings.from_env()
    if interval_ms is not None:
        settings.metrics_interval = int(interval_ms)
    if metrics_dir is not None:
        settings.metrics_dir = metrics_dir
    if log_level is not None:
        settings.log_level = log_level.upper()
    setup_logging(level=settings.log_level, log_file=settings.log_file)
    return settings


def _format_ts(ms: int) -> str:
    return datetime.fromtimestamp(ms / 1000).strftime("%Y-%m-%d %H:%M:%S")


def _metrics_table(snapshot: MetricsSnapshot) -> Table:
    table = Table(title=f"Metrics at {_format_ts(snapshot.timestamp)}", show_header=True)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="magenta")

    system = snapshot.system
    app_metrics = snapshot.application
    ai = snapshot.ai
    table.add_row("CPU", f"{system.cpu:.1f}%")
    table.add_row(
        "Memory",
        f"{system.memory.percentage:.1f}% ({system.memory.used / 1024 ** 3:.2f} / {system.memory.total / 1024 ** 3:.2f} GiB)",
    )
    table.add_row("Uptime", f"{system.uptime / 3600:.1f} h")
    table.add_row("Messages", str(app_metrics.message_count))
    table.add_row(
        "Response Time",
        f"avg {app_metrics.response_time.avg:.0f} ms (min {app_metrics.response_time.min:.0f}, max {app_metrics.response_time.max:.0f})",
    )
    table.add_row("Errors", f"{app_metrics.error_count} ({app_metrics.error_rate:.1f}%)")
    table.add_row("Queue Size", str(app_metrics.queue_size))
    table.add_row("Active Chats", str(app_metrics.active_chats))
    table.add_row("AI Requests", str(ai.request_count))
    table.add_row("AI Tokens", str(ai.token_count))
    table.add_row("AI Processing Time", f"avg {ai.processing_time.avg:.0f} ms")
    return table


def _alerts_table(alerts: list[Alert]) -> Table:
    table = Table(title="Active Alerts", show_header=True)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="red")
    table.add_column("Threshold", style="yellow")
    table.add_column("Since", style="dim")
    table.add_column("Message")
    for alert in alerts:
        table.add_row(
            alert.metric,
            f"{alert.value:.1f}",
            f"{alert.threshold:g}",
            _format_ts(alert.timestamp),
            alert.message,
        )
    return table


@app.command(help="Run the monitor until interrupted, printing alerts as they open and resolve.")
def run(
    interval_ms: Optional[int] = typer.Option(None, "--interval-ms", "-i", help="Override collection interval (ms)"),
    metrics_dir: Optional[Path] = typer.Option(None, "--metrics-dir", "-d", help="Override snapshot directory"),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Override log level: DEBUG|INFO|WARNING|ERROR"),
):
    """Run the monitoring system."""
    console.print(Panel.fit("Starting Monitoring System", style="bold green"))
    try:
        settings = _load_settings(interval_ms, metrics_dir, log_level)
        asyncio.run(_run_monitor(settings))
    except KeyboardInterrupt:
        console.print("\n[yellow]Monitor stopped by user[/yellow]")
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        logger.exception("Error running monitor")
        sys.exit(1)


async def _run_monitor(settings: MonitoringSettings) -> None:
    monitor = MonitoringSystem(settings)
    monitor.on(
        MonitorEvent.ALERT,
        lambda alert: console.print(f"[red]ALERT[/red] {alert.message}"),
    )
    monitor.on(
        MonitorEvent.ALERT_RESOLVED,
        lambda alert: console.print(f"[green]RESOLVED[/green] {alert.metric} back to normal"),
    )

    if not await monitor.start():
        console.print("[red]Monitoring system failed to start[/red]")
        sys.exit(1)

    console.print(_metrics_table(monitor.get_metrics()))
    console.print(f"[bold green]Collecting every {settings.metrics_interval} ms. Press Ctrl+C to stop.[/bold green]")
    try:
        while monitor.is_running:
            await asyncio.sleep(1)
    finally:
        monitor.stop()


@app.command()
def status():
    """Collect one snapshot and show metrics and alerts."""
    console.print(Panel.fit("Monitoring Status", style="bold blue"))
    try:
        settings = _load_settings()
        settings.enable_metrics_logging = False
        monitor = MonitoringSystem(settings)
        snapshot = asyncio.run(monitor.collect_metrics())
        console.print(_metrics_table(snapshot))

        alerts = monitor.get_active_alerts()
        if alerts:
            console.print(_alerts_table(alerts))
        else:
            console.print("[green]No thresholds exceeded[/green]")
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        logger.exception("Error getting status")
        sys.exit(1)


@app.command(help="Show persisted snapshots, most recent first.")
def history(
    limit: int = typer.Option(20, "--limit", "-n", help="Maximum snapshots to show"),
    since_minutes: Optional[int] = typer.Option(None, "--since-minutes", help="Only snapshots from the last N minutes"),
    metrics_dir: Optional[Path] = typer.Option(None, "--metrics-dir", "-d", help="Override snapshot directory"),
):
    try:
        settings = _load_settings(metrics_dir=metrics_dir)
        monitor = MonitoringSystem(settings)
        now = monitor.clock()
        start_time = now - since_minutes * 60 * 1000 if since_minutes else 0
        snapshots = asyncio.run(monitor.get_metrics_history(limit=limit, start_time=start_time, end_time=now))

        table = Table(title=f"Metrics History ({settings.metrics_dir})", show_header=True)
        table.add_column("Time", style="cyan")
        table.add_column("CPU %", justify="right")
        table.add_column("Mem %", justify="right")
        table.add_column("Msgs", justify="right")
        table.add_column("Avg RT ms", justify="right")
        table.add_column("Err %", justify="right")
        table.add_column("Queue", justify="right")
        table.add_column("AI Req", justify="right")
        for s in snapshots:
            table.add_row(
                _format_ts(s.timestamp),
                f"{s.system.cpu:.1f}",
                f"{s.system.memory.percentage:.1f}",
                str(s.application.message_count),
                f"{s.application.response_time.avg:.0f}",
                f"{s.application.error_rate:.1f}",
                str(s.application.queue_size),
                str(s.ai.request_count),
            )
        console.print(table)
        if not snapshots:
            console.print("[dim]No snapshots found[/dim]")
    except Exception as e:
        console.print(f"[red]History error: {e}[/red]")
        logger.exception("History error")
        sys.exit(1)


@app.command(help="Show effective configuration (after environment overrides).")
def config_show():
    try:
        settings = MonitoringSettings.from_env()
        thresholds = settings.thresholds
        table = Table(title="Effective Configuration", show_header=True)
        table.add_column("Key", style="cyan")
        table.add_column("Value", style="magenta")
        table.add_row("Metrics Interval (ms)", str(settings.metrics_interval))
        table.add_row("CPU Sample Window (s)", str(settings.cpu_sample_window))
        table.add_row("Metrics Dir", str(settings.metrics_dir))
        table.add_row("Max Metrics Files", str(settings.max_metrics_files))
        table.add_row("Alerts Enabled", "Yes" if settings.enable_alerts else "No")
        table.add_row("Metrics Logging", "Yes" if settings.enable_metrics_logging else "No")
        table.add_row("Threshold CPU (%)", f"{thresholds.cpu:g}")
        table.add_row("Threshold Memory (%)", f"{thresholds.memory:g}")
        table.add_row("Threshold Response Time (ms)", f"{thresholds.response_time:g}")
        table.add_row("Threshold Error Rate (%)", f"{thresholds.error_rate:g}")
        table.add_row("Threshold Queue Size", f"{thresholds.queue_size:g}")
        console.print(table)
    except Exception as e:
        console.print(f"[red]Error showing config: {e}[/red]")
        logger.exception("Config show error")
        sys.exit(1)


@app.command(help="Start the metrics API (and the monitor behind it).")
def dashboard(
    host: Optional[str] = typer.Option(None, "--host", help="API server host"),
    port: Optional[int] = typer.Option(None, "--port", help="API server port"),
):
    """Start metrics API server."""
    console.print(Panel.fit("Starting Metrics API", style="bold blue"))
    try:
        from salesmon.apps.dashboard import run_dashboard_server

        settings = _load_settings()
        host = host or settings.dashboard_host
        port = port or settings.dashboard_port
        console.print(f"[cyan]Metrics API will be available at: http://{host}:{port}/api/status[/cyan]")

        asyncio.run(run_dashboard_server(MonitoringSystem(settings), host=host, port=port))
    except KeyboardInterrupt:
        console.print("\n[yellow]Metrics API stopped by user[/yellow]")
    except Exception as e:
        console.print(f"[red]Dashboard error: {e}[/red]")
        logger.exception("Dashboard error")
        sys.exit(1)


if __name__ == "__main__":
    app()
