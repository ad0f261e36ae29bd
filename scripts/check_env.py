"""Script to check monitoring environment configuration."""

import os
import shutil
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from salesmon.core.config import MonitoringSettings
from rich.console import Console
from rich.table import Table
from rich.panel import Panel

console = Console()


def main():
    """Check and display monitoring configuration."""
    console.print(Panel.fit("Monitoring Configuration Check", style="bold blue"))

    try:
        settings = MonitoringSettings.from_env()

        # Collection/persistence table
        table = Table(title="Collection & Persistence")
        table.add_column("Setting", style="cyan")
        table.add_column("Value", style="magenta")
        table.add_column("Status", style="yellow")

        metrics_dir = Path(settings.metrics_dir)
        dir_exists = metrics_dir.is_dir()
        dir_writable = dir_exists and os.access(metrics_dir, os.W_OK)
        table.add_row("Interval", f"{settings.metrics_interval} ms", "OK" if settings.metrics_interval >= 1000 else "WARN")
        table.add_row("CPU Sample Window", f"{settings.cpu_sample_window} s", "OK" if settings.cpu_sample_window == 1.0 else "WARN")
        table.add_row("Metrics Dir", str(metrics_dir), "OK" if dir_writable else ("WARN" if not dir_exists else "FAIL"))
        table.add_row("Max Metrics Files", str(settings.max_metrics_files), "OK")
        table.add_row("Metrics Logging", "Yes" if settings.enable_metrics_logging else "No", "OK" if settings.enable_metrics_logging else "WARN")
        table.add_row("Alerts", "Yes" if settings.enable_alerts else "No", "OK" if settings.enable_alerts else "WARN")

        console.print(table)

        # Thresholds table
        thresholds = settings.thresholds
        threshold_table = Table(title="Alert Thresholds")
        threshold_table.add_column("Metric", style="cyan")
        threshold_table.add_column("Threshold", style="magenta")
        threshold_table.add_row("CPU", f"{thresholds.cpu:g}%")
        threshold_table.add_row("Memory", f"{thresholds.memory:g}%")
        threshold_table.add_row("Response Time", f"{thresholds.response_time:g} ms")
        threshold_table.add_row("Error Rate", f"{thresholds.error_rate:g}%")
        threshold_table.add_row("Queue Size", f"{thresholds.queue_size:g}")

        console.print(threshold_table)

        # Warnings
        warnings = []
        retention_hours = settings.max_metrics_files * settings.metrics_interval / 3_600_000
        if settings.enable_metrics_logging and not dir_exists:
            warnings.append(f"WARNING: {metrics_dir} does not exist yet - it will be created on start")
        if dir_exists and not dir_writable:
            warnings.append(f"WARNING: {metrics_dir} is not writable - snapshots will not be persisted")
        if retention_hours < 1:
            warnings.append(f"WARNING: retention covers only {retention_hours * 60:.0f} minutes of history")
        if dir_exists:
            free_mb = shutil.disk_usage(metrics_dir).free / 1024 ** 2
            if free_mb < 100:
                warnings.append(f"WARNING: only {free_mb:.0f} MB free in {metrics_dir}")

        if warnings:
            console.print("\n[bold yellow]Warnings:[/bold yellow]")
            for warning in warnings:
                console.print(f"  {warning}")
        else:
            console.print("\n[bold green]Configuration looks good![/bold green]")

        console.print(f"\n[dim]Retention: ~{retention_hours:.1f} h of snapshots[/dim]")

    except Exception as e:
        console.print(f"[red]Error loading configuration: {e}[/red]")
        import traceback
        console.print(traceback.format_exc())


if __name__ == "__main__":
    main()
