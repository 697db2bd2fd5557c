"""Console rendering helpers for the dualstore CLI."""
from __future__ import annotations

from typing import Any, Dict

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .models import UploadResult, UploadStatus

console = Console()

_STATUS_STYLES = {
    UploadStatus.FULL_SUCCESS: ("green", "stored in S3 and IPFS"),
    UploadStatus.PARTIAL_SUCCESS: ("yellow", "stored in one backend only"),
    UploadStatus.FULL_FAILURE: ("red", "not stored"),
}


def _human_size(value: int) -> str:
    size = float(max(value, 0))
    units = ["B", "KB", "MB", "GB", "TB"]
    unit_idx = 0
    while size >= 1024.0 and unit_idx < len(units) - 1:
        size /= 1024.0
        unit_idx += 1
    if unit_idx == 0:
        return f"{int(size)} {units[unit_idx]}"
    return f"{size:.2f} {units[unit_idx]}"


def render_configuration_summary(config: Dict[str, Any]) -> None:
    """Render startup configuration summary."""
    table = Table.grid(padding=(0, 2))
    table.add_column(style="bold cyan", justify="right")
    table.add_column(style="white")

    for key, value in config.items():
        rendered = "-" if value is None else str(value)
        table.add_row(key, rendered)

    panel = Panel(
        table,
        title="[bold green]dualstore[/bold green]",
        subtitle="[dim]S3 + IPFS uploader[/dim]",
        border_style="blue",
    )
    console.print(panel)


def render_upload_result(result: UploadResult, filename: str) -> None:
    """Render the per-backend outcome of one upload."""
    color, summary = _STATUS_STYLES[result.status]

    table = Table(show_header=True, header_style="bold")
    table.add_column("Backend")
    table.add_column("Result")
    table.add_column("Detail", overflow="fold")

    for outcome in result.outcomes:
        if outcome.success:
            table.add_row(outcome.target.value, "[green]ok[/green]", outcome.identifier)
        else:
            table.add_row(
                outcome.target.value,
                f"[red]{outcome.error_kind.value}[/red]",
                outcome.message or "",
            )

    footer = f"{_human_size(result.size)} in {result.elapsed:.2f}s"
    if result.checksum:
        footer += f"  blake3={result.checksum[:16]}..."

    console.print(
        Panel(
            table,
            title=f"[bold {color}]{filename}: {summary}[/bold {color}]",
            subtitle=f"[dim]{footer}[/dim]",
            border_style=color,
        )
    )
