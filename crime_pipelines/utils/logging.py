# Logging utilities for pipeline steps and stage outcomes.

from typing import List, Dict, Any, Optional
import pandas as pd
from rich.console import Console
from rich.table import Table

console = Console()

STAGE_STYLES = {
    "success": "green",
    "partial": "yellow",
    "skipped": "dim",
    "failed": "bold red",
}


class PipelineLog:
    """Step shapes and per-stage outcomes for one pipeline run."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or globals()["console"]
        self.steps: List[Dict[str, Any]] = []
        self.stages: List[Dict[str, str]] = []

    def log_step(self, step_name: str, df: Any) -> None:
        """
        Log pipeline step name + shape.

        Parameters:
            step_name: Description of the pipeline step
            df: DataFrame to log (anything else is logged as N/A)
        """
        if not isinstance(df, pd.DataFrame):
            rows_val: Any = "N/A"
            cols_val: Any = "N/A"
        else:
            rows_val = int(df.shape[0])
            cols_val = int(df.shape[1])

        rows_str = f"{rows_val:,}" if isinstance(rows_val, int) else rows_val
        self.steps.append({"step": step_name, "rows": rows_val, "cols": cols_val})
        self.console.print(f"[green]{step_name}[/green] [cyan]shape: {rows_str} x {cols_val}[/cyan]")

    def record_stage(self, stage: str, status: str, detail: str = "") -> None:
        if status not in STAGE_STYLES:
            raise ValueError(f"Unknown stage status '{status}'")
        self.stages.append({"stage": stage, "status": status, "detail": detail})
        style = STAGE_STYLES[status]
        suffix = f" - {detail}" if detail else ""
        self.console.print(f"[{style}]{stage}: {status.upper()}[/{style}]{suffix}")

    def stage_status(self, stage: str) -> Optional[str]:
        for entry in reversed(self.stages):
            if entry["stage"] == stage:
                return entry["status"]
        return None

    @property
    def failed_stages(self) -> List[str]:
        return [s["stage"] for s in self.stages if s["status"] == "failed"]

    def show_pipeline_table(self) -> None:
        """Pretty-print step log as a table."""
        if not self.steps:
            self.console.print("[red]No pipeline steps logged yet.[/red]")
            return

        table = Table(title="Data Pipeline Summary", show_lines=True)
        table.add_column("Step", style="cyan", no_wrap=True)
        table.add_column("Rows", style="green")
        table.add_column("Cols", style="yellow")

        for entry in self.steps:
            rows_val = entry["rows"]
            cols_val = entry["cols"]
            rows_str = f"{rows_val:,}" if isinstance(rows_val, int) else str(rows_val)
            cols_str = f"{cols_val:,}" if isinstance(cols_val, int) else str(cols_val)
            table.add_row(entry["step"], rows_str, cols_str)

        self.console.print(table)

    def show_run_summary(self) -> None:
        """Per-stage success/failure report for the run."""
        table = Table(title="Run Summary", show_lines=True)
        table.add_column("Stage", style="cyan", no_wrap=True)
        table.add_column("Status")
        table.add_column("Detail", style="white")

        for entry in self.stages:
            style = STAGE_STYLES[entry["status"]]
            table.add_row(entry["stage"], f"[{style}]{entry['status']}[/{style}]", entry["detail"])

        self.console.print(table)

    def clear(self) -> None:
        self.steps = []
        self.stages = []
        self.console.print("[yellow]Pipeline log cleared.[/yellow]")


__all__ = ["PipelineLog", "console", "STAGE_STYLES"]
