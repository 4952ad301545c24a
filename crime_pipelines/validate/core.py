# Core data validation checks for the crime analytics pipeline

from typing import Any, Dict

import pandas as pd
from rich.console import Console
from rich.table import Table

from crime_pipelines.exceptions import EmptyResultError
from crime_pipelines.transform.schema import LAT_MIN, LAT_MAX, LON_MIN, LON_MAX

console = Console()


def require_rows(df: pd.DataFrame, stage: str) -> pd.DataFrame:
    """Fail the stage when its input table is missing or has no rows."""
    if df is None or len(df) == 0:
        raise EmptyResultError(f"{stage}: no incidents to process")
    return df


def require_artifact(value: Any, name: str, stage: str) -> Any:
    """Fail the stage when an upstream artifact was never produced."""
    if value is None:
        raise EmptyResultError(f"{stage}: upstream artifact '{name}' is not available")
    return value


def run_validation_checks(df: pd.DataFrame, step_name: str) -> Dict[str, bool]:
    """
    Key integrity checks on the canonical incident table:
    - id uniqueness
    - timestamps never null
    - coordinate bounds and the 0 sentinel
    - hour within 0..23 where present

    Returns a mapping of check name to pass/fail.
    """
    results: Dict[str, bool] = {}

    duplicates = int(df.duplicated(subset=["id"]).sum()) if "id" in df.columns else 0
    results["id_unique"] = duplicates == 0
    if duplicates:
        console.print(f"[bold yellow]WARNING: {step_name} - {duplicates:,} duplicate ids.[/bold yellow]")
    else:
        console.print(f"[green]PASS: {step_name} - id unique.[/green]")

    null_ts = int(df["timestamp"].isna().sum())
    results["timestamp_not_null"] = null_ts == 0
    if null_ts:
        console.print(f"[bold red]FAIL: {step_name} - {null_ts:,} null timestamps.[/bold red]")
    else:
        console.print(f"[green]PASS: {step_name} - timestamps complete.[/green]")

    lat, lon = df["latitude"], df["longitude"]
    bad_coords = int(
        (
            ~lat.between(LAT_MIN, LAT_MAX)
            | ~lon.between(LON_MIN, LON_MAX)
            | ((lat == 0) & (lon == 0))
        ).sum()
    )
    results["coordinates_valid"] = bad_coords == 0
    if bad_coords:
        console.print(f"[bold red]FAIL: {step_name} - {bad_coords:,} rows with invalid coordinates.[/bold red]")
    else:
        console.print(f"[green]PASS: {step_name} - coordinates within bounds.[/green]")

    if "hour" in df.columns:
        hour = df["hour"].dropna()
        bad_hour = int((~hour.between(0, 23)).sum())
        results["hour_in_range"] = bad_hour == 0
        if bad_hour:
            console.print(f"[bold red]FAIL: {step_name} - {bad_hour:,} hours outside 0..23.[/bold red]")

    return results


def show_missing_summary(df: pd.DataFrame, step_name: str) -> None:
    """Missing value counts per column."""
    table = Table(
        title=f"{step_name} - Missing Data",
        show_header=True,
        header_style="bold magenta",
    )
    table.add_column("Column", style="cyan")
    table.add_column("Missing", justify="right", style="red")
    table.add_column("Share", justify="right", style="yellow")

    n = max(len(df), 1)
    for col in df.columns:
        missing = int(df[col].isna().sum())
        table.add_row(col, f"{missing:,}", f"{missing / n * 100:.1f}%")

    console.print(table)


def run_validations(df: pd.DataFrame, step_name: str = "Cleaned incidents") -> pd.DataFrame:
    """
    Run the incident checks and missingness report.

    Returns:
        Original DataFrame (unmodified)
    """
    console.print("\n[bold cyan]=== VALIDATION START ===[/bold cyan]\n")
    run_validation_checks(df, step_name)
    show_missing_summary(df, step_name)
    console.print("\n[green]Validation completed.[/green]\n")
    return df


__all__ = [
    "require_rows",
    "require_artifact",
    "run_validation_checks",
    "show_missing_summary",
    "run_validations",
]
