# crime_pipelines/models/forecast_master.py
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

import pandas as pd
from rich.console import Console
from rich.table import Table
from rich import box

from crime_pipelines.exceptions import ExternalModelError
from crime_pipelines.models.forecasting import Forecaster, RawForecast
from crime_pipelines.models.reconcile import (
    ForecastComparison,
    normalize_forecast,
    reconcile_forecasts,
    show_comparison,
)

console = Console()


@dataclass(eq=False)
class ForecastRun:
    """Outcome of the forecasting stage: per-model tables, failures and the comparison."""

    forecasts: Dict[str, pd.DataFrame] = field(default_factory=dict)
    raw: Dict[str, RawForecast] = field(default_factory=dict)
    unavailable: Dict[str, str] = field(default_factory=dict)
    comparison: Optional[ForecastComparison] = None
    skipped_reason: Optional[str] = None

    @property
    def complete(self) -> bool:
        return not self.unavailable and bool(self.forecasts)

    def diagnostics(self) -> pd.DataFrame:
        rows = [{"model_name": name, **r.diagnostics} for name, r in self.raw.items()]
        return pd.DataFrame(rows)


def create_diagnostics_table(run: ForecastRun) -> Table:
    table = Table(title="Forecast Models", box=box.ROUNDED, header_style="bold magenta")
    table.add_column("Model", style="cyan", no_wrap=True)
    table.add_column("Configuration", style="white")
    table.add_column("RMSE", style="green")
    table.add_column("MAPE %", style="green")
    table.add_column("AIC", style="yellow")

    for name, raw in run.raw.items():
        d = raw.diagnostics
        table.add_row(
            name,
            str(d.get("model", "")),
            f"{d['rmse']:.2f}" if "rmse" in d else "-",
            f"{d['mape']:.2f}" if "mape" in d else "-",
            f"{d['aic']:.2f}" if "aic" in d else "-",
        )
    for name, reason in run.unavailable.items():
        table.add_row(name, f"[red]{reason}[/red]", "-", "-", "-")
    return table


def run_forecasts(
    series: pd.Series,
    forecasters: Sequence[Forecaster],
    horizon: int,
    log=None,
) -> ForecastRun:
    """
    Fit every configured model on the monthly series and reconcile their output.

    A model whose library fails, or whose output has unusable intervals, is
    recorded as unavailable; the others are still kept. Reconciliation only
    runs when every model produced a forecast.
    """
    console.print("\n[bold cyan]=== FORECASTING START ===[/bold cyan]\n")
    console.print(
        f"[cyan]Training months:[/cyan] {len(series)} "
        f"({series.index.min():%Y-%m} → {series.index.max():%Y-%m}); horizon {horizon}"
    )

    run = ForecastRun()

    for forecaster in forecasters:
        name = forecaster.name
        console.print(f"\n[bold]Fitting {name}...[/bold]")
        try:
            raw = forecaster.fit_predict(series, horizon)
        except ExternalModelError as e:
            console.print(f"[red]{e}[/red]")
            run.unavailable[name] = str(e)
            continue

        try:
            frame = normalize_forecast(raw, name)
        except ValueError as e:
            error = ExternalModelError(name, f"invalid forecast output: {e}")
            console.print(f"[red]{error}[/red]")
            run.unavailable[name] = str(error)
            continue
        run.raw[name] = raw
        run.forecasts[name] = frame
        if log is not None:
            log.log_step(f"{name} forecast", frame)

        for _, row in frame.iterrows():
            console.print(
                f"  {row['date']:%Y-%m}: {row['point_forecast']:,.0f} "
                f"[dim](80% CI: {row['lower_80']:,.0f}-{row['upper_80']:,.0f})[/dim]"
            )

    if run.unavailable:
        missing = ", ".join(sorted(run.unavailable))
        run.skipped_reason = f"model comparison skipped: {missing} unavailable"
        console.print(f"[yellow]{run.skipped_reason}[/yellow]")
    elif len(run.forecasts) < 2:
        run.skipped_reason = "model comparison needs at least two models"
        console.print(f"[yellow]{run.skipped_reason}[/yellow]")
    else:
        run.comparison = reconcile_forecasts(list(run.forecasts.values()))
        show_comparison(run.comparison)

    console.print(create_diagnostics_table(run))
    return run


__all__ = ["ForecastRun", "run_forecasts", "create_diagnostics_table"]
