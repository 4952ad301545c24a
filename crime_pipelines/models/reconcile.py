"""
reconcile.py

Turns model outputs into the shared ForecastPoint table and compares models.

Every model reports an 80% interval. When a model does not report a 95%
interval it is derived from the 80% half-width under a Gaussian assumption:

    point ± 1.96 * (upper_80 - point) / 1.28

and then widened where needed so the 95% band always contains the 80% band.
"""

from dataclasses import dataclass
from typing import Dict, Sequence, Tuple

import numpy as np
import pandas as pd
from rich.console import Console
from rich.table import Table

from crime_pipelines.exceptions import ForecastAlignmentError

console = Console()

Z_SCORES = {0.80: 1.28, 0.95: 1.96}
Z_80 = Z_SCORES[0.80]
Z_95 = Z_SCORES[0.95]

FORECAST_COLUMNS = [
    "date",
    "point_forecast",
    "lower_80",
    "upper_80",
    "lower_95",
    "upper_95",
    "model_name",
]

_TOL = 1e-9


@dataclass(frozen=True, eq=False)
class ForecastComparison:
    table: pd.DataFrame
    totals: Dict[str, float]
    difference: float

    def totals_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            {"model_name": list(self.totals), "total_forecast": list(self.totals.values())}
        )

    def wide(self) -> pd.DataFrame:
        """Point forecasts side by side, one column per model."""
        return self.table.pivot(index="date", columns="model_name", values="point_forecast").reset_index()


def derive_95_interval(point, lower_80, upper_80) -> Tuple[np.ndarray, np.ndarray]:
    point = np.asarray(point, dtype=float)
    lower_80 = np.asarray(lower_80, dtype=float)
    upper_80 = np.asarray(upper_80, dtype=float)

    half = Z_95 * (upper_80 - point) / Z_80
    lower_95 = np.minimum(point - half, lower_80)
    upper_95 = np.maximum(point + half, upper_80)
    return lower_95, upper_95


def normalize_forecast(raw, model_name: str = None) -> pd.DataFrame:
    """
    Convert a RawForecast into ForecastPoint rows.

    Raises ValueError when the 80% interval is missing or does not contain
    the point forecast, or when a native 95% interval does not contain the
    80% interval.
    """
    name = model_name or raw.model_name
    point = np.asarray(raw.point, dtype=float)

    if 0.80 not in raw.intervals:
        raise ValueError(f"{name}: an 80% interval is required")
    lower_80, upper_80 = (np.asarray(a, dtype=float) for a in raw.intervals[0.80])

    if len(raw.dates) != len(point) or len(lower_80) != len(point) or len(upper_80) != len(point):
        raise ValueError(f"{name}: dates, point forecast and interval lengths differ")

    if np.any(lower_80 > point + _TOL) or np.any(point > upper_80 + _TOL):
        raise ValueError(f"{name}: point forecast lies outside its 80% interval")

    if 0.95 in raw.intervals:
        lower_95, upper_95 = (np.asarray(a, dtype=float) for a in raw.intervals[0.95])
        if np.any(lower_95 > lower_80 + _TOL) or np.any(upper_95 < upper_80 - _TOL):
            raise ValueError(f"{name}: 95% interval does not contain the 80% interval")
    else:
        lower_95, upper_95 = derive_95_interval(point, lower_80, upper_80)

    return pd.DataFrame({
        "date": pd.DatetimeIndex(raw.dates),
        "point_forecast": point,
        "lower_80": lower_80,
        "upper_80": upper_80,
        "lower_95": lower_95,
        "upper_95": upper_95,
        "model_name": name,
    })[FORECAST_COLUMNS]


def reconcile_forecasts(frames: Sequence[pd.DataFrame]) -> ForecastComparison:
    """
    Merge per-model ForecastPoint tables and compare horizon volumes.

    All models must forecast the same month sequence; anything else raises
    ForecastAlignmentError.
    """
    frames = list(frames)
    if len(frames) < 2:
        raise ValueError(f"Need at least two model forecasts to compare, got {len(frames)}")

    names = [str(f["model_name"].iloc[0]) for f in frames]
    if len(set(names)) != len(names):
        raise ValueError(f"Duplicate model names in comparison: {names}")

    reference = pd.DatetimeIndex(frames[0]["date"])
    for name, frame in zip(names[1:], frames[1:]):
        dates = pd.DatetimeIndex(frame["date"])
        if not dates.equals(reference):
            raise ForecastAlignmentError(
                f"{name} forecasts {[d.date().isoformat() for d in dates]} but "
                f"{names[0]} forecasts {[d.date().isoformat() for d in reference]}"
            )

    table = (
        pd.concat(frames, ignore_index=True)
        .sort_values(["date", "model_name"], kind="mergesort")
        .reset_index(drop=True)
    )
    totals = {name: float(frame["point_forecast"].sum()) for name, frame in zip(names, frames)}
    difference = max(totals.values()) - min(totals.values())

    return ForecastComparison(table=table, totals=totals, difference=difference)


def show_comparison(comparison: ForecastComparison) -> None:
    wide = comparison.wide()
    table = Table(title="Forecast Comparison", show_lines=True)
    table.add_column("Month", style="cyan", no_wrap=True)
    models = [c for c in wide.columns if c != "date"]
    for m in models:
        table.add_column(m, style="green")

    for _, row in wide.iterrows():
        table.add_row(row["date"].strftime("%Y-%m"), *[f"{row[m]:,.0f}" for m in models])

    console.print(table)
    for name, total in comparison.totals.items():
        console.print(f"[cyan]{name} total ({len(wide)} months):[/cyan] {total:,.0f} crimes")
    console.print(f"[cyan]Difference:[/cyan] {comparison.difference:,.0f} crimes")


__all__ = [
    "Z_SCORES",
    "FORECAST_COLUMNS",
    "ForecastComparison",
    "derive_95_interval",
    "normalize_forecast",
    "reconcile_forecasts",
    "show_comparison",
]
