"""
charts.py

Static PNG charts for the temporal, forecast and hotspot results
(matplotlib + seaborn, Agg backend).

Each chart function writes one file and returns its path. A file that
cannot be written raises RenderError; render_charts records those per
chart and keeps going.
"""

from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns
from rich.console import Console
from sklearn.neighbors import KernelDensity
from statsmodels.nonparametric.smoothers_lowess import lowess
from statsmodels.tsa.seasonal import seasonal_decompose

from config import SEASONAL_PERIOD, MAP_SAMPLE_HEATMAP
from crime_pipelines.exceptions import RenderError
from crime_pipelines.transform.temporal import MONTH_LABELS
from crime_pipelines.visualize.sampling import RandomSampler, SamplingStrategy

console = Console()

DPI = 150
MODEL_COLORS = {"ARIMA": "#1f77b4", "Prophet": "#2ca02c", "Naive": "#7f7f7f"}
CHART_NUMBERS = {"ARIMA": "08", "Prophet": "09"}

sns.set(style="whitegrid")


def _save(fig, path: Path) -> Path:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fig.tight_layout()
        fig.savefig(path, dpi=DPI, bbox_inches="tight")
    except OSError as e:
        raise RenderError(f"Could not write chart {path}: {e}") from e
    finally:
        plt.close(fig)
    console.print(f"[dim cyan]  Saved: {path.name}[/dim cyan]")
    return path


def plot_monthly_trend(monthly: pd.DataFrame, path: Path) -> Path:
    fig, ax = plt.subplots(figsize=(12, 6))
    x = pd.to_datetime(monthly["year_month"])
    y = monthly["crime_count"].astype(float)
    ax.plot(x, y, color="steelblue", linewidth=1.2, label="Monthly crimes")
    ax.scatter(x, y, color="darkblue", s=12)

    if len(monthly) >= 3:
        smoothed = lowess(y.to_numpy(), x.map(pd.Timestamp.toordinal).to_numpy(), frac=0.3, return_sorted=False)
        ax.plot(x, smoothed, color="red", linestyle="--", linewidth=1.5, label="LOWESS trend")

    ax.set_title(f"Monthly Crime Trends Over Time ({x.min():%Y-%m} to {x.max():%Y-%m})")
    ax.set_xlabel("Date")
    ax.set_ylabel("Number of Crimes")
    ax.legend()
    return _save(fig, path)


def plot_yearly_totals(yearly: pd.DataFrame, path: Path) -> Path:
    fig, ax = plt.subplots(figsize=(10, 6))
    sns.barplot(x="year", y="crime_count", data=yearly, color="steelblue", ax=ax)
    for container in ax.containers:
        ax.bar_label(container, fmt="{:,.0f}")
    ax.set_title("Total Crimes by Year")
    ax.set_xlabel("Year")
    ax.set_ylabel("Total Crimes")
    return _save(fig, path)


def plot_seasonal_pattern(seasonal: pd.DataFrame, path: Path) -> Path:
    fig, ax = plt.subplots(figsize=(10, 6))
    sns.barplot(x="month", y="avg_crimes", data=seasonal, order=MONTH_LABELS, color="teal", ax=ax)
    ax.set_title("Average Monthly Crime Patterns (Seasonality)")
    ax.set_xlabel("Month")
    ax.set_ylabel("Average Crimes per Month")
    return _save(fig, path)


def plot_weekday_pattern(weekday: pd.DataFrame, path: Path) -> Path:
    fig, ax = plt.subplots(figsize=(10, 6))
    colors = ["coral" if p == "Weekend" else "steelblue" for p in weekday["period"]]
    ax.bar(weekday["weekday_name"].astype(str), weekday["crime_count"], color=colors)
    ax.set_title("Crime Distribution by Day of Week (weekend highlighted)")
    ax.set_xlabel("Day of Week")
    ax.set_ylabel("Total Crimes")
    return _save(fig, path)


def plot_hourly_pattern(hourly: pd.DataFrame, path: Path) -> Path:
    fig, ax = plt.subplots(figsize=(10, 6))
    ax.plot(hourly["hour"], hourly["crime_count"], color="darkred", marker="o")
    ax.fill_between(hourly["hour"], hourly["crime_count"], color="darkred", alpha=0.15)
    ax.set_xticks(range(0, 24, 2))
    ax.set_title("Crime Distribution by Hour of Day")
    ax.set_xlabel("Hour of Day")
    ax.set_ylabel("Total Crimes")
    return _save(fig, path)


def plot_crime_type_trends(trends: pd.DataFrame, path: Path) -> Path:
    fig, ax = plt.subplots(figsize=(12, 6))
    sns.lineplot(x="year_month", y="crime_count", hue="crime_type", data=trends, ax=ax)
    ax.set_title("Top 5 Crime Types: Trends Over Time")
    ax.set_xlabel("Date")
    ax.set_ylabel("Number of Crimes")
    ax.legend(title="Crime Type", loc="upper left", bbox_to_anchor=(1, 1))
    return _save(fig, path)


def plot_temporal_heatmap(heatmap: pd.DataFrame, path: Path) -> Path:
    pivot = heatmap.pivot_table(index="year", columns="month", values="crime_count", observed=False)
    pivot = pivot.reindex(columns=MONTH_LABELS)
    fig, ax = plt.subplots(figsize=(12, 8))
    sns.heatmap(pivot, cmap="YlOrRd", annot=True, fmt=".0f", linewidths=0.5, ax=ax)
    ax.set_title("Crime Heatmap: Year vs Month")
    ax.set_xlabel("Month")
    ax.set_ylabel("Year")
    return _save(fig, path)


def plot_forecast(series: pd.Series, forecast: pd.DataFrame, path: Path, subtitle: str = "") -> Path:
    """History plus one model's point forecast with 80% and 95% bands."""
    name = str(forecast["model_name"].iloc[0])
    color = MODEL_COLORS.get(name, "purple")

    fig, ax = plt.subplots(figsize=(12, 6))
    ax.plot(series.index, series.values, color="black", linewidth=1, label="Historical")
    ax.fill_between(forecast["date"], forecast["lower_95"], forecast["upper_95"], color=color, alpha=0.15, label="95% interval")
    ax.fill_between(forecast["date"], forecast["lower_80"], forecast["upper_80"], color=color, alpha=0.3, label="80% interval")
    ax.plot(forecast["date"], forecast["point_forecast"], color=color, linewidth=2, label="Forecast")

    title = f"{name} Crime Forecast ({len(forecast)} Months)"
    ax.set_title(f"{title}\n{subtitle}" if subtitle else title)
    ax.set_xlabel("Date")
    ax.set_ylabel("Number of Crimes")
    ax.legend(loc="upper left")
    return _save(fig, path)


def plot_model_comparison(series: pd.Series, table: pd.DataFrame, path: Path, history_months: int = 24) -> Path:
    fig, ax = plt.subplots(figsize=(12, 6))
    recent = series.tail(history_months)
    ax.plot(recent.index, recent.values, color="black", linewidth=1.5, label="Historical")

    for name, frame in table.groupby("model_name", sort=True):
        ax.plot(
            frame["date"],
            frame["point_forecast"],
            color=MODEL_COLORS.get(name, "purple"),
            marker="o",
            linestyle="--",
            linewidth=2,
            label=name,
        )

    ax.set_title("Comparison: " + " vs ".join(sorted(table["model_name"].unique())) + " Forecasts")
    ax.set_xlabel("Date")
    ax.set_ylabel("Number of Crimes")
    ax.legend()
    return _save(fig, path)


def plot_decomposition(series: pd.Series, path: Path, period: int = SEASONAL_PERIOD) -> Optional[Path]:
    """Trend / seasonal / residual decomposition; None when fewer than two cycles exist."""
    if len(series) < 2 * period:
        console.print(f"[yellow]Decomposition skipped: {len(series)} months < {2 * period}[/yellow]")
        return None

    model = "multiplicative" if (series > 0).all() else "additive"
    result = seasonal_decompose(series, model=model, period=period)
    fig = result.plot()
    fig.set_size_inches(12, 10)
    fig.suptitle(f"Time Series Decomposition ({model})", y=1.01)
    return _save(fig, path)


def plot_kde_density(
    incidents: pd.DataFrame,
    path: Path,
    sampler: Optional[SamplingStrategy] = None,
    n: int = MAP_SAMPLE_HEATMAP,
    bandwidth: float = 0.01,
) -> Path:
    sampler = sampler or RandomSampler()
    pts = sampler.sample(incidents[["longitude", "latitude"]].dropna(), n)
    xy = pts.to_numpy(dtype=float)

    kde = KernelDensity(bandwidth=bandwidth, kernel="gaussian").fit(xy)
    xmin, ymin = xy.min(axis=0)
    xmax, ymax = xy.max(axis=0)
    x_margin = (xmax - xmin) * 0.05 or bandwidth
    y_margin = (ymax - ymin) * 0.05 or bandwidth
    xmin, xmax, ymin, ymax = xmin - x_margin, xmax + x_margin, ymin - y_margin, ymax + y_margin

    xx, yy = np.mgrid[xmin:xmax:200j, ymin:ymax:200j]
    grid_points = np.vstack([xx.ravel(), yy.ravel()]).T
    z = np.exp(kde.score_samples(grid_points)).reshape(xx.shape)

    fig, ax = plt.subplots(figsize=(10, 10))
    im = ax.imshow(z.T, extent=[xmin, xmax, ymin, ymax], origin="lower", cmap="hot", alpha=0.85, aspect="auto")
    fig.colorbar(im, ax=ax, label="Crime density", shrink=0.7)
    ax.set_title("Crime Density (KDE)")
    ax.set_xlabel("Longitude")
    ax.set_ylabel("Latitude")
    return _save(fig, path)


def plot_hotspot_bubbles(cells: pd.DataFrame, path: Path, label_top: int = 10) -> Path:
    fig, ax = plt.subplots(figsize=(10, 10))
    counts = cells["crime_count"].astype(float)
    sc = ax.scatter(
        cells["centroid_lon"],
        cells["centroid_lat"],
        s=20 + 300 * counts / max(counts.max(), 1),
        c=counts,
        cmap="Reds",
        alpha=0.7,
        edgecolors="darkred",
        linewidths=0.4,
    )
    for _, row in cells.head(label_top).iterrows():
        ax.annotate(
            f"#{int(row['rank'])}",
            (row["centroid_lon"], row["centroid_lat"]),
            fontsize=8,
            xytext=(4, 4),
            textcoords="offset points",
        )
    fig.colorbar(sc, ax=ax, label="Crimes per cell", shrink=0.7)
    ax.set_title("Crime Hotspots (grid cells)")
    ax.set_xlabel("Longitude")
    ax.set_ylabel("Latitude")
    return _save(fig, path)


def render_charts(
    plots_dir: Path,
    aggregates=None,
    series: Optional[pd.Series] = None,
    forecast_run=None,
    hotspots=None,
    incidents: Optional[pd.DataFrame] = None,
    sampler: Optional[SamplingStrategy] = None,
) -> Tuple[Dict[str, Path], Dict[str, str]]:
    """
    Render every chart whose inputs are available.

    Returns:
        (written, failed): chart name -> path, chart name -> error message
    """
    console.print("\n[bold cyan]Rendering charts...[/bold cyan]")
    plots_dir = Path(plots_dir)
    jobs: List[Tuple[str, Callable[[], Optional[Path]]]] = []

    if aggregates is not None:
        jobs += [
            ("01_monthly_trends", lambda: plot_monthly_trend(aggregates.monthly, plots_dir / "01_monthly_trends.png")),
            ("02_yearly_trends", lambda: plot_yearly_totals(aggregates.yearly, plots_dir / "02_yearly_trends.png")),
            ("03_seasonal_patterns", lambda: plot_seasonal_pattern(aggregates.seasonal, plots_dir / "03_seasonal_patterns.png")),
            ("04_weekday_patterns", lambda: plot_weekday_pattern(aggregates.weekday, plots_dir / "04_weekday_patterns.png")),
            ("06_crime_type_trends", lambda: plot_crime_type_trends(aggregates.crime_type_trends, plots_dir / "06_crime_type_trends.png")),
            ("07_temporal_heatmap", lambda: plot_temporal_heatmap(aggregates.heatmap, plots_dir / "07_temporal_heatmap.png")),
        ]
        if aggregates.hourly is not None:
            jobs.append(("05_hourly_patterns", lambda: plot_hourly_pattern(aggregates.hourly, plots_dir / "05_hourly_patterns.png")))

    if series is not None and len(series):
        jobs.append(("12_decomposition", lambda: plot_decomposition(series, plots_dir / "12_decomposition.png")))

    if forecast_run is not None and series is not None:
        for name, frame in forecast_run.forecasts.items():
            stem = f"{CHART_NUMBERS[name]}_{name.lower()}_forecast" if name in CHART_NUMBERS else f"{name.lower()}_forecast"
            raw = forecast_run.raw.get(name)
            subtitle = str(raw.diagnostics.get("model", "")) if raw is not None else ""
            jobs.append((stem, lambda f=frame, s=stem, t=subtitle: plot_forecast(series, f, plots_dir / f"{s}.png", t)))
        if forecast_run.comparison is not None:
            table = forecast_run.comparison.table
            jobs.append(("11_model_comparison", lambda: plot_model_comparison(series, table, plots_dir / "11_model_comparison.png")))

    if incidents is not None and len(incidents):
        jobs.append(("13_kde_density", lambda: plot_kde_density(incidents, plots_dir / "13_kde_density.png", sampler)))

    if hotspots is not None and len(hotspots.cells):
        jobs.append(("14_hotspot_bubbles", lambda: plot_hotspot_bubbles(hotspots.cells, plots_dir / "14_hotspot_bubbles.png")))

    written: Dict[str, Path] = {}
    failed: Dict[str, str] = {}
    for name, job in jobs:
        try:
            path = job()
        except RenderError as e:
            console.print(f"[red]{e}[/red]")
            failed[name] = str(e)
            continue
        if path is not None:
            written[name] = path

    console.print(f"[green]Charts written: {len(written)}[/green]" + (f" [red]failed: {len(failed)}[/red]" if failed else ""))
    return written, failed


__all__ = [
    "plot_monthly_trend",
    "plot_yearly_totals",
    "plot_seasonal_pattern",
    "plot_weekday_pattern",
    "plot_hourly_pattern",
    "plot_crime_type_trends",
    "plot_temporal_heatmap",
    "plot_forecast",
    "plot_model_comparison",
    "plot_decomposition",
    "plot_kde_density",
    "plot_hotspot_bubbles",
    "render_charts",
]
