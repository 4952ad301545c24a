"""
aggregation.py

Temporal aggregation of cleaned incidents: month / year / calendar-month
seasonality / ISO weekday / hour-of-day buckets with counts and arrest rates.

Arrest rate is the share of arrests among incidents whose arrest flag is
known; incidents with an unknown flag are left out of the denominator.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import pandas as pd
from rich.console import Console

from config import TOP_CRIME_TYPES
from crime_pipelines.transform.temporal import add_temporal_features

console = Console()


@dataclass(frozen=True, eq=False)
class TemporalAggregates:
    monthly: pd.DataFrame
    yearly: pd.DataFrame
    seasonal: pd.DataFrame
    weekday: pd.DataFrame
    hourly: Optional[pd.DataFrame]
    crime_type_trends: pd.DataFrame
    heatmap: pd.DataFrame
    summary: Dict[str, Any] = field(default_factory=dict)

    def tables(self) -> Dict[str, pd.DataFrame]:
        """Named tables for persistence (hourly only when hour data exists)."""
        out = {
            "monthly_crimes": self.monthly,
            "yearly_crimes": self.yearly,
            "seasonal_crimes": self.seasonal,
            "weekday_crimes": self.weekday,
            "crime_type_trends": self.crime_type_trends,
            "temporal_heatmap": self.heatmap,
        }
        if self.hourly is not None:
            out["hourly_crimes"] = self.hourly
        return out


def _count_with_arrest_rate(df: pd.DataFrame, key: str) -> pd.DataFrame:
    known = df["arrest"].notna()
    arrested = df["arrest"].fillna(False).astype(bool) & known

    grouped = (
        pd.DataFrame({key: df[key], "known": known.astype(int), "arrested": arrested.astype(int)})
        .groupby(key, sort=True)
        .agg(crime_count=("known", "size"), known=("known", "sum"), arrested=("arrested", "sum"))
        .reset_index()
    )
    grouped["arrest_rate"] = (grouped["arrested"] / grouped["known"]).where(grouped["known"] > 0)
    return grouped[[key, "crime_count", "arrest_rate"]]


def monthly_counts(df: pd.DataFrame, fill_missing_months: bool = False) -> pd.DataFrame:
    """
    One row per calendar month present in the data.

    Months without incidents are absent unless ``fill_missing_months`` is set,
    in which case they appear with a zero count and an unknown arrest rate.
    """
    monthly = _count_with_arrest_rate(df, "year_month")

    if fill_missing_months and not monthly.empty:
        full_range = pd.date_range(monthly["year_month"].min(), monthly["year_month"].max(), freq="MS")
        monthly = (
            monthly.set_index("year_month")
            .reindex(full_range)
            .rename_axis("year_month")
            .reset_index()
        )
        monthly["crime_count"] = monthly["crime_count"].fillna(0).astype(int)

    return monthly


def monthly_series(monthly: pd.DataFrame) -> pd.Series:
    """Regular month-start count series for forecasting; gaps become explicit zeros."""
    if monthly.empty:
        return pd.Series(dtype="float64", name="crime_count")

    series = monthly.set_index("year_month")["crime_count"].astype(float)
    full_range = pd.date_range(series.index.min(), series.index.max(), freq="MS")
    series = series.reindex(full_range, fill_value=0.0)
    series.index.name = "year_month"
    series.name = "crime_count"
    return series


def yearly_counts(df: pd.DataFrame) -> pd.DataFrame:
    return _count_with_arrest_rate(df, "year")


def seasonal_pattern(df: pd.DataFrame) -> pd.DataFrame:
    """Average crimes per calendar month across the distinct years observed."""
    n_years = df["year"].nunique()
    seasonal = (
        df.groupby("month", observed=True)
        .size()
        .rename("total_crimes")
        .reset_index()
        .sort_values("month")
        .reset_index(drop=True)
    )
    seasonal["avg_crimes"] = seasonal["total_crimes"] / max(n_years, 1)
    return seasonal[["month", "avg_crimes", "total_crimes"]]


def weekday_pattern(df: pd.DataFrame) -> pd.DataFrame:
    weekday = (
        df.groupby(["weekday", "weekday_name"], observed=True)
        .size()
        .rename("crime_count")
        .reset_index()
        .sort_values("weekday")
        .reset_index(drop=True)
    )
    weekday["period"] = weekday["weekday"].map(lambda d: "Weekend" if d >= 6 else "Weekday")
    return weekday


def hourly_pattern(df: pd.DataFrame) -> Optional[pd.DataFrame]:
    if "hour" not in df.columns or df["hour"].notna().sum() == 0:
        return None
    return (
        df.dropna(subset=["hour"])
        .groupby("hour")
        .size()
        .rename("crime_count")
        .reset_index()
        .astype({"hour": int})
    )


def top_crime_types(df: pd.DataFrame, n: int = TOP_CRIME_TYPES) -> list:
    counts = df["crime_type"].value_counts().rename("n").reset_index()
    counts.columns = ["crime_type", "n"]
    counts = counts.sort_values(["n", "crime_type"], ascending=[False, True], kind="mergesort")
    return counts["crime_type"].head(n).tolist()


def crime_type_trends(df: pd.DataFrame, n: int = TOP_CRIME_TYPES) -> pd.DataFrame:
    """Monthly counts for the ``n`` most frequent crime types."""
    top = top_crime_types(df, n)
    return (
        df[df["crime_type"].isin(top)]
        .groupby(["year_month", "crime_type"])
        .size()
        .rename("crime_count")
        .reset_index()
    )


def year_month_heatmap(df: pd.DataFrame) -> pd.DataFrame:
    return (
        df.groupby(["year", "month"], observed=True)
        .size()
        .rename("crime_count")
        .reset_index()
    )


def summary_statistics(
    df: pd.DataFrame,
    monthly: pd.DataFrame,
    seasonal: pd.DataFrame,
    weekday: pd.DataFrame,
) -> Dict[str, Any]:
    first, last = df["timestamp"].min(), df["timestamp"].max()
    days_covered = int((last.normalize() - first.normalize()).days)
    total = int(len(df))

    peak_month = seasonal.loc[seasonal["avg_crimes"].idxmax()]
    low_month = seasonal.loc[seasonal["avg_crimes"].idxmin()]
    peak_day = weekday.loc[weekday["crime_count"].idxmax()]
    low_day = weekday.loc[weekday["crime_count"].idxmin()]

    return {
        "total_crimes": total,
        "first_date": first.date().isoformat(),
        "last_date": last.date().isoformat(),
        "days_covered": days_covered,
        "avg_daily_crimes": round(total / max(days_covered, 1), 2),
        "monthly_mean": round(float(monthly["crime_count"].mean()), 2),
        "monthly_median": float(monthly["crime_count"].median()),
        "monthly_min": int(monthly["crime_count"].min()),
        "monthly_max": int(monthly["crime_count"].max()),
        "peak_month": str(peak_month["month"]),
        "peak_month_avg": round(float(peak_month["avg_crimes"]), 2),
        "low_month": str(low_month["month"]),
        "low_month_avg": round(float(low_month["avg_crimes"]), 2),
        "peak_weekday": str(peak_day["weekday_name"]),
        "peak_weekday_count": int(peak_day["crime_count"]),
        "low_weekday": str(low_day["weekday_name"]),
        "low_weekday_count": int(low_day["crime_count"]),
        "unique_crime_types": int(df["crime_type"].nunique()),
    }


def build_temporal_aggregates(
    df: pd.DataFrame,
    fill_missing_months: bool = False,
    top_types: int = TOP_CRIME_TYPES,
) -> TemporalAggregates:
    """Run every temporal aggregation over the cleaned incidents."""
    console.print("\n[bold cyan]Temporal aggregation...[/bold cyan]")

    if "year_month" not in df.columns:
        df = add_temporal_features(df)

    monthly = monthly_counts(df, fill_missing_months=fill_missing_months)
    seasonal = seasonal_pattern(df)
    weekday = weekday_pattern(df)

    aggregates = TemporalAggregates(
        monthly=monthly,
        yearly=yearly_counts(df),
        seasonal=seasonal,
        weekday=weekday,
        hourly=hourly_pattern(df),
        crime_type_trends=crime_type_trends(df, top_types),
        heatmap=year_month_heatmap(df),
        summary=summary_statistics(df, monthly, seasonal, weekday),
    )

    s = aggregates.summary
    console.print(f"[cyan]Date range:[/cyan] {s['first_date']} → {s['last_date']} ({s['days_covered']:,} days)")
    console.print(f"[cyan]Average daily crimes:[/cyan] {s['avg_daily_crimes']}")
    console.print(f"[cyan]Peak month:[/cyan] {s['peak_month']} ({s['peak_month_avg']} avg)")
    console.print(f"[cyan]Peak weekday:[/cyan] {s['peak_weekday']} ({s['peak_weekday_count']:,})")
    console.print("[green]Temporal aggregates built.[/green]")
    return aggregates


__all__ = [
    "TemporalAggregates",
    "monthly_counts",
    "monthly_series",
    "yearly_counts",
    "seasonal_pattern",
    "weekday_pattern",
    "hourly_pattern",
    "top_crime_types",
    "crime_type_trends",
    "year_month_heatmap",
    "summary_statistics",
    "build_temporal_aggregates",
]
