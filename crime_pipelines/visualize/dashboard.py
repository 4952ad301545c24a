"""
dashboard.py

Filtering and headline metrics behind the Streamlit dashboard, kept free of
streamlit so they can be tested directly.
"""

from typing import Any, Dict, Optional

import numpy as np
import pandas as pd

from config import HIGH_CRIME_QUANTILE, RECENT_WINDOW_MONTHS
from crime_pipelines.transform.hotspots import high_crime_cells

ALL_TYPES = "All"
KM_PER_DEGREE = 111.0


def filter_incidents(
    df: pd.DataFrame,
    start=None,
    end=None,
    crime_type: str = ALL_TYPES,
    arrests_only: bool = False,
) -> pd.DataFrame:
    """
    Apply the sidebar filters.

    ``start`` and ``end`` are inclusive calendar dates; ``crime_type`` of
    "All" keeps every category; ``arrests_only`` keeps incidents with a
    known arrest.
    """
    mask = pd.Series(True, index=df.index)
    day = pd.to_datetime(df["timestamp"]).dt.normalize()

    if start is not None:
        mask &= day >= pd.Timestamp(start).normalize()
    if end is not None:
        mask &= day <= pd.Timestamp(end).normalize()
    if crime_type and crime_type != ALL_TYPES:
        mask &= df["crime_type"] == crime_type
    if arrests_only:
        mask &= df["arrest"].fillna(False).astype(bool)

    return df[mask]


def overview_metrics(df: pd.DataFrame) -> Dict[str, Any]:
    if df.empty:
        return {"total_crimes": 0, "avg_daily_crimes": 0.0, "arrest_rate": None, "top_crime_type": None}

    ts = pd.to_datetime(df["timestamp"])
    days = max(int((ts.max().normalize() - ts.min().normalize()).days), 1)
    known = df["arrest"].dropna()
    arrest_rate = float(known.astype(bool).mean()) if len(known) else None

    counts = df["crime_type"].value_counts()
    top = counts[counts == counts.max()].index.min()

    return {
        "total_crimes": int(len(df)),
        "avg_daily_crimes": round(len(df) / days, 1),
        "arrest_rate": arrest_rate,
        "top_crime_type": str(top),
    }


def monthly_totals(df: pd.DataFrame) -> pd.DataFrame:
    months = pd.to_datetime(df["timestamp"]).dt.to_period("M").dt.to_timestamp()
    return months.value_counts().sort_index().rename_axis("year_month").rename("crime_count").reset_index()


def trend_direction(counts, window: int = RECENT_WINDOW_MONTHS) -> Optional[str]:
    """
    Compare the later half of the last ``window`` months with the earlier half.

    Returns "Increasing", "Decreasing" or "Stable", or None with too little history.
    """
    values = np.asarray(counts, dtype=float)
    if len(values) <= window:
        return None
    recent = values[-window:]
    half = window // 2
    early, late = recent[:half].mean(), recent[-half:].mean()
    if late > early:
        return "Increasing"
    if late < early:
        return "Decreasing"
    return "Stable"


def next_month_forecast(forecast: pd.DataFrame) -> Optional[float]:
    if forecast is None or forecast.empty:
        return None
    return float(forecast.sort_values("date")["point_forecast"].iloc[0])


def forecast_peak_month(forecast: pd.DataFrame) -> Optional[str]:
    if forecast is None or forecast.empty:
        return None
    peak = forecast.loc[forecast["point_forecast"].idxmax(), "date"]
    return pd.Timestamp(peak).strftime("%b %Y")


def geographic_spread_km2(df: pd.DataFrame) -> float:
    """Bounding-box area of the incidents, using 111 km per degree on both axes."""
    if df.empty:
        return 0.0
    lat_range = float(df["latitude"].max() - df["latitude"].min())
    lon_range = float(df["longitude"].max() - df["longitude"].min())
    return round(lat_range * lon_range * KM_PER_DEGREE * KM_PER_DEGREE, 1)


def geospatial_metrics(cells: pd.DataFrame, incidents: pd.DataFrame, quantile: float = HIGH_CRIME_QUANTILE) -> Dict[str, Any]:
    return {
        "high_crime_areas": int(len(high_crime_cells(cells, quantile))),
        "highest_hotspot": int(cells["crime_count"].max()) if len(cells) else 0,
        "geographic_spread_km2": geographic_spread_km2(incidents),
    }


__all__ = [
    "ALL_TYPES",
    "filter_incidents",
    "overview_metrics",
    "monthly_totals",
    "trend_direction",
    "next_month_forecast",
    "forecast_peak_month",
    "geographic_spread_km2",
    "geospatial_metrics",
]
