# Adds calendar features: month/year buckets, ISO weekday, quarter, weekend + holiday flags

import calendar

import pandas as pd
import holidays
from rich.console import Console

from config import HOLIDAY_COUNTRY

console = Console()

MONTH_LABELS = list(calendar.month_abbr)[1:]
WEEKDAY_LABELS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]


def add_temporal_features(df: pd.DataFrame, holiday_country: str = HOLIDAY_COUNTRY) -> pd.DataFrame:
    """Add calendar features derived from the incident timestamp."""

    df = df.copy()
    df["timestamp"] = pd.to_datetime(df["timestamp"])
    dt = df["timestamp"].dt

    df["date"] = dt.normalize()
    df["year"] = dt.year
    df["month_num"] = dt.month
    df["month"] = pd.Categorical(
        dt.month.map(lambda m: MONTH_LABELS[m - 1]),
        categories=MONTH_LABELS,
        ordered=True,
    )
    df["day"] = dt.day
    df["quarter"] = dt.quarter

    # ISO weekday: Monday=1 .. Sunday=7
    df["weekday"] = (dt.dayofweek + 1).astype("int8")
    df["weekday_name"] = pd.Categorical(
        dt.dayofweek.map(lambda d: WEEKDAY_LABELS[d]),
        categories=WEEKDAY_LABELS,
        ordered=True,
    )
    df["is_weekend"] = dt.dayofweek >= 5

    df["year_month"] = dt.to_period("M").dt.to_timestamp()
    df["week"] = (df["date"] - pd.to_timedelta(dt.dayofweek, unit="D"))

    years = sorted(df["year"].unique().tolist())
    holiday_dates = holidays.country_holidays(holiday_country, years=years)
    df["is_holiday"] = dt.date.isin(list(holiday_dates.keys()))

    console.print("[green]Temporal features added.[/green]")
    return df


__all__ = ["add_temporal_features", "MONTH_LABELS", "WEEKDAY_LABELS"]
