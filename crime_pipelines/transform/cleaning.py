# Core cleaning: resolve heterogeneous columns into the canonical incident table
import re
from typing import Any, Dict, Optional, Sequence

import numpy as np
import pandas as pd
from dateutil import parser
from rich.console import Console

from crime_pipelines.exceptions import SchemaResolutionError
from crime_pipelines.transform.schema import (
    CANONICAL_COLUMNS,
    UNKNOWN_CRIME_TYPE,
    LAT_MIN,
    LAT_MAX,
    LON_MIN,
    LON_MAX,
)

console = Console()

# Accepted source columns per canonical field, in priority order
COLUMN_ALIASES: Dict[str, Sequence[str]] = {
    "timestamp": ("date", "incident_date", "occurred_date"),
    "crime_type": ("primary_type", "crime_type"),
    "latitude": ("latitude", "lat"),
    "longitude": ("longitude", "lon", "lng"),
    "id": ("id", "incident_id", "case_number"),
    "arrest": ("arrest",),
    "domestic": ("domestic",),
    "location_description": ("location_description",),
    "hour": ("hour",),
}

REQUIRED_FIELDS = ("timestamp", "latitude", "longitude")

TRUE_VALUES = {"true", "t", "yes", "y", "1"}
FALSE_VALUES = {"false", "f", "no", "n", "0"}


def standardize_column_name(col: str) -> str:
    """Convert arbitrary CSV column names into clean_snake_case."""
    col = re.sub(r"(.)([A-Z][a-z]+)", r"\1_\2", col)
    col = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", col)
    col = col.lower()
    col = re.sub(r"[\s\-\.\,\(\)\[\]\{\}]+", "_", col)
    col = re.sub(r"[^\w]", "", col)
    col = re.sub(r"_+", "_", col).strip("_")
    return col


def cleanup_duplicate_columns(df: pd.DataFrame) -> pd.DataFrame:
    """Drop duplicated columns (same name) while preserving first occurrence."""
    seen = set()
    keep = []

    for c in df.columns:
        if c not in seen:
            keep.append(c)
            seen.add(c)
        else:
            console.print(f"[yellow]Dropped duplicate column:[/yellow] {c}")

    return df.loc[:, keep]


def resolve_column(df: pd.DataFrame, field: str, required: bool = False) -> Optional[str]:
    """Return the first alias of ``field`` present in ``df``."""
    aliases = COLUMN_ALIASES[field]
    for alias in aliases:
        if alias in df.columns:
            return alias
    if required:
        raise SchemaResolutionError(field, aliases)
    return None


def resolve_schema(df: pd.DataFrame) -> Dict[str, Optional[str]]:
    """Resolve every canonical field to a source column (None when absent)."""
    return {
        field: resolve_column(df, field, required=field in REQUIRED_FIELDS)
        for field in COLUMN_ALIASES
    }


def parse_incident_date(x: Any) -> pd.Timestamp:
    """
    Safely parse a single date string with an unknown format.
    Falls back to dateutil.parser when possible.
    """
    if pd.isna(x):
        return pd.NaT

    s = str(x).strip()
    if not s or s.lower() in ("nan", "nat", "none"):
        return pd.NaT

    if re.match(r"^\d{1,2}/\d{1,2}/\d{4} \d{1,2}:\d{2}:\d{2} [APMapm]{2}$", s):
        return pd.to_datetime(s, format="%m/%d/%Y %I:%M:%S %p", errors="coerce")

    try:
        ts = pd.Timestamp(parser.parse(s))
    except (ValueError, OverflowError):
        return pd.NaT
    # keep the local wall clock, drop the UTC offset
    return ts.tz_localize(None) if ts.tzinfo is not None else ts


def parse_timestamps(s: pd.Series) -> pd.Series:
    """Vectorized parse with a per-value dateutil fallback for stragglers."""
    if pd.api.types.is_datetime64_any_dtype(s):
        parsed = pd.to_datetime(s)
    else:
        try:
            parsed = pd.to_datetime(s, errors="coerce", format="mixed")
        except ValueError:
            # more than one UTC offset in the column; parse value by value
            parsed = pd.Series(pd.NaT, index=s.index, dtype="datetime64[ns]")
        if not pd.api.types.is_datetime64_any_dtype(parsed):
            parsed = pd.Series(pd.NaT, index=s.index, dtype="datetime64[ns]")
        if getattr(parsed.dt, "tz", None) is not None:
            parsed = parsed.dt.tz_localize(None)

        retry = parsed.isna() & s.notna()
        if retry.any():
            parsed = parsed.astype(object)
            parsed.loc[retry] = s.loc[retry].apply(parse_incident_date)
            parsed = pd.to_datetime(parsed, errors="coerce")

    if getattr(parsed.dt, "tz", None) is not None:
        parsed = parsed.dt.tz_localize(None)
    return parsed


def parse_bool(s: pd.Series) -> pd.Series:
    """Map common truthy/falsy spellings to a nullable boolean; anything else is unknown."""
    if pd.api.types.is_bool_dtype(s):
        return s.astype("boolean")

    def _convert(v):
        if pd.isna(v):
            return pd.NA
        token = str(v).strip().lower()
        if token in TRUE_VALUES:
            return True
        if token in FALSE_VALUES:
            return False
        return pd.NA

    return s.map(_convert).astype("boolean")


def _clean_labels(s: pd.Series) -> pd.Series:
    labels = s.astype("string").str.strip()
    return labels.mask(labels == "")


def clean_crime_data(raw: pd.DataFrame, log=None) -> pd.DataFrame:
    """
    Normalize raw heterogeneous rows into the canonical incident table.

    Steps:
        1. Standardize column names and resolve aliases per field
        2. Parse timestamps; drop unparseable rows
        3. Coerce coordinates; drop missing, zero or out-of-range rows
        4. Title-case crime types (missing -> "Unknown")
        5. Parse arrest / domestic flags (unknown stays NA)
    """
    console.print("\n[bold cyan]Cleaning crime data...[/bold cyan]")

    df = raw.copy()
    df.columns = [standardize_column_name(str(c)) for c in df.columns]
    df = cleanup_duplicate_columns(df)
    cols = resolve_schema(df)

    total_rows = len(df)
    out = pd.DataFrame(index=df.index)

    if cols["id"] is not None:
        out["id"] = df[cols["id"]].astype(str).str.strip()
    else:
        out["id"] = [str(i) for i in range(1, total_rows + 1)]

    out["timestamp"] = parse_timestamps(df[cols["timestamp"]])

    if cols["crime_type"] is not None:
        out["crime_type"] = _clean_labels(df[cols["crime_type"]]).str.title().fillna(UNKNOWN_CRIME_TYPE)
    else:
        console.print(f"[yellow]No crime type column; labelling all rows '{UNKNOWN_CRIME_TYPE}'.[/yellow]")
        out["crime_type"] = UNKNOWN_CRIME_TYPE
    out["crime_type"] = out["crime_type"].astype(str)

    out["latitude"] = pd.to_numeric(df[cols["latitude"]], errors="coerce").astype("float64")
    out["longitude"] = pd.to_numeric(df[cols["longitude"]], errors="coerce").astype("float64")

    for flag in ("arrest", "domestic"):
        if cols[flag] is not None:
            out[flag] = parse_bool(df[cols[flag]])
        else:
            out[flag] = pd.Series(pd.NA, index=df.index, dtype="boolean")

    if cols["location_description"] is not None:
        out["location_description"] = _clean_labels(df[cols["location_description"]])
    else:
        out["location_description"] = pd.Series(pd.NA, index=df.index, dtype="string")

    if cols["hour"] is not None:
        hour = pd.to_numeric(df[cols["hour"]], errors="coerce")
        out["hour"] = hour.where(hour.between(0, 23) & (hour % 1 == 0)).astype("Int64")
    else:
        ts = out["timestamp"]
        has_time = (ts.dropna() != ts.dropna().dt.normalize()).any()
        out["hour"] = ts.dt.hour.astype("Int64") if has_time else pd.Series(pd.NA, index=df.index, dtype="Int64")

    bad_date = out["timestamp"].isna()
    lat, lon = out["latitude"], out["longitude"]
    bad_coords = (
        lat.isna()
        | lon.isna()
        | (lat == 0)
        | (lon == 0)
        | ~lat.between(LAT_MIN, LAT_MAX)
        | ~lon.between(LON_MIN, LON_MAX)
    )

    cleaned = out[~bad_date & ~bad_coords]
    cleaned = cleaned.sort_values("timestamp", kind="mergesort").reset_index(drop=True)
    cleaned = cleaned[CANONICAL_COLUMNS]

    console.print(f"[cyan]Original records: {total_rows:,}")
    console.print(f"[yellow]Dropped invalid dates: {int(bad_date.sum()):,}")
    console.print(f"[yellow]Dropped invalid coordinates: {int((bad_coords & ~bad_date).sum()):,}")
    console.print(f"[green]Cleaned records: {len(cleaned):,}")
    console.print(f"[red]Records removed: {total_rows - len(cleaned):,}")

    if log is not None:
        log.log_step("Cleaned incidents", cleaned)

    return cleaned


__all__ = [
    "COLUMN_ALIASES",
    "standardize_column_name",
    "cleanup_duplicate_columns",
    "resolve_column",
    "resolve_schema",
    "parse_incident_date",
    "parse_timestamps",
    "parse_bool",
    "clean_crime_data",
]
