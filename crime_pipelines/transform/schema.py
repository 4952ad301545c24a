# Canonical incident schema shared by cleaning, persistence and the dashboard

import pandas as pd

CANONICAL_COLUMNS = [
    "id",
    "timestamp",
    "crime_type",
    "latitude",
    "longitude",
    "arrest",
    "domestic",
    "location_description",
    "hour",
]

UNKNOWN_CRIME_TYPE = "Unknown"

LAT_MIN, LAT_MAX = -90.0, 90.0
LON_MIN, LON_MAX = -180.0, 180.0


def coerce_canonical(df: pd.DataFrame) -> pd.DataFrame:
    """Cast a canonical incident table (e.g. read back from CSV) to its fixed dtypes."""
    missing = [c for c in CANONICAL_COLUMNS if c not in df.columns]
    if missing:
        raise KeyError(f"Canonical incident columns missing: {missing}")

    df = df[CANONICAL_COLUMNS].copy()
    df["id"] = df["id"].astype(str)
    df["timestamp"] = pd.to_datetime(df["timestamp"])
    df["crime_type"] = df["crime_type"].astype(str)
    df["latitude"] = pd.to_numeric(df["latitude"]).astype("float64")
    df["longitude"] = pd.to_numeric(df["longitude"]).astype("float64")

    for col in ("arrest", "domestic"):
        df[col] = _to_nullable_bool(df[col])

    df["location_description"] = df["location_description"].astype("string")
    df["hour"] = pd.to_numeric(df["hour"], errors="coerce").astype("Int64")
    return df


def _to_nullable_bool(s: pd.Series) -> pd.Series:
    if str(s.dtype) == "boolean":
        return s
    mapping = {"true": True, "false": False}
    return s.map(lambda v: mapping.get(str(v).strip().lower(), pd.NA) if pd.notna(v) else pd.NA).astype("boolean")


__all__ = [
    "CANONICAL_COLUMNS",
    "UNKNOWN_CRIME_TYPE",
    "LAT_MIN",
    "LAT_MAX",
    "LON_MIN",
    "LON_MAX",
    "coerce_canonical",
]
