# Raw crime data ingestion from delimited files or the seeded sample generator
from pathlib import Path
from typing import Optional

import numpy as np
import pandas as pd
from rich.console import Console

from config import (
    RANDOM_SEED,
    SYNTHETIC_RECORDS,
    SYNTHETIC_START,
    SYNTHETIC_END,
    SYNTHETIC_CRIME_TYPES,
    SYNTHETIC_LOCATIONS,
    SYNTHETIC_ARREST_RATE,
    SYNTHETIC_DOMESTIC_RATE,
    SYNTHETIC_LAT_RANGE,
    SYNTHETIC_LON_RANGE,
)
from crime_pipelines.transform.cleaning import standardize_column_name, cleanup_duplicate_columns

console = Console()


def load_crime_csv(
    path: Path,
    sample_size: Optional[int] = None,
    seed: int = RANDOM_SEED,
) -> pd.DataFrame:
    """
    Read a delimited crime export with every column as text.

    Column names are standardized to snake_case and duplicate-named columns
    dropped. Large files are downsampled to ``sample_size`` rows.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Crime data file not found: {path}")

    console.print(f"[cyan]Reading:[/cyan] {path.name}")
    df = pd.read_csv(path, dtype=str, sep=None, engine="python")
    df.columns = [standardize_column_name(c) for c in df.columns]
    df = cleanup_duplicate_columns(df)

    if sample_size is not None and len(df) > sample_size:
        console.print(f"[yellow]Sampling {sample_size:,} rows from {len(df):,} total rows[/yellow]")
        df = df.sample(n=sample_size, random_state=seed).sort_index().reset_index(drop=True)

    return df


def generate_sample_data(n_records: int = SYNTHETIC_RECORDS, seed: int = RANDOM_SEED) -> pd.DataFrame:
    """Generate synthetic Chicago-style incidents spanning several years."""
    console.print("[cyan]Generating sample crime data...[/cyan]")

    rng = np.random.default_rng(seed)
    days = pd.date_range(SYNTHETIC_START, SYNTHETIC_END, freq="D")
    dates = days[rng.integers(0, len(days), n_records)]

    crime_types = list(SYNTHETIC_CRIME_TYPES.keys())
    probs = np.array(list(SYNTHETIC_CRIME_TYPES.values()))
    probs = probs / probs.sum()

    sample = pd.DataFrame({
        "id": np.arange(1, n_records + 1),
        "date": dates,
        "primary_type": rng.choice(crime_types, size=n_records, p=probs),
        "description": "Sample crime description",
        "location_description": rng.choice(SYNTHETIC_LOCATIONS, size=n_records),
        "arrest": rng.random(n_records) < SYNTHETIC_ARREST_RATE,
        "domestic": rng.random(n_records) < SYNTHETIC_DOMESTIC_RATE,
        "latitude": rng.uniform(*SYNTHETIC_LAT_RANGE, size=n_records),
        "longitude": rng.uniform(*SYNTHETIC_LON_RANGE, size=n_records),
        "district": rng.integers(1, 26, n_records),
        "ward": rng.integers(1, 51, n_records),
        "hour": rng.integers(0, 24, n_records),
    })
    sample["year"] = sample["date"].dt.year
    sample["month"] = sample["date"].dt.month
    sample["day"] = sample["date"].dt.day

    console.print(f"[green]Generated {n_records:,} sample records[/green]")
    return sample


__all__ = ["load_crime_csv", "generate_sample_data"]
