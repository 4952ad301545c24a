"""
hotspots.py

Grid-based hotspot aggregation. Each incident is snapped to the cell key
(round(lat / r) * r, round(lon / r) * r); cells are counted, given a true
centroid (mean of the contained points) and ranked by density.

Ranking is a total order: crime_count descending, then centroid_lat,
centroid_lon, lat_bin, lon_bin ascending. Equal inputs always give
identical output.
"""

from dataclasses import dataclass
from typing import Any, Dict

import numpy as np
import pandas as pd
import geopandas as gpd
from shapely.geometry import box
from rich.console import Console

from config import GRID_SIZE_DEG, TOP_N_HOTSPOTS, CRIME_TYPE_LABEL_MAX, HIGH_CRIME_QUANTILE

console = Console()

CELL_COLUMNS = [
    "rank",
    "lat_bin",
    "lon_bin",
    "crime_count",
    "centroid_lat",
    "centroid_lon",
    "crime_types",
]

RANK_ORDER = ["crime_count", "centroid_lat", "centroid_lon", "lat_bin", "lon_bin"]
RANK_ASCENDING = [False, True, True, True, True]


@dataclass(frozen=True, eq=False)
class HotspotResult:
    cells: pd.DataFrame
    top: pd.DataFrame
    resolution: float
    top_n: int


def _decimals_for(resolution: float) -> int:
    """Decimal places needed to print multiples of ``resolution`` without float noise."""
    return max(0, int(np.ceil(-np.log10(resolution))) + 2)


def truncate_label(label: str, width: int = CRIME_TYPE_LABEL_MAX) -> str:
    """Cap a label at ``width`` characters, ellipsis included."""
    if len(label) <= width:
        return label
    return label[: max(width - 3, 0)] + "..."


def valid_coordinates(df: pd.DataFrame) -> pd.DataFrame:
    """Incidents with usable coordinates (non-null and not the 0 sentinel)."""
    mask = (
        df["latitude"].notna()
        & df["longitude"].notna()
        & (df["latitude"] != 0)
        & (df["longitude"] != 0)
    )
    return df[mask]


def assign_grid_cells(df: pd.DataFrame, resolution: float = GRID_SIZE_DEG) -> pd.DataFrame:
    """Attach integer grid indices and the snapped cell key coordinates."""
    if resolution <= 0:
        raise ValueError(f"Grid resolution must be positive, got {resolution}")

    df = df.copy()
    decimals = _decimals_for(resolution)
    df["lat_idx"] = np.round(df["latitude"].to_numpy() / resolution).astype("int64")
    df["lon_idx"] = np.round(df["longitude"].to_numpy() / resolution).astype("int64")
    df["lat_bin"] = np.round(df["lat_idx"] * resolution, decimals)
    df["lon_bin"] = np.round(df["lon_idx"] * resolution, decimals)
    return df


def rank_cells(cells: pd.DataFrame) -> pd.DataFrame:
    ranked = cells.sort_values(RANK_ORDER, ascending=RANK_ASCENDING, kind="mergesort").reset_index(drop=True)
    ranked.insert(0, "rank", np.arange(1, len(ranked) + 1))
    return ranked


def compute_hotspots(
    df: pd.DataFrame,
    resolution: float = GRID_SIZE_DEG,
    top_n: int = TOP_N_HOTSPOTS,
    label_width: int = CRIME_TYPE_LABEL_MAX,
) -> HotspotResult:
    """
    Bin incidents into a coordinate grid and rank cells by count.

    Parameters:
        df: Cleaned incidents with latitude, longitude, crime_type
        resolution: Cell size in degrees (default 0.01, roughly 1km)
        top_n: Length of the headline hotspot list
        label_width: Max characters of the comma-joined crime type label

    Returns:
        HotspotResult with the full ranking and its top-N prefix
    """
    console.print(f"\n[bold cyan]Grid hotspot aggregation (r={resolution}°)...[/bold cyan]")

    if top_n < 0:
        raise ValueError(f"top_n must be non-negative, got {top_n}")

    geo = assign_grid_cells(valid_coordinates(df), resolution)

    if geo.empty:
        cells = pd.DataFrame(columns=CELL_COLUMNS)
        return HotspotResult(cells=cells, top=cells.copy(), resolution=resolution, top_n=top_n)

    grouped = geo.groupby(["lat_idx", "lon_idx"], sort=False)
    cells = grouped.agg(
        lat_bin=("lat_bin", "first"),
        lon_bin=("lon_bin", "first"),
        crime_count=("latitude", "size"),
        centroid_lat=("latitude", "mean"),
        centroid_lon=("longitude", "mean"),
        crime_types=("crime_type", lambda s: truncate_label(", ".join(pd.unique(s.astype(str))), label_width)),
    ).reset_index(drop=True)

    cells = rank_cells(cells)[CELL_COLUMNS]
    top = cells.head(top_n).copy()

    console.print(f"[cyan]Grid cells analyzed:[/cyan] {len(cells):,}")
    console.print(f"[cyan]Top hotspot crime count:[/cyan] {int(cells['crime_count'].iloc[0]):,}")
    for _, row in top.head(10).iterrows():
        console.print(
            f"  {int(row['rank']):2d}. Location: ({row['centroid_lat']:.4f}, {row['centroid_lon']:.4f}) "
            f"- {int(row['crime_count'])} crimes"
        )

    return HotspotResult(cells=cells, top=top, resolution=resolution, top_n=top_n)


def hotspot_summary(result: HotspotResult, incidents: pd.DataFrame) -> Dict[str, Any]:
    geo = valid_coordinates(incidents)
    counts = result.cells["crime_count"].astype(float)
    return {
        "incidents_with_coordinates": int(len(geo)),
        "grid_cells": int(len(result.cells)),
        "top_hotspot_count": int(counts.max()) if len(counts) else 0,
        "mean_per_cell": round(float(counts.mean()), 2) if len(counts) else 0.0,
        "median_per_cell": float(counts.median()) if len(counts) else 0.0,
        "lat_range": (float(geo["latitude"].min()), float(geo["latitude"].max())) if len(geo) else None,
        "lon_range": (float(geo["longitude"].min()), float(geo["longitude"].max())) if len(geo) else None,
    }


def high_crime_cells(cells: pd.DataFrame, quantile: float = HIGH_CRIME_QUANTILE) -> pd.DataFrame:
    """Cells whose count is strictly above the given count quantile."""
    if cells.empty:
        return cells
    threshold = cells["crime_count"].astype(float).quantile(quantile)
    return cells[cells["crime_count"] > threshold]


def hotspots_to_geodataframe(cells: pd.DataFrame, resolution: float = GRID_SIZE_DEG) -> gpd.GeoDataFrame:
    """Grid cells as square polygons centred on their cell key (EPSG:4326)."""
    half = resolution / 2
    geometry = [
        box(lon - half, lat - half, lon + half, lat + half)
        for lat, lon in zip(cells["lat_bin"].astype(float), cells["lon_bin"].astype(float))
    ]
    return gpd.GeoDataFrame(cells.copy(), geometry=geometry, crs="EPSG:4326")


__all__ = [
    "HotspotResult",
    "CELL_COLUMNS",
    "truncate_label",
    "valid_coordinates",
    "assign_grid_cells",
    "rank_cells",
    "compute_hotspots",
    "hotspot_summary",
    "high_crime_cells",
    "hotspots_to_geodataframe",
]
