# Interactive incident and hotspot maps as standalone pydeck HTML files

from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import pandas as pd
import pydeck as pdk
import seaborn as sns
from rich.console import Console

from config import (
    MAP_SAMPLE_ALL,
    MAP_SAMPLE_HEATMAP,
    MAP_SAMPLE_BY_TYPE,
    MAP_SAMPLE_TEMPORAL,
    RECENT_WINDOW_MONTHS,
    TOP_CRIME_TYPES,
)
from crime_pipelines.exceptions import RenderError
from crime_pipelines.transform.aggregation import top_crime_types
from crime_pipelines.visualize.sampling import RandomSampler, SamplingStrategy

console = Console()

MAP_PROVIDER = "carto"
RECENT_COLOR = [220, 20, 60, 170]
OLDER_COLOR = [30, 100, 220, 120]


def crime_type_colors(labels: Sequence[str]) -> Dict[str, List[int]]:
    """Stable RGBA colour per label (tab10 palette, cycling)."""
    palette = sns.color_palette("tab10", 10)
    return {
        label: [int(c * 255) for c in palette[i % len(palette)]] + [180]
        for i, label in enumerate(sorted(labels))
    }


def view_state(df: pd.DataFrame, lat: str = "latitude", lon: str = "longitude", zoom: int = 10) -> pdk.ViewState:
    return pdk.ViewState(
        latitude=float(df[lat].mean()),
        longitude=float(df[lon].mean()),
        zoom=zoom,
        pitch=0,
    )


def _points(df: pd.DataFrame) -> pd.DataFrame:
    """JSON-friendly incident columns for deck layers."""
    out = df[["latitude", "longitude", "crime_type"]].copy()
    out["date"] = pd.to_datetime(df["timestamp"]).dt.strftime("%Y-%m-%d")
    out["location"] = df["location_description"].astype(object).where(df["location_description"].notna(), "Unknown")
    out["arrest"] = df["arrest"].map({True: "Yes", False: "No"}).astype(object).where(df["arrest"].notna(), "Unknown")
    return out.reset_index(drop=True)


def _write(deck: pdk.Deck, path: Path) -> Path:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        deck.to_html(str(path), open_browser=False, notebook_display=False)
    except OSError as e:
        raise RenderError(f"Could not write map {path}: {e}") from e
    console.print(f"[dim cyan]  Saved: {path.name}[/dim cyan]")
    return path


def _deck(layers, view: pdk.ViewState, tooltip: Optional[dict] = None, style: str = "light") -> pdk.Deck:
    return pdk.Deck(
        layers=layers,
        initial_view_state=view,
        map_provider=MAP_PROVIDER,
        map_style=style,
        tooltip=tooltip,
    )


def map_all_crimes(incidents: pd.DataFrame, path: Path, sampler: SamplingStrategy, n: int = MAP_SAMPLE_ALL) -> Path:
    data = _points(sampler.sample(incidents, n))
    colors = crime_type_colors(data["crime_type"].unique())
    data["color"] = data["crime_type"].map(colors)

    layer = pdk.Layer(
        "ScatterplotLayer",
        data=data,
        get_position="[longitude, latitude]",
        get_fill_color="color",
        get_radius=4,
        radius_units="pixels",
        pickable=True,
    )
    tooltip = {"text": "{crime_type}\nDate: {date}\nLocation: {location}\nArrest: {arrest}"}
    return _write(_deck([layer], view_state(data), tooltip), path)


def map_heatmap(incidents: pd.DataFrame, path: Path, sampler: SamplingStrategy, n: int = MAP_SAMPLE_HEATMAP) -> Path:
    data = sampler.sample(incidents, n)[["latitude", "longitude"]].reset_index(drop=True)
    layer = pdk.Layer(
        "HeatmapLayer",
        data=data,
        get_position="[longitude, latitude]",
        radius_pixels=30,
        threshold=0.05,
    )
    return _write(_deck([layer], view_state(data), style="dark"), path)


def map_hotspots(cells: pd.DataFrame, path: Path, label_top: int = 10) -> Path:
    """Every cell as a circle sized by sqrt(count) / 2; the top cells carry a rank label."""
    data = cells.copy()
    data["radius_px"] = (data["crime_count"].astype(float) ** 0.5) / 2
    data["radius_px"] = data["radius_px"].clip(lower=2)

    circles = pdk.Layer(
        "ScatterplotLayer",
        data=data,
        get_position="[centroid_lon, centroid_lat]",
        get_radius="radius_px",
        radius_units="pixels",
        radius_scale=3,
        get_fill_color=[220, 20, 60, 150],
        get_line_color=[139, 0, 0],
        stroked=True,
        pickable=True,
    )
    labels = data.head(label_top).copy()
    labels["label"] = "#" + labels["rank"].astype(int).astype(str)
    text = pdk.Layer(
        "TextLayer",
        data=labels,
        get_position="[centroid_lon, centroid_lat]",
        get_text="label",
        get_size=14,
        get_color=[0, 0, 0],
        get_pixel_offset=[0, -18],
    )
    tooltip = {"text": "Hotspot #{rank}\nCrimes: {crime_count}\nTypes: {crime_types}"}
    return _write(_deck([circles, text], view_state(data, "centroid_lat", "centroid_lon", zoom=11), tooltip), path)


def map_by_crime_type(
    incidents: pd.DataFrame,
    path: Path,
    sampler: SamplingStrategy,
    n: int = MAP_SAMPLE_BY_TYPE,
    top_types: int = TOP_CRIME_TYPES,
) -> Path:
    types = top_crime_types(incidents, top_types)
    data = _points(sampler.sample(incidents[incidents["crime_type"].isin(types)], n))
    colors = crime_type_colors(types)

    layers = []
    for crime_type in types:
        subset = data[data["crime_type"] == crime_type]
        layers.append(
            pdk.Layer(
                "ScatterplotLayer",
                data=subset,
                id=f"type-{crime_type}",
                get_position="[longitude, latitude]",
                get_fill_color=colors[crime_type],
                get_radius=3,
                radius_units="pixels",
                pickable=True,
            )
        )
    tooltip = {"text": "{crime_type}\nDate: {date}"}
    return _write(_deck(layers, view_state(data), tooltip), path)


def map_recent_vs_older(
    incidents: pd.DataFrame,
    path: Path,
    sampler: SamplingStrategy,
    n: int = MAP_SAMPLE_TEMPORAL,
    window_months: int = RECENT_WINDOW_MONTHS,
) -> Path:
    cutoff = pd.to_datetime(incidents["timestamp"]).max() - pd.DateOffset(months=window_months)
    recent_mask = pd.to_datetime(incidents["timestamp"]) > cutoff

    recent = _points(sampler.sample(incidents[recent_mask], n))
    older = _points(sampler.sample(incidents[~recent_mask], n))

    layers = [
        pdk.Layer(
            "ScatterplotLayer",
            data=older,
            id="older",
            get_position="[longitude, latitude]",
            get_fill_color=OLDER_COLOR,
            get_radius=3,
            radius_units="pixels",
            pickable=True,
        ),
        pdk.Layer(
            "ScatterplotLayer",
            data=recent,
            id="recent",
            get_position="[longitude, latitude]",
            get_fill_color=RECENT_COLOR,
            get_radius=3,
            radius_units="pixels",
            pickable=True,
        ),
    ]
    tooltip = {"text": "{crime_type}\nDate: {date}"}
    both = pd.concat([recent, older], ignore_index=True)
    return _write(_deck(layers, view_state(both), tooltip), path)


def render_maps(
    maps_dir: Path,
    incidents: Optional[pd.DataFrame] = None,
    hotspots=None,
    sampler: Optional[SamplingStrategy] = None,
) -> Tuple[Dict[str, Path], Dict[str, str]]:
    """
    Write every map whose inputs are available.

    Returns:
        (written, failed): map name -> path, map name -> error message
    """
    console.print("\n[bold cyan]Rendering interactive maps...[/bold cyan]")
    maps_dir = Path(maps_dir)
    sampler = sampler or RandomSampler()
    jobs: List[Tuple[str, Callable[[], Path]]] = []

    if incidents is not None and len(incidents):
        jobs += [
            ("map_01_all_crimes", lambda: map_all_crimes(incidents, maps_dir / "map_01_all_crimes.html", sampler)),
            ("map_02_heatmap", lambda: map_heatmap(incidents, maps_dir / "map_02_heatmap.html", sampler)),
            ("map_04_by_crime_type", lambda: map_by_crime_type(incidents, maps_dir / "map_04_by_crime_type.html", sampler)),
            ("map_05_temporal_comparison", lambda: map_recent_vs_older(incidents, maps_dir / "map_05_temporal_comparison.html", sampler)),
        ]
    if hotspots is not None and len(hotspots.cells):
        jobs.append(("map_03_hotspots", lambda: map_hotspots(hotspots.cells, maps_dir / "map_03_hotspots.html")))

    written: Dict[str, Path] = {}
    failed: Dict[str, str] = {}
    for name, job in sorted(jobs):
        try:
            written[name] = job()
        except RenderError as e:
            console.print(f"[red]{e}[/red]")
            failed[name] = str(e)

    console.print(f"[green]Maps written: {len(written)}[/green]" + (f" [red]failed: {len(failed)}[/red]" if failed else ""))
    return written, failed


__all__ = [
    "crime_type_colors",
    "map_all_crimes",
    "map_heatmap",
    "map_hotspots",
    "map_by_crime_type",
    "map_recent_vs_older",
    "render_maps",
]
