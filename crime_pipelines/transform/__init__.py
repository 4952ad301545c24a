"""
Cleaning, temporal enrichment, aggregation and hotspot detection.
"""

from .cleaning import clean_crime_data, resolve_schema
from .temporal import add_temporal_features
from .aggregation import TemporalAggregates, build_temporal_aggregates, monthly_series
from .hotspots import HotspotResult, compute_hotspots

__all__ = [
    "clean_crime_data",
    "resolve_schema",
    "add_temporal_features",
    "TemporalAggregates",
    "build_temporal_aggregates",
    "monthly_series",
    "HotspotResult",
    "compute_hotspots",
]
