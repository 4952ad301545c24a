"""
Presentation adapters: static charts, interactive maps and dashboard helpers.
"""

from .sampling import SamplingStrategy, RandomSampler, NoSampler
from .charts import render_charts
from .maps import render_maps
from .dashboard import filter_incidents, overview_metrics, geospatial_metrics

__all__ = [
    "SamplingStrategy",
    "RandomSampler",
    "NoSampler",
    "render_charts",
    "render_maps",
    "filter_incidents",
    "overview_metrics",
    "geospatial_metrics",
]
