"""
Monthly crime forecasting and model reconciliation.
"""

from .reconcile import (
    ForecastComparison,
    derive_95_interval,
    normalize_forecast,
    reconcile_forecasts,
)
from .forecasting import (
    RawForecast,
    Forecaster,
    ArimaForecaster,
    ProphetForecaster,
    NaiveForecaster,
    build_forecasters,
)
from .forecast_master import ForecastRun, run_forecasts

__all__ = [
    "ForecastComparison",
    "derive_95_interval",
    "normalize_forecast",
    "reconcile_forecasts",
    "RawForecast",
    "Forecaster",
    "ArimaForecaster",
    "ProphetForecaster",
    "NaiveForecaster",
    "build_forecasters",
    "ForecastRun",
    "run_forecasts",
]
