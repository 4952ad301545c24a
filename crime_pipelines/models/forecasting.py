# Forecaster adapters: statsmodels ARIMA (automatic order search), Prophet, naive mean baseline

import itertools
import logging
import warnings
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

import numpy as np
import pandas as pd
from rich.console import Console
from sklearn.metrics import mean_absolute_percentage_error, mean_squared_error
from statsmodels.tsa.arima.model import ARIMA
from statsmodels.tsa.stattools import adfuller

from config import SEASONAL_PERIOD
from crime_pipelines.exceptions import ExternalModelError
from crime_pipelines.models.reconcile import Z_SCORES

try:
    from prophet import Prophet

    HAS_PROPHET = True
except ImportError:
    HAS_PROPHET = False

console = Console()

logging.getLogger("cmdstanpy").setLevel(logging.WARNING)
logging.getLogger("prophet").setLevel(logging.WARNING)


@dataclass(eq=False)
class RawForecast:
    """Library output normalized to arrays: point forecast plus intervals keyed by confidence level."""

    model_name: str
    dates: pd.DatetimeIndex
    point: np.ndarray
    intervals: Dict[float, Tuple[np.ndarray, np.ndarray]]
    diagnostics: Dict[str, Any] = field(default_factory=dict)
    fitted_model: Any = None


def forecast_dates(series: pd.Series, horizon: int) -> pd.DatetimeIndex:
    """The ``horizon`` month starts following the last observed month."""
    last = pd.Timestamp(series.index.max()).to_period("M").to_timestamp()
    return pd.date_range(last + pd.offsets.MonthBegin(1), periods=horizon, freq="MS")


def in_sample_metrics(actual: Iterable[float], fitted: Iterable[float]) -> Dict[str, float]:
    actual = np.asarray(actual, dtype=float)
    fitted = np.asarray(fitted, dtype=float)
    rmse = float(np.sqrt(mean_squared_error(actual, fitted)))
    nonzero = actual != 0
    mape = (
        float(mean_absolute_percentage_error(actual[nonzero], fitted[nonzero]) * 100)
        if nonzero.any()
        else float("nan")
    )
    return {"rmse": round(rmse, 2), "mape": round(mape, 2)}


def interval_bands(point, lower, upper, level: float) -> Dict[float, Tuple[np.ndarray, np.ndarray]]:
    """
    Intervals keyed by confidence level from one band reported at ``level``.

    A band wider than 80% also yields an 80% band, each side scaled towards
    the point by z_80 / z_level.
    """
    point = np.asarray(point, dtype=float)
    lower = np.asarray(lower, dtype=float)
    upper = np.asarray(upper, dtype=float)

    bands = {level: (lower, upper)}
    if level != 0.80:
        scale = Z_SCORES[0.80] / Z_SCORES[level]
        bands[0.80] = (point - (point - lower) * scale, point + (upper - point) * scale)
    return bands


class Forecaster:
    """
    Common capability: (monthly series, horizon) -> point forecast and
    intervals at stated confidence levels.
    """

    name = "Forecaster"
    min_observations = 3

    def _prepare(self, series: pd.Series, horizon: int) -> pd.Series:
        if horizon < 1:
            raise ValueError(f"Forecast horizon must be >= 1, got {horizon}")
        if len(series) < self.min_observations:
            raise ExternalModelError(
                self.name,
                f"need at least {self.min_observations} monthly observations, got {len(series)}",
            )
        y = series.astype(float).copy()
        y.index = pd.DatetimeIndex(y.index)
        return y.asfreq("MS")

    def fit_predict(self, series: pd.Series, horizon: int) -> RawForecast:
        raise NotImplementedError


class ArimaForecaster(Forecaster):
    """
    Automatic ARIMA: differencing order from repeated ADF tests, then the
    minimum-AIC (p, d, q)(P, 0, Q)[m] over a small grid.
    """

    name = "ARIMA"
    min_observations = 8

    def __init__(
        self,
        max_p: int = 3,
        max_q: int = 3,
        max_d: int = 2,
        seasonal: bool = True,
        seasonal_period: int = SEASONAL_PERIOD,
        adf_alpha: float = 0.05,
    ):
        self.max_p = max_p
        self.max_q = max_q
        self.max_d = max_d
        self.seasonal = seasonal
        self.seasonal_period = seasonal_period
        self.adf_alpha = adf_alpha

    def select_differencing(self, y: pd.Series) -> int:
        d = 0
        x = y
        while d < self.max_d:
            if x.nunique() <= 1:
                break
            try:
                pvalue = adfuller(x, autolag="AIC")[1]
            except (ValueError, np.linalg.LinAlgError):
                break
            if pvalue < self.adf_alpha:
                break
            x = x.diff().dropna()
            d += 1
        return d

    def candidate_orders(self, n_obs: int) -> List[Tuple[Tuple[int, int], Tuple[int, int, int, int]]]:
        seasonal_orders = [(0, 0, 0, 0)]
        if self.seasonal and n_obs >= 2 * self.seasonal_period:
            m = self.seasonal_period
            seasonal_orders += [(1, 0, 0, m), (0, 0, 1, m), (1, 0, 1, m)]
        pq = itertools.product(range(self.max_p + 1), range(self.max_q + 1))
        return [(o, s) for o, s in itertools.product(list(pq), seasonal_orders)]

    @staticmethod
    def describe(order: Tuple[int, int, int], seasonal_order: Tuple[int, int, int, int]) -> str:
        text = f"ARIMA({order[0]},{order[1]},{order[2]})"
        if seasonal_order[3]:
            text += f"({seasonal_order[0]},{seasonal_order[1]},{seasonal_order[2]})[{seasonal_order[3]}]"
        return text

    def fit_predict(self, series: pd.Series, horizon: int) -> RawForecast:
        y = self._prepare(series, horizon)
        d = self.select_differencing(y)
        trend = "c" if d == 0 else "n"

        best = None
        best_aic = np.inf
        best_orders = None
        for (p, q), seasonal_order in self.candidate_orders(len(y)):
            order = (p, d, q)
            try:
                with warnings.catch_warnings():
                    warnings.simplefilter("ignore")
                    res = ARIMA(y, order=order, seasonal_order=seasonal_order, trend=trend).fit()
            except (ValueError, np.linalg.LinAlgError, IndexError):
                continue
            if np.isfinite(res.aic) and res.aic < best_aic:
                best, best_aic, best_orders = res, res.aic, (order, seasonal_order)

        if best is None:
            raise ExternalModelError(self.name, "no candidate ARIMA order could be estimated")

        try:
            fc = best.get_forecast(steps=horizon)
            point = np.asarray(fc.predicted_mean, dtype=float)
            ci80 = np.asarray(fc.conf_int(alpha=0.20), dtype=float)
            ci95 = np.asarray(fc.conf_int(alpha=0.05), dtype=float)
        except (ValueError, np.linalg.LinAlgError) as e:
            raise ExternalModelError(self.name, str(e)) from e

        description = self.describe(*best_orders)
        diagnostics = {
            "model": description,
            "aic": round(float(best.aic), 2),
            "bic": round(float(best.bic), 2),
            **in_sample_metrics(y, best.fittedvalues),
        }
        console.print(f"[cyan]ARIMA model:[/cyan] {description} (AIC {diagnostics['aic']})")

        return RawForecast(
            model_name=self.name,
            dates=forecast_dates(y, horizon),
            point=point,
            intervals={0.80: (ci80[:, 0], ci80[:, 1]), 0.95: (ci95[:, 0], ci95[:, 1])},
            diagnostics=diagnostics,
            fitted_model=best,
        )


class ProphetForecaster(Forecaster):
    """
    Prophet with yearly multiplicative seasonality.

    Prophet reports one interval at ``interval_width``. At the default 0.80
    that is the 80% band; at 0.95 the 80% band is rescaled from it with the
    Gaussian z-scores and the native 95% band is kept.
    """

    name = "Prophet"
    min_observations = 3

    def __init__(self, interval_width: float = 0.80, seasonality_mode: str = "multiplicative"):
        if interval_width not in Z_SCORES:
            raise ValueError(f"interval_width must be one of {sorted(Z_SCORES)}, got {interval_width}")
        self.interval_width = interval_width
        self.seasonality_mode = seasonality_mode

    def fit_predict(self, series: pd.Series, horizon: int) -> RawForecast:
        if not HAS_PROPHET:
            raise ExternalModelError(self.name, "prophet is not installed in this environment")

        y = self._prepare(series, horizon)
        history = pd.DataFrame({"ds": y.index, "y": y.to_numpy()})

        try:
            model = Prophet(
                yearly_seasonality=True,
                weekly_seasonality=False,
                daily_seasonality=False,
                seasonality_mode=self.seasonality_mode,
                interval_width=self.interval_width,
            )
            model.fit(history)
            future = model.make_future_dataframe(periods=horizon, freq="MS")
            forecast = model.predict(future)
        except Exception as e:
            raise ExternalModelError(self.name, str(e)) from e

        expected = forecast_dates(y, horizon)
        tail = forecast.tail(horizon)
        if not pd.DatetimeIndex(tail["ds"]).equals(expected):
            raise ExternalModelError(self.name, "forecast periods do not follow the last observed month")

        diagnostics = {
            "model": f"Prophet ({self.seasonality_mode} yearly seasonality)",
            **in_sample_metrics(y, forecast["yhat"].head(len(y))),
        }

        point = tail["yhat"].to_numpy(dtype=float)
        intervals = interval_bands(
            point,
            tail["yhat_lower"].to_numpy(dtype=float),
            tail["yhat_upper"].to_numpy(dtype=float),
            self.interval_width,
        )

        return RawForecast(
            model_name=self.name,
            dates=expected,
            point=point,
            intervals=intervals,
            diagnostics=diagnostics,
            fitted_model=model,
        )


class NaiveForecaster(Forecaster):
    """Mean of the last ``window`` months with Gaussian intervals from the history's spread."""

    name = "Naive"
    min_observations = 2

    def __init__(self, window: int = 12):
        self.window = window

    def fit_predict(self, series: pd.Series, horizon: int) -> RawForecast:
        y = self._prepare(series, horizon)
        level = float(y.tail(self.window).mean())
        sd = float(y.std(ddof=1)) if len(y) > 1 else 0.0
        point = np.full(horizon, level)

        intervals = {
            conf: (point - z * sd, point + z * sd)
            for conf, z in Z_SCORES.items()
        }
        fitted = np.full(len(y), level)

        return RawForecast(
            model_name=self.name,
            dates=forecast_dates(y, horizon),
            point=point,
            intervals=intervals,
            diagnostics={"model": f"Mean of last {self.window} months", **in_sample_metrics(y, fitted)},
        )


FORECASTERS = {
    "ARIMA": ArimaForecaster,
    "Prophet": ProphetForecaster,
    "Naive": NaiveForecaster,
}


def build_forecasters(names: Iterable[str], seasonal_period: int = SEASONAL_PERIOD) -> List[Forecaster]:
    forecasters: List[Forecaster] = []
    for name in names:
        if name not in FORECASTERS:
            raise KeyError(f"Unknown forecasting model '{name}'. Available: {sorted(FORECASTERS)}")
        if name == "ARIMA":
            forecasters.append(ArimaForecaster(seasonal_period=seasonal_period))
        else:
            forecasters.append(FORECASTERS[name]())
    return forecasters


__all__ = [
    "RawForecast",
    "Forecaster",
    "ArimaForecaster",
    "ProphetForecaster",
    "NaiveForecaster",
    "FORECASTERS",
    "HAS_PROPHET",
    "forecast_dates",
    "in_sample_metrics",
    "interval_bands",
    "build_forecasters",
]
