"""
Tests of crime_pipelines.models.reconcile
"""

import numpy as np
import pandas as pd
import pytest

from crime_pipelines.exceptions import ForecastAlignmentError
from crime_pipelines.models.forecasting import RawForecast
from crime_pipelines.models.reconcile import (
    FORECAST_COLUMNS,
    derive_95_interval,
    normalize_forecast,
    reconcile_forecasts,
)

DATES = pd.date_range("2024-01-01", periods=3, freq="MS")


def make_raw(name="A", point=(100.0, 100.0, 100.0), lower=(90.0, 90.0, 90.0), upper=(110.0, 110.0, 110.0), dates=DATES, extra=None):
    intervals = {0.80: (np.array(lower), np.array(upper))}
    if extra:
        intervals.update(extra)
    return RawForecast(name, dates, np.array(point), intervals)


def test_derive_95_symmetric():
    lower, upper = derive_95_interval([100.0], [90.0], [110.0])

    assert lower[0] == pytest.approx(84.69, abs=0.01)
    assert upper[0] == pytest.approx(115.31, abs=0.01)


def test_derive_95_widened_for_asymmetric_interval():
    lower, upper = derive_95_interval([100.0], [60.0], [105.0])

    assert lower[0] == pytest.approx(60.0)
    assert upper[0] == pytest.approx(100 + 1.96 * 5 / 1.28)


@pytest.mark.parametrize(
    "point, lower_80, upper_80",
    (
        pytest.param(100.0, 90.0, 110.0, id="symmetric"),
        pytest.param(100.0, 60.0, 105.0, id="wide-lower"),
        pytest.param(100.0, 99.0, 140.0, id="wide-upper"),
        pytest.param(5.0, 5.0, 5.0, id="degenerate"),
    ),
)
def test_normalized_intervals_nested(point, lower_80, upper_80):
    raw = make_raw(point=(point,), lower=(lower_80,), upper=(upper_80,), dates=DATES[:1])

    res = normalize_forecast(raw).iloc[0]

    assert res["lower_95"] <= res["lower_80"] <= res["point_forecast"] <= res["upper_80"] <= res["upper_95"]


def test_normalize_uses_native_95():
    raw = make_raw(extra={0.95: (np.array([80.0] * 3), np.array([125.0] * 3))})

    res = normalize_forecast(raw)

    assert res["lower_95"].tolist() == [80.0] * 3
    assert res["upper_95"].tolist() == [125.0] * 3


def test_normalize_columns_and_name():
    res = normalize_forecast(make_raw(), "ARIMA")

    assert list(res.columns) == FORECAST_COLUMNS
    assert res["model_name"].unique().tolist() == ["ARIMA"]
    assert res["date"].tolist() == list(DATES)


@pytest.mark.parametrize(
    "raw",
    (
        pytest.param(make_raw(point=(120.0, 100.0, 100.0)), id="point-above-upper"),
        pytest.param(make_raw(point=(80.0, 100.0, 100.0)), id="point-below-lower"),
        pytest.param(RawForecast("A", DATES, np.array([1.0] * 3), {}), id="no-80-interval"),
        pytest.param(
            make_raw(extra={0.95: (np.array([95.0] * 3), np.array([125.0] * 3))}),
            id="native-95-narrower",
        ),
    ),
)
def test_normalize_rejects_bad_forecasts(raw):
    with pytest.raises(ValueError):
        normalize_forecast(raw)


def test_reconcile_orders_and_totals():
    a = normalize_forecast(make_raw("Prophet", point=(10.0, 20.0, 30.0), lower=(5.0, 15.0, 25.0), upper=(15.0, 25.0, 35.0)))
    b = normalize_forecast(make_raw("ARIMA", point=(12.0, 22.0, 32.0), lower=(5.0, 15.0, 25.0), upper=(15.0, 25.0, 35.0)))

    res = reconcile_forecasts([a, b])

    assert res.table["model_name"].tolist() == ["ARIMA", "Prophet"] * 3
    assert res.table["date"].is_monotonic_increasing
    assert res.totals == {"Prophet": 60.0, "ARIMA": 66.0}
    assert res.difference == pytest.approx(6.0)


def test_reconcile_wide_and_totals_frame():
    a = normalize_forecast(make_raw("A"))
    b = normalize_forecast(make_raw("B"))

    res = reconcile_forecasts([a, b])

    assert list(res.wide().columns) == ["date", "A", "B"]
    assert res.totals_frame()["total_forecast"].tolist() == [300.0, 300.0]
    assert res.difference == 0.0


def test_reconcile_rejects_misaligned_dates():
    a = normalize_forecast(make_raw("A"))
    b = normalize_forecast(make_raw("B", dates=DATES + pd.DateOffset(months=1)))

    with pytest.raises(ForecastAlignmentError):
        reconcile_forecasts([a, b])


def test_reconcile_rejects_different_horizons():
    a = normalize_forecast(make_raw("A"))
    b = normalize_forecast(make_raw("B", point=(100.0, 100.0), lower=(90.0, 90.0), upper=(110.0, 110.0), dates=DATES[:2]))

    with pytest.raises(ForecastAlignmentError):
        reconcile_forecasts([a, b])


def test_reconcile_needs_two_models():
    with pytest.raises(ValueError):
        reconcile_forecasts([normalize_forecast(make_raw("A"))])


def test_constant_series_stub_scenario(constant_series, stub_forecaster):
    raw = stub_forecaster("Stub", half_width=10.0).fit_predict(constant_series, 6)

    res = normalize_forecast(raw)

    assert len(res) == 6
    assert res["point_forecast"].tolist() == pytest.approx([100.0] * 6)
    assert res["lower_80"].tolist() == pytest.approx([90.0] * 6)
    assert res["lower_95"].tolist() == pytest.approx([84.69] * 6, abs=0.01)
    assert res["upper_95"].tolist() == pytest.approx([115.31] * 6, abs=0.01)
    assert res["date"].iloc[0] == pd.Timestamp("2024-01-01")
