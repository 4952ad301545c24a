"""
Tests of crime_pipelines.models.forecast_master
"""

import pytest

from crime_pipelines.exceptions import ForecastAlignmentError
from crime_pipelines.models.forecast_master import run_forecasts
from crime_pipelines.utils.logging import PipelineLog


def test_two_models_are_compared(constant_series, stub_forecaster):
    res = run_forecasts(
        constant_series,
        [stub_forecaster("ARIMA", level=100.0), stub_forecaster("Prophet", level=110.0)],
        horizon=6,
    )

    assert res.complete
    assert res.skipped_reason is None
    assert res.comparison.totals == {"ARIMA": 600.0, "Prophet": 660.0}
    assert res.comparison.difference == pytest.approx(60.0)
    assert len(res.comparison.table) == 12


def test_unavailable_model_skips_comparison(constant_series, stub_forecaster, failing_forecaster):
    res = run_forecasts(constant_series, [stub_forecaster("ARIMA"), failing_forecaster("Prophet")], horizon=6)

    assert list(res.forecasts) == ["ARIMA"]
    assert "Prophet" in res.unavailable
    assert res.comparison is None
    assert res.skipped_reason == "model comparison skipped: Prophet unavailable"
    assert not res.complete


def test_single_model_has_no_comparison(constant_series, stub_forecaster):
    res = run_forecasts(constant_series, [stub_forecaster("ARIMA")], horizon=3)

    assert res.complete
    assert res.comparison is None
    assert res.skipped_reason == "model comparison needs at least two models"


def test_misaligned_models_raise(constant_series, stub_forecaster):
    forecasters = [stub_forecaster("ARIMA"), stub_forecaster("Prophet", offset_months=1)]

    with pytest.raises(ForecastAlignmentError):
        run_forecasts(constant_series, forecasters, horizon=6)


def test_diagnostics_and_log(constant_series, stub_forecaster):
    log = PipelineLog()

    res = run_forecasts(constant_series, [stub_forecaster("A"), stub_forecaster("B")], horizon=2, log=log)

    diagnostics = res.diagnostics()
    assert diagnostics["model_name"].tolist() == ["A", "B"]
    assert diagnostics["model"].tolist() == ["stub", "stub"]
    assert [s["step"] for s in log.steps] == ["A forecast", "B forecast"]
    assert log.steps[0]["rows"] == 2


def test_invalid_model_output_keeps_other_models(constant_series, stub_forecaster, bad_interval_forecaster):
    res = run_forecasts(constant_series, [stub_forecaster("ARIMA"), bad_interval_forecaster("Prophet")], horizon=6)

    assert list(res.forecasts) == ["ARIMA"]
    assert list(res.raw) == ["ARIMA"]
    assert "outside its 80% interval" in res.unavailable["Prophet"]
    assert res.comparison is None
    assert res.skipped_reason == "model comparison skipped: Prophet unavailable"
