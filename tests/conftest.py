"""
Re-useable fixtures etc. for tests

See https://docs.pytest.org/en/7.1.x/reference/fixtures.html#conftest-py-sharing-fixtures-across-multiple-files
"""

import numpy as np
import pandas as pd
import pytest

from crime_pipelines.context import PipelineConfig
from crime_pipelines.exceptions import ExternalModelError
from crime_pipelines.ingestion import generate_sample_data
from crime_pipelines.models.forecasting import Forecaster, RawForecast, forecast_dates
from crime_pipelines.transform.cleaning import clean_crime_data
from crime_pipelines.visualize.sampling import RandomSampler


class StubForecaster(Forecaster):
    """Flat forecast at a fixed level with a symmetric 80% interval."""

    min_observations = 1

    def __init__(self, name="Stub", level=None, half_width=10.0, with_95=False, offset_months=0):
        self.name = name
        self.level = level
        self.half_width = half_width
        self.with_95 = with_95
        self.offset_months = offset_months

    def fit_predict(self, series, horizon):
        y = self._prepare(series, horizon)
        level = self.level if self.level is not None else float(y.mean())
        point = np.full(horizon, level)
        dates = forecast_dates(y, horizon)
        if self.offset_months:
            dates = dates + pd.DateOffset(months=self.offset_months)

        intervals = {0.80: (point - self.half_width, point + self.half_width)}
        if self.with_95:
            intervals[0.95] = (point - 2 * self.half_width, point + 2 * self.half_width)
        return RawForecast(self.name, dates, point, intervals, {"model": "stub"})


class BadIntervalForecaster(StubForecaster):
    """Point forecast sitting above its own 80% interval."""

    def fit_predict(self, series, horizon):
        raw = super().fit_predict(series, horizon)
        _, upper = raw.intervals[0.80]
        raw.point = upper + 1.0
        return raw


class FailingForecaster(Forecaster):
    def __init__(self, name="Prophet"):
        self.name = name

    def fit_predict(self, series, horizon):
        raise ExternalModelError(self.name, "backend could not be loaded")


@pytest.fixture(scope="session", autouse=True)
def pandas_terminal_width():
    pd.set_option("display.width", 120)
    pd.set_option("display.max_columns", 1000)


@pytest.fixture
def stub_forecaster():
    return StubForecaster


@pytest.fixture
def failing_forecaster():
    return FailingForecaster


@pytest.fixture
def bad_interval_forecaster():
    return BadIntervalForecaster


@pytest.fixture
def constant_series():
    """24 months of exactly 100 crimes."""
    index = pd.date_range("2022-01-01", periods=24, freq="MS")
    return pd.Series(100.0, index=index, name="crime_count")


@pytest.fixture(scope="session")
def sample_raw():
    return generate_sample_data(n_records=1500, seed=7)


@pytest.fixture(scope="session")
def sample_incidents(sample_raw):
    return clean_crime_data(sample_raw)


@pytest.fixture
def five_incidents():
    return pd.DataFrame(
        {
            "id": [str(i) for i in range(1, 6)],
            "timestamp": pd.to_datetime(["2024-01-01"] * 5),
            "crime_type": ["Theft", "Theft", "Battery", "Assault", "Theft"],
            "latitude": [41.88, 41.88, 41.88, 41.89, 41.89],
            "longitude": [-87.63, -87.63, -87.63, -87.61, -87.61],
        }
    )


@pytest.fixture
def tmp_config(tmp_path):
    return PipelineConfig(
        input_path=tmp_path / "missing.csv",
        synthetic_records=1500,
        output_dir=tmp_path / "outputs",
        render_charts=False,
        render_maps=False,
        sampler=RandomSampler(1),
    )
