"""
Tests of crime_pipelines.visualize.charts and crime_pipelines.visualize.maps
"""

import pandas as pd
import pytest

from crime_pipelines.exceptions import RenderError
from crime_pipelines.models.forecast_master import run_forecasts
from crime_pipelines.transform.aggregation import build_temporal_aggregates, monthly_series
from crime_pipelines.transform.hotspots import compute_hotspots
from crime_pipelines.transform.temporal import add_temporal_features
from crime_pipelines.visualize.charts import plot_decomposition, plot_yearly_totals, render_charts
from crime_pipelines.visualize.maps import crime_type_colors, map_heatmap, render_maps
from crime_pipelines.visualize.sampling import RandomSampler


@pytest.fixture(scope="module")
def results(sample_incidents):
    incidents = add_temporal_features(sample_incidents)
    aggregates = build_temporal_aggregates(incidents)
    return incidents, aggregates, monthly_series(aggregates.monthly), compute_hotspots(incidents)


def test_render_charts(tmp_path, results, stub_forecaster):
    incidents, aggregates, series, hotspots = results
    run = run_forecasts(series, [stub_forecaster("ARIMA"), stub_forecaster("Prophet")], horizon=6)

    written, failed = render_charts(tmp_path, aggregates, series, run, hotspots, incidents, RandomSampler(1))

    exp = {
        "01_monthly_trends",
        "02_yearly_trends",
        "03_seasonal_patterns",
        "04_weekday_patterns",
        "06_crime_type_trends",
        "07_temporal_heatmap",
        "08_arima_forecast",
        "09_prophet_forecast",
        "11_model_comparison",
        "12_decomposition",
        "13_kde_density",
        "14_hotspot_bubbles",
    }
    assert failed == {}
    assert exp <= set(written)
    for path in written.values():
        assert path.exists()
        assert path.stat().st_size > 0


def test_render_charts_without_inputs(tmp_path):
    written, failed = render_charts(tmp_path)

    assert written == {}
    assert failed == {}


def test_render_charts_records_failures(tmp_path, results):
    _, aggregates, _, _ = results
    (tmp_path / "02_yearly_trends.png").mkdir()

    written, failed = render_charts(tmp_path, aggregates)

    assert list(failed) == ["02_yearly_trends"]
    assert "01_monthly_trends" in written


def test_chart_into_directory_raises(tmp_path, results):
    _, aggregates, _, _ = results
    target = tmp_path / "chart.png"
    target.mkdir()

    with pytest.raises(RenderError):
        plot_yearly_totals(aggregates.yearly, target)


def test_decomposition_needs_two_cycles(tmp_path, constant_series):
    assert plot_decomposition(constant_series.head(23), tmp_path / "d.png") is None
    assert not (tmp_path / "d.png").exists()


def test_render_maps(tmp_path, results):
    incidents, _, _, hotspots = results

    written, failed = render_maps(tmp_path, incidents, hotspots, RandomSampler(1))

    assert failed == {}
    assert sorted(written) == [
        "map_01_all_crimes",
        "map_02_heatmap",
        "map_03_hotspots",
        "map_04_by_crime_type",
        "map_05_temporal_comparison",
    ]
    for path in written.values():
        assert path.suffix == ".html"
        assert path.stat().st_size > 0


def test_map_into_directory_raises(tmp_path, results):
    incidents, _, _, _ = results
    target = tmp_path / "map.html"
    target.mkdir()

    with pytest.raises(RenderError):
        map_heatmap(incidents, target, RandomSampler(1))


def test_crime_type_colors_stable():
    first = crime_type_colors(["Theft", "Battery"])
    second = crime_type_colors(["Battery", "Theft"])

    assert first == second
    assert first["Battery"] != first["Theft"]
    assert all(len(c) == 4 for c in first.values())
