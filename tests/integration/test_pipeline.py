"""
Tests of the staged pipeline run (crime_pipelines.pipeline)
"""

import dataclasses

import pytest

from crime_pipelines.exceptions import EmptyResultError, MissingInputError, SchemaResolutionError
from crime_pipelines.pipeline import main, run_pipeline


def statuses(ctx):
    return {s["stage"]: s["status"] for s in ctx.log.stages}


def write_csv(path, header, rows):
    path.write_text("\n".join([header, *rows]) + "\n")
    return path


def test_full_run(tmp_config, stub_forecaster):
    config = dataclasses.replace(tmp_config, render_charts=True, render_maps=True)
    forecasters = [stub_forecaster("StubA", level=100.0), stub_forecaster("StubB", level=120.0)]

    ctx = run_pipeline(config, forecasters=forecasters)

    assert set(statuses(ctx).values()) == {"success"}
    assert ctx.forecast_run.comparison.difference == pytest.approx(120.0)

    processed = config.processed_dir
    for name in (
        "crime_data_clean.csv",
        "crime_data_clean.parquet",
        "monthly_crimes.csv",
        "yearly_crimes.csv",
        "seasonal_crimes.csv",
        "weekday_crimes.csv",
        "hourly_crimes.csv",
        "stuba_forecast.csv",
        "stubb_forecast.csv",
        "forecast_comparison.csv",
        "forecast_totals.csv",
        "forecast_diagnostics.csv",
        "crime_hotspots.csv",
        "top_hotspots.csv",
        "crime_hotspot_cells.geojson",
        "manifest.json",
    ):
        assert (processed / name).exists(), name

    assert (config.plots_dir / "01_monthly_trends.png").exists()
    assert (config.plots_dir / "stuba_forecast.png").exists()
    assert (config.plots_dir / "11_model_comparison.png").exists()
    assert len(list(config.maps_dir.glob("map_0*.html"))) == 5


def test_charts_and_maps_disabled(tmp_config, stub_forecaster):
    ctx = run_pipeline(tmp_config, forecasters=[stub_forecaster("StubA"), stub_forecaster("StubB")])

    res = statuses(ctx)
    assert res["charts"] == "skipped"
    assert res["maps"] == "skipped"
    assert not tmp_config.plots_dir.exists()


def test_missing_input_without_generator(tmp_config):
    config = dataclasses.replace(tmp_config, use_synthetic=False)

    with pytest.raises(MissingInputError):
        run_pipeline(config)


def test_unresolvable_schema(tmp_path, tmp_config):
    path = write_csv(tmp_path / "crimes.csv", "ID,Date,Primary Type,Longitude", ["1,2024-01-01,THEFT,-87.6"])

    with pytest.raises(SchemaResolutionError):
        run_pipeline(dataclasses.replace(tmp_config, input_path=path, use_synthetic=False))


def test_no_valid_rows_stops_before_aggregation(tmp_path, tmp_config):
    path = write_csv(
        tmp_path / "crimes.csv",
        "ID,Date,Primary Type,Latitude,Longitude",
        ["1,2024-01-01,THEFT,0,0", "2,not a date,THEFT,41.8,-87.6"],
    )
    config = dataclasses.replace(tmp_config, input_path=path, use_synthetic=False)

    with pytest.raises(EmptyResultError):
        run_pipeline(config)

    assert not (config.processed_dir / "monthly_crimes.csv").exists()
    assert not (config.processed_dir / "crime_data_clean.csv").exists()


def test_unavailable_model_skips_comparison(tmp_config, stub_forecaster, failing_forecaster):
    ctx = run_pipeline(tmp_config, forecasters=[stub_forecaster("ARIMA"), failing_forecaster("Prophet")])

    assert statuses(ctx)["forecasting"] == "partial"
    assert ctx.forecast_run.comparison is None
    assert (tmp_config.processed_dir / "arima_forecast.csv").exists()
    assert not (tmp_config.processed_dir / "prophet_forecast.csv").exists()
    assert not (tmp_config.processed_dir / "forecast_comparison.csv").exists()


def test_misaligned_forecasts_fail_only_forecasting(tmp_config, stub_forecaster):
    config = dataclasses.replace(tmp_config, render_charts=True)
    forecasters = [stub_forecaster("StubA"), stub_forecaster("StubB", offset_months=1)]

    ctx = run_pipeline(config, forecasters=forecasters)

    res = statuses(ctx)
    assert res["forecasting"] == "failed"
    assert res["hotspot aggregation"] == "success"
    assert res["charts"] == "success"
    assert ctx.log.failed_stages == ["forecasting"]


def test_resume_reuses_artifacts(tmp_config, stub_forecaster):
    forecasters = [stub_forecaster("StubA"), stub_forecaster("StubB")]
    first = run_pipeline(tmp_config, forecasters=forecasters)

    # input is still missing and the generator is off, so only stored artifacts can satisfy the run
    config = dataclasses.replace(tmp_config, resume=True, use_synthetic=False)
    second = run_pipeline(config, forecasters=forecasters)

    res = statuses(second)
    assert res["ingestion"] == "skipped"
    assert res["cleaning"] == "success"
    assert res["forecasting"] == "success"
    assert len(second.incidents) == len(first.incidents)
    assert second.forecast_run.raw == {}
    assert second.forecast_run.comparison.totals == pytest.approx(first.forecast_run.comparison.totals)


def test_resume_with_other_horizon_refits(tmp_config, stub_forecaster):
    forecasters = [stub_forecaster("StubA"), stub_forecaster("StubB")]
    run_pipeline(tmp_config, forecasters=forecasters)

    ctx = run_pipeline(dataclasses.replace(tmp_config, resume=True, horizon=3), forecasters=forecasters)

    assert set(ctx.forecast_run.raw) == {"StubA", "StubB"}
    assert len(ctx.forecast_run.forecasts["StubA"]) == 3


def test_cli(tmp_path):
    out = tmp_path / "outputs"

    res = main(
        [
            "--input", str(tmp_path / "missing.csv"),
            "--output-dir", str(out),
            "--models", "Naive",
            "--no-charts",
            "--no-maps",
            "--horizon", "4",
        ]
    )

    assert res == 0
    assert (out / "processed" / "naive_forecast.csv").exists()
    assert (out / "processed" / "monthly_crimes.csv").exists()


def test_invalid_model_output_is_partial(tmp_config, stub_forecaster, bad_interval_forecaster):
    ctx = run_pipeline(tmp_config, forecasters=[stub_forecaster("ARIMA"), bad_interval_forecaster("Prophet")])

    assert statuses(ctx)["forecasting"] == "partial"
    assert "Prophet" in ctx.forecast_run.unavailable
    assert (tmp_config.processed_dir / "arima_forecast.csv").exists()
    assert not (tmp_config.processed_dir / "prophet_forecast.csv").exists()
