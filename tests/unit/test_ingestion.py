"""
Tests of crime_pipelines.ingestion
"""

import dataclasses

import pandas as pd
import pytest

from config import SYNTHETIC_CRIME_TYPES, SYNTHETIC_LAT_RANGE, SYNTHETIC_LON_RANGE
from crime_pipelines.exceptions import MissingInputError
from crime_pipelines.ingestion import generate_sample_data, load_crime_csv, run_ingestion


@pytest.fixture
def raw_csv(tmp_path):
    path = tmp_path / "crimes.csv"
    rows = ["ID,Date,Primary Type,Latitude,Longitude,Arrest"]
    for i in range(10):
        rows.append(f"{i},01/0{(i % 9) + 1}/2024 10:00:00 AM,THEFT,41.8{i},-87.6{i},false")
    path.write_text("\n".join(rows) + "\n")
    return path


def test_generator_reproducible():
    pd.testing.assert_frame_equal(generate_sample_data(200, seed=1), generate_sample_data(200, seed=1))


def test_generator_ranges():
    res = generate_sample_data(500, seed=3)

    assert len(res) == 500
    assert res["id"].is_unique
    assert res["latitude"].between(*SYNTHETIC_LAT_RANGE).all()
    assert res["longitude"].between(*SYNTHETIC_LON_RANGE).all()
    assert set(res["primary_type"]) <= set(SYNTHETIC_CRIME_TYPES)
    assert res["hour"].between(0, 23).all()
    assert res["date"].min() >= pd.Timestamp("2021-01-01")


def test_load_csv_standardizes_columns(raw_csv):
    res = load_crime_csv(raw_csv)

    assert list(res.columns) == ["id", "date", "primary_type", "latitude", "longitude", "arrest"]
    assert len(res) == 10
    # every column stays text
    assert res["latitude"].iloc[0] == "41.80"


def test_load_csv_samples(raw_csv):
    first = load_crime_csv(raw_csv, sample_size=4, seed=9)
    second = load_crime_csv(raw_csv, sample_size=4, seed=9)

    assert len(first) == 4
    pd.testing.assert_frame_equal(first, second)
    assert first["id"].astype(int).is_monotonic_increasing


def test_load_csv_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_crime_csv(tmp_path / "nope.csv")


def test_run_ingestion_reads_file(tmp_config, raw_csv):
    res = run_ingestion(dataclasses.replace(tmp_config, input_path=raw_csv))

    assert len(res) == 10


def test_run_ingestion_synthetic_fallback(tmp_config):
    res = run_ingestion(dataclasses.replace(tmp_config, synthetic_records=50))

    assert len(res) == 50


def test_run_ingestion_missing_input(tmp_config):
    with pytest.raises(MissingInputError):
        run_ingestion(dataclasses.replace(tmp_config, use_synthetic=False))
