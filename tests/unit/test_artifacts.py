"""
Tests of crime_pipelines.utils.artifacts
"""

import json

import geopandas as gpd
import pandas as pd
import pyarrow as pa
import pyarrow.parquet as pq
import pytest

from crime_pipelines.exceptions import SchemaVersionError
from crime_pipelines.transform.hotspots import compute_hotspots, hotspots_to_geodataframe
from crime_pipelines.transform.schema import coerce_canonical
from crime_pipelines.utils.artifacts import MANIFEST_NAME, ArtifactStore


def test_csv_round_trip_keeps_canonical_values(tmp_path, sample_incidents):
    store = ArtifactStore(tmp_path)
    store.save_table("crime_data_clean", sample_incidents)

    res = coerce_canonical(store.load_table("crime_data_clean"))

    assert len(res) == len(sample_incidents)
    assert res["id"].tolist() == sample_incidents["id"].tolist()
    assert (res["timestamp"] == sample_incidents["timestamp"].reset_index(drop=True)).all()
    assert (res["latitude"] - sample_incidents["latitude"].to_numpy()).abs().max() < 1e-6
    assert (res["longitude"] - sample_incidents["longitude"].to_numpy()).abs().max() < 1e-6
    assert str(res["arrest"].dtype) == "boolean"


def test_parquet_round_trip(tmp_path, sample_incidents):
    store = ArtifactStore(tmp_path)
    store.save_table("crime_data_clean", sample_incidents, formats=("csv", "parquet"))

    res = store.load_table("crime_data_clean")

    pd.testing.assert_frame_equal(res, sample_incidents, check_dtype=False)
    assert str(res["arrest"].dtype) == "boolean"
    assert str(res["hour"].dtype) == "Int64"


def test_manifest_records_tables(tmp_path):
    store = ArtifactStore(tmp_path, schema_version=3)
    df = pd.DataFrame({"a": [1, 2], "b": ["x", "y"]})

    store.save_table("small", df)

    with open(tmp_path / MANIFEST_NAME) as f:
        manifest = json.load(f)
    entry = manifest["artifacts"]["small"]
    assert manifest["schema_version"] == 3
    assert entry["rows"] == 2
    assert entry["columns"] == ["a", "b"]
    assert entry["formats"] == ["csv"]
    assert store.exists("small")


def test_other_schema_version_rejected(tmp_path):
    ArtifactStore(tmp_path, schema_version=1).save_table("small", pd.DataFrame({"a": [1]}))
    newer = ArtifactStore(tmp_path, schema_version=2)

    assert not newer.exists("small")
    with pytest.raises(SchemaVersionError):
        newer.load_table("small")


def test_parquet_without_version_metadata_rejected(tmp_path):
    store = ArtifactStore(tmp_path)
    store.save_table("small", pd.DataFrame({"a": [1, 2]}), formats=("parquet",))
    pq.write_table(pa.Table.from_pandas(pd.DataFrame({"a": [1, 2]})), store.path_for("small", "parquet"))

    with pytest.raises(SchemaVersionError):
        store.load_table("small")


def test_unknown_artifact(tmp_path):
    store = ArtifactStore(tmp_path)

    assert not store.exists("nothing")
    with pytest.raises(FileNotFoundError):
        store.load_table("nothing")


def test_deleted_file_not_reported(tmp_path):
    store = ArtifactStore(tmp_path)
    (path,) = store.save_table("small", pd.DataFrame({"a": [1]}))
    path.unlink()

    assert not store.exists("small")
    with pytest.raises(FileNotFoundError):
        store.load_table("small")


def test_unsupported_format(tmp_path):
    with pytest.raises(ValueError):
        ArtifactStore(tmp_path).save_table("small", pd.DataFrame({"a": [1]}), formats=("xlsx",))


def test_object_round_trip(tmp_path):
    store = ArtifactStore(tmp_path)
    obj = {"ARIMA": {"order": (1, 1, 0)}, "values": [1.5, 2.5]}

    store.save_object("forecast_models", obj)

    assert store.load_object("forecast_models") == obj


def test_geojson_written(tmp_path, five_incidents):
    store = ArtifactStore(tmp_path)
    cells = compute_hotspots(five_incidents).cells

    path = store.save_geojson("crime_hotspot_cells", hotspots_to_geodataframe(cells))

    res = gpd.read_file(path)
    assert len(res) == 2
    assert res["crime_count"].tolist() == [3, 2]
    assert store.read_manifest()["artifacts"]["crime_hotspot_cells"]["kind"] == "geojson"
