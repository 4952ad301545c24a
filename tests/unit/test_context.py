"""
Tests of crime_pipelines.context
"""

import pytest

from crime_pipelines.context import PipelineConfig
from crime_pipelines.visualize.sampling import NoSampler, RandomSampler


@pytest.mark.parametrize(
    "seed",
    (
        pytest.param(999, id="custom"),
        pytest.param(0, id="zero"),
    ),
)
def test_default_sampler_uses_run_seed(seed):
    res = PipelineConfig(seed=seed).sampler

    assert isinstance(res, RandomSampler)
    assert res.seed == seed


def test_explicit_sampler_kept():
    sampler = NoSampler()

    assert PipelineConfig(seed=999, sampler=sampler).sampler is sampler


def test_output_subdirectories(tmp_path):
    res = PipelineConfig(output_dir=tmp_path)

    assert res.processed_dir == tmp_path / "processed"
    assert res.plots_dir == tmp_path / "plots"
    assert res.maps_dir == tmp_path / "maps"
    assert res.models_dir == tmp_path / "models"
