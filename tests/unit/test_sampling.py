"""
Tests of crime_pipelines.visualize.sampling
"""

import pandas as pd
import pytest

from crime_pipelines.visualize.sampling import NoSampler, RandomSampler


@pytest.fixture
def frame():
    return pd.DataFrame({"a": range(100)})


@pytest.mark.parametrize(
    "n, exp_len",
    (
        pytest.param(None, 100, id="no-limit"),
        pytest.param(100, 100, id="exact"),
        pytest.param(500, 100, id="larger"),
        pytest.param(10, 10, id="smaller"),
    ),
)
def test_random_sampler_size(frame, n, exp_len):
    assert len(RandomSampler(1).sample(frame, n)) == exp_len


def test_random_sampler_reproducible(frame):
    first = RandomSampler(5).sample(frame, 10)
    second = RandomSampler(5).sample(frame, 10)

    pd.testing.assert_frame_equal(first, second)
    assert first["a"].is_unique


def test_random_sampler_seed_changes_rows(frame):
    assert RandomSampler(1).sample(frame, 10).index.tolist() != RandomSampler(2).sample(frame, 10).index.tolist()


def test_no_sampler_keeps_everything(frame):
    assert NoSampler().sample(frame, 1) is frame
