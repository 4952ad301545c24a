"""
Tests of crime_pipelines.transform.temporal
"""

import pandas as pd
import pytest

from crime_pipelines.transform.temporal import MONTH_LABELS, WEEKDAY_LABELS, add_temporal_features


@pytest.fixture
def dated():
    return pd.DataFrame(
        {
            "timestamp": pd.to_datetime(
                ["2024-01-01 09:00", "2024-01-03 12:00", "2024-01-07 18:00", "2024-07-04 01:00"]
            ),
            "crime_type": ["Theft"] * 4,
        }
    )


def test_calendar_columns(dated):
    res = add_temporal_features(dated)

    assert res["year"].tolist() == [2024] * 4
    assert res["month_num"].tolist() == [1, 1, 1, 7]
    assert res["quarter"].tolist() == [1, 1, 1, 3]
    assert res["year_month"].tolist() == [pd.Timestamp("2024-01-01")] * 3 + [pd.Timestamp("2024-07-01")]


@pytest.mark.parametrize(
    "row, weekday, name, weekend",
    (
        pytest.param(0, 1, "Mon", False, id="monday"),
        pytest.param(1, 3, "Wed", False, id="wednesday"),
        pytest.param(2, 7, "Sun", True, id="sunday"),
    ),
)
def test_iso_weekday(dated, row, weekday, name, weekend):
    res = add_temporal_features(dated)

    assert res["weekday"].iloc[row] == weekday
    assert res["weekday_name"].iloc[row] == name
    assert bool(res["is_weekend"].iloc[row]) is weekend


def test_week_starts_on_monday(dated):
    res = add_temporal_features(dated)

    assert res["week"].iloc[1] == pd.Timestamp("2024-01-01")
    assert res["week"].iloc[2] == pd.Timestamp("2024-01-01")


def test_holiday_flag(dated):
    res = add_temporal_features(dated)

    assert res["is_holiday"].tolist() == [True, False, False, True]


def test_ordered_categoricals(dated):
    res = add_temporal_features(dated)

    assert list(res["month"].cat.categories) == MONTH_LABELS
    assert res["month"].cat.ordered
    assert list(res["weekday_name"].cat.categories) == WEEKDAY_LABELS


def test_input_not_mutated(dated):
    before = dated.copy()

    add_temporal_features(dated)

    pd.testing.assert_frame_equal(dated, before)
