import logging

import numpy as np
import pandas as pd
import pytest

from inflation_forecaster_src.metrics_utils import (
    ACCURACY_COLUMNS, UndefinedPercentageError, accuracy_table, acf1, mape, mase, mpe,
    percentage_error, rank_by_mape, rmse,
)


def test_percentage_error_definition():
    assert percentage_error(4.0, 3.0) == pytest.approx(25.0)
    assert percentage_error(-2.0, -3.0) == pytest.approx(-50.0)
    with pytest.raises(UndefinedPercentageError):
        percentage_error(0.0, 1.0)


def test_mape_excludes_zero_actuals(caplog):
    with caplog.at_level(logging.DEBUG, logger="inflation_forecaster_src.metrics_utils"):
        value = mape([0.0, 2.0, 4.0], [1.0, 1.0, 2.0])
    assert value == pytest.approx(50.0)
    assert any("actual is zero" in rec.getMessage() for rec in caplog.records)


def test_mape_all_zero_actuals_is_nan():
    assert np.isnan(mape([0.0, 0.0], [1.0, 2.0]))


def test_mape_invariant_under_positive_rescaling():
    rng = np.random.default_rng(3)
    actual = rng.normal(5.0, 2.0, 50)
    predicted = actual + rng.normal(0.0, 0.5, 50)
    assert mape(actual * 7.5, predicted * 7.5) == pytest.approx(mape(actual, predicted))


def test_series_inputs_align_on_index():
    a = pd.Series([1.0, 2.0, 4.0], index=[0, 1, 2])
    p = pd.Series([2.0, 2.0], index=[1, 2])
    assert mape(a, p) == pytest.approx(25.0)
    assert mpe(a, p) == pytest.approx(25.0)
    assert rmse(a, p) == pytest.approx(np.sqrt(2.0))


def test_mase_uses_seasonal_naive_scale():
    train = np.arange(24, dtype=float)  # seasonal differences are all 12
    assert mase([1.0, 2.0], [2.0, 3.0], train, m=12) == pytest.approx(1.0 / 12.0)
    assert np.isnan(mase([1.0], [2.0], train[:12], m=12))


def test_acf1_of_alternating_errors_is_negative():
    actual = np.zeros(20)
    predicted = np.tile([1.0, -1.0], 10)
    assert acf1(actual, predicted) < -0.5


def test_accuracy_table_layout():
    idx = pd.date_range("2010-01-01", periods=30, freq="MS")
    rng = np.random.default_rng(11)
    actual = pd.Series(rng.normal(2.0, 1.0, 30), index=idx)
    preds = pd.DataFrame({"good": actual + 0.1, "bad": actual + 1.0}, index=idx)

    table = accuracy_table(actual, preds, actual)
    assert list(table.columns) == ACCURACY_COLUMNS
    assert list(table.index) == ["good", "bad"]
    assert table.loc["good", "ME"] == pytest.approx(-0.1)
    assert table.loc["bad", "MAE"] == pytest.approx(1.0)
    assert table.loc["good", "MAPE"] < table.loc["bad", "MAPE"]


def test_rank_by_mape_is_stable_with_nan_last():
    table = pd.DataFrame({"MAPE": [3.0, np.nan, 1.0, 3.0, 1.0]}, index=["a", "b", "c", "d", "e"])
    ranked = rank_by_mape(table)
    assert list(ranked.index) == ["c", "e", "a", "d", "b"]
