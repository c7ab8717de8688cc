import numpy as np
import pandas as pd
import pytest

from inflation_forecaster_src.data_utils import InsufficientDataError, split_train_test
from inflation_forecaster_src.forecasting_utils import (
    DESIGN_BUILDERS, ENSEMBLE_NAME, SingularDesignError, build_design_matrix, design_columns,
    ensemble_forecast, fit_all_models, fit_driver_model, forecast_all, predict, predict_interval,
)
from inflation_forecaster_src.transform_utils import transform_series


@pytest.fixture
def partition(raw_frame):
    return split_train_test(transform_series(raw_frame), "2007-12-01")


def test_design_matrix_layout(partition):
    X = build_design_matrix(partition.history, "unrate", partition.train.index)

    assert list(X.columns) == design_columns("unrate")
    assert X.shape[1] == 25
    # first row with 23 months of history: 2001-02 + 23 months
    assert X.index[0] == pd.Timestamp("2003-01-01")
    assert X.index[-1] == pd.Timestamp("2007-12-01")
    assert (X["const"] == 1.0).all()


def test_design_matrix_lags_reach_back_across_cutoff(partition):
    X = build_design_matrix(partition.history, "mich", partition.test.index)
    first = partition.test.index[0]

    assert len(X) == len(partition.test)
    assert X.loc[first, "dinfl_lag12"] == partition.train.loc[first - pd.DateOffset(months=12), "dinfl"]
    assert X.loc[first, "mich_lag23"] == partition.train.loc[first - pd.DateOffset(months=23), "mich"]


def test_design_matrix_uses_only_past_observations(partition):
    history = partition.history.copy()
    target = partition.test.index[3]
    before = build_design_matrix(history, "indpro", pd.DatetimeIndex([target]))

    # perturbing the target month and later must not change its regressors
    history.loc[history.index >= target, ["dinfl", "indpro"]] += 100.0
    after = build_design_matrix(history, "indpro", pd.DatetimeIndex([target]))
    pd.testing.assert_frame_equal(before, after)


def test_design_matrix_rejects_bad_input(partition):
    with pytest.raises(ValueError):
        build_design_matrix(partition.history, "unrate", partition.train.index, lags=[0, 12])
    with pytest.raises(KeyError):
        build_design_matrix(partition.history, "gdp", partition.train.index)
    with pytest.raises(ValueError):
        build_design_matrix(partition.history, "unrate", pd.DatetimeIndex([pd.Timestamp("2030-01-01")]))


def test_design_builders_match_generic_builder(partition):
    assert set(DESIGN_BUILDERS) == {"unrate", "expinf1yr", "mich", "indpro"}
    X = DESIGN_BUILDERS["expinf1yr"](partition.history, index=partition.train.index)
    pd.testing.assert_frame_equal(X, build_design_matrix(partition.history, "expinf1yr", partition.train.index))


def test_ols_satisfies_normal_equations(partition):
    model = fit_driver_model(partition, "unrate")
    X = build_design_matrix(partition.history, "unrate", partition.train.index)

    assert model.nobs == 60
    assert model.design_columns == list(X.columns)
    gradient = X.to_numpy().T @ model.residuals.to_numpy()
    assert np.abs(gradient).max() < 1e-6


def test_ols_matches_least_squares(partition):
    model = fit_driver_model(partition, "indpro")
    X = build_design_matrix(partition.history, "indpro", partition.train.index)
    y = partition.train.loc[X.index, "dinfl12"]
    beta, *_ = np.linalg.lstsq(X.to_numpy(), y.to_numpy(), rcond=None)
    assert np.allclose(model.coefficients.to_numpy(), beta, atol=1e-6)


def test_constant_driver_is_singular(raw_frame):
    raw = raw_frame.copy()
    raw["MICH"] = 3.0
    part = split_train_test(transform_series(raw), "2007-12-01")

    with pytest.raises(SingularDesignError) as info:
        fit_driver_model(part, "mich")
    assert info.value.driver == "mich"
    assert info.value.rank < info.value.n_columns


def test_too_few_rows_with_lag_history(raw_frame):
    # 29 training rows, but only 2003-01..2003-06 have 23 months of history
    part = split_train_test(transform_series(raw_frame), "2003-06-01")
    with pytest.raises(InsufficientDataError):
        fit_driver_model(part, "unrate")


def test_fit_all_models_skips_singular_driver(raw_frame, caplog):
    raw = raw_frame.copy()
    raw["EXPINF1YR"] = 2.0
    part = split_train_test(transform_series(raw), "2007-12-01")

    with caplog.at_level("WARNING"):
        models = fit_all_models(part)

    assert [m.name for m in models] == ["unrate", "mich", "indpro"]
    assert any("expinf1yr" in rec.getMessage() for rec in caplog.records)

    with pytest.raises(SingularDesignError):
        fit_all_models(part, skip_singular=False)


def test_fit_all_models_raises_when_nothing_fits(raw_frame):
    raw = raw_frame.copy()
    raw[["UNRATE", "EXPINF1YR", "MICH"]] = 1.0
    raw["INDPRO"] = 50.0
    part = split_train_test(transform_series(raw), "2007-12-01")
    with pytest.raises(SingularDesignError):
        fit_all_models(part)


def test_ensemble_is_mean_of_members():
    idx = pd.date_range("2010-01-01", periods=3, freq="MS")
    members = pd.DataFrame({"a": [1.0, 2.0, 3.0], "b": [3.0, 2.0, 1.0], "c": [2.0, 5.0, 2.0]}, index=idx)
    ens = ensemble_forecast(members)

    assert ens.name == ENSEMBLE_NAME
    assert np.allclose(ens, [2.0, 3.0, 2.0])
    assert np.allclose(ensemble_forecast({"a": members["a"]}), members["a"])
    with pytest.raises(ValueError):
        ensemble_forecast(pd.DataFrame(index=idx))


def test_forecast_all_layout(partition):
    models = fit_all_models(partition)
    fs = forecast_all(models, partition, level=95)

    assert fs.model_names == ["unrate", "expinf1yr", "mich", "indpro", ENSEMBLE_NAME]
    assert fs.forecasts.index.equals(partition.test.index)
    assert len(fs.fitted) == 60
    members = fs.forecasts.drop(columns=ENSEMBLE_NAME)
    assert np.allclose(fs.forecasts[ENSEMBLE_NAME], members.mean(axis=1))
    assert (fs.lower.to_numpy() <= fs.forecasts.to_numpy()).all()
    assert (fs.forecasts.to_numpy() <= fs.upper.to_numpy()).all()
    assert np.allclose(fs.lower[ENSEMBLE_NAME], fs.lower.drop(columns=ENSEMBLE_NAME).mean(axis=1))


def test_predict_matches_fitted_values_in_sample(partition):
    model = fit_driver_model(partition, "mich")
    pred = predict(model, partition.history, partition.train.index)
    assert np.allclose(pred.to_numpy(), model.fitted_values.to_numpy())

    iv = predict_interval(model, partition.history, partition.test.index, level=80)
    assert list(iv.columns) == ["mean", "lower", "upper"]
    assert np.allclose(iv["mean"], predict(model, partition.history, partition.test.index))
