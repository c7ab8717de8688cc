# inflation_forecaster_src/forecasting_utils.py

import hashlib
import numpy as np
import pandas as pd
from dataclasses import dataclass, field
from functools import partial
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union
from tqdm.auto import tqdm
import logging

import statsmodels.api as sm

from .data_utils import InsufficientDataError, Partition

logger = logging.getLogger(__name__)

TARGET = "dinfl12"
INFLATION_LAG_VARIABLE = "dinfl"
DRIVERS = ("unrate", "expinf1yr", "mich", "indpro")
DEFAULT_LAGS: Tuple[int, ...] = tuple(range(12, 24))
ENSEMBLE_NAME = "ensem"


class SingularDesignError(Exception):
    """Raised when a design matrix is rank-deficient beyond the configured tolerance."""

    def __init__(self, message: str, driver: Optional[str] = None,
                 rank: Optional[int] = None, n_columns: Optional[int] = None):
        super().__init__(message)
        self.driver = driver
        self.rank = rank
        self.n_columns = n_columns


@dataclass(frozen=True)
class FittedModel:
    """
    OLS estimate of one Phillips-curve specification.

    Attributes
    ----------
    name : str
        Model identifier (the driver name).
    driver : str
        Driver column whose lags enter the regression.
    lags : Tuple[int, ...]
        Lags applied to both dinfl and the driver.
    coefficients : pd.Series
        Estimated weights indexed by design column.
    fitted_values : pd.Series
        In-sample predictions on the estimation rows.
    residuals : pd.Series
        ``dinfl12 - fitted_values`` on the estimation rows.
    results : statsmodels RegressionResults
        Kept for prediction intervals and residual diagnostics.
    """

    name: str
    driver: str
    lags: Tuple[int, ...]
    coefficients: pd.Series
    fitted_values: pd.Series
    residuals: pd.Series
    results: Any = field(repr=False, compare=False)

    @property
    def design_columns(self) -> List[str]:
        return list(self.coefficients.index)

    @property
    def nobs(self) -> int:
        return int(len(self.residuals))


@dataclass(frozen=True)
class ForecastSet:
    """
    Predictions of every model plus the ensemble.

    ``fitted`` holds in-sample values over the training rows that have full
    lag history, ``forecasts`` the out-of-sample values over the test rows.
    Both have one column per fitted model followed by ``ensem``. ``lower``
    and ``upper`` are the prediction-interval bounds over the test rows.
    """

    fitted: pd.DataFrame
    forecasts: pd.DataFrame
    lower: pd.DataFrame
    upper: pd.DataFrame
    level: int

    @property
    def model_names(self) -> List[str]:
        return list(self.forecasts.columns)


def design_columns(driver: str, lags: Sequence[int] = DEFAULT_LAGS) -> List[str]:
    """Column names of the design matrix for ``driver``, in order."""
    return (["const"]
            + [f"{INFLATION_LAG_VARIABLE}_lag{k}" for k in lags]
            + [f"{driver}_lag{k}" for k in lags])


def build_design_matrix(history: pd.DataFrame,
                        driver: str,
                        index: pd.DatetimeIndex,
                        lags: Sequence[int] = DEFAULT_LAGS) -> pd.DataFrame:
    """
    Build the regressor matrix for target months ``index``.

    Columns are an intercept, dinfl lagged ``lags`` and ``driver`` lagged
    ``lags``. Lag values are looked up in ``history`` (the full, contiguous
    transformed dataset), so a test month can reach back into training
    months. With lags >= 1 a row only uses strictly earlier observations.

    Parameters
    ----------
    history : pd.DataFrame
        Continuous transformed dataset containing 'dinfl' and ``driver``.
    driver : str
        Driver column name.
    index : pd.DatetimeIndex
        Target months; each must be present in ``history``.
    lags : Sequence[int], default=12..23
        Lags to include.

    Returns
    -------
    pd.DataFrame
        Fixed-shape design matrix, columns from design_columns(). Target
        months without full lag history are dropped.

    Raises
    ------
    KeyError
        If ``driver`` or 'dinfl' is not a column of ``history``.
    ValueError
        If a target month is not in ``history`` or a lag is not positive.
    """
    for col in (INFLATION_LAG_VARIABLE, driver):
        if col not in history.columns:
            raise KeyError(f"History has no column '{col}'")
    if any(int(k) < 1 for k in lags):
        raise ValueError("Lags must be positive so regressors only use past observations")

    index = pd.DatetimeIndex(index)
    unknown = index.difference(history.index)
    if len(unknown) > 0:
        raise ValueError(f"{len(unknown)} target months are not in the history (first: {unknown[0].date()})")

    columns: Dict[str, pd.Series] = {"const": pd.Series(1.0, index=history.index)}
    for k in lags:
        columns[f"{INFLATION_LAG_VARIABLE}_lag{k}"] = history[INFLATION_LAG_VARIABLE].shift(k)
    for k in lags:
        columns[f"{driver}_lag{k}"] = history[driver].shift(k)

    design = pd.DataFrame(columns, index=history.index).loc[index]
    return design.dropna()


DESIGN_BUILDERS: Dict[str, Callable[..., pd.DataFrame]] = {
    driver: partial(build_design_matrix, driver=driver) for driver in DRIVERS
}


def check_design_rank(design: pd.DataFrame, rank_rtol: float = 1e-10, driver: Optional[str] = None) -> int:
    """
    Verify the design matrix has full column rank.

    The numerical rank is the number of singular values above
    ``rank_rtol * s_max``.

    Parameters
    ----------
    design : pd.DataFrame
        Design matrix.
    rank_rtol : float, default=1e-10
        Relative singular-value tolerance.
    driver : str, optional
        Driver name for error messages.

    Returns
    -------
    int
        The rank (equal to the number of columns).

    Raises
    ------
    SingularDesignError
        If the rank is below the number of columns.
    """
    X = design.to_numpy(dtype=float)
    n_cols = X.shape[1]
    s = np.linalg.svd(X, compute_uv=False)
    s_max = float(s.max()) if s.size else 0.0
    rank = int((s > rank_rtol * s_max).sum()) if s_max > 0.0 else 0

    if rank < n_cols:
        raise SingularDesignError(
            f"Design matrix for '{driver}' has rank {rank} < {n_cols} columns "
            f"(rtol={rank_rtol:g}); check for constant or collinear regressors",
            driver=driver, rank=rank, n_columns=n_cols,
        )
    return rank


def fit_driver_model(partition: Partition,
                     driver: str,
                     lags: Sequence[int] = DEFAULT_LAGS,
                     rank_rtol: float = 1e-10) -> FittedModel:
    """
    Fit dinfl12 on lagged dinfl and lagged ``driver`` by OLS over the train rows.

    Parameters
    ----------
    partition : Partition
        Train/test split with the continuous history.
    driver : str
        Driver column name.
    lags : Sequence[int], default=12..23
        Distributed-lag structure.
    rank_rtol : float, default=1e-10
        Relative tolerance for the rank check.

    Returns
    -------
    FittedModel

    Raises
    ------
    InsufficientDataError
        If fewer train rows with full lag history remain than parameters.
    SingularDesignError
        If the design matrix is rank-deficient.

    Notes
    -----
    Estimated with statsmodels OLS using a QR decomposition.
    """
    lags = tuple(int(k) for k in lags)
    X = build_design_matrix(partition.history, driver, partition.train.index, lags)
    n_params = X.shape[1]
    if len(X) < n_params:
        raise InsufficientDataError(
            f"Model '{driver}': {len(X)} training rows have full lag history, "
            f"{n_params} parameters need at least as many"
        )

    check_design_rank(X, rank_rtol=rank_rtol, driver=driver)

    y = partition.train.loc[X.index, TARGET]
    results = sm.OLS(y, X).fit(method="qr")

    coefficients = pd.Series(np.asarray(results.params, dtype=float), index=X.columns, name=driver)
    fitted = pd.Series(np.asarray(results.fittedvalues, dtype=float), index=X.index, name=driver)
    residuals = pd.Series(np.asarray(results.resid, dtype=float), index=X.index, name=driver)

    logger.info("Fitted model '%s' on %d rows (%s..%s): R2=%.3f",
                driver, len(X), X.index[0].date(), X.index[-1].date(), float(results.rsquared))
    return FittedModel(
        name=driver,
        driver=driver,
        lags=lags,
        coefficients=coefficients,
        fitted_values=fitted,
        residuals=residuals,
        results=results,
    )


def fit_all_models(partition: Partition,
                   drivers: Sequence[str] = DRIVERS,
                   lags: Sequence[int] = DEFAULT_LAGS,
                   rank_rtol: float = 1e-10,
                   skip_singular: bool = True) -> List[FittedModel]:
    """
    Fit one model per driver, in the given order.

    Parameters
    ----------
    partition : Partition
        Train/test split.
    drivers : Sequence[str]
        Driver columns, one model each.
    lags : Sequence[int]
        Distributed-lag structure shared by all models.
    rank_rtol : float
        Rank-check tolerance.
    skip_singular : bool, default=True
        When True a SingularDesignError for one driver is logged and that
        model is left out; when False it propagates.

    Returns
    -------
    List[FittedModel]
        Fitted models in driver order.

    Raises
    ------
    SingularDesignError
        If ``skip_singular`` is False and any design is singular, or if no
        model could be fitted.
    ValueError
        If a driver is listed more than once (model names must be unique).
    InsufficientDataError
        If the training sample is too short for the lag structure.
    """
    drivers = list(drivers)
    repeated = sorted({d for d in drivers if drivers.count(d) > 1})
    if repeated:
        raise ValueError(f"Drivers listed more than once: {repeated}")

    models: List[FittedModel] = []
    last_error: Optional[SingularDesignError] = None

    for driver in tqdm(drivers, desc="Fitting Phillips-curve models", disable=None):
        try:
            models.append(fit_driver_model(partition, driver, lags=lags, rank_rtol=rank_rtol))
        except SingularDesignError as e:
            if not skip_singular:
                raise
            logger.warning("Skipping model '%s': %s", driver, e)
            last_error = e

    if not models:
        raise last_error or SingularDesignError("No driver models were requested")
    return models


def predict(model: FittedModel, history: pd.DataFrame, index: pd.DatetimeIndex) -> pd.Series:
    """
    Point predictions of ``model`` for target months ``index``.

    Parameters
    ----------
    model : FittedModel
        Estimated model.
    history : pd.DataFrame
        Continuous transformed dataset used for lag lookup.
    index : pd.DatetimeIndex
        Target months.

    Returns
    -------
    pd.Series
        Predictions named after the model. Months without full lag history
        are omitted.
    """
    X = build_design_matrix(history, model.driver, index, model.lags)
    values = np.asarray(model.results.predict(X[model.design_columns]), dtype=float)
    return pd.Series(values, index=X.index, name=model.name)


def predict_interval(model: FittedModel,
                     history: pd.DataFrame,
                     index: pd.DatetimeIndex,
                     level: float = 95) -> pd.DataFrame:
    """
    Point predictions with prediction-interval bounds.

    Parameters
    ----------
    model : FittedModel
        Estimated model.
    history : pd.DataFrame
        Continuous transformed dataset.
    index : pd.DatetimeIndex
        Target months.
    level : float, default=95
        Coverage in percent.

    Returns
    -------
    pd.DataFrame
        Columns 'mean', 'lower', 'upper' indexed by target month.
    """
    X = build_design_matrix(history, model.driver, index, model.lags)
    alpha = 1.0 - float(level) / 100.0
    frame = model.results.get_prediction(X[model.design_columns]).summary_frame(alpha=alpha)
    return pd.DataFrame(
        {
            "mean": np.asarray(frame["mean"], dtype=float),
            "lower": np.asarray(frame["obs_ci_lower"], dtype=float),
            "upper": np.asarray(frame["obs_ci_upper"], dtype=float),
        },
        index=X.index,
    )


def ensemble_forecast(forecasts: Union[pd.DataFrame, Mapping[str, pd.Series]]) -> pd.Series:
    """
    Unweighted mean of already produced member forecasts.

    The ensemble has no parameters of its own; this is the whole of it.

    Parameters
    ----------
    forecasts : pd.DataFrame or Mapping[str, pd.Series]
        One column (or series) per member model on a shared index.

    Returns
    -------
    pd.Series
        Row-wise mean named ``ensem``.

    Raises
    ------
    ValueError
        If no member forecasts are given.
    """
    frame = forecasts if isinstance(forecasts, pd.DataFrame) else pd.DataFrame(dict(forecasts))
    if frame.shape[1] == 0:
        raise ValueError("Ensemble needs at least one member forecast")
    return frame.mean(axis=1, skipna=False).rename(ENSEMBLE_NAME)


def _with_ensemble(members: pd.DataFrame) -> pd.DataFrame:
    out = members.copy()
    out[ENSEMBLE_NAME] = ensemble_forecast(members)
    return out


def forecast_all(models: Sequence[FittedModel], partition: Partition, level: float = 95) -> ForecastSet:
    """
    In-sample fitted values, out-of-sample forecasts and bands for every model.

    Parameters
    ----------
    models : Sequence[FittedModel]
        Fitted driver models.
    partition : Partition
        Train/test split with continuous history.
    level : float, default=95
        Prediction-interval coverage in percent.

    Returns
    -------
    ForecastSet
        Member columns in model order followed by ``ensem``. Only months
        where every member has a prediction are kept. The ensemble band is
        the mean of the member bounds.
    """
    if not models:
        raise ValueError("forecast_all needs at least one fitted model")

    history = partition.history
    fitted = pd.concat([predict(m, history, partition.train.index) for m in models], axis=1).dropna()

    intervals = {m.name: predict_interval(m, history, partition.test.index, level) for m in models}
    forecasts = pd.DataFrame({name: iv["mean"] for name, iv in intervals.items()}).dropna()
    lower = pd.DataFrame({name: iv["lower"] for name, iv in intervals.items()}).reindex(forecasts.index)
    upper = pd.DataFrame({name: iv["upper"] for name, iv in intervals.items()}).reindex(forecasts.index)

    logger.info("Produced %d in-sample and %d out-of-sample predictions for %d models",
                len(fitted), len(forecasts), len(models))
    return ForecastSet(
        fitted=_with_ensemble(fitted),
        forecasts=_with_ensemble(forecasts),
        lower=_with_ensemble(lower),
        upper=_with_ensemble(upper),
        level=int(level),
    )


def hash_forecast(seq: Union[List[float], np.ndarray, pd.Series]) -> str:
    """
    Generate a hash fingerprint for a forecast sequence.

    Parameters
    ----------
    seq : Union[List[float], np.ndarray, pd.Series]
        Forecast sequence to hash

    Returns
    -------
    str
        16-character SHA-1 hash of the forecast sequence

    Notes
    -----
    Identical hashes across runs confirm the pipeline is reproducible.
    """
    arr = np.ascontiguousarray(np.asarray(seq, dtype=np.float64))
    return hashlib.sha1(arr.tobytes()).hexdigest()[:16]
