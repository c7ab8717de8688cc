# inflation_forecaster_src/metrics_utils.py

import numpy as np
import pandas as pd
from dataclasses import dataclass
from typing import Dict, List, Mapping, Tuple, Union
import logging

from statsmodels.tsa.stattools import acf

from .data_utils import Partition
from .forecasting_utils import TARGET, ForecastSet

logger = logging.getLogger(__name__)

ArrayLike = Union[List[float], np.ndarray, pd.Series]

ACCURACY_COLUMNS = ["ME", "RMSE", "MAE", "MPE", "MAPE", "MASE", "ACF1"]
SEASONAL_PERIOD = 12


class UndefinedPercentageError(ArithmeticError):
    """Raised when a percentage error is requested for a zero actual value."""
    pass


@dataclass(frozen=True)
class AccuracyReport:
    """
    Ranked accuracy tables.

    Attributes
    ----------
    in_sample : pd.DataFrame
        One row per model (members then ``ensem``) over the training rows,
        sorted by ascending MAPE.
    out_of_sample : pd.DataFrame
        Same layout over the test rows.
    """

    in_sample: pd.DataFrame
    out_of_sample: pd.DataFrame

    def best_model(self, sample: str = "out_of_sample") -> str:
        table = getattr(self, sample)
        return str(table.index[0])


def _paired(actual: ArrayLike, predicted: ArrayLike) -> Tuple[np.ndarray, np.ndarray]:
    """Align two inputs and keep positions where both values are finite."""
    if isinstance(actual, pd.Series) and isinstance(predicted, pd.Series):
        actual, predicted = actual.align(predicted, join="inner")
    a = np.asarray(actual, dtype=float).ravel()
    p = np.asarray(predicted, dtype=float).ravel()
    if a.shape != p.shape:
        raise ValueError(f"Actual and predicted lengths differ: {a.size} != {p.size}")
    mask = np.isfinite(a) & np.isfinite(p)
    return a[mask], p[mask]


def percentage_error(actual: float, predicted: float) -> float:
    """
    100 * (actual - predicted) / actual.

    Raises
    ------
    UndefinedPercentageError
        If ``actual`` is zero.
    """
    if actual == 0:
        raise UndefinedPercentageError("Percentage error is undefined for a zero actual value")
    return 100.0 * (actual - predicted) / actual


def _percentage_errors(actual: ArrayLike, predicted: ArrayLike) -> np.ndarray:
    a, p = _paired(actual, predicted)
    out = []
    for i, (at, pt) in enumerate(zip(a, p)):
        try:
            out.append(percentage_error(float(at), float(pt)))
        except UndefinedPercentageError:
            logger.debug("Excluding observation %d from percentage metrics: actual is zero", i)
    return np.asarray(out, dtype=float)


def mape(actual: ArrayLike, predicted: ArrayLike) -> float:
    """
    Mean Absolute Percentage Error.

    Parameters
    ----------
    actual : ArrayLike
        Observed values.
    predicted : ArrayLike
        Predictions on the same positions (Series are aligned on index).

    Returns
    -------
    float
        Mean of |percentage_error| in percent, or NaN if no observation has
        a defined percentage error.

    Notes
    -----
    Observations with a zero actual are skipped rather than failing the
    whole computation.
    """
    pe = _percentage_errors(actual, predicted)
    if pe.size == 0:
        return float("nan")
    return float(np.mean(np.abs(pe)))


def mpe(actual: ArrayLike, predicted: ArrayLike) -> float:
    """Mean Percentage Error (signed), zero actuals excluded."""
    pe = _percentage_errors(actual, predicted)
    if pe.size == 0:
        return float("nan")
    return float(np.mean(pe))


def me(actual: ArrayLike, predicted: ArrayLike) -> float:
    """Mean error, actual - predicted."""
    a, p = _paired(actual, predicted)
    if a.size == 0:
        return float("nan")
    return float(np.mean(a - p))


def mae(actual: ArrayLike, predicted: ArrayLike) -> float:
    """Mean Absolute Error."""
    a, p = _paired(actual, predicted)
    if a.size == 0:
        return float("nan")
    return float(np.mean(np.abs(a - p)))


def rmse(actual: ArrayLike, predicted: ArrayLike) -> float:
    """Root Mean Square Error."""
    a, p = _paired(actual, predicted)
    if a.size == 0:
        return float("nan")
    return float(np.sqrt(np.mean((a - p) ** 2)))


def mase(actual: ArrayLike, predicted: ArrayLike, train_actual: ArrayLike, m: int = SEASONAL_PERIOD) -> float:
    """
    Mean Absolute Scaled Error.

    Parameters
    ----------
    actual : ArrayLike
        Observed values.
    predicted : ArrayLike
        Predictions.
    train_actual : ArrayLike
        In-sample target used for the scaling reference.
    m : int, default=12
        Seasonal period of the naive forecast (12 for monthly data).

    Returns
    -------
    float
        MAE divided by the in-sample MAE of the seasonal naive forecast
        ``y[t-m]``, or NaN if that scale is not available.

    Notes
    -----
    Values < 1 indicate the forecast beats the seasonal naive forecast.
    """
    num = mae(actual, predicted)
    tr = np.asarray(train_actual, dtype=float).ravel()
    tr = tr[np.isfinite(tr)]
    if not np.isfinite(num) or tr.size <= m:
        return float("nan")
    denom = float(np.mean(np.abs(tr[m:] - tr[:-m])))
    if not np.isfinite(denom) or denom <= 0.0:
        return float("nan")
    return float(num / denom)


def acf1(actual: ArrayLike, predicted: ArrayLike) -> float:
    """Lag-1 autocorrelation of the errors."""
    a, p = _paired(actual, predicted)
    e = a - p
    if e.size < 3 or np.allclose(e, e[0]):
        return float("nan")
    return float(acf(e, nlags=1, fft=False)[1])


def accuracy_table(actual: pd.Series,
                   predictions: Union[pd.DataFrame, Mapping[str, pd.Series]],
                   train_actual: ArrayLike,
                   m: int = SEASONAL_PERIOD) -> pd.DataFrame:
    """
    Forecast-accuracy table with one row per model.

    Parameters
    ----------
    actual : pd.Series
        Observed target.
    predictions : pd.DataFrame or Mapping[str, pd.Series]
        One column per model; rows are aligned to ``actual`` on the index.
    train_actual : ArrayLike
        In-sample target for the MASE scale.
    m : int, default=12
        Seasonal period for MASE.

    Returns
    -------
    pd.DataFrame
        Columns ME, RMSE, MAE, MPE, MAPE, MASE, ACF1 indexed by model name,
        in the column order of ``predictions``.
    """
    frame = predictions if isinstance(predictions, pd.DataFrame) else pd.DataFrame(dict(predictions))
    rows: Dict[str, Dict[str, float]] = {}
    for name in frame.columns:
        pred = frame[name]
        rows[str(name)] = {
            "ME": me(actual, pred),
            "RMSE": rmse(actual, pred),
            "MAE": mae(actual, pred),
            "MPE": mpe(actual, pred),
            "MAPE": mape(actual, pred),
            "MASE": mase(actual, pred, train_actual, m=m),
            "ACF1": acf1(actual, pred),
        }
    table = pd.DataFrame.from_dict(rows, orient="index", columns=ACCURACY_COLUMNS)
    table.index.name = "model"
    return table


def rank_by_mape(table: pd.DataFrame) -> pd.DataFrame:
    """
    Sort an accuracy table by ascending MAPE.

    The sort is stable, so models with equal MAPE keep their original
    order; NaN MAPE goes last.
    """
    return table.sort_values("MAPE", ascending=True, kind="mergesort", na_position="last")


def evaluate(forecasts: ForecastSet, partition: Partition, m: int = SEASONAL_PERIOD) -> AccuracyReport:
    """
    Score every model in and out of sample.

    Parameters
    ----------
    forecasts : ForecastSet
        Fitted values and forecasts including the ensemble.
    partition : Partition
        Train/test split holding the observed target.
    m : int, default=12
        Seasonal period for MASE.

    Returns
    -------
    AccuracyReport
        Both tables ranked by MAPE.
    """
    train_y = partition.train[TARGET]
    test_y = partition.test[TARGET]

    in_sample = rank_by_mape(accuracy_table(train_y, forecasts.fitted, train_y, m=m))
    out_of_sample = rank_by_mape(accuracy_table(test_y, forecasts.forecasts, train_y, m=m))

    logger.info("Out-of-sample MAPE ranking: %s",
                ", ".join(f"{name}={val:.2f}" for name, val in out_of_sample["MAPE"].items()))
    return AccuracyReport(in_sample=in_sample, out_of_sample=out_of_sample)
