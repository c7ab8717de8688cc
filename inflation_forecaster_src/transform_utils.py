# inflation_forecaster_src/transform_utils.py

import pandas as pd
import numpy as np
from typing import List
import logging

from helpers.temporal import is_contiguous_monthly

logger = logging.getLogger(__name__)

RAW_COLUMNS = ["PCEPI", "UNRATE", "EXPINF1YR", "MICH", "INDPRO"]
TRANSFORMED_COLUMNS = ["infl", "dinfl", "dinfl12", "unrate", "expinf1yr", "mich", "indpro"]

# columns that go through a log transform and must be strictly positive
LOG_COLUMNS = ["PCEPI", "INDPRO"]

# deepest raw lag used by any derived field (PCEPI[t-13] via infl[t-12])
WARMUP_MONTHS = 13


def annualized_log_diff(series: pd.Series) -> pd.Series:
    """1200 * ln(x[t] / x[t-1]): month-on-month log growth at an annual rate."""
    return 1200.0 * np.log(series / series.shift(1))


def first_diff(series: pd.Series) -> pd.Series:
    """x[t] - x[t-1]"""
    return series.diff()


def validate_raw_frame(raw: pd.DataFrame) -> pd.DataFrame:
    """
    Validate the aligned raw dataset before transformation.

    Parameters
    ----------
    raw : pd.DataFrame
        Monthly levels with columns PCEPI, UNRATE, EXPINF1YR, MICH, INDPRO
        and a DatetimeIndex.

    Returns
    -------
    pd.DataFrame
        Sorted float copy restricted to the raw columns.

    Raises
    ------
    ValueError
        If columns are missing, the index is not a gap-free monthly
        DatetimeIndex, values are missing, or log-transformed columns are
        not strictly positive.
    """
    missing = [c for c in RAW_COLUMNS if c not in raw.columns]
    if missing:
        raise ValueError(f"Raw dataset is missing columns: {missing}")

    if not isinstance(raw.index, pd.DatetimeIndex):
        raise ValueError("Raw dataset must have a DatetimeIndex")

    df = raw.loc[:, RAW_COLUMNS].sort_index().astype(float)
    df.index = df.index.to_period("M").to_timestamp(how="start")

    if df.index.has_duplicates:
        raise ValueError("Raw dataset has duplicate months")
    if not is_contiguous_monthly(df.index):
        raise ValueError("Raw dataset index has gaps; expected contiguous monthly observations")
    if df.isna().any().any():
        bad = df.columns[df.isna().any()].tolist()
        raise ValueError(f"Raw dataset has missing values in: {bad}")
    for col in LOG_COLUMNS:
        if (df[col] <= 0).any():
            raise ValueError(f"{col} must be strictly positive for the log transform")

    return df


def transform_series(raw: pd.DataFrame) -> pd.DataFrame:
    """
    Convert raw monthly levels into the stationary modelling dataset.

    Derived fields, for each month t:

    - infl      = 1200 * ln(PCEPI[t] / PCEPI[t-1])
    - dinfl     = infl[t] - infl[t-1]
    - dinfl12   = 100 * ln(PCEPI[t] / PCEPI[t-12]) - infl[t-12]   (regression target)
    - unrate    = UNRATE[t] - UNRATE[t-1]
    - expinf1yr = EXPINF1YR[t] - EXPINF1YR[t-1]
    - mich      = MICH[t] - MICH[t-1]
    - indpro    = 1200 * ln(INDPRO[t] / INDPRO[t-1])

    Parameters
    ----------
    raw : pd.DataFrame
        Aligned monthly levels (see validate_raw_frame).

    Returns
    -------
    pd.DataFrame
        Columns TRANSFORMED_COLUMNS, one row per month with every field
        defined. For an N-row input this is N - 13 rows.

    Notes
    -----
    dinfl12 mixes a 100-scaled twelve-month log change with the 1200-scaled
    monthly rate lagged twelve months. The formula is reproduced as is.

    Examples
    --------
    >>> idx = pd.date_range("2000-01-01", periods=40, freq="MS")
    >>> raw = pd.DataFrame({"PCEPI": 100 * 1.002 ** np.arange(40), "UNRATE": 5.0,
    ...                     "EXPINF1YR": 2.0, "MICH": 3.0, "INDPRO": 90.0}, index=idx)
    >>> out = transform_series(raw)
    >>> len(out)
    27
    """
    df = validate_raw_frame(raw)

    infl = annualized_log_diff(df["PCEPI"])
    out = pd.DataFrame(
        {
            "infl": infl,
            "dinfl": infl.diff(),
            "dinfl12": 100.0 * np.log(df["PCEPI"] / df["PCEPI"].shift(12)) - infl.shift(12),
            "unrate": first_diff(df["UNRATE"]),
            "expinf1yr": first_diff(df["EXPINF1YR"]),
            "mich": first_diff(df["MICH"]),
            "indpro": annualized_log_diff(df["INDPRO"]),
        },
        index=df.index,
    )

    before = len(out)
    out = out.dropna()
    logger.info("Transformed %d raw months into %d rows (dropped %d warm-up rows)",
                before, len(out), before - len(out))

    if out.empty:
        raise ValueError(f"Need more than {WARMUP_MONTHS} months of raw data to transform")

    out.index = pd.DatetimeIndex(out.index, freq="MS", name="date")
    return out


def describe_transforms() -> List[str]:
    """
    Human-readable description of each derived field, in column order.

    Returns
    -------
    List[str]
        ``"<column>: <formula>"`` strings for report captions.
    """
    descriptions = {
        "infl": "annualized monthly PCE inflation, 1200*ln(P_t/P_t-1)",
        "dinfl": "change in inflation, infl_t - infl_t-1",
        "dinfl12": "100*ln(P_t/P_t-12) - infl_t-12 (target)",
        "unrate": "change in unemployment rate",
        "expinf1yr": "change in 1-year expected inflation",
        "mich": "change in Michigan inflation expectation",
        "indpro": "annualized industrial production growth",
    }
    return [f"{c}: {descriptions[c]}" for c in TRANSFORMED_COLUMNS]
