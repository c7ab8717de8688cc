# inflation_forecaster_src/data_utils.py

import pandas as pd
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional, Union
import logging

from fetchers.fred_series import DataUnavailableError
from helpers.temporal import is_contiguous_monthly

logger = logging.getLogger(__name__)

# intercept + 12 lags of dinfl + 12 lags of the driver
N_REGRESSION_PARAMS = 25


class InsufficientDataError(Exception):
    """Raised when a sample is too short for the fixed lag/parameter structure."""
    pass


@dataclass(frozen=True)
class Partition:
    """
    Time-ordered train/test split of the transformed dataset.

    Attributes
    ----------
    train : pd.DataFrame
        Rows with month <= cutoff.
    test : pd.DataFrame
        Rows with month > cutoff.
    history : pd.DataFrame
        The full transformed dataset both slices were cut from. Lagged
        regressors are always looked up here so lags can cross the cutoff.
    cutoff : pd.Timestamp
        Last month of the training sample.
    """

    train: pd.DataFrame
    test: pd.DataFrame
    history: pd.DataFrame
    cutoff: pd.Timestamp

    @property
    def train_range(self) -> tuple:
        return self.train.index[0], self.train.index[-1]

    @property
    def test_range(self) -> tuple:
        return self.test.index[0], self.test.index[-1]


def split_train_test(transformed: pd.DataFrame,
                     cutoff: Union[str, pd.Timestamp],
                     n_params: int = N_REGRESSION_PARAMS) -> Partition:
    """
    Split the transformed dataset at a fixed cutoff month.

    Parameters
    ----------
    transformed : pd.DataFrame
        Output of transform_series (monthly DatetimeIndex, no gaps).
    cutoff : str or pd.Timestamp
        Last month of the training sample; any day within the month works.
    n_params : int, default=25
        Number of regression parameters; train must have at least this many rows.

    Returns
    -------
    Partition
        Disjoint train and test slices that together cover ``transformed``.

    Raises
    ------
    InsufficientDataError
        If either side is empty or train has fewer than ``n_params`` rows.
    ValueError
        If the index is not a gap-free monthly DatetimeIndex.
    """
    if not isinstance(transformed.index, pd.DatetimeIndex):
        raise ValueError("Transformed dataset must have a DatetimeIndex")
    if not is_contiguous_monthly(transformed.index):
        raise ValueError("Transformed dataset index must be contiguous monthly")

    cutoff_ts = pd.Timestamp(cutoff).to_period("M").to_timestamp()
    history = transformed.copy()
    train = history.loc[history.index <= cutoff_ts]
    test = history.loc[history.index > cutoff_ts]

    if train.empty:
        raise InsufficientDataError(f"Training sample is empty (cutoff {cutoff_ts.date()})")
    if test.empty:
        raise InsufficientDataError(f"Test sample is empty (cutoff {cutoff_ts.date()})")
    if len(train) < n_params:
        raise InsufficientDataError(
            f"Training sample has {len(train)} rows; at least {n_params} are needed "
            f"to estimate {n_params} regression parameters"
        )

    partition = Partition(train=train, test=test, history=history, cutoff=cutoff_ts)
    train_start, train_end = partition.train_range
    test_start, test_end = partition.test_range
    logger.info("Split at %s: train=%d rows (%s..%s), test=%d rows (%s..%s)",
                cutoff_ts.date(), len(train), train_start.date(), train_end.date(),
                len(test), test_start.date(), test_end.date())
    return partition


def load_raw_series_csv(series_path: Path, columns: Optional[Iterable[str]] = None) -> pd.DataFrame:
    """
    Load a wide monthly CSV with a 'date' column and one column per series.

    Parameters
    ----------
    series_path : Path
        CSV written by save_raw_series_csv (or any file with the same layout).
    columns : Iterable[str], optional
        Series columns that must be present; the frame is restricted to them.

    Returns
    -------
    pd.DataFrame
        Float columns indexed by month start, sorted ascending.

    Raises
    ------
    DataUnavailableError
        If the file does not exist, lacks required columns, or holds no valid rows.
    """
    if not series_path.exists():
        raise DataUnavailableError(f"Series CSV not found: {series_path}")

    logger.info("Loading raw series from: %s", series_path)
    df = pd.read_csv(series_path)

    if "date" not in df.columns:
        raise DataUnavailableError("Series CSV must contain a 'date' column.")

    wanted = list(columns) if columns is not None else [c for c in df.columns if c != "date"]
    missing = [c for c in wanted if c not in df.columns]
    if missing:
        raise DataUnavailableError(f"Series CSV is missing columns: {missing}")

    df["date"] = pd.to_datetime(df["date"], errors="coerce")
    for c in wanted:
        df[c] = pd.to_numeric(df[c], errors="coerce")
    df = df.dropna(subset=["date"]).sort_values("date")

    if df.empty:
        raise DataUnavailableError("No valid rows found in series CSV after parsing.")

    frame = df.set_index("date")[wanted]
    frame.index = frame.index.to_period("M").to_timestamp(how="start")
    frame.index.name = "date"
    return frame


def save_raw_series_csv(raw: pd.DataFrame, series_path: Path) -> Path:
    """
    Persist the aligned raw frame so later runs can skip the network.

    Parameters
    ----------
    raw : pd.DataFrame
        Monthly levels indexed by date.
    series_path : Path
        Destination CSV (parents are created).

    Returns
    -------
    Path
        The written path.
    """
    series_path.parent.mkdir(parents=True, exist_ok=True)
    out = raw.copy()
    out.index = pd.DatetimeIndex(out.index).strftime("%Y-%m-%d")
    out.index.name = "date"
    out.to_csv(series_path)
    logger.info("Cached %d months of raw data to %s", len(raw), series_path)
    return series_path


def restrict_window(raw: pd.DataFrame,
                    start: Optional[pd.Timestamp] = None,
                    end: Optional[pd.Timestamp] = None) -> pd.DataFrame:
    """Return the rows of ``raw`` within ``[start, end]`` (either bound optional)."""
    out = raw
    if start is not None:
        out = out.loc[out.index >= pd.Timestamp(start)]
    if end is not None:
        out = out.loc[out.index <= pd.Timestamp(end)]
    return out
