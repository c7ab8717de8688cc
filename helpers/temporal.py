# -*- coding: utf-8 -*-
"""
Temporal utilities for monthly alignment.

Functions
---------
- to_month_start(series): Re-index a monthly series at month start.
- align_monthly(series_map, start, end): Join several monthly series on a
  common contiguous month-start index, rejecting gaps.
- is_contiguous_monthly(index): Check that an index steps exactly one month.
"""

from __future__ import annotations

from typing import Mapping, Optional

import numpy as np
import pandas as pd


def _ensure_datetime_index(s: pd.Series) -> pd.Series:
    """
    Ensure a DatetimeIndex for the input series.

    - If PeriodIndex, convert to Timestamp index at period start.
    - Leaves DatetimeIndex unchanged.
    """
    if isinstance(s.index, pd.PeriodIndex):
        s = s.copy()
        s.index = s.index.to_timestamp(how="start")
    elif not isinstance(s.index, pd.DatetimeIndex):
        raise TypeError("Expected a Series with DatetimeIndex or PeriodIndex.")
    return s


def to_month_start(series: pd.Series) -> pd.Series:
    """
    Normalise a monthly series so every observation sits on the first of its month.

    Parameters
    ----------
    series : pd.Series
        Monthly series with DatetimeIndex or PeriodIndex.

    Returns
    -------
    pd.Series
        Sorted series indexed at month start. Several observations in one month
        keep the latest-dated one.
    """
    if not isinstance(series, pd.Series):
        raise TypeError("series must be a pandas Series")

    s = _ensure_datetime_index(series.dropna())
    s = s.sort_index(kind="mergesort")
    s.index = s.index.to_period("M").to_timestamp(how="start")
    return s[~s.index.duplicated(keep="last")]


def is_contiguous_monthly(index: pd.Index) -> bool:
    """Return True when ``index`` is strictly increasing in steps of exactly one month."""
    if len(index) < 2:
        return True
    dt = pd.DatetimeIndex(index)
    months = np.asarray(dt.year * 12 + dt.month, dtype=np.int64)
    return bool((np.diff(months) == 1).all())


def align_monthly(series_map: Mapping[str, pd.Series],
                  start: Optional[pd.Timestamp] = None,
                  end: Optional[pd.Timestamp] = None) -> pd.DataFrame:
    """
    Align several monthly series on one contiguous month-start index.

    Parameters
    ----------
    series_map : Mapping[str, pd.Series]
        Column name -> monthly series.
    start, end : pd.Timestamp, optional
        Inclusive bounds of the returned index. Default to the span shared by
        all series.

    Returns
    -------
    pd.DataFrame
        One column per input series, index ``freq="MS"``.

    Raises
    ------
    ValueError
        If no series are given, the window is empty, or any series has a
        missing month inside the window.

    Notes
    -----
    - No interpolation or filling is done: a gap is an error.
    """
    if not series_map:
        raise ValueError("align_monthly needs at least one series")

    normalised = {name: to_month_start(s) for name, s in series_map.items()}

    lo = max(s.index.min() for s in normalised.values())
    hi = min(s.index.max() for s in normalised.values())
    if start is not None:
        lo = max(lo, pd.Timestamp(start).to_period("M").to_timestamp())
    if end is not None:
        hi = min(hi, pd.Timestamp(end).to_period("M").to_timestamp())
    if pd.isna(lo) or pd.isna(hi) or lo > hi:
        raise ValueError("Series share no common monthly window")

    idx = pd.date_range(lo, hi, freq="MS")
    frame = pd.DataFrame({name: s.reindex(idx) for name, s in normalised.items()}, index=idx)

    missing = frame.isna().sum()
    missing = missing[missing > 0]
    if not missing.empty:
        detail = ", ".join(f"{name}={int(n)}" for name, n in missing.items())
        raise ValueError(f"Monthly series have gaps inside {lo.date()}..{hi.date()}: {detail}")

    frame.index.name = "date"
    return frame
