"""
Data Fetchers for the inflation forecaster

This module provides the data acquisition layer:
- Monthly FRED series (PCE price index, unemployment, inflation expectations,
  industrial production) fetched with timeouts and bounded retries
- Alignment of the fetched series on a common monthly index

Main Components:
- FredSeriesLoader: FRED observations client
- DataUnavailableError: raised when a series or date range cannot be retrieved
"""

from .fred_series import (
    FredSeriesLoader,
    DataUnavailableError,
    DEFAULT_FRED_SERIES,
    FRED_OBSERVATIONS_URL,
)

__all__ = [
    'FredSeriesLoader',
    'DataUnavailableError',
    'DEFAULT_FRED_SERIES',
    'FRED_OBSERVATIONS_URL',
]


def get_series_loader(api_key=None, **kwargs):
    """Get a FRED loader; keyword arguments are passed to FredSeriesLoader."""
    return FredSeriesLoader(api_key=api_key, **kwargs)
