"""
FRED Series Loader

Fetches the monthly US series the Phillips-curve models are built from
(FRED, Federal Reserve Economic Data) and returns them aligned on a common
month-start index.

Default series:
- PCE chain-type price index (PCEPI)
- Civilian unemployment rate (UNRATE)
- Cleveland Fed 1-year expected inflation (EXPINF1YR)
- University of Michigan inflation expectation (MICH)
- Industrial production index (INDPRO)
"""

import logging
from datetime import date
from typing import Dict, Iterable, Mapping, Optional, Union

import pandas as pd
import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from helpers.temporal import align_monthly, to_month_start

logger = logging.getLogger(__name__)

FRED_OBSERVATIONS_URL = "https://api.stlouisfed.org/fred/series/observations"

# internal column name -> FRED series id
DEFAULT_FRED_SERIES = {
    'PCEPI': 'PCEPI',
    'UNRATE': 'UNRATE',
    'EXPINF1YR': 'EXPINF1YR',
    'MICH': 'MICH',
    'INDPRO': 'INDPRO',
}

RETRY_STATUS_CODES = (429, 500, 502, 503, 504)

DateLike = Union[str, date, pd.Timestamp]


class DataUnavailableError(Exception):
    """Raised when a requested series or date range cannot be retrieved."""

    def __init__(self, message: str, series_id: Optional[str] = None):
        super().__init__(message)
        self.series_id = series_id


def _as_timestamp(value: DateLike) -> pd.Timestamp:
    return pd.Timestamp(value).to_period("M").to_timestamp()


class FredSeriesLoader:
    """Loader for monthly series from the FRED observations API."""

    def __init__(self, api_key: Optional[str] = None,
                 base_url: str = FRED_OBSERVATIONS_URL,
                 timeout: float = 30.0,
                 retries: int = 3,
                 backoff_factor: float = 0.5,
                 session: Optional[requests.Session] = None):
        """
        Initialize the loader.

        Parameters
        ----------
        api_key : str, optional
            FRED API key. Fetching raises DataUnavailableError without one.
        base_url : str
            Observations endpoint.
        timeout : float, default 30.0
            Per-request timeout in seconds.
        retries : int, default 3
            Retries on connection errors and transient HTTP statuses.
        backoff_factor : float, default 0.5
            urllib3 exponential backoff factor between retries.
        session : requests.Session, optional
            Pre-built session (tests inject one); otherwise one is created
            with the retry adapter mounted.
        """
        self.api_key = api_key
        self.base_url = base_url
        self.timeout = timeout
        self.session = session or self._create_session(retries, backoff_factor)

    @staticmethod
    def _create_session(retries: int, backoff_factor: float) -> requests.Session:
        """Create HTTP session with retry logic."""
        session = requests.Session()
        retry = Retry(
            total=retries,
            read=retries,
            connect=retries,
            backoff_factor=backoff_factor,
            status_forcelist=RETRY_STATUS_CODES,
            allowed_methods=frozenset(["GET"]),
        )
        adapter = HTTPAdapter(max_retries=retry)
        session.mount("http://", adapter)
        session.mount("https://", adapter)
        return session

    def fetch_series(self, series_id: str, start_date: DateLike, end_date: DateLike) -> pd.Series:
        """
        Fetch one FRED series over ``[start_date, end_date]``.

        Parameters
        ----------
        series_id : str
            FRED series ID (e.g., 'PCEPI')
        start_date, end_date : str, date or pd.Timestamp
            Inclusive observation window.

        Returns
        -------
        pd.Series
            Month-start indexed observations named ``series_id``.

        Raises
        ------
        DataUnavailableError
            If no API key is configured, the request fails after retries,
            the response is malformed or holds no valid observations.
        """
        if not self.api_key:
            raise DataUnavailableError("FRED API key is required for data fetching", series_id)

        start = _as_timestamp(start_date)
        end = _as_timestamp(end_date)
        params = {
            'series_id': series_id,
            'api_key': self.api_key,
            'file_type': 'json',
            'sort_order': 'asc',
            'frequency': 'm',
            'observation_start': start.strftime("%Y-%m-%d"),
            'observation_end': end.strftime("%Y-%m-%d"),
        }

        try:
            logger.debug("Fetching FRED series: %s", series_id)
            response = self.session.get(self.base_url, params=params, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.RequestException as e:
            logger.error("Failed to fetch FRED series %s: %s", series_id, e)
            raise DataUnavailableError(f"Failed to fetch FRED series {series_id}: {e}", series_id) from e
        except ValueError as e:
            raise DataUnavailableError(f"Malformed response for FRED series {series_id}: {e}", series_id) from e

        observations = data.get('observations', []) if isinstance(data, dict) else []
        if not observations:
            raise DataUnavailableError(f"No observations found for series {series_id}", series_id)

        df = pd.DataFrame(observations)
        if not {'date', 'value'}.issubset(df.columns):
            raise DataUnavailableError(f"Unexpected payload for series {series_id}", series_id)

        df['date'] = pd.to_datetime(df['date'], errors='coerce')
        # missing values are marked as '.'
        df['value'] = pd.to_numeric(df['value'], errors='coerce')
        df = df.dropna(subset=['date', 'value'])
        if df.empty:
            raise DataUnavailableError(f"No valid data points for series {series_id}", series_id)

        series = pd.Series(df['value'].values, index=df['date'], name=series_id)
        series = to_month_start(series)

        logger.info("Fetched %d observations for FRED series %s", len(series), series_id)
        return series

    def fetch(self, series_names: Iterable[str], start: DateLike, end: DateLike,
              series_ids: Optional[Mapping[str, str]] = None) -> Dict[str, pd.Series]:
        """
        Fetch several series and check each covers the requested window.

        Parameters
        ----------
        series_names : Iterable[str]
            Internal column names to fetch (keys of ``series_ids``).
        start, end : str, date or pd.Timestamp
            Inclusive monthly window every series must cover.
        series_ids : Mapping[str, str], optional
            Column name -> FRED id. Defaults to DEFAULT_FRED_SERIES; names not
            in the mapping are used as FRED ids directly.

        Returns
        -------
        Dict[str, pd.Series]
            Column name -> ordered monthly series, in sorted name order.

        Raises
        ------
        DataUnavailableError
            If any series cannot be fetched or does not span ``[start, end]``.
        """
        ids = dict(DEFAULT_FRED_SERIES)
        if series_ids:
            ids.update(series_ids)

        lo = _as_timestamp(start)
        hi = _as_timestamp(end)
        out: Dict[str, pd.Series] = {}
        for name in sorted(set(series_names)):
            series_id = ids.get(name, name)
            s = self.fetch_series(series_id, lo, hi)
            if s.index.min() > lo or s.index.max() < hi:
                raise DataUnavailableError(
                    f"Series {series_id} covers {s.index.min().date()}..{s.index.max().date()}, "
                    f"requested {lo.date()}..{hi.date()}",
                    series_id,
                )
            out[name] = s.rename(name)
        return out

    def fetch_frame(self, series_names: Iterable[str], start: DateLike, end: DateLike,
                    series_ids: Optional[Mapping[str, str]] = None) -> pd.DataFrame:
        """
        Fetch series and align them on one contiguous monthly index.

        Returns
        -------
        pd.DataFrame
            One column per series over ``[start, end]``.

        Raises
        ------
        DataUnavailableError
            If fetching fails or the aligned frame has gaps.
        """
        fetched = self.fetch(series_names, start, end, series_ids)
        try:
            return align_monthly(fetched, _as_timestamp(start), _as_timestamp(end))
        except ValueError as e:
            raise DataUnavailableError(str(e)) from e
