# inflation_forecaster_src/parsing_utils.py

import argparse
from typing import List, Optional
import logging

import pandas as pd

from .forecasting_utils import DRIVERS

logger = logging.getLogger(__name__)


def parse_month_arg(s: str) -> pd.Timestamp:
    """
    argparse type for month arguments such as '2018-12' or '2018-12-01'.

    Returns
    -------
    pd.Timestamp
        Start of the given month.

    Raises
    ------
    argparse.ArgumentTypeError
        If the text is not a parseable date.

    Examples
    --------
    >>> parse_month_arg("2018-12")
    Timestamp('2018-12-01 00:00:00')
    >>> parse_month_arg("2018-12-31")
    Timestamp('2018-12-01 00:00:00')
    """
    try:
        ts = pd.Timestamp(str(s).strip())
    except (ValueError, TypeError) as e:
        raise argparse.ArgumentTypeError(f"Invalid month '{s}': {e}") from e
    if pd.isna(ts):
        raise argparse.ArgumentTypeError(f"Invalid month '{s}'")
    return ts.to_period("M").to_timestamp()


def parse_drivers(s: Optional[str]) -> Optional[List[str]]:
    """
    Parse a comma-separated driver list such as 'unrate,mich'.

    Returns None for empty input so the configuration file value applies.

    Raises
    ------
    ValueError
        If a name is not one of the known drivers or is repeated.

    Examples
    --------
    >>> parse_drivers(" UNRATE , mich ")
    ['unrate', 'mich']
    """
    if not s:
        return None
    names = [d.strip().lower() for d in s.split(",") if d.strip()]
    unknown = [d for d in names if d not in DRIVERS]
    if unknown:
        raise ValueError(f"Unknown drivers {unknown}. Must be among: {list(DRIVERS)}")
    repeated = sorted({d for d in names if names.count(d) > 1})
    if repeated:
        raise ValueError(f"Drivers listed more than once: {repeated}")
    return names or None


def validate_log_level(log_level: str) -> str:
    """
    Validate and normalize logging level specification.

    Parameters
    ----------
    log_level : str
        Logging level to validate

    Returns
    -------
    str
        Validated logging level

    Raises
    ------
    ValueError
        If the logging level is not supported
    """
    valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    level_upper = log_level.upper()
    if level_upper not in valid_levels:
        raise ValueError(f"Invalid log level '{log_level}'. Must be one of: {valid_levels}")
    return level_upper
