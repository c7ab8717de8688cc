#!/usr/bin/env python3
"""
Phillips-curve inflation forecasts on monthly US data.

Usage
-----
    python forecaster_inflation.py --help
    python forecaster_inflation.py --cache-csv data/raw_series.csv
    python forecaster_inflation.py --series-csv data/raw_series.csv --cutoff 2018-12

The implementation lives in inflation_forecaster_src/; this script only
delegates to inflation_forecaster_src.main.
"""

import sys

if __name__ == "__main__":
    from inflation_forecaster_src.main import main
    sys.exit(main())
