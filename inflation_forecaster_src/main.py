# inflation_forecaster_src/main.py

"""
Phillips-curve inflation forecasting on monthly US data.

Purpose
-------
- Load monthly PCE price index, unemployment rate, 1-year expected inflation,
  Michigan inflation expectations and industrial production (FRED API, or a
  cached/local CSV)
- Transform levels into stationary monthly changes; the target is dinfl12
- Fit one distributed-lag OLS model per driver on the training sample
  (lags 12..23 of dinfl and of the driver) and average them into an ensemble
- Forecast the test months, rank models by MAPE in and out of sample and
  write figures, a markdown report and an accuracy CSV

Data Sources & Attribution
---------------------------
All series are sourced from FRED (Federal Reserve Bank of St. Louis):
PCEPI and INDPRO, UNRATE (BLS), EXPINF1YR (Cleveland Fed), MICH
(University of Michigan).

Configuration-Driven Workflow
-----------------------------
Window, cutoff, drivers, lag structure and fetch settings live in
config/pipeline.yaml. CLI arguments override configuration values where
applicable.
"""

import argparse
import logging
import sys
import warnings
from pathlib import Path
from typing import List, Optional

import pandas as pd

from config import ConfigurationError, get_api_key
from fetchers import DataUnavailableError, get_series_loader
from .config_utils import PipelineConfig, build_pipeline_config, config_summary, load_config_manager
from .data_utils import InsufficientDataError, load_raw_series_csv, save_raw_series_csv
from .file_utils import ensure_dir, resolve_path, write_accuracy_csv, write_markdown_report
from .forecasting_utils import TARGET, SingularDesignError, hash_forecast
from .parsing_utils import parse_drivers, parse_month_arg, validate_log_level
from .pipeline import PipelineResult, run_pipeline
from .plotting_utils import plot_forecasts, plot_series_panel
from .transform_utils import RAW_COLUMNS

logger = logging.getLogger(__name__)


def acquire_raw_data(cfg: PipelineConfig, base_dir: Path, args: argparse.Namespace,
                     api_key: Optional[str] = None) -> pd.DataFrame:
    """
    Get the aligned raw monthly frame.

    Order of sources: ``--series-csv`` if given; else the ``--cache-csv`` file
    if it exists; else the FRED API (writing the cache when a cache path is
    set).

    Raises
    ------
    DataUnavailableError
        If no source can provide the data.
    """
    if args.series_csv:
        return load_raw_series_csv(resolve_path(args.series_csv, base_dir), RAW_COLUMNS)

    cache_path = resolve_path(args.cache_csv, base_dir) if args.cache_csv else None
    if cache_path is not None and cache_path.exists():
        logger.info("Using cached raw series: %s", cache_path)
        return load_raw_series_csv(cache_path, RAW_COLUMNS)

    loader = get_series_loader(
        api_key=api_key,
        base_url=cfg.base_url,
        timeout=cfg.timeout,
        retries=cfg.retries,
        backoff_factor=cfg.backoff_factor,
    )
    raw = loader.fetch_frame(RAW_COLUMNS, cfg.start, cfg.end, series_ids=cfg.series)
    raw = raw.loc[:, RAW_COLUMNS]
    if cache_path is not None:
        save_raw_series_csv(raw, cache_path)
    return raw


def write_outputs(result: PipelineResult, cfg: PipelineConfig, base_dir: Path) -> List[Path]:
    """
    Render figures, the markdown report and the accuracy CSV.

    Returns
    -------
    List[Path]
        Every file written.
    """
    figures_dir = resolve_path(cfg.figures_dir, base_dir)
    ensure_dir(figures_dir)

    figures = {
        "Raw series": plot_series_panel(result.raw, figures_dir / "RawSeries.png", "Raw monthly series"),
        "Transformed series": plot_series_panel(result.transformed, figures_dir / "TransformedSeries.png",
                                                "Transformed series"),
        "Forecasts": plot_forecasts(result.partition.test[TARGET], result.forecasts,
                                    figures_dir / "Forecasts.png"),
    }

    summary = config_summary(cfg)
    summary["models"] = ", ".join(result.model_names)
    summary["forecast_hash"] = hash_forecast(result.forecasts.forecasts.to_numpy())

    report = write_markdown_report(resolve_path(cfg.report_md, base_dir), result.accuracy,
                                   result.diagnostics, figures=figures, summary=summary)
    metrics = write_accuracy_csv(result.accuracy, resolve_path(cfg.metrics_csv, base_dir))
    return list(figures.values()) + [report, metrics]


def run_inflation_workflow(cfg: PipelineConfig, base_dir: Path, args: argparse.Namespace,
                           api_key: Optional[str] = None) -> PipelineResult:
    """
    Acquire data, run the pipeline and write every artifact.

    Parameters
    ----------
    cfg : PipelineConfig
        Resolved configuration.
    base_dir : Path
        Directory relative paths are resolved against.
    args : argparse.Namespace
        CLI arguments (data source flags).
    api_key : str, optional
        FRED API key, only needed when fetching.

    Returns
    -------
    PipelineResult
    """
    raw = acquire_raw_data(cfg, base_dir, args, api_key)
    logger.info("Raw data: %d months x %d series", raw.shape[0], raw.shape[1])

    result = run_pipeline(raw, cfg)
    best = result.accuracy.best_model()
    logger.info("Best out-of-sample model by MAPE: %s (%.2f)", best,
                float(result.accuracy.out_of_sample.loc[best, "MAPE"]))

    write_outputs(result, cfg, base_dir)
    return result


def setup_cli_parser() -> argparse.ArgumentParser:
    """
    Set up the command-line argument parser.

    Returns
    -------
    argparse.ArgumentParser
        Configured argument parser
    """
    parser = argparse.ArgumentParser(
        description="Phillips-curve forecasts of US PCE inflation with an equal-weight ensemble."
    )
    parser.add_argument(
        "--config", type=str, default=None,
        help="YAML configuration file (default: config/pipeline.yaml)."
    )
    parser.add_argument(
        "--series-csv", type=str, default=None,
        help="Wide monthly CSV with a 'date' column and PCEPI, UNRATE, EXPINF1YR, MICH, INDPRO. Skips FRED."
    )
    parser.add_argument(
        "--cache-csv", type=str, default=None,
        help="Raw-series cache: read when present, written after a FRED download."
    )
    parser.add_argument("--start", type=parse_month_arg, default=None, help="First raw month (YYYY-MM).")
    parser.add_argument("--end", type=parse_month_arg, default=None, help="Last raw month (YYYY-MM).")
    parser.add_argument("--cutoff", type=parse_month_arg, default=None, help="Last training month (YYYY-MM).")
    parser.add_argument(
        "--drivers", type=str, default=None,
        help="Comma-separated drivers to fit, e.g. 'unrate,mich' (default: all four)."
    )
    parser.add_argument(
        "--figures-dir", type=str, default=None,
        help="Directory to write figure files."
    )
    parser.add_argument("--report-md", type=str, default=None, help="Markdown report path.")
    parser.add_argument("--metrics-csv", type=str, default=None, help="Accuracy CSV path.")
    parser.add_argument(
        "--strict-singular", action="store_true",
        help="Fail on a singular design matrix instead of skipping that model."
    )
    parser.add_argument(
        "--log-level", type=str, default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging verbosity level."
    )
    return parser


def setup_logging(log_level: str) -> None:
    """
    Configure logging with specified level and warning filters.

    Parameters
    ----------
    log_level : str
        Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    level = validate_log_level(log_level)
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
        datefmt="%H:%M:%S",
    )

    if level == "DEBUG":
        warnings.resetwarnings()
        warnings.filterwarnings("default")
    else:
        from statsmodels.tools.sm_exceptions import ValueWarning
        warnings.filterwarnings("ignore", category=ValueWarning)
        warnings.filterwarnings("ignore", category=FutureWarning)
        warnings.filterwarnings("ignore", category=UserWarning, module="statsmodels")


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for the inflation forecasting application.

    Returns
    -------
    int
        Process exit status: 0 on success, 1 on a fatal data, model or
        configuration error.
    """
    parser = setup_cli_parser()
    args = parser.parse_args(argv)
    setup_logging(args.log_level)

    base_dir = Path.cwd()

    try:
        args.drivers = parse_drivers(args.drivers)
        manager = load_config_manager(args.config)
        cfg = build_pipeline_config(manager, args)
        api_key = get_api_key("fred", manager)
        run_inflation_workflow(cfg, base_dir, args, api_key)
    except (ConfigurationError, ValueError) as e:
        logger.error("Invalid input or configuration: %s", e)
        return 1
    except DataUnavailableError as e:
        logger.error("Data unavailable: %s", e)
        return 1
    except InsufficientDataError as e:
        logger.error("Insufficient data: %s", e)
        return 1
    except SingularDesignError as e:
        logger.error("No model could be fitted: %s", e)
        return 1

    logger.info("Inflation workflow completed successfully")
    return 0


if __name__ == "__main__":
    sys.exit(main())
