# inflation_forecaster_src/config_utils.py

import argparse
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple
import logging

import pandas as pd

from config import ConfigurationManager, ConfigurationError, get_config
from fetchers.fred_series import DEFAULT_FRED_SERIES, FRED_OBSERVATIONS_URL
from .forecasting_utils import DEFAULT_LAGS, DRIVERS

logger = logging.getLogger(__name__)

DEFAULT_START = "1982-01-01"
DEFAULT_END = "2019-12-01"
DEFAULT_CUTOFF = "2018-12-01"


@dataclass(frozen=True)
class PipelineConfig:
    """
    Immutable run configuration passed explicitly through the pipeline.

    Build it with build_pipeline_config() so CLI overrides and the YAML file
    are resolved in one place.
    """

    series: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_FRED_SERIES))
    start: pd.Timestamp = pd.Timestamp(DEFAULT_START)
    end: pd.Timestamp = pd.Timestamp(DEFAULT_END)
    cutoff: pd.Timestamp = pd.Timestamp(DEFAULT_CUTOFF)
    drivers: Tuple[str, ...] = DRIVERS
    lags: Tuple[int, ...] = DEFAULT_LAGS
    rank_rtol: float = 1e-10
    skip_singular: bool = True
    confidence_level: int = 95
    seasonal_period: int = 12
    base_url: str = FRED_OBSERVATIONS_URL
    timeout: float = 30.0
    retries: int = 3
    backoff_factor: float = 0.5
    figures_dir: str = "figures"
    report_md: str = "figures/report.md"
    metrics_csv: str = "figures/accuracy.csv"

    @property
    def n_params(self) -> int:
        """Intercept plus one coefficient per lag of dinfl and of the driver."""
        return 1 + 2 * len(self.lags)


def get_config_value(manager: Optional[ConfigurationManager], key_path: str, default=None,
                     args: Optional[argparse.Namespace] = None, cli_param: Optional[str] = None):
    """
    Retrieves a configuration value, providing support for command-line overrides.
    The function prioritizes values in the following order:
    1. CLI argument (if provided)
    2. Configuration file
    3. Default value
    """
    if args is not None and cli_param and hasattr(args, cli_param):
        cli_value = getattr(args, cli_param)
        if cli_value is not None:
            return cli_value

    if manager is not None:
        config_value = manager.get(key_path, None)
        if config_value is not None:
            return config_value

    return default


def load_config_manager(config_path: Optional[str] = None) -> ConfigurationManager:
    """
    Load and validate the configuration file.

    Validation problems are logged as warnings; a missing or unreadable
    file raises ConfigurationError.
    """
    manager = get_config(config_path)
    validation_errors = manager.validate_configuration()
    if validation_errors:
        logger.warning("Configuration validation warnings: %s", validation_errors)
    return manager


def _lags_from(manager: Optional[ConfigurationManager]) -> Tuple[int, ...]:
    first = int(get_config_value(manager, "model.lags.first", DEFAULT_LAGS[0]))
    last = int(get_config_value(manager, "model.lags.last", DEFAULT_LAGS[-1]))
    if first < 1 or last < first:
        raise ConfigurationError(f"Invalid lag range {first}..{last}; need 1 <= first <= last")
    return tuple(range(first, last + 1))


def build_pipeline_config(manager: Optional[ConfigurationManager] = None,
                          args: Optional[argparse.Namespace] = None) -> PipelineConfig:
    """
    Resolve a PipelineConfig with precedence CLI > config file > default.

    Parameters
    ----------
    manager : ConfigurationManager, optional
        Loaded configuration; None uses built-in defaults only.
    args : argparse.Namespace, optional
        Parsed CLI arguments (see main.setup_cli_parser).

    Returns
    -------
    PipelineConfig

    Raises
    ------
    ConfigurationError
        If resolved values are inconsistent (cutoff outside the window,
        bad lag range, repeated drivers, confidence level outside (0, 100)).
    """
    series = get_config_value(manager, "data.series", None) or dict(DEFAULT_FRED_SERIES)
    start = pd.Timestamp(get_config_value(manager, "data.start_date", DEFAULT_START, args, "start"))
    end = pd.Timestamp(get_config_value(manager, "data.end_date", DEFAULT_END, args, "end"))
    cutoff = pd.Timestamp(get_config_value(manager, "split.cutoff", DEFAULT_CUTOFF, args, "cutoff"))

    if not (start < cutoff < end):
        raise ConfigurationError(
            f"Cutoff {cutoff.date()} must lie strictly inside the sample window "
            f"{start.date()}..{end.date()}"
        )

    drivers = tuple(str(d).lower() for d in get_config_value(manager, "model.drivers", list(DRIVERS), args, "drivers"))
    unknown = [d for d in drivers if d not in DRIVERS]
    if unknown:
        raise ConfigurationError(f"Unknown drivers {unknown}; choose from {list(DRIVERS)}")
    repeated = sorted({d for d in drivers if drivers.count(d) > 1})
    if repeated:
        raise ConfigurationError(f"Drivers listed more than once: {repeated}")

    skip_singular = bool(get_config_value(manager, "model.skip_singular", True))
    if args is not None and getattr(args, "strict_singular", False):
        skip_singular = False

    level = int(get_config_value(manager, "model.confidence_level", 95))
    if not 0 < level < 100:
        raise ConfigurationError(f"confidence_level must be in (0, 100), got {level}")

    cfg = PipelineConfig(
        series={str(k): str(v) for k, v in dict(series).items()},
        start=start,
        end=end,
        cutoff=cutoff,
        drivers=drivers,
        lags=_lags_from(manager),
        rank_rtol=float(get_config_value(manager, "model.rank_rtol", 1e-10)),
        skip_singular=skip_singular,
        confidence_level=level,
        seasonal_period=int(get_config_value(manager, "evaluation.seasonal_period", 12)),
        base_url=str(get_config_value(manager, "fetch.base_url", FRED_OBSERVATIONS_URL)),
        timeout=float(get_config_value(manager, "fetch.timeout", 30.0)),
        retries=int(get_config_value(manager, "fetch.retries", 3)),
        backoff_factor=float(get_config_value(manager, "fetch.backoff_factor", 0.5)),
        figures_dir=str(get_config_value(manager, "output.figures_dir", "figures", args, "figures_dir")),
        report_md=str(get_config_value(manager, "output.report_md", "figures/report.md", args, "report_md")),
        metrics_csv=str(get_config_value(manager, "output.metrics_csv", "figures/accuracy.csv", args, "metrics_csv")),
    )
    logger.debug("Resolved pipeline configuration: %s", cfg)
    return cfg


def config_summary(cfg: PipelineConfig) -> Dict[str, Any]:
    """Flat, printable view of the configuration for reports."""
    return {
        "window": f"{cfg.start.date()}..{cfg.end.date()}",
        "cutoff": str(cfg.cutoff.date()),
        "drivers": ", ".join(cfg.drivers),
        "lags": f"{cfg.lags[0]}..{cfg.lags[-1]}",
        "rank_rtol": cfg.rank_rtol,
        "skip_singular": cfg.skip_singular,
        "confidence_level": cfg.confidence_level,
    }
