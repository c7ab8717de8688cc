# inflation_forecaster_src/pipeline.py

import pandas as pd
from dataclasses import dataclass
from typing import List, Optional
import logging

from .config_utils import PipelineConfig
from .data_utils import Partition, restrict_window, split_train_test
from .diagnostics_utils import residual_diagnostics
from .forecasting_utils import FittedModel, ForecastSet, fit_all_models, forecast_all
from .metrics_utils import AccuracyReport, evaluate
from .transform_utils import transform_series

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PipelineResult:
    """Everything one run produces, as plain data for the report layer."""

    raw: pd.DataFrame
    transformed: pd.DataFrame
    partition: Partition
    models: List[FittedModel]
    forecasts: ForecastSet
    accuracy: AccuracyReport
    diagnostics: pd.DataFrame

    @property
    def model_names(self) -> List[str]:
        return self.forecasts.model_names


def run_pipeline(raw: pd.DataFrame, config: Optional[PipelineConfig] = None) -> PipelineResult:
    """
    Transform, split, fit, forecast and evaluate.

    Parameters
    ----------
    raw : pd.DataFrame
        Aligned monthly levels (PCEPI, UNRATE, EXPINF1YR, MICH, INDPRO).
    config : PipelineConfig, optional
        Run configuration; defaults apply when omitted.

    Returns
    -------
    PipelineResult

    Raises
    ------
    ValueError
        If the raw frame is malformed.
    InsufficientDataError
        If the sample is too short for the lag structure.
    SingularDesignError
        If no model can be fitted (or any, with skip_singular disabled).

    Notes
    -----
    The run holds no state outside its arguments and the returned result,
    so repeated calls on the same input give identical tables.
    """
    cfg = config or PipelineConfig()

    window = restrict_window(raw, cfg.start, cfg.end)
    logger.info("Running pipeline on %d raw months (%s..%s)", len(window),
                window.index.min().date() if len(window) else "-",
                window.index.max().date() if len(window) else "-")

    transformed = transform_series(window)
    partition = split_train_test(transformed, cfg.cutoff, n_params=cfg.n_params)

    models = fit_all_models(
        partition,
        drivers=cfg.drivers,
        lags=cfg.lags,
        rank_rtol=cfg.rank_rtol,
        skip_singular=cfg.skip_singular,
    )
    forecasts = forecast_all(models, partition, level=cfg.confidence_level)
    accuracy = evaluate(forecasts, partition, m=cfg.seasonal_period)
    diagnostics = residual_diagnostics(models)

    return PipelineResult(
        raw=window.copy(),
        transformed=transformed,
        partition=partition,
        models=models,
        forecasts=forecasts,
        accuracy=accuracy,
        diagnostics=diagnostics,
    )
