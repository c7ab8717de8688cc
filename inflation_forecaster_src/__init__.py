# inflation_forecaster_src/__init__.py

"""
Inflation Forecaster - Phillips-curve ensemble forecasting package

This package fits distributed-lag Phillips-curve regressions of the
twelve-month change in PCE inflation on lagged inflation changes and one
driver each (unemployment, expected inflation, Michigan expectations,
industrial production), averages them into an equal-weight ensemble and
scores everything by MAPE.

Key Components
--------------
- transform_utils: raw levels -> stationary modelling dataset
- data_utils: train/test split, raw-series CSV cache
- forecasting_utils: design matrices, OLS fitting, forecasts, ensemble
- metrics_utils: percentage errors, accuracy tables, MAPE ranking
- diagnostics_utils: residual diagnostics per fitted model
- pipeline: run_pipeline, the end-to-end computation
- config_utils: PipelineConfig and CLI/config precedence
- plotting_utils, file_utils: figures, markdown report, accuracy CSV
- main: command-line entry point

Usage
-----
    # Command-line usage
    python -m inflation_forecaster_src.main --series-csv data/raw_series.csv

    # Programmatic usage
    from inflation_forecaster_src import run_pipeline, PipelineConfig
"""

__version__ = "1.0.0"

from .config_utils import PipelineConfig, build_pipeline_config
from .data_utils import InsufficientDataError, Partition, split_train_test
from .forecasting_utils import (
    FittedModel, ForecastSet, SingularDesignError,
    ensemble_forecast, fit_all_models, fit_driver_model, forecast_all, predict,
)
from .metrics_utils import AccuracyReport, UndefinedPercentageError, evaluate, mape, rank_by_mape
from .pipeline import PipelineResult, run_pipeline
from .transform_utils import transform_series

__all__ = [
    "PipelineConfig",
    "build_pipeline_config",
    "InsufficientDataError",
    "Partition",
    "split_train_test",
    "FittedModel",
    "ForecastSet",
    "SingularDesignError",
    "ensemble_forecast",
    "fit_all_models",
    "fit_driver_model",
    "forecast_all",
    "predict",
    "AccuracyReport",
    "UndefinedPercentageError",
    "evaluate",
    "mape",
    "rank_by_mape",
    "PipelineResult",
    "run_pipeline",
    "transform_series",
    "__version__",
]
