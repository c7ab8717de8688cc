# inflation_forecaster_src/diagnostics_utils.py

import numpy as np
import pandas as pd
from typing import Dict, Sequence
import logging

from statsmodels.stats.diagnostic import acorr_ljungbox
from statsmodels.stats.stattools import durbin_watson, jarque_bera

from .forecasting_utils import FittedModel

logger = logging.getLogger(__name__)

DIAGNOSTIC_COLUMNS = [
    "nobs", "r2", "adj_r2", "durbin_watson",
    "jb_stat", "jb_pvalue", "lb_pvalue_12", "lb_pvalue_24",
]
LJUNG_BOX_LAGS = (12, 24)


def _ljungbox_pvalues(resid: np.ndarray) -> Dict[int, float]:
    """Ljung-Box p-values at LJUNG_BOX_LAGS; NaN where the sample is too short."""
    out = {lag: float("nan") for lag in LJUNG_BOX_LAGS}
    usable = [lag for lag in LJUNG_BOX_LAGS if lag < len(resid)]
    if not usable:
        return out
    try:
        df_lb = acorr_ljungbox(resid, lags=usable, return_df=True)
        for lag in usable:
            out[lag] = float(df_lb.loc[lag, "lb_pvalue"])
    except (ValueError, np.linalg.LinAlgError) as e:
        logger.debug("Ljung-Box test skipped: %s", e)
    return out


def model_diagnostics(model: FittedModel) -> Dict[str, float]:
    """
    Residual diagnostics for one fitted model.

    Parameters
    ----------
    model : FittedModel
        Estimated driver model.

    Returns
    -------
    Dict[str, float]
        Keys DIAGNOSTIC_COLUMNS.
    """
    resid = model.residuals.to_numpy(dtype=float)
    jb_stat, jb_pvalue, _, _ = jarque_bera(resid)
    lb = _ljungbox_pvalues(resid)
    return {
        "nobs": float(model.nobs),
        "r2": float(model.results.rsquared),
        "adj_r2": float(model.results.rsquared_adj),
        "durbin_watson": float(durbin_watson(resid)),
        "jb_stat": float(jb_stat),
        "jb_pvalue": float(jb_pvalue),
        "lb_pvalue_12": lb[12],
        "lb_pvalue_24": lb[24],
    }


def residual_diagnostics(models: Sequence[FittedModel]) -> pd.DataFrame:
    """
    Residual diagnostics table, one row per fitted model.

    The ensemble has no residuals of its own and is not included.

    Parameters
    ----------
    models : Sequence[FittedModel]
        Fitted driver models.

    Returns
    -------
    pd.DataFrame
        Columns DIAGNOSTIC_COLUMNS indexed by model name.

    Notes
    -----
    Low Ljung-Box p-values are expected here: the target is a twelve-month
    change sampled monthly, so its residuals overlap by construction.
    """
    rows = {m.name: model_diagnostics(m) for m in models}
    table = pd.DataFrame.from_dict(rows, orient="index", columns=DIAGNOSTIC_COLUMNS)
    table.index.name = "model"
    for name, row in table.iterrows():
        logger.debug("Diagnostics %s: R2=%.3f DW=%.2f LB12 p=%.3f", name, row["r2"],
                     row["durbin_watson"], row["lb_pvalue_12"])
    return table
