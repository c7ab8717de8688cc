# inflation_forecaster_src/plotting_utils.py

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
from pathlib import Path
from typing import Optional
import logging

from .forecasting_utils import ENSEMBLE_NAME, ForecastSet

logger = logging.getLogger(__name__)

MODEL_COLORS = ["tab:red", "tab:blue", "tab:green", "tab:orange", "tab:purple"]


def ensure_dir(path: Path) -> None:
    """
    Create directory if it doesn't exist, including all parent directories.

    Parameters
    ----------
    path : Path
        Directory path to create
    """
    path.mkdir(parents=True, exist_ok=True)


def plot_series_panel(df: pd.DataFrame, out_path: Path, title: Optional[str] = None) -> Path:
    """
    Render and save one small panel per column of a monthly frame.

    Used for both the raw levels and the transformed series.

    Parameters
    ----------
    df : pd.DataFrame
        Monthly data with a DatetimeIndex.
    out_path : Path
        File path to save the PNG (parents are created if missing)
    title : str, optional
        Figure title.

    Returns
    -------
    Path
        The written file.
    """
    ensure_dir(out_path.parent)
    n = len(df.columns)
    ncols = 2
    nrows = int(np.ceil(n / ncols))
    fig, axes = plt.subplots(nrows=nrows, ncols=ncols, figsize=(11, 2.2 * nrows), dpi=150, squeeze=False)
    flat = axes.flatten()
    for ax, col in zip(flat, df.columns):
        ax.plot(df.index, df[col], color="black", linewidth=1)
        ax.set_title(col, fontsize=9)
        ax.xaxis.set_ticks_position("none")
        ax.yaxis.set_ticks_position("none")
        ax.spines["top"].set_alpha(0)
        ax.tick_params(labelsize=6)
    for ax in flat[n:]:
        ax.set_visible(False)
    if title:
        fig.suptitle(title)
    fig.autofmt_xdate()
    plt.tight_layout()
    fig.savefig(out_path, dpi=300)
    plt.close(fig)
    logger.info("Saved %s", out_path)
    return out_path


def plot_forecasts(actual: pd.Series, forecasts: ForecastSet, out_path: Path,
                   title: str = "Out-of-sample forecasts of dinfl12") -> Path:
    """
    Plot actual vs every model's out-of-sample forecast with the ensemble band.

    Parameters
    ----------
    actual : pd.Series
        Observed target over the test range.
    forecasts : ForecastSet
        Forecasts and interval bounds.
    out_path : Path
        Output file path for the plot
    title : str
        Plot title

    Returns
    -------
    Path
        The written file.
    """
    ensure_dir(out_path.parent)
    fig, ax = plt.subplots(figsize=(9, 4.5))

    idx = forecasts.forecasts.index
    ax.fill_between(idx, forecasts.lower[ENSEMBLE_NAME], forecasts.upper[ENSEMBLE_NAME],
                    color="tab:gray", alpha=0.2, label=f"{ENSEMBLE_NAME} {forecasts.level}% band")
    ax.plot(actual.index, actual.values, color="black", linewidth=1.5, label="actual")

    for i, name in enumerate(forecasts.model_names):
        style = "-" if name == ENSEMBLE_NAME else "--"
        ax.plot(idx, forecasts.forecasts[name], color=MODEL_COLORS[i % len(MODEL_COLORS)],
                linestyle=style, linewidth=1.2, label=name)

    ax.set_ylabel("dinfl12")
    ax.set_title(title)
    ax.legend(fontsize=7)
    fig.autofmt_xdate()
    plt.tight_layout()
    fig.savefig(out_path, dpi=300)
    plt.close(fig)
    logger.info("Saved %s", out_path)
    return out_path
