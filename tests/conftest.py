import numpy as np
import pandas as pd
import pytest

from inflation_forecaster_src.config_utils import PipelineConfig


def make_raw_frame(n_months: int = 120, start: str = "2000-01-01", seed: int = 7) -> pd.DataFrame:
    """Synthetic monthly levels with noisy, non-collinear dynamics in every series."""
    rng = np.random.default_rng(seed)
    t = np.arange(n_months)
    idx = pd.date_range(start, periods=n_months, freq="MS", name="date")

    pce_growth = 0.002 + 0.001 * np.sin(2 * np.pi * t / 30.0) + rng.normal(0.0, 0.0015, n_months)
    ip_growth = 0.001 + 0.002 * np.cos(2 * np.pi * t / 45.0) + rng.normal(0.0, 0.005, n_months)

    return pd.DataFrame(
        {
            "PCEPI": 100.0 * np.exp(np.cumsum(pce_growth)),
            "UNRATE": 5.0 + 0.8 * np.sin(2 * np.pi * t / 60.0) + np.cumsum(rng.normal(0.0, 0.1, n_months)),
            "EXPINF1YR": 2.5 + 0.3 * np.cos(2 * np.pi * t / 36.0) + np.cumsum(rng.normal(0.0, 0.05, n_months)),
            "MICH": 3.0 + 0.4 * np.sin(2 * np.pi * t / 24.0) + np.cumsum(rng.normal(0.0, 0.08, n_months)),
            "INDPRO": 90.0 * np.exp(np.cumsum(ip_growth)),
        },
        index=idx,
    )


@pytest.fixture
def raw_frame() -> pd.DataFrame:
    # 2000-01..2009-12
    return make_raw_frame()


@pytest.fixture
def test_config() -> PipelineConfig:
    # transformed rows 2001-02..2009-12; train 2001-02..2007-12, test 2008-01..2009-12
    return PipelineConfig(
        start=pd.Timestamp("2000-01-01"),
        end=pd.Timestamp("2009-12-01"),
        cutoff=pd.Timestamp("2007-12-01"),
    )
