import dataclasses
from pathlib import Path

import numpy as np
import pandas as pd
import pytest

from inflation_forecaster_src import main as cli
from inflation_forecaster_src.data_utils import InsufficientDataError, save_raw_series_csv
from inflation_forecaster_src.diagnostics_utils import DIAGNOSTIC_COLUMNS
from inflation_forecaster_src.forecasting_utils import ENSEMBLE_NAME, SingularDesignError
from inflation_forecaster_src.metrics_utils import ACCURACY_COLUMNS, evaluate, mape
from inflation_forecaster_src.pipeline import run_pipeline


def test_end_to_end_is_deterministic(raw_frame, test_config):
    first = run_pipeline(raw_frame, test_config)
    second = run_pipeline(raw_frame.copy(), test_config)

    pd.testing.assert_frame_equal(first.accuracy.out_of_sample, second.accuracy.out_of_sample)
    pd.testing.assert_frame_equal(first.accuracy.in_sample, second.accuracy.in_sample)
    pd.testing.assert_frame_equal(first.forecasts.forecasts, second.forecasts.forecasts)


def test_end_to_end_shapes(raw_frame, test_config):
    result = run_pipeline(raw_frame, test_config)

    assert len(result.transformed) == len(raw_frame) - 13
    assert result.model_names == ["unrate", "expinf1yr", "mich", "indpro", ENSEMBLE_NAME]
    assert len(result.forecasts.forecasts) == 24
    assert set(result.accuracy.out_of_sample.index) == set(result.model_names)
    assert list(result.accuracy.out_of_sample.columns) == ACCURACY_COLUMNS

    mapes = result.accuracy.out_of_sample["MAPE"].to_numpy()
    assert np.all(np.diff(mapes) >= 0)

    assert list(result.diagnostics.index) == ["unrate", "expinf1yr", "mich", "indpro"]
    assert list(result.diagnostics.columns) == DIAGNOSTIC_COLUMNS
    assert (result.diagnostics["nobs"] == 60).all()
    assert result.diagnostics["r2"].between(0.0, 1.0).all()
    assert result.diagnostics["durbin_watson"].between(0.0, 4.0).all()


def test_zero_actual_in_test_sample_is_excluded(raw_frame, test_config):
    result = run_pipeline(raw_frame, test_config)
    part = result.partition
    test = part.test.copy()
    test.iloc[4, test.columns.get_loc("dinfl12")] = 0.0
    zeroed = dataclasses.replace(part, test=test)

    report = evaluate(result.forecasts, zeroed)
    table = report.out_of_sample
    assert np.isfinite(table["MAPE"]).all()

    # MAPE over the 23 non-zero months only
    kept = test.index.delete(4)
    assert (test.loc[kept, "dinfl12"] != 0.0).all()
    for name in result.model_names:
        expected = mape(test.loc[kept, "dinfl12"], result.forecasts.forecasts.loc[kept, name])
        assert table.loc[name, "MAPE"] == pytest.approx(expected)


def test_singular_driver_is_skipped(raw_frame, test_config, caplog):
    raw = raw_frame.copy()
    raw["MICH"] = 3.0

    with caplog.at_level("WARNING"):
        result = run_pipeline(raw, test_config)

    assert result.model_names == ["unrate", "expinf1yr", "indpro", ENSEMBLE_NAME]
    assert "mich" not in result.diagnostics.index
    assert any("Skipping model 'mich'" in rec.getMessage() for rec in caplog.records)

    strict = dataclasses.replace(test_config, skip_singular=False)
    with pytest.raises(SingularDesignError):
        run_pipeline(raw, strict)


def test_window_too_short_raises(raw_frame, test_config):
    cfg = dataclasses.replace(test_config, cutoff=pd.Timestamp("2003-06-01"))
    with pytest.raises(InsufficientDataError):
        run_pipeline(raw_frame, cfg)


def test_write_outputs(raw_frame, test_config, tmp_path: Path):
    cfg = dataclasses.replace(
        test_config,
        figures_dir=str(tmp_path / "figures"),
        report_md=str(tmp_path / "figures" / "report.md"),
        metrics_csv=str(tmp_path / "accuracy.csv"),
    )
    result = run_pipeline(raw_frame, cfg)
    written = cli.write_outputs(result, cfg, tmp_path)

    for path in written:
        assert path.exists()
    names = {p.name for p in written}
    assert {"RawSeries.png", "TransformedSeries.png", "Forecasts.png", "report.md", "accuracy.csv"} <= names

    metrics = pd.read_csv(tmp_path / "accuracy.csv")
    assert len(metrics) == 10
    assert set(metrics["sample"]) == {"in_sample", "out_of_sample"}
    assert (metrics.groupby("sample")["rank"].min() == 1).all()

    report = (tmp_path / "figures" / "report.md").read_text(encoding="utf-8")
    assert "## Out-of-sample accuracy" in report
    assert "| model | ME | RMSE | MAE | MPE | MAPE | MASE | ACF1 |" in report
    assert "![Forecasts](Forecasts.png)" in report


def test_main_with_series_csv(raw_frame, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    series_csv = save_raw_series_csv(raw_frame, tmp_path / "raw.csv")
    monkeypatch.chdir(tmp_path)

    status = cli.main([
        "--series-csv", str(series_csv),
        "--start", "2000-01", "--end", "2009-12", "--cutoff", "2007-12",
        "--figures-dir", "out",
        "--report-md", "out/report.md",
        "--metrics-csv", "out/accuracy.csv",
        "--log-level", "WARNING",
    ])

    assert status == 0
    assert (tmp_path / "out" / "report.md").exists()
    assert (tmp_path / "out" / "accuracy.csv").exists()


def test_main_fails_on_missing_data(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.chdir(tmp_path)
    status = cli.main(["--series-csv", "missing.csv", "--log-level", "ERROR"])
    assert status == 1


def test_main_fails_without_api_key(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("FRED_API_KEY", raising=False)
    status = cli.main(["--log-level", "ERROR"])
    assert status == 1


def test_repeated_driver_is_rejected_before_fitting(raw_frame, test_config):
    cfg = dataclasses.replace(test_config, drivers=("mich", "mich", "unrate"))
    with pytest.raises(ValueError, match="more than once"):
        run_pipeline(raw_frame, cfg)
