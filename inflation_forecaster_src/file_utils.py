# inflation_forecaster_src/file_utils.py

import csv
import pandas as pd
import numpy as np
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional
from datetime import datetime, timezone
import logging

from .metrics_utils import ACCURACY_COLUMNS, AccuracyReport
from .transform_utils import describe_transforms

logger = logging.getLogger(__name__)

ACCURACY_CSV_HEADER = ["sample", "rank", "model"] + ACCURACY_COLUMNS


def ensure_dir(path: Path) -> None:
    """
    Create directory if it doesn't exist, including all parent directories.

    Parameters
    ----------
    path : Path
        Directory path to create
    """
    path.mkdir(parents=True, exist_ok=True)


def _fmt(value: Any, digits: int = 4) -> str:
    if isinstance(value, (float, np.floating)):
        return "NaN" if not np.isfinite(value) else f"{value:.{digits}f}"
    return str(value)


def md_table_from_df(df: pd.DataFrame,
                     max_rows: Optional[int] = None,
                     columns: Optional[List[str]] = None,
                     index_label: Optional[str] = None,
                     digits: int = 4) -> str:
    """
    Convert a DataFrame to markdown table format.

    Parameters
    ----------
    df : pd.DataFrame
        DataFrame to convert
    max_rows : int, optional
        Maximum number of rows to include (None for all)
    columns : Optional[List[str]]
        Specific columns to include (None for all)
    index_label : str, optional
        When given, the index is rendered as a first column with this header.
    digits : int, default=4
        Decimal places for floats.

    Returns
    -------
    str
        Markdown table string; empty string for a frame without columns.
    """
    if columns is not None:
        keep = [c for c in columns if c in df.columns]
        if keep:
            df = df.loc[:, keep]

    df_disp = df if max_rows is None else df.head(max_rows)
    cols = list(df_disp.columns)
    if not cols:
        return ""

    head = ([index_label] if index_label else []) + [str(c) for c in cols]
    header = "| " + " | ".join(head) + " |"
    separator = "| " + " | ".join("---" for _ in head) + " |"

    rows = []
    for idx, row in df_disp.iterrows():
        vals = ([str(idx)] if index_label else []) + [_fmt(row[c], digits) for c in cols]
        rows.append("| " + " | ".join(vals) + " |")

    return "\n".join([header, separator] + rows)


def write_accuracy_csv(report: AccuracyReport, csv_path: Path) -> Path:
    """
    Write both ranked accuracy tables to one CSV, one row per model and sample.

    The file is overwritten on each run.

    Parameters
    ----------
    report : AccuracyReport
        In-sample and out-of-sample tables.
    csv_path : Path
        Destination (parents are created).

    Returns
    -------
    Path
        The written path.
    """
    ensure_dir(csv_path.parent)
    with csv_path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=ACCURACY_CSV_HEADER)
        writer.writeheader()
        for sample, table in (("in_sample", report.in_sample), ("out_of_sample", report.out_of_sample)):
            for rank, (model, row) in enumerate(table.iterrows(), start=1):
                out: Dict[str, Any] = {"sample": sample, "rank": rank, "model": model}
                out.update({c: float(row[c]) for c in ACCURACY_COLUMNS})
                writer.writerow(out)
    logger.info("Wrote accuracy tables to %s", csv_path)
    return csv_path


def write_markdown_report(report_path: Path,
                          accuracy: AccuracyReport,
                          diagnostics: pd.DataFrame,
                          figures: Optional[Mapping[str, Path]] = None,
                          summary: Optional[Mapping[str, Any]] = None) -> Path:
    """
    Write the run report as markdown.

    Sections: run summary, transformations, figures, in-sample and
    out-of-sample accuracy (ranked by MAPE), residual diagnostics.

    Parameters
    ----------
    report_path : Path
        Destination file (overwritten; parents are created).
    accuracy : AccuracyReport
        Ranked accuracy tables.
    diagnostics : pd.DataFrame
        Output of residual_diagnostics().
    figures : Mapping[str, Path], optional
        Caption -> image path; linked relative to the report when possible.
    summary : Mapping[str, Any], optional
        Key/value pairs listed at the top.

    Returns
    -------
    Path
        The written path.
    """
    ensure_dir(report_path.parent)
    ts = datetime.now(timezone.utc).isoformat(timespec="seconds")
    lines: List[str] = ["# Phillips-curve inflation forecasts", "", f"_generated: {ts}_", ""]

    if summary:
        lines += ["## Run", ""]
        lines += [f"- **{k}**: {v}" for k, v in summary.items()]
        lines.append("")

    lines += ["## Transformations", ""]
    lines += [f"- {d}" for d in describe_transforms()]
    lines.append("")

    if figures:
        lines += ["## Figures", ""]
        for caption, path in figures.items():
            try:
                rel = Path(path).resolve().relative_to(report_path.parent.resolve())
            except ValueError:
                rel = Path(path)
            lines.append(f"![{caption}]({rel.as_posix()})")
        lines.append("")

    lines += ["## In-sample accuracy", "", md_table_from_df(accuracy.in_sample, index_label="model"), ""]
    lines += ["## Out-of-sample accuracy", "", md_table_from_df(accuracy.out_of_sample, index_label="model"), ""]
    lines += ["## Residual diagnostics", "", md_table_from_df(diagnostics, index_label="model"), ""]

    report_path.write_text("\n".join(lines), encoding="utf-8")
    logger.info("Wrote report to %s", report_path)
    return report_path


def resolve_path(path_str: str, base_dir: Path) -> Path:
    """
    Resolve a path string relative to a base directory if not absolute.

    Examples
    --------
    >>> resolve_path("data/file.csv", Path("/project"))
    PosixPath('/project/data/file.csv')
    """
    path = Path(path_str)
    return path if path.is_absolute() else (base_dir / path)
