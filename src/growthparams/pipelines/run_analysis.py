# src/growthparams/pipelines/run_analysis.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

import matplotlib.pyplot as plt

from growthparams.analysis.group_compare import compare_groups
from growthparams.export import export_results, failures_frame, fit_details_frame
from growthparams.fitting.curve_fitter import CurveFitter, aggregate_results
from growthparams.fitting.logistic_model import LogisticModel
from growthparams.fitting.errors import SchemaError
from growthparams.fitting.types import IndividualSeries, MAX_GROUPS
from growthparams.io.long_format import ColumnMap, load_series, observations_frame
from growthparams.viz.figures import plot_fit_overlays, plot_size_scatter
from growthparams.viz.payloads import build_overlay_payloads


# ============================================================
# Config
# ============================================================

@dataclass(frozen=True)
class AnalysisConfig:
    # fitting
    confidence: Optional[float] = 0.95     # None disables intervals
    max_evaluations: int = 2000            # optimizer budget per individual
    min_rise_fraction: float = 0.1         # plausibility threshold for flat/decreasing fits
    n_jobs: int = 1

    # outputs
    make_figures: bool = True
    zip_name: str = "growth_parameters.zip"


# ============================================================
# Runner
# ============================================================

def analyze_series(
    series: Sequence[IndividualSeries],
    cfg: AnalysisConfig = AnalysisConfig(),
    groups: Optional[Sequence[str]] = None,
) -> Dict[str, Any]:
    """
    series -> per-individual fits -> ParameterTable + failures -> group ANOVA.

    Returns results, parameter table, failure list, and data frames for export.
    """
    if groups is None:
        groups = sorted({s.group for s in series})
    if len(groups) > MAX_GROUPS:
        raise SchemaError(f"Expected at most {MAX_GROUPS} groups, found {len(groups)}: {list(groups)}")

    fitter = CurveFitter(
        LogisticModel(max_evaluations=cfg.max_evaluations, min_rise_fraction=cfg.min_rise_fraction),
        known_groups=groups,
        n_jobs=cfg.n_jobs,
        confidence=cfg.confidence,
    )
    results = fitter.fit_results(series)
    table, failures = aggregate_results(results, groups)

    anova = compare_groups(table)
    return {
        "results": results,
        "table": table,
        "failures": failures,
        "parameters_df": table.to_frame(),
        "failures_df": failures_frame(failures),
        "details_df": fit_details_frame(results),
        "anova_df": anova,
    }


def run_growth_analysis(
    input_path: Union[str, Path],
    outdir: Union[str, Path],
    *,
    columns: ColumnMap = ColumnMap(),
    cfg: AnalysisConfig = AnalysisConfig(),
) -> Dict[str, Any]:
    """
    Runs:
      input table -> series -> fits -> parameters/failures/anova CSVs (+ figures)

    Returns the analysis dict plus output paths.
    """
    outdir = Path(outdir)
    outdir.mkdir(parents=True, exist_ok=True)

    series = load_series(input_path, columns)
    res = analyze_series(series, cfg)

    paths = export_results(
        parameters=res["parameters_df"],
        failures=res["failures_df"],
        anova=res["anova_df"],
        details=res["details_df"],
        out_dir=outdir,
        zip_name=cfg.zip_name,
    )

    if cfg.make_figures:
        fig_paths: List[Path] = []
        scatter_path = outdir / "size_by_day.png"
        fig = plot_size_scatter(observations_frame(series), save_path=scatter_path, size_label=columns.size)
        plt.close(fig)
        fig_paths.append(scatter_path)

        overlay_path = outdir / "fit_overlays.png"
        fig = plot_fit_overlays(build_overlay_payloads(series, res["results"]), save_path=overlay_path)
        plt.close(fig)
        fig_paths.append(overlay_path)
        paths["figures"] = fig_paths

    logging.info(f"Wrote outputs to {outdir}")
    return {**res, **paths}
