# src/growthparams/cli/fit_cli.py
from __future__ import annotations
import argparse
from pathlib import Path

from growthparams.io.long_format import ColumnMap
from growthparams.pipelines.run_analysis import AnalysisConfig, run_growth_analysis


def add_fit_subcommand(subparsers: argparse._SubParsersAction) -> None:
    """
    Fit a logistic curve per plant and compare the parameters between genotypes.

    Outputs in --outdir:
      parameters.csv, failures.csv, fit_details.csv, anova.csv, a zip of them,
      and size_by_day.png / fit_overlays.png unless --no-figures.
    """
    p = subparsers.add_parser(
        "fit",
        help="Fit per-plant logistic growth curves and compare parameters between groups.",
    )
    p.add_argument("input", help="Input .csv or .xlsx, one row per plant per imaging day")
    p.add_argument("--outdir", required=True, help="Output directory")

    d = ColumnMap()
    p.add_argument("--id-col", default=d.individual_id)
    p.add_argument("--group-col", default=d.group)
    p.add_argument("--planting-col", default=d.planting_date)
    p.add_argument("--date-col", default=d.date)
    p.add_argument("--size-col", default=d.size)
    p.add_argument("--day-col", default=None, help="Use this precomputed day-offset column instead of dates")
    p.add_argument("--date-format", default=None, help="strftime format for both date columns, e.g. %%d/%%m/%%Y")

    c = AnalysisConfig()
    p.add_argument("--confidence", type=float, default=c.confidence)
    p.add_argument("--max-evaluations", type=int, default=c.max_evaluations)
    p.add_argument("--min-rise-fraction", type=float, default=c.min_rise_fraction)
    p.add_argument("--n-jobs", type=int, default=c.n_jobs)
    p.add_argument("--no-figures", action="store_true", default=False)

    p.set_defaults(_fn=_run_fit)


def _run_fit(args: argparse.Namespace) -> int:
    columns = ColumnMap(
        individual_id=args.id_col,
        group=args.group_col,
        planting_date=args.planting_col,
        date=args.date_col,
        size=args.size_col,
        day_offset=args.day_col,
        date_format=args.date_format,
    )
    cfg = AnalysisConfig(
        confidence=args.confidence,
        max_evaluations=args.max_evaluations,
        min_rise_fraction=args.min_rise_fraction,
        n_jobs=args.n_jobs,
        make_figures=not args.no_figures,
    )

    out = run_growth_analysis(Path(args.input), Path(args.outdir), columns=columns, cfg=cfg)

    table = out["table"]
    failures = out["failures"]
    print(f"[OK] fitted {len(table)} plants, excluded {len(failures)}")
    for f in failures:
        print(f"  excluded {f.individual_id} ({f.group}): {f.reason} - {f.detail}")
    if not out["anova_df"].empty:
        print(out["anova_df"][["parameter", "mean_a", "mean_b", "f_value", "p_value"]].to_string(index=False))
    print(f"Wrote {out['zip_path']}")
    return 0
