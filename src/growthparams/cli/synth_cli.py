# src/growthparams/cli/synth_cli.py
from __future__ import annotations

import argparse
from pathlib import Path

from growthparams.synthetic.plant_curves import SynthConfig, generate_plants


def add_synth_subcommand(subparsers: argparse._SubParsersAction) -> None:
    p = subparsers.add_parser(
        "synth",
        help="Generate a synthetic long-format plant table (two genotypes, logistic growth).",
    )
    d = SynthConfig()
    p.add_argument("--out", required=True, help="Output CSV path")
    p.add_argument("--seed", type=int, default=123)
    p.add_argument("--n-per-group", type=int, default=d.n_per_group, help="Plants per genotype")
    p.add_argument("--first-day", type=int, default=d.first_day)
    p.add_argument("--last-day", type=int, default=d.last_day)
    p.add_argument("--every-n-days", type=int, default=d.every_n_days, help="Imaging interval in days")
    p.add_argument("--noise-level", type=float, default=d.noise_level, help="Multiplicative gaussian noise sd")
    p.add_argument("--pct-missing-plants", type=float, default=d.pct_missing_plants)
    p.add_argument("--missing-frac-per-plant", type=float, default=d.missing_frac_per_plant)
    p.add_argument("--n-sparse", type=int, default=d.n_sparse, help="Plants left with only two usable images")
    p.add_argument("--n-shrinking", type=int, default=d.n_shrinking, help="Plants whose area declines")
    p.add_argument("--planting-date", default=d.planting_date)

    p.set_defaults(_fn=_run)


def _run(args: argparse.Namespace) -> int:
    cfg = SynthConfig(
        n_per_group=args.n_per_group,
        first_day=args.first_day,
        last_day=args.last_day,
        every_n_days=args.every_n_days,
        noise_level=args.noise_level,
        pct_missing_plants=args.pct_missing_plants,
        missing_frac_per_plant=args.missing_frac_per_plant,
        n_sparse=args.n_sparse,
        n_shrinking=args.n_shrinking,
        planting_date=args.planting_date,
    )
    df = generate_plants(cfg, seed=args.seed)

    out = Path(args.out)
    out.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(out, index=False)
    print(f"[OK] {out}  (rows={len(df)}, plants={df['plant_id'].nunique()})")
    return 0
