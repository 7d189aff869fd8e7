"""
plant_curves.py
---------------------------------
Synthetic plant-phenotyping generator that writes a single **long** table:

    plant_id, genotype, planting_date, date, TopPlantSurface

One row per plant per imaging day. Sizes follow the three-parameter logistic
with per-genotype parameter distributions and multiplicative noise.

Notes:
  - Optional missing sizes
  - Optional "bad" plants: sparse (too few images) and shrinking (segmentation loss)
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Tuple

import numpy as np
import pandas as pd

from growthparams.fitting.logistic_model import logistic


@dataclass(frozen=True)
class GenotypeParams:
    asymptote: float = 60000.0     # px
    inflection: float = 28.0       # days
    scale: float = 4.0             # days; rate = 1 / scale
    cv: float = 0.08               # between-plant coefficient of variation


DEFAULT_GENOTYPES: Dict[str, GenotypeParams] = {
    "WT": GenotypeParams(),
    "mutant": GenotypeParams(asymptote=48000.0, inflection=31.0, scale=4.5),
}


@dataclass(frozen=True)
class SynthConfig:
    n_per_group: int = 8
    first_day: int = 7
    last_day: int = 49
    every_n_days: int = 2
    noise_level: float = 0.04              # multiplicative gaussian sd
    pct_missing_plants: float = 0.25       # plants with some missing sizes
    missing_frac_per_plant: float = 0.1
    n_sparse: int = 1                      # plants with only 2 usable images
    n_shrinking: int = 1                   # plants whose area declines
    planting_date: str = "2024-03-01"
    genotypes: Dict[str, GenotypeParams] = field(default_factory=lambda: dict(DEFAULT_GENOTYPES))

    def __post_init__(self) -> None:
        n_bad = self.n_sparse + self.n_shrinking
        if self.n_sparse < 0 or self.n_shrinking < 0:
            raise ValueError("n_sparse and n_shrinking must be non-negative")
        if n_bad > self.n_per_group:
            raise ValueError(
                f"n_sparse + n_shrinking ({n_bad}) exceeds n_per_group ({self.n_per_group})"
            )


# --------------------------
# Noise / corruption
# --------------------------
def inject_missing(y: np.ndarray, frac: float, rng: np.random.Generator) -> np.ndarray:
    y = np.asarray(y, dtype=float).copy()
    if frac <= 0:
        return y
    n = len(y)
    k = max(1, int(round(frac * n)))
    idx = rng.choice(n, size=min(k, n), replace=False)
    y[idx] = np.nan
    return y


def make_sparse(y: np.ndarray, rng: np.random.Generator, keep: int = 2) -> np.ndarray:
    y = np.asarray(y, dtype=float).copy()
    keep_idx = rng.choice(len(y), size=min(keep, len(y)), replace=False)
    mask = np.ones(len(y), dtype=bool)
    mask[keep_idx] = False
    y[mask] = np.nan
    return y


def make_shrinking(y: np.ndarray) -> np.ndarray:
    """Area that only declines, as when background noise is segmented early on."""
    y = np.asarray(y, dtype=float)
    return np.sort(y)[::-1].copy()


def _plant_params(gp: GenotypeParams, rng: np.random.Generator) -> Tuple[float, float, float]:
    a = gp.asymptote * float(rng.normal(1.0, gp.cv))
    x0 = gp.inflection * float(rng.normal(1.0, gp.cv / 2.0))
    s = gp.scale * float(rng.normal(1.0, gp.cv))
    return max(a, 1.0), x0, max(s, 0.5)


def generate_plants(cfg: SynthConfig = SynthConfig(), seed: int = 123) -> pd.DataFrame:
    rng = np.random.default_rng(seed)
    days = np.arange(cfg.first_day, cfg.last_day + 1, cfg.every_n_days, dtype=float)
    planted = pd.Timestamp(cfg.planting_date)

    rows = []
    last_genotype = list(cfg.genotypes)[-1]
    first_bad = cfg.n_per_group - (cfg.n_sparse + cfg.n_shrinking)
    for genotype, gp in cfg.genotypes.items():
        for rep in range(cfg.n_per_group):
            plant_id = f"{genotype}_{rep + 1:02d}"
            a, x0, s = _plant_params(gp, rng)
            y = logistic(days, a, x0, s) * rng.normal(1.0, cfg.noise_level, size=len(days))
            y = np.clip(y, 0.0, None)

            # corrupt the last plants of the last genotype
            k = rep - first_bad
            if genotype == last_genotype and k >= 0:
                y = make_sparse(y, rng) if k < cfg.n_sparse else make_shrinking(y)
            elif rng.random() < cfg.pct_missing_plants:
                y = inject_missing(y, cfg.missing_frac_per_plant, rng)

            for d, v in zip(days, y):
                rows.append({
                    "plant_id": plant_id,
                    "genotype": genotype,
                    "planting_date": planted.strftime("%Y-%m-%d"),
                    "date": (planted + pd.Timedelta(days=int(d))).strftime("%Y-%m-%d"),
                    "TopPlantSurface": float(np.round(v, 1)) if np.isfinite(v) else np.nan,
                })

    df = pd.DataFrame(rows, columns=["plant_id", "genotype", "planting_date", "date", "TopPlantSurface"])
    logging.info(f"Generated {df['plant_id'].nunique()} plants x {len(days)} imaging days")
    return df
