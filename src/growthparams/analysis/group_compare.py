# src/growthparams/analysis/group_compare.py
from __future__ import annotations

import logging
from typing import List, Optional, Sequence

import numpy as np
import pandas as pd
import statsmodels.api as sm
import statsmodels.formula.api as smf

from growthparams.fitting.parameter_table import ParameterTable
from growthparams.fitting.errors import SchemaError
from growthparams.fitting.types import PARAMETER_NAMES, MAX_GROUPS

ANOVA_COLUMNS = [
    "parameter",
    "group_a",
    "group_b",
    "n_a",
    "n_b",
    "mean_a",
    "mean_b",
    "difference",
    "f_value",
    "p_value",
    "eta_sq",
]


def compare_parameter(frame: pd.DataFrame, parameter: str, groups: Sequence[str]) -> Optional[dict]:
    """
    One-way linear model parameter ~ C(group) and its type II ANOVA.
    Returns None when the data cannot support the comparison.
    """
    sub = frame[["group", parameter]].copy()
    sub[parameter] = pd.to_numeric(sub[parameter], errors="coerce")
    sub = sub[np.isfinite(sub[parameter].to_numpy(dtype=float))]
    present = [g for g in groups if (sub["group"] == g).any()]
    if len(present) < 2:
        logging.warning(f"Skipping ANOVA for {parameter}: fewer than two groups with fitted values")
        return None
    if len(sub) < 3:
        logging.warning(f"Skipping ANOVA for {parameter}: only {len(sub)} fitted values")
        return None

    ga, gb = present[0], present[1]
    sub = sub.rename(columns={parameter: "_y"})
    fit = smf.ols("_y ~ C(group)", data=sub).fit()
    table = sm.stats.anova_lm(fit, typ=2)

    ss_effect = float(table.loc["C(group)", "sum_sq"])
    ss_resid = float(table.loc["Residual", "sum_sq"])
    mean_a = float(sub.loc[sub["group"] == ga, "_y"].mean())
    mean_b = float(sub.loc[sub["group"] == gb, "_y"].mean())
    return {
        "parameter": parameter,
        "group_a": ga,
        "group_b": gb,
        "n_a": int((sub["group"] == ga).sum()),
        "n_b": int((sub["group"] == gb).sum()),
        "mean_a": mean_a,
        "mean_b": mean_b,
        "difference": mean_b - mean_a,
        "f_value": float(table.loc["C(group)", "F"]),
        "p_value": float(table.loc["C(group)", "PR(>F)"]),
        "eta_sq": ss_effect / (ss_effect + ss_resid) if (ss_effect + ss_resid) > 0 else np.nan,
    }


def compare_groups(
    table: ParameterTable,
    parameters: Sequence[str] = tuple(PARAMETER_NAMES),
) -> pd.DataFrame:
    """Regress each fitted parameter on group; one ANOVA row per parameter."""
    frame = table.to_frame()
    groups = sorted(frame["group"].astype(str).unique().tolist())
    if len(groups) > MAX_GROUPS:
        raise SchemaError(f"Group comparison needs at most {MAX_GROUPS} groups, found {len(groups)}: {groups}")
    rows: List[dict] = []
    for p in parameters:
        row = compare_parameter(frame, p, groups)
        if row is not None:
            rows.append(row)
            logging.info(
                f"{p}: {row['group_a']}={row['mean_a']:.4g} {row['group_b']}={row['mean_b']:.4g} "
                f"F={row['f_value']:.3g} p={row['p_value']:.3g}"
            )
    return pd.DataFrame(rows, columns=ANOVA_COLUMNS)
