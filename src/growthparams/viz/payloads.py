# src/growthparams/viz/payloads.py
from __future__ import annotations

from typing import Dict, Iterable, Mapping, Optional

import numpy as np

from growthparams.fitting.logistic_model import logistic
from growthparams.fitting.types import Fitted, IndividualSeries, LogisticFitResult


def _fit_payload(fit: LogisticFitResult, x: np.ndarray, n_grid: int) -> dict:
    if not isinstance(fit, Fitted):
        return {"ran": False, "reason": fit.reason, "detail": fit.detail}
    if x.size == 0:
        return {"ran": False, "reason": "", "detail": "no observed days"}

    x_grid = np.linspace(float(np.min(x)), float(np.max(x)), n_grid)
    ci = fit.confidence_intervals
    return {
        "ran": True,
        "x_grid": x_grid,
        "y_hat": logistic(x_grid, fit.asymptote, fit.inflection, fit.scale),
        "params": {
            "asymptote": fit.asymptote,
            "inflection": fit.inflection,
            "rate": fit.rate,
        },
        "ci": None if ci is None else {
            "asymptote": [ci.asymptote.low, ci.asymptote.high],
            "inflection": [ci.inflection.low, ci.inflection.high],
            "rate": [ci.rate.low, ci.rate.high],
        },
        "rss": fit.rss,
    }


def build_overlay_payloads(
    series: Iterable[IndividualSeries],
    results: Mapping[str, LogisticFitResult],
    *,
    n_grid: int = 200,
    individual_ids: Optional[Iterable[str]] = None,
) -> Dict[str, dict]:
    """
    Per individual: observed points plus the fitted curve over the observed day range.
    Observations with missing size are left out of x/y.
    """
    wanted = set(individual_ids) if individual_ids is not None else None
    payloads: Dict[str, dict] = {}
    for s in series:
        if wanted is not None and s.individual_id not in wanted:
            continue
        x, y = s.valid_pairs()
        fit = results.get(s.individual_id)
        payloads[s.individual_id] = {
            "individual_id": s.individual_id,
            "group": s.group,
            "x": x,
            "y": y,
            "fit": {"ran": False, "reason": "", "detail": "not fitted"} if fit is None else _fit_payload(fit, x, n_grid),
        }
    return payloads
