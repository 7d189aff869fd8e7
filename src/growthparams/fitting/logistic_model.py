# src/growthparams/fitting/logistic_model.py
from __future__ import annotations
import warnings
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np
from scipy import stats
from scipy.optimize import curve_fit, OptimizeWarning

from .errors import ConvergenceError, DegenerateDataError
from .types import Fitted, ParameterTriple, ConfidenceIntervals, Interval

N_PARAMS = 3
MIN_POINTS = N_PARAMS + 1


# --------- Model function ---------
def logistic(x, asymptote, inflection, scale):
    # y(x) = asymptote / (1 + exp((inflection - x) / scale))
    with np.errstate(over="ignore", divide="ignore", invalid="ignore"):
        return asymptote / (1.0 + np.exp((inflection - np.asarray(x, float)) / scale))


# --------- Starting values ---------
@dataclass(frozen=True)
class StartValues:
    asymptote: float
    inflection: float
    scale: float

    def as_array(self) -> np.ndarray:
        return np.array([self.asymptote, self.inflection, self.scale], dtype=float)


def self_start(x: np.ndarray, y: np.ndarray) -> StartValues:
    """
    Starting values derived from the data shape alone.

    asymptote: just above the observed max, so the start is not on the boundary.
    inflection: x whose y is nearest half the observed max.
    scale: a tenth of the observed x-range.

    When a logit-linear regression of y / (asymptote - y) on x has a positive slope,
    its inflection and scale replace the heuristic ones.
    """
    x = np.asarray(x, float)
    y = np.asarray(y, float)

    y_max = float(np.max(y))
    asym0 = 1.05 * y_max if y_max > 0 else 1.0

    idx = int(np.argmin(np.abs(y - 0.5 * y_max)))
    infl0 = float(x[idx])

    x_min, x_max = float(np.min(x)), float(np.max(x))
    x_range = x_max - x_min
    scale0 = max(x_range / 10.0, 1e-6)

    inside = (y > 0) & (y < asym0)
    if int(np.sum(inside)) >= 2 and np.ptp(x[inside]) > 0:
        z = np.log(y[inside] / (asym0 - y[inside]))
        slope, intercept = np.polyfit(x[inside], z, 1)
        if np.isfinite(slope) and np.isfinite(intercept) and slope > 0:
            infl_ref = float(-intercept / slope)
            # keep the refined midpoint near the observed window
            if x_min - x_range <= infl_ref <= x_max + x_range:
                infl0 = infl_ref
                scale0 = float(1.0 / slope)

    return StartValues(asymptote=asym0, inflection=infl0, scale=scale0)


def _clean_pairs(x, y) -> Tuple[np.ndarray, np.ndarray]:
    x = np.asarray(x, float)
    y = np.asarray(y, float)
    mask = np.isfinite(x) & np.isfinite(y) & (y >= 0)
    x = x[mask]
    y = y[mask]
    order = np.argsort(x, kind="stable")
    return x[order], y[order]


def rss_of(x: np.ndarray, y: np.ndarray, asymptote: float, inflection: float, scale: float) -> float:
    y_hat = logistic(x, asymptote, inflection, scale)
    return float(np.sum((y - y_hat) ** 2))


# --------- Fitting ---------
class LogisticModel:
    """
    Three-parameter self-starting logistic growth model.

    fit() is deterministic: one Levenberg-Marquardt run from self_start() values,
    no random restarts.
    """

    def __init__(self, max_evaluations: int = 2000, min_rise_fraction: float = 0.1):
        self.max_evaluations = int(max_evaluations)
        self.min_rise_fraction = float(min_rise_fraction)

    def check_data(self, x: np.ndarray, y: np.ndarray) -> None:
        if len(x) < MIN_POINTS:
            raise DegenerateDataError(
                f"{len(x)} valid points; at least {MIN_POINTS} are needed for a {N_PARAMS}-parameter fit"
            )
        if float(np.ptp(y)) == 0.0:
            raise DegenerateDataError("all size values are equal; no growth signal")
        if len(np.unique(x)) < N_PARAMS:
            raise DegenerateDataError(f"fewer than {N_PARAMS} distinct day offsets")

    def fit(
        self,
        x,
        y,
        *,
        individual_id: str = "",
        group: str = "",
        confidence: Optional[float] = 0.95,
    ) -> Fitted:
        x, y = _clean_pairs(x, y)
        self.check_data(x, y)

        start = self_start(x, y)
        try:
            with warnings.catch_warnings():
                warnings.simplefilter("ignore", OptimizeWarning)
                popt, pcov, info, _mesg, _ier = curve_fit(
                    logistic, x, y,
                    p0=start.as_array(),
                    maxfev=self.max_evaluations,
                    full_output=True,
                )
        except (RuntimeError, ValueError) as e:
            raise ConvergenceError(f"optimizer did not converge: {e}") from e

        if not np.all(np.isfinite(popt)):
            raise ConvergenceError("optimizer returned non-finite parameters")

        asymptote, inflection, scale = (float(v) for v in popt)
        self.check_plausible(x, y, asymptote, inflection, scale)

        n = int(len(x))
        se_scale = None
        std_errors = None
        cov = np.asarray(pcov, float)
        if cov.shape == (N_PARAMS, N_PARAMS) and np.all(np.isfinite(np.diag(cov))):
            se = np.sqrt(np.clip(np.diag(cov), 0.0, None))
            se_scale = float(se[2])
            std_errors = ParameterTriple(
                asymptote=float(se[0]),
                inflection=float(se[1]),
                # delta method for rate = 1 / scale
                rate=float(se_scale / scale ** 2),
            )

        intervals = None
        if confidence is not None and std_errors is not None:
            intervals = wald_intervals(
                asymptote=asymptote,
                inflection=inflection,
                scale=scale,
                se_asymptote=std_errors.asymptote,
                se_inflection=std_errors.inflection,
                se_scale=se_scale,
                dof=n - N_PARAMS,
                level=confidence,
            )

        return Fitted(
            individual_id=individual_id,
            group=group,
            asymptote=asymptote,
            inflection=inflection,
            rate=1.0 / scale,
            scale=scale,
            standard_errors=std_errors,
            confidence_intervals=intervals,
            n_points=n,
            rss=rss_of(x, y, asymptote, inflection, scale),
            n_evaluations=int(info.get("nfev", 0)) if isinstance(info, dict) else None,
        )

    def check_plausible(self, x: np.ndarray, y: np.ndarray, asymptote: float, inflection: float, scale: float) -> None:
        """Reject converged fits that do not describe increasing, bounded growth."""
        if scale <= 0:
            raise DegenerateDataError(f"implausible fit: negative growth rate (scale={scale:.4g})")
        if asymptote <= 0:
            raise DegenerateDataError(f"implausible fit: non-positive asymptote ({asymptote:.4g})")
        x_min, x_max = float(np.min(x)), float(np.max(x))
        rise = float(logistic(x_max, asymptote, inflection, scale) - logistic(x_min, asymptote, inflection, scale))
        if rise < self.min_rise_fraction * float(np.ptp(y)):
            raise DegenerateDataError(
                f"implausible fit: curve rises {rise:.4g} over the observed days, "
                f"less than {self.min_rise_fraction:g} of the observed range"
            )

    @staticmethod
    def predict(fit: Fitted, x) -> np.ndarray:
        return logistic(x, fit.asymptote, fit.inflection, fit.scale)


def wald_intervals(
    *,
    asymptote: float,
    inflection: float,
    scale: float,
    se_asymptote: float,
    se_inflection: float,
    se_scale: float,
    dof: int,
    level: float = 0.95,
) -> Optional[ConfidenceIntervals]:
    """
    Wald intervals est +/- t * se from the asymptotic covariance.
    The rate interval is the scale interval mapped through 1 / scale.
    """
    if dof < 1:
        return None
    q = float(stats.t.ppf(0.5 + level / 2.0, dof))

    def _iv(est: float, se: float) -> Interval:
        return Interval(low=est - q * se, high=est + q * se)

    scale_iv = _iv(scale, se_scale)
    rate_low = 1.0 / scale_iv.high if scale_iv.high > 0 else 0.0
    rate_high = 1.0 / scale_iv.low if scale_iv.low > 0 else float("inf")

    return ConfidenceIntervals(
        asymptote=_iv(asymptote, se_asymptote),
        inflection=_iv(inflection, se_inflection),
        rate=Interval(low=rate_low, high=rate_high),
        level=level,
    )
