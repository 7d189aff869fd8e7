# src/growthparams/fitting/types.py
from __future__ import annotations
from dataclasses import dataclass
from typing import Optional, Tuple, Union, Iterable, List
import math

import numpy as np

from .errors import SchemaError

MAX_GROUPS = 2


@dataclass(frozen=True)
class Observation:
    individual_id: str
    group: str
    day_offset: float
    size: Optional[float] = None   # None / NaN / negative -> missing

    def check_day_offset(self) -> None:
        """day_offset is required, finite and non-negative."""
        d = self.day_offset
        if d is None or not isinstance(d, (int, float, np.integer, np.floating)):
            raise SchemaError(f"Observation of {self.individual_id!r} has no numeric day_offset: {d!r}")
        if not math.isfinite(float(d)) or float(d) < 0:
            raise SchemaError(f"Observation of {self.individual_id!r} has invalid day_offset {d!r}")

    @property
    def has_size(self) -> bool:
        if self.size is None:
            return False
        s = float(self.size)
        return math.isfinite(s) and s >= 0.0


@dataclass(frozen=True)
class IndividualSeries:
    individual_id: str
    group: str
    observations: Tuple[Observation, ...] = ()

    @classmethod
    def from_observations(cls, observations: Iterable[Observation]) -> "IndividualSeries":
        obs = list(observations)
        for o in obs:
            o.check_day_offset()
        obs.sort(key=lambda o: o.day_offset)
        if not obs:
            raise SchemaError("Cannot build a series from zero observations")
        ids = {o.individual_id for o in obs}
        if len(ids) != 1:
            raise SchemaError(f"Observations span several individuals: {sorted(ids)}")
        groups = {o.group for o in obs}
        if len(groups) != 1:
            raise SchemaError(
                f"Individual {obs[0].individual_id!r} has conflicting group labels: {sorted(groups)}"
            )
        return cls(individual_id=obs[0].individual_id, group=obs[0].group, observations=tuple(obs))

    def valid_pairs(self) -> Tuple[np.ndarray, np.ndarray]:
        """(day_offset, size) arrays with missing sizes dropped."""
        kept = [o for o in self.observations if o.has_size]
        x = np.array([o.day_offset for o in kept], dtype=float)
        y = np.array([o.size for o in kept], dtype=float)
        return x, y

    @property
    def n_valid(self) -> int:
        return sum(1 for o in self.observations if o.has_size)


@dataclass(frozen=True)
class ParameterTriple:
    asymptote: float
    inflection: float
    rate: float


@dataclass(frozen=True)
class Interval:
    low: float
    high: float


@dataclass(frozen=True)
class ConfidenceIntervals:
    asymptote: Interval
    inflection: Interval
    rate: Interval
    level: float = 0.95


@dataclass(frozen=True)
class Fitted:
    individual_id: str
    group: str
    asymptote: float
    inflection: float
    rate: float
    scale: float

    standard_errors: Optional[ParameterTriple] = None
    confidence_intervals: Optional[ConfidenceIntervals] = None

    # fit quality
    n_points: int = 0
    rss: float = float("nan")
    n_evaluations: Optional[int] = None


@dataclass(frozen=True)
class Failed:
    individual_id: str
    group: str
    reason: str          # error kind, e.g. "DegenerateDataError"
    detail: str = ""


LogisticFitResult = Union[Fitted, Failed]


@dataclass(frozen=True)
class ParameterRecord:
    individual_id: str
    group: str
    asymptote: float
    inflection: float
    rate: float

    @classmethod
    def from_fitted(cls, fit: Fitted) -> "ParameterRecord":
        return cls(
            individual_id=fit.individual_id,
            group=fit.group,
            asymptote=fit.asymptote,
            inflection=fit.inflection,
            rate=fit.rate,
        )


PARAMETER_NAMES: List[str] = ["asymptote", "inflection", "rate"]
