# src/growthparams/fitting/curve_fitter.py
from __future__ import annotations
import logging
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from joblib import Parallel, delayed

from .errors import ConvergenceError, DegenerateDataError, SchemaError
from .logistic_model import LogisticModel, MIN_POINTS
from .parameter_table import ParameterTable
from .types import Failed, Fitted, IndividualSeries, LogisticFitResult, ParameterRecord, MAX_GROUPS


def fit_series(
    model: LogisticModel,
    series: IndividualSeries,
    confidence: Optional[float] = 0.95,
) -> LogisticFitResult:
    """Fit one individual. Per-individual problems come back as Failed, never raised."""
    x, y = series.valid_pairs()
    if len(x) < MIN_POINTS:
        # never reaches the optimizer
        return Failed(
            individual_id=series.individual_id,
            group=series.group,
            reason=DegenerateDataError.__name__,
            detail=f"{len(x)} valid points of {len(series.observations)}; at least {MIN_POINTS} are needed",
        )
    try:
        return model.fit(
            x, y,
            individual_id=series.individual_id,
            group=series.group,
            confidence=confidence,
        )
    except (DegenerateDataError, ConvergenceError) as e:
        return Failed(
            individual_id=series.individual_id,
            group=series.group,
            reason=type(e).__name__,
            detail=str(e),
        )


def validate_series(
    series: Iterable[IndividualSeries],
    known_groups: Optional[Sequence[str]] = None,
) -> List[IndividualSeries]:
    """Structural checks for the whole batch; any problem raises SchemaError."""
    out: List[IndividualSeries] = []
    seen = set()
    for s in series:
        if not isinstance(s, IndividualSeries):
            raise SchemaError(f"Expected IndividualSeries, got {type(s).__name__}")
        if s.individual_id is None or str(s.individual_id).strip() == "":
            raise SchemaError("Series without an individual_id")
        if s.group is None or str(s.group).strip() == "":
            raise SchemaError(f"Individual {s.individual_id!r} has no group label")
        if known_groups is not None and s.group not in known_groups:
            raise SchemaError(
                f"Individual {s.individual_id!r} has group {s.group!r}; expected one of {list(known_groups)}"
            )
        if s.individual_id in seen:
            raise SchemaError(f"Duplicate series for individual {s.individual_id!r}")
        for o in s.observations:
            if o.individual_id != s.individual_id or o.group != s.group:
                raise SchemaError(f"Observation does not belong to individual {s.individual_id!r}")
            o.check_day_offset()
        seen.add(s.individual_id)
        out.append(s)

    groups = sorted({s.group for s in out})
    if len(groups) > MAX_GROUPS:
        raise SchemaError(f"Expected at most {MAX_GROUPS} groups, found {len(groups)}: {groups}")
    return out


def aggregate_results(
    results: Dict[str, LogisticFitResult],
    groups: Optional[Sequence[str]] = None,
) -> Tuple[ParameterTable, List[Failed]]:
    """Split a result mapping into a frozen ParameterTable and the failure list."""
    table = ParameterTable(groups=groups)
    failures: List[Failed] = []
    for iid in sorted(results, key=str):
        res = results[iid]
        if isinstance(res, Fitted):
            table.add(ParameterRecord.from_fitted(res))
        else:
            failures.append(res)
    return table.freeze(), failures


class CurveFitter:
    """
    Fits the logistic model to every individual and isolates failures.

    n_jobs != 1 runs the fits on a joblib worker pool; results are merged after
    all workers finish, in individual_id order.
    """

    def __init__(
        self,
        model: Optional[LogisticModel] = None,
        *,
        known_groups: Optional[Sequence[str]] = None,
        n_jobs: int = 1,
        confidence: Optional[float] = 0.95,
    ):
        self.model = model if model is not None else LogisticModel()
        self.known_groups = tuple(known_groups) if known_groups is not None else None
        self.n_jobs = n_jobs
        self.confidence = confidence

    def fit_one(self, series: IndividualSeries) -> LogisticFitResult:
        return fit_series(self.model, series, self.confidence)

    def fit_results(self, series: Iterable[IndividualSeries]) -> Dict[str, LogisticFitResult]:
        batch = validate_series(series, self.known_groups)
        batch = sorted(batch, key=lambda s: str(s.individual_id))

        if self.n_jobs == 1 or len(batch) <= 1:
            fitted = [self.fit_one(s) for s in batch]
        else:
            fitted = Parallel(n_jobs=self.n_jobs)(
                delayed(fit_series)(self.model, s, self.confidence) for s in batch
            )

        results: Dict[str, LogisticFitResult] = {}
        for s, res in zip(batch, fitted):
            results[s.individual_id] = res
            if isinstance(res, Failed):
                logging.warning(f"Excluded {res.individual_id} ({res.group}): {res.reason}: {res.detail}")
        n_failed = sum(1 for r in results.values() if isinstance(r, Failed))
        logging.info(f"Fitted {len(results) - n_failed} of {len(results)} individuals; {n_failed} excluded")
        return results

    def fit_all(self, series: Iterable[IndividualSeries]) -> Tuple[ParameterTable, List[Failed]]:
        results = self.fit_results(series)
        return aggregate_results(results, self.known_groups)
