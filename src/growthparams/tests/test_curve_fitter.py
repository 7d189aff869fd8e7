from __future__ import annotations

import random

import numpy as np
import pytest

from growthparams.fitting.curve_fitter import CurveFitter
from growthparams.fitting.errors import SchemaError
from growthparams.fitting.logistic_model import LogisticModel, logistic
from growthparams.fitting.types import Failed, Fitted, IndividualSeries, Observation


def _series(iid: str, group: str, points) -> IndividualSeries:
    return IndividualSeries.from_observations(
        Observation(individual_id=iid, group=group, day_offset=float(d), size=s) for d, s in points
    )


def _logistic_series(iid: str, group: str, asym: float, infl: float, scale: float, seed: int) -> IndividualSeries:
    rng = np.random.default_rng(seed)
    days = np.arange(4.0, 44.0, 3.0)
    y = logistic(days, asym, infl, scale) * rng.normal(1.0, 0.02, size=len(days))
    return _series(iid, group, zip(days, y))


class RecordingModel(LogisticModel):
    def __init__(self):
        super().__init__()
        self.calls = []

    def fit(self, x, y, **kwargs):
        self.calls.append(kwargs.get("individual_id"))
        return super().fit(x, y, **kwargs)


A_POINTS = [(5, 100.0), (10, 2000.0), (15, 8000.0), (20, 9500.0), (25, 9800.0)]


def test_scenario_one_good_one_sparse():
    a = _series("plant_a", "A", A_POINTS)
    b = _series("plant_b", "B", [(5, 120.0), (10, 1500.0)])
    table, failures = CurveFitter(known_groups=("A", "B")).fit_all({a, b})

    assert len(table) == 1
    rec = table.rows()[0]
    assert rec.individual_id == "plant_a"
    assert rec.group == "A"
    assert rec.asymptote > 0
    assert len(failures) == 1
    assert failures[0].individual_id == "plant_b"
    assert failures[0].reason == "DegenerateDataError"


def test_mostly_missing_series_never_reaches_optimizer():
    model = RecordingModel()
    s = _series("p1", "A", [(5, None), (10, 2000.0), (15, np.nan), (20, 9500.0), (25, -1.0)])
    res = CurveFitter(model).fit_one(s)
    assert isinstance(res, Failed)
    assert res.reason == "DegenerateDataError"
    assert model.calls == []


def test_row_count_is_individuals_minus_failures():
    batch = [
        _logistic_series(f"g{i}", "A" if i % 2 else "B", 8000.0 + 300 * i, 20.0 + i * 0.3, 3.5, seed=i)
        for i in range(6)
    ]
    batch.append(_series("short", "A", [(1, 10.0), (2, 20.0), (3, 30.0)]))
    batch.append(_series("flat", "B", [(d, 400.0) for d in range(0, 30, 5)]))
    batch.append(_series("shrink", "B", [(5, 9800.0), (10, 9500.0), (15, 8000.0), (20, 2000.0), (25, 500.0), (30, 100.0)]))

    table, failures = CurveFitter().fit_all(batch)
    assert {f.individual_id for f in failures} == {"short", "flat", "shrink"}
    assert len(table) == len(batch) - len(failures)
    assert {f.reason for f in failures} <= {"DegenerateDataError", "ConvergenceError"}


def test_fit_all_is_order_independent():
    batch = [_logistic_series(f"p{i}", "A" if i < 4 else "B", 6000.0 + 500 * i, 18.0 + i, 4.0, seed=10 + i)
             for i in range(8)]
    shuffled = list(batch)
    random.Random(7).shuffle(shuffled)

    t1, f1 = CurveFitter().fit_all(batch)
    t2, f2 = CurveFitter().fit_all(shuffled)
    assert set(t1.rows()) == set(t2.rows())
    assert f1 == f2


def test_parallel_matches_sequential():
    batch = [_logistic_series(f"p{i}", "A" if i < 3 else "B", 7000.0, 20.0 + i, 4.0, seed=20 + i)
             for i in range(6)]
    seq, _ = CurveFitter(n_jobs=1).fit_all(batch)
    par, _ = CurveFitter(n_jobs=2).fit_all(batch)
    assert seq.rows() == par.rows()


def test_fit_results_maps_every_individual():
    a = _series("plant_a", "A", A_POINTS)
    b = _series("plant_b", "B", [(5, 120.0)])
    results = CurveFitter().fit_results([a, b])
    assert set(results) == {"plant_a", "plant_b"}
    assert isinstance(results["plant_a"], Fitted)
    assert isinstance(results["plant_b"], Failed)


def test_failures_are_logged(caplog):
    b = _series("plant_b", "B", [(5, 120.0), (10, 1500.0)])
    with caplog.at_level("WARNING"):
        CurveFitter().fit_all([b])
    assert "plant_b" in caplog.text
    assert "DegenerateDataError" in caplog.text


def test_unknown_group_aborts_batch():
    a = _series("plant_a", "A", A_POINTS)
    c = _series("plant_c", "C", A_POINTS)
    with pytest.raises(SchemaError):
        CurveFitter(known_groups=("A", "B")).fit_all([a, c])


def test_missing_individual_id_aborts_batch():
    bad = IndividualSeries(individual_id="", group="A", observations=())
    with pytest.raises(SchemaError):
        CurveFitter().fit_all([bad])


def test_duplicate_individual_aborts_batch():
    a1 = _series("plant_a", "A", A_POINTS)
    a2 = _series("plant_a", "A", A_POINTS[:4])
    with pytest.raises(SchemaError):
        CurveFitter().fit_all([a1, a2])


def test_table_is_read_only_after_fit():
    table, _ = CurveFitter().fit_all([_series("plant_a", "A", A_POINTS)])
    assert table.frozen
    with pytest.raises(RuntimeError):
        table.add(table.rows()[0])


def test_missing_day_offset_is_schema_error_when_grouping():
    obs = [Observation("p1", "A", 5.0, 100.0), Observation("p1", "A", None, 2000.0)]
    with pytest.raises(SchemaError, match="day_offset"):
        IndividualSeries.from_observations(obs)


@pytest.mark.parametrize("bad_day", [None, float("nan"), float("inf"), -50.0])
def test_bad_day_offset_aborts_batch(bad_day):
    points = [(5.0, 100.0), (10.0, 2000.0), (15.0, 8000.0), (20.0, 9500.0), (25.0, 9800.0)]
    obs = [Observation("plant_a", "A", d, s) for d, s in points]
    obs.append(Observation("plant_a", "A", bad_day, 9900.0))
    s = IndividualSeries(individual_id="plant_a", group="A", observations=tuple(obs))
    with pytest.raises(SchemaError, match="day_offset"):
        CurveFitter().fit_all([s])


@pytest.mark.parametrize("bad_day", [float("nan"), -1.0])
def test_bad_day_offset_rejected_by_from_observations(bad_day):
    obs = [Observation("p1", "A", 5.0, 100.0), Observation("p1", "A", bad_day, 2000.0)]
    with pytest.raises(SchemaError):
        IndividualSeries.from_observations(obs)


def test_more_than_two_groups_abort_batch_without_known_groups():
    batch = [_series(f"plant_{g}", g, A_POINTS) for g in ("A", "B", "C")]
    with pytest.raises(SchemaError, match="groups"):
        CurveFitter().fit_all(batch)
