from __future__ import annotations

import pytest

from growthparams.fitting.errors import SchemaError
from growthparams.fitting.parameter_table import ParameterTable, TABLE_COLUMNS
from growthparams.fitting.types import ParameterRecord


def _rec(iid: str, group: str, asym: float = 1000.0) -> ParameterRecord:
    return ParameterRecord(individual_id=iid, group=group, asymptote=asym, inflection=20.0, rate=0.25)


def test_rows_keep_insertion_order():
    t = ParameterTable(groups=("WT", "mutant"))
    for r in [_rec("b", "WT"), _rec("a", "mutant"), _rec("c", "WT")]:
        t.add(r)
    assert [r.individual_id for r in t.rows()] == ["b", "a", "c"]
    assert len(t) == 3
    assert "a" in t


def test_by_group_splits_records():
    t = ParameterTable(records=[_rec("a", "WT"), _rec("b", "mutant"), _rec("c", "WT")])
    assert [r.individual_id for r in t.by_group("WT")] == ["a", "c"]
    assert [r.individual_id for r in t.by_group("mutant")] == ["b"]
    assert t.by_group("other") == ()
    assert t.groups() == ("WT", "mutant")


def test_unknown_group_rejected():
    t = ParameterTable(groups=("WT", "mutant"))
    with pytest.raises(SchemaError):
        t.add(_rec("a", "other"))


def test_duplicate_individual_rejected():
    t = ParameterTable()
    t.add(_rec("a", "WT"))
    with pytest.raises(SchemaError):
        t.add(_rec("a", "WT", asym=5.0))


def test_frozen_table_is_read_only():
    t = ParameterTable(records=[_rec("a", "WT")]).freeze()
    with pytest.raises(RuntimeError):
        t.add(_rec("b", "WT"))
    assert len(t.rows()) == 1


def test_to_frame_uses_named_columns():
    t = ParameterTable(records=[_rec("a", "WT", asym=1.5), _rec("b", "mutant", asym=2.5)])
    df = t.to_frame()
    assert list(df.columns) == TABLE_COLUMNS
    assert df.set_index("individual_id").loc["b", "asymptote"] == 2.5


def test_empty_table_frame_has_columns():
    df = ParameterTable().to_frame()
    assert df.empty
    assert list(df.columns) == TABLE_COLUMNS
