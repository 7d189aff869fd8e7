# src/growthparams/fitting/parameter_table.py
from __future__ import annotations
from typing import Iterable, Iterator, List, Optional, Sequence, Tuple

import pandas as pd

from .errors import SchemaError
from .types import ParameterRecord, PARAMETER_NAMES

TABLE_COLUMNS = ["individual_id", "group"] + PARAMETER_NAMES


class ParameterTable:
    """
    Append-only accumulator of per-individual fitted parameters.

    Filled during the fit pass, then frozen; downstream code only reads it.
    Row order is insertion order and carries no meaning.
    """

    def __init__(self, groups: Optional[Sequence[str]] = None, records: Iterable[ParameterRecord] = ()):
        self._groups: Optional[Tuple[str, ...]] = tuple(groups) if groups is not None else None
        self._rows: List[ParameterRecord] = []
        self._ids: set = set()
        self._frozen = False
        for rec in records:
            self.add(rec)

    def add(self, record: ParameterRecord) -> None:
        if self._frozen:
            raise RuntimeError("ParameterTable is read-only after the fit pass")
        if self._groups is not None and record.group not in self._groups:
            raise SchemaError(f"Unknown group {record.group!r}; expected one of {list(self._groups)}")
        if record.individual_id in self._ids:
            raise SchemaError(f"Duplicate record for individual {record.individual_id!r}")
        self._ids.add(record.individual_id)
        self._rows.append(record)

    def freeze(self) -> "ParameterTable":
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def rows(self) -> Tuple[ParameterRecord, ...]:
        return tuple(self._rows)

    def by_group(self, group: str) -> Tuple[ParameterRecord, ...]:
        return tuple(r for r in self._rows if r.group == group)

    def groups(self) -> Tuple[str, ...]:
        if self._groups is not None:
            return self._groups
        return tuple(sorted({r.group for r in self._rows}))

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            [
                {
                    "individual_id": r.individual_id,
                    "group": r.group,
                    "asymptote": r.asymptote,
                    "inflection": r.inflection,
                    "rate": r.rate,
                }
                for r in self._rows
            ],
            columns=TABLE_COLUMNS,
        )

    def __len__(self) -> int:
        return len(self._rows)

    def __iter__(self) -> Iterator[ParameterRecord]:
        return iter(self._rows)

    def __contains__(self, individual_id: object) -> bool:
        return individual_id in self._ids

    def __repr__(self) -> str:
        return f"ParameterTable(n_rows={len(self._rows)}, groups={list(self.groups())})"
