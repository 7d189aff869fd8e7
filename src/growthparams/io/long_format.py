# src/growthparams/io/long_format.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

import numpy as np
import pandas as pd

from growthparams.fitting.errors import SchemaError
from growthparams.fitting.types import IndividualSeries, Observation, MAX_GROUPS


@dataclass(frozen=True)
class ColumnMap:
    """Input column names. If day_offset is set, dates are not needed."""
    individual_id: str = "plant_id"
    group: str = "genotype"
    planting_date: str = "planting_date"
    date: str = "date"
    size: str = "TopPlantSurface"
    day_offset: Optional[str] = None
    date_format: Optional[str] = None

    def required(self) -> List[str]:
        cols = [self.individual_id, self.group, self.size]
        if self.day_offset is not None:
            cols.append(self.day_offset)
        else:
            cols.extend([self.planting_date, self.date])
        return cols


def read_table(path: Union[str, Path]) -> pd.DataFrame:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(str(path))
    if path.suffix.lower() in (".xlsx", ".xls"):
        return pd.read_excel(path)
    return pd.read_csv(path)


def _blank(s: pd.Series) -> pd.Series:
    return s.isna() | (s.astype(str).str.strip() == "")


def _row_list(mask: pd.Series, limit: int = 10) -> str:
    idx = mask[mask].index.tolist()
    more = "" if len(idx) <= limit else f" (+{len(idx) - limit} more)"
    return f"{idx[:limit]}{more}"


def compute_day_offsets(df: pd.DataFrame, columns: ColumnMap) -> pd.Series:
    """Whole days between planting and observation date."""
    if columns.day_offset is not None:
        days = pd.to_numeric(df[columns.day_offset], errors="coerce")
        bad = days.isna()
        if bad.any():
            raise SchemaError(f"Missing or non-numeric {columns.day_offset!r} in rows {_row_list(bad)}")
    else:
        planted = pd.to_datetime(df[columns.planting_date], errors="coerce", format=columns.date_format)
        observed = pd.to_datetime(df[columns.date], errors="coerce", format=columns.date_format)
        bad = planted.isna() | observed.isna()
        if bad.any():
            raise SchemaError(
                f"Missing or unparseable {columns.planting_date!r}/{columns.date!r} in rows {_row_list(bad)}"
            )
        days = (observed.dt.normalize() - planted.dt.normalize()).dt.days.astype(float)

    neg = days < 0
    if neg.any():
        raise SchemaError(f"Observation before planting date in rows {_row_list(neg)}")
    return days.astype(float)


def to_observations(
    df: pd.DataFrame,
    columns: ColumnMap = ColumnMap(),
    max_groups: int = MAX_GROUPS,
) -> List[Observation]:
    """
    Select the needed columns and turn each row into an Observation.

    Rows with missing id, group, or dates raise SchemaError.
    Non-numeric or negative sizes become missing and are kept.
    """
    missing = [c for c in columns.required() if c not in df.columns]
    if missing:
        raise SchemaError(f"Missing required columns: {missing}")

    out = df[columns.required()].copy()

    for col in (columns.individual_id, columns.group):
        bad = _blank(out[col])
        if bad.any():
            raise SchemaError(f"Missing {col!r} in rows {_row_list(bad)}")

    days = compute_day_offsets(out, columns)

    size = pd.to_numeric(out[columns.size], errors="coerce")
    size = size.where(size >= 0)
    n_missing = int(size.isna().sum())
    if n_missing:
        logging.info(f"{n_missing} of {len(size)} size values are missing or invalid; they are excluded from fitting")

    groups = sorted(out[columns.group].astype(str).str.strip().unique().tolist())
    if len(groups) > max_groups:
        raise SchemaError(f"Expected at most {max_groups} groups, found {len(groups)}: {groups}")

    ids = out[columns.individual_id].astype(str).str.strip().to_numpy()
    grp = out[columns.group].astype(str).str.strip().to_numpy()
    d = days.to_numpy(dtype=float)
    y = size.to_numpy(dtype=float)

    return [
        Observation(
            individual_id=str(ids[i]),
            group=str(grp[i]),
            day_offset=float(d[i]),
            size=None if not np.isfinite(y[i]) else float(y[i]),
        )
        for i in range(len(out))
    ]


def build_series(observations: Sequence[Observation]) -> List[IndividualSeries]:
    """Group observations by individual_id; each series sorted by day_offset."""
    buckets: Dict[str, List[Observation]] = {}
    for o in observations:
        if o.individual_id is None or str(o.individual_id).strip() == "":
            raise SchemaError("Observation without an individual_id")
        buckets.setdefault(o.individual_id, []).append(o)
    return [IndividualSeries.from_observations(obs) for obs in buckets.values()]


def load_series(
    path: Union[str, Path],
    columns: ColumnMap = ColumnMap(),
) -> List[IndividualSeries]:
    df = read_table(path)
    series = build_series(to_observations(df, columns))
    logging.info(f"Loaded {path}: rows={len(df)} individuals={len(series)}")
    return series


def observations_frame(series: Sequence[IndividualSeries]) -> pd.DataFrame:
    """Long frame (individual_id, group, day_offset, size) for plotting."""
    rows = [
        {"individual_id": o.individual_id, "group": o.group, "day_offset": o.day_offset, "size": o.size}
        for s in series
        for o in s.observations
    ]
    return pd.DataFrame(rows, columns=["individual_id", "group", "day_offset", "size"])
