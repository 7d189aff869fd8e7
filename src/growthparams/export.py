# src/growthparams/export.py
from __future__ import annotations
import io
import zipfile
from pathlib import Path
from typing import Optional, Dict, Any, Mapping, Sequence

import numpy as np
import pandas as pd

from growthparams.fitting.types import Failed, Fitted, LogisticFitResult

FAILURE_COLUMNS = ["individual_id", "group", "reason", "detail"]
DETAIL_COLUMNS = [
    "individual_id", "group", "status", "reason",
    "asymptote", "inflection", "rate", "scale",
    "se.asymptote", "se.inflection", "se.rate",
    "ci.asymptote.lo", "ci.asymptote.up",
    "ci.inflection.lo", "ci.inflection.up",
    "ci.rate.lo", "ci.rate.up",
    "n.points", "rss",
]


def failures_frame(failures: Sequence[Failed]) -> pd.DataFrame:
    return pd.DataFrame(
        [{"individual_id": f.individual_id, "group": f.group, "reason": f.reason, "detail": f.detail} for f in failures],
        columns=FAILURE_COLUMNS,
    )


def fit_details_frame(results: Mapping[str, LogisticFitResult]) -> pd.DataFrame:
    """One row per individual, fitted or not, with standard errors and intervals."""
    rows = []
    for iid in sorted(results, key=str):
        res = results[iid]
        row = {c: np.nan for c in DETAIL_COLUMNS}
        row.update({"individual_id": res.individual_id, "group": res.group})
        if isinstance(res, Fitted):
            row.update({
                "status": "fitted",
                "reason": "",
                "asymptote": res.asymptote,
                "inflection": res.inflection,
                "rate": res.rate,
                "scale": res.scale,
                "n.points": res.n_points,
                "rss": res.rss,
            })
            if res.standard_errors is not None:
                row["se.asymptote"] = res.standard_errors.asymptote
                row["se.inflection"] = res.standard_errors.inflection
                row["se.rate"] = res.standard_errors.rate
            ci = res.confidence_intervals
            if ci is not None:
                for name in ("asymptote", "inflection", "rate"):
                    iv = getattr(ci, name)
                    row[f"ci.{name}.lo"] = iv.low
                    row[f"ci.{name}.up"] = iv.high
        else:
            row.update({"status": "failed", "reason": res.reason})
        rows.append(row)
    return pd.DataFrame(rows, columns=DETAIL_COLUMNS)


def export_results(
    *,
    parameters: pd.DataFrame,
    failures: pd.DataFrame,
    anova: Optional[pd.DataFrame],
    out_dir: Path,
    details: Optional[pd.DataFrame] = None,
    zip_name: str = "growth_parameters.zip",
) -> Dict[str, Any]:
    """
    Write the result CSVs and bundle them into a ZIP.
    Files written:
      - parameters.csv
      - failures.csv
      - fit_details.csv (optional)
      - anova.csv (optional)
      - <zip_name>
    """
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    paths: Dict[str, Path] = {}
    paths["parameters"] = out_dir / "parameters.csv"
    paths["failures"] = out_dir / "failures.csv"
    parameters.to_csv(paths["parameters"], index=False)
    failures.to_csv(paths["failures"], index=False)

    if details is not None:
        paths["fit_details"] = out_dir / "fit_details.csv"
        details.to_csv(paths["fit_details"], index=False)

    if anova is not None and not anova.empty:
        paths["anova"] = out_dir / "anova.csv"
        anova.to_csv(paths["anova"], index=False)

    zip_path = out_dir / zip_name
    bio = io.BytesIO()
    with zipfile.ZipFile(bio, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for p in paths.values():
            zf.write(p, arcname=p.name)
    zip_path.write_bytes(bio.getvalue())

    return {**{f"{k}_path": v for k, v in paths.items()}, "zip_path": zip_path}
