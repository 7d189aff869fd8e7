from __future__ import annotations

import zipfile

import numpy as np
import pandas as pd

from growthparams.export import export_results, failures_frame, fit_details_frame
from growthparams.fitting.curve_fitter import CurveFitter
from growthparams.fitting.types import IndividualSeries, Observation
from growthparams.viz.figures import plot_fit_overlays, plot_size_scatter
from growthparams.viz.payloads import build_overlay_payloads
from growthparams.io.long_format import observations_frame


def _batch():
    good = IndividualSeries.from_observations(
        Observation("plant_a", "A", float(d), s)
        for d, s in [(5, 100.0), (10, 2000.0), (15, 8000.0), (20, 9500.0), (25, 9800.0)]
    )
    sparse = IndividualSeries.from_observations(
        Observation("plant_b", "B", float(d), s) for d, s in [(5, 120.0), (10, None), (15, 1500.0)]
    )
    return [good, sparse]


def test_overlay_payloads_span_observed_days():
    batch = _batch()
    results = CurveFitter().fit_results(batch)
    payloads = build_overlay_payloads(batch, results, n_grid=50)

    a = payloads["plant_a"]
    assert a["fit"]["ran"] is True
    assert len(a["fit"]["x_grid"]) == 50
    assert a["fit"]["x_grid"][0] == 5.0 and a["fit"]["x_grid"][-1] == 25.0
    assert np.all(np.diff(a["fit"]["y_hat"]) > 0)
    assert set(a["fit"]["params"]) == {"asymptote", "inflection", "rate"}

    b = payloads["plant_b"]
    assert b["fit"]["ran"] is False
    assert b["fit"]["reason"] == "DegenerateDataError"
    np.testing.assert_array_equal(b["x"], [5.0, 15.0])


def test_figures_render(tmp_path):
    batch = _batch()
    results = CurveFitter().fit_results(batch)
    fig = plot_fit_overlays(build_overlay_payloads(batch, results), save_path=tmp_path / "overlay.png")
    assert (tmp_path / "overlay.png").exists()
    fig2 = plot_size_scatter(observations_frame(batch), save_path=tmp_path / "scatter.png")
    assert (tmp_path / "scatter.png").exists()
    assert fig is not fig2


def test_export_writes_csvs_and_zip(tmp_path):
    batch = _batch()
    fitter = CurveFitter()
    results = fitter.fit_results(batch)
    table, failures = fitter.fit_all(batch)

    paths = export_results(
        parameters=table.to_frame(),
        failures=failures_frame(failures),
        anova=pd.DataFrame(),
        details=fit_details_frame(results),
        out_dir=tmp_path / "out",
    )
    assert pd.read_csv(paths["parameters_path"])["individual_id"].tolist() == ["plant_a"]
    fails = pd.read_csv(paths["failures_path"])
    assert fails.loc[0, "individual_id"] == "plant_b"
    assert fails.loc[0, "reason"] == "DegenerateDataError"
    assert "anova_path" not in paths

    details = pd.read_csv(paths["fit_details_path"]).set_index("individual_id")
    assert details.loc["plant_a", "status"] == "fitted"
    assert details.loc["plant_a", "ci.asymptote.lo"] < details.loc["plant_a", "asymptote"]
    assert details.loc["plant_b", "status"] == "failed"

    with zipfile.ZipFile(paths["zip_path"]) as zf:
        assert set(zf.namelist()) == {"parameters.csv", "failures.csv", "fit_details.csv"}


def test_importing_figures_keeps_the_callers_backend():
    import importlib

    import matplotlib
    import growthparams.viz.figures as figures

    before = matplotlib.get_backend()
    matplotlib.use("pdf")
    try:
        importlib.reload(figures)
        assert matplotlib.get_backend().lower() == "pdf"
    finally:
        matplotlib.use(before)
