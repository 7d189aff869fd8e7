# src/growthparams/viz/figures.py
"""Static exploratory and fit-overlay figures."""
from __future__ import annotations

import math
from pathlib import Path
from typing import Dict, Mapping, Optional, Sequence, Union

import matplotlib.pyplot as plt
import pandas as pd

# colour-blind safe pair; group only changes styling
GROUP_COLORS = ["#0072B2", "#D55E00"]
GROUP_MARKERS = ["o", "s"]


def group_styles(groups: Sequence[str]) -> Dict[str, dict]:
    out = {}
    for i, g in enumerate(sorted(groups)):
        out[g] = {"color": GROUP_COLORS[i % len(GROUP_COLORS)], "marker": GROUP_MARKERS[i % len(GROUP_MARKERS)]}
    return out


def plot_size_scatter(
    obs: pd.DataFrame,
    save_path: Optional[Union[str, Path]] = None,
    size_label: str = "TopPlantSurface (px)",
) -> plt.Figure:
    """Size against days since planting, one colour per group."""
    fig, ax = plt.subplots(figsize=(8, 5))
    data = obs.dropna(subset=["size"])
    styles = group_styles(data["group"].astype(str).unique().tolist())
    for g, grp in data.groupby("group"):
        st = styles[str(g)]
        ax.scatter(grp["day_offset"], grp["size"], s=14, alpha=0.7,
                   color=st["color"], marker=st["marker"], label=str(g))
    ax.set_xlabel("Days since planting")
    ax.set_ylabel(size_label)
    ax.grid(True, alpha=0.3)
    ax.legend(title="Group")
    fig.tight_layout()
    if save_path is not None:
        fig.savefig(save_path, dpi=150)
    return fig


def plot_fit_overlays(
    payloads: Mapping[str, dict],
    save_path: Optional[Union[str, Path]] = None,
    ncols: int = 4,
) -> plt.Figure:
    """Grid of per-individual panels: observed points and fitted logistic curve."""
    ids = sorted(payloads, key=str)
    n = max(1, len(ids))
    ncols = max(1, min(ncols, n))
    nrows = int(math.ceil(n / ncols))
    fig, axes = plt.subplots(nrows, ncols, figsize=(3.2 * ncols, 2.6 * nrows), squeeze=False)
    styles = group_styles(list({str(p["group"]) for p in payloads.values()}))

    for ax in axes.flat[len(ids):]:
        ax.set_visible(False)

    for ax, iid in zip(axes.flat, ids):
        p = payloads[iid]
        st = styles[str(p["group"])]
        ax.scatter(p["x"], p["y"], s=12, color=st["color"], marker=st["marker"])
        fit = p["fit"]
        if fit["ran"]:
            ax.plot(fit["x_grid"], fit["y_hat"], color=st["color"], linewidth=1.5)
            ax.set_title(f"{iid} ({p['group']})", fontsize=9)
        else:
            ax.set_title(f"{iid} ({p['group']}) - {fit['reason'] or 'not fitted'}", fontsize=8, color="grey")
        ax.tick_params(labelsize=7)
        ax.grid(True, alpha=0.3)

    fig.supxlabel("Days since planting")
    fig.supylabel("Size")
    fig.tight_layout()
    if save_path is not None:
        fig.savefig(save_path, dpi=120)
    return fig
