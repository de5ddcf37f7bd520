# fpstudy/make_plots.py
# Plots for the study, built from the pandas summary (summarize.py):
#   - relative error vs precision, one figure per algo, one line per
#     (size, accumulation policy)
#   - iterations used by the iterative kernels per precision

import os
import sys

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np

from .formats import all_precisions
from .summarize import summarize_runs

RESULTS_DIR = "results"
PLOTS_DIR   = "plots"

PREC_ORDER = [p.value for p in all_precisions()]


def _ensure_plots_dir(plots_dir):
    os.makedirs(plots_dir, exist_ok=True)


def plot_error_by_precision(summary, plots_dir=PLOTS_DIR):
    """
    Log-scale relative error across the precision ladder (fp64 -> p3109_8).
    Zero errors (fp64 vs itself) are drawn at a floor of 1e-18 so the log
    axis stays finite.
    """
    _ensure_plots_dir(plots_dir)
    written = []
    for algo, rows in summary.groupby("algo"):
        plt.figure(figsize=(9, 5.5))
        lines_seen = 0
        for (size, acc, kahan), series in rows.groupby(["size", "accumulation", "kahan"]):
            series = series.set_index("precision").reindex(PREC_ORDER).dropna(subset=["rel_error"])
            if series.empty:
                continue
            y = np.maximum(series["rel_error"].to_numpy(dtype=float), 1e-18)
            label = f"n={size} {acc}{'+kahan' if kahan else ''}"
            plt.plot(series.index, y, marker="o", label=label)
            lines_seen += 1

        plt.yscale("log")
        plt.xlabel("Precision")
        plt.ylabel("Relative error  ||x - x*|| / ||x*||")
        plt.title(f"{algo}: accuracy vs precision")
        if lines_seen:
            plt.legend(ncol=2, fontsize=8)
        plt.tight_layout()
        out = os.path.join(plots_dir, f"{algo}_error.png")
        plt.savefig(out, dpi=200)
        plt.close()
        print(f"[plot_error_by_precision] Wrote {out}")
        written.append(out)
    return written


def plot_iterations(summary, plots_dir=PLOTS_DIR):
    """Bar chart of mean iterations for gd_quadratic / newton."""
    rows = summary[summary.algo.isin(["gd_quadratic", "newton"])]
    if rows.empty:
        print("[plot_iterations] No iterative runs, skipping.")
        return []

    _ensure_plots_dir(plots_dir)
    written = []
    for algo, sub in rows.groupby("algo"):
        sub = sub.groupby("precision")["mean_iters"].mean().reindex(PREC_ORDER).dropna()
        plt.figure(figsize=(7, 4.5))
        plt.bar(sub.index, sub.to_numpy())
        plt.ylabel("Mean iterations")
        plt.title(f"{algo}: iterations by precision")
        plt.tight_layout()
        out = os.path.join(plots_dir, f"{algo}_iters.png")
        plt.savefig(out, dpi=200)
        plt.close()
        print(f"[plot_iterations] Wrote {out}")
        written.append(out)
    return written


def main(path=os.path.join(RESULTS_DIR, "runs.csv"), plots_dir=PLOTS_DIR):
    if not os.path.exists(path) or os.path.getsize(path) == 0:
        print(f"[make_plots] No data at {path}, skipping.")
        return []
    summary = summarize_runs(path)
    return plot_error_by_precision(summary, plots_dir) + plot_iterations(summary, plots_dir)


if __name__ == "__main__":
    main(*sys.argv[1:2])
