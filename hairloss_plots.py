"""Diagnostic figures: trace, per-chain density, autocorrelation, PPC."""

from pathlib import Path

import arviz as az
import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt  # noqa: E402
import numpy as np  # noqa: E402
from scipy.stats import gaussian_kde  # noqa: E402

OUT = Path("output")
VARS = ["Intercept", "beta"]


def _save(fig, path):
    path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(path, dpi=110, bbox_inches="tight")
    plt.close(fig)
    return path


def chain_draws(fitted):
    """{coefficient: array(chain, draw)}."""
    post = fitted.idata.posterior
    out = {"(Intercept)": post["Intercept"].values}
    beta = post["beta"].values
    for j, t in enumerate(fitted.terms):
        out[t] = beta[:, :, j]
    return out


def trace_figure(fitted):
    """Trace and marginal density for every coefficient, chains apart."""
    with az.rc_context({"plot.max_subplots": None}):
        axes = az.plot_trace(fitted.idata, var_names=VARS, compact=False,
                             figsize=(11, 2.2 * len(fitted.coefficients)))
    fig = np.asarray(axes).ravel()[0].figure
    fig.suptitle(f"{fitted.name}: trace", y=1.0)
    return fig


def plot_trace(fitted, out_dir=OUT):
    return _save(trace_figure(fitted),
                 Path(out_dir) / f"{fitted.name}_trace.png")


def plot_density_overlay(fitted, out_dir=OUT):
    """KDE of each coefficient, one line per chain."""
    draws = chain_draws(fitted)
    n = len(draws)
    ncol = min(3, n)
    nrow = int(np.ceil(n / ncol))
    fig, axes = plt.subplots(nrow, ncol, figsize=(4 * ncol, 2.6 * nrow),
                             squeeze=False)
    for ax, (name, d) in zip(axes.ravel(), draws.items()):
        lo, hi = d.min(), d.max()
        x = np.linspace(lo, hi, 200) if hi > lo else np.array([lo])
        for c in range(d.shape[0]):
            if np.ptp(d[c]) > 0:
                ax.plot(x, gaussian_kde(d[c])(x), lw=1,
                        label=f"chain {c}")
        ax.set_title(name, fontsize=9)
        ax.set_yticks([])
    for ax in axes.ravel()[n:]:
        ax.set_visible(False)
    axes[0, 0].legend(fontsize=7)
    fig.suptitle(f"{fitted.name}: density by chain")
    fig.tight_layout()
    return _save(fig, Path(out_dir) / f"{fitted.name}_dens_overlay.png")


def autocorr_figure(fitted, max_lag=50):
    """One panel per coefficient and chain."""
    with az.rc_context({"plot.max_subplots": None}):
        axes = az.plot_autocorr(fitted.idata, var_names=VARS,
                                combined=False, max_lag=max_lag)
    fig = np.asarray(axes).ravel()[0].figure
    fig.suptitle(f"{fitted.name}: autocorrelation")
    return fig


def plot_autocorr(fitted, out_dir=OUT, max_lag=50):
    return _save(autocorr_figure(fitted, max_lag),
                 Path(out_dir) / f"{fitted.name}_autocorr.png")


def plot_diagnostics(fitted, out_dir=OUT):
    """Trace, density overlay and autocorrelation PNGs for one fit."""
    return [plot_trace(fitted, out_dir),
            plot_density_overlay(fitted, out_dir),
            plot_autocorr(fitted, out_dir)]


def plot_ppc(ppc, name, out_dir=OUT, label="proportion with hair loss"):
    fig, ax = plt.subplots(figsize=(6, 3.5))
    ax.hist(ppc.simulated, bins=20, color="steelblue", alpha=0.7,
            label="simulated")
    ax.axvline(ppc.observed, color="darkorange", lw=2,
               label=f"observed ({ppc.observed:.3f})")
    ax.set_xlabel(label)
    ax.set_title(f"{name}: posterior predictive check "
                 f"(p={ppc.p_value:.2f})")
    ax.legend()
    return _save(fig, Path(out_dir) / f"{name}_ppc.png")
