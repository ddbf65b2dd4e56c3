"""Tests for figures, the analysis driver and the HTML report."""

import json
import warnings

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import pytest

from conftest import make_survey, write_raw_csv
from hairloss_analysis import main as run_analysis
from hairloss_analysis import parse_args
from hairloss_data import clean_survey
from hairloss_errors import ConvergenceWarning
from hairloss_eval import PPCResult
from hairloss_fit import MODELS, SamplerConfig, fit_model
from hairloss_plots import (autocorr_figure, chain_draws, plot_diagnostics,
                            plot_ppc, trace_figure)
from hairloss_report import build_report, coef_table, render


def test_chain_draws(fit4):
    d = chain_draws(fit4)
    assert list(d) == list(fit4.coefficients)
    for v in d.values():
        assert v.shape == (fit4.sampler.chains, fit4.sampler.draws)


def test_plot_diagnostics(fit4, tmp_path):
    paths = plot_diagnostics(fit4, tmp_path)
    names = sorted(p.name for p in paths)
    assert names == ["model4_autocorr.png", "model4_dens_overlay.png",
                     "model4_trace.png"]
    for p in paths:
        assert p.stat().st_size > 0


@pytest.fixture(scope="module")
def wide_fit():
    """model3 with ten levels per multi-valued factor (37 coefficients)."""
    df = make_survey(n=240, seed=21)
    rng = np.random.default_rng(21)
    for col in ("Medical.Conditions", "Medications.Treatments",
                "Nutritional.Deficiencies"):
        df[col] = [f"L{i}" for i in rng.integers(0, 10, len(df))]
    sampler = SamplerConfig(chains=2, draws=60, tune=60, seed=5, cores=1)
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", ConvergenceWarning)
        return fit_model(clean_survey(df), MODELS["model3"],
                         sampler=sampler)


def _panels(fig):
    n = sum(ax.has_data() for ax in fig.axes)
    plt.close(fig)
    return n


def test_trace_covers_every_coefficient(wide_fit):
    n_coef = len(wide_fit.coefficients)
    assert n_coef > 20
    assert _panels(trace_figure(wide_fit)) == 2 * n_coef


def test_autocorr_covers_every_chain(wide_fit):
    n_coef = len(wide_fit.coefficients)
    assert (_panels(autocorr_figure(wide_fit))
            == wide_fit.sampler.chains * n_coef)


def test_plot_ppc(tmp_path):
    r = PPCResult(0.5, np.random.default_rng(0).uniform(0.4, 0.6, 50),
                  0.5)
    p = plot_ppc(r, "m", tmp_path)
    assert p.exists()


def test_parse_args_defaults():
    a = parse_args([])
    assert a.models == ["model1", "model2", "model3", "model4"]
    assert a.chains == 4
    assert a.prob == pytest.approx(0.8)
    assert a.cutoff == pytest.approx(0.5)
    assert a.base_rate == pytest.approx([0.16, 0.5])


def test_parse_args_models_needs_a_value():
    with pytest.raises(SystemExit):
        parse_args(["--models"])
    assert parse_args(["--models", "model4"]).models == ["model4"]


@pytest.fixture(scope="module")
def run_dir(tmp_path_factory):
    d = tmp_path_factory.mktemp("run")
    raw = make_survey(n=120, seed=11, n_sentinel=6, dup_ids=(100_003,))
    fp = write_raw_csv(raw, d / "survey.csv")
    out = d / "out"
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", ConvergenceWarning)
        run_analysis([
            "--input", str(fp), "--out-dir", str(out),
            "--models", "model1", "model4",
            "--chains", "2", "--draws", "100", "--tune", "100",
            "--folds", "2", "--n-sims", "30", "--no-plots",
        ])
    return out


def test_driver_outputs(run_dir):
    for name in ("model1", "model4"):
        for stem in ("coefficients", "ppc", "confusion", "cv_folds"):
            assert (run_dir / f"{stem}_{name}.csv").exists(), stem
    comp = pd.read_csv(run_dir / "comparison.csv", index_col=0)
    assert set(comp.index) == {"model1", "model4"}
    assert comp["cv_accuracy"].between(0, 1).all()
    assert (run_dir / "loo_compare.csv").exists()


def test_driver_run_info(run_dir):
    with open(run_dir / "run.json") as f:
        info = json.load(f)
    raw = make_survey(n=120, seed=11, n_sentinel=6, dup_ids=(100_003,))
    assert info["n_rows"] == len(clean_survey(raw))
    assert info["n_rows"] <= 120 - 6
    assert info["intercept_prior"]["mean"] == pytest.approx(-0.829,
                                                            abs=2e-3)
    assert info["models"]["model4"] == (
        "Hair.Loss ~ Genetics + Weight.Loss + Medical.Conditions")


def test_coefficients_csv(run_dir):
    c = pd.read_csv(run_dir / "coefficients_model1.csv")
    assert c["term"].tolist() == ["(Intercept)", "Age", "GeneticsYes",
                                  "Hormonal.ChangesYes"]
    assert c["significant"].dtype == bool


def test_build_report(run_dir):
    html = build_report(run_dir)
    assert html.startswith("<!DOCTYPE html>")
    assert "model1" in html and "model4" in html
    assert "Model Comparison" in html
    assert "PSIS-LOO" in html
    assert "Normal(-0.829" in html


def test_coef_table_highlights_significant():
    c = pd.DataFrame({
        "term": ["(Intercept)", "GeneticsYes"],
        "estimate": [-0.8, 1.2], "lower": [-1.2, 0.5],
        "upper": [-0.4, 1.9], "odds_ratio": [0.45, 3.3],
        "or_lower": [0.3, 1.6], "or_upper": [0.67, 6.7],
        "r_hat": [1.0, 1.0], "significant": [True, True],
    })
    t = coef_table(c)
    assert t.count('class="sig"') == 2


def test_render_wraps_content():
    html = render(["<h2>X</h2>", "<h2>Y</h2>"], title="T")
    assert "<section><h2>X</h2></section>" in html
    assert html.count("<section>") == 2
    assert "<title>T</title>" in html
    assert "</html>" in html
