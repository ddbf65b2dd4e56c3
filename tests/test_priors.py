"""Tests for hairloss_priors."""

import math

import numpy as np
import pandas as pd
import pytest

from hairloss_priors import coefficient_scales, intercept_prior, logit


def test_logit_values():
    assert logit(0.5) == pytest.approx(0.0)
    assert logit(0.16) == pytest.approx(math.log(0.16 / 0.84))
    assert logit(0.16) == pytest.approx(-1.658, abs=1e-3)


def test_logit_out_of_range():
    for p in (0.0, 1.0, -0.1, 1.5):
        with pytest.raises(ValueError):
            logit(p)


def test_intercept_prior_default():
    p = intercept_prior()
    assert p.mean == pytest.approx(-0.829, abs=2e-3)
    assert p.scale == pytest.approx(0.415, abs=1e-3)
    # rounds to the Normal(-0.83, 0.4) used in the write-up
    assert round(p.mean, 2) == -0.83
    assert round(p.scale, 1) == 0.4


def test_intercept_prior_two_sd_band():
    p = intercept_prior(0.16, 0.5)
    assert p.mean - 2 * p.scale == pytest.approx(float(logit(0.16)))
    assert p.mean + 2 * p.scale == pytest.approx(float(logit(0.5)))


def test_intercept_prior_bad_range():
    with pytest.raises(ValueError):
        intercept_prior(0.5, 0.2)


def test_coefficient_scales_autoscale():
    rng = np.random.default_rng(0)
    X = pd.DataFrame({
        "Age": rng.normal(35, 10, 500),
        "GeneticsYes": rng.integers(0, 2, 500).astype(float),
        "Coded": rng.choice([0.0, 4.0], 500),
        "Const": np.ones(500),
    })
    s = coefficient_scales(X, 2.5)
    assert s["Age"] == pytest.approx(2.5 / X["Age"].std())
    assert s["GeneticsYes"] == pytest.approx(2.5)
    assert s["Coded"] == pytest.approx(2.5 / 4)
    assert s["Const"] == pytest.approx(2.5)


def test_coefficient_scales_no_autoscale():
    X = pd.DataFrame({"Age": [20.0, 30.0, 60.0]})
    s = coefficient_scales(X, 2.5, autoscale=False)
    assert s["Age"] == 2.5
