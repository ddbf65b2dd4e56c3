"""Synthetic survey data and shared fits."""

import sys
import warnings
from pathlib import Path

import numpy as np
import pandas as pd
import pytest
from scipy.special import expit

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))
from hairloss_data import clean_survey  # noqa: E402
from hairloss_errors import ConvergenceWarning  # noqa: E402
from hairloss_fit import MODELS, SamplerConfig, fit_model  # noqa: E402

# Headers as they appear in the published CSV, trailing spaces included
RAW_HEADERS = {
    "Id": "Id",
    "Genetics": "Genetics",
    "Hormonal.Changes": "Hormonal Changes",
    "Medical.Conditions": "Medical Conditions",
    "Medications.Treatments": "Medications & Treatments",
    "Nutritional.Deficiencies": "Nutritional Deficiencies ",
    "Stress": "Stress",
    "Age": "Age",
    "Poor.Hair.Care.Habits": "Poor Hair Care Habits ",
    "Environmental.Factors": "Environmental Factors",
    "Smoking": "Smoking",
    "Weight.Loss": "Weight Loss ",
    "Hair.Loss": "Hair Loss",
}
CONDITIONS = ["Alopecia Areata", "Dermatosis", "Psoriasis",
              "Thyroid Problems"]
MEDICATIONS = ["Antibiotics", "Rogaine", "Steroids"]
NUTRITION = ["Iron deficiency", "Vitamin D Deficiency",
             "Zinc Deficiency"]
FACTOR_COLS = [c for c in RAW_HEADERS
               if c not in ("Id", "Age", "Hair.Loss")]

TINY = SamplerConfig(chains=2, draws=150, tune=150, seed=7, cores=1)


def make_survey(n=120, seed=0, n_sentinel=0, dup_ids=()):
    """Raw survey frame (normalised names, strings and 0/1 outcome)."""
    rng = np.random.default_rng(seed)

    def yn():
        return rng.choice(["No", "Yes"], n)

    df = pd.DataFrame({
        "Id": np.arange(1, n + 1) + 100_000,
        "Genetics": yn(),
        "Hormonal.Changes": yn(),
        "Medical.Conditions": rng.choice(CONDITIONS, n),
        "Medications.Treatments": rng.choice(MEDICATIONS, n),
        "Nutritional.Deficiencies": rng.choice(NUTRITION, n),
        "Stress": rng.choice(["Low", "Moderate", "High"], n),
        "Age": rng.integers(18, 51, n),
        "Poor.Hair.Care.Habits": yn(),
        "Environmental.Factors": yn(),
        "Smoking": yn(),
        "Weight.Loss": yn(),
    })
    eta = (-0.8 + 1.5 * (df["Genetics"] == "Yes")
           + 0.03 * (df["Age"] - 35))
    df["Hair.Loss"] = rng.binomial(1, expit(eta.to_numpy()))
    rows = rng.choice(n, n_sentinel, replace=False)
    for i, r in enumerate(rows):
        df.loc[r, FACTOR_COLS[i % len(FACTOR_COLS)]] = "No Data"
    for i, dup in enumerate(dup_ids):
        df.loc[n - 1 - i, "Id"] = dup
    return df


def write_raw_csv(df, path):
    df.rename(columns=RAW_HEADERS).to_csv(path, index=False)
    return path


@pytest.fixture(scope="session")
def survey():
    return clean_survey(make_survey(n=150, seed=3))


def _fit(df, name):
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", ConvergenceWarning)
        return fit_model(df, MODELS[name], sampler=TINY)


@pytest.fixture(scope="session")
def fit1(survey):
    return _fit(survey, "model1")


@pytest.fixture(scope="session")
def fit4(survey):
    return _fit(survey, "model4")
