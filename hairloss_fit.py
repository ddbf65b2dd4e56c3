"""Bayesian logistic regression fits with PyMC.

Each model is a PredictorSet over the cleaned survey. Sampling is NUTS via
pm.sample; everything after that works on the posterior draws.
"""

import warnings
from dataclasses import dataclass

import arviz as az
import numpy as np
import pandas as pd
import pymc as pm
from scipy.special import expit

from hairloss_data import AGE, OUTCOME
from hairloss_errors import ConvergenceWarning, FormulaError, SchemaError
from hairloss_priors import (COEF_SCALE, NormalPrior, coefficient_scales,
                             intercept_prior)

SEED = 42
RHAT_MAX = 1.01
ESS_MIN = 400
INTERCEPT = "(Intercept)"


@dataclass(frozen=True)
class PredictorSet:
    name: str
    predictors: tuple
    outcome: str = OUTCOME

    @property
    def formula(self):
        return f"{self.outcome} ~ " + " + ".join(self.predictors)

    def validate(self, df: pd.DataFrame) -> None:
        missing = [c for c in (self.outcome,) + tuple(self.predictors)
                   if c not in df.columns]
        if missing:
            raise FormulaError(
                f"{self.name}: columns not in table: {', '.join(missing)}")


_M1 = (AGE, "Genetics", "Hormonal.Changes")
_M2 = _M1 + ("Medical.Conditions", "Medications.Treatments",
             "Nutritional.Deficiencies", "Stress")
_M3 = _M2 + ("Poor.Hair.Care.Habits", "Environmental.Factors",
             "Smoking", "Weight.Loss")
_M4 = ("Genetics", "Weight.Loss", "Medical.Conditions")

MODELS = {
    "model1": PredictorSet("model1", _M1),
    "model2": PredictorSet("model2", _M2),
    "model3": PredictorSet("model3", _M3),
    "model4": PredictorSet("model4", _M4),
}


@dataclass(frozen=True)
class SamplerConfig:
    chains: int = 4
    draws: int = 1000
    tune: int = 1000
    seed: int = SEED
    cores: int = 1
    target_accept: float = 0.9


@dataclass(frozen=True, eq=False)
class FittedModel:
    predictor_set: PredictorSet
    terms: tuple
    intercept_prior: NormalPrior
    coef_scales: pd.Series
    sampler: SamplerConfig
    idata: az.InferenceData
    n_obs: int

    @property
    def name(self):
        return self.predictor_set.name

    @property
    def coefficients(self):
        return (INTERCEPT,) + self.terms

    def draws(self) -> pd.DataFrame:
        """One row per posterior draw (chains stacked), one column per
        coefficient."""
        post = self.idata.posterior
        a = post["Intercept"].values.reshape(-1)
        b = post["beta"].values.reshape(len(a), len(self.terms))
        return pd.DataFrame(np.column_stack([a, b]),
                            columns=list(self.coefficients))


def design_matrix(df: pd.DataFrame, pset: PredictorSet):
    """Treatment-coded predictors; returns (X, terms)."""
    pset.validate(df)
    parts = []
    for p in pset.predictors:
        col = df[p]
        if isinstance(col.dtype, pd.CategoricalDtype):
            parts.append(pd.get_dummies(col, prefix=p, prefix_sep="",
                                        drop_first=True, dtype=float))
        elif pd.api.types.is_numeric_dtype(col):
            parts.append(col.astype(float).to_frame(p))
        else:
            raise SchemaError(
                f"{p}: expected numeric or categorical, got {col.dtype}")
    X = pd.concat(parts, axis=1)
    return X, tuple(X.columns)


def outcome_vector(df: pd.DataFrame, pset: PredictorSet) -> np.ndarray:
    y = df[pset.outcome]
    if isinstance(y.dtype, pd.CategoricalDtype):
        return (y == "Yes").to_numpy(dtype=int)
    return y.to_numpy(dtype=int)


def build_model(X: pd.DataFrame, y, prior: NormalPrior,
                scales: pd.Series) -> pm.Model:
    """Bernoulli-logit model on centered predictors.

    The intercept prior applies at the predictor means; the reported
    Intercept is shifted back to the uncentered scale.
    """
    xbar = X.mean(axis=0).to_numpy()
    Xc = X.to_numpy() - xbar
    coords = {"term": list(X.columns)}
    with pm.Model(coords=coords) as model:
        alpha_c = pm.Normal("alpha_c", mu=prior.mean, sigma=prior.scale)
        beta = pm.Normal("beta", mu=0.0, sigma=scales.to_numpy(),
                         dims="term")
        pm.Deterministic("Intercept", alpha_c - pm.math.dot(xbar, beta))
        eta = alpha_c + pm.math.dot(Xc, beta)
        pm.Bernoulli("y", logit_p=eta, observed=np.asarray(y))
    return model


def diagnostics(idata: az.InferenceData) -> dict:
    """Worst R-hat, lowest bulk ESS and divergence count."""
    s = az.summary(idata, var_names=["Intercept", "beta"],
                   kind="diagnostics")
    rhat = s["r_hat"].to_numpy(dtype=float)
    div = int(idata.sample_stats["diverging"].values.sum())
    return {
        "max_rhat": float(np.nanmax(rhat)) if np.isfinite(rhat).any()
        else float("nan"),
        "min_ess_bulk": float(s["ess_bulk"].min()),
        "divergences": div,
    }


def check_convergence(idata, name="model", rhat_max=RHAT_MAX,
                      ess_min=ESS_MIN) -> dict:
    """Warn (never raise) when the chains look unmixed."""
    d = diagnostics(idata)
    problems = []
    if d["max_rhat"] > rhat_max:
        problems.append(f"R-hat {d['max_rhat']:.3f} > {rhat_max}")
    if d["min_ess_bulk"] < ess_min:
        problems.append(f"bulk ESS {d['min_ess_bulk']:.0f} < {ess_min}")
    if d["divergences"]:
        problems.append(f"{d['divergences']} divergent transitions")
    if problems:
        warnings.warn(f"{name}: " + "; ".join(problems),
                      ConvergenceWarning, stacklevel=2)
    return d


def fit_model(df: pd.DataFrame, pset: PredictorSet, intercept=None,
              coef_scale=COEF_SCALE, autoscale=True,
              sampler=SamplerConfig()) -> FittedModel:
    """Draw posterior samples for one predictor set."""
    X, terms = design_matrix(df, pset)
    y = outcome_vector(df, pset)
    prior = intercept if intercept is not None else intercept_prior()
    scales = coefficient_scales(X, coef_scale, autoscale)
    model = build_model(X, y, prior, scales)
    with model:
        idata = pm.sample(
            draws=sampler.draws, tune=sampler.tune,
            chains=sampler.chains, cores=sampler.cores,
            random_seed=sampler.seed,
            target_accept=sampler.target_accept,
            progressbar=False,
            idata_kwargs={"log_likelihood": True},
        )
    check_convergence(idata, pset.name)
    return FittedModel(pset, terms, prior, scales, sampler, idata,
                       len(df))


def predict_proba(fitted: FittedModel, df: pd.DataFrame) -> np.ndarray:
    """Posterior P(hair loss): draws x rows."""
    X, terms = design_matrix(df, fitted.predictor_set)
    if terms != fitted.terms:
        raise SchemaError(f"{fitted.name}: design terms {terms} "
                          f"differ from fitted {fitted.terms}")
    D = fitted.draws().to_numpy()
    eta = D[:, :1] + D[:, 1:] @ X.to_numpy().T
    return expit(eta)
