"""Posterior summaries, predictive checks and classification accuracy."""

from dataclasses import dataclass

import arviz as az
import numpy as np
import pandas as pd
from sklearn.metrics import confusion_matrix
from sklearn.model_selection import KFold

from hairloss_fit import (SEED, FittedModel, PredictorSet, SamplerConfig,
                          fit_model, outcome_vector, predict_proba)
from hairloss_priors import COEF_SCALE

CRED_PROB = 0.8
CUTOFF = 0.5
N_SIMS = 100
LABELS = ["No", "Yes"]


def credible_interval(samples, prob=CRED_PROB):
    """Equal-tailed interval: (1 - prob)/2 of the mass on each side."""
    if not 0 < prob < 1:
        raise ValueError(f"prob must be in (0, 1), got {prob}")
    tail = (1 - prob) / 2
    lo, hi = np.quantile(np.asarray(samples, dtype=float),
                         [tail, 1 - tail], axis=0)
    return lo, hi


def summarize(fitted: FittedModel, prob=CRED_PROB) -> pd.DataFrame:
    """One row per coefficient: median, interval, odds ratio, R-hat."""
    D = fitted.draws()
    lo, hi = credible_interval(D.to_numpy(), prob)
    diag = az.summary(fitted.idata, var_names=["Intercept", "beta"],
                      kind="diagnostics")
    pct = f"{prob:.0%}"
    out = pd.DataFrame({
        "term": D.columns,
        "estimate": D.median().to_numpy(),
        "mean": D.mean().to_numpy(),
        "sd": D.std(ddof=1).to_numpy(),
        "lower": lo,
        "upper": hi,
        "odds_ratio": np.exp(D.median().to_numpy()),
        "or_lower": np.exp(lo),
        "or_upper": np.exp(hi),
        "r_hat": diag["r_hat"].to_numpy(),
        "ess_bulk": diag["ess_bulk"].to_numpy(),
    })
    out["significant"] = (out["lower"] > 0) | (out["upper"] < 0)
    out.attrs["prob"] = prob
    out.attrs["interval"] = pct
    return out


def significant_terms(summary: pd.DataFrame) -> list:
    s = summary[summary["term"] != "(Intercept)"]
    return s.loc[s["significant"], "term"].tolist()


@dataclass(frozen=True)
class PPCResult:
    observed: float
    simulated: np.ndarray
    p_value: float  # P(sim >= observed)

    def to_frame(self):
        return pd.DataFrame({"sim": np.arange(len(self.simulated)),
                             "stat": self.simulated,
                             "observed": self.observed})


def posterior_predictive_check(fitted: FittedModel, df: pd.DataFrame,
                               n_sims=N_SIMS, stat=np.mean,
                               seed=SEED) -> PPCResult:
    """Compare stat(y) against stat(y_rep) over simulated datasets."""
    rng = np.random.default_rng(seed)
    P = predict_proba(fitted, df)
    idx = rng.choice(P.shape[0], size=n_sims, replace=n_sims > P.shape[0])
    y_rep = rng.binomial(1, P[idx])
    sims = np.array([stat(r) for r in y_rep], dtype=float)
    obs = float(stat(outcome_vector(df, fitted.predictor_set)))
    return PPCResult(obs, sims, float((sims >= obs).mean()))


def predict_class(fitted: FittedModel, df: pd.DataFrame, cutoff=CUTOFF):
    """Mean posterior probability per row, thresholded to 0/1."""
    p = predict_proba(fitted, df).mean(axis=0)
    return (p >= cutoff).astype(int), p


def confusion_table(y_true, y_pred) -> pd.DataFrame:
    """Confusion matrix (rows: actual, cols: predicted) with totals."""
    cm = confusion_matrix(y_true, y_pred, labels=[0, 1])
    t = pd.DataFrame(cm, index=pd.Index(LABELS, name="actual"),
                     columns=pd.Index(LABELS, name="predicted"))
    t["Total"] = t.sum(axis=1)
    t.loc["Total"] = t.sum(axis=0)
    return t


def accuracy_from_confusion(table: pd.DataFrame) -> float:
    """(TP + TN) / total."""
    total = table.loc["Total", "Total"]
    if total == 0:
        raise ValueError("empty confusion matrix")
    correct = table.loc["No", "No"] + table.loc["Yes", "Yes"]
    return float(correct / total)


@dataclass(frozen=True)
class Accuracy:
    table: pd.DataFrame
    accuracy: float
    cutoff: float


def classification_accuracy(fitted: FittedModel, df: pd.DataFrame,
                            cutoff=CUTOFF) -> Accuracy:
    """In-sample accuracy at the given probability cutoff."""
    y_pred, _ = predict_class(fitted, df, cutoff)
    y = outcome_vector(df, fitted.predictor_set)
    t = confusion_table(y, y_pred)
    return Accuracy(t, accuracy_from_confusion(t), cutoff)


def fold_indices(n, k=10, seed=SEED):
    """Disjoint held-out folds covering range(n)."""
    if not 2 <= k <= n:
        raise ValueError(f"need 2 <= k <= n, got k={k}, n={n}")
    cv = KFold(n_splits=k, shuffle=True, random_state=seed)
    return list(cv.split(np.arange(n)))


@dataclass(frozen=True)
class CVResult:
    name: str
    k: int
    fold_accuracy: list
    test_sizes: list
    accuracy: float  # pooled: correct / n

    def to_frame(self):
        return pd.DataFrame({"fold": np.arange(1, self.k + 1),
                             "n_test": self.test_sizes,
                             "accuracy": self.fold_accuracy})


def cv_accuracy(df: pd.DataFrame, pset: PredictorSet, k=10, seed=SEED,
                cutoff=CUTOFF, intercept=None, coef_scale=COEF_SCALE,
                autoscale=True, sampler=SamplerConfig(),
                verbose=True) -> CVResult:
    """k-fold cross-validated accuracy; refits on each training split."""
    y = outcome_vector(df, pset)
    correct = 0
    accs, sizes = [], []
    for i, (train, test) in enumerate(fold_indices(len(df), k, seed)):
        fit = fit_model(df.iloc[train], pset, intercept=intercept,
                        coef_scale=coef_scale, autoscale=autoscale,
                        sampler=sampler)
        y_pred, _ = predict_class(fit, df.iloc[test], cutoff)
        hit = int((y_pred == y[test]).sum())
        correct += hit
        accs.append(hit / len(test))
        sizes.append(len(test))
        if verbose:
            print(f"    [{i+1}/{k}] {pset.name}: "
                  f"acc={accs[-1]:.3f} (n={len(test)})", flush=True)
    return CVResult(pset.name, k, accs, sizes, correct / len(df))


def compare_models(summaries, accuracies, cv=None) -> pd.DataFrame:
    """One row per model; sorted by CV accuracy when available."""
    rows = []
    for name, s in summaries.items():
        row = {
            "model": name,
            "n_terms": len(s) - 1,
            "n_significant": len(significant_terms(s)),
            "significant": ", ".join(significant_terms(s)),
            "accuracy": accuracies[name].accuracy,
        }
        if cv and name in cv:
            row["cv_accuracy"] = cv[name].accuracy
            row["cv_sd"] = float(np.std(cv[name].fold_accuracy, ddof=1))
        rows.append(row)
    out = pd.DataFrame(rows).set_index("model")
    key = "cv_accuracy" if "cv_accuracy" in out.columns else "accuracy"
    return out.sort_values(key, ascending=False)


def loo_compare(fits) -> pd.DataFrame:
    """PSIS-LOO ranking of the fitted models."""
    return az.compare({name: f.idata for name, f in fits.items()},
                      ic="loo", var_name="y")
