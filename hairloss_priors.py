#!/usr/bin/env python3
"""Priors for the hair-loss logistic regressions.

Intercept: a plausible population base rate of hair loss somewhere between
16% and 50% is mapped onto the log-odds scale, and the range is read as
roughly +/-2 standard deviations of a normal prior.

Coefficients: Normal(0, 2.5) on every term, rescaled to each term's spread
so the prior stays weakly informative whatever the units.
"""

from dataclasses import dataclass

import numpy as np
import pandas as pd

SEP = "=" * 60
BASE_RATE = (0.16, 0.50)
COEF_SCALE = 2.5


@dataclass(frozen=True)
class NormalPrior:
    mean: float
    scale: float

    def __str__(self):
        return f"Normal({self.mean:+.3f}, {self.scale:.3f})"


def logit(p):
    """ln(p / (1 - p))."""
    p = np.asarray(p, dtype=float)
    if np.any((p <= 0) | (p >= 1)):
        raise ValueError(f"probability must be in (0, 1), got {p}")
    return np.log(p / (1 - p))


def intercept_prior(low=BASE_RATE[0], high=BASE_RATE[1]) -> NormalPrior:
    """Normal prior whose +/-2 sd band spans logit(low)..logit(high)."""
    if low >= high:
        raise ValueError(f"need low < high, got {low}, {high}")
    lo, hi = float(logit(low)), float(logit(high))
    mean = (lo + hi) / 2
    return NormalPrior(mean, (hi - mean) / 2)


def coefficient_scales(X: pd.DataFrame, scale=COEF_SCALE,
                       autoscale=True) -> pd.Series:
    """Per-term prior sd for Normal(0, scale) coefficient priors.

    With autoscale, a constant term keeps ``scale``, a two-valued term is
    divided by its range and anything else by its sd.
    """
    out = pd.Series(float(scale), index=X.columns)
    if not autoscale:
        return out
    for c in X.columns:
        x = X[c].to_numpy(dtype=float)
        n_unique = len(np.unique(x))
        if n_unique == 2:
            out[c] = scale / (x.max() - x.min())
        elif n_unique > 2:
            sd = x.std(ddof=1)
            if sd > 0:
                out[c] = scale / sd
    return out


def main():
    lo, hi = BASE_RATE
    p = intercept_prior(lo, hi)
    print(f"{SEP}\nINTERCEPT PRIOR\n{SEP}")
    print(f"  base rate range: {lo:.0%} .. {hi:.0%}")
    print(f"  log-odds range:  {float(logit(lo)):+.3f} .. "
          f"{float(logit(hi)):+.3f}")
    print(f"  prior:           {p}")
    print(f"  coefficients:    Normal(0, {COEF_SCALE}) autoscaled")


if __name__ == "__main__":
    main()
