#!/usr/bin/env python3
"""Hair-loss risk factors: four nested Bayesian logistic regressions.

Loads and cleans the survey, fits each model with PyMC, prints coefficient
summaries, runs posterior-predictive checks and compares in-sample and
k-fold cross-validated accuracy. Tables go to CSV, figures to PNG.
"""

import argparse
import json
import warnings
from pathlib import Path

import pandas as pd

from hairloss_data import (SEP, SURVEY_CSV, clean_survey, find_issues,
                           load_survey, missing_counts)
from hairloss_errors import ConvergenceWarning
from hairloss_eval import (CRED_PROB, CUTOFF, N_SIMS,
                           classification_accuracy, compare_models,
                           cv_accuracy, loo_compare,
                           posterior_predictive_check, significant_terms,
                           summarize)
from hairloss_fit import MODELS, SEED, SamplerConfig, fit_model
from hairloss_plots import plot_diagnostics, plot_ppc
from hairloss_priors import BASE_RATE, COEF_SCALE, intercept_prior

OUT = Path("output")

warnings.filterwarnings("ignore", category=FutureWarning)
warnings.simplefilter("always", ConvergenceWarning)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description=(
            "Bayesian logistic regression of hair loss on survey risk "
            "factors, with diagnostics and cross-validated accuracy."
        )
    )
    parser.add_argument("--input", default=str(SURVEY_CSV),
                        help="Survey CSV path.")
    parser.add_argument("--out-dir", default=str(OUT),
                        help="Directory for CSV and PNG outputs.")
    parser.add_argument("--models", nargs="+", default=list(MODELS),
                        choices=list(MODELS),
                        help="Models to fit.")
    parser.add_argument("--chains", type=int, default=4)
    parser.add_argument("--draws", type=int, default=1000,
                        help="Posterior draws per chain after tuning.")
    parser.add_argument("--tune", type=int, default=1000,
                        help="Tuning (warmup) iterations per chain.")
    parser.add_argument("--cores", type=int, default=1)
    parser.add_argument("--seed", type=int, default=SEED)
    parser.add_argument("--base-rate", type=float, nargs=2,
                        default=list(BASE_RATE), metavar=("LOW", "HIGH"),
                        help="Plausible hair-loss base-rate range for "
                             "the intercept prior.")
    parser.add_argument("--coef-scale", type=float, default=COEF_SCALE)
    parser.add_argument("--prob", type=float, default=CRED_PROB,
                        help="Credible interval mass.")
    parser.add_argument("--cutoff", type=float, default=CUTOFF,
                        help="Probability cutoff for predicting Yes.")
    parser.add_argument("--folds", type=int, default=10)
    parser.add_argument("--n-sims", type=int, default=N_SIMS,
                        help="Simulated datasets for the PPC.")
    parser.add_argument("--drop-ids", type=int, nargs="*", default=None,
                        help="Duplicate ids to remove outright; other "
                             "duplicates keep their first row.")
    parser.add_argument("--no-cv", action="store_true",
                        help="Skip k-fold cross-validation.")
    parser.add_argument("--no-plots", action="store_true")
    return parser.parse_args(argv)


def load_and_clean(path, drop_ids=None):
    print(f"{SEP}\nDATA\n{SEP}")
    raw = load_survey(path)
    print(f"  {len(raw)} rows loaded from {path}")
    na = missing_counts(raw)
    print(f"  missing values: {int(na.sum())} "
          f"({(na > 0).sum()} columns)")
    for issue in find_issues(raw):
        print(f"  {issue.describe()}")
    df = clean_survey(raw, drop_ids=drop_ids)
    print(f"  cleaned: {len(df)} rows ({len(raw) - len(df)} dropped)")
    return df


def print_summary(name, formula, s):
    print(f"\n{SEP}\n{name}: {formula}\n{SEP}")
    cols = ["term", "estimate", "lower", "upper", "odds_ratio",
            "or_lower", "or_upper", "r_hat", "significant"]
    print(f"  {s.attrs['interval']} equal-tailed credible intervals")
    print(s[cols].to_string(index=False,
                            float_format="{:.3f}".format))


def write_run_info(out, args, df, prior, sampler):
    info = {
        "input": str(args.input),
        "n_rows": len(df),
        "models": {n: MODELS[n].formula for n in args.models},
        "intercept_prior": {"mean": prior.mean, "scale": prior.scale},
        "base_rate": list(args.base_rate),
        "coef_scale": args.coef_scale,
        "sampler": {"chains": sampler.chains, "draws": sampler.draws,
                    "tune": sampler.tune, "seed": sampler.seed},
        "prob": args.prob,
        "cutoff": args.cutoff,
        "folds": None if args.no_cv else args.folds,
    }
    with open(out / "run.json", "w") as f:
        json.dump(info, f, indent=2)


def run(args):
    out = Path(args.out_dir)
    out.mkdir(parents=True, exist_ok=True)
    df = load_and_clean(args.input, args.drop_ids)

    prior = intercept_prior(*args.base_rate)
    sampler = SamplerConfig(chains=args.chains, draws=args.draws,
                            tune=args.tune, seed=args.seed,
                            cores=args.cores)
    print(f"\nIntercept prior: {prior}; coefficients: "
          f"Normal(0, {args.coef_scale}) autoscaled")
    print(f"Sampler: {sampler.chains} chains x {sampler.draws} draws "
          f"(+{sampler.tune} tune), seed={sampler.seed}")

    fits, summaries, accs, cvs = {}, {}, {}, {}
    for name in args.models:
        pset = MODELS[name]
        print(f"\nFitting {name} ...", flush=True)
        fit = fit_model(df, pset, intercept=prior,
                        coef_scale=args.coef_scale, sampler=sampler)
        fits[name] = fit
        s = summarize(fit, args.prob)
        summaries[name] = s
        print_summary(name, pset.formula, s)
        s.to_csv(out / f"coefficients_{name}.csv", index=False)
        print(f"  significant at {args.prob:.0%}: "
              f"{', '.join(significant_terms(s)) or 'none'}")

        ppc = posterior_predictive_check(fit, df, args.n_sims,
                                         seed=args.seed)
        ppc.to_frame().to_csv(out / f"ppc_{name}.csv", index=False)
        print(f"  PPC: observed={ppc.observed:.3f} "
              f"sim mean={ppc.simulated.mean():.3f} "
              f"p={ppc.p_value:.2f}")

        acc = classification_accuracy(fit, df, args.cutoff)
        accs[name] = acc
        acc.table.to_csv(out / f"confusion_{name}.csv")
        print(f"  Confusion matrix (cutoff={args.cutoff}):")
        print(acc.table.to_string())
        print(f"  Accuracy: {acc.accuracy:.4f}")

        if not args.no_plots:
            for p in plot_diagnostics(fit, out):
                print(f"  Wrote {p}")
            print(f"  Wrote {plot_ppc(ppc, name, out)}")

    if not args.no_cv:
        print(f"\n{SEP}\n{args.folds}-FOLD CROSS-VALIDATION\n{SEP}")
        for name in args.models:
            cv = cv_accuracy(df, MODELS[name], k=args.folds,
                             seed=args.seed, cutoff=args.cutoff,
                             intercept=prior, coef_scale=args.coef_scale,
                             sampler=sampler)
            cvs[name] = cv
            cv.to_frame().to_csv(out / f"cv_folds_{name}.csv",
                                 index=False)
            print(f"  {name}: CV accuracy={cv.accuracy:.4f}")

    comp = compare_models(summaries, accs, cvs)
    print(f"\n{SEP}\nMODEL COMPARISON\n{SEP}")
    print(comp.drop(columns="significant").to_string(
        float_format="{:.4f}".format))
    comp.to_csv(out / "comparison.csv")

    if len(fits) > 1:
        loo = loo_compare(fits)
        print("\nPSIS-LOO:")
        print(loo[["rank", "elpd_loo", "p_loo", "elpd_diff",
                   "weight"]].to_string(float_format="{:.2f}".format))
        loo.to_csv(out / "loo_compare.csv")
    write_run_info(out, args, df, prior, sampler)
    print(f"\nOutputs in {out}/")
    return comp


def main(argv=None) -> None:
    args = parse_args(argv)
    pd.set_option("display.width", 140)
    run(args)


if __name__ == "__main__":
    main()
