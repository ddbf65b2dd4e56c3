#!/usr/bin/env python3
"""Generate the HTML report from hairloss_analysis.py outputs."""

import json
from datetime import datetime
from pathlib import Path

import numpy as np
import pandas as pd
import plotly.graph_objects as go
from jinja2 import Template

OUT = Path("output")
PLOTLY_CFG = dict(include_plotlyjs="cdn",
                  full_html=False)


def load_outputs(out_dir=OUT):
    """Read run.json plus per-model CSVs."""
    out_dir = Path(out_dir)
    with open(out_dir / "run.json") as f:
        info = json.load(f)
    models = {}
    for name in info["models"]:
        m = {"coef": pd.read_csv(out_dir / f"coefficients_{name}.csv")}
        fp = out_dir / f"confusion_{name}.csv"
        if fp.exists():
            m["confusion"] = pd.read_csv(fp, index_col=0)
        fp = out_dir / f"ppc_{name}.csv"
        if fp.exists():
            m["ppc"] = pd.read_csv(fp)
        models[name] = m
    comp = pd.read_csv(out_dir / "comparison.csv", index_col=0)
    fp = out_dir / "loo_compare.csv"
    loo = pd.read_csv(fp, index_col=0) if fp.exists() else None
    return info, models, comp, loo


def sec_setup(info):
    p = info["intercept_prior"]
    s = info["sampler"]
    lo, hi = info["base_rate"]
    h = "<h2>Data and Priors</h2>"
    h += (f"<p>{info['n_rows']:,} survey rows after removing "
          f"'No Data' rows and duplicate ids.</p>")
    h += (f"<p>Intercept prior Normal({p['mean']:.3f}, "
          f"{p['scale']:.3f}): a base rate between {lo:.0%} and "
          f"{hi:.0%} on the log-odds scale, read as &plusmn;2 sd. "
          f"Coefficients Normal(0, {info['coef_scale']}) "
          f"autoscaled per term.</p>")
    h += (f"<p>NUTS: {s['chains']} chains &times; {s['draws']} draws "
          f"(+{s['tune']} tuning), seed {s['seed']}.</p>")
    h += "<table><tr><th>Model</th><th>Formula</th></tr>"
    for name, formula in info["models"].items():
        h += f"<tr><td>{name}</td><td>{formula}</td></tr>"
    return h + "</table>"


def coef_table(coef):
    tbl = ("<table><tr><th>Term</th><th>Estimate</th>"
           "<th>Interval</th><th>OR</th><th>OR interval</th>"
           "<th>R&#770;</th></tr>")
    for _, r in coef.iterrows():
        cls = ' class="sig"' if r["significant"] else ""
        tbl += (f"<tr{cls}><td>{r['term']}</td>"
                f"<td>{r['estimate']:+.3f}</td>"
                f"<td>[{r['lower']:+.3f}, {r['upper']:+.3f}]</td>"
                f"<td>{r['odds_ratio']:.3f}</td>"
                f"<td>[{r['or_lower']:.3f}, {r['or_upper']:.3f}]</td>"
                f"<td>{r['r_hat']:.3f}</td></tr>")
    return tbl + "</table>"


def odds_ratio_chart(name, coef):
    """Odds ratios with interval bars, intercept left out."""
    c = coef[coef["term"] != "(Intercept)"]
    fig = go.Figure(go.Scatter(
        x=c["odds_ratio"], y=c["term"], mode="markers",
        marker=dict(color=np.where(c["significant"],
                                   "darkorange", "steelblue")),
        error_x=dict(type="data", symmetric=False,
                     array=c["or_upper"] - c["odds_ratio"],
                     arrayminus=c["odds_ratio"] - c["or_lower"])))
    fig.add_vline(x=1, line_dash="dash", line_color="gray")
    fig.update_layout(
        title=f"{name}: odds ratios", xaxis_type="log",
        xaxis_title="Odds ratio (log scale)",
        height=140 + 28 * len(c), template="plotly_white")
    return fig.to_html(**PLOTLY_CFG)


def ppc_chart(name, ppc):
    obs = float(ppc["observed"].iloc[0])
    fig = go.Figure(go.Histogram(x=ppc["stat"], nbinsx=20,
                                 name="simulated",
                                 marker_color="steelblue"))
    fig.add_vline(x=obs, line_color="darkorange", line_width=3)
    p = float((ppc["stat"] >= obs).mean())
    fig.update_layout(
        title=f"{name}: simulated hair-loss proportion "
              f"(observed {obs:.3f}, p={p:.2f})",
        height=300, template="plotly_white")
    return fig.to_html(**PLOTLY_CFG)


def sec_model(name, formula, m, prob):
    h = f"<h2>{name}</h2><p><code>{formula}</code></p>"
    h += odds_ratio_chart(name, m["coef"])
    h += coef_table(m["coef"])
    h += (f"<p>Highlighted rows: {prob:.0%} interval excludes 0 "
          f"(odds ratio excludes 1).</p>")
    if "ppc" in m:
        h += ppc_chart(name, m["ppc"])
    if "confusion" in m:
        h += "<h3>Confusion matrix</h3>"
        h += m["confusion"].to_html(border=0)
    return h


def sec_comparison(comp, loo):
    fig = go.Figure()
    fig.add_trace(go.Bar(name="In-sample", x=comp.index,
                         y=comp["accuracy"],
                         marker_color="steelblue"))
    if "cv_accuracy" in comp.columns:
        fig.add_trace(go.Bar(name="Cross-validated", x=comp.index,
                             y=comp["cv_accuracy"],
                             marker_color="darkorange"))
    fig.update_layout(title="Classification accuracy",
                      yaxis_title="Accuracy", barmode="group",
                      height=360, template="plotly_white")
    h = "<h2>Model Comparison</h2>" + fig.to_html(**PLOTLY_CFG)
    h += comp.to_html(border=0, float_format="{:.4f}".format)
    if loo is not None:
        h += "<h3>PSIS-LOO</h3>"
        cols = [c for c in ["rank", "elpd_loo", "p_loo", "elpd_diff",
                            "weight", "se", "dse"] if c in loo.columns]
        h += loo[cols].to_html(border=0, float_format="{:.2f}".format)
    return h


TITLE = "Hair Loss Risk Factors: Bayesian Logistic Regression"

CSS = """body{font-family:Georgia,serif;max-width:1000px;margin:2em auto}
header{color:#2e7d32}
section{margin-top:2em}
table{border-collapse:collapse;margin:1em 0}
td,th{padding:4px 12px;text-align:right}
tr.sig{background:#fff3e0}"""

PAGE = Template("""<!DOCTYPE html>
<html lang="en"><head><meta charset="UTF-8">
<title>{{ title }}</title><style>{{ css }}</style></head>
<body><header><h1>{{ title }}</h1><small>generated {{ date }}</small></header>
{% for sec in sections %}<section>{{ sec }}</section>
{% endfor %}</body></html>""")


def render(sections, title=TITLE):
    return PAGE.render(title=title, css=CSS, sections=sections,
                       date=datetime.now().strftime("%Y-%m-%d %H:%M"))


def build_report(out_dir=OUT):
    info, models, comp, loo = load_outputs(out_dir)
    secs = [sec_setup(info)]
    for name, m in models.items():
        secs.append(sec_model(name, info["models"][name], m,
                              info["prob"]))
    secs.append(sec_comparison(comp, loo))
    return render(secs)


def main():
    import argparse
    ap = argparse.ArgumentParser()
    ap.add_argument("--out-dir", default=str(OUT))
    args = ap.parse_args()
    print("Rendering HTML...")
    html = build_report(args.out_dir)
    fp = Path(args.out_dir) / "report.html"
    with open(fp, "w") as f:
        f.write(html)
    print(f"Wrote {fp} ({len(html)//1024} KB)")


if __name__ == "__main__":
    main()
