#!/usr/bin/env python3
"""Load and clean the hair-loss survey.

Every cleaning step takes a DataFrame and returns a new one; nothing is
modified in place. Unusable rows are dropped, never imputed.
"""

import re
from pathlib import Path

import numpy as np
import pandas as pd

from hairloss_errors import DataQualityIssue, FileError, SchemaError

DATA = Path("data")
SURVEY_CSV = DATA / "Predict Hair Fall.csv"
SEP = "=" * 60

SENTINEL = "No Data"
ID = "Id"
AGE = "Age"
OUTCOME = "Hair.Loss"

BINARY = ["No", "Yes"]
# None: unordered, levels are the sorted observed values
LEVELS = {
    "Genetics": BINARY,
    "Hormonal.Changes": BINARY,
    "Medical.Conditions": None,
    "Medications.Treatments": None,
    "Nutritional.Deficiencies": None,
    "Stress": ["Low", "Moderate", "High"],
    "Poor.Hair.Care.Habits": BINARY,
    "Environmental.Factors": BINARY,
    "Smoking": BINARY,
    "Weight.Loss": BINARY,
}
FACTORS = list(LEVELS)
COLUMNS = [ID] + FACTORS + [AGE, OUTCOME]
OUTCOME_CODES = {0: "No", 1: "Yes"}


def normalize_name(name: str) -> str:
    """'Medications & Treatments ' -> 'Medications.Treatments'."""
    return re.sub(r"[^0-9A-Za-z]+", ".", str(name).strip()).strip(".")


def load_survey(path=SURVEY_CSV, sep=",") -> pd.DataFrame:
    """Read the survey CSV with normalised column names."""
    path = Path(path)
    try:
        df = pd.read_csv(path, sep=sep, skipinitialspace=True)
    except (OSError, UnicodeDecodeError) as exc:
        raise FileError(f"cannot read {path}: {exc}") from exc
    except (pd.errors.EmptyDataError, pd.errors.ParserError) as exc:
        raise FileError(f"malformed table {path}: {exc}") from exc
    if df.shape[1] < 2:
        raise FileError(f"{path}: expected a delimited table, "
                        f"got {df.shape[1]} column(s)")
    df.columns = [normalize_name(c) for c in df.columns]
    return df


def missing_counts(df: pd.DataFrame) -> pd.Series:
    """NA count per column."""
    return df.isna().sum()


def check_schema(df: pd.DataFrame, columns=None) -> None:
    missing = [c for c in (columns or COLUMNS) if c not in df.columns]
    if missing:
        raise SchemaError(f"missing columns: {', '.join(missing)}")


def sentinel_mask(df: pd.DataFrame, sentinel=SENTINEL) -> pd.DataFrame:
    """Boolean frame, True where a cell holds the sentinel."""
    key = sentinel.strip().casefold()
    mask = pd.DataFrame(False, index=df.index, columns=df.columns)
    for c in df.columns:
        if pd.api.types.is_numeric_dtype(df[c]):
            continue
        s = df[c].astype(str).str.strip().str.casefold()
        mask[c] = (s == key) & df[c].notna()
    return mask


def drop_sentinel_rows(df: pd.DataFrame, sentinel=SENTINEL) -> pd.DataFrame:
    """List-wise deletion of rows holding the sentinel anywhere."""
    bad = sentinel_mask(df, sentinel).any(axis=1)
    return df.loc[~bad].copy()


def duplicate_ids(df: pd.DataFrame, id_col=ID) -> list:
    dup = df[id_col].duplicated(keep=False)
    return sorted(df.loc[dup, id_col].unique().tolist())


def dedupe_ids(df: pd.DataFrame, id_col=ID, drop=None) -> pd.DataFrame:
    """Remove rows sharing an identifier.

    Ids listed in ``drop`` are removed outright. Any duplicate group left
    over keeps its first row.
    """
    out = df
    if drop:
        out = out.loc[~out[id_col].isin(list(drop))]
    out = out.loc[~out[id_col].duplicated(keep="first")]
    return out.copy()


def _levels_for(series, levels):
    if levels is not None:
        return list(levels)
    return sorted(series.dropna().unique().tolist())


def cast_categories(df: pd.DataFrame, levels=None) -> pd.DataFrame:
    """Cast risk factors to categoricals with explicit level order."""
    levels = LEVELS if levels is None else levels
    out = df.copy()
    for col, lv in levels.items():
        if col not in out.columns:
            continue
        raw = out[col].astype("string").str.strip()
        lv = _levels_for(raw, lv)
        unknown = sorted(set(raw.dropna()) - set(lv))
        if unknown:
            raise SchemaError(
                f"{col}: unexpected values {unknown} (levels {lv})")
        out[col] = pd.Categorical(raw.astype(object), categories=lv)
    return out


def cast_age(df: pd.DataFrame, col=AGE) -> pd.DataFrame:
    out = df.copy()
    age = pd.to_numeric(out[col], errors="coerce")
    bad = age.isna() & out[col].notna()
    if bad.any():
        vals = out.loc[bad, col].unique().tolist()[:5]
        raise SchemaError(f"{col}: non-numeric values {vals}")
    out[col] = age.astype(float)
    return out


def recode_outcome(df: pd.DataFrame, col=OUTCOME) -> pd.DataFrame:
    """0/1 outcome -> No/Yes categorical."""
    out = df.copy()
    codes = pd.to_numeric(out[col], errors="coerce")
    bad = ~codes.isin(list(OUTCOME_CODES))
    if bad.any():
        vals = out.loc[bad, col].unique().tolist()[:5]
        raise SchemaError(f"{col}: expected 0/1, got {vals}")
    out[col] = pd.Categorical(codes.astype(int).map(OUTCOME_CODES),
                              categories=list(OUTCOME_CODES.values()))
    return out


def clean_survey(df: pd.DataFrame, drop_ids=None,
                 sentinel=SENTINEL) -> pd.DataFrame:
    """Full cleaning pass; result satisfies the survey invariants."""
    check_schema(df)
    out = df[COLUMNS]
    out = out.dropna(subset=COLUMNS)
    out = drop_sentinel_rows(out, sentinel)
    out = dedupe_ids(out, drop=drop_ids)
    out = cast_categories(out)
    out = cast_age(out)
    out = recode_outcome(out)
    return out.reset_index(drop=True)


def find_issues(df: pd.DataFrame, sentinel=SENTINEL) -> list:
    """Data-quality problems the cleaner resolves by deletion."""
    issues = []
    for col, n in missing_counts(df).items():
        if n:
            issues.append(DataQualityIssue("missing", col, int(n)))
    for col, n in sentinel_mask(df, sentinel).sum().items():
        if n:
            issues.append(DataQualityIssue("sentinel", col, int(n)))
    if ID in df.columns:
        ids = duplicate_ids(df)
        if ids:
            n = int(df[ID].isin(ids).sum())
            issues.append(DataQualityIssue("duplicate_id", ID, n,
                                           tuple(ids)))
    return issues


def describe_levels(df: pd.DataFrame) -> pd.DataFrame:
    """Row count and hair-loss rate per level of every factor."""
    rows = []
    y = (df[OUTCOME] == "Yes").astype(float)
    for col in FACTORS:
        for lv, g in y.groupby(df[col], observed=True):
            rows.append({"factor": col, "level": lv,
                         "n": len(g), "hair_loss_rate": g.mean()})
    return pd.DataFrame(rows)


def main():
    print(f"{SEP}\nLOAD + CLEAN: {SURVEY_CSV}\n{SEP}")
    raw = load_survey()
    print(f"  {len(raw)} rows, {raw.shape[1]} columns")
    print("\nMissing values per column:")
    print(missing_counts(raw).to_string())
    print("\nData-quality issues:")
    for issue in find_issues(raw):
        print(f"  {issue.describe()}")
    df = clean_survey(raw)
    print(f"\nCleaned: {len(df)} rows "
          f"({len(raw) - len(df)} dropped)")
    lv = describe_levels(df)
    print(lv.to_string(index=False,
                       float_format="{:.3f}".format))
    print(f"\nAge: mean={df[AGE].mean():.1f} "
          f"range=[{df[AGE].min():.0f}, {df[AGE].max():.0f}]")
    print(f"Hair loss rate: "
          f"{np.mean(df[OUTCOME] == 'Yes'):.3f}")


if __name__ == "__main__":
    main()
