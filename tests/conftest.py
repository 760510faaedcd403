import os
import tempfile

import numpy as np
import pandas as pd
import pytest

def pytest_configure(config):
    # dashboard reads ARTIFACTS_DIR and creates it at import time
    os.environ.setdefault("ARTIFACTS_DIR", tempfile.mkdtemp(prefix="sick-artifacts-"))


FLAGS = [
    "on_thyroxine", "query_on_thyroxine", "on_antithyroid_medication", "sick",
    "pregnant", "thyroid_surgery", "I131_treatment", "query_hypothyroid",
    "query_hyperthyroid", "lithium", "goitre", "tumor", "hypopituitary", "psych",
]


def _tf(values):
    return pd.Categorical(np.where(values, "t", "f"), categories=["f", "t"])


def _measured(name, values):
    measured = ~np.isnan(values)
    return {f"{name}_measured": _tf(measured), name: values}


@pytest.fixture
def raw_sick() -> pd.DataFrame:
    """
    Small table with the column layout and dtypes of the OpenML 'sick' frame.

    150 patients, 40 of them sick; T3 and TT4 carry the signal. Includes the
    455-year-old patient, the single-level TBG_measured, the empty TBG, and
    missing sex / TSH / T3 values.
    """
    rng = np.random.default_rng(0)
    n, n_sick = 150, 40
    is_sick = rng.permutation(np.r_[np.ones(n_sick, bool), np.zeros(n - n_sick, bool)])

    age = rng.integers(18, 90, n).astype(float)
    age[3] = 455.0

    sex = rng.choice(["F", "M"], n).astype(object)
    sex[rng.choice(n, 6, replace=False)] = np.nan

    tsh = rng.lognormal(0.3, 0.8, n)
    tsh[rng.choice(n, 10, replace=False)] = np.nan
    t3 = np.where(is_sick, rng.normal(1.0, 0.3, n), rng.normal(2.2, 0.4, n))
    t3[rng.choice(n, 15, replace=False)] = np.nan
    tt4 = np.where(is_sick, rng.normal(85, 15, n), rng.normal(110, 20, n))
    tt4[rng.choice(n, 8, replace=False)] = np.nan
    t4u = rng.normal(1.0, 0.15, n)
    t4u[rng.choice(n, 12, replace=False)] = np.nan
    # FTI is derived from TT4 and T4U, so it is missing wherever either one is
    fti = tt4 / t4u

    cols = {"age": age, "sex": pd.Categorical(sex, categories=["F", "M"])}
    for i, flag in enumerate(FLAGS):
        cols[flag] = _tf(rng.random(n) < 0.05 + 0.01 * i)
    cols.update(_measured("TSH", tsh))
    cols.update(_measured("T3", t3))
    cols.update(_measured("TT4", tt4))
    cols.update(_measured("T4U", t4u))
    cols.update(_measured("FTI", fti))
    cols["TBG_measured"] = _tf(np.zeros(n, bool))
    cols["TBG"] = np.full(n, np.nan)
    cols["referral_source"] = pd.Categorical(
        rng.choice(["STMW", "SVHC", "SVHD", "SVI", "other"], n),
        categories=["STMW", "SVHC", "SVHD", "SVI", "other"],
    )
    cols["Class"] = pd.Categorical(
        np.where(is_sick, "sick", "negative"), categories=["negative", "sick"]
    )
    return pd.DataFrame(cols)


@pytest.fixture
def train_index(raw_sick) -> np.ndarray:
    """1-based stratified two-thirds of the rows, shuffled."""
    rng = np.random.default_rng(1)
    sick = np.flatnonzero(raw_sick["Class"] == "sick")
    negative = np.flatnonzero(raw_sick["Class"] == "negative")
    picked = np.r_[
        rng.choice(sick, len(sick) * 2 // 3, replace=False),
        rng.choice(negative, len(negative) * 2 // 3, replace=False),
    ]
    return rng.permutation(picked) + 1


@pytest.fixture
def index_file(tmp_path, train_index) -> str:
    path = tmp_path / "train_index.txt"
    # several per line, mixed separators
    chunks = [" ".join(str(i) for i in train_index[k:k + 7]) for k in range(0, len(train_index), 7)]
    path.write_text("\n".join(chunks) + "\n")
    return str(path)
