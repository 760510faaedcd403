# Enable postponed evaluation of type annotations (Python 3.7+ feature)
from __future__ import annotations

# Create lightweight configuration containers
from dataclasses import dataclass

# Type hints for better readability and static analysis
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

# Standard library utilities: OS ops, JSON
import os, json

# Core scientific libraries
import numpy as np  # Numerical arrays and math
import pandas as pd  # DataFrames and data manipulation
import matplotlib

matplotlib.use("Agg")  # reports are rendered headless
import matplotlib.pyplot as plt  # Plotting and visualization

# scikit-learn base classes and utilities
from sklearn.base import BaseEstimator, TransformerMixin  # For the custom imputer
from sklearn.datasets import fetch_openml  # Remote dataset catalog
from sklearn.impute import KNNImputer  # Nearest-neighbor imputation
from sklearn.preprocessing import MinMaxScaler  # Distance basis for k-NN
from sklearn.model_selection import (
    RandomizedSearchCV, StratifiedKFold, cross_val_score, train_test_split
)
from sklearn.tree import DecisionTreeClassifier, plot_tree

# Metrics for evaluation (probabilistic binary classification)
from sklearn.metrics import (
    auc, average_precision_score, precision_recall_curve, roc_auc_score
)

from scipy.stats import loguniform, randint  # Sampling distributions for hyperparams


# ============================ Configuration & Utils ============================

RANDOM_STATE = 42

# OpenML catalog entry of the thyroid "sick" table
SICK_OPENML_ID = 38
TARGET = "Class"
POSITIVE_LABEL = "sick"
NEGATIVE_LABEL = "negative"

# Found by inspection: TBG_measured has the single level "f", TBG is never measured
DEGENERATE_COLUMNS = ("TBG_measured", "TBG")

# One patient is recorded as 455 years old; 45 is the evident intended entry
AGE_ERROR_VALUE = 455
AGE_CORRECTED_VALUE = 45

FLAG_COLUMNS = (
    "on_thyroxine", "query_on_thyroxine", "on_antithyroid_medication", "sick",
    "pregnant", "thyroid_surgery", "I131_treatment", "query_hypothyroid",
    "query_hyperthyroid", "lithium", "goitre", "tumor", "hypopituitary",
    "psych", "TSH_measured", "T3_measured", "TT4_measured", "T4U_measured",
    "FTI_measured", "TBG_measured",
)
NUMERIC_COLUMNS = ("age", "TSH", "T3", "TT4", "T4U", "FTI", "TBG")
REFERRAL_LEVELS = ("STMW", "SVHC", "SVHD", "SVI", "other")

_FLAG_CODES = {"t": 1.0, "f": 0.0, True: 1.0, False: 0.0}
_SEX_CODES = {"M": 1.0, "F": 0.0}
_LABEL_CODES = {POSITIVE_LABEL: 1, NEGATIVE_LABEL: 0}


def fetch_sick(data_id: int = SICK_OPENML_ID, data_home: Optional[str] = None) -> pd.DataFrame:
    """
    Download the "sick" table from OpenML and return it with its target column.

    Args:
        data_id (int): Numeric OpenML identifier. Defaults to 38.
        data_home (Optional[str]): Cache directory for scikit-learn datasets.

    Returns:
        pd.DataFrame: Feature columns plus ``Class`` ("sick" / "negative").

    Notes:
        - Network and parsing failures propagate; there is no retry.
        - Later calls are served from the scikit-learn download cache.
    """
    bunch = fetch_openml(data_id=data_id, as_frame=True, data_home=data_home)
    df = bunch.data.copy()
    df[TARGET] = bunch.target
    return df


def _map_levels(s: pd.Series, codes: Dict[Any, float], name: str) -> pd.Series:
    """Map categorical levels to numeric codes, keeping missing values as NaN."""
    raw = s.astype("object")
    mapped = raw.map(codes)
    unknown = raw.notna() & mapped.isna()
    if unknown.any():
        bad = sorted({str(v) for v in raw[unknown]})
        raise ValueError(f"Column '{name}' has unexpected levels: {bad}")
    return mapped.astype(float)


# ================================= Inspection ==================================

def summarize_missing(df: pd.DataFrame) -> pd.DataFrame:
    """
    Per-column missing-value summary, most incomplete columns first.

    Parameters
    ----------
    df : pd.DataFrame
        Raw or cleaned patient table.

    Returns
    -------
    pd.DataFrame
        Indexed by column name with ``n_missing`` and ``frac_missing``.
        Columns without missing values are left out.

    Examples
    --------
    >>> summarize_missing(pd.DataFrame({"a": [1, None], "b": [1, 2]}))
       n_missing  frac_missing
    a          1           0.5
    """
    n_missing = df.isna().sum()
    out = pd.DataFrame({
        "n_missing": n_missing.astype(int),
        "frac_missing": (n_missing / max(len(df), 1)).round(4),
    })
    out = out[out["n_missing"] > 0]
    return out.sort_values("n_missing", ascending=False, kind="stable")


def find_degenerate_columns(df: pd.DataFrame) -> List[str]:
    """
    List the columns that carry no information for a classifier.

    A column is degenerate when it holds at most one distinct non-missing
    value: a single-level factor, or a column that is entirely missing.
    The target column is never reported.

    This is the inspection behind ``DEGENERATE_COLUMNS``; cleaning itself
    uses the fixed list so the dropped set does not drift with the data.
    """
    return [
        c for c in df.columns
        if c != TARGET and df[c].nunique(dropna=True) <= 1
    ]


# ================================== Cleaning ===================================

def clean_sick(df: pd.DataFrame, fix_age: bool = True) -> pd.DataFrame:
    """
    Apply the fixed cleaning steps to the raw "sick" table.

    Args:
        df (pd.DataFrame): Raw table as returned by ``fetch_sick``.
        fix_age (bool): If True, replace the impossible age ``455`` by ``45``.

    Returns:
        pd.DataFrame: A new frame; the input is left untouched.

    Notes:
        - Drops exactly ``DEGENERATE_COLUMNS``. A missing column raises
          ``KeyError`` because the schema is fixed.
        - No other outlier handling is performed.
    """
    out = df.drop(columns=list(DEGENERATE_COLUMNS))
    if fix_age:
        age = out["age"]
        out["age"] = age.mask(age == AGE_ERROR_VALUE, AGE_CORRECTED_VALUE)
    return out


def encode_sick(df: pd.DataFrame) -> Tuple[pd.DataFrame, pd.Series]:
    """
    Turn the cleaned table into a numeric feature matrix and a 0/1 label.

    Encoding rules
    --------------
    - ``t`` / ``f`` flags      -> 1.0 / 0.0
    - ``sex``                  -> 1.0 (M) / 0.0 (F)
    - ``referral_source``      -> one indicator column per fixed level
    - numeric measurements     -> float
    - ``Class``                -> 1 ("sick") / 0 ("negative")

    Missing values stay NaN so that each report decides how to treat them.
    Column order follows the input frame.

    Raises
    ------
    ValueError
        If the target is absent or carries a label other than "sick"/"negative",
        or if a column has a level outside its known set.
    """
    if TARGET not in df.columns:
        raise ValueError(f"Target '{TARGET}' not found in dataset columns.")

    labels = df[TARGET].astype("object")
    y = labels.map(_LABEL_CODES)
    if y.isna().any():
        bad = sorted({str(v) for v in labels[y.isna()]})
        raise ValueError(f"Unexpected target labels: {bad}")
    y = y.astype(int).rename(TARGET)

    parts: Dict[str, pd.Series] = {}
    for c in df.columns:
        if c == TARGET:
            continue
        s = df[c]
        if c in FLAG_COLUMNS:
            parts[c] = _map_levels(s, _FLAG_CODES, c)
        elif c == "sex":
            parts[c] = _map_levels(s, _SEX_CODES, c)
        elif c == "referral_source":
            raw = s.astype("object")
            unknown = raw.notna() & ~raw.isin(REFERRAL_LEVELS)
            if unknown.any():
                raise ValueError(
                    f"Column '{c}' has unexpected levels: {sorted(set(raw[unknown]))}"
                )
            for level in REFERRAL_LEVELS:
                parts[f"{c}_{level}"] = (raw == level).astype(float)
        elif c in NUMERIC_COLUMNS or pd.api.types.is_numeric_dtype(s.dtype):
            parts[c] = pd.to_numeric(s).astype(float)
        else:
            raise ValueError(f"Column '{c}' is not part of the known schema.")

    X = pd.DataFrame(parts, index=df.index)
    return X, y


# =================================== Split =====================================

def load_train_index(path: str) -> np.ndarray:
    """
    Read training row indices from a flat file of whitespace-separated integers.

    Any whitespace (spaces, tabs, newlines) separates entries. The values are
    returned as written; ``split_by_index`` interprets and validates them.
    """
    with open(path, "r", encoding="utf-8") as f:
        tokens = f.read().split()
    if not tokens:
        raise ValueError(f"Index file '{path}' contains no indices.")
    try:
        return np.array([int(t) for t in tokens], dtype=int)
    except ValueError as exc:
        raise ValueError(f"Index file '{path}' contains a non-integer entry.") from exc


def save_train_index(path: str, train_index: Iterable[int]) -> None:
    """Write training indices one per line, readable by ``load_train_index``."""
    np.savetxt(path, np.asarray(list(train_index), dtype=int), fmt="%d")


def make_train_index(
        y: pd.Series, train_frac: float = 2 / 3, random_state: int = RANDOM_STATE
) -> np.ndarray:
    """
    Draw a stratified training index (1-based, sorted) for runs without an index file.

    Examples
    --------
    >>> idx = make_train_index(pd.Series([0, 1] * 30))
    >>> bool(idx.min() >= 1 and idx.max() <= 60)
    True
    """
    positions = np.arange(len(y))
    train_pos, _ = train_test_split(
        positions, train_size=train_frac, stratify=np.asarray(y), random_state=random_state
    )
    return np.sort(train_pos) + 1


def split_by_index(
        X: pd.DataFrame, y: pd.Series, train_index: Sequence[int], one_based: bool = True
) -> Tuple[pd.DataFrame, pd.DataFrame, pd.Series, pd.Series]:
    """
    Partition rows into train/test using externally supplied row indices.

    Parameters
    ----------
    X : pd.DataFrame
        Encoded feature matrix, one row per patient.
    y : pd.Series
        Labels aligned with ``X``.
    train_index : sequence of int
        Row numbers of the training partition, in the order they are used.
    one_based : bool, default=True
        Whether ``train_index`` counts rows from 1 (as index files written by
        statistics packages do) or from 0.

    Returns
    -------
    tuple
        ``(X_train, X_test, y_train, y_test)``. Training rows follow the order
        of ``train_index``; test rows are every remaining row, in table order.

    Raises
    ------
    ValueError
        On an empty index, an index outside the table, a repeated index, or
        an index that leaves no rows for testing.

    Notes
    -----
    The two partitions are disjoint and their union is the whole table.
    """
    n = len(X)
    if len(y) != n:
        raise ValueError(f"X has {n} rows but y has {len(y)}.")

    pos = np.asarray(train_index, dtype=int) - (1 if one_based else 0)
    if pos.size == 0:
        raise ValueError("Training index is empty.")
    out_of_range = (pos < 0) | (pos >= n)
    if out_of_range.any():
        base = 1 if one_based else 0
        raise ValueError(
            f"{int(out_of_range.sum())} training indices fall outside rows "
            f"{base}..{n - 1 + base}."
        )
    if np.unique(pos).size != pos.size:
        raise ValueError("Training index contains repeated rows.")

    in_train = np.zeros(n, dtype=bool)
    in_train[pos] = True
    if in_train.all():
        raise ValueError("Training index covers every row; nothing is left for testing.")

    return X.iloc[pos], X.iloc[~in_train], y.iloc[pos], y.iloc[~in_train]


# ================================ Imputation ===================================

class TrainAnchoredKNNImputer(BaseEstimator, TransformerMixin):
    """
    k-nearest-neighbor imputation whose distance basis comes from training data.

    ``fit`` learns two things from the training partition only:
      1. per-column min/max ranges (``MinMaxScaler``), so every feature
         contributes on the same scale to the neighbor distance;
      2. the donor pool of a ``KNNImputer``.

    ``transform`` then fills any frame (training or test) from those training
    donors. Observed values are returned exactly as given; only missing
    cells are replaced. Binary columns (flags and indicators) are rounded
    back to 0/1, which amounts to a majority vote of the neighbors.

    Parameters
    ----------
    n_neighbors : int, default=5
        Number of donors averaged for each missing value.
    binary_cols : list[str], optional
        Columns to round after imputation. If ``None``, every training
        column whose observed values are all 0 or 1 is treated as binary.

    Attributes
    ----------
    columns_ : list[str]
        Training column order; ``transform`` expects the same columns.
    binary_cols_ : list[str]
        Resolved binary columns.
    scaler_ : MinMaxScaler
        Fitted on training data.
    knn_ : KNNImputer
        Fitted on the scaled training data.

    Examples
    --------
    >>> train = pd.DataFrame({"a": [0.0, 1.0, np.nan], "b": [1.0, 2.0, 3.0]})
    >>> imp = TrainAnchoredKNNImputer(n_neighbors=1).fit(train)
    >>> imp.transform(train)["a"].isna().any()
    False
    """

    def __init__(self, n_neighbors: int = 5, binary_cols: Optional[List[str]] = None) -> None:
        self.n_neighbors = n_neighbors
        self.binary_cols = binary_cols

    # ------------------------------------------------------------------ #
    # scikit-learn API                                                   #
    # ------------------------------------------------------------------ #
    def fit(self, X: pd.DataFrame, y: Optional[object] = None) -> "TrainAnchoredKNNImputer":
        self.columns_ = list(X.columns)
        if self.binary_cols is None:
            self.binary_cols_ = [
                c for c in self.columns_
                if X[c].notna().any() and X[c].dropna().isin([0.0, 1.0]).all()
            ]
        else:
            self.binary_cols_ = list(self.binary_cols)
        self.scaler_ = MinMaxScaler().fit(X.to_numpy(dtype=float))
        self.knn_ = KNNImputer(n_neighbors=self.n_neighbors, keep_empty_features=True)
        self.knn_.fit(self.scaler_.transform(X.to_numpy(dtype=float)))
        return self

    def transform(self, X: pd.DataFrame) -> pd.DataFrame:
        if list(X.columns) != self.columns_:
            raise ValueError("Columns differ from those seen during fit.")
        scaled = self.scaler_.transform(X.to_numpy(dtype=float))
        filled = self.scaler_.inverse_transform(self.knn_.transform(scaled))
        filled = pd.DataFrame(filled, columns=self.columns_, index=X.index)

        out = X.astype(float).where(X.notna(), filled)
        for c in self.binary_cols_:
            out[c] = out[c].round().clip(0.0, 1.0)
        return out


def impute_partitions(
        X_train: pd.DataFrame, X_test: pd.DataFrame, n_neighbors: int = 5
) -> Tuple[pd.DataFrame, pd.DataFrame, TrainAnchoredKNNImputer]:
    """
    Impute both partitions from an imputer fitted on the training rows only.

    Test rows never enter the donor pool or the distance ranges, so nothing
    about the test partition reaches the training data; each test row is
    filled from training neighbors independently of the other test rows.
    """
    imputer = TrainAnchoredKNNImputer(n_neighbors=n_neighbors).fit(X_train)
    return imputer.transform(X_train), imputer.transform(X_test), imputer


# ============================== Models & Search ================================

# Knobs: minimum split size, minimum leaf size, complexity penalty, depth
TREE_PARAM_DISTRIBUTIONS: Dict[str, Any] = {
    "min_samples_split": randint(2, 65),
    "min_samples_leaf": randint(1, 33),
    # loguniform ensures coverage across several orders of magnitude
    "ccp_alpha": loguniform(1e-5, 1e-2),
    "max_depth": randint(1, 31),
}


def make_tree(random_state: int = RANDOM_STATE) -> DecisionTreeClassifier:
    """Untuned decision tree: library defaults, fixed seed."""
    return DecisionTreeClassifier(random_state=random_state)


def make_folds(cv: int = 5, random_state: int = RANDOM_STATE) -> StratifiedKFold:
    """Shuffled stratified folds shared by the search and the CV evaluation."""
    return StratifiedKFold(n_splits=cv, shuffle=True, random_state=random_state)


def tune_tree(
        X: pd.DataFrame,
        y: pd.Series,
        n_iter: int = 50,
        cv: int = 5,
        random_state: int = RANDOM_STATE,
        verbose: int = 0,
        error_score: str | float = "raise",
) -> RandomizedSearchCV:
    """
    Random search over the tree hyperparameters, scored by cross-validated AUC.

    Args:
        X (pd.DataFrame): Training features (may contain NaN; the tree routes them).
        y (pd.Series): Training labels (0/1).
        n_iter (int): Number of sampled parameter combinations. Defaults to 50.
        cv (int): Number of stratified folds. Defaults to 5.
        random_state (int): Seed for sampling, folds and the tree.
        verbose (int): Verbosity passed to ``RandomizedSearchCV``.
        error_score (str | float): Error handling inside CV. Defaults to "raise".

    Returns:
        RandomizedSearchCV: Fitted search; ``best_estimator_`` is refit on all
        of ``X`` with ``best_params_``.

    Notes:
        - Pure random sampling within ``TREE_PARAM_DISTRIBUTIONS``; no early
          stopping and no guided sampling.
        - Runs single-process (``n_jobs=1``).
    """
    search = RandomizedSearchCV(
        estimator=make_tree(random_state),
        param_distributions=TREE_PARAM_DISTRIBUTIONS,
        n_iter=n_iter,
        scoring="roc_auc",
        cv=make_folds(cv, random_state),
        n_jobs=1,
        refit=True,
        random_state=random_state,
        verbose=verbose,
        error_score=error_score,
    )
    search.fit(X, y)
    return search


# ================================= Evaluation ==================================

def _positive_proba(model, X: pd.DataFrame) -> np.ndarray:
    """Predicted probability of class 1."""
    proba = model.predict_proba(X)
    return proba[:, list(model.classes_).index(1)]


def cross_validated_auc(
        model, X: pd.DataFrame, y: pd.Series, cv: int = 5, random_state: int = RANDOM_STATE
) -> np.ndarray:
    """Per-fold ROC AUC of ``model`` refit on each training fold."""
    return cross_val_score(
        model, X, y, scoring="roc_auc", cv=make_folds(cv, random_state), n_jobs=1,
        error_score="raise",
    )


def heldout_auprc(model, X_test: pd.DataFrame, y_test: pd.Series) -> float:
    """
    Area under the precision-recall curve on the held-out partition.

    The curve comes from ``precision_recall_curve`` on class-1 probabilities
    and is integrated with the trapezoidal ``auc``.
    """
    if pd.Series(y_test).nunique() < 2:
        raise ValueError("AUPRC needs both classes in the test labels.")
    precision, recall, _ = precision_recall_curve(y_test, _positive_proba(model, X_test))
    return float(auc(recall, precision))


def evaluate_models(
        models: Dict[str, Any],
        X_train: pd.DataFrame,
        y_train: pd.Series,
        X_test: pd.DataFrame,
        y_test: pd.Series,
        cv: int = 5,
        random_state: int = RANDOM_STATE,
) -> pd.DataFrame:
    """
    Score each fitted model and return a side-by-side comparison table.

    Columns
    -------
    cv_auc_mean, cv_auc_std
        ROC AUC over stratified folds of the training partition.
    test_auprc
        Trapezoidal area under the held-out precision-recall curve.
    test_average_precision
        Step-wise AUPRC estimate, reported alongside for reference.
    test_roc_auc
        ROC AUC on the held-out partition.
    """
    rows: Dict[str, Dict[str, float]] = {}
    for name, model in models.items():
        cv_scores = cross_validated_auc(model, X_train, y_train, cv=cv, random_state=random_state)
        proba = _positive_proba(model, X_test)
        rows[name] = {
            "cv_auc_mean": float(np.mean(cv_scores)),
            "cv_auc_std": float(np.std(cv_scores)),
            "test_auprc": heldout_auprc(model, X_test, y_test),
            "test_average_precision": float(average_precision_score(y_test, proba)),
            "test_roc_auc": float(roc_auc_score(y_test, proba)),
        }
    return pd.DataFrame.from_dict(rows, orient="index")


# =============================== Report Config =================================
@dataclass
class ReportConfig:
    """
    Settings of one report run.

    Attributes
    ----------
    name : str
        Variant name; also the artifacts sub-directory.
    fix_age : bool, default=False
        Correct the impossible age entry during cleaning.
    impute : bool, default=False
        Fill missing values with ``TrainAnchoredKNNImputer`` after the split.
        When False the tree receives NaN and routes missing values itself.
    n_neighbors : int, default=5
        Neighbor count for imputation.
    n_iter : int, default=50
        Random-search budget.
    cv : int, default=5
        Folds for both search and CV evaluation.
    random_state : int, default=RANDOM_STATE
        Seed for folds, sampling and trees.
    """
    name: str
    fix_age: bool = False
    impute: bool = False
    n_neighbors: int = 5
    n_iter: int = 50
    cv: int = 5
    random_state: int = RANDOM_STATE


BASELINE_REPORT = ReportConfig(name="baseline")
KNN_REPORT = ReportConfig(name="knn", fix_age=True, impute=True)
REPORTS: Dict[str, ReportConfig] = {r.name: r for r in (BASELINE_REPORT, KNN_REPORT)}


# ================================ Train / Eval =================================

def _plain(v: Any) -> Any:
    """numpy scalar -> Python scalar for JSON."""
    return v.item() if hasattr(v, "item") else v


def run_report(
        cfg: ReportConfig,
        df: Optional[pd.DataFrame] = None,
        train_index: Optional[Sequence[int]] = None,
        data_id: int = SICK_OPENML_ID,
        data_home: Optional[str] = None,
        verbose: int = 0,
        save_dir: str = "artifacts",
) -> Tuple[Dict[str, Any], Dict[str, Any], Tuple[pd.DataFrame, pd.Series]]:
    """
    Run one report end to end: clean, split, (impute), fit, search, evaluate.

    Args:
        cfg (ReportConfig): Variant settings (see ``BASELINE_REPORT`` / ``KNN_REPORT``).
        df (Optional[pd.DataFrame]): Raw table. If None, fetched from OpenML.
        train_index (Optional[Sequence[int]]): 1-based training rows. If None,
            a stratified two-thirds index is drawn with ``cfg.random_state``.
        data_id (int): OpenML id used when ``df`` is None.
        data_home (Optional[str]): OpenML cache directory.
        verbose (int): Verbosity for the random search.
        save_dir (str): Directory for ``metrics.json`` and plots.

    Returns:
        Tuple[Dict[str, Any], Dict[str, Any], Tuple[pd.DataFrame, pd.Series]]:
            - fitted: models, search object, imputer, score table and the index used.
            - metrics: JSON-ready summary (also written to ``metrics.json``).
            - (X_test, y_test): Held-out partition as the models saw it.

    Notes:
        - Any failure (fetch, index validation, library call) propagates.
    """
    os.makedirs(save_dir, exist_ok=True)

    if df is None:
        df = fetch_sick(data_id=data_id, data_home=data_home)

    cleaned = clean_sick(df, fix_age=cfg.fix_age)
    X, y = encode_sick(cleaned)

    if train_index is None:
        train_index = make_train_index(y, random_state=cfg.random_state)
    X_train, X_test, y_train, y_test = split_by_index(X, y, train_index)

    imputer = None
    if cfg.impute:
        X_train, X_test, imputer = impute_partitions(X_train, X_test, cfg.n_neighbors)

    untuned = make_tree(cfg.random_state).fit(X_train, y_train)
    search = tune_tree(
        X_train, y_train, n_iter=cfg.n_iter, cv=cfg.cv,
        random_state=cfg.random_state, verbose=verbose,
    )
    tuned = search.best_estimator_

    models = {"untuned": untuned, "tuned": tuned}
    scores = evaluate_models(
        models, X_train, y_train, X_test, y_test, cv=cfg.cv, random_state=cfg.random_state
    )

    metrics: Dict[str, Any] = {
        "variant": cfg.name,
        "fix_age": cfg.fix_age,
        "impute": cfg.impute,
        "n_train": int(len(X_train)),
        "n_test": int(len(X_test)),
        "n_features": int(X_train.shape[1]),
        "positive_rate_train": float(y_train.mean()),
        "best_params": {k: _plain(v) for k, v in search.best_params_.items()},
        "search_best_cv_auc": float(search.best_score_),
        "scores": scores.to_dict(orient="index"),
    }
    with open(os.path.join(save_dir, "metrics.json"), "w", encoding="utf-8") as f:
        json.dump(metrics, f, indent=2)

    visualize_evaluation(models, X_test, y_test, save_dir=save_dir)

    fitted = {
        "untuned": untuned,
        "tuned": tuned,
        "search_cv": search,
        "imputer": imputer,
        "scores": scores,
        "train_index": np.asarray(train_index, dtype=int),
    }
    return fitted, metrics, (X_test, y_test)


def visualize_evaluation(
        models: Dict[str, Any], X_test: pd.DataFrame, y_test: pd.Series, save_dir: str = "artifacts"
) -> None:
    """
    Save the report figures: precision-recall curves and the tuned tree.

    Args:
        models (Dict[str, Any]): Fitted classifiers keyed by display name.
        X_test (pd.DataFrame): Held-out features.
        y_test (pd.Series): Held-out labels.
        save_dir (str): Directory to save figures. Defaults to "artifacts".

    Notes:
        - Writes ``pr_curve.png`` (all models on one axis) and ``tree.png``
          (top levels of the "tuned" model, when present).
        - A figure that cannot be drawn is reported and skipped; scores are
          unaffected.
    """
    os.makedirs(save_dir, exist_ok=True)

    # Precision-recall curves, one line per model
    fig1, ax1 = plt.subplots()
    try:
        for name, model in models.items():
            prec, rec, _ = precision_recall_curve(y_test, _positive_proba(model, X_test))
            ax1.plot(rec, prec, label=f"{name} (AUPRC={auc(rec, prec):.3f})")
        ax1.set_xlabel("Recall")
        ax1.set_ylabel("Precision")
        ax1.set_title("Precision–Recall Curve (test)")
        ax1.legend(loc="lower left")
        fig1.tight_layout()
        fig1.savefig(os.path.join(save_dir, "pr_curve.png"), dpi=140)
    except Exception as e:
        print("PR curve unavailable:", e)
    finally:
        plt.close(fig1)

    # Tuned tree, top levels only to stay legible
    tuned = models.get("tuned")
    if tuned is None:
        return
    fig2, ax2 = plt.subplots(figsize=(14, 7))
    try:
        plot_tree(
            tuned,
            max_depth=3,
            feature_names=list(X_test.columns),
            class_names=[NEGATIVE_LABEL, POSITIVE_LABEL],
            filled=True,
            fontsize=7,
            ax=ax2,
        )
        ax2.set_title("Tuned decision tree (top levels)")
        fig2.tight_layout()
        fig2.savefig(os.path.join(save_dir, "tree.png"), dpi=140)
    except Exception as e:
        print("Tree plot unavailable:", e)
    finally:
        plt.close(fig2)
