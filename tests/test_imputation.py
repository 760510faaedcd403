import numpy as np
import pandas as pd
import pytest

from sick_pipeline import (
    TrainAnchoredKNNImputer,
    clean_sick,
    encode_sick,
    impute_partitions,
    split_by_index,
)


@pytest.fixture
def partitions(raw_sick, train_index):
    X, y = encode_sick(clean_sick(raw_sick))
    X_train, X_test, _, _ = split_by_index(X, y, train_index)
    return X_train, X_test


def test_imputation_fills_every_cell(partitions):
    X_train, X_test = partitions
    assert X_train.isna().any().any() and X_test.isna().any().any()
    train_imp, test_imp, _ = impute_partitions(X_train, X_test)
    assert not train_imp.isna().any().any()
    assert not test_imp.isna().any().any()
    assert train_imp.index.equals(X_train.index)
    assert list(test_imp.columns) == list(X_test.columns)


def test_observed_values_are_kept_exactly(partitions):
    X_train, X_test = partitions
    train_imp, test_imp, _ = impute_partitions(X_train, X_test)
    observed = X_train.notna()
    assert (train_imp[observed] == X_train[observed]).sum().sum() == observed.sum().sum()
    observed = X_test.notna()
    assert (test_imp[observed] == X_test[observed]).sum().sum() == observed.sum().sum()


def test_binary_columns_stay_binary(partitions):
    X_train, X_test = partitions
    _, test_imp, imputer = impute_partitions(X_train, X_test)
    assert "sex" in imputer.binary_cols_
    assert "T3" not in imputer.binary_cols_
    assert set(test_imp["sex"].unique()) <= {0.0, 1.0}


def test_training_imputation_ignores_test_rows(partitions):
    X_train, X_test = partitions
    shifted = X_test.copy()
    shifted["T3"] = shifted["T3"] * 100.0
    train_a, _, _ = impute_partitions(X_train, X_test)
    train_b, _, _ = impute_partitions(X_train, shifted)
    pd.testing.assert_frame_equal(train_a, train_b)


def test_test_rows_are_filled_from_training_donors_only(partitions):
    X_train, X_test = partitions
    _, test_imp, _ = impute_partitions(X_train, X_test)

    # each test row is filled on its own: imputing one row alone gives the same answer
    row = X_test[X_test.isna().any(axis=1)].iloc[[0]]
    alone = TrainAnchoredKNNImputer().fit(X_train).transform(row)
    pd.testing.assert_frame_equal(alone, test_imp.loc[row.index])


def test_single_neighbor_copies_the_nearest_training_value():
    train = pd.DataFrame({"x": [0.0, 10.0, 20.0], "v": [1.0, 2.0, 3.0]})
    test = pd.DataFrame({"x": [9.0], "v": [np.nan]})
    imputer = TrainAnchoredKNNImputer(n_neighbors=1).fit(train)
    assert imputer.transform(test).loc[0, "v"] == 2.0


def test_transform_rejects_different_columns():
    train = pd.DataFrame({"x": [0.0, 1.0], "v": [1.0, 2.0]})
    imputer = TrainAnchoredKNNImputer(n_neighbors=1).fit(train)
    with pytest.raises(ValueError, match="Columns"):
        imputer.transform(train[["v", "x"]])
