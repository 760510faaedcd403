import numpy as np
import pytest

from sick_pipeline import (
    clean_sick,
    encode_sick,
    load_train_index,
    make_train_index,
    save_train_index,
    split_by_index,
)


@pytest.fixture
def encoded(raw_sick):
    return encode_sick(clean_sick(raw_sick))


def test_load_reads_any_whitespace(index_file, train_index):
    loaded = load_train_index(index_file)
    assert np.array_equal(loaded, train_index)


def test_load_rejects_non_integer(tmp_path):
    path = tmp_path / "bad.txt"
    path.write_text("1 2 three 4\n")
    with pytest.raises(ValueError, match="non-integer"):
        load_train_index(str(path))


def test_load_rejects_empty_file(tmp_path):
    path = tmp_path / "empty.txt"
    path.write_text("  \n")
    with pytest.raises(ValueError, match="no indices"):
        load_train_index(str(path))


def test_split_is_disjoint_and_exhaustive(encoded, train_index):
    X, y = encoded
    X_train, X_test, y_train, y_test = split_by_index(X, y, train_index)
    assert len(X_train) == len(train_index)
    assert set(X_train.index).isdisjoint(X_test.index)
    assert set(X_train.index) | set(X_test.index) == set(X.index)
    assert list(X_train.index) == list(train_index - 1)
    assert y_train.index.equals(X_train.index)
    assert y_test.index.equals(X_test.index)


def test_split_accepts_zero_based_indices(encoded):
    X, y = encoded
    X_train, X_test, _, _ = split_by_index(X, y, [0, 1, 2], one_based=False)
    assert list(X_train.index) == [0, 1, 2]
    assert len(X_test) == len(X) - 3


@pytest.mark.parametrize("bad, message", [
    ([0, 1, 2], "outside"),
    ([1, 2, 151], "outside"),
    ([1, 2, 2], "repeated"),
    ([], "empty"),
])
def test_split_rejects_invalid_index(encoded, bad, message):
    X, y = encoded
    with pytest.raises(ValueError, match=message):
        split_by_index(X, y, bad)


def test_split_needs_rows_left_for_testing(encoded):
    X, y = encoded
    with pytest.raises(ValueError, match="nothing is left"):
        split_by_index(X, y, np.arange(1, len(X) + 1))


def test_drawn_index_is_stratified_and_reusable(encoded, tmp_path):
    _, y = encoded
    idx = make_train_index(y)
    assert idx.min() >= 1 and idx.max() <= len(y)
    assert abs(len(idx) - 100) <= 1
    assert y.iloc[idx - 1].mean() == pytest.approx(y.mean(), abs=0.02)

    path = tmp_path / "idx.txt"
    save_train_index(str(path), idx)
    assert np.array_equal(load_train_index(str(path)), idx)
