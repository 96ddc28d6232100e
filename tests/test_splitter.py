import numpy as np
import pandas as pd
import pytest

from application.dataset.io.splitter import DataSplit, kfold_splits, split_by_index, split_data

pytestmark = pytest.mark.unit


def test_split_data_disjoint_and_covers_all_rows(housing_df):
    sp = split_data(housing_df, test_size=0.25, seed=33)

    # sizes add up
    assert len(sp.train) + len(sp.test) == len(housing_df)
    assert sp.train.index.intersection(sp.test.index).empty
    assert sp.train.index.union(sp.test.index).sort_values().equals(housing_df.index)
    assert len(sp.test) == 30


def test_split_data_is_reproducible_for_a_seed(housing_df):
    a = split_data(housing_df, seed=7)
    b = split_data(housing_df, seed=7)
    c = split_data(housing_df, seed=8)
    assert a.test.index.equals(b.test.index)
    assert not a.test.index.equals(c.test.index)


def test_split_by_index_uses_fixed_rows(line_df):
    sp = split_by_index(line_df, [7, 8, 9])
    assert sp.train.index.tolist() == list(range(7))
    assert sp.test.index.tolist() == [7, 8, 9]


def test_split_by_index_rejects_unknown_labels(line_df):
    with pytest.raises(ValueError, match="not in data"):
        split_by_index(line_df, [42])


def test_data_split_rejects_overlap(line_df):
    with pytest.raises(ValueError, match="both train and test"):
        DataSplit("bad", line_df.iloc[:6], line_df.iloc[5:])


@pytest.mark.parametrize("repeats", [1, 3])
def test_kfold_every_row_in_exactly_one_test_fold(housing_df, repeats):
    folds = kfold_splits(housing_df, v=10, seed=33, repeats=repeats)
    assert len(folds) == 10 * repeats

    for r in range(repeats):
        block = folds[r * 10 : (r + 1) * 10]
        test_rows = pd.Index(np.concatenate([f.test.index.to_numpy() for f in block]))
        assert len(test_rows) == len(housing_df)
        assert test_rows.sort_values().equals(housing_df.index)
        for f in block:
            assert f.train.index.intersection(f.test.index).empty
            assert len(f.train) + len(f.test) == len(housing_df)


def test_kfold_ids():
    df = pd.DataFrame({"x": range(20)})
    assert [f.id for f in kfold_splits(df, v=10)][:2] == ["Fold01", "Fold02"]
    assert [f.id for f in kfold_splits(df, v=5)][-1] == "Fold5"
    assert kfold_splits(df, v=2, repeats=2)[2].id == "Repeat2/Fold1"


@pytest.mark.parametrize("v", [1, 21])
def test_kfold_rejects_bad_v(v):
    with pytest.raises(ValueError):
        kfold_splits(pd.DataFrame({"x": range(20)}), v=v)
