from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

import pandas as pd
from sklearn.model_selection import KFold, RepeatedKFold, train_test_split


@dataclass(frozen=True)
class DataSplit:
    """Disjoint train/test partition of one dataset, tagged with an id."""

    id: str
    train: pd.DataFrame
    test: pd.DataFrame

    def __post_init__(self) -> None:
        overlap = self.train.index.intersection(self.test.index)
        if len(overlap):
            raise ValueError(f"Split {self.id!r} has {len(overlap)} rows in both train and test")

    def __repr__(self) -> str:
        return f"DataSplit(id={self.id!r}, train={len(self.train)}, test={len(self.test)})"


def split_data(df: pd.DataFrame, test_size: float = 0.25, seed: int = 33, split_id: str = "Split") -> DataSplit:
    """Random holdout split; reproducible for a given seed."""
    if df.index.has_duplicates:
        raise ValueError("Row labels must be unique to split a dataset")
    train, test = train_test_split(df, test_size=test_size, random_state=seed, shuffle=True)
    return DataSplit(split_id, train, test)


def split_by_index(df: pd.DataFrame, test_index: Sequence, split_id: str = "Split") -> DataSplit:
    """Deterministic split: rows labelled ``test_index`` form the test set, the rest train."""
    test_index = pd.Index(test_index)
    unknown = test_index.difference(df.index)
    if len(unknown):
        raise ValueError(f"Test index labels not in data: {list(unknown)}")
    is_test = df.index.isin(test_index)
    return DataSplit(split_id, df[~is_test], df[is_test])


def kfold_splits(df: pd.DataFrame, v: int = 10, seed: int = 33, repeats: int = 1) -> list[DataSplit]:
    """
    V-fold cross-validation splits.

    Each row lands in exactly one test fold per repeat; ids are ``Fold01`` ...
    (``Repeat1/Fold01`` ... when repeated).
    """
    if v < 2:
        raise ValueError(f"v must be at least 2, got {v}")
    if v > len(df):
        raise ValueError(f"Cannot make {v} folds from {len(df)} rows")
    if repeats < 1:
        raise ValueError(f"repeats must be at least 1, got {repeats}")
    if df.index.has_duplicates:
        raise ValueError("Row labels must be unique to split a dataset")

    if repeats == 1:
        splitter = KFold(n_splits=v, shuffle=True, random_state=seed)
    else:
        splitter = RepeatedKFold(n_splits=v, n_repeats=repeats, random_state=seed)

    width = len(str(v))
    folds = []
    for i, (train_idx, test_idx) in enumerate(splitter.split(df)):
        fold_id = f"Fold{i % v + 1:0{width}d}"
        if repeats > 1:
            fold_id = f"Repeat{i // v + 1}/{fold_id}"
        folds.append(DataSplit(fold_id, df.iloc[train_idx], df.iloc[test_idx]))
    return folds
