from .loader import clean_housing_frame, load_housing_data, load_kaggle_dataset
from .splitter import DataSplit, kfold_splits, split_by_index, split_data

__all__ = [
    "load_kaggle_dataset",
    "load_housing_data",
    "clean_housing_frame",
    "DataSplit",
    "split_data",
    "split_by_index",
    "kfold_splits",
]
