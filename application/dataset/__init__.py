from .io import DataSplit, clean_housing_frame, kfold_splits, load_housing_data, split_by_index, split_data

__all__ = ["load_housing_data", "clean_housing_frame", "DataSplit", "split_data", "split_by_index", "kfold_splits"]
