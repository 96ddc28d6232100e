from __future__ import annotations

from typing import Any

import kagglehub
import pandas as pd
from kagglehub import KaggleDatasetAdapter
from loguru import logger

from application.preprocessing.schema import HousingSchema
from application.preprocessing.schema import schema as default_schema
from core.settings import settings


def load_kaggle_dataset(handle: str, path: str, pandas_kwargs: dict[str, Any] | None = None) -> pd.DataFrame:
    """Load one file of a Kaggle dataset straight into a DataFrame."""
    return kagglehub.dataset_load(KaggleDatasetAdapter.PANDAS, handle, path, pandas_kwargs=pandas_kwargs or {})


def clean_housing_frame(df: pd.DataFrame, schema: HousingSchema = default_schema) -> pd.DataFrame:
    """Normalise headers, drop incomplete rows and validate the schema."""
    df = df.rename(columns=lambda c: str(c).strip().lower())
    # CSV exports sometimes carry the old row index as an unnamed first column
    df = df.drop(columns=[c for c in df.columns if c.startswith("unnamed")])
    schema.validate(df)

    df = df[list(schema.expected_cols())]
    n_before = len(df)
    df = df.dropna().reset_index(drop=True)
    if len(df) < n_before:
        logger.warning("Dropped {} rows with missing values", n_before - len(df))
    return df


def load_housing_data(
    path: str | None = None,
    handle: str | None = None,
    file: str | None = None,
    schema: HousingSchema = default_schema,
) -> pd.DataFrame:
    """
    Load the housing table from a local CSV, or from Kaggle when no path is given.

    Returns a DataFrame holding exactly the schema's columns with complete rows.
    """
    if path:
        df = pd.read_csv(path)
        source = path
    else:
        handle = handle or settings.DATASET_HANDLE
        file = file or settings.DATASET_FILE
        df = load_kaggle_dataset(handle, file)
        source = f"kaggle:{handle}/{file}"

    df = clean_housing_frame(df, schema)
    logger.info("Loaded {} rows x {} columns from {}", len(df), df.shape[1], source)
    return df
