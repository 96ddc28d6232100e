from dataclasses import dataclass

import pandas as pd

from core import settings
from model.errors import SchemaError


@dataclass(frozen=True)
class HousingSchema:
    """
    Central definition of the housing table used for model evaluation.

    Each attribute groups columns of a specific semantic type.
    Keeping them here ensures a single source of truth across
    data loading, preprocessing, and model evaluation code.
    """

    numeric: tuple[str, ...] = (
        "crim",
        "zn",
        "indus",
        "nox",
        "rm",
        "age",
        "dis",
        "rad",
        "tax",
        "ptratio",
        "b",
        "lstat",
    )
    # Charles River dummy: nominal, but stored as 0/1
    categorical: tuple[str, ...] = ("chas",)
    target: str = settings.TARGET or "medv"  # median home value in $1000s

    def feature_cols(self) -> tuple[str, ...]:
        """Return all input feature columns (in deterministic order)."""
        return *self.numeric, *self.categorical

    def expected_cols(self) -> tuple[str, ...]:
        """Return the full expected set of columns (features + target)."""
        return *self.feature_cols(), self.target

    def validate(self, df: pd.DataFrame) -> None:
        """Raise a SchemaError if any expected column is missing."""
        missing = set(self.expected_cols()) - set(df.columns)
        if missing:
            raise SchemaError(f"Missing columns: {sorted(missing)}")


schema = HousingSchema()

