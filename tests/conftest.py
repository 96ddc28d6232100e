import numpy as np
import pandas as pd
import pytest

from application.preprocessing.schema import schema

# ---------- Shared tiny DataFrames ----------


@pytest.fixture
def housing_df():
    """Synthetic frame with the housing schema; `rad` and `tax` are almost collinear."""
    rng = np.random.default_rng(33)
    n = 120
    df = pd.DataFrame({col: rng.uniform(0, 10, n) for col in schema.numeric})
    df["tax"] = 2 * df["rad"] + rng.normal(0, 0.05, n)
    df["chas"] = np.tile([0, 1, 0, 0], n // 4)
    df["medv"] = 20 + 2 * df["rm"] - 1.5 * df["lstat"] + 3 * df["chas"] + rng.normal(0, 1, n)
    return df[list(schema.expected_cols())]


@pytest.fixture
def line_df():
    """10 rows, one predictor, one outcome (roughly y = 2x + 1)."""
    return pd.DataFrame(
        {
            "x": np.arange(1, 11, dtype=float),
            "y": [3.1, 4.9, 7.2, 8.8, 11.1, 13.0, 14.9, 17.2, 18.8, 21.1],
        }
    )


@pytest.fixture
def corr_df():
    """Outcome `y`, predictors `a`/`b` correlated ~0.94, predictor `c` nearly uncorrelated."""
    a = np.arange(1, 11, dtype=float)
    b = a + np.array([1, -1] * 5, dtype=float)
    c = np.array([1, -1, -1, 1, 1, -1, -1, 1, 1, -1], dtype=float)
    return pd.DataFrame({"y": 3 * a + c, "a": a, "b": b, "c": c})


@pytest.fixture
def tmp_housing_csv(tmp_path, housing_df):
    out = housing_df.copy()
    out.columns = [c.upper() for c in out.columns]
    out.insert(0, "Unnamed: 0", range(len(out)))
    out.loc[3, "CRIM"] = np.nan
    p = tmp_path / "HousingData.csv"
    out.to_csv(p, index=False)
    return str(p)
