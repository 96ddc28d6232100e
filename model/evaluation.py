from collections.abc import Callable, Sequence

import numpy as np
import pandas as pd
from sklearn.metrics import (
    mean_absolute_error,
    mean_absolute_percentage_error,
    mean_squared_error,
    r2_score,
    root_mean_squared_error,
)

DEFAULT_METRICS = ("rmse", "rsq", "mae")


def _rsq(truth: np.ndarray, estimate: np.ndarray) -> float:
    # squared Pearson correlation; undefined for constant inputs
    if np.std(truth) == 0 or np.std(estimate) == 0:
        return float("nan")
    return float(np.corrcoef(truth, estimate)[0, 1] ** 2)


METRICS: dict[str, Callable[[np.ndarray, np.ndarray], float]] = {
    "rmse": lambda t, e: float(root_mean_squared_error(t, e)),
    "mse": lambda t, e: float(mean_squared_error(t, e)),
    "mae": lambda t, e: float(mean_absolute_error(t, e)),
    "rsq": _rsq,
    "rsq_trad": lambda t, e: float(r2_score(t, e)),
    "mape": lambda t, e: float(mean_absolute_percentage_error(t, e) * 100),
}

# metrics where a larger value is better
MAXIMIZE = frozenset({"rsq", "rsq_trad"})


def metric_set(*names: str) -> tuple[str, ...]:
    """Validate metric names; no names means the default regression set."""
    if not names:
        return DEFAULT_METRICS
    unknown = [n for n in names if n not in METRICS]
    if unknown:
        raise ValueError(f"Unknown metric(s) {unknown}. Valid metrics: {sorted(METRICS)}")
    return tuple(dict.fromkeys(names))


def compute_metrics(truth, estimate, metrics: Sequence[str] = DEFAULT_METRICS) -> pd.DataFrame:
    """Score ``estimate`` against ``truth``; one row per metric."""
    t = np.asarray(truth, dtype=float)
    e = np.asarray(estimate, dtype=float)
    if t.shape != e.shape:
        raise ValueError(f"truth and estimate differ in shape: {t.shape} vs {e.shape}")
    if t.size == 0:
        raise ValueError("Cannot compute metrics on zero rows")
    names = metric_set(*metrics)
    return pd.DataFrame(
        {
            "metric": list(names),
            "estimator": "standard",
            "estimate": [METRICS[n](t, e) for n in names],
        }
    )
