from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from sklearn.base import BaseEstimator
from sklearn.linear_model import LinearRegression
from sklearn.neighbors import KNeighborsRegressor
from sklearn.svm import SVR

# algorithm -> (estimator factory, {spec param -> estimator param}, default spec params)
_ENGINES: dict[str, tuple[type[BaseEstimator], dict[str, str], dict[str, Any]]] = {
    "linear_reg": (LinearRegression, {}, {}),
    "svm_rbf": (
        SVR,
        {"cost": "C", "rbf_sigma": "gamma", "margin": "epsilon"},
        {"cost": 1.0, "rbf_sigma": "scale", "margin": 0.1},
    ),
    "svm_linear": (SVR, {"cost": "C", "margin": "epsilon"}, {"cost": 1.0, "margin": 0.1}),
    "nearest_neighbor": (KNeighborsRegressor, {"neighbors": "n_neighbors"}, {"neighbors": 5}),
}

_FIXED_PARAMS: dict[str, dict[str, Any]] = {
    "svm_rbf": {"kernel": "rbf"},
    "svm_linear": {"kernel": "linear"},
}

# algorithms whose fit is undefined on a rank-deficient design matrix
FULL_RANK_ALGORITHMS = frozenset({"linear_reg"})


@dataclass(frozen=True)
class ModelSpec:
    """
    An unfit algorithm plus hyperparameters.

    ``build()`` hands out a fresh sklearn estimator every time, so one spec can
    be fit on any number of folds without sharing state between them.
    """

    algorithm: str
    params: Mapping[str, Any] = field(default_factory=dict)
    engine: str = "sklearn"

    def __post_init__(self) -> None:
        if self.algorithm not in _ENGINES:
            raise ValueError(f"Unknown algorithm {self.algorithm!r}. Valid: {sorted(_ENGINES)}")
        if self.engine != "sklearn":
            raise ValueError(f"Unsupported engine {self.engine!r}")
        _, mapping, _ = _ENGINES[self.algorithm]
        unknown = sorted(set(self.params) - set(mapping))
        if unknown:
            raise ValueError(f"Unknown parameter(s) for {self.algorithm}: {unknown}")
        object.__setattr__(self, "params", dict(self.params))

    @property
    def requires_full_rank(self) -> bool:
        return self.algorithm in FULL_RANK_ALGORITHMS

    def resolved_params(self) -> dict[str, Any]:
        _, _, defaults = _ENGINES[self.algorithm]
        return {**defaults, **self.params}

    def build(self) -> BaseEstimator:
        factory, mapping, _ = _ENGINES[self.algorithm]
        kwargs = {mapping[k]: v for k, v in self.resolved_params().items()}
        return factory(**_FIXED_PARAMS.get(self.algorithm, {}), **kwargs)

    def update(self, **params: Any) -> ModelSpec:
        return ModelSpec(self.algorithm, {**self.params, **params}, self.engine)

    def __str__(self) -> str:
        args = ", ".join(f"{k}={v}" for k, v in self.resolved_params().items())
        return f"{self.algorithm}({args})"


REGISTRY: dict[str, ModelSpec] = {
    "lm": ModelSpec("linear_reg"),
    "svm_rbf": ModelSpec("svm_rbf", {"cost": 1.0, "rbf_sigma": 0.1}),
    "svm_linear": ModelSpec("svm_linear"),
    "knn": ModelSpec("nearest_neighbor", {"neighbors": 5}),
}


def get_model_spec(name: str, **params: Any) -> ModelSpec:
    """Look up a registered spec by name, optionally overriding hyperparameters."""
    try:
        spec = REGISTRY[name]
    except KeyError:
        raise ValueError(f"Invalid model name: {name!r}. Valid models are: {', '.join(sorted(REGISTRY))}") from None
    return spec.update(**params) if params else spec
