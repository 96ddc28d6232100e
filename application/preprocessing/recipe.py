from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Any

import pandas as pd
from loguru import logger
from sklearn.base import TransformerMixin

from model.errors import SchemaError

from .formula import Formula
from .schema import schema
from .transformers import ColumnDropper, CorrelationFilter, DummyEncoder, Normalizer, RangeScaler


@dataclass(frozen=True)
class Step:
    """Declarative description of one preprocessing step (nothing fitted yet)."""

    kind: str
    columns: tuple[str, ...] = ()
    options: tuple[tuple[str, Any], ...] = ()

    def __str__(self) -> str:
        args = [*self.columns, *(f"{k}={v}" for k, v in self.options)]
        return f"{self.kind}({', '.join(args)})"


def _build_step(step: Step, exclude: tuple[str, ...]) -> TransformerMixin:
    options = dict(step.options)
    if step.kind == "categorical":
        return DummyEncoder(columns=step.columns)
    if step.kind == "range":
        return RangeScaler(columns=step.columns, exclude=exclude, feature_range=(options["min"], options["max"]))
    if step.kind == "normalize":
        return Normalizer(columns=step.columns, exclude=exclude)
    if step.kind == "corr":
        return CorrelationFilter(threshold=options["threshold"], columns=step.columns, exclude=exclude)
    if step.kind == "remove":
        return ColumnDropper(columns=step.columns)
    raise ValueError(f"Unknown step kind: {step.kind!r}")


@dataclass(frozen=True)
class Recipe:
    """
    Ordered list of preprocessing steps for a formula.

    Building a recipe only records steps; statistics are learned when ``fit``
    is called on a training table, which returns a frozen ``FittedRecipe``.
    Steps without explicit columns apply to every numeric predictor, never to
    the outcome or to indicator columns produced by ``as_categorical``.
    """

    formula: Formula
    steps: tuple[Step, ...] = ()

    def _add(self, kind: str, columns: tuple[str, ...] = (), **options: Any) -> Recipe:
        return replace(self, steps=(*self.steps, Step(kind, tuple(columns), tuple(options.items()))))

    def as_categorical(self, *columns: str) -> Recipe:
        if not columns:
            raise ValueError("as_categorical needs at least one column")
        return self._add("categorical", columns)

    def range_scale(self, *columns: str, min: float = 0.0, max: float = 1.0) -> Recipe:  # noqa: A002
        if min >= max:
            raise ValueError(f"Invalid range: min={min} must be below max={max}")
        return self._add("range", columns, min=min, max=max)

    def normalize(self, *columns: str) -> Recipe:
        return self._add("normalize", columns)

    def corr_filter(self, *columns: str, threshold: float = 0.9) -> Recipe:
        if not 0.0 <= threshold <= 1.0:
            raise ValueError(f"threshold must be in [0, 1], got {threshold}")
        return self._add("corr", columns, threshold=threshold)

    def remove(self, *columns: str) -> Recipe:
        if not columns:
            raise ValueError("remove needs at least one column")
        return self._add("remove", columns)

    @property
    def outcome(self) -> str:
        return self.formula.outcome

    def fit(self, train: pd.DataFrame) -> FittedRecipe:
        """Learn every step's statistics from ``train`` only and freeze them."""
        input_columns = self.formula.input_columns(train.columns)
        data = train[input_columns]

        fitted: list[tuple[str, TransformerMixin]] = []
        origins: dict[str, str] = {}
        indicator_cols: set[str] = set()
        for idx, step in enumerate(self.steps):
            if self.outcome in step.columns:
                raise SchemaError(f"Step {step} cannot touch the outcome column {self.outcome!r}")
            transformer = _build_step(step, exclude=(self.outcome, *sorted(indicator_cols)))
            data = transformer.fit(data).transform(data)
            if isinstance(transformer, DummyEncoder):
                origins.update(transformer.origins_)
                indicator_cols.update(transformer.origins_)
            fitted.append((f"{idx}_{step.kind}", transformer))

        columns = self.formula.resolve(data.columns, origins)
        logger.debug(f"Recipe fit on {len(train)} rows: {len(input_columns)} -> {len(data.columns)} columns")
        return FittedRecipe(
            formula=self.formula,
            input_columns=tuple(input_columns),
            output_columns=tuple(data.columns),
            columns=columns,
            origins=dict(origins),
            steps=tuple(fitted),
        )

    def __str__(self) -> str:
        return " |> ".join([str(self.formula), *(str(s) for s in self.steps)])


@dataclass(frozen=True)
class FittedRecipe:
    """A recipe whose statistics were learned from one training table."""

    formula: Formula
    input_columns: tuple[str, ...]
    output_columns: tuple[str, ...]
    # predictor columns the model is fit on, in order
    columns: tuple[str, ...]
    origins: Mapping[str, str] = field(default_factory=dict)
    steps: tuple[tuple[str, TransformerMixin], ...] = ()

    @property
    def outcome(self) -> str:
        return self.formula.outcome

    def transform(self, df: pd.DataFrame) -> pd.DataFrame:
        """
        Apply the frozen statistics to ``df``; ``df`` is left untouched.

        The outcome column may be absent (new rows to predict); every
        predictor column seen during fit must be present.
        """
        missing = [c for c in self.input_columns if c not in df.columns and c != self.outcome]
        if missing:
            raise SchemaError(f"Column(s) {missing} missing from data passed to a fitted recipe")
        data = df[[c for c in self.input_columns if c in df.columns]].copy()
        for _, transformer in self.steps:
            data = transformer.transform(data)
        return data

    def named_steps(self) -> dict[str, TransformerMixin]:
        return dict(self.steps)


def build_preprocessor(formula: Formula | None = None, corr_threshold: float | None = 0.9) -> Recipe:
    """Default housing recipe: categorical river dummy, [0, 1] rescaling, optional correlation filter."""
    recipe = Recipe(formula or Formula.everything(schema.target))
    categorical = [c for c in schema.categorical if recipe.formula.uses_everything or c in recipe.formula.predictors]
    if categorical:
        recipe = recipe.as_categorical(*categorical)
    recipe = recipe.range_scale()
    if corr_threshold is not None:
        recipe = recipe.corr_filter(threshold=corr_threshold)
    return recipe
