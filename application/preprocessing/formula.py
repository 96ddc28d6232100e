from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass

from model.errors import SchemaError

ALL_PREDICTORS = "."


@dataclass(frozen=True)
class Formula:
    """
    Outcome column plus an ordered set of predictor columns.

    ``predictors=None`` means "every other column" and is expanded against the
    training schema when a recipe is fit.
    """

    outcome: str
    predictors: tuple[str, ...] | None = None

    def __post_init__(self) -> None:
        if not self.outcome:
            raise ValueError("Formula needs an outcome column")
        if self.predictors is None:
            return
        predictors = tuple(self.predictors)
        object.__setattr__(self, "predictors", predictors)
        if not predictors:
            raise ValueError("Formula needs at least one predictor")
        if self.outcome in predictors:
            raise ValueError(f"Outcome {self.outcome!r} cannot also be a predictor")
        dupes = sorted({p for p in predictors if predictors.count(p) > 1})
        if dupes:
            raise ValueError(f"Duplicate predictors: {dupes}")

    @classmethod
    def everything(cls, outcome: str) -> Formula:
        return cls(outcome, None)

    @classmethod
    def parse(cls, text: str) -> Formula:
        """Build a formula from ``"medv ~ rm + lstat"`` (or ``"medv ~ ."``)."""
        lhs, sep, rhs = text.partition("~")
        if not sep:
            raise ValueError(f"Formula {text!r} has no '~'")
        terms = [t.strip() for t in rhs.split("+") if t.strip()]
        if terms == [ALL_PREDICTORS]:
            return cls.everything(lhs.strip())
        return cls(lhs.strip(), tuple(terms))

    @property
    def uses_everything(self) -> bool:
        return self.predictors is None

    def input_columns(self, columns: Sequence[str]) -> list[str]:
        """Validate against a raw table and return outcome + predictors in table order."""
        columns = list(columns)
        self._require(columns, "training data")
        if self.predictors is None:
            return list(columns)
        wanted = {self.outcome, *self.predictors}
        return [c for c in columns if c in wanted]

    def resolve(self, columns: Sequence[str], origins: Mapping[str, str] | None = None) -> tuple[str, ...]:
        """
        Map predictors onto the columns of a preprocessed table.

        A predictor matches the column of the same name, or every column derived
        from it (e.g. the dummy columns of a categorical predictor).
        """
        columns = list(columns)
        origins = dict(origins or {})
        if self.outcome not in columns:
            raise SchemaError(f"Outcome column {self.outcome!r} is absent after preprocessing")

        if self.predictors is None:
            resolved = [c for c in columns if c != self.outcome]
            if not resolved:
                raise SchemaError("No predictor columns left after preprocessing")
            return tuple(resolved)

        resolved: list[str] = []
        missing: list[str] = []
        for predictor in self.predictors:
            matches = [c for c in columns if c != self.outcome and (c == predictor or origins.get(c) == predictor)]
            if not matches:
                missing.append(predictor)
            resolved.extend(m for m in matches if m not in resolved)
        if missing:
            raise SchemaError(f"Predictor(s) {missing} absent after preprocessing")
        return tuple(resolved)

    def _require(self, columns: Iterable[str], where: str) -> None:
        present = set(columns)
        needed = [self.outcome, *(self.predictors or ())]
        missing = [c for c in needed if c not in present]
        if missing:
            raise SchemaError(f"Formula column(s) {missing} not found in {where}")

    def __str__(self) -> str:
        rhs = " + ".join(self.predictors) if self.predictors else ALL_PREDICTORS
        return f"{self.outcome} ~ {rhs}"
