class EvaluationError(Exception):
    """Base class for failures local to one evaluation unit."""

    kind = "evaluation"


class SchemaError(EvaluationError):
    """A requested column does not exist (before or after preprocessing)."""

    kind = "schema"


class FitError(EvaluationError):
    """A model cannot be fit to the given data."""

    kind = "fit"


class PredictionError(EvaluationError):
    """A fitted model cannot score rows whose schema mismatches its training schema."""

    kind = "predict"
