from .cross_validation import build_units, cross_validation_pipeline, last_fit
from .evaluation import (
    EvaluationResult,
    EvaluationUnit,
    bake_unit,
    evaluate_unit,
    leaderboard,
    run_evaluation,
    summarize,
)

__all__ = [
    "EvaluationUnit",
    "EvaluationResult",
    "bake_unit",
    "evaluate_unit",
    "run_evaluation",
    "summarize",
    "leaderboard",
    "build_units",
    "last_fit",
    "cross_validation_pipeline",
]
