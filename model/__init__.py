from .errors import EvaluationError, FitError, PredictionError, SchemaError
from .evaluation import METRICS, compute_metrics, metric_set
from .fitted import FittedModel, fit_model
from .specs import REGISTRY, ModelSpec, get_model_spec

__all__ = [
    "REGISTRY",
    "ModelSpec",
    "get_model_spec",
    "FittedModel",
    "fit_model",
    "METRICS",
    "metric_set",
    "compute_metrics",
    "EvaluationError",
    "SchemaError",
    "FitError",
    "PredictionError",
]
