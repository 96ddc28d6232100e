from .formula import Formula
from .recipe import FittedRecipe, Recipe, Step, build_preprocessor
from .schema import HousingSchema, schema

__all__ = [
    "build_preprocessor",
    "Formula",
    "Recipe",
    "FittedRecipe",
    "Step",
    "HousingSchema",
    "schema",
]
