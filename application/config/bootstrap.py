from __future__ import annotations

import os
import random
import warnings
from pathlib import Path

import numpy as np
from loguru import logger

from core.settings import settings  # pydantic settings


def apply_global_settings() -> None:
    """
    Apply global runtime config:
      - reproducibility (numpy/python)
      - warnings filtering
      - artifact directory
    Safe to call multiple times.
    """

    # --- Reproducibility ---
    # NOTE: PYTHONHASHSEED must be set before Python starts.
    hash_seed = os.environ.get("PYTHONHASHSEED")
    if hash_seed:
        logger.debug("PYTHONHASHSEED={} (set at process start)", hash_seed)
    else:
        logger.info("PYTHONHASHSEED not set at launch; hash randomization may be nondeterministic.")

    seed_everything(settings.SEED)

    # artifact directory
    directory_path = Path(settings.ARTIFACT_DIR)
    directory_path.mkdir(parents=True, exist_ok=True)

    # --- Warnings ---
    if settings.IGNORE_DEPRECATION_WARNINGS:
        warnings.filterwarnings("ignore", category=DeprecationWarning)
    if settings.IGNORE_FUTURE_WARNINGS:
        warnings.filterwarnings("ignore", category=FutureWarning)

    logger.info(f"Environment initialized with seed={settings.SEED}")


def seed_everything(seed: int) -> None:
    os.environ["PYTHONHASHSEED"] = str(seed)
    random.seed(seed)
    np.random.seed(seed)
