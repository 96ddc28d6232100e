from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # seed for reproducibility
    SEED: int = 33
    PYTHONHASHSEED: str = str(SEED)

    # ---- Warnings ----
    IGNORE_DEPRECATION_WARNINGS: bool = True
    IGNORE_FUTURE_WARNINGS: bool = True

    MLFLOW_TRACKING_URI: str | None = None
    MLFLOW_EXPERIMENT_NAME: str | None = "housing-model-evaluation"

    # dataset: a local CSV wins over the kaggle handle
    DATASET_PATH: str | None = None
    DATASET_HANDLE: str = "altavish/boston-housing-dataset"
    DATASET_FILE: str = "HousingData.csv"

    # evaluation config
    TARGET: str = "medv"
    TEST_SIZE: float = 0.25
    CV_FOLDS: int = 10
    CV_REPEATS: int = 1
    CORR_THRESHOLD: float | None = 0.9
    METRICS: str = "rmse,rsq,mae"
    N_JOBS: int = 1

    # artifacts directory
    ARTIFACT_DIR: str = "artifacts"


settings = Settings()
