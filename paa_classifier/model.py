"""
Model module.
Defines the gradient-boosted-tree classifier (CatBoost, Logloss objective).
Exposes: build_model(...) -> model instance
"""
from catboost import CatBoostClassifier

from paa_classifier.config import MODEL_PARAMS, RANDOM_STATE


def build_model(random_state: int = RANDOM_STATE, **kwargs) -> CatBoostClassifier:
    """
    Build an untrained CatBoost classifier from MODEL_PARAMS.
    Keyword arguments override individual hyperparameters.
    """
    params = {
        "random_seed": random_state,
        "allow_writing_files": False,
        "verbose": False,
        **MODEL_PARAMS,
    }
    params.update(kwargs)
    return CatBoostClassifier(**params)
