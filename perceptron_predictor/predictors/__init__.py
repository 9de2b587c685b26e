# Predictors Package
from .base import (
    BasePredictor,
    BimodalPredictor,
    ConfigurationError,
    GSharePredictor,
    PredictionResult,
    PredictorStats,
)
from .perceptron import PerceptronConfig, PerceptronPredictor

__all__ = [
    'BasePredictor',
    'BimodalPredictor',
    'ConfigurationError',
    'GSharePredictor',
    'PredictionResult',
    'PredictorStats',
    'PerceptronConfig',
    'PerceptronPredictor',
]
