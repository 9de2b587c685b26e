# Perceptron Branch Predictor Package
"""
Perceptron Branch Predictor

A software model of a small perceptron-based dynamic branch predictor:
- Table of perceptrons indexed by word-aligned branch address
- Shared global history register
- Saturating weights with threshold-based training

Plus a trace-driven harness (traces, synthetic workloads, simulator)
for comparing it against bimodal and gshare baselines.
"""

from .predictors import (
    BasePredictor,
    BimodalPredictor,
    ConfigurationError,
    GSharePredictor,
    PerceptronConfig,
    PerceptronPredictor,
    PredictionResult,
)

__version__ = "1.0.0"

__all__ = [
    'BasePredictor',
    'BimodalPredictor',
    'ConfigurationError',
    'GSharePredictor',
    'PerceptronConfig',
    'PerceptronPredictor',
    'PredictionResult',
]
