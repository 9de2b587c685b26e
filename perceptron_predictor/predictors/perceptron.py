"""
Perceptron Branch Predictor

Implementation based on Jiménez & Lin (2001).
A small table of perceptrons indexed by word-aligned branch address,
each computing a weighted sum of one shared global history register.

Prediction:  sum = w0 + Σ (h[i] ? w[i+1] : -w[i+1]),  taken if sum >= 0
Training:    if mispredicted or |sum| <= threshold:
                 w0     += taken ? +1 : -1
                 w[i+1] += (h[i] == taken) ? +1 : -1
             then shift the outcome into the history (always)
"""

import logging
from dataclasses import dataclass, asdict, fields
from typing import Tuple, Union
import numpy as np

from .base import (BasePredictor, ConfigurationError, PredictionResult,
                   _check_address)
from ..components.history import GlobalHistoryRegister
from ..components.tables import WeightTable, IndexingScheme, is_power_of_two

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PerceptronConfig:
    """Construction parameters of a perceptron predictor."""
    num_perceptrons: int = 8
    history_length: int = 7
    weight_bits: int = 8
    training_threshold: int = 15

    def __post_init__(self):
        if not is_power_of_two(self.num_perceptrons):
            raise ConfigurationError(
                f"num_perceptrons must be a power of 2, got {self.num_perceptrons}")
        if self.history_length < 1:
            raise ConfigurationError(
                f"history_length must be at least 1, got {self.history_length}")
        if self.weight_bits < 2:
            raise ConfigurationError(
                f"weight_bits must be at least 2, got {self.weight_bits}")
        if self.training_threshold < 0:
            raise ConfigurationError(
                f"training_threshold must be non-negative, got {self.training_threshold}")

    @classmethod
    def from_dict(cls, config: dict) -> 'PerceptronConfig':
        known = {f.name for f in fields(cls)}
        unknown = set(config) - known
        if unknown:
            raise ConfigurationError(
                f"Unknown perceptron config keys: {sorted(unknown)}")
        return cls(**config)

    def to_dict(self) -> dict:
        return asdict(self)


class PerceptronPredictor(BasePredictor):
    """
    Perceptron-based branch predictor.

    Key features:
    - Linear correlation learning with global history
    - Saturating signed integer weights
    - Threshold-based training (also reinforces weak correct predictions)

    ``predict``/``lookup`` only read state. ``train`` recomputes the
    prediction from the weights and history as they stand when it runs,
    not from an earlier lookup, then updates and shifts the history under
    the predictor's lock.
    """

    def __init__(self, config: Union[PerceptronConfig, dict, None] = None,
                 **overrides):
        if isinstance(config, PerceptronConfig):
            params = config.to_dict()
        else:
            params = dict(config or {})
        params.update(overrides)
        self.params = PerceptronConfig.from_dict(params)

        super().__init__("Perceptron", self.params.to_dict())

        # Weight table: [num_perceptrons, history_length + 1]
        # +1 for bias weight (w0)
        self._weights = WeightTable(self.num_perceptrons,
                                    self.history_length + 1,
                                    self.weight_bits)
        self._history = GlobalHistoryRegister(self.history_length)

        logger.debug("Created %r", self)

    @property
    def num_perceptrons(self) -> int:
        return self.params.num_perceptrons

    @property
    def history_length(self) -> int:
        return self.params.history_length

    @property
    def weight_bits(self) -> int:
        return self.params.weight_bits

    @property
    def training_threshold(self) -> int:
        return self.params.training_threshold

    @property
    def weight_max(self) -> int:
        return self._weights.weight_max

    @property
    def weight_min(self) -> int:
        return self._weights.weight_min

    @property
    def sum_width(self) -> int:
        """Bits a signed accumulator needs to hold any perceptron sum."""
        magnitude = (self.history_length + 1) << (self.weight_bits - 1)
        return (magnitude - 1).bit_length() + 1

    @property
    def history(self) -> Tuple[bool, ...]:
        """Global history, most recent outcome first."""
        with self._lock:
            return self._history.as_tuple()

    def index(self, pc: int) -> int:
        """Perceptron index for a branch address."""
        _check_address(pc)
        return IndexingScheme.word_aligned(pc, self.num_perceptrons)

    def _compute_sum(self, weights: np.ndarray, bipolar_history: np.ndarray) -> int:
        """
        Compute perceptron output.

        Args:
            weights: Weight vector [history_length + 1]
            bipolar_history: History bits as bipolar values (+1/-1)

        Returns:
            Weighted sum (dot product plus bias)
        """
        if self.sum_width > 64:
            # Could overflow int64; accumulate in Python ints
            return int(weights[0]) + sum(
                int(w) * int(h) for w, h in zip(weights[1:], bipolar_history))
        return int(weights[0] + np.dot(weights[1:], bipolar_history))

    def lookup(self, pc: int) -> PredictionResult:
        """
        Make a prediction using the perceptron.

        A zero sum predicts taken, so an untrained predictor defaults to taken.
        """
        idx = self.index(pc)
        with self._lock:
            perceptron_sum = self._compute_sum(
                self._weights.table[idx],
                self._history.get_history(as_bipolar=True))

        confidence = min(abs(perceptron_sum) / max(self.training_threshold, 1), 1.0)

        return PredictionResult(
            prediction=perceptron_sum >= 0,
            confidence=confidence,
            predictor_used=self.name,
            raw_sum=perceptron_sum,
            index=idx
        )

    def train(self, pc: int, taken: bool) -> None:
        """
        Update perceptron weights with the resolved outcome, then shift history.
        """
        idx = self.index(pc)
        taken = bool(taken)

        with self._lock:
            bipolar_history = self._history.get_history(as_bipolar=True)
            perceptron_sum = self._compute_sum(self._weights.table[idx],
                                               bipolar_history)
            predicted_taken = perceptron_sum >= 0

            wrong = predicted_taken != taken
            low_confidence = abs(perceptron_sum) <= self.training_threshold
            should_train = wrong or low_confidence

            if should_train:
                # +1 where the input agreed with the outcome, -1 elsewhere
                t = 1 if taken else -1
                directions = np.concatenate(([t], bipolar_history * t))
                self._weights.saturating_update(idx, directions)

            self._history.update(taken)
            self.stats.record_training(predicted_taken, taken, should_train)

    def weights_snapshot(self) -> np.ndarray:
        """Copy of the full weight table."""
        with self._lock:
            return self._weights.snapshot()

    def weights_for(self, pc: int) -> np.ndarray:
        """Copy of the weight vector ``pc`` maps to (bias first)."""
        idx = self.index(pc)
        with self._lock:
            return self._weights.read(idx)

    def get_hardware_cost(self) -> dict:
        """Estimate hardware implementation cost."""
        weights_per_entry = self.history_length + 1
        total_weight_bits = self._weights.get_storage_bits()
        total_bits = total_weight_bits + self.history_length

        return {
            'table_entries': self.num_perceptrons,
            'index_bits': (self.num_perceptrons - 1).bit_length(),
            'weights_per_entry': weights_per_entry,
            'bits_per_weight': self.weight_bits,
            'total_weight_bits': total_weight_bits,
            'history_bits': self.history_length,
            'sum_width': self.sum_width,
            'total_bits': total_bits,
            'total_bytes': total_bits // 8,
            'total_kb': total_bits / 8 / 1024,
            'training_threshold': self.training_threshold
        }

    def get_weight_statistics(self) -> dict:
        """Get statistics about weight distribution."""
        with self._lock:
            return self._weights.get_statistics()

    def reset(self) -> None:
        """Zero weights and history together."""
        with self._lock:
            super().reset()
            self._weights.reset()
            self._history.reset()
        logger.debug("Reset %s", self.name)

    def __repr__(self) -> str:
        return (f"PerceptronPredictor(num_perceptrons={self.num_perceptrons}, "
                f"history_length={self.history_length}, "
                f"weight_bits={self.weight_bits}, "
                f"training_threshold={self.training_threshold})")
