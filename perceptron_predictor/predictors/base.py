"""
Base Predictor Interface

Abstract base class and baseline predictors for the perceptron framework.

Every predictor owns its own state (tables and, where it needs one, a
global history register). Callers only see two protocols:

- ``lookup``/``predict`` at fetch time, which never mutates state;
- ``train`` at resolve time, which updates tables and history in one
  atomic step.
"""

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional
import numpy as np

from ..components.history import GlobalHistoryRegister
from ..components.tables import IndexingScheme, is_power_of_two


class ConfigurationError(ValueError):
    """Raised when a predictor is constructed with invalid parameters."""


@dataclass
class PredictionResult:
    """Result of a branch prediction."""
    prediction: bool          # True = Taken, False = Not Taken
    confidence: float         # Confidence score in [0, 1]
    predictor_used: str       # Which predictor made the decision
    raw_sum: Optional[int] = None  # Raw computation result (e.g., perceptron sum)
    index: Optional[int] = None    # Table entry consulted

    @property
    def taken(self) -> bool:
        return self.prediction

    @property
    def not_taken(self) -> bool:
        return not self.prediction


class PredictorStats:
    """Training-side statistics for a predictor."""

    def __init__(self):
        self.trainings = 0
        self.correct = 0
        self.mispredictions = 0
        self.taken_actual = 0
        self.updates = 0

    def record_training(self, predicted: bool, actual: bool,
                        updated: bool) -> None:
        """Record one resolved branch seen by ``train``."""
        self.trainings += 1
        if actual:
            self.taken_actual += 1
        if predicted == actual:
            self.correct += 1
        else:
            self.mispredictions += 1
        if updated:
            self.updates += 1

    @property
    def accuracy(self) -> float:
        """Accuracy of the predictions recomputed at training time."""
        if self.trainings == 0:
            return 0.0
        return self.correct / self.trainings

    @property
    def update_rate(self) -> float:
        """Fraction of training calls that changed the tables."""
        if self.trainings == 0:
            return 0.0
        return self.updates / self.trainings

    def to_dict(self) -> dict:
        return {
            'trainings': self.trainings,
            'correct': self.correct,
            'mispredictions': self.mispredictions,
            'taken_actual': self.taken_actual,
            'updates': self.updates,
            'accuracy': self.accuracy,
            'update_rate': self.update_rate,
        }

    def __str__(self) -> str:
        return (f"Trainings: {self.trainings}, "
                f"Accuracy: {self.accuracy*100:.2f}%, "
                f"Updates: {self.updates}")


def _check_address(pc: int) -> None:
    if pc < 0:
        raise ValueError(f"Branch address must be unsigned, got {pc}")


class BasePredictor(ABC):
    """Abstract base class for branch predictors."""

    def __init__(self, name: str, config: dict):
        """
        Initialize the predictor.

        Args:
            name: Name identifier for this predictor
            config: Configuration dictionary
        """
        self.name = name
        self.config = config
        self.stats = PredictorStats()
        # Single mutual-exclusion domain for tables and history
        self._lock = threading.RLock()

    @abstractmethod
    def lookup(self, pc: int) -> PredictionResult:
        """
        Make a branch prediction without changing any state.

        Args:
            pc: Program counter of the branch

        Returns:
            PredictionResult with prediction and confidence
        """
        pass

    def predict(self, pc: int) -> bool:
        """Predict whether the branch at ``pc`` is taken."""
        return self.lookup(pc).prediction

    @abstractmethod
    def train(self, pc: int, taken: bool) -> None:
        """
        Learn from the resolved outcome of the branch at ``pc``.

        Args:
            pc: Program counter of the branch
            taken: Actual branch outcome (True = taken)
        """
        pass

    @abstractmethod
    def get_hardware_cost(self) -> dict:
        """
        Estimate hardware implementation cost.

        Returns:
            Dictionary with storage (bits/bytes) and other metrics
        """
        pass

    def reset(self) -> None:
        """Reset predictor state (optional override)."""
        self.stats = PredictorStats()

    def get_stats(self) -> PredictorStats:
        """Get current statistics."""
        return self.stats


class BimodalPredictor(BasePredictor):
    """
    Simple 2-bit saturating counter predictor (baseline).
    """

    def __init__(self, config: Optional[dict] = None):
        config = config or {}
        super().__init__("Bimodal", config)
        self.table_size = config.get('table_size', 4096)
        if not is_power_of_two(self.table_size):
            raise ConfigurationError(
                f"table_size must be a power of 2, got {self.table_size}")
        # 2-bit counters: 0,1 = Not Taken; 2,3 = Taken
        self.table = np.ones(self.table_size, dtype=np.int8) * 2  # Weakly taken

    def _index(self, pc: int) -> int:
        """Compute table index from PC."""
        return IndexingScheme.word_aligned(pc, self.table_size)

    def lookup(self, pc: int) -> PredictionResult:
        _check_address(pc)
        idx = self._index(pc)
        with self._lock:
            counter = int(self.table[idx])
        return PredictionResult(
            prediction=counter >= 2,
            confidence=abs(counter - 1.5) / 1.5,
            predictor_used=self.name,
            raw_sum=counter,
            index=idx
        )

    def train(self, pc: int, taken: bool) -> None:
        _check_address(pc)
        idx = self._index(pc)
        with self._lock:
            counter = int(self.table[idx])
            if taken:
                self.table[idx] = min(3, counter + 1)
            else:
                self.table[idx] = max(0, counter - 1)
            self.stats.record_training(counter >= 2, taken, True)

    def get_hardware_cost(self) -> dict:
        total_bits = self.table_size * 2
        return {
            'table_entries': self.table_size,
            'bits_per_entry': 2,
            'total_bits': total_bits,
            'total_bytes': total_bits // 8,
            'total_kb': total_bits / 8 / 1024
        }

    def reset(self) -> None:
        with self._lock:
            super().reset()
            self.table.fill(2)


class GSharePredictor(BasePredictor):
    """
    GShare predictor (baseline) - XOR of word address and global history.
    """

    def __init__(self, config: Optional[dict] = None):
        config = config or {}
        super().__init__("GShare", config)
        self.table_size = config.get('table_size', 16384)
        self.history_length = config.get('history_length', 14)
        if not is_power_of_two(self.table_size):
            raise ConfigurationError(
                f"table_size must be a power of 2, got {self.table_size}")
        if self.history_length < 1:
            raise ConfigurationError(
                f"history_length must be at least 1, got {self.history_length}")
        self.history = GlobalHistoryRegister(self.history_length)
        # 2-bit counters
        self.table = np.ones(self.table_size, dtype=np.int8) * 2

    def _index(self, pc: int) -> int:
        """Compute index using XOR of PC and history."""
        return IndexingScheme.xor_fold(pc, self.history.to_int(),
                                       self.table_size)

    def lookup(self, pc: int) -> PredictionResult:
        _check_address(pc)
        with self._lock:
            idx = self._index(pc)
            counter = int(self.table[idx])
        return PredictionResult(
            prediction=counter >= 2,
            confidence=abs(counter - 1.5) / 1.5,
            predictor_used=self.name,
            raw_sum=counter,
            index=idx
        )

    def train(self, pc: int, taken: bool) -> None:
        _check_address(pc)
        with self._lock:
            idx = self._index(pc)
            counter = int(self.table[idx])
            if taken:
                self.table[idx] = min(3, counter + 1)
            else:
                self.table[idx] = max(0, counter - 1)
            self.history.update(taken)
            self.stats.record_training(counter >= 2, taken, True)

    def get_hardware_cost(self) -> dict:
        total_bits = self.table_size * 2 + self.history_length
        return {
            'table_entries': self.table_size,
            'bits_per_entry': 2,
            'history_bits': self.history_length,
            'total_bits': total_bits,
            'total_bytes': total_bits // 8,
            'total_kb': total_bits / 8 / 1024
        }

    def reset(self) -> None:
        with self._lock:
            super().reset()
            self.table.fill(2)
            self.history.reset()
