"""
Global History Register

Shift register of the most recent resolved branch outcomes, shared by
every perceptron in a predictor.
"""

import numpy as np
from typing import Tuple


class GlobalHistoryRegister:
    """
    Global Branch History Register.

    Bit 0 is the most recent outcome, bit ``length - 1`` the oldest.
    Stored as binary (0 = not taken, 1 = taken); a bipolar (-1/+1)
    view is available for dot-product style consumers.
    """

    def __init__(self, length: int = 7):
        """
        Initialize the history register.

        Args:
            length: Number of branch outcomes to track (>= 1)
        """
        if length < 1:
            raise ValueError(f"History length must be at least 1, got {length}")

        self.length = length
        self._history = np.zeros(length, dtype=np.int8)

    def update(self, taken: bool) -> None:
        """
        Shift a new outcome into bit 0, discarding the oldest bit.

        Args:
            taken: Branch outcome (True = taken)
        """
        self._history = np.roll(self._history, 1)
        self._history[0] = 1 if taken else 0

    def get_history(self, as_bipolar: bool = False) -> np.ndarray:
        """
        Get a copy of the current history.

        Args:
            as_bipolar: Return as bipolar (-1/+1) instead of binary (0/1)

        Returns:
            History array, most recent outcome first
        """
        if as_bipolar:
            return np.where(self._history > 0, 1, -1).astype(np.int64)
        return self._history.copy()

    def as_tuple(self) -> Tuple[bool, ...]:
        """History as booleans, most recent first."""
        return tuple(bool(bit) for bit in self._history)

    def to_int(self) -> int:
        """Pack history into an integer (bit i = outcome i)."""
        result = 0
        for i, bit in enumerate(self._history):
            if bit > 0:
                result |= (1 << i)
        return result

    def reset(self) -> None:
        """Reset history to all not-taken."""
        self._history.fill(0)

    def __len__(self) -> int:
        return self.length

    def __repr__(self) -> str:
        hist_str = ''.join(str(b) for b in self._history[:16])
        suffix = "..." if self.length > 16 else ""
        return f"GHR({self.length}): {hist_str}{suffix}"
