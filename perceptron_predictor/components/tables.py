"""
Weight Tables and Indexing Schemes

Saturating weight storage and address-to-index functions for predictors.
"""

import numpy as np

# Widest weight stored natively as int64
NATIVE_WEIGHT_BITS = 62


def is_power_of_two(n: int) -> bool:
    """True for 1, 2, 4, 8, ..."""
    return n >= 1 and (n & (n - 1)) == 0


class WeightTable:
    """
    Weight table for perceptron-style predictors.

    One flat array of ``num_entries x weights_per_entry`` signed weights,
    allocated once. Every weight stays inside the signed range of
    ``weight_bits``; updates saturate at the bounds instead of wrapping.
    """

    def __init__(self, num_entries: int, weights_per_entry: int,
                 weight_bits: int = 8):
        """
        Initialize weight table.

        Args:
            num_entries: Number of table entries
            weights_per_entry: Weights per entry (e.g., history_length + 1)
            weight_bits: Bits per weight
        """
        if weight_bits < 2:
            raise ValueError(f"weight_bits must be at least 2, got {weight_bits}")

        self.num_entries = num_entries
        self.weights_per_entry = weights_per_entry
        self.weight_bits = weight_bits

        # Compute weight bounds
        self.weight_max = (1 << (weight_bits - 1)) - 1
        self.weight_min = -(1 << (weight_bits - 1))

        # int64 needs one value of headroom beyond each bound before the
        # clamp; wider weights are kept as Python ints
        dtype = np.int64 if weight_bits <= NATIVE_WEIGHT_BITS else object
        self.table = np.zeros((num_entries, weights_per_entry), dtype=dtype)

        # Number of entry updates
        self.writes = 0

    def read(self, index: int) -> np.ndarray:
        """Read a copy of the weights at index."""
        return self.table[index % self.num_entries].copy()

    def saturating_update(self, index: int, directions: np.ndarray) -> None:
        """
        Step every weight of an entry by +1 or -1 with saturation.

        Args:
            index: Table entry
            directions: Array of +1 (increment) / -1 (decrement), one per weight
        """
        self.writes += 1
        idx = index % self.num_entries
        steps = np.where(directions > 0, 1, -1).astype(self.table.dtype)
        stepped = self.table[idx] + steps
        self.table[idx] = np.minimum(np.maximum(stepped, self.weight_min),
                                     self.weight_max)

    def snapshot(self) -> np.ndarray:
        """Copy of the whole table."""
        return self.table.copy()

    def reset(self) -> None:
        """Reset table to zeros."""
        self.table.fill(0)
        self.writes = 0

    def get_storage_bits(self) -> int:
        """Get total storage in bits."""
        return self.num_entries * self.weights_per_entry * self.weight_bits

    def get_statistics(self) -> dict:
        """Get table statistics."""
        flat = self.table.flatten()
        return {
            'entries': self.num_entries,
            'weights_per_entry': self.weights_per_entry,
            'weight_bits': self.weight_bits,
            'total_bits': self.get_storage_bits(),
            'writes': self.writes,
            'mean': float(np.mean(flat.astype(np.float64))),
            'std': float(np.std(flat.astype(np.float64))),
            'min': int(np.min(flat)),
            'max': int(np.max(flat)),
            'zeros': int(np.sum(flat == 0)),
            'saturated_pos': int(np.sum(flat == self.weight_max)),
            'saturated_neg': int(np.sum(flat == self.weight_min))
        }


class IndexingScheme:
    """
    Indexing schemes for predictor tables.
    """

    @staticmethod
    def word_aligned(pc: int, table_size: int) -> int:
        """
        Drop the two word-alignment bits, keep log2(table_size) bits above.

        Addresses differing only above that window alias to one entry.
        """
        return (pc >> 2) % table_size

    @staticmethod
    def xor_fold(pc: int, history_int: int, table_size: int) -> int:
        """XOR word address with history (gshare-style)."""
        return ((pc >> 2) ^ history_int) % table_size
