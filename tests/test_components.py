import numpy as np
import pytest

from perceptron_predictor.components.history import GlobalHistoryRegister
from perceptron_predictor.components.tables import (
    IndexingScheme,
    WeightTable,
    is_power_of_two,
)


class TestGlobalHistoryRegister:

    def test_starts_not_taken(self):
        ghr = GlobalHistoryRegister(4)
        assert ghr.as_tuple() == (False, False, False, False)
        assert ghr.to_int() == 0
        assert len(ghr) == 4

    def test_update_shifts_into_bit_zero(self):
        ghr = GlobalHistoryRegister(4)
        ghr.update(True)
        ghr.update(False)
        ghr.update(True)

        assert ghr.as_tuple() == (True, False, True, False)
        assert ghr.to_int() == 0b0101

    def test_oldest_bit_is_discarded(self):
        ghr = GlobalHistoryRegister(2)
        for taken in (True, True, False):
            ghr.update(taken)
        assert ghr.as_tuple() == (False, True)

    def test_bipolar_view(self):
        ghr = GlobalHistoryRegister(3)
        ghr.update(True)
        np.testing.assert_array_equal(ghr.get_history(as_bipolar=True), [1, -1, -1])
        np.testing.assert_array_equal(ghr.get_history(), [1, 0, 0])

    def test_get_history_returns_copy(self):
        ghr = GlobalHistoryRegister(3)
        ghr.get_history()[0] = 1
        assert ghr.to_int() == 0

    def test_reset(self):
        ghr = GlobalHistoryRegister(3)
        ghr.update(True)
        ghr.reset()
        assert ghr.to_int() == 0

    def test_zero_length_rejected(self):
        with pytest.raises(ValueError):
            GlobalHistoryRegister(0)

    def test_repr(self):
        ghr = GlobalHistoryRegister(3)
        ghr.update(True)
        assert repr(ghr) == "GHR(3): 100"


class TestWeightTable:

    def test_bounds(self):
        table = WeightTable(4, 3, weight_bits=8)
        assert table.weight_max == 127
        assert table.weight_min == -128
        assert table.get_storage_bits() == 4 * 3 * 8

    def test_saturating_update(self):
        table = WeightTable(2, 3, weight_bits=2)
        for _ in range(5):
            table.saturating_update(1, np.array([1, -1, 1]))

        np.testing.assert_array_equal(table.read(1), [1, -2, 1])
        np.testing.assert_array_equal(table.read(0), [0, 0, 0])
        assert table.writes == 5

    def test_saturating_update_steps_by_one(self):
        table = WeightTable(1, 2, weight_bits=8)
        table.saturating_update(0, np.array([1, -1]))
        table.saturating_update(0, np.array([1, 1]))
        np.testing.assert_array_equal(table.read(0), [2, 0])

    def test_read_returns_copy(self):
        table = WeightTable(2, 2)
        table.read(0)[0] = 5
        assert not np.any(table.snapshot())

    def test_wide_weights(self):
        table = WeightTable(1, 1, weight_bits=32)
        assert table.weight_max == 2**31 - 1
        table.table[0, 0] = table.weight_max
        table.saturating_update(0, np.array([1]))
        assert table.read(0)[0] == 2**31 - 1

    def test_weights_wider_than_int64(self):
        table = WeightTable(1, 2, weight_bits=64)
        table.table[0] = [table.weight_max, table.weight_min]

        table.saturating_update(0, np.array([1, -1]))
        assert table.read(0).tolist() == [2**63 - 1, -2**63]

        table.saturating_update(0, np.array([-1, 1]))
        assert table.read(0).tolist() == [2**63 - 2, -2**63 + 1]
        assert table.get_statistics()['max'] == 2**63 - 2

    def test_reset(self):
        table = WeightTable(2, 2)
        table.saturating_update(0, np.array([1, 1]))
        table.reset()
        assert not np.any(table.snapshot())
        assert table.writes == 0

    def test_statistics(self):
        table = WeightTable(2, 2, weight_bits=2)
        table.saturating_update(0, np.array([1, -1]))
        table.saturating_update(0, np.array([1, -1]))
        stats = table.get_statistics()
        assert stats['saturated_pos'] == 1
        assert stats['saturated_neg'] == 1
        assert stats['zeros'] == 2

    def test_too_narrow_rejected(self):
        with pytest.raises(ValueError):
            WeightTable(2, 2, weight_bits=1)


class TestIndexingScheme:

    @pytest.mark.parametrize("pc,expected", [
        (0x1000, 0), (0x1004, 1), (0x1010, 4), (0x101c, 7),
        (0x1020, 0), (0x1003, 0), (0xFFFF_F01C, 7),
    ])
    def test_word_aligned(self, pc, expected):
        assert IndexingScheme.word_aligned(pc, 8) == expected

    def test_xor_fold(self):
        assert IndexingScheme.xor_fold(0x1004, 0b11, 16) == (0x401 ^ 0b11) % 16


@pytest.mark.parametrize("n,expected", [
    (1, True), (2, True), (8, True), (1024, True),
    (0, False), (3, False), (6, False), (-8, False),
])
def test_is_power_of_two(n, expected):
    assert is_power_of_two(n) is expected
