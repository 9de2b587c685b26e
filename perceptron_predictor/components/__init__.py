# Components Package
from .history import GlobalHistoryRegister
from .tables import WeightTable, IndexingScheme, is_power_of_two

__all__ = [
    'GlobalHistoryRegister',
    'WeightTable',
    'IndexingScheme',
    'is_power_of_two'
]
