# Simulation Package
from .simulator import BranchSimulator, SimulationConfig
from .metrics import MetricsCollector, SimulationResults, ResultsExporter

__all__ = [
    'BranchSimulator',
    'SimulationConfig',
    'MetricsCollector',
    'SimulationResults',
    'ResultsExporter'
]
