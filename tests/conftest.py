import logging
import sys
from pathlib import Path

import pytest

# Make the package importable from a source checkout
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from perceptron_predictor.predictors.perceptron import PerceptronPredictor
from perceptron_predictor.trace.formats import BranchRecord
from perceptron_predictor.trace.parser import BranchTrace


@pytest.fixture
def predictor():
    """Perceptron predictor with the default configuration."""
    return PerceptronPredictor()


@pytest.fixture
def default_config_path():
    return PROJECT_ROOT / "config" / "default.yaml"


@pytest.fixture
def make_trace():
    """Build a BranchTrace from (pc, taken) pairs."""
    def _make(events, name="test"):
        return BranchTrace(
            [BranchRecord(pc=pc, target=pc + 8, taken=taken, branch_type=1)
             for pc, taken in events],
            name=name
        )
    return _make


@pytest.fixture
def clean_package_logger():
    logger = logging.getLogger("perceptron_predictor")
    yield logger
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)
