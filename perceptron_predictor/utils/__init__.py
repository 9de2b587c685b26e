# Utils Package
from .helpers import (
    Timer,
    create_predictor,
    load_config,
    save_results,
    setup_logging,
)

__all__ = [
    'Timer',
    'create_predictor',
    'load_config',
    'save_results',
    'setup_logging'
]
