"""
Run configuration, logging and result files for the benchmark tools.
"""

import logging
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Union

import yaml

from ..predictors.base import ConfigurationError

PACKAGE_LOGGER = "perceptron_predictor"
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

CONFIG_SECTIONS = ('perceptron', 'bimodal', 'gshare', 'simulation', 'workloads')
RESULT_FORMATS = ('json', 'yaml', 'csv')


def load_config(config_path: Union[str, Path]) -> Dict[str, Any]:
    """
    Load a YAML run configuration.

    Every section is optional. Sections other than the three predictors,
    ``simulation`` and ``workloads`` raise ConfigurationError.
    """
    config_path = Path(config_path)
    if not config_path.is_file():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        config = yaml.safe_load(f) or {}

    if not isinstance(config, dict):
        raise ConfigurationError(
            f"{config_path}: expected a mapping of sections, got {type(config).__name__}")

    unknown = sorted(set(config) - set(CONFIG_SECTIONS))
    if unknown:
        raise ConfigurationError(f"{config_path}: unknown sections {unknown}")

    return config


def save_results(runs: Iterable, output_dir: Union[str, Path],
                 name: str = "benchmark",
                 formats: Iterable[str] = ('json', 'csv')) -> Dict[str, Path]:
    """
    Write simulation runs to timestamped files.

    Args:
        runs: SimulationResults objects
        output_dir: Created if missing
        name: File name prefix
        formats: Any of 'json', 'yaml', 'csv'

    Returns:
        Format -> written path
    """
    from ..simulation.metrics import ResultsExporter

    formats = tuple(formats)
    unsupported = sorted(set(formats) - set(RESULT_FORMATS))
    if unsupported:
        raise ValueError(f"Unsupported result formats: {unsupported}")

    runs = list(runs)
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    stem = f"{name}_{datetime.now():%Y%m%d_%H%M%S}"

    paths = {}
    for fmt in formats:
        path = output_dir / f"{stem}.{fmt}"
        if fmt == 'json':
            ResultsExporter.to_json(runs, path)
        elif fmt == 'csv':
            ResultsExporter.to_csv(runs, path)
        else:
            with open(path, 'w') as f:
                yaml.safe_dump([run.to_dict() for run in runs], f,
                               default_flow_style=False, sort_keys=False)
        paths[fmt] = path

    return paths


def setup_logging(level: Union[str, int] = "INFO",
                  log_file: Optional[Union[str, Path]] = None) -> logging.Logger:
    """
    Attach a console handler, and optionally a file handler, to the
    package logger.

    Handlers installed by an earlier call are closed and replaced.
    """
    numeric_level = (logging.getLevelName(level.upper())
                     if isinstance(level, str) else level)
    if not isinstance(numeric_level, int):
        raise ValueError(f"Unknown log level: {level}")

    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(numeric_level)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    handlers = [logging.StreamHandler()]
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path))

    formatter = logging.Formatter(LOG_FORMAT)
    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger


class Timer:
    """Context manager that logs how long its block took."""

    def __init__(self, label: str, logger: Optional[logging.Logger] = None):
        self.label = label
        self.logger = logger or logging.getLogger(PACKAGE_LOGGER)
        self.elapsed: Optional[float] = None
        self._start = 0.0

    def __enter__(self) -> 'Timer':
        self._start = time.perf_counter()
        return self

    def __exit__(self, *exc_info) -> None:
        self.elapsed = time.perf_counter() - self._start
        self.logger.info("%s finished in %.2fs", self.label, self.elapsed)


def create_predictor(predictor_type: str,
                     config: Optional[Dict[str, Any]] = None):
    """
    Create predictor instance from configuration.

    Args:
        predictor_type: Type of predictor to create
        config: Either the predictor's own section or a full configuration
            containing a section named after ``predictor_type``

    Returns:
        Predictor instance
    """
    from ..predictors.perceptron import PerceptronPredictor
    from ..predictors.base import BimodalPredictor, GSharePredictor

    predictor_map = {
        'perceptron': PerceptronPredictor,
        'bimodal': BimodalPredictor,
        'gshare': GSharePredictor,
    }

    predictor_class = predictor_map.get(predictor_type.lower())
    if not predictor_class:
        raise ValueError(f"Unknown predictor type: {predictor_type}")

    config = config or {}
    type_config = config.get(predictor_type.lower(), config)

    return predictor_class(type_config)
