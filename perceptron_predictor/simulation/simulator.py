"""
Branch Prediction Simulator

Trace-driven simulation engine for evaluating branch predictors.

Each branch is looked up at "fetch" and trained at "resolve". With a
resolve latency of N, up to N younger branches are fetched (and
predicted) before an older branch trains, so a predictor's history can
move on between the lookup and the training of the same branch.
"""

import logging
import time
from collections import deque
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Deque, Dict, Iterable, Optional, Tuple, Union
from tqdm import tqdm

from ..predictors.base import BasePredictor, PredictionResult
from ..trace.parser import TraceParser, BranchTrace
from ..trace.formats import BranchRecord
from .metrics import MetricsCollector, SimulationResults

logger = logging.getLogger(__name__)

_InFlight = Tuple[BranchRecord, Optional[Dict[str, PredictionResult]]]


@dataclass
class SimulationConfig:
    """Configuration for simulation run."""
    warmup_branches: int = 0
    simulation_branches: Optional[int] = None  # None = whole trace
    resolve_latency: int = 0
    verbose: bool = False
    log_interval: int = 100000
    collect_per_branch_stats: bool = False

    def __post_init__(self):
        if self.warmup_branches < 0:
            raise ValueError(f"warmup_branches must be >= 0, got {self.warmup_branches}")
        if self.simulation_branches is not None and self.simulation_branches < 0:
            raise ValueError(
                f"simulation_branches must be >= 0, got {self.simulation_branches}")
        if self.resolve_latency < 0:
            raise ValueError(f"resolve_latency must be >= 0, got {self.resolve_latency}")
        if self.log_interval < 1:
            raise ValueError(f"log_interval must be >= 1, got {self.log_interval}")

    @property
    def max_branches(self) -> Optional[int]:
        if self.simulation_branches is None:
            return None
        return self.warmup_branches + self.simulation_branches


class BranchSimulator:
    """
    Branch Prediction Simulator.

    Simulates branch prediction using trace-driven methodology.
    Supports multiple predictors and collects detailed statistics.
    """

    def __init__(self, config: Union[SimulationConfig, dict, None] = None):
        """
        Initialize simulator.

        Args:
            config: Simulation configuration
        """
        if config is None:
            self.config = SimulationConfig()
        elif isinstance(config, dict):
            self.config = SimulationConfig(**config)
        else:
            self.config = config

        # Predictors to evaluate
        self.predictors: Dict[str, BasePredictor] = {}

        self.metrics = MetricsCollector()

        # Branches fetched but not yet resolved, with their fetch-time
        # predictions (None while warming up)
        self._pending: Deque[_InFlight] = deque()

        # State
        self.branches_processed = 0
        self.warmup_complete = False

    def add_predictor(self, name: str, predictor: BasePredictor) -> None:
        """Add a predictor to evaluate."""
        if name in self.predictors:
            raise ValueError(f"Predictor already registered: {name}")
        self.predictors[name] = predictor
        self.metrics.register_predictor(name)

    def run(self, trace_path: Union[str, Path],
            trace_format: Optional[str] = None) -> SimulationResults:
        """
        Run simulation on a trace file.

        Args:
            trace_path: Path to trace file
            trace_format: Optional format hint

        Returns:
            SimulationResults with all metrics
        """
        trace_path = Path(trace_path)
        parser = TraceParser(format_name=trace_format)
        trace_info = parser.get_trace_info(trace_path)

        logger.info("Simulating %s (format=%s, ~%d branches) with %s",
                    trace_path.name, trace_info.format,
                    trace_info.estimated_branches, list(self.predictors))

        records = parser.parse_file(trace_path,
                                    max_branches=self.config.max_branches)
        total = self.config.max_branches or trace_info.estimated_branches
        return self._simulate(records, total, trace_path.name)

    def run_on_trace(self, trace: BranchTrace) -> SimulationResults:
        """
        Run simulation on pre-loaded trace.

        Args:
            trace: BranchTrace object

        Returns:
            SimulationResults
        """
        total = len(trace)
        if self.config.max_branches is not None:
            total = min(total, self.config.max_branches)

        logger.info("Simulating %s (%d branches) with %s",
                    trace.name, total, list(self.predictors))

        records = (trace[i] for i in range(total))
        return self._simulate(records, total, trace.name)

    def _simulate(self, records: Iterable[BranchRecord], total: int,
                  source: str) -> SimulationResults:
        if not self.predictors:
            raise ValueError("No predictors registered")

        self._reset()
        start_time = time.time()

        if self.config.verbose:
            records = tqdm(records, total=total, desc=source, unit="branches")

        try:
            for branch in records:
                self._process_branch(branch)

                if (self.config.verbose and
                        self.branches_processed % self.config.log_interval == 0):
                    self._log_progress(source)
        except KeyboardInterrupt:
            logger.warning("Simulation interrupted after %d branches",
                           self.branches_processed)

        # Resolve everything still in flight
        while self._pending:
            self._resolve_branch(*self._pending.popleft())

        elapsed_time = time.time() - start_time
        results = self._compile_results(source, elapsed_time)

        if self.config.verbose:
            self._print_results(results)

        return results

    def _process_branch(self, branch: BranchRecord) -> None:
        """Fetch (predict) one branch and resolve the oldest if due."""
        self.branches_processed += 1

        in_warmup = self.branches_processed <= self.config.warmup_branches

        if not in_warmup and not self.warmup_complete:
            self.warmup_complete = True
            if self.config.warmup_branches:
                logger.info("Warmup complete after %d branches",
                            self.config.warmup_branches)

        fetched = {}
        for name, predictor in self.predictors.items():
            prediction = predictor.lookup(branch.pc)
            fetched[name] = prediction

            if not in_warmup:
                self.metrics.record_prediction(
                    name, branch.pc, prediction, branch.taken,
                    collect_per_branch=self.config.collect_per_branch_stats
                )

        self._pending.append((branch, None if in_warmup else fetched))
        if len(self._pending) > self.config.resolve_latency:
            self._resolve_branch(*self._pending.popleft())

    def _resolve_branch(self, branch: BranchRecord,
                        fetched: Optional[Dict[str, PredictionResult]]) -> None:
        for name, predictor in self.predictors.items():
            if fetched is not None:
                if self.config.resolve_latency:
                    # Same state train() is about to predict from
                    resolved = predictor.lookup(branch.pc)
                else:
                    resolved = fetched[name]
                self.metrics.record_resolution(name, fetched[name], resolved,
                                               branch.taken)
            predictor.train(branch.pc, branch.taken)

    def _reset(self) -> None:
        """Reset simulator state."""
        self.metrics.reset()
        self._pending.clear()
        self.branches_processed = 0
        self.warmup_complete = False

        for predictor in self.predictors.values():
            predictor.reset()

    def _compile_results(self, trace_source: str,
                         elapsed_time: float) -> SimulationResults:
        """Compile simulation results."""
        return SimulationResults(
            trace_name=trace_source,
            branches_simulated=max(
                0, self.branches_processed - self.config.warmup_branches),
            warmup_branches=min(self.branches_processed,
                                self.config.warmup_branches),
            elapsed_time=elapsed_time,
            predictor_results={
                name: self.metrics.get_predictor_stats(name)
                for name in self.predictors
            },
            hardware_costs={
                name: pred.get_hardware_cost()
                for name, pred in self.predictors.items()
            },
            training_stats={
                name: pred.get_stats().to_dict()
                for name, pred in self.predictors.items()
            },
            config=asdict(self.config)
        )

    def _log_progress(self, source: str) -> None:
        """Log progress during simulation."""
        if not self.warmup_complete:
            return

        first_pred = next(iter(self.predictors))
        stats = self.metrics.get_predictor_stats(first_pred)

        tqdm.write(f"Branches: {self.branches_processed:,} | "
                   f"MPKI: {stats.get('mpki', 0):.2f} | "
                   f"Acc: {stats.get('accuracy', 0)*100:.2f}% | {source}")

    def _print_results(self, results: SimulationResults) -> None:
        print(f"\n{'='*60}")
        print(results.get_summary())
        print(f"Time elapsed: {results.elapsed_time:.2f}s")
        print()
        print(self.metrics.get_comparison_table())
