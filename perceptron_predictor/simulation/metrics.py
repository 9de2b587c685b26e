"""
Prediction Metrics

Scores fetch-time predictions against resolved outcomes, per predictor.

Besides accuracy and MPKI two effects of a small predictor table are
tracked:

- entry contention: which branch addresses share a table entry, and how
  many lookups land on a shared entry;
- fetch/resolve divergence: how often the prediction made at fetch differs
  from the one the predictor recomputes when the branch finally trains.
"""

import csv
import json
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Any, Dict, Iterable, List, Set, Union

from ..predictors.base import PredictionResult


@dataclass
class SimulationResults:
    """Container for simulation results."""
    trace_name: str
    branches_simulated: int
    warmup_branches: int
    elapsed_time: float
    predictor_results: Dict[str, Dict[str, Any]]
    hardware_costs: Dict[str, Dict[str, Any]]
    config: Dict[str, Any]
    training_stats: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def get_summary(self) -> str:
        """Get text summary of results."""
        lines = [
            f"Trace: {self.trace_name}",
            f"Branches: {self.branches_simulated:,}",
            ""
        ]

        for name, stats in self.predictor_results.items():
            lines.append(f"{name}:")
            lines.append(f"  Accuracy: {stats.get('accuracy', 0)*100:.2f}%  "
                         f"MPKI: {stats.get('mpki', 0):.2f}")
            lines.append(f"  Shared entries: {stats.get('shared_entries', 0)}"
                         f"/{stats.get('entries_used', 0)}  "
                         f"({stats.get('shared_entry_lookups', 0):,} lookups)")
            if stats.get('divergent_predictions'):
                lines.append(
                    f"  Fetch/resolve divergence: "
                    f"{stats['divergent_predictions']:,} "
                    f"({stats['stale_mispredictions']:,} stale mispredictions)")

        return "\n".join(lines)


@dataclass
class EntryUsage:
    """Lookups that landed on one table entry."""
    pcs: Set[int] = field(default_factory=set)
    lookups: int = 0
    mispredictions: int = 0

    @property
    def shared(self) -> bool:
        return len(self.pcs) > 1


@dataclass
class PredictorTally:
    """Running counts for one predictor over one run."""
    total: int = 0
    mispredictions: int = 0
    taken_actual: int = 0
    taken_predicted: int = 0
    # Predictions at full confidence (a perceptron sum beyond its threshold)
    confident: int = 0
    confident_mispredictions: int = 0
    resolved: int = 0
    divergent: int = 0
    # Wrong at fetch, right when recomputed at resolve
    stale_mispredictions: int = 0
    entries: Dict[int, EntryUsage] = field(default_factory=dict)
    # pc -> [lookups, mispredictions]
    branches: Dict[int, List[int]] = field(default_factory=dict)

    @property
    def accuracy(self) -> float:
        if self.total == 0:
            return 0.0
        return 1.0 - self.mispredictions / self.total

    @property
    def mpki(self) -> float:
        """Mispredictions per 1000 branches (one branch per instruction)."""
        if self.total == 0:
            return 0.0
        return self.mispredictions * 1000 / self.total

    def shared_entries(self) -> List[EntryUsage]:
        return [usage for usage in self.entries.values() if usage.shared]


class MetricsCollector:
    """
    Collects per-predictor metrics for one simulation run.

    ``record_prediction`` is called at fetch with the predictor's lookup;
    ``record_resolution`` is called just before the branch trains, with the
    fetch-time lookup and the prediction the predictor holds at that moment.
    """

    def __init__(self):
        self._tallies: Dict[str, PredictorTally] = {}

    def register_predictor(self, name: str) -> None:
        self._tallies[name] = PredictorTally()

    def record_prediction(self, predictor_name: str, pc: int,
                          prediction: PredictionResult, actual: bool,
                          collect_per_branch: bool = False) -> None:
        tally = self._tallies.setdefault(predictor_name, PredictorTally())
        wrong = int(prediction.prediction != actual)

        tally.total += 1
        tally.mispredictions += wrong
        tally.taken_actual += int(actual)
        tally.taken_predicted += int(prediction.prediction)

        if prediction.confidence >= 1.0:
            tally.confident += 1
            tally.confident_mispredictions += wrong

        if prediction.index is not None:
            usage = tally.entries.setdefault(prediction.index, EntryUsage())
            usage.pcs.add(pc)
            usage.lookups += 1
            usage.mispredictions += wrong

        if collect_per_branch:
            counts = tally.branches.setdefault(pc, [0, 0])
            counts[0] += 1
            counts[1] += wrong

    def record_resolution(self, predictor_name: str,
                          fetched: PredictionResult,
                          resolved: PredictionResult,
                          actual: bool) -> None:
        tally = self._tallies.setdefault(predictor_name, PredictorTally())
        tally.resolved += 1
        if fetched.prediction != resolved.prediction:
            tally.divergent += 1
            if resolved.prediction == actual:
                tally.stale_mispredictions += 1

    def get_predictor_stats(self, predictor_name: str) -> Dict[str, Any]:
        """Get statistics for a predictor."""
        tally = self._tallies.get(predictor_name)
        if tally is None:
            return {}

        shared = tally.shared_entries()
        return {
            'total': tally.total,
            'correct': tally.total - tally.mispredictions,
            'mispredictions': tally.mispredictions,
            'accuracy': tally.accuracy,
            'mpki': tally.mpki,
            'taken_actual': tally.taken_actual,
            'taken_predicted': tally.taken_predicted,
            'confident_predictions': tally.confident,
            'confident_mispredictions': tally.confident_mispredictions,
            'entries_used': len(tally.entries),
            'shared_entries': len(shared),
            'shared_entry_lookups': sum(u.lookups for u in shared),
            'resolved': tally.resolved,
            'divergent_predictions': tally.divergent,
            'divergence_rate': (tally.divergent / tally.resolved
                                if tally.resolved else 0.0),
            'stale_mispredictions': tally.stale_mispredictions,
        }

    def get_entry_stats(self, predictor_name: str) -> Dict[int, Dict[str, Any]]:
        """Per table entry: the branches mapped to it and how it fared."""
        tally = self._tallies.get(predictor_name)
        if tally is None:
            return {}

        return {
            index: {
                'branches': sorted(usage.pcs),
                'lookups': usage.lookups,
                'mispredictions': usage.mispredictions,
            }
            for index, usage in sorted(tally.entries.items())
        }

    def get_per_branch_stats(self, predictor_name: str) -> Dict[int, Dict[str, Any]]:
        """Per branch address; empty unless per-branch collection was on."""
        tally = self._tallies.get(predictor_name)
        if tally is None:
            return {}

        return {
            pc: {
                'total': total,
                'mispredictions': wrong,
                'accuracy': 1.0 - wrong / total,
            }
            for pc, (total, wrong) in tally.branches.items()
        }

    def get_h2p_branches(self, predictor_name: str,
                         threshold: float = 0.3,
                         min_samples: int = 10) -> List[int]:
        """
        Get hard-to-predict branches.

        Args:
            predictor_name: Predictor to analyze
            threshold: Misprediction rate at or above which a branch counts
            min_samples: Branches seen fewer times are ignored

        Returns:
            Sorted branch addresses
        """
        tally = self._tallies.get(predictor_name)
        if tally is None:
            return []

        return sorted(
            pc for pc, (total, wrong) in tally.branches.items()
            if total >= min_samples and wrong / total >= threshold
        )

    def reset(self) -> None:
        for name in self._tallies:
            self._tallies[name] = PredictorTally()

    def get_comparison_table(self) -> str:
        """Get comparison table as formatted string."""
        if not self._tallies:
            return "No predictors registered"

        rule = "-" * 68
        lines = [
            "Predictor Comparison:",
            rule,
            f"{'Predictor':<16} {'Accuracy':>10} {'MPKI':>9} "
            f"{'Shared':>9} {'Divergent':>10} {'Stale':>9}",
            rule
        ]

        for name, tally in self._tallies.items():
            shared = f"{len(tally.shared_entries())}/{len(tally.entries)}"
            lines.append(
                f"{name:<16} {tally.accuracy*100:>9.2f}% {tally.mpki:>9.2f} "
                f"{shared:>9} {tally.divergent:>10,} "
                f"{tally.stale_mispredictions:>9,}"
            )

        lines.append(rule)
        return "\n".join(lines)


RunsArg = Union[SimulationResults, Iterable[SimulationResults]]


def _as_runs(runs: RunsArg) -> List[SimulationResults]:
    if isinstance(runs, SimulationResults):
        return [runs]
    return list(runs)


class ResultsExporter:
    """Export one or more simulation runs."""

    CSV_COLUMNS = (
        'trace', 'predictor', 'branches', 'mispredictions', 'accuracy',
        'mpki', 'shared_entries', 'divergent_predictions',
        'stale_mispredictions', 'storage_bits',
    )

    @classmethod
    def rows(cls, runs: RunsArg) -> List[Dict[str, Any]]:
        """One flat row per (run, predictor)."""
        rows = []
        for run in _as_runs(runs):
            for name, stats in run.predictor_results.items():
                rows.append({
                    'trace': run.trace_name,
                    'predictor': name,
                    'branches': stats.get('total', 0),
                    'mispredictions': stats.get('mispredictions', 0),
                    'accuracy': stats.get('accuracy', 0.0),
                    'mpki': stats.get('mpki', 0.0),
                    'shared_entries': stats.get('shared_entries', 0),
                    'divergent_predictions': stats.get('divergent_predictions', 0),
                    'stale_mispredictions': stats.get('stale_mispredictions', 0),
                    'storage_bits': run.hardware_costs.get(name, {}).get('total_bits', 0),
                })
        return rows

    @classmethod
    def to_csv(cls, runs: RunsArg, filepath: Union[str, Path]) -> None:
        path = Path(filepath)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w', newline='') as f:
            writer = csv.DictWriter(f, fieldnames=cls.CSV_COLUMNS)
            writer.writeheader()
            writer.writerows(cls.rows(runs))

    @staticmethod
    def to_json(runs: RunsArg, filepath: Union[str, Path]) -> None:
        """A single run is written as an object, several as a list."""
        if isinstance(runs, SimulationResults):
            document: Any = runs.to_dict()
        else:
            document = [run.to_dict() for run in runs]

        path = Path(filepath)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            json.dump(document, f, indent=2, default=str)
