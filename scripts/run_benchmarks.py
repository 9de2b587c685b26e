#!/usr/bin/env python3
"""
Benchmark runner for the perceptron branch predictor.

Runs the configured predictors over the synthetic workloads and/or trace
files and prints a comparison report.

Usage:
    python scripts/run_benchmarks.py
    python scripts/run_benchmarks.py --workloads pattern aliasing --latency 2
    python scripts/run_benchmarks.py --traces data/*.txt.gz --output results/
"""

import sys
import argparse
import logging
from pathlib import Path

# Allow running from a source checkout without installing
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from perceptron_predictor.simulation.simulator import BranchSimulator, SimulationConfig
from perceptron_predictor.trace.workloads import generate_workload, list_workloads
from perceptron_predictor.utils.helpers import (
    RESULT_FORMATS, Timer, create_predictor, load_config, save_results,
    setup_logging
)

DEFAULT_CONFIG = Path(__file__).resolve().parent.parent / "config" / "default.yaml"
PREDICTOR_TYPES = ('perceptron', 'bimodal', 'gshare')

logger = logging.getLogger("perceptron_predictor.benchmarks")


def build_simulator(config: dict) -> BranchSimulator:
    """Create a simulator with one instance of every predictor type."""
    simulator = BranchSimulator(SimulationConfig(**config.get('simulation', {})))
    for predictor_type in PREDICTOR_TYPES:
        simulator.add_predictor(predictor_type,
                                create_predictor(predictor_type,
                                                 config.get(predictor_type, {})))
    return simulator


def run_all(config: dict, workloads: list, traces: list) -> dict:
    """Run every workload and trace; results keyed by benchmark name."""
    simulator = build_simulator(config)
    all_results = {}

    for name in workloads:
        with Timer(f"workload {name}", logger):
            results = simulator.run_on_trace(generate_workload(name))
        all_results[name] = results

    for trace_path in traces:
        with Timer(f"trace {trace_path}", logger):
            results = simulator.run(trace_path)
        all_results[Path(trace_path).name] = results

    return all_results
def print_summary(all_results: dict) -> None:
    """Print accuracy, table sharing and fetch/resolve divergence per run."""
    rule = "-" * 80
    print("\n" + "=" * 80)
    print("BENCHMARK SUMMARY")
    print("=" * 80)
    print(f"{'Benchmark':<14} {'Predictor':<11} {'Branches':>9} "
          f"{'Accuracy':>9} {'MPKI':>8} {'Shared':>8} {'Divergent':>10}")
    print(rule)

    for bench, results in all_results.items():
        for pred_name, stats in results.predictor_results.items():
            shared = f"{stats['shared_entries']}/{stats['entries_used']}"
            print(f"{bench:<14} {pred_name:<11} {stats['total']:>9,} "
                  f"{stats['accuracy']*100:>8.2f}% {stats['mpki']:>8.2f} "
                  f"{shared:>8} {stats['divergent_predictions']:>10,}")
        print(rule)


def main():
    parser = argparse.ArgumentParser(description='Run branch predictor benchmarks')
    parser.add_argument('--config', '-c', type=str, default=str(DEFAULT_CONFIG),
                        help='YAML configuration file')
    parser.add_argument('--workloads', '-w', nargs='*', default=None,
                        help=f'Synthetic workloads ({", ".join(list_workloads())})')
    parser.add_argument('--traces', '-t', nargs='*', default=[],
                        help='Trace files to simulate')
    parser.add_argument('--latency', '-l', type=int, default=None,
                        help='Branches fetched between lookup and training')
    parser.add_argument('--warmup', type=int, default=None,
                        help='Warmup branches excluded from metrics')
    parser.add_argument('--output', '-o', type=str, default=None,
                        help='Directory for result files')
    parser.add_argument('--formats', nargs='+', default=['json', 'csv'],
                        choices=RESULT_FORMATS,
                        help='Result file formats')
    parser.add_argument('--log-level', type=str, default='INFO',
                        help='Logging level')

    args = parser.parse_args()
    setup_logging(args.log_level)

    try:
        config = load_config(args.config)
    except (FileNotFoundError, ValueError) as e:
        logger.error("%s", e)
        sys.exit(1)

    simulation = config.setdefault('simulation', {})
    if args.latency is not None:
        simulation['resolve_latency'] = args.latency
    if args.warmup is not None:
        simulation['warmup_branches'] = args.warmup

    workloads = args.workloads
    if workloads is None:
        workloads = config.get('workloads', list_workloads())

    try:
        all_results = run_all(config, workloads, args.traces)
    except (ValueError, FileNotFoundError) as e:
        logger.error("%s", e)
        sys.exit(1)

    print_summary(all_results)

    if args.output:
        paths = save_results(all_results.values(), args.output,
                             name="benchmark", formats=args.formats)
        for path in paths.values():
            print(f"Results saved to: {path}")


if __name__ == '__main__':
    main()
