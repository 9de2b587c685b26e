import csv
import json

import pytest

from perceptron_predictor.predictors.base import BimodalPredictor
from perceptron_predictor.predictors.perceptron import PerceptronPredictor
from perceptron_predictor.simulation.metrics import ResultsExporter
from perceptron_predictor.simulation.simulator import BranchSimulator, SimulationConfig
from perceptron_predictor.trace.parser import write_text_trace
from perceptron_predictor.trace.workloads import generate_workload


@pytest.fixture
def simulator():
    sim = BranchSimulator(SimulationConfig(collect_per_branch_stats=True))
    sim.add_predictor('perceptron', PerceptronPredictor())
    return sim


def test_always_taken_branch_is_never_mispredicted(simulator, make_trace):
    results = simulator.run_on_trace(make_trace([(0x1000, True)] * 100))

    stats = results.predictor_results['perceptron']
    assert stats['total'] == 100
    assert stats['accuracy'] == 1.0
    assert stats['mpki'] == 0.0


def test_warmup_is_excluded_from_metrics(make_trace):
    sim = BranchSimulator({'warmup_branches': 10})
    sim.add_predictor('perceptron', PerceptronPredictor())
    results = sim.run_on_trace(make_trace([(0x1000, True)] * 100))

    assert results.branches_simulated == 90
    assert results.warmup_branches == 10
    assert results.predictor_results['perceptron']['total'] == 90
    # Warmup branches still train
    assert results.training_stats['perceptron']['trainings'] == 100


def test_simulation_branch_limit(make_trace):
    sim = BranchSimulator(SimulationConfig(simulation_branches=50))
    sim.add_predictor('bimodal', BimodalPredictor({'table_size': 16}))
    results = sim.run_on_trace(make_trace([(0x1000, False)] * 80))

    assert results.branches_simulated == 50


def test_resolve_latency_trains_every_branch(make_trace):
    predictor = PerceptronPredictor()
    sim = BranchSimulator(SimulationConfig(resolve_latency=3))
    sim.add_predictor('perceptron', predictor)
    results = sim.run_on_trace(make_trace([(0x1000, True)] * 20))

    assert results.predictor_results['perceptron']['total'] == 20
    assert predictor.get_stats().trainings == 20
    assert predictor.history == (True,) * 7


def test_lookup_happens_before_delayed_training(make_trace):
    predictor = PerceptronPredictor()
    sim = BranchSimulator(SimulationConfig(resolve_latency=5))
    sim.add_predictor('perceptron', predictor)
    # Three not-taken branches are all fetched before any of them trains,
    # so each is predicted from the untrained (taken) state
    results = sim.run_on_trace(make_trace([(0x1000, False)] * 3))

    stats = results.predictor_results['perceptron']
    assert stats['mispredictions'] == 3
    # By the time the second and third train, the first has already
    # taught the perceptron not-taken
    assert stats['resolved'] == 3
    assert stats['divergent_predictions'] == 2
    assert stats['stale_mispredictions'] == 2
    assert results.training_stats['perceptron']['mispredictions'] == 1


def test_no_divergence_without_latency(simulator):
    results = simulator.run_on_trace(generate_workload('pattern'))

    stats = results.predictor_results['perceptron']
    assert stats['resolved'] == 300
    assert stats['divergent_predictions'] == 0
    assert stats['divergence_rate'] == 0.0
    # Fetch-time and train-time predictions coincide
    assert (results.training_stats['perceptron']['mispredictions']
            == stats['mispredictions'])


def test_warmup_branches_are_not_resolved_into_metrics(make_trace):
    sim = BranchSimulator(SimulationConfig(warmup_branches=4, resolve_latency=2))
    sim.add_predictor('perceptron', PerceptronPredictor())
    results = sim.run_on_trace(make_trace([(0x1000, True)] * 10))

    assert results.predictor_results['perceptron']['resolved'] == 6


def test_entry_contention(make_trace):
    sim = BranchSimulator()
    sim.add_predictor('perceptron', PerceptronPredictor())
    # 0x1000 and 0x1020 share entry 0; 0x1004 has entry 1 to itself
    events = [(0x1000, True), (0x1020, False), (0x1004, True)] * 4
    sim.run_on_trace(make_trace(events))

    entries = sim.metrics.get_entry_stats('perceptron')
    assert entries[0]['branches'] == [0x1000, 0x1020]
    assert entries[0]['lookups'] == 8
    assert entries[1]['branches'] == [0x1004]
    assert entries[1]['lookups'] == 4

    stats = sim.metrics.get_predictor_stats('perceptron')
    assert stats['entries_used'] == 2
    assert stats['shared_entries'] == 1
    assert stats['shared_entry_lookups'] == 8


def test_aliasing_workload_shares_one_perceptron(simulator):
    results = simulator.run_on_trace(generate_workload('aliasing'))

    entries = simulator.metrics.get_entry_stats('perceptron')
    assert entries[0]['branches'] == [0x1000, 0x1020, 0x1040, 0x1060]
    assert entries[1]['branches'] == [0x1104]
    assert entries[2]['branches'] == [0x1108]

    stats = results.predictor_results['perceptron']
    assert stats['shared_entries'] == 1
    assert stats['shared_entry_lookups'] == 7400 - 200


def test_run_from_file(tmp_path, simulator):
    path = write_text_trace(generate_workload('pattern'), tmp_path / "pattern.txt")
    results = simulator.run(path)

    assert results.trace_name == "pattern.txt"
    assert results.predictor_results['perceptron']['total'] == 300

    per_branch = simulator.metrics.get_per_branch_stats('perceptron')
    assert set(per_branch) == {0x1000, 0x1008, 0x1010}
    assert all(s['total'] == 100 for s in per_branch.values())


def test_h2p_branches(simulator):
    simulator.run_on_trace(generate_workload('pattern'))
    h2p = simulator.metrics.get_h2p_branches('perceptron', threshold=0.0)
    assert h2p == [0x1000, 0x1008, 0x1010]
    assert simulator.metrics.get_h2p_branches('perceptron', threshold=1.01) == []


def test_rerun_resets_state(simulator, make_trace):
    trace = make_trace([(0x1000, False)] * 30)
    first = simulator.run_on_trace(trace)
    second = simulator.run_on_trace(trace)
    assert first.predictor_results == second.predictor_results


def test_multiple_predictors(make_trace):
    sim = BranchSimulator()
    sim.add_predictor('perceptron', PerceptronPredictor())
    sim.add_predictor('bimodal', BimodalPredictor({'table_size': 16}))
    results = sim.run_on_trace(make_trace([(0x1000, False)] * 10))

    assert set(results.predictor_results) == {'perceptron', 'bimodal'}
    assert set(results.hardware_costs) == {'perceptron', 'bimodal'}
    assert "perceptron" in sim.metrics.get_comparison_table()


def test_simulator_errors(make_trace):
    sim = BranchSimulator()
    with pytest.raises(ValueError, match="No predictors"):
        sim.run_on_trace(make_trace([(0x1000, True)]))

    sim.add_predictor('p', PerceptronPredictor())
    with pytest.raises(ValueError, match="already registered"):
        sim.add_predictor('p', PerceptronPredictor())


@pytest.mark.parametrize("field", [
    'warmup_branches', 'simulation_branches', 'resolve_latency'
])
def test_invalid_simulation_config(field):
    with pytest.raises(ValueError):
        SimulationConfig(**{field: -1})


def test_results_export(tmp_path, simulator, make_trace):
    results = simulator.run_on_trace(make_trace([(0x1000, True)] * 5, name="tiny"))

    json_path = tmp_path / "out" / "results.json"
    ResultsExporter.to_json(results, json_path)
    data = json.loads(json_path.read_text())
    assert data['trace_name'] == "tiny"
    assert data['config']['resolve_latency'] == 0
    assert data['predictor_results']['perceptron']['entries_used'] == 1

    csv_path = tmp_path / "results.csv"
    ResultsExporter.to_csv(results, csv_path)
    with open(csv_path) as f:
        rows = list(csv.DictReader(f))
    assert len(rows) == 1
    assert rows[0]['trace'] == "tiny"
    assert rows[0]['predictor'] == "perceptron"
    assert rows[0]['branches'] == "5"
    assert rows[0]['storage_bits'] == str(8 * 8 * 8 + 7)

    assert "tiny" in results.get_summary()


def test_export_several_runs(tmp_path, make_trace):
    sim = BranchSimulator()
    sim.add_predictor('perceptron', PerceptronPredictor())
    sim.add_predictor('bimodal', BimodalPredictor({'table_size': 16}))
    runs = [sim.run_on_trace(make_trace([(0x1000, True)] * 3, name=name))
            for name in ("first", "second")]

    rows = ResultsExporter.rows(runs)
    assert [(r['trace'], r['predictor']) for r in rows] == [
        ("first", "perceptron"), ("first", "bimodal"),
        ("second", "perceptron"), ("second", "bimodal"),
    ]

    json_path = tmp_path / "runs.json"
    ResultsExporter.to_json(runs, json_path)
    assert [run['trace_name'] for run in json.loads(json_path.read_text())] == [
        "first", "second"
    ]
