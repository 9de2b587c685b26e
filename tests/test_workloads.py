import pytest

from perceptron_predictor.components.tables import IndexingScheme
from perceptron_predictor.trace.workloads import generate_workload, list_workloads


def test_available_workloads():
    assert set(list_workloads()) == {
        'pattern', 'aliasing', 'bubblesort', 'complex', 'fibonacci', 'factorial'
    }


@pytest.mark.parametrize("name,length", [
    ('pattern', 300),
    ('aliasing', 7400),
    ('bubblesort', 2597),
    ('fibonacci', 21891),
    ('factorial', 29),
])
def test_workload_lengths(name, length):
    assert len(generate_workload(name)) == length


def test_pattern_branch_follows_t_t_n():
    trace = generate_workload('pattern')
    outcomes = [r.taken for r in trace if r.pc == 0x1008]
    assert outcomes == [True, True, False] * 33 + [True]


def test_aliasing_loops_collide_in_small_table():
    trace = generate_workload('aliasing')
    loop_pcs = {0x1000, 0x1020, 0x1040, 0x1060}
    assert loop_pcs <= {r.pc for r in trace}
    assert {IndexingScheme.word_aligned(pc, 8) for pc in loop_pcs} == {0}


def test_fibonacci_base_case_count():
    trace = generate_workload('fibonacci')
    # fib(20) reaches the base case F(21) times
    assert sum(r.taken for r in trace) == 10946


def test_bubblesort_is_seeded():
    first = [r.taken for r in generate_workload('bubblesort', seed=3)]
    again = [r.taken for r in generate_workload('bubblesort', seed=3)]
    other = [r.taken for r in generate_workload('bubblesort', seed=4)]
    assert first == again
    assert first != other


def test_bubblesort_verify_pass_never_fails():
    trace = generate_workload('bubblesort')
    assert not any(r.taken for r in trace if r.pc == 0x2020)


def test_complex_workload_is_word_aligned():
    trace = generate_workload('complex')
    assert len(trace) > 0
    assert all(r.pc % 4 == 0 for r in trace)
    assert trace.name == 'complex'


def test_unknown_workload():
    with pytest.raises(ValueError, match="Unknown workload"):
        generate_workload('dhrystone')
