"""
Synthetic Workloads

Python models of small benchmark programs, emitting the conditional
branch events each program would produce. Every static branch site has a
fixed word-aligned address; targets are nominal (site + 8).

Available workloads:
- pattern:    if-branch following a T, T, N pattern for 100 iterations
- aliasing:   four loops whose branches collide in an 8-entry table,
              called in two different interleavings
- bubblesort: sort of 50 seeded random integers, then a verify pass
- complex:    correlated loops, sequential bit tests, interleaved functions
- fibonacci:  recursive fib(20) base-case test
- factorial:  5! with a shift-and-add multiply
"""

from typing import Callable, Dict, List
import numpy as np

from .formats import BranchRecord
from .parser import BranchTrace


class _Emitter:
    """Collects branch events into a trace."""

    def __init__(self, name: str):
        self.trace = BranchTrace(name=name)

    def __call__(self, pc: int, taken) -> None:
        self.trace.add(BranchRecord(
            pc=pc,
            target=pc + 8,
            taken=bool(taken),
            branch_type=1,
            instruction_count=len(self.trace)
        ))


def _loop(emit: _Emitter, pc: int, n: int) -> None:
    """Back-edge of a counted loop: taken n-1 times, then falls through."""
    for i in range(n):
        emit(pc, i + 1 < n)


def _pattern(emit: _Emitter, rng: np.random.Generator) -> None:
    wrap_pc, cond_pc, loop_pc = 0x1000, 0x1008, 0x1010
    state = 0
    for i in range(100):
        state += 1
        emit(wrap_pc, state == 3)
        if state == 3:
            state = 0
        emit(cond_pc, state != 0)
        emit(loop_pc, i + 1 < 100)


def _aliasing(emit: _Emitter, rng: np.random.Generator) -> None:
    # (pc >> 2) % 8 == 0 for all four loop branches
    loop_a, loop_b, loop_c, loop_d = 0x1000, 0x1020, 0x1040, 0x1060
    main_1, main_2 = 0x1104, 0x1108
    iterations = 100

    for i in range(iterations):
        for pc in (loop_a, loop_b, loop_c, loop_d):
            _loop(emit, pc, 10)
        emit(main_1, i + 1 < iterations)

    for i in range(iterations):
        for pc in (loop_a, loop_c, loop_b, loop_d):
            _loop(emit, pc, 8)
        emit(main_2, i + 1 < iterations)


def _bubblesort(emit: _Emitter, rng: np.random.Generator) -> None:
    outer_pc, inner_pc, cmp_pc = 0x2000, 0x2004, 0x2008
    verify_pc, verify_loop_pc = 0x2020, 0x2024
    size = 50

    data = [int(v) for v in rng.integers(-1000, 1000, size=size)]

    for i in range(size - 1):
        for j in range(size - i - 1):
            swap = data[j] > data[j + 1]
            emit(cmp_pc, swap)
            if swap:
                data[j], data[j + 1] = data[j + 1], data[j]
            emit(inner_pc, j + 1 < size - i - 1)
        emit(outer_pc, i + 1 < size - 1)

    for i in range(size - 1):
        emit(verify_pc, data[i] > data[i + 1])
        emit(verify_loop_pc, i + 1 < size - 1)


def _complex(emit: _Emitter, rng: np.random.Generator) -> None:
    # Phase 1: correlated loops
    outer, inner = 50, 20
    for i in range(outer):
        for j in range(inner):
            emit(0x3000, j & 1)
            emit(0x3004, j + 1 < inner)
        for k in range(inner):
            emit(0x3010, k & 1)
            emit(0x3014, k + 1 < inner)
        emit(0x3020, i + 1 < outer)

    # Phase 2: sequential bit tests
    bit_tests = [
        (0x3100, lambda i: i & 1),
        (0x3104, lambda i: i & 2),
        (0x3108, lambda i: i & 4),
        (0x310c, lambda i: i & 8),
        (0x3110, lambda i: (i & 3) == 0),
        (0x3114, lambda i: (i & 3) == 1),
        (0x3118, lambda i: (i & 3) == 2),
        (0x311c, lambda i: (i & 3) == 3),
    ]
    for _ in range(10):
        n = 32
        for i in range(n):
            for pc, test in bit_tests:
                emit(pc, test(i))
            emit(0x3120, i + 1 < n)

    # Phase 3: interleaved functions
    functions = [
        (0x3200, lambda i, n: i < n // 2),
        (0x3210, lambda i, n: i >= n // 2),
        (0x3220, lambda i, n: (i & 3) < 2),
    ]
    for _ in range(30):
        n = 8
        for pc, test in functions:
            for i in range(n):
                emit(pc, test(i, n))
                emit(pc + 4, i + 1 < n)


def _fibonacci(emit: _Emitter, rng: np.random.Generator) -> None:
    base_pc = 0x4000

    def fib(n: int) -> int:
        emit(base_pc, n <= 1)
        if n <= 1:
            return n
        return fib(n - 1) + fib(n - 2)

    fib(20)


def _factorial(emit: _Emitter, rng: np.random.Generator) -> None:
    while_pc, odd_pc, fact_pc = 0x5000, 0x5004, 0x5010

    def mul(a: int, b: int) -> int:
        result = 0
        while True:
            emit(while_pc, b > 0)
            if not b > 0:
                break
            emit(odd_pc, b & 1)
            if b & 1:
                result += a
            a <<= 1
            b >>= 1
        return result

    n = 5
    result = 1
    i = 2
    while True:
        emit(fact_pc, i <= n)
        if i > n:
            break
        result = mul(result, i)
        i += 1


WORKLOADS: Dict[str, Callable[[_Emitter, np.random.Generator], None]] = {
    'pattern': _pattern,
    'aliasing': _aliasing,
    'bubblesort': _bubblesort,
    'complex': _complex,
    'fibonacci': _fibonacci,
    'factorial': _factorial,
}


def list_workloads() -> List[str]:
    """Names of the available synthetic workloads."""
    return list(WORKLOADS.keys())


def generate_workload(name: str, seed: int = 0) -> BranchTrace:
    """
    Generate the branch trace of a synthetic workload.

    Args:
        name: Workload name (see ``list_workloads``)
        seed: Seed for workloads with random input data

    Returns:
        BranchTrace named after the workload
    """
    workload = WORKLOADS.get(name.lower())
    if workload is None:
        raise ValueError(f"Unknown workload: {name}. "
                         f"Available: {list_workloads()}")

    emit = _Emitter(name.lower())
    workload(emit, np.random.default_rng(seed))
    return emit.trace
