#!/usr/bin/env python3
"""
casmpc Benchmark: solve latency versus horizon, cold and warm start
"""

import time

import numpy as np

import casmpc
from casmpc import MPC, SolverError
from casmpc.models import double_integrator, inverted_pendulum

print(f"casmpc version: {casmpc.__version__}")
print()


def time_solves(mpc, states):
    """Time a sequence of solves; returns per-solve times and iterations."""
    times = []
    iterations = []
    for x in states:
        start = time.perf_counter()
        mpc.solve(x)
        times.append(time.perf_counter() - start)
        iterations.append(mpc.last_result.iterations)
    return np.array(times), np.array(iterations)


def closed_loop_states(mpc, x0, n_steps):
    """States visited by the closed loop, from a separate controller run."""
    sim = mpc.simulate(x0, n_steps)
    return sim['x'][:-1]


def benchmark_single(make_problem, x0, solver_name, n_steps=30):
    """Cold and warm latency for one problem instance."""
    reference = MPC(make_problem(), solver_name=solver_name)
    states = closed_loop_states(reference, x0, n_steps)

    # cold: forget the cache before every solve
    cold = MPC(make_problem(), solver_name=solver_name)
    cold_times = []
    cold_iters = []
    for x in states:
        cold.reset_warm_start()
        t, it = time_solves(cold, [x])
        cold_times.append(t[0])
        cold_iters.append(it[0])

    warm = MPC(make_problem(), solver_name=solver_name)
    warm_times, warm_iters = time_solves(warm, states)

    return {
        'cold_ms': np.median(cold_times) * 1000,
        'warm_ms': np.median(warm_times) * 1000,
        'cold_iters': np.mean(cold_iters),
        'warm_iters': np.mean(warm_iters),
    }


def benchmark_horizon(solver_name="ipopt"):
    """Benchmark across horizon lengths."""
    print("=" * 70)
    print(f"Horizon Scaling Benchmark ({solver_name}, inverted pendulum)")
    print("=" * 70)

    horizons = [10, 20, 40, 80]
    all_results = []

    for N in horizons:
        print(f"\nHorizon: {N}")
        try:
            res = benchmark_single(
                lambda: inverted_pendulum(horizon=N, dt=1.5 / N),
                np.array([0.6, 0.0]),
                solver_name,
            )
        except SolverError as e:
            print(f"    failed: {e}")
            continue
        print(f"    cold: {res['cold_ms']:8.2f} ms, iters={res['cold_iters']:.1f}")
        print(f"    warm: {res['warm_ms']:8.2f} ms, iters={res['warm_iters']:.1f}")
        all_results.append((N, res))

    # Summary table
    print("\n" + "=" * 70)
    print("Summary")
    print("=" * 70)
    print(f"{'N':>6} {'Cold (ms)':>12} {'Warm (ms)':>12} {'Speedup':>10}")
    print("-" * 70)

    for N, res in all_results:
        speedup = res['cold_ms'] / res['warm_ms']
        print(f"{N:>6} {res['cold_ms']:>12.2f} {res['warm_ms']:>12.2f} {speedup:>10.2f}x")


def benchmark_backends():
    """Compare solver backends on the double integrator."""
    print("\n" + "=" * 70)
    print("Backend Comparison (double integrator, N=20)")
    print("=" * 70)

    def make_problem():
        prob = double_integrator(horizon=20, dt=0.1)
        prob.set_control_bound(-1.0, 1.0)
        return prob

    for solver_name in ["ipopt", "qpoases", "slsqp"]:
        try:
            res = benchmark_single(make_problem, np.array([1.0, 0.0]), solver_name)
        except SolverError as e:
            print(f"    {solver_name:>8}: failed ({e})")
            continue
        print(f"    {solver_name:>8}: cold {res['cold_ms']:8.2f} ms, warm {res['warm_ms']:8.2f} ms")


if __name__ == "__main__":
    benchmark_horizon()
    benchmark_backends()
