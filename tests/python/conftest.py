"""
pytest configuration and fixtures for casmpc tests.
"""

import pytest
import numpy as np

from casmpc.result import SolveResult, Status
from casmpc.solver import SolverAdapter
from casmpc.exceptions import InfeasibleProblem


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def scalar_lq():
    """
    Scalar discrete-time LQ problem.

    x_{k+1} = a x_k + b u_k
    cost: sum q x_k^2 + r u_k^2 + qf x_N^2

    The finite-horizon optimum is u_0 = -K_0 x_0 with K_0 from the
    backward Riccati recursion.
    """
    return {
        "a": 1.2,
        "b": 0.5,
        "q": 1.0,
        "r": 0.1,
        "qf": 2.0,
        "horizon": 10,
    }


@pytest.fixture
def ipopt_config():
    """Quiet IPOPT with tight tolerance."""
    from casmpc import default_config, merge_config

    return merge_config(default_config(), {"ipopt.tol": 1e-10})


def lqr_first_gain(a, b, q, r, qf, horizon):
    """Finite-horizon scalar LQR gain K_0 (u_0 = -K_0 x_0)."""
    P = qf
    K = 0.0
    for _ in range(horizon):
        K = (b * P * a) / (r + b * P * b)
        P = q + a * P * a - a * P * b * K
    return K


@pytest.fixture
def lqr_gain():
    """Closed-form finite-horizon scalar LQR gain."""
    return lqr_first_gain


class StubSolver(SolverAdapter):
    """
    Solver adapter that records its inputs.

    Reports 10 iterations for a cold start (all-zero initial guess) and 3
    for a warm start, or raises InfeasibleProblem when ``fail`` is set.
    """

    name = "stub"

    def __init__(self, nlp, fail=False):
        self.nlp = nlp
        self.fail = fail
        self.calls = []

    def solve(self, x0, lbx, ubx, lbg, ubg, lam_x0, lam_g0):
        self.calls.append({
            "x0": np.array(x0),
            "lbx": np.array(lbx),
            "ubx": np.array(ubx),
            "lam_x0": np.array(lam_x0),
            "lam_g0": np.array(lam_g0),
        })
        if self.fail:
            raise InfeasibleProblem(status=Status.INFEASIBLE, return_status="stub infeasible")

        cold = not np.any(x0) and not np.any(lam_x0) and not np.any(lam_g0)
        x = np.array(x0, dtype=np.float64)
        x[:self.nlp.nx] = lbx[:self.nlp.nx]
        n_call = len(self.calls)
        return SolveResult(
            status=Status.OPTIMAL,
            objective=float(n_call),
            x=x + 0.01 * n_call,
            lam_x=np.full(self.nlp.n_vars, 0.1 * n_call),
            lam_g=np.full(self.nlp.n_constraints, 0.2 * n_call),
            iterations=10 if cold else 3,
            solve_time=0.0,
            return_status="stub",
        )


@pytest.fixture
def stub_factory():
    """Factory usable as MPC(solver_factory=...); keeps created stubs."""
    created = []

    def factory(nlp, solver_name, config, fail=False):
        stub = StubSolver(nlp, fail=fail)
        created.append(stub)
        return stub

    factory.created = created
    return factory


# ============================================================================
# Markers
# ============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "slow: marks tests as slow")
    config.addinivalue_line("markers", "integration: marks integration tests")
