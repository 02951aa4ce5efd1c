"""
casmpc: Nonlinear Model Predictive Control over CasADi
=======================================================

casmpc transcribes a finite-horizon optimal control problem into a
multiple-shooting NLP once, then re-solves it at every control step with the
measured state pinned as initial condition, warm-started from the previous
solution.

Quick Start
-----------
>>> import casadi as ca
>>> import numpy as np
>>> from casmpc import MPC, Problem
>>>
>>> prob = Problem("rk4", nx=2, nu=1, horizon=20, dt=0.1,
...                dynamics=lambda x, u: ca.vertcat(x[1], u[0]),
...                stage_cost=lambda x, u: ca.sumsqr(x) + 0.1 * ca.sumsqr(u))
>>> prob.set_control_bound(-1.0, 1.0)
>>> mpc = MPC(prob)
>>> u = mpc.solve(np.array([1.0, 0.0]))

Solver backends: IPOPT (default), CasADi's SQP method with qpOASES or
HPIPM, and SciPy's SLSQP.
"""

__version__ = "0.1.0"
__author__ = "casmpc Contributors"

from .log import get_logger
from .integrators import DynamicsType, forward_euler, modified_euler, rk4, make_step
from .problem import Problem, ConstraintType
from .transcription import TranscribedNLP, ConstraintBlock, transcribe
from .result import SolveResult, MPCResult, Status
from .solver import SolverAdapter, CasadiSolver, ScipySolver, make_solver
from .controller import MPC
from .config import (
    default_config,
    default_qpoases_config,
    default_hpipm_config,
    default_slsqp_config,
    preset_for,
    merge_config,
)
from .exceptions import (
    MPCError,
    ConfigurationError,
    DimensionError,
    StageIndexError,
    SolverError,
    ConvergenceFailure,
    InfeasibleProblem,
)

__all__ = [
    # Version
    "__version__",

    # Problem definition
    "Problem",
    "ConstraintType",
    "DynamicsType",

    # Integration
    "forward_euler",
    "modified_euler",
    "rk4",
    "make_step",

    # Transcription
    "TranscribedNLP",
    "ConstraintBlock",
    "transcribe",

    # Solving
    "MPC",
    "SolverAdapter",
    "CasadiSolver",
    "ScipySolver",
    "make_solver",

    # Configuration
    "default_config",
    "default_qpoases_config",
    "default_hpipm_config",
    "default_slsqp_config",
    "preset_for",
    "merge_config",

    # Results
    "SolveResult",
    "MPCResult",
    "Status",

    # Exceptions
    "MPCError",
    "ConfigurationError",
    "DimensionError",
    "StageIndexError",
    "SolverError",
    "ConvergenceFailure",
    "InfeasibleProblem",

    "get_logger",
]


def info() -> str:
    """Return information about the casmpc installation."""
    import platform

    import casadi
    import numpy
    import scipy

    lines = [
        f"casmpc version: {__version__}",
        f"Python version: {platform.python_version()}",
        f"Platform: {platform.platform()}",
        f"CasADi version: {casadi.__version__}",
        f"NumPy version: {numpy.__version__}",
        f"SciPy version: {scipy.__version__}",
    ]
    return "\n".join(lines)
