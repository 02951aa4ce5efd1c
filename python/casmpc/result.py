"""
casmpc Result Classes
=====================

Data classes for solver results and status.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

import numpy as np


class Status(Enum):
    """
    Solver status codes.

    Attributes:
        OPTIMAL: Solution found within tolerance
        INFEASIBLE: Solver reports that no feasible point exists
        MAX_ITERATIONS: Maximum iteration limit reached
        TIME_LIMIT: Time limit exceeded
        NUMERICAL_ERROR: Numerical issues encountered
        UNSOLVED: Problem not yet solved
    """
    OPTIMAL = "optimal"
    INFEASIBLE = "infeasible"
    MAX_ITERATIONS = "max_iterations"
    TIME_LIMIT = "time_limit"
    NUMERICAL_ERROR = "numerical_error"
    UNSOLVED = "unsolved"

    def __str__(self) -> str:
        return self.value

    @property
    def is_successful(self) -> bool:
        """True if an optimal solution was found."""
        return self == Status.OPTIMAL

    @classmethod
    def from_casadi_stats(cls, stats: Dict[str, Any]) -> "Status":
        """
        Classify the ``stats()`` dictionary of a CasADi solver.

        ``success`` wins when present. Otherwise the plugin-independent
        ``unified_return_status`` is consulted before falling back to the
        plugin-specific ``return_status`` string.
        """
        if stats.get("success", False):
            return cls.OPTIMAL

        unified = str(stats.get("unified_return_status", ""))
        unified_map = {
            "SOLVER_RET_SUCCESS": cls.OPTIMAL,
            "SOLVER_RET_INFEASIBLE": cls.INFEASIBLE,
            "SOLVER_RET_LIMITED": cls.MAX_ITERATIONS,
            "SOLVER_RET_NAN": cls.NUMERICAL_ERROR,
        }
        if unified in unified_map and unified_map[unified] is not cls.OPTIMAL:
            status = unified_map[unified]
            if status is cls.MAX_ITERATIONS and "time" in str(stats.get("return_status", "")).lower():
                return cls.TIME_LIMIT
            return status

        return cls.from_return_status(str(stats.get("return_status", "")))

    @classmethod
    def from_return_status(cls, return_status: str) -> "Status":
        """Map a raw solver return status string (IPOPT, SQP, QP) to a Status."""
        text = return_status.lower()
        if "infeasib" in text:
            return cls.INFEASIBLE
        if "time" in text:
            return cls.TIME_LIMIT
        if "iter" in text:
            return cls.MAX_ITERATIONS
        if text in ("solve_succeeded", "solved_to_acceptable_level", "success"):
            return cls.OPTIMAL
        if not text:
            return cls.UNSOLVED
        return cls.NUMERICAL_ERROR


@dataclass
class SolveResult:
    """
    Result of one call to a solver adapter.

    Attributes:
        status: Solver status
        objective: Objective value at the returned point
        x: Primal solution (decision vector)
        lam_x: Multipliers for the simple bounds on x
        lam_g: Multipliers for the constraints g
        iterations: Number of iterations performed
        solve_time: Wall clock time in seconds
        return_status: Raw status string reported by the solver
    """

    status: Status
    objective: float
    x: np.ndarray
    lam_x: np.ndarray
    lam_g: np.ndarray
    iterations: int
    solve_time: float
    return_status: str = ""

    def __repr__(self) -> str:
        return (
            f"SolveResult(status={self.status}, "
            f"objective={self.objective:.6g}, "
            f"iterations={self.iterations}, "
            f"time={self.solve_time:.4f}s)"
        )


@dataclass
class MPCResult:
    """
    MPC solution result.

    Attributes:
        x: Predicted state trajectory (N+1, n_x)
        u: Optimal control sequence (N, n_u)
        cost: Optimal cost value
        status: Solver status
        solve_time: Computation time (seconds)
        iterations: Solver iterations
    """
    x: np.ndarray
    u: np.ndarray
    cost: float
    status: str
    solve_time: float
    iterations: int
    return_status: Optional[str] = None

    @property
    def optimal_control(self) -> np.ndarray:
        """First control action to apply (n_u,)."""
        return self.u[0]

    @property
    def predicted_trajectory(self) -> np.ndarray:
        """Predicted state trajectory (N+1, n_x)."""
        return self.x

    def __repr__(self) -> str:
        return (
            f"MPCResult(\n"
            f"  status={self.status},\n"
            f"  cost={self.cost:.4f},\n"
            f"  solve_time={self.solve_time*1000:.2f}ms,\n"
            f"  horizon={len(self.u)}\n"
            f")"
        )
