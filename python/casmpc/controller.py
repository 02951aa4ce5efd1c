"""
MPC Controller
==============

Receding-horizon controller over a multiple-shooting NLP.

The problem is transcribed once, in the constructor. Every call to
:meth:`MPC.solve` then only:

1. pins the measured state into the bounds of ``x_0``,
2. calls the solver warm-started from the previous solution,
3. caches the new primal/dual solution and returns ``u_0``.

A failed solve raises and leaves the warm-start cache untouched, so the next
call still starts from the last successful solution.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Optional

import casadi as ca
import numpy as np

from .config import merge_config, preset_for
from .log import get_logger
from .problem import Problem
from .result import MPCResult
from .solver import SolverAdapter, make_solver
from .transcription import TranscribedNLP, transcribe
from .utils.validation import as_state_vector

log = get_logger(__name__)

SolverFactory = Callable[[TranscribedNLP, str, Dict[str, Any]], SolverAdapter]


class MPC:
    """
    Nonlinear Model Predictive Controller.

    Args:
        problem: Optimal control problem (transcribed immediately)
        solver_name: "ipopt", "sqpmethod", "qpoases", "hpipm", "slsqp" or any
            other ``casadi.nlpsol`` plugin
        config: Solver options (default: preset for ``solver_name``)
        solver_factory: Builds the adapter from ``(nlp, solver_name, config)``
            (default: :func:`casmpc.solver.make_solver`)

    Example:
        >>> prob = double_integrator(horizon=20, dt=0.1)
        >>> prob.set_control_bound(-1.0, 1.0)
        >>> mpc = MPC(prob)
        >>>
        >>> x = np.array([1.0, 0.0])
        >>> for _ in range(50):
        ...     u = mpc.solve(x)
        ...     x = plant.step(x, u)
    """

    def __init__(
        self,
        problem: Problem,
        solver_name: str = "ipopt",
        config: Optional[Dict[str, Any]] = None,
        solver_factory: Optional[SolverFactory] = None,
    ) -> None:
        self.problem = problem
        self.solver_name = solver_name
        self.config = merge_config(preset_for(solver_name) if config is None else config)

        self.n_x = problem.nx
        self.n_u = problem.nu
        self.horizon = problem.horizon

        self.nlp = transcribe(problem)

        # Bound arrays owned by the controller; only lbw/ubw[:nx] change later
        self._lbw = self.nlp.lbw.copy()
        self._ubw = self.nlp.ubw.copy()
        self._lbg = self.nlp.lbg.copy()
        self._ubg = self.nlp.ubg.copy()

        factory = solver_factory or make_solver
        self.solver = factory(self.nlp, solver_name, self.config)

        # Warm-start cache (None until the first successful solve)
        self._w0: Optional[np.ndarray] = None
        self._lam_x0: Optional[np.ndarray] = None
        self._lam_g0: Optional[np.ndarray] = None

        self.last_result: Optional[MPCResult] = None

        log.info(
            "Created MPC: solver=%s horizon=%d n_x=%d n_u=%d variables=%d constraints=%d",
            solver_name, self.horizon, self.n_x, self.n_u,
            self.nlp.n_vars, self.nlp.n_constraints,
        )

    # ------------------------------------------------------------------
    # Warm start
    # ------------------------------------------------------------------

    @property
    def is_initialized(self) -> bool:
        """True once a solve succeeded and a warm start is cached."""
        return self._w0 is not None

    @property
    def warm_start(self) -> Dict[str, np.ndarray]:
        """Copy of the vectors passed to the next solve as initial guess."""
        w0, lam_x0, lam_g0 = self._initial_guess()
        return {"x0": w0.copy(), "lam_x0": lam_x0.copy(), "lam_g0": lam_g0.copy()}

    def reset_warm_start(self) -> None:
        """Forget the cached solution; the next solve starts cold."""
        self._w0 = None
        self._lam_x0 = None
        self._lam_g0 = None
        self.last_result = None

    def _initial_guess(self):
        if self._w0 is None:
            return (
                np.zeros(self.nlp.n_vars),
                np.zeros(self.nlp.n_vars),
                np.zeros(self.nlp.n_constraints),
            )
        return self._w0, self._lam_x0, self._lam_g0

    # ------------------------------------------------------------------
    # Solve
    # ------------------------------------------------------------------

    @property
    def bounds(self) -> Dict[str, np.ndarray]:
        """Copy of the current bound arrays (lbx, ubx, lbg, ubg)."""
        return {
            "lbx": self._lbw.copy(),
            "ubx": self._ubw.copy(),
            "lbg": self._lbg.copy(),
            "ubg": self._ubg.copy(),
        }

    def solve(self, x_current: np.ndarray) -> np.ndarray:
        """
        Compute the control action for the measured state.

        Args:
            x_current: Measured state (n_x,)

        Returns:
            First control action u_0 (n_u,)

        Raises:
            DimensionError: x_current has the wrong length
            ConvergenceFailure: solver stopped without converging
            InfeasibleProblem: solver reports no feasible point
        """
        x_current = as_state_vector(x_current, self.n_x, "x_current")

        self._lbw[:self.n_x] = x_current
        self._ubw[:self.n_x] = x_current

        w0, lam_x0, lam_g0 = self._initial_guess()
        result = self.solver.solve(
            w0, self._lbw, self._ubw, self._lbg, self._ubg, lam_x0, lam_g0
        )

        self._w0 = np.array(result.x, dtype=np.float64)
        self._lam_x0 = np.array(result.lam_x, dtype=np.float64)
        self._lam_g0 = np.array(result.lam_g, dtype=np.float64)

        x_traj, u_seq = self.nlp.unpack(self._w0)
        self.last_result = MPCResult(
            x=x_traj,
            u=u_seq,
            cost=result.objective,
            status=str(result.status),
            solve_time=result.solve_time,
            iterations=result.iterations,
            return_status=result.return_status,
        )

        log.debug(
            "MPC solve: status=%s iterations=%d time=%.2fms cost=%.6g",
            result.status, result.iterations, result.solve_time * 1000, result.objective,
        )
        return self._w0[self.n_x:self.n_x + self.n_u].copy()

    def casadi_prob(self) -> Dict[str, ca.MX]:
        """Transcribed problem as the ``{"x", "f", "g"}`` mapping of nlpsol."""
        return self.nlp.as_dict()

    def simulate(
        self,
        x0: np.ndarray,
        n_steps: int,
        plant: Optional[Callable[[np.ndarray, np.ndarray], np.ndarray]] = None,
        disturbance: Optional[np.ndarray] = None,
    ) -> Dict[str, np.ndarray]:
        """
        Simulate closed-loop MPC control.

        Args:
            x0: Initial state
            n_steps: Number of simulation steps
            plant: ``plant(x, u) -> x_next`` (default: the discretized model)
            disturbance: Additive disturbance (n_steps, n_x)

        Returns:
            Dictionary with 'x' (states), 'u' (inputs), 'cost' (per step)
        """
        step = plant or self.nlp.step

        x = np.zeros((n_steps + 1, self.n_x))
        u = np.zeros((n_steps, self.n_u))
        costs = np.zeros(n_steps)

        x[0] = as_state_vector(x0, self.n_x, "x0")

        for k in range(n_steps):
            u[k] = self.solve(x[k])
            costs[k] = self.last_result.cost

            x[k + 1] = np.asarray(step(x[k], u[k]), dtype=np.float64).ravel()

            if disturbance is not None:
                x[k + 1] += disturbance[k]

        return {'x': x, 'u': u, 'cost': costs}
