"""
casmpc Solver Interface
=======================

Solver adapters put an external NLP solver behind one call contract::

    result = adapter.solve(x0, lbx, ubx, lbg, ubg, lam_x0, lam_g0)

On success a :class:`SolveResult` is returned; otherwise
:class:`ConvergenceFailure` or :class:`InfeasibleProblem` is raised. Adapters
never retry. Solver options are fixed when the adapter is built.

Backends:
- CasadiSolver: any ``casadi.nlpsol`` plugin (ipopt, sqpmethod, ...)
- ScipySolver: ``scipy.optimize.minimize(method="SLSQP")``
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import casadi as ca
import numpy as np
from scipy.optimize import Bounds, minimize

from .config import backend_name
from .exceptions import ConvergenceFailure, InfeasibleProblem
from .log import get_logger
from .result import SolveResult, Status
from .transcription import TranscribedNLP

log = get_logger(__name__)


class SolverAdapter(ABC):
    """Fixed call contract around an NLP solver."""

    name = "abstract"

    @abstractmethod
    def solve(
        self,
        x0: np.ndarray,
        lbx: np.ndarray,
        ubx: np.ndarray,
        lbg: np.ndarray,
        ubg: np.ndarray,
        lam_x0: np.ndarray,
        lam_g0: np.ndarray,
    ) -> SolveResult:
        """
        Solve the NLP from an initial guess.

        Args:
            x0: Initial guess for the decision vector
            lbx, ubx: Decision variable bounds
            lbg, ubg: Constraint bounds
            lam_x0, lam_g0: Initial multipliers (warm start)

        Returns:
            SolveResult with primal solution and multipliers

        Raises:
            ConvergenceFailure: tolerances not met (limits, numerical trouble)
            InfeasibleProblem: solver reports no feasible point
        """

    def _raise_for_status(
        self,
        status: Status,
        return_status: str,
        iterations: int,
    ) -> None:
        if status.is_successful:
            return

        log.warning(
            "%s failed: status=%s return_status=%s iterations=%d",
            self.name, status, return_status, iterations,
        )
        message = f"{self.name} returned '{return_status}' after {iterations} iterations"
        if status is Status.INFEASIBLE:
            raise InfeasibleProblem(message, status, return_status, iterations)
        raise ConvergenceFailure(message, status, return_status, iterations)


class CasadiSolver(SolverAdapter):
    """
    Adapter for ``casadi.nlpsol``.

    Args:
        nlp: Transcribed problem
        solver_name: CasADi NLP plugin ("ipopt", "sqpmethod", ...)
        options: Plugin options passed to ``nlpsol`` unchanged
    """

    def __init__(
        self,
        nlp: TranscribedNLP,
        solver_name: str = "ipopt",
        options: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.name = solver_name
        self.options = dict(options or {})
        self._solver = ca.nlpsol("solver", solver_name, nlp.as_dict(), self.options)

    def solve(self, x0, lbx, ubx, lbg, ubg, lam_x0, lam_g0) -> SolveResult:
        start_time = time.perf_counter()
        try:
            sol = self._solver(
                x0=x0, lbx=lbx, ubx=ubx, lbg=lbg, ubg=ubg,
                lam_x0=lam_x0, lam_g0=lam_g0,
            )
        except RuntimeError as e:
            # error_on_fail (nlpsol or its qpsol) makes the call raise
            stats = self.stats()
            status = Status.from_casadi_stats(stats)
            if status.is_successful or status is Status.UNSOLVED:
                status = Status.NUMERICAL_ERROR
            log.warning("%s raised during solve: %s", self.name, e)
            self._raise_for_status(
                status,
                str(stats.get("return_status") or e),
                int(stats.get("iter_count") or 0),
            )
        solve_time = time.perf_counter() - start_time

        stats = self.stats()
        status = Status.from_casadi_stats(stats)
        return_status = str(stats.get("return_status", ""))
        iterations = int(stats.get("iter_count") or 0)

        self._raise_for_status(status, return_status, iterations)

        return SolveResult(
            status=status,
            objective=float(sol["f"]),
            x=sol["x"].full().ravel(),
            lam_x=sol["lam_x"].full().ravel(),
            lam_g=sol["lam_g"].full().ravel(),
            iterations=iterations,
            solve_time=solve_time,
            return_status=return_status,
        )

    def stats(self) -> Dict[str, Any]:
        """
        Raw statistics of the last call.

        Empty when the plugin aborted before recording any (sqpmethod after a
        QP solver exception).
        """
        try:
            return self._solver.stats()
        except RuntimeError:
            return {}


class ScipySolver(SolverAdapter):
    """
    SLSQP backend built on CasADi-generated derivatives.

    SLSQP does not report multipliers, so ``lam_x`` and ``lam_g`` are zero
    and the dual part of a warm start is ignored.

    Args:
        nlp: Transcribed problem
        options: ``max_iter``, ``tol`` and ``verbose``
    """

    name = "slsqp"

    def __init__(
        self,
        nlp: TranscribedNLP,
        options: Optional[Dict[str, Any]] = None,
    ) -> None:
        options = options or {}
        self.max_iter = int(options.get("max_iter", options.get("max_iters", 100)))
        self.tol = float(options.get("tol", options.get("tolerance", 1e-8)))
        self.verbose = bool(options.get("verbose", False))

        w = nlp.w
        self._f = ca.Function("f", [w], [nlp.f])
        self._grad_f = ca.Function("grad_f", [w], [ca.gradient(nlp.f, w)])
        self._g = ca.Function("g", [w], [nlp.g])
        self._jac_g = ca.Function("jac_g", [w], [ca.jacobian(nlp.g, w)])

    def _constraints(self, lbg: np.ndarray, ubg: np.ndarray) -> list:
        g = lambda z: self._g(z).full().ravel()
        jac = lambda z: self._jac_g(z).full()

        eq = lbg == ubg
        upper = ~eq & np.isfinite(ubg)
        lower = ~eq & np.isfinite(lbg)

        constraints = []
        if eq.any():
            constraints.append({'type': 'eq', 'fun': lambda z: g(z)[eq] - lbg[eq], 'jac': lambda z: jac(z)[eq]})
        if upper.any():
            constraints.append({'type': 'ineq', 'fun': lambda z: ubg[upper] - g(z)[upper], 'jac': lambda z: -jac(z)[upper]})
        if lower.any():
            constraints.append({'type': 'ineq', 'fun': lambda z: g(z)[lower] - lbg[lower], 'jac': lambda z: jac(z)[lower]})
        return constraints

    def solve(self, x0, lbx, ubx, lbg, ubg, lam_x0, lam_g0) -> SolveResult:
        lbx = np.asarray(lbx, dtype=np.float64)
        ubx = np.asarray(ubx, dtype=np.float64)
        lbg = np.asarray(lbg, dtype=np.float64)
        ubg = np.asarray(ubg, dtype=np.float64)
        z0 = np.clip(np.asarray(x0, dtype=np.float64), lbx, ubx)

        start_time = time.perf_counter()
        result = minimize(
            lambda z: float(self._f(z)),
            z0,
            jac=lambda z: self._grad_f(z).full().ravel(),
            method='SLSQP',
            bounds=Bounds(lbx, ubx),
            constraints=self._constraints(lbg, ubg),
            options={'maxiter': self.max_iter, 'ftol': self.tol, 'disp': self.verbose},
        )
        solve_time = time.perf_counter() - start_time

        status_map = {4: Status.INFEASIBLE, 9: Status.MAX_ITERATIONS}
        if result.success:
            status = Status.OPTIMAL
        else:
            status = status_map.get(result.status, Status.NUMERICAL_ERROR)
        iterations = int(getattr(result, 'nit', 0))

        self._raise_for_status(status, str(result.message), iterations)

        return SolveResult(
            status=status,
            objective=float(result.fun),
            x=np.asarray(result.x, dtype=np.float64),
            lam_x=np.zeros(len(lbx)),
            lam_g=np.zeros(len(lbg)),
            iterations=iterations,
            solve_time=solve_time,
            return_status=str(result.message),
        )


def make_solver(
    nlp: TranscribedNLP,
    solver_name: str = "ipopt",
    config: Optional[Dict[str, Any]] = None,
) -> SolverAdapter:
    """
    Build the adapter for a solver name.

    ``"slsqp"`` selects :class:`ScipySolver`; ``"qpoases"`` and ``"hpipm"``
    select CasADi's ``sqpmethod``; any other name is passed to ``nlpsol``.
    """
    backend = backend_name(solver_name)
    if backend == "slsqp":
        return ScipySolver(nlp, config)
    return CasadiSolver(nlp, backend, config)
