"""
Optimal Control Problem Definition
==================================

A :class:`Problem` holds everything the transcription needs: dimensions,
horizon, sample period, dynamics, costs, path constraints and the per-stage
bound tables.

Dynamics and costs are defined either by subclassing::

    class Pendulum(Problem):
        def dynamics(self, x, u):
            return ca.vertcat(x[1], -9.81 * ca.sin(x[0]) + u[0])

        def stage_cost(self, x, u):
            return ca.sumsqr(x) + 0.1 * ca.sumsqr(u)

or by passing callables to the constructor::

    prob = Problem("rk4", nx=2, nu=1, horizon=20, dt=0.05,
                   dynamics=pendulum_rhs, stage_cost=quadratic)

State bounds are stored per transition stage: ``state_bounds[k]`` bounds the
successor node ``x_{k+1}``. The first node ``x_0`` is always pinned to the
measured state by the controller.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Callable, List, Optional, Tuple, Union

import numpy as np

from .exceptions import ConfigurationError
from .integrators import Dynamics, DynamicsType
from .utils.validation import as_bound_vector, stage_range, validate_dimensions

Bound = Tuple[np.ndarray, np.ndarray]
ConstraintFn = Callable[[Any, Any], Any]


class ConstraintType(Enum):
    """Kind of a path constraint ``c(x, u)``."""
    EQUALITY = "equality"      # c(x, u) == 0
    INEQUALITY = "inequality"  # c(x, u) <= 0

    def __str__(self) -> str:
        return self.value

    @classmethod
    def coerce(cls, value: Union["ConstraintType", str]) -> "ConstraintType":
        """Accept an enum member or its string value."""
        if isinstance(value, cls):
            return value
        aliases = {"eq": cls.EQUALITY, "ineq": cls.INEQUALITY}
        text = str(value).lower()
        if text in aliases:
            return aliases[text]
        try:
            return cls(text)
        except ValueError:
            raise ConfigurationError(f"unknown constraint type '{value}'") from None


class Problem:
    """
    Finite-horizon optimal control problem.

    Args:
        dynamics_type: Integration scheme (or DISCRETIZED)
        nx: State dimension
        nu: Control dimension
        horizon: Number of control intervals N
        dt: Sample period
        dynamics: Optional dynamics callable (instead of overriding)
        stage_cost: Optional stage cost callable
        terminal_cost: Optional terminal cost callable

    Example:
        >>> prob = Problem(DynamicsType.RK4, nx=2, nu=1, horizon=20, dt=0.1,
        ...                dynamics=lambda x, u: ca.vertcat(x[1], u[0]))
        >>> prob.set_control_bound(-1.0, 1.0)
        >>> prob.set_state_upper_bound([np.inf, 2.0], start=5, end=20)
        >>> prob.add_constraint("inequality", lambda x, u: x[0] - 10)
    """

    def __init__(
        self,
        dynamics_type: Union[DynamicsType, str],
        nx: int,
        nu: int,
        horizon: int,
        dt: float,
        dynamics: Optional[Dynamics] = None,
        stage_cost: Optional[Callable[[Any, Any], Any]] = None,
        terminal_cost: Optional[Callable[[Any], Any]] = None,
    ) -> None:
        validate_dimensions(nx, nu, horizon, dt)

        self._dynamics_type = DynamicsType.coerce(dynamics_type)
        self._nx = int(nx)
        self._nu = int(nu)
        self._horizon = int(horizon)
        self._dt = float(dt)

        self._dynamics_fn = dynamics
        self._stage_cost_fn = stage_cost
        self._terminal_cost_fn = terminal_cost

        self._equality_constraints: List[ConstraintFn] = []
        self._inequality_constraints: List[ConstraintFn] = []

        self._x_bounds: List[Bound] = [
            (np.full(self._nx, -np.inf), np.full(self._nx, np.inf))
            for _ in range(self._horizon)
        ]
        self._u_bounds: List[Bound] = [
            (np.full(self._nu, -np.inf), np.full(self._nu, np.inf))
            for _ in range(self._horizon)
        ]

    # ------------------------------------------------------------------
    # Model
    # ------------------------------------------------------------------

    def dynamics(self, x, u):
        """Time derivative (continuous types) or next state (DISCRETIZED)."""
        if self._dynamics_fn is None:
            raise ConfigurationError(
                f"{type(self).__name__} has no dynamics: override dynamics() or pass dynamics="
            )
        return self._dynamics_fn(x, u)

    def stage_cost(self, x, u):
        """Running cost l(x_k, u_k). Zero unless overridden."""
        if self._stage_cost_fn is None:
            return 0
        return self._stage_cost_fn(x, u)

    def terminal_cost(self, x):
        """Terminal cost V(x_N). Zero unless overridden."""
        if self._terminal_cost_fn is None:
            return 0
        return self._terminal_cost_fn(x)

    # ------------------------------------------------------------------
    # Dimensions
    # ------------------------------------------------------------------

    @property
    def dynamics_type(self) -> DynamicsType:
        return self._dynamics_type

    @property
    def nx(self) -> int:
        """Number of states."""
        return self._nx

    @property
    def nu(self) -> int:
        """Number of controls."""
        return self._nu

    @property
    def horizon(self) -> int:
        """Number of control intervals N."""
        return self._horizon

    @property
    def dt(self) -> float:
        """Sample period."""
        return self._dt

    @property
    def n_vars(self) -> int:
        """Length of the transcribed decision vector."""
        return (self._horizon + 1) * self._nx + self._horizon * self._nu

    # ------------------------------------------------------------------
    # Control bounds
    # ------------------------------------------------------------------

    def set_control_bound(self, lb, ub, start: Optional[int] = None, end: Optional[int] = None) -> None:
        """Set lower and upper control bounds on a stage range."""
        lb = as_bound_vector(lb, self._nu, "control lower bound")
        ub = as_bound_vector(ub, self._nu, "control upper bound")
        start, end = stage_range(start, end, self._horizon)
        for i in range(start, end):
            self._u_bounds[i] = (lb.copy(), ub.copy())

    def set_control_lower_bound(self, lb, start: Optional[int] = None, end: Optional[int] = None) -> None:
        """Set the control lower bound on a stage range."""
        lb = as_bound_vector(lb, self._nu, "control lower bound")
        start, end = stage_range(start, end, self._horizon)
        for i in range(start, end):
            self._u_bounds[i] = (lb.copy(), self._u_bounds[i][1])

    def set_control_upper_bound(self, ub, start: Optional[int] = None, end: Optional[int] = None) -> None:
        """Set the control upper bound on a stage range."""
        ub = as_bound_vector(ub, self._nu, "control upper bound")
        start, end = stage_range(start, end, self._horizon)
        for i in range(start, end):
            self._u_bounds[i] = (self._u_bounds[i][0], ub.copy())

    # ------------------------------------------------------------------
    # State bounds
    # ------------------------------------------------------------------

    def set_state_bound(self, lb, ub, start: Optional[int] = None, end: Optional[int] = None) -> None:
        """Set lower and upper state bounds on a stage range.

        Stage ``k`` bounds the state reached at the end of interval ``k``.
        """
        lb = as_bound_vector(lb, self._nx, "state lower bound")
        ub = as_bound_vector(ub, self._nx, "state upper bound")
        start, end = stage_range(start, end, self._horizon)
        for i in range(start, end):
            self._x_bounds[i] = (lb.copy(), ub.copy())

    def set_state_lower_bound(self, lb, start: Optional[int] = None, end: Optional[int] = None) -> None:
        lb = as_bound_vector(lb, self._nx, "state lower bound")
        start, end = stage_range(start, end, self._horizon)
        for i in range(start, end):
            self._x_bounds[i] = (lb.copy(), self._x_bounds[i][1])

    def set_state_upper_bound(self, ub, start: Optional[int] = None, end: Optional[int] = None) -> None:
        ub = as_bound_vector(ub, self._nx, "state upper bound")
        start, end = stage_range(start, end, self._horizon)
        for i in range(start, end):
            self._x_bounds[i] = (self._x_bounds[i][0], ub.copy())

    @property
    def state_bounds(self) -> List[Bound]:
        """Copy of the per-stage state bound table."""
        return [(lb.copy(), ub.copy()) for lb, ub in self._x_bounds]

    @property
    def control_bounds(self) -> List[Bound]:
        """Copy of the per-stage control bound table."""
        return [(lb.copy(), ub.copy()) for lb, ub in self._u_bounds]

    # ------------------------------------------------------------------
    # Path constraints
    # ------------------------------------------------------------------

    def add_constraint(self, kind: Union[ConstraintType, str], constraint: ConstraintFn) -> None:
        """
        Register a path constraint ``c(x_{k+1}, u_k)``.

        Equality constraints enforce ``c == 0``, inequality constraints
        ``c <= 0``. Constraints are stacked in registration order.
        """
        if not callable(constraint):
            raise ConfigurationError("constraint must be callable")

        if ConstraintType.coerce(kind) is ConstraintType.EQUALITY:
            self._equality_constraints.append(constraint)
        else:
            self._inequality_constraints.append(constraint)

    @property
    def equality_constraints(self) -> List[ConstraintFn]:
        return list(self._equality_constraints)

    @property
    def inequality_constraints(self) -> List[ConstraintFn]:
        return list(self._inequality_constraints)

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(dynamics_type={self._dynamics_type}, "
            f"nx={self._nx}, nu={self._nu}, horizon={self._horizon}, dt={self._dt})"
        )
