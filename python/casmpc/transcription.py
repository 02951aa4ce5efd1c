"""
Multiple-Shooting Transcription
===============================

Turns a :class:`casmpc.Problem` into a generic NLP::

    minimize    J(w)
    subject to  lbg <= g(w) <= ubg
                lbw <=  w   <= ubw

Decision vector (states and controls interleaved by stage)::

    w = [x_0, u_0, x_1, u_1, ..., x_{N-1}, u_{N-1}, x_N]

Constraint vector, stacked stage by stage::

    g = [ f(x_0,u_0) - x_1, eq_1(x_1,u_0), ..., ineq_1(x_1,u_0), ...,
          f(x_1,u_1) - x_2, ... ]

Defects and equality constraints are bounded to [0, 0], inequality
constraints to (-inf, 0]. The bounds of ``x_0`` are a [0, 0] placeholder that
the controller overwrites with the measured state before every solve.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

import casadi as ca
import numpy as np

from .exceptions import ConfigurationError, DimensionError
from .integrators import make_step
from .log import get_logger
from .problem import Problem

log = get_logger(__name__)


@dataclass(frozen=True)
class ConstraintBlock:
    """
    Contiguous block of the constraint vector g.

    Attributes:
        kind: "dynamics", "equality" or "inequality"
        stage: Stage index i (the block constrains x_{i+1} and u_i)
        index: Registration index of the user constraint (0 for dynamics)
        offset: First row of the block in g
        size: Number of rows
    """
    kind: str
    stage: int
    index: int
    offset: int
    size: int

    @property
    def slice(self) -> slice:
        return slice(self.offset, self.offset + self.size)


@dataclass
class TranscribedNLP:
    """
    The NLP produced by :func:`transcribe`.

    Structure (which slots exist and where they sit in w and g) is fixed
    after transcription. Only the numeric content of the first state slot in
    ``lbw``/``ubw`` changes afterwards.
    """
    nx: int
    nu: int
    horizon: int
    w: ca.MX
    f: ca.MX
    g: ca.MX
    lbw: np.ndarray
    ubw: np.ndarray
    lbg: np.ndarray
    ubg: np.ndarray
    states: List[ca.MX]
    controls: List[ca.MX]
    blocks: List[ConstraintBlock]
    step_function: ca.Function
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def n_vars(self) -> int:
        return len(self.lbw)

    @property
    def n_constraints(self) -> int:
        return len(self.lbg)

    def as_dict(self) -> Dict[str, ca.MX]:
        """Problem mapping accepted by ``casadi.nlpsol``."""
        return {"x": self.w, "f": self.f, "g": self.g}

    def state_slice(self, k: int) -> slice:
        """Slice of x_k in w (k = 0..N)."""
        if not 0 <= k <= self.horizon:
            raise IndexError(f"state index {k} not in [0, {self.horizon}]")
        start = k * (self.nx + self.nu)
        return slice(start, start + self.nx)

    def control_slice(self, k: int) -> slice:
        """Slice of u_k in w (k = 0..N-1)."""
        if not 0 <= k < self.horizon:
            raise IndexError(f"control index {k} not in [0, {self.horizon})")
        start = k * (self.nx + self.nu) + self.nx
        return slice(start, start + self.nu)

    def constraint_blocks(self, kind: str) -> List[ConstraintBlock]:
        """All blocks of one kind, in stage order."""
        return [block for block in self.blocks if block.kind == kind]

    def unpack(self, w: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """
        Split a decision vector into trajectories.

        Returns:
            (X, U) with shapes (N+1, nx) and (N, nu)
        """
        w = np.asarray(w, dtype=np.float64).ravel()
        if w.shape != (self.n_vars,):
            raise DimensionError(f"w has {w.size} elements, expected {self.n_vars}")

        N, nx = self.horizon, self.nx
        stages = w[:N * (nx + self.nu)].reshape(N, nx + self.nu)
        X = np.vstack([stages[:, :nx], w[N * (nx + self.nu):]])
        U = stages[:, nx:].copy()
        return X, U

    def step(self, x: np.ndarray, u: np.ndarray) -> np.ndarray:
        """Evaluate the discretized dynamics numerically."""
        return self.step_function(x, u).full().ravel()


def _as_expr(value: Any) -> ca.MX:
    if isinstance(value, (list, tuple)):
        return ca.vertcat(*value)
    return ca.MX(value)


def _check_column(expr: ca.MX, what: str) -> int:
    if expr.numel() == 0:
        return 0
    if expr.size2() != 1:
        raise DimensionError(f"{what} must be a column vector, got shape {expr.shape}")
    return expr.size1()


def _check_bounds(lb: np.ndarray, ub: np.ndarray, what: str) -> None:
    if np.any(lb > ub):
        raise ConfigurationError(f"{what} has lower bound above upper bound")


def transcribe(problem: Problem) -> TranscribedNLP:
    """
    Build the multiple-shooting NLP for ``problem``.

    Called once, when a controller is constructed. Every user callback is
    evaluated here on CasADi symbols; nothing is re-evaluated at solve time.

    Raises:
        DimensionError: dynamics or constraint output has the wrong shape
        ConfigurationError: inverted bounds or non-scalar cost
    """
    nx, nu, N = problem.nx, problem.nu, problem.horizon

    Xs = [ca.MX.sym(f"X_{i}", nx, 1) for i in range(N + 1)]
    Us = [ca.MX.sym(f"U_{i}", nu, 1) for i in range(N)]

    step = make_step(problem.dynamics_type, problem.dt, problem.dynamics)

    x_bounds = problem.state_bounds
    u_bounds = problem.control_bounds
    equality = problem.equality_constraints
    inequality = problem.inequality_constraints

    w: List[ca.MX] = []
    g: List[ca.MX] = []
    lbw: List[np.ndarray] = []
    ubw: List[np.ndarray] = []
    lbg: List[np.ndarray] = []
    ubg: List[np.ndarray] = []
    blocks: List[ConstraintBlock] = []
    sizes: Dict[Tuple[str, int], int] = {}
    offset = 0
    J = ca.MX(0)

    def push_constraint(kind: str, stage: int, index: int, value: Any) -> None:
        nonlocal offset
        expr = _as_expr(value)
        size = _check_column(expr, f"{kind} constraint {index} at stage {stage}")

        key = (kind, index)
        if key in sizes and sizes[key] != size:
            raise DimensionError(
                f"{kind} constraint {index} returned {size} rows at stage {stage}, "
                f"but {sizes[key]} rows at stage 0"
            )
        sizes[key] = size

        lower = -np.inf if kind == "inequality" else 0.0
        g.append(expr)
        lbg.append(np.full(size, lower))
        ubg.append(np.zeros(size))
        blocks.append(ConstraintBlock(kind, stage, index, offset, size))
        offset += size

    for i in range(N):
        w.append(Xs[i])
        if i == 0:
            # overwritten with the measured state on every solve
            lbw.append(np.zeros(nx))
            ubw.append(np.zeros(nx))
        else:
            _check_bounds(*x_bounds[i - 1], f"state bound at stage {i - 1}")
            lbw.append(x_bounds[i - 1][0])
            ubw.append(x_bounds[i - 1][1])

        w.append(Us[i])
        _check_bounds(*u_bounds[i], f"control bound at stage {i}")
        lbw.append(u_bounds[i][0])
        ubw.append(u_bounds[i][1])

        xplus = _as_expr(step(Xs[i], Us[i]))
        if xplus.shape != (nx, 1):
            raise DimensionError(
                f"dynamics returned shape {xplus.shape}, expected ({nx}, 1)"
            )

        stage_cost = _as_expr(problem.stage_cost(Xs[i], Us[i]))
        if stage_cost.numel() != 1:
            raise ConfigurationError(f"stage cost must be scalar, got shape {stage_cost.shape}")
        J += stage_cost

        push_constraint("dynamics", i, 0, xplus - Xs[i + 1])
        for j, con in enumerate(equality):
            push_constraint("equality", i, j, con(Xs[i + 1], Us[i]))
        for j, con in enumerate(inequality):
            push_constraint("inequality", i, j, con(Xs[i + 1], Us[i]))

    terminal_cost = _as_expr(problem.terminal_cost(Xs[N]))
    if terminal_cost.numel() != 1:
        raise ConfigurationError(f"terminal cost must be scalar, got shape {terminal_cost.shape}")
    J += terminal_cost

    w.append(Xs[N])
    _check_bounds(*x_bounds[N - 1], f"state bound at stage {N - 1}")
    lbw.append(x_bounds[N - 1][0])
    ubw.append(x_bounds[N - 1][1])

    x_sym = ca.MX.sym("x", nx, 1)
    u_sym = ca.MX.sym("u", nu, 1)
    step_function = ca.Function(
        "step", [x_sym, u_sym], [_as_expr(step(x_sym, u_sym))], ["x", "u"], ["x_next"]
    )

    nlp = TranscribedNLP(
        nx=nx,
        nu=nu,
        horizon=N,
        w=ca.vertcat(*w),
        f=J,
        g=ca.vertcat(*g),
        lbw=np.concatenate(lbw),
        ubw=np.concatenate(ubw),
        lbg=np.concatenate(lbg),
        ubg=np.concatenate(ubg),
        states=Xs,
        controls=Us,
        blocks=blocks,
        step_function=step_function,
        metadata={
            "dynamics_type": str(problem.dynamics_type),
            "dt": problem.dt,
            "n_equality": len(equality),
            "n_inequality": len(inequality),
        },
    )

    log.debug(
        "Transcribed %s: %d variables, %d constraints (%d blocks)",
        problem, nlp.n_vars, nlp.n_constraints, len(blocks),
    )
    return nlp
