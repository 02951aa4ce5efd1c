"""
Example Models
==============

Ready-made problems for examples, tests and benchmarks.

- LinearProblem: x' = A x + B u with quadratic tracking cost
- double_integrator: point mass, position and velocity
- inverted_pendulum: nonlinear pendulum driven by a torque
"""

from __future__ import annotations

from typing import Optional, Tuple, Union

import casadi as ca
import numpy as np
from scipy.signal import cont2discrete

from .exceptions import DimensionError
from .integrators import DynamicsType
from .problem import Problem


_METHODS = {"euler": "euler", "zoh": "zoh", "tustin": "bilinear"}


def discretize(
    Ac: np.ndarray,
    Bc: np.ndarray,
    dt: float,
    method: str = "zoh",
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Discretize ``dx/dt = Ac x + Bc u`` into ``x_{k+1} = A x_k + B u_k``.

    Args:
        Ac: Continuous state matrix
        Bc: Continuous input matrix
        dt: Sample period
        method: 'zoh' (exact for piecewise-constant input), 'euler' or 'tustin'

    Returns:
        (A, B) discrete matrices
    """
    if method not in _METHODS:
        raise ValueError(f"Unknown method '{method}'")

    Ac = np.atleast_2d(np.asarray(Ac, dtype=np.float64))
    Bc = np.atleast_2d(np.asarray(Bc, dtype=np.float64))
    C = np.eye(Ac.shape[0])
    D = np.zeros((Ac.shape[0], Bc.shape[1]))

    A, B, _, _, _ = cont2discrete((Ac, Bc, C, D), dt, method=_METHODS[method])
    return A, B


class LinearProblem(Problem):
    """
    Linear dynamics with quadratic tracking cost.

        l(x, u) = (x - x_ref)' Q (x - x_ref) + (u - u_ref)' R (u - u_ref)
        V(x)    = (x - x_ref)' Qf (x - x_ref)

    ``A`` and ``B`` are the continuous matrices (dx/dt = A x + B u) for
    continuous dynamics types and the discrete ones for DISCRETIZED.

    Args:
        A: State matrix (n_x, n_x)
        B: Input matrix (n_x, n_u)
        Q: State cost matrix (n_x, n_x)
        R: Input cost matrix (n_u, n_u)
        horizon: Prediction horizon N
        dt: Sample period
        Qf: Terminal cost matrix (default: Q)
        dynamics_type: Integration scheme (default: DISCRETIZED)
        x_ref: State reference (default: origin)
        u_ref: Input reference (default: zero)
    """

    def __init__(
        self,
        A: np.ndarray,
        B: np.ndarray,
        Q: np.ndarray,
        R: np.ndarray,
        horizon: int,
        dt: float = 1.0,
        Qf: Optional[np.ndarray] = None,
        dynamics_type: Union[DynamicsType, str] = DynamicsType.DISCRETIZED,
        x_ref: Optional[np.ndarray] = None,
        u_ref: Optional[np.ndarray] = None,
    ) -> None:
        self.A = np.atleast_2d(np.asarray(A, dtype=np.float64))
        self.B = np.atleast_2d(np.asarray(B, dtype=np.float64))
        self.Q = np.atleast_2d(np.asarray(Q, dtype=np.float64))
        self.R = np.atleast_2d(np.asarray(R, dtype=np.float64))
        self.Qf = np.atleast_2d(np.asarray(Qf, dtype=np.float64)) if Qf is not None else self.Q

        n_x = self.A.shape[0]
        n_u = self.B.shape[1]
        self._validate_matrices(n_x, n_u)

        self.x_ref = np.zeros(n_x) if x_ref is None else np.asarray(x_ref, dtype=np.float64)
        self.u_ref = np.zeros(n_u) if u_ref is None else np.asarray(u_ref, dtype=np.float64)

        super().__init__(dynamics_type, n_x, n_u, horizon, dt)

    def _validate_matrices(self, n_x: int, n_u: int) -> None:
        if self.A.shape != (n_x, n_x):
            raise DimensionError(f"A must be square, got shape {self.A.shape}")
        if self.B.shape[0] != n_x:
            raise DimensionError(f"B rows ({self.B.shape[0]}) must match A ({n_x})")
        if self.Q.shape != (n_x, n_x):
            raise DimensionError(f"Q must be ({n_x}, {n_x})")
        if self.R.shape != (n_u, n_u):
            raise DimensionError(f"R must be ({n_u}, {n_u})")
        if self.Qf.shape != (n_x, n_x):
            raise DimensionError(f"Qf must be ({n_x}, {n_x})")

    def dynamics(self, x, u):
        return ca.mtimes(ca.DM(self.A), x) + ca.mtimes(ca.DM(self.B), u)

    def stage_cost(self, x, u):
        dx = x - ca.DM(self.x_ref)
        du = u - ca.DM(self.u_ref)
        return ca.mtimes([dx.T, ca.DM(self.Q), dx]) + ca.mtimes([du.T, ca.DM(self.R), du])

    def terminal_cost(self, x):
        dx = x - ca.DM(self.x_ref)
        return ca.mtimes([dx.T, ca.DM(self.Qf), dx])


def double_integrator(
    horizon: int = 20,
    dt: float = 0.1,
    Q: Optional[np.ndarray] = None,
    R: Optional[np.ndarray] = None,
    dynamics_type: Union[DynamicsType, str] = DynamicsType.RK4,
) -> LinearProblem:
    """
    Create a double integrator (point mass) problem.

    States: [position, velocity]
    Input: acceleration

    Args:
        horizon: Prediction horizon
        dt: Sampling time
        Q: State cost (default: diag(10, 1))
        R: Input cost (default: 0.1)
        dynamics_type: Integration scheme for the continuous model

    Returns:
        LinearProblem for the double integrator
    """
    Ac = np.array([
        [0, 1],
        [0, 0]
    ])
    Bc = np.array([
        [0],
        [1]
    ])
    Q = np.diag([10.0, 1.0]) if Q is None else Q
    R = np.array([[0.1]]) if R is None else R

    if DynamicsType.coerce(dynamics_type) is DynamicsType.DISCRETIZED:
        Ac, Bc = discretize(Ac, Bc, dt, method="zoh")

    return LinearProblem(Ac, Bc, Q, R, horizon=horizon, dt=dt, dynamics_type=dynamics_type)


class InvertedPendulum(Problem):
    """
    Torque-driven pendulum, angle measured from the upright position.

    States: [angle, angular_velocity]
    Input: torque

        theta'' = (g / l) sin(theta) - damping * theta' + torque / (m l^2)
    """

    def __init__(
        self,
        horizon: int = 30,
        dt: float = 0.05,
        mass: float = 1.0,
        length: float = 1.0,
        damping: float = 0.1,
        gravity: float = 9.81,
        dynamics_type: Union[DynamicsType, str] = DynamicsType.RK4,
    ) -> None:
        self.mass = mass
        self.length = length
        self.damping = damping
        self.gravity = gravity
        super().__init__(dynamics_type, 2, 1, horizon, dt)

    def dynamics(self, x, u):
        theta, omega = x[0], x[1]
        alpha = (
            self.gravity / self.length * ca.sin(theta)
            - self.damping * omega
            + u[0] / (self.mass * self.length ** 2)
        )
        return ca.vertcat(omega, alpha)

    def stage_cost(self, x, u):
        return 10 * x[0] ** 2 + x[1] ** 2 + 0.01 * u[0] ** 2

    def terminal_cost(self, x):
        return 100 * x[0] ** 2 + 10 * x[1] ** 2


def inverted_pendulum(horizon: int = 30, dt: float = 0.05, max_torque: float = 20.0, **kwargs) -> InvertedPendulum:
    """
    Create an inverted pendulum problem with symmetric torque limits.

    Args:
        horizon: Prediction horizon
        dt: Sampling time
        max_torque: Torque bound applied on every stage
        **kwargs: Physical parameters for InvertedPendulum

    Returns:
        InvertedPendulum problem
    """
    problem = InvertedPendulum(horizon=horizon, dt=dt, **kwargs)
    problem.set_control_bound(-max_torque, max_torque)
    return problem
