"""
Integration Schemes
===================

One-step integrators that advance a state by one sample period.

Every scheme only uses ``+``, ``-``, ``*`` and ``/`` on its operands, so the
same formula works on NumPy arrays, CasADi ``DM`` values and symbolic CasADi
``MX`` expressions. During transcription the formula is evaluated once on
symbols; the resulting expression graph is what the solver differentiates.

Supported schemes:
- Forward Euler: x + dt * f(x, u)
- Modified Euler (Heun / RK2)
- Classic fourth-order Runge-Kutta
- Discretized: the user's function already is the one-step map
"""

from __future__ import annotations

from enum import Enum
from functools import partial
from typing import Any, Callable, Union

from .exceptions import ConfigurationError

Dynamics = Callable[[Any, Any], Any]


class DynamicsType(Enum):
    """How the user's dynamics function is advanced over one sample period."""
    FORWARD_EULER = "forward_euler"
    MODIFIED_EULER = "modified_euler"
    RK4 = "rk4"
    DISCRETIZED = "discretized"

    def __str__(self) -> str:
        return self.value

    @property
    def is_continuous(self) -> bool:
        """True if the dynamics function returns a time derivative."""
        return self is not DynamicsType.DISCRETIZED

    @classmethod
    def coerce(cls, value: Union["DynamicsType", str]) -> "DynamicsType":
        """Accept an enum member or its string value."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            valid = ", ".join(member.value for member in cls)
            raise ConfigurationError(
                f"unknown dynamics type '{value}' (expected one of: {valid})"
            ) from None


def forward_euler(dt: float, x, u, dynamics: Dynamics):
    """x + dt * f(x, u)"""
    return x + dt * dynamics(x, u)


def modified_euler(dt: float, x, u, dynamics: Dynamics):
    """
    Modified Euler (Heun's method).

    k1 = f(x, u)
    k2 = f(x + dt*k1, u)
    x_next = x + dt*(k1 + k2)/2
    """
    k1 = dynamics(x, u)
    k2 = dynamics(x + dt * k1, u)
    return x + dt * (k1 + k2) / 2


def rk4(dt: float, x, u, dynamics: Dynamics):
    """Classic Runge-Kutta with weights (1, 2, 2, 1) / 6."""
    k1 = dynamics(x, u)
    k2 = dynamics(x + dt / 2 * k1, u)
    k3 = dynamics(x + dt / 2 * k2, u)
    k4 = dynamics(x + dt * k3, u)
    return x + dt / 6 * (k1 + 2 * k2 + 2 * k3 + k4)


_SCHEMES = {
    DynamicsType.FORWARD_EULER: forward_euler,
    DynamicsType.MODIFIED_EULER: modified_euler,
    DynamicsType.RK4: rk4,
}


def make_step(
    dynamics_type: Union[DynamicsType, str],
    dt: float,
    dynamics: Dynamics,
) -> Dynamics:
    """
    Resolve a dynamics type into a single ``(x, u) -> x_next`` function.

    Args:
        dynamics_type: Integration scheme, or DISCRETIZED
        dt: Sample period (ignored for DISCRETIZED)
        dynamics: Continuous time derivative, or the one-step map

    Returns:
        Step function advancing the state by one sample period

    Example:
        >>> step = make_step("rk4", 0.1, lambda x, u: -x + u)
        >>> x_next = step(np.array([1.0]), np.array([0.0]))
    """
    dynamics_type = DynamicsType.coerce(dynamics_type)
    if dynamics_type is DynamicsType.DISCRETIZED:
        return dynamics
    return partial(_SCHEMES[dynamics_type], dt, dynamics=dynamics)
