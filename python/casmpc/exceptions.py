"""
casmpc Exception Classes
========================

Custom exceptions for casmpc error handling.

Configuration errors are raised while a problem is being configured or
transcribed. Solver errors are raised by :meth:`casmpc.MPC.solve` and carry
the status reported by the underlying NLP solver.
"""

from typing import Optional


class MPCError(Exception):
    """Base exception for all casmpc errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ConfigurationError(MPCError):
    """
    Raised when a problem definition is inconsistent.

    Examples: inverted bounds, non-scalar cost, unknown dynamics type.
    """

    def __init__(self, message: str) -> None:
        super().__init__(f"Invalid configuration: {message}")


class DimensionError(ConfigurationError):
    """
    Raised when a vector does not match the state/control dimension.
    """

    def __init__(self, message: str) -> None:
        MPCError.__init__(self, f"Dimension mismatch: {message}")


class StageIndexError(ConfigurationError):
    """
    Raised when a stage index or stage range lies outside the horizon.
    """

    def __init__(self, message: str) -> None:
        MPCError.__init__(self, f"Stage index out of range: {message}")


class SolverError(MPCError):
    """
    Base class for failures reported by the NLP solver.

    Attributes:
        status: Classified :class:`casmpc.result.Status` (if known)
        return_status: Raw status string reported by the solver
        iterations: Iterations performed before the solver stopped
    """

    def __init__(
        self,
        message: str,
        status=None,
        return_status: Optional[str] = None,
        iterations: Optional[int] = None,
    ) -> None:
        self.status = status
        self.return_status = return_status
        self.iterations = iterations
        super().__init__(message)


class ConvergenceFailure(SolverError):
    """
    Raised when the solver stops without satisfying its tolerances.

    This covers iteration and time limits as well as numerical trouble such
    as non-finite values produced by the dynamics or cost.
    """

    def __init__(
        self,
        message: str = "Solver did not converge",
        status=None,
        return_status: Optional[str] = None,
        iterations: Optional[int] = None,
    ) -> None:
        super().__init__(message, status, return_status, iterations)


class InfeasibleProblem(SolverError):
    """
    Raised when the solver reports that no feasible point exists.
    """

    def __init__(
        self,
        message: str = "Problem is infeasible",
        status=None,
        return_status: Optional[str] = None,
        iterations: Optional[int] = None,
    ) -> None:
        super().__init__(message, status, return_status, iterations)
