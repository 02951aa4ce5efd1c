"""Input validation utilities."""

from typing import Optional, Tuple, Union

import numpy as np

from ..exceptions import ConfigurationError, DimensionError, StageIndexError


def as_bound_vector(
    value: Union[float, np.ndarray],
    dim: int,
    name: str,
) -> np.ndarray:
    """
    Convert a bound to a fresh float vector of length ``dim``.

    Scalars are broadcast; vectors must match ``dim`` exactly. Infinite
    entries mean unbounded; NaN entries are rejected.
    """
    if np.isscalar(value):
        vec = np.full(dim, float(value))
    else:
        vec = np.array(value, dtype=np.float64).ravel()
        if vec.shape != (dim,):
            raise DimensionError(f"{name} has {vec.size} elements, expected {dim}")

    if np.isnan(vec).any():
        raise ConfigurationError(f"{name} contains NaN")
    return vec


def as_state_vector(value: np.ndarray, nx: int, name: str = "state") -> np.ndarray:
    """Convert a measured state to a float vector of length ``nx``."""
    vec = np.asarray(value, dtype=np.float64).ravel()
    if vec.shape != (nx,):
        raise DimensionError(f"{name} has {vec.size} elements, expected {nx}")
    return vec


def stage_range(
    start: Optional[int],
    end: Optional[int],
    horizon: int,
) -> Tuple[int, int]:
    """
    Resolve optional stage indices to a half-open range.

    - no index: every stage ``[0, horizon)``
    - only ``start``: the single stage ``[start, start + 1)``
    - both: ``[start, end)``
    """
    if start is None and end is None:
        return 0, horizon
    if start is None:
        raise StageIndexError("'end' given without 'start'")
    if end is None:
        end = start + 1

    if not 0 <= start < horizon:
        raise StageIndexError(f"start={start} not in [0, {horizon})")
    if not start < end <= horizon:
        raise StageIndexError(f"end={end} not in ({start}, {horizon}]")
    return start, end


def validate_dimensions(nx: int, nu: int, horizon: int, dt: float) -> None:
    """Validate problem sizes and sample period."""
    if int(nx) != nx or nx < 1:
        raise ConfigurationError(f"nx must be a positive integer, got {nx}")
    if int(nu) != nu or nu < 1:
        raise ConfigurationError(f"nu must be a positive integer, got {nu}")
    if int(horizon) != horizon or horizon < 1:
        raise ConfigurationError(f"horizon must be a positive integer, got {horizon}")
    if not np.isfinite(dt) or dt <= 0:
        raise ConfigurationError(f"dt must be positive, got {dt}")
