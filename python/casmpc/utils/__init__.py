"""Internal helpers."""

from .validation import as_bound_vector, as_state_vector, stage_range, validate_dimensions

__all__ = [
    "as_bound_vector",
    "as_state_vector",
    "stage_range",
    "validate_dimensions",
]
