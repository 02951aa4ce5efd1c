"""
Solver Option Presets
=====================

Named option presets for the supported solver backends. Every function
returns a fresh dictionary, so a controller can modify its copy freely.

Presets:
- ``default_config``: IPOPT interior point, quiet, warm-start enabled
- ``default_qpoases_config``: SQP method with qpOASES sub-problems
- ``default_hpipm_config``: SQP method with HPIPM sub-problems
- ``default_slsqp_config``: SciPy SLSQP backend
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from .exceptions import ConfigurationError


def default_config() -> Dict[str, Any]:
    """IPOPT options used when no configuration is given."""
    return {
        "calc_lam_p": True,
        "calc_lam_x": True,
        "ipopt.sb": "yes",
        "ipopt.print_level": 0,
        "print_time": False,
        "ipopt.warm_start_init_point": "yes",
        "expand": True,
    }


def default_qpoases_config() -> Dict[str, Any]:
    """``sqpmethod`` options with qpOASES as the QP solver."""
    return {
        "calc_lam_p": True,
        "calc_lam_x": True,
        "max_iter": 100,
        "print_header": False,
        "print_iteration": False,
        "print_status": False,
        "print_time": False,
        "qpsol": "qpoases",
        "qpsol_options": {"enableRegularisation": True, "printLevel": "none", "error_on_fail": False},
        "expand": True,
    }


def default_hpipm_config() -> Dict[str, Any]:
    """``sqpmethod`` options with HPIPM as the QP solver."""
    return {
        "calc_lam_p": True,
        "calc_lam_x": True,
        "max_iter": 100,
        "print_header": False,
        "print_iteration": False,
        "print_status": False,
        "print_time": False,
        "qpsol": "hpipm",
        "qpsol_options": {"hpipm.iter_max": 100, "hpipm.warm_start": True, "error_on_fail": False},
        "expand": True,
    }


def default_slsqp_config() -> Dict[str, Any]:
    """Options for the SciPy SLSQP backend."""
    return {
        "max_iter": 100,
        "tol": 1e-8,
        "verbose": False,
    }


_PRESETS = {
    "ipopt": default_config,
    "sqpmethod": default_qpoases_config,
    "qpoases": default_qpoases_config,
    "hpipm": default_hpipm_config,
    "slsqp": default_slsqp_config,
}


def preset_for(solver_name: str) -> Dict[str, Any]:
    """
    Return the preset matching a solver backend name.

    ``"qpoases"`` and ``"hpipm"`` name the SQP method configured with that
    QP solver. Unknown names get an empty dictionary, i.e. plugin defaults.
    """
    factory = _PRESETS.get(solver_name.lower())
    return factory() if factory is not None else {}


def merge_config(
    base: Dict[str, Any],
    overrides: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Return a new dictionary with ``overrides`` applied on top of ``base``.

    ``qpsol_options`` is merged one level deep; every other key is replaced.
    """
    merged = dict(base)
    if "qpsol_options" in merged:
        merged["qpsol_options"] = dict(merged["qpsol_options"])

    for key, value in (overrides or {}).items():
        if key == "qpsol_options" and isinstance(value, dict):
            nested = dict(merged.get("qpsol_options", {}))
            nested.update(value)
            merged[key] = nested
        else:
            merged[key] = value
    return merged


def backend_name(solver_name: str) -> str:
    """Name of the CasADi plugin (or ``"slsqp"``) behind a solver name."""
    name = solver_name.lower()
    if not name:
        raise ConfigurationError("solver name must not be empty")
    if name in ("qpoases", "hpipm"):
        return "sqpmethod"
    return name
