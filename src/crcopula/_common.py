"""Shared numerical constants and helpers."""

import numpy as np

from .exceptions import InvalidParameter

# Uniform margins are kept inside [EPS, 1 - EPS] before any quantile or
# copula evaluation.
EPS = 1e-10


def clamp_unit(u, eps: float = EPS) -> np.ndarray:
    """Clamp values to the closed interval [eps, 1 - eps]."""
    return np.clip(np.asarray(u, dtype=float), eps, 1.0 - eps)


def check_finite(name: str, value: float) -> float:
    """Return value as float, raising InvalidParameter if it is not finite."""
    try:
        value = float(value)
    except (TypeError, ValueError):
        raise InvalidParameter(f"{name} must be a real number, got {value!r}", name, None)
    if not np.isfinite(value):
        raise InvalidParameter(f"{name} must be finite, got {value}", name, value)
    return value


def check_positive(name: str, value: float) -> float:
    """Return value as float, raising InvalidParameter unless finite and > 0."""
    value = check_finite(name, value)
    if value <= 0:
        raise InvalidParameter(f"{name} must be > 0, got {value}", name, value)
    return value
