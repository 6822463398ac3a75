"""
Exception hierarchy for crcopula.

All errors inherit from CopulaRiskError. Estimation failures that the
pipeline recovers from (numerical degeneracy, non-converged fits) are
counted and reported by the caller rather than raised out of it.
"""

from typing import Optional


class CopulaRiskError(Exception):
    """Base exception for all crcopula errors."""
    pass


class InvalidParameter(CopulaRiskError, ValueError):
    """
    A copula or marginal parameter lies outside its mathematical domain.

    Raised at construction time, before any sampling is attempted.

    Attributes:
        name: Parameter name (e.g. 'theta', 'rate')
        value: Offending value
    """

    def __init__(self, message: str, name: Optional[str] = None, value: Optional[float] = None):
        super().__init__(message)
        self.name = name
        self.value = value


class NumericalDegeneracy(CopulaRiskError):
    """
    A likelihood contribution is non-finite or non-positive.

    Only raised by strict likelihood evaluation; the optimiser objective
    turns this into a sentinel value instead.
    """

    def __init__(self, message: str, n_bad: int = 0):
        super().__init__(message)
        self.n_bad = n_bad


class FitConvergenceFailure(CopulaRiskError):
    """A marginal fit or an optimisation run did not converge."""
    pass


class EmptyCauseSample(CopulaRiskError):
    """
    Too few observations for a cause to fit a marginal distribution.

    Attributes:
        cause: Cause label (1 or 2)
        n: Number of usable observations
        required: Minimum required
    """

    def __init__(self, cause: Optional[int], n: int, required: int):
        label = f"cause {cause}" if cause is not None else "sample"
        super().__init__(
            f"{label} has {n} usable observations, at least {required} required"
        )
        self.cause = cause
        self.n = n
        self.required = required
