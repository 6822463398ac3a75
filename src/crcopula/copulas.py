"""
Bivariate copulas for the dependence between the two latent event times.

Each copula provides:
- sample(n, rng): (n, 2) uniforms with the copula as joint CDF
- cdf(u, v): C(u, v)
- h(u, v): h-function P(U <= u | V = v) = dC(u, v)/dv
- conditional(u_a, u_b): the weight each observed failure of risk a
  receives in the competing-risks likelihood, given the other margin u_b.
  Each family uses its own closed form (see frank_conditional and
  clayton_conditional).

Margins are clamped to [EPS, 1 - EPS] before evaluation.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Dict, Type, Union

import numpy as np
from scipy import integrate

from ._common import EPS, clamp_unit, check_finite
from .exceptions import InvalidParameter


# -----------------------------------------------------------------------------
# Closed-form conditional functions
# -----------------------------------------------------------------------------

def frank_h(u, v, theta: float) -> np.ndarray:
    """
    Frank h-function P(U <= u | V = v).

        h = (g_u g_v + g_u) / (g_u g_v + g),  g_x = e^{-θx} - 1,  g = e^{-θ} - 1
    """
    u, v = clamp_unit(u), clamp_unit(v)
    g_u = np.expm1(-theta * u)
    g_v = np.expm1(-theta * v)
    g = np.expm1(-theta)
    return (g_u * g_v + g_u) / (g_u * g_v + g)


def frank_conditional(u_a, u_b, theta: float) -> np.ndarray:
    """
    Likelihood weight for a failure of risk a at margin u_a (Frank).

        (g_a g_b + g_a) / (g_a g_b + g),  g_x = e^{-θx} - 1,  g = e^{-θ} - 1

    which is the h-function frank_h(u_a, u_b).
    """
    return frank_h(u_a, u_b, theta)


def clayton_h(u, v, theta: float) -> np.ndarray:
    """
    Clayton h-function P(U <= u | V = v).

        h = v^{-(1+θ)} (u^{-θ} + v^{-θ} - 1)^{-(1+1/θ)}
          = (1 + v^θ (u^{-θ} - 1))^{-(1+1/θ)}
    """
    u, v = clamp_unit(u), clamp_unit(v)
    z = np.exp(theta * np.log(v)) * np.expm1(-theta * np.log(u))
    return np.exp(-(1.0 + 1.0 / theta) * np.log1p(z))


def clayton_conditional(u_a, u_b, theta: float) -> np.ndarray:
    """
    Probability that risk b survives past u_b given risk a fails at u_a (Clayton).

        1 - (u_a^{-θ} + u_b^{-θ} - 1)^{-(1+1/θ)} u_a^{-(1+θ)}

    evaluated through log1p/expm1 so it stays accurate when the
    subtracted term is close to 1.
    """
    u_a, u_b = clamp_unit(u_a), clamp_unit(u_b)
    z = np.exp(theta * np.log(u_a)) * np.expm1(-theta * np.log(u_b))
    return -np.expm1(-(1.0 + 1.0 / theta) * np.log1p(z))


# -----------------------------------------------------------------------------
# Copula classes
# -----------------------------------------------------------------------------

class Copula(ABC):
    """Base class for one-parameter bivariate copulas."""

    def __init__(self, theta: float):
        self.theta = self.validate_theta(theta)

    @property
    @abstractmethod
    def family(self) -> 'CopulaFamily':
        pass

    @classmethod
    @abstractmethod
    def validate_theta(cls, theta: float) -> float:
        """Return theta as float or raise InvalidParameter."""
        pass

    @classmethod
    def is_valid_theta(cls, theta: float) -> bool:
        try:
            cls.validate_theta(theta)
        except InvalidParameter:
            return False
        return True

    @abstractmethod
    def sample(self, n: int, rng: np.random.Generator) -> np.ndarray:
        """Draw n pairs (u1, u2), returned as an (n, 2) array."""
        pass

    @abstractmethod
    def cdf(self, u, v) -> np.ndarray:
        pass

    @abstractmethod
    def h(self, u, v) -> np.ndarray:
        """P(U <= u | V = v)."""
        pass

    @abstractmethod
    def conditional(self, u_a, u_b) -> np.ndarray:
        """Likelihood weight for a failure of risk a at margin u_a, other margin u_b."""
        pass

    @abstractmethod
    def kendall_tau(self) -> float:
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(theta={self.theta:.4g})"

    def __eq__(self, other) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return self.theta == other.theta

    def __hash__(self) -> int:
        return hash((type(self).__name__, self.theta))


class FrankCopula(Copula):
    """
    Frank copula: symmetric dependence, no tail dependence.

    theta in R \\ {0}; theta > 0 positive dependence, theta < 0 negative.
    theta = 0 is the independence limit and is rejected.
    """

    @property
    def family(self) -> 'CopulaFamily':
        return CopulaFamily.FRANK

    @classmethod
    def validate_theta(cls, theta: float) -> float:
        theta = check_finite('theta', theta)
        if theta == 0:
            raise InvalidParameter(
                "Frank copula theta must be non-zero (theta=0 is independence)",
                'theta', theta
            )
        return theta

    def sample(self, n: int, rng: np.random.Generator) -> np.ndarray:
        """Conditional inversion: u1 ~ U(0,1), then solve h(u2 | u1) = w."""
        theta = self.theta
        u1 = rng.uniform(size=n)
        w = rng.uniform(size=n)
        g2 = w * np.expm1(-theta) / (w + (1.0 - w) * np.exp(-theta * u1))
        u2 = -np.log1p(g2) / theta
        return clamp_unit(np.column_stack([u1, u2]))

    def cdf(self, u, v):
        u, v = clamp_unit(u), clamp_unit(v)
        theta = self.theta
        return -np.log1p(np.expm1(-theta * u) * np.expm1(-theta * v) / np.expm1(-theta)) / theta

    def h(self, u, v):
        return frank_h(u, v, self.theta)

    def conditional(self, u_a, u_b):
        return frank_conditional(u_a, u_b, self.theta)

    def kendall_tau(self) -> float:
        """tau = 1 - 4/θ (1 - D1(θ)), D1 the first Debye function."""
        theta = self.theta
        integral, _ = integrate.quad(lambda x: x / np.expm1(x) if x != 0 else 1.0, 0.0, theta)
        debye1 = integral / theta
        return float(1.0 - 4.0 / theta * (1.0 - debye1))


class ClaytonCopula(Copula):
    """
    Clayton copula: asymmetric, lower-tail dependence.

    theta > 0; theta -> 0 is independence.
    """

    @property
    def family(self) -> 'CopulaFamily':
        return CopulaFamily.CLAYTON

    @classmethod
    def validate_theta(cls, theta: float) -> float:
        theta = check_finite('theta', theta)
        if theta <= 0:
            raise InvalidParameter(
                f"Clayton copula theta must be > 0, got {theta}", 'theta', theta
            )
        return theta

    def sample(self, n: int, rng: np.random.Generator) -> np.ndarray:
        """
        Marshall-Olkin mixture of exponentials.

        V ~ Gamma(1/θ, 1), E_i ~ Exp(1), U_i = (1 + E_i / V)^{-1/θ}
        """
        theta = self.theta
        v = rng.gamma(shape=1.0 / theta, scale=1.0, size=n)
        e = rng.exponential(scale=1.0, size=(n, 2))
        with np.errstate(divide='ignore', over='ignore'):
            u = np.exp(-np.log1p(e / v[:, None]) / theta)
        return clamp_unit(u)

    def cdf(self, u, v):
        u, v = clamp_unit(u), clamp_unit(v)
        theta = self.theta
        return (u ** -theta + v ** -theta - 1.0) ** (-1.0 / theta)

    def h(self, u, v):
        return clayton_h(u, v, self.theta)

    def conditional(self, u_a, u_b):
        return clayton_conditional(u_a, u_b, self.theta)

    def kendall_tau(self) -> float:
        return self.theta / (self.theta + 2.0)


# -----------------------------------------------------------------------------
# Family registry
# -----------------------------------------------------------------------------

class CopulaFamily(Enum):
    """Closed set of supported copula families."""

    FRANK = 'frank'
    CLAYTON = 'clayton'

    @property
    def copula_class(self) -> Type[Copula]:
        return _COPULA_CLASSES[self]

    def is_valid_theta(self, theta: float) -> bool:
        return self.copula_class.is_valid_theta(theta)

    def conditional(self, u_a, u_b, theta: float) -> np.ndarray:
        """Family conditional function without constructing a copula."""
        return _CONDITIONALS[self](u_a, u_b, theta)

    @classmethod
    def parse(cls, value: Union[str, 'CopulaFamily']) -> 'CopulaFamily':
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            valid = ", ".join(f.value for f in cls)
            raise ValueError(f"Unknown copula family '{value}'. Valid: {valid}")


_COPULA_CLASSES: Dict[CopulaFamily, Type[Copula]] = {
    CopulaFamily.FRANK: FrankCopula,
    CopulaFamily.CLAYTON: ClaytonCopula,
}

_CONDITIONALS = {
    CopulaFamily.FRANK: frank_conditional,
    CopulaFamily.CLAYTON: clayton_conditional,
}


def make_copula(family: Union[str, CopulaFamily], theta: float) -> Copula:
    """Build a copula from a family name and dependence parameter."""
    return CopulaFamily.parse(family).copula_class(theta)
