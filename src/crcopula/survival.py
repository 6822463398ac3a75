"""
Marginal survival models for the two competing risks.

Each model implements:
- cdf(t), pdf(t), logpdf(t): distribution functions (vectorised)
- survival(t) -> S(t) = P(T > t)
- hazard(t) -> h(t) = f(t) / S(t)
- quantile(u): inverse CDF, used to turn copula uniforms into event times
- sample(n, rng): independent draws

Parameters are validated on construction; anything outside the family's
domain raises InvalidParameter.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Dict, List, Sequence, Tuple, Type, Union

import numpy as np
from scipy import stats

from ._common import EPS, clamp_unit, check_finite, check_positive


class MarginalModel(ABC):
    """Base class for marginal event-time distributions."""

    param_names: Tuple[str, ...] = ()

    @property
    @abstractmethod
    def family(self) -> 'MarginalFamily':
        pass

    @property
    def params(self) -> np.ndarray:
        """Parameter values in param_names order."""
        return np.array([getattr(self, name) for name in self.param_names], dtype=float)

    @property
    def n_params(self) -> int:
        return len(self.param_names)

    def as_dict(self) -> Dict[str, float]:
        return {name: float(getattr(self, name)) for name in self.param_names}

    @classmethod
    def from_vector(cls, values: Sequence[float]) -> 'MarginalModel':
        """Build a model from values ordered as param_names."""
        if len(values) != len(cls.param_names):
            raise ValueError(
                f"{cls.__name__} takes {len(cls.param_names)} parameters, got {len(values)}"
            )
        return cls(*[float(v) for v in values])

    @abstractmethod
    def cdf(self, t) -> np.ndarray:
        """Cumulative distribution function F(t) = P(T <= t)."""
        pass

    @abstractmethod
    def pdf(self, t) -> np.ndarray:
        """Density f(t)."""
        pass

    @abstractmethod
    def quantile(self, u) -> np.ndarray:
        """Inverse CDF. Callers clamp u away from 0 and 1."""
        pass

    def logpdf(self, t) -> np.ndarray:
        with np.errstate(divide='ignore'):
            return np.log(self.pdf(t))

    def survival(self, t) -> np.ndarray:
        """Survival function S(t) = 1 - F(t)."""
        return 1.0 - self.cdf(t)

    def hazard(self, t) -> np.ndarray:
        """Hazard h(t) = f(t) / S(t); infinite where S(t) underflows."""
        s_t = self.survival(t)
        with np.errstate(divide='ignore', invalid='ignore'):
            return np.where(s_t > 0, self.pdf(t) / s_t, np.inf)

    def mean(self) -> float:
        return float(self._dist.mean())

    def sample(self, n: int, rng: np.random.Generator) -> np.ndarray:
        """Draw n event times by inverse transform."""
        return self.quantile(clamp_unit(rng.uniform(size=n)))

    def __repr__(self) -> str:
        args = ", ".join(f"{k}={v:.4g}" for k, v in self.as_dict().items())
        return f"{self.__class__.__name__}({args})"

    def __eq__(self, other) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return self.as_dict() == other.as_dict()

    def __hash__(self) -> int:
        return hash((type(self).__name__, tuple(self.as_dict().items())))


# -----------------------------------------------------------------------------
# Parametric Models
# -----------------------------------------------------------------------------

class Weibull(MarginalModel):
    """
    Weibull margin, F(t) = 1 - exp(-(t/λ)^k).

    cdf, survival and quantile are closed form. A fitted shape within 0.2
    of 1 may be collapsed to the exponential by the marginal fitter.
    """

    param_names = ('shape', 'scale')

    def __init__(self, shape: float, scale: float):
        self.shape = check_positive('shape', shape)  # k
        self.scale = check_positive('scale', scale)  # λ
        self._dist = stats.weibull_min(c=self.shape, scale=self.scale)

    @property
    def family(self) -> 'MarginalFamily':
        return MarginalFamily.WEIBULL

    def cdf(self, t):
        t = np.maximum(np.asarray(t, dtype=float), 0.0)
        return -np.expm1(-((t / self.scale) ** self.shape))

    def survival(self, t):
        t = np.maximum(np.asarray(t, dtype=float), 0.0)
        return np.exp(-((t / self.scale) ** self.shape))

    def pdf(self, t):
        return self._dist.pdf(t)

    def logpdf(self, t):
        return self._dist.logpdf(t)

    def hazard(self, t):
        t = np.asarray(t, dtype=float)
        with np.errstate(divide='ignore'):
            return (self.shape / self.scale) * (t / self.scale) ** (self.shape - 1)

    def quantile(self, u):
        # S(t) = 1 - u  =>  t = λ (-log(1 - u))^(1/k)
        return self.scale * (-np.log1p(-np.asarray(u, dtype=float))) ** (1.0 / self.shape)


class Exponential(Weibull):
    """Exponential margin parameterised by rate; a one-parameter Weibull with scale 1/rate."""

    param_names = ('rate',)

    def __init__(self, rate: float):
        rate = check_positive('rate', rate)
        super().__init__(shape=1.0, scale=1.0 / rate)
        self.rate = rate

    @property
    def family(self) -> 'MarginalFamily':
        return MarginalFamily.EXPONENTIAL

    def pdf(self, t):
        t = np.asarray(t, dtype=float)
        return np.where(t >= 0, self.rate * np.exp(-self.rate * np.maximum(t, 0.0)), 0.0)

    def logpdf(self, t):
        t = np.asarray(t, dtype=float)
        return np.where(t >= 0, np.log(self.rate) - self.rate * t, -np.inf)

    def hazard(self, t):
        return np.where(np.asarray(t, dtype=float) >= 0, self.rate, 0.0)

    def quantile(self, u):
        return -np.log1p(-np.asarray(u, dtype=float)) / self.rate


class Gamma(MarginalModel):
    """Gamma distribution with shape k and rate β (scale = 1/β)."""

    param_names = ('shape', 'rate')

    def __init__(self, shape: float, rate: float):
        self.shape = check_positive('shape', shape)  # k (shape)
        self.rate = check_positive('rate', rate)     # β (rate = 1/scale)
        self._dist = stats.gamma(a=self.shape, scale=1.0 / self.rate)

    @property
    def family(self) -> 'MarginalFamily':
        return MarginalFamily.GAMMA

    def cdf(self, t):
        return self._dist.cdf(t)

    def survival(self, t):
        return self._dist.sf(t)

    def pdf(self, t):
        return self._dist.pdf(t)

    def logpdf(self, t):
        return self._dist.logpdf(t)

    def quantile(self, u):
        return self._dist.ppf(u)


class LogNormal(MarginalModel):
    """Log-normal margin, log(T) ~ Normal(meanlog, sdlog) with meanlog unbounded."""

    param_names = ('meanlog', 'sdlog')

    def __init__(self, meanlog: float, sdlog: float):
        self.meanlog = check_finite('meanlog', meanlog)
        self.sdlog = check_positive('sdlog', sdlog)
        self._dist = stats.lognorm(s=self.sdlog, scale=np.exp(self.meanlog))

    @property
    def family(self) -> 'MarginalFamily':
        return MarginalFamily.LOGNORMAL

    def cdf(self, t):
        return self._dist.cdf(t)

    def survival(self, t):
        return self._dist.sf(t)

    def pdf(self, t):
        return self._dist.pdf(t)

    def logpdf(self, t):
        return self._dist.logpdf(t)

    def quantile(self, u):
        return self._dist.ppf(u)


# -----------------------------------------------------------------------------
# Family registry
# -----------------------------------------------------------------------------

class MarginalFamily(Enum):
    """Closed set of supported marginal families."""

    EXPONENTIAL = 'exponential'
    WEIBULL = 'weibull'
    GAMMA = 'gamma'
    LOGNORMAL = 'lognormal'

    @property
    def model_class(self) -> Type[MarginalModel]:
        return _FAMILY_CLASSES[self]

    @property
    def param_names(self) -> Tuple[str, ...]:
        return self.model_class.param_names

    @property
    def n_params(self) -> int:
        return len(self.param_names)

    def from_vector(self, values: Sequence[float]) -> MarginalModel:
        return self.model_class.from_vector(values)

    @classmethod
    def parse(cls, value: Union[str, 'MarginalFamily']) -> 'MarginalFamily':
        """Accept an enum member, its value, or a common alias ('exp', 'lnorm')."""
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower().replace('-', '').replace('_', '')
        key = _FAMILY_ALIASES.get(key, key)
        try:
            return cls(key)
        except ValueError:
            valid = ", ".join(f.value for f in cls)
            raise ValueError(f"Unknown marginal family '{value}'. Valid: {valid}")


_FAMILY_CLASSES: Dict[MarginalFamily, Type[MarginalModel]] = {
    MarginalFamily.EXPONENTIAL: Exponential,
    MarginalFamily.WEIBULL: Weibull,
    MarginalFamily.GAMMA: Gamma,
    MarginalFamily.LOGNORMAL: LogNormal,
}

_FAMILY_ALIASES = {
    'exp': 'exponential',
    'expon': 'exponential',
    'weibullmin': 'weibull',
    'lnorm': 'lognormal',
    'lognorm': 'lognormal',
}


def make_marginal(family: Union[str, MarginalFamily], **params: float) -> MarginalModel:
    """
    Build a marginal model from a family name and keyword parameters.

    Example:
        make_marginal('gamma', shape=2.0, rate=4.0)
    """
    fam = MarginalFamily.parse(family)
    missing = set(fam.param_names) - set(params)
    extra = set(params) - set(fam.param_names)
    if missing or extra:
        raise ValueError(
            f"{fam.value} expects parameters {list(fam.param_names)}, got {sorted(params)}"
        )
    return fam.model_class(**params)


def transform_margins(
    u: np.ndarray,
    marginals: Sequence[MarginalModel],
    eps: float = EPS
) -> Tuple[np.ndarray, ...]:
    """
    Map copula uniforms to latent event times, one column per risk.

    Args:
        u: Array of shape (n, k) with values in (0, 1)
        marginals: k marginal models, column j uses marginals[j]
        eps: Uniforms are clamped to [eps, 1 - eps] before inversion

    Returns:
        Tuple of k arrays of event times
    """
    u = np.atleast_2d(np.asarray(u, dtype=float))
    if u.shape[1] != len(marginals):
        raise ValueError(
            f"Got {u.shape[1]} uniform columns for {len(marginals)} marginals"
        )
    u = clamp_unit(u, eps)
    return tuple(m.quantile(u[:, j]) for j, m in enumerate(marginals))


def default_start(family: MarginalFamily, mean_time: float) -> List[float]:
    """
    Starting parameter values whose mean matches mean_time.

    Used as the optimiser's default starting point.
    """
    mean_time = check_positive('mean_time', mean_time)
    if family is MarginalFamily.EXPONENTIAL:
        return [1.0 / mean_time]
    if family is MarginalFamily.GAMMA:
        return [1.0, 1.0 / mean_time]
    if family is MarginalFamily.WEIBULL:
        return [1.0, mean_time]
    # sdlog = 1 so that exp(meanlog + 1/2) = mean_time
    return [float(np.log(mean_time)) - 0.5, 1.0]
