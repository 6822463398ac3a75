"""
Full competing-risks log-likelihood under a bivariate copula.

An observation (t, cause=j) contributes

    f_j(t) * conditional(F_j(t), F_k(t); θ)

where k is the other risk and conditional is the copula family's
closed-form weight. The parameter vector is flattened as
[theta, risk-1 parameters..., risk-2 parameters...].

Any parameter outside its domain, or any contribution that is
non-positive or non-finite, makes the log-likelihood return
LOGLIK_SENTINEL instead of raising. This keeps a box-constrained
optimiser inside the feasible region.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np
from .config import SimulationConfig
from .copulas import Copula, CopulaFamily
from .exceptions import InvalidParameter, NumericalDegeneracy
from .simulator import Dataset
from .survival import MarginalFamily, MarginalModel, default_start

LOGLIK_SENTINEL = -1e10

THETA_BOUNDS = (1e-6, 100.0)
POSITIVE_BOUNDS = (1e-6, 1000.0)
LOCATION_BOUNDS = (-100.0, 100.0)


@dataclass(frozen=True)
class ParameterLayout:
    """
    Ordering of the flattened parameter vector.

    Names are 'theta' followed by '<param>_<risk>', e.g.
    ['theta', 'shape_1', 'rate_1', 'shape_2', 'rate_2'].
    """
    copula_family: CopulaFamily
    marginal_families: Tuple[MarginalFamily, MarginalFamily]

    def __post_init__(self):
        object.__setattr__(self, 'copula_family', CopulaFamily.parse(self.copula_family))
        families = tuple(MarginalFamily.parse(f) for f in self.marginal_families)
        if len(families) != 2:
            raise ValueError(f"Exactly two marginal families are required, got {len(families)}")
        object.__setattr__(self, 'marginal_families', families)

    @classmethod
    def from_config(cls, config: SimulationConfig) -> 'ParameterLayout':
        return cls(config.copula_family, config.marginal_families)

    @property
    def names(self) -> List[str]:
        names = ['theta']
        for i, family in enumerate(self.marginal_families, start=1):
            names.extend(f'{p}_{i}' for p in family.param_names)
        return names

    @property
    def size(self) -> int:
        return 1 + sum(f.n_params for f in self.marginal_families)

    def unpack(self, vector: Sequence[float]) -> Tuple[float, np.ndarray, np.ndarray]:
        """Split a vector into (theta, risk-1 params, risk-2 params)."""
        vector = np.asarray(vector, dtype=float)
        if vector.shape != (self.size,):
            raise ValueError(f"Expected {self.size} parameters, got shape {vector.shape}")
        k1 = self.marginal_families[0].n_params
        return float(vector[0]), vector[1:1 + k1], vector[1 + k1:]

    def pack(
        self,
        theta: float,
        params1: Sequence[float],
        params2: Sequence[float]
    ) -> np.ndarray:
        vector = np.concatenate([[theta], np.asarray(params1, float), np.asarray(params2, float)])
        if vector.shape != (self.size,):
            raise ValueError(f"Expected {self.size} parameters, got {len(vector)}")
        return vector

    def pack_models(self, copula: Copula, marginals: Sequence[MarginalModel]) -> np.ndarray:
        """Vector holding the parameters of existing model objects."""
        return self.pack(copula.theta, marginals[0].params, marginals[1].params)

    def build(self, vector: Sequence[float]) -> Tuple[Copula, Tuple[MarginalModel, MarginalModel]]:
        """
        Instantiate the copula and marginals for a parameter vector.

        Raises:
            InvalidParameter: if any component is outside its domain
        """
        theta, p1, p2 = self.unpack(vector)
        copula = self.copula_family.copula_class(theta)
        m1 = self.marginal_families[0].from_vector(p1)
        m2 = self.marginal_families[1].from_vector(p2)
        return copula, (m1, m2)

    def as_dict(self, vector: Sequence[float]) -> dict:
        return dict(zip(self.names, (float(v) for v in vector)))

    def default_bounds(self) -> List[Tuple[float, float]]:
        """Near-zero lower bounds and generous upper bounds."""
        bounds = [THETA_BOUNDS]
        for family in self.marginal_families:
            for name in family.param_names:
                bounds.append(LOCATION_BOUNDS if name == 'meanlog' else POSITIVE_BOUNDS)
        return bounds

    def default_start(self, dataset: Dataset, theta: float = 1.0) -> np.ndarray:
        """
        Starting vector: theta plus marginal values matched to each cause's mean time.

        A cause with no observations falls back to the overall mean.
        """
        overall = float(np.mean(dataset.closure_time))
        parts = []
        for i, family in enumerate(self.marginal_families, start=1):
            times = dataset.subset(i)
            mean_time = float(np.mean(times)) if len(times) else overall
            parts.append(default_start(family, mean_time))
        return self.pack(theta, parts[0], parts[1])


def observation_log_likelihood(
    params: Sequence[float],
    dataset: Dataset,
    layout: ParameterLayout
) -> np.ndarray:
    """
    Per-observation log contributions log f_j(t) + log conditional(F_j, F_k).

    Raises:
        InvalidParameter: if params are outside their domain
    """
    copula, (m1, m2) = layout.build(params)
    t = dataset.closure_time
    is_one = dataset.cause == 1

    with np.errstate(divide='ignore', invalid='ignore', over='ignore'):
        F1 = m1.cdf(t)
        F2 = m2.cdf(t)
        log_f = np.where(is_one, m1.logpdf(t), m2.logpdf(t))
        u_cause = np.where(is_one, F1, F2)
        u_other = np.where(is_one, F2, F1)
        cond = copula.conditional(u_cause, u_other)
        # log of a non-positive weight is -inf or nan; both count as degenerate
        return log_f + np.log(cond)


def log_likelihood(
    params: Sequence[float],
    dataset: Dataset,
    layout: ParameterLayout,
    strict: bool = False
) -> float:
    """
    Total log-likelihood of the dataset.

    Args:
        params: Flattened parameter vector (see ParameterLayout)
        dataset: Observed data
        layout: Parameter ordering and families
        strict: Raise InvalidParameter / NumericalDegeneracy instead of
            returning LOGLIK_SENTINEL

    Returns:
        Sum of per-observation log contributions, or LOGLIK_SENTINEL
    """
    try:
        terms = observation_log_likelihood(params, dataset, layout)
    except InvalidParameter:
        if strict:
            raise
        return LOGLIK_SENTINEL

    bad = ~np.isfinite(terms)
    if bad.any():
        n_bad = int(bad.sum())
        if strict:
            raise NumericalDegeneracy(
                f"{n_bad} of {len(terms)} likelihood contributions are degenerate",
                n_bad=n_bad
            )
        return LOGLIK_SENTINEL
    return float(np.sum(terms))


def true_log_likelihood(config: SimulationConfig, dataset: Dataset) -> float:
    """Log-likelihood at the data-generating parameters."""
    layout = ParameterLayout.from_config(config)
    return log_likelihood(layout.pack_models(config.copula, config.marginals), dataset, layout)


def resolve_bounds(
    layout: ParameterLayout,
    bounds: Optional[Sequence[Union[Tuple[float, float], None]]] = None
) -> List[Tuple[float, float]]:
    """Layout default bounds with per-component overrides (None keeps the default)."""
    defaults = layout.default_bounds()
    if bounds is None:
        return defaults
    if len(bounds) != layout.size:
        raise ValueError(f"Expected {layout.size} bounds, got {len(bounds)}")
    return [d if b is None else (float(b[0]), float(b[1])) for d, b in zip(defaults, bounds)]
