"""
Configuration objects for simulation, optimisation and bootstrap runs.

SimulationConfig is immutable and validated at construction: any copula or
marginal parameter outside its domain raises InvalidParameter before a
single sample is drawn.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence, Tuple, Union

from .copulas import Copula, CopulaFamily, make_copula
from .survival import MarginalFamily, MarginalModel, make_marginal


@dataclass(frozen=True)
class SimulationConfig:
    """
    Data-generating process for one study.

    Attributes:
        copula: Dependence structure between the two latent times
        marginals: (risk 1 model, risk 2 model)
        n: Number of simulated units
    """
    copula: Copula
    marginals: Tuple[MarginalModel, MarginalModel]
    n: int

    def __post_init__(self):
        if not isinstance(self.copula, Copula):
            raise TypeError(f"copula must be a Copula, got {type(self.copula).__name__}")
        marginals = tuple(self.marginals)
        if len(marginals) != 2:
            raise ValueError(f"Exactly two marginals are required, got {len(marginals)}")
        for m in marginals:
            if not isinstance(m, MarginalModel):
                raise TypeError(f"marginals must be MarginalModel instances, got {type(m).__name__}")
        object.__setattr__(self, 'marginals', marginals)
        if isinstance(self.n, bool) or int(self.n) != self.n or self.n < 1:
            raise ValueError(f"n must be a positive integer, got {self.n}")
        object.__setattr__(self, 'n', int(self.n))

    @property
    def copula_family(self) -> CopulaFamily:
        return self.copula.family

    @property
    def marginal_families(self) -> Tuple[MarginalFamily, MarginalFamily]:
        return (self.marginals[0].family, self.marginals[1].family)

    @classmethod
    def from_values(
        cls,
        copula: Union[str, CopulaFamily],
        theta: float,
        marginals: Sequence[Union[MarginalModel, Dict[str, Any]]],
        n: int
    ) -> 'SimulationConfig':
        """
        Build a config from plain values.

        Each marginal is either a MarginalModel or a dict with a 'family' key
        plus that family's parameters, e.g. {'family': 'gamma', 'shape': 2, 'rate': 4}.
        """
        models = []
        for m in marginals:
            if isinstance(m, MarginalModel):
                models.append(m)
            else:
                params = dict(m)
                family = params.pop('family')
                models.append(make_marginal(family, **params))
        return cls(copula=make_copula(copula, theta), marginals=tuple(models), n=n)

    def true_params(self) -> Dict[str, float]:
        """True parameter values keyed as in the flattened parameter vector."""
        out = {'theta': self.copula.theta}
        for i, m in enumerate(self.marginals, start=1):
            for name, value in m.as_dict().items():
                out[f'{name}_{i}'] = value
        return out


@dataclass
class OptimiserSettings:
    """
    Settings for the full-likelihood optimiser.

    bounds: Optional per-component (low, high) overrides; None uses the
        layout defaults.
    """
    maxiter: int = 500
    bounds: Optional[Sequence[Tuple[float, float]]] = None
    method: str = 'L-BFGS-B'

    def __post_init__(self):
        if self.maxiter < 1:
            raise ValueError(f"maxiter must be >= 1, got {self.maxiter}")


@dataclass
class BootstrapSettings:
    """Bootstrap replicate count B, resample size m and per-replicate iteration cap."""
    n_replicates: int = 500
    resample_size: int = 2000
    maxiter: int = 200
    progress: bool = False

    def __post_init__(self):
        if self.n_replicates < 1:
            raise ValueError(f"n_replicates must be >= 1, got {self.n_replicates}")
        if self.resample_size < 1:
            raise ValueError(f"resample_size must be >= 1, got {self.resample_size}")
        if self.maxiter < 1:
            raise ValueError(f"maxiter must be >= 1, got {self.maxiter}")
