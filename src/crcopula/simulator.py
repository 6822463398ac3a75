"""
Dependent competing risks simulation.

Generates observed data by:
1. Sampling correlated uniforms from the copula
2. Mapping them to latent event times through each risk's quantile function
3. Reducing each latent pair to (closure_time, cause): the minimum time wins
"""

from dataclasses import dataclass
from typing import Dict, Optional

import numpy as np
import pandas as pd

from .config import SimulationConfig
from .survival import transform_margins


@dataclass
class LatentPairs:
    """Latent event times (T1, T2) for each simulated unit."""
    t1: np.ndarray
    t2: np.ndarray

    def __len__(self) -> int:
        return len(self.t1)


@dataclass
class Dataset:
    """
    Observed competing risks data.

    closure_time[i] = min(T1, T2) and cause[i] in {1, 2} is the risk that
    produced it. Arrays are made read-only on construction.
    """
    closure_time: np.ndarray
    cause: np.ndarray

    def __post_init__(self):
        closure_time = np.array(self.closure_time, dtype=float)
        cause = np.array(self.cause, dtype=int)
        if closure_time.ndim != 1 or cause.shape != closure_time.shape:
            raise ValueError(
                f"closure_time and cause must be 1-D arrays of equal length, "
                f"got shapes {closure_time.shape} and {cause.shape}"
            )
        if not np.all(np.isin(cause, (1, 2))):
            raise ValueError("cause values must be 1 or 2")
        closure_time.flags.writeable = False
        cause.flags.writeable = False
        self.closure_time = closure_time
        self.cause = cause

    def __len__(self) -> int:
        return len(self.closure_time)

    def subset(self, cause: int) -> np.ndarray:
        """Closure times observed for one cause."""
        return self.closure_time[self.cause == cause]

    def cause_counts(self) -> Dict[int, int]:
        return {c: int(np.sum(self.cause == c)) for c in (1, 2)}

    def resample(self, m: int, rng: np.random.Generator) -> 'Dataset':
        """Draw m observations uniformly with replacement."""
        idx = rng.integers(0, len(self), size=m)
        return Dataset(self.closure_time[idx], self.cause[idx])

    def to_dataframe(self) -> pd.DataFrame:
        """Flat table of (closure_time, cause)."""
        return pd.DataFrame({'closure_time': self.closure_time, 'cause': self.cause})

    @classmethod
    def from_dataframe(cls, df: pd.DataFrame) -> 'Dataset':
        missing = {'closure_time', 'cause'} - set(df.columns)
        if missing:
            raise ValueError(f"DataFrame is missing columns: {sorted(missing)}")
        return cls(df['closure_time'].to_numpy(), df['cause'].to_numpy())


def reduce_competing_risks(t1, t2) -> Dataset:
    """
    Observed data from latent times.

    closure_time = min(t1, t2); cause = 1 where t1 < t2, else 2.
    Ties (t1 == t2) are assigned to cause 2.
    """
    t1 = np.asarray(t1, dtype=float)
    t2 = np.asarray(t2, dtype=float)
    if t1.shape != t2.shape:
        raise ValueError(f"Latent time arrays differ in shape: {t1.shape} vs {t2.shape}")
    cause = np.where(t1 < t2, 1, 2)
    closure_time = np.where(t1 < t2, t1, t2)
    return Dataset(closure_time, cause)


def simulate_latent(config: SimulationConfig, rng: np.random.Generator) -> LatentPairs:
    """Sample n latent pairs from the configured copula and marginals."""
    u = config.copula.sample(config.n, rng)
    t1, t2 = transform_margins(u, config.marginals)
    return LatentPairs(t1=t1, t2=t2)


def simulate_dataset(
    config: SimulationConfig,
    rng: Optional[np.random.Generator] = None,
    seed: Optional[int] = None
) -> Dataset:
    """
    Simulate an observed competing risks dataset.

    Args:
        config: Data-generating process
        rng: Generator to draw from; takes precedence over seed
        seed: Seed for a fresh generator when rng is not given

    Returns:
        Dataset of config.n observations
    """
    if rng is None:
        rng = np.random.default_rng(seed)
    latent = simulate_latent(config, rng)
    return reduce_competing_risks(latent.t1, latent.t2)
