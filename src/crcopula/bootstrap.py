"""
Nonparametric bootstrap of the full maximum-likelihood estimator.

Each replicate resamples m observations with replacement, refits every
parameter from a fixed starting vector and keeps the estimate only if the
optimiser converged. Failed replicates are dropped and counted, never
imputed, so the final sample can hold fewer than B rows.

Replicate r draws from its own generator spawned from one master
SeedSequence, which makes every replicate reproducible on its own.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd
import structlog

from .copulas import CopulaFamily
from .exceptions import CopulaRiskError
from .likelihood import ParameterLayout
from .optimisation import fit_mle
from .simulator import Dataset
from .survival import MarginalFamily

logger = structlog.get_logger()


@dataclass
class BootstrapSample:
    """
    Estimates from the converged bootstrap replicates.

    Attributes:
        estimates: Array of shape (n_successful, n_params)
        names: Parameter names (column order of estimates)
        n_requested: Number of replicates attempted (B)
        resample_size: Observations per resample (m)
        t0: Estimate on the full dataset, used for bias
        failures: Replicate index -> reason it was dropped
    """
    estimates: np.ndarray
    names: List[str]
    n_requested: int
    resample_size: int
    t0: Optional[np.ndarray] = None
    failures: Dict[int, str] = field(default_factory=dict)

    @property
    def n_successful(self) -> int:
        return int(self.estimates.shape[0])

    @property
    def n_failed(self) -> int:
        return len(self.failures)

    @property
    def success_rate(self) -> float:
        return self.n_successful / self.n_requested if self.n_requested else 0.0

    def _require_estimates(self) -> None:
        if self.n_successful == 0:
            raise ValueError(
                f"No bootstrap replicate converged (0 of {self.n_requested})"
            )

    def mean(self) -> Dict[str, float]:
        self._require_estimates()
        return dict(zip(self.names, np.mean(self.estimates, axis=0)))

    def std(self) -> Dict[str, float]:
        """Bootstrap standard error (ddof=1); nan with a single replicate."""
        self._require_estimates()
        if self.n_successful < 2:
            return {name: float('nan') for name in self.names}
        return dict(zip(self.names, np.std(self.estimates, axis=0, ddof=1)))

    def bias(self) -> Dict[str, float]:
        """mean(estimates) - t0."""
        if self.t0 is None:
            raise ValueError("Bias needs the full-data estimate t0")
        means = self.mean()
        return {name: means[name] - float(t) for name, t in zip(self.names, self.t0)}

    def quantiles(self, q: Sequence[float] = (0.025, 0.5, 0.975)) -> pd.DataFrame:
        """Empirical quantiles, one row per parameter and one column per q."""
        self._require_estimates()
        values = np.quantile(self.estimates, q, axis=0)
        return pd.DataFrame(values.T, index=self.names, columns=[f'q{x:g}' for x in q])

    def percentile_interval(self, level: float = 0.95) -> Dict[str, Tuple[float, float]]:
        """Percentile confidence interval per parameter."""
        if not 0 < level < 1:
            raise ValueError(f"level must be in (0, 1), got {level}")
        self._require_estimates()
        alpha = (1.0 - level) / 2.0
        lo, hi = np.quantile(self.estimates, [alpha, 1.0 - alpha], axis=0)
        return {name: (float(a), float(b)) for name, a, b in zip(self.names, lo, hi)}

    def summary(self) -> pd.DataFrame:
        """Mean, std and 2.5/50/97.5 % quantiles per parameter."""
        self._require_estimates()
        q = np.quantile(self.estimates, [0.025, 0.5, 0.975], axis=0)
        std = self.std()
        return pd.DataFrame({
            'mean': np.mean(self.estimates, axis=0),
            'std': [std[name] for name in self.names],
            'q2.5': q[0],
            'median': q[1],
            'q97.5': q[2],
        }, index=self.names)

    def to_dataframe(self) -> pd.DataFrame:
        """One row per surviving replicate, one column per parameter."""
        return pd.DataFrame(self.estimates, columns=self.names)


def run_bootstrap(
    dataset: Dataset,
    copula_family: Union[str, CopulaFamily],
    marginal_families: Sequence[Union[str, MarginalFamily]],
    start: Sequence[float],
    n_replicates: int = 500,
    resample_size: int = 2000,
    seed: Union[int, np.random.SeedSequence, None] = None,
    bounds: Optional[Sequence[Optional[Tuple[float, float]]]] = None,
    maxiter: int = 200,
    progress: bool = False
) -> BootstrapSample:
    """
    Bootstrap the joint MLE.

    Args:
        dataset: Full observed dataset (never modified)
        copula_family: Copula family to fit
        marginal_families: Marginal family per risk
        start: Fixed starting vector for every replicate; usually the
            full-data MLE, which is also stored as t0
        n_replicates: B
        resample_size: m, may be smaller or larger than len(dataset)
        seed: Master seed or SeedSequence; replicate streams are spawned from it
        bounds: Optimiser bounds (see fit_mle)
        maxiter: Iteration cap per replicate
        progress: Print a line every 10% of replicates

    Returns:
        BootstrapSample holding converged replicates only
    """
    if n_replicates < 1:
        raise ValueError(f"n_replicates must be >= 1, got {n_replicates}")
    if resample_size < 1:
        raise ValueError(f"resample_size must be >= 1, got {resample_size}")
    if len(dataset) == 0:
        raise ValueError("Cannot bootstrap an empty dataset")

    layout = ParameterLayout(copula_family, tuple(marginal_families))
    start = np.asarray(start, dtype=float)
    if start.shape != (layout.size,):
        raise ValueError(f"start must have {layout.size} values, got shape {start.shape}")
    master = seed if isinstance(seed, np.random.SeedSequence) else np.random.SeedSequence(seed)
    child_seeds = master.spawn(n_replicates)

    rows: List[np.ndarray] = []
    failures: Dict[int, str] = {}
    report_every = max(1, n_replicates // 10)

    for r, child in enumerate(child_seeds):
        rng = np.random.default_rng(child)
        resample = dataset.resample(resample_size, rng)
        try:
            result = fit_mle(
                resample,
                layout.copula_family,
                layout.marginal_families,
                start=start,
                bounds=bounds,
                maxiter=maxiter,
                restarts=0,
            )
        except (CopulaRiskError, ValueError, ArithmeticError) as e:
            failures[r] = f"{type(e).__name__}: {e}"
            logger.warning("Bootstrap replicate raised", replicate=r, error=str(e))
            continue

        if result.converged:
            rows.append(result.params)
        else:
            failures[r] = result.message
            logger.debug("Bootstrap replicate dropped", replicate=r, message=result.message)

        if progress and (r + 1) % report_every == 0:
            print(f"  Replicate {r + 1:4d}/{n_replicates}: {len(rows)} converged")

    estimates = np.vstack(rows) if rows else np.empty((0, layout.size))
    logger.info(
        "Bootstrap complete",
        n_requested=n_replicates,
        n_successful=len(rows),
        n_failed=len(failures),
        resample_size=resample_size,
    )

    return BootstrapSample(
        estimates=estimates,
        names=layout.names,
        n_requested=n_replicates,
        resample_size=resample_size,
        t0=start.copy(),
        failures=failures,
    )
