"""
Marginal distribution fitting for each cause.

Fits a fixed candidate list by maximum likelihood, ranks the candidates by
AIC and applies a parsimony override: a Weibull fit whose shape is close
to 1 and whose AIC is within a small relative margin of the exponential
fit is replaced by the exponential.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd
import structlog
from scipy import stats

from .exceptions import EmptyCauseSample, FitConvergenceFailure
from .simulator import Dataset
from .survival import MarginalFamily, MarginalModel

logger = structlog.get_logger()

DEFAULT_CANDIDATES: Tuple[MarginalFamily, ...] = (
    MarginalFamily.EXPONENTIAL,
    MarginalFamily.WEIBULL,
    MarginalFamily.GAMMA,
    MarginalFamily.LOGNORMAL,
)


@dataclass(frozen=True)
class FitResult:
    """
    Marginal fit for one cause.

    Attributes:
        cause: Cause label, or None for an unlabelled sample
        n: Number of observations used
        best_family: Selected family after the override rule
        params: Parameter estimates of the selected family
        aic: AIC for every candidate that fitted
        log_likelihood: Log-likelihood for every candidate that fitted
        all_params: Estimates for every candidate that fitted
        failed: Candidates excluded from the comparison, with the reason
        override_applied: True if Weibull was replaced by exponential
    """
    cause: Optional[int]
    n: int
    best_family: MarginalFamily
    params: Dict[str, float]
    aic: Dict[MarginalFamily, float]
    log_likelihood: Dict[MarginalFamily, float]
    all_params: Dict[MarginalFamily, Dict[str, float]]
    failed: Dict[MarginalFamily, str] = field(default_factory=dict)
    override_applied: bool = False

    @property
    def model(self) -> MarginalModel:
        """Selected model with its fitted parameters."""
        return self.best_family.model_class(**self.params)

    def aic_table(self) -> pd.DataFrame:
        """One row per fitted candidate, sorted by AIC."""
        rows = []
        for family, value in self.aic.items():
            rows.append({
                'family': family.value,
                'n_params': family.n_params,
                'log_likelihood': self.log_likelihood[family],
                'aic': value,
                'selected': family is self.best_family,
                **self.all_params[family],
            })
        return pd.DataFrame(rows).sort_values('aic').reset_index(drop=True)


def _mle_params(family: MarginalFamily, x: np.ndarray) -> Dict[str, float]:
    """Maximum-likelihood estimates with location fixed at zero."""
    if family is MarginalFamily.EXPONENTIAL:
        return {'rate': 1.0 / float(np.mean(x))}
    if family is MarginalFamily.WEIBULL:
        c, _, scale = stats.weibull_min.fit(x, floc=0)
        return {'shape': float(c), 'scale': float(scale)}
    if family is MarginalFamily.GAMMA:
        a, _, scale = stats.gamma.fit(x, floc=0)
        return {'shape': float(a), 'rate': 1.0 / float(scale)}
    if family is MarginalFamily.LOGNORMAL:
        s, _, scale = stats.lognorm.fit(x, floc=0)
        return {'meanlog': float(np.log(scale)), 'sdlog': float(s)}
    raise ValueError(f"No fitting routine for {family}")


def fit_candidate(family: MarginalFamily, x: np.ndarray) -> Tuple[Dict[str, float], float]:
    """
    Fit one family and return (params, log-likelihood).

    Raises:
        FitConvergenceFailure: if the fit errors or is not finite
    """
    try:
        with np.errstate(all='ignore'):
            params = _mle_params(family, x)
            model = family.model_class(**params)
            loglik = float(np.sum(model.logpdf(x)))
    except (ValueError, RuntimeError, FloatingPointError) as e:
        raise FitConvergenceFailure(f"{family.value} fit failed: {e}") from e
    if not np.isfinite(loglik):
        raise FitConvergenceFailure(f"{family.value} fit has non-finite log-likelihood")
    return params, loglik


def aic(log_likelihood: float, n_params: int) -> float:
    """Akaike information criterion, 2k - 2 log L."""
    return 2.0 * n_params - 2.0 * log_likelihood


def select_family(
    aics: Dict[MarginalFamily, float],
    all_params: Dict[MarginalFamily, Dict[str, float]],
    shape_tol: float = 0.2,
    aic_pct_tol: float = 0.05
) -> Tuple[MarginalFamily, bool]:
    """
    Minimum-AIC family, with the Weibull-to-exponential parsimony override.

    The override applies when Weibull wins, |shape - 1| < shape_tol and
    |AIC_weibull - AIC_exp| / |AIC_exp| < aic_pct_tol.

    Returns:
        (selected family, whether the override was applied)
    """
    best = min(aics, key=aics.get)
    weibull, expon = MarginalFamily.WEIBULL, MarginalFamily.EXPONENTIAL
    if best is not weibull or expon not in aics:
        return best, False

    shape = all_params[weibull]['shape']
    aic_exp = aics[expon]
    rel_gap = abs(aics[weibull] - aic_exp) / abs(aic_exp) if aic_exp != 0 else np.inf
    if abs(shape - 1.0) < shape_tol and rel_gap < aic_pct_tol:
        return expon, True
    return best, False


def fit_marginals(
    times: Sequence[float],
    cause: Optional[int] = None,
    candidates: Iterable[Union[str, MarginalFamily]] = DEFAULT_CANDIDATES,
    shape_tol: float = 0.2,
    aic_pct_tol: float = 0.05,
    min_observations: int = 10
) -> FitResult:
    """
    Fit candidate families to a sample of positive times and select by AIC.

    Args:
        times: Observed times for one cause
        cause: Cause label recorded on the result
        candidates: Families to compare
        shape_tol: Weibull shape must be within this of 1 for the override
        aic_pct_tol: Relative AIC gap to exponential allowed for the override
        min_observations: Fewer usable observations raises EmptyCauseSample

    Returns:
        FitResult

    Raises:
        EmptyCauseSample: too few positive finite observations
        FitConvergenceFailure: every candidate failed
    """
    x = np.asarray(times, dtype=float)
    x = x[np.isfinite(x) & (x > 0)]
    if len(x) < min_observations:
        raise EmptyCauseSample(cause, len(x), min_observations)

    families = [MarginalFamily.parse(c) for c in candidates]
    all_params: Dict[MarginalFamily, Dict[str, float]] = {}
    logliks: Dict[MarginalFamily, float] = {}
    aics: Dict[MarginalFamily, float] = {}
    failed: Dict[MarginalFamily, str] = {}

    for family in families:
        try:
            params, loglik = fit_candidate(family, x)
        except FitConvergenceFailure as e:
            failed[family] = str(e)
            logger.warning("Candidate fit excluded", cause=cause, family=family.value, error=str(e))
            continue
        all_params[family] = params
        logliks[family] = loglik
        aics[family] = aic(loglik, family.n_params)

    if not aics:
        raise FitConvergenceFailure(
            f"No candidate family could be fitted for cause {cause}: {failed}"
        )

    best, override = select_family(aics, all_params, shape_tol, aic_pct_tol)
    if override:
        logger.info(
            "Weibull collapsed to exponential",
            cause=cause, weibull_shape=all_params[MarginalFamily.WEIBULL]['shape']
        )

    return FitResult(
        cause=cause,
        n=len(x),
        best_family=best,
        params=dict(all_params[best]),
        aic=aics,
        log_likelihood=logliks,
        all_params=all_params,
        failed=failed,
        override_applied=override,
    )


def fit_dataset_marginals(
    dataset: Dataset,
    errors: Optional[Dict[int, str]] = None,
    **kwargs
) -> Dict[int, FitResult]:
    """
    Fit marginals to each cause's observed times independently.

    Args:
        dataset: Observed data
        errors: If given, a cause that cannot be fitted is recorded here
            (cause -> message) and left out of the result; otherwise its
            EmptyCauseSample or FitConvergenceFailure propagates
        **kwargs: Passed to fit_marginals

    Returns:
        Cause -> FitResult
    """
    fits: Dict[int, FitResult] = {}
    for cause in (1, 2):
        try:
            fits[cause] = fit_marginals(dataset.subset(cause), cause=cause, **kwargs)
        except (EmptyCauseSample, FitConvergenceFailure) as e:
            if errors is None:
                raise
            errors[cause] = str(e)
            logger.error("Marginal fit failed", cause=cause, error=str(e))
    return fits
