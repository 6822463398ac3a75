"""
crcopula - Dependent competing risks simulation and copula likelihood estimation.
"""

from .exceptions import (
    CopulaRiskError,
    InvalidParameter,
    NumericalDegeneracy,
    FitConvergenceFailure,
    EmptyCauseSample,
)

from .survival import (
    MarginalModel,
    MarginalFamily,
    Exponential,
    Weibull,
    Gamma,
    LogNormal,
    make_marginal,
    transform_margins,
)

from .copulas import (
    Copula,
    CopulaFamily,
    FrankCopula,
    ClaytonCopula,
    make_copula,
    frank_conditional,
    clayton_conditional,
)

from .config import (
    SimulationConfig,
    OptimiserSettings,
    BootstrapSettings,
)

from .simulator import (
    LatentPairs,
    Dataset,
    reduce_competing_risks,
    simulate_latent,
    simulate_dataset,
)

from .fitting import (
    FitResult,
    fit_marginals,
    fit_dataset_marginals,
)

from .likelihood import (
    LOGLIK_SENTINEL,
    ParameterLayout,
    log_likelihood,
)

from .optimisation import (
    OptimisationResult,
    fit_mle,
)

from .bootstrap import (
    BootstrapSample,
    run_bootstrap,
)

from .runner import (
    StudyResult,
    run_study,
    print_summary,
)

__version__ = "0.1.0"

__all__ = [
    # Errors
    "CopulaRiskError",
    "InvalidParameter",
    "NumericalDegeneracy",
    "FitConvergenceFailure",
    "EmptyCauseSample",
    # Marginals
    "MarginalModel",
    "MarginalFamily",
    "Exponential",
    "Weibull",
    "Gamma",
    "LogNormal",
    "make_marginal",
    "transform_margins",
    # Copulas
    "Copula",
    "CopulaFamily",
    "FrankCopula",
    "ClaytonCopula",
    "make_copula",
    "frank_conditional",
    "clayton_conditional",
    # Config
    "SimulationConfig",
    "OptimiserSettings",
    "BootstrapSettings",
    # Simulation
    "LatentPairs",
    "Dataset",
    "reduce_competing_risks",
    "simulate_latent",
    "simulate_dataset",
    # Fitting
    "FitResult",
    "fit_marginals",
    "fit_dataset_marginals",
    # Likelihood and estimation
    "LOGLIK_SENTINEL",
    "ParameterLayout",
    "log_likelihood",
    "OptimisationResult",
    "fit_mle",
    "BootstrapSample",
    "run_bootstrap",
    # Study
    "StudyResult",
    "run_study",
    "print_summary",
]
