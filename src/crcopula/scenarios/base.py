"""
Base class for reference study scenarios.

A scenario pins down a data-generating process, a seed and the range each
estimate is expected to land in, so a study run can be checked against it.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from ..config import BootstrapSettings, SimulationConfig
from ..optimisation import OptimisationResult, fit_mle
from ..runner import StudyResult, run_study
from ..simulator import Dataset, simulate_dataset


@dataclass(frozen=True)
class Scenario:
    """
    Reference study set-up.

    Attributes:
        name: Short identifier (used by the CLI)
        config: Data-generating process
        seed: Seed for simulate()
        expected_ranges: Parameter name -> (low, high) for the full-data MLE
        description: One-line description
    """
    name: str
    config: SimulationConfig
    seed: int
    expected_ranges: Dict[str, Tuple[float, float]] = field(default_factory=dict)
    description: str = ''

    @property
    def true_params(self) -> Dict[str, float]:
        return self.config.true_params()

    def simulate(self) -> Dataset:
        return simulate_dataset(self.config, seed=self.seed)

    def fit(self, dataset: Optional[Dataset] = None, **kwargs) -> OptimisationResult:
        """Full-data MLE on the scenario's dataset (simulated if not given)."""
        if dataset is None:
            dataset = self.simulate()
        return fit_mle(
            dataset,
            self.config.copula_family,
            self.config.marginal_families,
            **kwargs
        )

    def run(self, bootstrap: Optional[BootstrapSettings] = None, **kwargs) -> StudyResult:
        return run_study(self.config, seed=self.seed, bootstrap=bootstrap, **kwargs)

    def check(self, mle: OptimisationResult) -> Dict[str, bool]:
        """Parameter name -> whether the estimate is inside its expected range."""
        estimates = mle.as_dict()
        return {
            name: low <= estimates[name] <= high
            for name, (low, high) in self.expected_ranges.items()
        }
