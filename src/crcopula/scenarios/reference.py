"""
The two reference scenarios of the study.

Frank / gamma: symmetric dependence, both risks gamma(shape=2, rate=4).
The full-data fit underestimates both gamma shapes (below 2) and
overestimates the rates.
Clayton / exponential: lower-tail dependence, exponential risks with
rates 4 and 2.5.
"""

from typing import Callable, Dict

from ..config import SimulationConfig
from ..copulas import ClaytonCopula, FrankCopula
from ..survival import Exponential, Gamma
from .base import Scenario

DEFAULT_N = 10_000
DEFAULT_SEED = 6


def frank_gamma_scenario(n: int = DEFAULT_N, seed: int = DEFAULT_SEED) -> Scenario:
    config = SimulationConfig(
        copula=FrankCopula(2.0),
        marginals=(Gamma(shape=2.0, rate=4.0), Gamma(shape=2.0, rate=4.0)),
        n=n,
    )
    return Scenario(
        name='frank-gamma',
        config=config,
        seed=seed,
        expected_ranges={
            'theta': (0.5, 3.5),
            'rate_1': (3.0, 6.0),
            'rate_2': (3.0, 6.0),
            'shape_1': (0.0, 2.0),
            'shape_2': (0.0, 2.0),
        },
        description='Frank theta=2, gamma(2, 4) for both risks; shapes are underestimated',
    )


def clayton_exponential_scenario(n: int = DEFAULT_N, seed: int = DEFAULT_SEED) -> Scenario:
    config = SimulationConfig(
        copula=ClaytonCopula(2.0),
        marginals=(Exponential(rate=4.0), Exponential(rate=2.5)),
        n=n,
    )
    return Scenario(
        name='clayton-exponential',
        config=config,
        seed=seed,
        expected_ranges={
            'theta': (1.5, 3.0),
            'rate_1': (3.5, 4.5),
            'rate_2': (2.0, 3.0),
        },
        description='Clayton theta=2, exponential rates 4 and 2.5',
    )


SCENARIOS: Dict[str, Callable[..., Scenario]] = {
    'frank-gamma': frank_gamma_scenario,
    'clayton-exponential': clayton_exponential_scenario,
}


def get_scenario(name: str, **kwargs) -> Scenario:
    try:
        factory = SCENARIOS[name]
    except KeyError:
        raise ValueError(f"Unknown scenario '{name}'. Valid: {', '.join(SCENARIOS)}")
    return factory(**kwargs)
