# Reference scenarios for the copula competing risks study.
#
# Each scenario defines:
# - Copula family and dependence parameter
# - Marginal model per risk
# - Sample size and seed
# - Expected range of each full-data estimate

from .base import Scenario

from .reference import (
    SCENARIOS,
    frank_gamma_scenario,
    clayton_exponential_scenario,
    get_scenario,
)

__all__ = [
    'Scenario',
    'SCENARIOS',
    'frank_gamma_scenario',
    'clayton_exponential_scenario',
    'get_scenario',
]
