"""
Command-line entry point.

Examples:
    python -m crcopula --scenario clayton-exponential --replicates 50
    python -m crcopula --copula frank --theta 2 \
        --marginal1 gamma:shape=2,rate=4 --marginal2 gamma:shape=2,rate=4 --n 5000
"""

import argparse
from typing import Dict, Optional, Sequence

from .config import BootstrapSettings, OptimiserSettings, SimulationConfig
from .copulas import CopulaFamily
from .logging_config import configure_logging
from .runner import print_summary, run_study
from .scenarios import SCENARIOS, get_scenario


def parse_marginal(text: str) -> Dict[str, object]:
    """
    Parse 'family:name=value,name=value' into a marginal dict.

    Example: 'gamma:shape=2,rate=4' -> {'family': 'gamma', 'shape': 2.0, 'rate': 4.0}
    """
    family, _, rest = text.partition(':')
    if not family or not rest:
        raise argparse.ArgumentTypeError(
            f"Marginal must look like 'family:param=value,...', got '{text}'"
        )
    out: Dict[str, object] = {'family': family.strip()}
    for item in rest.split(','):
        name, sep, value = item.partition('=')
        if not sep:
            raise argparse.ArgumentTypeError(f"Bad parameter '{item}' in '{text}'")
        try:
            out[name.strip()] = float(value)
        except ValueError:
            raise argparse.ArgumentTypeError(f"Parameter '{name}' is not a number: '{value}'")
    return out


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='crcopula',
        description='Simulate dependent competing risks and estimate the copula by MLE and bootstrap.',
    )
    parser.add_argument('--scenario', choices=sorted(SCENARIOS),
                        help='Run a reference scenario (overrides the explicit model options)')
    parser.add_argument('--copula', choices=[f.value for f in CopulaFamily], default='clayton')
    parser.add_argument('--theta', type=float, default=2.0)
    parser.add_argument('--marginal1', type=parse_marginal, default='exponential:rate=4')
    parser.add_argument('--marginal2', type=parse_marginal, default='exponential:rate=2.5')
    parser.add_argument('--n', type=int, default=10_000, help='Sample size')
    parser.add_argument('--seed', type=int, default=6)
    parser.add_argument('--replicates', type=int, default=500, help='Bootstrap replicates (B)')
    parser.add_argument('--resample-size', type=int, default=2000, help='Bootstrap resample size (m)')
    parser.add_argument('--maxiter', type=int, default=500, help='Optimiser iterations for the full fit')
    parser.add_argument('--boot-maxiter', type=int, default=200, help='Optimiser iterations per replicate')
    parser.add_argument('--no-bootstrap', action='store_true')
    parser.add_argument('--progress', action='store_true')
    parser.add_argument('--log-level', default='WARNING')
    return parser


def config_from_args(args: argparse.Namespace) -> SimulationConfig:
    if args.scenario:
        return get_scenario(args.scenario, n=args.n).config
    return SimulationConfig.from_values(
        copula=args.copula,
        theta=args.theta,
        marginals=[args.marginal1, args.marginal2],
        n=args.n,
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        configure_logging(args.log_level)
        config = config_from_args(args)
        bootstrap = BootstrapSettings(
            n_replicates=args.replicates,
            resample_size=args.resample_size,
            maxiter=args.boot_maxiter,
            progress=args.progress,
        )
        optimiser = OptimiserSettings(maxiter=args.maxiter)
    except ValueError as e:
        parser.error(str(e))

    result = run_study(
        config,
        seed=args.seed,
        bootstrap=bootstrap,
        optimiser=optimiser,
        run_bootstrap_stage=not args.no_bootstrap,
    )
    print_summary(result)
    return 0 if result.mle.converged else 1
