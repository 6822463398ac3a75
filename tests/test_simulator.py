"""
Tests for simulation and the observed dataset.

Tests cover:
- Reduction of latent pairs to (closure_time, cause)
- Dataset validation, immutability and resampling
- Simulation configuration validation
- Reproducibility of simulated data
"""

import pytest
import numpy as np
import pandas as pd

from crcopula import (
    ClaytonCopula,
    Dataset,
    Exponential,
    FrankCopula,
    Gamma,
    InvalidParameter,
    SimulationConfig,
    reduce_competing_risks,
    simulate_dataset,
    simulate_latent,
)


@pytest.fixture
def clayton_config():
    return SimulationConfig(
        copula=ClaytonCopula(2.0),
        marginals=(Exponential(rate=4.0), Exponential(rate=2.5)),
        n=2000,
    )


class TestReduceCompetingRisks:
    """Minimum time wins; its index is the cause."""

    def test_min_and_argmin(self):
        t1 = np.array([0.5, 2.0, 1.0, 3.0])
        t2 = np.array([1.0, 1.5, 4.0, 0.1])
        data = reduce_competing_risks(t1, t2)
        np.testing.assert_array_equal(data.closure_time, [0.5, 1.5, 1.0, 0.1])
        np.testing.assert_array_equal(data.cause, [1, 2, 1, 2])

    def test_tie_goes_to_cause_two(self):
        data = reduce_competing_risks([1.0, 2.0], [1.0, 3.0])
        np.testing.assert_array_equal(data.cause, [2, 1])
        np.testing.assert_array_equal(data.closure_time, [1.0, 2.0])

    def test_shape_mismatch(self):
        with pytest.raises(ValueError, match="differ in shape"):
            reduce_competing_risks([1.0, 2.0], [1.0])

    def test_closure_time_never_exceeds_latent(self, clayton_config):
        latent = simulate_latent(clayton_config, np.random.default_rng(0))
        data = reduce_competing_risks(latent.t1, latent.t2)
        assert np.all(data.closure_time <= latent.t1)
        assert np.all(data.closure_time <= latent.t2)
        assert len(latent) == clayton_config.n


class TestDataset:
    """Observed dataset container."""

    def test_arrays_are_read_only(self):
        data = Dataset([0.1, 0.2], [1, 2])
        with pytest.raises(ValueError):
            data.closure_time[0] = 5.0
        with pytest.raises(ValueError):
            data.cause[0] = 2

    def test_does_not_alias_input(self):
        times = np.array([0.1, 0.2])
        Dataset(times, [1, 2])
        times[0] = 9.0
        assert times.flags.writeable

    def test_rejects_bad_cause(self):
        with pytest.raises(ValueError, match="cause values"):
            Dataset([0.1, 0.2], [1, 3])

    def test_rejects_length_mismatch(self):
        with pytest.raises(ValueError):
            Dataset([0.1, 0.2, 0.3], [1, 2])

    def test_subset_and_counts(self):
        data = Dataset([0.1, 0.2, 0.3, 0.4], [1, 2, 2, 1])
        np.testing.assert_array_equal(data.subset(1), [0.1, 0.4])
        assert data.cause_counts() == {1: 2, 2: 2}

    def test_resample_size_and_support(self):
        data = Dataset([0.1, 0.2, 0.3], [1, 2, 1])
        boot = data.resample(50, np.random.default_rng(1))
        assert len(boot) == 50
        assert set(boot.closure_time) <= {0.1, 0.2, 0.3}
        # pairs stay together
        lookup = dict(zip(data.closure_time, data.cause))
        assert all(lookup[t] == c for t, c in zip(boot.closure_time, boot.cause))

    def test_resample_leaves_original_unchanged(self):
        data = Dataset([0.1, 0.2, 0.3], [1, 2, 1])
        data.resample(10, np.random.default_rng(2))
        np.testing.assert_array_equal(data.closure_time, [0.1, 0.2, 0.3])

    def test_dataframe_round_trip(self):
        data = Dataset([0.1, 0.2], [2, 1])
        df = data.to_dataframe()
        assert list(df.columns) == ['closure_time', 'cause']
        back = Dataset.from_dataframe(df)
        np.testing.assert_array_equal(back.cause, data.cause)

    def test_from_dataframe_missing_column(self):
        with pytest.raises(ValueError, match="missing columns"):
            Dataset.from_dataframe(pd.DataFrame({'closure_time': [0.1]}))


class TestSimulationConfig:
    """Configuration is validated before any sampling."""

    def test_invalid_theta_raises_before_sampling(self):
        with pytest.raises(InvalidParameter):
            SimulationConfig.from_values(
                'clayton', -1.0,
                [{'family': 'exponential', 'rate': 4.0}, {'family': 'exponential', 'rate': 2.5}],
                n=100,
            )

    def test_invalid_marginal_raises(self):
        with pytest.raises(InvalidParameter):
            SimulationConfig.from_values(
                'frank', 2.0,
                [{'family': 'gamma', 'shape': 2.0, 'rate': -4.0}, Gamma(2.0, 4.0)],
                n=100,
            )

    @pytest.mark.parametrize("n", [0, -5, 2.5, True])
    def test_rejects_bad_n(self, n):
        with pytest.raises(ValueError):
            SimulationConfig(FrankCopula(2.0), (Gamma(2.0, 4.0), Gamma(2.0, 4.0)), n=n)

    def test_requires_two_marginals(self):
        with pytest.raises(ValueError, match="two marginals"):
            SimulationConfig(FrankCopula(2.0), (Gamma(2.0, 4.0),), n=10)

    def test_true_params(self, clayton_config):
        assert clayton_config.true_params() == {'theta': 2.0, 'rate_1': 4.0, 'rate_2': 2.5}

    def test_is_immutable(self, clayton_config):
        with pytest.raises(AttributeError):
            clayton_config.n = 5


class TestSimulateDataset:
    """End-to-end simulation."""

    def test_size_and_causes(self, clayton_config):
        data = simulate_dataset(clayton_config, seed=3)
        assert len(data) == 2000
        assert set(np.unique(data.cause)) == {1, 2}
        assert np.all(data.closure_time > 0)

    def test_same_seed_same_data(self, clayton_config):
        a = simulate_dataset(clayton_config, seed=42)
        b = simulate_dataset(clayton_config, seed=42)
        np.testing.assert_array_equal(a.closure_time, b.closure_time)
        np.testing.assert_array_equal(a.cause, b.cause)

    def test_different_seed_different_data(self, clayton_config):
        a = simulate_dataset(clayton_config, seed=1)
        b = simulate_dataset(clayton_config, seed=2)
        assert not np.array_equal(a.closure_time, b.closure_time)

    def test_faster_risk_wins_more_often(self, clayton_config):
        """Rate 4 beats rate 2.5 in most units."""
        counts = simulate_dataset(clayton_config, seed=5).cause_counts()
        assert counts[1] > counts[2]

    def test_closure_time_distribution_independent_case(self):
        """Under near-independence min of exponentials has rate r1 + r2."""
        config = SimulationConfig(
            ClaytonCopula(1e-4), (Exponential(4.0), Exponential(2.5)), n=20000
        )
        data = simulate_dataset(config, seed=8)
        assert np.mean(data.closure_time) == pytest.approx(1.0 / 6.5, rel=0.03)
        assert np.mean(data.cause == 1) == pytest.approx(4.0 / 6.5, abs=0.015)
