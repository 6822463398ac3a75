"""
Tests for the nonparametric bootstrap.

Tests cover:
- Replicate bookkeeping (successful + failed = requested)
- Reproducibility from a master seed
- Dropping of failed replicates
- Shrinking spread with larger resamples
- Summary statistics
"""

import pytest
import numpy as np

import crcopula.bootstrap as bootstrap_module
from crcopula import (
    BootstrapSample,
    NumericalDegeneracy,
    run_bootstrap,
    simulate_dataset,
)
from crcopula.scenarios import clayton_exponential_scenario


FAMILIES = ('clayton', ['exponential', 'exponential'])
START = [2.0, 4.0, 2.5]


@pytest.fixture(scope='module')
def dataset():
    scenario = clayton_exponential_scenario(n=5000)
    return simulate_dataset(scenario.config, seed=6)


@pytest.fixture(scope='module')
def small_bootstrap(dataset):
    return run_bootstrap(dataset, *FAMILIES, start=START, n_replicates=12, resample_size=1000, seed=3)


class TestRunBootstrap:
    """Replicate generation and bookkeeping."""

    def test_counts_add_up(self, small_bootstrap):
        assert small_bootstrap.n_requested == 12
        assert small_bootstrap.n_successful + small_bootstrap.n_failed == 12
        assert small_bootstrap.estimates.shape == (small_bootstrap.n_successful, 3)
        assert small_bootstrap.names == ['theta', 'rate_1', 'rate_2']

    def test_most_replicates_converge(self, small_bootstrap):
        assert small_bootstrap.success_rate > 0.8

    def test_same_seed_same_estimates(self, dataset, small_bootstrap):
        again = run_bootstrap(dataset, *FAMILIES, start=START, n_replicates=12, resample_size=1000, seed=3)
        np.testing.assert_array_equal(again.estimates, small_bootstrap.estimates)

    def test_different_seed_different_estimates(self, dataset, small_bootstrap):
        other = run_bootstrap(dataset, *FAMILIES, start=START, n_replicates=12, resample_size=1000, seed=4)
        assert not np.array_equal(other.estimates, small_bootstrap.estimates)

    def test_accepts_seed_sequence(self, dataset):
        seq = np.random.SeedSequence(3)
        result = run_bootstrap(dataset, *FAMILIES, start=START, n_replicates=2, resample_size=500, seed=seq)
        assert result.n_requested == 2

    def test_t0_is_start(self, small_bootstrap):
        np.testing.assert_array_equal(small_bootstrap.t0, START)

    def test_dataset_untouched(self, dataset):
        before = dataset.closure_time.copy()
        run_bootstrap(dataset, *FAMILIES, start=START, n_replicates=2, resample_size=200, seed=0)
        np.testing.assert_array_equal(dataset.closure_time, before)

    def test_failed_replicates_are_dropped(self, dataset, monkeypatch):
        original = bootstrap_module.fit_mle
        calls = []

        def flaky(*args, **kwargs):
            calls.append(1)
            if len(calls) % 2 == 0:
                raise NumericalDegeneracy("every second replicate", n_bad=1)
            return original(*args, **kwargs)

        monkeypatch.setattr(bootstrap_module, 'fit_mle', flaky)
        result = run_bootstrap(dataset, *FAMILIES, start=START, n_replicates=6, resample_size=500, seed=1)
        assert len(calls) == 6
        assert set(result.failures) >= {1, 3, 5}
        assert result.n_successful <= 3
        assert result.n_successful + result.n_failed == 6

    def test_all_replicates_failing(self, dataset, monkeypatch):
        def broken(*args, **kwargs):
            raise NumericalDegeneracy("degenerate")

        monkeypatch.setattr(bootstrap_module, 'fit_mle', broken)
        result = run_bootstrap(dataset, *FAMILIES, start=START, n_replicates=4, resample_size=100, seed=1)
        assert result.n_successful == 0
        assert result.n_failed == 4
        assert result.estimates.shape == (0, 3)
        with pytest.raises(ValueError, match="No bootstrap replicate converged"):
            result.summary()

    def test_spread_shrinks_with_resample_size(self, dataset):
        small = run_bootstrap(dataset, *FAMILIES, start=START, n_replicates=30, resample_size=500, seed=10)
        large = run_bootstrap(dataset, *FAMILIES, start=START, n_replicates=30, resample_size=5000, seed=10)
        assert small.std()['theta'] > large.std()['theta']

    def test_resample_larger_than_dataset(self, dataset):
        result = run_bootstrap(dataset, *FAMILIES, start=START, n_replicates=2, resample_size=8000, seed=2)
        assert result.resample_size == 8000
        assert result.n_successful + result.n_failed == 2

    @pytest.mark.parametrize("kwargs, match", [
        ({'n_replicates': 0}, "n_replicates"),
        ({'resample_size': 0}, "resample_size"),
        ({'start': [1.0, 2.0]}, "start must have 3 values"),
    ])
    def test_validation(self, dataset, kwargs, match):
        args = {'start': START, 'n_replicates': 2, 'resample_size': 100}
        args.update(kwargs)
        with pytest.raises(ValueError, match=match):
            run_bootstrap(dataset, *FAMILIES, **args)


class TestBootstrapSample:
    """Summary statistics over surviving replicates."""

    @pytest.fixture
    def sample(self):
        estimates = np.array([
            [1.0, 4.0],
            [2.0, 5.0],
            [3.0, 6.0],
            [4.0, 7.0],
        ])
        return BootstrapSample(
            estimates=estimates,
            names=['theta', 'rate_1'],
            n_requested=5,
            resample_size=100,
            t0=np.array([2.0, 5.0]),
            failures={4: 'did not converge'},
        )

    def test_counts(self, sample):
        assert sample.n_successful == 4
        assert sample.n_failed == 1
        assert sample.success_rate == pytest.approx(0.8)

    def test_mean_std_bias(self, sample):
        assert sample.mean() == pytest.approx({'theta': 2.5, 'rate_1': 5.5})
        assert sample.std()['theta'] == pytest.approx(np.std([1, 2, 3, 4], ddof=1))
        assert sample.bias()['theta'] == pytest.approx(0.5)

    def test_std_with_one_replicate(self):
        single = BootstrapSample(np.array([[1.0]]), ['theta'], n_requested=1, resample_size=10)
        assert np.isnan(single.std()['theta'])

    def test_bias_needs_t0(self):
        no_t0 = BootstrapSample(np.array([[1.0], [2.0]]), ['theta'], n_requested=2, resample_size=10)
        with pytest.raises(ValueError, match="t0"):
            no_t0.bias()

    def test_summary(self, sample):
        summary = sample.summary()
        assert list(summary.columns) == ['mean', 'std', 'q2.5', 'median', 'q97.5']
        assert list(summary.index) == ['theta', 'rate_1']
        assert summary.loc['theta', 'median'] == pytest.approx(2.5)

    def test_quantiles(self, sample):
        q = sample.quantiles([0.5])
        assert list(q.columns) == ['q0.5']
        assert q.loc['rate_1', 'q0.5'] == pytest.approx(5.5)

    def test_percentile_interval(self, sample):
        lo, hi = sample.percentile_interval(0.5)['theta']
        assert lo < 2.5 < hi

    def test_percentile_interval_level(self, sample):
        with pytest.raises(ValueError):
            sample.percentile_interval(1.5)

    def test_to_dataframe(self, sample):
        df = sample.to_dataframe()
        assert df.shape == (4, 2)
        assert list(df.columns) == ['theta', 'rate_1']
