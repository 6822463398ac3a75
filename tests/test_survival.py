"""
Tests for marginal survival models.

Tests cover:
- Distribution functions and their inverses
- Parameter validation
- Family registry and construction helpers
- Mapping copula uniforms to event times
"""

import pytest
import numpy as np

from crcopula import (
    Exponential,
    Gamma,
    InvalidParameter,
    LogNormal,
    MarginalFamily,
    Weibull,
    make_marginal,
    transform_margins,
)
from crcopula.survival import default_start


ALL_MODELS = [
    Exponential(rate=4.0),
    Weibull(shape=1.5, scale=0.3),
    Gamma(shape=2.0, rate=4.0),
    LogNormal(meanlog=-1.5, sdlog=0.6),
]


@pytest.mark.parametrize("model", ALL_MODELS, ids=lambda m: m.family.value)
class TestDistributionFunctions:
    """Consistency between cdf, pdf, survival, hazard and quantile."""

    def test_quantile_inverts_cdf(self, model):
        u = np.array([1e-6, 0.01, 0.25, 0.5, 0.75, 0.99, 1 - 1e-6])
        np.testing.assert_allclose(model.cdf(model.quantile(u)), u, rtol=1e-6, atol=1e-12)

    def test_survival_complements_cdf(self, model):
        t = np.linspace(0.01, 2.0, 30)
        np.testing.assert_allclose(model.survival(t) + model.cdf(t), 1.0, atol=1e-12)

    def test_logpdf_matches_pdf(self, model):
        t = np.linspace(0.05, 1.0, 20)
        np.testing.assert_allclose(np.exp(model.logpdf(t)), model.pdf(t), rtol=1e-10)

    def test_hazard_is_density_over_survival(self, model):
        t = np.linspace(0.05, 1.0, 20)
        np.testing.assert_allclose(model.hazard(t), model.pdf(t) / model.survival(t), rtol=1e-8)

    def test_sample_mean(self, model):
        x = model.sample(20000, np.random.default_rng(11))
        assert np.all(x > 0)
        assert np.mean(x) == pytest.approx(model.mean(), rel=0.05)

    def test_cdf_is_zero_at_origin(self, model):
        assert float(model.cdf(0.0)) == pytest.approx(0.0, abs=1e-12)


class TestSpecificModels:
    """Family-specific behaviour."""

    def test_exponential_is_unit_shape_weibull(self):
        t = np.linspace(0.0, 3.0, 15)
        np.testing.assert_allclose(
            Exponential(rate=2.0).cdf(t), Weibull(shape=1.0, scale=0.5).cdf(t), rtol=1e-12
        )

    def test_exponential_constant_hazard(self):
        np.testing.assert_allclose(Exponential(rate=2.5).hazard([0.1, 1.0, 5.0]), 2.5)

    def test_weibull_increasing_hazard(self):
        h = Weibull(shape=2.0, scale=1.0).hazard(np.array([0.5, 1.0, 2.0]))
        assert np.all(np.diff(h) > 0)

    def test_gamma_uses_rate(self):
        assert Gamma(shape=2.0, rate=4.0).mean() == pytest.approx(0.5)

    def test_lognormal_median(self):
        m = LogNormal(meanlog=0.3, sdlog=1.2)
        assert float(m.quantile(0.5)) == pytest.approx(np.exp(0.3))

    def test_params_vector_order(self):
        m = Gamma(shape=2.0, rate=4.0)
        np.testing.assert_array_equal(m.params, [2.0, 4.0])
        assert m.as_dict() == {'shape': 2.0, 'rate': 4.0}
        assert Exponential(rate=3.0).as_dict() == {'rate': 3.0}

    def test_equality_and_hash(self):
        assert Gamma(2.0, 4.0) == Gamma(2.0, 4.0)
        assert Gamma(2.0, 4.0) != Gamma(2.0, 5.0)
        assert len({Exponential(1.0), Exponential(1.0)}) == 1


class TestValidation:
    """Parameters outside the domain raise on construction."""

    @pytest.mark.parametrize("factory", [
        lambda: Exponential(rate=0.0),
        lambda: Exponential(rate=-1.0),
        lambda: Weibull(shape=float('nan'), scale=1.0),
        lambda: Weibull(shape=1.0, scale=0.0),
        lambda: Gamma(shape=-2.0, rate=1.0),
        lambda: Gamma(shape=2.0, rate=float('inf')),
        lambda: LogNormal(meanlog=0.0, sdlog=0.0),
        lambda: LogNormal(meanlog=float('nan'), sdlog=1.0),
    ])
    def test_rejects_invalid(self, factory):
        with pytest.raises(InvalidParameter):
            factory()

    def test_negative_meanlog_allowed(self):
        assert LogNormal(meanlog=-3.0, sdlog=1.0).meanlog == -3.0

    def test_error_names_parameter(self):
        with pytest.raises(InvalidParameter) as info:
            Gamma(shape=2.0, rate=-4.0)
        assert info.value.name == 'rate'


class TestFamilyRegistry:
    """MarginalFamily parsing and construction helpers."""

    @pytest.mark.parametrize("name, expected", [
        ('exponential', MarginalFamily.EXPONENTIAL),
        ('exp', MarginalFamily.EXPONENTIAL),
        ('Weibull', MarginalFamily.WEIBULL),
        ('weibull_min', MarginalFamily.WEIBULL),
        ('gamma', MarginalFamily.GAMMA),
        ('log-normal', MarginalFamily.LOGNORMAL),
        ('lnorm', MarginalFamily.LOGNORMAL),
    ])
    def test_parse(self, name, expected):
        assert MarginalFamily.parse(name) is expected

    def test_parse_unknown(self):
        with pytest.raises(ValueError, match="Unknown marginal family"):
            MarginalFamily.parse('pareto')

    def test_param_counts(self):
        assert MarginalFamily.EXPONENTIAL.n_params == 1
        assert MarginalFamily.GAMMA.param_names == ('shape', 'rate')
        assert MarginalFamily.LOGNORMAL.param_names == ('meanlog', 'sdlog')

    def test_make_marginal(self):
        m = make_marginal('gamma', shape=2.0, rate=4.0)
        assert m == Gamma(shape=2.0, rate=4.0)

    def test_make_marginal_rejects_wrong_names(self):
        with pytest.raises(ValueError, match="expects parameters"):
            make_marginal('gamma', shape=2.0, scale=0.25)

    def test_from_vector(self):
        m = MarginalFamily.WEIBULL.from_vector([1.5, 2.0])
        assert m == Weibull(shape=1.5, scale=2.0)

    def test_from_vector_wrong_length(self):
        with pytest.raises(ValueError):
            MarginalFamily.EXPONENTIAL.from_vector([1.0, 2.0])

    @pytest.mark.parametrize("family", list(MarginalFamily))
    def test_default_start_matches_mean(self, family):
        model = family.from_vector(default_start(family, 0.4))
        assert model.mean() == pytest.approx(0.4)


class TestTransformMargins:
    """Uniforms to latent event times."""

    def test_columns_use_their_own_marginal(self):
        u = np.array([[0.5, 0.5], [0.9, 0.1]])
        t1, t2 = transform_margins(u, [Exponential(1.0), Exponential(2.0)])
        np.testing.assert_allclose(t1, -np.log1p(-u[:, 0]))
        np.testing.assert_allclose(t2, -np.log1p(-u[:, 1]) / 2.0)

    @pytest.mark.parametrize("model", ALL_MODELS, ids=lambda m: m.family.value)
    def test_boundary_uniforms_give_finite_times(self, model):
        u = np.array([[0.0, 1.0], [1.0, 0.0]])
        t1, t2 = transform_margins(u, [model, model])
        assert np.all(np.isfinite(t1))
        assert np.all(np.isfinite(t2))
        assert np.all(t1 > 0)

    def test_column_count_must_match(self):
        with pytest.raises(ValueError, match="uniform columns"):
            transform_margins(np.full((3, 3), 0.5), [Exponential(1.0), Exponential(1.0)])
