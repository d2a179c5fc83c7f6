"""Tests for the reversible-jump samplers."""

import numpy as np
import pytest
from scipy import stats

from pyrjmcmc.analysis import get_inclusion_probabilities
from pyrjmcmc.graph import Buffer, Model, Stochastic
from pyrjmcmc.mcmc import configure_mcmc, configure_reversible_jump, run_mcmc
from pyrjmcmc.samplers import (
    IndicatorReversibleJumpSampler,
    ReversibleJumpSampler,
    log_prior_odds,
)
from pyrjmcmc.samplers._utils import finish_proposal
from pyrjmcmc.utils.exceptions import ConfigurationError


def test_log_prior_odds():
    """Test the log prior odds of an inclusion probability."""
    assert log_prior_odds(0.5) == pytest.approx(0.0)
    assert log_prior_odds(0.8) == pytest.approx(np.log(4.0))


def test_defaults(regression_model: Model):
    """Test default control values and the dependency sets."""
    sampler = ReversibleJumpSampler(regression_model, "b2", {"prior": 0.5})
    assert sampler.target == ("b2",)
    assert sampler.fixed_value == 0.0
    assert sampler.mean == 0.0
    assert sampler.scale == 1.0
    assert sampler.calc_nodes == regression_model.handles(["b2", "mu", "y"])
    assert sampler.calc_nodes_reduced == regression_model.handles(["mu", "y"])

    shifted = ReversibleJumpSampler(
        regression_model, "b2", {"prior": 0.5, "fixed_value": 1.0}
    )
    assert shifted.mean == 1.0


@pytest.mark.parametrize(
    "control",
    [
        {},
        {"prior": 0.5, "prior_in_model": True},
        {"prior": 0.0},
        {"prior": 1.0},
        {"prior": 0.5, "scale": 0.0},
        {"prior": 0.5, "scale": -1.0},
        {"prior": 0.5, "fixed_value": np.inf},
        {"prior": 0.5, "proposal_scale": 1.0},
        {"prior": "0.5"},
        {"prior": [0.5]},
        {"prior": 0.5, "mean": "x"},
        {"prior": 0.5, "fixed_value": "zero"},
    ],
)
def test_invalid_control(regression_model: Model, control):
    """Test that invalid control options raise a ConfigurationError."""
    with pytest.raises(ConfigurationError):
        ReversibleJumpSampler(regression_model, "b2", control)


@pytest.mark.parametrize("target", ["mu", "y", "b3", ["b1", "b2"]])
def test_invalid_target(regression_model: Model, target):
    """Test that deterministic, data, unknown and multiple targets are rejected."""
    with pytest.raises(ConfigurationError):
        ReversibleJumpSampler(regression_model, target, {"prior": 0.5})


def test_vector_target_rejected():
    """Test that a vector coefficient cannot jump."""
    beta = Stochastic("beta", stats.norm, loc=0.0, scale=1.0, value=[0.0, 0.0])
    with pytest.raises(ConfigurationError, match="scalar"):
        ReversibleJumpSampler(Model([beta]), "beta", {"prior": 0.5})


def test_prior_in_model(regression_model: Model):
    """Test that declaring the prior as part of the model drops the odds term."""
    sampler = ReversibleJumpSampler(regression_model, "b2", {"prior_in_model": True})
    assert sampler.log_prior_odds == 0.0


def test_inclusion_ratio(regression_model: Model, regression_data):
    """Test the log acceptance ratio of an inclusion against a direct computation."""
    x2, y = regression_data["x2"], regression_data["y"]
    sampler = ReversibleJumpSampler(regression_model, "b2", {"prior": 0.8, "scale": 0.5})

    log_accept = sampler._propose_inclusion(regression_model, 0.7)

    expected = (
        stats.norm.logpdf(y, 0.7 * x2).sum()
        + stats.norm.logpdf(0.7)
        - stats.norm.logpdf(y, 0.0).sum()
        + np.log(0.8 / 0.2)
        - stats.norm.logpdf(0.7, 0.0, 0.5)
    )
    assert log_accept == pytest.approx(expected)


def test_moves_are_inverse(regression_model: Model):
    """Test that the ratios of an inclusion and the reverse exclusion cancel."""
    model = regression_model
    sampler = ReversibleJumpSampler(model, "b2", {"prior": 0.3, "mean": 0.2, "scale": 0.5})

    log_in = sampler._propose_inclusion(model, 0.7)
    finish_proposal(model, True, sampler.calc_nodes)
    log_out = sampler._propose_exclusion(model, 0.7)

    assert log_in + log_out == pytest.approx(0.0, abs=1e-10)


def test_indicator_moves_are_inverse(indicator_model: Model):
    """Test the same for the indicator sampler, where the odds come from the model."""
    model = indicator_model
    sampler = IndicatorReversibleJumpSampler(model, "z", {"target_node": "b2", "scale": 0.5})

    log_in = sampler._propose_inclusion(model, -0.4)
    assert model.get("z") == 1.0
    finish_proposal(model, True, sampler.calc_nodes)
    log_out = sampler._propose_exclusion(model)
    assert model.get("z") == 0.0
    assert model.get("b2") == 0.0

    assert log_in + log_out == pytest.approx(0.0, abs=1e-10)


def test_indicator_matches_fixed_prior(regression_model: Model, indicator_model: Model):
    """Test that both prior encodings give the same inclusion ratio."""
    fixed = ReversibleJumpSampler(regression_model, "b2", {"prior": 0.8})
    indicator = IndicatorReversibleJumpSampler(indicator_model, "z", {"target_node": "b2"})

    assert fixed._propose_inclusion(regression_model, 0.4) == pytest.approx(
        indicator._propose_inclusion(indicator_model, 0.4)
    )


def test_rejection_restores_state(regression_model: Model):
    """Test that a rejected move leaves the saved state untouched and restores the live state."""
    model = regression_model
    sampler = ReversibleJumpSampler(model, "b2", {"prior": 0.5})
    values = model.values
    log_probs = model.cached_log_probs()

    sampler._propose_inclusion(model, 1.5)
    assert model.get("b2") == 1.5
    finish_proposal(model, False, sampler.calc_nodes)

    assert model.get("b2") == 0.0
    np.testing.assert_array_equal(model.get("mu"), values["mu"])
    np.testing.assert_array_equal(model.cached_log_probs(), log_probs)
    np.testing.assert_array_equal(model.cached_log_probs(Buffer.SAVED), log_probs)


def test_proposal_outside_support_is_rejected():
    """Test that a proposal with zero density is a rejection, not an error."""
    b = Stochastic("b", stats.uniform, loc=-1.0, scale=3.0, value=0.0)
    y = Stochastic("y", stats.norm, loc=b, scale=1.0, value=[0.5, 1.0], observed=True)
    model = Model([y])
    sampler = ReversibleJumpSampler(model, "b", {"prior": 0.5, "mean": -10.0, "scale": 0.1})

    rng = np.random.default_rng(42)
    for _ in range(20):
        sampler.run(model, rng)
    assert model.get("b") == 0.0
    assert np.isfinite(model.get_log_prob(sampler.calc_nodes_reduced))


def test_run_keeps_states_in_agreement(regression_model: Model):
    """Test that live and saved state agree after every run."""
    model = regression_model
    sampler = ReversibleJumpSampler(model, "b2", {"prior": 0.5, "scale": 0.3})
    rng = np.random.default_rng(42)
    visited = set()
    for _ in range(200):
        sampler.run(model, rng)
        visited.add(model.get("b2") != 0.0)
        assert model.get("b2") == model.get("b2", Buffer.SAVED)
        np.testing.assert_array_equal(model.get("mu"), model.get("mu", Buffer.SAVED))
        np.testing.assert_array_equal(
            model.cached_log_probs(), model.cached_log_probs(Buffer.SAVED)
        )
    assert visited == {True, False}


def test_indicator_control(indicator_model: Model):
    """Test construction errors of the indicator sampler."""
    with pytest.raises(ConfigurationError, match="target_node"):
        IndicatorReversibleJumpSampler(indicator_model, "z", {})
    with pytest.raises(ConfigurationError, match="different"):
        IndicatorReversibleJumpSampler(indicator_model, "z", {"target_node": "z"})
    with pytest.raises(ConfigurationError):
        IndicatorReversibleJumpSampler(indicator_model, "z", {"target_node": "b2", "prior": 0.5})

    indicator_model.set_values({"b1": 0.5})
    with pytest.raises(ConfigurationError, match="0 or 1"):
        IndicatorReversibleJumpSampler(indicator_model, "b1", {"target_node": "b2"})


def test_indicator_state_must_be_consistent(indicator_model: Model):
    """Test that an excluded indicator needs its coefficient at the fixed value."""
    indicator_model.set_values({"b2": 0.4})
    with pytest.raises(ConfigurationError, match="fixed_value"):
        IndicatorReversibleJumpSampler(indicator_model, "z", {"target_node": "b2"})

    sampler = IndicatorReversibleJumpSampler(
        indicator_model, "z", {"target_node": "b2", "fixed_value": 0.4}
    )
    assert sampler.fixed_value == 0.4

    indicator_model.set_values({"z": 1})
    IndicatorReversibleJumpSampler(indicator_model, "z", {"target_node": "b2"})


def test_fixed_prior_posterior(regression_model: Model, exact_posterior):
    """Test the inclusion probability and conditional moments against the exact posterior."""
    config = configure_mcmc(regression_model, monitors=["b1", "b2"])
    configure_reversible_jump(config, ["b2"], prior=0.8, control={"scale": 0.5})

    results = run_mcmc(config, n_iter=10_000, n_burnin=1_000, n_chains=2, seed=61254557)

    p = get_inclusion_probabilities(results.samples, results.columns, ["b2"])["b2"]
    assert p == pytest.approx(exact_posterior["inclusion"], abs=0.07)

    b2 = results.flat()[:, 1]
    included = b2[b2 != 0.0]
    assert included.mean() == pytest.approx(exact_posterior["mean"], abs=0.05)
    assert included.std() == pytest.approx(exact_posterior["sd"], abs=0.05)


def test_indicator_posterior(indicator_model: Model, exact_posterior):
    """Test that the indicator encoding targets the same posterior."""
    config = configure_mcmc(indicator_model, monitors=["b2", "z"])
    configure_reversible_jump(config, ["b2"], indicators=["z"], control={"scale": 0.5})

    results = run_mcmc(config, n_iter=10_000, n_burnin=1_000, n_chains=2, seed=61254557)

    samples = results.flat()
    assert np.all((samples[:, 1] == 1.0) == (samples[:, 0] != 0.0))
    assert samples[:, 1].mean() == pytest.approx(exact_posterior["inclusion"], abs=0.07)
    included = samples[samples[:, 1] == 1.0, 0]
    assert included.mean() == pytest.approx(exact_posterior["mean"], abs=0.05)
