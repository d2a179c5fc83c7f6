"""Tests for the MCMC driver."""

import pickle
from concurrent.futures import ThreadPoolExecutor

import numpy as np
import pytest
from scipy import stats

from pyrjmcmc.graph import Deterministic, Model, Stochastic
from pyrjmcmc.mcmc import (
    MCMC,
    MCMCChain,
    MCMCConfiguration,
    MultiChainSamples,
    configure_mcmc,
    configure_reversible_jump,
    run_mcmc,
)
from pyrjmcmc.utils.exceptions import ConfigurationError, NumericalError


@pytest.fixture
def config(regression_model: Model) -> MCMCConfiguration:
    """Regression configuration with reversible jump on b2."""
    config = configure_mcmc(regression_model, monitors=["b1", "b2"])
    configure_reversible_jump(config, ["b2"], prior=0.5)
    return config


@pytest.mark.parametrize(
    "n_iter, n_burnin, thin, n_rows",
    [(50, 0, 1, 50), (50, 10, 1, 40), (50, 10, 3, 13), (10, 9, 2, 0), (7, 0, 7, 1)],
)
def test_output_shape(config: MCMCConfiguration, n_iter, n_burnin, thin, n_rows):
    """Test that (n_iter - n_burnin) // thin rows are recorded."""
    config.set_thin(thin)
    results = MCMC(config).run(n_iter, n_burnin=n_burnin, n_chains=2, seed=1)
    assert isinstance(results, MultiChainSamples)
    assert results.n_chains == 2
    assert results.columns == ["b1", "b2"]
    assert results.samples.shape == (2, n_rows, 2)
    assert results.flat().shape == (2 * n_rows, 2)


def test_second_monitor_group(config: MCMCConfiguration, regression_data):
    """Test the second monitor group with its own thinning."""
    config.add_monitors2("mu")
    config.set_thin2(7)
    results = run_mcmc(config, n_iter=40, n_burnin=5, seed=1)
    n = regression_data["y"].size
    assert results.columns2 == [f"mu[{i}]" for i in range(n)]
    assert results.samples2.shape == (1, 5, n)

    chain = results.chains[0]
    b1, b2 = chain.samples[6::7, 0], chain.samples[6::7, 1]
    expected = np.outer(b1, regression_data["x1"]) + np.outer(b2, regression_data["x2"])
    np.testing.assert_allclose(chain.samples2, expected)


def test_recorded_rows_match_iterations(config: MCMCConfiguration):
    """Test that thinning records the state after the right iterations."""
    full = run_mcmc(config, n_iter=30, n_burnin=6, seed=3).chains[0].samples
    config.set_thin(4)
    thinned = run_mcmc(config, n_iter=30, n_burnin=6, seed=3).chains[0].samples
    np.testing.assert_array_equal(thinned, full[3::4])


def test_reproducible(config: MCMCConfiguration):
    """Test that equal seeds give identical output and different seeds do not."""
    mcmc = MCMC(config)
    first = mcmc.run(200, n_chains=2, seed=61254557)
    second = mcmc.run(200, n_chains=2, seed=61254557)
    other = mcmc.run(200, n_chains=2, seed=1)
    np.testing.assert_array_equal(first.samples, second.samples)
    assert not np.array_equal(first.samples, other.samples)
    assert not np.array_equal(first.samples[0], first.samples[1])


def test_chain_pool_matches_serial(config: MCMCConfiguration):
    """Test that running chains in a pool gives the serial result."""
    serial = run_mcmc(config, n_iter=100, n_chains=3, seed=7)
    with ThreadPoolExecutor(max_workers=3) as pool:
        pooled = run_mcmc(config, n_iter=100, n_chains=3, seed=7, chain_pool=pool)
    np.testing.assert_array_equal(serial.samples, pooled.samples)


def test_model_and_configuration_untouched(config: MCMCConfiguration):
    """Test that runs work on copies of the model and the samplers."""
    values = config.model.values
    mcmc = MCMC(config)
    config.remove_samplers("b1")
    assert [s.name for s in mcmc.samplers] == ["RW", "RJ_fixed_prior", "conditional"]

    mcmc.run(100, seed=1)
    assert config.model.values["b1"] == values["b1"]
    assert config.model.values["b2"] == values["b2"]
    assert all(s.n_proposed == 0 for s in mcmc.samplers if hasattr(s, "n_proposed"))


def test_inits(config: MCMCConfiguration):
    """Test shared and per-chain initial values."""
    results = run_mcmc(config, n_iter=1, n_chains=2, seed=1, inits=[{"b1": 50.0}, {"b1": -50.0}])
    assert results.samples[0, 0, 0] > 40.0
    assert results.samples[1, 0, 0] < -40.0

    with pytest.raises(ConfigurationError, match="initial values"):
        run_mcmc(config, n_iter=1, n_chains=2, inits=[{"b1": 0.0}])
    with pytest.raises(ConfigurationError):
        run_mcmc(config, n_iter=1, inits={"b3": 0.0})


@pytest.mark.parametrize(
    "kwargs",
    [
        {"n_iter": 0},
        {"n_iter": 10, "n_burnin": 10},
        {"n_iter": 10, "n_burnin": -1},
        {"n_iter": 10, "n_chains": 0},
        {"n_iter": 10.0},
    ],
)
def test_invalid_run_arguments(config: MCMCConfiguration, kwargs):
    """Test that invalid iteration counts fail before running."""
    with pytest.raises(ConfigurationError):
        MCMC(config).run(**kwargs)


def test_acceptance_rates(config: MCMCConfiguration):
    """Test that acceptance rates are reported per chain and sampler."""
    results = run_mcmc(config, n_iter=200, n_chains=2, seed=1)
    rates = results.acceptance_rates
    assert rates.shape == (2, 3)
    assert np.all((rates[:, 0] > 0.0) & (rates[:, 0] < 1.0))
    assert np.all(np.isnan(rates[:, 1]))


def test_numerical_error_context():
    """Test that a non-finite log-probability stops the run with its location."""
    b = Stochastic("b", stats.norm, loc=0.0, scale=1.0, value=0.0)
    s = Deterministic("s", lambda b: 1.0 if b < 0.5 else np.nan, b=b)
    y = Stochastic("y", stats.norm, loc=b, scale=s, value=[0.1, 0.2], observed=True)
    config = configure_mcmc(Model([y]))

    with pytest.raises(NumericalError) as excinfo:
        run_mcmc(config, n_iter=1000, n_chains=2, seed=1)
    err = excinfo.value
    assert err.chain == 0
    assert err.target == ("b",)
    assert 1 <= err.iteration <= 1000
    assert f"iteration {err.iteration}" in str(err)


def test_numerical_error_pickles():
    """Test that the error context survives pickling, as needed by process pools."""
    err = NumericalError("bad", target=("b",), iteration=3, chain=1)
    restored = pickle.loads(pickle.dumps(err))
    assert (restored.target, restored.iteration, restored.chain) == (("b",), 3, 1)
    assert str(restored) == "bad (chain 1, iteration 3, sampler target ['b'])"


def test_chain_dataclass_checks():
    """Test the consistency checks of the chain output."""
    chain = MCMCChain(columns=["a", "b"], samples=np.zeros((4, 2)), n_iter=4)
    assert chain.n_rows == 4
    assert set(chain.as_dict()) == {"a", "b"}
    with pytest.raises(ValueError):
        chain.as_dict(group=3)
    with pytest.raises(ValueError):
        MCMCChain(columns=["a"], samples=np.zeros((4, 2)), n_iter=4)


def test_multichain_checks():
    """Test that chains must monitor the same columns."""
    a = MCMCChain(columns=["a"], samples=np.zeros((3, 1)), n_iter=3)
    b = MCMCChain(columns=["b"], samples=np.zeros((3, 1)), n_iter=3)
    with pytest.raises(ValueError):
        MultiChainSamples([a, b])
    with pytest.raises(TypeError):
        MultiChainSamples([a, "b"])
    assert MultiChainSamples().columns == []
