"""Shared fixtures: small linear regression models with a selectable coefficient."""

import numpy as np
import pytest
from scipy import stats

from pyrjmcmc.graph import Deterministic, Model, Stochastic


def _linear_predictor(b1, b2, x1, x2):
    return b1 * x1 + b2 * x2


@pytest.fixture
def regression_data() -> dict[str, np.ndarray]:
    """Data of y = 1.0 * x1 + 0.3 * x2 + noise with unit noise variance."""
    rng = np.random.default_rng(42)
    n = 20
    x1 = rng.normal(size=n)
    x2 = rng.normal(size=n)
    y = 1.0 * x1 + 0.3 * x2 + rng.normal(size=n)
    return {"x1": x1, "x2": x2, "y": y}


@pytest.fixture
def regression_model(regression_data) -> Model:
    """Model with standard normal priors on b1 and b2, b2 starting excluded at 0."""
    b1 = Stochastic("b1", stats.norm, loc=0.0, scale=1.0, value=0.0)
    b2 = Stochastic("b2", stats.norm, loc=0.0, scale=1.0, value=0.0)
    mu = Deterministic(
        "mu",
        _linear_predictor,
        b1=b1,
        b2=b2,
        x1=regression_data["x1"],
        x2=regression_data["x2"],
    )
    y = Stochastic("y", stats.norm, loc=mu, scale=1.0, value=regression_data["y"], observed=True)
    return Model([y])


@pytest.fixture
def indicator_model(regression_data) -> Model:
    """As regression_model, plus an indicator z ~ Bernoulli(0.8) for b2, starting at 0."""
    b1 = Stochastic("b1", stats.norm, loc=0.0, scale=1.0, value=0.0)
    b2 = Stochastic("b2", stats.norm, loc=0.0, scale=1.0, value=0.0)
    z = Stochastic("z", stats.bernoulli, p=0.8, value=0)
    mu = Deterministic(
        "mu",
        _linear_predictor,
        b1=b1,
        b2=b2,
        x1=regression_data["x1"],
        x2=regression_data["x2"],
    )
    y = Stochastic("y", stats.norm, loc=mu, scale=1.0, value=regression_data["y"], observed=True)
    return Model([y, z])


@pytest.fixture
def exact_posterior(regression_data) -> dict[str, float]:
    """Exact inclusion probability of b2 under prior 0.8, and the moments of b2 given inclusion."""
    x1, x2, y = regression_data["x1"], regression_data["x2"], regression_data["y"]
    n = y.size
    X = np.column_stack([x1, x2])

    log_m1 = stats.multivariate_normal.logpdf(y, mean=np.zeros(n), cov=np.eye(n) + X @ X.T)
    log_m0 = stats.multivariate_normal.logpdf(
        y, mean=np.zeros(n), cov=np.eye(n) + np.outer(x1, x1)
    )
    prior = 0.8
    log_w1 = np.log(prior) + log_m1
    log_w0 = np.log(1 - prior) + log_m0
    inclusion = np.exp(log_w1 - np.logaddexp(log_w0, log_w1))

    cov = np.linalg.inv(X.T @ X + np.eye(2))
    mean = cov @ X.T @ y
    return {"inclusion": float(inclusion), "mean": float(mean[1]), "sd": float(np.sqrt(cov[1, 1]))}
