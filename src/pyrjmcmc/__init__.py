"""pyrjmcmc: reversible-jump and conditional samplers for graphical models.

pyrjmcmc runs Markov chain Monte Carlo on directed probabilistic graphical
models with a configurable, ordered set of samplers. The package provides:

- Models built from stochastic and deterministic nodes
- Reversible-jump samplers for variable selection, with the inclusion prior
  given either as a constant or as an indicator node in the model
- Conditional samplers that only update a coefficient while it is included
- Random-walk Metropolis and binary Gibbs samplers
- An MCMC configuration with monitors and thinning, and a driver for several
  independent chains
- Analysis tools for inclusion probabilities and posterior summaries

Examples
--------
Variable selection for the second coefficient of a linear regression:

    >>> from scipy import stats
    >>> from pyrjmcmc.graph import Deterministic, Model, Stochastic
    >>> from pyrjmcmc.mcmc import configure_mcmc, configure_reversible_jump, run_mcmc
    >>> b1 = Stochastic("b1", stats.norm, loc=0.0, scale=1.0, value=0.0)
    >>> b2 = Stochastic("b2", stats.norm, loc=0.0, scale=1.0, value=0.0)
    >>> mu = Deterministic("mu", lambda b1, b2, x1, x2: b1 * x1 + b2 * x2,
    ...                    b1=b1, b2=b2, x1=x1, x2=x2)
    >>> y = Stochastic("y", stats.norm, loc=mu, scale=1.0, value=y_obs, observed=True)
    >>> config = configure_mcmc(Model([y]))
    >>> configure_reversible_jump(config, ["b2"], prior=0.8)
    >>> results = run_mcmc(config, n_iter=10_000, n_burnin=1_000, seed=1)
"""

from . import analysis, graph, mcmc, samplers
from .utils.exceptions import ConfigurationError, NumericalError, PyRJMCMCError

__version__ = "0.1.0"

__all__ = [
    "ConfigurationError",
    "NumericalError",
    "PyRJMCMCError",
    "analysis",
    "graph",
    "mcmc",
    "samplers",
]
