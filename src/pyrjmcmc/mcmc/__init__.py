"""MCMC configuration and driver for pyrjmcmc.

This module provides:

- The MCMC configuration: an ordered sampler registry with two monitor groups
  and their thinning intervals
- Helpers to build default configurations and to set up reversible-jump
  variable selection
- The MCMC driver running the configured samplers over one or several
  independent chains, and the containers holding their output
"""

from .configuration import MCMCConfiguration, configure_mcmc, configure_reversible_jump
from .engine import MCMC, MCMCChain, MultiChainSamples, run_mcmc

__all__ = [
    "MCMC",
    "MCMCChain",
    "MCMCConfiguration",
    "MultiChainSamples",
    "configure_mcmc",
    "configure_reversible_jump",
    "run_mcmc",
]
