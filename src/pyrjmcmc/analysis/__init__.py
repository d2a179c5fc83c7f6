"""Analysis tools for reversible-jump MCMC results.

This module provides utilities for analysing the output of the MCMC driver,
including:

- Posterior inclusion probabilities of coefficients
- Frequencies of the visited sub-models
- Jump counts and jump rates per chain
- Posterior summaries with autocorrelation times and effective sample sizes

The analysis tools work on the sample arrays and column labels of
:class:`~pyrjmcmc.mcmc.MultiChainSamples` and :class:`~pyrjmcmc.mcmc.MCMCChain`.
"""

from .inclusion import (
    count_jumps,
    get_inclusion_indicators,
    get_inclusion_probabilities,
    get_jump_rate,
    get_model_frequencies,
)
from .summary import autocorrelation_time, summarize

__all__ = [
    "autocorrelation_time",
    "count_jumps",
    "get_inclusion_indicators",
    "get_inclusion_probabilities",
    "get_jump_rate",
    "get_model_frequencies",
    "summarize",
]
