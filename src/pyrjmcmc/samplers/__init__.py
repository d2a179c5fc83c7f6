"""Sampling algorithms for pyrjmcmc.

This module provides the samplers that an MCMC configuration runs in order:

- Reversible-jump samplers: toggle a coefficient in and out of the model,
  either by comparison with a fixed value or through an indicator node
- Conditional sampler: run another sampler only while a gate is open
- Random-walk Metropolis samplers: single-node and block updates
- Binary Gibbs sampler: update 0/1 indicator nodes

Every sampler implements ``run(model, rng)`` and ``reset()``. Sampler types
can be referred to by name through the sampler-type registry.
"""

from .conditional import ConditionalSampler
from .random_walk import BinarySampler, BlockRandomWalkSampler, RandomWalkSampler
from .registry import SAMPLER_TYPES, build_sampler, register_sampler_type
from .reversible_jump import (
    IndicatorReversibleJumpSampler,
    ReversibleJumpSampler,
    log_prior_odds,
)

__all__ = [
    "BinarySampler",
    "BlockRandomWalkSampler",
    "ConditionalSampler",
    "IndicatorReversibleJumpSampler",
    "RandomWalkSampler",
    "ReversibleJumpSampler",
    "SAMPLER_TYPES",
    "build_sampler",
    "log_prior_odds",
    "register_sampler_type",
]
