"""Probabilistic graphical models for pyrjmcmc.

This module provides the model that samplers operate on:

- Node declarations: stochastic nodes with ``scipy.stats`` distributions and
  deterministic nodes computed from their parents
- The model itself, holding a live and a saved state of all node values and
  log-probabilities, with dependency lookup and (re)calculation
"""

from .model import Buffer, Model
from .nodes import Deterministic, Node, Stochastic

__all__ = [
    "Buffer",
    "Deterministic",
    "Model",
    "Node",
    "Stochastic",
]
