"""Within-model samplers: random-walk Metropolis and binary Gibbs updates."""

import logging

import numpy as np

from ..graph import Model
from ..utils.exceptions import ConfigurationError
from ..utils.types import Control, NodeRef
from ._utils import (
    as_node_list,
    check_current_log_prob,
    check_proposal_log_prob,
    draw_log_uniform,
    finish_proposal,
    metropolis_accept,
    resolve_scalar,
    resolve_single,
    resolve_updatable,
    validate_control,
    validate_scale,
)

logger = logging.getLogger(__name__)


class _AcceptanceCounter:
    """Mixin holding the proposal and acceptance counters of a sampler."""

    n_proposed: int = 0
    n_accepted: int = 0

    def _count(self, accept: bool) -> None:
        self.n_proposed += 1
        self.n_accepted += int(accept)

    @property
    def acceptance_rate(self) -> float:
        """Fraction of accepted proposals since the last reset, ``nan`` before any."""
        if self.n_proposed == 0:
            return float("nan")
        return self.n_accepted / self.n_proposed

    def reset(self) -> None:
        """Zero the proposal and acceptance counters."""
        self.n_proposed = 0
        self.n_accepted = 0


class RandomWalkSampler(_AcceptanceCounter):
    """Random-walk Metropolis sampler for one node.

    Proposes ``x' = x + scale * eps`` with ``eps`` standard normal (element-wise
    for vector nodes) and accepts with the Metropolis ratio of the target and
    its dependencies. The scale is fixed for the whole run.

    Parameters
    ----------
    model : Model
        Model the sampler is built against.
    target : str or int
        The node to update. Must be stochastic and not data.
    control : dict, optional
        ``scale`` (float > 0, default 1.0): standard deviation of the proposal.

    Raises
    ------
    ConfigurationError
        For an unknown or non-updatable target or invalid control options.
    """

    name = "RW"
    DEFAULT_CONTROL: Control = {"scale": 1.0}

    def __init__(self, model: Model, target: NodeRef, control: Control | None = None):
        control = validate_control(control, self.DEFAULT_CONTROL, self.name)
        self._target = resolve_updatable(model, resolve_single(target, self.name), self.name)
        self.target = (model.name(self._target),)
        self.scale = validate_scale(control["scale"], self.name)
        self.calc_nodes = model.get_dependencies(self._target)

    def __repr__(self):
        """String representation of the sampler."""
        return f"RandomWalkSampler(target={self.target[0]!r}, scale={self.scale})"

    def run(self, model: Model, rng: np.random.Generator) -> None:
        """Perform one random-walk Metropolis update of the target."""
        current_log_prob = model.get_log_prob(self.calc_nodes)
        check_current_log_prob(current_log_prob, self.target)

        model.set(self._target, rng.normal(model.get(self._target), self.scale))
        proposal_log_prob = model.calculate(self.calc_nodes)
        check_proposal_log_prob(proposal_log_prob, self.target)

        accept = metropolis_accept(
            proposal_log_prob - current_log_prob, draw_log_uniform(rng)
        )
        finish_proposal(model, accept, self.calc_nodes)
        self._count(accept)


class BlockRandomWalkSampler(_AcceptanceCounter):
    """Random-walk Metropolis sampler updating several nodes jointly.

    All elements of all target nodes are stacked into one vector and moved
    with a single multivariate normal proposal ``N(0, scale**2 * proposal_cov)``.

    Parameters
    ----------
    model : Model
        Model the sampler is built against.
    target : list of str or int
        Nodes to update jointly. Each must be stochastic and not data.
    control : dict, optional
        ``scale`` (float > 0, default 1.0) and ``proposal_cov`` (positive
        definite matrix of the stacked dimension, default identity).

    Raises
    ------
    ConfigurationError
        For non-updatable targets, invalid scale or a proposal covariance of
        the wrong shape or not positive definite.
    """

    name = "RW_block"
    DEFAULT_CONTROL: Control = {"scale": 1.0, "proposal_cov": None}

    def __init__(
        self, model: Model, target: NodeRef | list[NodeRef], control: Control | None = None
    ):
        control = validate_control(control, self.DEFAULT_CONTROL, self.name)
        self._targets = tuple(
            sorted({resolve_updatable(model, node, self.name) for node in as_node_list(target)})
        )
        if not self._targets:
            raise ConfigurationError(f"{self.name} sampler needs at least one target.")
        self.target = tuple(model.name(h) for h in self._targets)
        self.scale = validate_scale(control["scale"], self.name)

        self._shapes = [np.shape(model.get(h)) for h in self._targets]
        self._sizes = [int(np.prod(shape, dtype=int)) for shape in self._shapes]
        dim = sum(self._sizes)

        cov = np.eye(dim) if control["proposal_cov"] is None else np.asarray(
            control["proposal_cov"], dtype=float
        )
        if cov.shape != (dim, dim):
            raise ConfigurationError(
                f"proposal_cov of {self.name} sampler must have shape {(dim, dim)}, got {cov.shape}."
            )
        try:
            self._chol = self.scale * np.linalg.cholesky(cov)
        except np.linalg.LinAlgError:
            raise ConfigurationError(
                f"proposal_cov of {self.name} sampler is not positive definite."
            ) from None

        self.calc_nodes = model.get_dependencies(self._targets)

    def __repr__(self):
        """String representation of the sampler."""
        return f"BlockRandomWalkSampler(target={list(self.target)}, scale={self.scale})"

    def run(self, model: Model, rng: np.random.Generator) -> None:
        """Perform one joint random-walk Metropolis update of all targets."""
        current_log_prob = model.get_log_prob(self.calc_nodes)
        check_current_log_prob(current_log_prob, self.target)

        current = np.concatenate([np.ravel(model.get(h)) for h in self._targets])
        proposal = current + self._chol @ rng.standard_normal(current.size)
        start = 0
        for h, shape, size in zip(self._targets, self._shapes, self._sizes):
            model.set(h, proposal[start : start + size].reshape(shape))
            start += size
        proposal_log_prob = model.calculate(self.calc_nodes)
        check_proposal_log_prob(proposal_log_prob, self.target)

        accept = metropolis_accept(
            proposal_log_prob - current_log_prob, draw_log_uniform(rng)
        )
        finish_proposal(model, accept, self.calc_nodes)
        self._count(accept)


class BinarySampler:
    """Gibbs sampler for a scalar node taking the values 0 and 1.

    Both values are evaluated and the next value is drawn from the full
    conditional distribution. Used by default for indicator nodes.
    """

    name = "binary"
    DEFAULT_CONTROL: Control = {}

    def __init__(self, model: Model, target: NodeRef, control: Control | None = None):
        validate_control(control, self.DEFAULT_CONTROL, self.name)
        self._target = resolve_scalar(model, resolve_single(target, self.name), self.name)
        self.target = (model.name(self._target),)
        if model.get(self._target) not in (0.0, 1.0):
            raise ConfigurationError(
                f"Target {self.target[0]!r} of {self.name} sampler must be 0 or 1."
            )
        self.calc_nodes = model.get_dependencies(self._target)

    def __repr__(self):
        """String representation of the sampler."""
        return f"BinarySampler(target={self.target[0]!r})"

    def run(self, model: Model, rng: np.random.Generator) -> None:
        """Draw the target from its full conditional distribution."""
        current_log_prob = model.get_log_prob(self.calc_nodes)
        model.set(self._target, 1.0 - model.get(self._target))
        other_log_prob = model.calculate(self.calc_nodes)
        check_proposal_log_prob(other_log_prob, self.target)
        # one of the two values may lie outside the support, but not both
        if np.isnan(current_log_prob) or current_log_prob == other_log_prob == -np.inf:
            check_current_log_prob(float("nan"), self.target)

        # probability of switching to the other value
        log_switch = other_log_prob - np.logaddexp(current_log_prob, other_log_prob)
        accept = metropolis_accept(log_switch, draw_log_uniform(rng))
        finish_proposal(model, accept, self.calc_nodes)

    def reset(self) -> None:
        """The binary sampler carries no tuning state."""
        pass
