"""Common functions for samplers."""

import numbers
from collections.abc import Mapping
from typing import Any

import numpy as np

from ..graph import Buffer, Model
from ..utils.exceptions import ConfigurationError, NumericalError
from ..utils.types import Control, NodeRef


def metropolis_accept(log_accept: float, log_u: float) -> bool:
    """Metropolis-Hastings decision for a log acceptance ratio and a log-uniform draw.

    Accepting iff ``log_u < log_accept`` accepts with probability
    ``min(1, exp(log_accept))`` when ``log_u = log(U)`` for ``U ~ Uniform(0, 1)``.
    """
    return bool(log_u < log_accept)


def draw_log_uniform(rng: np.random.Generator) -> float:
    """Draw ``log(U)`` for ``U ~ Uniform(0, 1)``."""
    return float(np.log(rng.uniform()))


def finish_proposal(model: Model, accept: bool, calc_nodes: tuple[int, ...]) -> None:
    """Store an accepted proposal in the saved state, or restore the saved state.

    After this call the live and the saved state agree on ``calc_nodes``, values
    and log-probabilities alike.
    """
    if accept:
        model.copy(Buffer.MODEL, Buffer.SAVED, calc_nodes, include_log_prob=True)
    else:
        model.copy(Buffer.SAVED, Buffer.MODEL, calc_nodes, include_log_prob=True)


def check_current_log_prob(log_prob: float, target: tuple[str, ...]) -> None:
    """Raise if the log-probability of the current state is not finite.

    A chain can only reach states with positive density, so a non-finite
    value here means the model or its initial values are broken.
    """
    if not np.isfinite(log_prob):
        raise NumericalError(
            f"Log-probability of the current state is {log_prob}", target=target
        )


def check_proposal_log_prob(log_prob: float, target: tuple[str, ...]) -> None:
    """Raise if the log-probability of a proposal is ``nan`` or ``+inf``.

    ``-inf`` is a valid value: the proposal lies outside the support and is
    rejected like any other.
    """
    if np.isnan(log_prob) or log_prob == np.inf:
        raise NumericalError(
            f"Log-probability of the proposed state is {log_prob}", target=target
        )


def validate_control(
    control: Mapping[str, Any] | None, defaults: Mapping[str, Any], sampler: str
) -> Control:
    """Merge control options into the defaults of a sampler type.

    Raises
    ------
    ConfigurationError
        If ``control`` contains options the sampler type does not know.
    """
    control = dict(control or {})
    unknown = sorted(set(control) - set(defaults))
    if unknown:
        raise ConfigurationError(
            f"Unknown control options for {sampler} sampler: {unknown}. "
            f"Valid options are {sorted(defaults)}."
        )
    return {**defaults, **control}


def validate_number(value: Any, option: str, sampler: str) -> float:
    """Convert a real-valued control option to a finite float."""
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise ConfigurationError(
            f"{option} of {sampler} sampler must be a number, got {value!r}."
        )
    number = float(value)
    if not np.isfinite(number):
        raise ConfigurationError(f"{option} of {sampler} sampler must be finite, got {value!r}.")
    return number


def validate_scale(scale: Any, sampler: str) -> float:
    """Check that a proposal scale is a positive finite number."""
    try:
        scale = float(scale)
    except (TypeError, ValueError):
        raise ConfigurationError(
            f"Scale of {sampler} sampler must be a number, got {scale!r}."
        ) from None
    if not np.isfinite(scale) or scale <= 0:
        raise ConfigurationError(f"Scale of {sampler} sampler must be > 0, got {scale}.")
    return scale


def as_node_list(target: NodeRef | list[NodeRef] | tuple[NodeRef, ...]) -> list[NodeRef]:
    """Normalize a single node reference or a sequence of them to a list."""
    if isinstance(target, (str, int, np.integer)):
        return [target]
    return list(target)


def resolve_updatable(model: Model, node: NodeRef, sampler: str) -> int:
    """Resolve a node that a sampler may update: stochastic and not data."""
    handle = model.handle(node)
    name = model.name(handle)
    if not model.is_stochastic(handle):
        raise ConfigurationError(
            f"Target {name!r} of {sampler} sampler is deterministic."
        )
    if model.is_data(handle):
        raise ConfigurationError(f"Target {name!r} of {sampler} sampler is data.")
    return handle


def resolve_scalar(model: Model, node: NodeRef, sampler: str) -> int:
    """Resolve an updatable node that must also be scalar-valued."""
    handle = resolve_updatable(model, node, sampler)
    if not model.is_scalar(handle):
        raise ConfigurationError(
            f"Target {model.name(handle)!r} of {sampler} sampler must be scalar."
        )
    return handle


def resolve_single(target: NodeRef | list[NodeRef], sampler: str) -> NodeRef:
    """Unwrap a target that must be exactly one node."""
    nodes = as_node_list(target)
    if len(nodes) != 1:
        raise ConfigurationError(
            f"{sampler} sampler takes exactly one target node, got {nodes}."
        )
    return nodes[0]
