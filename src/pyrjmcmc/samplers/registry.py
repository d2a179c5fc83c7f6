"""Registry of sampler types that can be added to an MCMC configuration by name."""

from collections.abc import Callable

from ..graph import Model
from ..utils.exceptions import ConfigurationError
from ..utils.types import Control, NodeRef, Sampler, SamplerFactory
from .random_walk import BinarySampler, BlockRandomWalkSampler, RandomWalkSampler
from .reversible_jump import IndicatorReversibleJumpSampler, ReversibleJumpSampler

SAMPLER_TYPES: dict[str, SamplerFactory] = {
    RandomWalkSampler.name: RandomWalkSampler,
    BlockRandomWalkSampler.name: BlockRandomWalkSampler,
    BinarySampler.name: BinarySampler,
    ReversibleJumpSampler.name: ReversibleJumpSampler,
    IndicatorReversibleJumpSampler.name: IndicatorReversibleJumpSampler,
}


def register_sampler_type(name: str, factory: SamplerFactory) -> None:
    """Register a custom sampler type under a name.

    Parameters
    ----------
    name : str
        Name to use as ``type`` in :meth:`MCMCConfiguration.add_sampler`.
    factory : SamplerFactory
        Callable ``factory(model, target, control) -> Sampler``, usually a
        sampler class.

    Raises
    ------
    ConfigurationError
        If the name is already taken or the factory is not callable.
    """
    if name in SAMPLER_TYPES:
        raise ConfigurationError(f"Sampler type {name!r} is already registered.")
    if not callable(factory):
        raise ConfigurationError(f"Factory for sampler type {name!r} is not callable.")
    SAMPLER_TYPES[name] = factory


def build_sampler(
    model: Model,
    target: NodeRef | list[NodeRef],
    type: str | SamplerFactory | Callable[..., Sampler] = "RW",
    control: Control | None = None,
) -> Sampler:
    """Build a sampler of a registered type, or from a factory, for a target.

    Raises
    ------
    ConfigurationError
        If the type name is unknown, or the factory rejects the target or
        control options.
    """
    if isinstance(type, str):
        try:
            factory = SAMPLER_TYPES[type]
        except KeyError:
            raise ConfigurationError(
                f"Unknown sampler type {type!r}. Registered types are {sorted(SAMPLER_TYPES)}."
            ) from None
    elif callable(type):
        factory = type
    else:
        raise ConfigurationError(f"Sampler type must be a name or a factory, got {type!r}.")
    return factory(model, target, control)
