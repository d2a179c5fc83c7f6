"""Custom types for pyrjmcmc."""

from typing import TYPE_CHECKING, Annotated, Any, Protocol, TypeAlias

import numpy as np
import numpy.typing as npt

if TYPE_CHECKING:
    from ..graph.model import Model

# These types are not actually supported by type checkers, so this is more for documentation purposes.
# Current numpy type annotations only specify the dtype, not the shape.
IntArray: TypeAlias = npt.NDArray[np.integer]
FloatArray: TypeAlias = npt.NDArray[np.floating]
SampleArray: TypeAlias = Annotated[FloatArray, "(n_rows, n_columns)"]
MultiChainSampleArray: TypeAlias = Annotated[FloatArray, "(n_chains, n_rows, n_columns)"]

NodeRef: TypeAlias = str | int
"""A node name or an integer handle already resolved by a model."""

Control: TypeAlias = dict[str, Any]
"""Sampler control options, validated by the sampler at construction."""


class Sampler(Protocol):
    """Protocol for MCMC samplers.

    A sampler updates its target nodes of a model in place. It is constructed
    once against a model, resolving node names to handles and computing the
    dependency sets it needs, and can then be run on that model or on any deep
    copy of it.

    Every sampler must leave the live and the saved state of the model in
    agreement for all nodes it touched when `run` returns.
    """

    name: str
    """Name of the sampler type, e.g. ``"RW"`` or ``"RJ_fixed_prior"``."""

    target: tuple[str, ...]
    """Names of the nodes updated by the sampler."""

    def run(self, model: "Model", rng: np.random.Generator) -> None:
        """Perform one update of the target nodes.

        Parameters
        ----------
        model : Model
            Model to update in place.
        rng : numpy.random.Generator
            Random number stream owned by the running chain.
        """
        ...

    def reset(self) -> None:
        """Reset any mutable tuning state, e.g. acceptance counters."""
        ...


class SamplerFactory(Protocol):
    """Protocol for callables that build a sampler for a target.

    All sampler classes of :mod:`pyrjmcmc.samplers` satisfy this protocol.
    """

    def __call__(
        self, model: "Model", target: NodeRef | list[NodeRef], control: Control | None
    ) -> Sampler:
        """Build a sampler for ``target`` in ``model``."""
        ...


class MapPool(Protocol):
    """Protocol for pools used to run chains in parallel.

    Anything with a ``map`` method compatible with the built-in ``map`` works,
    e.g. ``concurrent.futures`` executors, ``multiprocessing`` pools or
    schwimmbad pools.
    """

    def map(self, fn, *iterables) -> Any:
        """Apply ``fn`` to every item of ``iterables``."""
        ...
