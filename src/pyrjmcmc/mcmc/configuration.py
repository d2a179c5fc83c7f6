"""MCMC configuration: the ordered sampler registry and the monitors."""

import logging
from collections.abc import Iterable, Sequence
from typing import Any

import numpy as np

from ..graph import Model
from ..samplers import ConditionalSampler, build_sampler
from ..samplers._utils import validate_control
from ..utils.exceptions import ConfigurationError
from ..utils.types import Control, NodeRef, Sampler, SamplerFactory

logger = logging.getLogger(__name__)


def _is_sampler(obj: Any) -> bool:
    return hasattr(obj, "run") and hasattr(obj, "reset") and hasattr(obj, "target")


class MCMCConfiguration:
    """Ordered collection of samplers plus two groups of monitored nodes.

    Samplers run in insertion order in every iteration. The registry never
    reorders or deduplicates samplers: a node may have zero, one or several
    samplers at the same time.

    Monitors come in two groups, each with its own thinning interval. Both are
    recorded by the :class:`~pyrjmcmc.mcmc.MCMC` driver into separate output
    arrays.

    Parameters
    ----------
    model : Model
        The model to sample.
    monitors : iterable of str, optional
        Nodes recorded in the first group.
    thin : int, optional
        Thinning interval of the first group. Default is 1.
    monitors2 : iterable of str, optional
        Nodes recorded in the second group.
    thin2 : int, optional
        Thinning interval of the second group. Default is 1.

    Examples
    --------
    >>> config = MCMCConfiguration(model, monitors=["beta1", "beta2"])
    >>> config.add_sampler("beta1", "RW", {"scale": 0.5})
    >>> config.add_sampler("beta2", "RJ_fixed_prior", {"prior": 0.8})
    >>> [s.name for s in config.get_samplers()]
    ['RW', 'RJ_fixed_prior']
    """

    def __init__(
        self,
        model: Model,
        monitors: Iterable[str] | None = None,
        thin: int = 1,
        monitors2: Iterable[str] | None = None,
        thin2: int = 1,
    ):
        self.model = model
        self._samplers: list[Sampler] = []
        self._monitors: list[str] = []
        self._monitors2: list[str] = []
        self._thin = 1
        self._thin2 = 1
        self.set_thin(thin)
        self.set_thin2(thin2)
        self.add_monitors(*(monitors or []))
        self.add_monitors2(*(monitors2 or []))

    def __repr__(self):
        """String representation of the configuration."""
        return (
            f"MCMCConfiguration(n_samplers={len(self._samplers)}, "
            f"monitors={self._monitors}, thin={self._thin}, "
            f"monitors2={self._monitors2}, thin2={self._thin2})"
        )

    # ~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
    # samplers
    # ~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

    def add_sampler(
        self,
        target: NodeRef | list[NodeRef] | Sampler,
        type: str | SamplerFactory = "RW",
        control: Control | None = None,
    ) -> Sampler:
        """Append a sampler and return it.

        Parameters
        ----------
        target : node reference, list of node references, or Sampler
            Node(s) to update. A list of several nodes is updated jointly by
            one sampler instance (use a block type such as ``"RW_block"``).
            A ready-made sampler instance is appended as is, and ``type`` and
            ``control`` are ignored.
        type : str or SamplerFactory, optional
            Registered sampler type name or a factory. Default is ``"RW"``.
        control : dict, optional
            Control options of the sampler type.

        Raises
        ------
        ConfigurationError
            If the sampler cannot be built.
        """
        if _is_sampler(target):
            sampler = target
        else:
            sampler = build_sampler(self.model, target, type, control)
        self._samplers.append(sampler)
        logger.debug("Added %s sampler for %s", sampler.name, list(sampler.target))
        return sampler

    def remove_samplers(self, *targets: NodeRef) -> int:
        """Remove every sampler whose targets intersect the given nodes.

        Removing samplers of nodes that have none is not an error.

        Returns
        -------
        int
            Number of samplers removed.
        """
        names = self._names(targets)
        kept = [s for s in self._samplers if not names.intersection(s.target)]
        n_removed = len(self._samplers) - len(kept)
        self._samplers = kept
        logger.debug("Removed %d samplers for %s", n_removed, sorted(names))
        return n_removed

    def replace_samplers(
        self,
        target: NodeRef | list[NodeRef],
        type: str | SamplerFactory = "RW",
        control: Control | None = None,
    ) -> Sampler:
        """Remove all samplers of ``target`` and append a new one."""
        nodes = [target] if isinstance(target, (str, int, np.integer)) else list(target)
        self.remove_samplers(*nodes)
        return self.add_sampler(target, type, control)

    def get_samplers(self, *targets: NodeRef) -> tuple[Sampler, ...]:
        """Return the samplers in execution order, optionally only those for ``targets``."""
        if not targets:
            return tuple(self._samplers)
        names = self._names(targets)
        return tuple(s for s in self._samplers if names.intersection(s.target))

    def print_samplers(self) -> None:
        """Log the samplers in execution order."""
        for i, sampler in enumerate(self._samplers):
            logger.info("[%d] %s sampler: %s", i, sampler.name, ", ".join(sampler.target))

    def _names(self, nodes: Iterable[NodeRef]) -> set[str]:
        # unknown names simply match nothing
        return {self.model.name(n) if isinstance(n, (int, np.integer)) else n for n in nodes}

    # ~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
    # monitors
    # ~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

    @property
    def monitors(self) -> tuple[str, ...]:
        """Nodes recorded in the first group, in insertion order."""
        return tuple(self._monitors)

    @property
    def monitors2(self) -> tuple[str, ...]:
        """Nodes recorded in the second group, in insertion order."""
        return tuple(self._monitors2)

    @property
    def thin(self) -> int:
        """Thinning interval of the first group."""
        return self._thin

    @property
    def thin2(self) -> int:
        """Thinning interval of the second group."""
        return self._thin2

    def reset_monitors(self) -> None:
        """Clear both monitor groups."""
        self._monitors = []
        self._monitors2 = []

    def add_monitors(self, *nodes: NodeRef) -> None:
        """Add nodes to the first monitor group. Nodes already present are skipped."""
        self._add_to(self._monitors, nodes)

    def add_monitors2(self, *nodes: NodeRef) -> None:
        """Add nodes to the second monitor group. Nodes already present are skipped."""
        self._add_to(self._monitors2, nodes)

    def set_thin(self, thin: int) -> None:
        """Set the thinning interval of the first group."""
        self._thin = self._validate_thin(thin)

    def set_thin2(self, thin2: int) -> None:
        """Set the thinning interval of the second group."""
        self._thin2 = self._validate_thin(thin2)

    def _add_to(self, group: list[str], nodes: Iterable[NodeRef]) -> None:
        for node in nodes:
            name = self.model.name(self.model.handle(node))
            if name not in group:
                group.append(name)

    @staticmethod
    def _validate_thin(thin: int) -> int:
        if isinstance(thin, bool) or not isinstance(thin, int) or thin < 1:
            raise ConfigurationError(f"Thinning interval must be an integer >= 1, got {thin!r}.")
        return thin


def configure_mcmc(
    model: Model,
    monitors: Iterable[str] | None = None,
    thin: int = 1,
    monitors2: Iterable[str] | None = None,
    thin2: int = 1,
    default_samplers: bool = True,
) -> MCMCConfiguration:
    """Build an MCMC configuration with default samplers.

    With ``default_samplers``, every stochastic node that is not data gets one
    sampler: ``"binary"`` for scalar discrete nodes currently at 0 or 1, and
    ``"RW"`` for continuous nodes. Other discrete nodes get no sampler and a
    warning is logged.

    Parameters
    ----------
    model : Model
        The model to sample.
    monitors : iterable of str, optional
        First monitor group. Default is all stochastic nodes that are not data.
    thin : int, optional
        Thinning interval of the first group. Default is 1.
    monitors2 : iterable of str, optional
        Second monitor group. Default is empty.
    thin2 : int, optional
        Thinning interval of the second group. Default is 1.
    default_samplers : bool, optional
        Whether to assign default samplers. Default is True.

    Returns
    -------
    MCMCConfiguration
        The new configuration.
    """
    if monitors is None:
        monitors = model.stochastic_nodes()
    config = MCMCConfiguration(model, monitors, thin, monitors2, thin2)

    if default_samplers:
        for name in model.stochastic_nodes():
            if not model.is_discrete(name):
                config.add_sampler(name, "RW")
            elif model.is_scalar(name) and model.get(name) in (0.0, 1.0):
                config.add_sampler(name, "binary")
            else:
                logger.warning("No default sampler for discrete node %s", name)

    logger.info(
        "Configured MCMC with %d samplers and %d monitors",
        len(config.get_samplers()),
        len(config.monitors) + len(config.monitors2),
    )
    return config


_RJ_CONTROL: Control = {"fixed_value": 0.0, "mean": None, "scale": 1.0}


def configure_reversible_jump(
    config: MCMCConfiguration,
    targets: Sequence[str],
    prior: float | Sequence[float] | None = None,
    indicators: Sequence[str] | None = None,
    control: Control | None = None,
) -> MCMCConfiguration:
    """Set up reversible-jump variable selection for some coefficients.

    For every target, the samplers it already has are replaced by
    :class:`~pyrjmcmc.samplers.ConditionalSampler` wrappers that only run
    while the target is included, and a reversible-jump sampler is added in
    front of them. Exactly one prior encoding must be chosen:

    - ``prior``: the coefficient is compared with ``fixed_value`` and the
      prior inclusion probability enters the acceptance ratio
      (``"RJ_fixed_prior"``).
    - ``indicators``: one 0/1 indicator node per target carries the inclusion
      prior in the model (``"RJ_indicator"``). The indicators' own samplers are
      removed, since the reversible-jump sampler updates them.

    Parameters
    ----------
    config : MCMCConfiguration
        Configuration to modify in place.
    targets : sequence of str
        Coefficients to move in and out of the model.
    prior : float or sequence of float, optional
        Prior inclusion probability, one for all targets or one per target.
    indicators : sequence of str, optional
        Indicator nodes, one per target.
    control : dict, optional
        Jump proposal options shared by all targets: ``fixed_value``
        (default 0.0), ``mean`` (default ``fixed_value``) and ``scale``
        (default 1.0).

    Returns
    -------
    MCMCConfiguration
        The modified configuration.

    Raises
    ------
    ConfigurationError
        If both or neither of ``prior`` and ``indicators`` are given, their
        lengths do not match ``targets``, a target is updated jointly with
        other nodes by a block sampler, or a sampler cannot be built. The
        configuration is left unchanged in that case.
    """
    control = validate_control(control, _RJ_CONTROL, "reversible-jump")
    targets = [targets] if isinstance(targets, str) else list(targets)

    if (prior is None) == (indicators is None):
        raise ConfigurationError("Give exactly one of prior and indicators.")

    if prior is not None:
        priors = [prior] * len(targets) if isinstance(prior, (int, float)) else list(prior)
        if len(priors) != len(targets):
            raise ConfigurationError(
                f"Got {len(priors)} prior inclusion probabilities for {len(targets)} targets."
            )
    else:
        indicators = [indicators] if isinstance(indicators, str) else list(indicators)
        if len(indicators) != len(targets):
            raise ConfigurationError(
                f"Got {len(indicators)} indicators for {len(targets)} targets."
            )

    model = config.model
    samplers = list(config.get_samplers())
    for i, target in enumerate(targets):
        name = model.name(model.handle(target))
        within = [s for s in samplers if name in s.target]
        blocks = [list(s.target) for s in within if len(s.target) != 1]
        if blocks:
            raise ConfigurationError(
                f"{name} is updated jointly with other nodes by samplers of {blocks}; "
                "give it a sampler of its own before adding reversible jump."
            )
        if not within:
            logger.warning(
                "%s has no within-model sampler and will only jump in and out", name
            )
        samplers = [s for s in samplers if name not in s.target]

        if prior is not None:
            jump = build_sampler(model, name, "RJ_fixed_prior", {**control, "prior": priors[i]})
            gate = {"fixed_value": control["fixed_value"]}
        else:
            indicator = model.name(model.handle(indicators[i]))
            samplers = [s for s in samplers if indicator not in s.target]
            jump = build_sampler(model, indicator, "RJ_indicator", {**control, "target_node": name})
            gate = {"indicator": indicator}

        samplers.append(jump)
        samplers.extend(ConditionalSampler(model, sampler, **gate) for sampler in within)

    # nothing is changed unless every sampler could be built
    config._samplers = samplers
    logger.info("Configured reversible jump for %s", targets)
    return config
