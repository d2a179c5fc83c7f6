"""Node declarations for probabilistic graphical models."""

from collections.abc import Callable
from typing import Any

import numpy as np


class Node:
    """Base class for named nodes of a model graph.

    Parents are passed as keyword arguments. Each one is either another
    :class:`Node` or a constant (a number or an array). The keyword names are
    the argument names of the distribution or function of the node.
    """

    def __init__(self, name: str, **parents: Any):
        if not isinstance(name, str) or not name:
            raise TypeError("Node name must be a non-empty string.")
        self.name = name
        self.parents = parents

    @property
    def parent_nodes(self) -> list["Node"]:
        """Parents that are nodes themselves, in keyword order."""
        return [p for p in self.parents.values() if isinstance(p, Node)]

    @property
    def stochastic(self) -> bool:
        """Whether the node has a log-probability density of its own."""
        return False

    def __repr__(self):
        """String representation of the node."""
        parents = ", ".join(
            f"{key}={value.name if isinstance(value, Node) else value!r}"
            for key, value in self.parents.items()
        )
        return f"{type(self).__name__}({self.name!r}, {parents})"


class Stochastic(Node):
    """A random variable with a ``scipy.stats`` distribution.

    Parameters
    ----------
    name : str
        Unique name of the node.
    distribution : scipy.stats distribution
        Either a distribution object such as ``scipy.stats.norm``, whose
        parameters are given as keyword parents, or a frozen distribution such
        as ``scipy.stats.norm(0, 1)``. Discrete distributions are evaluated
        with ``logpmf``, all others with ``logpdf``.
    value : float or array_like, optional
        Initial value. If None, the value is simulated from the distribution
        when the model is built.
    observed : bool, optional
        Whether the node is observed data. Data nodes need a value and are
        never updated by samplers. Default is False.
    size : int or tuple of int, optional
        Shape used to simulate a missing initial value. Default is None
        (a scalar).
    **parents
        Distribution parameters, as nodes or constants.

    Examples
    --------
    >>> from scipy import stats
    >>> sigma = Stochastic("sigma", stats.halfnorm, scale=1.0, value=1.0)
    >>> beta = Stochastic("beta", stats.norm, loc=0.0, scale=sigma)
    """

    def __init__(
        self,
        name: str,
        distribution: Any,
        value: Any = None,
        observed: bool = False,
        size: int | tuple[int, ...] | None = None,
        **parents: Any,
    ):
        super().__init__(name, **parents)
        if not (hasattr(distribution, "logpdf") or hasattr(distribution, "logpmf")):
            raise TypeError(
                f"Distribution of node {name!r} must provide logpdf or logpmf."
            )
        if observed and value is None:
            raise ValueError(f"Observed node {name!r} needs a value.")
        self.distribution = distribution
        self.value = value
        self.observed = observed
        self.size = size

    @property
    def stochastic(self) -> bool:
        """Stochastic nodes always carry a density."""
        return True

    @property
    def discrete(self) -> bool:
        """Whether the distribution is discrete, i.e. evaluated with ``logpmf``."""
        return hasattr(self.distribution, "logpmf")

    def log_density(self, value: Any, **parent_values: Any) -> float:
        """Sum of the element-wise log-densities of ``value`` given the parents."""
        if self.discrete:
            log_dens = self.distribution.logpmf(value, **parent_values)
        else:
            log_dens = self.distribution.logpdf(value, **parent_values)
        return float(np.sum(log_dens))

    def draw(self, rng: np.random.Generator, **parent_values: Any) -> Any:
        """Draw a value from the distribution given the parents."""
        return self.distribution.rvs(size=self.size, random_state=rng, **parent_values)


class Deterministic(Node):
    """A node whose value is a pure function of its parents.

    Parameters
    ----------
    name : str
        Unique name of the node.
    function : callable
        Called with the parent values as keyword arguments.
    **parents
        Function arguments, as nodes or constants.

    Examples
    --------
    >>> mu = Deterministic("mu", lambda a, b, x: a + b * x, a=alpha, b=beta, x=x_obs)
    """

    def __init__(self, name: str, function: Callable[..., Any], **parents: Any):
        super().__init__(name, **parents)
        if not callable(function):
            raise TypeError(f"Function of node {name!r} must be callable.")
        self.function = function

    def evaluate(self, **parent_values: Any) -> Any:
        """Compute the value of the node from its parent values."""
        return self.function(**parent_values)
