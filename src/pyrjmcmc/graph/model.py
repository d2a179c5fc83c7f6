"""Probabilistic graphical models with a live and a saved state."""

import logging
from collections.abc import Iterable
from enum import StrEnum, auto
from typing import Any

import networkx as nx
import numpy as np

from ..utils.exceptions import ConfigurationError
from ..utils.types import FloatArray, NodeRef
from .nodes import Deterministic, Node, Stochastic

logger = logging.getLogger(__name__)


class Buffer(StrEnum):
    """Enum for the two state buffers held by a model."""

    MODEL = auto()
    SAVED = auto()


def _collect_nodes(nodes: Iterable[Node]) -> list[Node]:
    """Collect the given nodes and all their ancestors, keeping first-seen order."""
    collected: dict[int, Node] = {}
    stack = list(nodes)[::-1]
    while stack:
        node = stack.pop()
        if not isinstance(node, Node):
            raise ConfigurationError(f"Expected a Node, got {node!r}.")
        if id(node) in collected:
            continue
        collected[id(node)] = node
        stack.extend(node.parent_nodes[::-1])
    return list(collected.values())


def _as_value(value: Any) -> Any:
    """Store scalars as Python floats and everything else as float arrays."""
    arr = np.array(value, dtype=float)
    if arr.ndim == 0:
        return float(arr)
    return arr


def _copy_value(value: Any) -> Any:
    if isinstance(value, np.ndarray):
        return value.copy()
    return value


class Model:
    """A directed probabilistic graphical model.

    The model holds the current (live) value and cached log-probability of
    every node, plus a saved copy of both, which samplers use to roll back
    rejected proposals. Nodes are sorted topologically and every node gets an
    integer handle, its position in that order. Samplers resolve names to
    handles once, so that the per-iteration work is plain indexing.

    All ancestors of the given nodes are included automatically. After
    construction, missing initial values have been simulated, every node has
    been calculated and the saved state equals the live state.

    Parameters
    ----------
    nodes : iterable of Node
        Nodes of the model. Usually it is enough to pass the observed nodes.
    seed : int, optional
        Seed for simulating missing initial values.

    Raises
    ------
    ConfigurationError
        If node names are not unique or the graph has a cycle.

    Examples
    --------
    >>> from scipy import stats
    >>> beta = Stochastic("beta", stats.norm, loc=0.0, scale=1.0, value=0.0)
    >>> y = Stochastic("y", stats.norm, loc=beta, scale=1.0, value=[0.1, -0.3], observed=True)
    >>> model = Model([y])
    >>> model.node_names
    ('beta', 'y')
    >>> model.get_dependencies("beta")
    (0, 1)
    """

    def __init__(self, nodes: Iterable[Node], seed: int | None = None):
        collected = _collect_nodes(nodes)
        names = [node.name for node in collected]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ConfigurationError(f"Duplicate node names in model: {duplicates}")

        graph = nx.DiGraph()
        graph.add_nodes_from(collected)
        for node in collected:
            for parent in node.parent_nodes:
                graph.add_edge(parent, node)

        if not nx.is_directed_acyclic_graph(graph):
            raise ConfigurationError("The model graph contains a cycle.")

        self._nodes: list[Node] = list(
            nx.lexicographical_topological_sort(graph, key=lambda node: node.name)
        )
        self._index: dict[str, int] = {
            node.name: i for i, node in enumerate(self._nodes)
        }
        self.graph = nx.relabel_nodes(graph, {node: self._index[node.name] for node in self._nodes})

        self._children: list[tuple[int, ...]] = [
            tuple(sorted(self.graph.successors(i))) for i in range(len(self._nodes))
        ]
        # (keyword, parent handle or None, constant)
        self._parents: list[list[tuple[str, int | None, Any]]] = [
            [
                (key, self._index[p.name], None)
                if isinstance(p, Node)
                else (key, None, p)
                for key, p in node.parents.items()
            ]
            for node in self._nodes
        ]
        self._stochastic = np.array([node.stochastic for node in self._nodes], dtype=bool)
        self._data = np.array(
            [isinstance(node, Stochastic) and node.observed for node in self._nodes],
            dtype=bool,
        )

        n_nodes = len(self._nodes)
        self._values: dict[Buffer, list[Any]] = {
            Buffer.MODEL: [None] * n_nodes,
            Buffer.SAVED: [None] * n_nodes,
        }
        self._log_probs: dict[Buffer, FloatArray] = {
            Buffer.MODEL: np.zeros(n_nodes),
            Buffer.SAVED: np.zeros(n_nodes),
        }

        self._initialize(np.random.default_rng(seed))

        logger.debug(
            "Built model with %d nodes (%d stochastic, %d data)",
            n_nodes,
            int(self._stochastic.sum()),
            int(self._data.sum()),
        )

    def __repr__(self):
        """String representation of the model."""
        return f"Model(n_nodes={len(self._nodes)})"

    def _initialize(self, rng: np.random.Generator) -> None:
        values = self._values[Buffer.MODEL]
        for h, node in enumerate(self._nodes):
            if isinstance(node, Stochastic):
                if node.value is None:
                    values[h] = _as_value(node.draw(rng, **self._parent_values(h)))
                else:
                    values[h] = _as_value(node.value)
            else:
                values[h] = _as_value(self._nodes[h].evaluate(**self._parent_values(h)))
        self.calculate(range(len(self._nodes)))
        self.copy(Buffer.MODEL, Buffer.SAVED, range(len(self._nodes)))

    # ~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
    # structure
    # ~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

    @property
    def node_names(self) -> tuple[str, ...]:
        """Node names in topological order, i.e. ordered by handle."""
        return tuple(node.name for node in self._nodes)

    def node(self, node: NodeRef) -> Node:
        """Return the node declaration for a name or handle."""
        return self._nodes[self.handle(node)]

    def handle(self, node: NodeRef) -> int:
        """Resolve a node name or handle to a handle.

        Raises
        ------
        ConfigurationError
            If the node does not exist in the model.
        """
        if isinstance(node, (int, np.integer)) and not isinstance(node, bool):
            if not 0 <= node < len(self._nodes):
                raise ConfigurationError(f"Node handle {node} is out of range.")
            return int(node)
        try:
            return self._index[node]
        except (KeyError, TypeError):
            raise ConfigurationError(f"Node {node!r} does not exist in the model.") from None

    def handles(self, nodes: NodeRef | Iterable[NodeRef]) -> tuple[int, ...]:
        """Resolve one or several nodes to handles sorted topologically, without duplicates."""
        if isinstance(nodes, (str, int, np.integer)):
            return (self.handle(nodes),)
        return tuple(sorted({self.handle(node) for node in nodes}))

    def name(self, handle: int) -> str:
        """Name of the node with the given handle."""
        return self._nodes[handle].name

    def is_stochastic(self, node: NodeRef) -> bool:
        """Whether the node has a density of its own."""
        return bool(self._stochastic[self.handle(node)])

    def is_data(self, node: NodeRef) -> bool:
        """Whether the node is observed data."""
        return bool(self._data[self.handle(node)])

    def is_discrete(self, node: NodeRef) -> bool:
        """Whether the node is stochastic with a discrete distribution."""
        decl = self.node(node)
        return isinstance(decl, Stochastic) and decl.discrete

    def is_scalar(self, node: NodeRef) -> bool:
        """Whether the current value of the node is a scalar."""
        return np.ndim(self.get(node)) == 0

    def stochastic_nodes(self, include_data: bool = False) -> tuple[str, ...]:
        """Names of the stochastic nodes in topological order."""
        return tuple(
            node.name
            for h, node in enumerate(self._nodes)
            if self._stochastic[h] and (include_data or not self._data[h])
        )

    def expand_names(self, nodes: Iterable[NodeRef]) -> list[str]:
        """Column labels for the scalar elements of the given nodes.

        Scalars keep their name, vectors are expanded element-wise in C order,
        e.g. ``"beta[0]"``, ``"beta[1]"``; matrices as ``"m[0, 1]"``.
        """
        columns = []
        for node in nodes:
            name = self.name(self.handle(node))
            value = self.get(node)
            if np.ndim(value) == 0:
                columns.append(name)
                continue
            for idx in np.ndindex(np.shape(value)):
                columns.append(f"{name}[{', '.join(str(i) for i in idx)}]")
        return columns

    # ~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
    # access facade
    # ~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

    def get(self, node: NodeRef, buffer: Buffer = Buffer.MODEL) -> Any:
        """Return the value of a node. Arrays are returned without copying."""
        return self._values[buffer][self.handle(node)]

    def set(self, node: NodeRef, value: Any) -> None:
        """Write the live value of a node. Dependents are not recalculated."""
        self._values[Buffer.MODEL][self.handle(node)] = _as_value(value)

    @property
    def values(self) -> dict[str, Any]:
        """Copy of the live values of all nodes, keyed by name."""
        return {
            node.name: _copy_value(value)
            for node, value in zip(self._nodes, self._values[Buffer.MODEL])
        }

    def set_values(self, values: dict[str, Any]) -> None:
        """Set live values, recalculate the whole model and save the state."""
        for name, value in values.items():
            self.set(name, value)
        self.calculate(range(len(self._nodes)))
        self.copy(Buffer.MODEL, Buffer.SAVED, range(len(self._nodes)))

    def get_dependencies(
        self,
        nodes: NodeRef | Iterable[NodeRef],
        include_self: bool = True,
        include_data: bool = True,
    ) -> tuple[int, ...]:
        """Handles of the nodes to recalculate after a change of ``nodes``.

        These are the deterministic descendants of ``nodes`` and the first
        stochastic descendants along every path. Propagation stops at
        stochastic nodes.

        Parameters
        ----------
        nodes : node reference or iterable of node references
            Nodes that are about to change.
        include_self : bool, optional
            Whether to include ``nodes`` themselves. With False the own prior
            contribution of the changed nodes is left out. Default is True.
        include_data : bool, optional
            Whether to include observed data nodes. Default is True.

        Returns
        -------
        tuple of int
            Handles in topological order.
        """
        start = self.handles(nodes)
        found: set[int] = set()
        stack = list(start)
        while stack:
            h = stack.pop()
            for child in self._children[h]:
                if child in found:
                    continue
                found.add(child)
                if not self._stochastic[child]:
                    stack.append(child)
        if include_self:
            found.update(start)
        else:
            found.difference_update(start)
        if not include_data:
            found = {h for h in found if not self._data[h]}
        return tuple(sorted(found))

    def calculate(self, nodes: NodeRef | Iterable[NodeRef]) -> float:
        """Recalculate nodes in topological order and return their log-probability.

        Deterministic nodes are re-evaluated from their parents, stochastic
        nodes get their log-probability recomputed and cached.
        """
        values = self._values[Buffer.MODEL]
        log_probs = self._log_probs[Buffer.MODEL]
        total = 0.0
        for h in self.handles(nodes):
            node = self._nodes[h]
            if self._stochastic[h]:
                log_prob = node.log_density(values[h], **self._parent_values(h))
                log_probs[h] = log_prob
                total += log_prob
            else:
                values[h] = _as_value(node.evaluate(**self._parent_values(h)))
        return total

    def get_log_prob(
        self, nodes: NodeRef | Iterable[NodeRef], buffer: Buffer = Buffer.MODEL
    ) -> float:
        """Sum of the cached log-probabilities of nodes, without recalculation."""
        return float(self._log_probs[buffer][list(self.handles(nodes))].sum())

    @property
    def log_prob(self) -> float:
        """Total cached log-probability of the live state (the unnormalized log-posterior)."""
        return float(self._log_probs[Buffer.MODEL].sum())

    def cached_log_probs(self, buffer: Buffer = Buffer.MODEL) -> FloatArray:
        """Copy of the cached per-node log-probabilities, indexed by handle."""
        return self._log_probs[buffer].copy()

    def copy(
        self,
        source: Buffer | str,
        destination: Buffer | str,
        nodes: NodeRef | Iterable[NodeRef],
        include_log_prob: bool = True,
    ) -> None:
        """Copy values, and optionally log-probabilities, between buffers.

        Parameters
        ----------
        source, destination : Buffer or {"model", "saved"}
            Buffers to copy from and to.
        nodes : node reference or iterable of node references
            Nodes to copy.
        include_log_prob : bool, optional
            Whether to copy the cached log-probabilities too. Default is True.
        """
        source, destination = Buffer(source), Buffer(destination)
        if source == destination:
            return
        src_values, dst_values = self._values[source], self._values[destination]
        handles = self.handles(nodes)
        for h in handles:
            dst_values[h] = _copy_value(src_values[h])
        if include_log_prob:
            idx = list(handles)
            self._log_probs[destination][idx] = self._log_probs[source][idx]

    def simulate(
        self, nodes: NodeRef | Iterable[NodeRef], rng: np.random.Generator
    ) -> None:
        """Draw new live values for stochastic nodes from their distributions.

        Deterministic nodes among ``nodes`` are re-evaluated instead. Nothing
        else is recalculated; call :meth:`calculate` afterwards.
        """
        values = self._values[Buffer.MODEL]
        for h in self.handles(nodes):
            node = self._nodes[h]
            if isinstance(node, Stochastic):
                values[h] = _as_value(node.draw(rng, **self._parent_values(h)))
            elif isinstance(node, Deterministic):
                values[h] = _as_value(node.evaluate(**self._parent_values(h)))

    def _parent_values(self, h: int) -> dict[str, Any]:
        values = self._values[Buffer.MODEL]
        return {
            key: values[parent] if parent is not None else constant
            for key, parent, constant in self._parents[h]
        }
