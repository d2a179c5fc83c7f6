"""Conditional-update sampler: run an inner sampler only while a gate is open."""

import numpy as np

from ..graph import Model
from ..utils.exceptions import ConfigurationError
from ..utils.types import NodeRef, Sampler
from ._utils import validate_number


class ConditionalSampler:
    """Wrap a sampler so that it only runs while a gating condition holds.

    The gate is either a separate indicator node, open while it holds 1, or
    the inner sampler's own scalar target, open while its value differs from
    ``fixed_value``. While the gate is closed, :meth:`run` does nothing at all:
    no value, saved value, log-probability or random number is touched. This
    is what keeps a within-model sampler from moving a coefficient that a
    reversible-jump sampler has excluded.

    Parameters
    ----------
    model : Model
        Model the sampler is built against.
    inner : Sampler
        The sampler to delegate to, built for the same model.
    indicator : str or int, optional
        Gating node holding 1 or 0.
    fixed_value : float, optional
        Value of the inner target that closes the gate.

    Raises
    ------
    ConfigurationError
        If not exactly one of ``indicator`` and ``fixed_value`` is given, the
        gating node does not exist or is not scalar, an indicator does not hold
        0 or 1, or ``fixed_value`` is not a finite number.

    Examples
    --------
    >>> rw = RandomWalkSampler(model, "beta2")
    >>> gated = ConditionalSampler(model, rw, fixed_value=0.0)
    """

    name = "conditional"

    def __init__(
        self,
        model: Model,
        inner: Sampler,
        indicator: NodeRef | None = None,
        fixed_value: float | None = None,
    ):
        if (indicator is None) == (fixed_value is None):
            raise ConfigurationError(
                "ConditionalSampler needs exactly one of indicator and fixed_value."
            )

        if indicator is not None:
            self._gate = model.handle(indicator)
            self.fixed_value = None
            if model.is_scalar(self._gate) and model.get(self._gate) not in (0.0, 1.0):
                raise ConfigurationError(
                    f"Gating indicator {model.name(self._gate)!r} must hold 0 or 1."
                )
        else:
            if len(inner.target) != 1:
                raise ConfigurationError(
                    "A fixed_value gate needs an inner sampler with a single target, "
                    f"got {list(inner.target)}."
                )
            self._gate = model.handle(inner.target[0])
            self.fixed_value = validate_number(fixed_value, "fixed_value", self.name)

        if not model.is_scalar(self._gate):
            raise ConfigurationError(
                f"Gating node {model.name(self._gate)!r} must be scalar."
            )

        self.inner = inner
        self.indicator = None if indicator is None else model.name(self._gate)
        self.target = inner.target

    def __repr__(self):
        """String representation of the sampler."""
        gate = (
            f"indicator={self.indicator!r}"
            if self.indicator is not None
            else f"fixed_value={self.fixed_value}"
        )
        return f"ConditionalSampler({self.inner!r}, {gate})"

    def is_open(self, model: Model) -> bool:
        """Whether the gate is open in the current live state of ``model``."""
        value = model.get(self._gate)
        if self.fixed_value is None:
            return value == 1.0
        return value != self.fixed_value

    def run(self, model: Model, rng: np.random.Generator) -> None:
        """Run the inner sampler if the gate is open, otherwise do nothing."""
        if self.is_open(model):
            self.inner.run(model, rng)

    def reset(self) -> None:
        """Reset the inner sampler, whatever the state of the gate."""
        self.inner.reset()

    @property
    def acceptance_rate(self) -> float:
        """Acceptance rate of the inner sampler, ``nan`` if it does not track one."""
        return getattr(self.inner, "acceptance_rate", float("nan"))
