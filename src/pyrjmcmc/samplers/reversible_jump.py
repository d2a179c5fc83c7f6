"""Reversible-jump samplers moving a coefficient in and out of a model.

A coefficient is *excluded* while it is held at a fixed value (usually 0) and
*included* while it takes a free value. Each run of a reversible-jump sampler
proposes to toggle between the two, drawing the new value from a normal jump
proposal when including and evaluating the reverse jump density when
excluding. The Metropolis-Hastings ratio compares the log-probabilities under
the two dimensionalities: the own prior density of the coefficient counts only
while it is included.

Two encodings of the prior inclusion probability are supported, one per sampler
class, and never both at once:

- :class:`ReversibleJumpSampler` compares the coefficient itself with
  ``fixed_value``. The prior odds enter the ratio as a constant, unless the
  caller declares with ``prior_in_model=True`` that the model density already
  carries them.
- :class:`IndicatorReversibleJumpSampler` toggles a separate 0/1 indicator
  node together with the coefficient. The prior odds are the indicator's own
  density in the model.

Within-model moves of an included coefficient are left to a companion sampler,
usually a :class:`~pyrjmcmc.samplers.RandomWalkSampler` wrapped in a
:class:`~pyrjmcmc.samplers.ConditionalSampler`.
"""

import logging

import numpy as np
from scipy import stats

from ..graph import Model
from ..utils.exceptions import ConfigurationError
from ..utils.types import Control, NodeRef
from ._utils import (
    check_current_log_prob,
    check_proposal_log_prob,
    draw_log_uniform,
    finish_proposal,
    metropolis_accept,
    resolve_scalar,
    resolve_single,
    validate_control,
    validate_number,
    validate_scale,
)

logger = logging.getLogger(__name__)


def log_prior_odds(prior: float) -> float:
    """Log prior odds ``log(prior) - log(1 - prior)`` of an inclusion probability."""
    return float(np.log(prior) - np.log1p(-prior))


class ReversibleJumpSampler:
    """Reversible-jump sampler comparing the coefficient with a fixed value.

    The target is excluded while ``value == fixed_value`` and included
    otherwise; no indicator node is needed.

    Parameters
    ----------
    model : Model
        Model the sampler is built against.
    target : str or int
        The coefficient. Must be scalar, stochastic and not data.
    control : dict
        ``fixed_value`` (float, default 0.0): value of the excluded coefficient.
        ``mean`` (float, default ``fixed_value``): mean of the normal jump proposal.
        ``scale`` (float > 0, default 1.0): standard deviation of the jump proposal.
        ``prior`` (float in (0, 1)): prior inclusion probability, required unless
        ``prior_in_model`` is True.
        ``prior_in_model`` (bool, default False): declare that the model density
        already carries the inclusion prior; ``prior`` must then be omitted.

    Raises
    ------
    ConfigurationError
        For an invalid target, a non-positive scale or an ambiguous prior.

    Notes
    -----
    With ``v`` the current value, ``v'`` the proposal, ``q`` the jump density,
    ``L`` the log-probability of the target and its dependencies and
    ``L_red`` the same without the target's own density, the log acceptance
    ratios are::

        exclude: L_red(fixed) - L(v) - log_prior_odds + log q(v)
        include: L(v') - L_red(fixed) + log_prior_odds - log q(v')

    so that the two moves between the same pair of states are exact inverses.

    Examples
    --------
    >>> sampler = ReversibleJumpSampler(model, "beta2", {"prior": 0.5, "scale": 0.5})
    """

    name = "RJ_fixed_prior"
    DEFAULT_CONTROL: Control = {
        "fixed_value": 0.0,
        "mean": None,
        "scale": 1.0,
        "prior": None,
        "prior_in_model": False,
    }

    def __init__(self, model: Model, target: NodeRef, control: Control | None = None):
        control = validate_control(control, self.DEFAULT_CONTROL, self.name)
        self._target = resolve_scalar(model, resolve_single(target, self.name), self.name)
        self.target = (model.name(self._target),)

        self.fixed_value = validate_number(control["fixed_value"], "fixed_value", self.name)
        self.mean = (
            self.fixed_value
            if control["mean"] is None
            else validate_number(control["mean"], "mean", self.name)
        )
        self.scale = validate_scale(control["scale"], self.name)

        prior, prior_in_model = control["prior"], bool(control["prior_in_model"])
        if prior_in_model:
            if prior is not None:
                raise ConfigurationError(
                    f"{self.name} sampler got both prior={prior} and prior_in_model=True; "
                    "the inclusion prior would be counted twice."
                )
            self.log_prior_odds = 0.0
        else:
            if prior is None:
                raise ConfigurationError(
                    f"{self.name} sampler needs a prior inclusion probability, "
                    "or prior_in_model=True."
                )
            prior = validate_number(prior, "prior", self.name)
            if not 0.0 < prior < 1.0:
                raise ConfigurationError(
                    f"Prior inclusion probability of {self.name} sampler must be in (0, 1), got {prior}."
                )
            self.log_prior_odds = log_prior_odds(prior)
        self.prior = prior

        self.calc_nodes = model.get_dependencies(self._target)
        self.calc_nodes_reduced = model.get_dependencies(self._target, include_self=False)

    def __repr__(self):
        """String representation of the sampler."""
        return (
            f"ReversibleJumpSampler(target={self.target[0]!r}, fixed_value={self.fixed_value}, "
            f"scale={self.scale}, prior={self.prior})"
        )

    def run(self, model: Model, rng: np.random.Generator) -> None:
        """Propose to toggle the target between excluded and included."""
        current = model.get(self._target)
        if current != self.fixed_value:
            log_accept = self._propose_exclusion(model, current)
            move = "exclusion"
        else:
            log_accept = self._propose_inclusion(model, rng.normal(self.mean, self.scale))
            move = "inclusion"

        accept = metropolis_accept(log_accept, draw_log_uniform(rng))
        finish_proposal(model, accept, self.calc_nodes)

        logger.debug(
            "%s %s of %s (log acceptance ratio %.4g)",
            "Accepting" if accept else "Rejecting",
            move,
            self.target[0],
            log_accept,
        )

    def reset(self) -> None:
        """The reversible-jump sampler carries no tuning state."""
        pass

    def _jump_log_density(self, value: float) -> float:
        return float(stats.norm.logpdf(value, loc=self.mean, scale=self.scale))

    def _propose_exclusion(self, model: Model, current: float) -> float:
        """Move the target to ``fixed_value`` and return the log acceptance ratio."""
        current_log_prob = model.get_log_prob(self.calc_nodes)
        check_current_log_prob(current_log_prob, self.target)
        log_prob_reverse = self._jump_log_density(current)

        model.set(self._target, self.fixed_value)
        model.calculate(self.calc_nodes)
        proposal_log_prob = model.get_log_prob(self.calc_nodes_reduced)
        check_proposal_log_prob(proposal_log_prob, self.target)

        return (
            proposal_log_prob - current_log_prob - self.log_prior_odds + log_prob_reverse
        )

    def _propose_inclusion(self, model: Model, proposal: float) -> float:
        """Move the target to ``proposal`` and return the log acceptance ratio."""
        current_log_prob = model.get_log_prob(self.calc_nodes_reduced)
        check_current_log_prob(current_log_prob, self.target)

        model.set(self._target, proposal)
        proposal_log_prob = model.calculate(self.calc_nodes)
        check_proposal_log_prob(proposal_log_prob, self.target)
        log_prob_forward = self._jump_log_density(proposal)

        return (
            proposal_log_prob - current_log_prob + self.log_prior_odds - log_prob_forward
        )


class IndicatorReversibleJumpSampler:
    """Reversible-jump sampler toggling an indicator node and its coefficient.

    The target is the indicator, holding 1 ("in model") or 0 ("out"). When it
    is set to 0 the coefficient is held at ``fixed_value``; when it is set to 1
    the coefficient is drawn from the jump proposal. The inclusion prior is the
    density of the indicator itself, so no prior odds enter the ratio.

    Parameters
    ----------
    model : Model
        Model the sampler is built against.
    target : str or int
        The indicator node. Must be scalar, stochastic, not data and hold 0 or 1.
    control : dict
        ``target_node`` (required): the coefficient switched by the indicator.
        ``fixed_value`` (float, default 0.0): value of the excluded coefficient.
        ``mean`` (float, default ``fixed_value``) and ``scale`` (float > 0,
        default 1.0): the normal jump proposal.

    Raises
    ------
    ConfigurationError
        For invalid indicator or coefficient nodes, a non-positive scale, or an
        indicator at 0 whose coefficient is not at ``fixed_value``.
    """

    name = "RJ_indicator"
    DEFAULT_CONTROL: Control = {
        "target_node": None,
        "fixed_value": 0.0,
        "mean": None,
        "scale": 1.0,
    }

    def __init__(self, model: Model, target: NodeRef, control: Control | None = None):
        control = validate_control(control, self.DEFAULT_CONTROL, self.name)
        self._indicator = resolve_scalar(model, resolve_single(target, self.name), self.name)
        if control["target_node"] is None:
            raise ConfigurationError(f"{self.name} sampler needs control 'target_node'.")
        self._coefficient = resolve_scalar(model, control["target_node"], self.name)
        if self._coefficient == self._indicator:
            raise ConfigurationError(
                f"Indicator and coefficient of {self.name} sampler must be different nodes."
            )
        if model.get(self._indicator) not in (0.0, 1.0):
            raise ConfigurationError(
                f"Indicator {model.name(self._indicator)!r} must hold 0 or 1."
            )
        self.target = (model.name(self._indicator),)
        self.target_node = model.name(self._coefficient)

        self.fixed_value = validate_number(control["fixed_value"], "fixed_value", self.name)
        self.mean = (
            self.fixed_value
            if control["mean"] is None
            else validate_number(control["mean"], "mean", self.name)
        )
        self.scale = validate_scale(control["scale"], self.name)

        excluded = model.get(self._indicator) == 0.0
        if excluded and model.get(self._coefficient) != self.fixed_value:
            raise ConfigurationError(
                f"Indicator {self.target[0]!r} is 0 but coefficient {self.target_node!r} "
                f"is not at fixed_value {self.fixed_value}."
            )

        self.calc_nodes = model.get_dependencies([self._indicator, self._coefficient])
        self.calc_nodes_reduced = tuple(h for h in self.calc_nodes if h != self._coefficient)

    def __repr__(self):
        """String representation of the sampler."""
        return (
            f"IndicatorReversibleJumpSampler(target={self.target[0]!r}, "
            f"target_node={self.target_node!r}, scale={self.scale})"
        )

    def run(self, model: Model, rng: np.random.Generator) -> None:
        """Propose to flip the indicator, moving the coefficient with it."""
        if model.get(self._indicator) != 0.0:
            log_accept = self._propose_exclusion(model)
            move = "exclusion"
        else:
            log_accept = self._propose_inclusion(model, rng.normal(self.mean, self.scale))
            move = "inclusion"

        accept = metropolis_accept(log_accept, draw_log_uniform(rng))
        finish_proposal(model, accept, self.calc_nodes)

        logger.debug(
            "%s %s of %s via %s (log acceptance ratio %.4g)",
            "Accepting" if accept else "Rejecting",
            move,
            self.target_node,
            self.target[0],
            log_accept,
        )

    def reset(self) -> None:
        """The reversible-jump sampler carries no tuning state."""
        pass

    def _jump_log_density(self, value: float) -> float:
        return float(stats.norm.logpdf(value, loc=self.mean, scale=self.scale))

    def _propose_exclusion(self, model: Model) -> float:
        current_log_prob = model.get_log_prob(self.calc_nodes)
        check_current_log_prob(current_log_prob, self.target)
        log_prob_reverse = self._jump_log_density(model.get(self._coefficient))

        model.set(self._indicator, 0.0)
        model.set(self._coefficient, self.fixed_value)
        model.calculate(self.calc_nodes)
        proposal_log_prob = model.get_log_prob(self.calc_nodes_reduced)
        check_proposal_log_prob(proposal_log_prob, self.target)

        return proposal_log_prob - current_log_prob + log_prob_reverse

    def _propose_inclusion(self, model: Model, proposal: float) -> float:
        current_log_prob = model.get_log_prob(self.calc_nodes_reduced)
        check_current_log_prob(current_log_prob, self.target)

        model.set(self._indicator, 1.0)
        model.set(self._coefficient, proposal)
        proposal_log_prob = model.calculate(self.calc_nodes)
        check_proposal_log_prob(proposal_log_prob, self.target)

        return proposal_log_prob - current_log_prob - self._jump_log_density(proposal)
