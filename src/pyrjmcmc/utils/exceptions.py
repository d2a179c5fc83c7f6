"""Custom exceptions for pyrjmcmc.

This module defines the exception hierarchy for the pyrjmcmc package,
providing specific error types for different failure modes.
"""


class PyRJMCMCError(Exception):
    """Base exception class for all pyrjmcmc-specific errors.

    This is the root exception class from which all other pyrjmcmc
    exceptions inherit. It can be used to catch any pyrjmcmc-related
    error in a general exception handler.
    """

    pass


class ConfigurationError(PyRJMCMCError, ValueError):
    """Raised when a model, sampler or MCMC configuration is invalid.

    This exception is raised before any iteration runs, when:
    - A node name does not exist in the model
    - A sampler target is not scalar, not stochastic or is observed data
    - Control options are unknown or outside their acceptable ranges
    - Monitors or thinning intervals are invalid

    Parameters
    ----------
    msg : str, optional
        Human-readable error message describing the configuration problem.
    """

    def __init__(self, msg="Invalid model or sampler configuration"):
        super().__init__(msg)


class NumericalError(PyRJMCMCError, ArithmeticError):
    """Raised when a sampler meets a non-finite log-probability.

    The error carries enough context to locate the failure. ``target`` is set
    by the sampler that raised it, ``iteration`` and ``chain`` are attached by
    the MCMC driver before the error is passed on to the caller.

    Parameters
    ----------
    msg : str
        Human-readable error message.
    target : tuple of str, optional
        Target nodes of the sampler that failed.
    iteration : int, optional
        1-based iteration index at which the failure happened.
    chain : int, optional
        0-based index of the chain that failed.
    """

    def __init__(
        self,
        msg: str = "Non-finite log-probability",
        target: tuple[str, ...] | None = None,
        iteration: int | None = None,
        chain: int | None = None,
    ):
        super().__init__(msg)
        self.msg = msg
        self.target = target
        self.iteration = iteration
        self.chain = chain

    def __reduce__(self):
        """Keep the context when the error crosses a process boundary."""
        return (type(self), (self.msg, self.target, self.iteration, self.chain))

    def __str__(self):
        """Error message including the available context."""
        context = []
        if self.chain is not None:
            context.append(f"chain {self.chain}")
        if self.iteration is not None:
            context.append(f"iteration {self.iteration}")
        if self.target is not None:
            context.append(f"sampler target {list(self.target)}")
        if not context:
            return self.msg
        return f"{self.msg} ({', '.join(context)})"
