"""MCMC driver running configured samplers over one or several chains."""

import logging
from concurrent.futures import ProcessPoolExecutor
from copy import deepcopy
from dataclasses import dataclass, field
from typing import Any

import numpy as np
from tqdm import tqdm

from ..graph import Model
from ..utils.exceptions import ConfigurationError, NumericalError
from ..utils.types import (
    FloatArray,
    MapPool,
    MultiChainSampleArray,
    SampleArray,
    Sampler,
)
from .configuration import MCMCConfiguration

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


@dataclass
class MCMCChain:
    """Dataclass to hold the output of a single chain."""

    columns: list[str]
    samples: SampleArray
    n_iter: int
    n_burnin: int = 0
    thin: int = 1
    columns2: list[str] = field(default_factory=list)
    samples2: SampleArray = field(default_factory=lambda: np.empty((0, 0)))
    thin2: int = 1
    acceptance_rates: list[float] = field(default_factory=list)

    def __repr__(self):
        """String representation of the chain."""
        return (
            f"MCMCChain(n_rows={self.n_rows}, n_columns={len(self.columns)}, "
            f"n_iter={self.n_iter}, n_burnin={self.n_burnin}, thin={self.thin})"
        )

    def __post_init__(self):
        """Post-initialization checks."""
        self.samples = np.asarray(self.samples, dtype=float)
        self.samples2 = np.asarray(self.samples2, dtype=float)
        if self.samples.ndim != 2 or self.samples.shape[1] != len(self.columns):
            raise ValueError("Samples must have one column per monitored element.")
        if self.samples2.size and self.samples2.shape[1] != len(self.columns2):
            raise ValueError("Samples2 must have one column per monitored element.")

    @property
    def n_rows(self) -> int:
        """Number of recorded iterations in the first monitor group."""
        return self.samples.shape[0]

    def as_dict(self, group: int = 1) -> dict[str, FloatArray]:
        """Samples of one monitor group as a mapping from column to trace."""
        columns, samples = self._group(group)
        return {column: samples[:, j] for j, column in enumerate(columns)}

    def _group(self, group: int) -> tuple[list[str], SampleArray]:
        if group == 1:
            return self.columns, self.samples
        if group == 2:
            return self.columns2, self.samples2
        raise ValueError(f"Monitor group must be 1 or 2, got {group}.")


@dataclass
class MultiChainSamples:
    """Class to hold and manage the output of several independent chains."""

    chains: list[MCMCChain] = field(default_factory=list)

    def __repr__(self):
        """String representation of the multi-chain samples."""
        return f"MultiChainSamples(n_chains={self.n_chains}, columns={self.columns})"

    def __post_init__(self):
        """Post-initialization checks."""
        if not self.chains:
            return

        if any(not isinstance(chain, MCMCChain) for chain in self.chains):
            raise TypeError("All chains must be instances of MCMCChain.")

        first = self.chains[0]
        if any(
            chain.columns != first.columns or chain.columns2 != first.columns2
            for chain in self.chains[1:]
        ):
            raise ValueError("All chains must monitor the same columns.")

    @property
    def n_chains(self) -> int:
        """Number of chains."""
        return len(self.chains)

    @property
    def columns(self) -> list[str]:
        """Column labels of the first monitor group."""
        if self.chains:
            return self.chains[0].columns
        return []

    @property
    def columns2(self) -> list[str]:
        """Column labels of the second monitor group."""
        if self.chains:
            return self.chains[0].columns2
        return []

    @property
    def samples(self) -> MultiChainSampleArray:
        """First monitor group of all chains stacked, shape (n_chains, n_rows, n_columns)."""
        return np.array([chain.samples for chain in self.chains])

    @property
    def samples2(self) -> MultiChainSampleArray:
        """Second monitor group of all chains stacked."""
        return np.array([chain.samples2 for chain in self.chains])

    @property
    def acceptance_rates(self) -> FloatArray:
        """Acceptance rate of each sampler in each chain, shape (n_chains, n_samplers)."""
        return np.array([chain.acceptance_rates for chain in self.chains])

    def flat(self, group: int = 1) -> SampleArray:
        """Samples of all chains concatenated along the rows."""
        return np.concatenate([chain._group(group)[1] for chain in self.chains], axis=0)


@dataclass
class _ChainJob:
    """Everything one chain needs, owned exclusively by that chain."""

    chain: int
    model: Model
    samplers: tuple[Sampler, ...]
    seed: np.random.SeedSequence
    monitors: tuple[int, ...]
    monitors2: tuple[int, ...]
    columns: list[str]
    columns2: list[str]
    n_iter: int
    n_burnin: int
    thin: int
    thin2: int
    reset: bool
    progress: bool
    inits: dict[str, Any] | None = None


def _record(model: Model, handles: tuple[int, ...]) -> FloatArray:
    return np.concatenate([np.ravel(model.get(h)) for h in handles])


def _run_chain(job: _ChainJob) -> MCMCChain:
    """Run one chain. Module level so that process pools can pickle it."""
    model, samplers = job.model, job.samplers
    rng = np.random.default_rng(job.seed)

    if job.inits:
        model.set_values(job.inits)
    if job.reset:
        for sampler in samplers:
            sampler.reset()

    n_kept = job.n_iter - job.n_burnin
    samples = np.empty((n_kept // job.thin, len(job.columns)))
    samples2 = np.empty((n_kept // job.thin2 if job.monitors2 else 0, len(job.columns2)))
    row = row2 = 0

    iterations = tqdm(
        range(1, job.n_iter + 1),
        disable=not job.progress,
        desc=f"chain {job.chain}",
        position=job.chain,
    )
    for i in iterations:
        for sampler in samplers:
            try:
                sampler.run(model, rng)
            except NumericalError as err:
                if err.target is None:
                    err.target = tuple(sampler.target)
                err.iteration = i
                err.chain = job.chain
                raise

        if i <= job.n_burnin:
            continue
        k = i - job.n_burnin
        if job.monitors and k % job.thin == 0:
            samples[row] = _record(model, job.monitors)
            row += 1
        if job.monitors2 and k % job.thin2 == 0:
            samples2[row2] = _record(model, job.monitors2)
            row2 += 1

    return MCMCChain(
        columns=job.columns,
        samples=samples,
        n_iter=job.n_iter,
        n_burnin=job.n_burnin,
        thin=job.thin,
        columns2=job.columns2,
        samples2=samples2,
        thin2=job.thin2,
        acceptance_rates=[
            float(getattr(sampler, "acceptance_rate", np.nan)) for sampler in samplers
        ],
    )


class MCMC:
    """MCMC driver built from a configuration.

    The configuration is captured when the driver is built: later edits to
    the configuration do not affect it. Every run deep-copies the model and
    the samplers for each chain, so runs and chains never share state.

    Parameters
    ----------
    config : MCMCConfiguration
        The sampler and monitor configuration.

    Examples
    --------
    >>> mcmc = MCMC(config)
    >>> results = mcmc.run(n_iter=10_000, n_burnin=1_000, n_chains=2, seed=1)
    >>> results.samples.shape
    (2, 9000, 2)
    """

    def __init__(self, config: MCMCConfiguration):
        self.model = config.model
        self.samplers: tuple[Sampler, ...] = deepcopy(config.get_samplers())
        self.monitors = config.monitors
        self.monitors2 = config.monitors2
        self.thin = config.thin
        self.thin2 = config.thin2
        self.columns = self.model.expand_names(self.monitors)
        self.columns2 = self.model.expand_names(self.monitors2)
        if not self.samplers:
            logger.warning("MCMC built without samplers; the state will never change")

    def __repr__(self):
        """String representation of the driver."""
        return f"MCMC(n_samplers={len(self.samplers)}, columns={self.columns})"

    def run(
        self,
        n_iter: int,
        n_burnin: int = 0,
        n_chains: int = 1,
        seed: int | None = None,
        inits: dict[str, Any] | list[dict[str, Any]] | None = None,
        reset: bool = True,
        progress: bool = False,
        chain_pool: MapPool | None = None,
        n_processors: int | None = None,
    ) -> MultiChainSamples:
        """Run the samplers for a number of iterations on one or several chains.

        Each iteration runs every sampler once in order, then records the
        monitors. The first monitor group is recorded at iterations
        ``i > n_burnin`` with ``(i - n_burnin) % thin == 0``, giving
        ``(n_iter - n_burnin) // thin`` rows; likewise for the second group.

        Parameters
        ----------
        n_iter : int
            Number of iterations per chain, including burn-in.
        n_burnin : int, optional
            Number of initial iterations not recorded. Default is 0.
        n_chains : int, optional
            Number of independent chains. Default is 1.
        seed : int, optional
            Seed of the random number streams. Each chain gets its own stream
            spawned from ``numpy.random.SeedSequence(seed)``; equal seeds give
            identical output.
        inits : dict or list of dict, optional
            Initial values, shared by all chains or one mapping per chain.
            Default is the current state of the model.
        reset : bool, optional
            Whether to reset the samplers before running. Default is True.
        progress : bool, optional
            Whether to show a progress bar per chain. Default is False.
        chain_pool : MapPool, optional
            Pool to run chains in parallel. The model and samplers must then
            be picklable if the pool uses processes. Default is None.
        n_processors : int, optional
            If greater than 1 and no ``chain_pool`` is given, chains run in an
            internal ``ProcessPoolExecutor`` with this many workers.

        Returns
        -------
        MultiChainSamples
            Output of all chains.

        Raises
        ------
        ConfigurationError
            For invalid iteration counts or initial values, before anything runs.
        NumericalError
            If a sampler meets a non-finite log-probability. No partial output
            is returned.
        """
        if isinstance(n_iter, bool) or not isinstance(n_iter, int) or n_iter < 1:
            raise ConfigurationError(f"n_iter must be an integer >= 1, got {n_iter!r}.")
        if (
            isinstance(n_burnin, bool)
            or not isinstance(n_burnin, int)
            or not 0 <= n_burnin < n_iter
        ):
            raise ConfigurationError(
                f"n_burnin must be an integer in [0, n_iter), got {n_burnin!r}."
            )
        if isinstance(n_chains, bool) or not isinstance(n_chains, int) or n_chains < 1:
            raise ConfigurationError(f"n_chains must be an integer >= 1, got {n_chains!r}.")

        if inits is None or isinstance(inits, dict):
            inits = [inits] * n_chains
        elif len(inits) != n_chains:
            raise ConfigurationError(
                f"Got {len(inits)} sets of initial values for {n_chains} chains."
            )
        for init in inits:
            for name in init or {}:
                self.model.handle(name)

        seeds = np.random.SeedSequence(seed).spawn(n_chains)
        monitors = tuple(self.model.handle(name) for name in self.monitors)
        monitors2 = tuple(self.model.handle(name) for name in self.monitors2)

        jobs = []
        for chain in range(n_chains):
            model, samplers = deepcopy((self.model, self.samplers))
            jobs.append(
                _ChainJob(
                    chain=chain,
                    model=model,
                    samplers=samplers,
                    seed=seeds[chain],
                    monitors=monitors,
                    monitors2=monitors2,
                    columns=self.columns,
                    columns2=self.columns2,
                    n_iter=n_iter,
                    n_burnin=n_burnin,
                    thin=self.thin,
                    thin2=self.thin2,
                    reset=reset,
                    progress=progress,
                    inits=inits[chain],
                )
            )

        logger.info("Running MCMC with %d samplers", len(self.samplers))
        logger.info("Number of chains: %d", n_chains)
        logger.info("Iterations per chain: %d (burn-in %d)", n_iter, n_burnin)

        if chain_pool is not None:
            chains = list(chain_pool.map(_run_chain, jobs))
        elif n_processors is not None and n_processors > 1:
            with ProcessPoolExecutor(max_workers=n_processors) as executor:
                chains = list(executor.map(_run_chain, jobs))
        else:
            chains = [_run_chain(job) for job in jobs]

        logger.info("MCMC finished")
        return MultiChainSamples(chains)


def run_mcmc(
    mcmc: MCMC | MCMCConfiguration,
    n_iter: int,
    n_burnin: int = 0,
    n_chains: int = 1,
    seed: int | None = None,
    **kwargs,
) -> MultiChainSamples:
    """Run MCMC from a driver or directly from a configuration.

    Parameters
    ----------
    mcmc : MCMC or MCMCConfiguration
        A driver, or a configuration to build one from.
    n_iter, n_burnin, n_chains, seed
        See :meth:`MCMC.run`.
    **kwargs
        Further keyword arguments passed to :meth:`MCMC.run`.

    Returns
    -------
    MultiChainSamples
        Output of all chains.

    Examples
    --------
    >>> results = run_mcmc(config, n_iter=5000, n_burnin=500, seed=61254557)
    """
    if isinstance(mcmc, MCMCConfiguration):
        mcmc = MCMC(mcmc)
    return mcmc.run(n_iter, n_burnin=n_burnin, n_chains=n_chains, seed=seed, **kwargs)
