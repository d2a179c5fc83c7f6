"""Module to analyse which coefficients are in the model along the chains."""

from collections import Counter
from functools import partial

import numpy as np

from ..utils.types import FloatArray, IntArray, MultiChainSampleArray, SampleArray


def _columns_of(columns: list[str], targets: list[str] | None) -> list[int]:
    if targets is None:
        return list(range(len(columns)))
    missing = [t for t in targets if t not in columns]
    if missing:
        raise ValueError(f"Targets {missing} are not among the monitored columns.")
    return [columns.index(t) for t in targets]


def get_inclusion_indicators(
    samples: SampleArray | MultiChainSampleArray,
    columns: list[str],
    targets: list[str] | None = None,
    fixed_value: float = 0.0,
) -> IntArray:
    """Indicate for every recorded iteration whether each target was included.

    Parameters
    ----------
    samples : SampleArray or MultiChainSampleArray
        Samples of shape (n_rows, n_columns) or (n_chains, n_rows, n_columns).
    columns : list of str
        Column labels of ``samples``.
    targets : list of str, optional
        Columns to analyse. Default is all columns.
    fixed_value : float, optional
        Value of an excluded coefficient. Default is 0.

    Returns
    -------
    IntArray
        1 where the target differs from ``fixed_value``, else 0. Same leading
        shape as ``samples``, one column per target.
    """
    idx = _columns_of(columns, targets)
    return (np.asarray(samples)[..., idx] != fixed_value).astype(int)


chain_average_functions = {
    "mean": partial(np.mean, axis=0),
    "median": partial(np.median, axis=0),
}


def get_inclusion_probabilities(
    samples: SampleArray | MultiChainSampleArray,
    columns: list[str],
    targets: list[str] | None = None,
    fixed_value: float = 0.0,
    chain_average: str = "mean",
) -> dict[str, float]:
    """Estimate posterior inclusion probabilities from reversible-jump output.

    The inclusion probability of a coefficient is estimated by the fraction
    of recorded iterations in which it was included. For several chains the
    per-chain fractions are averaged.

    Parameters
    ----------
    samples : SampleArray or MultiChainSampleArray
        Samples of shape (n_rows, n_columns) or (n_chains, n_rows, n_columns).
    columns : list of str
        Column labels of ``samples``.
    targets : list of str, optional
        Columns to analyse. Default is all columns.
    fixed_value : float, optional
        Value of an excluded coefficient. Default is 0.
    chain_average : str, optional
        How to average across chains, ``"mean"`` (default) or ``"median"``.

    Returns
    -------
    dict
        Mapping from target to estimated inclusion probability.

    Examples
    --------
    >>> results = mcmc.run(n_iter=10_000, n_chains=4, seed=1)
    >>> get_inclusion_probabilities(results.samples, results.columns, ["beta2"])
    {'beta2': 0.7731}
    """
    indicators = get_inclusion_indicators(samples, columns, targets, fixed_value)
    if indicators.ndim == 2:
        indicators = indicators[np.newaxis]
    per_chain = indicators.mean(axis=1)
    probabilities = chain_average_functions[chain_average](per_chain)
    names = targets if targets is not None else columns
    return {name: float(p) for name, p in zip(names, probabilities)}


def get_model_frequencies(
    samples: SampleArray | MultiChainSampleArray,
    columns: list[str],
    targets: list[str] | None = None,
    fixed_value: float = 0.0,
) -> list[tuple[tuple[str, ...], float]]:
    """Relative frequency of each visited sub-model.

    A sub-model is the set of targets included at an iteration. All chains
    are pooled.

    Returns
    -------
    list of (tuple of str, float)
        Included targets and relative frequency, most frequent first.
    """
    names = targets if targets is not None else columns
    indicators = get_inclusion_indicators(samples, columns, targets, fixed_value)
    rows = indicators.reshape(-1, len(names))
    counts = Counter(tuple(row) for row in rows)
    total = rows.shape[0]
    return sorted(
        (
            (tuple(n for n, included in zip(names, pattern) if included), count / total)
            for pattern, count in counts.items()
        ),
        key=lambda item: (-item[1], item[0]),
    )


def count_jumps(
    samples: SampleArray | MultiChainSampleArray,
    columns: list[str],
    target: str,
    fixed_value: float = 0.0,
) -> IntArray:
    """
    Count how often a target moved in or out of the model in each chain.

    Only recorded iterations are seen, so with thinning the count is a lower bound.

    Returns
    -------
    IntArray
        Number of jumps per chain, shape (n_chains,).
    """
    indicators = get_inclusion_indicators(samples, columns, [target], fixed_value)[..., 0]
    if indicators.ndim == 1:
        indicators = indicators[np.newaxis]
    return np.count_nonzero(np.diff(indicators, axis=1), axis=1)


def get_jump_rate(
    samples: SampleArray | MultiChainSampleArray,
    columns: list[str],
    target: str,
    fixed_value: float = 0.0,
) -> FloatArray:
    """Fraction of recorded transitions in which the target jumped, per chain."""
    jumps = count_jumps(samples, columns, target, fixed_value)
    n_rows = np.asarray(samples).shape[-2]
    if n_rows < 2:
        return np.full(jumps.shape, np.nan)
    return jumps / (n_rows - 1)
