"""Posterior summaries with autocorrelation-based effective sample sizes."""

import logging

import numpy as np
from emcee.autocorr import integrated_time

from ..utils.types import FloatArray, MultiChainSampleArray, SampleArray

logger = logging.getLogger(__name__)


def _as_steps_chains_columns(samples: SampleArray | MultiChainSampleArray) -> FloatArray:
    """Reorder samples to emcee's (n_steps, n_walkers, n_dim) layout, one walker per chain."""
    samples = np.asarray(samples, dtype=float)
    if samples.ndim == 2:
        return samples[:, np.newaxis, :]
    if samples.ndim == 3:
        return np.transpose(samples, (1, 0, 2))
    raise ValueError(
        "Samples must have shape (n_rows, n_columns) or (n_chains, n_rows, n_columns)."
    )


def autocorrelation_time(
    samples: SampleArray | MultiChainSampleArray, c: float = 5.0
) -> FloatArray:
    """Integrated autocorrelation time of every column.

    The autocorrelation function is averaged over chains before integrating,
    with Sokal's automatic windowing (``emcee.autocorr.integrated_time``).
    Short chains give a logged warning rather than an error. Constant columns,
    e.g. a coefficient that was never included, get ``nan``.

    Parameters
    ----------
    samples : SampleArray or MultiChainSampleArray
        Samples of shape (n_rows, n_columns) or (n_chains, n_rows, n_columns).
    c : float, optional
        Window size factor. Default is 5.0.

    Returns
    -------
    FloatArray
        Autocorrelation time per column.
    """
    x = _as_steps_chains_columns(samples)
    constant = np.all(x == x[:1, :1, :], axis=(0, 1))
    tau = np.full(x.shape[2], np.nan)
    if np.all(constant):
        return tau
    tau[~constant] = integrated_time(x[:, :, ~constant], c=c, quiet=True)
    return tau


def summarize(
    samples: SampleArray | MultiChainSampleArray,
    columns: list[str],
    quantiles: tuple[float, ...] = (0.025, 0.5, 0.975),
) -> dict[str, dict[str, float]]:
    """Summarize the posterior of every monitored column.

    Parameters
    ----------
    samples : SampleArray or MultiChainSampleArray
        Samples of shape (n_rows, n_columns) or (n_chains, n_rows, n_columns).
    columns : list of str
        Column labels of ``samples``.
    quantiles : tuple of float, optional
        Quantiles to report. Default is (0.025, 0.5, 0.975).

    Returns
    -------
    dict
        Per column: ``mean``, ``sd``, one ``q<quantile>`` entry per quantile,
        ``tau`` (integrated autocorrelation time) and ``ess`` (effective
        sample size ``n_total / tau``).
    """
    x = _as_steps_chains_columns(samples)
    if x.shape[2] != len(columns):
        raise ValueError("Samples must have one column per label.")

    flat = x.reshape(-1, x.shape[2])
    n_total = flat.shape[0]
    tau = autocorrelation_time(samples)
    qs = np.quantile(flat, quantiles, axis=0)

    summary = {}
    for j, column in enumerate(columns):
        entry = {"mean": float(flat[:, j].mean()), "sd": float(flat[:, j].std(ddof=1))}
        for q, value in zip(quantiles, qs[:, j]):
            entry[f"q{q:g}"] = float(value)
        entry["tau"] = float(tau[j])
        entry["ess"] = float(n_total / tau[j]) if np.isfinite(tau[j]) else float("nan")
        summary[column] = entry

    logger.debug("Summarized %d columns from %d samples", len(columns), n_total)
    return summary
