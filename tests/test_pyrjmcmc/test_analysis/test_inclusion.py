"""Test the inclusion analysis functions."""

import numpy as np
import pytest

from pyrjmcmc.analysis.inclusion import (
    count_jumps,
    get_inclusion_indicators,
    get_inclusion_probabilities,
    get_jump_rate,
    get_model_frequencies,
)


@pytest.fixture
def samples():
    return np.array(
        [
            [0.0, 1.2],
            [0.5, 0.0],
            [0.3, 0.1],
            [0.0, 0.0],
        ]
    )


def test_get_inclusion_indicators(samples):
    """Test the inclusion indicators of every recorded iteration."""
    indicators = get_inclusion_indicators(samples, ["a", "b"])
    np.testing.assert_array_equal(indicators, [[0, 1], [1, 0], [1, 1], [0, 0]])

    only_b = get_inclusion_indicators(samples, ["a", "b"], ["b"], fixed_value=0.1)
    np.testing.assert_array_equal(only_b, [[1], [1], [0], [1]])


def test_unknown_target(samples):
    with pytest.raises(ValueError):
        get_inclusion_indicators(samples, ["a", "b"], ["c"])


def test_get_inclusion_probabilities(samples):
    """Test the inclusion probabilities of one and several chains."""
    assert get_inclusion_probabilities(samples, ["a", "b"]) == {"a": 0.5, "b": 0.5}

    chains = np.stack([samples, np.ones_like(samples), np.ones_like(samples)])
    assert get_inclusion_probabilities(chains, ["a", "b"], ["a"]) == {
        "a": pytest.approx(2.5 / 3)
    }
    assert get_inclusion_probabilities(chains, ["a", "b"], ["a"], chain_average="median") == {
        "a": 1.0
    }


def test_get_model_frequencies(samples):
    """Test the frequencies of the visited sub-models."""
    frequencies = get_model_frequencies(samples, ["a", "b"])
    assert frequencies == [
        ((), 0.25),
        (("a",), 0.25),
        (("a", "b"), 0.25),
        (("b",), 0.25),
    ]

    chains = np.stack([samples, np.ones_like(samples)])
    frequencies = get_model_frequencies(chains, ["a", "b"])
    assert frequencies[0] == (("a", "b"), 5 / 8)
    assert sum(f for _, f in frequencies) == pytest.approx(1.0)


def test_count_jumps(samples):
    """Test counting the jumps of a target per chain."""
    np.testing.assert_array_equal(count_jumps(samples, ["a", "b"], "a"), [2])
    chains = np.stack([samples, np.ones_like(samples)])
    np.testing.assert_array_equal(count_jumps(chains, ["a", "b"], "b"), [3, 0])


def test_get_jump_rate(samples):
    """Test the jump rate per recorded transition."""
    np.testing.assert_allclose(get_jump_rate(samples, ["a", "b"], "a"), [2 / 3])
    assert np.isnan(get_jump_rate(samples[:1], ["a", "b"], "a")).all()
