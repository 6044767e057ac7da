"""
Probability checks and sampling over sparse distributions.
"""

from typing import Any, Mapping

import numpy as np

from sparsemdp import core


def is_probability(num_states: int, num_actions: int, container: Any) -> bool:
    """
    Checks that a dense transition container holds a valid transition function.

    Args:
        num_states: the number of states.
        num_actions: the number of actions.
        container: an array-like, addressable as `container[state][action][next_state]`.

    Returns:
        True if the container has shape (S, A, S), every value lies in [0, 1]
        and every (state, action) row sums to 1 (within `core.EPSILON`).
    """
    try:
        values = np.asarray(container, dtype=np.float64)
    except (TypeError, ValueError):
        # ragged or non-numeric containers
        return False
    if values.shape != (num_states, num_actions, num_states):
        return False
    if np.any(values < 0.0) or np.any(values > 1.0):
        return False
    return bool(np.all(np.abs(np.sum(values, axis=2) - 1.0) <= core.EPSILON))


def sample_probability(distribution: Mapping[int, float], draw: float) -> int:
    """
    Picks an outcome from a sparse distribution using inverse transform sampling.

    Args:
        distribution: a mapping of outcome to probability; only nonzero entries.
        draw: a uniform value in [0, 1).

    Returns:
        The first outcome whose cumulative probability exceeds `draw`.
        If rounding errors keep the cumulative sum from reaching `draw`,
        the last outcome is returned instead.
    """
    cumulative = 0.0
    outcome = None
    for outcome, prob in distribution.items():
        cumulative += prob
        if cumulative > draw:
            return outcome
    if outcome is None:
        raise ValueError("Cannot sample from an empty distribution.")
    return outcome
