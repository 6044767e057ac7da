"""
This module defines core abstractions.
"""

from typing import Dict, List, Mapping, Protocol, Sequence, Tuple

EPSILON = 1e-6

StateAction = Tuple[int, int]
StateTransition = Mapping[int, Sequence[Tuple[float, int, float, bool]]]
# Type: Mapping[state, Mapping[action, Sequence[Tuple[prob, next_state, reward, terminated]]]]
EnvTransition = Mapping[int, StateTransition]
MutableStateTransition = Dict[int, List[Tuple[float, int, float, bool]]]
MutableEnvTransition = Dict[int, MutableStateTransition]


class SupportsModel(Protocol):
    """
    An interface for markov decision process models that can be
    read one transition at a time.

    Any object with these methods can be converted into a
    `sparsemdp.model.SparseModel`, regardless of how it stores
    (or computes) its dynamics.
    """

    def get_s(self) -> int:
        """
        Returns:
            The number of states.
        """

    def get_a(self) -> int:
        """
        Returns:
            The number of actions.
        """

    def get_discount(self) -> float:
        """
        Returns:
            The discount factor.
        """

    def get_transition_probability(
        self, state: int, action: int, next_state: int
    ) -> float:
        """
        Given a state s, action a, and next state s' returns a transition probability.
        Args:
            state: starting state
            action: agent's action
            next_state: state transition into after taking the action.

        Returns:
            A transition probability.
        """

    def get_expected_reward(self, state: int, action: int, next_state: int) -> float:
        """
        Given a state s, action a, and next state s' returns the expected reward.

        Args:
            state: starting state
            action: agent's action
            next_state: state transition into after taking the action.
        Returns
            An expected reward.
        """


def check_equal_small(lhs: float, rhs: float) -> bool:
    """
    Returns true if both values are within `EPSILON` of each other.
    """
    return abs(lhs - rhs) <= EPSILON


def check_different_small(lhs: float, rhs: float) -> bool:
    """
    Returns true if the values are further than `EPSILON` apart.
    """
    return not check_equal_small(lhs, rhs)


def check_discount(discount: float) -> None:
    """
    Raises:
        ValueError: if the discount isn't in [0, 1].
    """
    if not 0.0 <= discount <= 1.0:
        raise ValueError(f"Discount must be in [0, 1]. Got {discount}")
