"""
This module has classes that pertain to empirical decision processes,
i.e. models built from visit counts collected through play.
"""
import collections
import copy
import dataclasses
import logging
from typing import (
    Any,
    Callable,
    DefaultDict,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    TypeVar,
)

import gymnasium as gym

from sparsemdp import core
from sparsemdp.core import StateAction
from sparsemdp.model import SparseModel

Numeric = TypeVar("Numeric", int, float)

TransitionStats = Mapping[StateAction, Mapping[int, int]]
RewardStats = Mapping[StateAction, Mapping[int, float]]
MdpFn = Mapping[Tuple[int, int, int], float]


@dataclasses.dataclass(frozen=True)
class MdpStats:
    """
    Class contains collected transition and aggregate rewards for (S, A, S') tuples.
    """

    transitions: TransitionStats
    rewards: RewardStats


@dataclasses.dataclass(frozen=True)
class MdpFunctions:
    """
    Class contains functions for Markov decision process.
    """

    transition: MdpFn
    reward: MdpFn


class InferredMdp(core.SupportsModel):
    """
    Class for a markov decision process inferred from transitions of a policy pi.

    (state, action) pairs that were never visited are treated as
    self-loops, so every pair has a valid distribution of next states.
    """

    def __init__(
        self,
        mdp_functions: MdpFunctions,
        num_states: int,
        num_actions: int,
        discount: float = 1.0,
    ):
        self._mdp_functions = mdp_functions
        self._num_states = num_states
        self._num_actions = num_actions
        self._discount = discount
        self._visited = frozenset(
            (state, action) for state, action, _ in mdp_functions.transition
        )

    def get_s(self) -> int:
        return self._num_states

    def get_a(self) -> int:
        return self._num_actions

    def get_discount(self) -> float:
        return self._discount

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
        if (state, action) not in self._visited:
            return 1.0 if state == next_state else 0.0
        key = (state, action, next_state)
        return self._mdp_functions.transition.get(key, 0.0)

    def get_expected_reward(self, state: int, action: int, next_state: int) -> float:
        """
        Given a state s, action a, and next state s' returns the average reward.

        Args:
            state: starting state
            action: agent's action
            next_state: state transition into after taking the action.
        Returns
            The average reward observed for the transition.
        """
        key = (state, action, next_state)
        return self._mdp_functions.reward.get(key, 0.0)


def collect_mdp_stats(
    environment: gym.Env,
    policy: Callable[[Any], Any],
    state_id_fn: Callable[[Any], int],
    action_id_fn: Callable[[Any], int],
    num_episodes: int,
    logging_frequency_episodes: int,
    max_episode_steps: Optional[int] = None,
) -> MdpStats:
    """
    Collects empirical statistics from an environment through play.

    Args:
        environment: a gymnasium environment.
        policy: maps an observation to an action.
        state_id_fn: maps an observation to a state ID.
        action_id_fn: maps an action to an action ID.
        num_episodes: the number of episodes to play.
        logging_frequency_episodes: log progress every this many episodes.
            Non-positive values disable logging.
        max_episode_steps: ends an episode after this many steps, if set.
    """
    transitions: DefaultDict[
        StateAction, DefaultDict[int, int]
    ] = collections.defaultdict(_transitions_defaultdict)
    rewards: DefaultDict[
        StateAction, DefaultDict[int, float]
    ] = collections.defaultdict(_rewards_defaultdict)
    logging_enabled = logging_frequency_episodes > 0
    for episode in range(1, num_episodes + 1):
        obs, _ = environment.reset()
        steps = 0
        while True:
            action = policy(obs)
            next_obs, next_reward, terminated, truncated, _ = environment.step(action)

            state = state_id_fn(obs)
            action_id = action_id_fn(action)
            next_state = state_id_fn(next_obs)
            transitions[(state, action_id)][next_state] += 1
            rewards[(state, action_id)][next_state] += float(next_reward)

            steps += 1
            if terminated or truncated:
                break
            if max_episode_steps is not None and steps >= max_episode_steps:
                break
            obs = next_obs

        # non-positive logging frequency disables logging
        if logging_enabled and episode % logging_frequency_episodes == 0:
            logging.info("Episode %d/%d", episode, num_episodes)

    return MdpStats(transitions=transitions, rewards=rewards)


def aggregate_stats(elements: Sequence[MdpStats]) -> MdpStats:
    """
    Aggregates multiple instances of MDPStats into one.
    """

    transitions: DefaultDict[
        StateAction, DefaultDict[int, int]
    ] = collections.defaultdict(_transitions_defaultdict)
    rewards: DefaultDict[
        StateAction, DefaultDict[int, float]
    ] = collections.defaultdict(_rewards_defaultdict)

    for element in elements:
        transitions = _accumulate(transitions, element.transitions)
        rewards = _accumulate(rewards, element.rewards)
    return MdpStats(transitions=transitions, rewards=rewards)


def _accumulate(
    collector: DefaultDict[StateAction, DefaultDict[int, Numeric]],
    element: Mapping[StateAction, Mapping[int, Numeric]],
) -> DefaultDict[StateAction, DefaultDict[int, Numeric]]:
    """
    Accumulates stats from element into collector.
    """
    new_collector = copy.deepcopy(collector)
    for (state, action), next_state_values in element.items():
        for next_state, value in next_state_values.items():
            new_collector[(state, action)][next_state] += value
    return new_collector


def _transitions_defaultdict() -> DefaultDict[int, int]:
    """
    Returns:
        A defaultdict of integers.
    Created to bypass serialization issues with lambdas.
    """
    return collections.defaultdict(int)


def _rewards_defaultdict() -> DefaultDict[int, float]:
    """
    A defaultdict of floats.
    Created to bypass serialization issues with lambdas.
    """
    return collections.defaultdict(float)


def create_mdp_functions(mdp_stats: MdpStats) -> MdpFunctions:
    """
    Converts MdpStats into MdpFunctions.
        - Normalizes state visits
        - Averages rewards.

    Args:
        mdp_stats: an instance of MdpStats.

    Returns:
        An instance of MdpFunctions.
    """

    transitions = {}
    rewards = {}

    # only computes for visited states - so min visits = 1.
    for state_action, next_state_values in mdp_stats.transitions.items():
        state, action = state_action
        total_visits = sum(next_state_values.values())
        for next_state, visits in next_state_values.items():
            entry_key = (state, action, next_state)
            # normalize visits
            transitions[entry_key] = visits / total_visits
            # average rewards
            rewards[entry_key] = mdp_stats.rewards[state_action][next_state] / visits
    return MdpFunctions(transition=transitions, reward=rewards)


def create_sparse_model(
    mdp_stats: MdpStats,
    num_states: int,
    num_actions: int,
    discount: float = 1.0,
    seed: Optional[int] = None,
) -> SparseModel:
    """
    Builds a sparse model from visit counts.

    Raises:
        ValueError: if the discount isn't in [0, 1].
    """
    inferred_mdp = InferredMdp(
        mdp_functions=create_mdp_functions(mdp_stats),
        num_states=num_states,
        num_actions=num_actions,
        discount=discount,
    )
    return SparseModel.from_model(inferred_mdp, seed=seed)
