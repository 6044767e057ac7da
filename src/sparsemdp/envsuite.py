"""
This module has utilities to build sparse models from
gymnasium environments that expose their dynamics.
"""

import collections
import dataclasses
import logging
from typing import DefaultDict, Optional, Tuple

import gymnasium as gym
from gymnasium import spaces

from sparsemdp import core
from sparsemdp.core import EnvTransition
from sparsemdp.model import SparseModel
from sparsemdp.sparse import SparseMatrix2D

TAXI = "Taxi-v3"
FROZEN_LAKE = "FrozenLake-v1"

SUPPORTED_GYM_ENVS = frozenset((TAXI, FROZEN_LAKE))


@dataclasses.dataclass(frozen=True)
class ModelSpec:
    """
    Class holds an environment and its sparse model.
    """

    name: str
    environment: gym.Env
    model: SparseModel


def load(
    name: str, discount: float = 1.0, seed: Optional[int] = None, **kwargs
) -> ModelSpec:
    """
    Creates an environment with the given arguments, and its model.

    Args:
        name: unique identifier.
        discount: the discount factor of the model.
        seed: a seed for the model's sampling generator.
        kwargs: parameters that are passed to an environment constructor.

    Returns:
        An instance of ModelSpec.

    Raises:
        A ValueError is the environment is unsupported.
    """
    if name not in SUPPORTED_GYM_ENVS:
        raise ValueError(f"Unsupported environment: {name}.")
    environment = gym.make(name, **kwargs)
    num_states, num_actions = __parse_gym_env_dims(environment)
    model = from_env_transition(
        getattr(environment.unwrapped, "P"),
        num_states=num_states,
        num_actions=num_actions,
        discount=discount,
        seed=seed,
    )
    return ModelSpec(name=name, environment=environment, model=model)


def from_env_transition(
    transition: EnvTransition,
    num_states: int,
    num_actions: int,
    discount: float = 1.0,
    seed: Optional[int] = None,
) -> SparseModel:
    """
    Builds a sparse model from a gymnasium style transition mapping,
    `P[state][action] = [(prob, next_state, reward, terminated), ...]`.

    Entries for the same next state are summed, and rewards are
    aggregated into expected rewards per (state, action).
    (state, action) pairs missing from the mapping are self-loops.

    Raises:
        ValueError: if the discount isn't in [0, 1], a probability
            isn't in [0, 1], or a (state, action) row doesn't sum to 1.
    """
    core.check_discount(discount)

    transitions = tuple(
        SparseMatrix2D(num_states, num_states) for _ in range(num_actions)
    )
    rewards = SparseMatrix2D(num_states, num_actions)
    for state in range(num_states):
        action_transitions = transition.get(state, {})
        for action in range(num_actions):
            if action not in action_transitions:
                transitions[action].insert(state, state, 1.0)
                continue
            next_state_probs: DefaultDict[int, float] = collections.defaultdict(float)
            for prob, next_state, reward, _ in action_transitions[action]:
                if prob < 0.0 or prob > 1.0:
                    raise ValueError(
                        f"Invalid transition probability {prob} for ({state}, {action}, {next_state})"
                    )
                next_state_probs[next_state] += prob
                if core.check_different_small(0.0, reward):
                    rewards.add(state, action, reward * prob)
            for next_state, prob in next_state_probs.items():
                if core.check_different_small(0.0, prob):
                    transitions[action].insert(state, next_state, prob)
            total = transitions[action].row_sum(state)
            if core.check_different_small(1.0, total):
                raise ValueError(
                    f"Transition probabilities for ({state}, {action}) sum to {total}, not 1"
                )

    for matrix in transitions:
        matrix.make_compressed()
    rewards.make_compressed()
    logging.debug(
        "Parsed environment transitions for %d states and %d actions",
        num_states,
        num_actions,
    )
    return SparseModel.unchecked(
        num_states=num_states,
        num_actions=num_actions,
        transitions=transitions,
        rewards=rewards,
        discount=discount,
        seed=seed,
    )


def __parse_gym_env_dims(environment: gym.Env) -> Tuple[int, int]:
    """
    Infers the number of states and actions from a `gym.Env`.
    """
    if not isinstance(environment.action_space, spaces.Discrete) or not isinstance(
        environment.observation_space, spaces.Discrete
    ):
        raise ValueError(
            f"Environment must have discrete states and actions: {environment}"
        )
    return int(environment.observation_space.n), int(environment.action_space.n)
