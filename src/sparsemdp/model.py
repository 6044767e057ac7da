"""
This module has a sparse markov decision process model.
"""

import copy
import logging
from typing import Any, Optional, Sequence, Tuple, Union

import numpy as np

from sparsemdp import core, probability, seeder
from sparsemdp.core import EPSILON
from sparsemdp.sparse import SparseMatrix2D

TransitionMatrix = Tuple[SparseMatrix2D, ...]
RewardMatrix = SparseMatrix2D


class SparseModel:
    """
    Markov Decision Process with sparse transition and reward tables.

    Transitions are stored as one S x S table per action, indexed
    `[action][state, next_state]`. Rewards are stored as a single S x A
    table of expected rewards, i.e. for each (state, action) pair the
    reward of every next state weighted by its transition probability.
    The reward of a specific next state can't be recovered from it.

    Only nonzero entries are kept, so memory and the cost of most
    operations grow with the number of possible transitions rather
    than with S x A x S.

    Each instance owns a random number generator, used by `sample_sr`.
    Sampling advances the generator, so it isn't a read-only operation
    and instances shouldn't be sampled from multiple threads at once.
    Use `copy` to give each worker its own instance.
    """

    def __init__(
        self,
        num_states: int,
        num_actions: int,
        discount: float = 1.0,
        seed: Optional[int] = None,
    ):
        """
        Creates a model where every action keeps the agent in the
        state it's in, with probability 1, and all rewards are 0.

        Args:
            num_states: the number of states of the world.
            num_actions: the number of actions available to the agent.
            discount: the discount factor, in [0, 1].
            seed: a seed for the sampling generator. Drawn from
                `sparsemdp.seeder` if not provided.

        Raises:
            ValueError: if the discount isn't in [0, 1].
        """
        core.check_discount(discount)
        transitions = []
        for _ in range(num_actions):
            matrix = SparseMatrix2D(num_states, num_states)
            for state in range(num_states):
                matrix.insert(state, state, 1.0)
            transitions.append(matrix)
        self._init(
            num_states=num_states,
            num_actions=num_actions,
            transitions=tuple(transitions),
            rewards=SparseMatrix2D(num_states, num_actions),
            discount=discount,
            seed=seed,
        )

    def _init(
        self,
        num_states: int,
        num_actions: int,
        transitions: Sequence[SparseMatrix2D],
        rewards: SparseMatrix2D,
        discount: float,
        seed: Optional[int],
    ) -> None:
        self._num_states = num_states
        self._num_actions = num_actions
        self._transitions: TransitionMatrix = tuple(transitions)
        self._rewards = rewards
        self._discount = discount
        self._rng = np.random.default_rng(
            seed if seed is not None else seeder.get_seed()
        )

    @classmethod
    def unchecked(
        cls,
        num_states: int,
        num_actions: int,
        transitions: Sequence[SparseMatrix2D],
        rewards: SparseMatrix2D,
        discount: float,
        seed: Optional[int] = None,
    ) -> "SparseModel":
        """
        Creates a model from already built tables, without checking them.

        The model takes ownership of the tables, so the caller shouldn't
        modify them afterwards. Neither the tables nor the discount are
        validated: it's up to the caller to provide A tables of S x S valid
        transition probabilities, an S x A reward table and a discount in
        [0, 1]. Anything else leaves the model in an undefined state.
        """
        model = cls.__new__(cls)
        model._init(
            num_states=num_states,
            num_actions=num_actions,
            transitions=transitions,
            rewards=rewards,
            discount=discount,
            seed=seed,
        )
        return model

    @classmethod
    def from_dense(
        cls,
        num_states: int,
        num_actions: int,
        transitions: Any,
        rewards: Any,
        discount: float = 1.0,
        seed: Optional[int] = None,
    ) -> "SparseModel":
        """
        Creates a model from dense containers.

        Args:
            num_states: the number of states of the world.
            num_actions: the number of actions available to the agent.
            transitions: an array-like, addressable as `transitions[state][action][next_state]`.
            rewards: an array-like, addressable as `rewards[state][action][next_state]`.
            discount: the discount factor, in [0, 1].
            seed: a seed for the sampling generator.

        Raises:
            ValueError: if the discount isn't in [0, 1] or the transitions
                aren't a valid transition function.
        """
        model = cls(num_states, num_actions, discount=discount, seed=seed)
        model.set_transition_function(transitions)
        model.set_reward_function(rewards)
        return model

    @classmethod
    def from_model(
        cls, model: core.SupportsModel, seed: Optional[int] = None
    ) -> "SparseModel":
        """
        Copies any model into a sparse one.

        Useful to convert models that compute their dynamics on the fly
        into one where they are stored. Rewards of the source are
        aggregated into expected rewards per (state, action).

        Args:
            model: an object with the methods of `core.SupportsModel`.
            seed: a seed for the sampling generator.

        Raises:
            ValueError: if the discount isn't in [0, 1], a probability
                isn't in [0, 1], or a (state, action) row doesn't sum to 1.
        """
        num_states, num_actions = model.get_s(), model.get_a()
        discount = model.get_discount()
        core.check_discount(discount)

        transitions = tuple(
            SparseMatrix2D(num_states, num_states) for _ in range(num_actions)
        )
        rewards = SparseMatrix2D(num_states, num_actions)
        for state in range(num_states):
            for action in range(num_actions):
                for next_state in range(num_states):
                    prob = model.get_transition_probability(state, action, next_state)
                    if prob < 0.0 or prob > 1.0:
                        raise ValueError(
                            f"Invalid transition probability {prob} for ({state}, {action}, {next_state})"
                        )
                    if core.check_different_small(0.0, prob):
                        transitions[action].insert(state, next_state, prob)
                    reward = model.get_expected_reward(state, action, next_state)
                    if core.check_different_small(0.0, reward):
                        rewards.add(state, action, reward * prob)
                total = transitions[action].row_sum(state)
                if core.check_different_small(1.0, total):
                    raise ValueError(
                        f"Transition probabilities for ({state}, {action}) sum to {total}, not 1"
                    )

        for matrix in transitions:
            matrix.make_compressed()
        rewards.make_compressed()
        logging.debug(
            "Converted %s into a sparse model with %d transitions",
            type(model).__name__,
            sum(matrix.nnz() for matrix in transitions),
        )
        return cls.unchecked(
            num_states=num_states,
            num_actions=num_actions,
            transitions=transitions,
            rewards=rewards,
            discount=discount,
            seed=seed,
        )

    def set_transition_function(self, transitions: Any) -> None:
        """
        Replaces the transition function with the one provided.

        Values within `EPSILON` of zero aren't stored.

        Args:
            transitions: an array-like, addressable as `transitions[state][action][next_state]`.

        Raises:
            ValueError: if the container isn't S x A x S or doesn't hold
                valid probabilities. The model is left unchanged.
        """
        if not probability.is_probability(
            self._num_states, self._num_actions, transitions
        ):
            raise ValueError(
                "Input transition matrix does not contain valid probabilities."
            )

        values = np.asarray(transitions, dtype=np.float64)
        matrices = []
        for action in range(self._num_actions):
            matrix = SparseMatrix2D(self._num_states, self._num_states)
            # |S| x |S'|
            rows, cols = np.nonzero(np.abs(values[:, action, :]) > EPSILON)
            for state, next_state in zip(rows.tolist(), cols.tolist()):
                matrix.insert(state, next_state, values[state, action, next_state])
            matrix.make_compressed()
            matrices.append(matrix)
        self._transitions = tuple(matrices)
        logging.debug(
            "Set transition function with %d transitions",
            sum(matrix.nnz() for matrix in matrices),
        )

    def set_sparse_transition_function(
        self, transitions: Sequence[SparseMatrix2D]
    ) -> None:
        """
        Replaces the transition function with A tables of S x S.

        The tables are NOT validated; it's up to the caller to provide
        valid transition probabilities.
        """
        self._transitions = tuple(transitions)

    def set_reward_function(self, rewards: Any) -> None:
        """
        Replaces the reward function with the one provided.

        Rewards are weighted by the transition probabilities currently in
        the model, so the transition function must be set first.
        Any real value is accepted.

        Args:
            rewards: an array-like, addressable as `rewards[state][action][next_state]`.
        """
        values = np.asarray(rewards, dtype=np.float64)
        matrix = SparseMatrix2D(self._num_states, self._num_actions)
        for action, transitions in enumerate(self._transitions):
            for state in range(self._num_states):
                expected_reward = 0.0
                for next_state, prob in transitions.row(state).items():
                    expected_reward += values[state, action, next_state] * prob
                if core.check_different_small(expected_reward, 0.0):
                    matrix.insert(state, action, expected_reward)
        matrix.make_compressed()
        self._rewards = matrix

    def set_sparse_reward_function(self, rewards: SparseMatrix2D) -> None:
        """
        Replaces the reward function with an S x A table of expected rewards.
        """
        self._rewards = rewards

    def set_discount(self, discount: float) -> None:
        """
        Sets a new discount factor.

        Raises:
            ValueError: if the discount isn't in [0, 1].
        """
        core.check_discount(discount)
        self._discount = discount

    def sample_sr(self, state: int, action: int) -> Tuple[int, float]:
        """
        Samples a next state and reward for a (state, action) pair.

        The next state is picked with the transition probability
        in the model; the reward is the expected reward of the pair.

        Raises:
            IndexError: if the state or action are outside the model.
        """
        if not (0 <= state < self._num_states and 0 <= action < self._num_actions):
            raise IndexError(
                f"({state}, {action}) is outside the model: ({self._num_states}, {self._num_actions})"
            )
        next_state = probability.sample_probability(
            self._transitions[action].row(state), self._rng.random()
        )
        return next_state, self._rewards.coeff(state, action)

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
        Returns the stored transition probability, or 0 if there's none.
        """
        if not 0 <= action < self._num_actions:
            return 0.0
        return self._transitions[action].coeff(state, next_state)

    def get_expected_reward(self, state: int, action: int, next_state: int) -> float:
        """
        Returns the expected reward of (state, action), for any next state.
        """
        del next_state
        return self._rewards.coeff(state, action)

    def get_transition_function(
        self, action: Optional[int] = None
    ) -> Union[TransitionMatrix, SparseMatrix2D]:
        """
        Returns the transition tables, or the one for a given action.
        They are meant for inspection and must not be modified.
        """
        if action is None:
            return self._transitions
        return self._transitions[action]

    def get_reward_function(self) -> RewardMatrix:
        """
        Returns the S x A expected reward table.
        It's meant for inspection and must not be modified.
        """
        return self._rewards

    def is_terminal(self, state: int) -> bool:
        """
        A state is terminal if every action keeps the agent in it
        with probability 1.
        """
        return all(
            core.check_equal_small(1.0, transitions.coeff(state, state))
            for transitions in self._transitions
        )

    def copy(self, seed: Optional[int] = None) -> "SparseModel":
        """
        Returns an independent copy of the model, with its own generator.
        """
        return type(self).unchecked(
            num_states=self._num_states,
            num_actions=self._num_actions,
            transitions=copy.deepcopy(self._transitions),
            rewards=copy.deepcopy(self._rewards),
            discount=self._discount,
            seed=seed,
        )
