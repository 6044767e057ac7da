"""
Example on building a sparse model from an environment's dynamics,
and from play, and sampling from both.
"""

import argparse
import dataclasses
import logging
from typing import Any, Mapping

import numpy as np

from sparsemdp import empiricmdp, envsuite, seeder
from sparsemdp.model import SparseModel


@dataclasses.dataclass(frozen=True)
class Args:
    """
    Example args.

    Args:
        num_episodes: episodes of random play, to build the empirical model.
        num_samples: samples drawn from each model, per (state, action).
    """

    env_name: str
    env_args: Mapping[str, Any]
    discount: float
    num_episodes: int
    num_samples: int
    state: int
    action: int
    seed: int


def parse_args() -> Args:
    """
    Parses std in arguments and returns an instanace of Args.
    """
    arg_parser = argparse.ArgumentParser(
        prog="""Sparse Model Sampling Example. Provide env name and args. Usage:
        python -m sparsemdp.examples.model_sampling --env-name [name] --num-samples [value]
        """
    )
    arg_parser.add_argument("--env-name", type=str, required=True)
    arg_parser.add_argument("--discount", type=float, default=1.0)
    arg_parser.add_argument("--num-episodes", type=int, default=1000)
    arg_parser.add_argument("--num-samples", type=int, default=10_000)
    arg_parser.add_argument("--state", type=int, default=0)
    arg_parser.add_argument("--action", type=int, default=0)
    arg_parser.add_argument("--seed", type=int, default=42)
    args = vars(arg_parser.parse_args())
    fields = dataclasses.fields(Args)
    known_args = {
        field.name: args.pop(field.name) for field in fields if field.name in args
    }
    return Args(**known_args, env_args=args)


def sample_frequencies(
    model: SparseModel, state: int, action: int, num_samples: int
) -> np.ndarray:
    """
    Returns the frequency of each next state over `num_samples` draws.
    """
    counts = np.zeros(shape=model.get_s(), dtype=np.int64)
    for _ in range(num_samples):
        next_state, _ = model.sample_sr(state, action)
        counts[next_state] += 1
    return counts / num_samples


def main(args: Args):
    """
    Entry point.
    """
    seeder.set_root_seed(args.seed)
    model_spec = envsuite.load(
        name=args.env_name, discount=args.discount, **args.env_args
    )
    model = model_spec.model
    logging.info(
        "Loaded %s: %d states, %d actions",
        model_spec.name,
        model.get_s(),
        model.get_a(),
    )
    logging.info(
        "Terminal states: %s",
        [state for state in range(model.get_s()) if model.is_terminal(state)],
    )

    num_actions = model.get_a()
    rng = np.random.default_rng(args.seed)
    mdp_stats = empiricmdp.collect_mdp_stats(
        environment=model_spec.environment,
        policy=lambda _: rng.integers(0, num_actions),
        state_id_fn=int,
        action_id_fn=int,
        num_episodes=args.num_episodes,
        logging_frequency_episodes=args.num_episodes // 10,
    )
    empirical_model = empiricmdp.create_sparse_model(
        mdp_stats,
        num_states=model.get_s(),
        num_actions=num_actions,
        discount=args.discount,
    )

    for name, source in (("env", model), ("empirical", empirical_model)):
        frequencies = sample_frequencies(
            source, state=args.state, action=args.action, num_samples=args.num_samples
        )
        logging.info(
            "%s model, expected reward %f, next state frequencies: \n%s",
            name,
            source.get_expected_reward(args.state, args.action, args.state),
            frequencies,
        )
    model_spec.environment.close()


if __name__ == "__main__":
    main(args=parse_args())
