"""Random sampling with a per-topic cap."""
import random
from collections import Counter
from typing import Mapping, Sequence

from leet_daily.models import Problem

DEFAULT_MAX_PER_TOPIC = 2


def sample(
    pool: Sequence[Problem],
    count: int,
    topic_map: Mapping[int, Sequence[str]] | None = None,
    max_per_topic: int = DEFAULT_MAX_PER_TOPIC,
    rng: random.Random | None = None,
    topic_counts: Counter | None = None,
) -> list[Problem]:
    """Pick `count` problems from `pool` at random, spreading topics.

    The pool is shuffled uniformly and walked in order; a problem is taken
    only if none of its topics is already at `max_per_topic`. If the cap
    leaves slots unfilled, the rest are filled from the same shuffled order
    ignoring the cap, so the result always has min(count, len(pool)) items.
    Problems without topics are never constrained.

    `topic_counts` carries topic tallies in from earlier draws (for example
    other pools on the same day) and is updated in place.
    """
    if not pool or count <= 0:
        return []
    if count >= len(pool):
        if topic_counts is not None:
            for problem in pool:
                topic_counts.update(_topics(problem, topic_map))
        return list(pool)

    rng = rng or random.Random()
    counts = topic_counts if topic_counts is not None else Counter()
    shuffled = list(pool)
    rng.shuffle(shuffled)

    chosen: list[Problem] = []
    chosen_ids: set[int] = set()
    for problem in shuffled:
        if len(chosen) == count:
            break
        topics = _topics(problem, topic_map)
        if all(counts[t] < max_per_topic for t in topics):
            chosen.append(problem)
            chosen_ids.add(problem.id)
            counts.update(topics)

    # Cap could not be met; fill the remaining slots first-come.
    for problem in shuffled:
        if len(chosen) == count:
            break
        if problem.id not in chosen_ids:
            chosen.append(problem)
            chosen_ids.add(problem.id)
            counts.update(_topics(problem, topic_map))
    return chosen


def _topics(problem: Problem, topic_map: Mapping[int, Sequence[str]] | None) -> set[str]:
    if topic_map is None:
        return set(problem.topics)
    return set(topic_map.get(problem.id, ()))
