"""Quota allocation across the NEW, REVIEW and MASTERED pools."""
import math
from typing import NamedTuple

from leet_daily.db import validate_daily_count

NEW_RATIO = 0.5
REVIEW_RATIO = 0.4
MASTERED_RATIO = 0.1


class Quota(NamedTuple):
    new: int
    review: int
    mastered: int

    @property
    def total(self) -> int:
        return self.new + self.review + self.mastered


def target_quotas(count: int) -> Quota:
    """Split a daily count 50/40/10 before looking at pool supply.

    New and review round up, mastered rounds down with a floor of one.
    Any excess from rounding comes off mastered first, then one from review.
    """
    validate_daily_count(count)
    new = math.ceil(count * NEW_RATIO)
    review = math.ceil(count * REVIEW_RATIO)
    mastered = max(1, math.floor(count * MASTERED_RATIO))

    total = new + review + mastered
    if total > count:
        mastered = max(0, mastered - (total - count))
        if new + review + mastered > count:
            review = max(0, review - 1)
    return Quota(new, review, mastered)


def allocate(count: int, available: Quota) -> Quota:
    """Return how many problems to draw from each pool.

    Targets are capped to each pool's supply, then any shortfall is handed
    out greedily in NEW, REVIEW, MASTERED order until the count is met or
    every pool is exhausted.
    """
    target = target_quotas(count)
    taken = [min(t, a) for t, a in zip(target, available)]

    remaining = count - sum(taken)
    for i, supply in enumerate(available):
        if remaining <= 0:
            break
        extra = min(remaining, supply - taken[i])
        if extra > 0:
            taken[i] += extra
            remaining -= extra
    return Quota(*taken)
