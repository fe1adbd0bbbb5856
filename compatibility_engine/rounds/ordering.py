"""
Visitation order strategies for matching rounds.

The greedy round visits respondents one at a time; the order decides who
picks first. An ordering strategy is any callable taking the eligible user
ids and returning the same ids as a list in visitation order.
"""

import logging
from typing import Callable, List, Optional, Sequence

import numpy as np

logger = logging.getLogger(__name__)

OrderingStrategy = Callable[[Sequence[str]], List[str]]


class ShuffledOrder:
    """
    Uniformly random visitation order.

    Reproducible given a random seed. The random state persists across
    calls, so successive rounds with one instance see different orders.

    Attributes:
        random_state: Numpy RandomState for reproducibility
    """

    def __init__(self, seed: Optional[int] = None):
        self.seed = seed
        self.random_state = np.random.RandomState(seed)

    def __call__(self, user_ids: Sequence[str]) -> List[str]:
        ids = list(user_ids)
        permutation = self.random_state.permutation(len(ids))
        return [ids[i] for i in permutation]


class FixedOrder:
    """
    Caller-specified visitation order.

    Ids listed in `order` come first, in that order; eligible ids not listed
    follow in their input order. Listed ids that are not eligible are ignored.
    """

    def __init__(self, order: Sequence[str]):
        self.order = list(order)

    def __call__(self, user_ids: Sequence[str]) -> List[str]:
        eligible = set(user_ids)
        head = [uid for uid in dict.fromkeys(self.order) if uid in eligible]
        listed = set(head)
        return head + [uid for uid in user_ids if uid not in listed]


def identity_order(user_ids: Sequence[str]) -> List[str]:
    """Visit respondents in input order."""
    return list(user_ids)
