"""
Round matcher: pairs eligible respondents for one matching round.

Default strategy ("greedy"):
- Filter to completed and opted-in respondents
- Visit respondents in the order given by the ordering strategy
- Each unmatched respondent scans every other unmatched respondent (in
  visitation order), skips hard-filtered and caller-excluded candidates,
  and takes the one with the strictly highest compatibility (first seen
  wins ties)
- Both become matched; respondents with no admissible candidate stay
  unmatched

This is a greedy heuristic, not a maximum-weight matching. Early visitors
get their best available partner; the total is not optimized.

Alternative strategy ("edge_greedy", only when requested):
- Score every admissible pair (or, above max_full_graph respondents, a
  random sample of sample_size candidates per respondent)
- Accept pairs in descending compatibility while both sides are free
"""

import logging
from typing import Dict, Iterable, List, Optional, Tuple

import numpy as np

from ..configs.matching import MatchingConfig
from ..filters.hard_filters import is_hard_filtered
from ..filters.profiles import PairFilter
from ..reasons.generator import ReasonGenerator
from ..schema import MatchResult, ParsedSurvey, SurveyRecord, unordered_pair
from ..scoring.aggregate import DimensionScore, compute_compatibility, compute_dimension_scores
from .ordering import OrderingStrategy, ShuffledOrder

logger = logging.getLogger(__name__)

STRATEGIES = ("greedy", "edge_greedy")
MAX_FULL_GRAPH = 2000
SAMPLE_SIZE = 200


class RoundMatcher:
    """
    Matcher for one round over one matching configuration.

    Attributes:
        config: Matching configuration (questions, dimensions, filters, reasons)
        ordering: Visitation order strategy
        strategy: "greedy" (default) or "edge_greedy"
        pair_filter: Optional caller predicate; True excludes the pair
        max_full_graph: Pool size above which edge_greedy samples candidates
        sample_size: Candidates sampled per respondent in large pools
    """

    def __init__(
        self,
        config: MatchingConfig,
        ordering: Optional[OrderingStrategy] = None,
        strategy: str = "greedy",
        pair_filter: Optional[PairFilter] = None,
        max_full_graph: int = MAX_FULL_GRAPH,
        sample_size: int = SAMPLE_SIZE,
        random_seed: Optional[int] = None
    ):
        """
        Initialize the round matcher.

        Args:
            config: Matching configuration
            ordering: Visitation order strategy (default: ShuffledOrder(random_seed))
            strategy: Matching strategy name
            pair_filter: Caller-side exclusion predicate
            max_full_graph: Pool size above which edge_greedy samples
            sample_size: Candidates per respondent when sampling
            random_seed: Seed for the default ordering and candidate sampling

        Raises:
            ValueError: If the strategy is unknown or sampling sizes are invalid
        """
        if strategy not in STRATEGIES:
            raise ValueError(f"Unknown strategy '{strategy}'. Choose from {STRATEGIES}")
        if sample_size < 1 or max_full_graph < 2:
            raise ValueError("sample_size must be >= 1 and max_full_graph >= 2")

        self.config = config
        self.ordering = ordering if ordering is not None else ShuffledOrder(random_seed)
        self.strategy = strategy
        self.pair_filter = pair_filter
        self.max_full_graph = max_full_graph
        self.sample_size = sample_size
        self.random_state = np.random.RandomState(random_seed)
        self.reason_generator = ReasonGenerator(config)

    def run(self, records: Iterable[SurveyRecord]) -> List[MatchResult]:
        """
        Run one matching round.

        Args:
            records: Survey records (ineligible ones are ignored)

        Returns:
            List of MatchResult; no respondent appears in more than one

        Raises:
            ValueError: If the ordering is not a permutation of the eligible pool
        """
        pool = eligible_pool(records)
        logger.info(f"Running {self.strategy} round for config {self.config.version}: "
                    f"{len(pool)} eligible respondents")

        if len(pool) < 2:
            logger.info("Fewer than two eligible respondents, no matches")
            return []

        order = list(self.ordering(list(pool)))
        if len(order) != len(pool) or set(order) != set(pool):
            raise ValueError(
                f"Ordering {self.ordering!r} must return every eligible respondent exactly once, "
                f"got {len(order)} ids for a pool of {len(pool)}"
            )

        if self.strategy == "edge_greedy":
            results = self._run_edge_greedy(pool, order)
        else:
            results = self._run_greedy(pool, order)

        unmatched = len(pool) - 2 * len(results)
        logger.info(f"Round complete: {len(results)} pairs, {unmatched} unmatched")
        return results

    def score_pair(
        self, a: ParsedSurvey, b: ParsedSurvey
    ) -> Optional[Tuple[int, List[DimensionScore]]]:
        """
        Score a candidate pair.

        Args:
            a: First respondent
            b: Second respondent

        Returns:
            (compatibility, dimension scores), or None if the pair is excluded
        """
        if self.pair_filter is not None and self.pair_filter(a.user_id, b.user_id):
            logger.debug(f"Pair filter excludes {a.user_id}/{b.user_id}")
            return None
        if is_hard_filtered(a, b, self.config):
            return None

        dimension_scores = compute_dimension_scores(a, b, self.config)
        return compute_compatibility(a, b, self.config, dimension_scores), dimension_scores

    def _run_greedy(self, pool: Dict[str, ParsedSurvey], order: List[str]) -> List[MatchResult]:
        matched = set()
        results = []

        for user_id in order:
            if user_id in matched:
                continue

            user = pool[user_id]
            best_id = None
            best_score = -1
            best_dimensions: List[DimensionScore] = []

            for candidate_id in order:
                if candidate_id == user_id or candidate_id in matched:
                    continue

                scored = self.score_pair(user, pool[candidate_id])
                if scored is None:
                    continue

                compatibility, dimension_scores = scored
                if compatibility > best_score:
                    best_id = candidate_id
                    best_score = compatibility
                    best_dimensions = dimension_scores

            if best_id is None:
                logger.debug(f"No admissible partner for {user_id}")
                continue

            matched.add(user_id)
            matched.add(best_id)
            results.append(self._build_result(pool[user_id], pool[best_id], best_score, best_dimensions))

        return results

    def _run_edge_greedy(self, pool: Dict[str, ParsedSurvey], order: List[str]) -> List[MatchResult]:
        position = {uid: i for i, uid in enumerate(order)}
        edges = []

        for i, j in self._candidate_pairs(order):
            scored = self.score_pair(pool[order[i]], pool[order[j]])
            if scored is not None:
                edges.append((scored[0], i, j))

        logger.info(f"Scored {len(edges)} admissible pairs")

        # Descending compatibility, ties by visitation order
        edges.sort(key=lambda e: (-e[0], e[1], e[2]))

        matched = set()
        results = []
        for compatibility, i, j in edges:
            if i in matched or j in matched:
                continue
            matched.add(i)
            matched.add(j)

            a, b = pool[order[i]], pool[order[j]]
            dimension_scores = compute_dimension_scores(a, b, self.config)
            results.append(self._build_result(a, b, compatibility, dimension_scores))

        results.sort(key=lambda r: position[r.user1_id])
        return results

    def _candidate_pairs(self, order: List[str]) -> List[Tuple[int, int]]:
        """Index pairs (i < j) in visitation order to score."""
        n = len(order)
        if n <= self.max_full_graph:
            return [(i, j) for i in range(n) for j in range(i + 1, n)]

        logger.info(f"Pool of {n} exceeds {self.max_full_graph}, "
                    f"sampling {self.sample_size} candidates per respondent")
        pairs = set()
        for i in range(n):
            candidates = self.random_state.choice(n - 1, size=min(self.sample_size, n - 1), replace=False)
            for c in candidates:
                j = int(c) if c < i else int(c) + 1
                pairs.add((min(i, j), max(i, j)))
        return sorted(pairs)

    def _build_result(
        self,
        a: ParsedSurvey,
        b: ParsedSurvey,
        compatibility: int,
        dimension_scores: List[DimensionScore]
    ) -> MatchResult:
        reasons = self.reason_generator.generate(a, b, dimension_scores)
        logger.debug(f"Matched {a.user_id} with {b.user_id} at {compatibility}")
        return MatchResult(
            user1_id=a.user_id,
            user2_id=b.user_id,
            compatibility=compatibility,
            reasons=tuple(reasons)
        )


def eligible_pool(records: Iterable[SurveyRecord]) -> Dict[str, ParsedSurvey]:
    """
    Parse eligible records into an id-keyed pool.

    Args:
        records: Survey records

    Returns:
        Ordered dict of user id -> ParsedSurvey; duplicate ids keep the first record
    """
    pool: Dict[str, ParsedSurvey] = {}
    for record in records:
        if not record.is_eligible:
            continue
        if record.user_id in pool:
            logger.warning(f"Duplicate survey record for user {record.user_id}, keeping the first")
            continue
        pool[record.user_id] = record.parse()
    return pool


def run_matching_round(
    records: Iterable[SurveyRecord],
    config: MatchingConfig,
    ordering: Optional[OrderingStrategy] = None,
    strategy: str = "greedy",
    pair_filter: Optional[PairFilter] = None,
    random_seed: Optional[int] = None
) -> List[MatchResult]:
    """
    Convenience function to run one matching round.

    Args:
        records: Survey records
        config: Matching configuration
        ordering: Visitation order strategy
        strategy: "greedy" or "edge_greedy"
        pair_filter: Caller-side exclusion predicate
        random_seed: Seed for the default ordering

    Returns:
        List of MatchResult
    """
    matcher = RoundMatcher(
        config,
        ordering=ordering,
        strategy=strategy,
        pair_filter=pair_filter,
        random_seed=random_seed
    )
    return matcher.run(records)


def recorded_pair_filter(recorded_pairs: Iterable[Tuple[str, str]]) -> PairFilter:
    """
    Build a pair predicate excluding pairs already recorded for the period.

    Args:
        recorded_pairs: (user_a, user_b) pairs, in either order

    Returns:
        Callable (user_a, user_b) -> True when the pair was already recorded
    """
    recorded = {unordered_pair(a, b) for a, b in recorded_pairs}

    def pair_filter(user_a: str, user_b: str) -> bool:
        return unordered_pair(user_a, user_b) in recorded

    return pair_filter
