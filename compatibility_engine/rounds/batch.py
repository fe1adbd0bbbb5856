"""
Batch round across survey versions.

A batch round is what the weekly trigger runs:
1. Group eligible records into one pool per known survey version (a record
   tagged "v3-lite+v2" joins both pools)
2. Run pools largest first; users matched in an earlier pool are removed
   from later pools
3. Exclude pairs already recorded for the period and pairs ruled out by
   trait profiles, through the matcher's pair filter

Persistence, notification and insight generation stay with the caller.
"""

import json
import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from ..answers import Answer
from ..configs.matching import MatchingConfig
from ..filters.profiles import PairFilter, build_profile_filter
from ..schema import MatchResult, SurveyRecord, TraitProfile
from .matcher import MAX_FULL_GRAPH, SAMPLE_SIZE, RoundMatcher, recorded_pair_filter
from .ordering import OrderingStrategy, ShuffledOrder

logger = logging.getLogger(__name__)

VERSION_KEY = "_surveyVersion"
DEFAULT_VERSION = "v2"
VERSION_SEPARATOR = "+"


def current_period_key(now: Optional[datetime] = None) -> str:
    """
    Compute the round period key ("YYYY-Www") for a timestamp.

    Week number is ceil((days since Jan 1 + weekday of Jan 1 + 1) / 7),
    with the weekday counted from Sunday = 0 and fractional days included.

    Args:
        now: Timestamp (default: current local time)

    Returns:
        Period key such as "2026-W07"
    """
    if now is None:
        now = datetime.now()

    start = datetime(now.year, 1, 1, tzinfo=now.tzinfo)
    days = (now - start).total_seconds() / 86400
    start_weekday = (start.weekday() + 1) % 7
    week = math.ceil((days + start_weekday + 1) / 7)
    return f"{now.year}-W{week:02d}"


def survey_versions(answers: Mapping[str, Answer]) -> List[str]:
    """
    Read the survey versions a respondent answered.

    Args:
        answers: Parsed answer map

    Returns:
        Version ids; "v2" when untagged
    """
    value = answers.get(VERSION_KEY)
    if not isinstance(value, str) or not value:
        return [DEFAULT_VERSION]
    return [v for v in value.split(VERSION_SEPARATOR) if v]


def combine_pair_filters(*filters: Optional[PairFilter]) -> Optional[PairFilter]:
    """OR together pair predicates, ignoring None."""
    active = [f for f in filters if f is not None]
    if not active:
        return None
    if len(active) == 1:
        return active[0]

    def pair_filter(user_a: str, user_b: str) -> bool:
        return any(f(user_a, user_b) for f in active)

    return pair_filter


@dataclass
class PoolStats:
    """Per-version pool statistics."""
    eligible: int
    matched: int

    def to_dict(self) -> Dict[str, int]:
        return {"eligible": self.eligible, "matched": self.matched}


@dataclass
class BatchRoundResult:
    """
    Result of a batch round.

    Attributes:
        period: Period key ("YYYY-Www")
        results: All pairs across pools, in pool order
        pool_stats: Version id -> PoolStats
        total_eligible: Number of distinct eligible respondents
    """
    period: str
    results: List[MatchResult] = field(default_factory=list)
    pool_stats: Dict[str, PoolStats] = field(default_factory=dict)
    total_eligible: int = 0

    @property
    def matched_users(self) -> int:
        return 2 * len(self.results)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "period": self.period,
            "matchesCreated": len(self.results),
            "poolStats": {v: s.to_dict() for v, s in self.pool_stats.items()},
            "totalEligible": self.total_eligible,
            "results": [r.to_dict() for r in self.results]
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)


def group_by_version(
    records: Iterable[SurveyRecord],
    known_versions: Iterable[str]
) -> Dict[str, List[SurveyRecord]]:
    """
    Group eligible records into version pools.

    Args:
        records: Survey records
        known_versions: Versions with a matching configuration

    Returns:
        Version id -> records; unknown versions are dropped
    """
    known = set(known_versions)
    pools: Dict[str, List[SurveyRecord]] = {}
    seen = set()

    for record in records:
        if not record.is_eligible or record.user_id in seen:
            continue
        seen.add(record.user_id)

        for version in survey_versions(record.parse().answers):
            if version not in known:
                logger.debug(f"Skipping unknown survey version '{version}' for {record.user_id}")
                continue
            pools.setdefault(version, []).append(record)

    return pools


def run_batch_round(
    records: Iterable[SurveyRecord],
    configs: Mapping[str, MatchingConfig],
    recorded_pairs: Optional[Iterable[Tuple[str, str]]] = None,
    profiles: Optional[Mapping[str, TraitProfile]] = None,
    ordering: Optional[OrderingStrategy] = None,
    random_seed: Optional[int] = None,
    strategy: str = "greedy",
    max_full_graph: int = MAX_FULL_GRAPH,
    sample_size: int = SAMPLE_SIZE,
    now: Optional[datetime] = None
) -> BatchRoundResult:
    """
    Run a batch round over all version pools.

    Args:
        records: Survey records snapshot
        configs: Version id -> matching configuration
        recorded_pairs: Pairs already stored for this period
        profiles: User id -> TraitProfile for the profile pre-filter
        ordering: Visitation order strategy shared by all pools
        random_seed: Seed for the default ordering
        strategy: "greedy" or "edge_greedy"
        max_full_graph: Pool size above which edge_greedy samples
        sample_size: Candidates per respondent when sampling
        now: Timestamp for the period key

    Returns:
        BatchRoundResult
    """
    records = list(records)
    period = current_period_key(now)
    pools = group_by_version(records, configs.keys())
    total_eligible = len({r.user_id for r in records if r.is_eligible})

    logger.info(f"Batch round {period}: {total_eligible} eligible respondents "
                f"in {len(pools)} pools")

    pair_filter = combine_pair_filters(
        build_profile_filter(profiles) if profiles else None,
        recorded_pair_filter(recorded_pairs) if recorded_pairs else None
    )
    if ordering is None:
        ordering = ShuffledOrder(random_seed)

    result = BatchRoundResult(period=period, total_eligible=total_eligible)
    matched_users = set()

    # Largest pool first; ties keep first-seen version order
    for version, pool_records in sorted(pools.items(), key=lambda item: -len(item[1])):
        available = [r for r in pool_records if r.user_id not in matched_users]

        matcher = RoundMatcher(
            configs[version],
            ordering=ordering,
            strategy=strategy,
            pair_filter=pair_filter,
            max_full_graph=max_full_graph,
            sample_size=sample_size,
            random_seed=random_seed
        )
        pool_results = matcher.run(available)

        result.pool_stats[version] = PoolStats(eligible=len(available), matched=2 * len(pool_results))
        for match in pool_results:
            matched_users.add(match.user1_id)
            matched_users.add(match.user2_id)
            result.results.append(match)

        logger.info(f"Pool {version}: {len(available)} available, {len(pool_results)} pairs")

    logger.info(f"Batch round {period} complete: {len(result.results)} pairs")
    return result
