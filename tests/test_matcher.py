"""Tests for the round matcher and visitation orderings.

This module tests:
- Eligibility filtering and duplicate handling
- Greedy assignment under a fixed visitation order
- Hard filters holding under many random orders
- Disjointness of the emitted pairs
- The edge_greedy alternative strategy
"""

import json

import pytest

from compatibility_engine.rounds import (
    FixedOrder,
    RoundMatcher,
    ShuffledOrder,
    identity_order,
    recorded_pair_filter,
    run_matching_round,
)
from compatibility_engine.run import _create_synthetic_surveys
from compatibility_engine.schema import SurveyRecord


def _tiny_records(make_record, scores, attitude="A"):
    return [make_record(f"u{i + 1}", {"score": s, "attitude": attitude}) for i, s in enumerate(scores)]


def _users(results):
    return [uid for r in results for uid in (r.user1_id, r.user2_id)]


class TestOrderings:
    """Tests for visitation order strategies."""

    def test_shuffled_is_permutation(self):
        ids = [f"u{i}" for i in range(20)]
        order = ShuffledOrder(seed=3)(ids)
        assert sorted(order) == sorted(ids)

    def test_shuffled_reproducible(self):
        ids = [f"u{i}" for i in range(20)]
        assert ShuffledOrder(seed=3)(ids) == ShuffledOrder(seed=3)(ids)

    def test_fixed_order_puts_listed_first(self):
        order = FixedOrder(["c", "x", "a"])(["a", "b", "c", "d"])
        assert order == ["c", "a", "b", "d"]

    def test_identity(self):
        assert identity_order(["b", "a"]) == ["b", "a"]


class TestEligibility:
    """Tests for pool construction."""

    def test_empty_pool(self, tiny_config):
        assert run_matching_round([], tiny_config) == []

    def test_single_respondent(self, tiny_config, make_record):
        """Test that a pool of one produces no matches."""
        assert run_matching_round(_tiny_records(make_record, [5]), tiny_config) == []

    def test_ineligible_records_ignored(self, tiny_config, make_record):
        records = [
            make_record("u1", {"score": 5, "attitude": "A"}),
            make_record("u2", {"score": 5, "attitude": "A"}, completed=False),
            make_record("u3", {"score": 5, "attitude": "A"}, opted_in=False),
        ]
        assert run_matching_round(records, tiny_config) == []

    def test_duplicate_user_keeps_first_record(self, tiny_config, make_record):
        records = [
            make_record("u1", {"score": 0, "attitude": "A"}),
            make_record("u1", {"score": 10, "attitude": "A"}),
            make_record("u2", {"score": 0, "attitude": "A"}),
        ]
        results = run_matching_round(records, tiny_config, ordering=identity_order)
        assert len(results) == 1
        assert results[0].compatibility == 99

    def test_odd_pool_leaves_one_unmatched(self, tiny_config, make_record):
        results = run_matching_round(_tiny_records(make_record, [5, 5, 5]), tiny_config, random_seed=1)
        assert len(results) == 1


class TestGreedyRound:
    """Tests for the default greedy walk."""

    def test_fixed_order_assignment(self, tiny_config, make_record):
        """Test that each visitor takes its best remaining candidate."""
        records = _tiny_records(make_record, [0, 10, 1, 9])
        results = run_matching_round(records, tiny_config, ordering=FixedOrder(["u1", "u2", "u3", "u4"]))

        assert [(r.user1_id, r.user2_id, r.compatibility) for r in results] == [
            ("u1", "u3", 98),
            ("u2", "u4", 98),
        ]

    def test_early_visitor_gets_priority(self, tiny_config, make_record):
        """Test that the greedy walk is not a global optimum."""
        records = _tiny_records(make_record, [0, 5, 10, 6])
        results = run_matching_round(records, tiny_config, ordering=FixedOrder(["u1", "u2", "u3", "u4"]))

        assert {r.pair for r in results} == {("u1", "u2"), ("u3", "u4")}

    def test_ties_go_to_first_seen(self, tiny_config, make_record):
        records = _tiny_records(make_record, [5, 5, 5, 5])
        results = run_matching_round(records, tiny_config, ordering=FixedOrder(["u3", "u1", "u4", "u2"]))

        assert [(r.user1_id, r.user2_id) for r in results] == [("u3", "u1"), ("u4", "u2")]

    def test_deterministic_under_fixed_order(self, v2_config, v2_answers, make_record):
        records = [
            make_record(f"u{i}", dict(v2_answers, reply_anxiety=i * 2, intimacy_warmth=i % 10))
            for i in range(10)
        ]
        order = FixedOrder([f"u{i}" for i in reversed(range(10))])

        first = run_matching_round(records, v2_config, ordering=order)
        second = run_matching_round(records, v2_config, ordering=order)
        assert first == second

    def test_deterministic_under_seed(self, v2_config):
        records = _create_synthetic_surveys({"v2": v2_config}, n_users=40, random_seed=5)
        first = run_matching_round(records, v2_config, random_seed=17)
        second = run_matching_round(records, v2_config, random_seed=17)
        assert first == second

    def test_results_carry_reasons(self, tiny_config, make_record):
        results = run_matching_round(_tiny_records(make_record, [5, 5]), tiny_config)
        assert len(results) == 1
        assert 2 <= len(results[0].reasons) <= 4
        assert 55 <= results[0].compatibility <= 99


class TestExclusions:
    """Tests for hard filters and caller pair filters inside a round."""

    def test_hard_filtered_pair_never_matched(self, tiny_config, make_record):
        records = [
            make_record("u1", {"score": 5, "attitude": "B"}),
            make_record("u2", {"score": 5, "attitude": "D"}),
        ]
        assert run_matching_round(records, tiny_config) == []

    def test_bride_price_filter_over_many_orders(self, v2_config, v2_answers, make_record):
        """Test that B/D respondents are never paired, whatever the order."""
        attitudes = ["B", "D", "B", "D", "A", "C"]
        records = [
            make_record(f"u{i}", dict(v2_answers, bride_price_attitude=att))
            for i, att in enumerate(attitudes)
        ]
        attitude_of = {f"u{i}": att for i, att in enumerate(attitudes)}

        for seed in range(1000):
            results = RoundMatcher(v2_config, ordering=ShuffledOrder(seed)).run(records)
            for r in results:
                assert {attitude_of[r.user1_id], attitude_of[r.user2_id]} != {"B", "D"}

    def test_pair_filter_excludes(self, tiny_config, make_record):
        records = _tiny_records(make_record, [5, 5])
        results = run_matching_round(
            records, tiny_config, pair_filter=recorded_pair_filter([("u2", "u1")])
        )
        assert results == []

    def test_unmatchable_respondent_skipped(self, tiny_config, make_record):
        records = [
            make_record("u1", {"score": 5, "attitude": "B"}),
            make_record("u2", {"score": 5, "attitude": "D"}),
            make_record("u3", {"score": 5, "attitude": "D"}),
        ]
        results = run_matching_round(records, tiny_config, ordering=identity_order)
        assert [r.pair for r in results] == [("u2", "u3")]


class TestDisjointness:
    """Tests that no respondent is matched twice."""

    @pytest.mark.parametrize("strategy", ["greedy", "edge_greedy"])
    def test_synthetic_pool(self, v2_config, strategy):
        records = _create_synthetic_surveys({"v2": v2_config}, n_users=60, random_seed=9)
        results = run_matching_round(records, v2_config, strategy=strategy, random_seed=4)

        users = _users(results)
        assert len(users) == len(set(users))
        assert all(r.user1_id != r.user2_id for r in results)

        eligible = {r.user_id for r in records if r.is_eligible}
        assert set(users) <= eligible


class TestEdgeGreedy:
    """Tests for the global edge-greedy strategy."""

    def test_best_edges_first(self, tiny_config, make_record):
        records = _tiny_records(make_record, [0, 5, 10, 6])
        results = run_matching_round(
            records, tiny_config, ordering=FixedOrder(["u1", "u2", "u3", "u4"]), strategy="edge_greedy"
        )
        assert {r.pair for r in results} == {("u2", "u4"), ("u1", "u3")}

    def test_sampling_above_full_graph(self, v2_config):
        records = _create_synthetic_surveys({"v2": v2_config}, n_users=30, random_seed=2)
        matcher = RoundMatcher(
            v2_config, strategy="edge_greedy", max_full_graph=10, sample_size=5, random_seed=3
        )
        results = matcher.run(records)

        users = _users(results)
        assert results
        assert len(users) == len(set(users))

    def test_unknown_strategy_rejected(self, tiny_config):
        with pytest.raises(ValueError):
            RoundMatcher(tiny_config, strategy="hungarian")


class TestOrderingContract:
    """Tests for orderings that are not a permutation of the pool."""

    @pytest.mark.parametrize("strategy", ["greedy", "edge_greedy"])
    def test_unknown_id_rejected(self, tiny_config, make_record, strategy):
        records = _tiny_records(make_record, [5, 5, 5])
        matcher = RoundMatcher(tiny_config, ordering=lambda ids: ids + ["ghost"], strategy=strategy)
        with pytest.raises(ValueError):
            matcher.run(records)

    def test_missing_id_rejected(self, tiny_config, make_record):
        """Test that an ordering cannot silently skip respondents."""
        records = _tiny_records(make_record, [5, 5, 5])
        matcher = RoundMatcher(tiny_config, ordering=lambda ids: ids[:-1])
        with pytest.raises(ValueError):
            matcher.run(records)

    def test_repeated_id_rejected(self, tiny_config, make_record):
        records = _tiny_records(make_record, [5, 5, 5])
        matcher = RoundMatcher(tiny_config, ordering=lambda ids: ids[:-1] + ids[:1])
        with pytest.raises(ValueError):
            matcher.run(records)


class TestMalformedAnswers:
    """Tests that one malformed answer blob cannot break a round."""

    def test_huge_slider_value(self, v2_config, v2_answers):
        answers = dict(v2_answers)
        answers.pop("reply_anxiety", None)
        blob = json.dumps(answers)[:-1] + ', "reply_anxiety": 1' + "0" * 400 + "}"
        records = [
            SurveyRecord.from_dict({"userId": "u1", "answers": blob, "completed": True, "optedIn": True}),
            SurveyRecord.from_dict({"userId": "u2", "answers": v2_answers, "completed": True, "optedIn": True}),
        ]

        results = run_matching_round(records, v2_config, ordering=identity_order)
        assert len(results) == 1
        assert 55 <= results[0].compatibility <= 99
