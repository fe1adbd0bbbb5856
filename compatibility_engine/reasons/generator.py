"""
Reason generation for matched pairs.

Inspects the same inputs used for scoring and produces short natural-language
justifications, in priority order, stopping at the configured maximum (4):

1. The single highest-scoring dimension
2. Identical answers on the configured high-signal single-choice questions
   (or, when the question has an affinity matrix, strongly complementary ones)
3. Up to two shared tags on the configured multi-select question
4. Slider questions where the pair's similarity reaches the threshold (0.8)

If fewer than the minimum (2) reasons were produced, the second-highest
dimension is appended as a fallback.

Wording lives in the matching configuration, not here.
"""

import logging
from typing import List, Optional

from ..configs.matching import MatchingConfig
from ..schema import ParsedSurvey
from ..scoring.aggregate import DimensionScore, compute_dimension_scores
from ..scoring.scorers import scale_similarity

logger = logging.getLogger(__name__)


class ReasonGenerator:
    """
    Generator of match justifications for one matching configuration.

    Attributes:
        config: Matching configuration (question catalog + reason templates)
    """

    def __init__(self, config: MatchingConfig):
        self.config = config
        self.reason_config = config.reasons

        scale_ids = self.reason_config.scale_question_ids or config.scale_question_ids()
        self._scale_ids = list(dict.fromkeys(scale_ids))

    def generate(
        self,
        a: ParsedSurvey,
        b: ParsedSurvey,
        dimension_scores: Optional[List[DimensionScore]] = None
    ) -> List[str]:
        """
        Generate reasons for a pair.

        Args:
            a: First respondent
            b: Second respondent
            dimension_scores: Precomputed dimension scores (computed if omitted)

        Returns:
            Up to max_reasons strings in priority order
        """
        rc = self.reason_config
        if dimension_scores is None:
            dimension_scores = compute_dimension_scores(a, b, self.config)

        # Stable sort: ties keep configuration order, independent of pair order
        ranked = sorted(dimension_scores, key=lambda d: d.score, reverse=True)

        reasons: List[str] = []
        if ranked:
            reasons.append(rc.top_dimension_template.format(dimension=ranked[0].name))

        self._add_shared_choices(a, b, reasons)
        self._add_shared_tags(a, b, reasons)
        self._add_scale_alignment(a, b, reasons)

        if len(reasons) < rc.min_reasons and len(ranked) >= 2:
            reasons.append(rc.fallback_dimension_template.format(dimension=ranked[1].name))

        return reasons[:rc.max_reasons]

    def _add_shared_choices(self, a: ParsedSurvey, b: ParsedSurvey, reasons: List[str]) -> None:
        rc = self.reason_config
        for shared in rc.shared_choices:
            if len(reasons) >= rc.max_reasons:
                return

            a_value = a.get(shared.question_id)
            b_value = b.get(shared.question_id)
            if not isinstance(a_value, str) or not isinstance(b_value, str):
                continue

            question = self.config.get_question(shared.question_id)
            if a_value == b_value:
                option = question.option_label(a_value) if question else a_value
                reasons.append(shared.template.format(option=option))
            elif shared.complement_template and question is not None:
                affinity = question.affinity.get(a_value, {}).get(b_value)
                if affinity is not None and affinity >= rc.complement_threshold:
                    reasons.append(shared.complement_template)

    def _add_shared_tags(self, a: ParsedSurvey, b: ParsedSurvey, reasons: List[str]) -> None:
        rc = self.reason_config
        question_id = rc.shared_tags_question
        if question_id is None or len(reasons) >= rc.max_reasons:
            return

        a_tags = a.get(question_id)
        b_tags = b.get(question_id)
        if not isinstance(a_tags, list) or not isinstance(b_tags, list):
            return

        shared = set(a_tags) & set(b_tags)
        if not shared:
            return

        question = self.config.get_question(question_id)
        if question is not None:
            ordered = sorted(shared, key=lambda tag: (question.option_rank(tag), tag))
        else:
            ordered = sorted(shared)

        tags = ", ".join(ordered[:rc.max_shared_tags])
        reasons.append(rc.shared_tags_template.format(tags=tags))

    def _add_scale_alignment(self, a: ParsedSurvey, b: ParsedSurvey, reasons: List[str]) -> None:
        rc = self.reason_config
        for question_id in self._scale_ids:
            if len(reasons) >= rc.max_reasons:
                return

            question = self.config.get_question(question_id)
            if scale_similarity(a, b, question_id, question) >= rc.scale_threshold:
                label = question.display_label if question else question_id
                reasons.append(rc.scale_template.format(question=label))


def generate_reasons(
    a: ParsedSurvey,
    b: ParsedSurvey,
    config: MatchingConfig,
    dimension_scores: Optional[List[DimensionScore]] = None
) -> List[str]:
    """
    Convenience function to generate reasons for one pair.

    Args:
        a: First respondent
        b: Second respondent
        config: Matching configuration
        dimension_scores: Precomputed dimension scores

    Returns:
        List of reason strings
    """
    return ReasonGenerator(config).generate(a, b, dimension_scores)
