"""
Static matching configuration.

A matching configuration bundles everything the engine needs to score one
survey version:
- The question catalog (kinds, labels, slider bounds, option labels)
- Dimensions with their pool weights and weighted scoring items
- Hard filters (incompatible answer pairs)
- Reason templates

Configurations are authored as YAML and loaded into the dataclasses below,
so alternate configurations can be swapped in without touching scoring code.
"""

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Any, List, Optional, FrozenSet

logger = logging.getLogger(__name__)

WEIGHT_TOLERANCE = 0.01


class ScorerKind(Enum):
    """Closed set of question shapes the engine knows how to compare."""
    SCALE = "slider"
    CHOICE = "single"
    TAGS = "tags"
    RANKING = "ranking"


@dataclass
class QuestionSpec:
    """
    Catalog entry for one survey question.

    Attributes:
        question_id: Stable question identifier used as the answer key
        kind: Scorer kind the question is answered with
        label: Full question text
        short_label: Compact label used in reason strings
        min: Lower bound for slider questions
        max: Upper bound for slider questions
        options: Ordered option code -> display label
        affinity: Optional symmetric code x code similarity for choice questions
    """
    question_id: str
    kind: ScorerKind
    label: str = ""
    short_label: str = ""
    min: Optional[float] = None
    max: Optional[float] = None
    options: Dict[str, str] = field(default_factory=dict)
    affinity: Dict[str, Dict[str, float]] = field(default_factory=dict)

    @property
    def display_label(self) -> str:
        return self.short_label or self.label or self.question_id

    def option_label(self, code: str) -> str:
        return self.options.get(code, code)

    def option_rank(self, code: str) -> int:
        """Position of an option in authoring order (unknown codes sort last)."""
        codes = list(self.options)
        return codes.index(code) if code in codes else len(codes)

    def validate(self) -> None:
        """Validate question values."""
        if self.kind is ScorerKind.SCALE:
            if self.min is None or self.max is None:
                raise ValueError(f"Slider question '{self.question_id}' needs min and max")
            if self.max < self.min:
                raise ValueError(
                    f"Slider question '{self.question_id}' has max < min: {self.max} < {self.min}"
                )

        if self.affinity:
            if self.kind is not ScorerKind.CHOICE:
                raise ValueError(f"Affinity matrix only allowed on choice questions: {self.question_id}")
            for a, row in self.affinity.items():
                for b, value in row.items():
                    if not 0 <= value <= 1:
                        raise ValueError(
                            f"Affinity {self.question_id}[{a}][{b}] must be in [0, 1], got {value}"
                        )
                    mirror = self.affinity.get(b, {}).get(a)
                    if mirror is None or abs(mirror - value) > 1e-9:
                        raise ValueError(
                            f"Affinity matrix for '{self.question_id}' is not symmetric at ({a}, {b})"
                        )

    @classmethod
    def from_dict(cls, question_id: str, d: Dict[str, Any]) -> "QuestionSpec":
        """Create from a YAML question entry."""
        options = d.get("options", {})
        # Tag and ranking questions may list bare option strings
        if isinstance(options, list):
            options = {str(o): str(o) for o in options}

        affinity = {
            str(a): {str(b): float(v) for b, v in row.items()}
            for a, row in (d.get("affinity") or {}).items()
        }

        return cls(
            question_id=question_id,
            kind=ScorerKind(d["type"]),
            label=d.get("label", ""),
            short_label=d.get("short_label", ""),
            min=d.get("min"),
            max=d.get("max"),
            options={str(k): str(v) for k, v in options.items()},
            affinity=affinity
        )

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"type": self.kind.value, "label": self.label}
        if self.short_label:
            d["short_label"] = self.short_label
        if self.kind is ScorerKind.SCALE:
            d["min"] = self.min
            d["max"] = self.max
        if self.options:
            d["options"] = dict(self.options)
        if self.affinity:
            d["affinity"] = {a: dict(row) for a, row in self.affinity.items()}
        return d


@dataclass
class DimensionItem:
    """One weighted question inside a dimension."""
    question_id: str
    scorer: ScorerKind
    weight: float

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "DimensionItem":
        return cls(
            question_id=d["question_id"],
            scorer=ScorerKind(d["scorer"]),
            weight=float(d["weight"])
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"question_id": self.question_id, "scorer": self.scorer.value, "weight": self.weight}


@dataclass
class DimensionConfig:
    """
    A named, weighted grouping of survey questions.

    Attributes:
        name: Display name (used in reason strings)
        weight: Pool weight; all dimension weights sum to 1.0
        items: Scoring items; item weights within a dimension sum to 1.0
    """
    name: str
    weight: float
    items: List[DimensionItem] = field(default_factory=list)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "DimensionConfig":
        return cls(
            name=d["name"],
            weight=float(d["weight"]),
            items=[DimensionItem.from_dict(item) for item in d.get("items", [])]
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "weight": self.weight, "items": [i.to_dict() for i in self.items]}


@dataclass
class HardFilterConfig:
    """
    Unconditional veto on a pair of answers to one question.

    Pairs are stored unordered, so ("B", "D") also vetoes ("D", "B").
    """
    question_id: str
    incompatible_pairs: FrozenSet[FrozenSet[str]] = field(default_factory=frozenset)

    def matches(self, a_value: Any, b_value: Any) -> bool:
        if not isinstance(a_value, str) or not isinstance(b_value, str):
            return False
        return frozenset((a_value, b_value)) in self.incompatible_pairs

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "HardFilterConfig":
        pairs = set()
        for pair in d.get("incompatible_pairs", []):
            if len(pair) != 2:
                raise ValueError(f"Incompatible pair must have two values, got {pair}")
            pairs.add(frozenset((str(pair[0]), str(pair[1]))))
        return cls(question_id=d["question_id"], incompatible_pairs=frozenset(pairs))

    def to_dict(self) -> Dict[str, Any]:
        pairs = [sorted(p) if len(p) == 2 else [next(iter(p))] * 2 for p in self.incompatible_pairs]
        return {"question_id": self.question_id, "incompatible_pairs": sorted(pairs)}


@dataclass
class SharedChoiceReason:
    """Reason emitted when both respondents picked the same option."""
    question_id: str
    template: str
    complement_template: Optional[str] = None


@dataclass
class ReasonConfig:
    """
    Reason templates and thresholds.

    Templates use str.format placeholders: {dimension}, {option}, {tags}, {question}.
    """
    max_reasons: int = 4
    min_reasons: int = 2
    top_dimension_template: str = "You are highly aligned on {dimension}"
    fallback_dimension_template: str = "You are also well matched on {dimension}"
    shared_choices: List[SharedChoiceReason] = field(default_factory=list)
    complement_threshold: float = 0.8
    shared_tags_question: Optional[str] = None
    shared_tags_template: str = "You both value: {tags}"
    max_shared_tags: int = 2
    scale_question_ids: Optional[List[str]] = None
    scale_threshold: float = 0.8
    scale_template: str = "You see eye to eye on \"{question}\""

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ReasonConfig":
        defaults = cls()
        shared_tags = d.get("shared_tags", {}) or {}
        scale = d.get("scale_alignment", {}) or {}

        return cls(
            max_reasons=d.get("max_reasons", defaults.max_reasons),
            min_reasons=d.get("min_reasons", defaults.min_reasons),
            top_dimension_template=d.get("top_dimension_template", defaults.top_dimension_template),
            fallback_dimension_template=d.get(
                "fallback_dimension_template", defaults.fallback_dimension_template
            ),
            shared_choices=[
                SharedChoiceReason(
                    question_id=c["question_id"],
                    template=c["template"],
                    complement_template=c.get("complement_template")
                )
                for c in d.get("shared_choices", [])
            ],
            complement_threshold=d.get("complement_threshold", defaults.complement_threshold),
            shared_tags_question=shared_tags.get("question_id"),
            shared_tags_template=shared_tags.get("template", defaults.shared_tags_template),
            max_shared_tags=shared_tags.get("max_tags", defaults.max_shared_tags),
            scale_question_ids=scale.get("question_ids"),
            scale_threshold=scale.get("threshold", defaults.scale_threshold),
            scale_template=scale.get("template", defaults.scale_template)
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "max_reasons": self.max_reasons,
            "min_reasons": self.min_reasons,
            "top_dimension_template": self.top_dimension_template,
            "fallback_dimension_template": self.fallback_dimension_template,
            "shared_choices": [
                {k: v for k, v in vars(c).items() if v is not None} for c in self.shared_choices
            ],
            "complement_threshold": self.complement_threshold,
            "shared_tags": {
                "question_id": self.shared_tags_question,
                "template": self.shared_tags_template,
                "max_tags": self.max_shared_tags
            },
            "scale_alignment": {
                "question_ids": self.scale_question_ids,
                "threshold": self.scale_threshold,
                "template": self.scale_template
            }
        }


@dataclass
class MatchingConfig:
    """
    Complete matching configuration for one survey version.

    Attributes:
        version: Survey version identifier (e.g. "v2")
        name: Human-readable survey name
        questions: Question catalog keyed by question id
        dimensions: Weighted dimensions
        hard_filters: Pairwise veto rules
        reasons: Reason templates
    """
    version: str
    name: str = ""
    questions: Dict[str, QuestionSpec] = field(default_factory=dict)
    dimensions: List[DimensionConfig] = field(default_factory=list)
    hard_filters: List[HardFilterConfig] = field(default_factory=list)
    reasons: ReasonConfig = field(default_factory=ReasonConfig)

    def get_question(self, question_id: str) -> Optional[QuestionSpec]:
        return self.questions.get(question_id)

    def scale_question_ids(self) -> List[str]:
        """Slider item question ids in dimension order."""
        return [
            item.question_id
            for dim in self.dimensions
            for item in dim.items
            if item.scorer is ScorerKind.SCALE
        ]

    def validate(self) -> None:
        """
        Validate configuration values.

        Raises:
            ValueError: On any structural or weighting problem
        """
        if not self.dimensions:
            raise ValueError(f"Matching config '{self.version}' has no dimensions")

        for question in self.questions.values():
            question.validate()

        for dim in self.dimensions:
            if not math.isfinite(dim.weight):
                raise ValueError(f"Dimension '{dim.name}' has a non-finite weight: {dim.weight}")
            for item in dim.items:
                if not math.isfinite(item.weight):
                    raise ValueError(
                        f"Item '{item.question_id}' in dimension '{dim.name}' "
                        f"has a non-finite weight: {item.weight}"
                    )

        total = sum(d.weight for d in self.dimensions)
        if abs(total - 1.0) > WEIGHT_TOLERANCE:
            raise ValueError(f"Dimension weights don't sum to 1: {total}")

        for dim in self.dimensions:
            if not dim.items:
                raise ValueError(f"Dimension '{dim.name}' has no items")
            item_total = sum(i.weight for i in dim.items)
            if abs(item_total - 1.0) > WEIGHT_TOLERANCE:
                raise ValueError(f"Item weights in dimension '{dim.name}' don't sum to 1: {item_total}")
            for item in dim.items:
                question = self.questions.get(item.question_id)
                if question is None:
                    raise ValueError(f"Dimension '{dim.name}' references unknown question: {item.question_id}")
                if question.kind is not item.scorer:
                    raise ValueError(
                        f"Question '{item.question_id}' is {question.kind.value} "
                        f"but scored as {item.scorer.value}"
                    )

        for hard_filter in self.hard_filters:
            if hard_filter.question_id not in self.questions:
                raise ValueError(f"Hard filter references unknown question: {hard_filter.question_id}")

        for shared in self.reasons.shared_choices:
            if shared.question_id not in self.questions:
                raise ValueError(f"Reason references unknown question: {shared.question_id}")
        if self.reasons.max_reasons < 1:
            raise ValueError(f"max_reasons must be positive, got {self.reasons.max_reasons}")

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "MatchingConfig":
        """Create from a matching YAML document and validate it."""
        config = cls(
            version=str(d["version"]),
            name=d.get("name", ""),
            questions={
                qid: QuestionSpec.from_dict(qid, q) for qid, q in (d.get("questions") or {}).items()
            },
            dimensions=[DimensionConfig.from_dict(dim) for dim in d.get("dimensions", [])],
            hard_filters=[HardFilterConfig.from_dict(f) for f in d.get("hard_filters") or []],
            reasons=ReasonConfig.from_dict(d.get("reasons") or {})
        )
        config.validate()
        return config

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "name": self.name,
            "questions": {qid: q.to_dict() for qid, q in self.questions.items()},
            "dimensions": [d.to_dict() for d in self.dimensions],
            "hard_filters": [f.to_dict() for f in self.hard_filters],
            "reasons": self.reasons.to_dict()
        }

