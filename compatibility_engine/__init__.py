"""
Compatibility Matching Engine

This package pairs survey respondents for a weekly matching round based on
weighted psychological dimensions.

Key Design Decisions:
- Four closed scorer kinds (slider, single, tags, ranking) dispatched by config
- Hard filters veto a pair before it is ever scored
- Compatibility is mapped onto a clamped [55, 99] display range
- Round assignment is a greedy walk over an injectable visitation order,
  not a global maximum-weight matching
"""

__version__ = "1.0.0"
