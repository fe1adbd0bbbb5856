"""
Answer parsing.

Converts a raw per-user answer blob (a JSON string or an already-decoded
mapping) into a typed question-id -> answer map. Each answer ends up as one of:
- a number (slider answers)
- a string code (single-choice answers)
- a list of strings (tag and ranking answers)

Anything else is dropped. Parsing never raises: the scorers treat a dropped
answer the same as an unanswered question.
"""

import json
import logging
import math
from typing import Any, Dict, List, Mapping, Optional, Union

logger = logging.getLogger(__name__)

Answer = Union[float, int, str, List[str]]


def parse_answers(blob: Optional[Union[str, bytes, Mapping[str, Any]]]) -> Dict[str, Answer]:
    """
    Parse a raw answer blob into a typed answer map.

    Args:
        blob: JSON text or a mapping of question id -> raw answer

    Returns:
        Dictionary of question id -> typed answer (unusable values removed)
    """
    if blob is None:
        return {}

    if isinstance(blob, (str, bytes)):
        try:
            decoded = json.loads(blob)
        except ValueError as e:
            logger.warning(f"Could not decode answer blob, treating as empty: {e}")
            return {}
    else:
        decoded = blob

    if not isinstance(decoded, Mapping):
        logger.warning(f"Answer blob is a {type(decoded).__name__}, expected an object")
        return {}

    answers: Dict[str, Answer] = {}
    for key, value in decoded.items():
        typed = _coerce_answer(value)
        if typed is not None:
            answers[str(key)] = typed
    return answers


def _coerce_answer(value: Any) -> Optional[Answer]:
    """Coerce one raw answer into a supported answer type, or None."""
    if isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        if isinstance(value, float) and math.isnan(value):
            return None
        return value

    if isinstance(value, str):
        return value

    if isinstance(value, (list, tuple)):
        return [item for item in value if isinstance(item, str)]

    return None
