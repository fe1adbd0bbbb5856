"""
Data loading functions for matching rounds.

This module loads snapshots exported by the persistence layer:
- Survey records (JSON array, JSON lines, or CSV with a JSON "answers" column)
- Trait profiles (JSON object keyed by user id, or JSON array of rows)
- Recorded pairs (matches already stored for a period)

No scoring is done here - that's handled by the scoring module.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd

from ..schema import SurveyRecord, TraitProfile

logger = logging.getLogger(__name__)

_BOOLEAN_STRINGS = {"true": True, "1": True, "yes": True, "false": False, "0": False, "no": False, "": False}


def load_survey_records(filepath: str) -> List[SurveyRecord]:
    """
    Load survey records from a snapshot file.

    Supported formats are chosen by extension:
    - .json: array of records
    - .jsonl: one record per line
    - .csv: columns userId, answers (JSON text), completed, optedIn

    Args:
        filepath: Path to the snapshot file

    Returns:
        List of SurveyRecord (all records, eligible or not)

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the file is empty or the format is unsupported
    """
    path = Path(filepath)
    if not path.exists():
        raise FileNotFoundError(f"Survey snapshot not found: {filepath}")

    logger.info(f"Loading survey records from {filepath}")
    suffix = path.suffix.lower()

    if suffix == ".csv":
        rows = _read_csv_rows(path)
    elif suffix == ".jsonl":
        with open(path, "r") as f:
            rows = [json.loads(line) for line in f if line.strip()]
    elif suffix == ".json":
        with open(path, "r") as f:
            rows = json.load(f)
        if not isinstance(rows, list):
            raise ValueError(f"Survey snapshot must be a JSON array: {filepath}")
    else:
        raise ValueError(f"Unsupported survey snapshot format: {suffix}")

    if not rows:
        raise ValueError(f"Survey snapshot is empty: {filepath}")

    records = [SurveyRecord.from_dict(row) for row in rows]
    n_eligible = sum(1 for r in records if r.is_eligible)
    logger.info(f"Loaded {len(records)} survey records ({n_eligible} eligible)")
    return records


def _read_csv_rows(path: Path) -> List[Dict[str, Any]]:
    """Read a CSV snapshot into row dictionaries with boolean flags restored."""
    df = pd.read_csv(path, dtype={"userId": str, "user_id": str, "answers": str})
    if "answers" in df.columns:
        df["answers"] = df["answers"].fillna("{}")

    for column in ["completed", "optedIn", "opted_in"]:
        if column in df.columns:
            df[column] = df[column].map(_to_bool)

    return df.to_dict(orient="records")


def _to_bool(value: Any) -> bool:
    if value is None or pd.isna(value):
        return False
    if isinstance(value, str):
        return _BOOLEAN_STRINGS.get(value.strip().lower(), False)
    return bool(value)


def load_trait_profiles(filepath: str) -> Dict[str, TraitProfile]:
    """
    Load per-user trait profiles.

    The file is either an object keyed by user id, or an array of rows each
    carrying a userId field.

    Args:
        filepath: Path to the profiles JSON file

    Returns:
        Dictionary of user id -> TraitProfile

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the file has an unexpected shape
    """
    path = Path(filepath)
    if not path.exists():
        raise FileNotFoundError(f"Profiles file not found: {filepath}")

    logger.info(f"Loading trait profiles from {filepath}")
    with open(path, "r") as f:
        data = json.load(f)

    if isinstance(data, dict):
        profiles = {str(uid): TraitProfile.from_dict(row) for uid, row in data.items()}
    elif isinstance(data, list):
        profiles = {}
        for row in data:
            user_id = row.get("userId", row.get("user_id"))
            if user_id is None:
                raise ValueError(f"Profile row is missing a user id: {row}")
            profiles[str(user_id)] = TraitProfile.from_dict(row)
    else:
        raise ValueError(f"Profiles file must be an object or an array: {filepath}")

    logger.info(f"Loaded {len(profiles)} trait profiles")
    return profiles


def load_recorded_pairs(filepath: str, period: Optional[str] = None) -> List[Tuple[str, str]]:
    """
    Load pairs already recorded by earlier runs.

    Rows are either [user_a, user_b] arrays or stored match rows with
    user1Id/user2Id and an optional "week" field.

    Args:
        filepath: Path to the JSON array of recorded matches
        period: If given, keep only rows recorded for this period key

    Returns:
        List of (user_a, user_b) pairs

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If a row has an unexpected shape
    """
    path = Path(filepath)
    if not path.exists():
        raise FileNotFoundError(f"Recorded matches file not found: {filepath}")

    with open(path, "r") as f:
        rows = json.load(f)
    if not isinstance(rows, list):
        raise ValueError(f"Recorded matches file must be a JSON array: {filepath}")

    pairs = []
    for row in rows:
        if isinstance(row, (list, tuple)) and len(row) == 2:
            pairs.append((str(row[0]), str(row[1])))
        elif isinstance(row, dict) and "user1Id" in row and "user2Id" in row:
            if period is not None and row.get("week", period) != period:
                continue
            pairs.append((str(row["user1Id"]), str(row["user2Id"])))
        else:
            raise ValueError(f"Unrecognized recorded match row: {row}")

    logger.info(f"Loaded {len(pairs)} recorded pairs from {filepath}")
    return pairs
