"""Hard filters on answers and the caller-side trait profile pre-filter."""

from .hard_filters import is_hard_filtered
from .profiles import profiles_conflict, build_profile_filter, PairFilter

__all__ = ["is_hard_filtered", "profiles_conflict", "build_profile_filter", "PairFilter"]
