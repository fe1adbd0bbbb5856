"""Data loading module for survey snapshots, trait profiles and recorded pairs."""

from .loaders import load_survey_records, load_trait_profiles, load_recorded_pairs

__all__ = ["load_survey_records", "load_trait_profiles", "load_recorded_pairs"]
