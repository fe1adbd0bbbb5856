"""Reason generation module for matched pairs."""

from .generator import ReasonGenerator, generate_reasons

__all__ = ["ReasonGenerator", "generate_reasons"]
