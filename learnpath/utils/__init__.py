"""Utility helpers for learnpath."""

from learnpath.utils.rounding import percent_of, round_half_up


__all__ = ["percent_of", "round_half_up"]
