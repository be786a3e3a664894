"""Matching engine, strategies and manual matching."""

from .engine import AutoMatcher
from .manual import ManualMatchCoordinator, MatchSuggestion
from .scorer import ScoreBreakdown, score_breakdown, score_match
from .strategies import (
    MatchingStrategy,
    StrictScoreStrategy,
    ImportTimeStrategy,
    build_strategy,
)

__all__ = [
    "AutoMatcher",
    "ManualMatchCoordinator",
    "MatchSuggestion",
    "ScoreBreakdown",
    "score_breakdown",
    "score_match",
    "MatchingStrategy",
    "StrictScoreStrategy",
    "ImportTimeStrategy",
    "build_strategy",
]
