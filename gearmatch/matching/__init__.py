"""Listing-to-catalog matching: rules, scoring and candidate ranking."""

from .ranker import CandidateRanker, MatchOutcome, MatchStatus
from .rules import Rule, RuleOutcome, RuleSet, ScoringContext
from .scorer import MatchResult, MatchScorer, extract_model_numbers

__all__ = [
    'CandidateRanker',
    'MatchOutcome',
    'MatchStatus',
    'Rule',
    'RuleOutcome',
    'RuleSet',
    'ScoringContext',
    'MatchResult',
    'MatchScorer',
    'extract_model_numbers',
]
