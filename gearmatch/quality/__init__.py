"""Catalog entry completeness scoring."""

from .scorer import DataQualityScorer, QualityScore

__all__ = ['DataQualityScorer', 'QualityScore']
