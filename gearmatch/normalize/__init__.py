"""Text normalization for brands, model names and listing text."""

from .text_normalizer import ListingText, TextNormalizer

__all__ = ['ListingText', 'TextNormalizer']
