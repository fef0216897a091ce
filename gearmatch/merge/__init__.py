"""Canonical selection and merge planning for duplicate groups."""

from .resolver import MergeAction, MergePlan, MergeResolver, Resolution

__all__ = ['MergeAction', 'MergePlan', 'MergeResolver', 'Resolution']
