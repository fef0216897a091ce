"""Shared text and edit-distance helpers."""
