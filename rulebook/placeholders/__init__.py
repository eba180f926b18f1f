"""Placeholder resolution - {category.path} tokens in rule values."""

from .resolver import PlaceholderFn, PlaceholderResolver

__all__ = [
    "PlaceholderFn",
    "PlaceholderResolver",
]
