"""Packages - domain bundles of context, condition types and rules."""

from .base import BasePackage
from .manager import PackageManager

__all__ = [
    "BasePackage",
    "PackageManager",
]
