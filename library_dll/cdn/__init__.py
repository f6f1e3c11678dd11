"""Pluggable CDN resolution used in production mode."""

from .resolver import CdnLibrary
from .resolver import CdnResolver
from .resolver import UnpkgResolver

__all__ = [
    "CdnLibrary",
    "CdnResolver",
    "UnpkgResolver",
]
