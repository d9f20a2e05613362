"""Reusable type definitions for hash-trend."""

from .base import CamelModel, StrictBaseModel

__all__ = [
    "CamelModel",
    "StrictBaseModel",
]
