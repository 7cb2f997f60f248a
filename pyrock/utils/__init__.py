"""Utility helpers."""

from .files import write_atomic
from .url import normalize_target_url

__all__ = ["normalize_target_url", "write_atomic"]
