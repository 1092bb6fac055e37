"""Structural validation of import folders and archives."""

from .validator import ImportValidator, ValidationResult, find_duplicate_ids

__all__ = ["ImportValidator", "ValidationResult", "find_duplicate_ids"]
