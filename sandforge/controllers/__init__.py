"""
Controllers that vet and patch generated particle fragments.
"""

from .sanitizer import FragmentSanitizer
from .rewriter import FragmentRewriter
from .uniqueness import UniquenessValidator, ValidationResult

__all__ = ["FragmentSanitizer", "FragmentRewriter", "UniquenessValidator", "ValidationResult"]
