"""
Comparison module for template sync.

This module provides the difference calculator and the service that owns the
comparison lifecycle.
"""

from .comparison_service import ComparisonService
from .difference_calculator import DifferenceCalculator

__all__ = [
    'ComparisonService',
    'DifferenceCalculator'
]
