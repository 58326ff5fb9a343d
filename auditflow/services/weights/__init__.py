"""
Weight arithmetic for standard and response weight sets
"""

from .weight_calculator import WeightCalculator

__all__ = ["WeightCalculator"]
