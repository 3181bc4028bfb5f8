"""
Core algorithms (backend-agnostic).
"""

from .matrix import inverse, multiply, transpose
from .lm_solver import fit_weighted_least_squares, gram_inverse

__all__ = [
    "transpose",
    "multiply",
    "inverse",
    "fit_weighted_least_squares",
    "gram_inverse",
]
