"""Adjustment set computation and per-variable adjustment advice"""
from .solver import (
    AdjustmentAdvice,
    AdjustmentSetSolver,
    VariableCategory,
    classify_variables,
    find_adjustment_sets,
    is_valid_adjustment_set,
)

__all__ = [
    'AdjustmentAdvice',
    'AdjustmentSetSolver',
    'VariableCategory',
    'classify_variables',
    'find_adjustment_sets',
    'is_valid_adjustment_set',
]
