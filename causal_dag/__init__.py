"""Causal DAG toolkit - three-component architecture"""
# Component A: Graph model and declarative construction
from .graph import CausalDAG, CausalEdge, CausalNode, DAGBuilder, NodeRole, build_dag, dagify, parse_formula

# Component B: Node classification and path enumeration
from .path_finder import (
    CausalPath,
    PathCollection,
    PathFinder,
    PathKind,
    TripleKind,
    classify_triple,
    colliders,
    find_paths,
    is_d_separated,
    is_path_open,
)

# Component C: Adjustment sets
from .adjustment import (
    AdjustmentAdvice,
    AdjustmentSetSolver,
    VariableCategory,
    classify_variables,
    find_adjustment_sets,
    is_valid_adjustment_set,
)

from .exceptions import (
    CausalDAGError,
    CycleError,
    FormulaParseError,
    NoValidAdjustmentSetError,
    SearchLimitError,
    UnknownNodeError,
)

__all__ = [
    'CausalDAG',
    'CausalEdge',
    'CausalNode',
    'DAGBuilder',
    'NodeRole',
    'build_dag',
    'dagify',
    'parse_formula',
    'CausalPath',
    'PathCollection',
    'PathFinder',
    'PathKind',
    'TripleKind',
    'classify_triple',
    'colliders',
    'find_paths',
    'is_d_separated',
    'is_path_open',
    'AdjustmentAdvice',
    'AdjustmentSetSolver',
    'VariableCategory',
    'classify_variables',
    'find_adjustment_sets',
    'is_valid_adjustment_set',
    'CausalDAGError',
    'CycleError',
    'FormulaParseError',
    'NoValidAdjustmentSetError',
    'SearchLimitError',
    'UnknownNodeError',
]
