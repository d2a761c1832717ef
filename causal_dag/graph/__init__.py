"""Graph model and declarative construction"""
from .dag import CausalDAG, CausalEdge, CausalNode, NodeRole
from .builder import DAGBuilder, build_dag, dagify, parse_formula

__all__ = [
    'CausalDAG',
    'CausalEdge',
    'CausalNode',
    'NodeRole',
    'DAGBuilder',
    'build_dag',
    'dagify',
    'parse_formula',
]
