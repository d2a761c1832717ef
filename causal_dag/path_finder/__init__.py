"""Node classification and path enumeration"""
from .finder import (
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

__all__ = [
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
]
