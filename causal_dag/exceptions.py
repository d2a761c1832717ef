"""
Errors raised while building and querying causal DAGs.
"""
from typing import Sequence, Tuple


class CausalDAGError(Exception):
    """Base class for all causal DAG errors."""
    pass


class CycleError(CausalDAGError):
    """Raised when a declared edge would close a directed cycle."""

    def __init__(self, cycle: Sequence[str]):
        self.cycle: Tuple[str, ...] = tuple(cycle)
        path = " → ".join(self.cycle + self.cycle[:1])
        super().__init__(
            f"Causal cycle detected: {path}. Causal graphs must be acyclic (DAGs)."
        )


class UnknownNodeError(CausalDAGError):
    """Raised when a node id is referenced but never declared."""

    def __init__(self, node_id: str, context: str = ""):
        self.node_id = node_id
        message = f"Unknown node '{node_id}'"
        if context:
            message += f" ({context})"
        super().__init__(message)


class FormulaParseError(CausalDAGError):
    """Raised when an `effect ~ cause + ...` declaration cannot be parsed."""
    pass


class NoValidAdjustmentSetError(CausalDAGError):
    """
    Raised when no set of observed variables closes every backdoor path.

    Usually means a confounder is unobserved. The caller decides what to do
    next, e.g. report unmeasured confounding.
    """

    def __init__(self, exposure: str, outcome: str, open_paths: Sequence = ()):
        self.exposure = exposure
        self.outcome = outcome
        self.open_paths = tuple(open_paths)
        message = f"No valid adjustment set for {exposure} → {outcome}"
        if self.open_paths:
            rendered = "; ".join(str(path) for path in self.open_paths)
            message += f"; backdoor paths left open: {rendered}"
        super().__init__(message)


class SearchLimitError(CausalDAGError):
    """Raised when path or subset search exceeds a configured limit."""
    pass
