"""
PathFinder: enumerates and classifies paths between exposure and outcome.

Paths are walked on the undirected skeleton of the DAG, but edge direction
decides what each intermediate node is on the path:

    fork      x ← q → y   open unless q is conditioned on
    chain     x → q → y   open unless q is conditioned on
    collider  x → q ← y   blocked unless q, or a descendant of q,
                          is conditioned on

A path is open when none of its intermediate nodes blocks it.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Iterable, Iterator, List, Optional, Sequence, Tuple, Union

import networkx as nx
from loguru import logger

from causal_dag.exceptions import CausalDAGError, SearchLimitError, UnknownNodeError
from causal_dag.graph import CausalDAG


class TripleKind(str, Enum):
    """Local structure of three adjacent nodes on a path."""
    FORK = "fork"
    CHAIN = "chain"
    COLLIDER = "collider"


class PathKind(str, Enum):
    CAUSAL = "causal"
    BACKDOOR = "backdoor"


def classify_triple(dag: CausalDAG, x: str, q: str, y: str) -> TripleKind:
    """Classify q relative to its path neighbours x and y."""
    if not (dag.is_adjacent(x, q) and dag.is_adjacent(q, y)):
        raise ValueError(f"'{q}' is not adjacent to both '{x}' and '{y}'")

    if dag.has_edge(x, q) and dag.has_edge(y, q):
        return TripleKind.COLLIDER
    if dag.has_edge(q, x) and dag.has_edge(q, y):
        return TripleKind.FORK
    return TripleKind.CHAIN


def _triple_kind(arrow_in: bool, arrow_out: bool) -> TripleKind:
    # arrow_in: previous step points along the path into q
    # arrow_out: next step points along the path out of q
    if arrow_in and not arrow_out:
        return TripleKind.COLLIDER
    if not arrow_in and arrow_out:
        return TripleKind.FORK
    return TripleKind.CHAIN


def colliders(dag: CausalDAG) -> List[str]:
    """Nodes with two or more parents, i.e. potential colliders."""
    return [node_id for node_id in dag.node_ids() if len(dag.parents(node_id)) >= 2]


@dataclass(frozen=True)
class CausalPath:
    """
    A simple path between exposure and outcome.

    `forward[i]` is True when the edge between nodes[i] and nodes[i + 1]
    points from nodes[i] to nodes[i + 1].
    """
    nodes: Tuple[str, ...]
    forward: Tuple[bool, ...]
    kind: PathKind
    colliders: Tuple[str, ...]
    conditioned: FrozenSet[str]
    is_open: bool

    @property
    def exposure(self) -> str:
        return self.nodes[0]

    @property
    def outcome(self) -> str:
        return self.nodes[-1]

    @property
    def is_causal(self) -> bool:
        return self.kind == PathKind.CAUSAL

    @property
    def is_backdoor(self) -> bool:
        return self.kind == PathKind.BACKDOOR

    @property
    def enters_exposure(self) -> bool:
        """True when the first edge points into the exposure (Pearl's backdoor)."""
        return not self.forward[0]

    @property
    def intermediates(self) -> Tuple[str, ...]:
        return self.nodes[1:-1]

    def triples(self) -> List[Tuple[str, str, str, TripleKind]]:
        """(x, q, y, kind) for every intermediate node q."""
        return [
            (
                self.nodes[i - 1],
                self.nodes[i],
                self.nodes[i + 1],
                _triple_kind(self.forward[i - 1], self.forward[i]),
            )
            for i in range(1, len(self.nodes) - 1)
        ]

    def __str__(self) -> str:
        parts = [self.nodes[0]]
        for step, node_id in zip(self.forward, self.nodes[1:]):
            parts.append("->" if step else "<-")
            parts.append(node_id)
        return " ".join(parts)


class PathCollection:
    """
    Lazy, restartable sequence of paths.

    Nothing is traversed until iteration starts, and every new iteration
    walks the graph again from scratch.
    """

    def __init__(
        self,
        finder: 'PathFinder',
        exposure: str,
        outcome: str,
        conditioned: FrozenSet[str],
        open_only: bool = False,
    ):
        self.exposure = exposure
        self.outcome = outcome
        self.conditioned = conditioned
        self.open_only = open_only
        self._finder = finder

    def __iter__(self) -> Iterator[CausalPath]:
        for path in self._finder._walk(self.exposure, self.outcome, self.conditioned):
            if self.open_only and not path.is_open:
                continue
            yield path

    def __len__(self) -> int:
        return sum(1 for _ in self)

    def causal(self) -> List[CausalPath]:
        return [path for path in self if path.is_causal]

    def backdoor(self) -> List[CausalPath]:
        return [path for path in self if path.is_backdoor]

    def open(self) -> List[CausalPath]:
        return [path for path in self if path.is_open]

    def closed(self) -> List[CausalPath]:
        return [path for path in self if not path.is_open]

    def __repr__(self) -> str:
        return (
            f"PathCollection({self.exposure} ~> {self.outcome}, "
            f"conditioned={sorted(self.conditioned)}, open_only={self.open_only})"
        )


class PathFinder:
    """
    Enumerates the simple paths between two nodes of a CausalDAG.

    Neighbours are visited in lexical order, so results are deterministic
    for a given graph. With `max_paths` set, a walk that yields more paths
    than that raises SearchLimitError.
    """

    def __init__(self, dag: CausalDAG, max_paths: Optional[int] = None):
        self.dag = dag
        self.max_paths = max_paths
        self._descendants: Dict[str, FrozenSet[str]] = {}

    def resolve_endpoints(
        self,
        exposure: Optional[str] = None,
        outcome: Optional[str] = None,
    ) -> Tuple[str, str]:
        """Fall back to the DAG's tagged exposure/outcome and check both exist."""
        if exposure is None:
            exposure = self.dag.exposure
        if outcome is None:
            outcome = self.dag.outcome
        if exposure is None or outcome is None:
            raise CausalDAGError(
                "Exposure and outcome must be given or tagged in the DAG"
            )
        for node_id, context in ((exposure, "exposure"), (outcome, "outcome")):
            if not self.dag.has_node(node_id):
                raise UnknownNodeError(node_id, context)
        if exposure == outcome:
            raise CausalDAGError(f"Exposure and outcome must differ, both are '{exposure}'")
        return exposure, outcome

    def _check_conditioned(self, conditioned: Iterable[str]) -> FrozenSet[str]:
        conditioned = frozenset(conditioned)
        for node_id in conditioned:
            if not self.dag.has_node(node_id):
                raise UnknownNodeError(node_id, "conditioning set")
        return conditioned

    def descendants(self, node_id: str) -> FrozenSet[str]:
        if node_id not in self._descendants:
            self._descendants[node_id] = frozenset(self.dag.descendants(node_id))
        return self._descendants[node_id]

    def find_paths(
        self,
        exposure: Optional[str] = None,
        outcome: Optional[str] = None,
        conditioned: Iterable[str] = (),
        open_only: bool = False,
    ) -> PathCollection:
        """
        All simple paths between exposure and outcome.

        Args:
            exposure: start node, defaults to the DAG's tagged exposure
            outcome: end node, defaults to the DAG's tagged outcome
            conditioned: conditioning set Z used for open/blocked status
            open_only: drop paths that are blocked under Z

        Returns:
            Lazy PathCollection of CausalPath
        """
        exposure, outcome = self.resolve_endpoints(exposure, outcome)
        return PathCollection(
            self,
            exposure,
            outcome,
            self._check_conditioned(conditioned),
            open_only=open_only,
        )

    def _walk(self, exposure: str, outcome: str, conditioned: FrozenSet[str]) -> Iterator[CausalPath]:
        logger.debug(f"Walking paths {exposure} ~> {outcome} given {sorted(conditioned)}")
        path = [exposure]
        on_path = {exposure}
        stack = [iter(self.dag.neighbors(exposure))]
        found = 0

        while stack:
            neighbor = next(stack[-1], None)
            if neighbor is None:
                stack.pop()
                on_path.discard(path.pop())
                continue
            if neighbor in on_path:
                continue
            if neighbor == outcome:
                found += 1
                if self.max_paths is not None and found > self.max_paths:
                    raise SearchLimitError(
                        f"More than {self.max_paths} paths between {exposure} and {outcome}"
                    )
                yield self.describe_path(path + [outcome], conditioned)
                continue
            path.append(neighbor)
            on_path.add(neighbor)
            stack.append(iter(self.dag.neighbors(neighbor)))

    def _directions(self, nodes: Sequence[str]) -> Tuple[bool, ...]:
        forward = []
        for a, b in zip(nodes, nodes[1:]):
            if self.dag.has_edge(a, b):
                forward.append(True)
            elif self.dag.has_edge(b, a):
                forward.append(False)
            else:
                raise ValueError(f"'{a}' and '{b}' are not adjacent")
        return tuple(forward)

    def _open_given(
        self,
        nodes: Sequence[str],
        forward: Sequence[bool],
        conditioned: FrozenSet[str],
    ) -> bool:
        for i in range(1, len(nodes) - 1):
            q = nodes[i]
            if _triple_kind(forward[i - 1], forward[i]) == TripleKind.COLLIDER:
                if q not in conditioned and not (self.descendants(q) & conditioned):
                    return False
            elif q in conditioned:
                return False
        return True

    def is_path_open(self, nodes: Sequence[str], conditioned: Iterable[str] = ()) -> bool:
        """
        True unless the path contains a conditioned non-collider, or a
        collider that is neither conditioned on nor has a conditioned
        descendant.
        """
        conditioned = self._check_conditioned(conditioned)
        return self._open_given(nodes, self._directions(nodes), conditioned)

    def describe_path(self, nodes: Sequence[str], conditioned: Iterable[str] = ()) -> CausalPath:
        """Build a CausalPath for an explicit node sequence."""
        nodes = tuple(nodes)
        if len(nodes) < 2:
            raise ValueError("A path needs at least two nodes")
        if len(set(nodes)) != len(nodes):
            raise ValueError(f"Path revisits a node: {nodes}")

        conditioned = self._check_conditioned(conditioned)
        forward = self._directions(nodes)
        collider_nodes = tuple(
            nodes[i] for i in range(1, len(nodes) - 1)
            if _triple_kind(forward[i - 1], forward[i]) == TripleKind.COLLIDER
        )
        return CausalPath(
            nodes=nodes,
            forward=forward,
            kind=PathKind.CAUSAL if all(forward) else PathKind.BACKDOOR,
            colliders=collider_nodes,
            conditioned=conditioned,
            is_open=self._open_given(nodes, forward, conditioned),
        )


def find_paths(
    dag: CausalDAG,
    exposure: Optional[str] = None,
    outcome: Optional[str] = None,
    conditioned: Iterable[str] = (),
    open_only: bool = False,
) -> PathCollection:
    """Shortcut for PathFinder(dag).find_paths(...)."""
    return PathFinder(dag).find_paths(exposure, outcome, conditioned, open_only)


def is_path_open(dag: CausalDAG, nodes: Sequence[str], conditioned: Iterable[str] = ()) -> bool:
    return PathFinder(dag).is_path_open(nodes, conditioned)


def is_d_separated(
    dag: CausalDAG,
    xs: Union[str, Iterable[str]],
    ys: Union[str, Iterable[str]],
    conditioned: Iterable[str] = (),
) -> bool:
    """
    Whether `conditioned` d-separates xs from ys.

    Delegates to networkx and is used to cross-check the path-based logic.
    """
    xs = {xs} if isinstance(xs, str) else set(xs)
    ys = {ys} if isinstance(ys, str) else set(ys)
    conditioned = set(conditioned)
    for node_id in xs | ys | conditioned:
        if not dag.has_node(node_id):
            raise UnknownNodeError(node_id)
    return nx.is_d_separator(dag.to_networkx(), xs, ys, conditioned)
