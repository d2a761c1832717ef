"""
Immutable causal DAG.

Wraps a frozen networkx DiGraph. Nodes carry an optional display label,
display coordinates and a role tag (exposure, outcome, covariate,
unobserved). Acyclicity and node references are checked once, at
construction; afterwards the graph never changes.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Iterable, List, Optional, Set, Tuple

import networkx as nx

from causal_dag.exceptions import CausalDAGError, CycleError, UnknownNodeError


class NodeRole(str, Enum):
    """Role a variable plays in the causal question."""
    EXPOSURE = "exposure"
    OUTCOME = "outcome"
    COVARIATE = "covariate"
    UNOBSERVED = "unobserved"


@dataclass(frozen=True)
class CausalNode:
    """A labeled variable in the graph."""
    node_id: str
    label: Optional[str] = None
    role: NodeRole = NodeRole.COVARIATE
    x: Optional[float] = None
    y: Optional[float] = None

    @property
    def display_label(self) -> str:
        return self.label or self.node_id


@dataclass(frozen=True)
class CausalEdge:
    """A directed edge: cause → effect."""
    cause: str
    effect: str

    def __str__(self) -> str:
        return f"{self.cause} → {self.effect}"


class CausalDAG:
    """
    A directed acyclic graph of causal assumptions.

    Build it with `DAGBuilder` or `build_dag()` rather than directly.
    """

    def __init__(self, nodes: Iterable[CausalNode], edges: Iterable[CausalEdge]):
        node_list = sorted(nodes, key=lambda node: node.node_id)
        self._nodes: Dict[str, CausalNode] = {}
        for node in node_list:
            if node.node_id in self._nodes:
                raise CausalDAGError(f"Duplicate node id '{node.node_id}'")
            self._nodes[node.node_id] = node

        self._edges: Tuple[CausalEdge, ...] = tuple(dict.fromkeys(edges))
        for edge in self._edges:
            for endpoint in (edge.cause, edge.effect):
                if endpoint not in self._nodes:
                    raise UnknownNodeError(endpoint, f"edge {edge}")

        self._exposure = self._single_role(NodeRole.EXPOSURE)
        self._outcome = self._single_role(NodeRole.OUTCOME)

        graph = nx.DiGraph()
        for node in self._nodes.values():
            graph.add_node(
                node.node_id,
                label=node.display_label,
                role=node.role.value,
                x=node.x,
                y=node.y,
            )
        graph.add_edges_from((edge.cause, edge.effect) for edge in self._edges)

        if not nx.is_directed_acyclic_graph(graph):
            cycle = [cause for cause, _ in nx.find_cycle(graph)]
            raise CycleError(cycle)

        self._graph = nx.freeze(graph)

    def _single_role(self, role: NodeRole) -> Optional[str]:
        tagged = [node_id for node_id, node in self._nodes.items() if node.role == role]
        if len(tagged) > 1:
            raise CausalDAGError(
                f"At most one {role.value} node allowed, got {', '.join(tagged)}"
            )
        return tagged[0] if tagged else None

    def _require(self, node_id: str) -> str:
        if node_id not in self._nodes:
            raise UnknownNodeError(node_id)
        return node_id

    # Graph properties

    @property
    def nodes(self) -> Tuple[CausalNode, ...]:
        return tuple(self._nodes.values())

    @property
    def edges(self) -> Tuple[CausalEdge, ...]:
        return self._edges

    @property
    def exposure(self) -> Optional[str]:
        return self._exposure

    @property
    def outcome(self) -> Optional[str]:
        return self._outcome

    @property
    def unobserved(self) -> FrozenSet[str]:
        return frozenset(
            node_id for node_id, node in self._nodes.items()
            if node.role == NodeRole.UNOBSERVED
        )

    def node_ids(self) -> Tuple[str, ...]:
        return tuple(self._nodes)

    def node(self, node_id: str) -> CausalNode:
        return self._nodes[self._require(node_id)]

    def has_node(self, node_id: str) -> bool:
        return node_id in self._nodes

    def has_edge(self, cause: str, effect: str) -> bool:
        return self._graph.has_edge(self._require(cause), self._require(effect))

    def is_adjacent(self, a: str, b: str) -> bool:
        """True if a and b share an edge in either direction."""
        return self.has_edge(a, b) or self.has_edge(b, a)

    # Structural queries

    def parents(self, node_id: str) -> Set[str]:
        """Direct causes of node."""
        return set(self._graph.predecessors(self._require(node_id)))

    def children(self, node_id: str) -> Set[str]:
        """Direct effects of node."""
        return set(self._graph.successors(self._require(node_id)))

    def ancestors(self, node_id: str) -> Set[str]:
        """All nodes with a directed path leading to node."""
        return set(nx.ancestors(self._graph, self._require(node_id)))

    def descendants(self, node_id: str) -> Set[str]:
        """All nodes reachable from node via directed paths."""
        return set(nx.descendants(self._graph, self._require(node_id)))

    def neighbors(self, node_id: str) -> List[str]:
        """Neighbours in the undirected skeleton, sorted by id."""
        return sorted(self.parents(node_id) | self.children(node_id))

    def to_networkx(self) -> nx.DiGraph:
        """Mutable copy with label/role/x/y node attributes, for plotting."""
        return nx.DiGraph(self._graph)

    # Value semantics

    def _key(self):
        return (self.nodes, frozenset(self._edges))

    def __eq__(self, other) -> bool:
        if not isinstance(other, CausalDAG):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id) -> bool:
        return node_id in self._nodes

    def __repr__(self) -> str:
        if not self._nodes:
            return "CausalDAG (empty)"
        lines = ["CausalDAG:"]
        for edge in self._edges:
            lines.append(f"  {edge}")
        isolated = [n for n in self._nodes if self._graph.degree(n) == 0]
        for node_id in isolated:
            lines.append(f"  {node_id}")
        if self._exposure or self._outcome:
            lines.append(f"  exposure={self._exposure} outcome={self._outcome}")
        return "\n".join(lines)
