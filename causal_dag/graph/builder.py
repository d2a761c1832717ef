"""
Declarative construction of causal DAGs.

Relationships are declared formula-style, one effect per declaration:

    dag = dagify(
        "podcast ~ mood + humor + prepared",
        "exam ~ mood + prepared",
        exposure="podcast",
        outcome="exam",
    )

or through the fluent builder:

    dag = (
        DAGBuilder()
        .add("podcast", "mood", "humor", "prepared")
        .add("exam", "mood", "prepared")
        .exposure("podcast")
        .outcome("exam")
        .build()
    )

Every edge is checked for cycles as it is declared, so the offending
declaration is the one that raises CycleError.
"""
import re
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import networkx as nx
from loguru import logger

from causal_dag.exceptions import (
    CausalDAGError,
    CycleError,
    FormulaParseError,
    UnknownNodeError,
)
from .dag import CausalDAG, CausalEdge, CausalNode, NodeRole


_IDENTIFIER = re.compile(r"[A-Za-z_.][\w.]*")

Declaration = Union[str, Tuple[str, Union[str, Iterable[str]]]]


def parse_formula(text: str) -> Tuple[str, Tuple[str, ...]]:
    """
    Parse `effect ~ cause1 + cause2` into (effect, (cause1, cause2)).

    A bare `effect` (or `effect ~`) declares a node with no causes.
    """
    if not isinstance(text, str):
        raise FormulaParseError(f"Formula must be a string, got {type(text).__name__}")

    lhs, tilde, rhs = text.partition("~")
    effect = lhs.strip()
    if not _IDENTIFIER.fullmatch(effect):
        raise FormulaParseError(f"Invalid effect in formula '{text}'")

    if not tilde or not rhs.strip():
        return effect, ()

    if "~" in rhs:
        raise FormulaParseError(f"More than one '~' in formula '{text}'")

    causes = []
    for term in rhs.split("+"):
        term = term.strip()
        if not _IDENTIFIER.fullmatch(term):
            raise FormulaParseError(f"Invalid cause '{term}' in formula '{text}'")
        causes.append(term)

    return effect, tuple(causes)


def _check_identifier(node_id, context: str) -> str:
    if not isinstance(node_id, str) or not _IDENTIFIER.fullmatch(node_id):
        raise FormulaParseError(f"Invalid {context} {node_id!r}")
    return node_id


class DAGBuilder:
    """Collects declarations and produces an immutable CausalDAG."""

    def __init__(self):
        self._graph = nx.DiGraph()
        self._edges: List[CausalEdge] = []
        self._labels: Dict[str, str] = {}
        self._coords: Dict[str, Tuple[float, float]] = {}
        self._unobserved: List[str] = []
        self._exposure: Optional[str] = None
        self._outcome: Optional[str] = None

    def add(self, effect: str, *causes: str) -> 'DAGBuilder':
        """Declare that each of causes has a direct effect on effect."""
        _check_identifier(effect, "effect")
        for cause in causes:
            _check_identifier(cause, "cause")
        self._graph.add_node(effect)
        for cause in causes:
            self._add_edge(cause, effect)
        return self

    def formula(self, text: str) -> 'DAGBuilder':
        effect, causes = parse_formula(text)
        return self.add(effect, *causes)

    def _add_edge(self, cause: str, effect: str):
        if self._graph.has_edge(cause, effect):
            return
        if cause == effect:
            raise CycleError([cause])
        if cause in self._graph and nx.has_path(self._graph, effect, cause):
            # effect already reaches cause, so cause → effect closes the loop
            back = nx.shortest_path(self._graph, effect, cause)
            raise CycleError([cause] + back[:-1])

        self._graph.add_edge(cause, effect)
        self._edges.append(CausalEdge(cause=cause, effect=effect))
        logger.debug(f"Declared edge {cause} → {effect}")

    def label(self, node_id: str, text: str) -> 'DAGBuilder':
        self._labels[node_id] = text
        return self

    def coords(self, node_id: str, x: float, y: float) -> 'DAGBuilder':
        try:
            self._coords[node_id] = (float(x), float(y))
        except (TypeError, ValueError):
            raise CausalDAGError(f"Invalid coordinates for '{node_id}': ({x!r}, {y!r})")
        return self

    def exposure(self, node_id: str) -> 'DAGBuilder':
        self._exposure = node_id
        return self

    def outcome(self, node_id: str) -> 'DAGBuilder':
        self._outcome = node_id
        return self

    def unobserved(self, *node_ids: str) -> 'DAGBuilder':
        self._unobserved.extend(node_ids)
        return self

    def _role_for(self, node_id: str) -> NodeRole:
        if node_id == self._exposure:
            return NodeRole.EXPOSURE
        if node_id == self._outcome:
            return NodeRole.OUTCOME
        if node_id in self._unobserved:
            return NodeRole.UNOBSERVED
        return NodeRole.COVARIATE

    def _check_references(self):
        references = [
            (self._exposure, "exposure"),
            (self._outcome, "outcome"),
        ]
        references += [(node_id, "label") for node_id in self._labels]
        references += [(node_id, "coordinates") for node_id in self._coords]
        references += [(node_id, "unobserved") for node_id in self._unobserved]

        for node_id, context in references:
            if node_id is not None and node_id not in self._graph:
                raise UnknownNodeError(node_id, context)

        if self._exposure is not None and self._exposure == self._outcome:
            raise CausalDAGError(
                f"Exposure and outcome must differ, both are '{self._exposure}'"
            )
        for node_id in (self._exposure, self._outcome):
            if node_id is not None and node_id in self._unobserved:
                raise CausalDAGError(f"'{node_id}' cannot be both tagged and unobserved")

    def build(self) -> CausalDAG:
        self._check_references()

        nodes = []
        for node_id in self._graph.nodes:
            x, y = self._coords.get(node_id, (None, None))
            nodes.append(CausalNode(
                node_id=node_id,
                label=self._labels.get(node_id),
                role=self._role_for(node_id),
                x=x,
                y=y,
            ))

        dag = CausalDAG(nodes, self._edges)
        logger.info(
            f"Built causal DAG with {len(nodes)} nodes and {len(self._edges)} edges "
            f"(exposure={dag.exposure}, outcome={dag.outcome})"
        )
        return dag


def build_dag(
    declarations: Iterable[Declaration],
    *,
    exposure: Optional[str] = None,
    outcome: Optional[str] = None,
    labels: Optional[Mapping[str, str]] = None,
    coords: Optional[Mapping[str, Sequence[float]]] = None,
    unobserved: Iterable[str] = (),
) -> CausalDAG:
    """
    Build a CausalDAG from an ordered list of declarations.

    Args:
        declarations: formula strings (`"y ~ a + b"`) or (effect, causes)
            pairs, where causes is a node id or an iterable of node ids
        exposure: node tagged as the exposure (treatment)
        outcome: node tagged as the outcome
        labels: display labels by node id
        coords: (x, y) display coordinates by node id
        unobserved: nodes that cannot be measured or adjusted for

    Returns:
        Immutable CausalDAG

    Raises:
        CycleError: a declaration closes a directed cycle
        UnknownNodeError: a tag, label or coordinate names an undeclared node
        FormulaParseError: a formula string or declared node id is malformed
        CausalDAGError: a coordinate entry is not a numeric (x, y) pair
    """
    builder = DAGBuilder()

    for declaration in declarations:
        if isinstance(declaration, str):
            builder.formula(declaration)
            continue
        try:
            effect, causes = declaration
        except (TypeError, ValueError):
            raise FormulaParseError(f"Invalid declaration: {declaration!r}")
        if isinstance(causes, str):
            causes = (causes,)
        try:
            causes = tuple(causes)
        except TypeError:
            raise FormulaParseError(f"Invalid causes in declaration: {declaration!r}")
        builder.add(effect, *causes)

    for node_id, text in (labels or {}).items():
        builder.label(node_id, text)
    for node_id, position in (coords or {}).items():
        try:
            x, y = position
        except (TypeError, ValueError):
            raise CausalDAGError(f"Coordinates for '{node_id}' must be an (x, y) pair, got {position!r}")
        builder.coords(node_id, x, y)
    builder.unobserved(*unobserved)
    if exposure is not None:
        builder.exposure(exposure)
    if outcome is not None:
        builder.outcome(outcome)

    return builder.build()


def dagify(*formulas: Declaration, **kwargs) -> CausalDAG:
    """Shorthand for build_dag(formulas, **kwargs)."""
    return build_dag(formulas, **kwargs)
