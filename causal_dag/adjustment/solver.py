"""
AdjustmentSetSolver: minimal sets of variables that close every backdoor path.

A conditioning set Z is a valid adjustment set for (exposure, outcome) when
  1. no member of Z is the exposure, the outcome, a descendant of the
     exposure, or unobserved;
  2. every backdoor path is blocked given Z;
  3. every causal path stays open given Z.

Condition 1 also rules out conditioning on colliders that sit downstream of
the exposure. Colliders elsewhere are allowed only if the path they open is
blocked again by another member of Z, which condition 2 checks.
"""
import itertools
from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Iterable, List, Optional, Sequence, Set, Tuple

import networkx as nx
from loguru import logger

from causal_dag.exceptions import NoValidAdjustmentSetError, SearchLimitError
from causal_dag.graph import CausalDAG
from causal_dag.path_finder import CausalPath, PathFinder


class VariableCategory(str, Enum):
    CONFOUNDER = "confounder"
    BACKDOOR_BLOCKER = "backdoor_blocker"
    MEDIATOR = "mediator"
    COLLIDER = "collider"
    EXPOSURE_DESCENDANT = "exposure_descendant"
    UNOBSERVED = "unobserved"
    NEUTRAL = "neutral"


@dataclass(frozen=True)
class AdjustmentAdvice:
    """Whether a single variable should be conditioned on, and why."""
    node_id: str
    category: VariableCategory
    should_adjust: bool
    reason: str


def _render_sets(sets: Iterable[FrozenSet[str]]) -> str:
    return ", ".join("{" + ", ".join(sorted(found)) + "}" for found in sets)


class AdjustmentSetSolver:
    """
    Computes every minimal adjustment set for an exposure/outcome pair.

    Candidates are limited to observed, non-descendant nodes lying on some
    backdoor path; a node off every path cannot block anything. Subsets are
    tried smallest first, and any subset containing an already-found set is
    skipped, so each returned set is minimal.

    `max_set_size` caps the subset size tried. When the cap cuts the search
    short before any set is found, SearchLimitError is raised instead of
    NoValidAdjustmentSetError, since a larger set might still exist.
    """

    def __init__(
        self,
        dag: CausalDAG,
        max_set_size: Optional[int] = None,
        max_paths: Optional[int] = None,
    ):
        self.dag = dag
        self.max_set_size = max_set_size
        self.finder = PathFinder(dag, max_paths=max_paths)
        self._solutions: Dict[Tuple[str, str], Tuple[List[FrozenSet[str]], List[CausalPath]]] = {}

    def _split_paths(self, exposure: str, outcome: str):
        paths = list(self.finder.find_paths(exposure, outcome))
        causal = [path for path in paths if path.is_causal]
        backdoor = [path for path in paths if path.is_backdoor]
        return causal, backdoor

    def _forbidden(self, exposure: str, outcome: str) -> FrozenSet[str]:
        return self.finder.descendants(exposure) | {exposure, outcome} | self.dag.unobserved

    def _blocks(
        self,
        conditioned: FrozenSet[str],
        causal: Sequence[CausalPath],
        backdoor: Sequence[CausalPath],
    ) -> bool:
        for path in backdoor:
            if self.finder._open_given(path.nodes, path.forward, conditioned):
                return False
        for path in causal:
            if not self.finder._open_given(path.nodes, path.forward, conditioned):
                return False
        return True

    def _solve(self, exposure: str, outcome: str) -> Tuple[List[FrozenSet[str]], List[CausalPath]]:
        """Minimal sets (possibly none) and the backdoor paths, cached per pair."""
        key = (exposure, outcome)
        if key in self._solutions:
            return self._solutions[key]

        causal, backdoor = self._split_paths(exposure, outcome)
        forbidden = self._forbidden(exposure, outcome)
        candidates = sorted(
            {node_id for path in backdoor for node_id in path.intermediates} - forbidden
        )
        limit = len(candidates)
        if self.max_set_size is not None:
            limit = min(limit, self.max_set_size)

        logger.debug(
            f"Solving adjustment sets for {exposure} → {outcome}: "
            f"{len(backdoor)} backdoor paths, candidates {candidates}"
        )

        minimal: List[FrozenSet[str]] = []
        for size in range(limit + 1):
            for combo in itertools.combinations(candidates, size):
                conditioned = frozenset(combo)
                if any(found <= conditioned for found in minimal):
                    continue
                if self._blocks(conditioned, causal, backdoor):
                    minimal.append(conditioned)

        if not minimal and limit < len(candidates):
            raise SearchLimitError(
                f"No adjustment set of at most {limit} variables for {exposure} → {outcome}; "
                f"{len(candidates)} candidates were not searched exhaustively"
            )

        self._solutions[key] = (minimal, backdoor)
        return minimal, backdoor

    def find_adjustment_sets(
        self,
        exposure: Optional[str] = None,
        outcome: Optional[str] = None,
    ) -> List[FrozenSet[str]]:
        """
        All minimal valid adjustment sets.

        Returns:
            Sets ordered by size, then by their sorted node ids.
            `[frozenset()]` when no adjustment is needed.

        Raises:
            NoValidAdjustmentSetError: no observed subset closes every
                backdoor path (e.g. an unobserved confounder)
            SearchLimitError: `max_set_size` or `max_paths` stopped the
                search before an answer was reached
        """
        exposure, outcome = self.finder.resolve_endpoints(exposure, outcome)
        minimal, backdoor = self._solve(exposure, outcome)

        if not minimal:
            still_open = [path for path in backdoor if path.is_open]
            logger.warning(
                f"No valid adjustment set for {exposure} → {outcome}; "
                f"{len(still_open)} backdoor paths cannot be closed"
            )
            raise NoValidAdjustmentSetError(exposure, outcome, still_open)

        logger.info(
            f"Found {len(minimal)} minimal adjustment set(s) for {exposure} → {outcome}: "
            f"{[sorted(found) for found in minimal]}"
        )
        return list(minimal)

    def is_valid_adjustment_set(
        self,
        conditioned: Iterable[str],
        exposure: Optional[str] = None,
        outcome: Optional[str] = None,
    ) -> bool:
        """Check a user-supplied conditioning set against the criteria above."""
        exposure, outcome = self.finder.resolve_endpoints(exposure, outcome)
        conditioned = self.finder._check_conditioned(conditioned)
        if conditioned & self._forbidden(exposure, outcome):
            return False
        causal, backdoor = self._split_paths(exposure, outcome)
        return self._blocks(conditioned, causal, backdoor)

    def classify_variables(
        self,
        exposure: Optional[str] = None,
        outcome: Optional[str] = None,
    ) -> Dict[str, AdjustmentAdvice]:
        """
        Adjustment advice for every node other than exposure and outcome.

        Advice follows the minimal adjustment sets: a node that belongs to
        one of them should be adjusted for, even when it is also a collider
        on another path (its partner in the set closes that path again).
        Nodes in no minimal set are labelled, in order: mediator, collider
        (or descendant of one), exposure descendant, unobserved, confounder,
        neutral. When no valid set exists, no node is marked for adjustment.
        """
        exposure, outcome = self.finder.resolve_endpoints(exposure, outcome)
        try:
            minimal = self.find_adjustment_sets(exposure, outcome)
            identifiable = True
        except NoValidAdjustmentSetError:
            minimal = []
            identifiable = False

        exposure_descendants = self.finder.descendants(exposure)
        exposure_ancestors = self.dag.ancestors(exposure)
        outcome_ancestors = self.dag.ancestors(outcome)
        # causes of the outcome that reach it without passing through the exposure
        bypass = self.dag.to_networkx()
        bypass.remove_node(exposure)
        outcome_causes = nx.ancestors(bypass, outcome)

        path_colliders: Set[str] = set()
        for path in self.finder.find_paths(exposure, outcome):
            path_colliders.update(path.colliders)
        collider_descendants: Dict[str, str] = {}
        for collider in sorted(path_colliders):
            for node_id in sorted(self.finder.descendants(collider)):
                collider_descendants.setdefault(node_id, collider)

        advice: Dict[str, AdjustmentAdvice] = {}
        for node_id in self.dag.node_ids():
            if node_id in (exposure, outcome):
                continue

            common_cause = node_id in exposure_ancestors and node_id in outcome_causes
            member_of = [found for found in minimal if node_id in found]

            if member_of:
                adjust = True
                if common_cause:
                    category = VariableCategory.CONFOUNDER
                    reason = "common cause of exposure and outcome"
                else:
                    category = VariableCategory.BACKDOOR_BLOCKER
                    reason = "closes a backdoor path"
                noun = "set" if len(member_of) == 1 else "sets"
                reason += f"; in minimal adjustment {noun} {_render_sets(member_of)}"
            elif node_id in exposure_descendants and node_id in outcome_ancestors:
                category, adjust = VariableCategory.MEDIATOR, False
                reason = "do not adjust for mediator: it lies on the causal path"
            elif node_id in path_colliders:
                category, adjust = VariableCategory.COLLIDER, False
                reason = "do not adjust for collider: conditioning opens the path through it"
            elif node_id in collider_descendants:
                category, adjust = VariableCategory.COLLIDER, False
                reason = (
                    f"do not adjust for descendant of collider "
                    f"'{collider_descendants[node_id]}'"
                )
            elif node_id in exposure_descendants:
                category, adjust = VariableCategory.EXPOSURE_DESCENDANT, False
                reason = "do not adjust for a descendant of the exposure"
            elif node_id in self.dag.unobserved:
                category, adjust = VariableCategory.UNOBSERVED, False
                reason = "unobserved: cannot be adjusted for"
                if common_cause:
                    reason = "unobserved confounder: cannot be adjusted for"
            elif not identifiable:
                category = VariableCategory.CONFOUNDER if common_cause else VariableCategory.NEUTRAL
                adjust = False
                reason = "no valid adjustment set exists for this exposure and outcome"
            elif common_cause:
                category, adjust = VariableCategory.CONFOUNDER, False
                reason = (
                    "common cause of exposure and outcome, but not needed: "
                    f"minimal adjustment sets are {_render_sets(minimal)}"
                )
            else:
                category, adjust = VariableCategory.NEUTRAL, False
                reason = "not needed to close any backdoor path"

            advice[node_id] = AdjustmentAdvice(
                node_id=node_id,
                category=category,
                should_adjust=adjust,
                reason=reason,
            )

        return advice


def find_adjustment_sets(
    dag: CausalDAG,
    exposure: Optional[str] = None,
    outcome: Optional[str] = None,
    max_set_size: Optional[int] = None,
) -> List[FrozenSet[str]]:
    """Shortcut for AdjustmentSetSolver(dag).find_adjustment_sets(...)."""
    return AdjustmentSetSolver(dag, max_set_size=max_set_size).find_adjustment_sets(exposure, outcome)


def is_valid_adjustment_set(
    dag: CausalDAG,
    conditioned: Iterable[str],
    exposure: Optional[str] = None,
    outcome: Optional[str] = None,
) -> bool:
    return AdjustmentSetSolver(dag).is_valid_adjustment_set(conditioned, exposure, outcome)


def classify_variables(
    dag: CausalDAG,
    exposure: Optional[str] = None,
    outcome: Optional[str] = None,
) -> Dict[str, AdjustmentAdvice]:
    return AdjustmentSetSolver(dag).classify_variables(exposure, outcome)
