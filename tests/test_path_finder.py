"""
Unit tests for node classification and path enumeration (Component B)
"""
import pytest

from causal_dag import (
    CausalDAGError,
    PathFinder,
    PathKind,
    SearchLimitError,
    TripleKind,
    UnknownNodeError,
    classify_triple,
    colliders,
    dagify,
    find_paths,
    is_d_separated,
    is_path_open,
)


@pytest.fixture
def fork_dag():
    """x ← q → y"""
    return dagify("x ~ q", "y ~ q", exposure="x", outcome="y")


@pytest.fixture
def chain_dag():
    """x → q → y"""
    return dagify("q ~ x", "y ~ q", exposure="x", outcome="y")


@pytest.fixture
def collider_dag():
    """x → q ← y, with d a descendant of q"""
    return dagify("q ~ x + y", "d ~ q", exposure="x", outcome="y")


@pytest.fixture
def podcast_dag():
    return dagify(
        "podcast ~ mood + humor + prepared",
        "exam ~ mood + prepared",
        exposure="podcast",
        outcome="exam",
    )


def test_classify_triples(fork_dag, chain_dag, collider_dag):
    """Test fork, chain and collider classification"""
    assert classify_triple(fork_dag, "x", "q", "y") == TripleKind.FORK
    assert classify_triple(chain_dag, "x", "q", "y") == TripleKind.CHAIN
    assert classify_triple(chain_dag, "y", "q", "x") == TripleKind.CHAIN
    assert classify_triple(collider_dag, "x", "q", "y") == TripleKind.COLLIDER


def test_classify_triple_requires_adjacency(chain_dag):
    with pytest.raises(ValueError):
        classify_triple(chain_dag, "x", "y", "q")


def test_colliders(podcast_dag, collider_dag):
    assert colliders(podcast_dag) == ["exam", "podcast"]
    assert colliders(collider_dag) == ["q"]


def test_fork_path(fork_dag):
    """Fork: one backdoor path, open unless q is conditioned on"""
    paths = list(find_paths(fork_dag))
    assert len(paths) == 1

    path = paths[0]
    assert path.nodes == ("x", "q", "y")
    assert path.kind == PathKind.BACKDOOR
    assert path.enters_exposure
    assert path.is_open
    assert str(path) == "x <- q -> y"

    blocked = list(find_paths(fork_dag, conditioned={"q"}))
    assert len(blocked) == 1
    assert not blocked[0].is_open


def test_chain_path(chain_dag):
    """Chain: the only path is causal; conditioning on q blocks it"""
    paths = list(find_paths(chain_dag))
    assert len(paths) == 1
    assert paths[0].is_causal
    assert paths[0].is_open
    assert str(paths[0]) == "x -> q -> y"

    assert not list(find_paths(chain_dag, conditioned=["q"]))[0].is_open


def test_collider_path(collider_dag):
    """Collider: blocked by default, opened by q or its descendant d"""
    path = list(find_paths(collider_dag))[0]
    assert path.nodes == ("x", "q", "y")
    assert path.colliders == ("q",)
    assert not path.is_causal
    assert not path.enters_exposure
    assert not path.is_open

    assert list(find_paths(collider_dag, conditioned=["q"]))[0].is_open
    assert list(find_paths(collider_dag, conditioned=["d"]))[0].is_open


def test_podcast_paths(podcast_dag):
    """Exactly two open backdoor paths: via mood and via prepared"""
    paths = list(find_paths(podcast_dag))
    assert [str(path) for path in paths] == [
        "podcast <- mood -> exam",
        "podcast <- prepared -> exam",
    ]
    assert all(path.is_backdoor and path.is_open for path in paths)

    adjusted = find_paths(podcast_dag, conditioned=["mood", "prepared"])
    assert len(adjusted) == 2
    assert adjusted.open() == []


def test_causal_and_backdoor_split():
    """Direct effect plus a confounder"""
    dag = dagify("y ~ x + z", "x ~ z", exposure="x", outcome="y")
    collection = find_paths(dag)

    assert [path.nodes for path in collection.causal()] == [("x", "y")]
    assert [path.nodes for path in collection.backdoor()] == [("x", "z", "y")]
    assert len(collection.closed()) == 0


def test_m_bias_path_opened_by_collider():
    """x ← a → m ← b → y: closed until m is conditioned, closed again with a"""
    dag = dagify("x ~ a", "m ~ a + b", "y ~ b + x", exposure="x", outcome="y")
    finder = PathFinder(dag)

    backdoor = finder.find_paths().backdoor()
    assert [path.nodes for path in backdoor] == [("x", "a", "m", "b", "y")]
    assert not backdoor[0].is_open

    assert finder.is_path_open(backdoor[0].nodes, {"m"})
    assert not finder.is_path_open(backdoor[0].nodes, {"m", "a"})


def test_triples_along_path():
    dag = dagify("x ~ a", "m ~ a + b", "y ~ b + x", exposure="x", outcome="y")
    path = find_paths(dag).backdoor()[0]
    assert [(q, kind) for _, q, _, kind in path.triples()] == [
        ("a", TripleKind.FORK),
        ("m", TripleKind.COLLIDER),
        ("b", TripleKind.FORK),
    ]


def test_open_only_filter(fork_dag):
    assert len(find_paths(fork_dag, conditioned=["q"], open_only=True)) == 0
    assert len(find_paths(fork_dag, open_only=True)) == 1


def test_paths_are_lazy_and_restartable(podcast_dag):
    """Nothing is walked until iteration; each iteration walks again"""

    class CountingFinder(PathFinder):
        walks = 0

        def _walk(self, *args):
            self.walks += 1
            yield from super()._walk(*args)

    finder = CountingFinder(podcast_dag)
    collection = finder.find_paths()
    assert finder.walks == 0

    first = list(collection)
    second = list(collection)
    assert finder.walks == 2
    assert first == second


def test_find_paths_idempotent(podcast_dag):
    assert list(find_paths(podcast_dag)) == list(find_paths(podcast_dag))


def test_explicit_endpoints_override_tags(podcast_dag):
    """mood and humor are independent: every path runs through a collider"""
    paths = list(find_paths(podcast_dag, exposure="mood", outcome="humor"))
    assert [path.nodes for path in paths] == [
        ("mood", "exam", "prepared", "podcast", "humor"),
        ("mood", "podcast", "humor"),
    ]
    assert paths[0].colliders == ("exam", "podcast")
    assert not any(path.is_open for path in paths)


def test_missing_endpoints():
    dag = dagify("y ~ x")
    with pytest.raises(CausalDAGError):
        find_paths(dag)
    with pytest.raises(UnknownNodeError):
        find_paths(dag, exposure="x", outcome="nope")


def test_empty_endpoint_is_not_a_fallback(fork_dag):
    """An explicit empty id is checked, not replaced by the tagged node"""
    with pytest.raises(UnknownNodeError) as excinfo:
        find_paths(fork_dag, exposure="")
    assert excinfo.value.node_id == ""
    with pytest.raises(UnknownNodeError):
        find_paths(fork_dag, outcome="")


def test_descendants_cannot_be_mutated(chain_dag):
    """Cached descendant sets are shared between queries, so they are frozen"""
    finder = PathFinder(chain_dag)
    descendants = finder.descendants("x")
    assert descendants == {"q", "y"}
    with pytest.raises(AttributeError):
        descendants.add("z")
    assert finder.descendants("x") == {"q", "y"}


def test_max_paths(podcast_dag):
    assert len(PathFinder(podcast_dag, max_paths=2).find_paths()) == 2
    with pytest.raises(SearchLimitError):
        list(PathFinder(podcast_dag, max_paths=1).find_paths())


def test_unknown_conditioning_node(fork_dag):
    with pytest.raises(UnknownNodeError):
        find_paths(fork_dag, conditioned=["nope"])


def test_is_path_open_rejects_non_adjacent(chain_dag):
    with pytest.raises(ValueError):
        is_path_open(chain_dag, ["x", "y"])


def test_d_separation_agrees_with_paths(fork_dag, collider_dag):
    """networkx d-separation matches path blocking"""
    assert not is_d_separated(fork_dag, "x", "y")
    assert is_d_separated(fork_dag, "x", "y", {"q"})
    assert is_d_separated(collider_dag, "x", "y")
    assert not is_d_separated(collider_dag, "x", "y", {"d"})
