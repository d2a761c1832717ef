"""
Unit tests for adjustment set computation (Component C)
"""
import pytest

from causal_dag import (
    AdjustmentSetSolver,
    NoValidAdjustmentSetError,
    SearchLimitError,
    VariableCategory,
    classify_variables,
    dagify,
    find_adjustment_sets,
    is_valid_adjustment_set,
)


@pytest.fixture
def podcast_dag():
    return dagify(
        "podcast ~ mood + humor + prepared",
        "exam ~ mood + prepared",
        exposure="podcast",
        outcome="exam",
    )


def test_podcast_unique_minimal_set(podcast_dag):
    """{mood, prepared} is the only minimal adjustment set"""
    assert find_adjustment_sets(podcast_dag) == [frozenset({"mood", "prepared"})]


def test_podcast_validity(podcast_dag):
    assert is_valid_adjustment_set(podcast_dag, {"mood", "prepared"})
    assert is_valid_adjustment_set(podcast_dag, {"mood", "prepared", "humor"})
    assert not is_valid_adjustment_set(podcast_dag, {"mood"})
    assert not is_valid_adjustment_set(podcast_dag, set())


def test_fork_needs_q():
    dag = dagify("x ~ q", "y ~ q", exposure="x", outcome="y")
    assert find_adjustment_sets(dag) == [frozenset({"q"})]


def test_chain_needs_no_adjustment():
    """Chain x → q → y: empty set; adjusting for q would block the effect"""
    dag = dagify("q ~ x", "y ~ q", exposure="x", outcome="y")
    assert find_adjustment_sets(dag) == [frozenset()]
    assert not is_valid_adjustment_set(dag, {"q"})

    advice = classify_variables(dag)["q"]
    assert advice.category == VariableCategory.MEDIATOR
    assert not advice.should_adjust
    assert advice.reason.startswith("do not adjust")


def test_collider_needs_no_adjustment():
    """Collider x → q ← y: empty set; adjusting for q or d opens the path"""
    dag = dagify("q ~ x + y", "d ~ q", exposure="x", outcome="y")
    assert find_adjustment_sets(dag) == [frozenset()]
    assert not is_valid_adjustment_set(dag, {"q"})
    assert not is_valid_adjustment_set(dag, {"d"})

    advice = classify_variables(dag)
    assert advice["q"].category == VariableCategory.COLLIDER
    assert advice["q"].reason.startswith("do not adjust for collider")
    assert advice["d"].category == VariableCategory.COLLIDER
    assert "'q'" in advice["d"].reason
    assert not any(item.should_adjust for item in advice.values())


def test_multiple_minimal_sets_sorted():
    """x ← z1 → z2 → y: either z1 or z2 closes the backdoor"""
    dag = dagify("x ~ z1", "z2 ~ z1", "y ~ z2 + x", exposure="x", outcome="y")
    assert find_adjustment_sets(dag) == [frozenset({"z1"}), frozenset({"z2"})]


def test_m_bias_empty_set():
    """Conditioning on the collider m alone is invalid; m with a is fine"""
    dag = dagify("x ~ a", "m ~ a + b", "y ~ b + x", exposure="x", outcome="y")
    assert find_adjustment_sets(dag) == [frozenset()]
    assert not is_valid_adjustment_set(dag, {"m"})
    assert is_valid_adjustment_set(dag, {"m", "a"})
    assert classify_variables(dag)["m"].category == VariableCategory.COLLIDER

    advice = classify_variables(dag)["a"]
    assert advice.category == VariableCategory.NEUTRAL
    assert not advice.should_adjust


def test_unobserved_confounder_raises():
    dag = dagify("x ~ u", "y ~ u + x", exposure="x", outcome="y", unobserved=["u"])

    with pytest.raises(NoValidAdjustmentSetError) as excinfo:
        find_adjustment_sets(dag)

    error = excinfo.value
    assert error.exposure == "x"
    assert error.outcome == "y"
    assert [path.nodes for path in error.open_paths] == [("x", "u", "y")]

    advice = classify_variables(dag)["u"]
    assert advice.category == VariableCategory.UNOBSERVED
    assert advice.reason.startswith("unobserved confounder")


def test_unobserved_confounder_with_observed_proxy():
    """x ← u → z → y with u unobserved: z still closes the path"""
    dag = dagify("x ~ u", "z ~ u", "y ~ z + x", exposure="x", outcome="y", unobserved=["u"])
    assert find_adjustment_sets(dag) == [frozenset({"z"})]
    assert not is_valid_adjustment_set(dag, {"u"})


def test_max_set_size_limits_search(podcast_dag):
    """A cap below the smallest valid set is reported as a search limit"""
    solver = AdjustmentSetSolver(podcast_dag, max_set_size=1)
    with pytest.raises(SearchLimitError) as excinfo:
        solver.find_adjustment_sets()
    assert not isinstance(excinfo.value, NoValidAdjustmentSetError)

    assert AdjustmentSetSolver(podcast_dag, max_set_size=2).find_adjustment_sets() == [
        frozenset({"mood", "prepared"})
    ]


def test_max_paths_limits_search(podcast_dag):
    solver = AdjustmentSetSolver(podcast_dag, max_paths=1)
    with pytest.raises(SearchLimitError):
        solver.find_adjustment_sets()


def test_exposure_descendants_excluded():
    """A descendant of x is never adjusted for, even when it touches y"""
    dag = dagify("m ~ x", "y ~ m + c", "x ~ c", "d ~ x", exposure="x", outcome="y")
    assert find_adjustment_sets(dag) == [frozenset({"c"})]
    assert not is_valid_adjustment_set(dag, {"c", "d"})

    advice = classify_variables(dag)
    assert advice["m"].category == VariableCategory.MEDIATOR
    assert advice["d"].category == VariableCategory.EXPOSURE_DESCENDANT
    assert advice["c"].category == VariableCategory.CONFOUNDER


def test_podcast_variable_advice(podcast_dag):
    advice = classify_variables(podcast_dag)
    assert set(advice) == {"mood", "humor", "prepared"}
    assert advice["mood"].should_adjust
    assert advice["prepared"].should_adjust
    assert advice["humor"].category == VariableCategory.NEUTRAL
    assert not advice["humor"].should_adjust


def test_solver_idempotent(podcast_dag):
    solver = AdjustmentSetSolver(podcast_dag)
    assert solver.find_adjustment_sets() == solver.find_adjustment_sets()


def test_explicit_endpoints(podcast_dag):
    """Effect of mood on exam: podcast is a descendant, nothing to adjust"""
    sets = find_adjustment_sets(podcast_dag, exposure="mood", outcome="exam")
    assert sets == [frozenset()]


def test_butterfly_collider_in_adjustment_set():
    """c is a collider on x ← a → c ← b → y, yet every minimal set holds it"""
    dag = dagify("c ~ a + b", "x ~ a + c", "y ~ b + c + x", exposure="x", outcome="y")
    sets = find_adjustment_sets(dag)
    assert sets == [frozenset({"a", "c"}), frozenset({"b", "c"})]

    advice = classify_variables(dag)
    assert advice["c"].should_adjust
    assert advice["c"].category == VariableCategory.CONFOUNDER
    assert "{a, c}, {b, c}" in advice["c"].reason
    assert advice["a"].should_adjust
    assert advice["b"].should_adjust


def test_advice_follows_every_minimal_set():
    """x ← z1 → z2 → y: z2 is not a cause of x but {z2} is a minimal set"""
    dag = dagify("x ~ z1", "z2 ~ z1", "y ~ z2 + x", exposure="x", outcome="y")
    advice = classify_variables(dag)

    assert advice["z1"].should_adjust
    assert advice["z1"].category == VariableCategory.CONFOUNDER
    assert advice["z2"].should_adjust
    assert advice["z2"].category == VariableCategory.BACKDOOR_BLOCKER
    assert advice["z2"].reason.endswith("in minimal adjustment set {z2}")


def test_advice_consistent_with_solver(podcast_dag):
    """Adjusted nodes are exactly the union of the minimal sets"""
    graphs = [
        podcast_dag,
        dagify("c ~ a + b", "x ~ a + c", "y ~ b + c + x", exposure="x", outcome="y"),
        dagify("x ~ a", "m ~ a + b", "y ~ b + x", exposure="x", outcome="y"),
        dagify("m ~ x", "y ~ m + c", "x ~ c", "d ~ x", exposure="x", outcome="y"),
    ]
    for dag in graphs:
        in_sets = set().union(*find_adjustment_sets(dag))
        advice = classify_variables(dag)
        assert {node_id for node_id, item in advice.items() if item.should_adjust} == in_sets


def test_unidentifiable_advice_marks_nothing():
    """With u unobserved, the observed common cause c alone cannot help"""
    dag = dagify("x ~ u + c", "y ~ u + c + x", exposure="x", outcome="y", unobserved=["u"])
    advice = classify_variables(dag)

    assert not any(item.should_adjust for item in advice.values())
    assert advice["c"].category == VariableCategory.CONFOUNDER
    assert advice["c"].reason.startswith("no valid adjustment set")
    assert advice["u"].category == VariableCategory.UNOBSERVED
