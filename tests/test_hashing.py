from scenariotrace.hashing import comparison_key


def test_comparison_key_deterministic():
    first = comparison_key("Create customer", ["creates customer", "deletes customer"])
    second = comparison_key("Create customer", ("creates customer", "deletes customer"))
    assert first == second
    assert len(first) == 64


def test_comparison_key_depends_on_candidate_order():
    forward = comparison_key("Create customer", ["a", "b"])
    backward = comparison_key("Create customer", ["b", "a"])
    assert forward != backward
