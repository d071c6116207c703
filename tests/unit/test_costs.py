import pytest

from sigmoidnet.core.costs import CostKind, get_cost, names, resolve_kind


def test_resolve_names_and_aliases():
    assert resolve_kind("cross_entropy") is CostKind.CROSS_ENTROPY
    assert resolve_kind("Cross-Entropy") is CostKind.CROSS_ENTROPY
    assert resolve_kind("ce") is CostKind.CROSS_ENTROPY
    assert resolve_kind("mse") is CostKind.QUADRATIC
    assert get_cost(CostKind.QUADRATIC).kind is CostKind.QUADRATIC
    assert list(names()) == ["cross_entropy", "quadratic"]


def test_unknown_cost():
    with pytest.raises(KeyError, match="Available costs"):
        get_cost("hinge")
