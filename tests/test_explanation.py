from decimal import Decimal

import pytest

from src.schemas.debt import DebtEdge, DebtGraph
from src.schemas.settle import SettleAlgorithm
from src.services.explanation import (
    describe_settlement,
    generate_settlement_breakdown,
    generate_settlement_explanation,
    reduction_percentage,
)
from src.services.strategies import GreedyStrategy
from src.utils.balance import calculate_net_balances


@pytest.fixture
def graph():
    return DebtGraph(debts=[
        DebtEdge(from_user_id="B", to_user_id="A", amount=Decimal("30"), currency="USD"),
        DebtEdge(from_user_id="C", to_user_id="A", amount=Decimal("20"), currency="USD"),
        DebtEdge(from_user_id="C", to_user_id="B", amount=Decimal("10"), currency="USD"),
    ])


@pytest.fixture
def settlements(graph):
    return GreedyStrategy("USD").calculate(calculate_net_balances(graph.debts))


@pytest.mark.parametrize("original, optimized, expected", [(3, 2, 33), (2, 1, 50), (3, 1, 67), (0, 0, 0), (2, 2, 0)])
def test_reduction_percentage(original, optimized, expected):
    assert reduction_percentage(original, optimized) == expected


def test_breakdown(graph, settlements):
    breakdown = generate_settlement_breakdown(graph, settlements)

    assert breakdown["stats"] == {
        "original_transaction_count": 3,
        "optimized_transaction_count": 2,
        "reduction_percentage": 33,
    }
    assert [s["step"] for s in breakdown["calculation_steps"]] == [1, 2, 3, 4]
    assert breakdown["user_balances"] == {"B": Decimal("-20"), "A": Decimal("50"), "C": Decimal("-30")}

    classified = breakdown["calculation_steps"][2]["data"]
    assert classified["creditors"] == [{"id": "A", "amount": Decimal("50")}]
    assert [d["id"] for d in classified["debtors"]] == ["C", "B"]
    assert breakdown["final_settlements"] == settlements


def test_explanation(graph, settlements):
    explanation = generate_settlement_explanation(graph, settlements, "greedy")

    assert explanation["transaction_summary"] == ["C pays 30.00 USD to A", "B pays 20.00 USD to A"]
    assert "Greedy" in explanation["algorithm_explanation"]
    assert "33%" in explanation["summary"]
    assert len(explanation["step_by_step_explanation"]) == 3
    assert explanation == generate_settlement_explanation(graph, settlements, SettleAlgorithm.greedy)


def test_explanations_name_each_algorithm(graph, settlements):
    texts = {a: generate_settlement_explanation(graph, settlements, a)["algorithm_explanation"] for a in SettleAlgorithm}
    assert "Minimum Cash Flow" in texts[SettleAlgorithm.min_cash_flow]
    assert "Friend Preference" in texts[SettleAlgorithm.friend_preference]


def test_describe_settlement(settlements):
    assert describe_settlement(settlements[0]) == "C pays 30.00 USD to A"
