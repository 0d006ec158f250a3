from decimal import Decimal

import pytest
from pydantic import ValidationError

from src import config
from src.schemas.debt import DebtEdge, DebtGraph
from src.schemas.friend import FriendRelation
from src.schemas.settle import SettleAlgorithm, SettleUpRequest
from src.schemas.settlement import SettlementRecord
from src.services.settle_up import (
    calculate_settle_up,
    calculate_settle_up_breakdown,
    compare_algorithms,
    prepare_group,
)
from src.utils.errors import MissingExchangeRateError, SelfSettlementError


def _triples(settlements):
    return [(s.payer_id, s.receiver_id, s.amount, s.currency) for s in settlements]


@pytest.fixture
def trip(dinner, equal_expense):
    """Ужин в USD + такси в EUR: C должен B 15 EUR."""
    return [dinner, equal_expense("B", "30", ["B", "C"], currency="EUR")]


def test_dinner_settle_up(dinner):
    result = calculate_settle_up(SettleUpRequest(expenses=[dinner], algorithm="greedy"))

    assert _triples(result["settlements"]) == [
        ("B", "A", Decimal("30.00"), "USD"),
        ("C", "A", Decimal("30.00"), "USD"),
    ]
    assert result["currency"] == "USD"
    assert result["algorithm"] == SettleAlgorithm.greedy
    assert result["explanation"] is None
    assert result["friendship_utilization"] is None
    assert result["visualization"]["summary"]["transaction_count"] == 2


def test_default_algorithm_from_config(dinner, monkeypatch):
    monkeypatch.setattr(config, "SETTLE_DEFAULT_ALGORITHM", "friendPreference")
    request = SettleUpRequest(expenses=[dinner])
    assert request.algorithm == SettleAlgorithm.friend_preference
    assert calculate_settle_up(request)["friendship_utilization"] == 0.0


def test_explanation_on_request(dinner):
    result = calculate_settle_up(SettleUpRequest(expenses=[dinner], include_explanation=True))
    assert result["explanation"]["transaction_summary"] == ["B pays 30.00 USD to A", "C pays 30.00 USD to A"]


def test_completed_settlements_are_applied(dinner):
    paid = SettlementRecord(payer_id="B", receiver_id="A", amount=Decimal("30"), currency="USD")
    result = calculate_settle_up(SettleUpRequest(expenses=[dinner], settlements=[paid]))
    assert _triples(result["settlements"]) == [("C", "A", Decimal("30.00"), "USD")]


def test_multi_currency_converts_to_majority(trip):
    request = SettleUpRequest(expenses=trip, exchange_rates={"EUR_USD": Decimal("2")})
    prepared = prepare_group(request)

    assert prepared.currency == "USD"
    assert prepared.balances == {"A": Decimal("60"), "B": Decimal("0"), "C": Decimal("-60")}
    converted = prepared.graph.debts[-1]
    assert (converted.amount, converted.original_amount, converted.original_currency) == (
        Decimal("30.00"), Decimal("15.00"), "EUR",
    )

    result = calculate_settle_up(request)
    assert _triples(result["settlements"]) == [("C", "A", Decimal("60.00"), "USD")]


def test_default_currency_overrides_majority(trip):
    request = SettleUpRequest(expenses=trip, exchange_rates={"EUR_USD": Decimal("2")}, default_currency="eur")
    result = calculate_settle_up(request)
    assert result["currency"] == "EUR"
    assert _triples(result["settlements"]) == [("C", "A", Decimal("30.00"), "EUR")]


def test_missing_rate_fails_before_any_settlement(trip):
    with pytest.raises(MissingExchangeRateError):
        calculate_settle_up(SettleUpRequest(expenses=trip))


def test_preferred_currency_for_display(trip):
    request = SettleUpRequest(expenses=trip, exchange_rates={"EUR_USD": "2"}, preferred_currency="EUR")
    result = calculate_settle_up(request)

    (settlement,) = result["settlements"]
    assert (settlement.amount, settlement.currency) == (Decimal("30.00"), "EUR")
    assert (settlement.original_amount, settlement.original_currency) == (Decimal("60.00"), "USD")
    assert result["currency"] == "USD"
    assert result["preferred_currency"] == "EUR"


def test_debt_graph_input():
    graph = DebtGraph(users=["A", "B", "C"], debts=[
        DebtEdge(from_user_id="B", to_user_id="A", amount=Decimal("30"), currency="USD"),
        DebtEdge(from_user_id="C", to_user_id="B", amount=Decimal("30"), currency="USD"),
    ])
    result = calculate_settle_up(SettleUpRequest(debt_graph=graph))
    assert _triples(result["settlements"]) == [("C", "A", Decimal("30.00"), "USD")]


def test_debt_graph_self_edge_rejected():
    graph = DebtGraph(debts=[DebtEdge(from_user_id="A", to_user_id="A", amount=Decimal("5"), currency="USD")])
    with pytest.raises(SelfSettlementError):
        calculate_settle_up(SettleUpRequest(debt_graph=graph))


def test_request_needs_exactly_one_source(dinner):
    with pytest.raises(ValidationError):
        SettleUpRequest()
    with pytest.raises(ValidationError):
        SettleUpRequest(debt_graph=DebtGraph(), expenses=[dinner])
    with pytest.raises(ValidationError):
        SettleUpRequest(expenses=[dinner], preferred_currency="dollars")


def test_breakdown(dinner):
    result = calculate_settle_up_breakdown(SettleUpRequest(expenses=[dinner], algorithm="minCashFlow"))

    assert result["stats"] == {
        "original_transaction_count": 2,
        "optimized_transaction_count": 2,
        "reduction_percentage": 0,
    }
    assert len(result["debt_graph"].debts) == 2
    assert len(result["breakdown"]["calculation_steps"]) == 4
    assert result["explanation"]["summary"].startswith("Using the minCashFlow algorithm")


def test_compare_algorithms():
    graph = DebtGraph(debts=[
        DebtEdge(from_user_id="C", to_user_id="A", amount=Decimal("50"), currency="USD"),
        DebtEdge(from_user_id="D", to_user_id="A", amount=Decimal("10"), currency="USD"),
        DebtEdge(from_user_id="D", to_user_id="B", amount=Decimal("20"), currency="USD"),
    ])
    friends = [FriendRelation(user_id_1="B", user_id_2="C")]
    result = compare_algorithms(SettleUpRequest(debt_graph=graph, friend_relations=friends))

    assert list(result["algorithms"]) == ["minCashFlow", "greedy", "friendPreference"]
    assert result["comparison"]["transaction_counts"] == {"minCashFlow": 3, "greedy": 3, "friendPreference": 3}
    assert result["comparison"]["friendship_utilization"]["friendPreference"] == 0.3333
    assert result["comparison"]["average_transaction_amount"]["greedy"] == Decimal("26.67")
    assert set(result["visualizations"]) == set(result["algorithms"])


def test_compare_selected_algorithms(dinner):
    result = compare_algorithms(SettleUpRequest(expenses=[dinner]), [SettleAlgorithm.greedy])
    assert list(result["algorithms"]) == ["greedy"]


def test_sub_cent_debt_graph_is_settled():
    graph = DebtGraph(debts=[
        DebtEdge(from_user_id="B", to_user_id="A", amount=Decimal("0.005"), currency="USD"),
        DebtEdge(from_user_id="C", to_user_id="A", amount=Decimal("0.005"), currency="USD"),
    ])
    result = calculate_settle_up(SettleUpRequest(debt_graph=graph, algorithm="greedy"))
    assert _triples(result["settlements"]) == [
        ("B", "A", Decimal("0.01"), "USD"),
        ("C", "A", Decimal("0.01"), "USD"),
    ]


def test_display_currency(trip, dinner):
    assert calculate_settle_up(SettleUpRequest(expenses=[dinner]))["display_currency"] == "USD"

    request = SettleUpRequest(expenses=trip, exchange_rates={"EUR_USD": "2"}, preferred_currency="EUR")
    result = calculate_settle_up(request)
    assert (result["currency"], result["display_currency"]) == ("USD", "EUR")
    assert result["visualization"]["summary"]["total_amount"] == Decimal("30.00")
    assert compare_algorithms(request)["display_currency"] == "EUR"
    assert calculate_settle_up_breakdown(request)["display_currency"] == "EUR"
