# src/services/settle_up.py
# -----------------------------------------------------------------------------
# SETTLE-UP ЦЕЛИКОМ: расходы -> долги -> одна валюта -> стратегия -> визуализация
# -----------------------------------------------------------------------------
# Что делает этот модуль:
#   • Собирает граф долгов (готовый из запроса или из expenses/settlements).
#   • Приводит его к валюте расчёта (дефолт группы или мажоритарная).
#   • Считает переводы выбранной стратегией.
#   • По желанию пересчитывает переводы в предпочтительную валюту для показа.
#   • Строит визуализацию, объяснение, сравнение алгоритмов.
#
# Ничего не хранит между вызовами, ввода-вывода нет.
# -----------------------------------------------------------------------------

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Dict, List, NamedTuple, Optional

from src.schemas.debt import DebtGraph
from src.schemas.settle import SettleAlgorithm, SettleUpRequest
from src.schemas.settlement import Settlement
from src.services.explanation import generate_settlement_breakdown, generate_settlement_explanation
from src.services.strategies import friendship_utilization, get_strategy
from src.services.visualization import generate_settlement_visualization
from src.utils.balance import aggregate_group_balances, calculate_net_balances
from src.utils.currency import (
    convert_settlements,
    currency_decimals,
    normalize_debt_graph,
    resolve_target_currency,
)
from src.utils.errors import SelfSettlementError
from src.utils.money import ZERO, round_money

log = logging.getLogger(__name__)


class PreparedGroup(NamedTuple):
    graph: DebtGraph          # граф в валюте расчёта (исходные суммы - на рёбрах)
    currency: str
    decimals: int
    balances: Dict[str, Decimal]


def build_debt_graph(request: SettleUpRequest) -> DebtGraph:
    if request.debt_graph is not None:
        for edge in request.debt_graph.debts:
            if edge.from_user_id == edge.to_user_id:
                raise SelfSettlementError(f"Debt from a user to themselves ({edge.from_user_id})")
        return request.debt_graph

    return aggregate_group_balances(
        request.expenses or [],
        request.settlements or [],
        decimals_by_ccy=request.decimals_by_ccy,
    ).graph


def prepare_group(request: SettleUpRequest) -> PreparedGroup:
    raw = build_debt_graph(request)
    currency = resolve_target_currency(raw, request.default_currency)
    graph = normalize_debt_graph(
        raw,
        exchange_rates=request.exchange_rates,
        target_currency=currency,
        decimals_by_ccy=request.decimals_by_ccy,
    )
    decimals = currency_decimals(currency, request.decimals_by_ccy)
    balances = calculate_net_balances(graph.debts, graph.all_users())
    return PreparedGroup(graph=graph, currency=currency, decimals=decimals, balances=balances)


def _run_strategy(prepared: PreparedGroup, algorithm: SettleAlgorithm, request: SettleUpRequest) -> List[Settlement]:
    strategy = get_strategy(algorithm, prepared.currency, prepared.decimals)
    return strategy.calculate(prepared.balances, request.friend_relations)


def _for_display(settlements: List[Settlement], prepared: PreparedGroup, request: SettleUpRequest) -> List[Settlement]:
    preferred = request.preferred_currency
    if not preferred or preferred == prepared.currency:
        return settlements
    return convert_settlements(settlements, preferred, request.exchange_rates, request.decimals_by_ccy)


def _display_currency(prepared: PreparedGroup, request: SettleUpRequest) -> str:
    return request.preferred_currency or prepared.currency


def calculate_settle_up(request: SettleUpRequest) -> Dict:
    """
    Основной расчёт: переводы + визуализация (+ объяснение по include_explanation).
    """
    prepared = prepare_group(request)
    algorithm = request.algorithm
    settlements = _for_display(_run_strategy(prepared, algorithm, request), prepared, request)

    log.info(
        "settle-up: %s in %s, %d debts -> %d settlements",
        algorithm.value, prepared.currency, len(prepared.graph.debts), len(settlements),
    )

    # currency - валюта расчёта; переводы и визуализация - в display_currency
    result = {
        "settlements": settlements,
        "visualization": generate_settlement_visualization(prepared.graph, settlements),
        "explanation": None,
        "algorithm": algorithm,
        "currency": prepared.currency,
        "preferred_currency": request.preferred_currency,
        "display_currency": _display_currency(prepared, request),
        "friendship_utilization": None,
    }
    if request.include_explanation:
        result["explanation"] = generate_settlement_explanation(prepared.graph, settlements, algorithm)
    if request.include_friendships or algorithm == SettleAlgorithm.friend_preference:
        result["friendship_utilization"] = friendship_utilization(settlements, request.friend_relations)
    return result


def calculate_settle_up_breakdown(request: SettleUpRequest) -> Dict:
    prepared = prepare_group(request)
    algorithm = request.algorithm
    settlements = _for_display(_run_strategy(prepared, algorithm, request), prepared, request)
    breakdown = generate_settlement_breakdown(prepared.graph, settlements)
    return {
        "algorithm": algorithm,
        "currency": prepared.currency,
        "debt_graph": prepared.graph,
        "display_currency": _display_currency(prepared, request),
        "settlements": settlements,
        "breakdown": breakdown,
        "explanation": generate_settlement_explanation(prepared.graph, settlements, algorithm),
        "stats": breakdown["stats"],
    }


def _average_amount(settlements: List[Settlement], decimals: int) -> Decimal:
    if not settlements:
        return ZERO
    total = sum((s.amount for s in settlements), ZERO)
    return round_money(total / len(settlements), decimals)


def compare_algorithms(request: SettleUpRequest, algorithms: Optional[List[SettleAlgorithm]] = None) -> Dict:
    """
    Прогоняет все стратегии на одном графе: число переводов, средний перевод,
    использование дружбы и визуализация по каждой.
    """
    prepared = prepare_group(request)
    results: Dict[str, List[Settlement]] = {}
    for algorithm in algorithms or list(SettleAlgorithm):
        results[algorithm.value] = _for_display(_run_strategy(prepared, algorithm, request), prepared, request)

    decimals = currency_decimals(_display_currency(prepared, request), request.decimals_by_ccy)
    comparison = {
        "transaction_counts": {name: len(items) for name, items in results.items()},
        "average_transaction_amount": {name: _average_amount(items, decimals) for name, items in results.items()},
        "friendship_utilization": {
            name: friendship_utilization(items, request.friend_relations) for name, items in results.items()
        },
    }
    return {
        "currency": prepared.currency,
        "algorithms": results,
        "display_currency": _display_currency(prepared, request),
        "comparison": comparison,
        "visualizations": {
            name: generate_settlement_visualization(prepared.graph, items) for name, items in results.items()
        },
    }
