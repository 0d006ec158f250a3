# src/services/visualization.py
# -----------------------------------------------------------------------------
# ВИЗУАЛИЗАЦИЯ ПЕРЕВОДОВ: граф сети, Sankey, тепловая карта долгов
# -----------------------------------------------------------------------------
# Правила:
#   • Узел графа - пользователь из набора; balance = получено − отдано.
#   • Несколько переводов одной упорядоченной пары (from, to) сливаются в одно
#     ребро с суммой; Sankey использует то же правило.
#   • Порядок узлов/рёбер - по первому появлению в наборе (детерминизм).
#   • Принимаем и Settlement (payer/receiver), и DebtEdge (from/to).
# -----------------------------------------------------------------------------

from __future__ import annotations

from decimal import Decimal
from typing import Dict, Iterable, List, Sequence, Tuple, Union

from src.schemas.debt import DebtEdge, DebtGraph
from src.schemas.settlement import Settlement
from src.utils.balance import build_debts_matrix_by_currency
from src.utils.money import ZERO, D

Flow = Union[Settlement, DebtEdge]


def _flow(item: Flow) -> Tuple[str, str, Decimal]:
    if isinstance(item, Settlement):
        return item.payer_id, item.receiver_id, D(item.amount)
    return item.from_user_id, item.to_user_id, D(item.amount)


def _combined_links(items: Iterable[Flow]) -> List[Dict]:
    links: Dict[Tuple[str, str], Dict] = {}
    for item in items:
        source, target, amount = _flow(item)
        link = links.get((source, target))
        if link is None:
            links[(source, target)] = {"source": source, "target": target, "value": amount}
        else:
            link["value"] += amount
    return list(links.values())


def generate_network_graph(items: Sequence[Flow]) -> Dict:
    balances: Dict[str, Decimal] = {}
    for item in items:
        source, target, amount = _flow(item)
        balances[source] = balances.get(source, ZERO) - amount
        balances[target] = balances.get(target, ZERO) + amount

    nodes = [{"id": uid, "balance": bal} for uid, bal in balances.items()]
    return {"nodes": nodes, "links": _combined_links(items)}


def generate_sankey_diagram(items: Sequence[Flow]) -> Dict:
    user_ids: Dict[str, None] = {}
    for item in items:
        source, target, _ = _flow(item)
        user_ids.setdefault(source, None)
        user_ids.setdefault(target, None)

    # имён в движке нет - показываем id
    nodes = [{"id": uid, "name": uid} for uid in user_ids]
    return {"nodes": nodes, "links": _combined_links(items)}


def generate_debt_heatmap(debts: Sequence[DebtEdge]) -> Dict:
    """Кто кому сколько должен, по парам и валютам (для тепловой карты)."""
    users: Dict[str, None] = {}
    data: List[Dict] = []
    for code, matrix in build_debts_matrix_by_currency(debts).items():
        for a, row in matrix.items():
            users.setdefault(a, None)
            for b, amount in row.items():
                users.setdefault(b, None)
                if amount != ZERO:
                    data.append({"from_user_id": a, "to_user_id": b, "amount": amount, "currency": code})
    return {"users": list(users), "data": data}


def reduction_rate(original_count: int, optimized_count: int) -> float:
    if original_count <= 0:
        return 0.0
    return max(0.0, round(1 - optimized_count / original_count, 4))


def generate_settlement_visualization(graph: DebtGraph, settlements: Sequence[Settlement]) -> Dict:
    users: Dict[str, None] = {}
    total = ZERO
    for s in settlements:
        users.setdefault(s.payer_id, None)
        users.setdefault(s.receiver_id, None)
        total += s.amount

    summary = {
        "total_amount": total,
        "transaction_count": len(settlements),
        "user_count": len(users),
        "reduction_rate": reduction_rate(len(graph.debts), len(settlements)),
    }
    return {
        "network_graph": generate_network_graph(settlements),
        "sankey_diagram": generate_sankey_diagram(settlements),
        "summary": summary,
    }
