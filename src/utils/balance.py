# src/utils/balance.py
# -----------------------------------------------------------------------------
# УТИЛИТЫ РАСЧЁТА БАЛАНСОВ (BalanceAggregator)
# -----------------------------------------------------------------------------
# Политика:
#   • Балансы считаются по каждой валюте отдельно; сведение валют - в
#     src/utils/currency.py (CurrencyNormalizer), не здесь.
#   • Внутренние расчёты - Decimal.
#   • Семантика net:
#       net > 0 - пользователю ДОЛЖНЫ; net < 0 - он ДОЛЖЕН.
#   • Расход: каждый участник (кроме плательщика) должен плательщику свою долю:
#       ребро participant -> payer на share.
#   • Перевод (completed settlement) - ПОГАШЕНИЕ долга:
#       payer -> receiver на X уменьшает долг payer перед receiver на X,
#       что эквивалентно добавлению «анти-долга» receiver -> payer на X.
#   • Инвариант: сумма net по каждой валюте == 0.
# -----------------------------------------------------------------------------

from __future__ import annotations

import logging
from collections import defaultdict
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, NamedTuple, Optional, Sequence

from src.schemas.debt import DebtEdge, DebtGraph, UserBalance
from src.schemas.settlement import SettlementRecord
from src.schemas.split import Expense
from src.utils.currency import currency_decimals
from src.utils.errors import SelfSettlementError, InvalidAmountError, SettlementInvariantError
from src.utils.money import ZERO, D, eps, round_money
from src.utils.split import split_expense

log = logging.getLogger(__name__)

COMPLETED = "completed"


class GroupBalances(NamedTuple):
    graph: DebtGraph
    # balances[ccy][user_id] = net
    balances: Dict[str, Dict[str, Decimal]]

    def user_balances(self, currency: str) -> List[UserBalance]:
        per_user = self.balances.get(currency.upper(), {})
        return [UserBalance(user_id=uid, balance=bal, currency=currency.upper()) for uid, bal in per_user.items()]


# =========================
# МАТРИЦА ПАРНЫХ ДОЛГОВ
# =========================
# debts[ccy][a][b] = сколько a ДОЛЖЕН b в валюте ccy

def build_debts_matrix_by_currency(
    debts: Iterable[DebtEdge],
) -> Dict[str, Dict[str, Dict[str, Decimal]]]:
    matrix: Dict[str, Dict[str, Dict[str, Decimal]]] = defaultdict(
        lambda: defaultdict(lambda: defaultdict(Decimal))
    )
    for edge in debts:
        if edge.from_user_id == edge.to_user_id:
            continue
        matrix[edge.currency][edge.from_user_id][edge.to_user_id] += D(edge.amount)
    return matrix


# =========================
# NET-БАЛАНСЫ
# =========================

def calculate_net_balances(
    debts: Iterable[DebtEdge],
    users: Optional[Iterable[str]] = None,
) -> Dict[str, Decimal]:
    """
    Нетто по списку рёбер ОДНОЙ валюты: входящие минус исходящие.
        net[to] += amount; net[from] -= amount
    Пользователи из users попадают в ответ даже с нулём.
    """
    net: Dict[str, Decimal] = {uid: ZERO for uid in (users or [])}
    for edge in debts:
        amount = D(edge.amount)
        net[edge.from_user_id] = net.get(edge.from_user_id, ZERO) - amount
        net[edge.to_user_id] = net.get(edge.to_user_id, ZERO) + amount
    return net


def calculate_group_balances_by_currency(
    graph: DebtGraph,
) -> Dict[str, Dict[str, Decimal]]:
    """
    Возвращает словарь по валютам:
      { "USD": {user_id: net, ...}, "EUR": {...}, ... }
    """
    users = graph.all_users()
    out: Dict[str, Dict[str, Decimal]] = {}
    for code in graph.currencies():
        out[code] = calculate_net_balances((d for d in graph.debts if d.currency == code), users)
    return out


def check_conservation(balances: Mapping[str, Decimal], decimals: int, currency: str = "") -> None:
    total = sum(balances.values(), ZERO)
    if total.copy_abs() >= eps(decimals):
        log.error("net balances do not sum to zero: %s %s", total, currency)
        raise SettlementInvariantError(f"Net balances sum to {total} {currency}, expected 0")


# =========================
# АГРЕГАЦИЯ РАСХОДОВ И ПЕРЕВОДОВ
# =========================

def _expense_edges(expense: Expense, decimals: int) -> List[DebtEdge]:
    shares = split_expense(expense, decimals)
    edges: List[DebtEdge] = []
    for uid, share in shares.items():
        if uid == expense.paid_by or share == ZERO:
            continue
        # участник uid должен плательщику свою долю
        edges.append(
            DebtEdge(from_user_id=uid, to_user_id=expense.paid_by, amount=share, currency=expense.currency)
        )
    return edges


def _settlement_edge(record: SettlementRecord, decimals: int) -> DebtEdge:
    if record.payer_id == record.receiver_id:
        raise SelfSettlementError(f"Settlement payer and receiver are the same user ({record.payer_id})")
    amount = round_money(record.amount, decimals)
    if amount <= ZERO:
        raise InvalidAmountError(f"Settlement amount must be positive, got {record.amount}")
    # анти-долг: receiver -> payer
    return DebtEdge(from_user_id=record.receiver_id, to_user_id=record.payer_id, amount=amount, currency=record.currency)


def aggregate_group_balances(
    expenses: Sequence[Expense],
    settlements: Sequence[SettlementRecord] = (),
    decimals_by_ccy: Optional[Mapping[str, int]] = None,
    users: Optional[Iterable[str]] = None,
) -> GroupBalances:
    """
    Сворачивает расходы и завершённые переводы группы в:
      • граф «исходных» долгов (по ребру на долю участника и на перевод);
      • нетто-балансы по валютам.
    """
    members: Dict[str, None] = dict.fromkeys(users or [])
    debts: List[DebtEdge] = []

    for expense in expenses:
        decimals = currency_decimals(expense.currency, decimals_by_ccy)
        members.setdefault(expense.paid_by, None)
        for s in expense.splits:
            members.setdefault(s.user_id, None)
        debts.extend(_expense_edges(expense, decimals))

    for record in settlements:
        # pending/failed переводы на балансы не влияют
        if (record.status or "").lower() != COMPLETED:
            continue
        decimals = currency_decimals(record.currency, decimals_by_ccy)
        members.setdefault(record.payer_id, None)
        members.setdefault(record.receiver_id, None)
        debts.append(_settlement_edge(record, decimals))

    graph = DebtGraph(users=list(members), debts=debts)
    balances = calculate_group_balances_by_currency(graph)
    for code, per_user in balances.items():
        check_conservation(per_user, currency_decimals(code, decimals_by_ccy), code)

    log.debug(
        "aggregated %d expenses, %d settlements into %d debts (%s)",
        len(expenses), len(settlements), len(debts), ", ".join(balances) or "-",
    )
    return GroupBalances(graph=graph, balances=balances)
