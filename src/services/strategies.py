# src/services/strategies.py
# -----------------------------------------------------------------------------
# СТРАТЕГИИ SETTLE-UP (minCashFlow / greedy / friendPreference)
# -----------------------------------------------------------------------------
# Общий контракт: calculate(balances, friend_relations=None) -> [Settlement]
#   • Вход: нетто-балансы ОДНОЙ валюты, сумма ~ 0 (иначе BalanceMismatchError).
#   • Выход: переводы, после применения которых все балансы == 0 (± eps),
#     все суммы > 0, переводов не больше n-1 (n - ненулевых участников).
#     Нарушение - SettlementInvariantError (дефект алгоритма, не глушим).
#   • Детерминизм: сортировка (сумма убыв., user_id возр.), не порядок вставки.
# Выбор стратегии - по enum SettleAlgorithm через get_strategy().
# -----------------------------------------------------------------------------

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Type, Union

from src.schemas.debt import UserBalance
from src.schemas.friend import FriendRelation
from src.schemas.settle import SettleAlgorithm
from src.schemas.settlement import Settlement
from src.utils.errors import BalanceMismatchError, SettlementInvariantError, SettleUpValidationError
from src.utils.money import ZERO, eps, is_zero, round_money

log = logging.getLogger(__name__)

Balances = Union[Mapping[str, Decimal], Iterable[UserBalance]]


# =========================
# ВСПОМОГАТЕЛЬНОЕ
# =========================

def build_friendship_lookup(relations: Optional[Iterable[FriendRelation]]) -> Dict[Tuple[str, str], float]:
    """Симметричная карта (a, b) -> strength. Дубли пары - берём максимум."""
    lookup: Dict[Tuple[str, str], float] = {}
    for rel in relations or []:
        a, b = rel.user_id_1, rel.user_id_2
        if a == b:
            continue
        strength = float(rel.strength)
        if strength > lookup.get((a, b), float("-inf")):
            lookup[(a, b)] = strength
            lookup[(b, a)] = strength
    return lookup


def friendship_utilization(
    settlements: Sequence[Settlement],
    relations: Optional[Iterable[FriendRelation]],
) -> float:
    """Средняя сила дружбы по парам переводов (максимум 1 на перевод)."""
    lookup = build_friendship_lookup(relations)
    if not settlements or not lookup:
        return 0.0
    total = sum(max(lookup.get((s.payer_id, s.receiver_id), 0.0), 0.0) for s in settlements)
    return round(total / len(settlements), 4)


def _by_amount_desc(items: List[List]) -> List[List]:
    return sorted(items, key=lambda x: (-x[1], x[0]))


# =========================
# БАЗОВАЯ СТРАТЕГИЯ
# =========================

class SettlementStrategy:
    algorithm: SettleAlgorithm
    name = ""
    description = ""

    def __init__(self, currency: str, decimals: int = 2):
        self.currency = currency.upper()
        self.decimals = decimals

    # ---- публичный контракт ----

    def calculate(
        self,
        balances: Balances,
        friend_relations: Optional[Sequence[FriendRelation]] = None,
    ) -> List[Settlement]:
        nets = self._prepare(balances)
        settlements = self._plan(nets, list(friend_relations or []))
        self._verify(nets, settlements)
        log.debug(
            "%s: %d non-zero balances -> %d settlements (%s)",
            self.algorithm.value, sum(1 for v in nets.values() if v != ZERO), len(settlements), self.currency,
        )
        return settlements

    def _plan(self, nets: Dict[str, Decimal], friend_relations: List[FriendRelation]) -> List[Settlement]:
        raise NotImplementedError

    # ---- пред/постусловия ----

    def _prepare(self, balances: Balances) -> Dict[str, Decimal]:
        nets: Dict[str, Decimal] = {}
        items = balances.items() if isinstance(balances, Mapping) else (
            (self._check_currency(b), b.balance) for b in balances
        )
        for uid, bal in items:
            nets[uid] = nets.get(uid, ZERO) + round_money(bal, self.decimals)

        total = sum(nets.values(), ZERO)
        if total.copy_abs() >= eps(self.decimals):
            raise BalanceMismatchError(f"Balances must sum to zero, got {total} {self.currency}")
        return nets

    def _check_currency(self, b: UserBalance) -> str:
        if b.currency.upper() != self.currency:
            raise SettleUpValidationError(
                f"All balances must be in {self.currency}, got {b.currency} for user {b.user_id}"
            )
        return b.user_id

    def _verify(self, nets: Mapping[str, Decimal], settlements: Sequence[Settlement]) -> None:
        residual = dict(nets)
        for s in settlements:
            if s.amount <= ZERO:
                self._fail(f"non-positive settlement amount {s.amount} ({s.payer_id} -> {s.receiver_id})")
            if s.payer_id == s.receiver_id:
                self._fail(f"self-settlement produced for {s.payer_id}")
            residual[s.payer_id] = residual.get(s.payer_id, ZERO) + s.amount
            residual[s.receiver_id] = residual.get(s.receiver_id, ZERO) - s.amount

        leftovers = {uid: v for uid, v in residual.items() if not is_zero(v, self.decimals)}
        if leftovers:
            self._fail(f"residual balances after settlement: {leftovers}")

        non_zero = sum(1 for v in nets.values() if not is_zero(v, self.decimals))
        if len(settlements) > max(non_zero - 1, 0):
            self._fail(f"{len(settlements)} settlements for {non_zero} non-zero balances")

    def _fail(self, message: str) -> None:
        log.error("%s invariant violated: %s", self.algorithm.value, message)
        raise SettlementInvariantError(f"{self.algorithm.value}: {message}")

    # ---- общие шаги ----

    def _sides(self, nets: Mapping[str, Decimal]) -> Tuple[List[List], List[List]]:
        """(creditors, debtors) как [[user_id, abs_amount], ...], отсортированы по убыванию суммы."""
        threshold = eps(self.decimals)
        creditors = _by_amount_desc([[uid, bal] for uid, bal in nets.items() if bal >= threshold])
        debtors = _by_amount_desc([[uid, -bal] for uid, bal in nets.items() if bal <= -threshold])
        return creditors, debtors

    def _settlement(self, payer_id: str, receiver_id: str, amount: Decimal) -> Settlement:
        return Settlement(payer_id=payer_id, receiver_id=receiver_id, amount=amount, currency=self.currency)

    def _match_greedy(self, creditors: List[List], debtors: List[List]) -> List[Settlement]:
        """
        Крупнейший кредитор против крупнейшего должника на min из двух сумм;
        сдвигаем ту сторону (или обе), что обнулилась.
        """
        threshold = eps(self.decimals)
        settlements: List[Settlement] = []
        i, j = 0, 0
        while i < len(debtors) and j < len(creditors):
            debtor_id, debt_abs = debtors[i]
            creditor_id, credit_abs = creditors[j]

            amount = round_money(min(debt_abs, credit_abs), self.decimals)
            if amount <= ZERO:
                # остаток меньше минимальной единицы валюты
                if debt_abs <= credit_abs:
                    i += 1
                if credit_abs <= debt_abs:
                    j += 1
                continue

            settlements.append(self._settlement(debtor_id, creditor_id, amount))
            debtors[i][1] = debt_abs - amount
            creditors[j][1] = credit_abs - amount

            if debtors[i][1] < threshold:
                i += 1
            if creditors[j][1] < threshold:
                j += 1

        return settlements


# =========================
# РЕАЛИЗАЦИИ
# =========================

class GreedyStrategy(SettlementStrategy):
    algorithm = SettleAlgorithm.greedy
    name = "Greedy"
    description = "Matches the largest debtors with the largest creditors to minimize the number of transactions"

    def _plan(self, nets, friend_relations):
        creditors, debtors = self._sides(nets)
        return self._match_greedy(creditors, debtors)


class MinCashFlowStrategy(GreedyStrategy):
    # та же эвристика сопоставления, что и greedy; отличается только именем
    algorithm = SettleAlgorithm.min_cash_flow
    name = "Minimum Cash Flow"
    description = "Repeatedly settles the maximum debtor against the maximum creditor until all debts are cleared"


class FriendPreferenceStrategy(SettlementStrategy):
    algorithm = SettleAlgorithm.friend_preference
    name = "Friend Preference"
    description = "Prefers settlements between friends, then resolves the rest greedily"

    def _plan(self, nets, friend_relations):
        lookup = build_friendship_lookup(friend_relations)
        creditors, debtors = self._sides(nets)
        threshold = eps(self.decimals)

        # 1) пары «должник-кредитор» с дружбой > 0, сильные первыми
        pairs: List[Tuple[float, str, str]] = []
        for debtor_id, _ in debtors:
            for creditor_id, _ in creditors:
                strength = lookup.get((debtor_id, creditor_id), 0.0)
                if strength > 0:
                    pairs.append((strength, debtor_id, creditor_id))
        pairs.sort(key=lambda p: (-p[0], p[1], p[2]))

        debt_left = {uid: amount for uid, amount in debtors}
        credit_left = {uid: amount for uid, amount in creditors}
        settlements: List[Settlement] = []

        for _, debtor_id, creditor_id in pairs:
            amount = round_money(min(debt_left[debtor_id], credit_left[creditor_id]), self.decimals)
            if amount <= ZERO:
                continue
            settlements.append(self._settlement(debtor_id, creditor_id, amount))
            debt_left[debtor_id] -= amount
            credit_left[creditor_id] -= amount

        # 2) остаток - обычным жадным сопоставлением
        rest_debtors = _by_amount_desc([[uid, a] for uid, a in debt_left.items() if a >= threshold])
        rest_creditors = _by_amount_desc([[uid, a] for uid, a in credit_left.items() if a >= threshold])
        settlements.extend(self._match_greedy(rest_creditors, rest_debtors))
        return settlements


_STRATEGIES: Dict[SettleAlgorithm, Type[SettlementStrategy]] = {
    SettleAlgorithm.min_cash_flow: MinCashFlowStrategy,
    SettleAlgorithm.greedy: GreedyStrategy,
    SettleAlgorithm.friend_preference: FriendPreferenceStrategy,
}


def parse_algorithm(algorithm: Union[SettleAlgorithm, str]) -> SettleAlgorithm:
    if isinstance(algorithm, SettleAlgorithm):
        return algorithm
    try:
        return SettleAlgorithm((algorithm or "").strip())
    except ValueError:
        allowed = ", ".join(a.value for a in SettleAlgorithm)
        raise SettleUpValidationError(f"algorithm must be one of: {allowed}") from None


def get_strategy(algorithm: Union[SettleAlgorithm, str], currency: str, decimals: int = 2) -> SettlementStrategy:
    return _STRATEGIES[parse_algorithm(algorithm)](currency, decimals)
