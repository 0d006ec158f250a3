# src/utils/split.py
# -----------------------------------------------------------------------------
# РАСЧЁТ ДОЛЕЙ РАСХОДА (SplitCalculator)
# -----------------------------------------------------------------------------
# Политика:
#   • Один расход - один split_type у всех участников.
#   • Доли округляются по decimals валюты (ROUND_HALF_UP), остаток округления
#     раскладывается distribute_remainder: сумма долей == сумме расхода ТОЧНО.
#   • Допуск сверки процентов/фиксированных сумм - 0.01.
# -----------------------------------------------------------------------------

from __future__ import annotations

from decimal import Decimal
from typing import Dict, List, Sequence

from src.schemas.split import Expense, Split, SplitType
from src.utils.errors import InvalidAmountError, SplitValidationError
from src.utils.money import D, ZERO, distribute_remainder, round_money

TOLERANCE = Decimal("0.01")
HUNDRED = Decimal("100")


def _validate(amount: Decimal, splits: Sequence[Split]) -> SplitType:
    if amount <= ZERO:
        raise InvalidAmountError(f"Expense amount must be positive, got {amount}")

    if not splits:
        raise SplitValidationError("No splits provided")

    user_ids = [s.user_id for s in splits]
    if len(user_ids) != len(set(user_ids)):
        raise SplitValidationError("Duplicate users in splits")

    types = {s.split_type for s in splits}
    if len(types) > 1:
        names = ", ".join(sorted(SplitType(t).value for t in types))
        raise SplitValidationError(f"All splits of one expense must share a split_type, got: {names}")

    split_type = SplitType(types.pop())
    if split_type != SplitType.equal:
        for s in splits:
            if s.value is None or D(s.value) <= ZERO:
                raise SplitValidationError(f"Invalid {split_type.value} value for user {s.user_id}")
    return split_type


def _raw_shares(total: Decimal, splits: Sequence[Split], split_type: SplitType) -> List[Decimal]:
    n = len(splits)

    if split_type == SplitType.equal:
        return [total / D(n)] * n

    values = [D(s.value) for s in splits]

    if split_type == SplitType.percentage:
        pct_total = sum(values, ZERO)
        if (pct_total - HUNDRED).copy_abs() > TOLERANCE:
            raise SplitValidationError(f"Percentage splits must total 100%, got {pct_total}")
        return [total * v / HUNDRED for v in values]

    if split_type == SplitType.fixed:
        fixed_total = sum(values, ZERO)
        if (fixed_total - total).copy_abs() > TOLERANCE:
            raise SplitValidationError(
                f"Sum of fixed splits ({fixed_total}) must equal expense amount ({total})"
            )
        return values

    # share
    shares_total = sum(values, ZERO)
    return [total * v / shares_total for v in values]


def calculate_split_amounts(amount, splits: Sequence[Split], decimals: int = 2) -> List[Decimal]:
    """
    Доли участников в порядке splits. Сумма долей == round(amount, decimals).
    Ошибки: InvalidAmountError, SplitValidationError.
    """
    amount = D(amount)
    split_type = _validate(amount, splits)
    total = round_money(amount, decimals)

    rounded = [round_money(r, decimals) for r in _raw_shares(total, splits, split_type)]
    remainder = total - sum(rounded, ZERO)
    return distribute_remainder(rounded, remainder, decimals)


def split_expense(expense: Expense, decimals: int = 2) -> Dict[str, Decimal]:
    """{user_id: доля} для одного расхода (порядок как в expense.splits)."""
    amounts = calculate_split_amounts(expense.amount, expense.splits, decimals)
    return {s.user_id: a for s, a in zip(expense.splits, amounts)}


def generate_split_visualization(expense: Expense, shares: Dict[str, Decimal], decimals: int = 2) -> Dict:
    """
    Как расход разложился по участникам: сводка по типу доли и по пользователю.
    """
    total = round_money(expense.amount, decimals)
    by_type: Dict[str, Dict] = {}
    by_user: Dict[str, Dict] = {}

    for s in expense.splits:
        amount = shares.get(s.user_id, ZERO)
        key = SplitType(s.split_type).value
        bucket = by_type.setdefault(key, {"count": 0, "total": ZERO, "details": []})
        bucket["count"] += 1
        bucket["total"] += amount
        bucket["details"].append({"user_id": s.user_id, "amount": amount, "value": s.value})

        by_user[s.user_id] = {
            "amount": amount,
            "split_type": key,
            "percentage_of_total": round_money(amount / total * HUNDRED, 2) if total else ZERO,
        }

    return {
        "expense_total": total,
        "currency": expense.currency,
        "splits_by_type": by_type,
        "splits_by_user": by_user,
    }
