# src/utils/money.py
# -----------------------------------------------------------------------------
# ДЕНЕЖНЫЕ ХЕЛПЕРЫ (Decimal, квантизация по decimals валюты)
# -----------------------------------------------------------------------------
# Политика:
#   • Все суммы внутри движка - Decimal, float не используем.
#   • Округление ROUND_HALF_UP до decimals валюты (2 для USD, 0 для JPY).
#   • eps - порог «практически ноль», не менее 1e-2.
# -----------------------------------------------------------------------------

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP
from typing import List, Sequence

ZERO = Decimal("0")


def D(x) -> Decimal:
    if isinstance(x, Decimal):
        return x
    return Decimal(str(x))


def quant(decimals: int) -> Decimal:
    """Минимальная денежная единица: 0.01 для decimals=2, 1 для decimals=0."""
    return Decimal("1") if decimals <= 0 else Decimal("1").scaleb(-decimals)


def round_money(d, decimals: int) -> Decimal:
    return D(d).quantize(quant(decimals), rounding=ROUND_HALF_UP)


def eps(decimals: int) -> Decimal:
    # малый порог; не менее 1e-2 и зависит от decimals
    return Decimal("1").scaleb(-max(decimals, 2))


def is_zero(d: Decimal, decimals: int) -> bool:
    return d.copy_abs() < eps(decimals)


def distribute_remainder(values: Sequence, remainder, decimals: int = 2) -> List[Decimal]:
    """
    Раскладывает остаток округления по долям минимальными единицами валюты.

    • Остаток округляется до decimals; если он нулевой - доли не меняются.
    • Индексы сортируются по величине доли: по возрастанию для положительного
      остатка, по убыванию для отрицательного (сортировка стабильная, при
      равенстве сохраняется исходный порядок).
    • По кругу добавляем ±10^-decimals, пока не разложим весь остаток:
      каждой доле достаётся full единиц, первым extra по порядку - ещё одна.

    Гарантия: sum(result) == sum(values) + remainder (после округления остатка).
    """
    if not values:
        raise ValueError("values must be a non-empty sequence")

    result = [D(v) for v in values]
    unit = quant(decimals)
    rest = round_money(remainder, decimals)
    if rest.copy_abs() < unit:
        return result

    positive = rest > 0
    step = unit if positive else -unit
    adjustments = int((rest.copy_abs() / unit).to_integral_value())

    order = sorted(range(len(result)), key=lambda i: result[i], reverse=not positive)

    full, extra = divmod(adjustments, len(order))
    if full:
        result = [v + step * full for v in result]
    for idx in order[:extra]:
        result[idx] = result[idx] + step

    return result
