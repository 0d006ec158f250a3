# src/utils/currency.py
# -----------------------------------------------------------------------------
# МУЛЬТИВАЛЮТНОСТЬ: точность валют и приведение графа долгов к одной валюте
# -----------------------------------------------------------------------------
# Политика:
#   • Целевая валюта: явно заданная (дефолт группы), иначе «мажоритарная»
#     (больше всего рёбер; при равенстве - по алфавиту), иначе из конфига.
#   • Курс "CUR1_CUR2" = сколько CUR2 за 1 CUR1. Берём прямой ключ, иначе
#     обратный как 1/rate. Нет курса - MissingExchangeRateError.
#   • Каждое ребро конвертируется и округляется ОТДЕЛЬНО, поэтому нетто-балансы,
#     пересчитанные по новым рёбрам, по-прежнему в сумме дают ровно 0.
#   • Исходные сумма/валюта/курс сохраняются на ребре (и на переводе) для показа.
# -----------------------------------------------------------------------------

from __future__ import annotations

import logging
from collections import Counter
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Optional

from src import config
from src.schemas.debt import DebtEdge, DebtGraph
from src.schemas.settlement import Settlement
from src.utils.errors import MissingExchangeRateError, SettleUpValidationError
from src.utils.money import D, ZERO, round_money

log = logging.getLogger(__name__)

# Минорные единицы ISO-4217 для валют, где это не 2 (остальные - DEFAULT_CURRENCY_DECIMALS)
CURRENCY_DECIMALS: Dict[str, int] = {
    "USD": 2, "EUR": 2, "GBP": 2, "RUB": 2, "UAH": 2, "BYN": 2, "KZT": 2,
    "CNY": 2, "TRY": 2, "INR": 2, "CHF": 2, "CAD": 2, "AUD": 2,
    "JPY": 0, "KRW": 0, "VND": 0, "CLP": 0, "ISK": 0, "UGX": 0,
    "BHD": 3, "KWD": 3, "OMR": 3, "JOD": 3, "TND": 3,
}


def currency_decimals(code: str, overrides: Optional[Mapping[str, int]] = None) -> int:
    code = (code or "").upper()
    if overrides and code in overrides:
        return int(overrides[code])
    return CURRENCY_DECIMALS.get(code, config.DEFAULT_CURRENCY_DECIMALS)


def majority_currency(debts: Iterable[DebtEdge]) -> Optional[str]:
    counts = Counter(d.currency for d in debts)
    if not counts:
        return None
    return sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))[0][0]


def resolve_target_currency(graph: DebtGraph, default_currency: Optional[str] = None) -> str:
    if default_currency:
        return default_currency.strip().upper()
    return majority_currency(graph.debts) or config.DEFAULT_CURRENCY_CODE


def get_exchange_rate(from_ccy: str, to_ccy: str, exchange_rates: Mapping[str, object]) -> Decimal:
    """1 from_ccy = rate to_ccy."""
    if from_ccy == to_ccy:
        return Decimal("1")

    rates = {str(k).strip().upper(): v for k, v in (exchange_rates or {}).items()}
    direct = rates.get(f"{from_ccy}_{to_ccy}")
    if direct is not None:
        rate = D(direct)
        if rate <= ZERO:
            raise SettleUpValidationError(f"Exchange rate {from_ccy}_{to_ccy} must be positive")
        return rate

    inverse = rates.get(f"{to_ccy}_{from_ccy}")
    if inverse is not None:
        rate = D(inverse)
        if rate <= ZERO:
            raise SettleUpValidationError(f"Exchange rate {to_ccy}_{from_ccy} must be positive")
        return Decimal("1") / rate

    raise MissingExchangeRateError(from_ccy, to_ccy)


def normalize_debt_graph(
    graph: DebtGraph,
    exchange_rates: Optional[Mapping[str, object]] = None,
    target_currency: Optional[str] = None,
    decimals_by_ccy: Optional[Mapping[str, int]] = None,
) -> DebtGraph:
    """
    Приводит все рёбра к одной валюте. Рёбра в целевой валюте только
    округляются до её точности (если пришли точнее).
    Курсы проверяются заранее по всем валютам графа, до какой-либо конвертации.
    """
    target = resolve_target_currency(graph, target_currency)
    decimals = currency_decimals(target, decimals_by_ccy)

    rates: Dict[str, Decimal] = {}
    for code in graph.currencies():
        rates[code] = get_exchange_rate(code, target, exchange_rates or {})

    log.debug("normalizing %d debts from %s into %s", len(graph.debts), sorted(rates), target)

    converted: List[DebtEdge] = []
    for edge in graph.debts:
        if edge.currency == target:
            amount = round_money(edge.amount, decimals)
            converted.append(edge if amount == edge.amount else edge.model_copy(update={"amount": amount}))
            continue
        rate = rates[edge.currency]
        converted.append(
            DebtEdge(
                from_user_id=edge.from_user_id,
                to_user_id=edge.to_user_id,
                amount=round_money(D(edge.amount) * rate, decimals),
                currency=target,
                original_amount=edge.amount,
                original_currency=edge.currency,
                exchange_rate=rate,
            )
        )

    return DebtGraph(users=list(graph.users), debts=converted)


def convert_settlements(
    settlements: List[Settlement],
    target_currency: str,
    exchange_rates: Optional[Mapping[str, object]] = None,
    decimals_by_ccy: Optional[Mapping[str, int]] = None,
) -> List[Settlement]:
    """
    Пересчёт переводов в предпочтительную валюту пользователя (только для показа).
    Исходная сумма, валюта и курс остаются на переводе.
    """
    target = target_currency.strip().upper()
    decimals = currency_decimals(target, decimals_by_ccy)

    result: List[Settlement] = []
    for s in settlements:
        if s.currency == target:
            result.append(s)
            continue
        rate = get_exchange_rate(s.currency, target, exchange_rates or {})
        result.append(
            Settlement(
                payer_id=s.payer_id,
                receiver_id=s.receiver_id,
                amount=round_money(s.amount * rate, decimals),
                currency=target,
                original_amount=s.amount,
                original_currency=s.currency,
                exchange_rate=rate,
            )
        )
    return result
