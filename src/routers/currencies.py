# src/routers/currencies.py
# РОУТЕР СПРАВОЧНИКА ТОЧНОСТИ ВАЛЮТ
# -----------------------------------------------------------------------------
# Что делает этот файл:
#  - Возвращает список известных валют с числом знаков после запятой.
#  - Возвращает точность конкретной валюты по коду.
#
# Ключевые детали:
#  - Источник - CURRENCY_DECIMALS (src/utils/currency.py); неизвестный, но
#    корректный ISO-код получает DEFAULT_CURRENCY_DECIMALS из конфига.
#  - Код валюты нормализуется (strip + upper), мусор → 422.

from __future__ import annotations

from typing import List

from fastapi import APIRouter, HTTPException

from src.schemas.currency import CurrencyPrecisionOut, normalize_currency_code
from src.utils.currency import CURRENCY_DECIMALS, currency_decimals

router = APIRouter(
    prefix="/currencies",   # в main.py подключено под /api → итого: /api/currencies
)


@router.get("", response_model=List[CurrencyPrecisionOut], summary="Точность валют")
def list_currencies():
    return [CurrencyPrecisionOut(code=code, decimals=d) for code, d in sorted(CURRENCY_DECIMALS.items())]


@router.get("/{code}", response_model=CurrencyPrecisionOut, summary="Точность одной валюты")
def get_currency(code: str):
    try:
        normalized = normalize_currency_code(code)
    except ValueError as e:
        raise HTTPException(status_code=422, detail={"code": "invalid_currency", "message": str(e)})
    return CurrencyPrecisionOut(code=normalized, decimals=currency_decimals(normalized))
