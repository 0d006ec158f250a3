# src/schemas/currency.py
# СХЕМЫ: валюты и курсы.
# ВАЖНО:
#   - Код валюты всегда ISO-4217, 3 буквы, приводим к верхнему регистру.
#   - Курсы приходят словарём "CUR1_CUR2" -> rate (1 CUR1 = rate CUR2).

from __future__ import annotations

from typing import Optional
from pydantic import BaseModel, Field


def normalize_currency_code(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    v = str(v).strip()
    if v == "":
        return None
    v = v.upper()
    if len(v) != 3 or not v.isalpha():
        raise ValueError("Currency code must be 3 letters (ISO 4217)")
    return v


class CurrencyPrecisionOut(BaseModel):
    code: str = Field(..., description="Код валюты ISO-4217, напр. 'USD'")
    decimals: int = Field(..., description="Количество знаков после запятой (2 для USD, 0 для JPY)")
