# src/schemas/settlement.py

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, validator

from src.schemas.currency import normalize_currency_code


class Settlement(BaseModel):
    """
    Один рекомендуемый перевод settle-up (результат стратегии).
    Используется как минимальный набор переводов между участниками группы.
    Идентичности нет: набор пересчитывается на каждый запрос.
    """
    payer_id: str      # кто переводит (должник)
    receiver_id: str   # кому перевод (кредитор)
    amount: Decimal    # сумма перевода (>0, квантуется по decimals валюты)
    currency: str
    # заполнено, если перевод пересчитан в предпочтительную валюту
    original_amount: Optional[Decimal] = None
    original_currency: Optional[str] = None
    exchange_rate: Optional[Decimal] = None

    class Config:
        frozen = True


class SettlementRecord(BaseModel):
    """
    Уже совершённый (или ожидающий) перевод из истории группы.
    В балансах учитываются только status='completed'.
    """
    id: Optional[str] = None
    payer_id: str = Field(..., min_length=1)
    receiver_id: str = Field(..., min_length=1)
    amount: Decimal = Field(..., description="Сумма перевода (> 0)")
    currency: str
    status: str = Field(default="completed", description="completed | pending | ...")

    class Config:
        frozen = True

    @validator("currency")
    def _normalize_currency(cls, v: str) -> str:
        code = normalize_currency_code(v)
        if code is None:
            raise ValueError("currency is required")
        return code
