# src/schemas/split.py
# -----------------------------------------------------------------------------
# СХЕМЫ Pydantic: Split / Expense (доли участников расхода)
# -----------------------------------------------------------------------------
# Цели:
#   • Не фиксируем число знаков после запятой - масштаб даёт валюта расхода.
#   • Сверку сумм долей с общей суммой делает SplitCalculator (src/utils/split.py),
#     а не схемы: так ошибки приходят с нашим кодом split_validation_error.
# -----------------------------------------------------------------------------

from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, validator

from src.schemas.currency import normalize_currency_code


class SplitType(str, Enum):
    equal = "equal"
    percentage = "percentage"
    fixed = "fixed"
    share = "share"


class Split(BaseModel):
    user_id: str = Field(..., min_length=1, description="ID участника")
    split_type: SplitType = Field(..., description="equal | percentage | fixed | share")
    # percentage -> проценты, fixed -> сумма, share -> число долей, equal -> игнорируется
    value: Optional[Decimal] = Field(default=None, description="Параметр доли")

    class Config:
        frozen = True


class Expense(BaseModel):
    id: Optional[str] = None
    paid_by: str = Field(..., min_length=1, description="Кто заплатил")
    # знак суммы проверяет SplitCalculator (InvalidAmountError)
    amount: Decimal = Field(..., description="Сумма расхода (> 0)")
    currency: str = Field(..., description="Код валюты ISO-4217")
    splits: List[Split] = Field(default_factory=list)
    description: Optional[str] = None

    class Config:
        frozen = True

    @validator("currency")
    def _normalize_currency(cls, v: str) -> str:
        code = normalize_currency_code(v)
        if code is None:
            raise ValueError("currency is required")
        return code


# ===== Вход/выход ручки /api/splits/calculate =================================

class SplitCalculateRequest(BaseModel):
    expense: Expense
    decimals: Optional[int] = Field(default=None, ge=0, le=6, description="Переопределить точность валюты")


class SplitShareOut(BaseModel):
    user_id: str
    split_type: SplitType
    amount: Decimal


class SplitTypeBucketOut(BaseModel):
    count: int
    total: Decimal
    details: List[Dict] = Field(default_factory=list)


class SplitUserOut(BaseModel):
    amount: Decimal
    split_type: SplitType
    percentage_of_total: Decimal


class SplitVisualizationOut(BaseModel):
    expense_total: Decimal
    currency: str
    splits_by_type: Dict[str, SplitTypeBucketOut]
    splits_by_user: Dict[str, SplitUserOut]


class SplitCalculateResponse(BaseModel):
    currency: str
    shares: List[SplitShareOut]
    visualization: SplitVisualizationOut
