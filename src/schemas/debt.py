# src/schemas/debt.py
# -----------------------------------------------------------------------------
# СХЕМЫ Pydantic: граф долгов (DebtEdge / DebtGraph) и нетто-балансы
# -----------------------------------------------------------------------------
# Семантика:
#   • DebtEdge from_user_id -> to_user_id на amount: from ДОЛЖЕН to.
#   • UserBalance.balance > 0 - пользователю ДОЛЖНЫ; < 0 - он ДОЛЖЕН.
# -----------------------------------------------------------------------------

from __future__ import annotations

from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, condecimal, validator

from src.schemas.currency import normalize_currency_code
from src.schemas.settlement import SettlementRecord
from src.schemas.split import Expense

# Денежное поле без фиксированного decimal_places
Money = condecimal(max_digits=24, ge=0)


class DebtEdge(BaseModel):
    from_user_id: str = Field(..., min_length=1, description="Кто должен")
    to_user_id: str = Field(..., min_length=1, description="Кому должен")
    amount: Money = Field(..., description="Сумма долга")
    currency: str = Field(..., description="Код валюты ISO-4217")
    # заполняется CurrencyNormalizer при пересчёте
    original_amount: Optional[Decimal] = None
    original_currency: Optional[str] = None
    exchange_rate: Optional[Decimal] = None

    class Config:
        frozen = True

    @validator("currency")
    def _normalize_currency(cls, v: str) -> str:
        code = normalize_currency_code(v)
        if code is None:
            raise ValueError("currency is required")
        return code


class DebtGraph(BaseModel):
    users: List[str] = Field(default_factory=list)
    debts: List[DebtEdge] = Field(default_factory=list)

    class Config:
        frozen = True

    def currencies(self) -> List[str]:
        return sorted({d.currency for d in self.debts})

    def all_users(self) -> List[str]:
        """users + все, кто встречается в рёбрах (порядок: как в users, потом по первому появлению)."""
        seen: Dict[str, None] = dict.fromkeys(self.users)
        for d in self.debts:
            seen.setdefault(d.from_user_id, None)
            seen.setdefault(d.to_user_id, None)
        return list(seen)


class UserBalance(BaseModel):
    user_id: str
    balance: Decimal
    currency: str

    class Config:
        frozen = True


class GroupBalancesOut(BaseModel):
    graph: DebtGraph
    # {"USD": [{user_id, balance, currency}, ...], "EUR": [...]}
    balances: Dict[str, List[UserBalance]]


# ===== Вход/выход ручки /api/balances =========================================


class GroupBalancesRequest(BaseModel):
    users: List[str] = Field(default_factory=list, description="Участники без расходов тоже попадут в граф")
    expenses: List[Expense] = Field(default_factory=list)
    settlements: List[SettlementRecord] = Field(default_factory=list)
    decimals_by_ccy: Dict[str, int] = Field(default_factory=dict)


class HeatmapCellOut(BaseModel):
    from_user_id: str
    to_user_id: str
    amount: Decimal
    currency: str


class DebtHeatmapOut(BaseModel):
    users: List[str]
    data: List[HeatmapCellOut]


class GroupBalancesResponse(GroupBalancesOut):
    heatmap: DebtHeatmapOut
