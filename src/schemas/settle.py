# src/schemas/settle.py
# -----------------------------------------------------------------------------
# СХЕМЫ Pydantic: запрос/ответ settle-up, визуализация и объяснение
# -----------------------------------------------------------------------------
# Вход: либо готовый debt_graph, либо сырые expenses (+ settlements).
# Выход: переводы + визуализация (+ объяснение по флагу include_explanation).
# -----------------------------------------------------------------------------

from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, model_validator, validator

from src import config
from src.schemas.currency import normalize_currency_code
from src.schemas.debt import DebtEdge, DebtGraph
from src.schemas.friend import FriendRelation
from src.schemas.settlement import Settlement, SettlementRecord
from src.schemas.split import Expense


class SettleAlgorithm(str, Enum):
    min_cash_flow = "minCashFlow"
    greedy = "greedy"
    friend_preference = "friendPreference"


def default_algorithm() -> SettleAlgorithm:
    return SettleAlgorithm(config.SETTLE_DEFAULT_ALGORITHM)


class SettleUpRequest(BaseModel):
    debt_graph: Optional[DebtGraph] = None
    expenses: Optional[List[Expense]] = None
    settlements: Optional[List[SettlementRecord]] = None

    # "CUR1_CUR2" -> rate (1 CUR1 = rate CUR2)
    exchange_rates: Dict[str, Decimal] = Field(default_factory=dict)
    friend_relations: List[FriendRelation] = Field(default_factory=list)
    algorithm: SettleAlgorithm = Field(default_factory=default_algorithm)

    # дефолтная валюта группы (валюта расчёта); нет - берём мажоритарную
    default_currency: Optional[str] = None
    # валюта показа переводов пользователю; переводы пересчитываются с сохранением оригинала
    preferred_currency: Optional[str] = None
    decimals_by_ccy: Dict[str, int] = Field(default_factory=dict)

    include_friendships: bool = False
    include_explanation: bool = False

    @validator("default_currency", "preferred_currency")
    def _normalize_currency(cls, v: Optional[str]) -> Optional[str]:
        return normalize_currency_code(v)

    @model_validator(mode="after")
    def _require_source(self):
        if self.debt_graph is not None and (self.expenses or self.settlements):
            raise ValueError("Pass either debt_graph or expenses/settlements, not both")
        if self.debt_graph is None and self.expenses is None and self.settlements is None:
            raise ValueError("debt_graph or expenses/settlements is required")
        return self


# ===== Визуализация ===========================================================

class GraphNodeOut(BaseModel):
    id: str
    balance: Decimal


class SankeyNodeOut(BaseModel):
    id: str
    name: str


class FlowLinkOut(BaseModel):
    source: str
    target: str
    value: Decimal


class NetworkGraphOut(BaseModel):
    nodes: List[GraphNodeOut]
    links: List[FlowLinkOut]


class SankeyDiagramOut(BaseModel):
    nodes: List[SankeyNodeOut]
    links: List[FlowLinkOut]


class VisualizationSummaryOut(BaseModel):
    total_amount: Decimal
    transaction_count: int
    user_count: int
    reduction_rate: float


class VisualizationOut(BaseModel):
    network_graph: NetworkGraphOut
    sankey_diagram: SankeyDiagramOut
    summary: VisualizationSummaryOut


# ===== Объяснение =============================================================

class CalculationStepOut(BaseModel):
    step: int
    description: str
    action: str
    data: Any


class BreakdownStatsOut(BaseModel):
    original_transaction_count: int
    optimized_transaction_count: int
    reduction_percentage: int


class BreakdownOut(BaseModel):
    input_debts: List[DebtEdge]
    user_balances: Dict[str, Decimal]
    calculation_steps: List[CalculationStepOut]
    final_settlements: List[Settlement]
    stats: BreakdownStatsOut


class ExplanationOut(BaseModel):
    summary: str
    algorithm_explanation: str
    step_by_step_explanation: List[str]
    transaction_summary: List[str]


# ===== Ответы =================================================================

class SettleUpResponse(BaseModel):
    settlements: List[Settlement]
    visualization: VisualizationOut
    explanation: Optional[ExplanationOut] = None
    algorithm: SettleAlgorithm
    # валюта расчёта
    currency: str
    preferred_currency: Optional[str] = None
    # валюта переводов и визуализации (preferred_currency или currency)
    display_currency: str
    friendship_utilization: Optional[float] = None


class SettleUpBreakdownResponse(BaseModel):
    algorithm: SettleAlgorithm
    currency: str
    display_currency: str
    debt_graph: DebtGraph
    settlements: List[Settlement]
    breakdown: BreakdownOut
    explanation: ExplanationOut
    stats: BreakdownStatsOut


class AlgorithmComparisonOut(BaseModel):
    transaction_counts: Dict[str, int]
    average_transaction_amount: Dict[str, Decimal]
    friendship_utilization: Dict[str, float]


class SettleUpCompareResponse(BaseModel):
    currency: str
    display_currency: str
    algorithms: Dict[str, List[Settlement]]
    comparison: AlgorithmComparisonOut
    visualizations: Dict[str, VisualizationOut]
