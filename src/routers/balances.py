# src/routers/balances.py
# Балансы группы по валютам: расходы + завершённые переводы → граф долгов,
# нетто-балансы и тепловая карта «кто кому должен».

from __future__ import annotations

from fastapi import APIRouter, HTTPException

from src.schemas.debt import GroupBalancesRequest, GroupBalancesResponse
from src.services.visualization import generate_debt_heatmap
from src.utils.balance import aggregate_group_balances
from src.utils.errors import SettleUpValidationError

router = APIRouter()


@router.post("", response_model=GroupBalancesResponse, summary="Нетто-балансы группы по валютам")
def group_balances(payload: GroupBalancesRequest):
    try:
        result = aggregate_group_balances(
            payload.expenses,
            payload.settlements,
            decimals_by_ccy=payload.decimals_by_ccy,
            users=payload.users,
        )
    except SettleUpValidationError as e:
        raise HTTPException(status_code=422, detail=e.to_detail()) from e

    return {
        "graph": result.graph,
        "balances": {code: result.user_balances(code) for code in result.balances},
        "heatmap": generate_debt_heatmap(result.graph.debts),
    }
