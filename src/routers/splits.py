# src/routers/splits.py
# Разбивка одного расхода по участникам (equal | percentage | fixed | share).
# Точность - по валюте расхода, если не передана явно.

from __future__ import annotations

from fastapi import APIRouter, HTTPException

from src.schemas.split import SplitCalculateRequest, SplitCalculateResponse
from src.utils.currency import currency_decimals
from src.utils.errors import SettleUpValidationError
from src.utils.split import generate_split_visualization, split_expense

router = APIRouter()


@router.post("/calculate", response_model=SplitCalculateResponse, summary="Доли участников расхода")
def calculate_split(payload: SplitCalculateRequest):
    expense = payload.expense
    decimals = payload.decimals if payload.decimals is not None else currency_decimals(expense.currency)

    try:
        shares = split_expense(expense, decimals)
    except SettleUpValidationError as e:
        raise HTTPException(status_code=422, detail=e.to_detail()) from e

    return {
        "currency": expense.currency,
        "shares": [
            {"user_id": s.user_id, "split_type": s.split_type, "amount": shares[s.user_id]}
            for s in expense.splits
        ],
        "visualization": generate_split_visualization(expense, shares, decimals),
    }
