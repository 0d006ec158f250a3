# src/routers/settlements.py
# РОУТЕР SETTLE-UP
# -----------------------------------------------------------------------------
# Что делает этот файл:
#  - POST /calculate  - минимальный план переводов + визуализация (+ объяснение).
#  - POST /breakdown  - пошаговый разбор расчёта и статистика сокращения.
#  - POST /compare    - все алгоритмы на одном графе долгов.
#
# Ключевые детали:
#  - Алгоритм берётся из тела запроса; query-параметр ?algorithm= его перекрывает.
#  - Ошибки входа (SettleUpValidationError) → 422 c detail={"code", "message"}.
#  - SettlementInvariantError не ловим: это дефект расчёта, пусть будет 500.
#  - Состояния нет: всё, что нужно, приходит в запросе.

from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Query

from src.schemas.settle import (
    SettleUpBreakdownResponse,
    SettleUpCompareResponse,
    SettleUpRequest,
    SettleUpResponse,
)
from src.services.settle_up import calculate_settle_up, calculate_settle_up_breakdown, compare_algorithms
from src.services.strategies import parse_algorithm
from src.utils.errors import SettleUpValidationError

log = logging.getLogger(__name__)

router = APIRouter()


def _unprocessable(e: SettleUpValidationError) -> HTTPException:
    log.info("settle-up rejected: %s (%s)", e.message, e.code)
    return HTTPException(status_code=422, detail=e.to_detail())


def _with_algorithm(payload: SettleUpRequest, algorithm: Optional[str]) -> SettleUpRequest:
    if not algorithm:
        return payload
    return payload.model_copy(update={"algorithm": parse_algorithm(algorithm)})


# =========================
# РОУТЫ
# =========================

@router.post("/calculate", response_model=SettleUpResponse, summary="План переводов settle-up")
def calculate(
    payload: SettleUpRequest,
    algorithm: Optional[str] = Query(None, description="minCashFlow | greedy | friendPreference"),
):
    try:
        return calculate_settle_up(_with_algorithm(payload, algorithm))
    except SettleUpValidationError as e:
        raise _unprocessable(e) from e


@router.post("/breakdown", response_model=SettleUpBreakdownResponse, summary="Пошаговый разбор расчёта")
def breakdown(
    payload: SettleUpRequest,
    algorithm: Optional[str] = Query(None, description="minCashFlow | greedy | friendPreference"),
):
    try:
        return calculate_settle_up_breakdown(_with_algorithm(payload, algorithm))
    except SettleUpValidationError as e:
        raise _unprocessable(e) from e


@router.post("/compare", response_model=SettleUpCompareResponse, summary="Сравнение алгоритмов")
def compare(
    payload: SettleUpRequest,
    algorithms: Optional[List[str]] = Query(None, description="Какие алгоритмы сравнивать (по умолчанию все)"),
):
    """
    Прогоняет выбранные (или все) алгоритмы на одном и том же графе долгов.
    Повтор алгоритма в query учитывается один раз.
    """
    try:
        selected = None
        if algorithms:
            selected = list(dict.fromkeys(parse_algorithm(a) for a in algorithms))
        return compare_algorithms(payload, selected)
    except SettleUpValidationError as e:
        raise _unprocessable(e) from e
