# src/main.py
# Главная точка входа FastAPI для движка взаиморасчётов SpendSync.
#  • /api/settlements - план переводов, разбор расчёта, сравнение алгоритмов
#  • /api/splits      - доли участников одного расхода
#  • /api/balances    - нетто-балансы группы по валютам
#  • /api/currencies  - точность валют
# Базы данных нет: каждый запрос самодостаточен.

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src import config

from src.routers.settlements import router as settlements_router
from src.routers.splits import router as splits_router
from src.routers.balances import router as balances_router
from src.routers.currencies import router as currencies_router

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title="SpendSync Settlement Engine",
    description="Расчёт минимального плана переводов для групповых расходов: доли, балансы, мультивалютность.",
)

# --- CORS (домены - из CORS_ORIGINS) ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Подключение роутеров ---
app.include_router(settlements_router, prefix="/api/settlements", tags=["Взаиморасчёты"])
app.include_router(splits_router,      prefix="/api/splits",      tags=["Доли расходов"])
app.include_router(balances_router,    prefix="/api/balances",    tags=["Балансы"])
# роутер валют уже имеет prefix="/currencies" → /api/currencies
app.include_router(currencies_router,  prefix="/api",             tags=["Валюты"])


@app.get("/")
def root():
    """Простой healthcheck."""
    return {"message": "SpendSync settlement engine работает!", "docs": "/docs"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("src.main:app", host="0.0.0.0", port=8000, reload=False)
