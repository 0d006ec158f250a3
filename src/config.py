# src/config.py
# Настройки движка взаиморасчётов из окружения (.env подхватывается через python-dotenv).

from __future__ import annotations

import os
from dotenv import load_dotenv

load_dotenv()

# Алгоритм settle-up по умолчанию: minCashFlow | greedy | friendPreference
SETTLE_DEFAULT_ALGORITHM = os.getenv("SETTLE_DEFAULT_ALGORITHM", "minCashFlow")

# Валюта, если её нельзя вывести из долгов (пустая группа и т.п.)
DEFAULT_CURRENCY_CODE = os.getenv("DEFAULT_CURRENCY_CODE", "USD").strip().upper()

# Точность для валют, которых нет в справочнике
DEFAULT_CURRENCY_DECIMALS = int(os.getenv("DEFAULT_CURRENCY_DECIMALS", "2"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

CORS_ORIGINS = [
    o.strip()
    for o in os.getenv(
        "CORS_ORIGINS",
        "http://localhost:3000,http://localhost:5173,http://127.0.0.1:3000,http://127.0.0.1:5173",
    ).split(",")
    if o.strip()
]
