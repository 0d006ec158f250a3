# src/utils/errors.py
# -----------------------------------------------------------------------------
# ОШИБКИ ДВИЖКА SETTLE-UP
# -----------------------------------------------------------------------------
#   • SettleUpValidationError - плохой вход, отдаём клиенту (422 в роутерах).
#   • SettlementInvariantError - дефект алгоритма, не глушим (500).
# -----------------------------------------------------------------------------

from __future__ import annotations


class SettleUpError(Exception):
    """Базовая ошибка движка взаиморасчётов."""


class SettleUpValidationError(SettleUpError, ValueError):
    code = "validation_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_detail(self) -> dict:
        return {"code": self.code, "message": self.message}


class SplitValidationError(SettleUpValidationError):
    code = "split_validation_error"


class InvalidAmountError(SettleUpValidationError):
    code = "invalid_amount"


class MissingExchangeRateError(SettleUpValidationError):
    code = "missing_exchange_rate"

    def __init__(self, from_currency: str, to_currency: str):
        super().__init__(f"No exchange rate for {from_currency}_{to_currency}")
        self.from_currency = from_currency
        self.to_currency = to_currency


class SelfSettlementError(SettleUpValidationError):
    code = "self_settlement"


class BalanceMismatchError(SettleUpValidationError):
    code = "balance_mismatch"


class SettlementInvariantError(SettleUpError, RuntimeError):
    """Нарушен инвариант после расчёта (остаток баланса, отрицательная сумма и т.п.)."""
