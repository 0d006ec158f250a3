from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from src.main import app
from src.schemas.split import Expense, Split


def _equal_expense(paid_by, amount, users, currency="USD", **kwargs):
    return Expense(
        paid_by=paid_by,
        amount=Decimal(amount),
        currency=currency,
        splits=[Split(user_id=u, split_type="equal") for u in users],
        **kwargs,
    )


@pytest.fixture
def equal_expense():
    return _equal_expense


@pytest.fixture
def dinner():
    """90.00 USD, платит A, делят поровну A, B, C."""
    return _equal_expense("A", "90.00", ["A", "B", "C"], id="dinner", description="Dinner")


@pytest.fixture
def client():
    return TestClient(app)
