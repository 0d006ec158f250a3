import time
from decimal import Decimal

import pytest

from src.schemas.split import Split
from src.utils.errors import InvalidAmountError, SplitValidationError
from src.utils.split import calculate_split_amounts, generate_split_visualization, split_expense


def _splits(split_type, values):
    return [Split(user_id=uid, split_type=split_type, value=v) for uid, v in values]


def _equal(*users):
    return [Split(user_id=u, split_type="equal") for u in users]


def test_equal_split_even_amount():
    assert calculate_split_amounts(Decimal("90.00"), _equal("A", "B", "C")) == [Decimal("30.00")] * 3


def test_equal_split_remainder_lands_on_first_user():
    amounts = calculate_split_amounts(Decimal("100"), _equal("A", "B", "C"))
    assert amounts == [Decimal("33.34"), Decimal("33.33"), Decimal("33.33")]
    assert sum(amounts) == Decimal("100.00")


def test_equal_split_zero_decimals():
    amounts = calculate_split_amounts(Decimal("1000"), _equal("A", "B", "C"), decimals=0)
    assert amounts == [Decimal("334"), Decimal("333"), Decimal("333")]


def test_percentage_split():
    splits = _splits("percentage", [("A", Decimal("50")), ("B", Decimal("30")), ("C", Decimal("20"))])
    assert calculate_split_amounts(Decimal("200"), splits) == [Decimal("100.00"), Decimal("60.00"), Decimal("40.00")]


def test_percentage_split_must_total_100():
    splits = _splits("percentage", [("A", Decimal("50")), ("B", Decimal("30"))])
    with pytest.raises(SplitValidationError) as exc:
        calculate_split_amounts(Decimal("100"), splits)
    assert exc.value.code == "split_validation_error"


def test_fixed_split():
    splits = _splits("fixed", [("A", Decimal("40")), ("B", Decimal("60"))])
    assert calculate_split_amounts(Decimal("100"), splits) == [Decimal("40.00"), Decimal("60.00")]


def test_fixed_split_must_match_amount():
    splits = _splits("fixed", [("A", Decimal("40")), ("B", Decimal("50"))])
    with pytest.raises(SplitValidationError):
        calculate_split_amounts(Decimal("100"), splits)


def test_share_split():
    splits = _splits("share", [("A", Decimal("1")), ("B", Decimal("2"))])
    assert calculate_split_amounts(Decimal("90"), splits) == [Decimal("30.00"), Decimal("60.00")]


def test_share_split_sums_exactly():
    splits = _splits("share", [("A", Decimal("1")), ("B", Decimal("1")), ("C", Decimal("1"))])
    amounts = calculate_split_amounts(Decimal("100"), splits)
    assert sum(amounts) == Decimal("100.00")


@pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-5")])
def test_non_positive_amount(amount):
    with pytest.raises(InvalidAmountError):
        calculate_split_amounts(amount, _equal("A", "B"))


def test_mixed_split_types_rejected():
    splits = [
        Split(user_id="A", split_type="equal"),
        Split(user_id="B", split_type="percentage", value=Decimal("50")),
    ]
    with pytest.raises(SplitValidationError):
        calculate_split_amounts(Decimal("100"), splits)


def test_no_splits_and_duplicates_rejected():
    with pytest.raises(SplitValidationError):
        calculate_split_amounts(Decimal("100"), [])
    with pytest.raises(SplitValidationError):
        calculate_split_amounts(Decimal("100"), _equal("A", "A"))


def test_missing_or_non_positive_value_rejected():
    with pytest.raises(SplitValidationError):
        calculate_split_amounts(Decimal("100"), _splits("percentage", [("A", None), ("B", Decimal("100"))]))
    with pytest.raises(SplitValidationError):
        calculate_split_amounts(Decimal("100"), _splits("share", [("A", Decimal("0")), ("B", Decimal("1"))]))


def test_split_expense_maps_users(dinner):
    assert split_expense(dinner) == {"A": Decimal("30.00"), "B": Decimal("30.00"), "C": Decimal("30.00")}


def test_split_visualization(dinner):
    shares = split_expense(dinner)
    viz = generate_split_visualization(dinner, shares)

    assert viz["expense_total"] == Decimal("90.00")
    assert viz["currency"] == "USD"
    assert viz["splits_by_type"]["equal"]["count"] == 3
    assert viz["splits_by_type"]["equal"]["total"] == Decimal("90.00")
    assert viz["splits_by_user"]["B"]["percentage_of_total"] == Decimal("33.33")
    assert viz["splits_by_user"]["B"]["split_type"] == "equal"


def test_percentage_split_large_amount_within_tolerance():
    splits = _splits("percentage", [("A", Decimal("50")), ("B", Decimal("49.99"))])
    started = time.perf_counter()
    amounts = calculate_split_amounts(Decimal("100000000000"), splits)

    assert time.perf_counter() - started < 5
    assert amounts == [Decimal("50005000000.00"), Decimal("49995000000.00")]
    assert sum(amounts) == Decimal("100000000000.00")
