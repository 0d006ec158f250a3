# src/services/explanation.py
# -----------------------------------------------------------------------------
# ОБЪЯСНЕНИЕ РАСЧЁТА SETTLE-UP (breakdown + текст)
# -----------------------------------------------------------------------------
# Балансы в breakdown считаются по «сырым» долгам (DebtGraph), а не по
# переводам. Шаги расчёта всегда одни и те же, четыре штуки.
# -----------------------------------------------------------------------------

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Sequence, Union

from src.schemas.debt import DebtGraph
from src.schemas.settle import SettleAlgorithm
from src.schemas.settlement import Settlement
from src.utils.balance import calculate_net_balances
from src.utils.money import ZERO

ALGORITHM_EXPLANATIONS: Dict[SettleAlgorithm, str] = {
    SettleAlgorithm.greedy: (
        "The Greedy algorithm works by first calculating the net balance for each user. "
        "It then sorts users with positive balances (creditors) and negative balances (debtors) by the amount owed. "
        "The algorithm matches the largest debtors with the largest creditors to minimize the number of transactions."
    ),
    SettleAlgorithm.min_cash_flow: (
        "The Minimum Cash Flow algorithm minimizes the amount of cash flowing between users. "
        "It calculates the net balance for each user, then repeatedly finds the user with the maximum debt "
        "and the user with the maximum credit. "
        "It settles as much debt as possible between these users and continues until all debts are settled."
    ),
    SettleAlgorithm.friend_preference: (
        "The Friend Preference algorithm prioritizes settlements between users with strong friendship connections. "
        "It calculates net balances as usual but then settles debtor-creditor pairs of friends first, "
        "strongest friendships first, and resolves the remaining balances greedily."
    ),
}


def reduction_percentage(original_count: int, optimized_count: int) -> int:
    """round((1 - optimized/original) * 100), половина - вверх; 0 без исходных долгов."""
    if original_count <= 0:
        return 0
    ratio = (Decimal(1) - Decimal(optimized_count) / Decimal(original_count)) * 100
    return int(ratio.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def generate_settlement_breakdown(graph: DebtGraph, settlements: Sequence[Settlement]) -> Dict:
    input_debts = list(graph.debts)
    user_balances = calculate_net_balances(input_debts)

    creditors = sorted(
        ({"id": uid, "amount": bal} for uid, bal in user_balances.items() if bal > ZERO),
        key=lambda x: (-x["amount"], x["id"]),
    )
    debtors = sorted(
        ({"id": uid, "amount": -bal} for uid, bal in user_balances.items() if bal < ZERO),
        key=lambda x: (-x["amount"], x["id"]),
    )

    calculation_steps = [
        {
            "step": 1,
            "description": "Extract original debts from transactions",
            "action": "Input Collection",
            "data": input_debts,
        },
        {
            "step": 2,
            "description": "Calculate net balance for each user",
            "action": "Balance Calculation",
            "data": dict(user_balances),
        },
        {
            "step": 3,
            "description": "Separate users into creditors (positive balance) and debtors (negative balance)",
            "action": "User Classification",
            "data": {"creditors": creditors, "debtors": debtors},
        },
        {
            "step": 4,
            "description": "Apply optimization algorithm to generate minimal settlement transactions",
            "action": "Settlement Optimization",
            "data": list(settlements),
        },
    ]

    stats = {
        "original_transaction_count": len(input_debts),
        "optimized_transaction_count": len(settlements),
        "reduction_percentage": reduction_percentage(len(input_debts), len(settlements)),
    }

    return {
        "input_debts": input_debts,
        "user_balances": user_balances,
        "calculation_steps": calculation_steps,
        "final_settlements": list(settlements),
        "stats": stats,
    }


def describe_settlement(s: Settlement) -> str:
    return f"{s.payer_id} pays {s.amount} {s.currency} to {s.receiver_id}"


def generate_settlement_explanation(
    graph: DebtGraph,
    settlements: Sequence[Settlement],
    algorithm: Union[SettleAlgorithm, str],
) -> Dict:
    algorithm = SettleAlgorithm(algorithm)
    breakdown = generate_settlement_breakdown(graph, settlements)
    stats = breakdown["stats"]
    classified = breakdown["calculation_steps"][2]["data"]

    step_by_step: List[str] = [
        f"The calculation started with {len(breakdown['input_debts'])} original transactions "
        f"between {len(breakdown['user_balances'])} users.",
        f"After calculating net balances, we found {len(classified['creditors'])} users are owed money "
        f"and {len(classified['debtors'])} users owe money.",
        f"The {algorithm.value} algorithm was applied to find the optimal settlement plan, reducing the number "
        f"of transactions from {stats['original_transaction_count']} to {stats['optimized_transaction_count']} "
        f"({stats['reduction_percentage']}% reduction).",
    ]

    summary = (
        f"Using the {algorithm.value} algorithm, we optimized {len(breakdown['input_debts'])} original transactions "
        f"into {len(settlements)} settlements, reducing the number of transactions by {stats['reduction_percentage']}%."
    )

    return {
        "summary": summary,
        "algorithm_explanation": ALGORITHM_EXPLANATIONS[algorithm],
        "step_by_step_explanation": step_by_step,
        "transaction_summary": [describe_settlement(s) for s in settlements],
    }
