"""
Net balance accumulation over a trip's expenses.
"""
from typing import Iterable, Sequence

import numpy as np
import pandas as pd

from .logging import get_logger
from .models import AnyExpense, ExpenseKind, Participant, Trip

log = get_logger(__name__)


def accumulate_balances(
    participants: Sequence[Participant],
    expenses: Iterable[AnyExpense]
) -> dict[str, float]:
    """
    Compute each participant's net balance.

    Positive balance = the group owes them money
    Negative balance = they owe money to the group

    The result holds exactly the roster's ids, in roster order. Split members
    missing from the roster are left out of the split. An expense whose payer
    or settlement receiver is missing from the roster is skipped entirely so
    that balances still sum to zero.

    Args:
        participants: Trip roster
        expenses: Expenses in ledger order, amounts in the base currency

    Returns:
        Dict mapping participant id to net balance
    """
    balances = {p.id: 0.0 for p in participants}

    for expense in expenses:
        if expense.kind is ExpenseKind.PERSONAL:
            continue

        if expense.payer_id not in balances:
            log.warning(
                f"Skipping expense {expense.id}: payer {expense.payer_id!r} is not a trip member"
            )
            continue

        if expense.kind is ExpenseKind.SETTLEMENT:
            if expense.receiver_id not in balances:
                log.warning(
                    f"Skipping settlement {expense.id}: receiver "
                    f"{expense.receiver_id!r} is not a trip member"
                )
                continue
            balances[expense.payer_id] += expense.amount
            balances[expense.receiver_id] -= expense.amount

        elif expense.kind is ExpenseKind.SHARED:
            if expense.split_to:
                wanted = set(expense.split_to)
                group = [p.id for p in participants if p.id in wanted]
            else:
                group = [p.id for p in participants]

            if not group:
                log.warning(f"Skipping shared expense {expense.id}: nobody to split it between")
                continue

            share = expense.amount / len(group)
            balances[expense.payer_id] += expense.amount
            for pid in group:
                balances[pid] -= share

    return balances


class BalanceCalculator:
    """Balance and expense summaries for a trip."""

    def __init__(self, trip: Trip):
        self.trip = trip

    def calculate(self) -> dict[str, float]:
        return accumulate_balances(self.trip.participants, self.trip.expenses)

    def get_balances(self) -> pd.DataFrame:
        """
        Calculate current balance for each participant.

        Returns:
            DataFrame with participant_id, name and balance columns
        """
        balances = self.calculate()

        data = []
        for p in self.trip.participants:
            data.append({
                'participant_id': p.id,
                'name': p.name,
                'balance': np.round(balances[p.id], 2)
            })

        return pd.DataFrame(data, columns=['participant_id', 'name', 'balance'])

    def get_expense_summary(self) -> pd.DataFrame:
        """Get summary of all expenses."""
        if not self.trip.expenses:
            return pd.DataFrame()

        data = []
        for exp in self.trip.expenses:
            data.append({
                'id': exp.id,
                'description': exp.description,
                'amount': exp.amount,
                'currency': self.trip.base_currency,
                'paid_by': self.trip.participant_name(exp.payer_id),
                'kind': exp.kind.value,
                'date': exp.date,
                'category': exp.category.value
            })

        return pd.DataFrame(data)
