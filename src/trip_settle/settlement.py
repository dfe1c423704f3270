"""
Settlement computation - turns net balances into the transfers that settle them.
"""
from typing import Iterable, List, Mapping, Optional, Sequence

import numpy as np
import pandas as pd

from .balances import accumulate_balances
from .config import SETTLEMENT_EPSILON, get_config
from .logging import get_logger
from .models import AnyExpense, Participant, Transfer, Trip

log = get_logger(__name__)


def compute_transfers(
    balances: Mapping[str, float],
    epsilon: float = SETTLEMENT_EPSILON
) -> List[Transfer]:
    """
    Greedily match the largest debtors with the largest creditors.

    Balances within `epsilon` of zero are treated as settled. The result
    settles every balance but is not guaranteed to use the fewest possible
    transfers; it uses at most debtors + creditors - 1 of them.

    Args:
        balances: Dict mapping participant id to net balance
        epsilon: Settlement tolerance in base currency units

    Returns:
        List of Transfer objects, in the order they were matched
    """
    debtors = [[pid, amount] for pid, amount in balances.items() if amount < -epsilon]
    creditors = [[pid, amount] for pid, amount in balances.items() if amount > epsilon]

    debtors.sort(key=lambda d: d[1])
    creditors.sort(key=lambda c: c[1], reverse=True)

    transfers = []
    i = j = 0

    while i < len(debtors) and j < len(creditors):
        debtor = debtors[i]
        creditor = creditors[j]

        amount = min(abs(debtor[1]), creditor[1])

        if amount > epsilon:
            transfers.append(Transfer(from_id=debtor[0], to_id=creditor[0], amount=amount))

        debtor[1] += amount
        creditor[1] -= amount

        # A remainder of exactly epsilon stays on its side and is absorbed by
        # the next match without a transfer. The zero checks cover epsilon=0.
        if abs(debtor[1]) < epsilon or debtor[1] == 0:
            i += 1
        if creditor[1] < epsilon or creditor[1] == 0:
            j += 1

    return transfers


def calculate_debts(
    participants: Sequence[Participant],
    expenses: Iterable[AnyExpense],
    epsilon: float = SETTLEMENT_EPSILON
) -> List[Transfer]:
    """
    Compute who pays whom to settle a trip.

    Args:
        participants: Trip roster
        expenses: All trip expenses, amounts in the base currency
        epsilon: Settlement tolerance in base currency units

    Returns:
        List of transfers settling every balance
    """
    balances = accumulate_balances(participants, expenses)
    transfers = compute_transfers(balances, epsilon)
    log.debug(
        f"Settled {len(balances)} balances with {len(transfers)} transfers "
        f"(epsilon={epsilon})"
    )
    return transfers


def apply_transfers(
    balances: Mapping[str, float],
    transfers: Iterable[Transfer]
) -> dict[str, float]:
    """
    Return the balances left after every transfer has been paid.

    The payer's balance moves up by the amount and the receiver's moves down.
    """
    remaining = dict(balances)
    for t in transfers:
        remaining[t.from_id] = remaining.get(t.from_id, 0.0) + t.amount
        remaining[t.to_id] = remaining.get(t.to_id, 0.0) - t.amount
    return remaining


def is_settled(balances: Mapping[str, float], epsilon: float = SETTLEMENT_EPSILON) -> bool:
    """Check whether every balance is within epsilon of zero."""
    values = np.fromiter(balances.values(), dtype=np.float64, count=len(balances))
    return bool(np.all(np.abs(values) <= epsilon))


def max_transfer_count(balances: Mapping[str, float], epsilon: float = SETTLEMENT_EPSILON) -> int:
    """
    Upper bound on the number of transfers compute_transfers can emit.

    This is debtors + creditors - 1, or 0 when either side is empty.

    Args:
        balances: Dict mapping participant id to net balance
        epsilon: Settlement tolerance

    Returns:
        Maximum number of transfers
    """
    values = np.fromiter(balances.values(), dtype=np.float64, count=len(balances))
    debtors = int(np.sum(values < -epsilon))
    creditors = int(np.sum(values > epsilon))
    if debtors == 0 or creditors == 0:
        return 0
    return debtors + creditors - 1


class SettlementOptimizer:
    """Settlement results for a trip, as objects, a DataFrame or text."""

    def __init__(self, trip: Trip, epsilon: Optional[float] = None):
        self.trip = trip
        self.epsilon = get_config().epsilon if epsilon is None else epsilon

    def calculate_optimal_settlements(self) -> List[Transfer]:
        """
        Calculate the transfers needed to settle all debts.

        Returns:
            List of Transfer objects representing required payments
        """
        return calculate_debts(self.trip.participants, self.trip.expenses, self.epsilon)

    def get_settlements_dataframe(self) -> pd.DataFrame:
        """
        Get settlements as a formatted DataFrame.

        Returns:
            DataFrame with from, to, amount, currency columns
        """
        settlements = self.calculate_optimal_settlements()

        if not settlements:
            return pd.DataFrame(columns=['from', 'to', 'amount', 'currency'])

        data = []
        for s in settlements:
            data.append({
                'from': self.trip.participant_name(s.from_id),
                'to': self.trip.participant_name(s.to_id),
                'amount': np.round(s.amount, 2),
                'currency': self.trip.base_currency
            })

        return pd.DataFrame(data)

    def get_settlement_summary(self) -> str:
        """
        Get human-readable settlement instructions.

        Returns:
            Formatted string with settlement instructions
        """
        settlements = self.calculate_optimal_settlements()

        if not settlements:
            return "All settled! No payments needed."

        lines = ["Settlements needed:", ""]

        for i, s in enumerate(settlements, 1):
            from_name = self.trip.participant_name(s.from_id)
            to_name = self.trip.participant_name(s.to_id)

            lines.append(
                f"  {i}. {from_name} pays {to_name}: "
                f"{s.amount:,.0f} {self.trip.base_currency}"
            )

        lines.append("")
        lines.append(f"Total transactions: {len(settlements)}")

        return "\n".join(lines)
