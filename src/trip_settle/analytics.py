"""
Spending analytics over a trip's expenses.

Settlement payments are transfers between members, not spending, so they are
left out of every figure here.
"""
import numpy as np
import pandas as pd

from .models import ExpenseKind, Trip

KIND_FILTERS = {
    'all': (ExpenseKind.SHARED, ExpenseKind.PERSONAL),
    'shared': (ExpenseKind.SHARED,),
    'personal': (ExpenseKind.PERSONAL,),
}

COLUMNS = ['id', 'date', 'payer_id', 'payer', 'kind', 'category', 'description', 'amount']


def expenses_frame(trip: Trip, kind_filter: str = 'all') -> pd.DataFrame:
    """
    Get the trip's spending as a DataFrame.

    Args:
        trip: Trip to analyse
        kind_filter: 'all', 'shared' or 'personal'

    Returns:
        DataFrame with one row per expense
    """
    if kind_filter not in KIND_FILTERS:
        raise ValueError(f"Unknown filter {kind_filter!r}, expected one of {sorted(KIND_FILTERS)}")
    kinds = KIND_FILTERS[kind_filter]

    data = [
        {
            'id': exp.id,
            'date': pd.Timestamp(exp.date),
            'payer_id': exp.payer_id,
            'payer': trip.participant_name(exp.payer_id, default='Unknown'),
            'kind': exp.kind.value,
            'category': exp.category.value,
            'description': exp.description,
            'amount': exp.amount,
        }
        for exp in trip.expenses
        if exp.kind in kinds
    ]
    return pd.DataFrame(data, columns=COLUMNS)


def daily_totals(trip: Trip, kind_filter: str = 'all') -> pd.DataFrame:
    """Total spent per day, newest day first."""
    df = expenses_frame(trip, kind_filter)
    if df.empty:
        return pd.DataFrame(columns=['date', 'total', 'count'])

    grouped = df.groupby('date')['amount'].agg(total='sum', count='count').reset_index()
    return grouped.sort_values('date', ascending=False, ignore_index=True)


def category_totals(trip: Trip, kind_filter: str = 'all') -> pd.DataFrame:
    """Total spent per category, largest first, with each category's share in percent."""
    df = expenses_frame(trip, kind_filter)
    if df.empty:
        return pd.DataFrame(columns=['category', 'total', 'percent'])

    grouped = df.groupby('category')['amount'].sum().reset_index(name='total')
    grand_total = grouped['total'].sum()
    grouped['percent'] = np.round(grouped['total'] / grand_total * 100, 1) if grand_total else 0.0
    return grouped.sort_values('total', ascending=False, ignore_index=True)


def spending_summary(trip: Trip, kind_filter: str = 'all') -> dict:
    """
    Headline spending figures for a trip.

    Returns:
        Dict with total, transactions, active_days, average_per_day and,
        when the trip has a budget, budget and budget_remaining
    """
    df = expenses_frame(trip, kind_filter)
    total = float(df['amount'].sum()) if not df.empty else 0.0
    active_days = int(df['date'].nunique()) if not df.empty else 0

    summary = {
        'total': total,
        'transactions': len(df),
        'active_days': active_days,
        'average_per_day': total / active_days if active_days else 0.0,
    }
    if trip.total_budget is not None:
        summary['budget'] = float(trip.total_budget)
        summary['budget_remaining'] = float(trip.total_budget) - total
    return summary
