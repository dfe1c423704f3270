"""
Expense export to CSV.
"""
from datetime import date
from pathlib import Path
from typing import Optional, Union

import pandas as pd

from .logging import get_logger
from .models import Trip

log = get_logger(__name__)


def expenses_export_frame(trip: Trip) -> pd.DataFrame:
    """Rows as they appear in the exported file, one per expense."""
    amount_column = f"Amount ({trip.base_currency})"
    columns = ['Date', 'Payer', 'Description', 'Category', 'Type', 'Amount', 'Currency', amount_column]

    data = [
        {
            'Date': exp.date.isoformat(),
            'Payer': trip.participant_name(exp.payer_id, default='Unknown'),
            'Description': exp.description,
            'Category': exp.category.value,
            'Type': exp.kind.value,
            'Amount': exp.original_amount,
            'Currency': exp.currency or trip.base_currency,
            amount_column: exp.amount,
        }
        for exp in trip.expenses
    ]
    return pd.DataFrame(data, columns=columns)


def export_expenses_csv(trip: Trip, path: Optional[Union[str, Path]] = None) -> Path:
    """
    Write the trip's expenses to a CSV file.

    Args:
        trip: Trip to export
        path: Output file (default: trip_expenses_<today>.csv in the working directory)

    Returns:
        Path of the written file
    """
    if path is None:
        path = f"trip_expenses_{date.today().isoformat()}.csv"
    path = Path(path)

    df = expenses_export_frame(trip)
    df.to_csv(path, index=False)
    log.info(f"Exported {len(df)} expenses to {path}")
    return path
