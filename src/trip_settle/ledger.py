"""
Loading trips and expenses from stored ledger records.

Records use the column names of the trip backend (snake_case); the camelCase
names used by the web client are accepted as well.
"""
import datetime
import json
from pathlib import Path
from typing import Any, Mapping, Optional, Union

from .config import SettleConfig, get_config
from .currency import CurrencyConverter, normalize_amount
from .exceptions import LedgerValidationError
from .logging import get_logger
from .models import (
    AnyExpense,
    Category,
    ExpenseKind,
    PersonalExpense,
    SettlementExpense,
    SharedExpense,
    Trip,
)

log = get_logger(__name__)


def _field(record: Mapping[str, Any], *names: str, default: Any = None) -> Any:
    for name in names:
        if record.get(name) is not None:
            return record[name]
    return default


def _parse_date(value: Any) -> datetime.date:
    if value is None:
        return datetime.date.today()
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    try:
        return datetime.date.fromisoformat(str(value)[:10])
    except ValueError as e:
        raise LedgerValidationError(f"Invalid expense date {value!r}", e) from e


def _parse_amount(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise LedgerValidationError(f"Invalid amount {value!r}", e) from e


def _parse_category(value: Any) -> Category:
    if value is None:
        return Category.MISC
    try:
        return Category(value)
    except ValueError:
        log.debug(f"Unknown category {value!r}, using Misc")
        return Category.MISC


def expense_from_record(
    record: Mapping[str, Any],
    config: Optional[SettleConfig] = None,
    exchange_rate: Optional[float] = None,
    converter: Optional[CurrencyConverter] = None
) -> Optional[AnyExpense]:
    """
    Build a typed expense from a stored record.

    The amount is taken from `amount_vnd` when present, otherwise the entered
    `original_amount` is converted to the base currency at the trip rate, or
    with `converter` for currencies the trip rate does not cover.

    Args:
        record: Expense row
        config: Settings to use (default: process configuration)
        exchange_rate: Trip rate overriding the configured one
        converter: Exchange rates for other currencies (optional)

    Returns:
        The expense, or None for a settlement record without a receiver
    """
    config = config or get_config()
    rate = exchange_rate if exchange_rate is not None else config.exchange_rate

    raw_kind = _field(record, 'type', 'kind', default=ExpenseKind.SHARED.value)
    try:
        kind = ExpenseKind(str(raw_kind).upper())
    except ValueError as e:
        raise LedgerValidationError(f"Unknown expense type {raw_kind!r}", e) from e

    payer_id = _field(record, 'payer_id', 'payerId')
    if payer_id is None or str(payer_id) == '':
        raise LedgerValidationError(f"Expense record has no payer: {dict(record)!r}")
    payer_id = str(payer_id)

    currency = str(_field(record, 'currency', default=config.base_currency)).upper()
    original_amount = _field(record, 'original_amount', 'originalAmount')
    amount = _field(record, 'amount_vnd', 'amountVND', 'amount')
    if original_amount is not None:
        original_amount = _parse_amount(original_amount)
    if amount is None:
        if original_amount is None:
            raise LedgerValidationError(f"Expense record has no amount: {dict(record)!r}")
        amount = normalize_amount(
            original_amount, currency, config.base_currency, rate,
            config.secondary_currency, converter
        )
    amount = _parse_amount(amount)

    split_to = tuple(str(pid) for pid in (_field(record, 'split_to', 'splitTo', default=()) or ()))

    common = dict(
        description=_field(record, 'description', default=''),
        category=_parse_category(_field(record, 'category')),
        currency=currency,
        original_amount=original_amount,
        date=_parse_date(_field(record, 'date')),
    )
    expense_id = _field(record, 'id')
    if expense_id is not None:
        common['id'] = str(expense_id)

    if kind is ExpenseKind.SETTLEMENT:
        if not split_to:
            log.warning(f"Ignoring settlement {expense_id} without a receiver")
            return None
        return SettlementExpense(payer_id, amount, split_to[0], **common)
    if kind is ExpenseKind.PERSONAL:
        return PersonalExpense(payer_id, amount, **common)
    return SharedExpense(payer_id, amount, split_to, **common)


def trip_from_dict(
    data: Mapping[str, Any],
    config: Optional[SettleConfig] = None,
    converter: Optional[CurrencyConverter] = None
) -> Trip:
    """
    Build a Trip from a ledger document.

    Rates stored under the trip's `rates` key are used for expenses in
    currencies other than the base and secondary ones.

    Args:
        data: Dict with 'trip', 'members' and 'expenses' keys
        converter: Converter to use instead of the stored rates

    Returns:
        Trip with its roster and the expenses that could be used
    """
    config = config or get_config()
    info = data.get('trip', {})

    trip_kwargs = dict(
        name=info.get('name', 'Trip'),
        base_currency=config.base_currency,
        exchange_rate=_field(info, 'exchange_rate', 'exchangeRate', default=config.exchange_rate),
        total_budget=_field(info, 'total_budget_vnd', 'totalBudgetVND'),
    )
    if info.get('id') is not None:
        trip_kwargs['id'] = str(info['id'])
    trip = Trip(**trip_kwargs)

    if converter is None and info.get('rates'):
        converter = CurrencyConverter(config.base_currency)
        converter.set_rates(info['rates'])

    for member in data.get('members', []):
        if member.get('id') is None:
            raise LedgerValidationError(f"Trip member has no id: {member!r}")
        trip.add_participant(
            _field(member, 'name', 'full_name', default='Unknown'),
            participant_id=str(member['id'])
        )

    for record in data.get('expenses', []):
        expense = expense_from_record(record, config, trip.exchange_rate, converter)
        if expense is not None:
            trip.add_expense(expense)

    log.info(
        f"Loaded trip {trip.name!r}: {len(trip.participants)} members, "
        f"{len(trip.expenses)} expenses"
    )
    return trip


def load_ledger(
    path: Union[str, Path],
    config: Optional[SettleConfig] = None,
    converter: Optional[CurrencyConverter] = None
) -> Trip:
    """Read a JSON ledger document from disk."""
    path = Path(path)
    try:
        with path.open(encoding='utf-8') as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise LedgerValidationError(f"{path} is not valid JSON", e) from e
    return trip_from_dict(data, config, converter)
