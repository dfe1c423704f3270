"""
Data models for trip expenses and settlements.
"""
from dataclasses import dataclass, field
import datetime
from enum import Enum
from typing import ClassVar, Optional, Union
import uuid

from .exceptions import LedgerValidationError


class ExpenseKind(Enum):
    """How an expense affects the group's balances."""
    SHARED = "SHARED"
    PERSONAL = "PERSONAL"
    SETTLEMENT = "SETTLEMENT"


class Category(Enum):
    """Spending categories used by the trip ledger."""
    FOOD = "Food"
    TRANSPORT = "Transport"
    HOTEL = "Hotel"
    FUN = "Fun"
    MISC = "Misc"
    SHOPPING = "Shopping"
    NIGHTLIFE = "Nightlife"
    MASSAGE = "Massage"
    TOURS = "Tours"


def _short_id() -> str:
    return str(uuid.uuid4())[:8]


@dataclass
class Participant:
    """A trip member. Only the id matters for settlement."""
    name: str
    id: str = field(default_factory=_short_id)

    def __hash__(self):
        return hash(self.id)

    def __eq__(self, other):
        if isinstance(other, Participant):
            return self.id == other.id
        return False


@dataclass
class Expense:
    """
    Base for the three expense variants.

    `amount` is already expressed in the trip's base currency. The keyword-only
    fields describe the original entry and are ignored by the settlement engine.
    """
    kind: ClassVar[ExpenseKind]

    payer_id: str
    amount: float
    description: str = field(default="", kw_only=True)
    category: Category = field(default=Category.MISC, kw_only=True)
    currency: Optional[str] = field(default=None, kw_only=True)
    original_amount: Optional[float] = field(default=None, kw_only=True)
    date: datetime.date = field(default_factory=datetime.date.today, kw_only=True)
    id: str = field(default_factory=_short_id, kw_only=True)

    def __post_init__(self):
        if self.amount < 0:
            raise LedgerValidationError(
                f"Expense amount must not be negative, got {self.amount}"
            )
        if self.original_amount is None:
            self.original_amount = self.amount


@dataclass
class SharedExpense(Expense):
    """Cost split evenly across `split_to`, or across everyone when empty."""
    kind: ClassVar[ExpenseKind] = ExpenseKind.SHARED

    split_to: tuple[str, ...] = ()

    def __post_init__(self):
        super().__post_init__()
        self.split_to = tuple(self.split_to)


@dataclass
class PersonalExpense(Expense):
    """Spending by one person for themselves; never owed by anyone else."""
    kind: ClassVar[ExpenseKind] = ExpenseKind.PERSONAL


@dataclass
class SettlementExpense(Expense):
    """A payment already made from `payer_id` to `receiver_id`."""
    kind: ClassVar[ExpenseKind] = ExpenseKind.SETTLEMENT

    receiver_id: str


AnyExpense = Union[SharedExpense, PersonalExpense, SettlementExpense]


@dataclass(frozen=True)
class Transfer:
    """A payment `from_id` should make to `to_id` to settle up."""
    from_id: str
    to_id: str
    amount: float


@dataclass
class Trip:
    """A group of people sharing expenses on a trip."""
    name: str
    participants: list[Participant] = field(default_factory=list)
    expenses: list[AnyExpense] = field(default_factory=list)
    base_currency: str = "VND"
    exchange_rate: Optional[float] = None
    total_budget: Optional[float] = None
    id: str = field(default_factory=_short_id)

    def add_participant(self, name: str, participant_id: Optional[str] = None) -> Participant:
        """Add a new participant to the trip."""
        if participant_id is None:
            participant = Participant(name=name)
        else:
            participant = Participant(name=name, id=participant_id)
        self.participants.append(participant)
        return participant

    def add_expense(self, expense: AnyExpense) -> AnyExpense:
        self.expenses.append(expense)
        return expense

    def get_participant_by_id(self, participant_id: str) -> Optional[Participant]:
        """Find a participant by their ID."""
        for p in self.participants:
            if p.id == participant_id:
                return p
        return None

    def get_participant_by_name(self, name: str) -> Optional[Participant]:
        """Find a participant by their name (case-insensitive)."""
        for p in self.participants:
            if p.name.lower() == name.lower():
                return p
        return None

    def participant_name(self, participant_id: str, default: Optional[str] = None) -> str:
        p = self.get_participant_by_id(participant_id)
        if p:
            return p.name
        return participant_id if default is None else default
