"""
Group expense settlement for shared trips.
"""
from .balances import BalanceCalculator, accumulate_balances
from .config import SETTLEMENT_EPSILON, SettleConfig, get_config
from .exceptions import (
    ConfigurationError,
    ExchangeRateError,
    LedgerValidationError,
    TripSettleError,
)
from .models import (
    AnyExpense,
    Category,
    ExpenseKind,
    Participant,
    PersonalExpense,
    SettlementExpense,
    SharedExpense,
    Transfer,
    Trip,
)
from .settlement import (
    SettlementOptimizer,
    apply_transfers,
    calculate_debts,
    compute_transfers,
    is_settled,
    max_transfer_count,
)

__version__ = "0.1.0"
