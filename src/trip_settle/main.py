"""
Trip Settle - CLI Interface

Tracks shared trip expenses and works out who pays whom.
"""
import argparse
import re
from typing import Optional

from .balances import BalanceCalculator
from .config import get_config
from .currency import CurrencyConverter, normalize_amount, run_async
from .exceptions import TripSettleError
from .export import export_expenses_csv
from .ledger import load_ledger
from .logging import setup_logging
from .models import (
    Category,
    Participant,
    PersonalExpense,
    SettlementExpense,
    SharedExpense,
    Trip,
)
from .settlement import SettlementOptimizer


class TripSettleApp:
    """Main application class for Trip Settle."""

    def __init__(self):
        self.config = get_config()
        self.trip: Optional[Trip] = None
        self.calculator: Optional[BalanceCalculator] = None
        self.optimizer: Optional[SettlementOptimizer] = None
        self.converter = CurrencyConverter(self.config.base_currency)

    def create_trip(self, name: str) -> None:
        """Start a new trip."""
        self.use_trip(Trip(
            name=name,
            base_currency=self.config.base_currency,
            exchange_rate=self.config.exchange_rate
        ))
        print(f"Created trip: {name}")

    def use_trip(self, trip: Trip) -> None:
        self.trip = trip
        self.calculator = BalanceCalculator(trip)
        self.optimizer = SettlementOptimizer(trip, self.config.epsilon)

    def open_ledger(self, path: str) -> None:
        """Load a trip from a JSON ledger file."""
        self.use_trip(load_ledger(path, self.config))
        print(f"Loaded trip: {self.trip.name}")

    def add_participant(self, name: str) -> None:
        """Add a participant to the trip."""
        if not self.trip:
            print("Error: Create a trip first!")
            return
        p = self.trip.add_participant(name)
        print(f"Added: {name} (ID: {p.id})")

    def _find(self, name: str) -> Optional[Participant]:
        p = self.trip.get_participant_by_name(name)
        if not p:
            print(f"Error: Participant '{name}' not found!")
        return p

    def _amount(self, amount: float, currency: Optional[str]) -> float:
        return normalize_amount(
            amount,
            currency or self.trip.base_currency,
            self.trip.base_currency,
            self.trip.exchange_rate,
            self.config.secondary_currency,
            self.converter
        )

    def add_shared(
        self,
        description: str,
        amount: float,
        payer_name: str,
        split_names: Optional[list[str]] = None,
        currency: Optional[str] = None
    ) -> None:
        """Add an expense shared by everyone, or by the named participants."""
        if not self.trip:
            print("Error: Create a trip first!")
            return

        payer = self._find(payer_name)
        if not payer:
            return

        split_to = []
        for name in split_names or []:
            p = self._find(name)
            if not p:
                return
            split_to.append(p.id)

        try:
            self.trip.add_expense(SharedExpense(
                payer.id,
                self._amount(amount, currency),
                tuple(split_to),
                description=description,
                currency=(currency or self.trip.base_currency).upper(),
                original_amount=amount
            ))
        except TripSettleError as e:
            print(f"Error: {e}")
            return
        print(f"Added shared expense: {description} ({amount:,.2f} {currency or self.trip.base_currency})")

    def add_personal(self, description: str, amount: float, payer_name: str) -> None:
        """Record spending that only concerns the payer."""
        if not self.trip:
            print("Error: Create a trip first!")
            return

        payer = self._find(payer_name)
        if not payer:
            return

        try:
            self.trip.add_expense(PersonalExpense(
                payer.id, amount, description=description, category=Category.MISC
            ))
        except TripSettleError as e:
            print(f"Error: {e}")
            return
        print(f"Added personal expense: {description} ({amount:,.2f} {self.trip.base_currency})")

    def record_payment(self, payer_name: str, receiver_name: str, amount: float) -> None:
        """Record a payment already made between two participants."""
        if not self.trip:
            print("Error: Create a trip first!")
            return

        payer = self._find(payer_name)
        receiver = self._find(receiver_name)
        if not payer or not receiver:
            return

        try:
            self.trip.add_expense(SettlementExpense(
                payer.id, amount, receiver.id,
                description=f"{payer.name} paid {receiver.name}"
            ))
        except TripSettleError as e:
            print(f"Error: {e}")
            return
        print(f"Recorded payment: {payer.name} -> {receiver.name} ({amount:,.2f} {self.trip.base_currency})")

    def show_balances(self) -> None:
        """Display current balances for all participants."""
        if not self.calculator:
            print("Error: Create a trip first!")
            return

        print("\n--- Balances ---")
        df = self.calculator.get_balances()
        if df.empty:
            print("No data")
            return

        for _, row in df.iterrows():
            balance = row['balance']
            if abs(balance) < self.config.epsilon:
                print(f"  {row['name']}: is settled")
                continue
            status = "owes" if balance < 0 else "is owed"
            print(f"  {row['name']}: {status} {abs(balance):,.2f}")
        print()

    def show_expenses(self) -> None:
        """Display all expenses."""
        if not self.calculator:
            print("Error: Create a trip first!")
            return

        print("\n--- Expenses ---")
        df = self.calculator.get_expense_summary()
        if df.empty:
            print("No expenses recorded")
            return

        for _, row in df.iterrows():
            print(f"  [{row['kind']}] {row['description']}: "
                  f"{row['amount']:,.2f} (paid by {row['paid_by']})")
        print()

    def show_settlements(self) -> None:
        """Display the payments that settle the trip."""
        if not self.optimizer:
            print("Error: Create a trip first!")
            return

        print(self.optimizer.get_settlement_summary())

    def show_exchange_rates(self) -> None:
        """Display exchange rates for the base currency."""
        try:
            run_async(self.converter.get_rates())
        except TripSettleError as e:
            print(f"Error: {e}")
            return

        print(f"\n--- Exchange Rates (1 {self.converter.base_currency}) ---")
        df = self.converter.get_rates_dataframe()
        for _, row in df.iterrows():
            print(f"  {row['currency']}: {row['rate']}")
        print()

    def export(self, path: Optional[str] = None) -> None:
        if not self.trip:
            print("Error: Create a trip first!")
            return
        written = export_expenses_csv(self.trip, path)
        print(f"Exported expenses to {written}")


def parse_money(token: str) -> tuple[float, Optional[str]]:
    """Split an amount such as `12.5` or `12.5USD` into amount and currency."""
    match = re.fullmatch(r"([0-9]+(?:\.[0-9]+)?)([A-Za-z]{3})?", token)
    if not match:
        raise ValueError(f"Invalid amount {token!r}")
    currency = match.group(2)
    return float(match.group(1)), currency.upper() if currency else None


def interactive_mode(app: Optional[TripSettleApp] = None):
    """Run the application in interactive mode."""
    app = app or TripSettleApp()

    print("=" * 50)
    print("  Trip Settle - Interactive Mode")
    print("=" * 50)
    print("\nCommands:")
    print("  trip <name>                       - Create new trip")
    print("  add <name>                        - Add participant")
    print("  shared <desc> <amt>[CUR] <payer> [who..] - Add shared expense")
    print("  personal <desc> <amt> <payer>     - Add personal expense")
    print("  pay <from> <to> <amt>             - Record a payment")
    print("  balances                          - Show balances")
    print("  expenses                          - Show all expenses")
    print("  settle                            - Show settlements")
    print("  export [file]                     - Export expenses to CSV")
    print("  rates                             - Show exchange rates")
    print("  quit                              - Exit")
    print()

    while True:
        try:
            cmd = input("> ").strip().split()
            if not cmd:
                continue

            action = cmd[0].lower()

            if action == "quit" or action == "exit":
                print("Goodbye!")
                break
            elif action == "trip" and len(cmd) >= 2:
                app.create_trip(" ".join(cmd[1:]))
            elif action == "add" and len(cmd) >= 2:
                app.add_participant(" ".join(cmd[1:]))
            elif action == "shared" and len(cmd) >= 4:
                amount, currency = parse_money(cmd[2])
                app.add_shared(cmd[1], amount, cmd[3], cmd[4:], currency=currency)
            elif action == "personal" and len(cmd) == 4:
                app.add_personal(cmd[1], float(cmd[2]), cmd[3])
            elif action == "pay" and len(cmd) == 4:
                app.record_payment(cmd[1], cmd[2], float(cmd[3]))
            elif action == "balances":
                app.show_balances()
            elif action == "expenses":
                app.show_expenses()
            elif action == "settle":
                app.show_settlements()
            elif action == "export":
                app.export(cmd[1] if len(cmd) > 1 else None)
            elif action == "rates":
                app.show_exchange_rates()
            else:
                print("Unknown command. Type 'quit' to exit.")

        except KeyboardInterrupt:
            print("\nGoodbye!")
            break
        except (ValueError, OSError) as e:
            print(f"Error: {e}")


def demo():
    """Run a demonstration of the settlement engine."""
    print("=" * 50)
    print("  Trip Settle - Demo")
    print("=" * 50)

    app = TripSettleApp()

    app.create_trip("Bangkok 2025")

    app.add_participant("An")
    app.add_participant("Binh")
    app.add_participant("Chi")

    app.add_shared("Hotel", 3_000_000, "An")
    app.add_shared("Street food", 1500, "Binh", currency="THB")
    app.add_shared("Massage", 900_000, "Chi", ["Chi", "An"])
    app.add_personal("Souvenirs", 500_000, "An")
    app.record_payment("Binh", "An", 200_000)

    app.show_expenses()
    app.show_balances()
    app.show_settlements()


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Split trip expenses and settle debts.")
    parser.add_argument("--demo", action="store_true", help="run the demonstration")
    parser.add_argument("--ledger", help="load a trip from a JSON ledger file")
    parser.add_argument("--log-level", help="override LOG_LEVEL")
    args = parser.parse_args(argv)

    try:
        config = get_config()
    except TripSettleError as e:
        print(f"Error: {e}")
        return
    setup_logging(args.log_level or config.log_level, config.log_file)

    if args.demo:
        demo()
        return

    app = TripSettleApp()
    if args.ledger:
        try:
            app.open_ledger(args.ledger)
        except (TripSettleError, OSError) as e:
            print(f"Error: {e}")
            return
        app.show_balances()
        app.show_settlements()
        return

    interactive_mode(app)


if __name__ == "__main__":
    main()
