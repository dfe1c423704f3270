"""
Tests for balance accumulation and settlement.
"""
import random
import unittest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from trip_settle.balances import BalanceCalculator, accumulate_balances
from trip_settle.exceptions import LedgerValidationError
from trip_settle.models import (
    Participant,
    PersonalExpense,
    SettlementExpense,
    SharedExpense,
    Transfer,
    Trip,
)
from trip_settle.settlement import (
    SettlementOptimizer,
    apply_transfers,
    calculate_debts,
    compute_transfers,
    is_settled,
    max_transfer_count,
)


def roster(*ids):
    return [Participant(name=pid, id=pid) for pid in ids]


def as_set(transfers):
    return {(t.from_id, t.to_id, round(t.amount, 6)) for t in transfers}


class TestScenarios(unittest.TestCase):
    """End-to-end settlement of small trips."""

    def test_even_two_way_split(self):
        users = roster("X", "Y")
        expenses = [SharedExpense("X", 100.0)]

        balances = accumulate_balances(users, expenses)
        self.assertEqual(balances, {"X": 50.0, "Y": -50.0})

        transfers = calculate_debts(users, expenses)
        self.assertEqual(transfers, [Transfer(from_id="Y", to_id="X", amount=50.0)])

    def test_three_way_split(self):
        users = roster("A", "B", "C")
        expenses = [SharedExpense("A", 90.0)]

        balances = accumulate_balances(users, expenses)
        self.assertAlmostEqual(balances["A"], 60.0)
        self.assertAlmostEqual(balances["B"], -30.0)
        self.assertAlmostEqual(balances["C"], -30.0)

        transfers = calculate_debts(users, expenses)
        self.assertEqual(as_set(transfers), {("B", "A", 30.0), ("C", "A", 30.0)})

    def test_settlement_cancels_debt(self):
        users = roster("A", "B")
        expenses = [
            SharedExpense("A", 100.0),
            SettlementExpense("B", 50.0, "A"),
        ]

        balances = accumulate_balances(users, expenses)
        self.assertEqual(balances, {"A": 0.0, "B": 0.0})
        self.assertEqual(calculate_debts(users, expenses), [])

    def test_personal_expense_ignored(self):
        users = roster("A", "B")
        expenses = [PersonalExpense("A", 1000.0)]

        self.assertEqual(accumulate_balances(users, expenses), {"A": 0.0, "B": 0.0})
        self.assertEqual(calculate_debts(users, expenses), [])

    def test_split_subset_excludes_payer(self):
        users = roster("A", "B", "C")
        expenses = [SharedExpense("A", 60.0, ("B", "C"))]

        balances = accumulate_balances(users, expenses)
        self.assertEqual(balances, {"A": 60.0, "B": -30.0, "C": -30.0})

        transfers = calculate_debts(users, expenses)
        self.assertEqual(as_set(transfers), {("B", "A", 30.0), ("C", "A", 30.0)})


class TestBalanceAccumulation(unittest.TestCase):
    """Tests for net balance bookkeeping."""

    def test_no_expenses_gives_zero_for_everyone(self):
        balances = accumulate_balances(roster("A", "B", "C"), [])
        self.assertEqual(balances, {"A": 0.0, "B": 0.0, "C": 0.0})

    def test_balances_follow_roster_order(self):
        users = roster("C", "A", "B")
        balances = accumulate_balances(users, [SharedExpense("A", 30.0)])
        self.assertEqual(list(balances), ["C", "A", "B"])

    def test_payer_in_split_group(self):
        users = roster("A", "B", "C")
        balances = accumulate_balances(users, [SharedExpense("A", 90.0, ("A", "B"))])
        self.assertAlmostEqual(balances["A"], 45.0)
        self.assertAlmostEqual(balances["B"], -45.0)
        self.assertAlmostEqual(balances["C"], 0.0)

    def test_unknown_split_member_is_ignored(self):
        users = roster("A", "B")
        balances = accumulate_balances(users, [SharedExpense("A", 100.0, ("B", "ghost"))])
        self.assertEqual(balances, {"A": 100.0, "B": -100.0})

    def test_split_with_only_unknown_members_is_skipped(self):
        users = roster("A", "B")
        balances = accumulate_balances(users, [SharedExpense("A", 100.0, ("ghost",))])
        self.assertEqual(balances, {"A": 0.0, "B": 0.0})

    def test_unknown_payer_is_skipped(self):
        users = roster("A", "B")
        balances = accumulate_balances(users, [SharedExpense("ghost", 100.0)])
        self.assertEqual(balances, {"A": 0.0, "B": 0.0})

    def test_unknown_settlement_receiver_is_skipped(self):
        users = roster("A", "B")
        balances = accumulate_balances(users, [SettlementExpense("A", 40.0, "ghost")])
        self.assertEqual(balances, {"A": 0.0, "B": 0.0})

    def test_empty_roster(self):
        self.assertEqual(accumulate_balances([], [SharedExpense("A", 10.0)]), {})
        self.assertEqual(calculate_debts([], [SharedExpense("A", 10.0)]), [])

    def test_negative_amount_rejected(self):
        with self.assertRaises(LedgerValidationError):
            SharedExpense("A", -5.0)

    def test_balances_sum_to_zero(self):
        rng = random.Random(7)
        ids = ["p%d" % n for n in range(6)]
        users = roster(*ids)

        expenses = []
        for _ in range(200):
            payer = rng.choice(ids)
            amount = round(rng.uniform(1, 2_000_000), 2)
            kind = rng.random()
            if kind < 0.5:
                split = tuple(rng.sample(ids, rng.randint(0, len(ids))))
                expenses.append(SharedExpense(payer, amount, split))
            elif kind < 0.8:
                expenses.append(SettlementExpense(payer, amount, rng.choice(ids)))
            else:
                expenses.append(PersonalExpense(payer, amount))

        balances = accumulate_balances(users, expenses)
        self.assertAlmostEqual(sum(balances.values()), 0.0, delta=1e-4)

    def test_personal_expenses_change_nothing(self):
        users = roster("A", "B", "C")
        expenses = [
            SharedExpense("A", 300_000.0),
            SharedExpense("B", 120_000.0, ("A", "B")),
            SettlementExpense("C", 50_000.0, "A"),
        ]
        with_personal = list(expenses)
        with_personal.insert(1, PersonalExpense("B", 999_999.0))
        with_personal.append(PersonalExpense("C", 10.0))

        self.assertEqual(
            accumulate_balances(users, expenses),
            accumulate_balances(users, with_personal)
        )
        self.assertEqual(calculate_debts(users, expenses), calculate_debts(users, with_personal))


class TestComputeTransfers(unittest.TestCase):
    """Tests for the greedy transfer matching."""

    def test_empty_balances(self):
        self.assertEqual(compute_transfers({}), [])

    def test_already_balanced(self):
        self.assertEqual(compute_transfers({"A": 0.0, "B": 0.4, "C": -0.4}), [])

    def test_largest_debtor_pays_largest_creditor_first(self):
        balances = {"A": -10.0, "B": -70.0, "C": 50.0, "D": 30.0}
        transfers = compute_transfers(balances)
        self.assertEqual(transfers, [
            Transfer("B", "C", 50.0),
            Transfer("B", "D", 20.0),
            Transfer("A", "D", 10.0),
        ])

    def test_single_creditor_many_debtors(self):
        balances = {"A": 90.0, "B": -30.0, "C": -20.0, "D": -40.0}
        transfers = compute_transfers(balances)
        self.assertEqual([t.from_id for t in transfers], ["D", "B", "C"])
        self.assertTrue(all(t.to_id == "A" for t in transfers))

    def test_custom_epsilon(self):
        balances = {"A": 50.0, "B": -50.0}
        self.assertEqual(compute_transfers(balances, epsilon=100.0), [])
        self.assertEqual(compute_transfers(balances, epsilon=0.0), [Transfer("B", "A", 50.0)])

    def test_remainder_of_exactly_epsilon_carries_over(self):
        # p1 is left owing exactly 1 after paying p3; that unit is absorbed by
        # p0 without a transfer, and p5 later pays p4 in one go.
        balances = {"p0": 12.0, "p1": -14.0, "p2": -10.0, "p3": 13.0, "p4": 5.0, "p5": -6.0}
        self.assertEqual(compute_transfers(balances), [
            Transfer("p1", "p3", 13.0),
            Transfer("p2", "p0", 10.0),
            Transfer("p5", "p4", 5.0),
        ])

    def test_creditor_remainder_of_exactly_epsilon(self):
        balances = {"A": 5.0, "B": -4.0, "C": -3.0, "D": 2.0}
        self.assertEqual(compute_transfers(balances), [
            Transfer("B", "A", 4.0),
            Transfer("C", "D", 2.0),
        ])

    def test_balances_of_exactly_epsilon_are_settled(self):
        self.assertEqual(compute_transfers({"A": 1.0, "B": -1.0}), [])
        self.assertEqual(compute_transfers({"A": 3.0, "B": -1.0, "C": -2.0}), [Transfer("C", "A", 2.0)])

    def test_zero_epsilon_terminates(self):
        balances = {"A": 3.0, "B": -1.0, "C": -2.0}
        self.assertEqual(compute_transfers(balances, epsilon=0.0), [
            Transfer("C", "A", 2.0),
            Transfer("B", "A", 1.0),
        ])

    def test_does_not_mutate_input(self):
        balances = {"A": 50.0, "B": -50.0}
        compute_transfers(balances)
        self.assertEqual(balances, {"A": 50.0, "B": -50.0})

    def test_properties_hold_for_random_ledgers(self):
        rng = random.Random(42)
        for _ in range(50):
            n = rng.randint(2, 8)
            users = roster(*["u%d" % k for k in range(n)])
            ids = [u.id for u in users]
            expenses = [
                SharedExpense(
                    rng.choice(ids),
                    float(rng.randint(1_000, 5_000_000)),
                    tuple(rng.sample(ids, rng.randint(0, n)))
                )
                for _ in range(rng.randint(1, 15))
            ]

            balances = accumulate_balances(users, expenses)
            transfers = compute_transfers(balances)

            remaining = apply_transfers(balances, transfers)
            self.assertTrue(is_settled(remaining, epsilon=n))

            bound = max_transfer_count(balances)
            if bound:
                self.assertLessEqual(len(transfers), bound)

            for t in transfers:
                self.assertGreater(t.amount, 0)
                self.assertLess(balances[t.from_id], 0)
                self.assertGreater(balances[t.to_id], 0)

    def test_no_transfer_exceeds_remaining_balances(self):
        balances = {"A": -35.0, "B": -65.0, "C": 80.0, "D": 20.0}
        remaining = dict(balances)
        for t in compute_transfers(balances):
            self.assertLessEqual(t.amount, min(-remaining[t.from_id], remaining[t.to_id]) + 1e-9)
            remaining[t.from_id] += t.amount
            remaining[t.to_id] -= t.amount


class TestHelpers(unittest.TestCase):

    def test_apply_transfers(self):
        remaining = apply_transfers({"A": 50.0, "B": -50.0}, [Transfer("B", "A", 50.0)])
        self.assertEqual(remaining, {"A": 0.0, "B": 0.0})

    def test_max_transfer_count(self):
        self.assertEqual(max_transfer_count({"A": 10.0, "B": -5.0, "C": -5.0}), 2)
        self.assertEqual(max_transfer_count({"A": 0.5, "B": -0.5}), 0)
        self.assertEqual(max_transfer_count({}), 0)

    def test_is_settled(self):
        self.assertTrue(is_settled({}))
        self.assertTrue(is_settled({"A": 0.9, "B": -0.9}))
        self.assertFalse(is_settled({"A": 2.0, "B": -2.0}))


class TestSettlementOptimizer(unittest.TestCase):
    """Tests for trip-level settlement output."""

    def setUp(self):
        self.trip = Trip(name="Test Trip")
        self.p1 = self.trip.add_participant("An")
        self.p2 = self.trip.add_participant("Binh")
        self.p3 = self.trip.add_participant("Chi")
        self.optimizer = SettlementOptimizer(self.trip, epsilon=1.0)

    def test_no_settlements_needed(self):
        self.assertEqual(self.optimizer.calculate_optimal_settlements(), [])
        self.assertEqual(self.optimizer.get_settlement_summary(), "All settled! No payments needed.")

    def test_simple_settlement(self):
        self.trip.add_expense(SharedExpense(self.p1.id, 60_000.0, description="Dinner"))

        settlements = self.optimizer.calculate_optimal_settlements()
        self.assertEqual(len(settlements), 2)

        total_to_an = sum(s.amount for s in settlements if s.to_id == self.p1.id)
        self.assertAlmostEqual(total_to_an, 40_000.0)

    def test_settlements_dataframe_uses_names(self):
        self.trip.add_expense(SharedExpense(self.p1.id, 90.0))

        df = self.optimizer.get_settlements_dataframe()
        self.assertEqual(list(df.columns), ['from', 'to', 'amount', 'currency'])
        self.assertEqual(set(df['from']), {"Binh", "Chi"})
        self.assertEqual(set(df['to']), {"An"})
        self.assertEqual(list(df['currency'].unique()), ["VND"])

    def test_empty_settlements_dataframe(self):
        df = self.optimizer.get_settlements_dataframe()
        self.assertTrue(df.empty)
        self.assertIn('amount', df.columns)

    def test_summary_lists_payments(self):
        self.trip.add_expense(SharedExpense(self.p2.id, 100_000.0, (self.p1.id, self.p2.id)))

        summary = self.optimizer.get_settlement_summary()
        self.assertIn("An pays Binh: 50,000 VND", summary)
        self.assertIn("Total transactions: 1", summary)


class TestBalanceCalculator(unittest.TestCase):

    def setUp(self):
        self.trip = Trip(name="Test Trip")
        self.p1 = self.trip.add_participant("An")
        self.p2 = self.trip.add_participant("Binh")
        self.calculator = BalanceCalculator(self.trip)

    def test_balances_dataframe(self):
        self.trip.add_expense(SharedExpense(self.p1.id, 100.0))
        self.trip.add_expense(PersonalExpense(self.p2.id, 40.0))

        df = self.calculator.get_balances()
        self.assertEqual(df[df['name'] == 'An']['balance'].values[0], 50.0)
        self.assertEqual(df[df['name'] == 'Binh']['balance'].values[0], -50.0)

    def test_expense_summary(self):
        self.trip.add_expense(SharedExpense(self.p1.id, 50.0, description="Lunch"))
        self.trip.add_expense(SettlementExpense(self.p2.id, 25.0, self.p1.id, description="Payback"))

        summary = self.calculator.get_expense_summary()
        self.assertEqual(len(summary), 2)
        self.assertEqual(list(summary['kind']), ["SHARED", "SETTLEMENT"])
        self.assertEqual(list(summary['paid_by']), ["An", "Binh"])

    def test_empty_expense_summary(self):
        self.assertTrue(self.calculator.get_expense_summary().empty)


if __name__ == '__main__':
    unittest.main()
