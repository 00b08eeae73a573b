import asyncio
import sys
import unittest
from datetime import date
from decimal import Decimal
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[2]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from equipment_booking.client.errors import TransientError
from equipment_booking.services.quote_service import AVAILABILITY, COST, QuoteInputs, QuoteSynchronizer


class ScriptedRentals:
    """Rental API stand-in whose answers are released by the test, in any order."""

    def __init__(self):
        self.availability_calls = []
        self.cost_calls = []

    async def get_available_quantity_for_period(self, equipment_id, start_date, end_date):
        future = asyncio.get_running_loop().create_future()
        self.availability_calls.append(((equipment_id, start_date, end_date), future))
        return await future

    async def calculate_cost(self, equipment_id, start_date, end_date, quantity):
        future = asyncio.get_running_loop().create_future()
        self.cost_calls.append(((equipment_id, start_date, end_date, quantity), future))
        return await future


async def _let_tasks_run():
    for _ in range(3):
        await asyncio.sleep(0)


class QuoteSynchronizerTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.rentals = ScriptedRentals()
        self.published = []
        self.quotes = QuoteSynchronizer(self.rentals, on_change=self.published.append)

    async def asyncTearDown(self):
        for _, future in self.rentals.availability_calls + self.rentals.cost_calls:
            if not future.done():
                future.cancel()
        await asyncio.gather(*list(self.quotes._tasks), return_exceptions=True)

    async def test_late_answer_for_superseded_period_is_discarded(self):
        self.quotes.update(7, "2024-06-01", "2024-06-03", 1)
        self.quotes.update(7, "2024-06-05", "2024-06-07", "2")
        await _let_tasks_run()
        self.assertEqual(len(self.rentals.availability_calls), 2)

        (first_args, first_availability), (second_args, second_availability) = self.rentals.availability_calls
        self.assertEqual(first_args, (7, date(2024, 6, 1), date(2024, 6, 3)))
        self.assertEqual(second_args, (7, date(2024, 6, 5), date(2024, 6, 7)))

        second_availability.set_result(2)
        await _let_tasks_run()
        first_availability.set_result(5)
        await _let_tasks_run()

        snapshot = self.quotes.snapshot
        self.assertEqual(snapshot.available_quantity, 2)
        self.assertEqual(snapshot.inputs.quantity, 2)
        self.assertEqual(snapshot.generation, 2)
        self.assertNotIn(5, [published.available_quantity for published in self.published])

    async def test_early_answer_for_superseded_period_is_never_shown(self):
        self.quotes.update(7, "2024-06-01", "2024-06-03", 1)
        await _let_tasks_run()
        self.quotes.update(7, "2024-06-01", "2024-06-04", 1)
        await _let_tasks_run()

        self.rentals.availability_calls[0][1].set_result(9)
        self.rentals.cost_calls[0][1].set_result(Decimal("150.00"))
        await _let_tasks_run()
        self.assertIsNone(self.quotes.snapshot.available_quantity)
        self.assertIsNone(self.quotes.snapshot.estimated_cost)
        self.assertEqual(self.quotes.snapshot.pending, frozenset({AVAILABILITY, COST}))

        self.rentals.availability_calls[1][1].set_result(4)
        self.rentals.cost_calls[1][1].set_result(Decimal("200.00"))
        snapshot = await self.quotes.settle()
        self.assertEqual(snapshot.available_quantity, 4)
        self.assertEqual(snapshot.estimated_cost, Decimal("200.00"))
        self.assertTrue(snapshot.is_settled)

    async def test_slots_fill_independently_and_failures_stay_isolated(self):
        self.quotes.update(3, "2024-07-01", "2024-07-02", 1)
        await _let_tasks_run()

        self.rentals.cost_calls[0][1].set_result(Decimal("60"))
        await _let_tasks_run()
        self.assertEqual(self.quotes.snapshot.estimated_cost, Decimal("60"))
        self.assertEqual(self.quotes.snapshot.pending, frozenset({AVAILABILITY}))

        self.rentals.availability_calls[0][1].set_exception(TransientError("Backend unreachable", 503))
        snapshot = await self.quotes.settle()
        self.assertIsNone(snapshot.available_quantity)
        self.assertEqual(snapshot.availability_error, "Backend unreachable")
        self.assertEqual(snapshot.estimated_cost, Decimal("60"))
        self.assertIsNone(snapshot.cost_error)
        self.assertFalse(self.quotes.is_bookable())

    async def test_booking_is_closed_until_availability_is_known_and_sufficient(self):
        self.quotes.update(3, "2024-07-01", "2024-07-02", 2)
        await _let_tasks_run()
        self.assertFalse(self.quotes.is_bookable())

        self.rentals.cost_calls[0][1].set_result(Decimal("80"))
        await _let_tasks_run()
        self.assertFalse(self.quotes.is_bookable())

        self.rentals.availability_calls[0][1].set_result(1)
        await self.quotes.settle()
        self.assertFalse(self.quotes.is_bookable())

        self.quotes.update(3, "2024-07-01", "2024-07-02", 1)
        await _let_tasks_run()
        self.assertFalse(self.quotes.is_bookable())
        self.rentals.availability_calls[1][1].set_result(1)
        self.rentals.cost_calls[1][1].set_result(Decimal("40"))
        await self.quotes.settle()
        self.assertTrue(self.quotes.is_bookable())
        self.assertTrue(self.quotes.is_bookable(QuoteInputs.from_raw(3, "2024-07-01", "2024-07-02", "1")))
        self.assertFalse(self.quotes.is_bookable(QuoteInputs.from_raw(3, "2024-07-01", "2024-07-03", 1)))

    async def test_incomplete_or_inverted_inputs_clear_the_quote_without_calls(self):
        self.quotes.update(3, "2024-07-05", "2024-07-01", 1)
        self.quotes.update(3, "2024-07-01", "", 1)
        self.quotes.update(3, "2024-07-01", "2024-07-02", "0")
        await _let_tasks_run()

        self.assertEqual(self.rentals.availability_calls, [])
        self.assertEqual(self.rentals.cost_calls, [])
        snapshot = self.quotes.snapshot
        self.assertEqual(snapshot.generation, 3)
        self.assertIsNone(snapshot.available_quantity)
        self.assertTrue(snapshot.is_settled)

    async def test_clear_discards_in_flight_answers(self):
        self.quotes.update(3, "2024-07-01", "2024-07-02", 1)
        await _let_tasks_run()
        self.quotes.clear()

        self.rentals.availability_calls[0][1].set_result(5)
        self.rentals.cost_calls[0][1].set_result(Decimal("40"))
        snapshot = await self.quotes.settle()
        self.assertEqual(snapshot.inputs, QuoteInputs())
        self.assertIsNone(snapshot.available_quantity)
        self.assertIsNone(snapshot.estimated_cost)

    async def test_unchanged_inputs_do_not_requery_but_requote_does(self):
        self.quotes.update(3, "2024-07-01", "2024-07-02", 1)
        self.quotes.update(3, date(2024, 7, 1), date(2024, 7, 2), "1")
        await _let_tasks_run()
        self.assertEqual(len(self.rentals.availability_calls), 1)

        self.quotes.requote()
        await _let_tasks_run()
        self.assertEqual(len(self.rentals.availability_calls), 2)
        self.assertEqual(len(self.rentals.cost_calls), 2)


if __name__ == "__main__":
    unittest.main()
