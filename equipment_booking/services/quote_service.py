"""Live availability and cost quotes for the booking form.

Every change to the quote inputs bumps a generation counter. Each backend
query remembers the generation it was issued under and its result is only
applied while that generation is still current, so a slow answer for an old
period can never overwrite the answer for the period now on screen. The
availability and cost queries are independent: each fills its own slot as
soon as it returns, and a failure in one leaves the other untouched.

A slot that has not been answered for the current inputs is ``None``
(unknown). Nothing is retried automatically; ``requote()`` re-issues both
queries on demand.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from collections.abc import Callable, Coroutine
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any

from equipment_booking.client.errors import BackendError
from equipment_booking.client.resources import RentalAPI
from equipment_booking.services.form_fields import coerce_date, coerce_int

QUOTE_LOGGER = logging.getLogger("equipment_booking.quotes")

AVAILABILITY = "availability"
COST = "cost"


@dataclass(frozen=True)
class QuoteInputs:
    equipment_id: int | None = None
    start_date: date | None = None
    end_date: date | None = None
    quantity: int | None = None

    @classmethod
    def from_raw(cls, equipment_id: Any, start_date: Any, end_date: Any, quantity: Any) -> "QuoteInputs":
        return cls(
            equipment_id=coerce_int(equipment_id),
            start_date=coerce_date(start_date),
            end_date=coerce_date(end_date),
            quantity=coerce_int(quantity),
        )

    @property
    def is_quotable(self) -> bool:
        if self.equipment_id is None or self.start_date is None or self.end_date is None:
            return False
        if self.end_date < self.start_date:
            return False
        return self.quantity is not None and self.quantity >= 1


@dataclass(frozen=True)
class QuoteSnapshot:
    inputs: QuoteInputs
    generation: int
    available_quantity: int | None = None
    estimated_cost: Decimal | None = None
    availability_error: str | None = None
    cost_error: str | None = None
    pending: frozenset[str] = field(default_factory=frozenset)

    @property
    def is_settled(self) -> bool:
        return not self.pending

    @property
    def availability_known(self) -> bool:
        return self.available_quantity is not None


class QuoteSynchronizer:
    def __init__(
        self,
        rentals: RentalAPI,
        on_change: Callable[[QuoteSnapshot], None] | None = None,
    ):
        self._rentals = rentals
        self._on_change = on_change
        self._generation = 0
        self._snapshot = QuoteSnapshot(inputs=QuoteInputs(), generation=0)
        self._tasks: set[asyncio.Task] = set()

    @property
    def snapshot(self) -> QuoteSnapshot:
        return self._snapshot

    @property
    def generation(self) -> int:
        return self._generation

    def update(self, equipment_id: Any, start_date: Any, end_date: Any, quantity: Any) -> QuoteSnapshot:
        """Feed the current form values; must be called from inside the event loop."""
        inputs = QuoteInputs.from_raw(equipment_id, start_date, end_date, quantity)
        if inputs == self._snapshot.inputs:
            return self._snapshot
        return self._issue(inputs)

    def requote(self) -> QuoteSnapshot:
        return self._issue(self._snapshot.inputs)

    def clear(self) -> QuoteSnapshot:
        return self._issue(QuoteInputs())

    def is_bookable(self, inputs: QuoteInputs | None = None) -> bool:
        snapshot = self._snapshot
        if inputs is not None and inputs != snapshot.inputs:
            return False
        if not snapshot.inputs.is_quotable or snapshot.available_quantity is None:
            return False
        return snapshot.available_quantity >= (snapshot.inputs.quantity or 0)

    async def settle(self) -> QuoteSnapshot:
        """Wait until every query issued so far has finished (applied or discarded)."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))
        return self._snapshot

    def _issue(self, inputs: QuoteInputs) -> QuoteSnapshot:
        self._generation += 1
        generation = self._generation
        if not inputs.is_quotable:
            self._publish(QuoteSnapshot(inputs=inputs, generation=generation))
            return self._snapshot

        loop = asyncio.get_running_loop()
        self._publish(QuoteSnapshot(inputs=inputs, generation=generation, pending=frozenset({AVAILABILITY, COST})))
        QUOTE_LOGGER.debug(
            "Quote issued generation=%s equipment=%s period=%s..%s quantity=%s",
            generation,
            inputs.equipment_id,
            inputs.start_date,
            inputs.end_date,
            inputs.quantity,
        )
        self._spawn(loop, self._query_availability(inputs, generation))
        self._spawn(loop, self._query_cost(inputs, generation))
        return self._snapshot

    def _spawn(self, loop: asyncio.AbstractEventLoop, coro: Coroutine[Any, Any, None]) -> None:
        task = loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _query_availability(self, inputs: QuoteInputs, generation: int) -> None:
        try:
            available = await self._rentals.get_available_quantity_for_period(
                inputs.equipment_id, inputs.start_date, inputs.end_date
            )
        except BackendError as exc:
            self._fail(generation, AVAILABILITY, inputs, exc, availability_error=str(exc))
            return
        self._apply(generation, AVAILABILITY, available_quantity=available)

    async def _query_cost(self, inputs: QuoteInputs, generation: int) -> None:
        try:
            cost = await self._rentals.calculate_cost(
                inputs.equipment_id, inputs.start_date, inputs.end_date, inputs.quantity
            )
        except BackendError as exc:
            self._fail(generation, COST, inputs, exc, cost_error=str(exc))
            return
        self._apply(generation, COST, estimated_cost=cost)

    def _fail(self, generation: int, slot: str, inputs: QuoteInputs, exc: BackendError, **changes: Any) -> None:
        if generation == self._generation:
            QUOTE_LOGGER.warning(
                "Quote %s failed generation=%s equipment=%s period=%s..%s error=%s",
                slot,
                generation,
                inputs.equipment_id,
                inputs.start_date,
                inputs.end_date,
                exc,
            )
        self._apply(generation, slot, **changes)

    def _apply(self, generation: int, slot: str, **changes: Any) -> bool:
        if generation != self._generation:
            QUOTE_LOGGER.debug("Stale %s result discarded generation=%s current=%s", slot, generation, self._generation)
            return False
        pending = self._snapshot.pending - {slot}
        self._publish(dataclasses.replace(self._snapshot, pending=pending, **changes))
        return True

    def _publish(self, snapshot: QuoteSnapshot) -> None:
        self._snapshot = snapshot
        if self._on_change is not None:
            self._on_change(snapshot)
