from __future__ import annotations

import asyncio
import logging
from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass, field
from decimal import Decimal

from equipment_booking.client.backend import BackendClient
from equipment_booking.client.errors import IllegalTransitionError, NotFoundError
from equipment_booking.schemas.catalog import EquipmentItem
from equipment_booking.schemas.customers import Customer
from equipment_booking.schemas.rentals import Rental, RentalStatus

LIFECYCLE_LOGGER = logging.getLogger("equipment_booking.lifecycle")

STATE_TRANSITIONS: dict[RentalStatus, frozenset[RentalStatus]] = {
    RentalStatus.PENDING: frozenset({RentalStatus.CONFIRMED, RentalStatus.CANCELLED}),
    RentalStatus.CONFIRMED: frozenset({RentalStatus.ACTIVE, RentalStatus.CANCELLED}),
    RentalStatus.ACTIVE: frozenset({RentalStatus.COMPLETED, RentalStatus.CANCELLED}),
    # OVERDUE is only ever entered by the backend.
    RentalStatus.OVERDUE: frozenset({RentalStatus.COMPLETED, RentalStatus.CANCELLED}),
    RentalStatus.COMPLETED: frozenset(),
    RentalStatus.CANCELLED: frozenset(),
}
TERMINAL_STATES = frozenset(status for status, targets in STATE_TRANSITIONS.items() if not targets)
OPERATOR_STATUSES = (
    RentalStatus.PENDING,
    RentalStatus.CONFIRMED,
    RentalStatus.ACTIVE,
    RentalStatus.COMPLETED,
    RentalStatus.CANCELLED,
)


def can_transition(current: RentalStatus | str, target: RentalStatus | str) -> bool:
    return RentalStatus(target) in STATE_TRANSITIONS[RentalStatus(current)]


def offered_statuses(current: RentalStatus | str) -> list[RentalStatus]:
    """Statuses the console offers as buttons; the backend still has the final say."""
    current = RentalStatus(current)
    if current in TERMINAL_STATES:
        return []
    return [status for status in OPERATOR_STATUSES if status != current]


@dataclass(frozen=True)
class DashboardStats:
    active: int = 0
    pending: int = 0
    overdue: int = 0
    revenue: Decimal = Decimal("0")
    by_status: dict[RentalStatus, int] = field(default_factory=dict)


def compute_dashboard_stats(rentals: Iterable[Rental]) -> DashboardStats:
    counts: Counter[RentalStatus] = Counter()
    revenue = Decimal("0")
    for rental in rentals:
        counts[rental.status] += 1
        if rental.status == RentalStatus.COMPLETED:
            revenue += rental.totalAmount
    return DashboardStats(
        active=counts[RentalStatus.ACTIVE],
        pending=counts[RentalStatus.PENDING],
        overdue=counts[RentalStatus.OVERDUE],
        revenue=revenue,
        by_status=dict(counts),
    )


@dataclass(frozen=True)
class DashboardSnapshot:
    rentals: tuple[Rental, ...] = ()
    equipment: tuple[EquipmentItem, ...] = ()
    customers: tuple[Customer, ...] = ()
    stats: DashboardStats = field(default_factory=DashboardStats)

    def find_rental(self, rental_id: int) -> Rental | None:
        for rental in self.rentals:
            if rental.id == rental_id:
                return rental
        return None


class RentalLifecycleController:
    """Operator console state: the latest full snapshot plus status changes.

    Aggregates are rebuilt from a fresh fetch after every accepted change;
    nothing is patched in place.
    """

    def __init__(self, backend: BackendClient):
        self._backend = backend
        self._snapshot = DashboardSnapshot()

    @property
    def snapshot(self) -> DashboardSnapshot:
        return self._snapshot

    async def refresh(self) -> DashboardSnapshot:
        rentals, equipment, customers = await asyncio.gather(
            self._backend.rentals.list(),
            self._backend.equipment.list(),
            self._backend.customers.list(),
        )
        self._snapshot = DashboardSnapshot(
            rentals=tuple(rentals),
            equipment=tuple(equipment),
            customers=tuple(customers),
            stats=compute_dashboard_stats(rentals),
        )
        LIFECYCLE_LOGGER.debug(
            "Dashboard refreshed rentals=%s equipment=%s customers=%s",
            len(rentals),
            len(equipment),
            len(customers),
        )
        return self._snapshot

    async def request_transition(self, rental_id: int, target: RentalStatus | str) -> Rental:
        target = RentalStatus(target)
        rental = self._snapshot.find_rental(rental_id)
        if rental is None:
            raise NotFoundError(f"Rental {rental_id} is not on the dashboard.")
        if rental.status in TERMINAL_STATES or rental.status == target:
            LIFECYCLE_LOGGER.warning("Transition refused locally rental=%s %s -> %s", rental_id, rental.status.value, target.value)
            raise IllegalTransitionError(f"Invalid state transition: {rental.status.value} -> {target.value}")

        updated = await self._backend.rentals.update_status(rental_id, target)
        LIFECYCLE_LOGGER.info("Rental status changed rental=%s %s -> %s", rental_id, rental.status.value, updated.status.value)
        await self.refresh()
        return updated

    async def upload_equipment_image(
        self,
        equipment_id: int,
        filename: str,
        content: bytes,
        content_type: str = "application/octet-stream",
    ) -> EquipmentItem:
        updated = await self._backend.equipment.upload_image(equipment_id, filename, content, content_type)
        LIFECYCLE_LOGGER.info("Equipment image uploaded equipment=%s image=%s", equipment_id, updated.imageUrl)
        await self.refresh()
        return updated

    async def overdue_rentals(self) -> list[Rental]:
        return await self._backend.rentals.list_overdue()
