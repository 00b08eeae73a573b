from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from equipment_booking.client.backend import BackendClient
from equipment_booking.client.errors import OperatorAccessError
from equipment_booking.schemas.catalog import CatalogFilter, Category, EquipmentItem
from equipment_booking.services.booking_service import BookingForm, BookingSubmitter
from equipment_booking.services.catalog_filter import filter_catalog
from equipment_booking.services.customer_resolver import CustomerResolver
from equipment_booking.services.operator_session import OperatorSession, open_session
from equipment_booking.services.quote_service import QuoteSnapshot, QuoteSynchronizer
from equipment_booking.services.rental_lifecycle import RentalLifecycleController

APP_LOGGER = logging.getLogger("equipment_booking.app")


class BookingApp:
    """Wires the booking engine to one backend client.

    Customer-facing flow: ``load_catalog`` -> ``browse`` -> ``start_booking``.
    Operator flow: ``login`` -> ``operator_console`` -> ``logout``.
    """

    def __init__(self, backend: BackendClient, *, console_password: str | None = None):
        self.backend = backend
        self.catalog: tuple[EquipmentItem, ...] = ()
        self.categories: tuple[Category, ...] = ()
        self._console_password = console_password
        self._session: OperatorSession | None = None
        self._console: RentalLifecycleController | None = None

    async def load_catalog(self) -> tuple[EquipmentItem, ...]:
        equipment, categories = await asyncio.gather(
            self.backend.equipment.list_available(),
            self.backend.categories.list(),
        )
        self.catalog = tuple(equipment)
        self.categories = tuple(categories)
        APP_LOGGER.debug("Catalog loaded items=%s categories=%s", len(self.catalog), len(self.categories))
        return self.catalog

    def browse(self, criteria: CatalogFilter | dict[str, Any] | None = None) -> list[EquipmentItem]:
        return filter_catalog(self.catalog, criteria)

    async def start_booking(
        self,
        equipment_id: int,
        on_quote: Callable[[QuoteSnapshot], None] | None = None,
    ) -> BookingForm:
        equipment = await self.backend.equipment.get_with_category(equipment_id)
        submitter = BookingSubmitter(self.backend.rentals, CustomerResolver(self.backend.customers))
        quotes = QuoteSynchronizer(self.backend.rentals, on_change=on_quote)
        return BookingForm(equipment, submitter, quotes)

    @property
    def session(self) -> OperatorSession | None:
        if self._session is not None and not self._session.is_active():
            APP_LOGGER.info("Operator session expired")
            self.logout()
        return self._session

    def login(self, password: str) -> OperatorSession:
        self._session = open_session(password, expected_password=self._console_password)
        return self._session

    def logout(self) -> None:
        if self._session is not None:
            self._session.close()
        self._session = None
        self._console = None

    def operator_console(self) -> RentalLifecycleController:
        if self.session is None:
            raise OperatorAccessError("Operator login required.")
        if self._console is None:
            self._console = RentalLifecycleController(self.backend)
        return self._console
