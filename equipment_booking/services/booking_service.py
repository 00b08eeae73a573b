from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from equipment_booking.client.errors import (
    BackendError,
    BookingValidationError,
    ConflictError,
    NotFoundError,
    TransientError,
)
from equipment_booking.client.resources import RentalAPI
from equipment_booking.schemas.catalog import EquipmentItem
from equipment_booking.schemas.customers import Customer, CustomerProfile
from equipment_booking.schemas.rentals import Rental, RentalDraft, RentalRequest
from equipment_booking.services.customer_resolver import CustomerResolver
from equipment_booking.services.form_fields import clean_text, coerce_date, coerce_int
from equipment_booking.services.quote_service import QuoteInputs, QuoteSnapshot, QuoteSynchronizer

BOOKING_LOGGER = logging.getLogger("equipment_booking.booking")

REQUIRED_TEXT_FIELDS = ("firstName", "lastName", "email", "phone")
OPTIONAL_PROFILE_FIELDS = ("address", "city", "state", "zipCode")
_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _date_problem(raw: Any) -> str | None:
    if not clean_text(raw):
        return "required"
    if coerce_date(raw) is None:
        return "must be a date in YYYY-MM-DD format"
    return None


def validate_draft(draft: RentalDraft) -> dict[str, str]:
    """Return field -> problem for everything that blocks submission; empty when valid."""
    problems: dict[str, str] = {}
    for name in REQUIRED_TEXT_FIELDS:
        if not clean_text(getattr(draft, name)):
            problems[name] = "required"

    email = clean_text(draft.email)
    if email and not _EMAIL_PATTERN.match(email):
        problems["email"] = "not a valid email address"

    if draft.equipmentId is None:
        problems["equipmentId"] = "required"

    for name in ("startDate", "endDate"):
        problem = _date_problem(getattr(draft, name))
        if problem:
            problems[name] = problem

    start_date = coerce_date(draft.startDate)
    end_date = coerce_date(draft.endDate)
    if start_date and end_date and end_date < start_date:
        problems["endDate"] = "must be on or after the start date"

    quantity = coerce_int(draft.quantity)
    if quantity is None:
        problems["quantity"] = "must be a whole number"
    elif quantity < 1:
        problems["quantity"] = "must be at least 1"
    return problems


def quote_inputs_for(draft: RentalDraft) -> QuoteInputs:
    return QuoteInputs.from_raw(draft.equipmentId, draft.startDate, draft.endDate, draft.quantity)


def profile_from_draft(draft: RentalDraft) -> CustomerProfile:
    values = {name: clean_text(getattr(draft, name)) for name in REQUIRED_TEXT_FIELDS}
    for name in OPTIONAL_PROFILE_FIELDS:
        values[name] = clean_text(getattr(draft, name)) or None
    return CustomerProfile(**values)


def build_rental_request(draft: RentalDraft, customer: Customer) -> RentalRequest:
    return RentalRequest(
        customerId=customer.id,
        equipmentId=draft.equipmentId,
        startDate=coerce_date(draft.startDate),
        endDate=coerce_date(draft.endDate),
        quantity=coerce_int(draft.quantity),
        notes=clean_text(draft.notes) or None,
    )


@dataclass(frozen=True)
class BookingConfirmation:
    customer: Customer
    rental: Rental


class BookingSubmitter:
    def __init__(self, rentals: RentalAPI, resolver: CustomerResolver):
        self._rentals = rentals
        self._resolver = resolver

    async def submit(self, draft: RentalDraft) -> BookingConfirmation:
        problems = validate_draft(draft)
        if problems:
            raise BookingValidationError(problems)

        customer = await self._resolver.resolve(profile_from_draft(draft))
        rental = await self._rentals.create(build_rental_request(draft, customer))
        BOOKING_LOGGER.info(
            "Rental created id=%s customer=%s equipment=%s period=%s..%s quantity=%s",
            rental.id,
            customer.id,
            draft.equipmentId,
            rental.startDate,
            rental.endDate,
            rental.quantity,
        )
        return BookingConfirmation(customer=customer, rental=rental)


class FailureKind(str, Enum):
    VALIDATION = "validation"
    UNAVAILABLE = "unavailable"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    TRANSIENT = "transient"


@dataclass(frozen=True)
class FormError:
    kind: FailureKind
    message: str
    problems: dict[str, str] = field(default_factory=dict)


class BookingForm:
    """Ephemeral state behind one booking page.

    Holds the draft, keeps the quote synchronizer in step with it, and turns
    submitter errors into a ``FormError``. The draft survives every failed
    submission and is dropped on success or ``reset()``.
    """

    def __init__(
        self,
        equipment: EquipmentItem,
        submitter: BookingSubmitter,
        quotes: QuoteSynchronizer,
        draft: RentalDraft | None = None,
    ):
        self.equipment = equipment
        self.quotes = quotes
        self._submitter = submitter
        self.draft: RentalDraft | None = draft or RentalDraft(equipmentId=equipment.id)
        self.error: FormError | None = None
        self.confirmation: BookingConfirmation | None = None
        self.submitting = False

    @property
    def quote(self) -> QuoteSnapshot:
        return self.quotes.snapshot

    @property
    def problems(self) -> dict[str, str]:
        if self.draft is None:
            return {"form": "no booking in progress"}
        return validate_draft(self.draft)

    @property
    def can_submit(self) -> bool:
        if self.draft is None or self.submitting or self.problems:
            return False
        return self.quotes.is_bookable(quote_inputs_for(self.draft))

    def update(self, **fields: Any) -> RentalDraft:
        current = self.draft or RentalDraft(equipmentId=self.equipment.id)
        fields.pop("equipmentId", None)
        self.draft = RentalDraft.model_validate({**current.model_dump(), **fields})
        self.confirmation = None
        self._sync_quote()
        return self.draft

    def reset(self) -> None:
        self.draft = None
        self.error = None
        self.quotes.clear()

    async def submit(self) -> BookingConfirmation | None:
        if self.submitting:
            BOOKING_LOGGER.debug("Submit ignored; booking already in flight equipment=%s", self.equipment.id)
            return None
        if self.draft is None:
            self.error = FormError(FailureKind.VALIDATION, "There is no booking to submit.")
            return None

        problems = validate_draft(self.draft)
        if problems:
            self.error = FormError(FailureKind.VALIDATION, "Please correct the highlighted fields.", problems)
            return None
        if not self.quotes.is_bookable(quote_inputs_for(self.draft)):
            self.error = FormError(FailureKind.UNAVAILABLE, self._unavailable_message())
            return None

        draft = self.draft
        self.submitting = True
        self.error = None
        try:
            confirmation = await self._submitter.submit(draft)
        except BookingValidationError as exc:
            self.error = FormError(FailureKind.VALIDATION, str(exc), exc.problems)
            return None
        except NotFoundError as exc:
            self.error = FormError(FailureKind.NOT_FOUND, exc.detail)
            return None
        except ConflictError as exc:
            self.error = FormError(FailureKind.CONFLICT, exc.detail)
            return None
        except TransientError as exc:
            BOOKING_LOGGER.warning("Booking failed transiently equipment=%s error=%s", self.equipment.id, exc)
            self.error = FormError(FailureKind.TRANSIENT, "Failed to submit rental booking. Please try again.")
            return None
        except BackendError as exc:
            BOOKING_LOGGER.warning("Booking failed equipment=%s status=%s error=%s", self.equipment.id, exc.status_code, exc)
            self.error = FormError(FailureKind.TRANSIENT, "Failed to submit rental booking. Please try again.")
            return None
        finally:
            self.submitting = False

        self.confirmation = confirmation
        # Edits made while the request was in flight start a new booking.
        if self.draft is draft:
            self.draft = None
            self.quotes.clear()
        return confirmation

    def _sync_quote(self) -> None:
        draft = self.draft
        self.quotes.update(draft.equipmentId, draft.startDate, draft.endDate, draft.quantity)

    def _unavailable_message(self) -> str:
        snapshot = self.quotes.snapshot
        if snapshot.available_quantity is None:
            return "Availability for the selected period is not known yet."
        return f"Only {snapshot.available_quantity} available for the selected period."
