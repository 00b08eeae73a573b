from __future__ import annotations

import logging

from equipment_booking.client.errors import NotFoundError
from equipment_booking.client.resources import CustomerAPI
from equipment_booking.schemas.customers import Customer, CustomerProfile

CUSTOMER_LOGGER = logging.getLogger("equipment_booking.customers")

_PROFILE_FIELDS = ("firstName", "lastName", "phone", "address", "city", "state", "zipCode")


class CustomerResolver:
    """Find-or-create a customer keyed by email.

    An existing record always wins over the submitted profile. A duplicate
    created concurrently by another client surfaces as ``ConflictError`` from
    the create call and is not retried.
    """

    def __init__(self, customers: CustomerAPI):
        self._customers = customers

    async def resolve(self, profile: CustomerProfile) -> Customer:
        email = profile.email.strip()
        if not email:
            raise ValueError("Customer email is required for resolution.")
        if email != profile.email:
            profile = profile.model_copy(update={"email": email})

        try:
            existing = await self._customers.get_by_email(email)
        except NotFoundError:
            created = await self._customers.create(profile)
            CUSTOMER_LOGGER.info("Customer created id=%s email=%s", created.id, email)
            return created

        drifted = [
            field
            for field in _PROFILE_FIELDS
            if (getattr(profile, field) or None) != (getattr(existing, field) or None)
        ]
        if drifted:
            CUSTOMER_LOGGER.debug("Customer id=%s kept as stored; submitted profile differs on %s", existing.id, drifted)
        return existing
