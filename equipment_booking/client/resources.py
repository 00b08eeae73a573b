from __future__ import annotations

from datetime import date
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any, TypeVar
from urllib.parse import quote

from pydantic import BaseModel, ValidationError

from equipment_booking.client.errors import BackendError
from equipment_booking.schemas.catalog import (
    Category,
    CategoryUpsert,
    CategoryWithEquipment,
    EquipmentItem,
    EquipmentStatus,
    EquipmentUpsert,
)
from equipment_booking.schemas.customers import Customer, CustomerProfile
from equipment_booking.schemas.rentals import CustomerWithRentals, Rental, RentalRequest, RentalStatus, RentalUpdate

if TYPE_CHECKING:
    from equipment_booking.client.backend import BackendClient

ModelT = TypeVar("ModelT", bound=BaseModel)


def _parse_one(model: type[ModelT], payload: Any) -> ModelT:
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise BackendError(f"Backend returned an invalid {model.__name__} payload") from exc


def _parse_many(model: type[ModelT], payload: Any) -> list[ModelT]:
    if not isinstance(payload, list):
        raise BackendError(f"Backend returned a non-list payload for {model.__name__}")
    return [_parse_one(model, row) for row in payload]


def _parse_bool(payload: Any) -> bool:
    if isinstance(payload, bool):
        return payload
    raise BackendError(f"Backend returned a non-boolean payload: {payload!r}")


def _parse_int(payload: Any) -> int:
    if isinstance(payload, bool) or not isinstance(payload, (int, float)):
        raise BackendError(f"Backend returned a non-numeric payload: {payload!r}")
    if isinstance(payload, float) and not payload.is_integer():
        raise BackendError(f"Backend returned a non-integral quantity: {payload!r}")
    return int(payload)


def _parse_decimal(payload: Any) -> Decimal:
    if isinstance(payload, bool):
        raise BackendError(f"Backend returned a non-numeric payload: {payload!r}")
    try:
        return Decimal(str(payload))
    except (InvalidOperation, ValueError) as exc:
        raise BackendError(f"Backend returned a non-numeric payload: {payload!r}") from exc


def _body(model: BaseModel) -> dict:
    return model.model_dump(mode="json", exclude_none=True)


def _period(start_date: date, end_date: date, **extra: Any) -> dict[str, Any]:
    params: dict[str, Any] = {"startDate": start_date.isoformat(), "endDate": end_date.isoformat()}
    params.update(extra)
    return params


class _Resource:
    def __init__(self, backend: BackendClient):
        self._backend = backend

    async def _get(self, path: str, **params: Any) -> Any:
        return await self._backend.request("GET", path, params=params)


class CategoryAPI(_Resource):
    async def list(self) -> list[Category]:
        return _parse_many(Category, await self._get("/categories"))

    async def get(self, category_id: int) -> Category:
        return _parse_one(Category, await self._get(f"/categories/{category_id}"))

    async def get_with_equipment(self, category_id: int) -> CategoryWithEquipment:
        return _parse_one(CategoryWithEquipment, await self._get(f"/categories/{category_id}/with-equipment"))

    async def create(self, payload: CategoryUpsert) -> Category:
        return _parse_one(Category, await self._backend.request("POST", "/categories", json=_body(payload)))

    async def update(self, category_id: int, payload: CategoryUpsert) -> Category:
        data = await self._backend.request("PUT", f"/categories/{category_id}", json=_body(payload))
        return _parse_one(Category, data)

    async def delete(self, category_id: int) -> None:
        await self._backend.request("DELETE", f"/categories/{category_id}")


class EquipmentAPI(_Resource):
    async def list(self) -> list[EquipmentItem]:
        return _parse_many(EquipmentItem, await self._get("/equipment"))

    async def list_available(self) -> list[EquipmentItem]:
        return _parse_many(EquipmentItem, await self._get("/equipment/available"))

    async def get(self, equipment_id: int) -> EquipmentItem:
        return _parse_one(EquipmentItem, await self._get(f"/equipment/{equipment_id}"))

    async def get_with_category(self, equipment_id: int) -> EquipmentItem:
        return _parse_one(EquipmentItem, await self._get(f"/equipment/{equipment_id}/with-category"))

    async def list_by_category(self, category_id: int, available_only: bool = False) -> list[EquipmentItem]:
        path = f"/equipment/category/{category_id}"
        if available_only:
            path += "/available"
        return _parse_many(EquipmentItem, await self._get(path))

    async def search(self, keyword: str) -> list[EquipmentItem]:
        return _parse_many(EquipmentItem, await self._get("/equipment/search", keyword=keyword))

    async def list_by_price_range(self, min_price: Decimal | float, max_price: Decimal | float) -> list[EquipmentItem]:
        data = await self._get("/equipment/price-range", minPrice=str(min_price), maxPrice=str(max_price))
        return _parse_many(EquipmentItem, data)

    async def list_by_status(self, status: EquipmentStatus | str) -> list[EquipmentItem]:
        value = EquipmentStatus(status).value
        return _parse_many(EquipmentItem, await self._get(f"/equipment/status/{value}"))

    async def create(self, payload: EquipmentUpsert) -> EquipmentItem:
        return _parse_one(EquipmentItem, await self._backend.request("POST", "/equipment", json=_body(payload)))

    async def update(self, equipment_id: int, payload: EquipmentUpsert) -> EquipmentItem:
        data = await self._backend.request("PUT", f"/equipment/{equipment_id}", json=_body(payload))
        return _parse_one(EquipmentItem, data)

    async def delete(self, equipment_id: int) -> None:
        await self._backend.request("DELETE", f"/equipment/{equipment_id}")

    async def check_availability(self, equipment_id: int, quantity: int) -> bool:
        return _parse_bool(await self._get(f"/equipment/{equipment_id}/availability", quantity=quantity))

    async def upload_image(
        self,
        equipment_id: int,
        filename: str,
        content: bytes,
        content_type: str = "application/octet-stream",
    ) -> EquipmentItem:
        if not content:
            raise ValueError("Image file is empty.")
        files = {"file": (filename, content, content_type)}
        data = await self._backend.request("POST", f"/equipment/{equipment_id}/image", files=files)
        return _parse_one(EquipmentItem, data)


class CustomerAPI(_Resource):
    async def list(self) -> list[Customer]:
        return _parse_many(Customer, await self._get("/customers"))

    async def get(self, customer_id: int) -> Customer:
        return _parse_one(Customer, await self._get(f"/customers/{customer_id}"))

    async def get_with_rentals(self, customer_id: int) -> CustomerWithRentals:
        return _parse_one(CustomerWithRentals, await self._get(f"/customers/{customer_id}/with-rentals"))

    async def get_by_email(self, email: str) -> Customer:
        return _parse_one(Customer, await self._get(f"/customers/email/{quote(email, safe='@')}"))

    async def search(self, name: str) -> list[Customer]:
        return _parse_many(Customer, await self._get("/customers/search", name=name))

    async def create(self, payload: CustomerProfile) -> Customer:
        return _parse_one(Customer, await self._backend.request("POST", "/customers", json=_body(payload)))

    async def update(self, customer_id: int, payload: CustomerProfile) -> Customer:
        data = await self._backend.request("PUT", f"/customers/{customer_id}", json=_body(payload))
        return _parse_one(Customer, data)

    async def delete(self, customer_id: int) -> None:
        await self._backend.request("DELETE", f"/customers/{customer_id}")


class RentalAPI(_Resource):
    async def list(self) -> list[Rental]:
        return _parse_many(Rental, await self._get("/rentals"))

    async def get(self, rental_id: int) -> Rental:
        return _parse_one(Rental, await self._get(f"/rentals/{rental_id}"))

    async def get_with_details(self, rental_id: int) -> Rental:
        return _parse_one(Rental, await self._get(f"/rentals/{rental_id}/details"))

    async def list_by_customer(self, customer_id: int) -> list[Rental]:
        return _parse_many(Rental, await self._get(f"/rentals/customer/{customer_id}"))

    async def list_by_equipment(self, equipment_id: int) -> list[Rental]:
        return _parse_many(Rental, await self._get(f"/rentals/equipment/{equipment_id}"))

    async def list_by_status(self, status: RentalStatus | str) -> list[Rental]:
        value = RentalStatus(status).value
        return _parse_many(Rental, await self._get(f"/rentals/status/{value}"))

    async def list_overdue(self) -> list[Rental]:
        return _parse_many(Rental, await self._get("/rentals/overdue"))

    async def list_active_on(self, on_date: date) -> list[Rental]:
        return _parse_many(Rental, await self._get("/rentals/active", date=on_date.isoformat()))

    async def create(self, payload: RentalRequest) -> Rental:
        return _parse_one(Rental, await self._backend.request("POST", "/rentals", json=_body(payload)))

    async def update(self, rental_id: int, payload: RentalUpdate) -> Rental:
        data = await self._backend.request("PUT", f"/rentals/{rental_id}", json=_body(payload))
        return _parse_one(Rental, data)

    async def update_status(self, rental_id: int, status: RentalStatus | str) -> Rental:
        value = RentalStatus(status).value
        data = await self._backend.request("PATCH", f"/rentals/{rental_id}/status", params={"status": value})
        return _parse_one(Rental, data)

    async def delete(self, rental_id: int) -> None:
        await self._backend.request("DELETE", f"/rentals/{rental_id}")

    async def check_equipment_availability(
        self, equipment_id: int, start_date: date, end_date: date, quantity: int
    ) -> bool:
        data = await self._get(
            f"/rentals/equipment/{equipment_id}/availability",
            **_period(start_date, end_date, quantity=quantity),
        )
        return _parse_bool(data)

    async def get_available_quantity_for_period(self, equipment_id: int, start_date: date, end_date: date) -> int:
        data = await self._get(f"/rentals/equipment/{equipment_id}/available-quantity", **_period(start_date, end_date))
        return _parse_int(data)

    async def calculate_cost(self, equipment_id: int, start_date: date, end_date: date, quantity: int) -> Decimal:
        data = await self._get(
            f"/rentals/equipment/{equipment_id}/cost",
            **_period(start_date, end_date, quantity=quantity),
        )
        return _parse_decimal(data)
