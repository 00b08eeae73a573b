from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from equipment_booking.schemas.catalog import EquipmentItem
from equipment_booking.schemas.customers import Customer


class RentalStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    OVERDUE = "OVERDUE"


class Rental(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    id: int
    customer: Optional[Customer] = None
    equipment: Optional[EquipmentItem] = None
    startDate: date
    endDate: date
    actualReturnDate: Optional[date] = None
    quantity: int = Field(ge=1)
    dailyRate: Decimal = Decimal("0")
    totalAmount: Decimal = Field(default=Decimal("0"), ge=0)
    status: RentalStatus = RentalStatus.PENDING
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None
    notes: Optional[str] = None


class CustomerWithRentals(Customer):
    rentals: List[Rental] = []


class RentalRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    customerId: int
    equipmentId: int
    startDate: date
    endDate: date
    quantity: int = Field(ge=1)
    notes: Optional[str] = None


class RentalUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    startDate: Optional[date] = None
    endDate: Optional[date] = None
    quantity: Optional[int] = Field(default=None, ge=1)
    notes: Optional[str] = None


class RentalDraft(BaseModel):
    """Form state for a booking; values are kept exactly as entered."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    firstName: str = ""
    lastName: str = ""
    email: str = ""
    phone: str = ""
    address: str = ""
    city: str = ""
    state: str = ""
    zipCode: str = ""
    equipmentId: Optional[int] = None
    startDate: Optional[str | date] = None
    endDate: Optional[str | date] = None
    quantity: Optional[int | str] = 1
    notes: str = ""
