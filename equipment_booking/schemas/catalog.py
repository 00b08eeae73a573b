from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class EquipmentStatus(str, Enum):
    AVAILABLE = "AVAILABLE"
    RENTED = "RENTED"
    MAINTENANCE = "MAINTENANCE"
    RETIRED = "RETIRED"


class Category(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    id: int
    name: str
    description: Optional[str] = None


class CategoryRef(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: int


class CategoryUpsert(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str
    description: Optional[str] = None


class EquipmentItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    id: int
    name: str
    description: Optional[str] = None
    manufacturer: Optional[str] = None
    model: Optional[str] = None
    dailyPrice: Decimal = Field(ge=0)
    availableQuantity: int = Field(default=0, ge=0)
    totalQuantity: int = Field(default=0, ge=0)
    status: EquipmentStatus = EquipmentStatus.AVAILABLE
    imageUrl: Optional[str] = None
    category: Optional[Category] = None

    @property
    def category_name(self) -> str | None:
        return self.category.name if self.category else None


class CategoryWithEquipment(Category):
    equipment: List[EquipmentItem] = []


class EquipmentUpsert(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str
    description: Optional[str] = None
    manufacturer: Optional[str] = None
    model: Optional[str] = None
    dailyPrice: Decimal = Field(ge=0)
    availableQuantity: int = Field(default=0, ge=0)
    totalQuantity: int = Field(default=0, ge=0)
    status: EquipmentStatus = EquipmentStatus.AVAILABLE
    imageUrl: Optional[str] = None
    category: Optional[CategoryRef] = None


class CatalogFilter(BaseModel):
    """Raw filter inputs as typed by the user; bounds may be blank or garbage."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    text: Optional[str] = None
    categoryName: Optional[str] = None
    minPrice: Optional[str | float | Decimal] = None
    maxPrice: Optional[str | float | Decimal] = None
