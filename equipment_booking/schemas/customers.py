from typing import Optional

from pydantic import BaseModel, ConfigDict


class CustomerProfile(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    firstName: str
    lastName: str
    email: str
    phone: str
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zipCode: Optional[str] = None


class Customer(CustomerProfile):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    id: int

    @property
    def full_name(self) -> str:
        return f"{self.firstName} {self.lastName}".strip()
