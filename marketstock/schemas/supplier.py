# marketstock/schemas/supplier.py
from pydantic import BaseModel, Field, ConfigDict, field_validator
from typing import Optional, Literal


AlertScope = Literal["market", "all"]


class SupplierBase(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    name: str = Field(min_length=1)
    phone_number: Optional[str] = None

    @field_validator("name", mode="before")
    @classmethod
    def _strip_name(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("phone_number", mode="before")
    @classmethod
    def _phone_as_text(cls, value):
        # Phone numbers sometimes arrive as numbers from spreadsheets
        if value is None:
            return None
        value = str(value).strip()
        return value or None


class SupplierCreate(SupplierBase):
    pass


class SupplierUpdate(SupplierBase):
    pass


class SupplierOut(SupplierBase):
    id: int


# Supplier card on the suppliers screen
class SupplierWithAlerts(SupplierOut):
    alert_count: int = 0


# Outbound share intents for a supplier
class SupplierShare(BaseModel):
    supplier_id: int
    message: str
    tel_url: Optional[str] = None
    whatsapp_url: Optional[str] = None
