# marketstock/schemas/product.py
from pydantic import BaseModel, Field, ConfigDict, computed_field, field_validator
from typing import Optional, List, Literal


StockStatus = Literal["available", "low", "out"]
STOCK_STATUSES = ("available", "low", "out")

# Outcome of the relation writes that follow a product row write
SyncStatus = Literal["synced", "reverted", "inconsistent"]


# Base configuration for ORM compatibility
class ORMBase(BaseModel):
    model_config = ConfigDict(from_attributes=True)


def calculate_margin(purchase_price: Optional[float], sale_price: Optional[float]) -> Optional[float]:
    """Margin in percent of the sale price, rounded to one decimal.

    Undefined when either price is missing or the sale price is zero.
    """
    if purchase_price is None or sale_price is None or sale_price == 0:
        return None
    return round((sale_price - purchase_price) / sale_price * 100, 1)


class ProductMarketLink(ORMBase):
    market_id: int


# Shared scalar attributes of a product
class ProductBase(ORMBase):
    name: str = Field(min_length=1)
    code: Optional[str] = None
    status: StockStatus = "available"
    purchase_price: Optional[float] = Field(default=None, ge=0)
    sale_price: Optional[float] = Field(default=None, ge=0)
    supplier_id: Optional[int] = None
    category_id: Optional[int] = None

    @field_validator("name", mode="before")
    @classmethod
    def _strip_name(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("code", mode="before")
    @classmethod
    def _blank_code_is_none(cls, value):
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value


# Schema for creating a product; the form offers a single market
class ProductCreate(ProductBase):
    market_id: Optional[int] = None


# Full edit: scalar fields plus the desired market link set
class ProductUpdate(ProductBase):
    product_markets: List[ProductMarketLink] = Field(default_factory=list)

    def scalar_fields(self) -> dict:
        return self.model_dump(exclude={"product_markets"})


class ProductStatusUpdate(BaseModel):
    status: StockStatus


# Full product representation including its market links
class ProductOut(ProductBase):
    id: int
    product_markets: List[ProductMarketLink] = Field(default_factory=list)

    @computed_field
    @property
    def margin(self) -> Optional[float]:
        return calculate_margin(self.purchase_price, self.sale_price)

    def market_ids(self) -> List[int]:
        return [link.market_id for link in self.product_markets]


class ProductWriteResult(BaseModel):
    product: ProductOut
    sync_status: SyncStatus = "synced"
