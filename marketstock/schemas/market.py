# marketstock/schemas/market.py
from pydantic import BaseModel, Field, ConfigDict, field_validator


class MarketBase(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    name: str = Field(min_length=1)

    @field_validator("name", mode="before")
    @classmethod
    def _strip_name(cls, value):
        return value.strip() if isinstance(value, str) else value


class MarketCreate(MarketBase):
    pass


class MarketOut(MarketBase):
    id: int


class MarketWithCount(MarketOut):
    product_count: int = 0
