# marketstock/schemas/category.py
from pydantic import BaseModel, Field, ConfigDict, field_validator


class CategoryBase(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    name: str = Field(min_length=1)

    @field_validator("name", mode="before")
    @classmethod
    def _strip_name(cls, value):
        return value.strip() if isinstance(value, str) else value


class CategoryCreate(CategoryBase):
    pass


class CategoryOut(CategoryBase):
    id: int
