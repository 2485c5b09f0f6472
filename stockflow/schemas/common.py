from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    def dump(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


class CategoryRef(CamelModel):
    id: int
    name: str


class UnitTypeRef(CamelModel):
    id: int
    name: str
    abbreviation: str


class ProductRef(CamelModel):
    id: int
    name: str
    sku: str
    quantity: Optional[int] = None
