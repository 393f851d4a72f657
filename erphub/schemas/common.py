"""
Shared base for every API schema.

Rows are snake_case; the wire format is camelCase. All row <-> domain mapping
goes through CamelModel so the conversion lives in one place.
"""
from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


def empty_to_none(v):
    if v is None:
        return None
    v = str(v).strip()
    return v or None
