"""Shared pydantic base and field types for the domain models.

JSON form: camelCase keys, USD values as numbers, on-chain amounts as
decimal-string integers (they overflow JS numbers).
"""

from decimal import Decimal
from typing import Annotated

from pydantic import BaseModel, BeforeValidator, ConfigDict, PlainSerializer
from pydantic.alias_generators import to_camel


def _to_int(value: object) -> object:
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return value


RawAmount = Annotated[
    int,
    BeforeValidator(_to_int),
    PlainSerializer(lambda v: str(v), return_type=str, when_used="json"),
]

UsdValue = Annotated[
    Decimal,
    PlainSerializer(lambda v: float(v), return_type=float, when_used="json"),
]


class DomainModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )

    def to_json_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
