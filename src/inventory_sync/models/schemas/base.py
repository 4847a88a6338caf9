from typing import Any

from pydantic import BaseModel, ConfigDict

from ..pricing import to_decimal


def to_camel(name: str) -> str:
    return ''.join(word.capitalize() if i else word for i, word in enumerate(name.split('_')))


def coerce_money(value: Any) -> Any:
    """Floats go through str() so 19.99 stays 19.99 as a Decimal."""
    if isinstance(value, float):
        number = to_decimal(value)
        return number if number is not None else value
    return value


class InputModel(BaseModel):
    """Base model for raw user input; accepts snake_case or camelCase keys."""
    model_config = ConfigDict(
        populate_by_name=True,
        alias_generator=to_camel,
        extra="ignore",
    )


class RecordModel(BaseModel):
    """Base model for records persisted in the realtime store."""
    model_config = ConfigDict(
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )
