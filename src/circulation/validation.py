"""Input checks applied before any store is touched."""

from typing import Any, Type, TypeVar, Union
from uuid import UUID

from pydantic import BaseModel, ValidationError

from .errors import InvalidInputError

M = TypeVar("M", bound=BaseModel)


def parse_id(value: Union[str, UUID], field: str = "id") -> str:
    """Normalize an identifier to its canonical UUID string.

    Raises:
        InvalidInputError: If the value is not a UUID
    """
    if isinstance(value, UUID):
        return str(value)
    try:
        return str(UUID(str(value).strip()))
    except (TypeError, ValueError, AttributeError):
        raise InvalidInputError(field, f"'{value}' is not a valid identifier") from None


def validate_model(schema: Type[M], data: Union[M, dict[str, Any]]) -> M:
    """Coerce caller data into ``schema``.

    Pydantic errors are reported as ``InvalidInputError`` naming the first
    offending field.
    """
    if isinstance(data, schema):
        return data
    if isinstance(data, BaseModel):
        data = data.model_dump(exclude_unset=True)
    try:
        return schema.model_validate(data)
    except ValidationError as exc:
        first = exc.errors()[0]
        field = ".".join(str(part) for part in first["loc"]) or schema.__name__
        raise InvalidInputError(field, first["msg"]) from exc
