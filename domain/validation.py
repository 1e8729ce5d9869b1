from __future__ import annotations

from collections.abc import Mapping
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator
from pydantic_core import PydanticCustomError

from domain.errors import ValidationFailed
from domain.models import CreatePartPayload

PART_NAME_MAX_LENGTH = 80
PART_NUMBER_MAX_LENGTH = 40
DESCRIPTION_MAX_LENGTH = 240

InputModel = TypeVar("InputModel", bound=BaseModel)


def _trimmed(value: object) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _check_length(value: str, limit: int, label: str) -> str:
    if len(value) > limit:
        raise PydanticCustomError("too_long", f"{label} must be {limit} characters or less.")
    return value


def _parse_quantity(value: object) -> int:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise PydanticCustomError("quantity_required", "Quantity is required.")
    if isinstance(value, bool):
        raise PydanticCustomError("quantity_type", "Quantity must be a number.")
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        raise PydanticCustomError("quantity_type", "Quantity must be a number.") from None
    if number != number:
        raise PydanticCustomError("quantity_type", "Quantity must be a number.")
    if not number.is_integer():
        raise PydanticCustomError("quantity_integer", "Quantity must be a whole number.")
    if number < 1:
        raise PydanticCustomError("quantity_min", "Quantity must be at least 1.")
    return int(number)


class CreatePartInput(BaseModel):
    model_config = ConfigDict(validate_default=True)

    name: str = ""
    part_number: str = ""
    description: str = ""

    @field_validator("name", mode="before")
    @classmethod
    def validate_name(cls, value: object) -> str:
        name = _trimmed(value)
        if not name:
            raise PydanticCustomError("name_required", "Part name is required.")
        return _check_length(name, PART_NAME_MAX_LENGTH, "Part name")

    @field_validator("part_number", mode="before")
    @classmethod
    def validate_part_number(cls, value: object) -> str:
        return _check_length(_trimmed(value), PART_NUMBER_MAX_LENGTH, "Part number")

    @field_validator("description", mode="before")
    @classmethod
    def validate_description(cls, value: object) -> str:
        return _check_length(_trimmed(value), DESCRIPTION_MAX_LENGTH, "Description")

    def to_payload(self) -> CreatePartPayload:
        return CreatePartPayload(
            name=self.name,
            part_number=self.part_number or None,
            description=self.description or None,
        )


class UpdateBomLinkInput(BaseModel):
    model_config = ConfigDict(validate_default=True)

    quantity: int | None = None

    @field_validator("quantity", mode="before")
    @classmethod
    def validate_quantity(cls, value: object) -> int:
        return _parse_quantity(value)


class BomLinkInput(UpdateBomLinkInput):
    child_id: str = ""

    @field_validator("child_id", mode="before")
    @classmethod
    def validate_child_id(cls, value: object) -> str:
        child_id = _trimmed(value)
        if not child_id:
            raise PydanticCustomError("child_required", "Select a child part.")
        return child_id


def validate_input(model: type[InputModel], data: Mapping[str, Any]) -> InputModel:
    try:
        return model.model_validate(dict(data))
    except ValidationError as exc:
        errors: dict[str, str] = {}
        for item in exc.errors():
            field = ".".join(str(part) for part in item["loc"]) or "__root__"
            errors.setdefault(field, item["msg"])
        raise ValidationFailed(errors) from exc
