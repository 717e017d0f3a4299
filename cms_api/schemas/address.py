from __future__ import annotations

import re
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

PIN_CODE_PATTERN = re.compile(r"[0-9]{6}")

ADDRESS_FIELDS = (
    "house_flat_number",
    "building_street",
    "locality_area",
    "city",
    "state",
    "pin_code",
)


def check_pin_code(value: str | None) -> str | None:
    if value is None:
        return value
    if not PIN_CODE_PATTERN.fullmatch(value):
        raise ValueError("PIN code must be exactly 6 digits")
    return value


class AddressCreate(BaseModel):
    house_flat_number: str = Field(..., min_length=1, max_length=50)
    building_street: str = Field(..., min_length=1, max_length=150)
    locality_area: str = Field(..., min_length=1, max_length=100)
    city: str = Field(..., min_length=1, max_length=100)
    state: str = Field(..., min_length=1, max_length=100)
    pin_code: str

    @field_validator("pin_code")
    @classmethod
    def validate_pin_code(cls, value: str) -> str:
        return check_pin_code(value)


class AddressUpdate(BaseModel):
    house_flat_number: str | None = Field(default=None, min_length=1, max_length=50)
    building_street: str | None = Field(default=None, min_length=1, max_length=150)
    locality_area: str | None = Field(default=None, min_length=1, max_length=100)
    city: str | None = Field(default=None, min_length=1, max_length=100)
    state: str | None = Field(default=None, min_length=1, max_length=100)
    pin_code: str | None = None

    @field_validator("pin_code")
    @classmethod
    def validate_pin_code(cls, value: str | None) -> str | None:
        return check_pin_code(value)

    def provided_fields(self) -> dict[str, str]:
        """Address columns the caller actually sent (explicit nulls count as absent)."""
        return {field: getattr(self, field) for field in ADDRESS_FIELDS if getattr(self, field) is not None}


class AddressRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    customer_id: int
    house_flat_number: str
    building_street: str
    locality_area: str
    city: str
    state: str
    pin_code: str
    created_at: datetime
    updated_at: datetime
