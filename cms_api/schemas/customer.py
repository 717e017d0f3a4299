from __future__ import annotations

import re
from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from cms_api.schemas.address import AddressCreate, AddressRead, AddressUpdate

FULL_NAME_PATTERN = re.compile(r"^[a-zA-Z\s]+$")
PHONE_PATTERN = re.compile(r"^\d+$")

EMAIL_MAX_LENGTH = 255

CUSTOMER_FIELDS = ("full_name", "company_name", "phone_number", "email")


def _check_full_name(value: str | None) -> str | None:
    if value is None:
        return value
    if not FULL_NAME_PATTERN.match(value):
        raise ValueError("Full name must contain only letters and spaces")
    return value


def _check_email(value: str | None) -> str | None:
    if value is None:
        return value
    if len(value) > EMAIL_MAX_LENGTH:
        raise ValueError(f"Email must be at most {EMAIL_MAX_LENGTH} characters")
    return value.lower()


def _check_phone_number(value: str | None) -> str | None:
    if value is None:
        return value
    if not PHONE_PATTERN.match(value):
        raise ValueError("Phone number must contain only digits")
    return value


class CustomerCreate(BaseModel):
    full_name: str = Field(..., min_length=1, max_length=150)
    company_name: str = Field(..., min_length=1, max_length=150)
    phone_number: str = Field(..., min_length=7, max_length=15)
    email: EmailStr
    address: AddressCreate

    @field_validator("full_name")
    @classmethod
    def validate_full_name(cls, value: str) -> str:
        return _check_full_name(value)

    @field_validator("phone_number")
    @classmethod
    def validate_phone_number(cls, value: str) -> str:
        return _check_phone_number(value)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return _check_email(value)


class CustomerAddressUpdate(AddressUpdate):
    """Address part of a customer update; `id` targets one specific address."""

    id: int | None = Field(default=None, gt=0)


class CustomerUpdate(BaseModel):
    full_name: str | None = Field(default=None, min_length=1, max_length=150)
    company_name: str | None = Field(default=None, min_length=1, max_length=150)
    phone_number: str | None = Field(default=None, min_length=7, max_length=15)
    email: EmailStr | None = None
    address: CustomerAddressUpdate | None = None

    @field_validator("full_name")
    @classmethod
    def validate_full_name(cls, value: str | None) -> str | None:
        return _check_full_name(value)

    @field_validator("phone_number")
    @classmethod
    def validate_phone_number(cls, value: str | None) -> str | None:
        return _check_phone_number(value)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str | None) -> str | None:
        return _check_email(value)

    def provided_fields(self) -> dict[str, str]:
        """Customer columns the caller actually sent (explicit nulls count as absent)."""
        return {field: getattr(self, field) for field in CUSTOMER_FIELDS if getattr(self, field) is not None}


class CustomerRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    full_name: str
    company_name: str
    phone_number: str
    email: str
    created_at: datetime
    updated_at: datetime


class CustomerWithAddresses(CustomerRead):
    addresses: list[AddressRead] = Field(default_factory=list)


class CustomerPage(BaseModel):
    items: list[CustomerRead]
    total: int
    page: int
    limit: int
    total_pages: int
