"""Customer and address lifecycle.

Every write follows the same shape: cheap pre-flight reads outside any transaction,
then one transaction that re-verifies what it depends on and performs all writes.
Anything raised inside the transaction rolls back every statement issued in it.
"""
from __future__ import annotations

import logging
import math
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from cms_api.core.database import Database
from cms_api.core.errors import ConflictError, NotFoundError, ValidationError
from cms_api.models.address import Address
from cms_api.models.customer import Customer
from cms_api.schemas.address import ADDRESS_FIELDS, AddressCreate, AddressRead, AddressUpdate
from cms_api.schemas.customer import CustomerCreate, CustomerPage, CustomerRead, CustomerUpdate, CustomerWithAddresses
from cms_api.services.reference import ReferenceValidator
from cms_api.stores.address_store import AddressStore
from cms_api.stores.customer_store import CustomerStore

logger = logging.getLogger(__name__)

EMPTY_UPDATE_MESSAGE = "At least one field must be provided for update"
INCOMPLETE_ADDRESS_MESSAGE = (
    "All address fields (" + ", ".join(ADDRESS_FIELDS) + ") are required to create a new address"
)


def _email_conflict(email: str) -> ConflictError:
    return ConflictError(f"Email '{email}' is already registered")


def _is_email_violation(exc: IntegrityError) -> bool:
    return "email" in str(exc.orig).lower()


def _with_addresses(customer: Customer, addresses: list[Address]) -> CustomerWithAddresses:
    base = CustomerRead.model_validate(customer).model_dump()
    return CustomerWithAddresses(**base, addresses=[AddressRead.model_validate(a) for a in addresses])


class CustomerService:
    def __init__(
        self,
        database: Database,
        customers: Optional[CustomerStore] = None,
        addresses: Optional[AddressStore] = None,
        references: Optional[ReferenceValidator] = None,
    ) -> None:
        self.database = database
        self.customers = customers or CustomerStore(database)
        self.addresses = addresses or AddressStore(database)
        self.references = references or ReferenceValidator(database)

    def validate_city_state(self, city: str, state: str, tx: Optional[Session] = None) -> None:
        if not self.references.state_exists(state, tx=tx):
            raise ValidationError(f"State '{state}' is not a valid option. Please select from the dropdown.")
        if not self.references.city_exists_for_state(city, state, tx=tx):
            raise ValidationError(
                f"City '{city}' does not belong to state '{state}'. "
                "Please select a valid city for the chosen state."
            )

    # ------------------------------------------------------------------
    # customers
    # ------------------------------------------------------------------

    def list_customers(self, page: int = 1, limit: int = 10, search: str | None = None) -> CustomerPage:
        rows, total = self.customers.find_all(page, limit, search)
        return CustomerPage(
            items=[CustomerRead.model_validate(row) for row in rows],
            total=total,
            page=page,
            limit=limit,
            total_pages=math.ceil(total / limit) if limit else 0,
        )

    def get_customer(self, customer_id: int) -> CustomerWithAddresses:
        customer = self.customers.find_by_id(customer_id)
        if customer is None:
            raise NotFoundError("Customer", customer_id)
        return _with_addresses(customer, self.addresses.find_by_customer_id(customer_id))

    def create_customer(self, payload: CustomerCreate) -> CustomerWithAddresses:
        email = payload.email.lower()
        if self.customers.find_by_email(email) is not None:
            raise _email_conflict(email)
        self.validate_city_state(payload.address.city, payload.address.state)

        customer_data = payload.model_dump(exclude={"address"})
        customer_data["email"] = email
        try:
            with self.database.transaction() as tx:
                customer = self.customers.create(customer_data, tx=tx)
                address = self.addresses.create(customer.id, payload.address.model_dump(), tx=tx)
                result = _with_addresses(customer, [address])
        except IntegrityError as exc:
            if _is_email_violation(exc):
                # lost the race against a concurrent create with the same email
                raise _email_conflict(email) from exc
            raise

        logger.info(
            "Customer created: id=%s email=%s",
            result.id,
            result.email,
            extra={"customer_id": result.id},
        )
        logger.info(
            "Address created: id=%s customer_id=%s",
            address.id,
            result.id,
            extra={"customer_id": result.id, "address_id": address.id},
        )
        return result

    def update_customer(self, customer_id: int, payload: CustomerUpdate) -> CustomerWithAddresses:
        existing = self.customers.find_by_id(customer_id)
        if existing is None:
            raise NotFoundError("Customer", customer_id)

        customer_fields = payload.provided_fields()
        address_fields = payload.address.provided_fields() if payload.address is not None else {}
        target_address_id = payload.address.id if payload.address is not None else None
        if not customer_fields and not address_fields:
            raise ValidationError(EMPTY_UPDATE_MESSAGE)

        new_email = customer_fields.get("email")
        if new_email is not None and new_email.lower() != existing.email.lower():
            owner = self.customers.find_by_email(new_email)
            if owner is not None and owner.id != customer_id:
                raise _email_conflict(new_email)

        if address_fields:
            self._validate_update_location(customer_id, target_address_id, address_fields)

        try:
            with self.database.transaction() as tx:
                if customer_fields:
                    customer = self.customers.update(customer_id, customer_fields, tx=tx)
                else:
                    customer = self.customers.find_by_id(customer_id, tx=tx)
                if customer is None:
                    raise NotFoundError("Customer", customer_id)

                if address_fields:
                    self._write_customer_address(customer_id, target_address_id, address_fields, tx)

                result = _with_addresses(customer, self.addresses.find_by_customer_id(customer_id, tx=tx))
        except IntegrityError as exc:
            if new_email is not None and _is_email_violation(exc):
                raise _email_conflict(new_email) from exc
            raise

        logger.info("Customer updated: id=%s", customer_id, extra={"customer_id": customer_id})
        return result

    def _validate_update_location(
        self,
        customer_id: int,
        target_address_id: int | None,
        address_fields: dict[str, str],
    ) -> None:
        city = address_fields.get("city")
        state = address_fields.get("state")
        if city is None or state is None:
            source: Address | None
            if target_address_id is not None:
                source = self.addresses.find_by_id(target_address_id)
                if source is None or source.customer_id != customer_id:
                    raise NotFoundError("Address", target_address_id)
            else:
                current = self.addresses.find_by_customer_id(customer_id)
                source = current[0] if current else None
            if source is not None:
                city = city if city is not None else source.city
                state = state if state is not None else source.state

        # with no stored address to borrow from, the create branch rejects the partial payload
        if city is not None and state is not None:
            self.validate_city_state(city, state)

    def _write_customer_address(
        self,
        customer_id: int,
        target_address_id: int | None,
        address_fields: dict[str, str],
        tx: Session,
    ) -> None:
        if target_address_id is not None:
            target = self.addresses.find_by_id(target_address_id, tx=tx)
            if target is None or target.customer_id != customer_id:
                raise NotFoundError("Address", target_address_id)
            self.addresses.update(target_address_id, address_fields, tx=tx)
            logger.info("Address updated: id=%s", target_address_id, extra={"address_id": target_address_id})
            return

        current = self.addresses.find_by_customer_id(customer_id, tx=tx)
        if current:
            first = current[0]
            self.addresses.update(first.id, address_fields, tx=tx)
            logger.info("Address updated: id=%s", first.id, extra={"address_id": first.id})
            return

        missing = [field for field in ADDRESS_FIELDS if field not in address_fields]
        if missing:
            raise ValidationError(INCOMPLETE_ADDRESS_MESSAGE)
        created = self.addresses.create(customer_id, address_fields, tx=tx)
        logger.info(
            "Address created for customer: id=%s",
            customer_id,
            extra={"customer_id": customer_id, "address_id": created.id},
        )

    def delete_customer(self, customer_id: int) -> None:
        with self.database.transaction() as tx:
            if self.customers.find_by_id(customer_id, tx=tx) is None:
                raise NotFoundError("Customer", customer_id)
            self.customers.delete_by_id(customer_id, tx=tx)
        logger.info("Customer hard-deleted: id=%s", customer_id, extra={"customer_id": customer_id})

    # ------------------------------------------------------------------
    # addresses
    # ------------------------------------------------------------------

    def list_addresses(self, customer_id: int) -> list[AddressRead]:
        if self.customers.find_by_id(customer_id) is None:
            raise NotFoundError("Customer", customer_id)
        return [AddressRead.model_validate(a) for a in self.addresses.find_by_customer_id(customer_id)]

    def add_address(self, customer_id: int, payload: AddressCreate) -> AddressRead:
        self.validate_city_state(payload.city, payload.state)

        with self.database.transaction() as tx:
            if self.customers.find_by_id(customer_id, tx=tx) is None:
                raise NotFoundError("Customer", customer_id)
            address = self.addresses.create(customer_id, payload.model_dump(), tx=tx)

        logger.info(
            "Address created: id=%s customer_id=%s",
            address.id,
            customer_id,
            extra={"customer_id": customer_id, "address_id": address.id},
        )
        return AddressRead.model_validate(address)

    def update_address(self, address_id: int, payload: AddressUpdate) -> AddressRead:
        existing = self.addresses.find_by_id(address_id)
        if existing is None:
            raise NotFoundError("Address", address_id)

        fields = payload.provided_fields()
        if not fields:
            raise ValidationError(EMPTY_UPDATE_MESSAGE)

        if "city" in fields or "state" in fields:
            self.validate_city_state(fields.get("city", existing.city), fields.get("state", existing.state))

        with self.database.transaction() as tx:
            updated = self.addresses.update(address_id, fields, tx=tx)
            if updated is None:
                raise NotFoundError("Address", address_id)
            result = AddressRead.model_validate(updated)

        logger.info("Address updated: id=%s", address_id, extra={"address_id": address_id})
        return result

    def delete_address(self, address_id: int) -> None:
        with self.database.transaction() as tx:
            if self.addresses.find_by_id(address_id, tx=tx) is None:
                raise NotFoundError("Address", address_id)
            self.addresses.delete_by_id(address_id, tx=tx)
        logger.info("Address hard-deleted: id=%s", address_id, extra={"address_id": address_id})
