from __future__ import annotations

from typing import Any, Mapping, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session

from cms_api.core.database import Database
from cms_api.models.address import Address

UPDATABLE_COLUMNS = {
    "house_flat_number": Address.house_flat_number,
    "building_street": Address.building_street,
    "locality_area": Address.locality_area,
    "city": Address.city,
    "state": Address.state,
    "pin_code": Address.pin_code,
}


class AddressStore:
    def __init__(self, database: Database) -> None:
        self.database = database

    def find_by_id(self, address_id: int, tx: Optional[Session] = None) -> Address | None:
        with self.database.scope(tx) as session:
            return session.get(Address, address_id)

    def find_by_customer_id(self, customer_id: int, tx: Optional[Session] = None) -> list[Address]:
        with self.database.scope(tx) as session:
            stmt = (
                select(Address)
                .where(Address.customer_id == customer_id)
                .order_by(Address.created_at.asc(), Address.id.asc())
                .execution_options(populate_existing=True)
            )
            return list(session.execute(stmt).scalars().all())

    def create(self, customer_id: int, data: Mapping[str, Any], tx: Optional[Session] = None) -> Address:
        address = Address(
            customer_id=customer_id,
            house_flat_number=data["house_flat_number"],
            building_street=data["building_street"],
            locality_area=data["locality_area"],
            city=data["city"],
            state=data["state"],
            pin_code=data["pin_code"],
        )
        with self.database.scope(tx) as session:
            session.add(address)
            session.flush()
            session.refresh(address)
        return address

    def update(self, address_id: int, data: Mapping[str, Any], tx: Optional[Session] = None) -> Address | None:
        values = {}
        for field, column in UPDATABLE_COLUMNS.items():
            if field in data and data[field] is not None:
                values[column] = data[field]
        if not values:
            return None
        values[Address.updated_at] = func.now()

        with self.database.scope(tx) as session:
            result = session.execute(
                update(Address)
                .where(Address.id == address_id)
                .values(values)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                return None
            return (
                session.execute(
                    select(Address)
                    .where(Address.id == address_id)
                    .execution_options(populate_existing=True)
                )
                .scalars()
                .one()
            )

    def delete_by_id(self, address_id: int, tx: Optional[Session] = None) -> bool:
        with self.database.scope(tx) as session:
            result = session.execute(
                delete(Address)
                .where(Address.id == address_id)
                .execution_options(synchronize_session=False)
            )
            return result.rowcount > 0
