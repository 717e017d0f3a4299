from __future__ import annotations

from typing import Any, Mapping, Optional

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.orm import Session

from cms_api.core.database import Database
from cms_api.models.customer import Customer

# field name -> column; nothing outside this mapping is ever written by update()
UPDATABLE_COLUMNS = {
    "full_name": Customer.full_name,
    "company_name": Customer.company_name,
    "phone_number": Customer.phone_number,
    "email": Customer.email,
}


class CustomerStore:
    def __init__(self, database: Database) -> None:
        self.database = database

    def find_by_id(self, customer_id: int, tx: Optional[Session] = None) -> Customer | None:
        with self.database.scope(tx) as session:
            return session.get(Customer, customer_id)

    def find_by_email(self, email: str, tx: Optional[Session] = None) -> Customer | None:
        with self.database.scope(tx) as session:
            stmt = select(Customer).where(func.lower(Customer.email) == email.strip().lower())
            return session.execute(stmt).scalars().first()

    def find_all(
        self,
        page: int = 1,
        limit: int = 10,
        search: str | None = None,
        tx: Optional[Session] = None,
    ) -> tuple[list[Customer], int]:
        filters = []
        clean_search = (search or "").strip()
        if clean_search:
            pattern = f"%{clean_search}%"
            filters.append(
                or_(
                    Customer.full_name.ilike(pattern),
                    Customer.email.ilike(pattern),
                    Customer.company_name.ilike(pattern),
                )
            )

        with self.database.scope(tx) as session:
            total = session.execute(select(func.count(Customer.id)).where(*filters)).scalar_one()
            rows = (
                session.execute(
                    select(Customer)
                    .where(*filters)
                    .order_by(Customer.full_name.asc(), Customer.id.asc())
                    .offset((page - 1) * limit)
                    .limit(limit)
                )
                .scalars()
                .all()
            )
        return list(rows), int(total)

    def create(self, data: Mapping[str, Any], tx: Optional[Session] = None) -> Customer:
        customer = Customer(
            full_name=data["full_name"],
            company_name=data["company_name"],
            phone_number=data["phone_number"],
            email=data["email"].strip().lower(),
        )
        with self.database.scope(tx) as session:
            session.add(customer)
            session.flush()
            session.refresh(customer)
        return customer

    def update(self, customer_id: int, data: Mapping[str, Any], tx: Optional[Session] = None) -> Customer | None:
        """Write the allow-listed fields present in ``data``.

        Returns ``None`` without touching the database when no allow-listed field
        is present, or when the row does not exist.
        """
        values = {}
        for field, column in UPDATABLE_COLUMNS.items():
            if field in data and data[field] is not None:
                values[column] = data[field]
        if not values:
            return None
        if Customer.email in values:
            values[Customer.email] = values[Customer.email].strip().lower()
        values[Customer.updated_at] = func.now()

        with self.database.scope(tx) as session:
            result = session.execute(
                update(Customer)
                .where(Customer.id == customer_id)
                .values(values)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                return None
            return (
                session.execute(
                    select(Customer)
                    .where(Customer.id == customer_id)
                    .execution_options(populate_existing=True)
                )
                .scalars()
                .one()
            )

    def delete_by_id(self, customer_id: int, tx: Optional[Session] = None) -> bool:
        with self.database.scope(tx) as session:
            result = session.execute(
                delete(Customer)
                .where(Customer.id == customer_id)
                .execution_options(synchronize_session=False)
            )
            return result.rowcount > 0
