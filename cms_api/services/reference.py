from __future__ import annotations

from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from cms_api.core.database import Database
from cms_api.core.errors import NotFoundError
from cms_api.models.reference import City, State


def _normalize(value: str) -> str:
    return value.lower()


class ReferenceValidator:
    """Read-only checks and listings over the states/cities reference tables."""

    def __init__(self, database: Database) -> None:
        self.database = database

    def state_exists(self, name: str, tx: Optional[Session] = None) -> bool:
        with self.database.scope(tx) as session:
            stmt = select(State.id).where(func.lower(State.name) == _normalize(name)).limit(1)
            return session.execute(stmt).first() is not None

    def city_exists_for_state(self, city: str, state: str, tx: Optional[Session] = None) -> bool:
        with self.database.scope(tx) as session:
            stmt = (
                select(City.id)
                .join(State, City.state_id == State.id)
                .where(
                    func.lower(City.name) == _normalize(city),
                    func.lower(State.name) == _normalize(state),
                )
                .limit(1)
            )
            return session.execute(stmt).first() is not None

    def list_states(self) -> list[State]:
        with self.database.scope() as session:
            return list(session.execute(select(State).order_by(State.name.asc())).scalars().all())

    def list_cities(self) -> list[City]:
        with self.database.scope() as session:
            return list(session.execute(select(City).order_by(City.name.asc(), City.id.asc())).scalars().all())

    def list_cities_for_state(self, state_id: int) -> list[City]:
        with self.database.scope() as session:
            if session.get(State, state_id) is None:
                raise NotFoundError("State", state_id)
            stmt = select(City).where(City.state_id == state_id).order_by(City.name.asc())
            return list(session.execute(stmt).scalars().all())
