from sqlalchemy import Column, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from cms_api.core.database import Base


class State(Base):
    __tablename__ = "states"

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False, unique=True)

    cities = relationship("City", back_populates="state", order_by="City.name")


class City(Base):
    __tablename__ = "cities"
    __table_args__ = (UniqueConstraint("state_id", "name", name="uq_cities_state_name"),)

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False)
    state_id = Column(Integer, ForeignKey("states.id"), nullable=False, index=True)

    state = relationship("State", back_populates="cities")
