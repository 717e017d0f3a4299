from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, String, func
from sqlalchemy.orm import relationship

from cms_api.core.database import Base


class Address(Base):
    __tablename__ = "addresses"

    id = Column(Integer, primary_key=True)
    customer_id = Column(
        Integer,
        ForeignKey("customers.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    house_flat_number = Column(String(50), nullable=False)
    building_street = Column(String(150), nullable=False)
    locality_area = Column(String(100), nullable=False)
    city = Column(String(100), nullable=False)
    state = Column(String(100), nullable=False)
    pin_code = Column(String(6), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        CheckConstraint("length(pin_code) = 6", name="ck_addresses_pin_code_length"),
        CheckConstraint("pin_code NOT GLOB '*[^0-9]*'", name="ck_addresses_pin_code_digits").ddl_if(dialect="sqlite"),
        CheckConstraint("pin_code ~ '^[0-9]{6}$'", name="ck_addresses_pin_code_digits").ddl_if(dialect="postgresql"),
    )

    customer = relationship("Customer", back_populates="addresses")
