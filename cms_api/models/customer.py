from sqlalchemy import Column, DateTime, Index, Integer, String, func
from sqlalchemy.orm import relationship

from cms_api.core.database import Base


class Customer(Base):
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True)
    full_name = Column(String(150), nullable=False, index=True)
    company_name = Column(String(150), nullable=False)
    phone_number = Column(String(15), nullable=False)
    email = Column(String(255), nullable=False, unique=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        # authoritative guard for email uniqueness, whatever the casing
        Index("uq_customers_email_lower", func.lower(email), unique=True),
    )

    addresses = relationship(
        "Address",
        back_populates="customer",
        order_by="Address.id",
        passive_deletes=True,
    )
