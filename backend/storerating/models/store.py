from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from storerating.models.base import Base, utcnow


class Store(Base):
    __tablename__ = "stores"
    __table_args__ = (
        UniqueConstraint("email", name="uq_stores_email"),
    )

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), index=True, nullable=False)
    address = Column(String(400), nullable=False, default="")
    # Unassigned stores have no owner; otherwise a store_owner user
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=True, onupdate=utcnow)

    owner = relationship("User")
