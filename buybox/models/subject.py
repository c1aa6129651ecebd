# buybox/models/subject.py
from sqlalchemy import Column, String, Boolean, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from buybox.database import Base


class Subject(Base):
    """
    A tracking account. Tracked sellers, tracked items and BuyBox state are
    all scoped to a subject, and its webhook receives the alerts.
    """
    __tablename__ = "subjects"

    id = Column(String, primary_key=True)
    email = Column(String, nullable=True)
    webhook_url = Column(String, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True, server_default="true", index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    sellers = relationship("SellerProfile", back_populates="subject", cascade="all, delete-orphan")
    tracked_items = relationship("TrackedItem", back_populates="subject", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Subject id={self.id} active={self.is_active}>"
