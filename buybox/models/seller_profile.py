# buybox/models/seller_profile.py
from sqlalchemy import Column, Integer, String, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from buybox.database import Base


class SellerProfile(Base):
    """A seller identity a subject has registered interest in."""
    __tablename__ = "seller_profiles"
    __table_args__ = (
        UniqueConstraint("subject_id", "seller_id", name="uq_seller_profiles_subject_seller"),
    )

    id = Column(Integer, primary_key=True)
    subject_id = Column(String, ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False, index=True)
    seller_id = Column(String, nullable=False)  # Marketplace merchant id
    label = Column(String, nullable=False)

    subject = relationship("Subject", back_populates="sellers")

    def __repr__(self):
        return f"<SellerProfile subject={self.subject_id} seller={self.seller_id} label='{self.label}'>"
