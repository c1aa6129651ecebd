# buybox/models/tracked_item.py
from sqlalchemy import Column, Integer, String, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from buybox.database import Base


class TrackedItem(Base):
    """A listing (ASIN) watched on behalf of a subject."""
    __tablename__ = "tracked_items"
    __table_args__ = (
        UniqueConstraint("subject_id", "item_id", name="uq_tracked_items_subject_item"),
    )

    id = Column(Integer, primary_key=True)
    subject_id = Column(String, ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False, index=True)
    item_id = Column(String, nullable=False)
    # Seller the item was discovered through, if any
    seller_id = Column(String, nullable=True, index=True)
    label = Column(String, nullable=True)

    subject = relationship("Subject", back_populates="tracked_items")

    def __repr__(self):
        return f"<TrackedItem subject={self.subject_id} item={self.item_id}>"
