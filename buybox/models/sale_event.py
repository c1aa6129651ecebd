# buybox/models/sale_event.py
from sqlalchemy import Column, Integer, String, DateTime, CheckConstraint

from buybox.database import Base


class SaleEvent(Base):
    """
    An estimated sale inferred from a stock decrease of a tracked seller.
    Append-only: rows are never updated or deleted by the tracker.
    """
    __tablename__ = "sale_events"
    __table_args__ = (
        CheckConstraint("units_estimated > 0", name="ck_sale_events_units_positive"),
        CheckConstraint("units_estimated = stock_before - stock_after", name="ck_sale_events_units_delta"),
    )

    id = Column(Integer, primary_key=True)
    subject_id = Column(String, nullable=False, index=True)
    item_id = Column(String, nullable=False, index=True)
    holder_id = Column(String, nullable=False)

    stock_before = Column(Integer, nullable=False)
    stock_after = Column(Integer, nullable=False)
    units_estimated = Column(Integer, nullable=False)

    occurred_at = Column(DateTime(timezone=True), nullable=False, index=True)

    def __repr__(self):
        return (f"<SaleEvent id={self.id} subject={self.subject_id} item={self.item_id} "
                f"{self.stock_before}->{self.stock_after}>")
