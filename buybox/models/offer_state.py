# buybox/models/offer_state.py
from sqlalchemy import Column, Integer, String, Float, DateTime

from buybox.database import Base


class OfferState(Base):
    """
    Last observed BuyBox state for one (subject, item) pair.

    Exactly one row per pair, overwritten on every successful read. No history
    is kept here; stock decreases are recorded separately as SaleEvent rows.
    """
    __tablename__ = "offer_states"

    subject_id = Column(String, primary_key=True)
    item_id = Column(String, primary_key=True)

    holder_id = Column(String, nullable=True)
    holder_name = Column(String, nullable=True)
    price = Column(Float, nullable=True)
    currency = Column(String(3), nullable=False, default="GBP")
    stock_level = Column(Integer, nullable=True)
    availability = Column(String, nullable=True)

    observed_at = Column(DateTime(timezone=True), nullable=False)

    def __repr__(self):
        return (f"<OfferState subject={self.subject_id} item={self.item_id} "
                f"holder={self.holder_id} stock={self.stock_level}>")
