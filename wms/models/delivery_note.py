# wms/models/delivery_note.py
from sqlalchemy import Column, Integer, DateTime, String, Boolean, ForeignKey, text, TIMESTAMP
from sqlalchemy.orm import relationship

from wms.database import Base


class DeliveryNote(Base):
    """A scanned paper delivery note (följesedel)"""
    __tablename__ = "delivery_notes"

    id = Column(Integer, primary_key=True)
    delivery_note_number = Column(String, nullable=True, index=True)
    cargo_marking = Column(String, nullable=True)  # Godsmärkning, matches a Sellus purchase order
    status = Column(String, nullable=False, default="pending", index=True)  # pending, in_progress, completed
    created_at = Column(
        TIMESTAMP(timezone=True),
        server_default=text("timezone('utc', now())"),
        nullable=False
    )
    completed_at = Column(DateTime(timezone=True), nullable=True)

    items = relationship("DeliveryNoteItem", back_populates="delivery_note", cascade="all, delete-orphan")


class DeliveryNoteItem(Base):
    __tablename__ = "delivery_note_items"

    id = Column(Integer, primary_key=True)
    delivery_note_id = Column(Integer, ForeignKey("delivery_notes.id", ondelete="CASCADE"), nullable=False, index=True)
    article_number = Column(String, nullable=False)
    order_number = Column(String, nullable=True)  # Order/cargo reference printed per row
    description = Column(String, nullable=True)
    quantity_expected = Column(Integer, nullable=False, default=0)
    quantity_checked = Column(Integer, nullable=False, default=0)
    is_checked = Column(Boolean, nullable=False, default=False)
    checked_at = Column(DateTime(timezone=True), nullable=True)

    # Filled in once the order resolution chain has located the order
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="SET NULL"), nullable=True)
    external_order_id = Column(String, nullable=True)

    delivery_note = relationship("DeliveryNote", back_populates="items")
