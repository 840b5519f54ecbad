# wms/models/order.py
from sqlalchemy import Column, Integer, DateTime, String, Boolean, ForeignKey, Text, text, TIMESTAMP
from sqlalchemy.orm import relationship

from wms.database import Base


class Order(Base):
    """Local shadow of a Sellus order"""
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    external_order_id = Column(String, unique=True, nullable=False, index=True)
    order_number = Column(String, nullable=True, index=True)
    customer_name = Column(String, nullable=True)
    customer_notes = Column(Text, nullable=True)
    status = Column(String, nullable=False, default="pending")
    order_date = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(
        TIMESTAMP(timezone=True),
        server_default=text("timezone('utc', now())"),
        nullable=False
    )
    # Last time the order appeared in a Sellus listing (or was resolved from Sellus)
    last_seen_remote_at = Column(DateTime(timezone=True), nullable=True, index=True)

    lines = relationship("OrderLine", back_populates="order", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Order(id={self.id}, external_order_id='{self.external_order_id}')>"


class OrderLine(Base):
    __tablename__ = "order_lines"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    article_ref = Column(String, nullable=False, index=True)
    description = Column(String, nullable=True)
    quantity_ordered = Column(Integer, nullable=False, default=0)
    quantity_picked = Column(Integer, nullable=False, default=0)
    is_picked = Column(Boolean, nullable=False, default=False)
    picked_at = Column(DateTime(timezone=True), nullable=True)

    order = relationship("Order", back_populates="lines")
