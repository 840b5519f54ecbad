"""
Models for products and their stock.

A product is linked to a Sellus item through the human-entered article number
(`external_article_ref`). The opaque numeric item id Sellus uses in its URLs is
resolved once and cached in `external_numeric_id`.
"""

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, CheckConstraint, text, TIMESTAMP
from sqlalchemy.orm import relationship
from sqlalchemy.dialects.postgresql import ENUM

from wms.database import Base
from wms.core.enums import ProductSyncStatus


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True)
    created_at = Column(
        TIMESTAMP(timezone=False),
        server_default=text("timezone('utc', now())"),
        nullable=False
    )

    name = Column(String, nullable=False)
    barcode = Column(String, nullable=True)

    # Sellus link
    external_article_ref = Column(String, nullable=True, index=True)  # itemNumber as typed in Sellus
    external_numeric_id = Column(String, nullable=True)  # Cached once resolved, never re-derived
    sync_status = Column(
        ENUM(ProductSyncStatus, name='productsyncstatus', create_type=True,
             values_callable=lambda enum: [member.value for member in enum]),
        default=ProductSyncStatus.UNSYNCED,
        nullable=False,
        index=True
    )
    last_synced_at = Column(DateTime(timezone=True), nullable=True)

    inventory_records = relationship("InventoryRecord", back_populates="product")

    def __repr__(self):
        return f"<Product(id={self.id}, ref='{self.external_article_ref}', numeric_id='{self.external_numeric_id}')>"


class Location(Base):
    __tablename__ = "locations"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False, unique=True)


class InventoryRecord(Base):
    """Stock of one product at one location. Total stock is the sum over all locations."""
    __tablename__ = "inventory"
    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_inventory_quantity_nonneg"),
    )

    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    location_id = Column(Integer, ForeignKey("locations.id"), nullable=False, index=True)
    quantity = Column(Integer, nullable=False, default=0)

    product = relationship("Product", back_populates="inventory_records")
    location = relationship("Location")
