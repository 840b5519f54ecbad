from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON, Text
from sqlalchemy.sql import func
from wms.database import Base


class SyncLedgerEntry(Base):
    """
    Represents a single synchronization attempt against Sellus.
    This table serves as a permanent, append-only audit log. Rows are never updated.
    """
    __tablename__ = "sync_ledger"

    id = Column(Integer, primary_key=True, index=True)

    sync_type = Column(String, nullable=False, index=True)  # e.g., 'inventory_item', 'delivery_item_workflow'
    direction = Column(String, nullable=False)  # 'wms_to_sellus' or 'sellus_to_wms'

    # --- Links to Local Data ---
    related_article_ref = Column(String, nullable=True, index=True)
    related_product_id = Column(Integer, ForeignKey("products.id", ondelete="SET NULL"), nullable=True, index=True)

    status = Column(String, nullable=False, index=True)  # success, error, partial_success

    request_payload = Column(JSON, nullable=True)
    response_payload = Column(JSON, nullable=True)
    error_message = Column(Text, nullable=True)
    duration_ms = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    def __repr__(self):
        return (f"<SyncLedgerEntry(id={self.id}, type='{self.sync_type}', "
                f"ref='{self.related_article_ref}', status='{self.status}')>")
