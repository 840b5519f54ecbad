from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Text
from sqlalchemy.sql import func
from wms.database import Base


class UnresolvedSyncFailure(Base):
    """
    A stock push to Sellus that failed terminally.

    The retry coordinator's work queue is exactly the rows where resolved_at IS NULL.
    Rows are never deleted; a successful retry (or an operator) stamps resolved_at.
    """
    __tablename__ = "sync_failures"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="SET NULL"), nullable=True, index=True)
    product_name = Column(String, nullable=False, default="")
    article_ref = Column(String, nullable=True)
    quantity_changed = Column(Integer, nullable=False, default=0)
    order_number = Column(String, nullable=True)
    error_message = Column(Text, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
    resolved_at = Column(DateTime(timezone=True), nullable=True, index=True)
    resolved_by = Column(String, nullable=True)  # NULL when resolved automatically

    def __repr__(self):
        return f"<UnresolvedSyncFailure(id={self.id}, product_id={self.product_id}, resolved_at={self.resolved_at})>"
